"""
Settings for the CurtisOS backend.

Values come from environment variables, with an optional local `.env` file
loaded first. Every variable uses the CURTIS_ prefix.
"""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "CURTIS"


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer, using %s", name, raw, default)
        return default


@dataclass
class Settings:
    """
    Runtime configuration.

    Attributes:
        database_url: SQLAlchemy URL of the task store.
        sql_echo: Log every SQL statement.
        due_soon_days: Width of the due-soon window in days.
        log_level: Root log level name.
        host: Bind address for the standalone server.
        port: Bind port for the standalone server.
    """

    database_url: str = "sqlite:///./curtis_os.db"
    sql_echo: bool = False
    due_soon_days: int = 3
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


def load_settings() -> Settings:
    """Build Settings from the environment (and `.env`, if present)."""
    load_dotenv(override=False)

    defaults = Settings()
    return Settings(
        database_url=os.getenv(_k("DATABASE_URL"), defaults.database_url),
        sql_echo=_env_bool(_k("SQL_ECHO"), defaults.sql_echo),
        due_soon_days=_env_int(_k("DUE_SOON_DAYS"), defaults.due_soon_days),
        log_level=os.getenv(_k("LOG_LEVEL"), defaults.log_level).upper(),
        host=os.getenv(_k("HOST"), defaults.host),
        port=_env_int(_k("PORT"), defaults.port),
    )
