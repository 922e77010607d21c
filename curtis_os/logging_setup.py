"""
Logging configuration for the CurtisOS backend.

Modules log through `logging.getLogger(__name__)`; `setup_logging` is called
once by the app factory to attach the stderr handler.
"""

import logging
import sys

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that only get WARNING+ unless SQL echo is requested.
_NOISY = ("sqlalchemy", "uvicorn.access")

_handler: logging.Handler | None = None


def setup_logging(level: str = "INFO", sql_echo: bool = False) -> None:
    """
    Configure a single stderr handler on the root logger.

    Safe to call more than once: the handler installed by a previous call is
    replaced, handlers installed by anyone else are left alone.
    """
    global _handler

    root = logging.getLogger()
    root.setLevel(logging.getLevelName(level.upper()))

    if _handler is not None:
        root.removeHandler(_handler)

    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
    root.addHandler(_handler)

    for name in _NOISY:
        logging.getLogger(name).setLevel(logging.INFO if sql_echo else logging.WARNING)

    logging.captureWarnings(True)
