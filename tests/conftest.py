"""Shared fixtures: a throwaway SQLite store per test."""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from curtis_os.config import Settings
from curtis_os.main import build_engine, create_app
from curtis_os.models import Task, TaskStatus, utcnow


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(database_url=f"sqlite:///{tmp_path / 'curtis_os.db'}", log_level="DEBUG")


@pytest.fixture()
def session(settings: Settings) -> Iterator[Session]:
    engine = build_engine(settings)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s
    engine.dispose()


@pytest.fixture()
def client(settings: Settings) -> Iterator[TestClient]:
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def now() -> datetime:
    """A fixed reference instant (naive UTC, second precision)."""
    return utcnow().replace(microsecond=0)


@pytest.fixture()
def make_task(session: Session) -> Callable[..., Task]:
    """Insert a task directly into the store and return it."""

    def _make(title: str, due_in: timedelta | None = None, *, base: datetime | None = None, **fields) -> Task:
        base = base or utcnow()
        task = Task(
            title=title,
            status=fields.pop("status", TaskStatus.TODO),
            due_date=base + due_in if due_in is not None else None,
            **fields,
        )
        session.add(task)
        session.commit()
        session.refresh(task)
        return task

    return _make
