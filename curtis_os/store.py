"""
Task store operations for the CurtisOS backend.

Every function takes an explicit `Session`; callers own its lifetime.
Connectivity failures from the database surface as `StoreUnavailable`.
"""

import functools
import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Any, Callable

from sqlalchemy import func, or_
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, col, select

from .errors import InvalidUpdatePayload, ProjectNotFound, StoreUnavailable, TaskNotFound
from .models import (
    BulkTaskUpdate,
    BulkUpdateResult,
    Priority,
    Project,
    ProjectCreate,
    Task,
    TaskContext,
    TaskCreate,
    TaskStats,
    TaskStatus,
    TaskUpdate,
    to_naive_utc,
    utcnow,
)

logger = logging.getLogger(__name__)

DUE_SOON_DAYS = 3

# Range of a SQLite INTEGER primary key.
_MIN_ROW_ID = -(2**63)
_MAX_ROW_ID = 2**63 - 1

# Columns that may not be set to NULL through a partial update.
_REQUIRED_FIELDS = {"title", "status", "priority"}


def _store_call(fn: Callable) -> Callable:
    @functools.wraps(fn)
    def wrapper(session: Session, *args, **kwargs):
        try:
            return fn(session, *args, **kwargs)
        except OperationalError as e:
            session.rollback()
            logger.exception("Task store unavailable during %s", fn.__name__)
            raise StoreUnavailable(str(e.orig)) from e

    return wrapper


def _resolve_now(now: datetime | None) -> datetime:
    return utcnow() if now is None else to_naive_utc(now)


def _changes(update: TaskUpdate | BulkTaskUpdate) -> dict[str, Any]:
    """
    Collect the fields a partial update actually sets.

    Raises:
        InvalidUpdatePayload: If nothing applicable is left.
    """
    changes = {
        name: value
        for name, value in update.model_dump(exclude_unset=True).items()
        if not (value is None and name in _REQUIRED_FIELDS)
    }
    if not changes:
        raise InvalidUpdatePayload("Update contains no fields to apply.")
    return changes


def _lookup(session: Session, model: type, row_id: int):
    """Fetch a row by id; ids the database cannot represent simply match nothing."""
    if not _MIN_ROW_ID <= row_id <= _MAX_ROW_ID:
        return None
    return session.get(model, row_id)


def _apply(session: Session, task_id: int, changes: dict[str, Any]) -> Task:
    task = _lookup(session, Task, task_id)
    if task is None:
        raise TaskNotFound(task_id)

    for name, value in changes.items():
        setattr(task, name, value)
    task.updated_at = utcnow()

    session.add(task)
    session.commit()
    session.refresh(task)
    return task


def _require_project(session: Session, project_id: int | None) -> None:
    if project_id is not None and _lookup(session, Project, project_id) is None:
        raise ProjectNotFound(project_id)


# Tasks


@_store_call
def create_task(session: Session, data: TaskCreate) -> Task:
    _require_project(session, data.project_id)

    task = Task(**data.model_dump())
    if task.status == TaskStatus.COMPLETED and task.completed_at is None:
        task.completed_at = utcnow()

    session.add(task)
    session.commit()
    session.refresh(task)
    logger.info("Created task %s (%s)", task.id, task.title)
    return task


@_store_call
def get_task(session: Session, task_id: int) -> Task:
    task = _lookup(session, Task, task_id)
    if task is None:
        raise TaskNotFound(task_id)
    return task


@_store_call
def list_tasks(
    session: Session,
    status: TaskStatus | None = None,
    priority: Priority | None = None,
    context: TaskContext | None = None,
    project_id: int | None = None,
    assigned_to: str | None = None,
) -> list[Task]:
    """
    List tasks, newest first, optionally filtered by exact field values.
    """
    query = select(Task)

    if status:
        query = query.where(Task.status == status)
    if priority:
        query = query.where(Task.priority == priority)
    if context:
        query = query.where(Task.context == context)
    if project_id is not None:
        query = query.where(Task.project_id == project_id)
    if assigned_to:
        query = query.where(Task.assigned_to == assigned_to)

    query = query.order_by(col(Task.created_at).desc(), col(Task.id).desc())
    return list(session.exec(query).all())


@_store_call
def search_tasks(session: Session, term: str) -> list[Task]:
    """
    Case-insensitive substring match on title or description.

    `%` and `_` in the term match themselves, not SQL wildcards.
    """
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    query = (
        select(Task)
        .where(
            or_(
                col(Task.title).ilike(pattern, escape="\\"),
                col(Task.description).ilike(pattern, escape="\\"),
            )
        )
        .order_by(col(Task.created_at).desc(), col(Task.id).desc())
    )
    return list(session.exec(query).all())


@_store_call
def update_task(session: Session, task_id: int, update: TaskUpdate) -> Task:
    """
    Apply a partial update to one task.

    Completing a task stamps `completed_at` unless the caller sent one;
    moving it to any other status clears it.

    Raises:
        InvalidUpdatePayload: The update sets no fields.
        TaskNotFound: No task with this id.
        ProjectNotFound: The update points at a missing project.
    """
    changes = _changes(update)

    status = changes.get("status")
    if status == TaskStatus.COMPLETED:
        if changes.get("completed_at") is None:
            changes["completed_at"] = utcnow()
    elif status is not None:
        changes["completed_at"] = None

    if "project_id" in changes:
        _require_project(session, changes["project_id"])

    return _apply(session, task_id, changes)


@_store_call
def delete_task(session: Session, task_id: int) -> None:
    task = _lookup(session, Task, task_id)
    if task is None:
        raise TaskNotFound(task_id)
    session.delete(task)
    session.commit()
    logger.info("Deleted task %s", task_id)


@_store_call
def due_soon_tasks(
    session: Session,
    now: datetime | None = None,
    days: int = DUE_SOON_DAYS,
) -> list[Task]:
    """
    Tasks coming due within the next `days` days.

    Selects `todo` tasks that are not completed and whose due date falls in
    `[now, now + days * 24h]`, both ends inclusive. Results are ordered by
    due date, then id.

    Args:
        session: Database session.
        now: Reference instant. Defaults to the current UTC time.
        days: Width of the window.

    Returns:
        Matching tasks, earliest due first.
    """
    now = _resolve_now(now)
    horizon = now + timedelta(days=days)

    query = (
        select(Task)
        .where(
            Task.status == TaskStatus.TODO,
            col(Task.completed_at).is_(None),
            col(Task.due_date).is_not(None),
            col(Task.due_date) >= now,
            col(Task.due_date) <= horizon,
        )
        .order_by(col(Task.due_date), col(Task.id))
    )
    return list(session.exec(query).all())


@_store_call
def overdue_tasks(session: Session, now: datetime | None = None) -> list[Task]:
    """Open `todo` tasks whose due date is already behind `now`."""
    now = _resolve_now(now)

    query = (
        select(Task)
        .where(
            Task.status == TaskStatus.TODO,
            col(Task.completed_at).is_(None),
            col(Task.due_date).is_not(None),
            col(Task.due_date) < now,
        )
        .order_by(col(Task.due_date), col(Task.id))
    )
    return list(session.exec(query).all())


@_store_call
def bulk_update_tasks(
    session: Session,
    task_ids: Iterable[int],
    update: BulkTaskUpdate,
) -> BulkUpdateResult:
    """
    Apply the same partial update to many tasks.

    Each task is updated and committed on its own, so an unknown id only
    fails that id. The update is written as-is (no completion bookkeeping),
    which makes repeating a bulk action a no-op. It also means that moving
    completed tasks back to `todo` leaves their `completed_at` in place, and
    they stay out of the due-soon list until `completedAt: null` is sent too.

    Args:
        session: Database session.
        task_ids: Ids to update; duplicates are applied once.
        update: Fields to overwrite on every task.

    Returns:
        Ids that were updated and ids that failed, in request order.

    Raises:
        InvalidUpdatePayload: The update sets no fields; nothing is touched.
        StoreUnavailable: The database failed mid-batch; ids already updated
            stay updated.
    """
    changes = _changes(update)
    result = BulkUpdateResult()

    for task_id in dict.fromkeys(task_ids):
        try:
            _apply(session, task_id, changes)
        except TaskNotFound:
            logger.warning("Bulk update skipped missing task %s", task_id)
            result.failed.append(task_id)
        else:
            result.updated.append(task_id)

    logger.info(
        "Bulk update %s: %d updated, %d failed",
        sorted(changes),
        len(result.updated),
        len(result.failed),
    )
    return result


@_store_call
def task_stats(session: Session, now: datetime | None = None) -> TaskStats:
    now = _resolve_now(now)
    week_ago = now - timedelta(days=7)

    def count(*conditions) -> int:
        return session.exec(select(func.count()).select_from(Task).where(*conditions)).one()

    return TaskStats(
        total=count(),
        completed_this_week=count(
            Task.status == TaskStatus.COMPLETED,
            col(Task.completed_at) >= week_ago,
        ),
        overdue=len(overdue_tasks(session, now=now)),
        due_soon=len(due_soon_tasks(session, now=now)),
    )


# Projects


@_store_call
def create_project(session: Session, data: ProjectCreate) -> Project:
    project = Project(**data.model_dump())
    session.add(project)
    session.commit()
    session.refresh(project)
    logger.info("Created project %s (%s)", project.id, project.name)
    return project


@_store_call
def get_project(session: Session, project_id: int) -> Project:
    project = _lookup(session, Project, project_id)
    if project is None:
        raise ProjectNotFound(project_id)
    return project


@_store_call
def list_projects(session: Session) -> list[Project]:
    query = select(Project).order_by(col(Project.created_at).desc(), col(Project.id).desc())
    return list(session.exec(query).all())


@_store_call
def project_tasks(session: Session, project_id: int) -> list[Task]:
    get_project(session, project_id)
    return list_tasks(session, project_id=project_id)
