"""
Database models and API schemas for the CurtisOS task board.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# Every timestamp column stores naive UTC.
UTC_COLUMN = DateTime(timezone=False)


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskContext(str, Enum):
    """Workspace a task belongs to (business pipeline vs personal/day job)."""

    NOTROM = "notrom"
    PODCAST = "podcast"
    DAY_JOB = "day_job"
    GENERAL = "general"
    PERSONAL = "personal"
    WORK_PERSONAL = "work_personal"


class ProjectStatus(str, Enum):
    PLANNING = "planning"
    IN_PRODUCTION = "in_production"
    REVIEW = "review"
    LIVE = "live"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"


# Tables


class Project(SQLModel, table=True):
    """A client or internal project that tasks can be attached to."""

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: str | None = None
    status: ProjectStatus = Field(default=ProjectStatus.PLANNING)
    deadline: datetime | None = Field(default=None, sa_type=UTC_COLUMN)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTC_COLUMN)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTC_COLUMN)


class Task(SQLModel, table=True):
    """
    A task on the board.

    Attributes:
        id: Unique identifier, assigned by the database.
        title: Display title.
        status: Lifecycle status; only `todo` tasks show up as due soon.
        priority: low, medium or high.
        due_date: Optional due timestamp (naive UTC).
        completed_at: Set when the task is completed; excludes it from due-soon.
        project_id: Optional owning project.
        context: Workspace tag, used for filtering and bulk edits.
    """

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(index=True)
    description: str | None = None
    status: TaskStatus = Field(default=TaskStatus.TODO, index=True)
    priority: Priority = Field(default=Priority.MEDIUM)
    due_date: datetime | None = Field(default=None, index=True, sa_type=UTC_COLUMN)
    completed_at: datetime | None = Field(default=None, sa_type=UTC_COLUMN)
    assigned_to: str | None = None
    project_id: int | None = Field(default=None, foreign_key="project.id")
    context: TaskContext | None = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTC_COLUMN)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTC_COLUMN)


# Schemas


class ApiModel(SQLModel):
    """Base for request/response bodies: camelCase on the wire, UTC inside."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("*")
    @classmethod
    def _naive_utc(cls, value):
        if isinstance(value, datetime):
            return to_naive_utc(value)
        return value


class TaskCreate(ApiModel):
    """Schema for creating a new task."""

    title: str = Field(min_length=1)
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    due_date: datetime | None = None
    completed_at: datetime | None = None
    assigned_to: str | None = None
    project_id: int | None = None
    context: TaskContext | None = None


class TaskUpdate(ApiModel):
    """Schema for updating a single task. Only fields that are sent are applied."""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    status: TaskStatus | None = None
    priority: Priority | None = None
    due_date: datetime | None = None
    completed_at: datetime | None = None
    assigned_to: str | None = None
    project_id: int | None = None
    context: TaskContext | None = None


class TaskRead(ApiModel):
    id: int
    title: str
    description: str | None = None
    status: TaskStatus
    priority: Priority
    due_date: datetime | None = None
    completed_at: datetime | None = None
    assigned_to: str | None = None
    project_id: int | None = None
    context: TaskContext | None = None
    created_at: datetime
    updated_at: datetime


class BulkTaskUpdate(ApiModel):
    """
    The fields a bulk action may overwrite.

    Anything else in the payload is ignored; a payload that sets none of these
    fields is rejected as a whole.
    """

    status: TaskStatus | None = None
    priority: Priority | None = None
    context: TaskContext | None = None
    completed_at: datetime | None = None


class BulkUpdateRequest(ApiModel):
    task_ids: list[int] = Field(min_length=1)
    update: BulkTaskUpdate


class BulkUpdateResult(ApiModel):
    updated: list[int] = Field(default_factory=list)
    failed: list[int] = Field(default_factory=list)


class TaskStats(ApiModel):
    """Counters shown on the dashboard."""

    total: int
    completed_this_week: int
    overdue: int
    due_soon: int


class ProjectCreate(ApiModel):
    name: str = Field(min_length=1)
    description: str | None = None
    status: ProjectStatus = ProjectStatus.PLANNING
    deadline: datetime | None = None


class ProjectRead(ApiModel):
    id: int
    name: str
    description: str | None = None
    status: ProjectStatus
    deadline: datetime | None = None
    created_at: datetime
    updated_at: datetime
