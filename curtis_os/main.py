"""
FastAPI application for the CurtisOS task board.

This is the main entry point that:
- Builds the database engine from settings
- Hands every request its own database session
- Exposes the task, project and dashboard endpoints under /api
"""

import logging
from collections.abc import Iterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from . import store
from .config import Settings, load_settings
from .errors import InvalidUpdatePayload, ProjectNotFound, StoreUnavailable, TaskNotFound
from .logging_setup import setup_logging
from .models import (
    BulkUpdateRequest,
    BulkUpdateResult,
    Priority,
    ProjectCreate,
    ProjectRead,
    TaskContext,
    TaskCreate,
    TaskRead,
    TaskStats,
    TaskStatus,
    TaskUpdate,
)

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> Engine:
    """Create the SQLAlchemy engine for the configured database."""
    connect_args = {}
    if settings.database_url.startswith("sqlite"):
        # Sessions are used from FastAPI's worker threads.
        connect_args["check_same_thread"] = False
    return create_engine(settings.database_url, echo=settings.sql_echo, connect_args=connect_args)


def get_session(request: Request) -> Iterator[Session]:
    """Open a database session for the duration of one request."""
    with Session(request.app.state.engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_session)]


# Routes

router = APIRouter(prefix="/api")


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/tasks", response_model=list[TaskRead])
def get_tasks(
    session: SessionDep,
    status: TaskStatus | None = None,
    priority: Priority | None = None,
    context: TaskContext | None = None,
    project_id: Annotated[int | None, Query(alias="projectId", ge=1, le=2**63 - 1)] = None,
    assigned_to: Annotated[str | None, Query(alias="assignedTo")] = None,
):
    return store.list_tasks(
        session,
        status=status,
        priority=priority,
        context=context,
        project_id=project_id,
        assigned_to=assigned_to,
    )


@router.get("/tasks/search", response_model=list[TaskRead])
def search_tasks(session: SessionDep, q: Annotated[str, Query(min_length=1)]):
    return store.search_tasks(session, q)


@router.get("/tasks/due-soon", response_model=list[TaskRead])
def get_due_soon_tasks(
    request: Request,
    session: SessionDep,
    days: Annotated[int | None, Query(ge=1, le=30)] = None,
):
    """
    Open `todo` tasks due between now and the end of the due-soon window.

    The window defaults to the configured number of days (3 unless changed).
    """
    if days is None:
        days = request.app.state.settings.due_soon_days
    return store.due_soon_tasks(session, days=days)


@router.get("/tasks/overdue", response_model=list[TaskRead])
def get_overdue_tasks(session: SessionDep):
    return store.overdue_tasks(session)


@router.patch("/tasks/bulk", response_model=BulkUpdateResult)
def bulk_update(body: BulkUpdateRequest, session: SessionDep):
    """
    Apply one partial update to several tasks.

    Unknown ids are reported in `failed`; the rest are still updated.
    """
    return store.bulk_update_tasks(session, body.task_ids, body.update)


@router.post("/tasks", response_model=TaskRead, status_code=201)
def create_task(body: TaskCreate, session: SessionDep):
    return store.create_task(session, body)


@router.get("/tasks/{task_id}", response_model=TaskRead)
def get_task(task_id: int, session: SessionDep):
    return store.get_task(session, task_id)


@router.patch("/tasks/{task_id}", response_model=TaskRead)
def update_task(task_id: int, body: TaskUpdate, session: SessionDep):
    return store.update_task(session, task_id, body)


@router.delete("/tasks/{task_id}", status_code=204)
def delete_task(task_id: int, session: SessionDep):
    store.delete_task(session, task_id)
    return Response(status_code=204)


@router.get("/projects", response_model=list[ProjectRead])
def get_projects(session: SessionDep):
    return store.list_projects(session)


@router.post("/projects", response_model=ProjectRead, status_code=201)
def create_project(body: ProjectCreate, session: SessionDep):
    return store.create_project(session, body)


@router.get("/projects/{project_id}", response_model=ProjectRead)
def get_project(project_id: int, session: SessionDep):
    return store.get_project(session, project_id)


@router.get("/projects/{project_id}/tasks", response_model=list[TaskRead])
def get_project_tasks(project_id: int, session: SessionDep):
    return store.project_tasks(session, project_id)


@router.get("/dashboard/stats", response_model=TaskStats)
def get_dashboard_stats(session: SessionDep):
    return store.task_stats(session)


# Error handlers


async def _task_not_found(request: Request, exc: TaskNotFound):
    return JSONResponse(status_code=404, content={"message": "Task not found"})


async def _project_not_found(request: Request, exc: ProjectNotFound):
    return JSONResponse(status_code=404, content={"message": "Project not found"})


async def _invalid_update(request: Request, exc: InvalidUpdatePayload):
    return JSONResponse(status_code=400, content={"message": str(exc)})


async def _store_unavailable(request: Request, exc: StoreUnavailable):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"message": "Task store unavailable"})


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration to use. Defaults to `load_settings()`.

    Returns:
        A FastAPI app with its own database engine on `app.state.engine`.
    """
    settings = settings or load_settings()
    setup_logging(settings.log_level, sql_echo=settings.sql_echo)

    engine = build_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan - create tables on startup."""
        SQLModel.metadata.create_all(engine)
        logger.info("CurtisOS API ready (db=%s)", engine.url.render_as_string(hide_password=True))
        yield
        engine.dispose()

    app = FastAPI(
        title="CurtisOS API",
        description="Task, project and dashboard backend for CurtisOS",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine

    app.include_router(router)
    app.add_exception_handler(TaskNotFound, _task_not_found)
    app.add_exception_handler(ProjectNotFound, _project_not_found)
    app.add_exception_handler(InvalidUpdatePayload, _invalid_update)
    app.add_exception_handler(StoreUnavailable, _store_unavailable)

    return app


def main() -> None:
    import uvicorn

    settings = load_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
