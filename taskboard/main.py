"""FastAPI application entrypoint and router wiring for the task board API."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import APIRouter, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi_pagination import add_pagination
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from taskboard.api.activity import router as activity_router
from taskboard.api.boards import router as boards_router
from taskboard.api.lists import router as lists_router
from taskboard.api.notifications import router as notifications_router
from taskboard.api.realtime import router as realtime_router
from taskboard.api.tasks import router as tasks_router
from taskboard.api.users import router as users_router
from taskboard.core.config import settings
from taskboard.core.error_handling import install_error_handling
from taskboard.core.logging import configure_logging, get_logger
from taskboard.db.session import async_engine, init_db
from taskboard.schemas.errors import ErrorResponse
from taskboard.schemas.health import HealthStatusResponse
from taskboard.services.realtime import BoardBroadcaster

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

configure_logging()
logger = get_logger(__name__)
OPENAPI_TAGS = [
    {
        "name": "health",
        "description": "Service liveness/readiness probes used by infrastructure checks.",
    },
    {
        "name": "users",
        "description": "Current-user profile read/update and user lookup for invitations.",
    },
    {
        "name": "boards",
        "description": "Board lifecycle and membership administration.",
    },
    {
        "name": "lists",
        "description": "Ordered lists within a board: create, rename, reposition, delete.",
    },
    {
        "name": "tasks",
        "description": "Ordered tasks within lists: CRUD, moves, and assignment.",
    },
    {
        "name": "activity",
        "description": "Board activity history, newest first.",
    },
    {
        "name": "notifications",
        "description": "Per-user notification inbox.",
    },
    {
        "name": "realtime",
        "description": "Server-sent event stream of board mutations for connected members.",
    },
]
ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
    status.HTTP_403_FORBIDDEN: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse},
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize the schema and the board broadcaster before serving requests."""
    logger.info(
        "app.lifecycle.starting",
        extra={
            "environment": settings.environment,
            "db_auto_migrate": settings.db_auto_migrate,
        },
    )
    await init_db()
    app.state.broadcaster = BoardBroadcaster(queue_size=settings.realtime_queue_size)
    logger.info("app.lifecycle.started")
    try:
        yield
    finally:
        app.state.broadcaster = None
        logger.info("app.lifecycle.stopped")


app = FastAPI(
    title="Task Board API",
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=OPENAPI_TAGS,
)

origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )
    logger.info("app.cors.enabled", extra={"origins_count": len(origins)})
else:
    logger.info("app.cors.disabled")

install_error_handling(app)


@app.get(
    "/health",
    tags=["health"],
    response_model=HealthStatusResponse,
    summary="Health Check",
)
def health() -> HealthStatusResponse:
    """Lightweight liveness probe endpoint."""
    return HealthStatusResponse(ok=True)


@app.get(
    "/healthz",
    tags=["health"],
    response_model=HealthStatusResponse,
    summary="Health Alias Check",
)
def healthz() -> HealthStatusResponse:
    """Alias liveness probe endpoint for platform compatibility."""
    return HealthStatusResponse(ok=True)


@app.get(
    "/readyz",
    tags=["health"],
    response_model=HealthStatusResponse,
    summary="Readiness Check",
)
async def readyz() -> HealthStatusResponse:
    """Readiness probe: the database answers a trivial query."""
    try:
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("app.readyz.database_unavailable")
        return HealthStatusResponse(ok=False)
    return HealthStatusResponse(ok=True)


api_v1 = APIRouter(prefix="/api/v1", responses=ERROR_RESPONSES)
api_v1.include_router(users_router)
api_v1.include_router(boards_router)
api_v1.include_router(activity_router)
api_v1.include_router(realtime_router)
api_v1.include_router(lists_router)
api_v1.include_router(tasks_router)
api_v1.include_router(notifications_router)
app.include_router(api_v1)

add_pagination(app)
