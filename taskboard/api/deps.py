"""Reusable FastAPI dependencies for auth, sessions and service wiring.

Routers compose these instead of constructing services themselves, so every
request shares one session between the service and its activity logger and
receives the application's broadcaster.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Depends

from taskboard.core.auth import AuthContext, get_auth_context
from taskboard.db.session import get_session
from taskboard.services.activity import ActivityLogger
from taskboard.services.boards import BoardService
from taskboard.services.lists import ListMutationService
from taskboard.services.realtime import Broadcaster, get_broadcaster
from taskboard.services.tasks import TaskMutationService

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from taskboard.models.users import User

AUTH_DEP = Depends(get_auth_context)
SESSION_DEP = Depends(get_session)
BROADCASTER_DEP = Depends(get_broadcaster)


def current_user(auth: AuthContext = AUTH_DEP) -> User:
    return auth.user


def get_activity_logger(
    session: AsyncSession = SESSION_DEP,
    broadcaster: Broadcaster = BROADCASTER_DEP,
) -> ActivityLogger:
    return ActivityLogger(session, broadcaster)


ACTIVITY_DEP = Depends(get_activity_logger)


def get_board_service(
    session: AsyncSession = SESSION_DEP,
    broadcaster: Broadcaster = BROADCASTER_DEP,
    activity: ActivityLogger = ACTIVITY_DEP,
) -> BoardService:
    return BoardService(session, broadcaster, activity)


def get_list_service(
    session: AsyncSession = SESSION_DEP,
    broadcaster: Broadcaster = BROADCASTER_DEP,
    activity: ActivityLogger = ACTIVITY_DEP,
) -> ListMutationService:
    return ListMutationService(session, broadcaster, activity)


def get_task_service(
    session: AsyncSession = SESSION_DEP,
    broadcaster: Broadcaster = BROADCASTER_DEP,
    activity: ActivityLogger = ACTIVITY_DEP,
) -> TaskMutationService:
    return TaskMutationService(session, broadcaster, activity)


USER_DEP = Depends(current_user)
BOARD_SERVICE_DEP = Depends(get_board_service)
LIST_SERVICE_DEP = Depends(get_list_service)
TASK_SERVICE_DEP = Depends(get_task_service)
