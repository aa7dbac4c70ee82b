"""Board activity log plus the notifications derived from it."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlmodel import col, select

from taskboard.core.logging import get_logger
from taskboard.models.activities import Activity, ActivityAction
from taskboard.models.board_members import BoardMember
from taskboard.models.boards import Board
from taskboard.models.users import User
from taskboard.schemas.activity import ActivityRead
from taskboard.schemas.notifications import NotificationCreate
from taskboard.schemas.users import UserSummary
from taskboard.services.notifications import create_notification
from taskboard.services.realtime import ACTIVITY_CREATED

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.sql import Select
    from sqlmodel.ext.asyncio.session import AsyncSession

    from taskboard.schemas.activity import ActivityCreate
    from taskboard.services.realtime import Broadcaster

logger = get_logger(__name__)


def activity_to_read(activity: Activity, user: User | None = None) -> ActivityRead:
    return ActivityRead(
        id=activity.id,
        board_id=activity.board_id,
        user_id=activity.user_id,
        action=activity.action,
        entity_type=activity.entity_type,
        entity_id=activity.entity_id,
        metadata=dict(activity.details or {}),
        created_at=activity.created_at,
        user=UserSummary.model_validate(user, from_attributes=True) if user else None,
    )


def board_activities_statement(board_id: UUID) -> Select[Any]:
    """Newest-first activity rows for a board joined with their actors."""
    return (
        select(Activity, User)
        .join(User, col(User.id) == col(Activity.user_id))
        .where(col(Activity.board_id) == board_id)
        .order_by(col(Activity.created_at).desc())
    )


def activity_rows_to_read(rows: Sequence[Any]) -> Sequence[Any]:
    return [activity_to_read(activity, user) for activity, user in rows]


class ActivityLogger:
    """Records activity after the primary change has committed.

    Logging is best-effort: any failure is rolled back and logged, and never
    undoes or fails the mutation that triggered it. A rollback expires every
    instance held by the session, so callers build their responses before
    calling `log`.
    """

    def __init__(self, session: AsyncSession, broadcaster: Broadcaster) -> None:
        self.session = session
        self.broadcaster = broadcaster

    async def log(self, entry: ActivityCreate) -> Activity | None:
        try:
            return await self._record(entry)
        except Exception as exc:
            await self.session.rollback()
            logger.exception(
                "activity.log.failed",
                extra={
                    "board_id": str(entry.board_id),
                    "action": entry.action.value,
                    "entity_id": str(entry.entity_id),
                    "error_type": type(exc).__name__,
                },
            )
            return None

    async def _record(self, entry: ActivityCreate) -> Activity:
        activity = Activity(
            board_id=entry.board_id,
            user_id=entry.user_id,
            action=entry.action.value,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            details=entry.details.model_dump(mode="json", exclude={"action"}),
        )
        self.session.add(activity)
        await self._stage_notifications(entry)
        await self.session.commit()

        actor = await User.objects.by_id(entry.user_id).first(self.session)
        self.broadcaster.emit_to_board(
            entry.board_id,
            ACTIVITY_CREATED,
            activity_to_read(activity, actor),
        )
        logger.info(
            "activity.logged",
            extra={
                "board_id": str(entry.board_id),
                "action": entry.action.value,
                "entity_id": str(entry.entity_id),
            },
        )
        return activity

    async def _stage_notifications(self, entry: ActivityCreate) -> None:
        details = entry.details
        recipient: UUID | None = None
        title = ""
        message = ""
        if details.action == ActivityAction.TASK_ASSIGNED:
            recipient = details.assigned_user_id
            title = "Task assigned"
            message = f'You were assigned to "{details.title}"'
        elif details.action == ActivityAction.MEMBER_ADDED:
            member = await BoardMember.objects.by_id(entry.entity_id).first(self.session)
            board = await Board.objects.by_id(entry.board_id).first(self.session)
            if member is not None:
                recipient = member.user_id
            title = "Added to board"
            board_title = board.title if board is not None else "a board"
            message = f'You were added to "{board_title}" as {details.role}'
        if recipient is None or recipient == entry.user_id:
            return
        await create_notification(
            self.session,
            NotificationCreate(
                user_id=recipient,
                title=title,
                message=message,
                type="assignment" if details.action == ActivityAction.TASK_ASSIGNED else "info",
                link=f"/boards/{entry.board_id}",
            ),
        )
