"""Per-user notification inbox."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import update
from sqlmodel import col

from taskboard.core.errors import NotFoundError
from taskboard.core.logging import get_logger
from taskboard.db.transactions import atomic
from taskboard.models.notifications import Notification

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession
    from sqlmodel.sql.expression import SelectOfScalar

    from taskboard.schemas.notifications import NotificationCreate

logger = get_logger(__name__)


def notifications_for_user_statement(
    user_id: UUID,
    *,
    unread_only: bool = False,
) -> SelectOfScalar[Notification]:
    query = Notification.objects.filter_by(user_id=user_id)
    if unread_only:
        query = query.filter(col(Notification.read).is_(False))
    return query.order_by(col(Notification.created_at).desc()).statement


async def create_notification(session: AsyncSession, payload: NotificationCreate) -> Notification:
    """Stage a notification on `session`; the caller commits."""
    notification = Notification.model_validate(payload, from_attributes=True)
    session.add(notification)
    logger.info(
        "notification.created",
        extra={"user_id": str(payload.user_id), "type": payload.type},
    )
    return notification


async def _owned_or_404(session: AsyncSession, notification_id: UUID, user_id: UUID) -> Notification:
    notification = await Notification.objects.by_id(notification_id).first(session)
    if notification is None or notification.user_id != user_id:
        raise NotFoundError("Notification not found")
    return notification


async def mark_read(session: AsyncSession, notification_id: UUID, user_id: UUID) -> Notification:
    notification = await _owned_or_404(session, notification_id, user_id)
    async with atomic(session):
        notification.read = True
        session.add(notification)
    return notification


async def mark_all_read(session: AsyncSession, user_id: UUID) -> int:
    async with atomic(session):
        result = await session.exec(  # type: ignore[call-overload]
            update(Notification)
            .where(col(Notification.user_id) == user_id)
            .where(col(Notification.read).is_(False))
            .values(read=True),
        )
    return int(result.rowcount or 0)


async def delete_notification(session: AsyncSession, notification_id: UUID, user_id: UUID) -> None:
    notification = await _owned_or_404(session, notification_id, user_id)
    async with atomic(session):
        await session.delete(notification)
