"""Notification inbox schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlmodel import SQLModel

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class NotificationCreate(SQLModel):
    """Internal payload used by services to enqueue a notification."""

    user_id: UUID
    title: str
    message: str
    type: str = "info"
    link: str | None = None


class NotificationRead(SQLModel):
    """Notification returned to its recipient."""

    id: UUID
    user_id: UUID
    title: str
    message: str
    type: str
    link: str | None = None
    read: bool
    created_at: datetime


class NotificationCount(SQLModel):
    """Number of notifications affected by a bulk operation."""

    updated: int
