"""Append-only activity log for board history and notifications."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field

from taskboard.core.time import utcnow
from taskboard.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class ActivityAction(str, Enum):
    """Kinds of recorded board activity."""

    BOARD_CREATED = "BOARD_CREATED"
    BOARD_UPDATED = "BOARD_UPDATED"
    MEMBER_ADDED = "MEMBER_ADDED"
    MEMBER_REMOVED = "MEMBER_REMOVED"
    MEMBER_ROLE_UPDATED = "MEMBER_ROLE_UPDATED"
    LIST_CREATED = "LIST_CREATED"
    LIST_UPDATED = "LIST_UPDATED"
    LIST_DELETED = "LIST_DELETED"
    TASK_CREATED = "TASK_CREATED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_MOVED = "TASK_MOVED"
    TASK_DELETED = "TASK_DELETED"
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_UNASSIGNED = "TASK_UNASSIGNED"


class Activity(QueryModel, table=True):
    """Write-once activity entry; `details` is shaped by `action`."""

    __tablename__ = "activities"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    board_id: UUID = Field(foreign_key="boards.id", index=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    action: str = Field(index=True)
    entity_type: str
    entity_id: UUID
    details: dict[str, object] | None = Field(
        default=None,
        sa_column=Column("metadata", JSON),
    )
    created_at: datetime = Field(default_factory=utcnow, index=True)
