"""Schemas for task create/update/move/assign API operations."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel

from taskboard.schemas.users import UserSummary

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class TaskCreate(SQLModel):
    """Payload for creating a task; it is appended to the end of its list."""

    list_id: UUID
    title: str = Field(min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=5000)
    due_date: datetime | None = None


class TaskUpdate(SQLModel):
    """Content-only update. Explicit `null` clears description or due date."""

    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=5000)
    due_date: datetime | None = None


class TaskMove(SQLModel):
    """Destination list and zero-based slot for a task move."""

    list_id: UUID
    position: int = Field(ge=0, examples=[0])


class TaskAssign(SQLModel):
    """Board member to assign to a task."""

    user_id: UUID


class TaskRead(SQLModel):
    """Task payload annotated with the owning board id."""

    id: UUID
    list_id: UUID
    board_id: UUID
    title: str
    description: str | None = None
    position: int
    due_date: datetime | None = None
    created_by_user_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    assignees: list[UserSummary] = Field(default_factory=list)


class TaskDeleted(SQLModel):
    """Identifiers of a deleted task."""

    task_id: UUID
    list_id: UUID
    board_id: UUID
