"""Schemas for board list API operations."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel

from taskboard.schemas.tasks import TaskRead

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class ListCreate(SQLModel):
    """Payload for creating a list; it is appended after the board's last list."""

    board_id: UUID
    title: str = Field(min_length=1, max_length=200)


class ListUpdate(SQLModel):
    """Rename and/or reposition a list. Positions past the end clamp to the last slot."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    position: int | None = Field(default=None, ge=0)


class ListRead(SQLModel):
    """List payload with its ordered tasks."""

    id: UUID
    board_id: UUID
    title: str
    position: int
    created_at: datetime
    updated_at: datetime
    tasks: list[TaskRead] = Field(default_factory=list)


class ListDeleted(SQLModel):
    """Identifiers of a deleted list."""

    list_id: UUID
    board_id: UUID
