"""Schemas for board create/update/read API operations."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel

from taskboard.schemas.board_members import MemberRead
from taskboard.schemas.lists import ListRead

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class BoardCreate(SQLModel):
    """Payload for creating a board; the creator becomes its admin."""

    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)


class BoardUpdate(SQLModel):
    """Payload for partial board updates."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)


class BoardRead(SQLModel):
    """Board payload returned by list and mutation endpoints."""

    id: UUID
    title: str
    description: str | None = None
    created_by_user_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    role: str | None = Field(
        default=None,
        description="Caller's role on the board, when known.",
        examples=["ADMIN", "MEMBER"],
    )


class BoardDetailRead(BoardRead):
    """Board with members and ordered lists, each carrying ordered tasks."""

    members: list[MemberRead] = Field(default_factory=list)
    lists: list[ListRead] = Field(default_factory=list)
