"""Schemas for board membership operations."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel

from taskboard.models.board_members import BoardRole
from taskboard.schemas.users import UserSummary

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class MemberAdd(SQLModel):
    """Invite an existing user to a board by email."""

    email: str = Field(
        min_length=3,
        max_length=320,
        pattern=r"^[^@\s]+@[^@\s]+$",
        examples=["sam@example.com"],
    )
    role: BoardRole = BoardRole.MEMBER


class MemberRoleUpdate(SQLModel):
    """Change a member's board role."""

    role: BoardRole


class MemberRead(SQLModel):
    """Membership row with the embedded user."""

    id: UUID
    board_id: UUID
    user_id: UUID
    role: str
    created_at: datetime
    user: UserSummary | None = None
