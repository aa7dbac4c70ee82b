"""User API schemas for profile read/update and compact embeds."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class UserSummary(SQLModel):
    """Compact user shape embedded in members, assignees and activity."""

    id: UUID = Field(examples=["11111111-1111-1111-1111-111111111111"])
    name: str = Field(examples=["Alex Chen"])
    email: str = Field(examples=["alex@example.com"])
    avatar: str | None = None


class UserRead(UserSummary):
    """Full user payload returned by `/users/me`."""

    external_id: str | None = Field(
        default=None,
        description="Identity-provider subject the user row is synced from.",
    )
    created_at: datetime
    updated_at: datetime


class UserUpdate(SQLModel):
    """Payload for partial user profile updates."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    avatar: str | None = Field(default=None, max_length=2048)
