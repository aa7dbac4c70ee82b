"""Board membership model with the board-level role."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from taskboard.core.time import utcnow
from taskboard.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class BoardRole(str, Enum):
    """Roles enforced on board operations.

    ADMIN gates board update/delete and membership changes; any member may
    create, edit, move and delete lists and tasks.
    """

    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class BoardMember(QueryModel, table=True):
    """Membership row linking a user to a board."""

    __tablename__ = "board_members"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (
        UniqueConstraint(
            "board_id",
            "user_id",
            name="uq_board_members_board_user",
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    board_id: UUID = Field(foreign_key="boards.id", index=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    role: str = Field(default=BoardRole.MEMBER.value, index=True)
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == BoardRole.ADMIN.value
