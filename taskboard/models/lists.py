"""Board list (column) model ordered by a dense per-board position."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index
from sqlmodel import Field

from taskboard.core.time import utcnow
from taskboard.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class BoardList(QueryModel, table=True):
    """Ordered column of tasks; positions are 0..n-1 within one board."""

    __tablename__ = "lists"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (Index("ix_lists_board_id_position", "board_id", "position"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    board_id: UUID = Field(foreign_key="boards.id", index=True)
    title: str
    position: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
