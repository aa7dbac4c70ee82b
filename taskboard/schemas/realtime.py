"""Envelope for events delivered to board rooms."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from taskboard.core.time import utcnow

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class BoardEvent(BaseModel):
    """One broadcast: event name plus a JSON-ready payload."""

    event_id: str = Field(default_factory=lambda: uuid4().hex)
    event: str = Field(examples=["task:moved", "list:deleted"])
    board_id: UUID
    payload: dict[str, Any] = Field(default_factory=dict)
    emitted_at: datetime = Field(default_factory=utcnow)
