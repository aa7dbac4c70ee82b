"""Base SQLModel class providing the `objects` query manager."""

from __future__ import annotations

from typing import ClassVar

from sqlmodel import SQLModel

from taskboard.db.query_manager import ManagerDescriptor


class QueryModel(SQLModel):
    """SQLModel base whose subclasses expose `Model.objects` query helpers."""

    objects: ClassVar[ManagerDescriptor] = ManagerDescriptor()
