"""Structured error payload schema used by API responses."""

from __future__ import annotations

from pydantic import Field
from sqlmodel import SQLModel


class ErrorResponse(SQLModel):
    """Body returned for every non-2xx response."""

    detail: str | dict[str, object] | list[object] = Field(
        description="Human-readable message or field-level validation errors.",
        examples=["Task not found", [{"loc": ["body", "title"], "msg": "Field required"}]],
    )
    request_id: str | None = Field(
        default=None,
        description="Request correlation identifier injected by middleware.",
    )
    code: str | None = Field(
        default=None,
        description="Machine-readable error code for typed domain failures.",
        examples=["not_found", "forbidden", "conflict", "validation_error"],
    )
