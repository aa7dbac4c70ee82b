"""Typed failures raised by board services and mapped to HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status


class TaskBoardError(HTTPException):
    """Base class for domain failures with a stable machine-readable code."""

    default_status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal Server Error"
    code: str = "internal_error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(
            status_code=self.default_status_code,
            detail=detail or self.default_detail,
        )


class NotFoundError(TaskBoardError):
    """Referenced board, list, task, membership or assignment does not exist."""

    default_status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"
    code = "not_found"


class ForbiddenError(TaskBoardError):
    """Actor lacks board membership or the required role."""

    default_status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied"
    code = "forbidden"


class ConflictError(TaskBoardError):
    """Requested state already exists (duplicate member or assignment)."""

    default_status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"
    code = "conflict"


class ValidationFailedError(TaskBoardError):
    """Well-formed request that is not allowed, e.g. a cross-board move."""

    default_status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"
    code = "validation_error"


class InternalError(TaskBoardError):
    """Persistence or transaction failure; the detail never carries internals."""

    code = "internal_error"
