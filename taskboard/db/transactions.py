"""Unit-of-work helper committing or rolling back a session as one transaction."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from taskboard.core.errors import ConflictError, InternalError
from taskboard.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit everything done inside the block, or nothing at all.

    Reads issued before entering the block belong to the same transaction
    because sessions autobegin. Persistence failures surface as `InternalError`
    so callers never see driver messages; unique-constraint violations surface
    as `ConflictError`.
    """
    try:
        yield session
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.info(
            "db.transaction.conflict",
            extra={"error_type": type(exc).__name__},
        )
        raise ConflictError from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception(
            "db.transaction.failed",
            extra={"error_type": type(exc).__name__},
        )
        raise InternalError from exc
    except BaseException:
        await session.rollback()
        raise
