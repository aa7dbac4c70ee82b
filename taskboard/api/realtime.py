"""Server-sent event stream of board room events."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, HTTPException, Request, status
from sse_starlette.sse import EventSourceResponse

from taskboard.api.deps import BROADCASTER_DEP, SESSION_DEP, USER_DEP
from taskboard.core.config import settings
from taskboard.core.logging import get_logger
from taskboard.models.users import User
from taskboard.services.access import get_board_or_404, require_membership
from taskboard.services.realtime import (
    STREAM_RESET,
    BoardBroadcaster,
    Broadcaster,
    SubscriptionOverflowError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(prefix="/boards", tags=["realtime"])
logger = get_logger(__name__)


@router.get("/{board_id}/events")
async def stream_board_events(
    request: Request,
    board_id: UUID,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
    broadcaster: Broadcaster = BROADCASTER_DEP,
) -> EventSourceResponse:
    """Stream every mutation on a board to a connected member."""
    board = await get_board_or_404(session, board_id)
    await require_membership(session, board.id, user.id)
    if not isinstance(broadcaster, BoardBroadcaster):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    poll_seconds = settings.realtime_ping_seconds
    user_id = str(user.id)

    async def event_generator() -> AsyncIterator[dict[str, str]]:
        async with broadcaster.subscribe(board.id) as subscription:
            logger.info(
                "realtime.stream.open",
                extra={"board_id": str(board.id), "user_id": user_id},
            )
            while not await request.is_disconnected():
                try:
                    event = await asyncio.wait_for(subscription.next_event(), poll_seconds)
                except TimeoutError:
                    continue
                except SubscriptionOverflowError:
                    logger.warning(
                        "realtime.stream.overflow",
                        extra={"board_id": str(board.id), "user_id": user_id},
                    )
                    yield {
                        "event": STREAM_RESET,
                        "data": json.dumps({"board_id": str(board.id)}),
                    }
                    break
                yield {
                    "event": event.event,
                    "id": event.event_id,
                    "data": json.dumps(event.payload),
                }
        logger.info(
            "realtime.stream.closed",
            extra={"board_id": str(board.id), "user_id": user_id},
        )

    return EventSourceResponse(event_generator(), ping=poll_seconds)
