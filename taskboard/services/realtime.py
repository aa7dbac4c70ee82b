"""Board-room broadcaster feeding server-sent event streams.

A process-wide `BoardBroadcaster` is created in the application lifespan and
stored on `app.state`; routes and services receive it through
`get_broadcaster`. Emission is fire-and-forget: it enqueues without awaiting.
A subscriber whose queue is full is marked overflowed and removed from its
room; once it has drained what was queued its stream ends with `stream:reset`
so the client reconnects and re-fetches the board.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Protocol

from fastapi import Request
from fastapi.encoders import jsonable_encoder

from taskboard.core.config import settings
from taskboard.core.logging import get_logger
from taskboard.schemas.realtime import BoardEvent

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from uuid import UUID

logger = get_logger(__name__)

LIST_CREATED = "list:created"
LIST_UPDATED = "list:updated"
LIST_DELETED = "list:deleted"
TASK_CREATED = "task:created"
TASK_UPDATED = "task:updated"
TASK_MOVED = "task:moved"
TASK_DELETED = "task:deleted"
BOARD_UPDATED = "board:updated"
BOARD_DELETED = "board:deleted"
MEMBER_ADDED = "member:added"
MEMBER_UPDATED = "member:updated"
MEMBER_REMOVED = "member:removed"
ACTIVITY_CREATED = "activity:created"
STREAM_RESET = "stream:reset"


class Broadcaster(Protocol):
    """Anything that can deliver an event to every subscriber of a board."""

    def emit_to_board(self, board_id: UUID, event: str, payload: Any) -> int: ...


class NullBroadcaster:
    """Broadcaster that drops everything; used by scripts and isolated tests."""

    def emit_to_board(self, board_id: UUID, event: str, payload: Any) -> int:
        return 0


class SubscriptionOverflowError(Exception):
    """The subscriber fell behind and missed at least one event."""


class Subscription:
    """One connected listener in a board room."""

    def __init__(self, board_id: UUID, maxsize: int) -> None:
        self.board_id = board_id
        self.queue: asyncio.Queue[BoardEvent] = asyncio.Queue(maxsize=maxsize)
        self.overflowed = False

    async def next_event(self) -> BoardEvent:
        """Next queued event; raises once an overflowed queue is drained."""
        if self.overflowed and self.queue.empty():
            raise SubscriptionOverflowError(self.board_id)
        return await self.queue.get()


class BoardBroadcaster:
    """In-process rooms keyed by board id."""

    def __init__(self, *, queue_size: int | None = None) -> None:
        self._queue_size = queue_size or settings.realtime_queue_size
        self._rooms: dict[UUID, set[Subscription]] = {}

    def join(self, board_id: UUID) -> Subscription:
        subscription = Subscription(board_id, self._queue_size)
        self.add(subscription)
        return subscription

    def add(self, subscription: Subscription) -> None:
        """Place `subscription` in its room. Adding twice is a no-op."""
        room = self._rooms.setdefault(subscription.board_id, set())
        if subscription in room:
            return
        room.add(subscription)
        logger.debug(
            "realtime.room.join",
            extra={"board_id": str(subscription.board_id), "subscribers": len(room)},
        )

    def leave(self, subscription: Subscription) -> None:
        """Remove `subscription` from its room. Leaving twice is a no-op."""
        room = self._rooms.get(subscription.board_id)
        if room is None or subscription not in room:
            return
        room.discard(subscription)
        if not room:
            del self._rooms[subscription.board_id]
        logger.debug(
            "realtime.room.leave",
            extra={"board_id": str(subscription.board_id), "subscribers": len(room)},
        )

    def subscriber_count(self, board_id: UUID) -> int:
        return len(self._rooms.get(board_id, ()))

    @asynccontextmanager
    async def subscribe(self, board_id: UUID) -> AsyncIterator[Subscription]:
        subscription = self.join(board_id)
        try:
            yield subscription
        finally:
            self.leave(subscription)

    def emit_to_board(self, board_id: UUID, event: str, payload: Any) -> int:
        """Queue `event` for every subscriber of `board_id`; returns deliveries."""
        room = self._rooms.get(board_id)
        if not room:
            return 0
        envelope = BoardEvent(
            event=event,
            board_id=board_id,
            payload=jsonable_encoder(payload),
        )
        delivered = 0
        for subscription in list(room):
            try:
                subscription.queue.put_nowait(envelope)
            except asyncio.QueueFull:
                subscription.overflowed = True
                self.leave(subscription)
                logger.warning(
                    "realtime.emit.overflow",
                    extra={
                        "board_id": str(board_id),
                        "event": event,
                        "event_id": envelope.event_id,
                    },
                )
                continue
            delivered += 1
        logger.debug(
            "realtime.emit",
            extra={"board_id": str(board_id), "event": event, "delivered": delivered},
        )
        return delivered


def get_broadcaster(request: Request) -> Broadcaster:
    """Return the broadcaster installed on the running application."""
    broadcaster = getattr(request.app.state, "broadcaster", None)
    if broadcaster is None:
        return NullBroadcaster()
    return broadcaster
