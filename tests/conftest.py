# ruff: noqa: INP001
"""Pytest configuration shared across task board tests."""

from __future__ import annotations

import os
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are validated at import time; give them deterministic values
# regardless of the shell environment.
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DB_AUTO_MIGRATE"] = "false"
os.environ["LOCAL_AUTH_TOKEN"] = "test-local-token-0123456789-0123456789-0123456789x"

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker  # noqa: E402
from sqlmodel.ext.asyncio.session import AsyncSession  # noqa: E402

from taskboard.db.session import build_engine, create_schema  # noqa: E402
from taskboard.models.users import User  # noqa: E402
from taskboard.services.ordering.store import OrderedCollectionStore  # noqa: E402


class RecordingBroadcaster:
    """Broadcaster double that keeps every emitted event in order."""

    def __init__(self) -> None:
        self.events: list[tuple[UUID, str, Any]] = []

    def emit_to_board(self, board_id: UUID, event: str, payload: Any) -> int:
        self.events.append((board_id, event, payload))
        return 1

    def names(self) -> list[str]:
        return [event for _board_id, event, _payload in self.events]


@pytest_asyncio.fixture
async def engine() -> AsyncEngine:
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncSession:
    async with session_maker() as session:
        yield session


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


async def make_user(session: AsyncSession, name: str = "User") -> User:
    suffix = uuid4().hex[:8]
    user = User(
        external_id=f"ext-{suffix}",
        email=f"{name.lower()}-{suffix}@example.com",
        name=name,
    )
    session.add(user)
    await session.commit()
    return user


@pytest_asyncio.fixture
async def file_session_maker(tmp_path: Path) -> async_sessionmaker[AsyncSession]:
    """Sessions over a file database, so concurrent sessions use separate connections."""
    file_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'board.db'}")
    await create_schema(file_engine)
    yield async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)
    await file_engine.dispose()


class InterleavedStore(OrderedCollectionStore[Any]):
    """Store that runs `before` once, right before its first serialized scope locks.

    Lets a test commit a competing change between a service loading its rows
    and taking the parent lock.
    """

    def __init__(self, base: OrderedCollectionStore[Any], before: Callable[[], Awaitable[None]]) -> None:
        super().__init__(
            model=base.model,
            parent_model=base.parent_model,
            parent_field=base.parent_field,
        )
        self._before: Callable[[], Awaitable[None]] | None = before

    @asynccontextmanager
    async def serialized(self, session: AsyncSession, *parent_ids: UUID) -> AsyncIterator[AsyncSession]:
        if self._before is not None:
            before, self._before = self._before, None
            await before()
        async with super().serialized(session, *parent_ids) as scoped:
            yield scoped
