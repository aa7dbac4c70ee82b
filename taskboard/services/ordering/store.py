"""Transactional persistence of position-ordered children under one parent."""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING, Any, Generic, TypeVar
from weakref import WeakValueDictionary

from sqlalchemy import func, update
from sqlmodel import SQLModel, col, select

from taskboard.core.logging import get_logger
from taskboard.db.transactions import atomic
from taskboard.models.boards import Board
from taskboard.models.lists import BoardList
from taskboard.models.tasks import Task

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

    from taskboard.services.ordering.sequencer import ShiftRange

logger = get_logger(__name__)
ChildT = TypeVar("ChildT", bound=SQLModel)


class ParentLocks:
    """In-process asyncio locks keyed by parent id.

    Locks live as long as somebody holds or waits on them.
    """

    def __init__(self) -> None:
        self._locks: WeakValueDictionary[tuple[str, UUID], asyncio.Lock] = WeakValueDictionary()

    def get(self, scope: str, parent_id: UUID) -> asyncio.Lock:
        key = (scope, parent_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock


class OrderedCollectionStore(Generic[ChildT]):
    """Reads and bulk position updates for the children of one parent table.

    ``serialized`` is the only sanctioned way to mutate positions: it holds a
    per-parent lock (in process) and a row lock on the parent (in the
    database) until the transaction commits, so concurrent movers on the same
    parent never compute shifts against a stale read.
    """

    def __init__(
        self,
        *,
        model: type[ChildT],
        parent_model: type[SQLModel],
        parent_field: str,
        locks: ParentLocks | None = None,
    ) -> None:
        self.model = model
        self.parent_model = parent_model
        self.parent_field = parent_field
        self.scope = str(getattr(model, "__tablename__", model.__name__))
        self._locks = locks or ParentLocks()

    def _parent_column(self) -> Any:
        return col(getattr(self.model, self.parent_field))

    def _position_column(self) -> Any:
        return col(getattr(self.model, "position"))

    async def max_position(self, session: AsyncSession, parent_id: UUID) -> int | None:
        statement = select(func.max(self._position_column())).where(
            self._parent_column() == parent_id,
        )
        value = (await session.exec(statement)).one()
        return None if value is None else int(value)

    async def count(
        self,
        session: AsyncSession,
        parent_id: UUID,
        *,
        exclude_id: UUID | None = None,
    ) -> int:
        statement = select(func.count()).select_from(self.model).where(
            self._parent_column() == parent_id,
        )
        if exclude_id is not None:
            statement = statement.where(col(getattr(self.model, "id")) != exclude_id)
        return int((await session.exec(statement)).one())

    async def siblings(self, session: AsyncSession, parent_id: UUID) -> list[ChildT]:
        statement = (
            select(self.model)
            .where(self._parent_column() == parent_id)
            .order_by(self._position_column().asc())
        )
        return list(await session.exec(statement))

    async def shift(
        self,
        session: AsyncSession,
        parent_id: UUID,
        shift_range: ShiftRange | None,
        *,
        exclude_id: UUID | None = None,
    ) -> None:
        """Apply one range shift with a single UPDATE statement."""
        if shift_range is None:
            return
        position = self._position_column()
        statement = (
            update(self.model)
            .where(self._parent_column() == parent_id)
            .where(position >= shift_range.lower)
            .values(position=position + shift_range.delta)
        )
        if shift_range.upper is not None:
            statement = statement.where(position <= shift_range.upper)
        if exclude_id is not None:
            statement = statement.where(col(getattr(self.model, "id")) != exclude_id)
        await session.exec(statement)  # type: ignore[call-overload]
        logger.debug(
            "ordering.shift",
            extra={
                "scope": self.scope,
                "parent_id": str(parent_id),
                "lower": shift_range.lower,
                "upper": shift_range.upper,
                "delta": shift_range.delta,
            },
        )

    async def _lock_parent_rows(self, session: AsyncSession, parent_ids: list[UUID]) -> None:
        parent_id_column = col(getattr(self.parent_model, "id"))
        statement = (
            select(parent_id_column)
            .where(parent_id_column.in_(parent_ids))
            .with_for_update()
        )
        await session.exec(statement)

    @asynccontextmanager
    async def serialized(
        self,
        session: AsyncSession,
        *parent_ids: UUID,
    ) -> AsyncIterator[AsyncSession]:
        """Run one all-or-nothing position mutation over ``parent_ids``."""
        ordered = sorted(set(parent_ids), key=str)
        async with AsyncExitStack() as stack:
            for parent_id in ordered:
                await stack.enter_async_context(self._locks.get(self.scope, parent_id))
            async with atomic(session):
                await self._lock_parent_rows(session, ordered)
                yield session


LIST_STORE: OrderedCollectionStore[BoardList] = OrderedCollectionStore(
    model=BoardList,
    parent_model=Board,
    parent_field="board_id",
)
TASK_STORE: OrderedCollectionStore[Task] = OrderedCollectionStore(
    model=Task,
    parent_model=BoardList,
    parent_field="list_id",
)
