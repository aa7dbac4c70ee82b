"""Chainable query helpers exposed as `Model.objects` on table models."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import func
from sqlmodel import SQLModel, col, select

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.sql.elements import ColumnElement
    from sqlmodel.ext.asyncio.session import AsyncSession
    from sqlmodel.sql.expression import SelectOfScalar

ModelT = TypeVar("ModelT", bound=SQLModel)


class QuerySet(Generic[ModelT]):
    """Immutable wrapper around a select statement for a single model."""

    def __init__(self, model: type[ModelT], statement: SelectOfScalar[ModelT]) -> None:
        self.model = model
        self.statement = statement

    def _clone(self, statement: SelectOfScalar[ModelT]) -> QuerySet[ModelT]:
        return QuerySet(self.model, statement)

    def filter(self, *criteria: ColumnElement[bool] | bool) -> QuerySet[ModelT]:
        return self._clone(self.statement.where(*criteria))

    def filter_by(self, **values: Any) -> QuerySet[ModelT]:
        return self._clone(self.statement.filter_by(**values))

    def order_by(self, *clauses: Any) -> QuerySet[ModelT]:
        return self._clone(self.statement.order_by(*clauses))

    def limit(self, count: int) -> QuerySet[ModelT]:
        return self._clone(self.statement.limit(count))

    def fresh(self) -> QuerySet[ModelT]:
        """Overwrite already-loaded instances with the rows read now."""
        return self._clone(self.statement.execution_options(populate_existing=True))

    async def first(self, session: AsyncSession) -> ModelT | None:
        return (await session.exec(self.statement)).first()

    async def all(self, session: AsyncSession) -> list[ModelT]:
        return list(await session.exec(self.statement))

    async def count(self, session: AsyncSession) -> int:
        statement = select(func.count()).select_from(self.statement.order_by(None).subquery())
        return int((await session.exec(statement)).one())


class ModelManager(Generic[ModelT]):
    """Entry point for building model queries."""

    def __init__(self, model: type[ModelT]) -> None:
        self.model = model

    def all(self) -> QuerySet[ModelT]:
        return QuerySet(self.model, select(self.model))

    def by_id(self, value: UUID) -> QuerySet[ModelT]:
        id_column = col(getattr(self.model, "id"))
        return self.all().filter(id_column == value)

    def filter(self, *criteria: ColumnElement[bool] | bool) -> QuerySet[ModelT]:
        return self.all().filter(*criteria)

    def filter_by(self, **values: Any) -> QuerySet[ModelT]:
        return self.all().filter_by(**values)


class ManagerDescriptor:
    """Class-level descriptor returning a manager bound to the owner model."""

    def __get__(self, instance: object, owner: type[Any]) -> ModelManager[Any]:
        return ModelManager(owner)
