from __future__ import annotations

from typing import Any, ClassVar, Generic, Iterable, Optional, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import Executable, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository:
    """Base class for repositories providing common session helpers."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return scalars."""
        result = await self.execute(statement, params)
        return result.scalars()

    async def scalar_one_or_none(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return a single scalar or None."""
        result = await self.execute(statement, params)
        return result.scalar_one_or_none()

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def flush(self) -> None:
        await self.session.flush()

    async def add_all(self, entities: Iterable[Any]) -> None:
        """Add multiple entities to session."""
        self.session.add_all(list(entities))

    async def add(self, entity: Any) -> None:
        """Add a single entity to session."""
        self.session.add(entity)


class ModelRepository(BaseRepository, Generic[ModelT]):
    """
    Repository bound to one mapped class.

    Subclasses set `model`, optionally `search_columns` (matched with ILIKE by
    `list`) and `default_order` (column names, prefix "-" for descending).
    """

    model: ClassVar[type]
    search_columns: ClassVar[Sequence[str]] = ()
    default_order: ClassVar[Sequence[str]] = ("-created_at",)

    def _ordering(self, order: Optional[Sequence[str]] = None) -> list:
        clauses = []
        for name in order or self.default_order:
            desc = name.startswith("-")
            column = getattr(self.model, name.lstrip("-"))
            clauses.append(column.desc() if desc else column.asc())
        return clauses

    def _search_clause(self, search: str):
        like = f"%{search}%"
        return or_(*(getattr(self.model, c).ilike(like) for c in self.search_columns))

    async def get(self, entity_id: UUID) -> Optional[ModelT]:
        stmt = select(self.model).where(self.model.id == entity_id)
        return await self.scalar_one_or_none(stmt)

    async def list(
        self,
        *,
        filters: Optional[dict[str, Any]] = None,
        search: Optional[str] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
        order: Optional[Sequence[str]] = None,
        where: Sequence[Any] = (),
    ) -> list[ModelT]:
        """
        List rows matching equality `filters` (None values ignored), an
        optional free-text `search` and extra `where` clauses.
        """
        stmt = select(self.model)
        for key, value in (filters or {}).items():
            if value is not None:
                stmt = stmt.where(getattr(self.model, key) == value)
        for clause in where:
            stmt = stmt.where(clause)
        if search and self.search_columns:
            stmt = stmt.where(self._search_clause(search))
        stmt = stmt.order_by(*self._ordering(order)).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        res = await self.scalars(stmt)
        return list(res)

    async def count(self, *where: Any) -> int:
        stmt = select(func.count()).select_from(self.model)
        for clause in where:
            stmt = stmt.where(clause)
        res = await self.execute(stmt)
        return int(res.scalar_one())

    async def create(self, entity: ModelT) -> ModelT:
        """Add, commit and reload the entity."""
        await self.add(entity)
        await self.commit()
        return await self.get(entity.id)  # type: ignore[return-value]

    async def save(self, entity: ModelT) -> ModelT:
        """Commit pending changes on an entity already in the session."""
        await self.add(entity)
        await self.commit()
        return entity

    async def delete(self, entity: ModelT) -> None:
        await self.session.delete(entity)
        await self.commit()
