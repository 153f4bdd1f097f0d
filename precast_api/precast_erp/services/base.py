from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.errors import NotFoundError, ValidationFailedError
from precast_erp.db.base import utcnow


class BaseService:
    """
    Base class for services. Holds a session for use across multiple repositories.

    Services should keep business logic and orchestration, delegating data access
    to repositories.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def apply_patch(entity: Any, data: dict[str, Any]) -> Any:
        """
        Copy every key of `data` onto the entity.

        An explicit null sent for a NOT NULL column leaves the stored value alone.
        """
        columns = inspect(type(entity)).columns
        for key, value in data.items():
            if value is None and key in columns and not columns[key].nullable:
                continue
            setattr(entity, key, value)
        return entity

    @staticmethod
    def require(entity: Any, message: str) -> Any:
        if entity is None:
            raise NotFoundError(message)
        return entity

    @staticmethod
    def check_choice(value: Optional[str], allowed: Iterable[str], label: str) -> None:
        if value is not None and value not in allowed:
            raise ValidationFailedError(f"Invalid {label}: {value}")

    async def next_number(self, column: Any, prefix: str, width: int = 4) -> str:
        """
        Next document number `<prefix><NNNN>` where NNNN follows the count of
        existing numbers sharing the prefix.
        """
        stmt = select(func.count()).where(column.like(f"{prefix}%"))
        count = (await self.session.execute(stmt)).scalar_one()
        return f"{prefix}{int(count) + 1:0{width}d}"

    @staticmethod
    def month_tag(now: Optional[datetime] = None) -> str:
        return (now or utcnow()).strftime("%y%m")

    @staticmethod
    def year_tag(now: Optional[datetime] = None) -> str:
        return (now or utcnow()).strftime("%y")
