from __future__ import annotations

from collections import Counter
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select

from precast_erp.db.models.yard import Equipment, Material, Movement, YardLocation
from .base import ModelRepository


class LocationRepository(ModelRepository[YardLocation]):
    model = YardLocation
    search_columns = ("name", "type")
    default_order = ("name",)

    async def children(self, parent_id: Optional[UUID]) -> List[YardLocation]:
        clause = YardLocation.parent_id.is_(None) if parent_id is None else YardLocation.parent_id == parent_id
        return await self.list(where=[clause], limit=None)


class MaterialRepository(ModelRepository[Material]):
    model = Material
    search_columns = ("name", "description", "batch_number", "supplier")
    default_order = ("name",)

    async def count_at(self, location_id: UUID) -> int:
        return await self.count(Material.location_id == location_id)

    async def counts_by_location(self) -> Counter:
        stmt = (
            select(Material.location_id, func.count())
            .where(Material.location_id.is_not(None))
            .group_by(Material.location_id)
        )
        res = await self.execute(stmt)
        return Counter({location_id: count for location_id, count in res.all()})


class MovementRepository(ModelRepository[Movement]):
    model = Movement
    default_order = ("-requested_at",)


class EquipmentRepository(ModelRepository[Equipment]):
    model = Equipment
    search_columns = ("name", "model", "serial_number")
    default_order = ("name",)
