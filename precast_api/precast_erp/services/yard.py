from __future__ import annotations

import logging
import uuid
from collections import Counter
from datetime import date, datetime, timedelta
from typing import List, Optional
from uuid import UUID

import pandas as pd
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.errors import ConflictError, NotFoundError, ValidationFailedError
from precast_erp.db.base import as_utc, utcnow
from precast_erp.db.models.quality import SHIPPABLE_PIECE_STATUSES, Piece
from precast_erp.db.models.yard import (
    EQUIPMENT_STATUSES,
    LOCATION_STATUSES,
    MATERIAL_STATUSES,
    MOVEMENT_STATUSES,
    MOVEMENT_TRANSITIONS,
    MOVEMENT_TYPES,
    Equipment,
    Material,
    Movement,
    YardLocation,
)
from precast_erp.repositories.quality import PieceRepository
from precast_erp.repositories.yard import (
    EquipmentRepository,
    LocationRepository,
    MaterialRepository,
    MovementRepository,
)
from precast_erp.schemas.yard import (
    CategorySummary,
    EquipmentCreate,
    EquipmentLocation,
    EquipmentPlace,
    EquipmentPositionUpdate,
    EquipmentUpdate,
    InventoryReport,
    LayoutOptimization,
    LocationCreate,
    LocationNode,
    LocationRead,
    LocationUpdate,
    MaintenanceRequest,
    MapLocation,
    MaterialCreate,
    MaterialUpdate,
    MovementCreate,
    MovementReport,
    MovementUpdate,
    ReadyForShippingRequest,
    SuggestedChange,
    UtilizationReport,
    YardMap,
)
from precast_erp.services.base import BaseService

logger = logging.getLogger(__name__)

# Locations at or above this occupancy (%) are not offered for new material.
AVAILABLE_BELOW = 90.0


class YardLocationService(BaseService):
    """Yard locations, their hierarchy and occupancy."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.locations = LocationRepository(session)
        self.materials = MaterialRepository(session)

    async def _get(self, location_id: UUID) -> YardLocation:
        return self.require(await self.locations.get(location_id), "Location not found")

    async def get_locations(
        self, *, type: Optional[str] = None, status: Optional[str] = None, parent_id: Optional[UUID] = None
    ) -> List[YardLocation]:
        return await self.locations.list(filters={"type": type, "status": status, "parent_id": parent_id}, limit=None)

    async def get_location_by_id(self, location_id: UUID) -> Optional[YardLocation]:
        return await self.locations.get(location_id)

    async def _check_parent(self, parent_id: Optional[UUID], location_id: Optional[UUID] = None) -> None:
        if parent_id is None:
            return
        if location_id is not None and parent_id == location_id:
            raise ValidationFailedError("Location cannot be its own parent")
        if await self.locations.get(parent_id) is None:
            raise NotFoundError(f"Parent location with ID {parent_id} not found")

    # PUBLIC_INTERFACE
    async def create_location(self, payload: LocationCreate) -> YardLocation:
        if not payload.name or not payload.type:
            raise ValidationFailedError("Missing required fields: name and type are required")
        self.check_choice(payload.status, LOCATION_STATUSES, "location status")
        await self._check_parent(payload.parent_id)
        return await self.locations.create(YardLocation(**payload.model_dump()))

    async def update_location(self, location_id: UUID, payload: LocationUpdate) -> Optional[YardLocation]:
        location = await self.locations.get(location_id)
        if location is None:
            return None
        patch = payload.model_dump(exclude_unset=True)
        if "parent_id" in patch:
            await self._check_parent(patch["parent_id"], location.id)
        self.apply_patch(location, patch)
        self.check_choice(location.status, LOCATION_STATUSES, "location status")
        if "capacity" in patch:
            location.update_occupancy(await self.materials.count_at(location.id))
        return await self.locations.save(location)

    # PUBLIC_INTERFACE
    async def delete_location(self, location_id: UUID) -> bool:
        location = await self.locations.get(location_id)
        if location is None:
            return False
        if await self.locations.children(location.id):
            raise ConflictError("Cannot delete location with child locations")
        if await self.materials.count_at(location.id):
            raise ConflictError("Cannot delete location with assigned materials")
        await self.locations.delete(location)
        return True

    async def get_child_locations(self, parent_id: UUID) -> List[YardLocation]:
        return await self.locations.children(parent_id)

    # PUBLIC_INTERFACE
    async def get_location_hierarchy(self, root_id: Optional[UUID] = None) -> List[LocationNode]:
        """Location tree below `root_id`, or the whole forest of top-level locations."""
        everything = await self.locations.list(limit=None)
        by_parent: dict[Optional[UUID], list[YardLocation]] = {}
        for location in everything:
            by_parent.setdefault(location.parent_id, []).append(location)

        def build(location: YardLocation) -> LocationNode:
            node = LocationNode(**LocationRead.model_validate(location).model_dump())
            node.children = [build(child) for child in by_parent.get(location.id, [])]
            return node

        if root_id is not None:
            return [build(await self._get(root_id))]
        return [build(location) for location in by_parent.get(None, [])]

    async def get_available_locations(self) -> List[YardLocation]:
        rows = await self.locations.list(filters={"status": "active"}, limit=None)
        return [loc for loc in rows if (loc.occupancy or 0) < AVAILABLE_BELOW]

    # PUBLIC_INTERFACE
    async def refresh_occupancy(self, location_id: UUID) -> YardLocation:
        """Recount the materials stored at a location. Does not commit."""
        await self.materials.flush()
        location = await self._get(location_id)
        location.update_occupancy(await self.materials.count_at(location.id))
        return location

    async def update_location_occupancy(self, location_id: UUID) -> YardLocation:
        location = await self.refresh_occupancy(location_id)
        return await self.locations.save(location)

    # PUBLIC_INTERFACE
    async def generate_yard_map(self, width: int = 1000, height: int = 800) -> YardMap:
        counts = await self.materials.counts_by_location()
        locations = await self.locations.list(limit=None)
        return YardMap(
            locations=[
                MapLocation(
                    id=loc.id,
                    name=loc.name,
                    type=loc.type,
                    coordinates=loc.coordinates,
                    dimensions=loc.dimensions or {},
                    occupancy=loc.occupancy or 0,
                    status=loc.status,
                    material_count=counts.get(loc.id, 0),
                )
                for loc in locations
            ],
            dimensions={"width": width, "height": height},
        )

    # PUBLIC_INTERFACE
    async def optimize_yard_layout(self, threshold: float = AVAILABLE_BELOW) -> LayoutOptimization:
        """
        Suggest material moves that relieve crowded locations.

        Every location at or above `threshold` gives up materials, one at a
        time, to the active location with the lowest simulated occupancy until
        it drops below the threshold or no target has room. Nothing is moved.
        """
        locations = await self.locations.list(limit=None)
        counts = await self.materials.counts_by_location()

        def pct(loc: YardLocation, count: int) -> float:
            capacity = float(loc.capacity or 0)
            return count / capacity * 100 if capacity > 0 else 100.0

        simulated = Counter({loc.id: counts.get(loc.id, 0) for loc in locations})
        before = {loc.id: pct(loc, simulated[loc.id]) for loc in locations}
        crowded = sorted(
            (loc for loc in locations if before[loc.id] >= threshold), key=lambda loc: before[loc.id], reverse=True
        )
        crowded_ids = {loc.id for loc in crowded}
        targets = [loc for loc in locations if loc.status == "active" and loc.id not in crowded_ids]

        changes: list[SuggestedChange] = []
        relieved = 0
        for source in crowded:
            materials = await self.materials.list(filters={"location_id": source.id}, limit=None)
            for material in materials:
                if pct(source, simulated[source.id]) < threshold:
                    break
                candidates = [t for t in targets if pct(t, simulated[t.id] + 1) < threshold]
                if not candidates:
                    break
                target = min(candidates, key=lambda t: (pct(t, simulated[t.id]), t.name))
                simulated[source.id] -= 1
                simulated[target.id] += 1
                changes.append(
                    SuggestedChange(
                        material_id=material.id,
                        current_location_id=source.id,
                        suggested_location_id=target.id,
                        reason=f"{source.name} is at {before[source.id]:.0f}% occupancy",
                    )
                )
            if pct(source, simulated[source.id]) < threshold:
                relieved += 1

        after = [pct(loc, simulated[loc.id]) for loc in locations]
        total = len(locations) or 1
        return LayoutOptimization(
            optimization_id=f"opt-{utcnow():%Y%m%d%H%M%S}",
            criteria={"threshold": threshold},
            suggested_changes=changes,
            estimated_improvements={
                "locations_relieved": relieved,
                "average_occupancy_before": round(sum(before.values()) / total, 2),
                "average_occupancy_after": round(sum(after) / total, 2),
            },
        )


class YardMaterialService(BaseService):
    """Materials stored in the yard."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.materials = MaterialRepository(session)
        self.movements = MovementRepository(session)
        self.location_service = YardLocationService(session)

    async def _get(self, material_id: UUID) -> Material:
        return self.require(await self.materials.get(material_id), "Material not found")

    async def get_materials(
        self,
        *,
        type: Optional[str] = None,
        category: Optional[str] = None,
        status: Optional[str] = None,
        location_id: Optional[UUID] = None,
        project_id: Optional[UUID] = None,
        search: Optional[str] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[Material]:
        return await self.materials.list(
            filters={
                "type": type,
                "category": category,
                "status": status,
                "location_id": location_id,
                "project_id": project_id,
            },
            search=search,
            limit=limit,
            offset=offset,
        )

    async def get_material_by_id(self, material_id: UUID) -> Optional[Material]:
        return await self.materials.get(material_id)

    async def search_materials(self, query: str) -> List[Material]:
        return await self.materials.list(search=query, limit=None)

    # PUBLIC_INTERFACE
    async def create_material(self, payload: MaterialCreate) -> Material:
        if not (payload.name and payload.type and payload.category and payload.unit):
            raise ValidationFailedError("Missing required fields: name, type, category, and unit are required")
        if payload.quantity < 0:
            raise ValidationFailedError("Quantity cannot be negative")
        self.check_choice(payload.status, MATERIAL_STATUSES, "material status")
        if payload.location_id is not None:
            await self.location_service._get(payload.location_id)
        material = Material(**payload.model_dump())
        await self.materials.add(material)
        if material.location_id:
            await self.location_service.refresh_occupancy(material.location_id)
        await self.materials.commit()
        return material

    async def update_material(self, material_id: UUID, payload: MaterialUpdate) -> Optional[Material]:
        material = await self.materials.get(material_id)
        if material is None:
            return None
        patch = payload.model_dump(exclude_unset=True)
        if patch.get("quantity") is not None and patch["quantity"] < 0:
            raise ValidationFailedError("Quantity cannot be negative")
        quantity = patch.pop("quantity", None)
        self.apply_patch(material, patch)
        if quantity is not None:
            material.update_quantity(quantity)
        self.check_choice(material.status, MATERIAL_STATUSES, "material status")
        return await self.materials.save(material)

    async def delete_material(self, material_id: UUID) -> bool:
        material = await self.materials.get(material_id)
        if material is None:
            return False
        location_id = material.location_id
        await self.session.delete(material)
        if location_id:
            await self.location_service.refresh_occupancy(location_id)
        await self.materials.commit()
        return True

    # PUBLIC_INTERFACE
    async def update_material_quantity(self, material_id: UUID, quantity: float, reason: str = "") -> Material:
        if quantity < 0:
            raise ValidationFailedError("Quantity cannot be negative")
        material = await self._get(material_id)
        previous = material.quantity
        material.update_quantity(quantity)
        logger.info("Material %s quantity %s -> %s (%s)", material.id, previous, quantity, reason or "no reason")
        return await self.materials.save(material)

    async def allocate_material(self, material_id: UUID, project_id: UUID, quantity: float) -> Material:
        material = await self._get(material_id)
        try:
            material.allocate_to_project(project_id, quantity)
        except ValueError as exc:
            raise ValidationFailedError(str(exc)) from exc
        return await self.materials.save(material)

    async def add_tags(self, material_id: UUID, tags: List[str]) -> Material:
        material = await self._get(material_id)
        material.add_tags(tags)
        return await self.materials.save(material)

    async def relocate(self, material: Material, location_id: UUID, quantity: Optional[float] = None) -> Material:
        """
        Put `quantity` (default all) of a material at another location. A
        partial quantity is split off into a new material record. Does not commit.
        """
        source_id = material.location_id
        moved = material
        if quantity is not None and quantity < (material.quantity or 0):
            moved = Material(
                name=material.name,
                type=material.type,
                category=material.category,
                description=material.description,
                quantity=quantity,
                unit=material.unit,
                location_id=location_id,
                status=material.status,
                project_id=material.project_id,
                batch_number=material.batch_number,
                supplier=material.supplier,
                cost=material.cost,
                tags=list(material.tags or []),
                properties=dict(material.properties or {}),
            )
            material.update_quantity(material.quantity - quantity)
            await self.materials.add(moved)
        else:
            material.location_id = location_id
        if source_id:
            await self.location_service.refresh_occupancy(source_id)
        await self.location_service.refresh_occupancy(location_id)
        return moved

    # PUBLIC_INTERFACE
    async def move_material(
        self,
        material_id: UUID,
        location_id: UUID,
        quantity: Optional[float] = None,
        notes: str = "",
        moved_by: Optional[str] = None,
    ) -> Movement:
        """Move a material immediately and record it as a completed transfer."""
        material = await self._get(material_id)
        destination = await self.location_service._get(location_id)
        if quantity is not None and quantity > (material.quantity or 0):
            raise ValidationFailedError(f"Cannot move more than available quantity ({material.quantity:g})")
        now = utcnow()
        movement = Movement(
            material_id=material.id,
            quantity=quantity if quantity is not None else material.quantity,
            from_location_id=material.location_id,
            to_location_id=destination.id,
            type="transfer",
            status="completed",
            requested_by=moved_by,
            started_at=now,
            completed_by=moved_by,
            completed_at=now,
            notes=notes,
        )
        await self.relocate(material, destination.id, quantity)
        await self.movements.add(movement)
        await self.materials.commit()
        return movement

    # PUBLIC_INTERFACE
    async def get_low_stock_materials(
        self, default_threshold: float = 10, thresholds: Optional[dict[str, float]] = None
    ) -> List[Material]:
        thresholds = thresholds or {}
        rows = await self.materials.list(limit=None)
        return [m for m in rows if (m.quantity or 0) <= thresholds.get(m.category, default_threshold)]

    # PUBLIC_INTERFACE
    async def generate_inventory_report(self) -> InventoryReport:
        rows = await self.materials.list(limit=None)
        categories: dict[str, CategorySummary] = {}
        total_value = 0.0
        for m in rows:
            summary = categories.setdefault(m.category, CategorySummary(count=0, total_quantity=0, value=0))
            value = (m.quantity or 0) * (m.cost or 0)
            summary.count += 1
            summary.total_quantity += m.quantity or 0
            summary.value += value
            total_value += value
        return InventoryReport(
            generated_at=utcnow(), total_materials=len(rows), total_value=total_value, categories=categories
        )

    async def inventory_frame(self) -> pd.DataFrame:
        rows = await self.materials.list(limit=None, order=("category", "name"))
        locations = {loc.id: loc.name for loc in await self.location_service.locations.list(limit=None)}
        columns = ["name", "type", "category", "quantity", "unit", "location", "status", "cost", "value"]
        return pd.DataFrame(
            [
                {
                    "name": m.name,
                    "type": m.type,
                    "category": m.category,
                    "quantity": m.quantity,
                    "unit": m.unit,
                    "location": locations.get(m.location_id, ""),
                    "status": m.status,
                    "cost": m.cost,
                    "value": round((m.quantity or 0) * (m.cost or 0), 2),
                }
                for m in rows
            ],
            columns=columns,
        )


class MovementService(BaseService):
    """
    Material movement requests.

    pending -> in-progress -> completed, with cancellation allowed from either
    open state. Executing a movement relocates the material.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.movements = MovementRepository(session)
        self.material_service = YardMaterialService(session)
        self.location_service = self.material_service.location_service

    async def _get(self, movement_id: UUID) -> Movement:
        return self.require(await self.movements.get(movement_id), "Movement not found")

    async def get_movements(
        self,
        *,
        status: Optional[str] = None,
        type: Optional[str] = None,
        material_id: Optional[UUID] = None,
        location_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Movement]:
        where = []
        if location_id is not None:
            where.append(or_(Movement.from_location_id == location_id, Movement.to_location_id == location_id))
        if start_date:
            where.append(Movement.requested_at >= datetime.combine(start_date, datetime.min.time()))
        if end_date:
            where.append(Movement.requested_at < datetime.combine(end_date + timedelta(days=1), datetime.min.time()))
        return await self.movements.list(
            filters={"status": status, "type": type, "material_id": material_id}, where=where, limit=None
        )

    async def get_movement_by_id(self, movement_id: UUID) -> Optional[Movement]:
        return await self.movements.get(movement_id)

    async def get_movements_by_material(self, material_id: UUID) -> List[Movement]:
        return await self.movements.list(filters={"material_id": material_id}, limit=None)

    async def get_movements_by_location(self, location_id: UUID, direction: str = "both") -> List[Movement]:
        if direction == "from":
            clause = Movement.from_location_id == location_id
        elif direction == "to":
            clause = Movement.to_location_id == location_id
        elif direction == "both":
            clause = or_(Movement.from_location_id == location_id, Movement.to_location_id == location_id)
        else:
            raise ValidationFailedError(f"Invalid direction: {direction}")
        return await self.movements.list(where=[clause], limit=None)

    # PUBLIC_INTERFACE
    async def create_movement(self, payload: MovementCreate) -> Movement:
        if payload.material_id is None or payload.quantity is None or payload.to_location_id is None:
            raise ValidationFailedError(
                "Missing required fields: material_id, quantity, and to_location_id are required"
            )
        if payload.quantity <= 0:
            raise ValidationFailedError("Movement quantity must be greater than zero")
        self.check_choice(payload.type, MOVEMENT_TYPES, "movement type")
        material = self.require(await self.material_service.materials.get(payload.material_id), "Material not found")

        from_location_id = payload.from_location_id or material.location_id
        if from_location_id is not None and await self.location_service.locations.get(from_location_id) is None:
            raise NotFoundError("Source location not found")
        destination = self.require(
            await self.location_service.locations.get(payload.to_location_id), "Destination location not found"
        )
        if payload.type != "receive" and payload.quantity > (material.quantity or 0):
            raise ValidationFailedError(f"Cannot move more than available quantity ({material.quantity:g})")
        if not destination.can_accommodate:
            raise ConflictError("Destination location cannot accommodate more materials")

        movement = Movement(**payload.model_dump(exclude={"from_location_id"}), from_location_id=from_location_id)
        created = await self.movements.create(movement)
        logger.info("Movement %s requested: %s x%s -> %s", created.id, material.name, payload.quantity, destination.name)
        return created

    # PUBLIC_INTERFACE
    async def update_movement(self, movement_id: UUID, payload: MovementUpdate) -> Optional[Movement]:
        movement = await self.movements.get(movement_id)
        if movement is None:
            return None
        patch = payload.model_dump(exclude_unset=True)
        new_status = patch.pop("status", None)
        if new_status is not None and new_status != movement.status:
            self.check_choice(new_status, MOVEMENT_STATUSES, "movement status")
            if new_status not in MOVEMENT_TRANSITIONS.get(movement.status, ()):
                raise ConflictError(f"Invalid status transition from {movement.status} to {new_status}")
            movement.status = new_status
            if new_status == "in-progress":
                movement.started_at = utcnow()
            elif new_status == "completed":
                movement.completed_at = utcnow()
        self.apply_patch(movement, patch)
        return await self.movements.save(movement)

    async def delete_movement(self, movement_id: UUID) -> bool:
        movement = await self.movements.get(movement_id)
        if movement is None:
            return False
        if movement.status != "pending":
            raise ConflictError("Only pending movements can be deleted")
        await self.movements.delete(movement)
        return True

    # PUBLIC_INTERFACE
    async def execute_movement(
        self,
        movement_id: UUID,
        operator_id: Optional[str] = None,
        equipment_id: Optional[UUID] = None,
        completed_by: Optional[str] = None,
    ) -> Movement:
        """
        Carry out a pending or in-progress movement. A receipt adds its quantity
        to the material at the destination; other types relocate it.
        """
        movement = await self._get(movement_id)
        if movement.status not in ("pending", "in-progress"):
            raise ConflictError(f"Cannot execute movement with status: {movement.status}")
        material = await self.material_service._get(movement.material_id)

        now = utcnow()
        if movement.status == "pending":
            movement.started_at = now
            movement.operator_id = operator_id or movement.operator_id
            movement.equipment_id = equipment_id or movement.equipment_id
        if movement.type == "receive":
            source_id = material.location_id
            material.update_quantity((material.quantity or 0) + movement.quantity)
            material.location_id = movement.to_location_id
            if source_id and source_id != movement.to_location_id:
                await self.location_service.refresh_occupancy(source_id)
            await self.location_service.refresh_occupancy(movement.to_location_id)
        else:
            quantity = min(movement.quantity, material.quantity or 0)
            await self.material_service.relocate(material, movement.to_location_id, quantity)
        movement.status = "completed"
        movement.completed_by = completed_by
        movement.completed_at = now
        await self.movements.commit()
        logger.info("Movement %s executed", movement.id)
        return movement

    # PUBLIC_INTERFACE
    async def cancel_movement(self, movement_id: UUID, cancelled_by: Optional[str] = None, reason: str = "") -> Movement:
        movement = await self._get(movement_id)
        if movement.status not in ("pending", "in-progress"):
            raise ConflictError(f"Cannot cancel movement with status: {movement.status}")
        movement.status = "cancelled"
        if reason:
            movement.notes = f"{movement.notes or ''}\nCancelled: {reason}"
        movement.properties = {**(movement.properties or {}), "cancelled_by": cancelled_by}
        return await self.movements.save(movement)

    # PUBLIC_INTERFACE
    async def schedule_movement(self, movement_id: UUID, scheduled_for: datetime) -> Movement:
        movement = await self._get(movement_id)
        if movement.status != "pending":
            raise ConflictError(f"Cannot schedule movement with status: {movement.status}")
        scheduled_for = as_utc(scheduled_for)
        if scheduled_for <= utcnow():
            raise ValidationFailedError("Scheduled time must be in the future")
        movement.scheduled_for = scheduled_for
        return await self.movements.save(movement)

    # PUBLIC_INTERFACE
    async def generate_movement_report(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> MovementReport:
        """Counts by status and type over a window (default: the last 30 days)."""
        end = as_utc(end) or utcnow()
        start = as_utc(start) or end - timedelta(days=30)
        rows = [
            m for m in await self.movements.list(limit=None) if start <= (m.completed_at or m.requested_at) <= end
        ]
        by_status = Counter(m.status for m in rows)
        by_type = Counter(m.type for m in rows)
        return MovementReport(
            generated_at=utcnow(),
            period={"start": start, "end": end},
            total_movements=len(rows),
            by_status={s: by_status.get(s, 0) for s in MOVEMENT_STATUSES},
            by_type={t: by_type.get(t, 0) for t in MOVEMENT_TYPES},
        )


class EquipmentService(BaseService):
    """Yard handling equipment, operator assignment and maintenance."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.equipment = EquipmentRepository(session)
        self.locations = LocationRepository(session)

    async def _get(self, equipment_id: UUID) -> Equipment:
        return self.require(await self.equipment.get(equipment_id), "Equipment not found")

    async def get_equipment(
        self,
        *,
        type: Optional[str] = None,
        status: Optional[str] = None,
        location_id: Optional[UUID] = None,
        operator_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Equipment]:
        return await self.equipment.list(
            filters={"type": type, "status": status, "location_id": location_id, "operator_id": operator_id},
            search=search,
            limit=None,
        )

    async def get_equipment_by_id(self, equipment_id: UUID) -> Optional[Equipment]:
        return await self.equipment.get(equipment_id)

    # PUBLIC_INTERFACE
    async def create_equipment(self, payload: EquipmentCreate) -> Equipment:
        if payload.capacity <= 0:
            raise ValidationFailedError("Equipment capacity must be greater than zero")
        self.check_choice(payload.status, EQUIPMENT_STATUSES, "equipment status")
        return await self.equipment.create(Equipment(**payload.model_dump()))

    async def update_equipment(self, equipment_id: UUID, payload: EquipmentUpdate) -> Optional[Equipment]:
        item = await self.equipment.get(equipment_id)
        if item is None:
            return None
        patch = payload.model_dump(exclude_unset=True)
        if "capacity" in patch and (patch["capacity"] is None or patch["capacity"] <= 0):
            raise ValidationFailedError("Equipment capacity must be greater than zero")
        self.apply_patch(item, patch)
        self.check_choice(item.status, EQUIPMENT_STATUSES, "equipment status")
        return await self.equipment.save(item)

    async def delete_equipment(self, equipment_id: UUID) -> bool:
        item = await self.equipment.get(equipment_id)
        if item is None:
            return False
        if item.status == "in-use":
            raise ConflictError("Cannot delete equipment that is currently in use")
        await self.equipment.delete(item)
        return True

    # PUBLIC_INTERFACE
    async def assign_to_operator(self, equipment_id: UUID, operator_id: str) -> Equipment:
        item = await self._get(equipment_id)
        if item.status != "available":
            raise ConflictError(f"Equipment is not available. Current status: {item.status}")
        item.operator_id = operator_id
        item.status = "in-use"
        return await self.equipment.save(item)

    async def release(self, equipment_id: UUID) -> Equipment:
        item = await self._get(equipment_id)
        item.operator_id = None
        item.status = "available"
        return await self.equipment.save(item)

    # PUBLIC_INTERFACE
    async def schedule_maintenance(self, equipment_id: UUID, payload: MaintenanceRequest) -> Equipment:
        item = await self._get(equipment_id)
        if not payload.scheduled_date or not payload.type:
            raise ValidationFailedError("Maintenance scheduled date and type are required")
        entry = {
            "id": f"maint_{uuid.uuid4().hex[:12]}",
            "scheduled_date": payload.scheduled_date.isoformat(),
            "type": payload.type,
            "notes": payload.notes,
            "status": "scheduled",
            "created_at": utcnow().isoformat(),
        }
        item.maintenance_schedule = [*(item.maintenance_schedule or []), entry]
        if payload.immediate:
            item.status = "maintenance"
        return await self.equipment.save(item)

    # PUBLIC_INTERFACE
    async def complete_maintenance(
        self, equipment_id: UUID, maintenance_id: str, completed_by: Optional[str] = None, notes: str = ""
    ) -> Equipment:
        item = await self._get(equipment_id)
        schedule = [dict(m) for m in item.maintenance_schedule or []]
        for entry in schedule:
            if entry.get("id") == maintenance_id:
                entry.update(
                    status="completed",
                    completed_by=completed_by,
                    completed_at=utcnow().isoformat(),
                    notes=f"{entry['notes']}\n{notes}" if entry.get("notes") and notes else (entry.get("notes") or notes),
                )
                break
        else:
            raise NotFoundError("Maintenance record not found")
        item.maintenance_schedule = schedule
        item.last_maintenance_date = date.today()
        item.status = "available"
        return await self.equipment.save(item)

    # PUBLIC_INTERFACE
    async def record_position(self, equipment_id: UUID, payload: EquipmentPositionUpdate) -> Equipment:
        """Store the latest position report; a location_id also moves the equipment to that location."""
        item = await self._get(equipment_id)
        if payload.location_id is not None:
            self.require(await self.locations.get(payload.location_id), "Location not found")
            item.location_id = payload.location_id
        item.position = {
            "coordinates": payload.coordinates or {},
            "speed": payload.speed,
            "direction": payload.direction,
            "recorded_at": utcnow().isoformat(),
        }
        return await self.equipment.save(item)

    # PUBLIC_INTERFACE
    async def track_equipment_location(self, equipment_id: UUID) -> EquipmentLocation:
        """
        Where the equipment is now: its last position report, falling back to
        the coordinates of its assigned location when nothing was reported.
        """
        item = await self._get(equipment_id)
        location = await self.locations.get(item.location_id) if item.location_id else None
        position = item.position or {}
        speed = float(position.get("speed") or 0)
        recorded_at = position.get("recorded_at")
        return EquipmentLocation(
            equipment_id=item.id,
            timestamp=datetime.fromisoformat(recorded_at) if recorded_at else item.updated_at,
            location=EquipmentPlace(
                location_id=item.location_id,
                location_name=location.name if location else "",
                coordinates=position.get("coordinates") or (location.coordinates if location else None) or {},
            ),
            speed=speed,
            direction=position.get("direction"),
            status="moving" if speed > 0 else "stationary",
        )

    async def get_available_equipment(
        self, type: Optional[str] = None, min_capacity: Optional[float] = None
    ) -> List[Equipment]:
        rows = await self.equipment.list(filters={"status": "available", "type": type}, limit=None)
        if min_capacity is not None:
            rows = [e for e in rows if (e.capacity or 0) >= min_capacity]
        return rows

    # PUBLIC_INTERFACE
    async def generate_utilization_report(self) -> UtilizationReport:
        rows = await self.equipment.list(limit=None)
        counts = Counter(e.status for e in rows)
        total = len(rows)
        return UtilizationReport(
            generated_at=utcnow(),
            total_equipment=total,
            by_status={s: counts.get(s, 0) for s in EQUIPMENT_STATUSES},
            utilization_rate=round(counts.get("in-use", 0) / total * 100, 2) if total else 0.0,
            total_usage_hours=sum(e.usage_hours or 0 for e in rows),
        )


class YardPieceService(BaseService):
    """Finished pieces staged in the yard and released for shipping."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.pieces = PieceRepository(session)
        self.locations = LocationRepository(session)

    # PUBLIC_INTERFACE
    async def mark_piece_ready_for_shipping(self, piece_id: UUID, payload: ReadyForShippingRequest) -> Piece:
        """
        Release a QC-approved or yard-stored piece for shipping, optionally
        recording where it is staged and when it is due to ship.
        """
        piece = self.require(await self.pieces.get(piece_id), "Piece not found")
        if piece.status not in SHIPPABLE_PIECE_STATUSES:
            raise ConflictError(f"Piece {piece.piece_number} cannot be shipped from status {piece.status}")
        if payload.location_id is not None:
            self.require(await self.locations.get(payload.location_id), "Location not found")
            piece.yard_location_id = payload.location_id
        if payload.scheduled_ship_date is not None:
            piece.scheduled_ship_date = payload.scheduled_ship_date
        if payload.notes:
            piece.shipping_notes = payload.notes
        piece.status = "READY_FOR_SHIPPING"
        piece.ready_for_shipping_at = piece.ready_for_shipping_at or utcnow()
        logger.info("Piece %s ready for shipping", piece.piece_number)
        return await self.pieces.save(piece)

    # PUBLIC_INTERFACE
    async def get_pieces_ready_for_shipping(
        self, *, job_id: Optional[UUID] = None, scheduled_date: Optional[date] = None
    ) -> List[Piece]:
        return await self.pieces.list(
            filters={"status": "READY_FOR_SHIPPING", "job_id": job_id, "scheduled_ship_date": scheduled_date},
            limit=None,
        )
