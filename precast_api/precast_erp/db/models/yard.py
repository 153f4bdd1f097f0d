from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy import Date, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from precast_erp.db.base import Amount, Base, JSONType, TimestampMixin, UTCDateTime, UUIDPkMixin, utcnow

MATERIAL_STATUSES = ("available", "allocated", "reserved", "depleted")
LOCATION_STATUSES = ("active", "maintenance", "reserved", "full")
MOVEMENT_TYPES = ("transfer", "receive", "ship", "return")
MOVEMENT_STATUSES = ("pending", "in-progress", "completed", "cancelled")
MOVEMENT_TRANSITIONS = {
    "pending": ("in-progress", "cancelled"),
    "in-progress": ("completed", "cancelled"),
    "completed": (),
    "cancelled": (),
}
EQUIPMENT_STATUSES = ("available", "in-use", "maintenance", "out-of-service")

# Occupancy (%) at which a location is flagged full.
FULL_OCCUPANCY = 95.0


class YardLocation(UUIDPkMixin, TimestampMixin, Base):
    """Storage zone, row or bay in the yard; locations nest via parent_id."""
    __tablename__ = "yard_locations"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("yard_locations.id"), nullable=True, index=True
    )
    capacity: Mapped[float] = mapped_column(Amount, nullable=False, default=100)
    capacity_unit: Mapped[str] = mapped_column(Text, nullable=False, default="items")
    dimensions: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    coordinates: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    occupancy: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    properties: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    def update_occupancy(self, material_count: int) -> float:
        capacity = float(self.capacity or 0)
        self.occupancy = round(material_count / capacity * 100, 2) if capacity > 0 else 0.0
        # maintenance and reserved are set by hand and survive occupancy changes
        if self.status in ("active", "full"):
            self.status = "full" if self.occupancy >= FULL_OCCUPANCY else "active"
        return self.occupancy

    @property
    def can_accommodate(self) -> bool:
        return self.status not in ("full", "maintenance")


class Material(UUIDPkMixin, TimestampMixin, Base):
    """Stock of raw material or finished pieces stored in the yard."""
    __tablename__ = "yard_materials"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    quantity: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    unit: Mapped[str] = mapped_column(Text, nullable=False)
    location_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("yard_locations.id"), nullable=True, index=True
    )
    status: Mapped[str] = mapped_column(Text, nullable=False, default="available")
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    batch_number: Mapped[str] = mapped_column(Text, nullable=False, default="")
    supplier: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cost: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    properties: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    def update_quantity(self, quantity: float) -> "Material":
        self.quantity = quantity
        if quantity <= 0:
            self.status = "depleted"
        elif self.status == "depleted":
            self.status = "available"
        return self

    def allocate_to_project(self, project_id: uuid.UUID, quantity: float) -> "Material":
        if quantity > float(self.quantity or 0):
            raise ValueError("Cannot allocate more than available quantity")
        self.project_id = project_id
        self.status = "allocated"
        return self

    def add_tags(self, tags: Iterable[str]) -> "Material":
        merged = list(self.tags or [])
        for tag in tags:
            if tag not in merged:
                merged.append(tag)
        self.tags = merged
        return self


class Movement(UUIDPkMixin, TimestampMixin, Base):
    """Request to move material between locations."""
    __tablename__ = "yard_movements"

    material_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("yard_materials.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity: Mapped[float] = mapped_column(Amount, nullable=False)
    from_location_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    to_location_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    type: Mapped[str] = mapped_column(Text, nullable=False, default="transfer")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    requested_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    requested_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    scheduled_for: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    completed_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    equipment_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    operator_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    properties: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)


class Equipment(UUIDPkMixin, TimestampMixin, Base):
    """Yard handling equipment (forklifts, gantry cranes, straddle carriers)."""
    __tablename__ = "yard_equipment"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    model: Mapped[str] = mapped_column(Text, nullable=False, default="")
    serial_number: Mapped[str] = mapped_column(Text, nullable=False, default="")
    capacity: Mapped[float] = mapped_column(Amount, nullable=False)
    capacity_unit: Mapped[str] = mapped_column(Text, nullable=False, default="kg")
    location_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="available")
    operator_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    maintenance_schedule: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    last_maintenance_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    usage_hours: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    properties: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    # last reported {coordinates, speed, direction, recorded_at}
    position: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
