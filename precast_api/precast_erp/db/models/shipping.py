from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from precast_erp.db.base import Amount, Base, JSONType, TimestampMixin, UTCDateTime, UUIDPkMixin, utcnow

SHIPMENT_STATUSES = ("PLANNED", "IN_PROGRESS", "COMPLETED", "CANCELLED")
DELIVERY_STATUSES = ("SCHEDULED", "IN_TRANSIT", "DELIVERED", "FAILED")
DRIVER_STATUSES = ("AVAILABLE", "ASSIGNED", "OFF_DUTY", "ON_LEAVE")
VEHICLE_STATUSES = ("AVAILABLE", "ASSIGNED", "MAINTENANCE", "OUT_OF_SERVICE")
DISPATCH_STATUSES = ("pending", "scheduled", "in_transit", "delivered", "cancelled")
DISPATCH_PRIORITIES = ("low", "medium", "high", "urgent")


class Shipment(UUIDPkMixin, TimestampMixin, Base):
    """Truck load of pieces going to a job site."""
    __tablename__ = "shipments"

    shipment_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    project_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="PLANNED")
    scheduled_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    actual_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    destination: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    piece_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    driver_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    vehicle_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    special_instructions: Mapped[str] = mapped_column(Text, nullable=False, default="")
    route: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    paperwork_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    paperwork_generated_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    paperwork_generated_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Delivery(UUIDPkMixin, TimestampMixin, Base):
    """Delivery of a shipment to its recipient."""
    __tablename__ = "deliveries"

    shipment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(Text, nullable=False, default="SCHEDULED")
    scheduled_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    actual_delivery_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    recipient: Mapped[str] = mapped_column(Text, nullable=False, default="")
    recipient_signature: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    issues: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)


class DeliveryStatusEvent(UUIDPkMixin, TimestampMixin, Base):
    """Append-only delivery status history."""
    __tablename__ = "delivery_status_events"

    delivery_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("deliveries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    updated_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)


class Driver(UUIDPkMixin, TimestampMixin, Base):
    __tablename__ = "drivers"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    employee_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    license_number: Mapped[str] = mapped_column(Text, nullable=False)
    license_expiration: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    license_class: Mapped[str] = mapped_column(Text, nullable=False, default="")
    endorsements: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    phone_number: Mapped[str] = mapped_column(Text, nullable=False, default="")
    email: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="AVAILABLE")
    current_vehicle_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    current_shipment_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)


class Vehicle(UUIDPkMixin, TimestampMixin, Base):
    __tablename__ = "vehicles"

    type: Mapped[str] = mapped_column(Text, nullable=False)
    make: Mapped[str] = mapped_column(Text, nullable=False, default="")
    model: Mapped[str] = mapped_column(Text, nullable=False, default="")
    year: Mapped[Optional[int]] = mapped_column(nullable=True)
    license_plate: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    vin: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="AVAILABLE")
    current_shipment_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    capacity: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    next_maintenance_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)


class LoadPlan(UUIDPkMixin, TimestampMixin, Base):
    """Piece layout and loading order for one shipment."""
    __tablename__ = "load_plans"

    shipment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vehicle_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    pieces: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    loading_sequence: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    loading_instructions: Mapped[str] = mapped_column(Text, nullable=False, default="")
    total_weight: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Dispatch(UUIDPkMixin, TimestampMixin, Base):
    """Dispatch order with tracking history and proof of delivery."""
    __tablename__ = "dispatches"

    dispatch_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    priority: Mapped[str] = mapped_column(Text, nullable=False, default="medium")
    scheduled_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    actual_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    delivery_address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    contact_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    contact_phone: Mapped[str] = mapped_column(Text, nullable=False, default="")
    items: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    vehicles: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    drivers: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    special_instructions: Mapped[str] = mapped_column(Text, nullable=False, default="")
    signature_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    signed_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    signature_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    tracking_updates: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    custom_fields: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    @property
    def total_weight(self) -> float:
        return sum(float(i.get("weight") or 0) * float(i.get("quantity") or 1) for i in self.items or [])

    @property
    def total_volume(self) -> float:
        return sum(float(i.get("volume") or 0) * float(i.get("quantity") or 1) for i in self.items or [])

    @property
    def total_items(self) -> int:
        return int(sum(float(i.get("quantity") or 0) for i in self.items or []))

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        if self.scheduled_date is None or self.status in ("delivered", "cancelled"):
            return False
        return self.scheduled_date < (now or utcnow())
