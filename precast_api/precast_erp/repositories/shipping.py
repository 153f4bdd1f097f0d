from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from precast_erp.db.models.shipping import (
    Delivery,
    DeliveryStatusEvent,
    Dispatch,
    Driver,
    LoadPlan,
    Shipment,
    Vehicle,
)
from .base import ModelRepository


class ShipmentRepository(ModelRepository[Shipment]):
    model = Shipment
    search_columns = ("shipment_number", "project_name", "special_instructions")


class DeliveryRepository(ModelRepository[Delivery]):
    model = Delivery


class DeliveryEventRepository(ModelRepository[DeliveryStatusEvent]):
    model = DeliveryStatusEvent
    default_order = ("timestamp",)

    async def history(self, delivery_id: UUID) -> List[DeliveryStatusEvent]:
        return await self.list(filters={"delivery_id": delivery_id}, limit=None)


class DriverRepository(ModelRepository[Driver]):
    model = Driver
    search_columns = ("name", "license_number", "email")
    default_order = ("name",)


class VehicleRepository(ModelRepository[Vehicle]):
    model = Vehicle
    search_columns = ("license_plate", "make", "model", "vin")
    default_order = ("license_plate",)


class LoadPlanRepository(ModelRepository[LoadPlan]):
    model = LoadPlan

    async def latest_for_shipment(self, shipment_id: UUID) -> Optional[LoadPlan]:
        rows = await self.list(filters={"shipment_id": shipment_id}, limit=1)
        return rows[0] if rows else None


class DispatchRepository(ModelRepository[Dispatch]):
    model = Dispatch
    search_columns = ("dispatch_number", "delivery_address", "contact_name", "notes")
