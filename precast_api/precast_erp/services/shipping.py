from __future__ import annotations

import logging
import math
from collections import Counter
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.api.exports import render_pdf
from precast_erp.core.errors import ConflictError, NotFoundError, ValidationFailedError
from precast_erp.core.settings import get_app_settings
from precast_erp.db.base import as_utc, utcnow
from precast_erp.db.models.quality import Piece
from precast_erp.db.models.shipping import (
    DELIVERY_STATUSES,
    DISPATCH_PRIORITIES,
    DISPATCH_STATUSES,
    DRIVER_STATUSES,
    SHIPMENT_STATUSES,
    VEHICLE_STATUSES,
    Delivery,
    DeliveryStatusEvent,
    Dispatch,
    Driver,
    LoadPlan,
    Shipment,
    Vehicle,
)
from precast_erp.repositories.quality import PieceRepository
from precast_erp.repositories.shipping import (
    DeliveryEventRepository,
    DeliveryRepository,
    DispatchRepository,
    DriverRepository,
    LoadPlanRepository,
    ShipmentRepository,
    VehicleRepository,
)
from precast_erp.schemas.shipping import (
    DeliveryCreate,
    DeliveryStatusUpdate,
    DispatchAnalytics,
    DispatchCreate,
    DispatchUpdate,
    DriverCreate,
    DriverUpdate,
    LoadPlanCreate,
    Paperwork,
    RouteRead,
    ShipmentCreate,
    ShipmentUpdate,
    TrackingUpdate,
    VehicleCreate,
    VehicleUpdate,
)
from precast_erp.services.base import BaseService

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
# Shipments in these states keep their driver and vehicle.
ACTIVE_SHIPMENT_STATUSES = ("PLANNED", "IN_PROGRESS")


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def _piece_summary(piece: Piece) -> dict:
    return {
        "id": str(piece.id),
        "piece_number": piece.piece_number,
        "piece_type": piece.piece_type,
        "weight": piece.weight or 0,
        "volume": piece.volume or 0,
        "status": piece.status,
    }


class ShippingService(BaseService):
    """Shipments of precast pieces, their deliveries, drivers and vehicles."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.shipments = ShipmentRepository(session)
        self.deliveries = DeliveryRepository(session)
        self.events = DeliveryEventRepository(session)
        self.drivers = DriverRepository(session)
        self.vehicles = VehicleRepository(session)
        self.load_plans = LoadPlanRepository(session)
        self.pieces = PieceRepository(session)

    async def _get(self, shipment_id: UUID) -> Shipment:
        return self.require(await self.shipments.get(shipment_id), "Shipment not found")

    async def _pieces(self, piece_ids: List[str]) -> List[Piece]:
        pieces = []
        for piece_id in piece_ids:
            piece = await self.pieces.get(UUID(str(piece_id)))
            if piece is None:
                raise NotFoundError(f"Piece with ID {piece_id} not found")
            pieces.append(piece)
        return pieces

    # Shipments

    async def get_shipments(
        self,
        *,
        status: Optional[str] = None,
        project_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[Shipment]:
        where = []
        if start_date:
            where.append(Shipment.scheduled_date >= start_date)
        if end_date:
            where.append(Shipment.scheduled_date <= end_date)
        return await self.shipments.list(
            filters={"status": status, "project_id": project_id},
            search=search,
            where=where,
            limit=limit,
            offset=offset,
        )

    async def get_shipment_by_id(self, shipment_id: UUID) -> Optional[Shipment]:
        return await self.shipments.get(shipment_id)

    # PUBLIC_INTERFACE
    async def create_shipment(self, payload: ShipmentCreate) -> Shipment:
        """Create a PLANNED shipment numbered SHP-YYMM-NNNN; every listed piece must exist."""
        piece_ids = [str(p) for p in payload.piece_ids]
        await self._pieces(piece_ids)
        shipment = Shipment(
            **payload.model_dump(exclude={"piece_ids"}),
            piece_ids=piece_ids,
            shipment_number=await self.next_number(Shipment.shipment_number, f"SHP-{self.month_tag()}-"),
        )
        created = await self.shipments.create(shipment)
        logger.info("Shipment %s planned with %d pieces", created.shipment_number, len(piece_ids))
        return created

    async def update_shipment(self, shipment_id: UUID, payload: ShipmentUpdate) -> Optional[Shipment]:
        shipment = await self.shipments.get(shipment_id)
        if shipment is None:
            return None
        patch = payload.model_dump(exclude_unset=True)
        self.check_choice(patch.get("status"), SHIPMENT_STATUSES, "shipment status")
        if patch.get("piece_ids") is not None:
            patch["piece_ids"] = [str(p) for p in patch["piece_ids"]]
            await self._pieces(patch["piece_ids"])
        previous = shipment.status
        self.apply_patch(shipment, patch)
        if shipment.status != previous and shipment.status not in ACTIVE_SHIPMENT_STATUSES:
            await self._release_resources(shipment)
        return await self.shipments.save(shipment)

    async def _release_resources(self, shipment: Shipment) -> None:
        if shipment.driver_id:
            driver = await self.drivers.get(shipment.driver_id)
            if driver is not None and driver.current_shipment_id == shipment.id:
                driver.status = "AVAILABLE"
                driver.current_shipment_id = None
                driver.current_vehicle_id = None
        if shipment.vehicle_id:
            vehicle = await self.vehicles.get(shipment.vehicle_id)
            if vehicle is not None and vehicle.current_shipment_id == shipment.id:
                vehicle.status = "AVAILABLE"
                vehicle.current_shipment_id = None

    # PUBLIC_INTERFACE
    async def assign_driver_and_vehicle(self, shipment_id: UUID, driver_id: UUID, vehicle_id: UUID) -> Shipment:
        shipment = await self._get(shipment_id)
        if shipment.status not in ACTIVE_SHIPMENT_STATUSES:
            raise ConflictError(f"Cannot assign resources to a {shipment.status} shipment")
        driver = self.require(await self.drivers.get(driver_id), "Driver not found")
        vehicle = self.require(await self.vehicles.get(vehicle_id), "Vehicle not found")
        if driver.status != "AVAILABLE" and driver.current_shipment_id != shipment.id:
            raise ConflictError("Driver is not available")
        if vehicle.status != "AVAILABLE" and vehicle.current_shipment_id != shipment.id:
            raise ConflictError("Vehicle is not available")

        if shipment.driver_id != driver.id or shipment.vehicle_id != vehicle.id:
            await self._release_resources(shipment)
        driver.status = "ASSIGNED"
        driver.current_vehicle_id = vehicle.id
        driver.current_shipment_id = shipment.id
        vehicle.status = "ASSIGNED"
        vehicle.current_shipment_id = shipment.id
        shipment.driver_id = driver.id
        shipment.vehicle_id = vehicle.id
        return await self.shipments.save(shipment)

    # PUBLIC_INTERFACE
    async def mark_pieces_shipped(self, shipment_id: UUID, piece_ids: Optional[List[UUID]] = None) -> Shipment:
        """Mark pieces (default: all on the shipment) SHIPPED and start the shipment."""
        shipment = await self._get(shipment_id)
        if shipment.status not in ACTIVE_SHIPMENT_STATUSES:
            raise ConflictError(f"Cannot ship pieces for a {shipment.status} shipment")
        ids = [str(p) for p in piece_ids] if piece_ids else list(shipment.piece_ids or [])
        foreign = [p for p in ids if p not in (shipment.piece_ids or [])]
        if foreign:
            raise ValidationFailedError(f"Pieces not on this shipment: {', '.join(foreign)}")
        for piece in await self._pieces(ids):
            piece.status = "SHIPPED"
        shipment.status = "IN_PROGRESS"
        shipment.actual_date = shipment.actual_date or utcnow()
        return await self.shipments.save(shipment)

    # PUBLIC_INTERFACE
    async def generate_driver_paperwork(self, shipment_id: UUID, generated_by: Optional[str] = None) -> Paperwork:
        shipment = await self._get(shipment_id)
        pieces = await self._pieces(list(shipment.piece_ids or []))
        if any(p.status != "SHIPPED" for p in pieces):
            raise ValidationFailedError("Cannot generate paperwork: All pieces must be marked as shipped first")
        driver = await self.drivers.get(shipment.driver_id) if shipment.driver_id else None
        vehicle = await self.vehicles.get(shipment.vehicle_id) if shipment.vehicle_id else None

        now = utcnow()
        shipment.paperwork_generated = True
        shipment.paperwork_generated_by = generated_by
        shipment.paperwork_generated_date = now
        await self.shipments.save(shipment)
        return Paperwork(
            shipment_number=shipment.shipment_number,
            generated_at=now,
            generated_by=generated_by,
            project_name=shipment.project_name,
            destination=shipment.destination or {},
            driver={"name": driver.name, "license_number": driver.license_number} if driver else None,
            vehicle={"type": vehicle.type, "license_plate": vehicle.license_plate} if vehicle else None,
            pieces=[_piece_summary(p) for p in pieces],
            total_weight=sum(p.weight or 0 for p in pieces),
            special_instructions=shipment.special_instructions,
        )

    async def paperwork_pdf(self, shipment_id: UUID, generated_by: Optional[str] = None) -> bytes:
        paperwork = await self.generate_driver_paperwork(shipment_id, generated_by)
        address = paperwork.destination.get("address", "")
        lines = [
            f"Project: {paperwork.project_name}",
            f"Destination: {address}",
            f"Driver: {paperwork.driver['name'] if paperwork.driver else '-'}"
            f"   Vehicle: {paperwork.vehicle['license_plate'] if paperwork.vehicle else '-'}",
            f"Total weight: {paperwork.total_weight:g}",
        ]
        if paperwork.special_instructions:
            lines.append(f"Instructions: {paperwork.special_instructions}")
        df = pd.DataFrame(paperwork.pieces, columns=["piece_number", "piece_type", "weight", "volume"])
        return render_pdf(f"Bill of lading {paperwork.shipment_number}", df, lines)

    # PUBLIC_INTERFACE
    async def create_load_plan(self, shipment_id: UUID, payload: LoadPlanCreate) -> LoadPlan:
        """
        Plan the load for a shipment. Without an explicit sequence the heaviest
        pieces load first. The total weight must fit the vehicle's weight capacity.
        """
        shipment = await self._get(shipment_id)
        pieces = await self._pieces(list(shipment.piece_ids or []))
        by_id = {str(p.id): p for p in pieces}
        if payload.loading_sequence is not None:
            sequence = [str(p) for p in payload.loading_sequence]
            unknown = [p for p in sequence if p not in by_id]
            if unknown:
                raise ValidationFailedError(f"Loading sequence contains pieces not on the shipment: {', '.join(unknown)}")
        else:
            sequence = [str(p.id) for p in sorted(pieces, key=lambda p: (-(p.weight or 0), p.piece_number))]

        total_weight = sum(p.weight or 0 for p in pieces)
        vehicle_id = payload.vehicle_id or shipment.vehicle_id
        if vehicle_id is not None:
            vehicle = self.require(await self.vehicles.get(vehicle_id), "Vehicle not found")
            capacity = float((vehicle.capacity or {}).get("weight") or 0)
            if capacity and total_weight > capacity:
                raise ValidationFailedError(f"Load weight {total_weight:g} exceeds vehicle capacity {capacity:g}")

        plan = LoadPlan(
            shipment_id=shipment.id,
            vehicle_id=vehicle_id,
            pieces=[_piece_summary(p) for p in pieces],
            loading_sequence=sequence,
            loading_instructions=payload.loading_instructions,
            total_weight=total_weight,
            created_by=payload.created_by,
        )
        return await self.load_plans.create(plan)

    async def get_load_plan(self, shipment_id: UUID) -> Optional[LoadPlan]:
        return await self.load_plans.latest_for_shipment(shipment_id)

    # PUBLIC_INTERFACE
    async def generate_route(self, shipment_id: UUID) -> RouteRead:
        """
        Direct route from the plant to the shipment destination. Distance and
        duration are estimated when both ends have coordinates.
        """
        shipment = await self._get(shipment_id)
        settings = get_app_settings()
        origin = {"name": settings.PLANT_NAME, "latitude": settings.PLANT_LATITUDE, "longitude": settings.PLANT_LONGITUDE}
        destination = dict(shipment.destination or {})
        distance = duration = None
        if None not in (origin["latitude"], origin["longitude"]) and {"latitude", "longitude"} <= destination.keys():
            distance = round(
                haversine_km(
                    origin["latitude"],
                    origin["longitude"],
                    float(destination["latitude"]),
                    float(destination["longitude"]),
                ),
                1,
            )
            duration = round(distance / settings.TRUCK_SPEED_KMH * 60)
        route = RouteRead(
            origin=origin,
            destination=destination,
            waypoints=[],
            estimated_distance=distance,
            estimated_duration=duration,
        )
        shipment.route = route.model_dump()
        await self.shipments.save(shipment)
        return route

    # PUBLIC_INTERFACE
    async def complete_shipment(self, shipment_id: UUID) -> Shipment:
        shipment = await self._get(shipment_id)
        if shipment.status == "CANCELLED":
            raise ConflictError("Cannot complete a cancelled shipment")
        if shipment.status == "COMPLETED":
            raise ConflictError("Shipment has already been completed")
        shipment.status = "COMPLETED"
        shipment.actual_date = shipment.actual_date or utcnow()
        await self._release_resources(shipment)
        return await self.shipments.save(shipment)

    # Deliveries

    async def get_deliveries(
        self, *, shipment_id: Optional[UUID] = None, status: Optional[str] = None
    ) -> List[Delivery]:
        return await self.deliveries.list(filters={"shipment_id": shipment_id, "status": status}, limit=None)

    async def get_delivery_by_id(self, delivery_id: UUID) -> Optional[Delivery]:
        return await self.deliveries.get(delivery_id)

    async def create_delivery(self, payload: DeliveryCreate) -> Delivery:
        shipment = await self._get(payload.shipment_id)
        delivery = Delivery(**payload.model_dump(exclude={"scheduled_date"}))
        delivery.scheduled_date = payload.scheduled_date or shipment.scheduled_date
        await self.deliveries.add(delivery)
        await self.deliveries.flush()
        await self.events.add(DeliveryStatusEvent(delivery_id=delivery.id, status=delivery.status))
        await self.deliveries.commit()
        return delivery

    # PUBLIC_INTERFACE
    async def update_delivery_status(self, delivery_id: UUID, payload: DeliveryStatusUpdate) -> Delivery:
        """Record a delivery status event. DELIVERED completes the shipment."""
        delivery = self.require(await self.deliveries.get(delivery_id), "Delivery not found")
        self.check_choice(payload.status, DELIVERY_STATUSES, "delivery status")
        if delivery.status == "DELIVERED":
            raise ConflictError("Delivery has already been completed")

        delivery.status = payload.status
        if payload.notes:
            delivery.notes = f"{delivery.notes}\n{payload.notes}".strip()
        if payload.issue:
            delivery.issues = [*(delivery.issues or []), {"description": payload.issue, "reported_at": utcnow().isoformat()}]
        await self.events.add(
            DeliveryStatusEvent(
                delivery_id=delivery.id,
                status=payload.status,
                location=payload.location,
                notes=payload.notes,
                updated_by=payload.updated_by,
            )
        )

        shipment = await self.shipments.get(delivery.shipment_id)
        if payload.status == "DELIVERED":
            delivery.actual_delivery_date = utcnow()
            delivery.recipient_signature = payload.recipient_signature
            if shipment is not None and shipment.status != "CANCELLED":
                shipment.status = "COMPLETED"
                shipment.actual_date = shipment.actual_date or delivery.actual_delivery_date
                await self._release_resources(shipment)
        elif payload.status == "IN_TRANSIT" and shipment is not None and shipment.status == "PLANNED":
            shipment.status = "IN_PROGRESS"
        return await self.deliveries.save(delivery)

    async def get_delivery_history(self, delivery_id: UUID) -> List[DeliveryStatusEvent]:
        self.require(await self.deliveries.get(delivery_id), "Delivery not found")
        return await self.events.history(delivery_id)

    # Drivers and vehicles

    async def get_drivers(self, *, status: Optional[str] = None, search: Optional[str] = None) -> List[Driver]:
        return await self.drivers.list(filters={"status": status}, search=search, limit=None)

    async def get_driver_by_id(self, driver_id: UUID) -> Optional[Driver]:
        return await self.drivers.get(driver_id)

    async def create_driver(self, payload: DriverCreate) -> Driver:
        self.check_choice(payload.status, DRIVER_STATUSES, "driver status")
        return await self.drivers.create(Driver(**payload.model_dump()))

    async def update_driver(self, driver_id: UUID, payload: DriverUpdate) -> Optional[Driver]:
        driver = await self.drivers.get(driver_id)
        if driver is None:
            return None
        self.apply_patch(driver, payload.model_dump(exclude_unset=True))
        self.check_choice(driver.status, DRIVER_STATUSES, "driver status")
        return await self.drivers.save(driver)

    async def get_available_drivers(self, on: Optional[date] = None) -> List[Driver]:
        """AVAILABLE drivers whose licence is still valid on `on` (default today)."""
        on = on or date.today()
        rows = await self.drivers.list(filters={"status": "AVAILABLE"}, limit=None)
        return [d for d in rows if d.license_expiration is None or d.license_expiration >= on]

    async def get_vehicles(
        self, *, status: Optional[str] = None, type: Optional[str] = None, search: Optional[str] = None
    ) -> List[Vehicle]:
        return await self.vehicles.list(filters={"status": status, "type": type}, search=search, limit=None)

    async def get_vehicle_by_id(self, vehicle_id: UUID) -> Optional[Vehicle]:
        return await self.vehicles.get(vehicle_id)

    async def create_vehicle(self, payload: VehicleCreate) -> Vehicle:
        self.check_choice(payload.status, VEHICLE_STATUSES, "vehicle status")
        if await self.vehicles.list(filters={"license_plate": payload.license_plate}, limit=1):
            raise ConflictError(f"Vehicle with license plate {payload.license_plate} already exists")
        return await self.vehicles.create(Vehicle(**payload.model_dump()))

    async def update_vehicle(self, vehicle_id: UUID, payload: VehicleUpdate) -> Optional[Vehicle]:
        vehicle = await self.vehicles.get(vehicle_id)
        if vehicle is None:
            return None
        self.apply_patch(vehicle, payload.model_dump(exclude_unset=True))
        self.check_choice(vehicle.status, VEHICLE_STATUSES, "vehicle status")
        return await self.vehicles.save(vehicle)

    async def get_available_vehicles(
        self, type: Optional[str] = None, min_weight: Optional[float] = None
    ) -> List[Vehicle]:
        rows = await self.vehicles.list(filters={"status": "AVAILABLE", "type": type}, limit=None)
        if min_weight is not None:
            rows = [v for v in rows if float((v.capacity or {}).get("weight") or 0) >= min_weight]
        return rows


class DispatchService(BaseService):
    """
    Dispatch orders.

    Each dispatch keeps an append-only list of tracking updates. Delivery and
    cancellation are terminal.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.dispatches = DispatchRepository(session)

    async def _get(self, dispatch_id: UUID) -> Dispatch:
        return self.require(await self.dispatches.get(dispatch_id), "Dispatch not found")

    @staticmethod
    def _track(dispatch: Dispatch, **update) -> None:
        entry = {**update, "timestamp": utcnow().isoformat()}
        dispatch.tracking_updates = [*(dispatch.tracking_updates or []), entry]

    async def get_dispatches(
        self,
        *,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        project_id: Optional[UUID] = None,
        search: Optional[str] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[Dispatch]:
        return await self.dispatches.list(
            filters={"status": status, "priority": priority, "project_id": project_id},
            search=search,
            limit=limit,
            offset=offset,
        )

    async def get_dispatch_by_id(self, dispatch_id: UUID) -> Optional[Dispatch]:
        return await self.dispatches.get(dispatch_id)

    # PUBLIC_INTERFACE
    async def create_dispatch(self, payload: DispatchCreate) -> Dispatch:
        self.check_choice(payload.status, DISPATCH_STATUSES, "dispatch status")
        self.check_choice(payload.priority, DISPATCH_PRIORITIES, "dispatch priority")
        dispatch = Dispatch(
            **payload.model_dump(exclude={"scheduled_date"}),
            scheduled_date=as_utc(payload.scheduled_date),
            dispatch_number=await self.next_number(Dispatch.dispatch_number, f"DSP-{self.month_tag()}-"),
        )
        return await self.dispatches.create(dispatch)

    async def update_dispatch(self, dispatch_id: UUID, payload: DispatchUpdate) -> Optional[Dispatch]:
        dispatch = await self.dispatches.get(dispatch_id)
        if dispatch is None:
            return None
        patch = payload.model_dump(exclude_unset=True)
        self.check_choice(patch.get("status"), DISPATCH_STATUSES, "dispatch status")
        self.check_choice(patch.get("priority"), DISPATCH_PRIORITIES, "dispatch priority")
        if "scheduled_date" in patch:
            patch["scheduled_date"] = as_utc(patch["scheduled_date"])
        self.apply_patch(dispatch, patch)
        return await self.dispatches.save(dispatch)

    async def delete_dispatch(self, dispatch_id: UUID) -> bool:
        dispatch = await self.dispatches.get(dispatch_id)
        if dispatch is None:
            return False
        await self.dispatches.delete(dispatch)
        return True

    # PUBLIC_INTERFACE
    async def add_tracking_update(self, dispatch_id: UUID, update: TrackingUpdate) -> Dispatch:
        dispatch = await self._get(dispatch_id)
        if dispatch.status in ("delivered", "cancelled"):
            raise ConflictError(f"Cannot track a {dispatch.status} dispatch")
        self.check_choice(update.status, DISPATCH_STATUSES, "dispatch status")
        self._track(dispatch, **update.model_dump())
        if update.status:
            dispatch.status = update.status
        return await self.dispatches.save(dispatch)

    # PUBLIC_INTERFACE
    async def mark_delivered(self, dispatch_id: UUID, signed_by: Optional[str] = None, notes: str = "") -> Dispatch:
        dispatch = await self._get(dispatch_id)
        if dispatch.status == "delivered":
            raise ConflictError("Dispatch is already delivered")
        if dispatch.status == "cancelled":
            raise ConflictError("Cannot deliver a cancelled dispatch")
        now = utcnow()
        dispatch.status = "delivered"
        dispatch.actual_date = now
        dispatch.signed_by = signed_by
        dispatch.signature_date = now
        self._track(
            dispatch,
            status="delivered",
            location=dispatch.delivery_address,
            notes=notes or f"Delivered and signed by {signed_by or 'recipient'}",
        )
        return await self.dispatches.save(dispatch)

    # PUBLIC_INTERFACE
    async def cancel_dispatch(self, dispatch_id: UUID, reason: str = "") -> Dispatch:
        dispatch = await self._get(dispatch_id)
        if dispatch.status == "delivered":
            raise ConflictError("Cannot cancel a delivered dispatch")
        dispatch.status = "cancelled"
        dispatch.cancellation_reason = reason
        self._track(dispatch, status="cancelled", notes=reason)
        return await self.dispatches.save(dispatch)

    # PUBLIC_INTERFACE
    async def get_analytics(self, now: Optional[datetime] = None) -> DispatchAnalytics:
        """On-time rate counts delivered dispatches that arrived by their scheduled date."""
        now = now or utcnow()
        rows = await self.dispatches.list(limit=None)
        counts = Counter(d.status for d in rows)
        delivered = [d for d in rows if d.status == "delivered"]
        scheduled = [d for d in delivered if d.scheduled_date and d.actual_date]
        on_time = [d for d in scheduled if as_utc(d.actual_date) <= as_utc(d.scheduled_date)]
        return DispatchAnalytics(
            total=len(rows),
            by_status={s: counts.get(s, 0) for s in DISPATCH_STATUSES},
            on_time_rate=round(len(on_time) / len(scheduled) * 100, 2) if scheduled else 0.0,
            overdue=sum(1 for d in rows if d.is_overdue(now)),
            total_weight_delivered=sum(d.total_weight for d in delivered),
        )

    async def delivery_note_pdf(self, dispatch_id: UUID) -> bytes:
        dispatch = await self._get(dispatch_id)
        df = pd.DataFrame(dispatch.items or [], columns=["description", "quantity", "weight", "volume"])
        lines = [
            f"Deliver to: {dispatch.delivery_address}",
            f"Contact: {dispatch.contact_name} {dispatch.contact_phone}".rstrip(),
            f"Scheduled: {dispatch.scheduled_date:%Y-%m-%d %H:%M}" if dispatch.scheduled_date else "Scheduled: -",
            f"Total weight: {dispatch.total_weight:g}   Items: {dispatch.total_items}",
        ]
        if dispatch.special_instructions:
            lines.append(f"Instructions: {dispatch.special_instructions}")
        if dispatch.signature_required:
            lines.append("Received by: ______________________   Date: __________")
        return render_pdf(f"Delivery note {dispatch.dispatch_number}", df, lines)
