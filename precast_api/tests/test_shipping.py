from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from precast_erp.core.errors import ConflictError, NotFoundError, ValidationFailedError
from precast_erp.schemas.quality import PieceCreate
from precast_erp.schemas.shipping import (
    DeliveryCreate,
    DeliveryStatusUpdate,
    DispatchCreate,
    DispatchItem,
    DriverCreate,
    LoadPlanCreate,
    ShipmentCreate,
    ShipmentUpdate,
    TrackingUpdate,
    VehicleCreate,
)
from precast_erp.services.quality import QualityService
from precast_erp.services.shipping import DispatchService, ShippingService, haversine_km


def test_haversine():
    assert haversine_km(0, 0, 0, 0) == 0
    assert haversine_km(0, 0, 0, 1) == pytest.approx(111.19, abs=0.01)


@pytest.fixture
async def pieces(session):
    quality = QualityService(session)
    return [
        await quality.create_piece(PieceCreate(piece_number="P-1", weight=8000)),
        await quality.create_piece(PieceCreate(piece_number="P-2", weight=12000)),
    ]


@pytest.fixture
async def shipment(session, pieces):
    return await ShippingService(session).create_shipment(
        ShipmentCreate(
            project_name="Garage",
            destination={"address": "1 Site Rd", "latitude": 0, "longitude": 1},
            piece_ids=[p.id for p in pieces],
        )
    )


async def _resources(service: ShippingService, weight_capacity: float = 30000):
    driver = await service.create_driver(DriverCreate(name="Sam", license_number="CDL-1"))
    vehicle = await service.create_vehicle(
        VehicleCreate(type="flatbed", license_plate="TRK-1", capacity={"weight": weight_capacity})
    )
    return driver, vehicle


async def test_create_shipment_requires_existing_pieces(session, shipment):
    assert shipment.status == "PLANNED"
    assert shipment.shipment_number.startswith("SHP-")
    with pytest.raises(NotFoundError, match="not found"):
        await ShippingService(session).create_shipment(ShipmentCreate(piece_ids=[shipment.id]))


async def test_assign_and_release_resources(session, shipment):
    service = ShippingService(session)
    driver, vehicle = await _resources(service)

    shipment = await service.assign_driver_and_vehicle(shipment.id, driver.id, vehicle.id)
    assert (driver.status, vehicle.status) == ("ASSIGNED", "ASSIGNED")
    assert driver.current_shipment_id == shipment.id

    other = await service.create_shipment(ShipmentCreate(project_name="Other"))
    with pytest.raises(ConflictError, match="Driver is not available"):
        await service.assign_driver_and_vehicle(other.id, driver.id, vehicle.id)

    await service.complete_shipment(shipment.id)
    assert (driver.status, vehicle.status) == ("AVAILABLE", "AVAILABLE")
    assert driver.current_shipment_id is None


async def test_paperwork_requires_shipped_pieces(session, shipment, pieces):
    service = ShippingService(session)
    with pytest.raises(ValidationFailedError, match="must be marked as shipped"):
        await service.generate_driver_paperwork(shipment.id)

    shipment = await service.mark_pieces_shipped(shipment.id)
    assert shipment.status == "IN_PROGRESS"
    assert {p.status for p in pieces} == {"SHIPPED"}

    paperwork = await service.generate_driver_paperwork(shipment.id, generated_by="dispatcher")
    assert paperwork.total_weight == 20000
    assert [p["piece_number"] for p in paperwork.pieces] == ["P-1", "P-2"]
    assert shipment.paperwork_generated is True

    pdf = await service.paperwork_pdf(shipment.id)
    assert pdf.startswith(b"%PDF")


async def test_load_plan_heaviest_first_and_capacity(session, shipment, pieces):
    service = ShippingService(session)
    plan = await service.create_load_plan(shipment.id, LoadPlanCreate())
    assert plan.loading_sequence == [str(pieces[1].id), str(pieces[0].id)]
    assert plan.total_weight == 20000

    _, small = await _resources(service, weight_capacity=15000)
    with pytest.raises(ValidationFailedError, match="exceeds vehicle capacity"):
        await service.create_load_plan(shipment.id, LoadPlanCreate(vehicle_id=small.id))


async def test_route_from_plant(session, shipment, monkeypatch):
    monkeypatch.setenv("PLANT_LATITUDE", "0")
    monkeypatch.setenv("PLANT_LONGITUDE", "0")
    monkeypatch.setenv("TRUCK_SPEED_KMH", "60")
    route = await ShippingService(session).generate_route(shipment.id)
    assert route.estimated_distance == pytest.approx(111.2)
    assert route.estimated_duration == 111
    assert shipment.route["estimated_distance"] == route.estimated_distance


async def test_route_without_plant_coordinates(session, shipment, monkeypatch):
    monkeypatch.delenv("PLANT_LATITUDE", raising=False)
    route = await ShippingService(session).generate_route(shipment.id)
    assert route.estimated_distance is None
    assert route.estimated_duration is None


async def test_delivery_completes_shipment(session, shipment):
    service = ShippingService(session)
    delivery = await service.create_delivery(DeliveryCreate(shipment_id=shipment.id, recipient="Site foreman"))
    assert delivery.status == "SCHEDULED"

    await service.update_delivery_status(delivery.id, DeliveryStatusUpdate(status="IN_TRANSIT"))
    assert shipment.status == "IN_PROGRESS"

    delivery = await service.update_delivery_status(
        delivery.id, DeliveryStatusUpdate(status="DELIVERED", recipient_signature="JF", issue="chipped corner")
    )
    assert delivery.actual_delivery_date is not None
    assert delivery.issues[0]["description"] == "chipped corner"
    assert shipment.status == "COMPLETED"

    history = await service.get_delivery_history(delivery.id)
    assert [e.status for e in history] == ["SCHEDULED", "IN_TRANSIT", "DELIVERED"]

    with pytest.raises(ConflictError, match="already been completed"):
        await service.update_delivery_status(delivery.id, DeliveryStatusUpdate(status="FAILED"))


async def test_available_drivers_skip_expired_licences(session):
    service = ShippingService(session)
    await service.create_driver(DriverCreate(name="Valid", license_number="A", license_expiration=date(2099, 1, 1)))
    await service.create_driver(DriverCreate(name="Expired", license_number="B", license_expiration=date(2000, 1, 1)))
    await service.create_driver(DriverCreate(name="Off", license_number="C", status="OFF_DUTY"))
    available = await service.get_available_drivers()
    assert [d.name for d in available] == ["Valid"]


async def test_dispatch_lifecycle(session):
    service = DispatchService(session)
    scheduled = datetime.now(timezone.utc) + timedelta(days=1)
    dispatch = await service.create_dispatch(
        DispatchCreate(
            delivery_address="1 Site Rd",
            scheduled_date=scheduled,
            items=[DispatchItem(description="Beam", quantity=2, weight=5000)],
        )
    )
    assert dispatch.dispatch_number.startswith("DSP-")
    assert dispatch.total_weight == 10000
    assert dispatch.total_items == 2

    dispatch = await service.add_tracking_update(dispatch.id, TrackingUpdate(status="in_transit", notes="left plant"))
    assert dispatch.status == "in_transit"

    dispatch = await service.mark_delivered(dispatch.id, signed_by="Foreman")
    assert dispatch.status == "delivered"
    assert [u["status"] for u in dispatch.tracking_updates] == ["in_transit", "delivered"]

    with pytest.raises(ConflictError):
        await service.cancel_dispatch(dispatch.id, "too late")
    with pytest.raises(ConflictError):
        await service.add_tracking_update(dispatch.id, TrackingUpdate(notes="ping"))

    analytics = await service.get_analytics()
    assert analytics.by_status["delivered"] == 1
    assert analytics.on_time_rate == 100
    assert analytics.total_weight_delivered == 10000


async def test_cancel_dispatch(session):
    service = DispatchService(session)
    dispatch = await service.create_dispatch(DispatchCreate(delivery_address="Yard 2"))
    dispatch = await service.cancel_dispatch(dispatch.id, "client postponed")
    assert dispatch.status == "cancelled"
    assert dispatch.cancellation_reason == "client postponed"
    with pytest.raises(ConflictError, match="cancelled dispatch"):
        await service.mark_delivered(dispatch.id)


async def test_shipping_routes(client):
    resp = await client.post("/shipping/dispatches", json={"delivery_address": "Lot 4", "priority": "urgent"})
    assert resp.status_code == 201
    dispatch_id = resp.json()["id"]

    resp = await client.post(f"/shipping/dispatches/{dispatch_id}/deliver", json={"signed_by": "Lee"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "delivered"

    resp = await client.get("/shipping/dispatches/analytics")
    assert resp.status_code == 200
    assert resp.json()["total"] == 1

    resp = await client.get(f"/shipping/dispatches/{dispatch_id}/delivery-note")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"

    resp = await client.post("/shipping/dispatches", json={"priority": "whenever"})
    assert resp.status_code == 400


async def test_completed_shipment_keeps_reassigned_resources(session, shipment):
    service = ShippingService(session)
    driver, vehicle = await _resources(service)
    await service.assign_driver_and_vehicle(shipment.id, driver.id, vehicle.id)
    assert vehicle.current_shipment_id == shipment.id
    await service.complete_shipment(shipment.id)
    assert vehicle.current_shipment_id is None

    second = await service.create_shipment(ShipmentCreate(project_name="Second pour"))
    await service.assign_driver_and_vehicle(second.id, driver.id, vehicle.id)

    with pytest.raises(ConflictError, match="already been completed"):
        await service.complete_shipment(shipment.id)
    assert (driver.status, vehicle.status) == ("ASSIGNED", "ASSIGNED")
    assert vehicle.current_shipment_id == second.id

    await service.update_shipment(shipment.id, ShipmentUpdate(status="CANCELLED"))
    assert vehicle.status == "ASSIGNED"
