from __future__ import annotations

from datetime import date, timedelta
from uuid import uuid4

import pytest

from precast_erp.core.errors import ConflictError, NotFoundError, ValidationFailedError
from precast_erp.db.base import utcnow
from precast_erp.schemas.quality import PieceCreate
from precast_erp.schemas.yard import (
    EquipmentCreate,
    EquipmentPositionUpdate,
    LocationCreate,
    MaintenanceRequest,
    MaterialCreate,
    MovementCreate,
    MovementUpdate,
    ReadyForShippingRequest,
)
from precast_erp.services.quality import QualityService
from precast_erp.services.yard import (
    EquipmentService,
    MovementService,
    YardLocationService,
    YardMaterialService,
    YardPieceService,
)


async def _location(session, name: str, capacity: float = 4, **extra):
    return await YardLocationService(session).create_location(
        LocationCreate(name=name, type="bay", capacity=capacity, **extra)
    )


def _material(location_id=None, **extra) -> MaterialCreate:
    data = dict(name="Hollow core slab", type="finished", category="slabs", unit="EA", quantity=10, cost=250)
    data.update(extra)
    return MaterialCreate(location_id=location_id, **data)


async def test_occupancy_follows_material_count(session):
    bay = await _location(session, "Bay A1", capacity=2)
    materials = YardMaterialService(session)

    await materials.create_material(_material(bay.id))
    bay = await YardLocationService(session).get_location_by_id(bay.id)
    assert bay.occupancy == 50
    assert bay.status == "active"

    second = await materials.create_material(_material(bay.id, name="Double tee"))
    bay = await YardLocationService(session).get_location_by_id(bay.id)
    assert bay.occupancy == 100
    assert bay.status == "full"
    assert bay.can_accommodate is False

    await materials.delete_material(second.id)
    bay = await YardLocationService(session).get_location_by_id(bay.id)
    assert bay.occupancy == 50
    assert bay.status == "active"


async def test_location_hierarchy_and_delete_guard(session):
    locations = YardLocationService(session)
    zone = await _location(session, "Zone A")
    bay = await _location(session, "Bay A1", parent_id=zone.id)

    tree = await locations.get_location_hierarchy()
    assert [n.name for n in tree] == ["Zone A"]
    assert [c.name for c in tree[0].children] == ["Bay A1"]

    with pytest.raises(ConflictError, match="child locations"):
        await locations.delete_location(zone.id)

    await YardMaterialService(session).create_material(_material(bay.id))
    with pytest.raises(ConflictError, match="assigned materials"):
        await locations.delete_location(bay.id)


async def test_material_validation(session):
    materials = YardMaterialService(session)
    with pytest.raises(ValidationFailedError, match="Missing required fields"):
        await materials.create_material(MaterialCreate(name="Rebar"))
    with pytest.raises(ValidationFailedError, match="negative"):
        await materials.create_material(_material(quantity=-1))

    material = await materials.create_material(_material())
    material = await materials.update_material_quantity(material.id, 0, reason="shipped")
    assert material.status == "depleted"


async def test_partial_move_splits_material(session):
    source = await _location(session, "Bay A1")
    target = await _location(session, "Bay B1")
    materials = YardMaterialService(session)
    material = await materials.create_material(_material(source.id))

    movement = await materials.move_material(material.id, target.id, quantity=4, moved_by="op1")
    assert movement.status == "completed"
    assert movement.from_location_id == source.id

    at_source = await materials.get_materials(location_id=source.id)
    at_target = await materials.get_materials(location_id=target.id)
    assert [m.quantity for m in at_source] == [6]
    assert [m.quantity for m in at_target] == [4]

    with pytest.raises(ValidationFailedError, match="Cannot move more than available quantity"):
        await materials.move_material(material.id, target.id, quantity=50)


async def test_movement_lifecycle(session):
    source = await _location(session, "Bay A1")
    target = await _location(session, "Bay B1")
    material = await YardMaterialService(session).create_material(_material(source.id))
    service = MovementService(session)

    movement = await service.create_movement(
        MovementCreate(material_id=material.id, quantity=10, to_location_id=target.id)
    )
    assert movement.status == "pending"
    assert movement.from_location_id == source.id

    with pytest.raises(ConflictError, match="Invalid status transition"):
        await service.update_movement(movement.id, MovementUpdate(status="completed"))

    movement = await service.execute_movement(movement.id, operator_id="op1", completed_by="op1")
    assert movement.status == "completed"
    material = await YardMaterialService(session).get_material_by_id(material.id)
    assert material.location_id == target.id

    with pytest.raises(ConflictError, match="Cannot cancel"):
        await service.cancel_movement(movement.id)


async def test_receive_adds_quantity(session):
    bay = await _location(session, "Bay A1")
    material = await YardMaterialService(session).create_material(_material(bay.id))
    service = MovementService(session)
    movement = await service.create_movement(
        MovementCreate(material_id=material.id, quantity=5, to_location_id=bay.id, type="receive")
    )
    await service.execute_movement(movement.id)
    material = await YardMaterialService(session).get_material_by_id(material.id)
    assert material.quantity == 15


async def test_layout_optimisation_suggests_moves(session):
    crowded = await _location(session, "Bay A1", capacity=2)
    spare = await _location(session, "Bay B1", capacity=10)
    materials = YardMaterialService(session)
    await materials.create_material(_material(crowded.id))
    await materials.create_material(_material(crowded.id, name="Spandrel"))

    plan = await YardLocationService(session).optimize_yard_layout()
    assert len(plan.suggested_changes) == 1
    change = plan.suggested_changes[0]
    assert change.current_location_id == crowded.id
    assert change.suggested_location_id == spare.id
    assert plan.estimated_improvements["locations_relieved"] == 1


async def test_inventory_report(session):
    materials = YardMaterialService(session)
    await materials.create_material(_material())
    await materials.create_material(_material(category="rebar", quantity=2, cost=10))

    report = await materials.generate_inventory_report()
    assert report.total_materials == 2
    assert report.total_value == pytest.approx(2520)
    assert report.categories["rebar"].count == 1

    frame = await materials.inventory_frame()
    assert list(frame["category"]) == ["rebar", "slabs"]


async def test_maintenance_location_keeps_status_when_filled(session):
    bay = await _location(session, "Bay M1", capacity=1, status="maintenance")
    materials = YardMaterialService(session)

    slab = await materials.create_material(_material(bay.id))
    bay = await YardLocationService(session).get_location_by_id(bay.id)
    assert bay.occupancy == 100
    assert bay.status == "maintenance"

    await materials.delete_material(slab.id)
    bay = await YardLocationService(session).get_location_by_id(bay.id)
    assert bay.occupancy == 0
    assert bay.status == "maintenance"


async def test_low_stock_uses_category_thresholds(session):
    materials = YardMaterialService(session)
    await materials.create_material(_material())
    await materials.create_material(_material(name="#5 bar", category="rebar", quantity=2))

    low = await materials.get_low_stock_materials(default_threshold=5)
    assert [m.name for m in low] == ["#5 bar"]

    low = await materials.get_low_stock_materials(default_threshold=5, thresholds={"slabs": 20})
    assert sorted(m.name for m in low) == ["#5 bar", "Hollow core slab"]


async def test_schedule_movement_and_report(session):
    source = await _location(session, "Bay A1")
    target = await _location(session, "Bay B1")
    material = await YardMaterialService(session).create_material(_material(source.id))
    service = MovementService(session)
    first = await service.create_movement(MovementCreate(material_id=material.id, quantity=2, to_location_id=target.id))
    second = await service.create_movement(
        MovementCreate(material_id=material.id, quantity=3, to_location_id=target.id)
    )

    with pytest.raises(ValidationFailedError, match="Scheduled time must be in the future"):
        await service.schedule_movement(first.id, utcnow() - timedelta(hours=1))
    when = utcnow() + timedelta(days=1)
    scheduled = await service.schedule_movement(first.id, when)
    assert scheduled.scheduled_for == when

    await service.cancel_movement(second.id, cancelled_by="op1", reason="Crane down")
    with pytest.raises(ConflictError, match="Cannot schedule"):
        await service.schedule_movement(second.id, when)

    report = await service.generate_movement_report()
    assert report.total_movements == 2
    assert report.by_status["pending"] == 1
    assert report.by_status["cancelled"] == 1
    assert report.by_type["transfer"] == 2


async def test_equipment_assignment_and_maintenance(session):
    service = EquipmentService(session)
    with pytest.raises(ValidationFailedError, match="greater than zero"):
        await service.create_equipment(EquipmentCreate(name="Forklift", type="forklift", capacity=0))

    crane = await service.create_equipment(EquipmentCreate(name="Gantry 1", type="crane", capacity=30000))
    await service.create_equipment(EquipmentCreate(name="Forklift 2", type="forklift", capacity=5000))

    crane = await service.assign_to_operator(crane.id, "op7")
    assert crane.status == "in-use"
    assert crane.operator_id == "op7"
    with pytest.raises(ConflictError, match="not available"):
        await service.assign_to_operator(crane.id, "op8")
    with pytest.raises(ConflictError, match="currently in use"):
        await service.delete_equipment(crane.id)

    report = await service.generate_utilization_report()
    assert report.total_equipment == 2
    assert report.utilization_rate == 50
    assert report.by_status["in-use"] == 1

    crane = await service.release(crane.id)
    crane = await service.schedule_maintenance(
        crane.id, MaintenanceRequest(scheduled_date=date.today(), type="inspection", immediate=True)
    )
    assert crane.status == "maintenance"
    entry = crane.maintenance_schedule[0]
    assert entry["status"] == "scheduled"

    with pytest.raises(NotFoundError, match="Maintenance record not found"):
        await service.complete_maintenance(crane.id, "maint_missing")

    crane = await service.complete_maintenance(crane.id, entry["id"], completed_by="tech1", notes="Cables replaced")
    assert crane.status == "available"
    assert crane.maintenance_schedule[0]["status"] == "completed"
    assert crane.last_maintenance_date == date.today()


async def test_equipment_location_tracking(session):
    bay = await _location(session, "Bay C1", coordinates={"x": 10, "y": 20})
    service = EquipmentService(session)
    loader = await service.create_equipment(
        EquipmentCreate(name="Loader 1", type="loader", capacity=8000, location_id=bay.id)
    )

    tracked = await service.track_equipment_location(loader.id)
    assert tracked.status == "stationary"
    assert tracked.location.location_name == "Bay C1"
    assert tracked.location.coordinates == {"x": 10, "y": 20}

    await service.record_position(
        loader.id, EquipmentPositionUpdate(coordinates={"x": 15, "y": 20}, speed=12, direction="north")
    )
    tracked = await service.track_equipment_location(loader.id)
    assert tracked.status == "moving"
    assert tracked.speed == 12
    assert tracked.direction == "north"
    assert tracked.location.coordinates == {"x": 15, "y": 20}

    with pytest.raises(NotFoundError, match="Location not found"):
        await service.record_position(loader.id, EquipmentPositionUpdate(location_id=uuid4()))


async def test_piece_ready_for_shipping(session):
    bay = await _location(session, "Staging 1")
    quality = QualityService(session)
    job_id = uuid4()
    planned = await quality.create_piece(PieceCreate(piece_number="WP-1", job_id=job_id))
    approved = await quality.create_piece(PieceCreate(piece_number="WP-2", job_id=job_id, status="QC_APPROVED"))
    service = YardPieceService(session)

    with pytest.raises(ConflictError, match="cannot be shipped from status PLANNED"):
        await service.mark_piece_ready_for_shipping(planned.id, ReadyForShippingRequest())

    ship_date = date.today() + timedelta(days=3)
    piece = await service.mark_piece_ready_for_shipping(
        approved.id, ReadyForShippingRequest(location_id=bay.id, scheduled_ship_date=ship_date, notes="Top lift")
    )
    assert piece.status == "READY_FOR_SHIPPING"
    assert piece.yard_location_id == bay.id
    assert piece.ready_for_shipping_at is not None

    assert [p.piece_number for p in await service.get_pieces_ready_for_shipping(job_id=job_id)] == ["WP-2"]
    assert await service.get_pieces_ready_for_shipping(job_id=uuid4()) == []
    ready = await service.get_pieces_ready_for_shipping(scheduled_date=ship_date)
    assert [p.piece_number for p in ready] == ["WP-2"]


async def test_equipment_and_piece_routes(client):
    resp = await client.post("/yard/equipment", json={"name": "Gantry 2", "type": "crane", "capacity": 0})
    assert resp.status_code == 400

    resp = await client.post("/yard/equipment", json={"name": "Gantry 2", "type": "crane", "capacity": 25000})
    assert resp.status_code == 201
    equipment_id = resp.json()["id"]

    resp = await client.put(f"/yard/equipment/{equipment_id}/location", json={"coordinates": {"x": 3, "y": 4}})
    assert resp.status_code == 200
    assert resp.json()["position"]["coordinates"] == {"x": 3, "y": 4}

    resp = await client.get(f"/yard/equipment/{equipment_id}/location")
    assert resp.status_code == 200
    assert resp.json()["status"] == "stationary"

    resp = await client.get(f"/yard/equipment/{uuid4()}/location")
    assert resp.status_code == 404

    resp = await client.post("/quality/pieces", json={"piece_number": "HC-9", "status": "IN_YARD"})
    piece_id = resp.json()["id"]
    resp = await client.put(f"/yard/pieces/{piece_id}/ready-for-shipping")
    assert resp.status_code == 200
    assert resp.json()["status"] == "READY_FOR_SHIPPING"

    resp = await client.get("/yard/pieces/ready-for-shipping")
    assert [p["piece_number"] for p in resp.json()] == ["HC-9"]
