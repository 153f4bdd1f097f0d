from __future__ import annotations

from uuid import uuid4

import pytest

from precast_erp.core.errors import ConflictError
from precast_erp.schemas.estimating import EstimateCreate, EstimateUpdate, LineItem
from precast_erp.services.estimating import EstimateService


def _create_payload(**overrides) -> EstimateCreate:
    data = dict(
        project_name="Parking deck",
        line_items=[
            LineItem(description="Double tee", quantity=4, unit_price=2500),
            LineItem(description="Spandrel", quantity=10, unit_price=300),
        ],
        tax_rate=10,
        discount=1000,
    )
    data.update(overrides)
    return EstimateCreate(**data)


async def test_create_prices_line_items(session):
    estimate = await EstimateService(session).create_estimate(_create_payload())
    assert estimate.estimate_number.startswith("EST-")
    assert estimate.status == "draft"
    assert estimate.subtotal == pytest.approx(13000)
    assert estimate.tax_amount == pytest.approx(1200)
    assert estimate.total == pytest.approx(13200)


async def test_update_reprices_only_on_pricing_change(session):
    service = EstimateService(session)
    estimate = await service.create_estimate(_create_payload())

    updated = await service.update_estimate(estimate.id, EstimateUpdate(notes="call back"))
    assert updated.total == pytest.approx(13200)

    updated = await service.update_estimate(estimate.id, EstimateUpdate(tax_rate=0, discount=0))
    assert updated.total == pytest.approx(13000)

    assert await service.update_estimate(uuid4(), EstimateUpdate(notes="x")) is None


async def test_lifecycle_and_conversion(session):
    service = EstimateService(session)
    estimate = await service.create_estimate(_create_payload())

    with pytest.raises(ConflictError, match="Only approved estimates"):
        await service.convert_to_project(estimate.id)

    await service.send_estimate(estimate.id, "buyer@example.com")
    approved = await service.approve_estimate(estimate.id, "sales-lead")
    assert approved.status == "approved"
    with pytest.raises(ConflictError):
        await service.reject_estimate(estimate.id, "too late")

    project = await service.convert_to_project(estimate.id)
    assert project.budget == pytest.approx(13200)
    assert project.estimate_id == estimate.id
    assert project.name == "Parking deck"

    with pytest.raises(ConflictError, match="already been converted"):
        await service.convert_to_project(estimate.id)


async def test_duplicate_gets_new_number(session):
    service = EstimateService(session)
    original = await service.create_estimate(_create_payload())
    copy = await service.duplicate_estimate(original.id)
    assert copy.id != original.id
    assert copy.estimate_number != original.estimate_number
    assert copy.status == "draft"
    assert copy.total == pytest.approx(original.total)


async def test_estimate_routes(client):
    resp = await client.post(
        "/estimates",
        json={"project_name": "Wall panels", "line_items": [{"description": "Panel", "quantity": 2, "unit_price": 50}]},
    )
    assert resp.status_code == 201
    estimate_id = resp.json()["id"]
    assert resp.json()["total"] == 100

    resp = await client.get(f"/estimates/{estimate_id}/pdf")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")

    resp = await client.delete(f"/estimates/{estimate_id}")
    assert resp.status_code == 204
    resp = await client.get(f"/estimates/{estimate_id}")
    assert resp.status_code == 404


async def test_patch_ignores_null_for_required_columns(client):
    resp = await client.post(
        "/estimates",
        json={
            "project_name": "Hollow core",
            "notes": "Crane by others",
            "expiry_date": "2030-01-31",
            "tax_rate": 10,
            "line_items": [{"description": "Plank", "quantity": 10, "unit_price": 100}],
        },
    )
    estimate_id = resp.json()["id"]

    resp = await client.patch(
        f"/estimates/{estimate_id}",
        json={"notes": None, "tax_rate": None, "line_items": None, "expiry_date": None},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["notes"] == "Crane by others"
    assert body["tax_rate"] == 10
    assert body["total"] == 1100
    assert body["expiry_date"] is None
