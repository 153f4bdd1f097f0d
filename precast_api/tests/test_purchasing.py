from __future__ import annotations

from datetime import date, timedelta

import pytest

from precast_erp.core.errors import ConflictError, ValidationFailedError
from precast_erp.schemas.purchasing import (
    POItemIn,
    PurchaseOrderCreate,
    ReceivingCreate,
    ReceivingItemIn,
    VendorCreate,
)
from precast_erp.services.purchasing import PurchasingService, generate_vendor_code


def test_generate_vendor_code():
    code = generate_vendor_code("acme rebar")
    assert code[:3] == "ACM"
    assert len(code) == 7 and code[3:].isdigit()


async def _vendor(service: PurchasingService, name: str = "Ready Mix Supply"):
    return await service.create_vendor(VendorCreate(name=name, code="RMS001"))


async def _order(service: PurchasingService, vendor_id):
    return await service.create_purchase_order(
        PurchaseOrderCreate(
            vendor_id=vendor_id,
            shipping_cost=50,
            items=[
                POItemIn(description="Cement", quantity=10, unit="BAG", unit_price=12.5, tax_amount=10),
                POItemIn(description="Rebar", quantity=4, unit="EA", unit_price=100, discount_amount=20),
            ],
        )
    )


async def test_vendor_defaults_and_duplicates(session):
    service = PurchasingService(session)
    vendor = await _vendor(service)
    assert vendor.status == "ACTIVE"
    assert vendor.is_approved is True

    with pytest.raises(ConflictError):
        await service.create_vendor(VendorCreate(name="Other name", code="RMS001"))


async def test_purchase_order_totals(session):
    service = PurchasingService(session)
    vendor = await _vendor(service)
    order = await _order(service, vendor.id)

    assert order.status == "DRAFT"
    assert order.po_number.startswith("PO-") and order.po_number.endswith("-0001")
    assert order.subtotal == pytest.approx(525)
    assert order.tax_amount == pytest.approx(10)
    assert order.discount_amount == pytest.approx(20)
    assert order.total_amount == pytest.approx(565)

    detail = await service.order_detail(order)
    assert [i.line_no for i in detail.items] == [1, 2]
    assert detail.items[1].total_price == pytest.approx(380)


async def test_status_transitions(session):
    service = PurchasingService(session)
    vendor = await _vendor(service)
    order = await _order(service, vendor.id)

    with pytest.raises(ConflictError, match="Invalid status transition from DRAFT to SENT"):
        await service.update_purchase_order_status(order.id, "SENT")

    order = await service.update_purchase_order_status(order.id, "CANCELLED", notes="not needed", changed_by="buyer")
    assert order.approval_workflow[-1]["to_status"] == "CANCELLED"
    items = await service.order_items.list_for_order(order.id)
    assert {i.status for i in items} == {"CANCELLED"}


async def test_receiving_rolls_up_to_order(session):
    service = PurchasingService(session)
    vendor = await _vendor(service)
    order = await _order(service, vendor.id)

    with pytest.raises(ConflictError, match="Cannot create receiving record"):
        await service.create_receiving_record(ReceivingCreate(purchase_order_id=order.id))

    await service.update_purchase_order_status(order.id, "APPROVED")
    cement, rebar = await service.order_items.list_for_order(order.id)

    await service.create_receiving_record(
        ReceivingCreate(
            purchase_order_id=order.id,
            items=[ReceivingItemIn(purchase_order_item_id=cement.id, received_quantity=10)],
        )
    )
    order = await service.get_purchase_order_by_id(order.id)
    assert order.status == "PARTIALLY_RECEIVED"
    assert order.receiving_status["received_items"] == 1
    assert order.receiving_status["total_items"] == 2
    assert order.receiving_status["fully_received"] is False

    await service.create_receiving_record(
        ReceivingCreate(
            purchase_order_id=order.id,
            items=[ReceivingItemIn(purchase_order_item_id=rebar.id, received_quantity=4)],
        )
    )
    order = await service.get_purchase_order_by_id(order.id)
    assert order.status == "RECEIVED"
    assert order.receiving_status["fully_received"] is True

    closed = await service.update_purchase_order_status(order.id, "CLOSED")
    assert closed.status == "CLOSED"
    with pytest.raises(ConflictError):
        await service.update_purchase_order_status(order.id, "DRAFT")


async def test_purchase_order_routes(client):
    resp = await client.post("/purchasing/vendors", json={"name": "Steel Co", "code": "STL001"})
    assert resp.status_code == 201
    vendor_id = resp.json()["id"]

    resp = await client.post(
        "/purchasing/purchase-orders",
        json={"vendor_id": vendor_id, "items": [{"description": "Mesh", "quantity": 2, "unit_price": 30}]},
    )
    assert resp.status_code == 201
    order = resp.json()
    assert order["total_amount"] == 60
    assert len(order["items"]) == 1

    resp = await client.patch(f"/purchasing/purchase-orders/{order['id']}", json={"notes": "rush"})
    assert resp.status_code == 200
    assert resp.json()["notes"] == "rush"

    resp = await client.put(f"/purchasing/purchase-orders/{order['id']}/status", json={"status": "RECEIVED"})
    assert resp.status_code == 409
    assert resp.json()["error"]["type"] == "conflict"

    resp = await client.get(f"/purchasing/purchase-orders/{order['id']}")
    assert resp.json()["status"] == "DRAFT"


async def test_vendor_status_changes_are_logged(session):
    service = PurchasingService(session)
    vendor = await _vendor(service)

    vendor = await service.update_vendor_status(vendor.id, "SUSPENDED", notes="late deliveries", changed_by="buyer")
    assert vendor.status == "SUSPENDED"
    assert vendor.is_approved is False
    assert "late deliveries" in vendor.notes

    vendor = await service.update_vendor_status(vendor.id, "ACTIVE")
    assert vendor.is_approved is True

    history = await service.get_vendor_status_history(vendor.id)
    changes = {(h.old_status, h.new_status): h for h in history}
    assert set(changes) == {("ACTIVE", "SUSPENDED"), ("SUSPENDED", "ACTIVE")}
    assert changes[("ACTIVE", "SUSPENDED")].changed_by == "buyer"

    with pytest.raises(ValidationFailedError):
        await service.update_vendor_status(vendor.id, "RETIRED")


async def test_receipt_inspection_and_rejection(session):
    service = PurchasingService(session)
    vendor = await _vendor(service)
    order = await _order(service, vendor.id)
    await service.update_purchase_order_status(order.id, "APPROVED")
    cement, rebar = await service.order_items.list_for_order(order.id)

    cement_receipt = await service.create_receiving_record(
        ReceivingCreate(
            purchase_order_id=order.id,
            items=[ReceivingItemIn(purchase_order_item_id=cement.id, received_quantity=10)],
        )
    )
    rebar_receipt = await service.create_receiving_record(
        ReceivingCreate(
            purchase_order_id=order.id,
            items=[ReceivingItemIn(purchase_order_item_id=rebar.id, received_quantity=2)],
        )
    )

    inspected = await service.update_receiving_record_status(rebar_receipt.id, "INSPECTED", notes="counted")
    assert inspected.status == "INSPECTED"
    lines = await service.receipt_items.list_for_record(rebar_receipt.id)
    assert [line.inspection_status for line in lines] == ["PASSED"]

    rejected = await service.update_receiving_record_status(cement_receipt.id, "REJECTED", notes="wet bags")
    assert rejected.status == "REJECTED"
    cement = await service.order_items.get(cement.id)
    assert cement.received_quantity == 0
    assert cement.rejected_quantity == 10
    assert cement.status == "PENDING"
    order = await service.get_purchase_order_by_id(order.id)
    assert order.status == "PARTIALLY_RECEIVED"
    assert order.receiving_status["received_items"] == 0

    with pytest.raises(ConflictError, match="already been rejected"):
        await service.update_receiving_record_status(cement_receipt.id, "REJECTED")
    cement = await service.order_items.get(cement.id)
    assert cement.rejected_quantity == 10


async def test_dashboard(session):
    service = PurchasingService(session)
    today = date.today()
    ready_mix = await _vendor(service)
    steel = await service.create_vendor(VendorCreate(name="Steel Co", code="STL001"))

    approved = await _order(service, ready_mix.id)
    approved.expected_delivery_date = today + timedelta(days=7)
    await service.update_purchase_order_status(approved.id, "APPROVED")
    await _order(service, ready_mix.id)
    waiting = await service.create_purchase_order(
        PurchaseOrderCreate(vendor_id=steel.id, items=[POItemIn(description="Mesh", quantity=2, unit_price=30)])
    )
    await service.update_purchase_order_status(waiting.id, "PENDING_APPROVAL")
    cement, _ = await service.order_items.list_for_order(approved.id)
    receipt = await service.create_receiving_record(
        ReceivingCreate(
            purchase_order_id=approved.id,
            items=[ReceivingItemIn(purchase_order_item_id=cement.id, received_quantity=5)],
        )
    )

    dashboard = await service.get_dashboard(today=today)
    assert dashboard.total_orders == 3
    assert dashboard.orders_by_status["DRAFT"] == 1
    assert dashboard.orders_by_status["PARTIALLY_RECEIVED"] == 1
    assert dashboard.orders_by_status["PENDING_APPROVAL"] == 1
    assert dashboard.orders_by_status["CLOSED"] == 0
    assert dashboard.committed_spend == pytest.approx(625)
    assert [(v.vendor_name, v.amount) for v in dashboard.top_vendors] == [("Ready Mix Supply", 565), ("Steel Co", 60)]
    assert dashboard.spend_by_month == {today.strftime("%Y-%m"): pytest.approx(625)}
    assert [o.id for o in dashboard.pending_deliveries] == [approved.id]
    assert [o.po_number for o in dashboard.pending_approvals] == [waiting.po_number]
    assert [(r.receipt_number, r.po_number) for r in dashboard.recent_receipts] == [
        (receipt.receipt_number, approved.po_number)
    ]


async def test_dashboard_route(client):
    resp = await client.get("/purchasing/dashboard")
    assert resp.status_code == 200
    body = resp.json()
    assert body["total_orders"] == 0
    assert body["committed_spend"] == 0
    assert body["orders_by_status"]["DRAFT"] == 0
