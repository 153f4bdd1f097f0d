from __future__ import annotations

from uuid import uuid4


async def test_health_echoes_correlation_id(client):
    resp = await client.get("/health", headers={"X-Correlation-ID": "abc-123"})
    assert resp.status_code == 200
    assert resp.json() == {"message": "Healthy"}
    assert resp.headers["X-Correlation-ID"] == "abc-123"

    resp = await client.get("/health")
    assert resp.headers["X-Correlation-ID"]


async def test_not_found_envelope(client):
    missing = uuid4()
    resp = await client.get(f"/contacts/{missing}", headers={"X-Request-ID": "req-1"})
    assert resp.status_code == 404
    body = resp.json()
    assert body["status"] == 404
    assert body["error"]["type"] == "http_error"
    assert body["error"]["message"] == "Contact not found"
    assert body["correlation_id"] == "req-1"
    assert body["method"] == "GET"
    assert body["path"] == f"/api/v1/contacts/{missing}"


async def test_request_validation_envelope(client):
    resp = await client.post("/quality/pieces", json={})
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"]["type"] == "validation_error"
    assert body["error"]["message"] == "Request validation failed"
    first = body["error"]["details"][0]
    assert {"type", "loc", "msg"} <= set(first)


async def test_contact_create_and_delete(client):
    resp = await client.post("/contacts", json={"first_name": "Ana", "last_name": "Ruiz", "email": "ana@site.test"})
    assert resp.status_code == 201
    contact_id = resp.json()["id"]

    resp = await client.delete(f"/contacts/{contact_id}")
    assert resp.status_code == 204
    resp = await client.delete(f"/contacts/{contact_id}")
    assert resp.status_code == 404


async def test_yard_inventory_report_csv(client):
    resp = await client.get("/reports/yard-inventory")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "yard_inventory.csv" in resp.headers["content-disposition"]
    assert resp.text.splitlines()[0].startswith("name,type,category")


async def test_leave_balance_report_xlsx(client):
    resp = await client.get("/reports/leave-balances", params={"format": "xlsx"})
    assert resp.status_code == 200
    assert resp.content[:2] == b"PK"


async def test_unsupported_report_format(client):
    resp = await client.get("/reports/purchase-orders", params={"format": "doc"})
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Unsupported export format: doc"


async def test_unknown_route_uses_envelope(client):
    resp = await client.get("/no-such-module")
    assert resp.status_code == 404
    assert resp.json()["error"] == {"type": "http_error", "message": "Not Found", "details": None}
