from __future__ import annotations

import pytest

from precast_erp.core.errors import AIServiceError, NotFoundError, ValidationFailedError
from precast_erp.services.ai.base import BaseAIService, camel
from precast_erp.services.ai.purchasing import PurchasingAIService


def test_camel():
    assert camel("material_ids") == "materialIds"
    assert camel("delivery_date") == "deliveryDate"
    assert camel("status") == "status"


def test_payload_and_pick():
    body = BaseAIService.payload("LEAD_SCORING", lead_id="L1", extra_notes=None)
    assert body == {"leadId": "L1", "modelType": "LEAD_SCORING"}

    picked = BaseAIService.pick({"score": 80, "nextSteps": ["call"]}, ("score", "next_steps", "factors"))
    assert picked == {"score": 80, "next_steps": ["call"], "factors": None}
    assert BaseAIService.pick(None, ("score",)) == {"score": None}


async def test_recommend_vendors_posts_camel_case(ai_client, ai_calls, ai_handler):
    ai_handler["json"] = {"recommendations": [{"vendorId": "V1"}], "rationale": "cheapest"}
    result = await PurchasingAIService(ai_client).recommend_vendors(["M1"], quantities=[5])

    path, body = ai_calls[0]
    assert path == "/api/ai/recommendations"
    assert body == {"materialIds": ["M1"], "quantities": [5], "modelType": "VENDOR_RECOMMENDATION"}
    assert result["recommended_vendors"] == [{"vendorId": "V1"}]
    assert result["rationale"] == "cheapest"
    assert result["risk_assessment"] is None


async def test_upstream_failure_becomes_service_error(ai_client, ai_handler):
    ai_handler["status"] = 500
    with pytest.raises(AIServiceError, match="Failed to recommend vendors") as info:
        await PurchasingAIService(ai_client).recommend_vendors(["M1"])
    assert info.value.status_code == 502
    assert info.value.details == {"upstream_status": 500}


async def test_run_dispatch(ai_client):
    service = PurchasingAIService(ai_client)
    with pytest.raises(NotFoundError):
        await service.run("launch-rockets", {})
    with pytest.raises(ValidationFailedError, match="material_ids"):
        await service.run("recommend-vendors", {"quantities": [1]})


async def test_ai_route(client, ai_calls, ai_handler):
    ai_handler["json"] = {"recommendations": []}
    resp = await client.post("/purchasing/ai/recommend-vendors", json={"material_ids": ["M1"], "ignored": 1})
    assert resp.status_code == 200
    assert resp.json()["recommended_vendors"] == []
    assert "ignored" not in ai_calls[0][1]

    resp = await client.post("/purchasing/ai/unknown-action", json={})
    assert resp.status_code == 404

    ai_handler["status"] = 503
    resp = await client.post("/purchasing/ai/recommend-vendors", json={"material_ids": ["M1"]})
    assert resp.status_code == 502
    assert resp.json()["error"]["message"] == "Failed to recommend vendors"
