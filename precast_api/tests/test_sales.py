from __future__ import annotations

from datetime import date

import pytest

from precast_erp.core.errors import ConflictError, NotFoundError, ValidationFailedError
from precast_erp.schemas.contacts import ContactCreate
from precast_erp.schemas.sales import (
    CancelJobRequest,
    CompleteJobRequest,
    ConvertLeadRequest,
    JobUpdate,
    LeadCreate,
    LeadUpdate,
    QuoteCreate,
    QuoteLineItem,
)
from precast_erp.services.contacts import ContactService
from precast_erp.services.sales import SalesService


@pytest.fixture
async def contact(session):
    return await ContactService(session).create_contact(
        ContactCreate(first_name="Maria", last_name="Lopez", email="maria@builders.test", company="Lopez Builders")
    )


@pytest.fixture
async def lead(session, contact):
    return await SalesService(session).create_lead(
        LeadCreate(name="Stadium seating", value=250000, contact_id=contact.id, location={"city": "Austin"})
    )


async def test_lead_copies_contact(session, lead, contact):
    assert lead.lead_number.startswith("L") and lead.lead_number.endswith("-0001")
    assert lead.contact_name == "Maria Lopez"
    assert lead.contact_email == "maria@builders.test"
    assert lead.company_name == "Lopez Builders"

    updated = await SalesService(session).update_lead(lead.id, LeadUpdate(priority="HIGH"))
    assert updated.priority == "HIGH"
    assert updated.contact_name == "Maria Lopez"

    with pytest.raises(ValidationFailedError, match="Invalid lead status"):
        await SalesService(session).create_lead(LeadCreate(name="x", status="MAYBE"))


async def test_convert_lead(session, lead):
    service = SalesService(session)
    opportunity = await service.convert_lead_to_opportunity(lead.id, ConvertLeadRequest(stage="PROPOSAL"))
    assert opportunity.lead_id == lead.id
    assert opportunity.name == "Stadium seating"
    assert opportunity.value == 250000
    assert opportunity.stage == "PROPOSAL"
    assert opportunity.status == "OPEN"
    assert opportunity.contact_name == "Maria Lopez"
    assert lead.status == "QUALIFIED"

    with pytest.raises(ConflictError, match="already been converted"):
        await service.convert_lead_to_opportunity(lead.id)


async def test_quote_totals(session, lead):
    service = SalesService(session)
    opportunity = await service.convert_lead_to_opportunity(lead.id)
    quote = await service.create_quote(
        QuoteCreate(
            opportunity_id=opportunity.id,
            tax_rate=8.25,
            line_items=[
                QuoteLineItem(description="Riser", quantity=40, unit_price=1500),
                QuoteLineItem(description="Vomitory wall", quantity=4, unit_price=9000),
            ],
        )
    )
    assert quote.quote_number.startswith("Q")
    assert quote.subtotal == pytest.approx(96000)
    assert quote.tax_amount == pytest.approx(7920)
    assert quote.total == pytest.approx(103920)

    with pytest.raises(ValidationFailedError):
        await service.update_quote_status(quote.id, "MAYBE")


async def test_job_uses_accepted_quote(session, lead):
    service = SalesService(session)
    opportunity = await service.convert_lead_to_opportunity(lead.id)
    quote = await service.create_quote(
        QuoteCreate(opportunity_id=opportunity.id, line_items=[QuoteLineItem(quantity=2, unit_price=100000)])
    )
    await service.update_quote_status(quote.id, "ACCEPTED")

    job = await service.create_job_from_opportunity(opportunity.id)
    assert job.job_number.startswith("J")
    assert job.status == "PENDING"
    assert job.contract_value == pytest.approx(200000)
    assert job.client_name == "Lopez Builders"
    assert job.location == {"city": "Austin"}
    assert opportunity.status == "WON"
    assert opportunity.stage == "CLOSED"
    assert opportunity.job_id == job.id
    assert lead.status == "WON"

    with pytest.raises(ConflictError, match="already has a job"):
        await service.create_job_from_opportunity(opportunity.id)


async def test_job_falls_back_to_opportunity_value(session, lead):
    service = SalesService(session)
    opportunity = await service.convert_lead_to_opportunity(lead.id)
    job = await service.create_job_from_opportunity(opportunity.id)
    assert job.contract_value == pytest.approx(250000)


async def test_dashboard(session, lead):
    service = SalesService(session)
    opportunity = await service.convert_lead_to_opportunity(lead.id)
    await service.create_lead(LeadCreate(name="Parking structure", value=1000))
    dashboard = await service.get_dashboard()
    assert dashboard.leads_by_status == {"QUALIFIED": 1, "NEW": 1}
    assert dashboard.open_pipeline_value == pytest.approx(250000)
    assert dashboard.win_rate == 0

    await service.create_job_from_opportunity(opportunity.id)
    dashboard = await service.get_dashboard()
    assert dashboard.won_value == pytest.approx(250000)
    assert dashboard.win_rate == 100


async def test_missing_records(session):
    service = SalesService(session)
    with pytest.raises(NotFoundError, match="Contact not found"):
        await service.create_lead(LeadCreate(name="Ghost", contact_id="00000000-0000-0000-0000-000000000001"))


async def test_sales_routes(client):
    resp = await client.post("/sales/leads", json={"name": "Bridge girders", "value": 5000})
    assert resp.status_code == 201
    lead_id = resp.json()["id"]

    resp = await client.post(f"/sales/leads/{lead_id}/convert", json={})
    assert resp.status_code == 201
    opportunity_id = resp.json()["id"]

    resp = await client.post(f"/sales/leads/{lead_id}/convert")
    assert resp.status_code == 409

    resp = await client.post(f"/sales/opportunities/{opportunity_id}/job")
    assert resp.status_code == 201
    assert resp.json()["contract_value"] == 5000

    resp = await client.get("/sales/dashboard")
    assert resp.status_code == 200
    assert resp.json()["win_rate"] == 100


async def test_job_lifecycle(session, lead):
    service = SalesService(session)
    opportunity = await service.convert_lead_to_opportunity(lead.id)
    job = await service.create_job_from_opportunity(opportunity.id)

    job = await service.update_job(job.id, JobUpdate(status="ACTIVE", target_completion_date=date(2031, 6, 30)))
    assert job.status == "ACTIVE"
    assert job.target_completion_date == date(2031, 6, 30)
    with pytest.raises(ValidationFailedError, match="Invalid job status"):
        await service.update_job(job.id, JobUpdate(status="COMPLETED"))

    with pytest.raises(ValidationFailedError, match="Cancellation reason is required"):
        await service.cancel_job(job.id, CancelJobRequest())

    job = await service.complete_job(job.id, CompleteJobRequest(completed_by="pm", actual_hours=1200))
    assert job.status == "COMPLETED"
    assert job.completed_by == "pm"
    assert job.actual_hours == 1200
    assert job.actual_completion_date is not None

    with pytest.raises(ConflictError, match="already completed"):
        await service.complete_job(job.id, CompleteJobRequest())
    with pytest.raises(ConflictError, match="Cannot cancel a completed job"):
        await service.cancel_job(job.id, CancelJobRequest(cancellation_reason="late"))
    with pytest.raises(ConflictError, match="Cannot update a completed job"):
        await service.update_job(job.id, JobUpdate(name="Renamed"))


async def test_job_contact_change_copies_details(session, lead):
    service = SalesService(session)
    opportunity = await service.convert_lead_to_opportunity(lead.id)
    job = await service.create_job_from_opportunity(opportunity.id)
    other = await ContactService(session).create_contact(
        ContactCreate(first_name="Sam", last_name="Reed", email="sam@gc.test", company="Reed GC")
    )

    job = await service.update_job(job.id, JobUpdate(contact_id=other.id))
    assert job.contact_id == other.id
    assert job.contact_name == "Sam Reed"
    assert job.contact_email == "sam@gc.test"

    with pytest.raises(NotFoundError, match="Contact not found"):
        await service.update_job(job.id, JobUpdate(contact_id="00000000-0000-0000-0000-000000000001"))


async def test_job_routes(client):
    resp = await client.post("/sales/leads", json={"name": "Retaining wall", "value": 8000})
    lead_id = resp.json()["id"]
    resp = await client.post(f"/sales/leads/{lead_id}/convert")
    resp = await client.post(f"/sales/opportunities/{resp.json()['id']}/job")
    job_id = resp.json()["id"]

    resp = await client.patch(f"/sales/jobs/{job_id}", json={"description": "Phase 1 panels"})
    assert resp.status_code == 200
    assert resp.json()["description"] == "Phase 1 panels"

    resp = await client.post(f"/sales/jobs/{job_id}/cancel", json={"cancellation_reason": ""})
    assert resp.status_code == 400

    resp = await client.post(f"/sales/jobs/{job_id}/cancel", json={"cancellation_reason": "Owner withdrew"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "CANCELLED"
    assert resp.json()["cancellation_reason"] == "Owner withdrew"

    resp = await client.post(f"/sales/jobs/{job_id}/complete")
    assert resp.status_code == 409
    assert resp.json()["error"]["message"] == "Cannot complete a cancelled job"

    resp = await client.patch("/sales/jobs/00000000-0000-0000-0000-000000000001", json={"name": "x"})
    assert resp.status_code == 404
