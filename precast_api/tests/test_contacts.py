from __future__ import annotations

import io
from uuid import uuid4

import pandas as pd
import pytest

from precast_erp.core.errors import NotFoundError, ValidationFailedError
from precast_erp.schemas.contacts import ContactCreate, ContactUpdate, InteractionCreate
from precast_erp.services.contacts import ContactService


async def test_create_and_search(session):
    service = ContactService(session)
    contact = await service.create_contact(
        ContactCreate(first_name="Jo", last_name="Park", company="Park Civil", city="Denver", state="CO")
    )
    assert contact.full_name == "Jo Park"
    assert contact.formatted_address == "Denver, CO"

    await service.create_contact(ContactCreate(company="Summit Rebar", type="vendor"))
    assert [c.company for c in await service.search_contacts("park")] == ["Park Civil"]
    assert [c.company for c in await service.get_contacts(type="vendor")] == ["Summit Rebar"]


async def test_contact_validation(session):
    service = ContactService(session)
    with pytest.raises(ValidationFailedError, match="name or company is required"):
        await service.create_contact(ContactCreate(email="nobody@site.test"))
    with pytest.raises(ValidationFailedError, match="Invalid contact type"):
        await service.create_contact(ContactCreate(company="X", type="friend"))

    contact = await service.create_contact(ContactCreate(company="X"))
    with pytest.raises(ValidationFailedError, match="Invalid contact status"):
        await service.update_contact(contact.id, ContactUpdate(status="gone"))
    assert await service.update_contact(uuid4(), ContactUpdate(notes="x")) is None


async def test_interaction_stamps_last_contacted(session):
    service = ContactService(session)
    contact = await service.create_contact(ContactCreate(company="Park Civil"))
    assert contact.last_contacted_at is None

    interaction = await service.add_interaction(contact.id, InteractionCreate(type="call", subject="Bid follow-up"))
    assert contact.last_contacted_at == interaction.occurred_at
    assert [i.subject for i in await service.get_interactions(contact.id)] == ["Bid follow-up"]

    with pytest.raises(ValidationFailedError, match="Invalid interaction type"):
        await service.add_interaction(contact.id, InteractionCreate(type="fax"))
    await service.delete_contact(contact.id)
    with pytest.raises(NotFoundError):
        await service.get_interactions(contact.id)


async def test_import_csv_reports_bad_rows(session):
    content = (
        "First Name,Last Name,Company,Zip Code,Tags\n"
        "Ana,Ruiz,,78701,\"gc, repeat\"\n"
        ",,,,\n"
        "Li,Wu,Wu Steel,,\n"
    ).encode()
    result = await ContactService(session).import_contacts(content, "contacts.csv")
    assert result.imported == 2
    assert result.failed == 1
    assert result.errors == ["Row 2: Contact name or company is required"]

    ana = (await ContactService(session).search_contacts("Ruiz"))[0]
    assert ana.zip == "78701"
    assert ana.tags == ["gc", "repeat"]


async def test_import_xlsx_and_export(session):
    buffer = io.BytesIO()
    pd.DataFrame([{"first_name": "Ben", "company": "Ben Crane", "type": "vendor"}]).to_excel(
        buffer, index=False, engine="openpyxl"
    )
    service = ContactService(session)
    result = await service.import_contacts(buffer.getvalue(), "contacts.xlsx")
    assert result.imported == 1

    frame = await service.export_contacts(type="vendor")
    assert list(frame["company"]) == ["Ben Crane"]
    assert "formatted_address" not in frame.columns


async def test_contact_routes(client):
    files = {"file": ("people.csv", b"firstName,lastName\nKim,Lee\n", "text/csv")}
    resp = await client.post("/contacts/import", files=files)
    assert resp.status_code == 200
    assert resp.json()["imported"] == 1

    resp = await client.get("/contacts/search", params={"q": "Lee"})
    assert resp.status_code == 200
    contact = resp.json()[0]
    assert contact["full_name"] == "Kim Lee"

    resp = await client.post(f"/contacts/{contact['id']}/interactions", json={"type": "email", "subject": "Hi"})
    assert resp.status_code == 201

    resp = await client.get("/contacts/export", params={"format": "csv"})
    assert resp.status_code == 200
    assert resp.text.splitlines()[1].startswith("Kim,Lee")
