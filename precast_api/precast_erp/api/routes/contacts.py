from __future__ import annotations

from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, File, HTTPException, Path, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.api.exports import export_dataframe
from precast_erp.core.deps import get_ai_client, get_session
from precast_erp.schemas.contacts import (
    ContactCreate,
    ContactRead,
    ContactUpdate,
    ImportResult,
    InteractionCreate,
    InteractionRead,
)
from precast_erp.services.ai.client import AIClient
from precast_erp.services.ai.contacts import ContactAIService
from precast_erp.services.contacts import ContactService

router = APIRouter(prefix="/contacts", tags=["Contacts"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[ContactRead],
    summary="List contacts",
    description="Return contacts ordered by last name, optionally filtered.",
)
async def list_contacts(
    session: AsyncSession = Depends(get_session),
    type: Optional[str] = Query(None, description="Contact type"),
    status_: Optional[str] = Query(None, alias="status", description="Contact status"),
    assigned_to: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Substring of name, e-mail or company"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[ContactRead]:
    rows = await ContactService(session).get_contacts(
        type=type, status=status_, assigned_to=assigned_to, search=search, limit=limit, offset=offset
    )
    return [ContactRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=ContactRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create contact",
)
async def create_contact(payload: ContactCreate, session: AsyncSession = Depends(get_session)) -> ContactRead:
    created = await ContactService(session).create_contact(payload)
    return ContactRead.model_validate(created)


# PUBLIC_INTERFACE
@router.get("/search", response_model=List[ContactRead], summary="Search contacts")
async def search_contacts(
    q: str = Query(..., min_length=1, description="Search text"),
    limit: int = Query(100, ge=1, le=1000),
    session: AsyncSession = Depends(get_session),
) -> List[ContactRead]:
    rows = await ContactService(session).search_contacts(q, limit=limit)
    return [ContactRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.get(
    "/export",
    summary="Export contacts",
    description="Stream the filtered contacts as CSV, XLSX or PDF.",
    response_description="File stream (CSV/XLSX/PDF)",
)
async def export_contacts(
    session: AsyncSession = Depends(get_session),
    type: Optional[str] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
    format: str = Query("csv", description="Export format: csv | xlsx | pdf"),
):
    df = await ContactService(session).export_contacts(type=type, status=status_)
    return export_dataframe(df, "contacts", format)


# PUBLIC_INTERFACE
@router.post(
    "/import",
    response_model=ImportResult,
    summary="Import contacts",
    description="Import contacts from an uploaded CSV or XLSX file; invalid rows are reported.",
)
async def import_contacts(
    file: UploadFile = File(..., description="CSV or XLSX file"),
    session: AsyncSession = Depends(get_session),
) -> ImportResult:
    content = await file.read()
    return await ContactService(session).import_contacts(content, file.filename or "contacts.csv")


# PUBLIC_INTERFACE
@router.get("/{contact_id}", response_model=ContactRead, summary="Get contact")
async def get_contact(
    contact_id: UUID = Path(..., description="Contact id"),
    session: AsyncSession = Depends(get_session),
) -> ContactRead:
    contact = await ContactService(session).get_contact_by_id(contact_id)
    if not contact:
        raise HTTPException(status_code=404, detail="Contact not found")
    return ContactRead.model_validate(contact)


# PUBLIC_INTERFACE
@router.patch("/{contact_id}", response_model=ContactRead, summary="Update contact")
async def update_contact(
    payload: ContactUpdate,
    contact_id: UUID = Path(..., description="Contact id"),
    session: AsyncSession = Depends(get_session),
) -> ContactRead:
    contact = await ContactService(session).update_contact(contact_id, payload)
    if not contact:
        raise HTTPException(status_code=404, detail="Contact not found")
    return ContactRead.model_validate(contact)


# PUBLIC_INTERFACE
@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete contact")
async def delete_contact(
    contact_id: UUID = Path(..., description="Contact id"),
    session: AsyncSession = Depends(get_session),
) -> Response:
    if not await ContactService(session).delete_contact(contact_id):
        raise HTTPException(status_code=404, detail="Contact not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# PUBLIC_INTERFACE
@router.get("/{contact_id}/interactions", response_model=List[InteractionRead], summary="List interactions")
async def list_interactions(
    contact_id: UUID = Path(..., description="Contact id"),
    session: AsyncSession = Depends(get_session),
) -> List[InteractionRead]:
    rows = await ContactService(session).get_interactions(contact_id)
    return [InteractionRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/{contact_id}/interactions",
    response_model=InteractionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Log interaction",
)
async def add_interaction(
    payload: InteractionCreate,
    contact_id: UUID = Path(..., description="Contact id"),
    session: AsyncSession = Depends(get_session),
) -> InteractionRead:
    row = await ContactService(session).add_interaction(contact_id, payload)
    return InteractionRead.model_validate(row)


# PUBLIC_INTERFACE
@router.post(
    "/ai/{action}",
    summary="Run a contact AI action",
    description="Actions: " + ", ".join(a.replace("_", "-") for a in ContactAIService.actions),
)
async def run_contact_ai(
    action: str = Path(..., description="AI action, e.g. score-leads"),
    params: Optional[dict[str, Any]] = Body(None),
    client: AIClient = Depends(get_ai_client),
) -> Any:
    return await ContactAIService(client).run(action, params or {})
