from __future__ import annotations

import io
import logging
from typing import List, Optional
from uuid import UUID

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.errors import ValidationFailedError
from precast_erp.db.base import utcnow
from precast_erp.db.models.contacts import (
    CONTACT_STATUSES,
    CONTACT_TYPES,
    INTERACTION_TYPES,
    Contact,
    ContactInteraction,
)
from precast_erp.repositories.contacts import ContactRepository, InteractionRepository
from precast_erp.schemas.contacts import ContactCreate, ContactUpdate, ImportResult, InteractionCreate
from precast_erp.services.base import BaseService

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "first_name", "last_name", "email", "phone", "company", "position",
    "address", "city", "state", "zip", "country", "type", "status",
]
# Spreadsheet headers accepted on import besides the column names above.
IMPORT_ALIASES = {
    "firstname": "first_name",
    "lastname": "last_name",
    "zipcode": "zip",
    "postalcode": "zip",
    "assignedto": "assigned_to",
}


class ContactService(BaseService):
    """Contact CRUD, interaction log and spreadsheet import/export."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.contacts = ContactRepository(session)
        self.interactions = InteractionRepository(session)

    def _validate(self, contact: Contact) -> None:
        if not (contact.first_name or contact.last_name or contact.company):
            raise ValidationFailedError("Contact name or company is required")
        self.check_choice(contact.type, CONTACT_TYPES, "contact type")
        self.check_choice(contact.status, CONTACT_STATUSES, "contact status")

    # PUBLIC_INTERFACE
    async def get_contacts(
        self,
        *,
        type: Optional[str] = None,
        status: Optional[str] = None,
        assigned_to: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[Contact]:
        return await self.contacts.list(
            filters={"type": type, "status": status, "assigned_to": assigned_to},
            search=search,
            limit=limit,
            offset=offset,
        )

    async def get_contact_by_id(self, contact_id: UUID) -> Optional[Contact]:
        return await self.contacts.get(contact_id)

    # PUBLIC_INTERFACE
    async def create_contact(self, payload: ContactCreate) -> Contact:
        contact = Contact(**payload.model_dump())
        self._validate(contact)
        created = await self.contacts.create(contact)
        logger.info("Created contact %s (%s)", created.id, created.full_name or created.company)
        return created

    # PUBLIC_INTERFACE
    async def update_contact(self, contact_id: UUID, payload: ContactUpdate) -> Optional[Contact]:
        contact = await self.contacts.get(contact_id)
        if contact is None:
            return None
        self.apply_patch(contact, payload.model_dump(exclude_unset=True))
        self._validate(contact)
        return await self.contacts.save(contact)

    async def delete_contact(self, contact_id: UUID) -> bool:
        contact = await self.contacts.get(contact_id)
        if contact is None:
            return False
        await self.contacts.delete(contact)
        logger.info("Deleted contact %s", contact_id)
        return True

    async def search_contacts(self, query: str, limit: int = 100) -> List[Contact]:
        return await self.contacts.list(search=query, limit=limit)

    # PUBLIC_INTERFACE
    async def add_interaction(self, contact_id: UUID, payload: InteractionCreate) -> ContactInteraction:
        """Log an interaction and stamp the contact's last_contacted_at."""
        contact = self.require(await self.contacts.get(contact_id), "Contact not found")
        self.check_choice(payload.type, INTERACTION_TYPES, "interaction type")
        data = payload.model_dump(exclude_none=True)
        interaction = ContactInteraction(contact_id=contact.id, **data)
        contact.last_contacted_at = interaction.occurred_at or utcnow()
        await self.interactions.add(interaction)
        await self.contacts.commit()
        return interaction

    async def get_interactions(self, contact_id: UUID) -> List[ContactInteraction]:
        self.require(await self.contacts.get(contact_id), "Contact not found")
        return await self.interactions.list_for_contact(contact_id)

    # PUBLIC_INTERFACE
    async def import_contacts(self, content: bytes, filename: str) -> ImportResult:
        """
        Import contacts from a CSV or XLSX upload.

        Each row is validated on its own; bad rows are reported and skipped.
        """
        if filename.lower().endswith((".xlsx", ".xls")):
            frame = pd.read_excel(io.BytesIO(content), dtype=str, engine="openpyxl")
        else:
            frame = pd.read_csv(io.BytesIO(content), dtype=str)
        frame = frame.fillna("")
        frame.columns = [self._normalise_header(c) for c in frame.columns]

        result = ImportResult()
        known = set(ContactCreate.model_fields)
        for index, row in enumerate(frame.to_dict(orient="records"), start=1):
            data = {k: v for k, v in row.items() if k in known and v != ""}
            if isinstance(data.get("tags"), str):
                data["tags"] = [t.strip() for t in data["tags"].split(",") if t.strip()]
            try:
                contact = Contact(**ContactCreate(**data).model_dump())
                self._validate(contact)
            except (ValueError, ValidationFailedError) as exc:
                result.failed += 1
                result.errors.append(f"Row {index}: {getattr(exc, 'message', exc)}")
                continue
            await self.contacts.add(contact)
            result.imported += 1
        await self.contacts.commit()
        logger.info("Imported %d contacts (%d failed) from %s", result.imported, result.failed, filename)
        return result

    @staticmethod
    def _normalise_header(header: str) -> str:
        key = str(header).strip()
        compact = key.replace("_", "").replace(" ", "").lower()
        if compact in IMPORT_ALIASES:
            return IMPORT_ALIASES[compact]
        return key.lower().replace(" ", "_")

    # PUBLIC_INTERFACE
    async def export_contacts(self, **filters) -> pd.DataFrame:
        """Return the filtered contacts as a DataFrame for CSV/XLSX/PDF export."""
        rows = await self.get_contacts(limit=None, **filters)
        records = [{c: getattr(r, c) for c in EXPORT_COLUMNS} for r in rows]
        return pd.DataFrame.from_records(records, columns=EXPORT_COLUMNS)
