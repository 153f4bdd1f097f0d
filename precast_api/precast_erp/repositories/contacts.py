from __future__ import annotations

from typing import List
from uuid import UUID

from sqlalchemy import select

from precast_erp.db.models.contacts import Contact, ContactInteraction
from .base import ModelRepository


class ContactRepository(ModelRepository[Contact]):
    """Repository for contacts."""

    model = Contact
    search_columns = ("first_name", "last_name", "email", "company")
    default_order = ("last_name", "first_name")


class InteractionRepository(ModelRepository[ContactInteraction]):
    model = ContactInteraction
    default_order = ("-occurred_at",)

    async def list_for_contact(self, contact_id: UUID) -> List[ContactInteraction]:
        stmt = (
            select(ContactInteraction)
            .where(ContactInteraction.contact_id == contact_id)
            .order_by(ContactInteraction.occurred_at.desc())
        )
        res = await self.scalars(stmt)
        return list(res)
