from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from precast_erp.db.base import Base, JSONType, TimestampMixin, UTCDateTime, UUIDPkMixin, utcnow

CONTACT_TYPES = ("client", "vendor", "partner", "lead", "prospect", "other")
CONTACT_STATUSES = ("active", "inactive", "archived")
INTERACTION_TYPES = ("call", "email", "meeting", "note", "other")


class Contact(UUIDPkMixin, TimestampMixin, Base):
    """Person or organisation the business deals with."""
    __tablename__ = "contacts"

    first_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    last_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    email: Mapped[str] = mapped_column(Text, nullable=False, default="", index=True)
    phone: Mapped[str] = mapped_column(Text, nullable=False, default="")
    company: Mapped[str] = mapped_column(Text, nullable=False, default="")
    position: Mapped[str] = mapped_column(Text, nullable=False, default="")
    address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    city: Mapped[str] = mapped_column(Text, nullable=False, default="")
    state: Mapped[str] = mapped_column(Text, nullable=False, default="")
    zip: Mapped[str] = mapped_column(Text, nullable=False, default="")
    country: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(Text, nullable=False, default="client")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    last_contacted_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    custom_fields: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def formatted_address(self) -> str:
        parts = [self.address, self.city, self.state, self.zip, self.country]
        return ", ".join(p for p in parts if p)


class ContactInteraction(UUIDPkMixin, TimestampMixin, Base):
    """Logged call, e-mail, meeting or note against a contact."""
    __tablename__ = "contact_interactions"

    contact_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(Text, nullable=False, default="note")
    subject: Mapped[str] = mapped_column(Text, nullable=False, default="")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    occurred_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
