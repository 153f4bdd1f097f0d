from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from precast_erp.db.base import Amount, Base, JSONType, TimestampMixin, UTCDateTime, UUIDPkMixin

LEAD_STATUSES = ("NEW", "CONTACTED", "QUALIFIED", "PROPOSAL", "NEGOTIATION", "WON", "LOST", "INACTIVE")
# Leads in these statuses were already converted or closed.
CONVERTED_LEAD_STATUSES = ("QUALIFIED", "WON", "LOST")
PRIORITIES = ("LOW", "MEDIUM", "HIGH", "URGENT")
OPPORTUNITY_STATUSES = ("OPEN", "WON", "LOST")
OPPORTUNITY_STAGES = ("QUALIFICATION", "NEEDS_ANALYSIS", "PROPOSAL", "NEGOTIATION", "CLOSED")
QUOTE_STATUSES = ("DRAFT", "SENT", "ACCEPTED", "REJECTED", "EXPIRED")
JOB_STATUSES = ("PENDING", "ACTIVE", "ON_HOLD", "COMPLETED", "CANCELLED")
CLOSED_JOB_STATUSES = ("COMPLETED", "CANCELLED")


class ContactFieldsMixin:
    """Contact details copied from the contact record."""
    contact_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    contact_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    contact_email: Mapped[str] = mapped_column(Text, nullable=False, default="")
    contact_phone: Mapped[str] = mapped_column(Text, nullable=False, default="")


class Lead(UUIDPkMixin, ContactFieldsMixin, TimestampMixin, Base):
    __tablename__ = "leads"

    lead_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="NEW")
    priority: Mapped[str] = mapped_column(Text, nullable=False, default="MEDIUM")
    type: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(Text, nullable=False, default="")
    value: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    probability: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    expected_close_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    company_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    location: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    requirements: Mapped[str] = mapped_column(Text, nullable=False, default="")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    assigned_to: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    next_steps: Mapped[str] = mapped_column(Text, nullable=False, default="")
    next_contact_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)


class Opportunity(UUIDPkMixin, ContactFieldsMixin, TimestampMixin, Base):
    __tablename__ = "opportunities"

    opportunity_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    lead_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("leads.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="OPEN")
    stage: Mapped[str] = mapped_column(Text, nullable=False, default="QUALIFICATION")
    priority: Mapped[str] = mapped_column(Text, nullable=False, default="MEDIUM")
    value: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    probability: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    expected_close_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    company_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    products: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    assigned_to: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    job_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)


class Quote(UUIDPkMixin, TimestampMixin, Base):
    __tablename__ = "quotes"

    quote_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    opportunity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("opportunities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version: Mapped[str] = mapped_column(Text, nullable=False, default="1.0")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="DRAFT")
    currency: Mapped[str] = mapped_column(Text, nullable=False, default="USD")
    line_items: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    subtotal: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    tax_rate: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    tax_amount: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    total: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    valid_until: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def recalculate(self) -> None:
        self.subtotal = round(
            sum(float(li.get("quantity") or 0) * float(li.get("unit_price") or 0) for li in self.line_items or []),
            2,
        )
        self.tax_amount = round(self.subtotal * float(self.tax_rate or 0) / 100, 2)
        self.total = round(self.subtotal + self.tax_amount, 2)


class Job(UUIDPkMixin, ContactFieldsMixin, TimestampMixin, Base):
    """Won work handed over to production."""
    __tablename__ = "jobs"

    job_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    opportunity_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("opportunities.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="PENDING")
    client_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    contract_value: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    start_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    location: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    target_completion_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    actual_completion_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    actual_hours: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    completed_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    cancelled_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    cancellation_reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
