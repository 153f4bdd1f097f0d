from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from precast_erp.db.base import Amount, Base, JSONType, TimestampMixin, UTCDateTime, UUIDPkMixin

ESTIMATE_STATUSES = ("draft", "sent", "approved", "rejected", "expired")


class Estimate(UUIDPkMixin, TimestampMixin, Base):
    """Priced proposal for a client project; totals derive from line items."""
    __tablename__ = "estimates"

    estimate_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    project_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="draft")
    issue_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    line_items: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    subtotal: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    tax_rate: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    tax_amount: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    discount: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    total: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    terms: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sent_to: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    approved_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    custom_fields: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    def recalculate(self) -> "Estimate":
        """Refresh subtotal, tax and total from the line items."""
        subtotal = sum(
            float(item.get("quantity") or 0) * float(item.get("unit_price") or 0)
            for item in (self.line_items or [])
        )
        discount = float(self.discount or 0)
        tax_amount = (subtotal - discount) * (float(self.tax_rate or 0) / 100)
        self.subtotal = round(subtotal, 4)
        self.tax_amount = round(tax_amount, 4)
        self.total = round(subtotal - discount + tax_amount, 4)
        return self
