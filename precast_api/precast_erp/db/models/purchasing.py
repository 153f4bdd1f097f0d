from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from precast_erp.db.base import Amount, Base, JSONType, TimestampMixin, UTCDateTime, UUIDPkMixin, utcnow

VENDOR_STATUSES = ("ACTIVE", "INACTIVE", "PENDING_APPROVAL", "SUSPENDED", "BLACKLISTED")

PO_STATUS_TRANSITIONS = {
    "DRAFT": ("PENDING_APPROVAL", "APPROVED", "CANCELLED"),
    "PENDING_APPROVAL": ("APPROVED", "DRAFT", "CANCELLED"),
    "APPROVED": ("SENT", "CANCELLED"),
    "SENT": ("ACKNOWLEDGED", "CANCELLED"),
    "ACKNOWLEDGED": ("PARTIALLY_RECEIVED", "RECEIVED", "CANCELLED"),
    "PARTIALLY_RECEIVED": ("RECEIVED", "CANCELLED"),
    "RECEIVED": ("CLOSED",),
    "CANCELLED": ("DRAFT",),
    "CLOSED": (),
}
RECEIVABLE_PO_STATUSES = ("APPROVED", "SENT", "ACKNOWLEDGED", "PARTIALLY_RECEIVED")
PO_ITEM_STATUSES = ("PENDING", "PARTIALLY_RECEIVED", "RECEIVED", "CANCELLED")
RECEIVING_STATUSES = ("PENDING_INSPECTION", "INSPECTED", "ACCEPTED", "REJECTED")


def empty_receiving_status() -> dict:
    return {
        "fully_received": False,
        "partially_received": False,
        "received_items": 0,
        "total_items": 0,
        "last_receipt_date": None,
    }


class Vendor(UUIDPkMixin, TimestampMixin, Base):
    """Supplier of materials (cement, aggregate, rebar, strand, embeds...)."""
    __tablename__ = "vendors"

    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    contact_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    email: Mapped[str] = mapped_column(Text, nullable=False, default="")
    phone: Mapped[str] = mapped_column(Text, nullable=False, default="")
    address: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    category: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="ACTIVE")
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    payment_terms: Mapped[str] = mapped_column(Text, nullable=False, default="NET30")
    currency: Mapped[str] = mapped_column(Text, nullable=False, default="USD")
    rating: Mapped[Optional[float]] = mapped_column(Amount, nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    certifications: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)


class VendorStatusLog(UUIDPkMixin, TimestampMixin, Base):
    """Audit trail of vendor status changes."""
    __tablename__ = "vendor_status_logs"

    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    old_status: Mapped[str] = mapped_column(Text, nullable=False)
    new_status: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    changed_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class PurchaseOrder(UUIDPkMixin, TimestampMixin, Base):
    """Purchase order header with receiving rollup."""
    __tablename__ = "purchase_orders"

    po_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vendors.id"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(Text, nullable=False, default="STANDARD")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="DRAFT")
    priority: Mapped[str] = mapped_column(Text, nullable=False, default="NORMAL")
    order_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    expected_delivery_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    currency: Mapped[str] = mapped_column(Text, nullable=False, default="USD")
    subtotal: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    tax_amount: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    discount_amount: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    shipping_cost: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    total_amount: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    shipping_address: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    approval_workflow: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    receiving_status: Mapped[dict] = mapped_column(
        JSONType, nullable=False, default=empty_receiving_status
    )
    invoice_status: Mapped[str] = mapped_column(Text, nullable=False, default="NOT_INVOICED")
    payment_status: Mapped[str] = mapped_column(Text, nullable=False, default="NOT_PAID")
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class PurchaseOrderItem(UUIDPkMixin, TimestampMixin, Base):
    """Purchase order line item."""
    __tablename__ = "purchase_order_items"

    purchase_order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    line_no: Mapped[int] = mapped_column(nullable=False, default=1)
    material_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    quantity: Mapped[float] = mapped_column(Amount, nullable=False)
    unit: Mapped[str] = mapped_column(Text, nullable=False, default="EA")
    unit_price: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    tax_amount: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    discount_amount: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    total_price: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    received_quantity: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    rejected_quantity: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="PENDING")


class ReceivingRecord(UUIDPkMixin, TimestampMixin, Base):
    """Physical receipt of goods against a purchase order."""
    __tablename__ = "receiving_records"

    receipt_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    purchase_order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    received_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    received_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="PENDING_INSPECTION")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")


class ReceivingItem(UUIDPkMixin, TimestampMixin, Base):
    """Per-line quantities of one receipt."""
    __tablename__ = "receiving_items"

    receiving_record_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("receiving_records.id", ondelete="CASCADE"), nullable=False, index=True
    )
    purchase_order_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("purchase_order_items.id", ondelete="CASCADE"), nullable=False
    )
    received_quantity: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    rejected_quantity: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    inspection_status: Mapped[str] = mapped_column(Text, nullable=False, default="PENDING")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
