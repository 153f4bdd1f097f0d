from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from precast_erp.db.base import Amount, Base, JSONType, TimestampMixin, UTCDateTime, UUIDPkMixin

INSPECTION_TYPES = ("PRE_POUR", "POST_POUR", "FINAL", "SPECIAL")
INSPECTION_STATUSES = ("PENDING", "IN_PROGRESS", "PASSED", "FAILED", "WAIVED")
CHECKLIST_STATUSES = ("PENDING", "PASS", "FAIL", "N/A")
PIECE_STATUSES = ("PLANNED", "CAST", "QC_APPROVED", "QC_REJECTED", "IN_YARD", "READY_FOR_SHIPPING", "SHIPPED")
# Pieces in these statuses may be released for shipping.
SHIPPABLE_PIECE_STATUSES = ("QC_APPROVED", "IN_YARD", "READY_FOR_SHIPPING")
DEFECT_SEVERITIES = ("MINOR", "NORMAL", "MAJOR", "CRITICAL")
DEFECT_STATUS_TRANSITIONS = {
    "OPEN": ("IN_REVIEW", "APPROVED_FOR_REPAIR", "REJECTED", "CLOSED"),
    "IN_REVIEW": ("APPROVED_FOR_REPAIR", "REJECTED", "OPEN"),
    "APPROVED_FOR_REPAIR": ("REPAIRED", "REJECTED"),
    "REPAIRED": ("CLOSED", "OPEN"),
    "REJECTED": (),
    "CLOSED": (),
}


class Piece(UUIDPkMixin, TimestampMixin, Base):
    """Precast piece produced for a job."""
    __tablename__ = "pieces"

    piece_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    job_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    piece_type: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="PLANNED")
    weight: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    volume: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    yard_location_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    scheduled_ship_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    ready_for_shipping_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    shipping_notes: Mapped[str] = mapped_column(Text, nullable=False, default="")


class QCInspection(UUIDPkMixin, TimestampMixin, Base):
    """Inspection of a piece with checklist and dimensional measurements."""
    __tablename__ = "qc_inspections"

    inspection_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="PENDING")
    piece_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("pieces.id"), nullable=True, index=True
    )
    job_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    inspector_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scheduled_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    completed_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    checklist_items: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    measurements: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")


class QCDefect(UUIDPkMixin, TimestampMixin, Base):
    """Defect found during an inspection."""
    __tablename__ = "qc_defects"

    defect_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    inspection_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("qc_inspections.id", ondelete="SET NULL"), nullable=True, index=True
    )
    piece_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(Text, nullable=False, default="NORMAL")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="OPEN")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    location_on_piece: Mapped[str] = mapped_column(Text, nullable=False, default="")
    repair_method: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)


class MixDesign(UUIDPkMixin, TimestampMixin, Base):
    """Concrete mix design."""
    __tablename__ = "mix_designs"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    strength_psi: Mapped[float] = mapped_column(Amount, nullable=False)
    slump: Mapped[Optional[float]] = mapped_column(Amount, nullable=True)
    air_content: Mapped[Optional[float]] = mapped_column(Amount, nullable=True)
    water_cement_ratio: Mapped[Optional[float]] = mapped_column(Amount, nullable=True)
    components: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="ACTIVE")


class TestResult(UUIDPkMixin, TimestampMixin, Base):
    """Lab test (cylinder break, slump, air) against a mix design or piece."""
    __tablename__ = "qc_test_results"
    # keep pytest from collecting the model
    __test__ = False

    mix_design_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("mix_designs.id"), nullable=True, index=True
    )
    piece_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    test_type: Mapped[str] = mapped_column(Text, nullable=False)
    test_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    age_days: Mapped[Optional[int]] = mapped_column(nullable=True)
    value: Mapped[float] = mapped_column(Amount, nullable=False)
    unit: Mapped[str] = mapped_column(Text, nullable=False, default="psi")
    required_value: Mapped[Optional[float]] = mapped_column(Amount, nullable=True)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
