from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from precast_erp.db.base import Amount, Base, JSONType, TimestampMixin, UTCDateTime, UUIDPkMixin, utcnow

EMPLOYMENT_TYPES = ("FULL_TIME", "PART_TIME", "CONTRACT", "TEMPORARY")
EMPLOYMENT_STATUSES = ("ACTIVE", "ON_LEAVE", "TERMINATED")
TIMESHEET_STATUSES = ("PENDING", "SUBMITTED", "APPROVED", "REJECTED")
LEAVE_STATUSES = ("PENDING", "APPROVED", "REJECTED", "CANCELLED")
# Leave types drawn from the yearly balance record.
BALANCE_LEAVE_TYPES = ("VACATION", "SICK", "PERSONAL")
# Leave types granted without consuming a balance.
UNTRACKED_LEAVE_TYPES = ("BEREAVEMENT", "JURY_DUTY", "MILITARY", "UNPAID")


def empty_counters() -> dict:
    return {"entitled": 0, "used": 0, "pending": 0, "remaining": 0}


class Employee(UUIDPkMixin, TimestampMixin, Base):
    """Plant or office employee."""
    __tablename__ = "employees"

    employee_code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False, default="")
    phone: Mapped[str] = mapped_column(Text, nullable=False, default="")
    department: Mapped[str] = mapped_column(Text, nullable=False, default="")
    position: Mapped[str] = mapped_column(Text, nullable=False, default="")
    employment_type: Mapped[str] = mapped_column(Text, nullable=False, default="FULL_TIME")
    employment_status: Mapped[str] = mapped_column(Text, nullable=False, default="ACTIVE")
    hire_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    termination_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    supervisor_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    hourly_rate: Mapped[Optional[float]] = mapped_column(Amount, nullable=True)
    skills: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    emergency_contact: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    custom_fields: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Certification(UUIDPkMixin, TimestampMixin, Base):
    """Professional certification held by an employee (e.g. PCI, ACI, CDL)."""
    __tablename__ = "employee_certifications"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    issuing_authority: Mapped[str] = mapped_column(Text, nullable=False, default="")
    certification_number: Mapped[str] = mapped_column(Text, nullable=False, default="")
    issue_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    expiration_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="ACTIVE")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")


class TrainingRecord(UUIDPkMixin, TimestampMixin, Base):
    """Completed or scheduled training course."""
    __tablename__ = "employee_training_records"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_name: Mapped[str] = mapped_column(Text, nullable=False)
    provider: Mapped[str] = mapped_column(Text, nullable=False, default="")
    completion_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    hours: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    score: Mapped[Optional[float]] = mapped_column(Amount, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="COMPLETED")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")


class TimeEntry(UUIDPkMixin, TimestampMixin, Base):
    """One clock-in/clock-out shift."""
    __tablename__ = "time_entries"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    clock_in: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    clock_out: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    break_start: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    break_end: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    break_minutes: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    total_hours: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    regular_hours: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    overtime_hours: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="ACTIVE")
    job_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")


class Timesheet(UUIDPkMixin, TimestampMixin, Base):
    """Pay-period summary of time entries."""
    __tablename__ = "timesheets"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_hours: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    regular_hours: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    overtime_hours: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="PENDING")
    submitted_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    approved_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")


class LeaveRequest(UUIDPkMixin, TimestampMixin, Base):
    """Request for time off measured in business days."""
    __tablename__ = "leave_requests"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    leave_type: Mapped[str] = mapped_column(Text, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    return_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    total_days: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="PENDING")
    approved_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")


class LeaveBalance(UUIDPkMixin, TimestampMixin, Base):
    """Per-employee, per-year leave counters."""
    __tablename__ = "leave_balances"
    __table_args__ = (UniqueConstraint("employee_id", "year"),)

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    year: Mapped[int] = mapped_column(nullable=False)
    vacation: Mapped[dict] = mapped_column(JSONType, nullable=False, default=empty_counters)
    sick: Mapped[dict] = mapped_column(JSONType, nullable=False, default=empty_counters)
    personal: Mapped[dict] = mapped_column(JSONType, nullable=False, default=empty_counters)
    carry_over_days: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    additional_leave_types: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    last_updated: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
