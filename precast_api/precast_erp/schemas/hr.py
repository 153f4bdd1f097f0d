from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import ORMRead


class EmployeeCreate(BaseModel):
    employee_code: Optional[str] = Field(None, description="Generated as EMP-YYYYMM-XXXX when omitted")
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = ""
    phone: str = ""
    department: str = ""
    position: str = ""
    employment_type: str = Field("FULL_TIME", description="FULL_TIME|PART_TIME|CONTRACT|TEMPORARY")
    employment_status: str = Field("ACTIVE", description="ACTIVE|ON_LEAVE|TERMINATED")
    hire_date: Optional[date] = None
    supervisor_id: Optional[UUID] = None
    hourly_rate: Optional[float] = Field(None, ge=0)
    skills: list[str] = Field(default_factory=list)
    emergency_contact: dict = Field(default_factory=dict)
    custom_fields: dict = Field(default_factory=dict)


class EmployeeUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    employment_type: Optional[str] = None
    employment_status: Optional[str] = None
    termination_date: Optional[date] = None
    supervisor_id: Optional[UUID] = None
    hourly_rate: Optional[float] = Field(None, ge=0)
    skills: Optional[list[str]] = None
    emergency_contact: Optional[dict] = None
    custom_fields: Optional[dict] = None


class EmployeeRead(ORMRead):
    employee_code: str
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: str
    department: str
    position: str
    employment_type: str
    employment_status: str
    hire_date: date
    termination_date: Optional[date] = None
    supervisor_id: Optional[UUID] = None
    hourly_rate: Optional[float] = None
    skills: list[str]
    emergency_contact: dict
    custom_fields: dict


class CertificationCreate(BaseModel):
    name: str = Field(..., min_length=1)
    issuing_authority: str = ""
    certification_number: str = ""
    issue_date: Optional[date] = None
    expiration_date: Optional[date] = None
    notes: str = ""


class CertificationRead(ORMRead):
    employee_id: UUID
    name: str
    issuing_authority: str
    certification_number: str
    issue_date: Optional[date] = None
    expiration_date: Optional[date] = None
    status: str
    notes: str


class TrainingCreate(BaseModel):
    course_name: str = Field(..., min_length=1)
    provider: str = ""
    completion_date: Optional[date] = None
    hours: float = Field(0, ge=0)
    score: Optional[float] = None
    status: str = "COMPLETED"
    notes: str = ""


class TrainingRead(ORMRead):
    employee_id: UUID
    course_name: str
    provider: str
    completion_date: Optional[date] = None
    hours: float
    score: Optional[float] = None
    status: str
    notes: str


class ClockInRequest(BaseModel):
    job_id: Optional[str] = None
    notes: str = ""


class TimeEntryRead(ORMRead):
    employee_id: UUID
    clock_in: datetime
    clock_out: Optional[datetime] = None
    break_start: Optional[datetime] = None
    break_end: Optional[datetime] = None
    break_minutes: float
    total_hours: float
    regular_hours: float
    overtime_hours: float
    status: str
    job_id: Optional[str] = None
    notes: str


class TimesheetCreate(BaseModel):
    employee_id: UUID
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: str = ""


class TimesheetSubmit(BaseModel):
    employee_id: UUID


class TimesheetApprove(BaseModel):
    approved_by: str
    notes: str = ""


class TimesheetRead(ORMRead):
    employee_id: UUID
    start_date: date
    end_date: date
    total_hours: float
    regular_hours: float
    overtime_hours: float
    status: str
    submitted_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    notes: str


class LeaveRequestCreate(BaseModel):
    employee_id: UUID
    leave_type: str = Field(..., description="VACATION|SICK|PERSONAL|BEREAVEMENT|JURY_DUTY|MILITARY|UNPAID or custom")
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    return_date: Optional[date] = None
    reason: str = ""
    notes: str = ""


class LeaveApprove(BaseModel):
    approved_by: str
    notes: str = ""


class LeaveReject(BaseModel):
    approved_by: str
    rejection_reason: str = ""


class LeaveRequestRead(ORMRead):
    employee_id: UUID
    leave_type: str
    start_date: date
    end_date: date
    return_date: Optional[date] = None
    total_days: float
    reason: str
    status: str
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    notes: str


class LeaveCounters(BaseModel):
    entitled: float = 0
    used: float = 0
    pending: float = 0
    remaining: float = 0


class LeaveBalanceRead(ORMRead):
    employee_id: UUID
    year: int
    vacation: LeaveCounters
    sick: LeaveCounters
    personal: LeaveCounters
    carry_over_days: float
    additional_leave_types: dict[str, LeaveCounters]
    last_updated: datetime


class ExpiringCertification(BaseModel):
    id: UUID
    employee_id: UUID
    employee_name: str
    department: str
    name: str
    expiration_date: date


class PendingLeave(BaseModel):
    id: UUID
    employee_id: UUID
    employee_name: str
    department: str
    leave_type: str
    start_date: date
    end_date: date
    total_days: float


class NewHire(BaseModel):
    id: UUID
    employee_code: str
    name: str
    department: str
    position: str
    hire_date: date


class HRDashboard(BaseModel):
    """Headcount, upcoming certification expiries, leave awaiting approval and this month's hires."""
    active_employees: int = 0
    employees_by_department: dict[str, int] = Field(default_factory=dict)
    employees_by_type: dict[str, int] = Field(default_factory=dict)
    expiring_certifications: list[ExpiringCertification] = Field(default_factory=list)
    pending_leave_requests: list[PendingLeave] = Field(default_factory=list)
    new_hires: list[NewHire] = Field(default_factory=list)
