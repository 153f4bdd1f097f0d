from __future__ import annotations

import logging
import math
from collections import Counter
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional
from uuid import UUID

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.errors import ConflictError, NotFoundError, ValidationFailedError
from precast_erp.db.base import utcnow
from precast_erp.db.models.hr import (
    BALANCE_LEAVE_TYPES,
    EMPLOYMENT_STATUSES,
    EMPLOYMENT_TYPES,
    UNTRACKED_LEAVE_TYPES,
    Certification,
    Employee,
    LeaveBalance,
    LeaveRequest,
    TimeEntry,
    Timesheet,
    TrainingRecord,
)
from precast_erp.repositories.hr import (
    CertificationRepository,
    EmployeeRepository,
    LeaveBalanceRepository,
    LeaveRequestRepository,
    TimeEntryRepository,
    TimesheetRepository,
    TrainingRepository,
)
from precast_erp.schemas.hr import (
    CertificationCreate,
    ClockInRequest,
    EmployeeCreate,
    EmployeeUpdate,
    ExpiringCertification,
    HRDashboard,
    LeaveRequestCreate,
    NewHire,
    PendingLeave,
    TimesheetCreate,
    TrainingCreate,
)
from precast_erp.services.base import BaseService

logger = logging.getLogger(__name__)

# Yearly (vacation, sick, personal) days by employment type.
LEAVE_ENTITLEMENTS = {
    "FULL_TIME": (10, 5, 3),
    "PART_TIME": (5, 3, 1),
    "CONTRACT": (0, 0, 0),
    "TEMPORARY": (0, 0, 0),
}
REGULAR_HOURS_PER_DAY = 8.0
# Certifications expiring within this many days show on the dashboard.
CERTIFICATION_WARNING_DAYS = 90


def calculate_business_days(start: date, end: date) -> int:
    """Days from start to end inclusive, not counting Saturdays and Sundays."""
    days = 0
    current = start
    while current <= end:
        if current.weekday() < 5:
            days += 1
        current += timedelta(days=1)
    return days


def prorated_entitlement(entitled: float, hire_date: date, year: int) -> int:
    """Full entitlement, or the share left in the year for employees hired during it."""
    if hire_date.year != year:
        return int(entitled)
    day_of_year = hire_date.timetuple().tm_yday
    # half-up, not banker's rounding
    return int(math.floor(entitled * (365 - day_of_year) / 365 + 0.5))


def _fmt(days: float) -> str:
    return f"{days:g}"


def _day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    return (
        datetime.combine(start, time.min, tzinfo=timezone.utc),
        datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc),
    )


class HRService(BaseService):
    """
    Employees, certifications, training, time tracking and leave.

    Leave balances hold `{entitled, used, pending, remaining}` per leave type:
    a request moves days into `pending`, approval moves them to `used`, and a
    rejection gives them back to `remaining`.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.employees = EmployeeRepository(session)
        self.certifications = CertificationRepository(session)
        self.training = TrainingRepository(session)
        self.time_entries = TimeEntryRepository(session)
        self.timesheets = TimesheetRepository(session)
        self.leave_requests = LeaveRequestRepository(session)
        self.balances = LeaveBalanceRepository(session)

    async def _employee(self, employee_id: UUID) -> Employee:
        return self.require(await self.employees.get(employee_id), "Employee not found")

    # Employees

    async def get_employees(
        self,
        *,
        department: Optional[str] = None,
        position: Optional[str] = None,
        employment_type: Optional[str] = None,
        employment_status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Employee]:
        return await self.employees.list(
            filters={
                "department": department,
                "position": position,
                "employment_type": employment_type,
                "employment_status": employment_status,
            },
            search=search,
            limit=limit,
            offset=offset,
        )

    async def get_employee_by_id(self, employee_id: UUID) -> Optional[Employee]:
        return await self.employees.get(employee_id)

    # PUBLIC_INTERFACE
    async def create_employee(self, payload: EmployeeCreate) -> Employee:
        """Create an employee together with the current year's leave balance."""
        data = payload.model_dump(exclude_none=True)
        if not data.get("employee_code"):
            data["employee_code"] = await self.next_number(
                Employee.employee_code, f"EMP-{utcnow():%Y%m}-"
            )
        employee = Employee(**data)
        self.check_choice(employee.employment_type, EMPLOYMENT_TYPES, "employment type")
        self.check_choice(employee.employment_status, EMPLOYMENT_STATUSES, "employment status")
        await self.employees.add(employee)
        await self.employees.flush()
        await self.balances.add(self._new_balance(employee, date.today().year))
        await self.employees.commit()
        logger.info("Created employee %s (%s)", employee.employee_code, employee.full_name)
        return employee

    async def update_employee(self, employee_id: UUID, payload: EmployeeUpdate) -> Optional[Employee]:
        employee = await self.employees.get(employee_id)
        if employee is None:
            return None
        self.apply_patch(employee, payload.model_dump(exclude_unset=True))
        self.check_choice(employee.employment_type, EMPLOYMENT_TYPES, "employment type")
        self.check_choice(employee.employment_status, EMPLOYMENT_STATUSES, "employment status")
        return await self.employees.save(employee)

    # Certifications and training

    async def get_certifications(self, employee_id: UUID) -> List[Certification]:
        await self._employee(employee_id)
        rows = await self.certifications.list(filters={"employee_id": employee_id}, limit=None)
        today = date.today()
        for cert in rows:
            if cert.status == "ACTIVE" and cert.expiration_date and cert.expiration_date < today:
                cert.status = "EXPIRED"
        if self.session.dirty:
            await self.certifications.commit()
        return rows

    async def add_certification(self, employee_id: UUID, payload: CertificationCreate) -> Certification:
        await self._employee(employee_id)
        cert = Certification(employee_id=employee_id, **payload.model_dump())
        if cert.expiration_date and cert.expiration_date < date.today():
            cert.status = "EXPIRED"
        return await self.certifications.create(cert)

    async def get_training_records(self, employee_id: UUID) -> List[TrainingRecord]:
        await self._employee(employee_id)
        return await self.training.list(filters={"employee_id": employee_id}, limit=None)

    async def add_training_record(self, employee_id: UUID, payload: TrainingCreate) -> TrainingRecord:
        await self._employee(employee_id)
        return await self.training.create(TrainingRecord(employee_id=employee_id, **payload.model_dump()))

    # Time tracking

    async def get_time_entries(
        self,
        *,
        employee_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[str] = None,
    ) -> List[TimeEntry]:
        where = []
        if start_date:
            where.append(TimeEntry.clock_in >= _day_bounds(start_date, start_date)[0])
        if end_date:
            where.append(TimeEntry.clock_in < _day_bounds(end_date, end_date)[1])
        return await self.time_entries.list(
            filters={"employee_id": employee_id, "status": status}, where=where, limit=None
        )

    async def _active_entry(self, employee_id: UUID) -> TimeEntry:
        entry = await self.time_entries.get_active(employee_id)
        if entry is None:
            raise ConflictError("No active clock-in found")
        return entry

    # PUBLIC_INTERFACE
    async def clock_in(self, employee_id: UUID, payload: Optional[ClockInRequest] = None) -> TimeEntry:
        await self._employee(employee_id)
        if await self.time_entries.get_active(employee_id) is not None:
            raise ConflictError("Employee already clocked in")
        payload = payload or ClockInRequest()
        entry = TimeEntry(employee_id=employee_id, clock_in=utcnow(), job_id=payload.job_id, notes=payload.notes)
        return await self.time_entries.create(entry)

    # PUBLIC_INTERFACE
    async def clock_out(self, employee_id: UUID, now: Optional[datetime] = None) -> TimeEntry:
        """
        Close the active entry. Worked hours exclude breaks; the first eight
        are regular, the rest overtime. An open break ends at clock-out.
        """
        entry = await self._active_entry(employee_id)
        now = now or utcnow()
        if entry.break_start and not entry.break_end:
            entry.break_end = now
            entry.break_minutes = (entry.break_minutes or 0) + (now - entry.break_start).total_seconds() / 60
        total = max(0.0, (now - entry.clock_in).total_seconds() / 3600 - (entry.break_minutes or 0) / 60)
        entry.clock_out = now
        entry.total_hours = round(total, 2)
        entry.regular_hours = round(min(total, REGULAR_HOURS_PER_DAY), 2)
        entry.overtime_hours = round(max(0.0, total - REGULAR_HOURS_PER_DAY), 2)
        entry.status = "COMPLETED"
        logger.info("Employee %s clocked out after %.2f hours", employee_id, entry.total_hours)
        return await self.time_entries.save(entry)

    # PUBLIC_INTERFACE
    async def start_break(self, employee_id: UUID) -> TimeEntry:
        entry = await self._active_entry(employee_id)
        if entry.break_start and not entry.break_end:
            raise ConflictError("Break already started")
        entry.break_start = utcnow()
        entry.break_end = None
        return await self.time_entries.save(entry)

    # PUBLIC_INTERFACE
    async def end_break(self, employee_id: UUID) -> TimeEntry:
        entry = await self.time_entries.get_active(employee_id)
        if entry is None or not entry.break_start or entry.break_end:
            raise ConflictError("No active break found")
        now = utcnow()
        entry.break_end = now
        entry.break_minutes = (entry.break_minutes or 0) + (now - entry.break_start).total_seconds() / 60
        return await self.time_entries.save(entry)

    # Timesheets

    async def get_timesheets(
        self, *, employee_id: Optional[UUID] = None, status: Optional[str] = None
    ) -> List[Timesheet]:
        return await self.timesheets.list(filters={"employee_id": employee_id, "status": status}, limit=None)

    # PUBLIC_INTERFACE
    async def create_timesheet(self, payload: TimesheetCreate) -> Timesheet:
        """Summarise the completed time entries of a period into a pending timesheet."""
        if not payload.start_date or not payload.end_date:
            raise ValidationFailedError("Start date and end date are required")
        if payload.start_date > payload.end_date:
            raise ValidationFailedError("Start date must be before end date")
        await self._employee(payload.employee_id)
        if await self.timesheets.find_overlapping(payload.employee_id, payload.start_date, payload.end_date):
            raise ConflictError("A timesheet already exists for this period")

        entries = await self.get_time_entries(
            employee_id=payload.employee_id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            status="COMPLETED",
        )
        timesheet = Timesheet(
            employee_id=payload.employee_id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            total_hours=round(sum(e.total_hours or 0 for e in entries), 2),
            regular_hours=round(sum(e.regular_hours or 0 for e in entries), 2),
            overtime_hours=round(sum(e.overtime_hours or 0 for e in entries), 2),
            notes=payload.notes,
        )
        return await self.timesheets.create(timesheet)

    # PUBLIC_INTERFACE
    async def submit_timesheet(self, timesheet_id: UUID, employee_id: UUID) -> Timesheet:
        timesheet = await self.timesheets.get(timesheet_id)
        if timesheet is None or timesheet.employee_id != employee_id:
            raise NotFoundError("Timesheet not found or does not belong to this employee")
        if timesheet.status != "PENDING":
            raise ConflictError("Timesheet has already been submitted")
        timesheet.status = "SUBMITTED"
        timesheet.submitted_at = utcnow()
        return await self.timesheets.save(timesheet)

    # PUBLIC_INTERFACE
    async def approve_timesheet(self, timesheet_id: UUID, approved_by: str, notes: str = "") -> Timesheet:
        timesheet = self.require(await self.timesheets.get(timesheet_id), "Timesheet not found")
        if timesheet.status != "SUBMITTED":
            raise ConflictError("Timesheet must be submitted before approval")
        timesheet.status = "APPROVED"
        timesheet.approved_by = approved_by
        timesheet.approved_at = utcnow()
        if notes:
            timesheet.notes = f"{timesheet.notes or ''}\nApproval notes: {notes}"
        return await self.timesheets.save(timesheet)

    # Leave

    @staticmethod
    def _new_balance(employee: Employee, year: int) -> LeaveBalance:
        hire_date = employee.hire_date or date.today()
        entitled = LEAVE_ENTITLEMENTS.get(employee.employment_type, (0, 0, 0))
        counters = {}
        for key, days in zip(("vacation", "sick", "personal"), entitled):
            days = prorated_entitlement(days, hire_date, year)
            counters[key] = {"entitled": days, "used": 0, "pending": 0, "remaining": days}
        return LeaveBalance(employee_id=employee.id, year=year, **counters)

    @staticmethod
    def _counters(balance: LeaveBalance, leave_type: str) -> Optional[dict]:
        if leave_type in BALANCE_LEAVE_TYPES:
            return dict(getattr(balance, leave_type.lower()) or {})
        extra = (balance.additional_leave_types or {}).get(leave_type)
        return dict(extra) if extra is not None else None

    @staticmethod
    def _store_counters(balance: LeaveBalance, leave_type: str, counters: dict) -> None:
        if leave_type in BALANCE_LEAVE_TYPES:
            setattr(balance, leave_type.lower(), counters)
        else:
            balance.additional_leave_types = {**(balance.additional_leave_types or {}), leave_type: counters}
        balance.last_updated = utcnow()

    def _adjust_balance(self, balance: LeaveBalance, leave_type: str, **deltas: float) -> None:
        counters = self._counters(balance, leave_type)
        if counters is None:
            return
        for key, delta in deltas.items():
            counters[key] = (counters.get(key) or 0) + delta
        self._store_counters(balance, leave_type, counters)

    # PUBLIC_INTERFACE
    async def get_employee_leave_balance(self, employee_id: UUID, year: Optional[int] = None) -> LeaveBalance:
        """Balance for the given (default current) year, created on first access."""
        year = year or date.today().year
        balance = await self.balances.for_year(employee_id, year)
        if balance is None:
            employee = await self._employee(employee_id)
            balance = await self.balances.create(self._new_balance(employee, year))
        return balance

    async def get_leave_requests(
        self,
        *,
        employee_id: Optional[UUID] = None,
        status: Optional[str] = None,
        leave_type: Optional[str] = None,
    ) -> List[LeaveRequest]:
        return await self.leave_requests.list(
            filters={"employee_id": employee_id, "status": status, "leave_type": leave_type}, limit=None
        )

    # PUBLIC_INTERFACE
    async def request_leave(self, payload: LeaveRequestCreate) -> LeaveRequest:
        if not payload.start_date or not payload.end_date:
            raise ValidationFailedError("Start date and end date are required")
        if payload.start_date > payload.end_date:
            raise ValidationFailedError("Start date must be before end date")
        total_days = calculate_business_days(payload.start_date, payload.end_date)
        if total_days == 0:
            raise ValidationFailedError("Leave request must include at least one business day")

        balance = await self.get_employee_leave_balance(payload.employee_id, payload.start_date.year)
        if payload.leave_type not in UNTRACKED_LEAVE_TYPES:
            counters = self._counters(balance, payload.leave_type) or {}
            available = counters.get("remaining") or 0
            if total_days > available:
                raise ValidationFailedError(
                    f"Insufficient leave balance. Available: {_fmt(available)}, Requested: {_fmt(total_days)}"
                )

        request = LeaveRequest(
            employee_id=payload.employee_id,
            leave_type=payload.leave_type,
            start_date=payload.start_date,
            end_date=payload.end_date,
            return_date=payload.return_date or payload.end_date + timedelta(days=1),
            total_days=total_days,
            reason=payload.reason,
            notes=payload.notes,
        )
        await self.leave_requests.add(request)
        self._adjust_balance(balance, payload.leave_type, pending=total_days, remaining=-total_days)
        await self.leave_requests.commit()
        logger.info("Leave requested by %s: %s x%d", payload.employee_id, payload.leave_type, total_days)
        return request

    async def _pending_request(self, request_id: UUID) -> LeaveRequest:
        request = self.require(await self.leave_requests.get(request_id), "Leave request not found")
        if request.status != "PENDING":
            raise ConflictError("Leave request is not in pending status")
        return request

    # PUBLIC_INTERFACE
    async def approve_leave_request(self, request_id: UUID, approved_by: str, notes: str = "") -> LeaveRequest:
        request = await self._pending_request(request_id)
        request.status = "APPROVED"
        request.approved_by = approved_by
        request.approved_at = utcnow()
        if notes:
            request.notes = f"{request.notes or ''}\nApproval notes: {notes}"
        balance = await self.get_employee_leave_balance(request.employee_id, request.start_date.year)
        self._adjust_balance(balance, request.leave_type, used=request.total_days, pending=-request.total_days)
        await self.leave_requests.commit()
        return request

    # PUBLIC_INTERFACE
    async def reject_leave_request(self, request_id: UUID, approved_by: str, rejection_reason: str) -> LeaveRequest:
        request = await self._pending_request(request_id)
        if not rejection_reason:
            raise ValidationFailedError("Rejection reason is required")
        request.status = "REJECTED"
        request.approved_by = approved_by
        request.approved_at = utcnow()
        request.rejection_reason = rejection_reason
        balance = await self.get_employee_leave_balance(request.employee_id, request.start_date.year)
        self._adjust_balance(balance, request.leave_type, pending=-request.total_days, remaining=request.total_days)
        await self.leave_requests.commit()
        return request

    async def leave_balance_report(self, year: Optional[int] = None) -> pd.DataFrame:
        year = year or date.today().year
        employees = {e.id: e for e in await self.employees.list(limit=None)}
        rows = []
        for balance in await self.balances.list_for_year(year):
            employee = employees.get(balance.employee_id)
            row = {
                "employee_code": employee.employee_code if employee else "",
                "employee": employee.full_name if employee else str(balance.employee_id),
                "year": balance.year,
            }
            for kind in ("vacation", "sick", "personal"):
                counters = getattr(balance, kind) or {}
                for key in ("entitled", "used", "pending", "remaining"):
                    row[f"{kind}_{key}"] = counters.get(key, 0)
            rows.append(row)
        columns = ["employee_code", "employee", "year"] + [
            f"{kind}_{key}"
            for kind in ("vacation", "sick", "personal")
            for key in ("entitled", "used", "pending", "remaining")
        ]
        return pd.DataFrame(rows, columns=columns).sort_values("employee_code", ignore_index=True)

    # PUBLIC_INTERFACE
    async def get_dashboard(self, today: Optional[date] = None, limit: int = 10) -> HRDashboard:
        """
        Active headcount by department and employment type, ACTIVE certifications
        expiring in the next 90 days, the oldest pending leave requests and the
        employees hired this month.
        """
        today = today or date.today()
        employees = await self.employees.list(limit=None)
        by_id = {e.id: e for e in employees}
        active = [e for e in employees if e.employment_status == "ACTIVE"]

        certifications = await self.certifications.list(
            filters={"status": "ACTIVE"},
            where=[
                Certification.expiration_date >= today,
                Certification.expiration_date <= today + timedelta(days=CERTIFICATION_WARNING_DAYS),
            ],
            limit=limit,
        )
        pending = await self.leave_requests.list(filters={"status": "PENDING"}, order=("start_date",), limit=limit)
        month_start = today.replace(day=1)
        hires = [e for e in employees if month_start <= e.hire_date <= today]

        def who(employee_id: UUID) -> tuple[str, str]:
            employee = by_id.get(employee_id)
            return (employee.full_name, employee.department) if employee else ("", "")

        return HRDashboard(
            active_employees=len(active),
            employees_by_department=dict(Counter(e.department or "Unassigned" for e in active)),
            employees_by_type=dict(Counter(e.employment_type for e in active)),
            expiring_certifications=[
                ExpiringCertification(
                    id=c.id,
                    employee_id=c.employee_id,
                    employee_name=who(c.employee_id)[0],
                    department=who(c.employee_id)[1],
                    name=c.name,
                    expiration_date=c.expiration_date,
                )
                for c in certifications
            ],
            pending_leave_requests=[
                PendingLeave(
                    id=r.id,
                    employee_id=r.employee_id,
                    employee_name=who(r.employee_id)[0],
                    department=who(r.employee_id)[1],
                    leave_type=r.leave_type,
                    start_date=r.start_date,
                    end_date=r.end_date,
                    total_days=r.total_days,
                )
                for r in pending
            ],
            new_hires=[
                NewHire(
                    id=e.id,
                    employee_code=e.employee_code,
                    name=e.full_name,
                    department=e.department,
                    position=e.position,
                    hire_date=e.hire_date,
                )
                for e in sorted(hires, key=lambda e: e.hire_date, reverse=True)
            ],
        )
