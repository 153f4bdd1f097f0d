from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from precast_erp.db.models.hr import (
    Certification,
    Employee,
    LeaveBalance,
    LeaveRequest,
    TimeEntry,
    Timesheet,
    TrainingRecord,
)
from .base import ModelRepository


class EmployeeRepository(ModelRepository[Employee]):
    model = Employee
    search_columns = ("first_name", "last_name", "email", "employee_code", "position")
    default_order = ("last_name", "first_name")


class CertificationRepository(ModelRepository[Certification]):
    model = Certification
    default_order = ("expiration_date",)


class TrainingRepository(ModelRepository[TrainingRecord]):
    model = TrainingRecord
    default_order = ("-completion_date",)


class TimeEntryRepository(ModelRepository[TimeEntry]):
    model = TimeEntry
    default_order = ("-clock_in",)

    async def get_active(self, employee_id: UUID) -> Optional[TimeEntry]:
        """The open (not clocked-out) entry of an employee, if any."""
        stmt = (
            select(TimeEntry)
            .where(TimeEntry.employee_id == employee_id, TimeEntry.status == "ACTIVE")
            .order_by(TimeEntry.clock_in.desc())
            .limit(1)
        )
        return await self.scalar_one_or_none(stmt)


class TimesheetRepository(ModelRepository[Timesheet]):
    model = Timesheet
    default_order = ("-start_date",)

    async def find_overlapping(self, employee_id: UUID, start: date, end: date) -> Optional[Timesheet]:
        stmt = (
            select(Timesheet)
            .where(
                Timesheet.employee_id == employee_id,
                Timesheet.start_date <= end,
                Timesheet.end_date >= start,
            )
            .limit(1)
        )
        return await self.scalar_one_or_none(stmt)


class LeaveRequestRepository(ModelRepository[LeaveRequest]):
    model = LeaveRequest
    default_order = ("-start_date",)


class LeaveBalanceRepository(ModelRepository[LeaveBalance]):
    model = LeaveBalance

    async def for_year(self, employee_id: UUID, year: int) -> Optional[LeaveBalance]:
        stmt = select(LeaveBalance).where(LeaveBalance.employee_id == employee_id, LeaveBalance.year == year)
        return await self.scalar_one_or_none(stmt)

    async def list_for_year(self, year: int) -> List[LeaveBalance]:
        res = await self.scalars(select(LeaveBalance).where(LeaveBalance.year == year))
        return list(res)
