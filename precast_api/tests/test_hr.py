from __future__ import annotations

from datetime import date, timedelta
from uuid import uuid4

import pytest

from precast_erp.core.errors import ConflictError, NotFoundError, ValidationFailedError
from precast_erp.db.base import utcnow
from precast_erp.schemas.hr import (
    CertificationCreate,
    ClockInRequest,
    EmployeeCreate,
    LeaveRequestCreate,
    TimesheetCreate,
)
from precast_erp.services.hr import HRService, calculate_business_days, prorated_entitlement

# Mon 2025-03-03 .. Fri 2025-03-07
MONDAY = date(2025, 3, 3)
FRIDAY = date(2025, 3, 7)
SATURDAY = date(2025, 3, 8)


def test_business_days_skip_weekends():
    assert calculate_business_days(MONDAY, FRIDAY) == 5
    assert calculate_business_days(SATURDAY, SATURDAY) == 0
    assert calculate_business_days(MONDAY, date(2025, 3, 10)) == 6


def test_prorated_entitlement():
    assert prorated_entitlement(10, date(2020, 6, 1), 2025) == 10
    # hired on day 182 of 2025: 10 * 183 / 365 = 5.01
    assert prorated_entitlement(10, date(2025, 7, 1), 2025) == 5


@pytest.fixture
async def employee(session):
    return await HRService(session).create_employee(
        EmployeeCreate(first_name="Ana", last_name="Silva", hire_date=date(2020, 1, 6))
    )


async def test_create_employee_generates_code_and_balance(session, employee):
    assert employee.employee_code.startswith("EMP-")
    balance = await HRService(session).get_employee_leave_balance(employee.id)
    assert balance.vacation == {"entitled": 10, "used": 0, "pending": 0, "remaining": 10}
    assert balance.sick["remaining"] == 5


async def test_leave_request_then_approve(session, employee):
    service = HRService(session)
    request = await service.request_leave(
        LeaveRequestCreate(employee_id=employee.id, leave_type="VACATION", start_date=MONDAY, end_date=FRIDAY)
    )
    assert request.total_days == 5
    assert request.status == "PENDING"
    balance = await service.get_employee_leave_balance(employee.id, 2025)
    assert balance.vacation["pending"] == 5
    assert balance.vacation["remaining"] == 5

    await service.approve_leave_request(request.id, approved_by="manager")
    balance = await service.get_employee_leave_balance(employee.id, 2025)
    assert balance.vacation["used"] == 5
    assert balance.vacation["pending"] == 0
    assert balance.vacation["remaining"] == 5


async def test_leave_request_then_reject_restores_balance(session, employee):
    service = HRService(session)
    request = await service.request_leave(
        LeaveRequestCreate(employee_id=employee.id, leave_type="SICK", start_date=MONDAY, end_date=date(2025, 3, 4))
    )
    rejected = await service.reject_leave_request(request.id, approved_by="manager", rejection_reason="Busy week")
    assert rejected.status == "REJECTED"
    balance = await service.get_employee_leave_balance(employee.id, 2025)
    assert balance.sick["remaining"] == 5
    assert balance.sick["pending"] == 0

    with pytest.raises(ConflictError, match="not in pending status"):
        await service.approve_leave_request(request.id, approved_by="manager")


async def test_leave_request_validation(session, employee):
    service = HRService(session)
    with pytest.raises(ValidationFailedError, match="at least one business day"):
        await service.request_leave(
            LeaveRequestCreate(
                employee_id=employee.id, leave_type="VACATION", start_date=SATURDAY, end_date=SATURDAY
            )
        )
    with pytest.raises(ValidationFailedError, match="Insufficient leave balance. Available: 3, Requested: 5"):
        await service.request_leave(
            LeaveRequestCreate(employee_id=employee.id, leave_type="PERSONAL", start_date=MONDAY, end_date=FRIDAY)
        )


async def test_leave_routes(client):
    resp = await client.post(
        "/hr/employees", json={"first_name": "Jo", "last_name": "Park", "hire_date": "2019-04-01"}
    )
    assert resp.status_code == 201
    employee_id = resp.json()["id"]

    resp = await client.post(
        "/hr/leave-requests",
        json={"employee_id": employee_id, "leave_type": "VACATION", "start_date": "2025-03-03", "end_date": "2025-03-07"},
    )
    assert resp.status_code == 201
    assert resp.json()["total_days"] == 5

    resp = await client.get(f"/hr/employees/{employee_id}/leave-balance", params={"year": 2025})
    assert resp.status_code == 200
    assert resp.json()["vacation"]["pending"] == 5


async def test_clock_in_breaks_and_overtime_split(session, employee):
    service = HRService(session)
    entry = await service.clock_in(employee.id, ClockInRequest(job_id="J25-0004", notes="Bed 3"))
    assert entry.status == "ACTIVE"
    with pytest.raises(ConflictError, match="already clocked in"):
        await service.clock_in(employee.id)

    with pytest.raises(ConflictError, match="No active break found"):
        await service.end_break(employee.id)
    entry = await service.start_break(employee.id)
    assert entry.break_start is not None
    with pytest.raises(ConflictError, match="Break already started"):
        await service.start_break(employee.id)
    entry = await service.end_break(employee.id)
    assert entry.break_end is not None

    now = utcnow()
    entry.clock_in = now - timedelta(hours=10, minutes=30)
    entry.break_minutes = 30
    await session.commit()

    entry = await service.clock_out(employee.id, now=now)
    assert entry.status == "COMPLETED"
    assert entry.total_hours == pytest.approx(10)
    assert entry.regular_hours == pytest.approx(8)
    assert entry.overtime_hours == pytest.approx(2)

    with pytest.raises(ConflictError, match="No active clock-in found"):
        await service.clock_out(employee.id)


async def test_timesheet_submit_and_approve(session, employee):
    service = HRService(session)
    await service.clock_in(employee.id)
    entry = await service.time_entries.get_active(employee.id)
    now = utcnow()
    entry.clock_in = now - timedelta(hours=9)
    await session.commit()
    await service.clock_out(employee.id, now=now)

    start, end = (now - timedelta(days=1)).date(), now.date()
    with pytest.raises(ValidationFailedError, match="Start date must be before end date"):
        await service.create_timesheet(TimesheetCreate(employee_id=employee.id, start_date=end, end_date=start))

    timesheet = await service.create_timesheet(TimesheetCreate(employee_id=employee.id, start_date=start, end_date=end))
    assert timesheet.status == "PENDING"
    assert timesheet.total_hours == pytest.approx(9)
    assert timesheet.overtime_hours == pytest.approx(1)
    with pytest.raises(ConflictError, match="already exists for this period"):
        await service.create_timesheet(TimesheetCreate(employee_id=employee.id, start_date=end, end_date=end))

    with pytest.raises(ConflictError, match="must be submitted before approval"):
        await service.approve_timesheet(timesheet.id, approved_by="foreman")
    with pytest.raises(NotFoundError, match="does not belong to this employee"):
        await service.submit_timesheet(timesheet.id, uuid4())

    timesheet = await service.submit_timesheet(timesheet.id, employee.id)
    assert timesheet.status == "SUBMITTED"
    assert timesheet.submitted_at is not None
    with pytest.raises(ConflictError, match="already been submitted"):
        await service.submit_timesheet(timesheet.id, employee.id)

    timesheet = await service.approve_timesheet(timesheet.id, approved_by="foreman", notes="ok")
    assert timesheet.status == "APPROVED"
    assert timesheet.approved_by == "foreman"
    assert "Approval notes: ok" in timesheet.notes


async def test_dashboard(session, employee):
    service = HRService(session)
    today = date.today()
    hire = await service.create_employee(
        EmployeeCreate(first_name="Luis", last_name="Mora", department="Production", hire_date=today)
    )
    await service.create_employee(
        EmployeeCreate(first_name="Old", last_name="Timer", employment_status="TERMINATED", hire_date=date(2010, 1, 4))
    )
    await service.add_certification(
        hire.id, CertificationCreate(name="Crane operator", expiration_date=today + timedelta(days=30))
    )
    await service.add_certification(
        hire.id, CertificationCreate(name="First aid", expiration_date=today + timedelta(days=200))
    )
    await service.request_leave(
        LeaveRequestCreate(employee_id=employee.id, leave_type="VACATION", start_date=MONDAY, end_date=FRIDAY)
    )

    dashboard = await service.get_dashboard(today=today)
    assert dashboard.active_employees == 2
    assert dashboard.employees_by_department == {"Unassigned": 1, "Production": 1}
    assert dashboard.employees_by_type == {"FULL_TIME": 2}
    assert [c.name for c in dashboard.expiring_certifications] == ["Crane operator"]
    assert dashboard.expiring_certifications[0].employee_name == "Luis Mora"
    assert [(r.employee_name, r.total_days) for r in dashboard.pending_leave_requests] == [("Ana Silva", 5)]
    assert [h.name for h in dashboard.new_hires] == ["Luis Mora"]


async def test_time_tracking_routes(client):
    resp = await client.post("/hr/employees", json={"first_name": "Kim", "last_name": "Ng"})
    employee_id = resp.json()["id"]

    resp = await client.post(f"/hr/employees/{employee_id}/clock-in", json={"notes": "yard"})
    assert resp.status_code == 201
    resp = await client.post(f"/hr/employees/{employee_id}/break/start")
    assert resp.status_code == 200
    resp = await client.post(f"/hr/employees/{employee_id}/break/end")
    assert resp.status_code == 200
    resp = await client.post(f"/hr/employees/{employee_id}/clock-out")
    assert resp.status_code == 200
    assert resp.json()["status"] == "COMPLETED"
    resp = await client.post(f"/hr/employees/{employee_id}/clock-out")
    assert resp.status_code == 409

    resp = await client.get("/hr/dashboard")
    assert resp.status_code == 200
    assert resp.json()["active_employees"] == 1
