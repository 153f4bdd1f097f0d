from __future__ import annotations

from datetime import date
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.deps import get_ai_client, get_session
from precast_erp.schemas.hr import (
    CertificationCreate,
    CertificationRead,
    ClockInRequest,
    EmployeeCreate,
    EmployeeRead,
    EmployeeUpdate,
    HRDashboard,
    LeaveApprove,
    LeaveBalanceRead,
    LeaveReject,
    LeaveRequestCreate,
    LeaveRequestRead,
    TimeEntryRead,
    TimesheetApprove,
    TimesheetCreate,
    TimesheetRead,
    TimesheetSubmit,
    TrainingCreate,
    TrainingRead,
)
from precast_erp.services.ai.client import AIClient
from precast_erp.services.ai.hr import HRAIService
from precast_erp.services.hr import HRService

router = APIRouter(prefix="/hr", tags=["HR"])


# PUBLIC_INTERFACE
@router.get("/employees", response_model=List[EmployeeRead], summary="List employees")
async def list_employees(
    session: AsyncSession = Depends(get_session),
    department: Optional[str] = Query(None),
    position: Optional[str] = Query(None),
    employment_type: Optional[str] = Query(None),
    employment_status: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Substring of name, e-mail, code or position"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[EmployeeRead]:
    rows = await HRService(session).get_employees(
        department=department,
        position=position,
        employment_type=employment_type,
        employment_status=employment_status,
        search=search,
        limit=limit,
        offset=offset,
    )
    return [EmployeeRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/employees",
    response_model=EmployeeRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create employee",
    description="Create an employee and initialise the current year's leave balance.",
)
async def create_employee(payload: EmployeeCreate, session: AsyncSession = Depends(get_session)) -> EmployeeRead:
    return EmployeeRead.model_validate(await HRService(session).create_employee(payload))


# PUBLIC_INTERFACE
@router.get("/employees/{employee_id}", response_model=EmployeeRead, summary="Get employee")
async def get_employee(employee_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> EmployeeRead:
    employee = await HRService(session).get_employee_by_id(employee_id)
    if not employee:
        raise HTTPException(status_code=404, detail="Employee not found")
    return EmployeeRead.model_validate(employee)


# PUBLIC_INTERFACE
@router.patch("/employees/{employee_id}", response_model=EmployeeRead, summary="Update employee")
async def update_employee(
    payload: EmployeeUpdate, employee_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> EmployeeRead:
    employee = await HRService(session).update_employee(employee_id, payload)
    if not employee:
        raise HTTPException(status_code=404, detail="Employee not found")
    return EmployeeRead.model_validate(employee)


# PUBLIC_INTERFACE
@router.get(
    "/employees/{employee_id}/certifications", response_model=List[CertificationRead], summary="List certifications"
)
async def list_certifications(
    employee_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> List[CertificationRead]:
    rows = await HRService(session).get_certifications(employee_id)
    return [CertificationRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/employees/{employee_id}/certifications",
    response_model=CertificationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add certification",
)
async def add_certification(
    payload: CertificationCreate, employee_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> CertificationRead:
    return CertificationRead.model_validate(await HRService(session).add_certification(employee_id, payload))


# PUBLIC_INTERFACE
@router.get("/employees/{employee_id}/training", response_model=List[TrainingRead], summary="List training records")
async def list_training(
    employee_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> List[TrainingRead]:
    rows = await HRService(session).get_training_records(employee_id)
    return [TrainingRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/employees/{employee_id}/training",
    response_model=TrainingRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add training record",
)
async def add_training(
    payload: TrainingCreate, employee_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> TrainingRead:
    return TrainingRead.model_validate(await HRService(session).add_training_record(employee_id, payload))


# PUBLIC_INTERFACE
@router.get("/employees/{employee_id}/leave-balance", response_model=LeaveBalanceRead, summary="Leave balance")
async def get_leave_balance(
    employee_id: UUID = Path(...),
    year: Optional[int] = Query(None, description="Defaults to the current year"),
    session: AsyncSession = Depends(get_session),
) -> LeaveBalanceRead:
    return LeaveBalanceRead.model_validate(await HRService(session).get_employee_leave_balance(employee_id, year))


# Time tracking

# PUBLIC_INTERFACE
@router.get("/time-entries", response_model=List[TimeEntryRead], summary="List time entries")
async def list_time_entries(
    session: AsyncSession = Depends(get_session),
    employee_id: Optional[UUID] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
) -> List[TimeEntryRead]:
    rows = await HRService(session).get_time_entries(
        employee_id=employee_id, start_date=start_date, end_date=end_date, status=status_
    )
    return [TimeEntryRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/employees/{employee_id}/clock-in",
    response_model=TimeEntryRead,
    status_code=status.HTTP_201_CREATED,
    summary="Clock in",
)
async def clock_in(
    payload: Optional[ClockInRequest] = Body(None),
    employee_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> TimeEntryRead:
    return TimeEntryRead.model_validate(await HRService(session).clock_in(employee_id, payload))


# PUBLIC_INTERFACE
@router.post("/employees/{employee_id}/clock-out", response_model=TimeEntryRead, summary="Clock out")
async def clock_out(employee_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> TimeEntryRead:
    return TimeEntryRead.model_validate(await HRService(session).clock_out(employee_id))


# PUBLIC_INTERFACE
@router.post("/employees/{employee_id}/break/start", response_model=TimeEntryRead, summary="Start break")
async def start_break(employee_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> TimeEntryRead:
    return TimeEntryRead.model_validate(await HRService(session).start_break(employee_id))


# PUBLIC_INTERFACE
@router.post("/employees/{employee_id}/break/end", response_model=TimeEntryRead, summary="End break")
async def end_break(employee_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> TimeEntryRead:
    return TimeEntryRead.model_validate(await HRService(session).end_break(employee_id))


# Timesheets

# PUBLIC_INTERFACE
@router.get("/timesheets", response_model=List[TimesheetRead], summary="List timesheets")
async def list_timesheets(
    session: AsyncSession = Depends(get_session),
    employee_id: Optional[UUID] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
) -> List[TimesheetRead]:
    rows = await HRService(session).get_timesheets(employee_id=employee_id, status=status_)
    return [TimesheetRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/timesheets",
    response_model=TimesheetRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create timesheet",
    description="Sum the employee's completed time entries in the period.",
)
async def create_timesheet(payload: TimesheetCreate, session: AsyncSession = Depends(get_session)) -> TimesheetRead:
    return TimesheetRead.model_validate(await HRService(session).create_timesheet(payload))


# PUBLIC_INTERFACE
@router.post("/timesheets/{timesheet_id}/submit", response_model=TimesheetRead, summary="Submit timesheet")
async def submit_timesheet(
    payload: TimesheetSubmit, timesheet_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> TimesheetRead:
    return TimesheetRead.model_validate(await HRService(session).submit_timesheet(timesheet_id, payload.employee_id))


# PUBLIC_INTERFACE
@router.post("/timesheets/{timesheet_id}/approve", response_model=TimesheetRead, summary="Approve timesheet")
async def approve_timesheet(
    payload: TimesheetApprove, timesheet_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> TimesheetRead:
    timesheet = await HRService(session).approve_timesheet(timesheet_id, payload.approved_by, payload.notes)
    return TimesheetRead.model_validate(timesheet)


# Leave

# PUBLIC_INTERFACE
@router.get("/leave-requests", response_model=List[LeaveRequestRead], summary="List leave requests")
async def list_leave_requests(
    session: AsyncSession = Depends(get_session),
    employee_id: Optional[UUID] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
    leave_type: Optional[str] = Query(None),
) -> List[LeaveRequestRead]:
    rows = await HRService(session).get_leave_requests(employee_id=employee_id, status=status_, leave_type=leave_type)
    return [LeaveRequestRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/leave-requests",
    response_model=LeaveRequestRead,
    status_code=status.HTTP_201_CREATED,
    summary="Request leave",
    description="Business days between the dates are reserved as pending on the leave balance.",
)
async def request_leave(payload: LeaveRequestCreate, session: AsyncSession = Depends(get_session)) -> LeaveRequestRead:
    return LeaveRequestRead.model_validate(await HRService(session).request_leave(payload))


# PUBLIC_INTERFACE
@router.post("/leave-requests/{request_id}/approve", response_model=LeaveRequestRead, summary="Approve leave")
async def approve_leave(
    payload: LeaveApprove, request_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> LeaveRequestRead:
    request = await HRService(session).approve_leave_request(request_id, payload.approved_by, payload.notes)
    return LeaveRequestRead.model_validate(request)


# PUBLIC_INTERFACE
@router.post("/leave-requests/{request_id}/reject", response_model=LeaveRequestRead, summary="Reject leave")
async def reject_leave(
    payload: LeaveReject, request_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> LeaveRequestRead:
    request = await HRService(session).reject_leave_request(request_id, payload.approved_by, payload.rejection_reason)
    return LeaveRequestRead.model_validate(request)


# PUBLIC_INTERFACE
@router.get("/dashboard", response_model=HRDashboard, summary="HR dashboard")
async def hr_dashboard(session: AsyncSession = Depends(get_session)) -> HRDashboard:
    return await HRService(session).get_dashboard()


# PUBLIC_INTERFACE
@router.post(
    "/ai/{action}",
    summary="Run an HR AI action",
    description="Actions: " + ", ".join(a.replace("_", "-") for a in HRAIService.actions),
)
async def run_hr_ai(
    action: str = Path(..., description="AI action, e.g. assess-training-needs"),
    params: Optional[dict[str, Any]] = Body(None),
    client: AIClient = Depends(get_ai_client),
) -> Any:
    return await HRAIService(client).run(action, params or {})
