from __future__ import annotations

from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.deps import get_ai_client, get_session
from precast_erp.schemas.sales import (
    CancelJobRequest,
    CompleteJobRequest,
    ConvertLeadRequest,
    JobCreate,
    JobRead,
    JobUpdate,
    LeadCreate,
    LeadRead,
    LeadUpdate,
    OpportunityRead,
    OpportunityUpdate,
    QuoteCreate,
    QuoteRead,
    QuoteStatusUpdate,
    SalesDashboard,
)
from precast_erp.services.ai.client import AIClient
from precast_erp.services.ai.sales import SalesAIService
from precast_erp.services.sales import SalesService

router = APIRouter(prefix="/sales", tags=["Sales"])


# PUBLIC_INTERFACE
@router.get("/leads", response_model=List[LeadRead], summary="List leads")
async def list_leads(
    session: AsyncSession = Depends(get_session),
    status_: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    source: Optional[str] = Query(None),
    assigned_to: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Substring of number, name, company or contact"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[LeadRead]:
    rows = await SalesService(session).get_leads(
        status=status_,
        priority=priority,
        source=source,
        assigned_to=assigned_to,
        search=search,
        limit=limit,
        offset=offset,
    )
    return [LeadRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post("/leads", response_model=LeadRead, status_code=status.HTTP_201_CREATED, summary="Create lead")
async def create_lead(payload: LeadCreate, session: AsyncSession = Depends(get_session)) -> LeadRead:
    return LeadRead.model_validate(await SalesService(session).create_lead(payload))


@router.get("/leads/{lead_id}", response_model=LeadRead, summary="Get lead")
async def get_lead(lead_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> LeadRead:
    lead = await SalesService(session).get_lead_by_id(lead_id)
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    return LeadRead.model_validate(lead)


@router.patch("/leads/{lead_id}", response_model=LeadRead, summary="Update lead")
async def update_lead(
    payload: LeadUpdate, lead_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> LeadRead:
    lead = await SalesService(session).update_lead(lead_id, payload)
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    return LeadRead.model_validate(lead)


# PUBLIC_INTERFACE
@router.post(
    "/leads/{lead_id}/convert",
    response_model=OpportunityRead,
    status_code=status.HTTP_201_CREATED,
    summary="Convert lead to opportunity",
    description="Creates an OPEN opportunity from the lead and marks the lead QUALIFIED.",
)
async def convert_lead(
    payload: Optional[ConvertLeadRequest] = Body(None),
    lead_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> OpportunityRead:
    opportunity = await SalesService(session).convert_lead_to_opportunity(lead_id, payload)
    return OpportunityRead.model_validate(opportunity)


@router.get("/opportunities", response_model=List[OpportunityRead], summary="List opportunities")
async def list_opportunities(
    session: AsyncSession = Depends(get_session),
    status_: Optional[str] = Query(None, alias="status"),
    stage: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    assigned_to: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[OpportunityRead]:
    rows = await SalesService(session).get_opportunities(
        status=status_,
        stage=stage,
        priority=priority,
        assigned_to=assigned_to,
        search=search,
        limit=limit,
        offset=offset,
    )
    return [OpportunityRead.model_validate(x) for x in rows]


@router.get("/opportunities/{opportunity_id}", response_model=OpportunityRead, summary="Get opportunity")
async def get_opportunity(
    opportunity_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> OpportunityRead:
    opportunity = await SalesService(session).get_opportunity_by_id(opportunity_id)
    if not opportunity:
        raise HTTPException(status_code=404, detail="Opportunity not found")
    return OpportunityRead.model_validate(opportunity)


@router.patch("/opportunities/{opportunity_id}", response_model=OpportunityRead, summary="Update opportunity")
async def update_opportunity(
    payload: OpportunityUpdate, opportunity_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> OpportunityRead:
    opportunity = await SalesService(session).update_opportunity(opportunity_id, payload)
    if not opportunity:
        raise HTTPException(status_code=404, detail="Opportunity not found")
    return OpportunityRead.model_validate(opportunity)


# PUBLIC_INTERFACE
@router.post(
    "/opportunities/{opportunity_id}/job",
    response_model=JobRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create job from opportunity",
    description="Contract value is the latest accepted quote total, else the opportunity value.",
)
async def create_job(
    payload: Optional[JobCreate] = Body(None),
    opportunity_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> JobRead:
    return JobRead.model_validate(await SalesService(session).create_job_from_opportunity(opportunity_id, payload))


@router.get("/quotes", response_model=List[QuoteRead], summary="List quotes")
async def list_quotes(
    session: AsyncSession = Depends(get_session),
    opportunity_id: Optional[UUID] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[QuoteRead]:
    rows = await SalesService(session).get_quotes(
        opportunity_id=opportunity_id, status=status_, search=search, limit=limit, offset=offset
    )
    return [QuoteRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post("/quotes", response_model=QuoteRead, status_code=status.HTTP_201_CREATED, summary="Create quote")
async def create_quote(payload: QuoteCreate, session: AsyncSession = Depends(get_session)) -> QuoteRead:
    return QuoteRead.model_validate(await SalesService(session).create_quote(payload))


@router.get("/quotes/{quote_id}", response_model=QuoteRead, summary="Get quote")
async def get_quote(quote_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> QuoteRead:
    quote = await SalesService(session).get_quote_by_id(quote_id)
    if not quote:
        raise HTTPException(status_code=404, detail="Quote not found")
    return QuoteRead.model_validate(quote)


@router.put("/quotes/{quote_id}/status", response_model=QuoteRead, summary="Update quote status")
async def update_quote_status(
    payload: QuoteStatusUpdate, quote_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> QuoteRead:
    return QuoteRead.model_validate(await SalesService(session).update_quote_status(quote_id, payload.status))


@router.get("/jobs", response_model=List[JobRead], summary="List jobs")
async def list_jobs(
    session: AsyncSession = Depends(get_session),
    status_: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
) -> List[JobRead]:
    return [JobRead.model_validate(x) for x in await SalesService(session).get_jobs(status=status_, search=search)]


@router.get("/jobs/{job_id}", response_model=JobRead, summary="Get job")
async def get_job(job_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> JobRead:
    job = await SalesService(session).get_job_by_id(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobRead.model_validate(job)


# PUBLIC_INTERFACE
@router.patch("/jobs/{job_id}", response_model=JobRead, summary="Update job")
async def update_job(
    payload: JobUpdate, job_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> JobRead:
    job = await SalesService(session).update_job(job_id, payload)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobRead.model_validate(job)


# PUBLIC_INTERFACE
@router.post("/jobs/{job_id}/complete", response_model=JobRead, summary="Complete job")
async def complete_job(
    payload: Optional[CompleteJobRequest] = Body(None),
    job_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> JobRead:
    return JobRead.model_validate(await SalesService(session).complete_job(job_id, payload or CompleteJobRequest()))


# PUBLIC_INTERFACE
@router.post("/jobs/{job_id}/cancel", response_model=JobRead, summary="Cancel job")
async def cancel_job(
    payload: CancelJobRequest, job_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> JobRead:
    return JobRead.model_validate(await SalesService(session).cancel_job(job_id, payload))


# PUBLIC_INTERFACE
@router.get("/dashboard", response_model=SalesDashboard, summary="Sales dashboard")
async def sales_dashboard(session: AsyncSession = Depends(get_session)) -> SalesDashboard:
    return await SalesService(session).get_dashboard()


# PUBLIC_INTERFACE
@router.post(
    "/ai/{action}",
    summary="Run a sales AI action",
    description="Actions: " + ", ".join(a.replace("_", "-") for a in SalesAIService.actions),
)
async def run_sales_ai(
    action: str = Path(..., description="AI action, e.g. score-lead"),
    params: Optional[dict[str, Any]] = Body(None),
    client: AIClient = Depends(get_ai_client),
) -> Any:
    return await SalesAIService(client).run(action, params or {})
