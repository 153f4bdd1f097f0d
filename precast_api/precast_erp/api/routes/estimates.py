from __future__ import annotations

import io
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Response, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.deps import get_ai_client, get_session
from precast_erp.schemas.estimating import (
    ApproveEstimateRequest,
    EstimateCreate,
    EstimateRead,
    EstimateUpdate,
    RejectEstimateRequest,
    SendEstimateRequest,
)
from precast_erp.schemas.projects import ProjectRead
from precast_erp.services.ai.client import AIClient
from precast_erp.services.ai.estimating import EstimatingAIService
from precast_erp.services.estimating import EstimateService

router = APIRouter(prefix="/estimates", tags=["Estimating"])


# PUBLIC_INTERFACE
@router.get("", response_model=List[EstimateRead], summary="List estimates")
async def list_estimates(
    session: AsyncSession = Depends(get_session),
    status_: Optional[str] = Query(None, alias="status"),
    client_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None, description="Number, project name or description"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[EstimateRead]:
    rows = await EstimateService(session).get_estimates(
        status=status_, client_id=client_id, search=search, limit=limit, offset=offset
    )
    return [EstimateRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=EstimateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create estimate",
    description="Create a draft estimate; totals are computed from the line items.",
)
async def create_estimate(payload: EstimateCreate, session: AsyncSession = Depends(get_session)) -> EstimateRead:
    return EstimateRead.model_validate(await EstimateService(session).create_estimate(payload))


# PUBLIC_INTERFACE
@router.get("/{estimate_id}", response_model=EstimateRead, summary="Get estimate")
async def get_estimate(
    estimate_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> EstimateRead:
    estimate = await EstimateService(session).get_estimate_by_id(estimate_id)
    if not estimate:
        raise HTTPException(status_code=404, detail="Estimate not found")
    return EstimateRead.model_validate(estimate)


# PUBLIC_INTERFACE
@router.patch("/{estimate_id}", response_model=EstimateRead, summary="Update estimate")
async def update_estimate(
    payload: EstimateUpdate,
    estimate_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> EstimateRead:
    estimate = await EstimateService(session).update_estimate(estimate_id, payload)
    if not estimate:
        raise HTTPException(status_code=404, detail="Estimate not found")
    return EstimateRead.model_validate(estimate)


# PUBLIC_INTERFACE
@router.delete("/{estimate_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete estimate")
async def delete_estimate(estimate_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> Response:
    if not await EstimateService(session).delete_estimate(estimate_id):
        raise HTTPException(status_code=404, detail="Estimate not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# PUBLIC_INTERFACE
@router.post("/{estimate_id}/send", response_model=EstimateRead, summary="Send estimate")
async def send_estimate(
    payload: SendEstimateRequest, estimate_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> EstimateRead:
    return EstimateRead.model_validate(await EstimateService(session).send_estimate(estimate_id, payload.email))


# PUBLIC_INTERFACE
@router.post("/{estimate_id}/approve", response_model=EstimateRead, summary="Approve estimate")
async def approve_estimate(
    payload: ApproveEstimateRequest, estimate_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> EstimateRead:
    estimate = await EstimateService(session).approve_estimate(estimate_id, payload.approved_by)
    return EstimateRead.model_validate(estimate)


# PUBLIC_INTERFACE
@router.post("/{estimate_id}/reject", response_model=EstimateRead, summary="Reject estimate")
async def reject_estimate(
    payload: RejectEstimateRequest, estimate_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> EstimateRead:
    estimate = await EstimateService(session).reject_estimate(estimate_id, payload.reason)
    return EstimateRead.model_validate(estimate)


# PUBLIC_INTERFACE
@router.post(
    "/{estimate_id}/convert",
    response_model=ProjectRead,
    status_code=status.HTTP_201_CREATED,
    summary="Convert estimate to project",
)
async def convert_estimate(estimate_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> ProjectRead:
    project = await EstimateService(session).convert_to_project(estimate_id)
    return ProjectRead.model_validate(project)


# PUBLIC_INTERFACE
@router.post(
    "/{estimate_id}/duplicate",
    response_model=EstimateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate estimate",
)
async def duplicate_estimate(estimate_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> EstimateRead:
    return EstimateRead.model_validate(await EstimateService(session).duplicate_estimate(estimate_id))


# PUBLIC_INTERFACE
@router.get(
    "/{estimate_id}/pdf",
    summary="Estimate PDF",
    response_description="application/pdf stream",
)
async def estimate_pdf(estimate_id: UUID = Path(...), session: AsyncSession = Depends(get_session)):
    content = await EstimateService(session).render_estimate_pdf(estimate_id)
    headers = {"Content-Disposition": f'attachment; filename="estimate-{estimate_id}.pdf"'}
    return StreamingResponse(io.BytesIO(content), media_type="application/pdf", headers=headers)


# PUBLIC_INTERFACE
@router.post(
    "/ai/{action}",
    summary="Run an estimating AI action",
    description="Actions: " + ", ".join(a.replace("_", "-") for a in EstimatingAIService.actions),
)
async def run_estimating_ai(
    action: str = Path(...),
    params: Optional[dict[str, Any]] = Body(None),
    client: AIClient = Depends(get_ai_client),
) -> Any:
    return await EstimatingAIService(client).run(action, params or {})
