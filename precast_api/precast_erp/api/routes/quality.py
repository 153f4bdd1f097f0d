from __future__ import annotations

from datetime import date
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.deps import get_ai_client, get_session
from precast_erp.schemas.quality import (
    DefectCreate,
    DefectRead,
    DefectUpdate,
    InspectionCreate,
    InspectionRead,
    InspectionUpdate,
    MixDesignCreate,
    MixDesignRead,
    PieceCreate,
    PieceRead,
    PieceUpdate,
    QualityDashboard,
    TestResultCreate,
    TestResultRead,
)
from precast_erp.services.ai.client import AIClient
from precast_erp.services.ai.quality import QualityAIService
from precast_erp.services.quality import QualityService

router = APIRouter(prefix="/quality", tags=["Quality"])


# PUBLIC_INTERFACE
@router.get(
    "/inspections",
    response_model=List[InspectionRead],
    summary="List inspections",
    description="List QC inspections ordered by created_at desc.",
)
async def list_inspections(
    session: AsyncSession = Depends(get_session),
    type_: Optional[str] = Query(None, alias="type"),
    status_: Optional[str] = Query(None, alias="status", description="Filter by status"),
    job_id: Optional[UUID] = Query(None, description="Filter by job"),
    piece_id: Optional[UUID] = Query(None, description="Filter by piece"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[InspectionRead]:
    rows = await QualityService(session).get_inspections(
        type=type_,
        status=status_,
        job_id=job_id,
        piece_id=piece_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
        limit=limit,
        offset=offset,
    )
    return [InspectionRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/inspections",
    response_model=InspectionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create inspection",
    description="Numbered QC{YY}-NNNN. Measurements are graded against nominal and tolerance.",
)
async def create_inspection(payload: InspectionCreate, session: AsyncSession = Depends(get_session)) -> InspectionRead:
    return InspectionRead.model_validate(await QualityService(session).create_inspection(payload))


@router.get("/inspections/upcoming", response_model=List[InspectionRead], summary="Pending inspections due soon")
async def upcoming_inspections(
    days: int = Query(7, ge=1, le=90), session: AsyncSession = Depends(get_session)
) -> List[InspectionRead]:
    return [InspectionRead.model_validate(x) for x in await QualityService(session).upcoming_inspections(days)]


@router.get("/inspections/{inspection_id}", response_model=InspectionRead, summary="Get inspection")
async def get_inspection(
    inspection_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> InspectionRead:
    inspection = await QualityService(session).get_inspection_by_id(inspection_id)
    if not inspection:
        raise HTTPException(status_code=404, detail="Inspection not found")
    return InspectionRead.model_validate(inspection)


# PUBLIC_INTERFACE
@router.patch(
    "/inspections/{inspection_id}",
    response_model=InspectionRead,
    summary="Update inspection",
    description="PASSED approves the piece, FAILED rejects it.",
)
async def update_inspection(
    payload: InspectionUpdate, inspection_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> InspectionRead:
    inspection = await QualityService(session).update_inspection(inspection_id, payload)
    if not inspection:
        raise HTTPException(status_code=404, detail="Inspection not found")
    return InspectionRead.model_validate(inspection)


# PUBLIC_INTERFACE
@router.get("/defects", response_model=List[DefectRead], summary="List defects")
async def list_defects(
    session: AsyncSession = Depends(get_session),
    status_: Optional[str] = Query(None, alias="status"),
    severity: Optional[str] = Query(None),
    type_: Optional[str] = Query(None, alias="type"),
    inspection_id: Optional[UUID] = Query(None),
    piece_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[DefectRead]:
    rows = await QualityService(session).get_defects(
        status=status_,
        severity=severity,
        type=type_,
        inspection_id=inspection_id,
        piece_id=piece_id,
        search=search,
        limit=limit,
        offset=offset,
    )
    return [DefectRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post("/defects", response_model=DefectRead, status_code=status.HTTP_201_CREATED, summary="Record defect")
async def create_defect(payload: DefectCreate, session: AsyncSession = Depends(get_session)) -> DefectRead:
    return DefectRead.model_validate(await QualityService(session).create_defect(payload))


@router.get("/defects/{defect_id}", response_model=DefectRead, summary="Get defect")
async def get_defect(defect_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> DefectRead:
    defect = await QualityService(session).get_defect_by_id(defect_id)
    if not defect:
        raise HTTPException(status_code=404, detail="Defect not found")
    return DefectRead.model_validate(defect)


# PUBLIC_INTERFACE
@router.patch("/defects/{defect_id}", response_model=DefectRead, summary="Update defect")
async def update_defect(
    payload: DefectUpdate, defect_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> DefectRead:
    defect = await QualityService(session).update_defect(defect_id, payload)
    if not defect:
        raise HTTPException(status_code=404, detail="Defect not found")
    return DefectRead.model_validate(defect)


@router.get("/pieces", response_model=List[PieceRead], summary="List pieces")
async def list_pieces(
    session: AsyncSession = Depends(get_session),
    job_id: Optional[UUID] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
) -> List[PieceRead]:
    rows = await QualityService(session).get_pieces(job_id=job_id, status=status_, search=search)
    return [PieceRead.model_validate(x) for x in rows]


@router.post("/pieces", response_model=PieceRead, status_code=status.HTTP_201_CREATED, summary="Create piece")
async def create_piece(payload: PieceCreate, session: AsyncSession = Depends(get_session)) -> PieceRead:
    return PieceRead.model_validate(await QualityService(session).create_piece(payload))


@router.get("/pieces/{piece_id}", response_model=PieceRead, summary="Get piece")
async def get_piece(piece_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> PieceRead:
    piece = await QualityService(session).get_piece_by_id(piece_id)
    if not piece:
        raise HTTPException(status_code=404, detail="Piece not found")
    return PieceRead.model_validate(piece)


@router.patch("/pieces/{piece_id}", response_model=PieceRead, summary="Update piece")
async def update_piece(
    payload: PieceUpdate, piece_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> PieceRead:
    piece = await QualityService(session).update_piece(piece_id, payload)
    if not piece:
        raise HTTPException(status_code=404, detail="Piece not found")
    return PieceRead.model_validate(piece)


@router.delete("/pieces/{piece_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete piece")
async def delete_piece(piece_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> Response:
    if not await QualityService(session).delete_piece(piece_id):
        raise HTTPException(status_code=404, detail="Piece not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/mix-designs", response_model=List[MixDesignRead], summary="List mix designs")
async def list_mix_designs(
    session: AsyncSession = Depends(get_session),
    status_: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
) -> List[MixDesignRead]:
    rows = await QualityService(session).get_mix_designs(status=status_, search=search)
    return [MixDesignRead.model_validate(x) for x in rows]


@router.post("/mix-designs", response_model=MixDesignRead, status_code=status.HTTP_201_CREATED, summary="Create mix design")
async def create_mix_design(payload: MixDesignCreate, session: AsyncSession = Depends(get_session)) -> MixDesignRead:
    return MixDesignRead.model_validate(await QualityService(session).create_mix_design(payload))


@router.get("/mix-designs/{mix_design_id}", response_model=MixDesignRead, summary="Get mix design")
async def get_mix_design(mix_design_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> MixDesignRead:
    mix = await QualityService(session).get_mix_design_by_id(mix_design_id)
    if not mix:
        raise HTTPException(status_code=404, detail="Mix design not found")
    return MixDesignRead.model_validate(mix)


@router.get("/test-results", response_model=List[TestResultRead], summary="List test results")
async def list_test_results(
    session: AsyncSession = Depends(get_session),
    test_type: Optional[str] = Query(None),
    mix_design_id: Optional[UUID] = Query(None),
    piece_id: Optional[UUID] = Query(None),
    passed: Optional[bool] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
) -> List[TestResultRead]:
    rows = await QualityService(session).get_test_results(
        test_type=test_type,
        mix_design_id=mix_design_id,
        piece_id=piece_id,
        passed=passed,
        start_date=start_date,
        end_date=end_date,
    )
    return [TestResultRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/test-results",
    response_model=TestResultRead,
    status_code=status.HTTP_201_CREATED,
    summary="Record test result",
    description="A result passes when its value meets the required value.",
)
async def create_test_result(payload: TestResultCreate, session: AsyncSession = Depends(get_session)) -> TestResultRead:
    return TestResultRead.model_validate(await QualityService(session).create_test_result(payload))


# PUBLIC_INTERFACE
@router.get("/dashboard", response_model=QualityDashboard, summary="QC dashboard")
async def quality_dashboard(session: AsyncSession = Depends(get_session)) -> QualityDashboard:
    return await QualityService(session).get_dashboard()


# PUBLIC_INTERFACE
@router.post(
    "/ai/{action}",
    summary="Run a quality AI action",
    description="Actions: " + ", ".join(a.replace("_", "-") for a in QualityAIService.actions),
)
async def run_quality_ai(
    action: str = Path(..., description="AI action, e.g. detect-defects"),
    params: Optional[dict[str, Any]] = Body(None),
    client: AIClient = Depends(get_ai_client),
) -> Any:
    return await QualityAIService(client).run(action, params or {})
