from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.errors import ConflictError, NotFoundError, ValidationFailedError
from precast_erp.db.base import utcnow
from precast_erp.db.models.quality import (
    CHECKLIST_STATUSES,
    DEFECT_SEVERITIES,
    DEFECT_STATUS_TRANSITIONS,
    INSPECTION_STATUSES,
    INSPECTION_TYPES,
    PIECE_STATUSES,
    MixDesign,
    Piece,
    QCDefect,
    QCInspection,
    TestResult,
)
from precast_erp.repositories.quality import (
    DefectRepository,
    InspectionRepository,
    MixDesignRepository,
    PieceRepository,
    TestResultRepository,
)
from precast_erp.schemas.quality import (
    ChecklistItem,
    DefectCreate,
    DefectUpdate,
    InspectionCreate,
    InspectionUpdate,
    Measurement,
    MixDesignCreate,
    PieceCreate,
    PieceUpdate,
    QualityDashboard,
    TestResultCreate,
)
from precast_erp.services.base import BaseService

logger = logging.getLogger(__name__)

# Inspection outcome -> piece status.
PIECE_STATUS_FOR_RESULT = {"PASSED": "QC_APPROVED", "FAILED": "QC_REJECTED"}
RESOLVED_DEFECT_STATUSES = ("REPAIRED", "REJECTED", "CLOSED")


def measurement_status(m: Measurement) -> Optional[str]:
    if m.actual is None:
        return None
    return "WITHIN_SPEC" if abs(m.actual - m.nominal) <= m.tolerance else "OUT_OF_SPEC"


def _checklist(items: List[ChecklistItem]) -> list[dict]:
    for item in items:
        if item.status not in CHECKLIST_STATUSES:
            raise ValidationFailedError(f"Invalid checklist status: {item.status}")
    return [item.model_dump() for item in items]


def _measurements(items: List[Measurement]) -> list[dict]:
    return [{**m.model_dump(), "status": measurement_status(m)} for m in items]


class QualityService(BaseService):
    """Inspections, defects, pieces, mix designs and lab tests."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.pieces = PieceRepository(session)
        self.inspections = InspectionRepository(session)
        self.defects = DefectRepository(session)
        self.mix_designs = MixDesignRepository(session)
        self.test_results = TestResultRepository(session)

    # Pieces

    async def get_pieces(
        self, *, job_id: Optional[UUID] = None, status: Optional[str] = None, search: Optional[str] = None
    ) -> List[Piece]:
        return await self.pieces.list(filters={"job_id": job_id, "status": status}, search=search, limit=None)

    async def get_piece_by_id(self, piece_id: UUID) -> Optional[Piece]:
        return await self.pieces.get(piece_id)

    async def create_piece(self, payload: PieceCreate) -> Piece:
        self.check_choice(payload.status, PIECE_STATUSES, "piece status")
        if await self.pieces.list(filters={"piece_number": payload.piece_number}, limit=1):
            raise ConflictError(f"Piece {payload.piece_number} already exists")
        return await self.pieces.create(Piece(**payload.model_dump()))

    async def update_piece(self, piece_id: UUID, payload: PieceUpdate) -> Optional[Piece]:
        piece = await self.pieces.get(piece_id)
        if piece is None:
            return None
        self.apply_patch(piece, payload.model_dump(exclude_unset=True))
        self.check_choice(piece.status, PIECE_STATUSES, "piece status")
        return await self.pieces.save(piece)

    async def delete_piece(self, piece_id: UUID) -> bool:
        piece = await self.pieces.get(piece_id)
        if piece is None:
            return False
        await self.pieces.delete(piece)
        return True

    # Inspections

    async def get_inspections(
        self,
        *,
        type: Optional[str] = None,
        status: Optional[str] = None,
        job_id: Optional[UUID] = None,
        piece_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[QCInspection]:
        where = []
        if start_date:
            where.append(QCInspection.scheduled_date >= start_date)
        if end_date:
            where.append(QCInspection.scheduled_date <= end_date)
        return await self.inspections.list(
            filters={"type": type, "status": status, "job_id": job_id, "piece_id": piece_id},
            search=search,
            where=where,
            limit=limit,
            offset=offset,
        )

    async def get_inspection_by_id(self, inspection_id: UUID) -> Optional[QCInspection]:
        return await self.inspections.get(inspection_id)

    # PUBLIC_INTERFACE
    async def create_inspection(self, payload: InspectionCreate) -> QCInspection:
        """Create an inspection numbered QC{YY}-NNNN; the job follows the piece when not given."""
        self.check_choice(payload.type, INSPECTION_TYPES, "inspection type")
        self.check_choice(payload.status, INSPECTION_STATUSES, "inspection status")
        job_id = payload.job_id
        if payload.piece_id is not None:
            piece = self.require(await self.pieces.get(payload.piece_id), "Piece not found")
            job_id = job_id or piece.job_id

        data = payload.model_dump(exclude={"checklist_items", "measurements", "job_id"})
        inspection = QCInspection(
            **data,
            job_id=job_id,
            inspection_number=await self.next_number(QCInspection.inspection_number, f"QC{self.year_tag()}-"),
            checklist_items=_checklist(payload.checklist_items),
            measurements=_measurements(payload.measurements),
        )
        if inspection.status in PIECE_STATUS_FOR_RESULT:
            await self._record_result(inspection)
        return await self.inspections.create(inspection)

    async def _record_result(self, inspection: QCInspection) -> None:
        inspection.completed_date = utcnow()
        if inspection.piece_id is None:
            return
        piece = await self.pieces.get(inspection.piece_id)
        if piece is not None:
            piece.status = PIECE_STATUS_FOR_RESULT[inspection.status]
            logger.info("Piece %s marked %s by inspection", piece.piece_number, piece.status)

    # PUBLIC_INTERFACE
    async def update_inspection(self, inspection_id: UUID, payload: InspectionUpdate) -> Optional[QCInspection]:
        """
        Update an inspection. Moving it to PASSED or FAILED stamps the completion
        date and approves or rejects the inspected piece.
        """
        inspection = await self.inspections.get(inspection_id)
        if inspection is None:
            return None
        patch = payload.model_dump(exclude_unset=True, exclude={"checklist_items", "measurements"})
        self.check_choice(patch.get("status"), INSPECTION_STATUSES, "inspection status")
        previous = inspection.status
        self.apply_patch(inspection, patch)
        if payload.checklist_items is not None:
            inspection.checklist_items = _checklist(payload.checklist_items)
        if payload.measurements is not None:
            inspection.measurements = _measurements(payload.measurements)
        if inspection.status != previous and inspection.status in PIECE_STATUS_FOR_RESULT:
            await self._record_result(inspection)
        return await self.inspections.save(inspection)

    # Defects

    async def get_defects(
        self,
        *,
        status: Optional[str] = None,
        severity: Optional[str] = None,
        type: Optional[str] = None,
        inspection_id: Optional[UUID] = None,
        piece_id: Optional[UUID] = None,
        search: Optional[str] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[QCDefect]:
        return await self.defects.list(
            filters={
                "status": status,
                "severity": severity,
                "type": type,
                "inspection_id": inspection_id,
                "piece_id": piece_id,
            },
            search=search,
            limit=limit,
            offset=offset,
        )

    async def get_defect_by_id(self, defect_id: UUID) -> Optional[QCDefect]:
        return await self.defects.get(defect_id)

    # PUBLIC_INTERFACE
    async def create_defect(self, payload: DefectCreate) -> QCDefect:
        self.check_choice(payload.severity, DEFECT_SEVERITIES, "defect severity")
        piece_id = payload.piece_id
        if payload.inspection_id is not None:
            inspection = self.require(await self.inspections.get(payload.inspection_id), "Inspection not found")
            piece_id = piece_id or inspection.piece_id
        if piece_id is not None and await self.pieces.get(piece_id) is None:
            raise NotFoundError("Piece not found")
        defect = QCDefect(
            **payload.model_dump(exclude={"piece_id"}),
            piece_id=piece_id,
            defect_number=await self.next_number(QCDefect.defect_number, f"DEF{self.year_tag()}-"),
        )
        created = await self.defects.create(defect)
        if created.severity == "CRITICAL":
            logger.warning("Critical defect %s recorded on piece %s", created.defect_number, piece_id)
        return created

    # PUBLIC_INTERFACE
    async def update_defect(self, defect_id: UUID, payload: DefectUpdate) -> Optional[QCDefect]:
        """Update a defect; status changes follow the defect workflow and CLOSED/REJECTED are final."""
        defect = await self.defects.get(defect_id)
        if defect is None:
            return None
        patch = payload.model_dump(exclude_unset=True)
        new_status = patch.pop("status", None)
        self.check_choice(patch.get("severity"), DEFECT_SEVERITIES, "defect severity")
        if new_status is not None and new_status != defect.status:
            if new_status not in DEFECT_STATUS_TRANSITIONS:
                raise ValidationFailedError(f"Invalid defect status: {new_status}")
            if new_status not in DEFECT_STATUS_TRANSITIONS.get(defect.status, ()):
                raise ConflictError(f"Invalid status transition from {defect.status} to {new_status}")
            defect.status = new_status
            defect.resolved_at = utcnow() if new_status in RESOLVED_DEFECT_STATUSES else None
        self.apply_patch(defect, patch)
        return await self.defects.save(defect)

    # Mix designs and tests

    async def get_mix_designs(self, *, status: Optional[str] = None, search: Optional[str] = None) -> List[MixDesign]:
        return await self.mix_designs.list(filters={"status": status}, search=search, limit=None)

    async def get_mix_design_by_id(self, mix_design_id: UUID) -> Optional[MixDesign]:
        return await self.mix_designs.get(mix_design_id)

    async def create_mix_design(self, payload: MixDesignCreate) -> MixDesign:
        if await self.mix_designs.list(filters={"code": payload.code}, limit=1):
            raise ConflictError(f"Mix design with code {payload.code} already exists")
        return await self.mix_designs.create(MixDesign(**payload.model_dump()))

    async def get_test_results(
        self,
        *,
        test_type: Optional[str] = None,
        mix_design_id: Optional[UUID] = None,
        piece_id: Optional[UUID] = None,
        passed: Optional[bool] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[TestResult]:
        where = []
        if start_date:
            where.append(TestResult.test_date >= start_date)
        if end_date:
            where.append(TestResult.test_date <= end_date)
        return await self.test_results.list(
            filters={"test_type": test_type, "mix_design_id": mix_design_id, "piece_id": piece_id, "passed": passed},
            where=where,
            limit=None,
        )

    # PUBLIC_INTERFACE
    async def create_test_result(self, payload: TestResultCreate) -> TestResult:
        if payload.mix_design_id is not None:
            self.require(await self.mix_designs.get(payload.mix_design_id), "Mix design not found")
        if payload.piece_id is not None:
            self.require(await self.pieces.get(payload.piece_id), "Piece not found")
        result = TestResult(**payload.model_dump(exclude={"test_date"}), test_date=payload.test_date or date.today())
        result.passed = payload.required_value is None or payload.value >= payload.required_value
        return await self.test_results.create(result)

    # PUBLIC_INTERFACE
    async def get_dashboard(self) -> QualityDashboard:
        by_status = await self.inspections.counts_by_status()
        open_defects = await self.defects.open_by_severity()
        decided = by_status.get("PASSED", 0) + by_status.get("FAILED", 0)
        return QualityDashboard(
            inspections_by_status={s: by_status.get(s, 0) for s in INSPECTION_STATUSES},
            open_defects_by_severity={s: open_defects.get(s, 0) for s in DEFECT_SEVERITIES},
            pass_rate=round(by_status.get("PASSED", 0) / decided * 100, 2) if decided else 0.0,
            total_inspections=sum(by_status.values()),
            total_defects=await self.defects.count(),
        )

    async def upcoming_inspections(self, days: int = 7) -> List[QCInspection]:
        today = date.today()
        return await self.inspections.list(
            where=[
                QCInspection.status == "PENDING",
                QCInspection.scheduled_date >= today,
                QCInspection.scheduled_date <= today + timedelta(days=days),
            ],
            order=("scheduled_date",),
            limit=None,
        )
