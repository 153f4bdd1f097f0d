from __future__ import annotations

from collections import Counter

from sqlalchemy import func, select

from precast_erp.db.models.quality import MixDesign, Piece, QCDefect, QCInspection, TestResult
from .base import ModelRepository


class PieceRepository(ModelRepository[Piece]):
    model = Piece
    search_columns = ("piece_number", "piece_type")
    default_order = ("piece_number",)


class InspectionRepository(ModelRepository[QCInspection]):
    """Repository for QC inspections."""
    model = QCInspection
    search_columns = ("inspection_number", "notes")

    async def counts_by_status(self) -> Counter:
        res = await self.execute(select(QCInspection.status, func.count()).group_by(QCInspection.status))
        return Counter(dict(res.all()))


class DefectRepository(ModelRepository[QCDefect]):
    model = QCDefect
    search_columns = ("defect_number", "description", "type")

    async def open_by_severity(self) -> Counter:
        stmt = (
            select(QCDefect.severity, func.count())
            .where(QCDefect.status.not_in(("CLOSED", "REJECTED", "REPAIRED")))
            .group_by(QCDefect.severity)
        )
        res = await self.execute(stmt)
        return Counter(dict(res.all()))


class MixDesignRepository(ModelRepository[MixDesign]):
    model = MixDesign
    search_columns = ("name", "code")
    default_order = ("code",)


class TestResultRepository(ModelRepository[TestResult]):
    model = TestResult
    default_order = ("-test_date",)
