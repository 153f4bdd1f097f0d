from __future__ import annotations

import pytest

from precast_erp.core.errors import ConflictError, ValidationFailedError
from precast_erp.schemas.quality import (
    ChecklistItem,
    DefectCreate,
    DefectUpdate,
    InspectionCreate,
    InspectionUpdate,
    Measurement,
    MixDesignCreate,
    PieceCreate,
    TestResultCreate as LabResultCreate,
)
from precast_erp.services.quality import QualityService, measurement_status


def test_measurement_status():
    assert measurement_status(Measurement(name="length", nominal=6000, tolerance=5, actual=6004)) == "WITHIN_SPEC"
    assert measurement_status(Measurement(name="length", nominal=6000, tolerance=5, actual=6006)) == "OUT_OF_SPEC"
    assert measurement_status(Measurement(name="length", nominal=6000)) is None


@pytest.fixture
async def piece(session):
    return await QualityService(session).create_piece(PieceCreate(piece_number="DT-101", piece_type="double tee"))


async def test_inspection_result_updates_piece(session, piece):
    service = QualityService(session)
    inspection = await service.create_inspection(
        InspectionCreate(
            type="FINAL",
            piece_id=piece.id,
            checklist_items=[ChecklistItem(description="Strand cut clean")],
            measurements=[Measurement(name="camber", nominal=20, tolerance=3, actual=25)],
        )
    )
    assert inspection.inspection_number.startswith("QC")
    assert inspection.measurements[0]["status"] == "OUT_OF_SPEC"
    assert inspection.completed_date is None
    assert piece.status == "PLANNED"

    inspection = await service.update_inspection(inspection.id, InspectionUpdate(status="FAILED"))
    assert inspection.completed_date is not None
    piece = await service.get_piece_by_id(piece.id)
    assert piece.status == "QC_REJECTED"

    await service.update_inspection(inspection.id, InspectionUpdate(status="WAIVED"))
    piece = await service.get_piece_by_id(piece.id)
    assert piece.status == "QC_REJECTED"


async def test_inspection_validation(session):
    service = QualityService(session)
    with pytest.raises(ValidationFailedError, match="Invalid inspection type"):
        await service.create_inspection(InspectionCreate(type="RANDOM"))
    with pytest.raises(ValidationFailedError, match="Invalid checklist status"):
        await service.create_inspection(
            InspectionCreate(type="PRE_POUR", checklist_items=[ChecklistItem(description="x", status="MAYBE")])
        )


async def test_duplicate_piece_number(session, piece):
    with pytest.raises(ConflictError, match="DT-101 already exists"):
        await QualityService(session).create_piece(PieceCreate(piece_number="DT-101"))


async def test_defect_workflow(session, piece):
    service = QualityService(session)
    inspection = await service.create_inspection(InspectionCreate(type="POST_POUR", piece_id=piece.id))
    defect = await service.create_defect(
        DefectCreate(inspection_id=inspection.id, type="spall", severity="MAJOR")
    )
    assert defect.piece_id == piece.id
    assert defect.status == "OPEN"
    assert defect.defect_number.startswith("DEF")

    with pytest.raises(ConflictError, match="Invalid status transition from OPEN to REPAIRED"):
        await service.update_defect(defect.id, DefectUpdate(status="REPAIRED"))

    await service.update_defect(defect.id, DefectUpdate(status="APPROVED_FOR_REPAIR", repair_method="patch"))
    defect = await service.update_defect(defect.id, DefectUpdate(status="REPAIRED"))
    assert defect.resolved_at is not None

    defect = await service.update_defect(defect.id, DefectUpdate(status="CLOSED"))
    with pytest.raises(ConflictError):
        await service.update_defect(defect.id, DefectUpdate(status="OPEN"))


async def test_test_results_pass_against_required_value(session):
    service = QualityService(session)
    mix = await service.create_mix_design(MixDesignCreate(name="5000 psi SCC", code="M5000", strength_psi=5000))
    weak = await service.create_test_result(
        LabResultCreate(mix_design_id=mix.id, test_type="compressive", age_days=28, value=4800, required_value=5000)
    )
    strong = await service.create_test_result(
        LabResultCreate(mix_design_id=mix.id, test_type="compressive", age_days=28, value=5200, required_value=5000)
    )
    unchecked = await service.create_test_result(LabResultCreate(test_type="slump", value=9, unit="in"))
    assert (weak.passed, strong.passed, unchecked.passed) == (False, True, True)

    failed = await service.get_test_results(passed=False)
    assert [r.id for r in failed] == [weak.id]

    with pytest.raises(ConflictError):
        await service.create_mix_design(MixDesignCreate(name="dup", code="M5000", strength_psi=4000))


async def test_dashboard(session, piece):
    service = QualityService(session)
    await service.create_inspection(InspectionCreate(type="FINAL", piece_id=piece.id, status="PASSED"))
    await service.create_inspection(InspectionCreate(type="FINAL", status="FAILED"))
    await service.create_inspection(InspectionCreate(type="PRE_POUR"))
    await service.create_defect(DefectCreate(type="crack", severity="CRITICAL"))

    dashboard = await service.get_dashboard()
    assert dashboard.total_inspections == 3
    assert dashboard.pass_rate == 50
    assert dashboard.inspections_by_status["PENDING"] == 1
    assert dashboard.open_defects_by_severity["CRITICAL"] == 1
    assert dashboard.total_defects == 1

    piece = await service.get_piece_by_id(piece.id)
    assert piece.status == "QC_APPROVED"


async def test_quality_routes(client):
    resp = await client.post("/quality/pieces", json={"piece_number": "WP-1"})
    assert resp.status_code == 201
    piece_id = resp.json()["id"]

    resp = await client.post("/quality/inspections", json={"type": "FINAL", "piece_id": piece_id})
    assert resp.status_code == 201
    inspection_id = resp.json()["id"]

    resp = await client.patch(f"/quality/inspections/{inspection_id}", json={"status": "PASSED"})
    assert resp.status_code == 200
    resp = await client.get(f"/quality/pieces/{piece_id}")
    assert resp.json()["status"] == "QC_APPROVED"
