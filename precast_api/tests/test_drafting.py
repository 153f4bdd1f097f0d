from __future__ import annotations

import pytest

from precast_erp.core.errors import ConflictError, NotFoundError, ValidationFailedError
from precast_erp.schemas.drafting import (
    DrawingCreate,
    RevisionCreate,
    TemplateCreate,
    WorkflowCreate,
    WorkflowFromTemplate,
    WorkflowStepIn,
)
from precast_erp.services.cad import CADIntegrationService, file_extension
from precast_erp.services.drafting import DrawingService, WorkflowService, _next_revision


@pytest.mark.parametrize(
    "current, expected",
    [("0", "1"), ("9", "10"), ("A", "B"), ("Z", "Z.1"), ("B2", "B2.1")],
)
def test_next_revision(current, expected):
    assert _next_revision(current) == expected


async def test_revision_bumps_drawing(session):
    service = DrawingService(session)
    drawing = await service.create_drawing(DrawingCreate(title="Column C1", drawing_number="C-101"))
    await service.create_revision(drawing.id, RevisionCreate(description="cover increased"))
    await service.create_revision(drawing.id, RevisionCreate(description="embed moved"))

    drawing = await service.get_drawing_by_id(drawing.id)
    assert drawing.revision_number == "2"
    revisions = await service.get_revisions(drawing.id)
    assert sorted(r.revision_number for r in revisions) == ["1", "2"]


async def test_workflow_advances_in_order(session):
    service = WorkflowService(session)
    workflow = await service.create_workflow(
        WorkflowCreate(
            name="Shop drawing review",
            steps=[WorkflowStepIn(name="Check"), WorkflowStepIn(name="Engineer"), WorkflowStepIn(name="Client")],
        )
    )
    assert [s["status"] for s in workflow.steps] == ["in-progress", "pending", "pending"]

    workflow = await service.advance_workflow(workflow.id, "checker", "ok")
    assert workflow.current_step == 1
    assert [s["status"] for s in workflow.steps] == ["completed", "in-progress", "pending"]
    assert workflow.steps[0]["completed_by"] == "checker"

    await service.advance_workflow(workflow.id, "engineer")
    workflow = await service.advance_workflow(workflow.id, "client")
    assert workflow.status == "completed"
    assert workflow.completed_at is not None

    with pytest.raises(ConflictError, match="final step"):
        await service.advance_workflow(workflow.id, "client")


async def test_assign_step(session):
    service = WorkflowService(session)
    workflow = await service.create_workflow(WorkflowCreate(name="Review", steps=[WorkflowStepIn(name="Check")]))
    workflow = await service.assign_workflow_step(workflow.id, "step1", "dana")
    assert workflow.steps[0]["assignee"] == "dana"
    assert workflow.participants == ["dana"]

    with pytest.raises(NotFoundError):
        await service.assign_workflow_step(workflow.id, "step9", "dana")


async def test_workflow_from_template(session):
    service = WorkflowService(session)
    template = await service.create_template(
        TemplateCreate(name="Approval", steps=[WorkflowStepIn(name="Draft"), WorkflowStepIn(name="Approve")])
    )
    workflow = await service.create_workflow_from_template(
        template.id, WorkflowFromTemplate(assignments={"step2": "pm"})
    )
    assert workflow.name == "Approval"
    assert workflow.template_id == template.id
    assert workflow.steps[1]["assignee"] == "pm"
    assert workflow.participants == ["pm"]


def test_cad_import_is_deterministic():
    cad = CADIntegrationService()
    first = cad.import_file("models/garage.ifc")
    second = cad.import_file("models/garage.ifc")
    assert first["system"] == "IFC"
    assert first["elements"] == second["elements"]
    assert 10 <= first["metadata"]["element_count"] <= 40
    assert first["metadata"]["file_name"] == "garage.ifc"

    with pytest.raises(ValidationFailedError, match="Unsupported file format"):
        cad.import_file("notes.txt")
    assert file_extension("README") == ""


def test_cad_bom_and_sync():
    elements = [
        {"id": "a", "type": "Beam", "properties": {"volume": 1.5, "material": "Concrete"}},
        {"id": "b", "type": "Beam", "properties": {"volume": 2.0, "material": "Steel"}},
        {"type": "Column", "properties": {"volume": 0.5, "material": "Concrete"}},
    ]
    cad = CADIntegrationService()
    bom = cad.bill_of_materials(elements)
    assert bom[0] == {"type": "Beam", "quantity": 2, "total_volume": 3.5, "materials": ["Concrete", "Steel"]}
    assert bom[1]["quantity"] == 1

    sync = cad.synchronize("Tekla", elements)
    assert sync["elements_updated"] == 2
    assert sync["elements_created"] == 1

    with pytest.raises(ValidationFailedError):
        cad.export_elements(elements, "stl")
    assert cad.export_elements(elements, ".DXF")["format"] == "dxf"


async def test_drafting_routes(client):
    resp = await client.post(
        "/drafting/workflows", json={"name": "Review", "steps": [{"name": "Check"}, {"name": "Approve"}]}
    )
    assert resp.status_code == 201
    workflow_id = resp.json()["id"]

    resp = await client.post(f"/drafting/workflows/{workflow_id}/advance", json={"user_id": "u1"})
    assert resp.status_code == 200
    assert resp.json()["current_step"] == 1

    resp = await client.post("/drafting/cad/import", json={"fileName": "panel.dwg"})
    assert resp.status_code == 200
    assert resp.json()["system"] == "AutoCAD"
