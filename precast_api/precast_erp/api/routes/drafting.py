from __future__ import annotations

from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.deps import get_ai_client, get_session
from precast_erp.schemas.drafting import (
    AdvanceWorkflowRequest,
    AssignStepRequest,
    CADBomRequest,
    CADExportRequest,
    CADImportRequest,
    CADSyncRequest,
    DrawingCreate,
    DrawingRead,
    DrawingUpdate,
    MarkupCreate,
    MarkupRead,
    RevisionCreate,
    RevisionRead,
    TemplateCreate,
    TemplateRead,
    WorkflowCreate,
    WorkflowFromTemplate,
    WorkflowRead,
    WorkflowUpdate,
)
from precast_erp.services.ai.client import AIClient
from precast_erp.services.ai.drafting import DraftingAIService
from precast_erp.services.cad import CADIntegrationService
from precast_erp.services.drafting import DrawingService, WorkflowService

router = APIRouter(prefix="/drafting", tags=["Drafting"])


# Drawings

# PUBLIC_INTERFACE
@router.get("/drawings", response_model=List[DrawingRead], summary="List drawings")
async def list_drawings(
    session: AsyncSession = Depends(get_session),
    project_id: Optional[UUID] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[DrawingRead]:
    rows = await DrawingService(session).get_drawings(project_id=project_id, status=status_, limit=limit, offset=offset)
    return [DrawingRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post("/drawings", response_model=DrawingRead, status_code=status.HTTP_201_CREATED, summary="Create drawing")
async def create_drawing(payload: DrawingCreate, session: AsyncSession = Depends(get_session)) -> DrawingRead:
    return DrawingRead.model_validate(await DrawingService(session).create_drawing(payload))


# PUBLIC_INTERFACE
@router.get(
    "/drawings/search",
    response_model=List[DrawingRead],
    summary="Search drawings",
    description="Match title, drawing number or tags.",
)
async def search_drawings(
    q: str = Query(..., min_length=1), session: AsyncSession = Depends(get_session)
) -> List[DrawingRead]:
    return [DrawingRead.model_validate(x) for x in await DrawingService(session).search_drawings(q)]


# PUBLIC_INTERFACE
@router.get("/projects/{project_id}/drawings", response_model=List[DrawingRead], summary="Drawings of a project")
async def list_project_drawings(
    project_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> List[DrawingRead]:
    rows = await DrawingService(session).get_drawings_by_project(project_id)
    return [DrawingRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.get("/drawings/{drawing_id}", response_model=DrawingRead, summary="Get drawing")
async def get_drawing(drawing_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> DrawingRead:
    drawing = await DrawingService(session).get_drawing_by_id(drawing_id)
    if not drawing:
        raise HTTPException(status_code=404, detail="Drawing not found")
    return DrawingRead.model_validate(drawing)


# PUBLIC_INTERFACE
@router.patch("/drawings/{drawing_id}", response_model=DrawingRead, summary="Update drawing")
async def update_drawing(
    payload: DrawingUpdate, drawing_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> DrawingRead:
    drawing = await DrawingService(session).update_drawing(drawing_id, payload)
    if not drawing:
        raise HTTPException(status_code=404, detail="Drawing not found")
    return DrawingRead.model_validate(drawing)


# PUBLIC_INTERFACE
@router.delete("/drawings/{drawing_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete drawing")
async def delete_drawing(drawing_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> Response:
    if not await DrawingService(session).delete_drawing(drawing_id):
        raise HTTPException(status_code=404, detail="Drawing not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# PUBLIC_INTERFACE
@router.get("/drawings/{drawing_id}/revisions", response_model=List[RevisionRead], summary="List revisions")
async def list_revisions(
    drawing_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> List[RevisionRead]:
    return [RevisionRead.model_validate(x) for x in await DrawingService(session).get_revisions(drawing_id)]


# PUBLIC_INTERFACE
@router.post(
    "/drawings/{drawing_id}/revisions",
    response_model=RevisionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create revision",
    description="Record a revision; the drawing's revision number follows it.",
)
async def create_revision(
    payload: RevisionCreate, drawing_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> RevisionRead:
    return RevisionRead.model_validate(await DrawingService(session).create_revision(drawing_id, payload))


# PUBLIC_INTERFACE
@router.get("/drawings/{drawing_id}/markups", response_model=List[MarkupRead], summary="List markups")
async def list_markups(
    drawing_id: UUID = Path(...),
    revision_id: Optional[UUID] = Query(None),
    session: AsyncSession = Depends(get_session),
) -> List[MarkupRead]:
    rows = await DrawingService(session).get_markups(drawing_id, revision_id)
    return [MarkupRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/drawings/{drawing_id}/markups",
    response_model=MarkupRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add markup",
)
async def add_markup(
    payload: MarkupCreate, drawing_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> MarkupRead:
    return MarkupRead.model_validate(await DrawingService(session).add_markup(drawing_id, payload))


# Workflows

# PUBLIC_INTERFACE
@router.get("/workflows", response_model=List[WorkflowRead], summary="List workflows")
async def list_workflows(
    session: AsyncSession = Depends(get_session),
    project_id: Optional[UUID] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
) -> List[WorkflowRead]:
    rows = await WorkflowService(session).get_workflows(project_id=project_id, status=status_)
    return [WorkflowRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post("/workflows", response_model=WorkflowRead, status_code=status.HTTP_201_CREATED, summary="Create workflow")
async def create_workflow(payload: WorkflowCreate, session: AsyncSession = Depends(get_session)) -> WorkflowRead:
    return WorkflowRead.model_validate(await WorkflowService(session).create_workflow(payload))


# PUBLIC_INTERFACE
@router.get("/workflows/{workflow_id}", response_model=WorkflowRead, summary="Get workflow")
async def get_workflow(workflow_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> WorkflowRead:
    workflow = await WorkflowService(session).get_workflow_by_id(workflow_id)
    if not workflow:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return WorkflowRead.model_validate(workflow)


# PUBLIC_INTERFACE
@router.patch("/workflows/{workflow_id}", response_model=WorkflowRead, summary="Update workflow")
async def update_workflow(
    payload: WorkflowUpdate, workflow_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> WorkflowRead:
    workflow = await WorkflowService(session).update_workflow(workflow_id, payload)
    if not workflow:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return WorkflowRead.model_validate(workflow)


# PUBLIC_INTERFACE
@router.delete("/workflows/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete workflow")
async def delete_workflow(workflow_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> Response:
    if not await WorkflowService(session).delete_workflow(workflow_id):
        raise HTTPException(status_code=404, detail="Workflow not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# PUBLIC_INTERFACE
@router.post(
    "/workflows/{workflow_id}/advance",
    response_model=WorkflowRead,
    summary="Advance workflow",
    description="Complete the current step and start the next one.",
)
async def advance_workflow(
    payload: AdvanceWorkflowRequest, workflow_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> WorkflowRead:
    workflow = await WorkflowService(session).advance_workflow(workflow_id, payload.user_id, payload.comments)
    return WorkflowRead.model_validate(workflow)


# PUBLIC_INTERFACE
@router.post("/workflows/{workflow_id}/steps/{step_id}/assign", response_model=WorkflowRead, summary="Assign step")
async def assign_workflow_step(
    payload: AssignStepRequest,
    workflow_id: UUID = Path(...),
    step_id: str = Path(...),
    session: AsyncSession = Depends(get_session),
) -> WorkflowRead:
    workflow = await WorkflowService(session).assign_workflow_step(workflow_id, step_id, payload.user_id)
    return WorkflowRead.model_validate(workflow)


# PUBLIC_INTERFACE
@router.get("/templates", response_model=List[TemplateRead], summary="List workflow templates")
async def list_templates(session: AsyncSession = Depends(get_session)) -> List[TemplateRead]:
    return [TemplateRead.model_validate(x) for x in await WorkflowService(session).get_templates()]


# PUBLIC_INTERFACE
@router.post(
    "/templates", response_model=TemplateRead, status_code=status.HTTP_201_CREATED, summary="Create workflow template"
)
async def create_template(payload: TemplateCreate, session: AsyncSession = Depends(get_session)) -> TemplateRead:
    return TemplateRead.model_validate(await WorkflowService(session).create_template(payload))


# PUBLIC_INTERFACE
@router.post(
    "/templates/{template_id}/workflows",
    response_model=WorkflowRead,
    status_code=status.HTTP_201_CREATED,
    summary="Start workflow from template",
)
async def create_workflow_from_template(
    payload: WorkflowFromTemplate, template_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> WorkflowRead:
    workflow = await WorkflowService(session).create_workflow_from_template(template_id, payload)
    return WorkflowRead.model_validate(workflow)


# CAD integration

# PUBLIC_INTERFACE
@router.post("/cad/import", summary="Import CAD file", description="Detect the CAD system and extract elements.")
async def import_cad_file(payload: CADImportRequest) -> dict[str, Any]:
    return CADIntegrationService().import_file(payload.file_name)


# PUBLIC_INTERFACE
@router.post("/cad/export", summary="Export elements to a CAD format")
async def export_cad_file(payload: CADExportRequest) -> dict[str, Any]:
    return CADIntegrationService().export_elements(payload.elements, payload.format)


# PUBLIC_INTERFACE
@router.post("/cad/sync", summary="Synchronise elements with a CAD system")
async def sync_cad(payload: CADSyncRequest) -> dict[str, Any]:
    return CADIntegrationService().synchronize(payload.system, payload.elements)


# PUBLIC_INTERFACE
@router.post("/cad/bom", summary="Bill of materials from CAD elements")
async def cad_bill_of_materials(payload: CADBomRequest) -> List[dict[str, Any]]:
    return CADIntegrationService().bill_of_materials(payload.elements)


# PUBLIC_INTERFACE
@router.post(
    "/ai/{action}",
    summary="Run a drafting AI action",
    description="Actions: " + ", ".join(a.replace("_", "-") for a in DraftingAIService.actions),
)
async def run_drafting_ai(
    action: str = Path(..., description="AI action, e.g. detect-conflicts"),
    params: Optional[dict[str, Any]] = Body(None),
    client: AIClient = Depends(get_ai_client),
) -> Any:
    return await DraftingAIService(client).run(action, params or {})
