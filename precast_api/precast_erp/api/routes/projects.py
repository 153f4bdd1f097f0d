from __future__ import annotations

from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.api.exports import export_dataframe
from precast_erp.core.deps import get_ai_client, get_session
from precast_erp.schemas.projects import (
    BudgetUpdate,
    ProgressUpdate,
    ProjectAnalytics,
    ProjectCreate,
    ProjectRead,
    ProjectUpdate,
    TaskCreate,
    TaskUpdate,
    TeamMemberRequest,
)
from precast_erp.services.ai.client import AIClient
from precast_erp.services.ai.projects import ProjectAIService
from precast_erp.services.projects import ProjectService

router = APIRouter(prefix="/projects", tags=["Projects"])


# PUBLIC_INTERFACE
@router.get("", response_model=List[ProjectRead], summary="List projects")
async def list_projects(
    session: AsyncSession = Depends(get_session),
    status_: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    client_id: Optional[UUID] = Query(None),
    manager_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[ProjectRead]:
    rows = await ProjectService(session).get_projects(
        status=status_, priority=priority, client_id=client_id, manager_id=manager_id,
        search=search, limit=limit, offset=offset,
    )
    return [ProjectRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post("", response_model=ProjectRead, status_code=status.HTTP_201_CREATED, summary="Create project")
async def create_project(payload: ProjectCreate, session: AsyncSession = Depends(get_session)) -> ProjectRead:
    return ProjectRead.model_validate(await ProjectService(session).create_project(payload))


# PUBLIC_INTERFACE
@router.get("/{project_id}", response_model=ProjectRead, summary="Get project")
async def get_project(project_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> ProjectRead:
    project = await ProjectService(session).get_project_by_id(project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return ProjectRead.model_validate(project)


# PUBLIC_INTERFACE
@router.patch("/{project_id}", response_model=ProjectRead, summary="Update project")
async def update_project(
    payload: ProjectUpdate, project_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> ProjectRead:
    project = await ProjectService(session).update_project(project_id, payload)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return ProjectRead.model_validate(project)


# PUBLIC_INTERFACE
@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete project")
async def delete_project(project_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> Response:
    if not await ProjectService(session).delete_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# PUBLIC_INTERFACE
@router.post("/{project_id}/tasks", response_model=ProjectRead, status_code=status.HTTP_201_CREATED, summary="Add task")
async def add_task(
    payload: TaskCreate, project_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> ProjectRead:
    return ProjectRead.model_validate(await ProjectService(session).add_task(project_id, payload))


# PUBLIC_INTERFACE
@router.patch("/{project_id}/tasks/{task_id}", response_model=ProjectRead, summary="Update task")
async def update_task(
    payload: TaskUpdate,
    project_id: UUID = Path(...),
    task_id: str = Path(...),
    session: AsyncSession = Depends(get_session),
) -> ProjectRead:
    return ProjectRead.model_validate(await ProjectService(session).update_task(project_id, task_id, payload))


# PUBLIC_INTERFACE
@router.delete("/{project_id}/tasks/{task_id}", response_model=ProjectRead, summary="Delete task")
async def delete_task(
    project_id: UUID = Path(...), task_id: str = Path(...), session: AsyncSession = Depends(get_session)
) -> ProjectRead:
    return ProjectRead.model_validate(await ProjectService(session).delete_task(project_id, task_id))


# PUBLIC_INTERFACE
@router.post("/{project_id}/team", response_model=ProjectRead, summary="Add team member")
async def add_team_member(
    payload: TeamMemberRequest, project_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> ProjectRead:
    return ProjectRead.model_validate(await ProjectService(session).add_team_member(project_id, payload.user_id))


# PUBLIC_INTERFACE
@router.delete("/{project_id}/team/{user_id}", response_model=ProjectRead, summary="Remove team member")
async def remove_team_member(
    project_id: UUID = Path(...), user_id: str = Path(...), session: AsyncSession = Depends(get_session)
) -> ProjectRead:
    return ProjectRead.model_validate(await ProjectService(session).remove_team_member(project_id, user_id))


# PUBLIC_INTERFACE
@router.put("/{project_id}/progress", response_model=ProjectRead, summary="Update progress")
async def update_progress(
    payload: ProgressUpdate, project_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> ProjectRead:
    return ProjectRead.model_validate(await ProjectService(session).update_progress(project_id, payload.progress))


# PUBLIC_INTERFACE
@router.put("/{project_id}/budget", response_model=ProjectRead, summary="Update budget")
async def update_budget(
    payload: BudgetUpdate, project_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> ProjectRead:
    return ProjectRead.model_validate(await ProjectService(session).update_budget(project_id, payload))


# PUBLIC_INTERFACE
@router.get("/{project_id}/analytics", response_model=ProjectAnalytics, summary="Project analytics")
async def project_analytics(project_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> ProjectAnalytics:
    return await ProjectService(session).get_analytics(project_id)


# PUBLIC_INTERFACE
@router.get(
    "/{project_id}/reports/{report_type}",
    summary="Project report",
    description="report_type: summary | tasks | budget",
    response_description="File stream (CSV/XLSX/PDF)",
)
async def project_report(
    project_id: UUID = Path(...),
    report_type: str = Path(...),
    format: str = Query("csv", description="Export format: csv | xlsx | pdf"),
    session: AsyncSession = Depends(get_session),
):
    df = await ProjectService(session).generate_report(project_id, report_type)
    return export_dataframe(df, f"project_{report_type}", format)


# PUBLIC_INTERFACE
@router.post(
    "/ai/{action}",
    summary="Run a project AI action",
    description="Actions: " + ", ".join(a.replace("_", "-") for a in ProjectAIService.actions),
)
async def run_project_ai(
    action: str = Path(...),
    params: Optional[dict[str, Any]] = Body(None),
    client: AIClient = Depends(get_ai_client),
) -> Any:
    return await ProjectAIService(client).run(action, params or {})
