from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.errors import ConflictError, NotFoundError
from precast_erp.db.base import utcnow
from precast_erp.db.models.drafting import (
    DRAWING_STATUSES,
    MARKUP_TYPES,
    WORKFLOW_STATUSES,
    Drawing,
    DrawingMarkup,
    DrawingRevision,
    Workflow,
    WorkflowTemplate,
)
from precast_erp.repositories.drafting import (
    DrawingRepository,
    MarkupRepository,
    RevisionRepository,
    TemplateRepository,
    WorkflowRepository,
)
from precast_erp.schemas.drafting import (
    DrawingCreate,
    DrawingUpdate,
    MarkupCreate,
    RevisionCreate,
    TemplateCreate,
    WorkflowCreate,
    WorkflowFromTemplate,
    WorkflowStepIn,
    WorkflowUpdate,
)
from precast_erp.services.base import BaseService

logger = logging.getLogger(__name__)


def _next_revision(current: str) -> str:
    """'0' -> '1', 'A' -> 'B'; anything else gets '.1' appended."""
    if current.isdigit():
        return str(int(current) + 1)
    if len(current) == 1 and current.isalpha() and current.upper() != "Z":
        return chr(ord(current) + 1)
    return f"{current}.1"


class DrawingService(BaseService):
    """Drawings, their revisions and markups."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.drawings = DrawingRepository(session)
        self.revisions = RevisionRepository(session)
        self.markups = MarkupRepository(session)

    async def _get(self, drawing_id: UUID) -> Drawing:
        return self.require(await self.drawings.get(drawing_id), "Drawing not found")

    async def get_drawings(
        self, *, project_id: Optional[UUID] = None, status: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> List[Drawing]:
        return await self.drawings.list(
            filters={"project_id": project_id, "status": status}, limit=limit, offset=offset
        )

    async def get_drawing_by_id(self, drawing_id: UUID) -> Optional[Drawing]:
        return await self.drawings.get(drawing_id)

    async def get_drawings_by_project(self, project_id: UUID) -> List[Drawing]:
        return await self.drawings.list(filters={"project_id": project_id}, limit=None)

    async def search_drawings(self, query: str) -> List[Drawing]:
        return await self.drawings.search(query)

    # PUBLIC_INTERFACE
    async def create_drawing(self, payload: DrawingCreate) -> Drawing:
        drawing = Drawing(**payload.model_dump())
        self.check_choice(drawing.status, DRAWING_STATUSES, "drawing status")
        return await self.drawings.create(drawing)

    async def update_drawing(self, drawing_id: UUID, payload: DrawingUpdate) -> Optional[Drawing]:
        drawing = await self.drawings.get(drawing_id)
        if drawing is None:
            return None
        self.apply_patch(drawing, payload.model_dump(exclude_unset=True))
        self.check_choice(drawing.status, DRAWING_STATUSES, "drawing status")
        return await self.drawings.save(drawing)

    async def delete_drawing(self, drawing_id: UUID) -> bool:
        drawing = await self.drawings.get(drawing_id)
        if drawing is None:
            return False
        await self.drawings.delete(drawing)
        return True

    # PUBLIC_INTERFACE
    async def create_revision(self, drawing_id: UUID, payload: RevisionCreate) -> DrawingRevision:
        """Record a revision and bump the drawing's revision number to match."""
        drawing = await self._get(drawing_id)
        number = payload.revision_number or _next_revision(drawing.revision_number or "0")
        revision = DrawingRevision(
            drawing_id=drawing.id,
            revision_number=number,
            **payload.model_dump(exclude={"revision_number"}),
        )
        drawing.revision_number = number
        await self.revisions.add(revision)
        await self.revisions.commit()
        logger.info("Drawing %s revised to %s", drawing.id, number)
        return revision

    async def get_revisions(self, drawing_id: UUID) -> List[DrawingRevision]:
        await self._get(drawing_id)
        return await self.revisions.list_for_drawing(drawing_id)

    async def add_markup(self, drawing_id: UUID, payload: MarkupCreate) -> DrawingMarkup:
        drawing = await self._get(drawing_id)
        self.check_choice(payload.type, MARKUP_TYPES, "markup type")
        markup = DrawingMarkup(drawing_id=drawing.id, **payload.model_dump())
        return await self.markups.create(markup)

    async def get_markups(self, drawing_id: UUID, revision_id: Optional[UUID] = None) -> List[DrawingMarkup]:
        await self._get(drawing_id)
        return await self.markups.list(filters={"drawing_id": drawing_id, "revision_id": revision_id}, limit=None)


class WorkflowService(BaseService):
    """
    Review/approval workflows.

    Steps run strictly in order: the current step is `in-progress`, earlier
    ones `completed`, later ones `pending`.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.workflows = WorkflowRepository(session)
        self.templates = TemplateRepository(session)

    @staticmethod
    def _build_steps(steps: list[WorkflowStepIn], assignments: Optional[dict[str, str]] = None) -> list[dict]:
        built = []
        for index, step in enumerate(steps):
            step_id = step.id or f"step{index + 1}"
            built.append(
                {
                    "id": step_id,
                    "name": step.name,
                    "assignee": (assignments or {}).get(step_id, step.assignee),
                    "status": "in-progress" if index == 0 else "pending",
                    "completed_by": None,
                    "completed_at": None,
                    "comments": "",
                }
            )
        return built

    async def _get(self, workflow_id: UUID) -> Workflow:
        return self.require(await self.workflows.get(workflow_id), "Workflow not found")

    async def get_workflows(self, *, project_id: Optional[UUID] = None, status: Optional[str] = None) -> List[Workflow]:
        return await self.workflows.list(filters={"project_id": project_id, "status": status}, limit=None)

    async def get_workflow_by_id(self, workflow_id: UUID) -> Optional[Workflow]:
        return await self.workflows.get(workflow_id)

    # PUBLIC_INTERFACE
    async def create_workflow(self, payload: WorkflowCreate) -> Workflow:
        workflow = Workflow(
            **payload.model_dump(exclude={"steps"}),
            steps=self._build_steps(payload.steps),
        )
        created = await self.workflows.create(workflow)
        logger.info("Created workflow %s with %d steps", created.id, len(created.steps))
        return created

    async def update_workflow(self, workflow_id: UUID, payload: WorkflowUpdate) -> Optional[Workflow]:
        workflow = await self.workflows.get(workflow_id)
        if workflow is None:
            return None
        self.apply_patch(workflow, payload.model_dump(exclude_unset=True))
        self.check_choice(workflow.status, WORKFLOW_STATUSES, "workflow status")
        return await self.workflows.save(workflow)

    async def delete_workflow(self, workflow_id: UUID) -> bool:
        workflow = await self.workflows.get(workflow_id)
        if workflow is None:
            return False
        await self.workflows.delete(workflow)
        return True

    # PUBLIC_INTERFACE
    async def advance_workflow(self, workflow_id: UUID, user_id: str, comments: str = "") -> Workflow:
        """
        Complete the current step and start the next one. Completing the last
        step completes the workflow.
        """
        workflow = await self._get(workflow_id)
        steps = [dict(s) for s in workflow.steps or []]
        current = workflow.current_step
        last = len(steps) - 1
        if not steps or current > last or (current == last and steps[current]["status"] == "completed"):
            raise ConflictError("Workflow is already at the final step")

        now = utcnow().isoformat()
        steps[current].update(status="completed", completed_by=user_id, completed_at=now, comments=comments)
        if current < last:
            workflow.current_step = current + 1
            steps[current + 1]["status"] = "in-progress"
        else:
            workflow.status = "completed"
            workflow.completed_at = utcnow()
        workflow.steps = steps
        logger.info("Workflow %s advanced past step %d by %s", workflow.id, current, user_id)
        return await self.workflows.save(workflow)

    # PUBLIC_INTERFACE
    async def assign_workflow_step(self, workflow_id: UUID, step_id: str, user_id: str) -> Workflow:
        workflow = await self._get(workflow_id)
        steps = [dict(s) for s in workflow.steps or []]
        for step in steps:
            if step.get("id") == step_id:
                step["assignee"] = user_id
                break
        else:
            raise NotFoundError("Step not found")
        workflow.steps = steps
        if user_id not in (workflow.participants or []):
            workflow.participants = [*(workflow.participants or []), user_id]
        return await self.workflows.save(workflow)

    async def create_template(self, payload: TemplateCreate) -> WorkflowTemplate:
        steps = [
            {"id": s.id or f"step{i + 1}", "name": s.name, "assignee": s.assignee}
            for i, s in enumerate(payload.steps)
        ]
        template = WorkflowTemplate(**payload.model_dump(exclude={"steps"}), steps=steps)
        return await self.templates.create(template)

    async def get_templates(self) -> List[WorkflowTemplate]:
        return await self.templates.list(limit=None)

    # PUBLIC_INTERFACE
    async def create_workflow_from_template(self, template_id: UUID, payload: WorkflowFromTemplate) -> Workflow:
        template = await self.templates.get(template_id)
        if template is None:
            raise NotFoundError("Template not found")
        steps_in = [WorkflowStepIn(**s) for s in template.steps or []]
        workflow = Workflow(
            name=payload.name or template.name,
            description=payload.description or template.description,
            project_id=payload.project_id,
            drawing_id=payload.drawing_id,
            template_id=template.id,
            created_by=payload.created_by,
            steps=self._build_steps(steps_in, payload.assignments),
            participants=list(dict.fromkeys(payload.assignments.values())),
        )
        return await self.workflows.create(workflow)
