from __future__ import annotations

import logging
import uuid
from collections import Counter
from typing import List, Optional
from uuid import UUID

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.errors import NotFoundError, ValidationFailedError
from precast_erp.db.models.projects import PROJECT_PRIORITIES, PROJECT_STATUSES, TASK_STATUSES, Project
from precast_erp.repositories.projects import ProjectRepository
from precast_erp.schemas.projects import (
    BudgetUpdate,
    ProjectAnalytics,
    ProjectCreate,
    ProjectUpdate,
    TaskCreate,
    TaskUpdate,
)
from precast_erp.services.base import BaseService

logger = logging.getLogger(__name__)

PROJECT_REPORT_TYPES = ("summary", "tasks", "budget")


class ProjectService(BaseService):
    """Projects with their embedded task list, team and budget."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.projects = ProjectRepository(session)

    async def _get(self, project_id: UUID) -> Project:
        return self.require(await self.projects.get(project_id), "Project not found")

    def _validate(self, project: Project) -> None:
        self.check_choice(project.status, PROJECT_STATUSES, "project status")
        self.check_choice(project.priority, PROJECT_PRIORITIES, "project priority")

    async def get_projects(
        self,
        *,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        client_id: Optional[UUID] = None,
        manager_id: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Project]:
        return await self.projects.list(
            filters={"status": status, "priority": priority, "client_id": client_id, "manager_id": manager_id},
            search=search,
            limit=limit,
            offset=offset,
        )

    async def get_project_by_id(self, project_id: UUID) -> Optional[Project]:
        return await self.projects.get(project_id)

    # PUBLIC_INTERFACE
    async def create_project(self, payload: ProjectCreate) -> Project:
        project = Project(**payload.model_dump())
        self._validate(project)
        created = await self.projects.create(project)
        logger.info("Created project %s (%s)", created.id, created.name)
        return created

    async def update_project(self, project_id: UUID, payload: ProjectUpdate) -> Optional[Project]:
        project = await self.projects.get(project_id)
        if project is None:
            return None
        self.apply_patch(project, payload.model_dump(exclude_unset=True))
        self._validate(project)
        return await self.projects.save(project)

    async def delete_project(self, project_id: UUID) -> bool:
        project = await self.projects.get(project_id)
        if project is None:
            return False
        await self.projects.delete(project)
        return True

    # PUBLIC_INTERFACE
    async def add_task(self, project_id: UUID, payload: TaskCreate) -> Project:
        project = await self._get(project_id)
        self.check_choice(payload.status, TASK_STATUSES, "task status")
        task = {"id": str(uuid.uuid4()), **payload.model_dump(mode="json")}
        project.tasks = [*(project.tasks or []), task]
        project.progress = project.calculate_progress()
        return await self.projects.save(project)

    # PUBLIC_INTERFACE
    async def update_task(self, project_id: UUID, task_id: str, payload: TaskUpdate) -> Project:
        project = await self._get(project_id)
        self.check_choice(payload.status, TASK_STATUSES, "task status")
        tasks = [dict(t) for t in project.tasks or []]
        for task in tasks:
            if task.get("id") == task_id:
                task.update(payload.model_dump(mode="json", exclude_unset=True))
                break
        else:
            raise NotFoundError("Task not found")
        project.tasks = tasks
        project.progress = project.calculate_progress()
        return await self.projects.save(project)

    async def delete_task(self, project_id: UUID, task_id: str) -> Project:
        project = await self._get(project_id)
        tasks = [t for t in project.tasks or [] if t.get("id") != task_id]
        if len(tasks) == len(project.tasks or []):
            raise NotFoundError("Task not found")
        project.tasks = tasks
        project.progress = project.calculate_progress()
        return await self.projects.save(project)

    async def add_team_member(self, project_id: UUID, user_id: str) -> Project:
        project = await self._get(project_id)
        if user_id not in (project.team_members or []):
            project.team_members = [*(project.team_members or []), user_id]
        return await self.projects.save(project)

    async def remove_team_member(self, project_id: UUID, user_id: str) -> Project:
        project = await self._get(project_id)
        project.team_members = [m for m in project.team_members or [] if m != user_id]
        return await self.projects.save(project)

    # PUBLIC_INTERFACE
    async def update_progress(self, project_id: UUID, progress: Optional[int] = None) -> Project:
        """Set progress explicitly, or recompute it from the task list when omitted."""
        project = await self._get(project_id)
        project.progress = project.calculate_progress() if progress is None else progress
        return await self.projects.save(project)

    async def update_budget(self, project_id: UUID, payload: BudgetUpdate) -> Project:
        project = await self._get(project_id)
        self.apply_patch(project, payload.model_dump(exclude_none=True))
        return await self.projects.save(project)

    # PUBLIC_INTERFACE
    async def get_analytics(self, project_id: UUID) -> ProjectAnalytics:
        project = await self._get(project_id)
        counts = Counter(t.get("status", "todo") for t in project.tasks or [])
        return ProjectAnalytics(
            progress=project.calculate_progress(),
            task_counts={s: counts.get(s, 0) for s in TASK_STATUSES},
            total_tasks=len(project.tasks or []),
            budget_variance=project.budget_variance,
            is_over_budget=project.is_over_budget,
            is_delayed=project.is_delayed(),
            timeline_variance=project.timeline_variance(),
        )

    # PUBLIC_INTERFACE
    async def generate_report(self, project_id: UUID, report_type: str = "summary") -> pd.DataFrame:
        """
        Tabular project report for export.

        summary: one field/value row per headline figure; tasks: one row per
        task; budget: budget, actual cost and variance.
        """
        if report_type not in PROJECT_REPORT_TYPES:
            raise ValidationFailedError(f"Unsupported report type: {report_type}")
        project = await self._get(project_id)
        if report_type == "tasks":
            columns = ["title", "status", "assignee", "due_date"]
            return pd.DataFrame(
                [{c: t.get(c) or "" for c in columns} for t in project.tasks or []],
                columns=columns,
            )

        budget_rows = [
            ("budget", round(float(project.budget or 0), 2)),
            ("actual_cost", round(float(project.actual_cost or 0), 2)),
            ("budget_variance", round(project.budget_variance, 2)),
            ("over_budget", project.is_over_budget),
        ]
        if report_type == "budget":
            return pd.DataFrame(budget_rows, columns=["field", "value"])

        tasks = project.tasks or []
        rows = [
            ("name", project.name),
            ("status", project.status),
            ("priority", project.priority),
            ("start_date", project.start_date.isoformat() if project.start_date else ""),
            ("end_date", project.end_date.isoformat() if project.end_date else ""),
            ("progress", project.calculate_progress() if tasks else project.progress),
            ("tasks", len(tasks)),
            ("completed_tasks", sum(1 for t in tasks if t.get("status") == "completed")),
            ("team_members", len(project.team_members or [])),
            ("delayed", project.is_delayed()),
            *budget_rows,
        ]
        return pd.DataFrame(rows, columns=["field", "value"])
