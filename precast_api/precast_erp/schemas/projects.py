from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import ORMRead


class ProjectTask(BaseModel):
    id: str
    title: str
    status: str = "todo"
    assignee: Optional[str] = None
    due_date: Optional[date] = None


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1)
    status: str = Field("todo", description="todo|in_progress|blocked|completed")
    assignee: Optional[str] = None
    due_date: Optional[date] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    status: Optional[str] = None
    assignee: Optional[str] = None
    due_date: Optional[date] = None


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    client_id: Optional[UUID] = None
    estimate_id: Optional[UUID] = None
    status: str = Field("planning", description="planning|in_progress|on_hold|completed|cancelled")
    priority: str = Field("medium", description="low|medium|high|urgent")
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: float = Field(0, ge=0)
    actual_cost: float = Field(0, ge=0)
    manager_id: Optional[str] = None
    team_members: list[str] = Field(default_factory=list)
    notes: str = ""
    custom_fields: dict = Field(default_factory=dict)


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    client_id: Optional[UUID] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: Optional[float] = Field(None, ge=0)
    actual_cost: Optional[float] = Field(None, ge=0)
    manager_id: Optional[str] = None
    notes: Optional[str] = None
    custom_fields: Optional[dict] = None


class ProjectRead(ORMRead):
    name: str
    description: str
    client_id: Optional[UUID] = None
    estimate_id: Optional[UUID] = None
    status: str
    priority: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: float
    actual_cost: float
    progress: int
    manager_id: Optional[str] = None
    team_members: list[str]
    tasks: list[ProjectTask]
    notes: str
    custom_fields: dict
    budget_variance: float
    is_over_budget: bool


class ProgressUpdate(BaseModel):
    progress: Optional[int] = Field(None, ge=0, le=100, description="Omit to recompute from tasks")


class BudgetUpdate(BaseModel):
    budget: Optional[float] = Field(None, ge=0)
    actual_cost: Optional[float] = Field(None, ge=0)


class TeamMemberRequest(BaseModel):
    user_id: str


class ProjectAnalytics(BaseModel):
    progress: int
    task_counts: dict[str, int]
    total_tasks: int
    budget_variance: float
    is_over_budget: bool
    is_delayed: bool
    timeline_variance: Optional[int] = None
