from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import Date, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from precast_erp.db.base import Amount, Base, JSONType, TimestampMixin, UUIDPkMixin

PROJECT_STATUSES = ("planning", "in_progress", "on_hold", "completed", "cancelled")
PROJECT_PRIORITIES = ("low", "medium", "high", "urgent")
TASK_STATUSES = ("todo", "in_progress", "blocked", "completed")


class Project(UUIDPkMixin, TimestampMixin, Base):
    """Client project with embedded task list and team."""
    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    estimate_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="planning")
    priority: Mapped[str] = mapped_column(Text, nullable=False, default="medium")
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    budget: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    actual_cost: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    progress: Mapped[int] = mapped_column(nullable=False, default=0)
    manager_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    team_members: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    tasks: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    custom_fields: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    def calculate_progress(self) -> int:
        tasks = self.tasks or []
        if not tasks:
            return 0
        completed = sum(1 for t in tasks if t.get("status") == "completed")
        return round(completed / len(tasks) * 100)

    @property
    def budget_variance(self) -> float:
        return float(self.budget or 0) - float(self.actual_cost or 0)

    @property
    def is_over_budget(self) -> bool:
        return float(self.actual_cost or 0) > float(self.budget or 0)

    def is_delayed(self, today: Optional[date] = None) -> bool:
        if not self.end_date:
            return False
        today = today or date.today()
        return today > self.end_date and self.status != "completed"

    def timeline_variance(self, today: Optional[date] = None) -> Optional[int]:
        """Elapsed share of the planned duration, in percent."""
        if not self.start_date or not self.end_date:
            return None
        planned = (self.end_date - self.start_date).days
        if planned <= 0:
            return None
        today = today or date.today()
        return round((today - self.start_date).days / planned * 100)
