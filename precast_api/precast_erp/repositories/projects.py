from __future__ import annotations

from precast_erp.db.models.projects import Project
from .base import ModelRepository


class ProjectRepository(ModelRepository[Project]):
    model = Project
    search_columns = ("name", "description")
    default_order = ("-created_at",)
