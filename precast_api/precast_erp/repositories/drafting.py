from __future__ import annotations

from typing import List
from uuid import UUID

from sqlalchemy import String, cast, or_, select

from precast_erp.db.models.drafting import (
    Drawing,
    DrawingMarkup,
    DrawingRevision,
    Workflow,
    WorkflowTemplate,
)
from .base import ModelRepository


class DrawingRepository(ModelRepository[Drawing]):
    model = Drawing
    default_order = ("drawing_number", "title")

    async def search(self, query: str, limit: int = 100) -> List[Drawing]:
        """Match title, drawing number or any tag (tags are searched as JSON text)."""
        like = f"%{query}%"
        stmt = (
            select(Drawing)
            .where(
                or_(
                    Drawing.title.ilike(like),
                    Drawing.drawing_number.ilike(like),
                    cast(Drawing.tags, String).ilike(like),
                )
            )
            .order_by(Drawing.drawing_number, Drawing.title)
            .limit(limit)
        )
        res = await self.scalars(stmt)
        return list(res)


class RevisionRepository(ModelRepository[DrawingRevision]):
    model = DrawingRevision
    default_order = ("-created_at",)

    async def list_for_drawing(self, drawing_id: UUID) -> List[DrawingRevision]:
        return await self.list(filters={"drawing_id": drawing_id}, limit=None)


class MarkupRepository(ModelRepository[DrawingMarkup]):
    model = DrawingMarkup
    default_order = ("created_at",)


class WorkflowRepository(ModelRepository[Workflow]):
    model = Workflow


class TemplateRepository(ModelRepository[WorkflowTemplate]):
    model = WorkflowTemplate
    default_order = ("name",)
