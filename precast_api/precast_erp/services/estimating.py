from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.api.exports import render_pdf
from precast_erp.core.errors import ConflictError
from precast_erp.db.base import utcnow
from precast_erp.db.models.estimating import Estimate
from precast_erp.db.models.projects import Project
from precast_erp.repositories.estimating import EstimateRepository
from precast_erp.repositories.projects import ProjectRepository
from precast_erp.schemas.estimating import EstimateCreate, EstimateUpdate
from precast_erp.services.base import BaseService

logger = logging.getLogger(__name__)

# Changing any of these re-prices the estimate.
PRICING_FIELDS = ("line_items", "tax_rate", "discount")


class EstimateService(BaseService):
    """
    Estimates and their lifecycle.

    draft -> sent -> approved | rejected; an approved estimate can be turned
    into a project exactly once.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.estimates = EstimateRepository(session)
        self.projects = ProjectRepository(session)

    async def _get(self, estimate_id: UUID) -> Estimate:
        return self.require(await self.estimates.get(estimate_id), "Estimate not found")

    @staticmethod
    def _check_status(estimate: Estimate, allowed: tuple[str, ...], action: str) -> None:
        if estimate.status not in allowed:
            raise ConflictError(f"Estimate in status {estimate.status} cannot be {action}")

    async def _next_estimate_number(self) -> str:
        return await self.next_number(Estimate.estimate_number, f"EST-{self.month_tag()}-")

    async def get_estimates(
        self,
        *,
        status: Optional[str] = None,
        client_id: Optional[UUID] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Estimate]:
        return await self.estimates.list(
            filters={"status": status, "client_id": client_id}, search=search, limit=limit, offset=offset
        )

    async def get_estimate_by_id(self, estimate_id: UUID) -> Optional[Estimate]:
        return await self.estimates.get(estimate_id)

    # PUBLIC_INTERFACE
    async def create_estimate(self, payload: EstimateCreate) -> Estimate:
        data = payload.model_dump(exclude_none=True)
        if not data.get("estimate_number"):
            data["estimate_number"] = await self._next_estimate_number()
        estimate = Estimate(**data).recalculate()
        created = await self.estimates.create(estimate)
        logger.info("Created estimate %s total=%s", created.estimate_number, created.total)
        return created

    # PUBLIC_INTERFACE
    async def update_estimate(self, estimate_id: UUID, payload: EstimateUpdate) -> Optional[Estimate]:
        estimate = await self.estimates.get(estimate_id)
        if estimate is None:
            return None
        patch = payload.model_dump(exclude_unset=True)
        self.apply_patch(estimate, patch)
        if any(f in patch for f in PRICING_FIELDS):
            estimate.recalculate()
        return await self.estimates.save(estimate)

    async def delete_estimate(self, estimate_id: UUID) -> bool:
        estimate = await self.estimates.get(estimate_id)
        if estimate is None:
            return False
        await self.estimates.delete(estimate)
        return True

    # PUBLIC_INTERFACE
    async def send_estimate(self, estimate_id: UUID, email: str) -> Estimate:
        """Mark a draft as sent to `email`. Delivery of the e-mail happens elsewhere."""
        estimate = await self._get(estimate_id)
        self._check_status(estimate, ("draft",), "sent")
        estimate.status = "sent"
        estimate.sent_to = email
        estimate.sent_at = utcnow()
        logger.info("Estimate %s sent to %s", estimate.estimate_number, email)
        return await self.estimates.save(estimate)

    # PUBLIC_INTERFACE
    async def approve_estimate(self, estimate_id: UUID, approved_by: str) -> Estimate:
        estimate = await self._get(estimate_id)
        self._check_status(estimate, ("draft", "sent"), "approved")
        estimate.status = "approved"
        estimate.approved_by = approved_by
        estimate.approved_at = utcnow()
        logger.info("Estimate %s approved by %s", estimate.estimate_number, approved_by)
        return await self.estimates.save(estimate)

    # PUBLIC_INTERFACE
    async def reject_estimate(self, estimate_id: UUID, reason: str = "") -> Estimate:
        estimate = await self._get(estimate_id)
        self._check_status(estimate, ("draft", "sent"), "rejected")
        estimate.status = "rejected"
        estimate.rejection_reason = reason
        logger.info("Estimate %s rejected", estimate.estimate_number)
        return await self.estimates.save(estimate)

    # PUBLIC_INTERFACE
    async def convert_to_project(self, estimate_id: UUID) -> Project:
        """Create a project budgeted at the estimate total and link it back."""
        estimate = await self._get(estimate_id)
        if estimate.status != "approved":
            raise ConflictError("Only approved estimates can be converted to projects")
        if estimate.project_id is not None:
            raise ConflictError("Estimate has already been converted to a project")
        project = Project(
            name=estimate.project_name or estimate.estimate_number,
            description=estimate.description,
            client_id=estimate.client_id,
            estimate_id=estimate.id,
            budget=estimate.total,
        )
        await self.projects.add(project)
        estimate.project_id = project.id
        await self.estimates.commit()
        logger.info("Estimate %s converted to project %s", estimate.estimate_number, project.id)
        return project

    # PUBLIC_INTERFACE
    async def duplicate_estimate(self, estimate_id: UUID) -> Estimate:
        source = await self._get(estimate_id)
        copy = Estimate(
            estimate_number=await self._next_estimate_number(),
            client_id=source.client_id,
            project_name=source.project_name,
            description=source.description,
            expiry_date=source.expiry_date,
            line_items=[dict(item) for item in source.line_items or []],
            tax_rate=source.tax_rate,
            discount=source.discount,
            notes=source.notes,
            terms=source.terms,
            created_by=source.created_by,
            custom_fields=dict(source.custom_fields or {}),
        ).recalculate()
        return await self.estimates.create(copy)

    # PUBLIC_INTERFACE
    async def render_estimate_pdf(self, estimate_id: UUID) -> bytes:
        estimate = await self._get(estimate_id)
        columns = ["description", "quantity", "unit", "unit_price", "amount"]
        lines = pd.DataFrame(
            [
                {
                    "description": li.get("description", ""),
                    "quantity": li.get("quantity", 0),
                    "unit": li.get("unit", ""),
                    "unit_price": f"{float(li.get('unit_price') or 0):.2f}",
                    "amount": f"{float(li.get('quantity') or 0) * float(li.get('unit_price') or 0):.2f}",
                }
                for li in estimate.line_items or []
            ],
            columns=columns,
        )
        header = [
            f"Project: {estimate.project_name}",
            f"Issued: {estimate.issue_date.isoformat()}"
            + (f"   Valid until: {estimate.expiry_date.isoformat()}" if estimate.expiry_date else ""),
            f"Status: {estimate.status}",
            f"Subtotal: {estimate.subtotal:.2f}   Discount: {estimate.discount:.2f}   "
            f"Tax ({estimate.tax_rate:g}%): {estimate.tax_amount:.2f}   Total: {estimate.total:.2f}",
        ]
        if estimate.terms:
            header.append(f"Terms: {estimate.terms}")
        return render_pdf(f"Estimate {estimate.estimate_number}", lines, header)
