from __future__ import annotations

from collections import Counter
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select

from precast_erp.db.models.sales import Job, Lead, Opportunity, Quote
from .base import ModelRepository


class LeadRepository(ModelRepository[Lead]):
    model = Lead
    search_columns = ("lead_number", "name", "company_name", "contact_name")

    async def counts_by_status(self) -> Counter:
        res = await self.execute(select(Lead.status, func.count()).group_by(Lead.status))
        return Counter(dict(res.all()))


class OpportunityRepository(ModelRepository[Opportunity]):
    model = Opportunity
    search_columns = ("opportunity_number", "name", "company_name", "contact_name")

    async def counts_by_status(self) -> Counter:
        res = await self.execute(select(Opportunity.status, func.count()).group_by(Opportunity.status))
        return Counter(dict(res.all()))


class QuoteRepository(ModelRepository[Quote]):
    model = Quote
    search_columns = ("quote_number", "notes")

    async def latest_accepted(self, opportunity_id: UUID) -> Optional[Quote]:
        rows = await self.list(filters={"opportunity_id": opportunity_id, "status": "ACCEPTED"}, limit=1)
        return rows[0] if rows else None


class JobRepository(ModelRepository[Job]):
    model = Job
    search_columns = ("job_number", "name", "client_name")
