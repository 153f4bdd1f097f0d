from __future__ import annotations

import logging
from collections import defaultdict
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.errors import ConflictError, ValidationFailedError
from precast_erp.db.base import utcnow
from precast_erp.db.models.sales import (
    CLOSED_JOB_STATUSES,
    CONVERTED_LEAD_STATUSES,
    JOB_STATUSES,
    LEAD_STATUSES,
    OPPORTUNITY_STAGES,
    OPPORTUNITY_STATUSES,
    PRIORITIES,
    QUOTE_STATUSES,
    Job,
    Lead,
    Opportunity,
    Quote,
)
from precast_erp.repositories.contacts import ContactRepository
from precast_erp.repositories.sales import JobRepository, LeadRepository, OpportunityRepository, QuoteRepository
from precast_erp.schemas.sales import (
    CancelJobRequest,
    CompleteJobRequest,
    ConvertLeadRequest,
    JobCreate,
    JobUpdate,
    LeadCreate,
    LeadUpdate,
    OpportunityUpdate,
    QuoteCreate,
    SalesDashboard,
)
from precast_erp.services.base import BaseService

logger = logging.getLogger(__name__)

OPEN_JOB_STATUSES = tuple(s for s in JOB_STATUSES if s not in CLOSED_JOB_STATUSES)


class SalesService(BaseService):
    """Leads, opportunities, quotes and the hand-over of won work as jobs."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.leads = LeadRepository(session)
        self.opportunities = OpportunityRepository(session)
        self.quotes = QuoteRepository(session)
        self.jobs = JobRepository(session)
        self.contacts = ContactRepository(session)

    async def _copy_contact(self, lead: Lead) -> None:
        """Denormalise name, email and phone of the lead's contact."""
        if lead.contact_id is None:
            return
        contact = self.require(await self.contacts.get(lead.contact_id), "Contact not found")
        lead.contact_name = contact.full_name
        lead.contact_email = contact.email
        lead.contact_phone = contact.phone
        if not lead.company_name:
            lead.company_name = contact.company

    def _validate_lead(self, lead: Lead) -> None:
        self.check_choice(lead.status, LEAD_STATUSES, "lead status")
        self.check_choice(lead.priority, PRIORITIES, "priority")

    # Leads

    # PUBLIC_INTERFACE
    async def get_leads(
        self,
        *,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        source: Optional[str] = None,
        assigned_to: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[Lead]:
        return await self.leads.list(
            filters={"status": status, "priority": priority, "source": source, "assigned_to": assigned_to},
            search=search,
            limit=limit,
            offset=offset,
        )

    async def get_lead_by_id(self, lead_id: UUID) -> Optional[Lead]:
        return await self.leads.get(lead_id)

    # PUBLIC_INTERFACE
    async def create_lead(self, payload: LeadCreate) -> Lead:
        lead = Lead(**payload.model_dump())
        self._validate_lead(lead)
        await self._copy_contact(lead)
        lead.lead_number = await self.next_number(Lead.lead_number, f"L{self.year_tag()}-")
        created = await self.leads.create(lead)
        logger.info("Created lead %s", created.lead_number)
        return created

    async def update_lead(self, lead_id: UUID, payload: LeadUpdate) -> Optional[Lead]:
        lead = await self.leads.get(lead_id)
        if lead is None:
            return None
        data = payload.model_dump(exclude_unset=True)
        self.apply_patch(lead, data)
        self._validate_lead(lead)
        if "contact_id" in data:
            await self._copy_contact(lead)
        return await self.leads.save(lead)

    # PUBLIC_INTERFACE
    async def convert_lead_to_opportunity(
        self, lead_id: UUID, payload: Optional[ConvertLeadRequest] = None
    ) -> Opportunity:
        """
        Open an opportunity from a lead and mark the lead QUALIFIED.

        Fields not given in `payload` are copied from the lead.
        """
        lead = self.require(await self.leads.get(lead_id), "Lead not found")
        if lead.status in CONVERTED_LEAD_STATUSES:
            raise ConflictError("Lead has already been converted")
        overrides = (payload or ConvertLeadRequest()).model_dump(exclude_none=True)
        self.check_choice(overrides.get("stage"), OPPORTUNITY_STAGES, "opportunity stage")
        self.check_choice(overrides.get("priority"), PRIORITIES, "priority")

        opportunity = Opportunity(
            lead_id=lead.id,
            name=lead.name,
            description=lead.description,
            priority=lead.priority,
            value=lead.value,
            probability=lead.probability,
            expected_close_date=lead.expected_close_date,
            contact_id=lead.contact_id,
            contact_name=lead.contact_name,
            contact_email=lead.contact_email,
            contact_phone=lead.contact_phone,
            company_name=lead.company_name,
            notes=lead.notes,
            tags=list(lead.tags or []),
            assigned_to=lead.assigned_to,
        )
        self.apply_patch(opportunity, overrides)
        opportunity.opportunity_number = await self.next_number(
            Opportunity.opportunity_number, f"O{self.year_tag()}-"
        )
        lead.status = "QUALIFIED"
        created = await self.opportunities.create(opportunity)
        logger.info("Converted lead %s to opportunity %s", lead.lead_number, created.opportunity_number)
        return created

    # Opportunities

    async def get_opportunities(
        self,
        *,
        status: Optional[str] = None,
        stage: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[Opportunity]:
        return await self.opportunities.list(
            filters={"status": status, "stage": stage, "priority": priority, "assigned_to": assigned_to},
            search=search,
            limit=limit,
            offset=offset,
        )

    async def get_opportunity_by_id(self, opportunity_id: UUID) -> Optional[Opportunity]:
        return await self.opportunities.get(opportunity_id)

    async def update_opportunity(self, opportunity_id: UUID, payload: OpportunityUpdate) -> Optional[Opportunity]:
        opportunity = await self.opportunities.get(opportunity_id)
        if opportunity is None:
            return None
        self.apply_patch(opportunity, payload.model_dump(exclude_unset=True))
        self.check_choice(opportunity.status, OPPORTUNITY_STATUSES, "opportunity status")
        self.check_choice(opportunity.stage, OPPORTUNITY_STAGES, "opportunity stage")
        self.check_choice(opportunity.priority, PRIORITIES, "priority")
        return await self.opportunities.save(opportunity)

    # Quotes

    async def get_quotes(
        self,
        *,
        opportunity_id: Optional[UUID] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[Quote]:
        return await self.quotes.list(
            filters={"opportunity_id": opportunity_id, "status": status},
            search=search,
            limit=limit,
            offset=offset,
        )

    async def get_quote_by_id(self, quote_id: UUID) -> Optional[Quote]:
        return await self.quotes.get(quote_id)

    # PUBLIC_INTERFACE
    async def create_quote(self, payload: QuoteCreate) -> Quote:
        """Create a quote numbered Q{YY}-NNNN with subtotal, tax and total computed from its lines."""
        self.require(await self.opportunities.get(payload.opportunity_id), "Opportunity not found")
        self.check_choice(payload.status, QUOTE_STATUSES, "quote status")
        quote = Quote(**payload.model_dump())
        quote.recalculate()
        quote.quote_number = await self.next_number(Quote.quote_number, f"Q{self.year_tag()}-")
        created = await self.quotes.create(quote)
        logger.info("Created quote %s total %.2f", created.quote_number, created.total)
        return created

    async def update_quote_status(self, quote_id: UUID, status: str) -> Quote:
        quote = self.require(await self.quotes.get(quote_id), "Quote not found")
        self.check_choice(status, QUOTE_STATUSES, "quote status")
        quote.status = status
        return await self.quotes.save(quote)

    # Jobs

    # PUBLIC_INTERFACE
    async def create_job_from_opportunity(self, opportunity_id: UUID, payload: Optional[JobCreate] = None) -> Job:
        """
        Hand a won opportunity over as a PENDING job.

        The contract value is the latest ACCEPTED quote total, or the
        opportunity value when no quote was accepted. The opportunity is
        marked WON and linked to the job.
        """
        opportunity = self.require(await self.opportunities.get(opportunity_id), "Opportunity not found")
        if opportunity.job_id is not None:
            raise ConflictError("Opportunity already has a job")
        accepted = await self.quotes.latest_accepted(opportunity.id)
        lead = await self.leads.get(opportunity.lead_id) if opportunity.lead_id else None

        job = Job(
            opportunity_id=opportunity.id,
            name=opportunity.name,
            description=opportunity.description,
            client_name=opportunity.company_name or opportunity.contact_name,
            contact_id=opportunity.contact_id,
            contact_name=opportunity.contact_name,
            contact_email=opportunity.contact_email,
            contact_phone=opportunity.contact_phone,
            contract_value=accepted.total if accepted else opportunity.value,
            location=dict(lead.location) if lead else {},
        )
        self.apply_patch(job, (payload or JobCreate()).model_dump(exclude_none=True))
        job.job_number = await self.next_number(Job.job_number, f"J{self.year_tag()}-")
        await self.jobs.add(job)
        await self.jobs.flush()

        opportunity.status = "WON"
        opportunity.stage = "CLOSED"
        opportunity.job_id = job.id
        if lead is not None:
            lead.status = "WON"
        await self.jobs.commit()
        logger.info("Created job %s from opportunity %s", job.job_number, opportunity.opportunity_number)
        return job

    async def get_jobs(self, *, status: Optional[str] = None, search: Optional[str] = None) -> List[Job]:
        return await self.jobs.list(filters={"status": status}, search=search, limit=None)

    async def get_job_by_id(self, job_id: UUID) -> Optional[Job]:
        return await self.jobs.get(job_id)

    # PUBLIC_INTERFACE
    async def update_job(self, job_id: UUID, payload: JobUpdate) -> Optional[Job]:
        """
        Edit an open job. A new contact_id re-copies the contact's details;
        completion and cancellation have their own actions.
        """
        job = await self.jobs.get(job_id)
        if job is None:
            return None
        if job.status in CLOSED_JOB_STATUSES:
            raise ConflictError(f"Cannot update a {job.status.lower()} job")
        patch = payload.model_dump(exclude_unset=True)
        self.check_choice(patch.get("status"), OPEN_JOB_STATUSES, "job status")
        if patch.get("contact_id") and patch["contact_id"] != job.contact_id:
            contact = self.require(await self.contacts.get(patch["contact_id"]), "Contact not found")
            job.contact_name = contact.full_name
            job.contact_email = contact.email
            job.contact_phone = contact.phone
        self.apply_patch(job, patch)
        return await self.jobs.save(job)

    # PUBLIC_INTERFACE
    async def complete_job(self, job_id: UUID, payload: CompleteJobRequest) -> Job:
        job = self.require(await self.jobs.get(job_id), "Job not found")
        if job.status == "COMPLETED":
            raise ConflictError("Job is already completed")
        if job.status == "CANCELLED":
            raise ConflictError("Cannot complete a cancelled job")
        job.status = "COMPLETED"
        job.completed_by = payload.completed_by
        job.completed_at = utcnow()
        job.actual_completion_date = job.completed_at.date()
        if payload.actual_hours is not None:
            job.actual_hours = payload.actual_hours
        logger.info("Job %s completed", job.job_number)
        return await self.jobs.save(job)

    # PUBLIC_INTERFACE
    async def cancel_job(self, job_id: UUID, payload: CancelJobRequest) -> Job:
        job = self.require(await self.jobs.get(job_id), "Job not found")
        if job.status == "CANCELLED":
            raise ConflictError("Job is already cancelled")
        if job.status == "COMPLETED":
            raise ConflictError("Cannot cancel a completed job")
        if not payload.cancellation_reason.strip():
            raise ValidationFailedError("Cancellation reason is required")
        job.status = "CANCELLED"
        job.cancelled_by = payload.cancelled_by
        job.cancelled_at = utcnow()
        job.cancellation_reason = payload.cancellation_reason
        logger.info("Job %s cancelled: %s", job.job_number, payload.cancellation_reason)
        return await self.jobs.save(job)

    # PUBLIC_INTERFACE
    async def get_dashboard(self) -> SalesDashboard:
        """Pipeline value by stage, lead and opportunity counts by status, win rate."""
        leads = await self.leads.counts_by_status()
        opportunities = await self.opportunities.list(limit=None)
        quotes = await self.quotes.list(limit=None)

        by_status: dict[str, int] = defaultdict(int)
        pipeline: dict[str, float] = defaultdict(float)
        won_value = 0.0
        for opp in opportunities:
            by_status[opp.status] += 1
            if opp.status == "OPEN":
                pipeline[opp.stage] += float(opp.value or 0)
            elif opp.status == "WON":
                won_value += float(opp.value or 0)
        closed = by_status["WON"] + by_status["LOST"]
        quote_counts: dict[str, int] = defaultdict(int)
        for quote in quotes:
            quote_counts[quote.status] += 1

        return SalesDashboard(
            leads_by_status=dict(leads),
            opportunities_by_status={k: v for k, v in by_status.items() if v},
            pipeline_by_stage={k: round(v, 2) for k, v in pipeline.items()},
            open_pipeline_value=round(sum(pipeline.values()), 2),
            won_value=round(won_value, 2),
            win_rate=round(by_status["WON"] / closed * 100, 2) if closed else 0.0,
            quotes_by_status=dict(quote_counts),
        )
