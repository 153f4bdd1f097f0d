from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import ORMRead


class LeadBase(BaseModel):
    name: str = Field(..., description="Lead title")
    description: str = ""
    source: str = Field("", description="Where the lead came from, e.g. referral or website")
    status: str = Field("NEW", description="NEW|CONTACTED|QUALIFIED|PROPOSAL|NEGOTIATION|WON|LOST|INACTIVE")
    priority: str = Field("MEDIUM", description="LOW|MEDIUM|HIGH|URGENT")
    type: str = ""
    category: str = ""
    value: float = Field(0, ge=0)
    probability: float = Field(0, ge=0, le=100)
    expected_close_date: Optional[date] = None
    contact_id: Optional[UUID] = Field(None, description="Contact whose name, email and phone are copied onto the lead")
    company_name: str = ""
    location: dict = Field(default_factory=dict)
    requirements: str = ""
    notes: str = ""
    tags: list[str] = Field(default_factory=list)
    assigned_to: Optional[str] = None
    next_steps: str = ""
    next_contact_date: Optional[date] = None


class LeadCreate(LeadBase):
    pass


class LeadUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    source: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = None
    value: Optional[float] = Field(None, ge=0)
    probability: Optional[float] = Field(None, ge=0, le=100)
    expected_close_date: Optional[date] = None
    contact_id: Optional[UUID] = None
    company_name: Optional[str] = None
    location: Optional[dict] = None
    requirements: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    assigned_to: Optional[str] = None
    next_steps: Optional[str] = None
    next_contact_date: Optional[date] = None


class LeadRead(LeadBase, ORMRead):
    lead_number: str
    contact_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""


class ConvertLeadRequest(BaseModel):
    """Overrides for the opportunity; unset fields are taken from the lead."""
    name: Optional[str] = None
    description: Optional[str] = None
    stage: Optional[str] = None
    priority: Optional[str] = None
    value: Optional[float] = Field(None, ge=0)
    probability: Optional[float] = Field(None, ge=0, le=100)
    expected_close_date: Optional[date] = None
    products: list[dict] = Field(default_factory=list)
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    assigned_to: Optional[str] = None


class OpportunityUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = Field(None, description="OPEN|WON|LOST")
    stage: Optional[str] = Field(None, description="QUALIFICATION|NEEDS_ANALYSIS|PROPOSAL|NEGOTIATION|CLOSED")
    priority: Optional[str] = None
    value: Optional[float] = Field(None, ge=0)
    probability: Optional[float] = Field(None, ge=0, le=100)
    expected_close_date: Optional[date] = None
    company_name: Optional[str] = None
    products: Optional[list[dict]] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    assigned_to: Optional[str] = None


class OpportunityRead(ORMRead):
    opportunity_number: str
    lead_id: Optional[UUID] = None
    name: str
    description: str
    status: str
    stage: str
    priority: str
    value: float
    probability: float
    expected_close_date: Optional[date] = None
    contact_id: Optional[UUID] = None
    contact_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    company_name: str = ""
    products: list[dict] = Field(default_factory=list)
    notes: str = ""
    tags: list[str] = Field(default_factory=list)
    assigned_to: Optional[str] = None
    job_id: Optional[UUID] = None


class QuoteLineItem(BaseModel):
    description: str = ""
    quantity: float = Field(1, ge=0)
    unit: str = "EA"
    unit_price: float = Field(0, ge=0)


class QuoteCreate(BaseModel):
    opportunity_id: UUID
    version: str = "1.0"
    status: str = Field("DRAFT", description="DRAFT|SENT|ACCEPTED|REJECTED|EXPIRED")
    currency: str = "USD"
    line_items: list[QuoteLineItem] = Field(default_factory=list)
    tax_rate: float = Field(0, ge=0, description="Percent")
    valid_until: Optional[date] = None
    notes: str = ""


class QuoteStatusUpdate(BaseModel):
    status: str


class QuoteRead(ORMRead):
    quote_number: str
    opportunity_id: UUID
    version: str
    status: str
    currency: str
    line_items: list[dict] = Field(default_factory=list)
    subtotal: float
    tax_rate: float
    tax_amount: float
    total: float
    valid_until: Optional[date] = None
    notes: str = ""


class JobCreate(BaseModel):
    """Overrides for the job; unset fields come from the opportunity."""
    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    location: Optional[dict] = None


class JobRead(ORMRead):
    job_number: str
    opportunity_id: Optional[UUID] = None
    name: str
    description: str
    status: str
    client_name: str
    contact_id: Optional[UUID] = None
    contact_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    contract_value: float
    start_date: date
    location: dict = Field(default_factory=dict)
    target_completion_date: Optional[date] = None
    actual_completion_date: Optional[date] = None
    actual_hours: float = 0
    completed_by: Optional[str] = None
    completed_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: str = ""


class JobUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = Field(None, description="PENDING|ACTIVE|ON_HOLD")
    client_name: Optional[str] = None
    contact_id: Optional[UUID] = None
    contract_value: Optional[float] = Field(None, ge=0)
    start_date: Optional[date] = None
    target_completion_date: Optional[date] = None
    location: Optional[dict] = None


class CompleteJobRequest(BaseModel):
    completed_by: Optional[str] = None
    actual_hours: Optional[float] = Field(None, ge=0)


class CancelJobRequest(BaseModel):
    cancellation_reason: str = ""
    cancelled_by: Optional[str] = None


class SalesDashboard(BaseModel):
    """Pipeline summary."""
    leads_by_status: dict[str, int] = Field(default_factory=dict)
    opportunities_by_status: dict[str, int] = Field(default_factory=dict)
    pipeline_by_stage: dict[str, float] = Field(default_factory=dict, description="Open opportunity value per stage")
    open_pipeline_value: float = 0
    won_value: float = 0
    win_rate: float = Field(0, description="Won / (won + lost) opportunities, percent")
    quotes_by_status: dict[str, int] = Field(default_factory=dict)
