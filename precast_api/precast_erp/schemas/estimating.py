from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import ORMRead


class LineItem(BaseModel):
    """Priced estimate line."""
    description: str = Field("")
    quantity: float = Field(0, ge=0)
    unit_price: float = Field(0, ge=0)
    unit: str = Field("EA")


class EstimateCreate(BaseModel):
    estimate_number: Optional[str] = Field(None, description="Generated as EST-YYMM-NNNN when omitted")
    client_id: Optional[UUID] = None
    project_name: str = Field("")
    description: str = Field("")
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    line_items: list[LineItem] = Field(default_factory=list)
    tax_rate: float = Field(0, ge=0, description="Percent")
    discount: float = Field(0, ge=0)
    notes: str = Field("")
    terms: str = Field("")
    created_by: Optional[str] = None
    custom_fields: dict = Field(default_factory=dict)


class EstimateUpdate(BaseModel):
    client_id: Optional[UUID] = None
    project_name: Optional[str] = None
    description: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    line_items: Optional[list[LineItem]] = None
    tax_rate: Optional[float] = Field(None, ge=0)
    discount: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None
    terms: Optional[str] = None
    custom_fields: Optional[dict] = None


class EstimateRead(ORMRead):
    estimate_number: str
    client_id: Optional[UUID] = None
    project_name: str
    description: str
    status: str
    issue_date: date
    expiry_date: Optional[date] = None
    line_items: list[LineItem]
    subtotal: float
    tax_rate: float
    tax_amount: float
    discount: float
    total: float
    notes: str
    terms: str
    created_by: Optional[str] = None
    sent_to: Optional[str] = None
    sent_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    project_id: Optional[UUID] = None
    custom_fields: dict


class SendEstimateRequest(BaseModel):
    email: str = Field(..., description="Recipient e-mail")


class ApproveEstimateRequest(BaseModel):
    approved_by: str = Field(..., description="Approving user")


class RejectEstimateRequest(BaseModel):
    reason: str = Field("", description="Why the client declined")
