from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import ORMRead


class ContactBase(BaseModel):
    first_name: str = Field("", description="Given name")
    last_name: str = Field("", description="Family name")
    email: str = Field("")
    phone: str = Field("")
    company: str = Field("")
    position: str = Field("")
    address: str = Field("")
    city: str = Field("")
    state: str = Field("")
    zip: str = Field("")
    country: str = Field("")
    type: str = Field("client", description="client|vendor|partner|lead|prospect|other")
    status: str = Field("active", description="active|inactive|archived")
    notes: str = Field("")
    tags: list[str] = Field(default_factory=list)
    assigned_to: Optional[str] = Field(None, description="Owning user")
    custom_fields: dict = Field(default_factory=dict)


class ContactCreate(ContactBase):
    """Create contact payload; a name or a company is required."""


class ContactUpdate(BaseModel):
    """Partial contact update; only supplied fields change."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    assigned_to: Optional[str] = None
    custom_fields: Optional[dict] = None


class ContactRead(ContactBase, ORMRead):
    full_name: str = Field("", description="First and last name")
    formatted_address: str = Field("", description="Single-line postal address")
    last_contacted_at: Optional[datetime] = None


class InteractionCreate(BaseModel):
    type: str = Field("note", description="call|email|meeting|note|other")
    subject: str = Field("")
    notes: str = Field("")
    occurred_at: Optional[datetime] = Field(None, description="Defaults to now")
    created_by: Optional[str] = None


class InteractionRead(ORMRead):
    contact_id: UUID
    type: str
    subject: str
    notes: str
    occurred_at: datetime
    created_by: Optional[str] = None


class ImportResult(BaseModel):
    """Outcome of a bulk contact import."""
    imported: int = Field(0, description="Rows stored")
    failed: int = Field(0, description="Rows rejected")
    errors: list[str] = Field(default_factory=list, description="One message per rejected row")
