from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import ORMRead


class ChecklistItem(BaseModel):
    description: str
    status: str = Field("PENDING", description="PENDING|PASS|FAIL|N/A")
    notes: str = ""


class Measurement(BaseModel):
    """Dimensional check; `status` is derived from nominal and tolerance."""
    name: str
    nominal: float
    tolerance: float = Field(0, ge=0)
    actual: Optional[float] = None
    status: Optional[str] = Field(None, description="WITHIN_SPEC|OUT_OF_SPEC")


class PieceCreate(BaseModel):
    piece_number: str = Field(..., min_length=1)
    job_id: Optional[UUID] = None
    piece_type: str = ""
    status: str = "PLANNED"
    weight: float = Field(0, ge=0)
    volume: float = Field(0, ge=0)


class PieceUpdate(BaseModel):
    job_id: Optional[UUID] = None
    piece_type: Optional[str] = None
    status: Optional[str] = None
    weight: Optional[float] = Field(None, ge=0)
    volume: Optional[float] = Field(None, ge=0)


class PieceRead(ORMRead):
    piece_number: str
    job_id: Optional[UUID] = None
    piece_type: str
    status: str
    weight: float
    volume: float
    yard_location_id: Optional[UUID] = None
    scheduled_ship_date: Optional[date] = None
    ready_for_shipping_at: Optional[datetime] = None
    shipping_notes: str = ""


class InspectionCreate(BaseModel):
    type: str = Field(..., description="PRE_POUR|POST_POUR|FINAL|SPECIAL")
    status: str = "PENDING"
    piece_id: Optional[UUID] = None
    job_id: Optional[UUID] = None
    inspector_id: Optional[str] = None
    scheduled_date: Optional[date] = None
    checklist_items: list[ChecklistItem] = Field(default_factory=list)
    measurements: list[Measurement] = Field(default_factory=list)
    notes: str = ""


class InspectionUpdate(BaseModel):
    status: Optional[str] = None
    inspector_id: Optional[str] = None
    scheduled_date: Optional[date] = None
    checklist_items: Optional[list[ChecklistItem]] = None
    measurements: Optional[list[Measurement]] = None
    notes: Optional[str] = None


class InspectionRead(ORMRead):
    inspection_number: str
    type: str
    status: str
    piece_id: Optional[UUID] = None
    job_id: Optional[UUID] = None
    inspector_id: Optional[str] = None
    scheduled_date: Optional[date] = None
    completed_date: Optional[datetime] = None
    checklist_items: list[ChecklistItem]
    measurements: list[Measurement]
    notes: str


class DefectCreate(BaseModel):
    inspection_id: Optional[UUID] = None
    piece_id: Optional[UUID] = None
    type: str = Field(..., min_length=1)
    severity: str = Field("NORMAL", description="MINOR|NORMAL|MAJOR|CRITICAL")
    description: str = ""
    location_on_piece: str = ""
    repair_method: Optional[str] = None


class DefectUpdate(BaseModel):
    status: Optional[str] = None
    severity: Optional[str] = None
    description: Optional[str] = None
    location_on_piece: Optional[str] = None
    repair_method: Optional[str] = None


class DefectRead(ORMRead):
    defect_number: str
    inspection_id: Optional[UUID] = None
    piece_id: Optional[UUID] = None
    type: str
    severity: str
    status: str
    description: str
    location_on_piece: str
    repair_method: Optional[str] = None
    resolved_at: Optional[datetime] = None


class MixDesignCreate(BaseModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    strength_psi: float = Field(..., gt=0)
    slump: Optional[float] = None
    air_content: Optional[float] = None
    water_cement_ratio: Optional[float] = None
    components: list[dict] = Field(default_factory=list)
    status: str = "ACTIVE"


class MixDesignRead(ORMRead):
    name: str
    code: str
    strength_psi: float
    slump: Optional[float] = None
    air_content: Optional[float] = None
    water_cement_ratio: Optional[float] = None
    components: list[dict]
    status: str


class TestResultCreate(BaseModel):
    mix_design_id: Optional[UUID] = None
    piece_id: Optional[UUID] = None
    test_type: str = Field(..., min_length=1)
    test_date: Optional[date] = None
    age_days: Optional[int] = Field(None, ge=0)
    value: float
    unit: str = "psi"
    required_value: Optional[float] = None


class TestResultRead(ORMRead):
    mix_design_id: Optional[UUID] = None
    piece_id: Optional[UUID] = None
    test_type: str
    test_date: date
    age_days: Optional[int] = None
    value: float
    unit: str
    required_value: Optional[float] = None
    passed: bool


class QualityDashboard(BaseModel):
    inspections_by_status: dict[str, int]
    open_defects_by_severity: dict[str, int]
    pass_rate: float = Field(..., description="PASSED / (PASSED + FAILED) x 100")
    total_inspections: int
    total_defects: int
