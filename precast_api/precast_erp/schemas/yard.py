from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import ORMRead


class LocationCreate(BaseModel):
    name: str = ""
    type: str = ""
    parent_id: Optional[UUID] = None
    capacity: float = Field(100, gt=0)
    capacity_unit: str = "items"
    dimensions: dict = Field(default_factory=dict)
    coordinates: Optional[dict] = None
    status: str = Field("active", description="active|maintenance|reserved|full")
    properties: dict = Field(default_factory=dict)


class LocationUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    parent_id: Optional[UUID] = None
    capacity: Optional[float] = Field(None, gt=0)
    capacity_unit: Optional[str] = None
    dimensions: Optional[dict] = None
    coordinates: Optional[dict] = None
    status: Optional[str] = None
    properties: Optional[dict] = None


class LocationRead(ORMRead):
    name: str
    type: str
    parent_id: Optional[UUID] = None
    capacity: float
    capacity_unit: str
    dimensions: dict
    coordinates: Optional[dict] = None
    status: str
    occupancy: float
    can_accommodate: bool
    properties: dict


class LocationNode(LocationRead):
    children: list["LocationNode"] = Field(default_factory=list)


class MapLocation(BaseModel):
    id: UUID
    name: str
    type: str
    coordinates: Optional[dict] = None
    dimensions: dict
    occupancy: float
    status: str
    material_count: int


class YardMap(BaseModel):
    locations: list[MapLocation]
    dimensions: dict[str, int]


class LayoutCriteria(BaseModel):
    threshold: float = Field(90, gt=0, le=100, description="Occupancy (%) above which a location is relieved")


class SuggestedChange(BaseModel):
    material_id: UUID
    current_location_id: UUID
    suggested_location_id: UUID
    reason: str


class LayoutOptimization(BaseModel):
    optimization_id: str
    criteria: dict[str, Any]
    suggested_changes: list[SuggestedChange]
    estimated_improvements: dict[str, float]


class MaterialCreate(BaseModel):
    name: str = ""
    type: str = ""
    category: str = ""
    description: str = ""
    quantity: float = 0
    unit: str = ""
    location_id: Optional[UUID] = None
    status: str = Field("available", description="available|allocated|reserved|depleted")
    project_id: Optional[UUID] = None
    batch_number: str = ""
    supplier: str = ""
    cost: float = Field(0, ge=0)
    tags: list[str] = Field(default_factory=list)
    properties: dict = Field(default_factory=dict)


class MaterialUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    status: Optional[str] = None
    project_id: Optional[UUID] = None
    batch_number: Optional[str] = None
    supplier: Optional[str] = None
    cost: Optional[float] = Field(None, ge=0)
    tags: Optional[list[str]] = None
    properties: Optional[dict] = None


class MaterialRead(ORMRead):
    name: str
    type: str
    category: str
    description: str
    quantity: float
    unit: str
    location_id: Optional[UUID] = None
    status: str
    project_id: Optional[UUID] = None
    batch_number: str
    supplier: str
    cost: float
    tags: list[str]
    properties: dict


class QuantityUpdate(BaseModel):
    quantity: float
    reason: str = ""


class MoveMaterialRequest(BaseModel):
    location_id: UUID
    quantity: Optional[float] = Field(None, gt=0)
    notes: str = ""
    moved_by: Optional[str] = None


class LowStockRequest(BaseModel):
    default_threshold: float = 10
    thresholds: dict[str, float] = Field(default_factory=dict, description="category -> threshold")


class CategorySummary(BaseModel):
    count: int
    total_quantity: float
    value: float


class InventoryReport(BaseModel):
    generated_at: datetime
    total_materials: int
    total_value: float
    categories: dict[str, CategorySummary]


class MovementCreate(BaseModel):
    material_id: Optional[UUID] = None
    quantity: Optional[float] = None
    from_location_id: Optional[UUID] = None
    to_location_id: Optional[UUID] = None
    type: str = Field("transfer", description="transfer|receive|ship|return")
    requested_by: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    equipment_id: Optional[UUID] = None
    operator_id: Optional[str] = None
    notes: str = ""
    properties: dict = Field(default_factory=dict)


class MovementUpdate(BaseModel):
    status: Optional[str] = None
    equipment_id: Optional[UUID] = None
    operator_id: Optional[str] = None
    notes: Optional[str] = None
    properties: Optional[dict] = None


class MovementRead(ORMRead):
    material_id: UUID
    quantity: float
    from_location_id: Optional[UUID] = None
    to_location_id: UUID
    type: str
    status: str
    requested_by: Optional[str] = None
    requested_at: datetime
    scheduled_for: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    completed_at: Optional[datetime] = None
    equipment_id: Optional[UUID] = None
    operator_id: Optional[str] = None
    notes: str
    properties: dict


class ExecuteMovementRequest(BaseModel):
    operator_id: Optional[str] = None
    equipment_id: Optional[UUID] = None
    completed_by: Optional[str] = None


class CancelMovementRequest(BaseModel):
    cancelled_by: Optional[str] = None
    reason: str = ""


class ScheduleMovementRequest(BaseModel):
    scheduled_for: datetime


class MovementReport(BaseModel):
    generated_at: datetime
    period: dict[str, datetime]
    total_movements: int
    by_status: dict[str, int]
    by_type: dict[str, int]


class EquipmentCreate(BaseModel):
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    model: str = ""
    serial_number: str = ""
    capacity: float = 0
    capacity_unit: str = "kg"
    location_id: Optional[UUID] = None
    status: str = Field("available", description="available|in-use|maintenance|out-of-service")
    properties: dict = Field(default_factory=dict)


class EquipmentUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    capacity: Optional[float] = None
    capacity_unit: Optional[str] = None
    location_id: Optional[UUID] = None
    status: Optional[str] = None
    usage_hours: Optional[float] = Field(None, ge=0)
    properties: Optional[dict] = None


class EquipmentRead(ORMRead):
    name: str
    type: str
    model: str
    serial_number: str
    capacity: float
    capacity_unit: str
    location_id: Optional[UUID] = None
    status: str
    operator_id: Optional[str] = None
    maintenance_schedule: list[dict]
    last_maintenance_date: Optional[date] = None
    usage_hours: float
    properties: dict
    position: dict = Field(default_factory=dict)


class AssignEquipmentRequest(BaseModel):
    operator_id: str


class MaintenanceRequest(BaseModel):
    scheduled_date: Optional[date] = None
    type: Optional[str] = None
    notes: str = ""
    immediate: bool = False


class CompleteMaintenanceRequest(BaseModel):
    completed_by: Optional[str] = None
    notes: str = ""


class EquipmentPositionUpdate(BaseModel):
    location_id: Optional[UUID] = None
    coordinates: Optional[dict] = Field(None, description="{x, y} in yard map units")
    speed: float = Field(0, ge=0, description="km/h")
    direction: Optional[str] = None


class EquipmentPlace(BaseModel):
    location_id: Optional[UUID] = None
    location_name: str = ""
    coordinates: dict = Field(default_factory=dict)


class EquipmentLocation(BaseModel):
    equipment_id: UUID
    timestamp: datetime
    location: EquipmentPlace
    speed: float = 0
    direction: Optional[str] = None
    status: str = Field(..., description="moving|stationary")


class UtilizationReport(BaseModel):
    generated_at: datetime
    total_equipment: int
    by_status: dict[str, int]
    utilization_rate: float
    total_usage_hours: float


class AllocateRequest(BaseModel):
    project_id: UUID
    quantity: float = Field(..., gt=0)


class TagsRequest(BaseModel):
    tags: list[str]


LocationNode.model_rebuild()


class ReadyForShippingRequest(BaseModel):
    location_id: Optional[UUID] = Field(None, description="Yard location where the piece is staged")
    scheduled_ship_date: Optional[date] = None
    notes: str = ""
