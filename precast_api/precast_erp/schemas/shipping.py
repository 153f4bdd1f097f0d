from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import ORMRead


class ShipmentCreate(BaseModel):
    project_id: Optional[UUID] = None
    project_name: str = ""
    scheduled_date: Optional[date] = None
    destination: dict = Field(default_factory=dict, description="address, latitude, longitude")
    piece_ids: list[UUID] = Field(default_factory=list)
    special_instructions: str = ""
    created_by: Optional[str] = None


class ShipmentUpdate(BaseModel):
    project_name: Optional[str] = None
    status: Optional[str] = None
    scheduled_date: Optional[date] = None
    destination: Optional[dict] = None
    piece_ids: Optional[list[UUID]] = None
    special_instructions: Optional[str] = None


class ShipmentRead(ORMRead):
    shipment_number: str
    project_id: Optional[UUID] = None
    project_name: str
    status: str
    scheduled_date: Optional[date] = None
    actual_date: Optional[datetime] = None
    destination: dict
    piece_ids: list[UUID]
    driver_id: Optional[UUID] = None
    vehicle_id: Optional[UUID] = None
    special_instructions: str
    route: Optional[dict] = None
    paperwork_generated: bool
    paperwork_generated_by: Optional[str] = None
    paperwork_generated_date: Optional[datetime] = None
    created_by: Optional[str] = None


class AssignResourcesRequest(BaseModel):
    driver_id: UUID
    vehicle_id: UUID


class MarkShippedRequest(BaseModel):
    piece_ids: Optional[list[UUID]] = Field(None, description="Defaults to every piece on the shipment")


class PaperworkRequest(BaseModel):
    generated_by: Optional[str] = None


class Paperwork(BaseModel):
    shipment_number: str
    generated_at: datetime
    generated_by: Optional[str] = None
    project_name: str
    destination: dict
    driver: Optional[dict] = None
    vehicle: Optional[dict] = None
    pieces: list[dict]
    total_weight: float
    special_instructions: str


class LoadPlanCreate(BaseModel):
    vehicle_id: Optional[UUID] = None
    loading_sequence: Optional[list[UUID]] = Field(None, description="Piece ids; heaviest first when omitted")
    loading_instructions: str = ""
    created_by: Optional[str] = None


class LoadPlanRead(ORMRead):
    shipment_id: UUID
    vehicle_id: Optional[UUID] = None
    pieces: list[dict]
    loading_sequence: list[UUID]
    loading_instructions: str
    total_weight: float
    created_by: Optional[str] = None


class RouteRead(BaseModel):
    origin: dict
    destination: dict
    waypoints: list[dict]
    estimated_distance: Optional[float] = Field(None, description="Kilometres")
    estimated_duration: Optional[float] = Field(None, description="Minutes")


class DeliveryCreate(BaseModel):
    shipment_id: UUID
    scheduled_date: Optional[date] = None
    recipient: str = ""
    notes: str = ""


class DeliveryStatusUpdate(BaseModel):
    status: str = Field(..., description="SCHEDULED|IN_TRANSIT|DELIVERED|FAILED")
    location: Optional[dict] = None
    notes: str = ""
    updated_by: Optional[str] = None
    recipient_signature: Optional[str] = None
    issue: Optional[str] = None


class DeliveryRead(ORMRead):
    shipment_id: UUID
    status: str
    scheduled_date: Optional[date] = None
    actual_delivery_date: Optional[datetime] = None
    recipient: str
    recipient_signature: Optional[str] = None
    notes: str
    issues: list


class DeliveryEventRead(ORMRead):
    delivery_id: UUID
    status: str
    location: Optional[dict] = None
    notes: str
    updated_by: Optional[str] = None
    timestamp: datetime


class DriverCreate(BaseModel):
    name: str = Field(..., min_length=1)
    employee_id: Optional[UUID] = None
    license_number: str = Field(..., min_length=1)
    license_expiration: Optional[date] = None
    license_class: str = ""
    endorsements: list[str] = Field(default_factory=list)
    phone_number: str = ""
    email: str = ""
    status: str = "AVAILABLE"


class DriverUpdate(BaseModel):
    name: Optional[str] = None
    license_number: Optional[str] = None
    license_expiration: Optional[date] = None
    license_class: Optional[str] = None
    endorsements: Optional[list[str]] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None


class DriverRead(ORMRead):
    name: str
    employee_id: Optional[UUID] = None
    license_number: str
    license_expiration: Optional[date] = None
    license_class: str
    endorsements: list[str]
    phone_number: str
    email: str
    status: str
    current_vehicle_id: Optional[UUID] = None
    current_shipment_id: Optional[UUID] = None


class VehicleCreate(BaseModel):
    type: str = Field(..., min_length=1)
    make: str = ""
    model: str = ""
    year: Optional[int] = None
    license_plate: str = Field(..., min_length=1)
    vin: str = ""
    status: str = "AVAILABLE"
    capacity: dict = Field(default_factory=dict, description="weight, length, width")
    next_maintenance_date: Optional[date] = None


class VehicleUpdate(BaseModel):
    type: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    vin: Optional[str] = None
    status: Optional[str] = None
    capacity: Optional[dict] = None
    next_maintenance_date: Optional[date] = None


class VehicleRead(ORMRead):
    type: str
    make: str
    model: str
    year: Optional[int] = None
    license_plate: str
    vin: str
    status: str
    current_shipment_id: Optional[UUID] = None
    capacity: dict
    next_maintenance_date: Optional[date] = None


class DispatchItem(BaseModel):
    description: str
    quantity: float = Field(1, gt=0)
    weight: float = Field(0, ge=0)
    volume: float = Field(0, ge=0)


class DispatchCreate(BaseModel):
    project_id: Optional[UUID] = None
    client_id: Optional[UUID] = None
    status: str = "pending"
    priority: str = "medium"
    scheduled_date: Optional[datetime] = None
    delivery_address: str = ""
    contact_name: str = ""
    contact_phone: str = ""
    items: list[DispatchItem] = Field(default_factory=list)
    vehicles: list[str] = Field(default_factory=list)
    drivers: list[str] = Field(default_factory=list)
    notes: str = ""
    special_instructions: str = ""
    signature_required: bool = True
    custom_fields: dict = Field(default_factory=dict)


class DispatchUpdate(BaseModel):
    status: Optional[str] = None
    priority: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    delivery_address: Optional[str] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    items: Optional[list[DispatchItem]] = None
    vehicles: Optional[list[str]] = None
    drivers: Optional[list[str]] = None
    notes: Optional[str] = None
    special_instructions: Optional[str] = None
    signature_required: Optional[bool] = None
    custom_fields: Optional[dict] = None


class DispatchRead(ORMRead):
    dispatch_number: str
    project_id: Optional[UUID] = None
    client_id: Optional[UUID] = None
    status: str
    priority: str
    scheduled_date: Optional[datetime] = None
    actual_date: Optional[datetime] = None
    delivery_address: str
    contact_name: str
    contact_phone: str
    items: list[dict]
    vehicles: list
    drivers: list
    notes: str
    special_instructions: str
    signature_required: bool
    signed_by: Optional[str] = None
    signature_date: Optional[datetime] = None
    tracking_updates: list[dict]
    cancellation_reason: Optional[str] = None
    custom_fields: dict
    total_weight: float
    total_volume: float
    total_items: int


class TrackingUpdate(BaseModel):
    status: Optional[str] = None
    location: Optional[Any] = None
    notes: str = ""
    updated_by: Optional[str] = None


class DeliverRequest(BaseModel):
    signed_by: Optional[str] = None
    notes: str = ""


class CancelDispatchRequest(BaseModel):
    reason: str = ""


class DispatchAnalytics(BaseModel):
    total: int
    by_status: dict[str, int]
    on_time_rate: float
    overdue: int
    total_weight_delivered: float
