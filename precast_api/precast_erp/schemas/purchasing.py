from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import ORMRead


class VendorCreate(BaseModel):
    name: str = Field(..., min_length=1)
    code: Optional[str] = Field(None, description="Generated from the name when omitted")
    contact_name: str = ""
    email: str = ""
    phone: str = ""
    address: dict = Field(default_factory=dict)
    category: str = ""
    status: str = Field("ACTIVE", description="ACTIVE|INACTIVE|PENDING_APPROVAL|SUSPENDED|BLACKLISTED")
    payment_terms: str = "NET30"
    currency: str = "USD"
    rating: Optional[float] = Field(None, ge=0, le=5)
    notes: str = ""
    certifications: list[dict] = Field(default_factory=list)


class VendorUpdate(BaseModel):
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[dict] = None
    category: Optional[str] = None
    payment_terms: Optional[str] = None
    currency: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    notes: Optional[str] = None
    certifications: Optional[list[dict]] = None


class VendorStatusUpdate(BaseModel):
    status: str
    notes: str = ""
    changed_by: Optional[str] = None


class VendorRead(ORMRead):
    name: str
    code: str
    contact_name: str
    email: str
    phone: str
    address: dict
    category: str
    status: str
    is_approved: bool
    payment_terms: str
    currency: str
    rating: Optional[float] = None
    notes: str
    certifications: list[dict]


class VendorStatusLogRead(ORMRead):
    vendor_id: UUID
    old_status: str
    new_status: str
    notes: str
    changed_by: Optional[str] = None


class POItemIn(BaseModel):
    material_id: Optional[str] = None
    description: str = ""
    quantity: float = Field(..., gt=0)
    unit: str = "EA"
    unit_price: float = Field(0, ge=0)
    tax_amount: float = Field(0, ge=0)
    discount_amount: float = Field(0, ge=0)


class POItemRead(ORMRead):
    purchase_order_id: UUID
    line_no: int
    material_id: Optional[str] = None
    description: str
    quantity: float
    unit: str
    unit_price: float
    tax_amount: float
    discount_amount: float
    total_price: float
    received_quantity: float
    rejected_quantity: float
    status: str


class PurchaseOrderCreate(BaseModel):
    vendor_id: UUID
    type: str = "STANDARD"
    priority: str = "NORMAL"
    order_date: Optional[date] = None
    expected_delivery_date: Optional[date] = None
    currency: Optional[str] = Field(None, description="Defaults to the vendor's currency")
    shipping_cost: float = Field(0, ge=0)
    shipping_address: dict = Field(default_factory=dict)
    notes: str = ""
    created_by: Optional[str] = None
    items: list[POItemIn] = Field(default_factory=list)


class PurchaseOrderUpdate(BaseModel):
    type: Optional[str] = None
    priority: Optional[str] = None
    expected_delivery_date: Optional[date] = None
    shipping_cost: Optional[float] = Field(None, ge=0)
    shipping_address: Optional[dict] = None
    notes: Optional[str] = None
    items: Optional[list[POItemIn]] = None


class POStatusUpdate(BaseModel):
    status: str
    notes: str = ""
    changed_by: Optional[str] = None


class PurchaseOrderRead(ORMRead):
    po_number: str
    vendor_id: UUID
    type: str
    status: str
    priority: str
    order_date: date
    expected_delivery_date: Optional[date] = None
    currency: str
    subtotal: float
    tax_amount: float
    discount_amount: float
    shipping_cost: float
    total_amount: float
    shipping_address: dict
    notes: str
    approval_workflow: list[dict]
    receiving_status: dict
    invoice_status: str
    payment_status: str
    created_by: Optional[str] = None


class PurchaseOrderDetail(PurchaseOrderRead):
    items: list[POItemRead] = Field(default_factory=list)


class ReceivingItemIn(BaseModel):
    purchase_order_item_id: UUID
    received_quantity: float = Field(..., ge=0)
    rejected_quantity: float = Field(0, ge=0)
    inspection_status: str = Field("PENDING", description="PENDING|PASSED|FAILED")
    notes: str = ""


class ReceivingItemRead(ORMRead):
    receiving_record_id: UUID
    purchase_order_item_id: UUID
    received_quantity: float
    rejected_quantity: float
    inspection_status: str
    notes: str


class ReceivingCreate(BaseModel):
    purchase_order_id: UUID
    received_date: Optional[datetime] = None
    received_by: Optional[str] = None
    notes: str = ""
    items: list[ReceivingItemIn] = Field(default_factory=list)


class ReceivingStatusUpdate(BaseModel):
    status: str = Field(..., description="PENDING_INSPECTION|INSPECTED|ACCEPTED|REJECTED")
    notes: str = ""


class ReceivingRead(ORMRead):
    receipt_number: str
    purchase_order_id: UUID
    received_date: datetime
    received_by: Optional[str] = None
    status: str
    notes: str


class ReceivingDetail(ReceivingRead):
    items: list[ReceivingItemRead] = Field(default_factory=list)


class VendorSpend(BaseModel):
    vendor_id: UUID
    vendor_name: str
    amount: float


class OrderSummary(BaseModel):
    id: UUID
    po_number: str
    vendor_name: str
    status: str
    expected_delivery_date: Optional[date] = None
    total_amount: float


class ReceiptSummary(BaseModel):
    id: UUID
    receipt_number: str
    po_number: str
    vendor_name: str
    received_date: datetime
    status: str


class PurchasingDashboard(BaseModel):
    """
    Order counts and committed spend. Spend counts every order that is
    neither DRAFT nor CANCELLED.
    """
    total_orders: int = 0
    orders_by_status: dict[str, int] = Field(default_factory=dict)
    committed_spend: float = 0
    top_vendors: list[VendorSpend] = Field(default_factory=list)
    spend_by_month: dict[str, float] = Field(default_factory=dict, description="YYYY-MM -> amount, last six months")
    pending_deliveries: list[OrderSummary] = Field(default_factory=list)
    pending_approvals: list[OrderSummary] = Field(default_factory=list)
    recent_receipts: list[ReceiptSummary] = Field(default_factory=list)
