from __future__ import annotations

from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.deps import get_ai_client, get_session
from precast_erp.schemas.purchasing import (
    POStatusUpdate,
    PurchaseOrderCreate,
    PurchaseOrderDetail,
    PurchaseOrderRead,
    PurchaseOrderUpdate,
    PurchasingDashboard,
    ReceivingCreate,
    ReceivingDetail,
    ReceivingRead,
    ReceivingStatusUpdate,
    VendorCreate,
    VendorRead,
    VendorStatusLogRead,
    VendorStatusUpdate,
    VendorUpdate,
)
from precast_erp.services.ai.client import AIClient
from precast_erp.services.ai.purchasing import PurchasingAIService
from precast_erp.services.purchasing import PurchasingService

router = APIRouter(prefix="/purchasing", tags=["Purchasing"])


# Vendors

# PUBLIC_INTERFACE
@router.get("/vendors", response_model=List[VendorRead], summary="List vendors")
async def list_vendors(
    session: AsyncSession = Depends(get_session),
    status_: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[VendorRead]:
    rows = await PurchasingService(session).get_vendors(
        status=status_, category=category, search=search, limit=limit, offset=offset
    )
    return [VendorRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/vendors",
    response_model=VendorRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create vendor",
    description="Vendor names and codes are unique; a code is generated from the name when omitted.",
)
async def create_vendor(payload: VendorCreate, session: AsyncSession = Depends(get_session)) -> VendorRead:
    return VendorRead.model_validate(await PurchasingService(session).create_vendor(payload))


# PUBLIC_INTERFACE
@router.get("/vendors/{vendor_id}", response_model=VendorRead, summary="Get vendor")
async def get_vendor(vendor_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> VendorRead:
    vendor = await PurchasingService(session).get_vendor_by_id(vendor_id)
    if not vendor:
        raise HTTPException(status_code=404, detail="Vendor not found")
    return VendorRead.model_validate(vendor)


# PUBLIC_INTERFACE
@router.patch("/vendors/{vendor_id}", response_model=VendorRead, summary="Update vendor")
async def update_vendor(
    payload: VendorUpdate, vendor_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> VendorRead:
    vendor = await PurchasingService(session).update_vendor(vendor_id, payload)
    if not vendor:
        raise HTTPException(status_code=404, detail="Vendor not found")
    return VendorRead.model_validate(vendor)


# PUBLIC_INTERFACE
@router.put("/vendors/{vendor_id}/status", response_model=VendorRead, summary="Change vendor status")
async def update_vendor_status(
    payload: VendorStatusUpdate, vendor_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> VendorRead:
    vendor = await PurchasingService(session).update_vendor_status(
        vendor_id, payload.status, payload.notes, payload.changed_by
    )
    return VendorRead.model_validate(vendor)


# PUBLIC_INTERFACE
@router.get(
    "/vendors/{vendor_id}/status-history", response_model=List[VendorStatusLogRead], summary="Vendor status history"
)
async def vendor_status_history(
    vendor_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> List[VendorStatusLogRead]:
    rows = await PurchasingService(session).get_vendor_status_history(vendor_id)
    return [VendorStatusLogRead.model_validate(x) for x in rows]


# Purchase orders

# PUBLIC_INTERFACE
@router.get("/purchase-orders", response_model=List[PurchaseOrderRead], summary="List purchase orders")
async def list_purchase_orders(
    session: AsyncSession = Depends(get_session),
    vendor_id: Optional[UUID] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[PurchaseOrderRead]:
    rows = await PurchasingService(session).get_purchase_orders(
        vendor_id=vendor_id, status=status_, priority=priority, search=search, limit=limit, offset=offset
    )
    return [PurchaseOrderRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/purchase-orders",
    response_model=PurchaseOrderDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Create purchase order",
    description="Numbered PO-YYMM-NNNN; totals are computed from the items.",
)
async def create_purchase_order(
    payload: PurchaseOrderCreate, session: AsyncSession = Depends(get_session)
) -> PurchaseOrderDetail:
    service = PurchasingService(session)
    return await service.order_detail(await service.create_purchase_order(payload))


# PUBLIC_INTERFACE
@router.get("/purchase-orders/{order_id}", response_model=PurchaseOrderDetail, summary="Get purchase order")
async def get_purchase_order(
    order_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> PurchaseOrderDetail:
    service = PurchasingService(session)
    order = await service.get_purchase_order_by_id(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Purchase order not found")
    return await service.order_detail(order)


# PUBLIC_INTERFACE
@router.patch(
    "/purchase-orders/{order_id}",
    response_model=PurchaseOrderDetail,
    summary="Update purchase order",
    description="Only draft orders can be edited.",
)
async def update_purchase_order(
    payload: PurchaseOrderUpdate, order_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> PurchaseOrderDetail:
    service = PurchasingService(session)
    order = await service.update_purchase_order(order_id, payload)
    if not order:
        raise HTTPException(status_code=404, detail="Purchase order not found")
    return await service.order_detail(order)


# PUBLIC_INTERFACE
@router.put("/purchase-orders/{order_id}/status", response_model=PurchaseOrderDetail, summary="Change PO status")
async def update_purchase_order_status(
    payload: POStatusUpdate, order_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> PurchaseOrderDetail:
    service = PurchasingService(session)
    order = await service.update_purchase_order_status(order_id, payload.status, payload.notes, payload.changed_by)
    return await service.order_detail(order)


# Receiving

# PUBLIC_INTERFACE
@router.get("/receiving", response_model=List[ReceivingRead], summary="List receiving records")
async def list_receiving_records(
    session: AsyncSession = Depends(get_session),
    purchase_order_id: Optional[UUID] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
) -> List[ReceivingRead]:
    rows = await PurchasingService(session).get_receiving_records(
        purchase_order_id=purchase_order_id, status=status_, search=search
    )
    return [ReceivingRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/receiving",
    response_model=ReceivingDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Record a receipt",
    description="Adds received quantities to the order items and rolls up the order's receiving status.",
)
async def create_receiving_record(
    payload: ReceivingCreate, session: AsyncSession = Depends(get_session)
) -> ReceivingDetail:
    service = PurchasingService(session)
    return await service.receiving_detail(await service.create_receiving_record(payload))


# PUBLIC_INTERFACE
@router.get("/receiving/{record_id}", response_model=ReceivingDetail, summary="Get receiving record")
async def get_receiving_record(
    record_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> ReceivingDetail:
    service = PurchasingService(session)
    record = await service.get_receiving_record_by_id(record_id)
    if not record:
        raise HTTPException(status_code=404, detail="Receiving record not found")
    return await service.receiving_detail(record)


# PUBLIC_INTERFACE
@router.put("/receiving/{record_id}/status", response_model=ReceivingDetail, summary="Change receiving status")
async def update_receiving_status(
    payload: ReceivingStatusUpdate, record_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> ReceivingDetail:
    service = PurchasingService(session)
    record = await service.update_receiving_record_status(record_id, payload.status, payload.notes)
    return await service.receiving_detail(record)


# PUBLIC_INTERFACE
@router.get("/dashboard", response_model=PurchasingDashboard, summary="Purchasing dashboard")
async def purchasing_dashboard(session: AsyncSession = Depends(get_session)) -> PurchasingDashboard:
    return await PurchasingService(session).get_dashboard()


# PUBLIC_INTERFACE
@router.post(
    "/ai/{action}",
    summary="Run a purchasing AI action",
    description="Actions: " + ", ".join(a.replace("_", "-") for a in PurchasingAIService.actions),
)
async def run_purchasing_ai(
    action: str = Path(..., description="AI action, e.g. recommend-vendors"),
    params: Optional[dict[str, Any]] = Body(None),
    client: AIClient = Depends(get_ai_client),
) -> Any:
    return await PurchasingAIService(client).run(action, params or {})
