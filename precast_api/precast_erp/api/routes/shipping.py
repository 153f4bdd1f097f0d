from __future__ import annotations

import io
from datetime import date
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Response, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.deps import get_ai_client, get_session
from precast_erp.schemas.shipping import (
    AssignResourcesRequest,
    CancelDispatchRequest,
    DeliverRequest,
    DeliveryCreate,
    DeliveryEventRead,
    DeliveryRead,
    DeliveryStatusUpdate,
    DispatchAnalytics,
    DispatchCreate,
    DispatchRead,
    DispatchUpdate,
    DriverCreate,
    DriverRead,
    DriverUpdate,
    LoadPlanCreate,
    LoadPlanRead,
    MarkShippedRequest,
    Paperwork,
    PaperworkRequest,
    RouteRead,
    ShipmentCreate,
    ShipmentRead,
    ShipmentUpdate,
    TrackingUpdate,
    VehicleCreate,
    VehicleRead,
    VehicleUpdate,
)
from precast_erp.services.ai.client import AIClient
from precast_erp.services.ai.shipping import ShippingAIService
from precast_erp.services.shipping import DispatchService, ShippingService

router = APIRouter(prefix="/shipping", tags=["Shipping"])


def _pdf(content: bytes, filename: str) -> StreamingResponse:
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return StreamingResponse(io.BytesIO(content), media_type="application/pdf", headers=headers)


# Shipments

# PUBLIC_INTERFACE
@router.get("/shipments", response_model=List[ShipmentRead], summary="List shipments")
async def list_shipments(
    session: AsyncSession = Depends(get_session),
    status_: Optional[str] = Query(None, alias="status"),
    project_id: Optional[UUID] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[ShipmentRead]:
    rows = await ShippingService(session).get_shipments(
        status=status_,
        project_id=project_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
        limit=limit,
        offset=offset,
    )
    return [ShipmentRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post("/shipments", response_model=ShipmentRead, status_code=status.HTTP_201_CREATED, summary="Plan shipment")
async def create_shipment(payload: ShipmentCreate, session: AsyncSession = Depends(get_session)) -> ShipmentRead:
    return ShipmentRead.model_validate(await ShippingService(session).create_shipment(payload))


@router.get("/shipments/{shipment_id}", response_model=ShipmentRead, summary="Get shipment")
async def get_shipment(shipment_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> ShipmentRead:
    shipment = await ShippingService(session).get_shipment_by_id(shipment_id)
    if not shipment:
        raise HTTPException(status_code=404, detail="Shipment not found")
    return ShipmentRead.model_validate(shipment)


@router.patch("/shipments/{shipment_id}", response_model=ShipmentRead, summary="Update shipment")
async def update_shipment(
    payload: ShipmentUpdate, shipment_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> ShipmentRead:
    shipment = await ShippingService(session).update_shipment(shipment_id, payload)
    if not shipment:
        raise HTTPException(status_code=404, detail="Shipment not found")
    return ShipmentRead.model_validate(shipment)


# PUBLIC_INTERFACE
@router.post(
    "/shipments/{shipment_id}/assign",
    response_model=ShipmentRead,
    summary="Assign driver and vehicle",
    description="Both must be AVAILABLE; they become ASSIGNED.",
)
async def assign_resources(
    payload: AssignResourcesRequest, shipment_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> ShipmentRead:
    shipment = await ShippingService(session).assign_driver_and_vehicle(
        shipment_id, payload.driver_id, payload.vehicle_id
    )
    return ShipmentRead.model_validate(shipment)


# PUBLIC_INTERFACE
@router.post("/shipments/{shipment_id}/ship", response_model=ShipmentRead, summary="Mark pieces shipped")
async def mark_pieces_shipped(
    payload: Optional[MarkShippedRequest] = Body(None),
    shipment_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> ShipmentRead:
    piece_ids = payload.piece_ids if payload else None
    return ShipmentRead.model_validate(await ShippingService(session).mark_pieces_shipped(shipment_id, piece_ids))


# PUBLIC_INTERFACE
@router.post("/shipments/{shipment_id}/paperwork", response_model=Paperwork, summary="Generate driver paperwork")
async def generate_paperwork(
    payload: Optional[PaperworkRequest] = Body(None),
    shipment_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> Paperwork:
    generated_by = payload.generated_by if payload else None
    return await ShippingService(session).generate_driver_paperwork(shipment_id, generated_by)


@router.get("/shipments/{shipment_id}/paperwork.pdf", summary="Driver paperwork PDF")
async def paperwork_pdf(
    shipment_id: UUID = Path(...),
    generated_by: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_session),
):
    content = await ShippingService(session).paperwork_pdf(shipment_id, generated_by)
    return _pdf(content, f"shipment-{shipment_id}.pdf")


@router.post(
    "/shipments/{shipment_id}/load-plan",
    response_model=LoadPlanRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create load plan",
)
async def create_load_plan(
    payload: LoadPlanCreate, shipment_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> LoadPlanRead:
    return LoadPlanRead.model_validate(await ShippingService(session).create_load_plan(shipment_id, payload))


@router.get("/shipments/{shipment_id}/load-plan", response_model=LoadPlanRead, summary="Get load plan")
async def get_load_plan(shipment_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> LoadPlanRead:
    plan = await ShippingService(session).get_load_plan(shipment_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Load plan not found")
    return LoadPlanRead.model_validate(plan)


@router.post("/shipments/{shipment_id}/route", response_model=RouteRead, summary="Generate route")
async def generate_route(shipment_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> RouteRead:
    return await ShippingService(session).generate_route(shipment_id)


@router.post("/shipments/{shipment_id}/complete", response_model=ShipmentRead, summary="Complete shipment")
async def complete_shipment(
    shipment_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> ShipmentRead:
    return ShipmentRead.model_validate(await ShippingService(session).complete_shipment(shipment_id))


# Deliveries

@router.get("/deliveries", response_model=List[DeliveryRead], summary="List deliveries")
async def list_deliveries(
    session: AsyncSession = Depends(get_session),
    shipment_id: Optional[UUID] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
) -> List[DeliveryRead]:
    rows = await ShippingService(session).get_deliveries(shipment_id=shipment_id, status=status_)
    return [DeliveryRead.model_validate(x) for x in rows]


@router.post("/deliveries", response_model=DeliveryRead, status_code=status.HTTP_201_CREATED, summary="Schedule delivery")
async def create_delivery(payload: DeliveryCreate, session: AsyncSession = Depends(get_session)) -> DeliveryRead:
    return DeliveryRead.model_validate(await ShippingService(session).create_delivery(payload))


@router.get("/deliveries/{delivery_id}", response_model=DeliveryRead, summary="Get delivery")
async def get_delivery(delivery_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> DeliveryRead:
    delivery = await ShippingService(session).get_delivery_by_id(delivery_id)
    if not delivery:
        raise HTTPException(status_code=404, detail="Delivery not found")
    return DeliveryRead.model_validate(delivery)


# PUBLIC_INTERFACE
@router.put(
    "/deliveries/{delivery_id}/status",
    response_model=DeliveryRead,
    summary="Update delivery status",
    description="Appends a status event. DELIVERED completes the shipment and frees its driver and vehicle.",
)
async def update_delivery_status(
    payload: DeliveryStatusUpdate, delivery_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> DeliveryRead:
    return DeliveryRead.model_validate(await ShippingService(session).update_delivery_status(delivery_id, payload))


@router.get("/deliveries/{delivery_id}/history", response_model=List[DeliveryEventRead], summary="Delivery history")
async def delivery_history(
    delivery_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> List[DeliveryEventRead]:
    rows = await ShippingService(session).get_delivery_history(delivery_id)
    return [DeliveryEventRead.model_validate(x) for x in rows]


# Drivers and vehicles

@router.get("/drivers", response_model=List[DriverRead], summary="List drivers")
async def list_drivers(
    session: AsyncSession = Depends(get_session),
    status_: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
) -> List[DriverRead]:
    return [DriverRead.model_validate(x) for x in await ShippingService(session).get_drivers(status=status_, search=search)]


@router.post("/drivers", response_model=DriverRead, status_code=status.HTTP_201_CREATED, summary="Add driver")
async def create_driver(payload: DriverCreate, session: AsyncSession = Depends(get_session)) -> DriverRead:
    return DriverRead.model_validate(await ShippingService(session).create_driver(payload))


@router.get("/drivers/available", response_model=List[DriverRead], summary="Available drivers")
async def available_drivers(
    on: Optional[date] = Query(None, description="Licence must be valid on this date"),
    session: AsyncSession = Depends(get_session),
) -> List[DriverRead]:
    return [DriverRead.model_validate(x) for x in await ShippingService(session).get_available_drivers(on)]


@router.get("/drivers/{driver_id}", response_model=DriverRead, summary="Get driver")
async def get_driver(driver_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> DriverRead:
    driver = await ShippingService(session).get_driver_by_id(driver_id)
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")
    return DriverRead.model_validate(driver)


@router.patch("/drivers/{driver_id}", response_model=DriverRead, summary="Update driver")
async def update_driver(
    payload: DriverUpdate, driver_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> DriverRead:
    driver = await ShippingService(session).update_driver(driver_id, payload)
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")
    return DriverRead.model_validate(driver)


@router.get("/vehicles", response_model=List[VehicleRead], summary="List vehicles")
async def list_vehicles(
    session: AsyncSession = Depends(get_session),
    status_: Optional[str] = Query(None, alias="status"),
    type_: Optional[str] = Query(None, alias="type"),
    search: Optional[str] = Query(None),
) -> List[VehicleRead]:
    rows = await ShippingService(session).get_vehicles(status=status_, type=type_, search=search)
    return [VehicleRead.model_validate(x) for x in rows]


@router.post("/vehicles", response_model=VehicleRead, status_code=status.HTTP_201_CREATED, summary="Add vehicle")
async def create_vehicle(payload: VehicleCreate, session: AsyncSession = Depends(get_session)) -> VehicleRead:
    return VehicleRead.model_validate(await ShippingService(session).create_vehicle(payload))


@router.get("/vehicles/available", response_model=List[VehicleRead], summary="Available vehicles")
async def available_vehicles(
    type_: Optional[str] = Query(None, alias="type"),
    min_weight: Optional[float] = Query(None, ge=0),
    session: AsyncSession = Depends(get_session),
) -> List[VehicleRead]:
    rows = await ShippingService(session).get_available_vehicles(type_, min_weight)
    return [VehicleRead.model_validate(x) for x in rows]


@router.get("/vehicles/{vehicle_id}", response_model=VehicleRead, summary="Get vehicle")
async def get_vehicle(vehicle_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> VehicleRead:
    vehicle = await ShippingService(session).get_vehicle_by_id(vehicle_id)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return VehicleRead.model_validate(vehicle)


@router.patch("/vehicles/{vehicle_id}", response_model=VehicleRead, summary="Update vehicle")
async def update_vehicle(
    payload: VehicleUpdate, vehicle_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> VehicleRead:
    vehicle = await ShippingService(session).update_vehicle(vehicle_id, payload)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return VehicleRead.model_validate(vehicle)


# Dispatches

# PUBLIC_INTERFACE
@router.get("/dispatches", response_model=List[DispatchRead], summary="List dispatches")
async def list_dispatches(
    session: AsyncSession = Depends(get_session),
    status_: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    project_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[DispatchRead]:
    rows = await DispatchService(session).get_dispatches(
        status=status_, priority=priority, project_id=project_id, search=search, limit=limit, offset=offset
    )
    return [DispatchRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post("/dispatches", response_model=DispatchRead, status_code=status.HTTP_201_CREATED, summary="Create dispatch")
async def create_dispatch(payload: DispatchCreate, session: AsyncSession = Depends(get_session)) -> DispatchRead:
    return DispatchRead.model_validate(await DispatchService(session).create_dispatch(payload))


@router.get("/dispatches/analytics", response_model=DispatchAnalytics, summary="Dispatch analytics")
async def dispatch_analytics(session: AsyncSession = Depends(get_session)) -> DispatchAnalytics:
    return await DispatchService(session).get_analytics()


@router.get("/dispatches/{dispatch_id}", response_model=DispatchRead, summary="Get dispatch")
async def get_dispatch(dispatch_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> DispatchRead:
    dispatch = await DispatchService(session).get_dispatch_by_id(dispatch_id)
    if not dispatch:
        raise HTTPException(status_code=404, detail="Dispatch not found")
    return DispatchRead.model_validate(dispatch)


@router.patch("/dispatches/{dispatch_id}", response_model=DispatchRead, summary="Update dispatch")
async def update_dispatch(
    payload: DispatchUpdate, dispatch_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> DispatchRead:
    dispatch = await DispatchService(session).update_dispatch(dispatch_id, payload)
    if not dispatch:
        raise HTTPException(status_code=404, detail="Dispatch not found")
    return DispatchRead.model_validate(dispatch)


@router.delete("/dispatches/{dispatch_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete dispatch")
async def delete_dispatch(dispatch_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> Response:
    if not await DispatchService(session).delete_dispatch(dispatch_id):
        raise HTTPException(status_code=404, detail="Dispatch not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/dispatches/{dispatch_id}/tracking", response_model=DispatchRead, summary="Add tracking update")
async def add_tracking_update(
    payload: TrackingUpdate, dispatch_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> DispatchRead:
    return DispatchRead.model_validate(await DispatchService(session).add_tracking_update(dispatch_id, payload))


# PUBLIC_INTERFACE
@router.post("/dispatches/{dispatch_id}/deliver", response_model=DispatchRead, summary="Mark dispatch delivered")
async def deliver_dispatch(
    payload: Optional[DeliverRequest] = Body(None),
    dispatch_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> DispatchRead:
    payload = payload or DeliverRequest()
    dispatch = await DispatchService(session).mark_delivered(dispatch_id, payload.signed_by, payload.notes)
    return DispatchRead.model_validate(dispatch)


# PUBLIC_INTERFACE
@router.post("/dispatches/{dispatch_id}/cancel", response_model=DispatchRead, summary="Cancel dispatch")
async def cancel_dispatch(
    payload: Optional[CancelDispatchRequest] = Body(None),
    dispatch_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> DispatchRead:
    reason = payload.reason if payload else ""
    return DispatchRead.model_validate(await DispatchService(session).cancel_dispatch(dispatch_id, reason))


@router.get("/dispatches/{dispatch_id}/delivery-note", summary="Delivery note PDF")
async def delivery_note(dispatch_id: UUID = Path(...), session: AsyncSession = Depends(get_session)):
    content = await DispatchService(session).delivery_note_pdf(dispatch_id)
    return _pdf(content, f"delivery-note-{dispatch_id}.pdf")


# PUBLIC_INTERFACE
@router.post(
    "/ai/{action}",
    summary="Run a shipping AI action",
    description="Actions: " + ", ".join(a.replace("_", "-") for a in ShippingAIService.actions),
)
async def run_shipping_ai(
    action: str = Path(..., description="AI action, e.g. optimize-load"),
    params: Optional[dict[str, Any]] = Body(None),
    client: AIClient = Depends(get_ai_client),
) -> Any:
    return await ShippingAIService(client).run(action, params or {})
