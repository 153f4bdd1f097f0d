from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.deps import get_ai_client, get_session
from precast_erp.schemas.quality import PieceRead
from precast_erp.schemas.yard import (
    AllocateRequest,
    AssignEquipmentRequest,
    CancelMovementRequest,
    CompleteMaintenanceRequest,
    EquipmentCreate,
    EquipmentLocation,
    EquipmentPositionUpdate,
    EquipmentRead,
    EquipmentUpdate,
    ExecuteMovementRequest,
    InventoryReport,
    LayoutCriteria,
    LayoutOptimization,
    LocationCreate,
    LocationNode,
    LocationRead,
    LocationUpdate,
    LowStockRequest,
    MaintenanceRequest,
    MaterialCreate,
    MaterialRead,
    MaterialUpdate,
    MoveMaterialRequest,
    MovementCreate,
    MovementRead,
    MovementReport,
    MovementUpdate,
    QuantityUpdate,
    ReadyForShippingRequest,
    ScheduleMovementRequest,
    TagsRequest,
    UtilizationReport,
    YardMap,
)
from precast_erp.services.ai.client import AIClient
from precast_erp.services.ai.yard import YardAIService
from precast_erp.services.yard import (
    EquipmentService,
    MovementService,
    YardLocationService,
    YardMaterialService,
    YardPieceService,
)

router = APIRouter(prefix="/yard", tags=["Yard"])


# Locations

# PUBLIC_INTERFACE
@router.get("/locations", response_model=List[LocationRead], summary="List yard locations")
async def list_locations(
    session: AsyncSession = Depends(get_session),
    type_: Optional[str] = Query(None, alias="type"),
    status_: Optional[str] = Query(None, alias="status"),
    parent_id: Optional[UUID] = Query(None),
) -> List[LocationRead]:
    rows = await YardLocationService(session).get_locations(type=type_, status=status_, parent_id=parent_id)
    return [LocationRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post("/locations", response_model=LocationRead, status_code=status.HTTP_201_CREATED, summary="Create location")
async def create_location(payload: LocationCreate, session: AsyncSession = Depends(get_session)) -> LocationRead:
    return LocationRead.model_validate(await YardLocationService(session).create_location(payload))


@router.get("/locations/available", response_model=List[LocationRead], summary="Locations with free capacity")
async def available_locations(session: AsyncSession = Depends(get_session)) -> List[LocationRead]:
    rows = await YardLocationService(session).get_available_locations()
    return [LocationRead.model_validate(x) for x in rows]


@router.get("/locations/hierarchy", response_model=List[LocationNode], summary="Location tree")
async def location_hierarchy(
    root_id: Optional[UUID] = Query(None), session: AsyncSession = Depends(get_session)
) -> List[LocationNode]:
    return await YardLocationService(session).get_location_hierarchy(root_id)


@router.get("/locations/{location_id}", response_model=LocationRead, summary="Get location")
async def get_location(location_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> LocationRead:
    location = await YardLocationService(session).get_location_by_id(location_id)
    if not location:
        raise HTTPException(status_code=404, detail="Location not found")
    return LocationRead.model_validate(location)


@router.patch("/locations/{location_id}", response_model=LocationRead, summary="Update location")
async def update_location(
    payload: LocationUpdate, location_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> LocationRead:
    location = await YardLocationService(session).update_location(location_id, payload)
    if not location:
        raise HTTPException(status_code=404, detail="Location not found")
    return LocationRead.model_validate(location)


# PUBLIC_INTERFACE
@router.delete(
    "/locations/{location_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete location",
    description="Refused while the location has child locations or stored materials.",
)
async def delete_location(location_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> Response:
    if not await YardLocationService(session).delete_location(location_id):
        raise HTTPException(status_code=404, detail="Location not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/locations/{location_id}/children", response_model=List[LocationRead], summary="Child locations")
async def child_locations(
    location_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> List[LocationRead]:
    rows = await YardLocationService(session).get_child_locations(location_id)
    return [LocationRead.model_validate(x) for x in rows]


@router.post("/locations/{location_id}/occupancy", response_model=LocationRead, summary="Recount occupancy")
async def refresh_occupancy(
    location_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> LocationRead:
    return LocationRead.model_validate(await YardLocationService(session).update_location_occupancy(location_id))


@router.get("/map", response_model=YardMap, summary="Yard map")
async def yard_map(
    width: int = Query(1000, gt=0), height: int = Query(800, gt=0), session: AsyncSession = Depends(get_session)
) -> YardMap:
    return await YardLocationService(session).generate_yard_map(width, height)


# PUBLIC_INTERFACE
@router.post(
    "/layout/optimize",
    response_model=LayoutOptimization,
    summary="Suggest layout changes",
    description="Suggests moves out of crowded locations. Nothing is moved.",
)
async def optimize_layout(
    criteria: Optional[LayoutCriteria] = Body(None), session: AsyncSession = Depends(get_session)
) -> LayoutOptimization:
    criteria = criteria or LayoutCriteria()
    return await YardLocationService(session).optimize_yard_layout(criteria.threshold)


# Materials

# PUBLIC_INTERFACE
@router.get("/materials", response_model=List[MaterialRead], summary="List materials")
async def list_materials(
    session: AsyncSession = Depends(get_session),
    type_: Optional[str] = Query(None, alias="type"),
    category: Optional[str] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
    location_id: Optional[UUID] = Query(None),
    project_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[MaterialRead]:
    rows = await YardMaterialService(session).get_materials(
        type=type_,
        category=category,
        status=status_,
        location_id=location_id,
        project_id=project_id,
        search=search,
        limit=limit,
        offset=offset,
    )
    return [MaterialRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post("/materials", response_model=MaterialRead, status_code=status.HTTP_201_CREATED, summary="Create material")
async def create_material(payload: MaterialCreate, session: AsyncSession = Depends(get_session)) -> MaterialRead:
    return MaterialRead.model_validate(await YardMaterialService(session).create_material(payload))


@router.get("/materials/search", response_model=List[MaterialRead], summary="Search materials")
async def search_materials(q: str = Query(..., min_length=1), session: AsyncSession = Depends(get_session)):
    return [MaterialRead.model_validate(x) for x in await YardMaterialService(session).search_materials(q)]


@router.post("/materials/low-stock", response_model=List[MaterialRead], summary="Materials at or below threshold")
async def low_stock(
    request: Optional[LowStockRequest] = Body(None), session: AsyncSession = Depends(get_session)
) -> List[MaterialRead]:
    request = request or LowStockRequest()
    rows = await YardMaterialService(session).get_low_stock_materials(request.default_threshold, request.thresholds)
    return [MaterialRead.model_validate(x) for x in rows]


@router.get("/materials/report", response_model=InventoryReport, summary="Inventory by category")
async def inventory_report(session: AsyncSession = Depends(get_session)) -> InventoryReport:
    return await YardMaterialService(session).generate_inventory_report()


@router.get("/materials/{material_id}", response_model=MaterialRead, summary="Get material")
async def get_material(material_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> MaterialRead:
    material = await YardMaterialService(session).get_material_by_id(material_id)
    if not material:
        raise HTTPException(status_code=404, detail="Material not found")
    return MaterialRead.model_validate(material)


@router.patch("/materials/{material_id}", response_model=MaterialRead, summary="Update material")
async def update_material(
    payload: MaterialUpdate, material_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> MaterialRead:
    material = await YardMaterialService(session).update_material(material_id, payload)
    if not material:
        raise HTTPException(status_code=404, detail="Material not found")
    return MaterialRead.model_validate(material)


@router.delete("/materials/{material_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete material")
async def delete_material(material_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> Response:
    if not await YardMaterialService(session).delete_material(material_id):
        raise HTTPException(status_code=404, detail="Material not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/materials/{material_id}/quantity", response_model=MaterialRead, summary="Set material quantity")
async def update_quantity(
    payload: QuantityUpdate, material_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> MaterialRead:
    material = await YardMaterialService(session).update_material_quantity(
        material_id, payload.quantity, payload.reason
    )
    return MaterialRead.model_validate(material)


# PUBLIC_INTERFACE
@router.post(
    "/materials/{material_id}/move",
    response_model=MovementRead,
    summary="Move material now",
    description="Relocates the material and records a completed transfer movement.",
)
async def move_material(
    payload: MoveMaterialRequest, material_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> MovementRead:
    movement = await YardMaterialService(session).move_material(
        material_id, payload.location_id, payload.quantity, payload.notes, payload.moved_by
    )
    return MovementRead.model_validate(movement)


@router.post("/materials/{material_id}/allocate", response_model=MaterialRead, summary="Allocate to project")
async def allocate_material(
    payload: AllocateRequest, material_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> MaterialRead:
    material = await YardMaterialService(session).allocate_material(material_id, payload.project_id, payload.quantity)
    return MaterialRead.model_validate(material)


@router.post("/materials/{material_id}/tags", response_model=MaterialRead, summary="Add tags")
async def add_material_tags(
    payload: TagsRequest, material_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> MaterialRead:
    return MaterialRead.model_validate(await YardMaterialService(session).add_tags(material_id, payload.tags))


# Movements

# PUBLIC_INTERFACE
@router.get("/movements", response_model=List[MovementRead], summary="List movements")
async def list_movements(
    session: AsyncSession = Depends(get_session),
    status_: Optional[str] = Query(None, alias="status"),
    type_: Optional[str] = Query(None, alias="type"),
    material_id: Optional[UUID] = Query(None),
    location_id: Optional[UUID] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
) -> List[MovementRead]:
    rows = await MovementService(session).get_movements(
        status=status_,
        type=type_,
        material_id=material_id,
        location_id=location_id,
        start_date=start_date,
        end_date=end_date,
    )
    return [MovementRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post("/movements", response_model=MovementRead, status_code=status.HTTP_201_CREATED, summary="Request movement")
async def create_movement(payload: MovementCreate, session: AsyncSession = Depends(get_session)) -> MovementRead:
    return MovementRead.model_validate(await MovementService(session).create_movement(payload))


@router.get("/movements/report", response_model=MovementReport, summary="Movement counts")
async def movement_report(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    session: AsyncSession = Depends(get_session),
) -> MovementReport:
    return await MovementService(session).generate_movement_report(start, end)


@router.get("/materials/{material_id}/movements", response_model=List[MovementRead], summary="Movements of material")
async def material_movements(material_id: UUID = Path(...), session: AsyncSession = Depends(get_session)):
    rows = await MovementService(session).get_movements_by_material(material_id)
    return [MovementRead.model_validate(x) for x in rows]


@router.get("/locations/{location_id}/movements", response_model=List[MovementRead], summary="Movements at location")
async def location_movements(
    location_id: UUID = Path(...),
    direction: str = Query("both", pattern="^(from|to|both)$"),
    session: AsyncSession = Depends(get_session),
) -> List[MovementRead]:
    rows = await MovementService(session).get_movements_by_location(location_id, direction)
    return [MovementRead.model_validate(x) for x in rows]


@router.get("/movements/{movement_id}", response_model=MovementRead, summary="Get movement")
async def get_movement(movement_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> MovementRead:
    movement = await MovementService(session).get_movement_by_id(movement_id)
    if not movement:
        raise HTTPException(status_code=404, detail="Movement not found")
    return MovementRead.model_validate(movement)


@router.patch("/movements/{movement_id}", response_model=MovementRead, summary="Update movement")
async def update_movement(
    payload: MovementUpdate, movement_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> MovementRead:
    movement = await MovementService(session).update_movement(movement_id, payload)
    if not movement:
        raise HTTPException(status_code=404, detail="Movement not found")
    return MovementRead.model_validate(movement)


@router.delete("/movements/{movement_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete pending movement")
async def delete_movement(movement_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> Response:
    if not await MovementService(session).delete_movement(movement_id):
        raise HTTPException(status_code=404, detail="Movement not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# PUBLIC_INTERFACE
@router.post("/movements/{movement_id}/execute", response_model=MovementRead, summary="Execute movement")
async def execute_movement(
    payload: Optional[ExecuteMovementRequest] = Body(None),
    movement_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> MovementRead:
    payload = payload or ExecuteMovementRequest()
    movement = await MovementService(session).execute_movement(
        movement_id, payload.operator_id, payload.equipment_id, payload.completed_by
    )
    return MovementRead.model_validate(movement)


@router.post("/movements/{movement_id}/cancel", response_model=MovementRead, summary="Cancel movement")
async def cancel_movement(
    payload: Optional[CancelMovementRequest] = Body(None),
    movement_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> MovementRead:
    payload = payload or CancelMovementRequest()
    movement = await MovementService(session).cancel_movement(movement_id, payload.cancelled_by, payload.reason)
    return MovementRead.model_validate(movement)


@router.post("/movements/{movement_id}/schedule", response_model=MovementRead, summary="Schedule movement")
async def schedule_movement(
    payload: ScheduleMovementRequest, movement_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> MovementRead:
    movement = await MovementService(session).schedule_movement(movement_id, payload.scheduled_for)
    return MovementRead.model_validate(movement)


# Equipment

# PUBLIC_INTERFACE
@router.get("/equipment", response_model=List[EquipmentRead], summary="List equipment")
async def list_equipment(
    session: AsyncSession = Depends(get_session),
    type_: Optional[str] = Query(None, alias="type"),
    status_: Optional[str] = Query(None, alias="status"),
    location_id: Optional[UUID] = Query(None),
    operator_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
) -> List[EquipmentRead]:
    rows = await EquipmentService(session).get_equipment(
        type=type_, status=status_, location_id=location_id, operator_id=operator_id, search=search
    )
    return [EquipmentRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post("/equipment", response_model=EquipmentRead, status_code=status.HTTP_201_CREATED, summary="Add equipment")
async def create_equipment(payload: EquipmentCreate, session: AsyncSession = Depends(get_session)) -> EquipmentRead:
    return EquipmentRead.model_validate(await EquipmentService(session).create_equipment(payload))


@router.get("/equipment/available", response_model=List[EquipmentRead], summary="Available equipment")
async def available_equipment(
    type_: Optional[str] = Query(None, alias="type"),
    min_capacity: Optional[float] = Query(None, ge=0),
    session: AsyncSession = Depends(get_session),
) -> List[EquipmentRead]:
    rows = await EquipmentService(session).get_available_equipment(type_, min_capacity)
    return [EquipmentRead.model_validate(x) for x in rows]


@router.get("/equipment/utilization", response_model=UtilizationReport, summary="Equipment utilization")
async def equipment_utilization(session: AsyncSession = Depends(get_session)) -> UtilizationReport:
    return await EquipmentService(session).generate_utilization_report()


@router.get("/equipment/{equipment_id}", response_model=EquipmentRead, summary="Get equipment")
async def get_equipment(equipment_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> EquipmentRead:
    item = await EquipmentService(session).get_equipment_by_id(equipment_id)
    if not item:
        raise HTTPException(status_code=404, detail="Equipment not found")
    return EquipmentRead.model_validate(item)


@router.patch("/equipment/{equipment_id}", response_model=EquipmentRead, summary="Update equipment")
async def update_equipment(
    payload: EquipmentUpdate, equipment_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> EquipmentRead:
    item = await EquipmentService(session).update_equipment(equipment_id, payload)
    if not item:
        raise HTTPException(status_code=404, detail="Equipment not found")
    return EquipmentRead.model_validate(item)


@router.delete("/equipment/{equipment_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete equipment")
async def delete_equipment(equipment_id: UUID = Path(...), session: AsyncSession = Depends(get_session)) -> Response:
    if not await EquipmentService(session).delete_equipment(equipment_id):
        raise HTTPException(status_code=404, detail="Equipment not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/equipment/{equipment_id}/assign", response_model=EquipmentRead, summary="Assign to operator")
async def assign_equipment(
    payload: AssignEquipmentRequest, equipment_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> EquipmentRead:
    return EquipmentRead.model_validate(
        await EquipmentService(session).assign_to_operator(equipment_id, payload.operator_id)
    )


@router.post("/equipment/{equipment_id}/release", response_model=EquipmentRead, summary="Release from operator")
async def release_equipment(
    equipment_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> EquipmentRead:
    return EquipmentRead.model_validate(await EquipmentService(session).release(equipment_id))


@router.post("/equipment/{equipment_id}/maintenance", response_model=EquipmentRead, summary="Schedule maintenance")
async def schedule_maintenance(
    payload: MaintenanceRequest, equipment_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> EquipmentRead:
    return EquipmentRead.model_validate(await EquipmentService(session).schedule_maintenance(equipment_id, payload))


@router.post(
    "/equipment/{equipment_id}/maintenance/{maintenance_id}/complete",
    response_model=EquipmentRead,
    summary="Complete maintenance",
)
async def complete_maintenance(
    payload: Optional[CompleteMaintenanceRequest] = Body(None),
    equipment_id: UUID = Path(...),
    maintenance_id: str = Path(...),
    session: AsyncSession = Depends(get_session),
) -> EquipmentRead:
    payload = payload or CompleteMaintenanceRequest()
    item = await EquipmentService(session).complete_maintenance(
        equipment_id, maintenance_id, payload.completed_by, payload.notes
    )
    return EquipmentRead.model_validate(item)


@router.put("/equipment/{equipment_id}/location", response_model=EquipmentRead, summary="Report equipment position")
async def record_equipment_position(
    payload: EquipmentPositionUpdate, equipment_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> EquipmentRead:
    return EquipmentRead.model_validate(await EquipmentService(session).record_position(equipment_id, payload))


# PUBLIC_INTERFACE
@router.get("/equipment/{equipment_id}/location", response_model=EquipmentLocation, summary="Track equipment")
async def track_equipment(
    equipment_id: UUID = Path(...), session: AsyncSession = Depends(get_session)
) -> EquipmentLocation:
    return await EquipmentService(session).track_equipment_location(equipment_id)


# Pieces

# PUBLIC_INTERFACE
@router.get("/pieces/ready-for-shipping", response_model=List[PieceRead], summary="Pieces ready for shipping")
async def pieces_ready_for_shipping(
    session: AsyncSession = Depends(get_session),
    job_id: Optional[UUID] = Query(None),
    scheduled_date: Optional[date] = Query(None, description="Scheduled ship date"),
) -> List[PieceRead]:
    rows = await YardPieceService(session).get_pieces_ready_for_shipping(job_id=job_id, scheduled_date=scheduled_date)
    return [PieceRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.put("/pieces/{piece_id}/ready-for-shipping", response_model=PieceRead, summary="Mark piece ready for shipping")
async def mark_piece_ready_for_shipping(
    payload: Optional[ReadyForShippingRequest] = Body(None),
    piece_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> PieceRead:
    piece = await YardPieceService(session).mark_piece_ready_for_shipping(
        piece_id, payload or ReadyForShippingRequest()
    )
    return PieceRead.model_validate(piece)


# PUBLIC_INTERFACE
@router.post(
    "/ai/{action}",
    summary="Run a yard AI action",
    description="Actions: " + ", ".join(a.replace("_", "-") for a in YardAIService.actions),
)
async def run_yard_ai(
    action: str = Path(..., description="AI action, e.g. storage-recommendation"),
    params: Optional[dict[str, Any]] = Body(None),
    client: AIClient = Depends(get_ai_client),
) -> Any:
    return await YardAIService(client).run(action, params or {})
