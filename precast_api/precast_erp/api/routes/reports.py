from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.api.exports import export_dataframe
from precast_erp.core.deps import get_session
from precast_erp.services.hr import HRService
from precast_erp.services.purchasing import PurchasingService
from precast_erp.services.yard import YardMaterialService

# PUBLIC_INTERFACE
router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
)


# PUBLIC_INTERFACE
@router.get(
    "/yard-inventory",
    summary="Yard inventory report",
    description="Exports yard materials with their location, quantity and stock value.",
    response_description="File stream (CSV/XLSX/PDF)",
)
async def yard_inventory_report(
    session: AsyncSession = Depends(get_session),
    format: str = Query("csv", description="Export format: csv | xlsx | pdf"),
):
    df = await YardMaterialService(session).inventory_frame()
    return export_dataframe(df, "yard_inventory", format)


# PUBLIC_INTERFACE
@router.get(
    "/purchase-orders",
    summary="Purchase order report",
    description="Exports purchase orders with vendor and totals.",
    response_description="File stream (CSV/XLSX/PDF)",
)
async def purchase_order_report(
    session: AsyncSession = Depends(get_session),
    status: Optional[str] = Query(None, description="Filter by PO status"),
    format: str = Query("csv", description="Export format: csv | xlsx | pdf"),
):
    df = await PurchasingService(session).purchase_order_report(status=status)
    return export_dataframe(df, "purchase_orders", format)


# PUBLIC_INTERFACE
@router.get(
    "/leave-balances",
    summary="Leave balance report",
    description="Exports entitled, used, pending and remaining days per employee and leave type.",
    response_description="File stream (CSV/XLSX/PDF)",
)
async def leave_balance_report(
    session: AsyncSession = Depends(get_session),
    year: Optional[int] = Query(None, description="Balance year, defaults to the current year"),
    format: str = Query("csv", description="Export format: csv | xlsx | pdf"),
):
    df = await HRService(session).leave_balance_report(year)
    return export_dataframe(df, "leave_balances", format)
