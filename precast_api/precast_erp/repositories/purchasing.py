from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select

from precast_erp.db.models.purchasing import (
    PurchaseOrder,
    PurchaseOrderItem,
    ReceivingItem,
    ReceivingRecord,
    Vendor,
    VendorStatusLog,
)
from .base import ModelRepository


class VendorRepository(ModelRepository[Vendor]):
    model = Vendor
    search_columns = ("name", "code", "contact_name", "email")
    default_order = ("name",)

    async def find_by_name_or_code(self, name: str, code: Optional[str]) -> Optional[Vendor]:
        clauses = [Vendor.name == name]
        if code:
            clauses.append(Vendor.code == code)
        stmt = select(Vendor).where(or_(*clauses)).limit(1)
        return await self.scalar_one_or_none(stmt)


class VendorStatusLogRepository(ModelRepository[VendorStatusLog]):
    model = VendorStatusLog


class PurchaseOrderRepository(ModelRepository[PurchaseOrder]):
    model = PurchaseOrder
    search_columns = ("po_number", "notes")


class PurchaseOrderItemRepository(ModelRepository[PurchaseOrderItem]):
    model = PurchaseOrderItem
    default_order = ("line_no",)

    async def list_for_order(self, purchase_order_id: UUID) -> List[PurchaseOrderItem]:
        return await self.list(filters={"purchase_order_id": purchase_order_id}, limit=None)


class ReceivingRecordRepository(ModelRepository[ReceivingRecord]):
    model = ReceivingRecord
    search_columns = ("receipt_number",)
    default_order = ("-received_date",)

    async def latest_for_order(self, purchase_order_id: UUID) -> Optional[ReceivingRecord]:
        stmt = (
            select(ReceivingRecord)
            .where(ReceivingRecord.purchase_order_id == purchase_order_id)
            .order_by(ReceivingRecord.received_date.desc())
            .limit(1)
        )
        return await self.scalar_one_or_none(stmt)


class ReceivingItemRepository(ModelRepository[ReceivingItem]):
    model = ReceivingItem
    default_order = ("created_at",)

    async def list_for_record(self, receiving_record_id: UUID) -> List[ReceivingItem]:
        return await self.list(filters={"receiving_record_id": receiving_record_id}, limit=None)
