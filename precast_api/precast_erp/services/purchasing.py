from __future__ import annotations

import logging
import random
from collections import Counter, defaultdict
from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.core.errors import ConflictError, NotFoundError, ValidationFailedError
from precast_erp.db.base import utcnow
from precast_erp.db.models.purchasing import (
    PO_STATUS_TRANSITIONS,
    RECEIVABLE_PO_STATUSES,
    RECEIVING_STATUSES,
    VENDOR_STATUSES,
    PurchaseOrder,
    PurchaseOrderItem,
    ReceivingItem,
    ReceivingRecord,
    Vendor,
    VendorStatusLog,
)
from precast_erp.repositories.purchasing import (
    PurchaseOrderItemRepository,
    PurchaseOrderRepository,
    ReceivingItemRepository,
    ReceivingRecordRepository,
    VendorRepository,
    VendorStatusLogRepository,
)
from precast_erp.schemas.purchasing import (
    OrderSummary,
    POItemIn,
    POItemRead,
    PurchaseOrderCreate,
    PurchaseOrderDetail,
    PurchaseOrderRead,
    PurchaseOrderUpdate,
    PurchasingDashboard,
    ReceiptSummary,
    ReceivingCreate,
    ReceivingDetail,
    ReceivingItemRead,
    ReceivingRead,
    VendorCreate,
    VendorSpend,
    VendorUpdate,
)
from precast_erp.services.base import BaseService

logger = logging.getLogger(__name__)

# Orders in these statuses do not count as committed spend.
UNCOMMITTED_PO_STATUSES = ("DRAFT", "CANCELLED")


def generate_vendor_code(name: str) -> str:
    """First three letters of the name plus a random four-digit number."""
    return f"{name[:3].upper()}{random.randint(0, 9999):04d}"


def _append_note(existing: str, note: str) -> str:
    return f"{existing or ''}\n{note}" if note else existing


class PurchasingService(BaseService):
    """
    Vendors, purchase orders and receiving.

    Purchase order status changes follow PO_STATUS_TRANSITIONS. Receipts add
    to item quantities and the order's `receiving_status` is rolled up from
    its items after every receipt.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.vendors = VendorRepository(session)
        self.status_logs = VendorStatusLogRepository(session)
        self.orders = PurchaseOrderRepository(session)
        self.order_items = PurchaseOrderItemRepository(session)
        self.receipts = ReceivingRecordRepository(session)
        self.receipt_items = ReceivingItemRepository(session)

    # Vendors

    async def get_vendors(
        self,
        *,
        status: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Vendor]:
        return await self.vendors.list(
            filters={"status": status, "category": category}, search=search, limit=limit, offset=offset
        )

    async def get_vendor_by_id(self, vendor_id: UUID) -> Optional[Vendor]:
        return await self.vendors.get(vendor_id)

    # PUBLIC_INTERFACE
    async def create_vendor(self, payload: VendorCreate) -> Vendor:
        if await self.vendors.find_by_name_or_code(payload.name, payload.code):
            raise ConflictError("Vendor with same name or code already exists")
        data = payload.model_dump()
        data["code"] = payload.code or generate_vendor_code(payload.name)
        vendor = Vendor(**data)
        self.check_choice(vendor.status, VENDOR_STATUSES, "vendor status")
        vendor.is_approved = vendor.status == "ACTIVE"
        created = await self.vendors.create(vendor)
        logger.info("Created vendor %s (%s)", created.code, created.name)
        return created

    async def update_vendor(self, vendor_id: UUID, payload: VendorUpdate) -> Optional[Vendor]:
        vendor = await self.vendors.get(vendor_id)
        if vendor is None:
            return None
        self.apply_patch(vendor, payload.model_dump(exclude_unset=True))
        return await self.vendors.save(vendor)

    # PUBLIC_INTERFACE
    async def update_vendor_status(
        self, vendor_id: UUID, status: str, notes: str = "", changed_by: Optional[str] = None
    ) -> Vendor:
        vendor = self.require(await self.vendors.get(vendor_id), "Vendor not found")
        self.check_choice(status, VENDOR_STATUSES, "vendor status")
        old_status = vendor.status
        vendor.status = status
        vendor.is_approved = status == "ACTIVE"
        vendor.notes = _append_note(vendor.notes, notes)
        await self.status_logs.add(
            VendorStatusLog(
                vendor_id=vendor.id, old_status=old_status, new_status=status, notes=notes, changed_by=changed_by
            )
        )
        logger.info("Vendor %s status %s -> %s", vendor.code, old_status, status)
        return await self.vendors.save(vendor)

    async def get_vendor_status_history(self, vendor_id: UUID) -> List[VendorStatusLog]:
        self.require(await self.vendors.get(vendor_id), "Vendor not found")
        return await self.status_logs.list(filters={"vendor_id": vendor_id}, limit=None)

    # Purchase orders

    async def get_purchase_orders(
        self,
        *,
        vendor_id: Optional[UUID] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[PurchaseOrder]:
        return await self.orders.list(
            filters={"vendor_id": vendor_id, "status": status, "priority": priority},
            search=search,
            limit=limit,
            offset=offset,
        )

    async def get_purchase_order_by_id(self, order_id: UUID) -> Optional[PurchaseOrder]:
        return await self.orders.get(order_id)

    async def order_detail(self, order: PurchaseOrder) -> PurchaseOrderDetail:
        items = await self.order_items.list_for_order(order.id)
        return PurchaseOrderDetail(
            **PurchaseOrderRead.model_validate(order).model_dump(),
            items=[POItemRead.model_validate(i) for i in items],
        )

    @staticmethod
    def _build_items(order: PurchaseOrder, items: list[POItemIn]) -> list[PurchaseOrderItem]:
        built = []
        for line_no, item in enumerate(items, start=1):
            built.append(
                PurchaseOrderItem(
                    purchase_order_id=order.id,
                    line_no=line_no,
                    total_price=round(item.quantity * item.unit_price + item.tax_amount - item.discount_amount, 4),
                    **item.model_dump(),
                )
            )
        return built

    @staticmethod
    def _apply_totals(order: PurchaseOrder, items: list[PurchaseOrderItem]) -> None:
        """total = subtotal + tax + shipping - discount"""
        order.subtotal = round(sum(i.quantity * i.unit_price for i in items), 4)
        order.tax_amount = round(sum(i.tax_amount for i in items), 4)
        order.discount_amount = round(sum(i.discount_amount for i in items), 4)
        order.total_amount = round(
            order.subtotal + order.tax_amount + (order.shipping_cost or 0) - order.discount_amount, 4
        )

    # PUBLIC_INTERFACE
    async def create_purchase_order(self, payload: PurchaseOrderCreate) -> PurchaseOrder:
        vendor = self.require(await self.vendors.get(payload.vendor_id), "Vendor not found")
        data = payload.model_dump(exclude={"items"}, exclude_none=True)
        data["currency"] = payload.currency or vendor.currency or "USD"
        order = PurchaseOrder(
            po_number=await self.next_number(PurchaseOrder.po_number, f"PO-{self.month_tag()}-"),
            **data,
        )
        items = self._build_items(order, payload.items)
        self._apply_totals(order, items)
        await self.orders.add(order)
        await self.order_items.add_all(items)
        await self.orders.commit()
        logger.info("Created purchase order %s for vendor %s total=%s", order.po_number, vendor.code, order.total_amount)
        return order

    # PUBLIC_INTERFACE
    async def update_purchase_order(self, order_id: UUID, payload: PurchaseOrderUpdate) -> Optional[PurchaseOrder]:
        order = await self.orders.get(order_id)
        if order is None:
            return None
        if order.status != "DRAFT":
            raise ConflictError("Only draft purchase orders can be updated")
        patch = payload.model_dump(exclude_unset=True, exclude={"items"})
        self.apply_patch(order, patch)
        if payload.items is not None:
            for old in await self.order_items.list_for_order(order.id):
                await self.session.delete(old)
            items = self._build_items(order, payload.items)
            await self.order_items.add_all(items)
        else:
            items = await self.order_items.list_for_order(order.id)
        self._apply_totals(order, items)
        return await self.orders.save(order)

    # PUBLIC_INTERFACE
    async def update_purchase_order_status(
        self, order_id: UUID, status: str, notes: str = "", changed_by: Optional[str] = None
    ) -> PurchaseOrder:
        """
        Move an order to `status` if the transition table allows it.
        Cancelling cancels every item; closing marks outstanding items received.
        """
        order = self.require(await self.orders.get(order_id), "Purchase order not found")
        if status not in PO_STATUS_TRANSITIONS.get(order.status, ()):
            raise ConflictError(f"Invalid status transition from {order.status} to {status}")

        order.approval_workflow = [
            *(order.approval_workflow or []),
            {
                "from_status": order.status,
                "to_status": status,
                "changed_by": changed_by,
                "notes": notes,
                "changed_at": utcnow().isoformat(),
            },
        ]
        order.notes = _append_note(order.notes, notes)
        previous, order.status = order.status, status

        items = await self.order_items.list_for_order(order.id)
        if status == "CANCELLED":
            for item in items:
                item.status = "CANCELLED"
        elif status == "CLOSED":
            for item in items:
                if item.status not in ("RECEIVED", "CANCELLED"):
                    item.status = "RECEIVED"
                    item.received_quantity = item.quantity
        logger.info("Purchase order %s %s -> %s", order.po_number, previous, status)
        return await self.orders.save(order)

    # Receiving

    async def get_receiving_records(
        self,
        *,
        purchase_order_id: Optional[UUID] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[ReceivingRecord]:
        return await self.receipts.list(
            filters={"purchase_order_id": purchase_order_id, "status": status}, search=search, limit=None
        )

    async def get_receiving_record_by_id(self, record_id: UUID) -> Optional[ReceivingRecord]:
        return await self.receipts.get(record_id)

    async def receiving_detail(self, record: ReceivingRecord) -> ReceivingDetail:
        items = await self.receipt_items.list_for_record(record.id)
        return ReceivingDetail(
            **ReceivingRead.model_validate(record).model_dump(),
            items=[ReceivingItemRead.model_validate(i) for i in items],
        )

    @staticmethod
    def _item_status(item: PurchaseOrderItem) -> str:
        if item.received_quantity >= item.quantity:
            return "RECEIVED"
        if item.received_quantity > 0:
            return "PARTIALLY_RECEIVED"
        return "PENDING"

    # PUBLIC_INTERFACE
    async def create_receiving_record(self, payload: ReceivingCreate) -> ReceivingRecord:
        order = self.require(await self.orders.get(payload.purchase_order_id), "Purchase order not found")
        if order.status not in RECEIVABLE_PO_STATUSES:
            raise ConflictError(f"Cannot create receiving record for purchase order with status {order.status}")

        order_items = {i.id: i for i in await self.order_items.list_for_order(order.id)}
        for line in payload.items:
            if line.purchase_order_item_id not in order_items:
                raise NotFoundError(f"Purchase order item with ID {line.purchase_order_item_id} not found")

        record = ReceivingRecord(
            receipt_number=await self.next_number(ReceivingRecord.receipt_number, f"RCV-{self.month_tag()}-"),
            purchase_order_id=order.id,
            received_date=payload.received_date or utcnow(),
            received_by=payload.received_by,
            notes=payload.notes,
        )
        await self.receipts.add(record)
        for line in payload.items:
            item = order_items[line.purchase_order_item_id]
            await self.receipt_items.add(ReceivingItem(receiving_record_id=record.id, **line.model_dump()))
            item.received_quantity = (item.received_quantity or 0) + line.received_quantity
            item.rejected_quantity = (item.rejected_quantity or 0) + line.rejected_quantity
            item.status = "RECEIVED" if item.received_quantity >= item.quantity else "PARTIALLY_RECEIVED"
        await self.receipts.flush()
        await self.update_po_receiving_status(order, list(order_items.values()))
        await self.receipts.commit()
        logger.info("Receipt %s recorded against %s", record.receipt_number, order.po_number)
        return record

    # PUBLIC_INTERFACE
    async def update_receiving_record_status(self, record_id: UUID, status: str, notes: str = "") -> ReceivingRecord:
        """
        INSPECTED passes every item still pending inspection; REJECTED takes the
        receipt's quantities back off the order items and re-runs the rollup.
        A rejected receipt is final.
        """
        record = self.require(await self.receipts.get(record_id), "Receiving record not found")
        self.check_choice(status, RECEIVING_STATUSES, "receiving status")
        if record.status == "REJECTED":
            raise ConflictError("Receiving record has already been rejected")
        record.status = status
        record.notes = _append_note(record.notes, notes)
        lines = await self.receipt_items.list_for_record(record.id)

        if status == "INSPECTED":
            for line in lines:
                if line.inspection_status == "PENDING":
                    line.inspection_status = "PASSED"
        elif status == "REJECTED":
            order = self.require(await self.orders.get(record.purchase_order_id), "Purchase order not found")
            items = {i.id: i for i in await self.order_items.list_for_order(order.id)}
            for line in lines:
                item = items.get(line.purchase_order_item_id)
                if item is None:
                    continue
                item.received_quantity = max(0.0, item.received_quantity - line.received_quantity)
                item.rejected_quantity = (item.rejected_quantity or 0) + line.received_quantity
                item.status = self._item_status(item)
            await self.update_po_receiving_status(order, list(items.values()))
        return await self.receipts.save(record)

    # PUBLIC_INTERFACE
    async def update_po_receiving_status(
        self, order: PurchaseOrder, items: Optional[list[PurchaseOrderItem]] = None
    ) -> PurchaseOrder:
        """
        Recompute `receiving_status` from the order items and move the order to
        RECEIVED or PARTIALLY_RECEIVED accordingly. Does not commit.
        """
        if items is None:
            items = await self.order_items.list_for_order(order.id)
        active = [i for i in items if i.status != "CANCELLED"]
        received = sum(1 for i in active if i.status == "RECEIVED")
        partial = sum(1 for i in active if i.status == "PARTIALLY_RECEIVED")
        fully = bool(active) and received == len(active)
        partially = not fully and (partial > 0 or received > 0)

        if fully and order.status != "CLOSED":
            order.status = "RECEIVED"
        elif partially:
            order.status = "PARTIALLY_RECEIVED"

        latest = await self.receipts.latest_for_order(order.id)
        order.receiving_status = {
            "fully_received": fully,
            "partially_received": partially,
            "received_items": received,
            "total_items": len(active),
            "last_receipt_date": latest.received_date.isoformat() if latest else None,
        }
        return order

    async def purchase_order_report(self, status: Optional[str] = None) -> pd.DataFrame:
        orders = await self.get_purchase_orders(status=status, limit=None)
        vendors = {v.id: v for v in await self.vendors.list(limit=None)}
        columns = [
            "po_number", "vendor", "status", "order_date", "expected_delivery_date",
            "currency", "subtotal", "tax_amount", "discount_amount", "shipping_cost", "total_amount",
        ]
        rows = [
            {
                "po_number": o.po_number,
                "vendor": vendors[o.vendor_id].name if o.vendor_id in vendors else "",
                "status": o.status,
                "order_date": o.order_date.isoformat(),
                "expected_delivery_date": o.expected_delivery_date.isoformat() if o.expected_delivery_date else "",
                "currency": o.currency,
                "subtotal": o.subtotal,
                "tax_amount": o.tax_amount,
                "discount_amount": o.discount_amount,
                "shipping_cost": o.shipping_cost,
                "total_amount": o.total_amount,
            }
            for o in orders
        ]
        return pd.DataFrame(rows, columns=columns)

    # PUBLIC_INTERFACE
    async def get_dashboard(self, today: Optional[date] = None) -> PurchasingDashboard:
        """Order counts by status, committed spend by vendor and month, open deliveries and approvals."""
        today = today or date.today()
        orders = await self.orders.list(limit=None)
        vendors = {v.id: v.name for v in await self.vendors.list(limit=None)}
        orders_by_id = {o.id: o for o in orders}
        counts = Counter(o.status for o in orders)
        committed = [o for o in orders if o.status not in UNCOMMITTED_PO_STATUSES]

        by_vendor: dict[UUID, float] = defaultdict(float)
        for o in committed:
            by_vendor[o.vendor_id] += o.total_amount or 0
        top_vendors = sorted(by_vendor.items(), key=lambda kv: kv[1], reverse=True)[:5]

        window_start = today.replace(day=1)
        for _ in range(5):
            window_start = (window_start - timedelta(days=1)).replace(day=1)
        by_month: dict[str, float] = defaultdict(float)
        for o in committed:
            if o.order_date >= window_start:
                by_month[o.order_date.strftime("%Y-%m")] += o.total_amount or 0

        def summary(o: PurchaseOrder) -> OrderSummary:
            return OrderSummary(
                id=o.id,
                po_number=o.po_number,
                vendor_name=vendors.get(o.vendor_id, ""),
                status=o.status,
                expected_delivery_date=o.expected_delivery_date,
                total_amount=o.total_amount,
            )

        deliveries = sorted(
            (
                o for o in orders
                if o.status in RECEIVABLE_PO_STATUSES and o.expected_delivery_date and o.expected_delivery_date >= today
            ),
            key=lambda o: o.expected_delivery_date,
        )[:10]
        approvals = [o for o in orders if o.status == "PENDING_APPROVAL"][:10]
        receipts = await self.receipts.list(limit=5)

        return PurchasingDashboard(
            total_orders=len(orders),
            orders_by_status={s: counts.get(s, 0) for s in PO_STATUS_TRANSITIONS},
            committed_spend=round(sum(o.total_amount or 0 for o in committed), 2),
            top_vendors=[
                VendorSpend(vendor_id=vid, vendor_name=vendors.get(vid, ""), amount=round(amount, 2))
                for vid, amount in top_vendors
            ],
            spend_by_month={k: round(v, 2) for k, v in sorted(by_month.items())},
            pending_deliveries=[summary(o) for o in deliveries],
            pending_approvals=[summary(o) for o in approvals],
            recent_receipts=[
                ReceiptSummary(
                    id=r.id,
                    receipt_number=r.receipt_number,
                    po_number=orders_by_id[r.purchase_order_id].po_number if r.purchase_order_id in orders_by_id else "",
                    vendor_name=(
                        vendors.get(orders_by_id[r.purchase_order_id].vendor_id, "")
                        if r.purchase_order_id in orders_by_id
                        else ""
                    ),
                    received_date=r.received_date,
                    status=r.status,
                )
                for r in receipts
            ],
        )
