from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from central_inventory.models import (
    AdjustmentKind,
    PartsIssueStatus,
    PurchaseOrderPriority,
    PurchaseOrderStatus,
    StockStatus,
)


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Requests


class OrderLineIn(ApiModel):
    part_id: str
    quantity: int = Field(..., gt=0)
    notes: str | None = None


class PurchaseOrderCreate(ApiModel):
    service_center_id: str
    items: list[OrderLineIn] = Field(..., min_length=1)
    priority: PurchaseOrderPriority = PurchaseOrderPriority.NORMAL
    notes: str | None = None
    job_card_id: str | None = None
    vehicle_number: str | None = None


class ApprovedItemIn(ApiModel):
    item_id: int
    approved_qty: int = Field(..., ge=0)


class PurchaseOrderApprove(ApiModel):
    items: list[ApprovedItemIn] = Field(default_factory=list)


class ReasonIn(ApiModel):
    reason: str = Field(..., min_length=1)


class IssueLineIn(ApiModel):
    part_id: str
    quantity: int = Field(..., gt=0)


class TransportIn(ApiModel):
    transporter: str | None = None
    tracking_number: str | None = None
    expected_delivery: str | None = None


class PartsIssueCreate(TransportIn):
    service_center_id: str
    purchase_order_id: int | None = None
    items: list[IssueLineIn] = Field(..., min_length=1)
    notes: str | None = None
    send_to_admin: bool = True


class ItemQuantityIn(ApiModel):
    item_id: int
    quantity: int = Field(..., ge=0)


class ItemQuantitiesIn(ApiModel):
    items: list[ItemQuantityIn] = Field(default_factory=list)


class StockAdjustIn(ApiModel):
    kind: AdjustmentKind
    quantity: int = Field(..., ge=0)
    reason: str = Field(..., min_length=1)
    reference_number: str | None = None
    notes: str | None = None
    to_location: str | None = None


# Responses


class PartOut(ApiModel):
    id: str
    name: str
    part_number: str
    sku: str | None = None
    category: str | None = None
    unit_price: Decimal


class StockEntryOut(ApiModel):
    id: int
    part_id: str
    part: PartOut | None = None
    quantity: int
    min_threshold: int
    max_threshold: int
    location: str | None = None
    status: StockStatus
    updated_by: str | None = None
    updated_at: datetime | None = None


class StockAdjustmentOut(ApiModel):
    id: int
    stock_entry_id: int
    part_id: str
    kind: AdjustmentKind
    quantity_delta: int
    quantity_before: int
    quantity_after: int
    actor: str
    reason: str
    reference_number: str | None = None
    notes: str | None = None
    created_at: datetime | None = None


class PurchaseOrderItemOut(ApiModel):
    id: int | str | None = None
    part_id: str
    requested_qty: int
    approved_qty: int | None = None
    issued_qty: int = 0
    unit_price: Decimal
    total_price: Decimal
    notes: str | None = None


class PurchaseOrderOut(ApiModel):
    id: int | str | None = None
    po_number: str
    service_center_id: str
    requested_by: str | None = None
    priority: PurchaseOrderPriority = PurchaseOrderPriority.NORMAL
    status: PurchaseOrderStatus
    external_status: str
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_by: str | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    fulfilled_at: datetime | None = None
    notes: str | None = None
    job_card_id: str | None = None
    vehicle_number: str | None = None
    created_at: datetime | None = None
    items: list[PurchaseOrderItemOut]
    total_amount: Decimal


class PartsIssueItemOut(ApiModel):
    id: int | str | None = None
    part_id: str
    requested_qty: int
    approved_qty: int | None = None
    issued_qty: int = 0
    received_qty: int | None = None
    unit_price: Decimal
    total_price: Decimal


class PartsIssueOut(ApiModel):
    id: int | str | None = None
    issue_number: str
    service_center_id: str
    purchase_order_id: int | str | None = None
    status: PartsIssueStatus
    external_status: str
    issued_by: str | None = None
    sent_to_admin_at: datetime | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_by: str | None = None
    rejection_reason: str | None = None
    dispatched_by: str | None = None
    dispatched_at: datetime | None = None
    transporter: str | None = None
    tracking_number: str | None = None
    expected_delivery: str | None = None
    received_by: str | None = None
    received_at: datetime | None = None
    cancelled_by: str | None = None
    cancellation_reason: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    items: list[PartsIssueItemOut]
    total_amount: Decimal


class StatsOut(ApiModel):
    total_parts: int
    total_stock_value: Decimal
    low_stock_count: int
    out_of_stock_count: int
    pending_purchase_orders: int
    approved_purchase_orders: int
    issues_awaiting_approval: int
    issues_in_transit: int
