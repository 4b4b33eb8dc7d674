from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from central_inventory.config import settings
from central_inventory.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    QuantityExceedsRequestError,
    ValidationError,
)
from central_inventory.models import (
    PartsIssue,
    PartsIssueItem,
    PartsIssueStatus,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderPriority,
    PurchaseOrderStatus,
)
from central_inventory.services.catalog_service import get_parts
from central_inventory.services.sequence_service import next_document_number

logger = logging.getLogger(__name__)

DISPATCHED_ISSUE_STATUSES = (PartsIssueStatus.ISSUED, PartsIssueStatus.RECEIVED)
DEAD_ISSUE_STATUSES = (PartsIssueStatus.ADMIN_REJECTED, PartsIssueStatus.CANCELLED)
ISSUABLE_STATUSES = (PurchaseOrderStatus.APPROVED, PurchaseOrderStatus.PARTIALLY_FULFILLED)


@dataclass(frozen=True)
class OrderLineInput:
    part_id: str
    quantity: int
    notes: str | None = None


@dataclass(frozen=True)
class ApprovedQuantity:
    item_id: int
    approved_qty: int


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def get_purchase_order(db: Session, purchase_order_id: int) -> PurchaseOrder:
    po = db.execute(select(PurchaseOrder).where(PurchaseOrder.id == purchase_order_id)).scalar_one_or_none()
    if po is None:
        raise NotFoundError('PurchaseOrder', purchase_order_id)
    return po


def lock_purchase_order(db: Session, purchase_order_id: int) -> PurchaseOrder:
    po = db.execute(
        select(PurchaseOrder)
        .where(PurchaseOrder.id == purchase_order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if po is None:
        raise NotFoundError('PurchaseOrder', purchase_order_id)
    return po


def list_purchase_orders(
    db: Session,
    *,
    status: PurchaseOrderStatus | None = None,
    service_center_id: str | None = None,
    limit: int = 100,
) -> list[PurchaseOrder]:
    query = select(PurchaseOrder).order_by(PurchaseOrder.id.desc()).limit(limit)
    if status is not None:
        query = query.where(PurchaseOrder.status == status)
    if service_center_id:
        query = query.where(PurchaseOrder.service_center_id == service_center_id)
    return db.execute(query).scalars().all()


def create_purchase_order(
    db: Session,
    *,
    service_center_id: str,
    items: list[OrderLineInput],
    requested_by: str,
    priority: PurchaseOrderPriority = PurchaseOrderPriority.NORMAL,
    notes: str | None = None,
    job_card_id: str | None = None,
    vehicle_number: str | None = None,
) -> PurchaseOrder:
    if not (service_center_id or '').strip():
        raise ValidationError('Service center is required')
    if not items:
        raise ValidationError('Purchase order needs at least one item')
    for line in items:
        if line.quantity <= 0:
            raise ValidationError(f'Requested quantity must be greater than zero for part {line.part_id}')

    parts = get_parts(db, [line.part_id for line in items])
    po = PurchaseOrder(
        po_number=next_document_number(db, prefix=settings.purchase_order_prefix),
        service_center_id=service_center_id.strip(),
        requested_by=requested_by,
        priority=priority,
        status=PurchaseOrderStatus.PENDING,
        notes=notes,
        job_card_id=job_card_id,
        vehicle_number=vehicle_number,
    )
    for line in items:
        po.items.append(
            PurchaseOrderItem(
                part_id=line.part_id,
                requested_qty=line.quantity,
                issued_qty=0,
                unit_price=parts[line.part_id].unit_price,
                notes=line.notes,
            )
        )
    db.add(po)
    db.flush()
    logger.info(
        'purchase_order_created',
        extra={'po_number': po.po_number, 'service_center_id': po.service_center_id, 'items': len(po.items)},
    )
    return po


def _require_pending(po: PurchaseOrder, action: str) -> None:
    if po.status != PurchaseOrderStatus.PENDING:
        raise InvalidTransitionError('purchase order', po.status.value, action)


def approve_purchase_order(
    db: Session,
    *,
    purchase_order_id: int,
    approved_items: list[ApprovedQuantity] | None,
    approver: str,
) -> PurchaseOrder:
    po = lock_purchase_order(db, purchase_order_id)
    _require_pending(po, 'approve')

    items_by_id = {item.id: item for item in po.items}
    overrides: dict[int, int] = {}
    for approval in approved_items or []:
        item = items_by_id.get(approval.item_id)
        if item is None:
            raise ValidationError(f'Item {approval.item_id} does not belong to {po.po_number}')
        if approval.approved_qty < 0:
            raise ValidationError('Approved quantity cannot be negative')
        if approval.approved_qty > item.requested_qty:
            raise QuantityExceedsRequestError(item.id, approval.approved_qty, item.requested_qty)
        overrides[item.id] = approval.approved_qty

    for item in po.items:
        item.approved_qty = overrides.get(item.id, item.requested_qty)

    now = _now()
    po.status = PurchaseOrderStatus.APPROVED
    po.approved_by = approver
    po.approved_at = now
    po.updated_at = now
    db.flush()
    logger.info('purchase_order_approved', extra={'po_number': po.po_number, 'approver': approver})
    return po


def reject_purchase_order(db: Session, *, purchase_order_id: int, reason: str, rejecter: str) -> PurchaseOrder:
    clean_reason = (reason or '').strip()
    if not clean_reason:
        raise ValidationError('Rejection reason is required')
    po = lock_purchase_order(db, purchase_order_id)
    _require_pending(po, 'reject')

    now = _now()
    po.status = PurchaseOrderStatus.REJECTED
    po.rejected_by = rejecter
    po.rejected_at = now
    po.rejection_reason = clean_reason
    po.updated_at = now
    db.flush()
    logger.info('purchase_order_rejected', extra={'po_number': po.po_number, 'rejecter': rejecter})
    return po


def dispatched_quantities(db: Session, purchase_order_id: int) -> dict[str, int]:
    rows = db.execute(
        select(PartsIssueItem.part_id, func.coalesce(func.sum(PartsIssueItem.issued_qty), 0))
        .join(PartsIssue, PartsIssue.id == PartsIssueItem.parts_issue_id)
        .where(
            PartsIssue.purchase_order_id == purchase_order_id,
            PartsIssue.status.in_(DISPATCHED_ISSUE_STATUSES),
        )
        .group_by(PartsIssueItem.part_id)
    ).all()
    return {part_id: int(total) for part_id, total in rows}


def committed_quantities(db: Session, purchase_order_id: int, *, exclude_issue_id: int | None = None) -> dict[str, int]:
    """Quantity tied up in every live issue against the order, dispatched or not."""
    query = (
        select(PartsIssueItem)
        .join(PartsIssue, PartsIssue.id == PartsIssueItem.parts_issue_id)
        .where(
            PartsIssue.purchase_order_id == purchase_order_id,
            PartsIssue.status.not_in(DEAD_ISSUE_STATUSES),
        )
    )
    if exclude_issue_id is not None:
        query = query.where(PartsIssue.id != exclude_issue_id)
    rows = db.execute(query).scalars().all()
    totals: dict[str, int] = {}
    for item in rows:
        qty = item.issued_qty if item.parts_issue.status in DISPATCHED_ISSUE_STATUSES else item.quantity
        totals[item.part_id] = totals.get(item.part_id, 0) + qty
    return totals


def approved_quantities(po: PurchaseOrder) -> dict[str, int]:
    totals: dict[str, int] = {}
    for item in po.items:
        totals[item.part_id] = totals.get(item.part_id, 0) + (item.approved_qty or 0)
    return totals


def remaining_quantities(
    db: Session, po: PurchaseOrder, *, exclude_issue_id: int | None = None
) -> dict[str, int]:
    committed = committed_quantities(db, po.id, exclude_issue_id=exclude_issue_id)
    return {
        part_id: max(approved - committed.get(part_id, 0), 0)
        for part_id, approved in approved_quantities(po).items()
    }


def require_issuable(po: PurchaseOrder) -> None:
    if po.status not in ISSUABLE_STATUSES:
        raise InvalidTransitionError('purchase order', po.status.value, 'issue parts against')


def mark_fulfillment(db: Session, *, purchase_order_id: int) -> PurchaseOrder:
    po = lock_purchase_order(db, purchase_order_id)
    if po.status not in ISSUABLE_STATUSES + (PurchaseOrderStatus.FULFILLED,):
        raise InvalidTransitionError('purchase order', po.status.value, 'record fulfillment for')

    # Issued totals are rebuilt from every dispatched issue, never accumulated.
    remaining_by_part = dispatched_quantities(db, po.id)
    for item in po.items:
        approved = item.approved_qty or 0
        available = remaining_by_part.get(item.part_id, 0)
        item.issued_qty = min(available, approved)
        remaining_by_part[item.part_id] = available - item.issued_qty

    now = _now()
    if all(item.issued_qty == (item.approved_qty or 0) for item in po.items):
        po.status = PurchaseOrderStatus.FULFILLED
        po.fulfilled_at = now
    else:
        po.status = PurchaseOrderStatus.PARTIALLY_FULFILLED
    po.updated_at = now
    db.flush()
    logger.info('purchase_order_fulfillment_marked', extra={'po_number': po.po_number, 'status': po.status.value})
    return po
