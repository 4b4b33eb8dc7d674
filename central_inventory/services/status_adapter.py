"""Translation between canonical document statuses and the upstream vocabulary.

Each canonical enum maps 1:1 onto an external enum on the way out. The inbound
tables also accept a few legacy aliases. All tables are checked when the module
is imported, so a missing mapping fails at startup instead of mid-request.

The views built here always recompute line totals and ``total_amount`` from
unit price and quantity; an upstream ``totalAmount`` is never trusted.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from central_inventory.exceptions import ValidationError
from central_inventory.models import (
    PartsIssue,
    PartsIssueStatus,
    PurchaseOrder,
    PurchaseOrderPriority,
    PurchaseOrderStatus,
)
from central_inventory.schemas import (
    PartsIssueItemOut,
    PartsIssueOut,
    PurchaseOrderItemOut,
    PurchaseOrderOut,
)


class ExternalPurchaseOrderStatus(str, Enum):
    PENDING_APPROVAL = 'PENDING_APPROVAL'
    APPROVED = 'APPROVED'
    CANCELLED = 'CANCELLED'
    PARTIALLY_ISSUED = 'PARTIALLY_ISSUED'
    COMPLETED = 'COMPLETED'


class ExternalPartsIssueStatus(str, Enum):
    PENDING = 'PENDING'
    PENDING_APPROVAL = 'PENDING_APPROVAL'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'
    DISPATCHED = 'DISPATCHED'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'


PURCHASE_ORDER_OUTBOUND: dict[PurchaseOrderStatus, ExternalPurchaseOrderStatus] = {
    PurchaseOrderStatus.PENDING: ExternalPurchaseOrderStatus.PENDING_APPROVAL,
    PurchaseOrderStatus.APPROVED: ExternalPurchaseOrderStatus.APPROVED,
    PurchaseOrderStatus.REJECTED: ExternalPurchaseOrderStatus.CANCELLED,
    PurchaseOrderStatus.PARTIALLY_FULFILLED: ExternalPurchaseOrderStatus.PARTIALLY_ISSUED,
    PurchaseOrderStatus.FULFILLED: ExternalPurchaseOrderStatus.COMPLETED,
}

PURCHASE_ORDER_INBOUND: dict[str, PurchaseOrderStatus] = {
    **{external.value: canonical for canonical, external in PURCHASE_ORDER_OUTBOUND.items()},
    'DRAFT': PurchaseOrderStatus.PENDING,
    'ISSUED': PurchaseOrderStatus.FULFILLED,
    'REJECTED': PurchaseOrderStatus.REJECTED,
}

PARTS_ISSUE_OUTBOUND: dict[PartsIssueStatus, ExternalPartsIssueStatus] = {
    PartsIssueStatus.PENDING: ExternalPartsIssueStatus.PENDING,
    PartsIssueStatus.PENDING_ADMIN_APPROVAL: ExternalPartsIssueStatus.PENDING_APPROVAL,
    PartsIssueStatus.ADMIN_APPROVED: ExternalPartsIssueStatus.APPROVED,
    PartsIssueStatus.ADMIN_REJECTED: ExternalPartsIssueStatus.REJECTED,
    PartsIssueStatus.ISSUED: ExternalPartsIssueStatus.DISPATCHED,
    PartsIssueStatus.RECEIVED: ExternalPartsIssueStatus.COMPLETED,
    PartsIssueStatus.CANCELLED: ExternalPartsIssueStatus.CANCELLED,
}

PARTS_ISSUE_INBOUND: dict[str, PartsIssueStatus] = {
    **{external.value: canonical for canonical, external in PARTS_ISSUE_OUTBOUND.items()},
    'CIM_APPROVED': PartsIssueStatus.PENDING_ADMIN_APPROVAL,
    'ADMIN_APPROVED': PartsIssueStatus.ADMIN_APPROVED,
}


def validate_tables(
    canonical: type[Enum],
    external: type[Enum],
    outbound: dict,
    inbound: dict[str, Enum],
) -> None:
    unmapped = [member.name for member in canonical if member not in outbound]
    if unmapped:
        raise RuntimeError(f'{canonical.__name__} has no external mapping for {", ".join(unmapped)}')
    targets = list(outbound.values())
    if len(set(targets)) != len(targets):
        raise RuntimeError(f'{canonical.__name__} outbound mapping is not one-to-one')
    unused = [member.name for member in external if member not in targets]
    if unused:
        raise RuntimeError(f'{external.__name__} members never produced: {", ".join(unused)}')
    for member, target in outbound.items():
        if inbound.get(target.value) != member:
            raise RuntimeError(f'{canonical.__name__}.{member.name} does not round-trip through {target.value}')


validate_tables(PurchaseOrderStatus, ExternalPurchaseOrderStatus, PURCHASE_ORDER_OUTBOUND, PURCHASE_ORDER_INBOUND)
validate_tables(PartsIssueStatus, ExternalPartsIssueStatus, PARTS_ISSUE_OUTBOUND, PARTS_ISSUE_INBOUND)


def to_external_purchase_order_status(status: PurchaseOrderStatus) -> ExternalPurchaseOrderStatus:
    return PURCHASE_ORDER_OUTBOUND[status]


def to_external_parts_issue_status(status: PartsIssueStatus) -> ExternalPartsIssueStatus:
    return PARTS_ISSUE_OUTBOUND[status]


def _normalize(value: Any) -> str:
    raw = value.value if isinstance(value, Enum) else value
    return str(raw or '').strip().upper().replace('-', '_').replace(' ', '_')


def from_external_purchase_order_status(value: Any) -> PurchaseOrderStatus:
    key = _normalize(value)
    if key not in PURCHASE_ORDER_INBOUND:
        raise ValidationError(f'Unknown purchase order status: {value}')
    return PURCHASE_ORDER_INBOUND[key]


def from_external_parts_issue_status(value: Any) -> PartsIssueStatus:
    key = _normalize(value)
    if key not in PARTS_ISSUE_INBOUND:
        raise ValidationError(f'Unknown parts issue status: {value}')
    return PARTS_ISSUE_INBOUND[key]


def parse_purchase_order_status(value: Any) -> PurchaseOrderStatus:
    """Accept either the canonical or the external spelling."""
    key = _normalize(value)
    if key in PurchaseOrderStatus.__members__:
        return PurchaseOrderStatus[key]
    return from_external_purchase_order_status(value)


def parse_parts_issue_status(value: Any) -> PartsIssueStatus:
    """Accept either the canonical or the external spelling."""
    key = _normalize(value)
    if key in PartsIssueStatus.__members__:
        return PartsIssueStatus[key]
    return from_external_parts_issue_status(value)


def _decimal(value: Any) -> Decimal:
    if value is None or value == '':
        return Decimal('0')
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValidationError(f'Invalid amount: {value}') from exc


def _int(value: Any) -> int | None:
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f'Invalid quantity: {value}') from exc


def _identifier(value: Any) -> int | str | None:
    # Upstream ids are opaque strings; local ids are integers.
    if isinstance(value, bool) or not isinstance(value, (int, str)) or value == '':
        return None
    return value


def _actor_name(value: Any) -> str | None:
    if isinstance(value, dict):
        return value.get('name')
    return value


def _item_part_id(item: dict[str, Any]) -> str:
    return item.get('centralInventoryPartId') or item.get('partId') or item.get('fromStock') or ''


def _item_unit_price(item: dict[str, Any]) -> Decimal:
    part = item.get('centralInventoryPart') or {}
    return _decimal(part.get('unitPrice') if part.get('unitPrice') is not None else item.get('unitPrice'))


def _items(payload: dict[str, Any]) -> list[dict[str, Any]]:
    items = payload.get('items')
    if not isinstance(items, list):
        return []
    return [row for row in items if isinstance(row, dict)]


def inbound_purchase_order(payload: dict[str, Any]) -> PurchaseOrderOut:
    status = from_external_purchase_order_status(payload.get('status'))
    items = []
    for raw in _items(payload):
        requested = _int(raw.get('requestedQty')) or _int(raw.get('quantity')) or 0
        unit_price = _item_unit_price(raw)
        items.append(
            PurchaseOrderItemOut(
                id=_identifier(raw.get('id')),
                part_id=_item_part_id(raw),
                requested_qty=requested,
                approved_qty=_int(raw.get('approvedQty')),
                issued_qty=_int(raw.get('issuedQty')) or 0,
                unit_price=unit_price,
                total_price=unit_price * requested,
                notes=raw.get('notes'),
            )
        )
    priority_raw = _normalize(payload.get('priority')) or PurchaseOrderPriority.NORMAL.value
    priority = PurchaseOrderPriority.__members__.get(priority_raw, PurchaseOrderPriority.NORMAL)
    return PurchaseOrderOut(
        id=_identifier(payload.get('id')),
        po_number=payload.get('poNumber') or '',
        service_center_id=payload.get('serviceCenterId') or '',
        requested_by=_actor_name(payload.get('requestedBy')),
        priority=priority,
        status=status,
        external_status=to_external_purchase_order_status(status).value,
        approved_by=_actor_name(payload.get('approvedBy')),
        approved_at=payload.get('approvedAt'),
        rejection_reason=payload.get('rejectionReason'),
        notes=payload.get('notes') or payload.get('orderNotes'),
        job_card_id=payload.get('jobCardId'),
        vehicle_number=payload.get('vehicleNumber'),
        created_at=payload.get('createdAt'),
        items=items,
        total_amount=sum((item.total_price for item in items), Decimal('0')),
    )


def inbound_parts_issue(payload: dict[str, Any]) -> PartsIssueOut:
    status = from_external_parts_issue_status(payload.get('status'))
    items = []
    for raw in _items(payload):
        requested = _int(raw.get('requestedQty')) or _int(raw.get('quantity')) or 0
        approved = _int(raw.get('approvedQty'))
        unit_price = _item_unit_price(raw)
        effective = approved if approved is not None else requested
        items.append(
            PartsIssueItemOut(
                id=_identifier(raw.get('id')),
                part_id=_item_part_id(raw),
                requested_qty=requested,
                approved_qty=approved,
                issued_qty=_int(raw.get('issuedQty')) or 0,
                received_qty=_int(raw.get('receivedQty')),
                unit_price=unit_price,
                total_price=unit_price * effective,
            )
        )
    return PartsIssueOut(
        id=_identifier(payload.get('id')),
        issue_number=payload.get('issueNumber') or '',
        service_center_id=payload.get('serviceCenterId') or '',
        purchase_order_id=_identifier(payload.get('purchaseOrderId')),
        status=status,
        external_status=to_external_parts_issue_status(status).value,
        issued_by=_actor_name(payload.get('issuedBy')),
        approved_by=_actor_name(payload.get('approvedBy')),
        approved_at=payload.get('approvedAt'),
        rejection_reason=payload.get('rejectionReason'),
        transporter=payload.get('transporter'),
        tracking_number=payload.get('trackingNumber'),
        expected_delivery=payload.get('expectedDelivery'),
        notes=payload.get('notes'),
        created_at=payload.get('createdAt'),
        items=items,
        total_amount=sum((item.total_price for item in items), Decimal('0')),
    )


def purchase_order_view(po: PurchaseOrder) -> PurchaseOrderOut:
    items = [
        PurchaseOrderItemOut(
            id=item.id,
            part_id=item.part_id,
            requested_qty=item.requested_qty,
            approved_qty=item.approved_qty,
            issued_qty=item.issued_qty,
            unit_price=item.unit_price,
            total_price=item.total_price,
            notes=item.notes,
        )
        for item in po.items
    ]
    return PurchaseOrderOut(
        id=po.id,
        po_number=po.po_number,
        service_center_id=po.service_center_id,
        requested_by=po.requested_by,
        priority=po.priority,
        status=po.status,
        external_status=to_external_purchase_order_status(po.status).value,
        approved_by=po.approved_by,
        approved_at=po.approved_at,
        rejected_by=po.rejected_by,
        rejected_at=po.rejected_at,
        rejection_reason=po.rejection_reason,
        fulfilled_at=po.fulfilled_at,
        notes=po.notes,
        job_card_id=po.job_card_id,
        vehicle_number=po.vehicle_number,
        created_at=po.created_at,
        items=items,
        total_amount=sum((item.total_price for item in items), Decimal('0')),
    )


def parts_issue_view(issue: PartsIssue) -> PartsIssueOut:
    items = [
        PartsIssueItemOut(
            id=item.id,
            part_id=item.part_id,
            requested_qty=item.requested_qty,
            approved_qty=item.approved_qty,
            issued_qty=item.issued_qty,
            received_qty=item.received_qty,
            unit_price=item.unit_price,
            total_price=item.total_price,
        )
        for item in issue.items
    ]
    return PartsIssueOut(
        id=issue.id,
        issue_number=issue.issue_number,
        service_center_id=issue.service_center_id,
        purchase_order_id=issue.purchase_order_id,
        status=issue.status,
        external_status=to_external_parts_issue_status(issue.status).value,
        issued_by=issue.issued_by,
        sent_to_admin_at=issue.sent_to_admin_at,
        approved_by=issue.approved_by,
        approved_at=issue.approved_at,
        rejected_by=issue.rejected_by,
        rejection_reason=issue.rejection_reason,
        dispatched_by=issue.dispatched_by,
        dispatched_at=issue.dispatched_at,
        transporter=issue.transporter,
        tracking_number=issue.tracking_number,
        expected_delivery=issue.expected_delivery,
        received_by=issue.received_by,
        received_at=issue.received_at,
        cancelled_by=issue.cancelled_by,
        cancellation_reason=issue.cancellation_reason,
        notes=issue.notes,
        created_at=issue.created_at,
        items=items,
        total_amount=sum((item.total_price for item in items), Decimal('0')),
    )
