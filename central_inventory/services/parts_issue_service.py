"""Parts Issues: central-warehouse supply documents sent to service centers.

Lifecycle::

    PENDING -> PENDING_ADMIN_APPROVAL -> ADMIN_APPROVED -> ISSUED -> RECEIVED
                                     \\-> ADMIN_REJECTED
    (PENDING | PENDING_ADMIN_APPROVAL | ADMIN_APPROVED) -> CANCELLED

Only dispatch touches the stock ledger, and it does so all-or-nothing: every
stock row is locked and checked before the first debit is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from central_inventory.config import settings
from central_inventory.exceptions import (
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    QuantityExceedsRequestError,
    ValidationError,
)
from central_inventory.models import AdjustmentKind, PartsIssue, PartsIssueItem, PartsIssueStatus
from central_inventory.services import adjustment_service, purchase_order_service, stock_ledger_service
from central_inventory.services.catalog_service import get_parts
from central_inventory.services.sequence_service import next_document_number

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = (
    PartsIssueStatus.PENDING,
    PartsIssueStatus.PENDING_ADMIN_APPROVAL,
    PartsIssueStatus.ADMIN_APPROVED,
)


@dataclass(frozen=True)
class IssueLineInput:
    part_id: str
    quantity: int


@dataclass(frozen=True)
class ItemQuantity:
    item_id: int
    quantity: int


@dataclass(frozen=True)
class TransportDetails:
    transporter: str | None = None
    tracking_number: str | None = None
    expected_delivery: str | None = None


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _require_status(issue: PartsIssue, expected: PartsIssueStatus | tuple[PartsIssueStatus, ...], action: str) -> None:
    allowed = expected if isinstance(expected, tuple) else (expected,)
    if issue.status not in allowed:
        raise InvalidTransitionError('parts issue', issue.status.value, action)


def _require_reason(reason: str, label: str) -> str:
    clean = (reason or '').strip()
    if not clean:
        raise ValidationError(f'{label} reason is required')
    return clean


def _quantities_by_item(issue: PartsIssue, quantities: list[ItemQuantity] | None) -> dict[int, int]:
    items_by_id = {item.id: item for item in issue.items}
    resolved: dict[int, int] = {}
    for row in quantities or []:
        if row.item_id not in items_by_id:
            raise ValidationError(f'Item {row.item_id} does not belong to {issue.issue_number}')
        if row.quantity < 0:
            raise ValidationError('Quantity cannot be negative')
        resolved[row.item_id] = row.quantity
    return resolved


def get_parts_issue(db: Session, parts_issue_id: int) -> PartsIssue:
    issue = db.execute(select(PartsIssue).where(PartsIssue.id == parts_issue_id)).scalar_one_or_none()
    if issue is None:
        raise NotFoundError('PartsIssue', parts_issue_id)
    return issue


def lock_parts_issue(db: Session, parts_issue_id: int) -> PartsIssue:
    issue = db.execute(
        select(PartsIssue)
        .where(PartsIssue.id == parts_issue_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if issue is None:
        raise NotFoundError('PartsIssue', parts_issue_id)
    return issue


def list_parts_issues(
    db: Session,
    *,
    status: PartsIssueStatus | None = None,
    service_center_id: str | None = None,
    purchase_order_id: int | None = None,
    limit: int = 100,
) -> list[PartsIssue]:
    query = select(PartsIssue).order_by(PartsIssue.id.desc()).limit(limit)
    if status is not None:
        query = query.where(PartsIssue.status == status)
    if service_center_id:
        query = query.where(PartsIssue.service_center_id == service_center_id)
    if purchase_order_id is not None:
        query = query.where(PartsIssue.purchase_order_id == purchase_order_id)
    return db.execute(query).scalars().all()


def _check_against_purchase_order(
    db: Session,
    *,
    purchase_order_id: int,
    service_center_id: str,
    requested_by_part: dict[str, int],
) -> None:
    po = purchase_order_service.lock_purchase_order(db, purchase_order_id)
    purchase_order_service.require_issuable(po)
    if po.service_center_id != service_center_id:
        raise ValidationError(f'{po.po_number} belongs to service center {po.service_center_id}')

    remaining = purchase_order_service.remaining_quantities(db, po)
    for part_id, qty in requested_by_part.items():
        if part_id not in remaining:
            raise ValidationError(f'Part {part_id} is not on {po.po_number}')
        if qty > remaining[part_id]:
            raise QuantityExceedsRequestError(part_id, qty, remaining[part_id])


def create_parts_issue(
    db: Session,
    *,
    service_center_id: str,
    items: list[IssueLineInput],
    issued_by: str,
    purchase_order_id: int | None = None,
    notes: str | None = None,
    transport: TransportDetails | None = None,
    send_to_admin: bool = True,
) -> PartsIssue:
    clean_center = (service_center_id or '').strip()
    if not clean_center:
        raise ValidationError('Service center is required')
    if not items:
        raise ValidationError('Parts issue needs at least one item')

    requested_by_part: dict[str, int] = {}
    for line in items:
        if line.quantity <= 0:
            raise ValidationError(f'Quantity must be greater than zero for part {line.part_id}')
        requested_by_part[line.part_id] = requested_by_part.get(line.part_id, 0) + line.quantity

    if purchase_order_id is not None:
        _check_against_purchase_order(
            db,
            purchase_order_id=purchase_order_id,
            service_center_id=clean_center,
            requested_by_part=requested_by_part,
        )

    parts = get_parts(db, list(requested_by_part))
    entries = {part_id: stock_ledger_service.get_stock_entry(db, part_id) for part_id in requested_by_part}

    now = _now()
    transport = transport or TransportDetails()
    issue = PartsIssue(
        issue_number=next_document_number(db, prefix=settings.parts_issue_prefix),
        service_center_id=clean_center,
        purchase_order_id=purchase_order_id,
        status=PartsIssueStatus.PENDING_ADMIN_APPROVAL if send_to_admin else PartsIssueStatus.PENDING,
        issued_by=issued_by,
        sent_to_admin_at=now if send_to_admin else None,
        transporter=transport.transporter,
        tracking_number=transport.tracking_number,
        expected_delivery=transport.expected_delivery,
        notes=notes,
    )
    for line in items:
        issue.items.append(
            PartsIssueItem(
                part_id=line.part_id,
                from_stock_entry_id=entries[line.part_id].id,
                requested_qty=line.quantity,
                issued_qty=0,
                unit_price=parts[line.part_id].unit_price,
            )
        )
    db.add(issue)
    db.flush()
    logger.info(
        'parts_issue_created',
        extra={
            'issue_number': issue.issue_number,
            'service_center_id': clean_center,
            'purchase_order_id': purchase_order_id,
            'status': issue.status.value,
        },
    )
    return issue


def submit_for_approval(db: Session, *, parts_issue_id: int, actor: str) -> PartsIssue:
    issue = lock_parts_issue(db, parts_issue_id)
    _require_status(issue, PartsIssueStatus.PENDING, 'send to admin')
    now = _now()
    issue.status = PartsIssueStatus.PENDING_ADMIN_APPROVAL
    issue.sent_to_admin_at = now
    issue.updated_at = now
    db.flush()
    logger.info('parts_issue_sent_to_admin', extra={'issue_number': issue.issue_number, 'actor': actor})
    return issue


def approve_parts_issue(
    db: Session,
    *,
    parts_issue_id: int,
    approved_items: list[ItemQuantity] | None,
    approver: str,
) -> PartsIssue:
    issue = lock_parts_issue(db, parts_issue_id)
    _require_status(issue, PartsIssueStatus.PENDING_ADMIN_APPROVAL, 'approve')

    overrides = _quantities_by_item(issue, approved_items)
    for item in issue.items:
        approved = overrides.get(item.id, item.requested_qty)
        if approved > item.requested_qty:
            raise QuantityExceedsRequestError(item.id, approved, item.requested_qty)
    for item in issue.items:
        item.approved_qty = overrides.get(item.id, item.requested_qty)

    now = _now()
    issue.status = PartsIssueStatus.ADMIN_APPROVED
    issue.approved_by = approver
    issue.approved_at = now
    issue.updated_at = now
    db.flush()
    logger.info('parts_issue_approved', extra={'issue_number': issue.issue_number, 'approver': approver})
    return issue


def reject_parts_issue(db: Session, *, parts_issue_id: int, reason: str, rejecter: str) -> PartsIssue:
    clean_reason = _require_reason(reason, 'Rejection')
    issue = lock_parts_issue(db, parts_issue_id)
    _require_status(issue, PartsIssueStatus.PENDING_ADMIN_APPROVAL, 'reject')

    now = _now()
    issue.status = PartsIssueStatus.ADMIN_REJECTED
    issue.rejected_by = rejecter
    issue.rejected_at = now
    issue.rejection_reason = clean_reason
    issue.updated_at = now
    db.flush()
    logger.info('parts_issue_rejected', extra={'issue_number': issue.issue_number, 'rejecter': rejecter})
    return issue


def _check_purchase_order_ceiling(db: Session, issue: PartsIssue) -> None:
    po = purchase_order_service.lock_purchase_order(db, issue.purchase_order_id)
    approved = purchase_order_service.approved_quantities(po)
    dispatched = purchase_order_service.dispatched_quantities(db, po.id)
    outgoing: dict[str, int] = {}
    for item in issue.items:
        outgoing[item.part_id] = outgoing.get(item.part_id, 0) + item.quantity
    for part_id, qty in outgoing.items():
        ceiling = approved.get(part_id, 0) - dispatched.get(part_id, 0)
        if qty > ceiling:
            raise QuantityExceedsRequestError(part_id, qty, max(ceiling, 0))


def dispatch_parts_issue(
    db: Session,
    *,
    parts_issue_id: int,
    transport: TransportDetails | None,
    dispatcher: str,
) -> PartsIssue:
    issue = lock_parts_issue(db, parts_issue_id)
    _require_status(issue, PartsIssueStatus.ADMIN_APPROVED, 'dispatch')
    if issue.purchase_order_id is not None:
        _check_purchase_order_ceiling(db, issue)

    needed: dict[str, int] = {}
    for item in issue.items:
        if item.quantity > 0:
            needed[item.part_id] = needed.get(item.part_id, 0) + item.quantity

    # Check every row under lock before writing any debit.
    entries = stock_ledger_service.lock_stock_entries(db, list(needed))
    for part_id, qty in sorted(needed.items()):
        if qty > entries[part_id].quantity:
            logger.warning(
                'parts_issue_dispatch_short',
                extra={'issue_number': issue.issue_number, 'part_id': part_id, 'requested': qty,
                       'available': entries[part_id].quantity},
            )
            raise InsufficientStockError(part_id, qty, entries[part_id].quantity)

    reason = f'Issued to service center {issue.service_center_id}'
    for item in issue.items:
        if item.quantity > 0:
            stock_ledger_service.debit(
                db,
                item.part_id,
                item.quantity,
                reason=reason,
                actor=dispatcher,
                reference_number=issue.issue_number,
            )
        item.issued_qty = item.quantity

    now = _now()
    if transport is not None:
        issue.transporter = transport.transporter or issue.transporter
        issue.tracking_number = transport.tracking_number or issue.tracking_number
        issue.expected_delivery = transport.expected_delivery or issue.expected_delivery
    issue.status = PartsIssueStatus.ISSUED
    issue.dispatched_by = dispatcher
    issue.dispatched_at = now
    issue.updated_at = now
    db.flush()

    if issue.purchase_order_id is not None:
        purchase_order_service.mark_fulfillment(db, purchase_order_id=issue.purchase_order_id)
    logger.info(
        'parts_issue_dispatched',
        extra={'issue_number': issue.issue_number, 'dispatcher': dispatcher, 'total_amount': issue.total_amount},
    )
    return issue


def receive_parts_issue(
    db: Session,
    *,
    parts_issue_id: int,
    received_items: list[ItemQuantity] | None,
    receiver: str,
) -> PartsIssue:
    issue = lock_parts_issue(db, parts_issue_id)
    _require_status(issue, PartsIssueStatus.ISSUED, 'receive')

    received = _quantities_by_item(issue, received_items)
    for item in issue.items:
        qty = received.get(item.id, item.issued_qty)
        if qty > item.issued_qty:
            raise QuantityExceedsRequestError(item.id, qty, item.issued_qty)

    for item in issue.items:
        item.received_qty = received.get(item.id, item.issued_qty)
        shortfall = item.issued_qty - item.received_qty
        if shortfall <= 0:
            continue
        # Variance only: the central ledger already dropped this stock at dispatch.
        entry = stock_ledger_service.get_stock_entry(db, item.part_id)
        adjustment_service.record(
            db,
            entry=entry,
            kind=AdjustmentKind.ADJUST,
            quantity_delta=0,
            quantity_before=entry.quantity,
            quantity_after=entry.quantity,
            actor=receiver,
            reason=f'Short receipt: issued {item.issued_qty}, received {item.received_qty}',
            reference_number=issue.issue_number,
            notes=f'Shortfall {shortfall}',
        )
        logger.warning(
            'parts_issue_short_receipt',
            extra={
                'issue_number': issue.issue_number,
                'part_id': item.part_id,
                'issued_qty': item.issued_qty,
                'received_qty': item.received_qty,
            },
        )

    now = _now()
    issue.status = PartsIssueStatus.RECEIVED
    issue.received_by = receiver
    issue.received_at = now
    issue.updated_at = now
    db.flush()
    logger.info('parts_issue_received', extra={'issue_number': issue.issue_number, 'receiver': receiver})
    return issue


def cancel_parts_issue(db: Session, *, parts_issue_id: int, reason: str, actor: str) -> PartsIssue:
    clean_reason = _require_reason(reason, 'Cancellation')
    issue = lock_parts_issue(db, parts_issue_id)
    _require_status(issue, CANCELLABLE_STATUSES, 'cancel')

    now = _now()
    issue.status = PartsIssueStatus.CANCELLED
    issue.cancelled_by = actor
    issue.cancelled_at = now
    issue.cancellation_reason = clean_reason
    issue.updated_at = now
    db.flush()
    logger.info('parts_issue_cancelled', extra={'issue_number': issue.issue_number, 'actor': actor})
    return issue
