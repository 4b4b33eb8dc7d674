"""Central stock ledger.

The ledger is the only writer of ``StockEntry.quantity``. Every mutation locks
the stock row, re-reads the quantity under that lock, applies the change and
appends exactly one ``StockAdjustment`` through the adjustment recorder.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from central_inventory.config import settings
from central_inventory.exceptions import InsufficientStockError, NotFoundError, ValidationError
from central_inventory.models import AdjustmentKind, Part, StockAdjustment, StockEntry, StockStatus
from central_inventory.services import adjustment_service
from central_inventory.services.catalog_service import get_part

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _require_positive(qty: int) -> None:
    if qty <= 0:
        raise ValidationError('Quantity must be greater than zero')


def _require_reason(reason: str) -> str:
    clean = (reason or '').strip()
    if not clean:
        raise ValidationError('Reason is required')
    return clean


def get_stock_entry(db: Session, part_id: str) -> StockEntry:
    entry = db.execute(select(StockEntry).where(StockEntry.part_id == part_id)).scalar_one_or_none()
    if entry is None:
        raise NotFoundError('StockEntry', part_id)
    return entry


def lock_stock_entry(db: Session, part_id: str) -> StockEntry:
    entry = db.execute(
        select(StockEntry)
        .where(StockEntry.part_id == part_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if entry is None:
        raise NotFoundError('StockEntry', part_id)
    return entry


def lock_stock_entries(db: Session, part_ids: list[str]) -> dict[str, StockEntry]:
    """Lock several rows in ascending part order so concurrent callers cannot deadlock."""
    locked: dict[str, StockEntry] = {}
    for part_id in sorted(set(part_ids)):
        locked[part_id] = lock_stock_entry(db, part_id)
    return locked


def create_stock_entry(
    db: Session,
    *,
    part_id: str,
    actor: str,
    quantity: int = 0,
    min_threshold: int | None = None,
    max_threshold: int | None = None,
    location: str | None = None,
) -> StockEntry:
    get_part(db, part_id)
    existing = db.execute(select(StockEntry.id).where(StockEntry.part_id == part_id)).scalar_one_or_none()
    if existing is not None:
        raise ValidationError(f'Stock entry already exists for part {part_id}')
    if quantity < 0:
        raise ValidationError('Quantity cannot be negative')

    min_value = settings.default_min_threshold if min_threshold is None else min_threshold
    max_value = settings.default_max_threshold if max_threshold is None else max_threshold
    if min_value < 0 or max_value < min_value:
        raise ValidationError('Thresholds must satisfy 0 <= min <= max')

    entry = StockEntry(
        part_id=part_id,
        quantity=0,
        min_threshold=min_value,
        max_threshold=max_value,
        location=location,
        updated_by=actor,
    )
    db.add(entry)
    db.flush()
    if quantity > 0:
        credit(db, part_id, quantity, reason='Opening balance', actor=actor)
    return entry


def debit(
    db: Session,
    part_id: str,
    qty: int,
    *,
    reason: str,
    actor: str,
    reference_number: str | None = None,
    kind: AdjustmentKind = AdjustmentKind.REMOVE,
    notes: str | None = None,
) -> StockAdjustment:
    _require_positive(qty)
    clean_reason = _require_reason(reason)
    entry = lock_stock_entry(db, part_id)
    if qty > entry.quantity:
        raise InsufficientStockError(part_id, qty, entry.quantity)

    before = entry.quantity
    entry.quantity = before - qty
    entry.updated_by = actor
    entry.updated_at = _now()
    adjustment = adjustment_service.record(
        db,
        entry=entry,
        kind=kind,
        quantity_delta=-qty,
        quantity_before=before,
        quantity_after=entry.quantity,
        actor=actor,
        reason=clean_reason,
        reference_number=reference_number,
        notes=notes,
    )
    logger.info(
        'stock_debited',
        extra={'part_id': part_id, 'qty': qty, 'quantity_after': entry.quantity, 'reference_number': reference_number},
    )
    return adjustment


def credit(
    db: Session,
    part_id: str,
    qty: int,
    *,
    reason: str,
    actor: str,
    reference_number: str | None = None,
    notes: str | None = None,
) -> StockAdjustment:
    _require_positive(qty)
    clean_reason = _require_reason(reason)
    entry = lock_stock_entry(db, part_id)

    before = entry.quantity
    entry.quantity = before + qty
    entry.updated_by = actor
    entry.updated_at = _now()
    adjustment = adjustment_service.record(
        db,
        entry=entry,
        kind=AdjustmentKind.ADD,
        quantity_delta=qty,
        quantity_before=before,
        quantity_after=entry.quantity,
        actor=actor,
        reason=clean_reason,
        reference_number=reference_number,
        notes=notes,
    )
    logger.info(
        'stock_credited',
        extra={'part_id': part_id, 'qty': qty, 'quantity_after': entry.quantity, 'reference_number': reference_number},
    )
    return adjustment


def set_quantity(
    db: Session,
    part_id: str,
    qty: int,
    *,
    reason: str,
    actor: str,
    reference_number: str | None = None,
    notes: str | None = None,
) -> StockAdjustment:
    if qty < 0:
        raise ValidationError('Quantity cannot be negative')
    clean_reason = _require_reason(reason)
    entry = lock_stock_entry(db, part_id)

    before = entry.quantity
    entry.quantity = qty
    entry.updated_by = actor
    entry.updated_at = _now()
    adjustment = adjustment_service.record(
        db,
        entry=entry,
        kind=AdjustmentKind.ADJUST,
        quantity_delta=qty - before,
        quantity_before=before,
        quantity_after=qty,
        actor=actor,
        reason=clean_reason,
        reference_number=reference_number,
        notes=notes,
    )
    logger.info('stock_quantity_set', extra={'part_id': part_id, 'quantity_before': before, 'quantity_after': qty})
    return adjustment


def transfer(
    db: Session,
    part_id: str,
    qty: int,
    *,
    to_location: str,
    reason: str,
    actor: str,
    reference_number: str | None = None,
) -> StockAdjustment:
    destination = (to_location or '').strip()
    if not destination:
        raise ValidationError('Transfer destination is required')
    return debit(
        db,
        part_id,
        qty,
        reason=reason,
        actor=actor,
        reference_number=reference_number,
        kind=AdjustmentKind.TRANSFER,
        notes=f'Transferred to {destination}',
    )


def apply_adjustment(
    db: Session,
    *,
    part_id: str,
    kind: AdjustmentKind,
    quantity: int,
    reason: str,
    actor: str,
    reference_number: str | None = None,
    notes: str | None = None,
    to_location: str | None = None,
) -> StockAdjustment:
    if kind == AdjustmentKind.ADD:
        return credit(db, part_id, quantity, reason=reason, actor=actor, reference_number=reference_number, notes=notes)
    if kind == AdjustmentKind.REMOVE:
        return debit(db, part_id, quantity, reason=reason, actor=actor, reference_number=reference_number, notes=notes)
    if kind == AdjustmentKind.ADJUST:
        return set_quantity(
            db, part_id, quantity, reason=reason, actor=actor, reference_number=reference_number, notes=notes
        )
    return transfer(
        db,
        part_id,
        quantity,
        to_location=to_location or '',
        reason=reason,
        actor=actor,
        reference_number=reference_number,
    )


def list_stock(db: Session, *, status: StockStatus | None = None) -> list[StockEntry]:
    rows = db.execute(select(StockEntry).order_by(StockEntry.part_id.asc())).scalars().all()
    if status is None:
        return rows
    # Status is derived from quantity, so filter after load.
    return [row for row in rows if row.status == status]


def search_stock(db: Session, *, query: str) -> list[StockEntry]:
    term = (query or '').strip().lower()
    if not term:
        return list_stock(db)
    pattern = f'%{term}%'
    return db.execute(
        select(StockEntry)
        .join(Part, Part.id == StockEntry.part_id)
        .where(
            or_(
                Part.name.ilike(pattern),
                Part.part_number.ilike(pattern),
                Part.sku.ilike(pattern),
                Part.category.ilike(pattern),
            )
        )
        .order_by(StockEntry.part_id.asc())
    ).scalars().all()
