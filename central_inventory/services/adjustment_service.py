from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from central_inventory.models import AdjustmentKind, StockAdjustment, StockEntry


def record(
    db: Session,
    *,
    entry: StockEntry,
    kind: AdjustmentKind,
    quantity_delta: int,
    quantity_before: int,
    quantity_after: int,
    actor: str,
    reason: str,
    reference_number: str | None = None,
    notes: str | None = None,
) -> StockAdjustment:
    adjustment = StockAdjustment(
        stock_entry_id=entry.id,
        part_id=entry.part_id,
        kind=kind,
        quantity_delta=quantity_delta,
        quantity_before=quantity_before,
        quantity_after=quantity_after,
        actor=actor,
        reason=reason,
        reference_number=reference_number,
        notes=notes,
    )
    db.add(adjustment)
    db.flush()
    return adjustment


def recent(db: Session, *, limit: int = 50) -> list[StockAdjustment]:
    return db.execute(
        select(StockAdjustment).order_by(StockAdjustment.id.desc()).limit(limit)
    ).scalars().all()


def by_part(db: Session, *, part_id: str, limit: int | None = None) -> list[StockAdjustment]:
    query = select(StockAdjustment).where(StockAdjustment.part_id == part_id).order_by(StockAdjustment.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return db.execute(query).scalars().all()


def by_reference(db: Session, *, reference_number: str) -> list[StockAdjustment]:
    return db.execute(
        select(StockAdjustment)
        .where(StockAdjustment.reference_number == reference_number)
        .order_by(StockAdjustment.id.desc())
    ).scalars().all()
