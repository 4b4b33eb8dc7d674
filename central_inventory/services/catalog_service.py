from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from central_inventory.exceptions import NotFoundError, ValidationError
from central_inventory.models import Part


def get_part(db: Session, part_id: str) -> Part:
    part = db.execute(select(Part).where(Part.id == part_id)).scalar_one_or_none()
    if part is None:
        raise NotFoundError('Part', part_id)
    return part


def get_parts(db: Session, part_ids: list[str]) -> dict[str, Part]:
    if not part_ids:
        return {}
    rows = db.execute(select(Part).where(Part.id.in_(set(part_ids)))).scalars().all()
    found = {row.id: row for row in rows}
    missing = [part_id for part_id in part_ids if part_id not in found]
    if missing:
        raise NotFoundError('Part', missing[0])
    return found


def upsert_part(
    db: Session,
    *,
    part_id: str,
    name: str,
    part_number: str,
    unit_price: Decimal,
    sku: str | None = None,
    category: str | None = None,
) -> Part:
    clean_id = (part_id or '').strip()
    if not clean_id:
        raise ValidationError('Part id is required')
    if unit_price < 0:
        raise ValidationError('Unit price cannot be negative')

    part = db.execute(select(Part).where(Part.id == clean_id)).scalar_one_or_none()
    if part is None:
        part = Part(id=clean_id, name=name, part_number=part_number, sku=sku, category=category, unit_price=unit_price)
        db.add(part)
        db.flush()
        return part

    part.name = name
    part.part_number = part_number
    part.sku = sku
    part.category = category
    part.unit_price = unit_price
    db.flush()
    return part
