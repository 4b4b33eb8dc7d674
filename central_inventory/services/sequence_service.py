from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from central_inventory.config import settings
from central_inventory.models import DocumentSequence

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def next_value(db: Session, *, prefix: str, period: str) -> int:
    # Locked counter row; the increment only sticks if the caller commits.
    counter = db.execute(
        select(DocumentSequence)
        .where(DocumentSequence.prefix == prefix, DocumentSequence.period == period)
        .with_for_update()
    ).scalar_one_or_none()
    if counter is None:
        counter = DocumentSequence(prefix=prefix, period=period, last_value=0)
        db.add(counter)
    counter.last_value += 1
    db.flush()
    logger.debug('sequence_allocated', extra={'prefix': prefix, 'period': period, 'value': counter.last_value})
    return counter.last_value


def next_document_number(db: Session, *, prefix: str, when: datetime | None = None) -> str:
    """Return ``<prefix>-<YYYY>-<NNN>``, monotonic within each calendar year."""
    period = str((when or _now()).year)
    value = next_value(db, prefix=prefix, period=period)
    return f'{prefix}-{period}-{str(value).zfill(settings.document_number_padding)}'
