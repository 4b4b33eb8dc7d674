from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from central_inventory.models import (
    Part,
    PartsIssue,
    PartsIssueStatus,
    PurchaseOrder,
    PurchaseOrderStatus,
    StockEntry,
    StockStatus,
    compute_stock_status,
)


def _count_purchase_orders(db: Session, status: PurchaseOrderStatus) -> int:
    return int(db.execute(select(func.count(PurchaseOrder.id)).where(PurchaseOrder.status == status)).scalar_one())


def _count_parts_issues(db: Session, status: PartsIssueStatus) -> int:
    return int(db.execute(select(func.count(PartsIssue.id)).where(PartsIssue.status == status)).scalar_one())


def get_stats(db: Session) -> dict:
    rows = db.execute(
        select(StockEntry.quantity, StockEntry.min_threshold, Part.unit_price).join(Part, Part.id == StockEntry.part_id)
    ).all()

    total_value = Decimal('0')
    low_stock = 0
    out_of_stock = 0
    for quantity, min_threshold, unit_price in rows:
        total_value += Decimal(unit_price) * quantity
        status = compute_stock_status(quantity, min_threshold)
        if status == StockStatus.LOW_STOCK:
            low_stock += 1
        elif status == StockStatus.OUT_OF_STOCK:
            out_of_stock += 1

    return {
        'total_parts': len(rows),
        'total_stock_value': total_value,
        'low_stock_count': low_stock,
        'out_of_stock_count': out_of_stock,
        'pending_purchase_orders': _count_purchase_orders(db, PurchaseOrderStatus.PENDING),
        'approved_purchase_orders': _count_purchase_orders(db, PurchaseOrderStatus.APPROVED),
        'issues_awaiting_approval': _count_parts_issues(db, PartsIssueStatus.PENDING_ADMIN_APPROVAL),
        'issues_in_transit': _count_parts_issues(db, PartsIssueStatus.ISSUED),
    }
