from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from central_inventory.auth import CENTRAL_ROLES, Principal, get_current_principal, require_role
from central_inventory.db import get_db
from central_inventory.dependencies import http_error
from central_inventory.exceptions import CentralInventoryError, ValidationError
from central_inventory.models import StockStatus
from central_inventory.schemas import StatsOut, StockAdjustIn, StockAdjustmentOut, StockEntryOut
from central_inventory.services import adjustment_service, stats_service, stock_ledger_service

router = APIRouter(tags=['stock'])


@router.get('/stock', response_model=list[StockEntryOut])
def list_stock(
    status: str | None = None,
    q: str | None = None,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    try:
        status_filter = StockStatus(status.strip().upper()) if status else None
    except ValueError as exc:
        raise http_error(ValidationError(f'Unknown stock status: {status}')) from exc
    rows = stock_ledger_service.search_stock(db, query=q) if q else stock_ledger_service.list_stock(db)
    if status_filter is not None:
        rows = [row for row in rows if row.status == status_filter]
    return rows


@router.get('/stock/{part_id}', response_model=StockEntryOut)
def get_stock(
    part_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    try:
        return stock_ledger_service.get_stock_entry(db, part_id)
    except CentralInventoryError as exc:
        raise http_error(exc) from exc


@router.patch('/stock/{part_id}/adjust', response_model=StockEntryOut)
def adjust_stock(
    part_id: str,
    body: StockAdjustIn,
    principal: Principal = Depends(require_role(*CENTRAL_ROLES)),
    db: Session = Depends(get_db),
):
    try:
        stock_ledger_service.apply_adjustment(
            db,
            part_id=part_id,
            kind=body.kind,
            quantity=body.quantity,
            reason=body.reason,
            actor=principal.name,
            reference_number=body.reference_number,
            notes=body.notes,
            to_location=body.to_location,
        )
        entry = stock_ledger_service.get_stock_entry(db, part_id)
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    db.commit()
    return entry


@router.get('/stock/{part_id}/adjustments', response_model=list[StockAdjustmentOut])
def list_part_adjustments(
    part_id: str,
    limit: int = 100,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    try:
        stock_ledger_service.get_stock_entry(db, part_id)
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    return adjustment_service.by_part(db, part_id=part_id, limit=min(max(limit, 1), 500))


@router.get('/adjustments', response_model=list[StockAdjustmentOut])
def list_adjustments(
    reference: str | None = None,
    limit: int = 50,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    if reference:
        return adjustment_service.by_reference(db, reference_number=reference)
    return adjustment_service.recent(db, limit=min(max(limit, 1), 500))


@router.get('/stats', response_model=StatsOut)
def stats(
    principal: Principal = Depends(require_role(*CENTRAL_ROLES)),
    db: Session = Depends(get_db),
):
    return stats_service.get_stats(db)
