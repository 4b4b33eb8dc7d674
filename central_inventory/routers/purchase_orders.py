from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from central_inventory.auth import Principal, assert_service_center_scope, get_current_principal, is_central_role
from central_inventory.db import get_db
from central_inventory.dependencies import http_error
from central_inventory.exceptions import CentralInventoryError
from central_inventory.schemas import PurchaseOrderApprove, PurchaseOrderCreate, PurchaseOrderOut, ReasonIn
from central_inventory.services import approval_gate, purchase_order_service
from central_inventory.services.status_adapter import parse_purchase_order_status, purchase_order_view

router = APIRouter(prefix='/purchase-orders', tags=['purchase-orders'])


@router.post('', response_model=PurchaseOrderOut, status_code=status.HTTP_201_CREATED)
def create_purchase_order(
    body: PurchaseOrderCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    assert_service_center_scope(principal, body.service_center_id)
    try:
        po = purchase_order_service.create_purchase_order(
            db,
            service_center_id=body.service_center_id,
            items=[
                purchase_order_service.OrderLineInput(part_id=line.part_id, quantity=line.quantity, notes=line.notes)
                for line in body.items
            ],
            requested_by=principal.name,
            priority=body.priority,
            notes=body.notes,
            job_card_id=body.job_card_id,
            vehicle_number=body.vehicle_number,
        )
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    db.commit()
    return purchase_order_view(po)


@router.get('', response_model=list[PurchaseOrderOut])
def list_purchase_orders(
    status: str | None = None,
    service_center_id: str | None = Query(None, alias='serviceCenterId'),
    limit: int = 100,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    if not is_central_role(principal.role):
        if not principal.service_center_id:
            return []
        service_center_id = principal.service_center_id
    try:
        status_filter = parse_purchase_order_status(status) if status else None
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    rows = purchase_order_service.list_purchase_orders(
        db,
        status=status_filter,
        service_center_id=service_center_id,
        limit=min(max(limit, 1), 500),
    )
    return [purchase_order_view(po) for po in rows]


@router.get('/{purchase_order_id}', response_model=PurchaseOrderOut)
def get_purchase_order(
    purchase_order_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    try:
        po = purchase_order_service.get_purchase_order(db, purchase_order_id)
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    assert_service_center_scope(principal, po.service_center_id)
    return purchase_order_view(po)


@router.patch('/{purchase_order_id}/approve', response_model=PurchaseOrderOut)
def approve_purchase_order(
    purchase_order_id: int,
    body: PurchaseOrderApprove | None = None,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    approved_items = [
        purchase_order_service.ApprovedQuantity(item_id=row.item_id, approved_qty=row.approved_qty)
        for row in (body.items if body else [])
    ]
    try:
        po = approval_gate.approve_purchase_order(
            db,
            principal,
            purchase_order_id=purchase_order_id,
            approved_items=approved_items,
        )
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    db.commit()
    return purchase_order_view(po)


@router.patch('/{purchase_order_id}/reject', response_model=PurchaseOrderOut)
def reject_purchase_order(
    purchase_order_id: int,
    body: ReasonIn,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    try:
        po = approval_gate.reject_purchase_order(db, principal, purchase_order_id=purchase_order_id, reason=body.reason)
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    db.commit()
    return purchase_order_view(po)
