from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from central_inventory.auth import (
    CENTRAL_ROLES,
    Principal,
    assert_service_center_scope,
    get_current_principal,
    is_central_role,
    require_role,
)
from central_inventory.db import get_db
from central_inventory.dependencies import http_error
from central_inventory.exceptions import CentralInventoryError
from central_inventory.schemas import (
    ItemQuantitiesIn,
    PartsIssueCreate,
    PartsIssueOut,
    ReasonIn,
    TransportIn,
)
from central_inventory.services import approval_gate, parts_issue_service
from central_inventory.services.parts_issue_service import IssueLineInput, ItemQuantity, TransportDetails
from central_inventory.services.status_adapter import parse_parts_issue_status, parts_issue_view

router = APIRouter(prefix='/parts-issues', tags=['parts-issues'])


def _item_quantities(body: ItemQuantitiesIn | None) -> list[ItemQuantity]:
    if body is None:
        return []
    return [ItemQuantity(item_id=row.item_id, quantity=row.quantity) for row in body.items]


def _transport(body: TransportIn | None) -> TransportDetails | None:
    if body is None:
        return None
    return TransportDetails(
        transporter=body.transporter,
        tracking_number=body.tracking_number,
        expected_delivery=body.expected_delivery,
    )


@router.post('', response_model=PartsIssueOut, status_code=status.HTTP_201_CREATED)
def create_parts_issue(
    body: PartsIssueCreate,
    principal: Principal = Depends(require_role(*CENTRAL_ROLES)),
    db: Session = Depends(get_db),
):
    try:
        issue = parts_issue_service.create_parts_issue(
            db,
            service_center_id=body.service_center_id,
            items=[IssueLineInput(part_id=line.part_id, quantity=line.quantity) for line in body.items],
            issued_by=principal.name,
            purchase_order_id=body.purchase_order_id,
            notes=body.notes,
            transport=_transport(body),
            send_to_admin=body.send_to_admin,
        )
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    db.commit()
    return parts_issue_view(issue)


@router.get('', response_model=list[PartsIssueOut])
def list_parts_issues(
    status: str | None = None,
    service_center_id: str | None = Query(None, alias='serviceCenterId'),
    purchase_order_id: int | None = Query(None, alias='purchaseOrderId'),
    limit: int = 100,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    if not is_central_role(principal.role):
        if not principal.service_center_id:
            return []
        service_center_id = principal.service_center_id
    try:
        status_filter = parse_parts_issue_status(status) if status else None
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    rows = parts_issue_service.list_parts_issues(
        db,
        status=status_filter,
        service_center_id=service_center_id,
        purchase_order_id=purchase_order_id,
        limit=min(max(limit, 1), 500),
    )
    return [parts_issue_view(issue) for issue in rows]


@router.get('/{parts_issue_id}', response_model=PartsIssueOut)
def get_parts_issue(
    parts_issue_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    try:
        issue = parts_issue_service.get_parts_issue(db, parts_issue_id)
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    assert_service_center_scope(principal, issue.service_center_id)
    return parts_issue_view(issue)


@router.patch('/{parts_issue_id}/submit', response_model=PartsIssueOut)
def submit_parts_issue(
    parts_issue_id: int,
    principal: Principal = Depends(require_role(*CENTRAL_ROLES)),
    db: Session = Depends(get_db),
):
    try:
        issue = parts_issue_service.submit_for_approval(db, parts_issue_id=parts_issue_id, actor=principal.name)
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    db.commit()
    return parts_issue_view(issue)


@router.patch('/{parts_issue_id}/approve', response_model=PartsIssueOut)
def approve_parts_issue(
    parts_issue_id: int,
    body: ItemQuantitiesIn | None = None,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    try:
        issue = approval_gate.approve_parts_issue(
            db,
            principal,
            parts_issue_id=parts_issue_id,
            approved_items=_item_quantities(body),
        )
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    db.commit()
    return parts_issue_view(issue)


@router.patch('/{parts_issue_id}/reject', response_model=PartsIssueOut)
def reject_parts_issue(
    parts_issue_id: int,
    body: ReasonIn,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    try:
        issue = approval_gate.reject_parts_issue(db, principal, parts_issue_id=parts_issue_id, reason=body.reason)
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    db.commit()
    return parts_issue_view(issue)


@router.patch('/{parts_issue_id}/dispatch', response_model=PartsIssueOut)
def dispatch_parts_issue(
    parts_issue_id: int,
    body: TransportIn | None = None,
    principal: Principal = Depends(require_role(*CENTRAL_ROLES)),
    db: Session = Depends(get_db),
):
    try:
        issue = parts_issue_service.dispatch_parts_issue(
            db,
            parts_issue_id=parts_issue_id,
            transport=_transport(body),
            dispatcher=principal.name,
        )
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    db.commit()
    return parts_issue_view(issue)


@router.patch('/{parts_issue_id}/receive', response_model=PartsIssueOut)
def receive_parts_issue(
    parts_issue_id: int,
    body: ItemQuantitiesIn | None = None,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    try:
        issue = parts_issue_service.get_parts_issue(db, parts_issue_id)
        assert_service_center_scope(principal, issue.service_center_id)
        issue = parts_issue_service.receive_parts_issue(
            db,
            parts_issue_id=parts_issue_id,
            received_items=_item_quantities(body),
            receiver=principal.name,
        )
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    db.commit()
    return parts_issue_view(issue)


@router.patch('/{parts_issue_id}/cancel', response_model=PartsIssueOut)
def cancel_parts_issue(
    parts_issue_id: int,
    body: ReasonIn,
    principal: Principal = Depends(require_role(*CENTRAL_ROLES)),
    db: Session = Depends(get_db),
):
    try:
        issue = parts_issue_service.cancel_parts_issue(
            db,
            parts_issue_id=parts_issue_id,
            reason=body.reason,
            actor=principal.name,
        )
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
    db.commit()
    return parts_issue_view(issue)
