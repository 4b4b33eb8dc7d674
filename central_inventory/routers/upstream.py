from __future__ import annotations

from fastapi import APIRouter, Depends

from central_inventory.auth import CENTRAL_ROLES, Principal, require_role
from central_inventory.dependencies import http_error
from central_inventory.exceptions import CentralInventoryError
from central_inventory.schemas import PartsIssueOut, PurchaseOrderOut
from central_inventory.services import upstream_service

router = APIRouter(prefix='/upstream', tags=['upstream'])


@router.get('/parts-issues', response_model=list[PartsIssueOut])
def list_upstream_parts_issues(
    status: str | None = None,
    principal: Principal = Depends(require_role(*CENTRAL_ROLES)),
):
    try:
        return upstream_service.fetch_parts_issues(status=status)
    except CentralInventoryError as exc:
        raise http_error(exc) from exc


@router.get('/purchase-orders', response_model=list[PurchaseOrderOut])
def list_upstream_purchase_orders(
    status: str | None = None,
    principal: Principal = Depends(require_role(*CENTRAL_ROLES)),
):
    try:
        return upstream_service.fetch_purchase_orders(status=status)
    except CentralInventoryError as exc:
        raise http_error(exc) from exc
