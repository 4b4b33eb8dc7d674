"""Shared approve/reject entry point for purchase orders and parts issues.

The gate answers "who may approve what" in one place, then hands off to the
owning manager. Its own status check reads without a lock and is advisory: it
fails fast with a clear error. The manager re-reads the status under a row lock
and that check is the authoritative one, so two concurrent approvals cannot
both succeed.
"""

from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy.orm import Session

from central_inventory.auth import Principal, Role
from central_inventory.exceptions import InvalidTransitionError, PermissionDeniedError
from central_inventory.models import PartsIssue, PartsIssueStatus, PurchaseOrder, PurchaseOrderStatus
from central_inventory.services import parts_issue_service, purchase_order_service

logger = logging.getLogger(__name__)


class DocumentKind(str, Enum):
    PURCHASE_ORDER = 'PURCHASE_ORDER'
    PARTS_ISSUE = 'PARTS_ISSUE'


APPROVER_ROLES: dict[DocumentKind, frozenset[Role]] = {
    DocumentKind.PURCHASE_ORDER: frozenset({Role.ADMIN, Role.CENTRAL_INVENTORY_MANAGER}),
    DocumentKind.PARTS_ISSUE: frozenset({Role.ADMIN}),
}

APPROVABLE_STATUS = {
    DocumentKind.PURCHASE_ORDER: PurchaseOrderStatus.PENDING,
    DocumentKind.PARTS_ISSUE: PartsIssueStatus.PENDING_ADMIN_APPROVAL,
}


def can_approve(principal: Principal, kind: DocumentKind) -> bool:
    return principal.role in APPROVER_ROLES[kind]


def _authorize(principal: Principal, kind: DocumentKind, action: str) -> None:
    if not can_approve(principal, kind):
        logger.warning(
            'approval_denied',
            extra={'actor_id': principal.id, 'role': principal.role.value, 'kind': kind.value, 'action': action},
        )
        raise PermissionDeniedError(principal.id, f'{action} {kind.value.lower().replace("_", " ")}')


def _require_approvable(kind: DocumentKind, document: PurchaseOrder | PartsIssue, action: str) -> None:
    if document.status != APPROVABLE_STATUS[kind]:
        raise InvalidTransitionError(kind.value.lower().replace('_', ' '), document.status.value, action)


def approve_purchase_order(
    db: Session,
    principal: Principal,
    *,
    purchase_order_id: int,
    approved_items: list[purchase_order_service.ApprovedQuantity] | None = None,
) -> PurchaseOrder:
    _authorize(principal, DocumentKind.PURCHASE_ORDER, 'approve')
    po = purchase_order_service.get_purchase_order(db, purchase_order_id)
    _require_approvable(DocumentKind.PURCHASE_ORDER, po, 'approve')
    return purchase_order_service.approve_purchase_order(
        db,
        purchase_order_id=purchase_order_id,
        approved_items=approved_items,
        approver=principal.name,
    )


def reject_purchase_order(db: Session, principal: Principal, *, purchase_order_id: int, reason: str) -> PurchaseOrder:
    _authorize(principal, DocumentKind.PURCHASE_ORDER, 'reject')
    po = purchase_order_service.get_purchase_order(db, purchase_order_id)
    _require_approvable(DocumentKind.PURCHASE_ORDER, po, 'reject')
    return purchase_order_service.reject_purchase_order(
        db,
        purchase_order_id=purchase_order_id,
        reason=reason,
        rejecter=principal.name,
    )


def approve_parts_issue(
    db: Session,
    principal: Principal,
    *,
    parts_issue_id: int,
    approved_items: list[parts_issue_service.ItemQuantity] | None = None,
) -> PartsIssue:
    _authorize(principal, DocumentKind.PARTS_ISSUE, 'approve')
    issue = parts_issue_service.get_parts_issue(db, parts_issue_id)
    _require_approvable(DocumentKind.PARTS_ISSUE, issue, 'approve')
    return parts_issue_service.approve_parts_issue(
        db,
        parts_issue_id=parts_issue_id,
        approved_items=approved_items,
        approver=principal.name,
    )


def reject_parts_issue(db: Session, principal: Principal, *, parts_issue_id: int, reason: str) -> PartsIssue:
    _authorize(principal, DocumentKind.PARTS_ISSUE, 'reject')
    issue = parts_issue_service.get_parts_issue(db, parts_issue_id)
    _require_approvable(DocumentKind.PARTS_ISSUE, issue, 'reject')
    return parts_issue_service.reject_parts_issue(
        db,
        parts_issue_id=parts_issue_id,
        reason=reason,
        rejecter=principal.name,
    )
