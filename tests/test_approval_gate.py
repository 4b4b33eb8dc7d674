from __future__ import annotations

import unittest
from types import SimpleNamespace
from unittest.mock import patch

from central_inventory.exceptions import InvalidTransitionError, PermissionDeniedError
from central_inventory.models import PartsIssueStatus, PurchaseOrderStatus
from central_inventory.services import approval_gate, parts_issue_service, purchase_order_service
from central_inventory.services.approval_gate import DocumentKind
from central_inventory.services.parts_issue_service import IssueLineInput
from central_inventory.services.purchase_order_service import OrderLineInput
from tests.support import ADMIN, MANAGER, SC_MANAGER, DatabaseTestCase


class ApprovalGateTests(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.add_part('PART-A', unit_price='100.00', quantity=20)
        self.po = purchase_order_service.create_purchase_order(
            self.db,
            service_center_id='SC-1',
            items=[OrderLineInput(part_id='PART-A', quantity=3)],
            requested_by=SC_MANAGER.name,
        )
        self.issue = parts_issue_service.create_parts_issue(
            self.db,
            service_center_id='SC-1',
            items=[IssueLineInput(part_id='PART-A', quantity=2)],
            issued_by=MANAGER.name,
        )

    def test_authority_table(self) -> None:
        self.assertTrue(approval_gate.can_approve(ADMIN, DocumentKind.PURCHASE_ORDER))
        self.assertTrue(approval_gate.can_approve(MANAGER, DocumentKind.PURCHASE_ORDER))
        self.assertFalse(approval_gate.can_approve(SC_MANAGER, DocumentKind.PURCHASE_ORDER))
        self.assertTrue(approval_gate.can_approve(ADMIN, DocumentKind.PARTS_ISSUE))
        self.assertFalse(approval_gate.can_approve(MANAGER, DocumentKind.PARTS_ISSUE))

    def test_manager_approves_purchase_order(self) -> None:
        po = approval_gate.approve_purchase_order(self.db, MANAGER, purchase_order_id=self.po.id)

        self.assertEqual(po.status, PurchaseOrderStatus.APPROVED)
        self.assertEqual(po.approved_by, MANAGER.name)

    def test_service_center_cannot_approve_or_reject_purchase_order(self) -> None:
        with self.assertRaises(PermissionDeniedError):
            approval_gate.approve_purchase_order(self.db, SC_MANAGER, purchase_order_id=self.po.id)
        with self.assertRaises(PermissionDeniedError):
            approval_gate.reject_purchase_order(self.db, SC_MANAGER, purchase_order_id=self.po.id, reason='no')
        self.assertEqual(self.po.status, PurchaseOrderStatus.PENDING)

    def test_only_admin_decides_parts_issues(self) -> None:
        with self.assertRaises(PermissionDeniedError):
            approval_gate.approve_parts_issue(self.db, MANAGER, parts_issue_id=self.issue.id)

        issue = approval_gate.reject_parts_issue(self.db, ADMIN, parts_issue_id=self.issue.id, reason='Out of season')
        self.assertEqual(issue.status, PartsIssueStatus.ADMIN_REJECTED)

        with self.assertRaises(InvalidTransitionError):
            approval_gate.approve_parts_issue(self.db, ADMIN, parts_issue_id=self.issue.id)

    def test_decided_purchase_order_is_not_approvable(self) -> None:
        approval_gate.reject_purchase_order(self.db, ADMIN, purchase_order_id=self.po.id, reason='Duplicate')
        with self.assertRaises(InvalidTransitionError):
            approval_gate.approve_purchase_order(self.db, ADMIN, purchase_order_id=self.po.id)

    def test_stale_status_is_caught_by_locked_recheck(self) -> None:
        purchase_order_service.reject_purchase_order(
            self.db, purchase_order_id=self.po.id, reason='Duplicate', rejecter=ADMIN.name
        )
        stale = SimpleNamespace(id=self.po.id, status=PurchaseOrderStatus.PENDING)

        with patch.object(purchase_order_service, 'get_purchase_order', return_value=stale):
            with self.assertRaises(InvalidTransitionError):
                approval_gate.approve_purchase_order(self.db, MANAGER, purchase_order_id=self.po.id)

        self.assertEqual(self.po.status, PurchaseOrderStatus.REJECTED)
        self.assertIsNone(self.po.approved_by)


if __name__ == '__main__':
    unittest.main()
