from __future__ import annotations

import unittest
from decimal import Decimal
from enum import Enum

from central_inventory.exceptions import ValidationError
from central_inventory.models import PartsIssueStatus, PurchaseOrderStatus
from central_inventory.services import parts_issue_service, purchase_order_service, status_adapter
from central_inventory.services.parts_issue_service import IssueLineInput
from central_inventory.services.purchase_order_service import OrderLineInput
from tests.support import DatabaseTestCase


class StatusTranslationTests(unittest.TestCase):
    def test_purchase_order_round_trip(self) -> None:
        for status in PurchaseOrderStatus:
            external = status_adapter.to_external_purchase_order_status(status)
            self.assertEqual(status_adapter.from_external_purchase_order_status(external), status)

    def test_parts_issue_round_trip(self) -> None:
        for status in PartsIssueStatus:
            external = status_adapter.to_external_parts_issue_status(status)
            self.assertEqual(status_adapter.from_external_parts_issue_status(external.value), status)

    def test_known_external_values(self) -> None:
        self.assertEqual(status_adapter.from_external_parts_issue_status('DISPATCHED'), PartsIssueStatus.ISSUED)
        self.assertEqual(status_adapter.from_external_parts_issue_status('completed'), PartsIssueStatus.RECEIVED)
        self.assertEqual(
            status_adapter.from_external_parts_issue_status('CIM_APPROVED'), PartsIssueStatus.PENDING_ADMIN_APPROVAL
        )
        self.assertEqual(status_adapter.from_external_purchase_order_status('draft'), PurchaseOrderStatus.PENDING)
        self.assertEqual(
            status_adapter.from_external_purchase_order_status('PARTIALLY_ISSUED'),
            PurchaseOrderStatus.PARTIALLY_FULFILLED,
        )

    def test_unknown_values_are_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            status_adapter.from_external_parts_issue_status('SHIPPED_BY_DRONE')
        with self.assertRaises(ValidationError):
            status_adapter.from_external_purchase_order_status(None)
        with self.assertRaises(ValidationError):
            status_adapter.parse_parts_issue_status('maybe')

    def test_parse_accepts_either_vocabulary(self) -> None:
        self.assertEqual(status_adapter.parse_parts_issue_status('pending_admin_approval'), PartsIssueStatus.PENDING_ADMIN_APPROVAL)
        self.assertEqual(status_adapter.parse_parts_issue_status('pending-approval'), PartsIssueStatus.PENDING_ADMIN_APPROVAL)
        self.assertEqual(status_adapter.parse_purchase_order_status('FULFILLED'), PurchaseOrderStatus.FULFILLED)
        self.assertEqual(status_adapter.parse_purchase_order_status('completed'), PurchaseOrderStatus.FULFILLED)

    def test_incomplete_table_fails_validation(self) -> None:
        class Canonical(str, Enum):
            A = 'A'
            B = 'B'

        class External(str, Enum):
            X = 'X'

        with self.assertRaises(RuntimeError):
            status_adapter.validate_tables(Canonical, External, {Canonical.A: External.X}, {'X': Canonical.A})


class InboundPayloadTests(unittest.TestCase):
    def test_parts_issue_totals_are_recomputed(self) -> None:
        payload = {
            'id': 7,
            'issueNumber': 'PI-2026-007',
            'serviceCenterId': 'SC-1',
            'status': 'PENDING_APPROVAL',
            'totalAmount': 99999,
            'issuedBy': {'name': 'Chandra CIM'},
            'items': [
                {
                    'id': 1,
                    'centralInventoryPartId': 'PART-A',
                    'requestedQty': 5,
                    'approvedQty': 3,
                    'centralInventoryPart': {'unitPrice': 100},
                },
                {'id': 2, 'partId': 'PART-B', 'quantity': 2, 'unitPrice': '250.00'},
            ],
        }

        view = status_adapter.inbound_parts_issue(payload)

        self.assertEqual(view.status, PartsIssueStatus.PENDING_ADMIN_APPROVAL)
        self.assertEqual(view.external_status, 'PENDING_APPROVAL')
        self.assertEqual(view.issued_by, 'Chandra CIM')
        self.assertEqual([item.part_id for item in view.items], ['PART-A', 'PART-B'])
        self.assertEqual([item.total_price for item in view.items], [Decimal('300'), Decimal('500.00')])
        self.assertEqual(view.total_amount, Decimal('800'))

    def test_purchase_order_totals_are_recomputed(self) -> None:
        payload = {
            'poNumber': 'PO-2026-010',
            'serviceCenterId': 'SC-2',
            'status': 'APPROVED',
            'totalAmount': '1.00',
            'items': [{'centralInventoryPartId': 'PART-A', 'requestedQty': 4, 'centralInventoryPart': {'unitPrice': '12.50'}}],
        }

        view = status_adapter.inbound_purchase_order(payload)

        self.assertEqual(view.status, PurchaseOrderStatus.APPROVED)
        self.assertEqual(view.total_amount, Decimal('50.00'))

    def test_payload_without_items_totals_zero(self) -> None:
        view = status_adapter.inbound_parts_issue({'issueNumber': 'PI-1', 'serviceCenterId': 'SC-1', 'status': 'DISPATCHED'})

        self.assertEqual(view.items, [])
        self.assertEqual(view.total_amount, Decimal('0'))

    def test_unknown_payload_status_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            status_adapter.inbound_purchase_order({'poNumber': 'PO-1', 'status': 'LOST'})

    def test_string_ids_pass_through_unchanged(self) -> None:
        payload = {
            'id': 'clx9issue01',
            'issueNumber': 'PI-2026-020',
            'serviceCenterId': 'SC-1',
            'status': 'DISPATCHED',
            'purchaseOrderId': 'clx9po01',
            'items': [{'id': 'clx9item01', 'partId': 'PART-A', 'requestedQty': 2, 'unitPrice': 10}],
        }

        view = status_adapter.inbound_parts_issue(payload)

        self.assertEqual(view.id, 'clx9issue01')
        self.assertEqual(view.purchase_order_id, 'clx9po01')
        self.assertEqual(view.items[0].id, 'clx9item01')
        self.assertEqual(view.total_amount, Decimal('20'))

        order = status_adapter.inbound_purchase_order(
            {'id': 'clx9po01', 'poNumber': 'PO-2026-011', 'status': 'APPROVED',
             'items': [{'id': 'clx9poitem01', 'partId': 'PART-A', 'quantity': 1, 'unitPrice': 5}]}
        )
        self.assertEqual(order.id, 'clx9po01')
        self.assertEqual(order.items[0].id, 'clx9poitem01')

    def test_non_object_items_are_skipped(self) -> None:
        payload = {
            'issueNumber': 'PI-2026-021',
            'serviceCenterId': 'SC-1',
            'status': 'DISPATCHED',
            'items': [None, 7, {'partId': 'PART-A', 'requestedQty': 3, 'unitPrice': '4.00'}],
        }

        view = status_adapter.inbound_parts_issue(payload)

        self.assertEqual([item.part_id for item in view.items], ['PART-A'])
        self.assertEqual(view.total_amount, Decimal('12.00'))


class OutboundViewTests(DatabaseTestCase):
    def test_views_carry_both_vocabularies_and_totals(self) -> None:
        self.add_part('PART-A', unit_price='100.00', quantity=10)
        self.add_part('PART-B', unit_price='250.00', quantity=10)
        po = purchase_order_service.create_purchase_order(
            self.db,
            service_center_id='SC-1',
            items=[OrderLineInput(part_id='PART-A', quantity=5), OrderLineInput(part_id='PART-B', quantity=2)],
            requested_by='Sam SCM',
        )
        issue = parts_issue_service.create_parts_issue(
            self.db,
            service_center_id='SC-1',
            items=[IssueLineInput(part_id='PART-A', quantity=5), IssueLineInput(part_id='PART-B', quantity=2)],
            issued_by='Chandra CIM',
        )

        po_view = status_adapter.purchase_order_view(po)
        issue_view = status_adapter.parts_issue_view(issue)

        self.assertEqual(po_view.external_status, 'PENDING_APPROVAL')
        self.assertEqual(po_view.total_amount, Decimal('1000'))
        self.assertEqual(issue_view.status, PartsIssueStatus.PENDING_ADMIN_APPROVAL)
        self.assertEqual(issue_view.external_status, 'PENDING_APPROVAL')
        self.assertEqual(issue_view.total_amount, Decimal('1000'))
        dumped = issue_view.model_dump(by_alias=True)
        self.assertIn('externalStatus', dumped)
        self.assertIn('issueNumber', dumped)


if __name__ == '__main__':
    unittest.main()
