from __future__ import annotations

import unittest

from central_inventory.exceptions import InsufficientStockError, NotFoundError, ValidationError
from central_inventory.models import AdjustmentKind, StockStatus, compute_stock_status
from central_inventory.services import adjustment_service, stock_ledger_service
from tests.support import DatabaseTestCase


class StockStatusTests(unittest.TestCase):
    def test_status_thresholds(self) -> None:
        self.assertEqual(compute_stock_status(0, 5), StockStatus.OUT_OF_STOCK)
        self.assertEqual(compute_stock_status(4, 5), StockStatus.LOW_STOCK)
        self.assertEqual(compute_stock_status(5, 5), StockStatus.IN_STOCK)
        self.assertEqual(compute_stock_status(1, 0), StockStatus.IN_STOCK)


class StockLedgerServiceTests(DatabaseTestCase):
    def test_opening_balance_is_recorded_as_adjustment(self) -> None:
        self.add_part('P-1', quantity=12)

        history = adjustment_service.by_part(self.db, part_id='P-1')
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].kind, AdjustmentKind.ADD)
        self.assertEqual(history[0].quantity_before, 0)
        self.assertEqual(history[0].quantity_after, 12)
        self.assertEqual(history[0].reason, 'Opening balance')

    def test_debit_reduces_quantity_and_records_adjustment(self) -> None:
        self.add_part('P-1', quantity=10)

        adjustment = stock_ledger_service.debit(self.db, 'P-1', 4, reason='Issued', actor='clerk', reference_number='PI-2026-001')

        self.assertEqual(self.stock_of('P-1'), 6)
        self.assertEqual(adjustment.kind, AdjustmentKind.REMOVE)
        self.assertEqual(adjustment.quantity_delta, -4)
        self.assertEqual(adjustment.quantity_before, 10)
        self.assertEqual(adjustment.quantity_after, 6)
        self.assertEqual(adjustment.reference_number, 'PI-2026-001')

    def test_debit_beyond_stock_is_rejected_and_leaves_quantity(self) -> None:
        self.add_part('P-1', quantity=3)

        with self.assertRaises(InsufficientStockError) as ctx:
            stock_ledger_service.debit(self.db, 'P-1', 4, reason='Issued', actor='clerk')

        self.assertEqual(ctx.exception.available, 3)
        self.assertEqual(ctx.exception.requested, 4)
        self.assertEqual(self.stock_of('P-1'), 3)
        self.assertEqual(len(adjustment_service.by_part(self.db, part_id='P-1')), 1)

    def test_quantity_never_negative_across_sequence(self) -> None:
        self.add_part('P-1', quantity=2)
        operations = [('debit', 1), ('credit', 5), ('debit', 7), ('debit', 6), ('credit', 1), ('debit', 1)]
        for op, qty in operations:
            try:
                if op == 'debit':
                    stock_ledger_service.debit(self.db, 'P-1', qty, reason='use', actor='clerk')
                else:
                    stock_ledger_service.credit(self.db, 'P-1', qty, reason='restock', actor='clerk')
            except InsufficientStockError:
                pass
            self.assertGreaterEqual(self.stock_of('P-1'), 0)
        self.assertEqual(self.stock_of('P-1'), 0)

    def test_non_positive_quantity_and_blank_reason_are_rejected(self) -> None:
        self.add_part('P-1', quantity=5)

        with self.assertRaises(ValidationError):
            stock_ledger_service.debit(self.db, 'P-1', 0, reason='use', actor='clerk')
        with self.assertRaises(ValidationError):
            stock_ledger_service.credit(self.db, 'P-1', -2, reason='use', actor='clerk')
        with self.assertRaises(ValidationError):
            stock_ledger_service.credit(self.db, 'P-1', 2, reason='  ', actor='clerk')
        self.assertEqual(self.stock_of('P-1'), 5)

    def test_unknown_part_raises_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            stock_ledger_service.debit(self.db, 'MISSING', 1, reason='use', actor='clerk')

    def test_set_quantity_records_signed_delta(self) -> None:
        self.add_part('P-1', quantity=8)

        adjustment = stock_ledger_service.set_quantity(self.db, 'P-1', 3, reason='Cycle count', actor='clerk')

        self.assertEqual(self.stock_of('P-1'), 3)
        self.assertEqual(adjustment.kind, AdjustmentKind.ADJUST)
        self.assertEqual(adjustment.quantity_delta, -5)

    def test_transfer_requires_destination_and_notes_it(self) -> None:
        self.add_part('P-1', quantity=8)

        with self.assertRaises(ValidationError):
            stock_ledger_service.transfer(self.db, 'P-1', 2, to_location='', reason='Move', actor='clerk')

        adjustment = stock_ledger_service.apply_adjustment(
            self.db,
            part_id='P-1',
            kind=AdjustmentKind.TRANSFER,
            quantity=2,
            reason='Move',
            actor='clerk',
            to_location='Bay 4',
        )
        self.assertEqual(adjustment.kind, AdjustmentKind.TRANSFER)
        self.assertEqual(adjustment.notes, 'Transferred to Bay 4')
        self.assertEqual(self.stock_of('P-1'), 6)

    def test_duplicate_stock_entry_is_rejected(self) -> None:
        self.add_part('P-1', quantity=1)
        with self.assertRaises(ValidationError):
            stock_ledger_service.create_stock_entry(self.db, part_id='P-1', actor='clerk')

    def test_list_and_search_stock(self) -> None:
        self.add_part('P-1', quantity=0, name='Brake Pad')
        self.add_part('P-2', quantity=2, min_threshold=5, name='Oil Filter', category='Filters')
        self.add_part('P-3', quantity=50, name='Battery')

        self.assertEqual([row.part_id for row in stock_ledger_service.list_stock(self.db)], ['P-1', 'P-2', 'P-3'])
        self.assertEqual(
            [row.part_id for row in stock_ledger_service.list_stock(self.db, status=StockStatus.LOW_STOCK)],
            ['P-2'],
        )
        self.assertEqual([row.part_id for row in stock_ledger_service.search_stock(self.db, query='filter')], ['P-2'])
        self.assertEqual([row.part_id for row in stock_ledger_service.search_stock(self.db, query='brake')], ['P-1'])

    def test_adjustments_by_reference_newest_first(self) -> None:
        self.add_part('P-1', quantity=10)
        self.add_part('P-2', quantity=10)
        stock_ledger_service.debit(self.db, 'P-1', 1, reason='Issued', actor='clerk', reference_number='PI-2026-009')
        stock_ledger_service.debit(self.db, 'P-2', 2, reason='Issued', actor='clerk', reference_number='PI-2026-009')

        rows = adjustment_service.by_reference(self.db, reference_number='PI-2026-009')

        self.assertEqual([row.part_id for row in rows], ['P-2', 'P-1'])
        self.assertEqual(len(adjustment_service.recent(self.db, limit=2)), 2)


if __name__ == '__main__':
    unittest.main()
