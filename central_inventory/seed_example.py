from decimal import Decimal

from sqlalchemy import select

from central_inventory.db import SessionLocal, create_tables
from central_inventory.models import StockEntry
from central_inventory.services.catalog_service import upsert_part
from central_inventory.services.stock_ledger_service import create_stock_entry

SEED_ACTOR = 'seed'

DEMO_PARTS = [
    # part_id, name, part_number, category, unit_price, opening quantity, min threshold
    ('PART-BRK-001', 'Brake Pad Set', 'BP-2201', 'Brakes', Decimal('100.00'), 40, 10),
    ('PART-FLT-002', 'Oil Filter', 'OF-1180', 'Filters', Decimal('250.00'), 25, 5),
    ('PART-BAT-003', 'Battery 12V', 'BT-1200', 'Electrical', Decimal('4200.00'), 3, 4),
    ('PART-WPR-004', 'Wiper Blade', 'WB-0600', 'Body', Decimal('180.00'), 0, 6),
]


def seed() -> None:
    create_tables()
    with SessionLocal() as db:
        for part_id, name, part_number, category, unit_price, quantity, min_threshold in DEMO_PARTS:
            upsert_part(
                db,
                part_id=part_id,
                name=name,
                part_number=part_number,
                unit_price=unit_price,
                sku=part_number,
                category=category,
            )
            entry = db.execute(select(StockEntry).where(StockEntry.part_id == part_id)).scalar_one_or_none()
            if not entry:
                create_stock_entry(
                    db,
                    part_id=part_id,
                    actor=SEED_ACTOR,
                    quantity=quantity,
                    min_threshold=min_threshold,
                    location='Central Warehouse',
                )

        db.commit()


if __name__ == '__main__':
    seed()
    print('Seed data inserted/verified.')
