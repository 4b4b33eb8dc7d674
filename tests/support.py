from __future__ import annotations

import unittest
from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from central_inventory.auth import Principal, Role
from central_inventory.models import Base
from central_inventory.services import catalog_service, stock_ledger_service

ADMIN = Principal(id='u-admin', name='Asha Admin', role=Role.ADMIN)
MANAGER = Principal(id='u-cim', name='Chandra CIM', role=Role.CENTRAL_INVENTORY_MANAGER)
SC_MANAGER = Principal(id='u-scm', name='Sam SCM', role=Role.SERVICE_CENTER_MANAGER, service_center_id='SC-1')


def make_session_factory():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine, sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


class DatabaseTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine, self.session_factory = make_session_factory()
        self.db = self.session_factory()

    def tearDown(self) -> None:
        self.db.close()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def add_part(
        self,
        part_id: str,
        *,
        unit_price: str = '100.00',
        quantity: int = 0,
        min_threshold: int = 5,
        max_threshold: int = 100,
        name: str | None = None,
        category: str | None = None,
    ):
        catalog_service.upsert_part(
            self.db,
            part_id=part_id,
            name=name or f'Part {part_id}',
            part_number=f'PN-{part_id}',
            unit_price=Decimal(unit_price),
            sku=f'SKU-{part_id}',
            category=category,
        )
        return stock_ledger_service.create_stock_entry(
            self.db,
            part_id=part_id,
            actor='tests',
            quantity=quantity,
            min_threshold=min_threshold,
            max_threshold=max_threshold,
        )

    def stock_of(self, part_id: str) -> int:
        return stock_ledger_service.get_stock_entry(self.db, part_id).quantity
