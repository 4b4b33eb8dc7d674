from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigIntPK = BigInteger().with_variant(Integer, 'sqlite')


class Base(DeclarativeBase):
    pass


class StockStatus(str, Enum):
    IN_STOCK = 'IN_STOCK'
    LOW_STOCK = 'LOW_STOCK'
    OUT_OF_STOCK = 'OUT_OF_STOCK'


class AdjustmentKind(str, Enum):
    ADD = 'ADD'
    REMOVE = 'REMOVE'
    ADJUST = 'ADJUST'
    TRANSFER = 'TRANSFER'


class PurchaseOrderPriority(str, Enum):
    LOW = 'LOW'
    NORMAL = 'NORMAL'
    HIGH = 'HIGH'
    URGENT = 'URGENT'


class PurchaseOrderStatus(str, Enum):
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'
    PARTIALLY_FULFILLED = 'PARTIALLY_FULFILLED'
    FULFILLED = 'FULFILLED'


class PartsIssueStatus(str, Enum):
    PENDING = 'PENDING'
    PENDING_ADMIN_APPROVAL = 'PENDING_ADMIN_APPROVAL'
    ADMIN_APPROVED = 'ADMIN_APPROVED'
    ADMIN_REJECTED = 'ADMIN_REJECTED'
    ISSUED = 'ISSUED'
    RECEIVED = 'RECEIVED'
    CANCELLED = 'CANCELLED'


def compute_stock_status(quantity: int, min_threshold: int) -> StockStatus:
    if quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if quantity < min_threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


class Part(Base):
    __tablename__ = 'parts'

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    part_number: Mapped[str] = mapped_column(Text, nullable=False)
    sku: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(Text)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal('0'))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class StockEntry(Base):
    __tablename__ = 'stock_entries'
    __table_args__ = (
        CheckConstraint('quantity >= 0', name='stock_entries_quantity_non_negative'),
        CheckConstraint('min_threshold >= 0', name='stock_entries_min_threshold_non_negative'),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    part_id: Mapped[str] = mapped_column(Text, ForeignKey('parts.id'), nullable=False, unique=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    min_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    max_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    location: Mapped[str | None] = mapped_column(Text)
    updated_by: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    part: Mapped[Part] = relationship()

    @property
    def status(self) -> StockStatus:
        return compute_stock_status(self.quantity, self.min_threshold)


class StockAdjustment(Base):
    __tablename__ = 'stock_adjustments'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    stock_entry_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('stock_entries.id'), nullable=False, index=True)
    part_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    kind: Mapped[AdjustmentKind] = mapped_column(SQLEnum(AdjustmentKind, name='adjustment_kind'), nullable=False)
    quantity_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_before: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_after: Mapped[int] = mapped_column(Integer, nullable=False)
    actor: Mapped[str] = mapped_column(Text, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    reference_number: Mapped[str | None] = mapped_column(Text, index=True)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class DocumentSequence(Base):
    __tablename__ = 'document_sequences'
    __table_args__ = (UniqueConstraint('prefix', 'period', name='document_sequences_prefix_period_uniq'),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    prefix: Mapped[str] = mapped_column(String(16), nullable=False)
    period: Mapped[str] = mapped_column(String(16), nullable=False)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')


class PurchaseOrder(Base):
    __tablename__ = 'purchase_orders'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    po_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    service_center_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    requested_by: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[PurchaseOrderPriority] = mapped_column(
        SQLEnum(PurchaseOrderPriority, name='purchase_order_priority'),
        nullable=False,
        default=PurchaseOrderPriority.NORMAL,
        server_default='NORMAL',
    )
    status: Mapped[PurchaseOrderStatus] = mapped_column(
        SQLEnum(PurchaseOrderStatus, name='purchase_order_status'),
        nullable=False,
        default=PurchaseOrderStatus.PENDING,
        server_default='PENDING',
    )
    approved_by: Mapped[str | None] = mapped_column(Text)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejected_by: Mapped[str | None] = mapped_column(Text)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    fulfilled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    notes: Mapped[str | None] = mapped_column(Text)
    job_card_id: Mapped[str | None] = mapped_column(Text)
    vehicle_number: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    items: Mapped[list[PurchaseOrderItem]] = relationship(
        back_populates='purchase_order',
        cascade='all, delete-orphan',
        order_by='PurchaseOrderItem.id',
        lazy='selectin',
    )

    @property
    def total_amount(self) -> Decimal:
        return sum((item.total_price for item in self.items), Decimal('0'))


class PurchaseOrderItem(Base):
    __tablename__ = 'purchase_order_items'
    __table_args__ = (
        CheckConstraint('requested_qty > 0', name='purchase_order_items_requested_positive'),
        CheckConstraint(
            'approved_qty IS NULL OR (approved_qty >= 0 AND approved_qty <= requested_qty)',
            name='purchase_order_items_approved_within_request',
        ),
        CheckConstraint('issued_qty >= 0', name='purchase_order_items_issued_non_negative'),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    purchase_order_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey('purchase_orders.id', ondelete='CASCADE'), nullable=False, index=True
    )
    part_id: Mapped[str] = mapped_column(Text, ForeignKey('parts.id'), nullable=False)
    requested_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    approved_qty: Mapped[int | None] = mapped_column(Integer)
    issued_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)

    purchase_order: Mapped[PurchaseOrder] = relationship(back_populates='items')

    @property
    def total_price(self) -> Decimal:
        return Decimal(self.unit_price) * self.requested_qty


class PartsIssue(Base):
    __tablename__ = 'parts_issues'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    issue_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    service_center_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    purchase_order_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('purchase_orders.id'), index=True)
    status: Mapped[PartsIssueStatus] = mapped_column(
        SQLEnum(PartsIssueStatus, name='parts_issue_status'),
        nullable=False,
        default=PartsIssueStatus.PENDING_ADMIN_APPROVAL,
        server_default='PENDING_ADMIN_APPROVAL',
    )
    issued_by: Mapped[str] = mapped_column(Text, nullable=False)
    sent_to_admin_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_by: Mapped[str | None] = mapped_column(Text)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejected_by: Mapped[str | None] = mapped_column(Text)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    dispatched_by: Mapped[str | None] = mapped_column(Text)
    dispatched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    transporter: Mapped[str | None] = mapped_column(Text)
    tracking_number: Mapped[str | None] = mapped_column(Text)
    expected_delivery: Mapped[str | None] = mapped_column(Text)
    received_by: Mapped[str | None] = mapped_column(Text)
    received_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_by: Mapped[str | None] = mapped_column(Text)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancellation_reason: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    items: Mapped[list[PartsIssueItem]] = relationship(
        back_populates='parts_issue',
        cascade='all, delete-orphan',
        order_by='PartsIssueItem.id',
        lazy='selectin',
    )

    @property
    def total_amount(self) -> Decimal:
        return sum((item.total_price for item in self.items), Decimal('0'))


class PartsIssueItem(Base):
    __tablename__ = 'parts_issue_items'
    __table_args__ = (
        CheckConstraint('requested_qty > 0', name='parts_issue_items_requested_positive'),
        CheckConstraint(
            'approved_qty IS NULL OR (approved_qty >= 0 AND approved_qty <= requested_qty)',
            name='parts_issue_items_approved_within_request',
        ),
        CheckConstraint('issued_qty >= 0', name='parts_issue_items_issued_non_negative'),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    parts_issue_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey('parts_issues.id', ondelete='CASCADE'), nullable=False, index=True
    )
    part_id: Mapped[str] = mapped_column(Text, ForeignKey('parts.id'), nullable=False)
    from_stock_entry_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('stock_entries.id'), nullable=False)
    requested_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    approved_qty: Mapped[int | None] = mapped_column(Integer)
    issued_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    received_qty: Mapped[int | None] = mapped_column(Integer)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    parts_issue: Mapped[PartsIssue] = relationship(back_populates='items')

    @property
    def quantity(self) -> int:
        return self.approved_qty if self.approved_qty is not None else self.requested_qty

    @property
    def total_price(self) -> Decimal:
        return Decimal(self.unit_price) * self.quantity
