"""
Module: bullion_kernel.models.fixing
Responsibility: ORM persistence for price fixings (FixingPrice, opened for
    fixed transactions) and hedge fixings (TransactionFixing with its single
    TransactionFixingOrder, opened for hedged transactions).
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - TransactionFixing.transaction_id (HSM/HPM + 4 digits) is unique.
    - TransactionFixing.voucher_number equals the metal transaction's hedge
      voucher number; reference_number carries the commercial voucher.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bullion_kernel.db.base import TrackedBase, UUIDString
from bullion_kernel.db.types import ONE, ZERO


class FixingStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class FixingPrice(TrackedBase):
    """Rate snapshot taken when a transaction is fixed."""

    __tablename__ = "fixing_prices"

    __table_args__ = (
        Index("idx_fixing_price_transaction", "metal_transaction_id"),
    )

    metal_transaction_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    metal_rate: Mapped[str | None] = mapped_column(String(50), nullable=True)
    rate_in_gram: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    bid_value: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    current_bid_value: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    entry_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    fixed_at: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=FixingStatus.ACTIVE.value
    )


class TransactionFixing(TrackedBase):
    """Hedge position opened alongside a hedged metal transaction."""

    __tablename__ = "transaction_fixings"

    __table_args__ = (
        UniqueConstraint("transaction_id", name="uq_transaction_fixing_id"),
        Index("idx_transaction_fixing_metal", "metal_transaction_id"),
    )

    transaction_id: Mapped[str] = mapped_column(String(20), nullable=False)
    metal_transaction_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    party_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    voucher_number: Mapped[str] = mapped_column(String(100), nullable=False)
    reference_number: Mapped[str] = mapped_column(String(100), nullable=False)
    transaction_date: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=FixingStatus.ACTIVE.value
    )
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    orders: Mapped[list["TransactionFixingOrder"]] = relationship(
        back_populates="fixing",
        cascade="all, delete-orphan",
    )


class TransactionFixingOrder(TrackedBase):
    """The hedged quantity and the bid snapshot it was hedged at."""

    __tablename__ = "transaction_fixing_orders"

    fixing_id: Mapped[UUID] = mapped_column(
        ForeignKey("transaction_fixings.id"), nullable=False
    )
    commodity: Mapped[str] = mapped_column(String(50), nullable=False)
    metal_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    gross_weight: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    pure_weight: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    purity: Mapped[Decimal] = mapped_column(nullable=False, default=ONE)
    one_gram_rate: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    current_bid_value: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    bid_value: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    price: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    fixing: Mapped[TransactionFixing] = relationship(back_populates="orders")
