"""
Module: bullion_kernel.models.metal_transaction
Responsibility: ORM persistence for the commercial event (MetalTransaction),
    its ordered stock lines and its other-charge entries.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - voucher_number is unique (uq_metal_transaction_voucher).
    - A transaction has at least one line (enforced by validation before
      persistence).
    - hedge_voucher_number is assigned at most once over the lifetime of
      the transaction.
    - Lines store the SKU policy values resolved when they were posted so a
      later reversal reproduces exactly the applied footprint.

Failure modes:
    - IntegrityError on duplicate voucher_number.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bullion_kernel.db.base import TrackedBase
from bullion_kernel.db.types import ZERO


class MetalTransaction(TrackedBase):
    """A purchase, sale, return, import or export of metal."""

    __tablename__ = "metal_transactions"

    __table_args__ = (
        UniqueConstraint("voucher_number", name="uq_metal_transaction_voucher"),
        Index("idx_metal_transaction_party", "party_id"),
        Index("idx_metal_transaction_type", "transaction_type"),
    )

    transaction_type: Mapped[str] = mapped_column(String(30), nullable=False)

    fixed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    unfix: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hedge: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    party_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    party_code: Mapped[str] = mapped_column(String(50), nullable=False)
    party_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    item_currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    base_currency: Mapped[str | None] = mapped_column(String(3), nullable=True)

    voucher_date: Mapped[datetime] = mapped_column(nullable=False)
    voucher_number: Mapped[str] = mapped_column(String(100), nullable=False)
    hedge_voucher_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    item_total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    deal_order_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("deal_orders.id"), nullable=True
    )

    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    lines: Mapped[list["MetalTransactionLine"]] = relationship(
        back_populates="transaction",
        order_by="MetalTransactionLine.line_no",
        cascade="all, delete-orphan",
    )

    other_charges: Mapped[list["MetalTransactionCharge"]] = relationship(
        back_populates="transaction",
        order_by="MetalTransactionCharge.line_no",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<MetalTransaction {self.voucher_number} {self.transaction_type}>"


class MetalTransactionLine(TrackedBase):
    """One stock line of a metal transaction."""

    __tablename__ = "metal_transaction_lines"

    __table_args__ = (
        UniqueConstraint("transaction_id", "line_no", name="uq_metal_line_no"),
    )

    transaction_id: Mapped[UUID] = mapped_column(
        ForeignKey("metal_transactions.id"), nullable=False
    )
    line_no: Mapped[int] = mapped_column(nullable=False)

    metal_stock_id: Mapped[UUID] = mapped_column(
        ForeignKey("metal_stocks.id"), nullable=False
    )
    stock_code: Mapped[str] = mapped_column(String(50), nullable=False)

    pieces: Mapped[int] = mapped_column(nullable=False, default=0)
    gross_weight: Mapped[Decimal] = mapped_column(nullable=False)
    purity: Mapped[Decimal] = mapped_column(nullable=False)
    purity_std: Mapped[Decimal] = mapped_column(nullable=False)
    pure_weight: Mapped[Decimal | None] = mapped_column(nullable=True)
    purity_difference: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    base_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    making_charges: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    premium: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    vat_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    other_charges_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    other_charges_description: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )

    metal_rate: Mapped[str | None] = mapped_column(String(50), nullable=True)
    rate_in_gram: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    bid_value: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    current_bid_value: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    pass_purity_diff: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    exclude_vat: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    vat_on_making: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    currency_code: Mapped[str | None] = mapped_column(String(3), nullable=True)
    currency_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    fx_gain: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    fx_loss: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    transaction: Mapped[MetalTransaction] = relationship(back_populates="lines")


class MetalTransactionCharge(TrackedBase):
    """A transaction-level other-charge entry (debit/credit pair with VAT)."""

    __tablename__ = "metal_transaction_charges"

    transaction_id: Mapped[UUID] = mapped_column(
        ForeignKey("metal_transactions.id"), nullable=False
    )
    line_no: Mapped[int] = mapped_column(nullable=False)

    description: Mapped[str] = mapped_column(String(255), nullable=False)

    debit_account: Mapped[str] = mapped_column(String(50), nullable=False)
    debit_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    debit_currency: Mapped[str | None] = mapped_column(String(3), nullable=True)

    credit_account: Mapped[str] = mapped_column(String(50), nullable=False)
    credit_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    credit_currency: Mapped[str | None] = mapped_column(String(3), nullable=True)

    vat_rate: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    vat_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    transaction: Mapped[MetalTransaction] = relationship(back_populates="other_charges")
