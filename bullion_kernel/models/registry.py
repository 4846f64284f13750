"""
Module: bullion_kernel.models.registry
Responsibility: ORM persistence for registry entries, the append-only ledger
    of postings produced by metal transactions.
Architecture position: Kernel > Models.  May import from db/ only.  Rows are
    written exclusively by services/registry_writer.py.

Invariants enforced:
    - At most one of (debit, credit) is positive (ck_registry_single_direction
      plus the writer's pre-insert guard).
    - seq is unique and monotonic; the running balance of a cost centre is
      folded in seq order: running = previous - debit + credit.
    - Rows are never updated.  On update/delete of a metal transaction they
      are deleted by metal_transaction_id and a fresh set is written.

Failure modes:
    - IntegrityError on duplicate seq or a violated check constraint.

Audit relevance:
    The registry is the record of what was posted.  Downstream ledgers filter
    on either (debit, credit) or the (cash_*, gold_*) quad, so both are kept.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bullion_kernel.db.base import TrackedBase, UUIDString
from bullion_kernel.db.types import ONE, ZERO


class RegistryEntry(TrackedBase):
    """One ledger posting."""

    __tablename__ = "registry_entries"

    __table_args__ = (
        UniqueConstraint("seq", name="uq_registry_seq"),
        CheckConstraint(
            "NOT (debit > 0 AND credit > 0)", name="ck_registry_single_direction"
        ),
        Index("idx_registry_transaction_id", "transaction_id"),
        Index("idx_registry_metal_transaction", "metal_transaction_id"),
        Index("idx_registry_cost_center", "cost_center", "seq"),
        Index("idx_registry_party", "party_id"),
        Index("idx_registry_type", "type"),
    )

    seq: Mapped[int] = mapped_column(nullable=False)

    # TXN<YYYY><3 digits>, shared by all rows of one posting
    transaction_id: Mapped[str] = mapped_column(String(20), nullable=False)
    metal_transaction_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True
    )
    transaction_type: Mapped[str] = mapped_column(String(30), nullable=False)

    type: Mapped[str] = mapped_column(String(40), nullable=False)
    posting_code: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)

    party_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    cost_center: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_bullion: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    value: Mapped[Decimal] = mapped_column(nullable=False)
    debit: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    credit: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    cash_debit: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    cash_credit: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    gold_debit: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    gold_credit: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    gold_bid_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    gross_weight: Mapped[Decimal | None] = mapped_column(nullable=True)
    pure_weight: Mapped[Decimal | None] = mapped_column(nullable=True)
    purity: Mapped[Decimal | None] = mapped_column(nullable=True)

    transaction_date: Mapped[datetime] = mapped_column(nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    hedge_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    asset_type: Mapped[str] = mapped_column(String(3), nullable=False, default="AED")
    currency_rate: Mapped[Decimal] = mapped_column(nullable=False, default=ONE)
    deal_order_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    previous_balance: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    running_balance: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    def __repr__(self) -> str:
        return (
            f"<RegistryEntry {self.seq} {self.type} "
            f"dr={self.debit} cr={self.credit}>"
        )
