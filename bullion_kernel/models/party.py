"""
Module: bullion_kernel.models.party
Responsibility: ORM persistence for trading counterparties (customers and
    suppliers) and their gold and multi-currency cash balances.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - party_code is globally unique (uq_party_code).
    - Exactly one cash row per (party, currency) (uq_party_cash_currency).
    - gold_total_grams may be negative (short position).

Failure modes:
    - IntegrityError on duplicate party_code or duplicate cash row.

Audit relevance:
    Balances are only ever changed by atomic increments issued from
    services/balance_service.py; every change is mirrored by party-side
    registry rows.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bullion_kernel.db.base import TrackedBase
from bullion_kernel.db.types import ZERO


class Party(TrackedBase):
    """
    Counterparty account.

    Guarantees:
        - party_code is unique and used as the registry cost centre of
          party-side rows.
        - can_transact is False for deactivated parties.
    """

    __tablename__ = "parties"

    __table_args__ = (
        UniqueConstraint("party_code", name="uq_party_code"),
        Index("idx_party_active", "is_active"),
    )

    party_code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Gold balance (grams of pure metal and its value)
    gold_total_grams: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    gold_total_value: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    gold_last_updated: Mapped[datetime | None] = mapped_column(nullable=True)

    last_balance_update: Mapped[datetime | None] = mapped_column(nullable=True)

    cash_balances: Mapped[list["PartyCashBalance"]] = relationship(
        back_populates="party",
        order_by="PartyCashBalance.created_at",
        cascade="all, delete-orphan",
    )

    @property
    def can_transact(self) -> bool:
        return self.is_active

    def cash_row(self, currency: str) -> "PartyCashBalance | None":
        for row in self.cash_balances:
            if row.currency == currency:
                return row
        return None

    def __repr__(self) -> str:
        return f"<Party {self.party_code}: {self.name}>"


class PartyCashBalance(TrackedBase):
    """One currency row of a party's cash balance."""

    __tablename__ = "party_cash_balances"

    __table_args__ = (
        UniqueConstraint("party_id", "currency", name="uq_party_cash_currency"),
    )

    party_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    last_updated: Mapped[datetime | None] = mapped_column(nullable=True)

    party: Mapped[Party] = relationship(back_populates="cash_balances")

    def __repr__(self) -> str:
        return f"<PartyCashBalance {self.currency} {self.amount}>"
