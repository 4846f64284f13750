"""
Module: bullion_kernel.selectors.registry_selector
Responsibility: Read-only queries over the registry: the rows posted for a
    metal transaction, their per-leg totals, rows of one party and the
    running balance of a cost centre.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.

Invariants enforced:
    - Rows are always returned in ``seq`` order.
    - leg_totals() sums the cash and gold quad independently; a completed
      posting has cash_debit == cash_credit and gold_debit == gold_credit.

Failure modes:
    - Returns empty results or zero totals when no rows exist.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from bullion_kernel.db.types import ZERO, to_decimal
from bullion_kernel.models.registry import RegistryEntry
from bullion_kernel.selectors.base import BaseSelector

_SCALE = Decimal("0.000000001")


@dataclass(frozen=True)
class RegistryRow:
    """One posted registry row."""

    id: UUID
    seq: int
    transaction_id: str
    metal_transaction_id: UUID | None
    transaction_type: str
    type: str
    posting_code: str
    description: str
    party_id: UUID | None
    cost_center: str | None
    is_bullion: bool
    value: Decimal
    debit: Decimal
    credit: Decimal
    cash_debit: Decimal
    cash_credit: Decimal
    gold_debit: Decimal
    gold_credit: Decimal
    gross_weight: Decimal | None
    pure_weight: Decimal | None
    purity: Decimal | None
    transaction_date: datetime
    reference: str | None
    hedge_reference: str | None
    asset_type: str
    currency_rate: Decimal
    previous_balance: Decimal
    running_balance: Decimal


@dataclass(frozen=True)
class LegTotals:
    """Quad totals over a set of registry rows."""

    cash_debit: Decimal
    cash_credit: Decimal
    gold_debit: Decimal
    gold_credit: Decimal

    @property
    def is_balanced(self) -> bool:
        return self.cash_debit == self.cash_credit and self.gold_debit == self.gold_credit


def _to_row(entry: RegistryEntry) -> RegistryRow:
    return RegistryRow(
        id=entry.id,
        seq=entry.seq,
        transaction_id=entry.transaction_id,
        metal_transaction_id=entry.metal_transaction_id,
        transaction_type=entry.transaction_type,
        type=entry.type,
        posting_code=entry.posting_code,
        description=entry.description,
        party_id=entry.party_id,
        cost_center=entry.cost_center,
        is_bullion=entry.is_bullion,
        value=entry.value,
        debit=entry.debit,
        credit=entry.credit,
        cash_debit=entry.cash_debit,
        cash_credit=entry.cash_credit,
        gold_debit=entry.gold_debit,
        gold_credit=entry.gold_credit,
        gross_weight=entry.gross_weight,
        pure_weight=entry.pure_weight,
        purity=entry.purity,
        transaction_date=entry.transaction_date,
        reference=entry.reference,
        hedge_reference=entry.hedge_reference,
        asset_type=entry.asset_type,
        currency_rate=entry.currency_rate,
        previous_balance=entry.previous_balance,
        running_balance=entry.running_balance,
    )


class RegistrySelector(BaseSelector[RegistryEntry]):
    """Selector for registry queries."""

    def rows_for_transaction(self, metal_transaction_id: UUID) -> list[RegistryRow]:
        """All rows back-referencing a metal transaction, in seq order."""
        entries = self.session.execute(
            select(RegistryEntry)
            .where(RegistryEntry.metal_transaction_id == metal_transaction_id)
            .order_by(RegistryEntry.seq)
        ).scalars().all()
        return [_to_row(e) for e in entries]

    def rows_for_party(self, party_id: UUID) -> list[RegistryRow]:
        entries = self.session.execute(
            select(RegistryEntry)
            .where(RegistryEntry.party_id == party_id)
            .order_by(RegistryEntry.seq)
        ).scalars().all()
        return [_to_row(e) for e in entries]

    def count_for_transaction(self, metal_transaction_id: UUID) -> int:
        return self.session.execute(
            select(func.count(RegistryEntry.id)).where(
                RegistryEntry.metal_transaction_id == metal_transaction_id
            )
        ).scalar_one()

    def count_all(self) -> int:
        return self.session.execute(select(func.count(RegistryEntry.id))).scalar_one()

    def leg_totals(self, metal_transaction_id: UUID) -> LegTotals:
        """Sum of the cash and gold quad for one metal transaction."""
        row = self.session.execute(
            select(
                func.coalesce(func.sum(RegistryEntry.cash_debit), ZERO),
                func.coalesce(func.sum(RegistryEntry.cash_credit), ZERO),
                func.coalesce(func.sum(RegistryEntry.gold_debit), ZERO),
                func.coalesce(func.sum(RegistryEntry.gold_credit), ZERO),
            ).where(RegistryEntry.metal_transaction_id == metal_transaction_id)
        ).one()
        # Quantized to the column scale; some backends sum in floating point.
        cash_debit, cash_credit, gold_debit, gold_credit = (
            to_decimal(value).quantize(_SCALE) for value in row
        )
        return LegTotals(
            cash_debit=cash_debit,
            cash_credit=cash_credit,
            gold_debit=gold_debit,
            gold_credit=gold_credit,
        )

    def cost_center_balance(self, cost_center: str) -> Decimal:
        """Running balance of the latest row of a cost centre."""
        balance = self.session.execute(
            select(RegistryEntry.running_balance)
            .where(RegistryEntry.cost_center == cost_center)
            .order_by(RegistryEntry.seq.desc())
            .limit(1)
        ).scalar_one_or_none()
        return balance if balance is not None else ZERO
