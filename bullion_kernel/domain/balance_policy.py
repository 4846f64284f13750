"""
Balance policy -- the party balance-change vector for a posting.

Responsibility:
    Derive, from line totals, the transaction type, the mode and the hedge
    flag, the signed change applied to the party's gold balance and to its
    cash row in the party currency.  Other-charge entries are turned into
    per-account cash deltas separately.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Consumed by the
    balance service for posting and, with sign -1, for reversal.

Matrix (sign of the party side; s = +1 inbound, -1 outbound):

    mode   gold      gold_value  cash  premium  discount  vat     other
    unfix  s*pw      s*gv        s*mk  s*pr     -s*dc     s*vat   s*oc
    fix    0         0           s*total (all cash-bearing components folded)

    A hedge adds (-s*pw, -s*gv) to the gold components and +s*gv to cash.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from bullion_kernel.db.types import ZERO, round_money
from bullion_kernel.domain.dtos import OtherChargeInput
from bullion_kernel.domain.line_totaliser import LineTotals
from bullion_kernel.domain.transaction_types import (
    TransactionMode,
    TransactionType,
    direction_sign,
)


@dataclass(frozen=True)
class BalanceChange:
    """Signed change to one party's balances."""

    gold_balance: Decimal = ZERO
    gold_value: Decimal = ZERO
    cash_balance: Decimal = ZERO
    premium_balance: Decimal = ZERO
    discount_balance: Decimal = ZERO
    other_charges: Decimal = ZERO
    vat_amount: Decimal = ZERO

    @property
    def net_cash(self) -> Decimal:
        """Algebraic sum of the five cash-bearing components, rounded to cents."""
        return round_money(
            self.cash_balance
            + self.premium_balance
            + self.discount_balance
            + self.other_charges
            + self.vat_amount
        )

    def scaled(self, factor: int) -> BalanceChange:
        return BalanceChange(
            gold_balance=self.gold_balance * factor,
            gold_value=self.gold_value * factor,
            cash_balance=self.cash_balance * factor,
            premium_balance=self.premium_balance * factor,
            discount_balance=self.discount_balance * factor,
            other_charges=self.other_charges * factor,
            vat_amount=self.vat_amount * factor,
        )

    def is_zero(self) -> bool:
        return self.gold_balance == 0 and self.gold_value == 0 and self.net_cash == 0


def compute_balance_change(
    transaction_type: TransactionType,
    mode: TransactionMode,
    hedge: bool,
    totals: LineTotals,
) -> BalanceChange:
    """Balance-change vector for one posting, party side."""
    s = direction_sign(transaction_type)

    if mode is TransactionMode.FIX:
        total = totals.total_amount if totals.total_amount else totals.computed_total
        change = BalanceChange(cash_balance=s * total)
    else:
        change = BalanceChange(
            gold_balance=s * totals.pure_weight,
            gold_value=s * totals.gold_value,
            cash_balance=s * totals.making_charges,
            premium_balance=s * totals.premium,
            discount_balance=-s * totals.discount,
            other_charges=s * totals.other_charges_amount,
            vat_amount=s * totals.effective_vat,
        )

    if hedge:
        change = BalanceChange(
            gold_balance=change.gold_balance - s * totals.pure_weight,
            gold_value=change.gold_value - s * totals.gold_value,
            cash_balance=change.cash_balance + s * totals.gold_value,
            premium_balance=change.premium_balance,
            discount_balance=change.discount_balance,
            other_charges=change.other_charges,
            vat_amount=change.vat_amount,
        )
    return change


def other_charge_deltas(
    charges: Iterable[OtherChargeInput],
    default_currency: str,
) -> dict[tuple[str, str], Decimal]:
    """
    Per-(account, currency) cash deltas of other-charge entries.

    The debit account is decreased and the credit account increased by the
    charge amount plus its VAT.
    """
    deltas: dict[tuple[str, str], Decimal] = defaultdict(lambda: ZERO)
    for charge in charges:
        debit_key = (charge.debit.account, charge.debit.currency or default_currency)
        credit_key = (
            charge.credit.account,
            charge.credit.currency or default_currency,
        )
        deltas[debit_key] -= charge.debit.amount + charge.vat_amount
        deltas[credit_key] += charge.credit.amount + charge.vat_amount
    return dict(deltas)
