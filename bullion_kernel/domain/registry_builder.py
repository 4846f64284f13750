"""
Registry entry builder -- stock line totals to posting candidates.

Responsibility:
    For one line's totals, the transaction context and the posting mode,
    emit the ordered list of registry posting candidates covering every
    applicable posting class.  Other-charge entries of the transaction are
    built separately, once per transaction.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The registry writer
    (services/registry_writer.py) turns candidates into RegistryEntry rows.

Invariants enforced:
    - Double entry: for the candidates of a line,
      sum(cash_debit) == sum(cash_credit) and sum(gold_debit) == sum(gold_credit).
    - Single direction: exactly one of (debit, credit) is non-zero on a row
      with a positive value.
    - Non-negative magnitudes: ``value`` is always >= 0 and rows whose value
      is not positive are dropped unless their class is allow-listed.
    - Party-side rows sit on the credit side for inbound transaction types and
      on the debit side for outbound ones; counterpart rows take the other side.

Failure modes:
    - UnbalancedPostingError from ``check_balanced`` when the cash or gold
      leg does not balance.

Dispatch:
    ``_DISPATCH`` maps (mode, hedge) to the ordered steps that emit rows.
    The transaction type contributes the direction and the fixing tag.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable, Mapping
from uuid import UUID

from bullion_config.schema import LedgerAccounts
from bullion_kernel.db.types import ONE, ZERO
from bullion_kernel.domain.dtos import OtherChargeInput
from bullion_kernel.domain.line_totaliser import LineTotals
from bullion_kernel.domain.posting_classes import (
    NON_POSITIVE_ALLOWED,
    PostingClass,
    PostingCode,
)
from bullion_kernel.domain.transaction_types import (
    TransactionMode,
    TransactionType,
    direction_sign,
    is_purchase_side,
)
from bullion_kernel.exceptions import UnbalancedPostingError

CASH = "cash"
GOLD = "gold"
MEMO = "memo"

_VERBS = {
    TransactionType.PURCHASE: "Purchase from",
    TransactionType.SALE: "Sale to",
    TransactionType.PURCHASE_RETURN: "Purchase return to",
    TransactionType.SALE_RETURN: "Sale return from",
    TransactionType.IMPORT_PURCHASE: "Import purchase from",
    TransactionType.IMPORT_PURCHASE_RETURN: "Import purchase return to",
    TransactionType.EXPORT_SALE: "Export sale to",
    TransactionType.EXPORT_SALE_RETURN: "Export sale return from",
}


@dataclass(frozen=True)
class PostingCandidate:
    """A registry row before persistence.

    Shared fields (group transaction id, metal transaction id, date, creator)
    are stamped by the registry writer.
    """

    posting_class: str
    posting_code: str
    description: str
    party_id: UUID | None
    cost_center: str
    is_bullion: bool
    value: Decimal
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    cash_debit: Decimal = ZERO
    cash_credit: Decimal = ZERO
    gold_debit: Decimal = ZERO
    gold_credit: Decimal = ZERO
    gold_bid_value: Decimal | None = None
    gross_weight: Decimal | None = None
    pure_weight: Decimal | None = None
    purity: Decimal | None = None
    reference: str | None = None
    hedge_reference: str | None = None
    asset_type: str = "AED"
    currency_rate: Decimal = ONE
    deal_order_id: UUID | None = None


@dataclass(frozen=True)
class PostingContext:
    """Transaction-level inputs shared by every line of one posting."""

    transaction_type: TransactionType
    mode: TransactionMode
    hedge: bool
    party_id: UUID
    party_code: str
    party_name: str
    party_currency: str
    voucher_number: str
    hedge_voucher_number: str | None = None
    deal_order_id: UUID | None = None

    @property
    def sign(self) -> int:
        return direction_sign(self.transaction_type)

    @property
    def party_on_credit(self) -> bool:
        return self.sign > 0

    @property
    def display_name(self) -> str:
        return self.party_name or self.party_code

    @property
    def fixing_class(self) -> PostingClass:
        if is_purchase_side(self.transaction_type):
            return PostingClass.PURCHASE_FIXING
        return PostingClass.SALE_FIXING


def _fmt(value: Decimal) -> str:
    return format(value.normalize(), "f")


def _sides(value: Decimal, on_credit: bool, leg: str) -> dict[str, Decimal]:
    if on_credit:
        sides = {"credit": value}
        if leg == CASH:
            sides["cash_credit"] = value
        elif leg == GOLD:
            sides["gold_credit"] = value
    else:
        sides = {"debit": value}
        if leg == CASH:
            sides["cash_debit"] = value
        elif leg == GOLD:
            sides["gold_debit"] = value
    return sides


def _keep(row: PostingCandidate) -> bool:
    return row.value > 0 or row.posting_class in NON_POSITIVE_ALLOWED


class RegistryEntryBuilder:
    """
    Builds posting candidates for metal transactions.

    One instance per configuration; stateless across calls.
    """

    def __init__(
        self,
        accounts: LedgerAccounts,
        base_currency: str = "AED",
        default_currency_rate: Decimal = ONE,
    ):
        self._accounts = accounts
        self._base_currency = base_currency
        self._default_rate = default_currency_rate

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build_line_entries(
        self, ctx: PostingContext, totals: LineTotals
    ) -> list[PostingCandidate]:
        """Emit the candidates for one stock line, in posting order."""
        rows: list[PostingCandidate] = []
        for step in _DISPATCH[(ctx.mode, ctx.hedge)]:
            rows.extend(step(self, ctx, totals))
        return [row for row in rows if _keep(row)]

    def build_other_charge_entries(
        self,
        ctx: PostingContext,
        charges: Iterable[OtherChargeInput],
        charge_parties: Mapping[str, UUID],
    ) -> list[PostingCandidate]:
        """
        Emit up to four cash rows per other-charge entry.

        The debit row (and its VAT row) sits on the debit account, the credit
        row (and its VAT row) on the credit account.  Rows are denominated in
        the entry's currency, falling back to the party currency.
        """
        rows: list[PostingCandidate] = []
        for charge in charges:
            for leg, on_credit in ((charge.debit, False), (charge.credit, True)):
                currency = leg.currency or ctx.party_currency
                common = dict(
                    party_id=charge_parties.get(leg.account),
                    cost_center=leg.account,
                    is_bullion=False,
                    reference=ctx.voucher_number,
                    asset_type=currency,
                    currency_rate=self._default_rate,
                    deal_order_id=ctx.deal_order_id,
                )
                rows.append(
                    PostingCandidate(
                        posting_class=PostingClass.OTHER_CHARGE.value,
                        posting_code=PostingCode.OTHER_CHARGE.value,
                        description=f"{charge.description} - {leg.account}",
                        value=leg.amount,
                        **_sides(leg.amount, on_credit, CASH),
                        **common,
                    )
                )
                rows.append(
                    PostingCandidate(
                        posting_class=PostingClass.OTHER_CHARGE.value,
                        posting_code=PostingCode.OTHER_CHARGE_VAT.value,
                        description=(
                            f"VAT {_fmt(charge.vat_rate)}% on {charge.description}"
                            f" - {leg.account}"
                        ),
                        value=charge.vat_amount,
                        **_sides(charge.vat_amount, on_credit, CASH),
                        **common,
                    )
                )
        return [row for row in rows if _keep(row)]

    # ------------------------------------------------------------------
    # Row factory
    # ------------------------------------------------------------------

    def _row(
        self,
        ctx: PostingContext,
        totals: LineTotals,
        posting_class: PostingClass,
        posting_code: PostingCode,
        description: str,
        value: Decimal,
        on_credit: bool,
        leg: str,
        cost_center: str | None = None,
        is_bullion: bool = False,
        reference: str | None = None,
        hedge_reference: str | None = None,
    ) -> PostingCandidate:
        """Party row when ``cost_center`` is None, house row otherwise."""
        metal = {}
        if is_bullion:
            metal = dict(
                gross_weight=totals.gross_weight,
                pure_weight=totals.pure_weight,
                purity=totals.purity,
                gold_bid_value=totals.bid_value,
            )
        return PostingCandidate(
            posting_class=posting_class.value,
            posting_code=posting_code.value,
            description=description,
            party_id=ctx.party_id if cost_center is None else None,
            cost_center=cost_center or ctx.party_code,
            is_bullion=is_bullion,
            value=value,
            reference=reference or ctx.voucher_number,
            hedge_reference=hedge_reference,
            asset_type=totals.currency_code or self._base_currency,
            currency_rate=totals.currency_rate or self._default_rate,
            deal_order_id=ctx.deal_order_id,
            **_sides(value, on_credit, leg),
            **metal,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _metal_leg(self, ctx: PostingContext, t: LineTotals) -> list[PostingCandidate]:
        """Party gold row, purity difference, gold inventory and gross stock memo."""
        n = ctx.display_name
        verb = _VERBS[ctx.transaction_type]
        party = ctx.party_on_credit
        d = t.purity_difference

        if ctx.mode is TransactionMode.FIX:
            party_class = ctx.fixing_class
            label = "Party gold fixing"
        else:
            party_class = PostingClass.PARTY_GOLD_BALANCE
            label = "Party gold"

        rows = [
            self._row(
                ctx, t, party_class, PostingCode.PARTY_GOLD,
                f"{label} - {verb} {n}",
                value=t.pure_weight - d, on_credit=party, leg=GOLD,
                is_bullion=True,
            )
        ]
        if d != 0:
            tag = f"(Gain {_fmt(d)})" if d > 0 else f"(Loss {_fmt(d)})"
            rows.append(
                self._row(
                    ctx, t, PostingClass.PURITY_DIFFERENCE,
                    PostingCode.PURITY_DIFFERENCE,
                    f"Purity difference {tag} - {n}",
                    value=abs(d), on_credit=party if d > 0 else not party,
                    leg=GOLD, is_bullion=True,
                )
            )
        rows.append(
            self._row(
                ctx, t, PostingClass.GOLD, PostingCode.GOLD,
                f"Gold inventory - {n}",
                value=t.pure_weight, on_credit=not party, leg=GOLD,
                cost_center=self._accounts.inventory_gold, is_bullion=True,
            )
        )
        rows.append(
            self._row(
                ctx, t, PostingClass.GOLD_STOCK, PostingCode.GOLD_STOCK,
                f"Gold stock (gross) - {n}",
                value=t.gross_weight, on_credit=not party, leg=MEMO,
                cost_center=self._accounts.gold_stock, is_bullion=True,
            )
        )
        return rows

    def _fixing_cash_leg(
        self, ctx: PostingContext, t: LineTotals
    ) -> list[PostingCandidate]:
        """Fix mode: the gold value moves to the party's cash account."""
        n = ctx.display_name
        verb = _VERBS[ctx.transaction_type]
        party = ctx.party_on_credit
        return [
            self._row(
                ctx, t, PostingClass.PARTY_CASH_BALANCE, PostingCode.PARTY_CASH,
                f"Cash - {verb} {n}",
                value=t.gold_value, on_credit=party, leg=CASH,
            ),
            self._row(
                ctx, t, ctx.fixing_class, PostingCode.PARTY_GOLD,
                f"Fixed gold - {verb} {n}",
                value=t.gold_value, on_credit=not party, leg=CASH,
                cost_center=self._accounts.fixed_gold,
            ),
        ]

    def _hedge_leg(self, ctx: PostingContext, t: LineTotals) -> list[PostingCandidate]:
        """The hedge triple: party gold out, party cash in, house hedge position."""
        n = ctx.display_name
        party = ctx.party_on_credit
        hedge_ref = ctx.hedge_voucher_number
        party_hedge = self._row(
            ctx, t, PostingClass.PARTY_HEDGE_ENTRY, PostingCode.HEDGE,
            f"Hedge gold - {n}",
            value=t.pure_weight, on_credit=not party, leg=GOLD,
            is_bullion=True, hedge_reference=hedge_ref,
        )
        party_cash = self._row(
            ctx, t, PostingClass.PARTY_CASH_BALANCE, PostingCode.PARTY_CASH,
            f"Hedge cash - {n}",
            value=t.gold_value, on_credit=party, leg=CASH,
            hedge_reference=hedge_ref,
        )
        house = self._row(
            ctx, t, PostingClass.HEDGE_ENTRY, PostingCode.HEDGE,
            f"Hedge position - {n}",
            value=t.pure_weight, on_credit=party, leg=GOLD,
            cost_center=self._accounts.hedge, is_bullion=True,
            reference=hedge_ref, hedge_reference=hedge_ref,
        )
        cash_side = "cash_debit" if party else "cash_credit"
        house = replace(house, **{cash_side: t.gold_value})
        return [party_hedge, party_cash, house]

    def _charge_legs(self, ctx: PostingContext, t: LineTotals) -> list[PostingCandidate]:
        """Making, premium, discount, VAT and line-level other charges."""
        n = ctx.display_name
        party = ctx.party_on_credit
        acc = self._accounts
        rows: list[PostingCandidate] = []

        def pair(party_class, house_class, code, label, value, account, party_side):
            rows.append(
                self._row(
                    ctx, t, party_class, code, f"{label} - {n}",
                    value=value, on_credit=party_side, leg=CASH,
                )
            )
            rows.append(
                self._row(
                    ctx, t, house_class, code, f"{label} - {n}",
                    value=value, on_credit=not party_side, leg=CASH,
                    cost_center=account,
                )
            )

        if t.making_charges > 0:
            pair(
                PostingClass.PARTY_MAKING_CHARGES, PostingClass.MAKING_CHARGES,
                PostingCode.MAKING, "Making charges", t.making_charges,
                acc.making_charges, party,
            )
        if t.premium > 0:
            pair(
                PostingClass.PARTY_PREMIUM, PostingClass.PREMIUM,
                PostingCode.PREMIUM, "Premium", t.premium,
                acc.premium_discount, party,
            )
        if t.discount > 0:
            pair(
                PostingClass.PARTY_DISCOUNT, PostingClass.DISCOUNT,
                PostingCode.DISCOUNT, "Discount", t.discount,
                acc.premium_discount, not party,
            )
        if t.effective_vat > 0:
            if t.vat_on_making:
                label = f"VAT on making {_fmt(t.making_charges)}"
            else:
                label = f"VAT on gold value {_fmt(t.gold_value)}"
            pair(
                PostingClass.PARTY_VAT_AMOUNT, PostingClass.VAT_AMOUNT,
                PostingCode.VAT, label, t.effective_vat, acc.vat, party,
            )
        if t.other_charges_amount > 0:
            pair(
                PostingClass.OTHER_CHARGE, PostingClass.OTHER_CHARGE,
                PostingCode.OTHER_CHARGE, t.other_charges_description or "Other",
                t.other_charges_amount, acc.other_charges, party,
            )
        return rows

    def _fx_leg(self, ctx: PostingContext, t: LineTotals) -> list[PostingCandidate]:
        """FX gain credits and FX loss debits the FX account; no party effect."""
        n = ctx.display_name
        acc = self._accounts
        rows: list[PostingCandidate] = []
        for amount, label, fx_on_credit in (
            (t.fx_gain, "FX gain", True),
            (t.fx_loss, "FX loss", False),
        ):
            if amount <= 0:
                continue
            rows.append(
                self._row(
                    ctx, t, PostingClass.FX_EXCHANGE, PostingCode.FX,
                    f"{label} - {n}", value=amount, on_credit=fx_on_credit,
                    leg=CASH, cost_center=acc.fx_gain_loss,
                )
            )
            rows.append(
                self._row(
                    ctx, t, PostingClass.FX_EXCHANGE, PostingCode.FX,
                    f"{label} clearing - {n}", value=amount,
                    on_credit=not fx_on_credit, leg=CASH,
                    cost_center=acc.fx_clearing,
                )
            )
        return rows


_BASE_STEPS = (
    RegistryEntryBuilder._charge_legs,
    RegistryEntryBuilder._fx_leg,
)

_DISPATCH = {
    (TransactionMode.UNFIX, False): (RegistryEntryBuilder._metal_leg,) + _BASE_STEPS,
    (TransactionMode.UNFIX, True): (
        RegistryEntryBuilder._metal_leg,
        RegistryEntryBuilder._hedge_leg,
    ) + _BASE_STEPS,
    (TransactionMode.FIX, False): (
        RegistryEntryBuilder._metal_leg,
        RegistryEntryBuilder._fixing_cash_leg,
    ) + _BASE_STEPS,
    (TransactionMode.FIX, True): (
        RegistryEntryBuilder._metal_leg,
        RegistryEntryBuilder._fixing_cash_leg,
        RegistryEntryBuilder._hedge_leg,
    ) + _BASE_STEPS,
}


def leg_totals(candidates: Iterable[PostingCandidate]) -> dict[str, Decimal]:
    """Sum the cash and gold quad over candidates."""
    totals = {
        "cash_debit": ZERO,
        "cash_credit": ZERO,
        "gold_debit": ZERO,
        "gold_credit": ZERO,
    }
    for row in candidates:
        totals["cash_debit"] += row.cash_debit
        totals["cash_credit"] += row.cash_credit
        totals["gold_debit"] += row.gold_debit
        totals["gold_credit"] += row.gold_credit
    return totals


def check_balanced(candidates: Iterable[PostingCandidate]) -> None:
    """
    Verify double entry on the cash and gold legs independently.

    Raises:
        UnbalancedPostingError: naming the first leg that does not balance.
    """
    totals = leg_totals(candidates)
    for leg in (CASH, GOLD):
        debits = totals[f"{leg}_debit"]
        credits = totals[f"{leg}_credit"]
        if debits != credits:
            raise UnbalancedPostingError(leg, str(debits), str(credits))
