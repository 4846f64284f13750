"""
Line totaliser -- fold stock lines into a normalised totals record.

Responsibility:
    Pure function from a list of stock lines (policy already resolved) to a
    ``LineTotals`` record holding summed weights and monetary fields plus the
    scalar rate/currency/policy fields of the last line.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Purity pass-through: the measured purity and pure weight are kept only
      when ``purity_difference > 0`` and ``pass_purity_diff`` is set;
      otherwise the standard purity and standard pure weight are used.
    - A non-zero purity difference is carried forward whenever
      ``pass_purity_diff`` is set, negative (loss) as well as positive.
    - VAT exclusion is applied per line before folding.
    - Currency conversion: monetary fields are multiplied by the line's
      ``currency_rate`` only when ``is_registry`` is true.
    - Discount is the absolute value of a negative premium.

Failure modes:
    None.  Input is validated before it reaches the totaliser.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable

from bullion_kernel.db.types import ONE, ZERO
from bullion_kernel.domain.dtos import StockLineInput, TotalSummary


@dataclass(frozen=True)
class LineTotals:
    """Totals of one or more stock lines, ready for posting."""

    making_charges: Decimal = ZERO
    premium: Decimal = ZERO
    discount: Decimal = ZERO
    vat_amount: Decimal = ZERO
    gold_value: Decimal = ZERO
    other_charges_amount: Decimal = ZERO
    gross_weight: Decimal = ZERO
    pure_weight_std: Decimal = ZERO
    pure_weight: Decimal = ZERO
    purity: Decimal = ZERO
    purity_std: Decimal = ZERO
    purity_difference: Decimal = ZERO
    pieces: int = 0
    metal_rate: str | None = None
    rate_in_gram: Decimal = ZERO
    bid_value: Decimal = ZERO
    current_bid_value: Decimal = ZERO
    currency_code: str | None = None
    currency_rate: Decimal | None = None
    exclude_vat: bool = False
    vat_on_making: bool = False
    fx_gain: Decimal = ZERO
    fx_loss: Decimal = ZERO
    other_charges_description: str | None = None
    total_amount: Decimal = ZERO
    # Set when lines are folded: VAT summed after each line's own exclusion.
    folded_vat: Decimal | None = None

    @property
    def effective_vat(self) -> Decimal:
        """VAT that is actually posted (zero when excluded)."""
        if self.folded_vat is not None:
            return self.folded_vat
        if self.exclude_vat:
            return ZERO
        return self.vat_amount

    @property
    def computed_total(self) -> Decimal:
        """Gold value plus every cash component, signed for discount."""
        return (
            self.gold_value
            + self.making_charges
            + self.premium
            - self.discount
            + self.effective_vat
            + self.other_charges_amount
        )


def _line_totals(line: StockLineInput, is_registry: bool) -> LineTotals:
    fx = line.currency_rate if (is_registry and line.currency_rate) else ONE

    purity_std = line.purity_std if line.purity_std is not None else line.purity
    pure_weight_std = purity_std * line.gross_weight
    measured_pure = (
        line.pure_weight
        if line.pure_weight is not None
        else line.purity * line.gross_weight
    )

    if line.purity_difference > 0 and line.pass_purity_diff:
        purity = line.purity
        pure_weight = measured_pure
    else:
        purity = purity_std
        pure_weight = pure_weight_std
    purity_difference = line.purity_difference if line.pass_purity_diff else ZERO

    premium = line.premium if line.premium > 0 else ZERO
    discount = -line.premium if line.premium < 0 else ZERO

    return LineTotals(
        making_charges=line.making_charges * fx,
        premium=premium * fx,
        discount=discount * fx,
        vat_amount=line.vat_amount * fx,
        gold_value=line.base_amount * fx,
        other_charges_amount=line.other_charges_amount * fx,
        gross_weight=line.gross_weight,
        pure_weight_std=pure_weight_std,
        pure_weight=pure_weight,
        purity=purity,
        purity_std=purity_std,
        purity_difference=purity_difference,
        pieces=line.pieces,
        metal_rate=line.metal_rate,
        rate_in_gram=line.rate_in_gram,
        bid_value=line.bid_value,
        current_bid_value=line.current_bid_value,
        currency_code=line.currency_code,
        currency_rate=line.currency_rate,
        exclude_vat=bool(line.exclude_vat),
        vat_on_making=bool(line.vat_on_making),
        fx_gain=line.fx_gain,
        fx_loss=line.fx_loss,
        other_charges_description=line.other_charges_description,
    )


def _accumulate(acc: LineTotals, item: LineTotals) -> LineTotals:
    return replace(
        item,
        making_charges=acc.making_charges + item.making_charges,
        premium=acc.premium + item.premium,
        discount=acc.discount + item.discount,
        vat_amount=acc.vat_amount + item.vat_amount,
        gold_value=acc.gold_value + item.gold_value,
        other_charges_amount=acc.other_charges_amount + item.other_charges_amount,
        gross_weight=acc.gross_weight + item.gross_weight,
        pure_weight_std=acc.pure_weight_std + item.pure_weight_std,
        pure_weight=acc.pure_weight + item.pure_weight,
        purity_difference=acc.purity_difference + item.purity_difference,
        pieces=acc.pieces + item.pieces,
        folded_vat=acc.effective_vat + item.effective_vat,
    )


def totalise_lines(
    lines: Iterable[StockLineInput],
    total_summary: TotalSummary | None = None,
    is_registry: bool = False,
) -> LineTotals:
    """
    Fold stock lines into a single LineTotals.

    Monetary and weight fields are summed; scalar fields (rates, currency,
    policy flags, purity) are taken from the last line.  Posted VAT is summed
    with each line's own ``exclude_vat`` applied.  ``total_amount`` is
    ``total_summary.item_total_amount``.

    Args:
        lines: Stock lines with SKU policy already resolved.
        total_summary: Transaction summary supplying ``item_total_amount``.
        is_registry: Convert monetary fields by ``currency_rate`` for
            registry rows denominated in base currency.
    """
    totals = LineTotals()
    for line in lines:
        totals = _accumulate(totals, _line_totals(line, is_registry))
    if total_summary is not None:
        totals = replace(totals, total_amount=total_summary.item_total_amount)
    return totals
