"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that flow through the posting
    pipeline: the validated transaction input (MetalTransactionInput with its
    StockLineInput and OtherChargeInput children) and the TransactionSnapshot
    captured before an update or delete.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of ORM dependencies.  ``TransactionSnapshot.from_model`` is a
    boundary converter invoked only from the service layer.

Data flow:
    payload dict -> validation -> MetalTransactionInput -> MetalTransaction row
    MetalTransaction row -> TransactionSnapshot -> reversal
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from bullion_kernel.db.types import ZERO
from bullion_kernel.domain.transaction_types import (
    TransactionMode,
    TransactionType,
    get_transaction_mode,
)

if TYPE_CHECKING:
    from bullion_kernel.models.metal_stock import MetalStock as MetalStockModel
    from bullion_kernel.models.metal_transaction import (
        MetalTransaction as MetalTransactionModel,
    )


@dataclass(frozen=True)
class StockLineInput:
    """
    One stock line of a metal transaction.

    Policy flags (``pass_purity_diff``, ``exclude_vat``, ``vat_on_making``) and
    ``purity_std`` are optional on input; ``None`` means "take it from the
    SKU".  ``resolve_policy`` fills them before the line is totalised.
    ``premium`` is signed: a negative value is a discount.
    """

    stock_code: str
    gross_weight: Decimal
    purity: Decimal
    pieces: int = 0
    purity_std: Decimal | None = None
    pure_weight: Decimal | None = None
    base_amount: Decimal = ZERO
    making_charges: Decimal = ZERO
    premium: Decimal = ZERO
    vat_amount: Decimal = ZERO
    metal_rate: str | None = None
    rate_in_gram: Decimal = ZERO
    bid_value: Decimal = ZERO
    current_bid_value: Decimal = ZERO
    purity_difference: Decimal = ZERO
    pass_purity_diff: bool | None = None
    exclude_vat: bool | None = None
    vat_on_making: bool | None = None
    currency_code: str | None = None
    currency_rate: Decimal | None = None
    fx_gain: Decimal = ZERO
    fx_loss: Decimal = ZERO
    other_charges_amount: Decimal = ZERO
    other_charges_description: str | None = None

    def resolve_policy(self, stock: MetalStockModel) -> StockLineInput:
        """Fill SKU-derived fields that the line did not override."""
        return replace(
            self,
            purity_std=(
                self.purity_std
                if self.purity_std is not None
                else stock.standard_purity
            ),
            pass_purity_diff=(
                self.pass_purity_diff
                if self.pass_purity_diff is not None
                else stock.pass_purity_diff
            ),
            exclude_vat=(
                self.exclude_vat if self.exclude_vat is not None else stock.exclude_vat
            ),
            vat_on_making=(
                self.vat_on_making
                if self.vat_on_making is not None
                else stock.vat_on_making
            ),
        )


@dataclass(frozen=True)
class OtherChargeLeg:
    """One side of an other-charge entry: account code, amount and currency."""

    account: str
    amount: Decimal
    currency: str | None = None


@dataclass(frozen=True)
class OtherChargeInput:
    """A free-standing debit/credit pair with optional VAT on both sides."""

    description: str
    debit: OtherChargeLeg
    credit: OtherChargeLeg
    vat_rate: Decimal = ZERO
    vat_amount: Decimal = ZERO


@dataclass(frozen=True)
class TotalSummary:
    item_total_amount: Decimal = ZERO


@dataclass(frozen=True)
class MetalTransactionInput:
    """A validated metal transaction ready for posting."""

    transaction_type: TransactionType
    party_code: str
    party_currency: str
    voucher_number: str
    voucher_date: datetime
    stock_items: tuple[StockLineInput, ...]
    fixed: bool = False
    unfix: bool = False
    hedge: bool = False
    item_currency: str | None = None
    base_currency: str | None = None
    hedge_voucher_number: str | None = None
    other_charges: tuple[OtherChargeInput, ...] = ()
    total_summary: TotalSummary = field(default_factory=TotalSummary)
    deal_order_id: UUID | None = None
    notes: str | None = None

    @property
    def mode(self) -> TransactionMode:
        return get_transaction_mode(self.fixed, self.unfix)


@dataclass(frozen=True)
class TransactionSnapshot:
    """
    Persisted state of a metal transaction, captured before mutation.

    Lines carry the policy values resolved when the transaction was posted,
    so reversal undoes exactly what was applied.
    """

    transaction_id: UUID
    party_id: UUID
    data: MetalTransactionInput

    @property
    def voucher_number(self) -> str:
        return self.data.voucher_number

    @classmethod
    def from_model(cls, txn: MetalTransactionModel) -> TransactionSnapshot:
        lines = tuple(
            StockLineInput(
                stock_code=line.stock_code,
                gross_weight=line.gross_weight,
                purity=line.purity,
                pieces=line.pieces,
                purity_std=line.purity_std,
                pure_weight=line.pure_weight,
                base_amount=line.base_amount,
                making_charges=line.making_charges,
                premium=line.premium,
                vat_amount=line.vat_amount,
                metal_rate=line.metal_rate,
                rate_in_gram=line.rate_in_gram,
                bid_value=line.bid_value,
                current_bid_value=line.current_bid_value,
                purity_difference=line.purity_difference,
                pass_purity_diff=line.pass_purity_diff,
                exclude_vat=line.exclude_vat,
                vat_on_making=line.vat_on_making,
                currency_code=line.currency_code,
                currency_rate=line.currency_rate,
                fx_gain=line.fx_gain,
                fx_loss=line.fx_loss,
                other_charges_amount=line.other_charges_amount,
                other_charges_description=line.other_charges_description,
            )
            for line in sorted(txn.lines, key=lambda l: l.line_no)
        )
        charges = tuple(
            OtherChargeInput(
                description=charge.description,
                debit=OtherChargeLeg(
                    account=charge.debit_account,
                    amount=charge.debit_amount,
                    currency=charge.debit_currency,
                ),
                credit=OtherChargeLeg(
                    account=charge.credit_account,
                    amount=charge.credit_amount,
                    currency=charge.credit_currency,
                ),
                vat_rate=charge.vat_rate,
                vat_amount=charge.vat_amount,
            )
            for charge in sorted(txn.other_charges, key=lambda c: c.line_no)
        )
        data = MetalTransactionInput(
            transaction_type=TransactionType(txn.transaction_type),
            party_code=txn.party_code,
            party_currency=txn.party_currency,
            voucher_number=txn.voucher_number,
            voucher_date=txn.voucher_date,
            stock_items=lines,
            fixed=txn.fixed,
            unfix=txn.unfix,
            hedge=txn.hedge,
            item_currency=txn.item_currency,
            base_currency=txn.base_currency,
            hedge_voucher_number=txn.hedge_voucher_number,
            other_charges=charges,
            total_summary=TotalSummary(item_total_amount=txn.item_total_amount),
            deal_order_id=txn.deal_order_id,
            notes=txn.notes,
        )
        return cls(transaction_id=txn.id, party_id=txn.party_id, data=data)
