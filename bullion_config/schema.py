"""
Engine configuration schema.

YAML configuration sets are parsed by the loader into these frozen
dataclasses.  Services receive an ``EngineConfig`` and never read files,
environment variables or flags themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class LedgerAccounts:
    """House-side account codes used by counterpart registry rows."""

    inventory_gold: str
    gold_stock: str
    making_charges: str
    premium_discount: str
    vat: str
    other_charges: str
    purity_difference: str
    fx_gain_loss: str
    fx_clearing: str
    fixed_gold: str
    hedge: str


@dataclass(frozen=True)
class FixingIdPrefixes:
    """Prefixes for generated TransactionFixing ids."""

    purchase_side: str = "HSM"
    sale_side: str = "HPM"


@dataclass(frozen=True)
class EngineConfig:
    """Runtime configuration for the posting engine."""

    config_id: str
    version: int
    ledger_accounts: LedgerAccounts
    base_currency: str = "AED"
    default_currency_rate: Decimal = Decimal("1")
    enforce_stock_underflow: bool = True
    max_id_attempts: int = 50
    hedge_voucher_prefixes: dict[str, str] = field(default_factory=dict)
    hedge_voucher_fallback: str = "HXX"
    fixing_id_prefixes: FixingIdPrefixes = field(default_factory=FixingIdPrefixes)
    checksum: str = ""

    def hedge_prefix_for(self, transaction_type: str) -> str:
        return self.hedge_voucher_prefixes.get(
            transaction_type, self.hedge_voucher_fallback
        )
