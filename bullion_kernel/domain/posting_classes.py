"""
Registry posting classes and posting codes.

These strings are read by downstream ledgers and reports; they are part of
the external contract and must not change.
"""

from enum import Enum


class PostingClass(str, Enum):
    """Value of ``RegistryEntry.type``."""

    PARTY_GOLD_BALANCE = "PARTY_GOLD_BALANCE"
    PARTY_CASH_BALANCE = "PARTY_CASH_BALANCE"
    PARTY_HEDGE_ENTRY = "PARTY_HEDGE_ENTRY"
    HEDGE_ENTRY = "HEDGE_ENTRY"
    PURCHASE_FIXING = "purchase-fixing"
    SALE_FIXING = "sale-fixing"
    PURCHASE_UNFIX = "purchase-unfix"
    SALE_UNFIX = "sale-unfix"
    PARTY_MAKING_CHARGES = "PARTY_MAKING_CHARGES"
    MAKING_CHARGES = "MAKING_CHARGES"
    FX_EXCHANGE = "FX_EXCHANGE"
    OTHER_CHARGE = "OTHER-CHARGE"
    PARTY_VAT_AMOUNT = "PARTY_VAT_AMOUNT"
    VAT_AMOUNT = "VAT_AMOUNT"
    PARTY_PREMIUM = "PARTY_PREMIUM"
    PREMIUM = "PREMIUM"
    PARTY_DISCOUNT = "PARTY_DISCOUNT"
    DISCOUNT = "DISCOUNT"
    GOLD = "GOLD"
    GOLD_STOCK = "GOLD_STOCK"
    PURITY_DIFFERENCE = "PURITY_DIFFERENCE"


class PostingCode(str, Enum):
    """Value of ``RegistryEntry.posting_code``."""

    PARTY_CASH = "001"
    MAKING = "002"
    PREMIUM = "003"
    GOLD = "004"
    GOLD_STOCK = "005"
    PURITY_DIFFERENCE = "006"
    DISCOUNT = "007"
    OTHER_CHARGE = "008"
    VAT = "009"
    FX = "010"
    OTHER_CHARGE_VAT = "093"
    PARTY_GOLD = "PARTY-GOLD"
    HEDGE = "HEDGE"


# Rows of these classes are kept even when their value is not positive.
NON_POSITIVE_ALLOWED = frozenset(
    cls.value
    for cls in (
        PostingClass.HEDGE_ENTRY,
        PostingClass.PARTY_CASH_BALANCE,
        PostingClass.PARTY_GOLD_BALANCE,
        PostingClass.PURCHASE_FIXING,
        PostingClass.SALE_FIXING,
        PostingClass.PURCHASE_UNFIX,
        PostingClass.SALE_UNFIX,
    )
)
