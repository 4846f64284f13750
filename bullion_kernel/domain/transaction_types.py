"""
Transaction types and posting modes.

The eight commercial transaction types fall into two direction groups.
Inbound types bring metal into the house (party side is the credit side,
inventory grows); outbound types are the mirror image.  Independently,
purchase-side types (purchases and their returns) and sale-side types
(sales and their returns) select hedge and fixing prefixes.
"""

from enum import Enum
from typing import Any

from bullion_kernel.exceptions import InvalidTransactionTypeError


class TransactionType(str, Enum):
    """Commercial transaction type (stable wire strings)."""

    PURCHASE = "purchase"
    SALE = "sale"
    PURCHASE_RETURN = "purchaseReturn"
    SALE_RETURN = "saleReturn"
    IMPORT_PURCHASE = "importPurchase"
    IMPORT_PURCHASE_RETURN = "importPurchaseReturn"
    EXPORT_SALE = "exportSale"
    EXPORT_SALE_RETURN = "exportSaleReturn"


class TransactionMode(str, Enum):
    """Whether the gold leg is priced (fix) or carried as metal (unfix)."""

    FIX = "fix"
    UNFIX = "unfix"


INBOUND_TYPES = frozenset(
    {
        TransactionType.PURCHASE,
        TransactionType.SALE_RETURN,
        TransactionType.IMPORT_PURCHASE,
        TransactionType.EXPORT_SALE_RETURN,
    }
)

PURCHASE_SIDE_TYPES = frozenset(
    {
        TransactionType.PURCHASE,
        TransactionType.PURCHASE_RETURN,
        TransactionType.IMPORT_PURCHASE,
        TransactionType.IMPORT_PURCHASE_RETURN,
    }
)


def parse_transaction_type(value: Any) -> TransactionType:
    """
    Parse the wire string into a TransactionType.

    Raises:
        InvalidTransactionTypeError: if the value is not one of the eight types.
    """
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(value)
    except ValueError as exc:
        raise InvalidTransactionTypeError(value) from exc


def get_transaction_mode(fixed: bool, unfix: bool) -> TransactionMode:
    """Fix only when ``fixed`` is set and ``unfix`` is not; unfix otherwise."""
    if fixed and not unfix:
        return TransactionMode.FIX
    return TransactionMode.UNFIX


def is_inbound(transaction_type: TransactionType) -> bool:
    return transaction_type in INBOUND_TYPES


def is_purchase_side(transaction_type: TransactionType) -> bool:
    return transaction_type in PURCHASE_SIDE_TYPES


def direction_sign(transaction_type: TransactionType) -> int:
    """+1 when the party is credited (inbound), -1 when debited (outbound)."""
    return 1 if is_inbound(transaction_type) else -1


def inventory_factor(transaction_type: TransactionType) -> int:
    """+1 when the transaction adds to stock, -1 when it removes stock."""
    return direction_sign(transaction_type)
