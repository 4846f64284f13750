"""
Pure domain layer.

Totalising, posting-candidate construction, balance policy and payload
validation.  No ORM sessions, no database, no I/O; all domain objects are
immutable and deterministic.
"""

from bullion_kernel.domain.balance_policy import (
    BalanceChange,
    compute_balance_change,
    other_charge_deltas,
)
from bullion_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from bullion_kernel.domain.dtos import (
    MetalTransactionInput,
    OtherChargeInput,
    OtherChargeLeg,
    StockLineInput,
    TotalSummary,
    TransactionSnapshot,
)
from bullion_kernel.domain.line_totaliser import LineTotals, totalise_lines
from bullion_kernel.domain.posting_classes import PostingClass, PostingCode
from bullion_kernel.domain.registry_builder import (
    PostingCandidate,
    PostingContext,
    RegistryEntryBuilder,
    check_balanced,
)
from bullion_kernel.domain.transaction_types import (
    TransactionMode,
    TransactionType,
    get_transaction_mode,
)
from bullion_kernel.domain.validation import (
    parse_update_payload,
    validate_transaction_payload,
)

__all__ = [
    "BalanceChange",
    "Clock",
    "DeterministicClock",
    "LineTotals",
    "MetalTransactionInput",
    "OtherChargeInput",
    "OtherChargeLeg",
    "PostingCandidate",
    "PostingClass",
    "PostingCode",
    "PostingContext",
    "RegistryEntryBuilder",
    "StockLineInput",
    "SystemClock",
    "TotalSummary",
    "TransactionMode",
    "TransactionSnapshot",
    "TransactionType",
    "check_balanced",
    "compute_balance_change",
    "get_transaction_mode",
    "other_charge_deltas",
    "totalise_lines",
    "parse_update_payload",
    "validate_transaction_payload",
]
