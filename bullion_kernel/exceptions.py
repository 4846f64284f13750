"""
Typed exception hierarchy for the bullion kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the posting engine (HTTP layer, batch importers, tests) translate
failures into responses.  They must be able to do so without parsing message
strings, so every error carries:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (stable, machine-readable taxonomy string)
  3. A STATUS_CODE class attribute (HTTP-style status for caller translation)
  4. Structured attributes describing the failure

Example:
    try:
        service.create_transaction(payload, actor_id)
    except InsufficientStockError as e:
        return {"error": e.code, "stock_code": e.stock_code}, e.status_code

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BullionKernelError (base)
    |
    +-- ValidationError
    |   +-- MissingRequiredFieldsError
    |   +-- InvalidStockItemsError
    |   +-- InvalidTransactionTypeError
    |
    +-- PartyError
    |   +-- InvalidPartyError
    |   +-- PartyNotFoundError
    |
    +-- InventoryError
    |   +-- MetalStockNotFoundError
    |   +-- InventoryNotFoundError
    |   +-- InsufficientStockError
    |
    +-- TransactionError
    |   +-- TransactionNotFoundError
    |   +-- DuplicateTransactionError
    |
    +-- PostingError
    |   +-- RegistryWriteError
    |   +-- UnbalancedPostingError
    |
    +-- CascadeError
    |   +-- DeleteRegistryFailedError
    |   +-- InventoryUpdateFailedError
    |   +-- ReverseBalancesFailedError
    |
    +-- IdGenerationError
    +-- InternalServerError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                     | Status | When Raised
-----------|--------------------------|--------|--------------------------------
Validation | VALIDATION_ERROR         | 400    | Shape or range violation
           | MISSING_REQUIRED_FIELDS  | 400    | Required payload field absent
           | INVALID_STOCK_ITEMS      | 400    | stockItems empty or malformed
           | INVALID_TRANSACTION_TYPE | 400    | Type outside the enum
-----------|--------------------------|--------|--------------------------------
Party      | INVALID_PARTY            | 400    | Party inactive
           | PARTY_NOT_FOUND          | 404    | Party does not exist
-----------|--------------------------|--------|--------------------------------
Inventory  | METAL_NOT_FOUND          | 404    | SKU does not exist
           | INVENTORY_NOT_FOUND      | 404    | SKU has no inventory row
           | INSUFFICIENT_STOCK       | 400    | Delta would drive stock < 0
-----------|--------------------------|--------|--------------------------------
Transaction| TRANSACTION_NOT_FOUND    | 404    | Unknown metal transaction id
           | DUPLICATE_TRANSACTION    | 409    | Unique-key collision (voucher)
-----------|--------------------------|--------|--------------------------------
Posting    | REGISTRY_WRITE_FAILED    | 500    | Rows rejected by the bulk insert
           | UNBALANCED_POSTING       | 500    | Cash or gold legs do not balance
-----------|--------------------------|--------|--------------------------------
Cascade    | DELETE_REGISTRY_FAILED   | 500    | Dependent row deletion failed
           | INVENTORY_UPDATE_FAILED  | 500    | Inventory reversal failed
           | REVERSE_BALANCES_FAILED  | 500    | Balance reversal failed
-----------|--------------------------|--------|--------------------------------
Other      | ID_GENERATION_FAILED     | 500    | Random id space exhausted
           | INTERNAL_SERVER_ERROR    | 500    | Catch-all

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation errors are raised BEFORE a session is opened.
2. Any error inside the session aborts the transaction; the orchestrator
   re-raises it through ``translate_error`` so the caller always sees a
   taxonomy error.
3. Best-effort side effects (fixing price, deal-order status push) log and
   swallow their own failures; they never surface here.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError

# Backend messages naming the voucher uniqueness constraint (PostgreSQL, SQLite).
_VOUCHER_UNIQUE_MARKERS = (
    "uq_metal_transaction_voucher",
    "metal_transactions.voucher_number",
)


class BullionKernelError(Exception):
    """
    Base exception for all bullion kernel errors.

    All subclasses must define ``code`` and ``status_code`` class attributes.
    """

    code: str = "BULLION_KERNEL_ERROR"
    status_code: int = 500

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses and structured logs."""
        payload: dict[str, Any] = {
            "code": self.code,
            "status": self.status_code,
            "message": str(self),
        }
        for key, value in vars(self).items():
            if not key.startswith("_"):
                payload[key] = value
        return payload


# Validation


class ValidationError(BullionKernelError):
    """Input shape or range violation."""

    code: str = "VALIDATION_ERROR"
    status_code: int = 400

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class MissingRequiredFieldsError(ValidationError):
    """One or more required payload fields are absent."""

    code: str = "MISSING_REQUIRED_FIELDS"

    def __init__(self, fields: list[str]):
        self.fields = list(fields)
        super().__init__(f"Missing required fields: {', '.join(self.fields)}")


class InvalidStockItemsError(ValidationError):
    """stockItems is empty or one of its lines is malformed."""

    code: str = "INVALID_STOCK_ITEMS"

    def __init__(self, reason: str, line_no: int | None = None):
        self.reason = reason
        self.line_no = line_no
        where = f" (line {line_no})" if line_no is not None else ""
        super().__init__(f"Invalid stock items{where}: {reason}")


class InvalidTransactionTypeError(ValidationError):
    """Transaction type is outside the supported enum."""

    code: str = "INVALID_TRANSACTION_TYPE"

    def __init__(self, transaction_type: Any):
        self.transaction_type = transaction_type
        super().__init__(f"Invalid transaction type: {transaction_type!r}")


# Party


class PartyError(BullionKernelError):
    """Base exception for party-related errors."""

    code: str = "PARTY_ERROR"
    status_code: int = 400


class InvalidPartyError(PartyError):
    """Party exists but cannot transact."""

    code: str = "INVALID_PARTY"

    def __init__(self, party_code: str, reason: str = "inactive"):
        self.party_code = party_code
        self.reason = reason
        super().__init__(f"Party {party_code} cannot transact: {reason}")


class PartyNotFoundError(PartyError):
    """Party with given code or id was not found."""

    code: str = "PARTY_NOT_FOUND"
    status_code: int = 404

    def __init__(self, party_ref: str):
        self.party_ref = party_ref
        super().__init__(f"Party not found: {party_ref}")


# Inventory


class InventoryError(BullionKernelError):
    """Base exception for per-SKU inventory issues."""

    code: str = "INVENTORY_ERROR"
    status_code: int = 400


class MetalStockNotFoundError(InventoryError):
    """SKU with given code or id was not found."""

    code: str = "METAL_NOT_FOUND"
    status_code: int = 404

    def __init__(self, stock_ref: str):
        self.stock_ref = stock_ref
        super().__init__(f"Metal stock not found: {stock_ref}")


class InventoryNotFoundError(InventoryError):
    """SKU exists but has no inventory row."""

    code: str = "INVENTORY_NOT_FOUND"
    status_code: int = 404

    def __init__(self, stock_code: str):
        self.stock_code = stock_code
        super().__init__(f"Inventory not found for metal: {stock_code}")


class InsufficientStockError(InventoryError):
    """Applying the delta would drive pieces or gross weight below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        stock_code: str,
        pcs_count: str,
        gross_weight: str,
        pcs_delta: str,
        weight_delta: str,
    ):
        self.stock_code = stock_code
        self.pcs_count = pcs_count
        self.gross_weight = gross_weight
        self.pcs_delta = pcs_delta
        self.weight_delta = weight_delta
        super().__init__(
            f"Insufficient stock for metal {stock_code}: "
            f"pcs={pcs_count} delta={pcs_delta}, "
            f"gross={gross_weight} delta={weight_delta}"
        )


# Transaction


class TransactionError(BullionKernelError):
    """Base exception for metal transaction lookups and uniqueness."""

    code: str = "TRANSACTION_ERROR"
    status_code: int = 400


class TransactionNotFoundError(TransactionError):
    """Metal transaction with given id was not found."""

    code: str = "TRANSACTION_NOT_FOUND"
    status_code: int = 404

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Metal transaction not found: {transaction_id}")


class DuplicateTransactionError(TransactionError):
    """Unique-key collision, typically on the voucher number."""

    code: str = "DUPLICATE_TRANSACTION"
    status_code: int = 409

    def __init__(self, detail: str, voucher_number: str | None = None):
        self.detail = detail
        self.voucher_number = voucher_number
        super().__init__(f"Duplicate transaction: {detail}")


# Posting


class PostingError(BullionKernelError):
    """Base exception for registry posting errors."""

    code: str = "POSTING_ERROR"
    status_code: int = 500


class RegistryWriteError(PostingError):
    """One or more registry rows were rejected by the unordered bulk insert."""

    code: str = "REGISTRY_WRITE_FAILED"

    def __init__(self, failed_rows: list[dict[str, Any]]):
        self.failed_rows = failed_rows
        super().__init__(f"{len(failed_rows)} registry row(s) rejected")


class UnbalancedPostingError(PostingError):
    """Registry candidates do not balance on the cash or gold leg."""

    code: str = "UNBALANCED_POSTING"

    def __init__(self, leg: str, debits: str, credits: str):
        self.leg = leg
        self.debits = debits
        self.credits = credits
        super().__init__(
            f"Unbalanced {leg} leg: debits={debits}, credits={credits}"
        )


# Cascade (update / delete)


class CascadeError(BullionKernelError):
    """Base exception for failures while unwinding a prior transaction."""

    code: str = "CASCADE_ERROR"
    status_code: int = 500

    def __init__(self, transaction_id: str, reason: str):
        self.transaction_id = transaction_id
        self.reason = reason
        super().__init__(f"{self.code} for transaction {transaction_id}: {reason}")


class DeleteRegistryFailedError(CascadeError):
    """Deleting dependent registry / fixing / log rows failed."""

    code: str = "DELETE_REGISTRY_FAILED"


class InventoryUpdateFailedError(CascadeError):
    """Reversing the inventory footprint failed."""

    code: str = "INVENTORY_UPDATE_FAILED"


class ReverseBalancesFailedError(CascadeError):
    """Reversing party balances failed."""

    code: str = "REVERSE_BALANCES_FAILED"


# Other


class IdGenerationError(BullionKernelError):
    """Could not generate a unique random identifier."""

    code: str = "ID_GENERATION_FAILED"
    status_code: int = 500

    def __init__(self, prefix: str, attempts: int):
        self.prefix = prefix
        self.attempts = attempts
        super().__init__(
            f"Could not generate a unique {prefix} id after {attempts} attempts"
        )


class InternalServerError(BullionKernelError):
    """Catch-all for failures outside the taxonomy."""

    code: str = "INTERNAL_SERVER_ERROR"
    status_code: int = 500

    def __init__(self, message: str = "Server error"):
        super().__init__(message)


def translate_error(exc: BaseException) -> BullionKernelError:
    """
    Map any exception to a taxonomy error.

    Taxonomy errors pass through unchanged, violations of the voucher
    uniqueness constraint become DuplicateTransactionError and everything
    else (other integrity violations included) becomes InternalServerError.
    The caller is expected to ``raise translated from exc``.
    """
    if isinstance(exc, BullionKernelError):
        return exc

    if isinstance(exc, IntegrityError):
        detail = str(exc.orig) if exc.orig else str(exc)
        if any(marker in detail for marker in _VOUCHER_UNIQUE_MARKERS):
            return DuplicateTransactionError(detail)
    return InternalServerError(str(exc) or type(exc).__name__)
