"""
Module: bullion_kernel.db.types
Responsibility: Annotated column type aliases and the rounding helpers shared by
    models, domain and services.
Architecture position: Kernel > DB.  MUST NOT import from models/, domain/,
    services/ or selectors/.

Invariants enforced:
    - No floats anywhere in the kernel.  Money, weights and purities are
      Decimal with explicit precision.
    - round_money() / round_weight() are the sanctioned rounding functions;
      ``to_decimal`` is the single conversion point for loosely typed input.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from sqlalchemy import Numeric, String

# Monetary amount: 38 digits, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Weight in grams (gross or pure)
Weight = Annotated[Decimal, Numeric(38, 9)]

# Purity as a decimal fraction in [0, 1]
Purity = Annotated[Decimal, Numeric(20, 9)]

# Currency code (e.g. "AED", "USD")
CurrencyCode = Annotated[str, String(3)]

ShortCode = Annotated[str, String(50)]

LongText = Annotated[str, String(500)]


MONEY_DECIMAL_PLACES = 2
WEIGHT_DECIMAL_PLACES = 4
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")
ONE = Decimal("1")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """
    Convert a loosely typed number into a Decimal.

    None and empty strings map to ``default``.  Floats are converted through
    ``str`` so that 91.6 becomes Decimal("91.6") and not its binary expansion.

    Raises:
        ValueError: if the value is not numeric.
    """
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Not a number: {value!r}") from exc


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round a monetary value to the given decimal places."""
    quantize_str = "0." + "0" * decimal_places if decimal_places else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def round_weight(value: Decimal, decimal_places: int = WEIGHT_DECIMAL_PLACES) -> Decimal:
    """Round a weight in grams to the given decimal places."""
    return round_money(value, decimal_places)
