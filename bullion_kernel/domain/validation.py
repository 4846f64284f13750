"""
Payload validation -- wire payload to MetalTransactionInput.

Pure checks with no I/O.  Runs before any session is opened; every failure
is a ValidationError subclass carrying a stable code.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from bullion_kernel.db.types import ZERO, to_decimal
from bullion_kernel.domain.dtos import (
    MetalTransactionInput,
    OtherChargeInput,
    OtherChargeLeg,
    StockLineInput,
    TotalSummary,
)
from bullion_kernel.domain.transaction_types import parse_transaction_type
from bullion_kernel.exceptions import (
    InvalidStockItemsError,
    MissingRequiredFieldsError,
    ValidationError,
)

REQUIRED_FIELDS = (
    "transactionType",
    "partyCode",
    "partyCurrency",
    "voucherNumber",
    "voucherDate",
    "stockItems",
)

REQUIRED_LINE_FIELDS = ("stockCode", "grossWeight", "purity")


def _missing(value: Any) -> bool:
    return value is None or value == ""


def _decimal(value: Any, field: str, default: Decimal = ZERO) -> Decimal:
    try:
        return to_decimal(value, default)
    except ValueError as exc:
        raise ValidationError(f"{field} must be numeric, got {value!r}", field) from exc


def _non_negative(value: Any, field: str) -> Decimal:
    number = _decimal(value, field)
    if number < 0:
        raise ValidationError(f"{field} must be >= 0, got {number}", field)
    return number


def _optional_bool(value: Any) -> bool | None:
    if value is None:
        return None
    return bool(value)


def parse_voucher_date(value: Any) -> datetime:
    """Accept a datetime, a date or an ISO-8601 string; naive values are UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError(
                f"voucherDate is not an ISO date: {value!r}", "voucherDate"
            ) from exc
    else:
        raise ValidationError(f"voucherDate has unsupported type: {value!r}", "voucherDate")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_stock_line(raw: Mapping[str, Any], line_no: int) -> StockLineInput:
    """
    Parse one stock line.

    Raises:
        InvalidStockItemsError: on missing fields or out-of-range values.
    """
    if not isinstance(raw, Mapping):
        raise InvalidStockItemsError("line is not an object", line_no)
    missing = [f for f in REQUIRED_LINE_FIELDS if _missing(raw.get(f))]
    if missing:
        raise InvalidStockItemsError(f"missing {', '.join(missing)}", line_no)

    try:
        gross_weight = _non_negative(raw["grossWeight"], "grossWeight")
        purity = _non_negative(raw["purity"], "purity")
        purity_std = raw.get("purityStd")
        purity_std = None if _missing(purity_std) else _non_negative(purity_std, "purityStd")
        for name, value in (("purity", purity), ("purityStd", purity_std)):
            if value is not None and value > 1:
                raise ValidationError(f"{name} must be a fraction in [0, 1]", name)
        pure_weight = raw.get("pureWeight")
        pure_weight = None if _missing(pure_weight) else _non_negative(pure_weight, "pureWeight")

        pieces = raw.get("pieces") or 0
        if isinstance(pieces, bool) or int(pieces) != pieces or int(pieces) < 0:
            raise ValidationError("pieces must be a non-negative integer", "pieces")

        item_total = raw.get("itemTotal") or {}
        rate_req = raw.get("metalRateRequirements") or {}
        vat = raw.get("vat") or {}
        other = raw.get("otherCharges") or {}

        currency_rate = raw.get("currencyRate")
        if not _missing(currency_rate):
            currency_rate = _decimal(currency_rate, "currencyRate")
            if currency_rate <= 0:
                raise ValidationError("currencyRate must be > 0", "currencyRate")
        else:
            currency_rate = None

        return StockLineInput(
            stock_code=str(raw["stockCode"]),
            gross_weight=gross_weight,
            purity=purity,
            pieces=int(pieces),
            purity_std=purity_std,
            pure_weight=pure_weight,
            base_amount=_non_negative(item_total.get("baseAmount"), "baseAmount"),
            making_charges=_non_negative(
                item_total.get("makingChargesTotal"), "makingChargesTotal"
            ),
            premium=_decimal(item_total.get("premiumTotal"), "premiumTotal"),
            vat_amount=_non_negative(vat.get("amount"), "vat.amount"),
            metal_rate=raw.get("metalRate"),
            rate_in_gram=_non_negative(rate_req.get("rateInGram"), "rateInGram"),
            bid_value=_non_negative(rate_req.get("bidValue"), "bidValue"),
            current_bid_value=_non_negative(
                rate_req.get("currentBidValue"), "currentBidValue"
            ),
            purity_difference=_decimal(raw.get("purityDifference"), "purityDifference"),
            pass_purity_diff=_optional_bool(raw.get("passPurityDiff")),
            exclude_vat=_optional_bool(raw.get("excludeVAT")),
            vat_on_making=_optional_bool(raw.get("vatOnMaking")),
            currency_code=raw.get("currencyCode") or None,
            currency_rate=currency_rate,
            fx_gain=_non_negative(raw.get("FXGain"), "FXGain"),
            fx_loss=_non_negative(raw.get("FXLoss"), "FXLoss"),
            other_charges_amount=_non_negative(other.get("amount"), "otherCharges.amount"),
            other_charges_description=other.get("description"),
        )
    except (ValidationError, TypeError, ValueError) as exc:
        if isinstance(exc, InvalidStockItemsError):
            raise
        raise InvalidStockItemsError(str(exc), line_no) from exc


def _parse_charge_leg(raw: Mapping[str, Any] | None, field: str) -> OtherChargeLeg:
    if not raw or _missing(raw.get("account")):
        raise MissingRequiredFieldsError([f"{field}.account"])
    return OtherChargeLeg(
        account=str(raw["account"]),
        amount=_non_negative(raw.get("baseCurrency"), f"{field}.baseCurrency"),
        currency=raw.get("currency") or None,
    )


def parse_other_charge(raw: Mapping[str, Any]) -> OtherChargeInput:
    """Parse one transaction-level other-charge entry."""
    vat = raw.get("vatDetails") or {}
    return OtherChargeInput(
        description=str(raw.get("description") or "Other charge"),
        debit=_parse_charge_leg(raw.get("debit"), "debit"),
        credit=_parse_charge_leg(raw.get("credit"), "credit"),
        vat_rate=_non_negative(vat.get("vatRate"), "vatDetails.vatRate"),
        vat_amount=_non_negative(vat.get("vatAmount"), "vatDetails.vatAmount"),
    )


def validate_transaction_payload(payload: Mapping[str, Any]) -> MetalTransactionInput:
    """
    Validate a metal transaction payload and convert it to its DTO.

    Raises:
        MissingRequiredFieldsError: a required top-level field is absent.
        InvalidTransactionTypeError: transactionType is outside the enum.
        InvalidStockItemsError: stockItems is empty or a line is malformed.
        ValidationError: any other shape or range violation.
    """
    missing = [f for f in REQUIRED_FIELDS if _missing(payload.get(f))]
    if missing:
        raise MissingRequiredFieldsError(missing)

    transaction_type = parse_transaction_type(payload["transactionType"])

    raw_items = payload["stockItems"]
    if not isinstance(raw_items, (list, tuple)) or not raw_items:
        raise InvalidStockItemsError("stockItems must be a non-empty list")
    lines = tuple(parse_stock_line(raw, i) for i, raw in enumerate(raw_items, start=1))

    raw_charges = payload.get("otherCharges") or []
    if not isinstance(raw_charges, (list, tuple)):
        raise ValidationError("otherCharges must be a list", "otherCharges")
    charges = tuple(parse_other_charge(raw) for raw in raw_charges)

    summary = payload.get("totalSummary") or {}
    deal_order_id = payload.get("dealOrderId")
    if not _missing(deal_order_id) and not isinstance(deal_order_id, UUID):
        try:
            deal_order_id = UUID(str(deal_order_id))
        except ValueError as exc:
            raise ValidationError("dealOrderId is not a UUID", "dealOrderId") from exc

    return MetalTransactionInput(
        transaction_type=transaction_type,
        party_code=str(payload["partyCode"]),
        party_currency=str(payload["partyCurrency"]),
        voucher_number=str(payload["voucherNumber"]),
        voucher_date=parse_voucher_date(payload["voucherDate"]),
        stock_items=lines,
        fixed=bool(payload.get("fixed", False)),
        unfix=bool(payload.get("unfix", False)),
        hedge=bool(payload.get("hedge", False)),
        item_currency=payload.get("itemCurrency") or None,
        base_currency=payload.get("baseCurrency") or None,
        hedge_voucher_number=payload.get("hedgeVoucherNumber") or None,
        other_charges=charges,
        total_summary=TotalSummary(
            item_total_amount=_non_negative(
                summary.get("itemTotalAmount"), "totalSummary.itemTotalAmount"
            )
        ),
        deal_order_id=deal_order_id or None,
        notes=payload.get("notes"),
    )


UPDATABLE_FIELDS = (
    "transactionType",
    "partyCode",
    "partyCurrency",
    "voucherNumber",
    "voucherDate",
    "stockItems",
    "otherCharges",
    "totalSummary",
    "fixed",
    "unfix",
    "hedge",
    "notes",
)


def parse_update_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate the updatable subset of a payload.

    Returns MetalTransactionInput field names mapped to parsed values, for
    use with ``dataclasses.replace`` on the stored transaction.  Keys outside
    UPDATABLE_FIELDS are ignored.
    """
    changes: dict[str, Any] = {}
    for key in ("partyCode", "partyCurrency", "voucherNumber"):
        if key in payload:
            if _missing(payload[key]):
                raise MissingRequiredFieldsError([key])
            changes[_SNAKE[key]] = str(payload[key])

    if "transactionType" in payload:
        changes["transaction_type"] = parse_transaction_type(payload["transactionType"])

    if "voucherDate" in payload:
        if _missing(payload["voucherDate"]):
            raise MissingRequiredFieldsError(["voucherDate"])
        changes["voucher_date"] = parse_voucher_date(payload["voucherDate"])

    if "stockItems" in payload:
        raw_items = payload["stockItems"]
        if not isinstance(raw_items, (list, tuple)) or not raw_items:
            raise InvalidStockItemsError("stockItems must be a non-empty list")
        changes["stock_items"] = tuple(
            parse_stock_line(raw, i) for i, raw in enumerate(raw_items, start=1)
        )

    if "otherCharges" in payload:
        raw_charges = payload["otherCharges"] or []
        if not isinstance(raw_charges, (list, tuple)):
            raise ValidationError("otherCharges must be a list", "otherCharges")
        changes["other_charges"] = tuple(parse_other_charge(raw) for raw in raw_charges)

    if "totalSummary" in payload:
        summary = payload["totalSummary"] or {}
        changes["total_summary"] = TotalSummary(
            item_total_amount=_non_negative(
                summary.get("itemTotalAmount"), "totalSummary.itemTotalAmount"
            )
        )

    for key in ("fixed", "unfix", "hedge"):
        if key in payload:
            changes[key] = bool(payload[key])

    if "notes" in payload:
        changes["notes"] = payload["notes"]
    return changes


_SNAKE = {
    "partyCode": "party_code",
    "partyCurrency": "party_currency",
    "voucherNumber": "voucher_number",
}
