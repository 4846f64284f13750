"""
Tests for payload validation.

Covers:
- Required fields and their error codes
- Transaction type parsing
- Stock line parsing and range checks
- Other-charge entries
- Partial update payloads
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from bullion_kernel.domain.transaction_types import TransactionMode, TransactionType
from bullion_kernel.domain.validation import (
    parse_update_payload,
    parse_voucher_date,
    validate_transaction_payload,
)
from bullion_kernel.exceptions import (
    InvalidStockItemsError,
    InvalidTransactionTypeError,
    MissingRequiredFieldsError,
    ValidationError,
)


class TestRequiredFields:
    def test_valid_payload(self, transaction_payload):
        data = validate_transaction_payload(transaction_payload())

        assert data.transaction_type is TransactionType.PURCHASE
        assert data.party_code == "SUPP-001"
        assert data.voucher_number == "MP-0001"
        assert data.mode is TransactionMode.UNFIX
        assert data.total_summary.item_total_amount == Decimal("21525")
        assert len(data.stock_items) == 1

    @pytest.mark.parametrize(
        "field",
        ["transactionType", "partyCode", "partyCurrency", "voucherNumber", "voucherDate"],
    )
    def test_missing_field(self, transaction_payload, field):
        payload = transaction_payload()
        del payload[field]

        with pytest.raises(MissingRequiredFieldsError) as exc_info:
            validate_transaction_payload(payload)

        assert exc_info.value.fields == [field]
        assert exc_info.value.code == "MISSING_REQUIRED_FIELDS"

    def test_empty_string_counts_as_missing(self, transaction_payload):
        with pytest.raises(MissingRequiredFieldsError):
            validate_transaction_payload(transaction_payload(partyCode=""))

    def test_empty_stock_items(self, transaction_payload):
        with pytest.raises(MissingRequiredFieldsError):
            validate_transaction_payload(transaction_payload(stockItems=None))
        with pytest.raises(InvalidStockItemsError):
            validate_transaction_payload(transaction_payload(stockItems=[]))

    def test_invalid_transaction_type(self, transaction_payload):
        with pytest.raises(InvalidTransactionTypeError) as exc_info:
            validate_transaction_payload(transaction_payload(transactionType="swap"))
        assert exc_info.value.status_code == 400


class TestModes:
    @pytest.mark.parametrize(
        "fixed, unfix, expected",
        [
            (True, False, TransactionMode.FIX),
            (True, True, TransactionMode.UNFIX),
            (False, True, TransactionMode.UNFIX),
            (False, False, TransactionMode.UNFIX),
        ],
    )
    def test_mode_resolution(self, transaction_payload, fixed, unfix, expected):
        data = validate_transaction_payload(
            transaction_payload(fixed=fixed, unfix=unfix)
        )
        assert data.mode is expected


class TestStockLines:
    def test_line_fields(self, transaction_payload):
        line = validate_transaction_payload(transaction_payload()).stock_items[0]

        assert line.stock_code == "GOLD-22K"
        assert line.gross_weight == Decimal("100")
        assert line.base_amount == Decimal("20000")
        assert line.making_charges == Decimal("500")
        assert line.vat_amount == Decimal("1025")
        assert line.rate_in_gram == Decimal("218.34")
        assert line.exclude_vat is False
        assert line.pass_purity_diff is None

    def test_missing_line_field(self, transaction_payload, line_payload):
        line = line_payload()
        del line["grossWeight"]

        with pytest.raises(InvalidStockItemsError) as exc_info:
            validate_transaction_payload(transaction_payload(stockItems=[line]))

        assert exc_info.value.line_no == 1

    def test_negative_weight_rejected(self, transaction_payload, line_payload):
        payload = transaction_payload(
            stockItems=[line_payload(), line_payload(grossWeight="-1")]
        )
        with pytest.raises(InvalidStockItemsError) as exc_info:
            validate_transaction_payload(payload)
        assert exc_info.value.line_no == 2

    def test_purity_above_one_rejected(self, transaction_payload, line_payload):
        with pytest.raises(InvalidStockItemsError):
            validate_transaction_payload(
                transaction_payload(stockItems=[line_payload(purity="91.6")])
            )

    def test_non_numeric_rejected(self, transaction_payload, line_payload):
        with pytest.raises(InvalidStockItemsError):
            validate_transaction_payload(
                transaction_payload(stockItems=[line_payload(grossWeight="heavy")])
            )

    def test_fractional_pieces_rejected(self, transaction_payload, line_payload):
        with pytest.raises(InvalidStockItemsError):
            validate_transaction_payload(
                transaction_payload(stockItems=[line_payload(pieces=1.5)])
            )

    def test_float_input_converted_exactly(self, transaction_payload, line_payload):
        data = validate_transaction_payload(
            transaction_payload(stockItems=[line_payload(purity=0.916)])
        )
        assert data.stock_items[0].purity == Decimal("0.916")

    def test_zero_currency_rate_rejected(self, transaction_payload, line_payload):
        with pytest.raises(InvalidStockItemsError):
            validate_transaction_payload(
                transaction_payload(stockItems=[line_payload(currencyRate="0")])
            )

    def test_negative_premium_allowed(self, transaction_payload, line_payload):
        line = line_payload(
            itemTotal={"baseAmount": "20000", "premiumTotal": "-50"}
        )
        data = validate_transaction_payload(transaction_payload(stockItems=[line]))
        assert data.stock_items[0].premium == Decimal("-50")


class TestOtherCharges:
    def test_parsed(self, transaction_payload):
        payload = transaction_payload(
            otherCharges=[
                {
                    "description": "Freight",
                    "debit": {"account": "ACC-X", "baseCurrency": "100"},
                    "credit": {"account": "ACC-Y", "baseCurrency": "100", "currency": "AED"},
                    "vatDetails": {"vatRate": "5", "vatAmount": "5"},
                }
            ]
        )
        charge = validate_transaction_payload(payload).other_charges[0]

        assert charge.debit.account == "ACC-X"
        assert charge.debit.currency is None
        assert charge.credit.currency == "AED"
        assert charge.vat_amount == Decimal("5")

    def test_missing_account(self, transaction_payload):
        payload = transaction_payload(
            otherCharges=[{"debit": {"baseCurrency": "1"}, "credit": {"account": "Y"}}]
        )
        with pytest.raises(MissingRequiredFieldsError) as exc_info:
            validate_transaction_payload(payload)
        assert exc_info.value.fields == ["debit.account"]

    def test_not_a_list(self, transaction_payload):
        with pytest.raises(ValidationError):
            validate_transaction_payload(transaction_payload(otherCharges={"a": 1}))


class TestOptionalFields:
    def test_deal_order_id(self, transaction_payload):
        deal_order_id = uuid4()
        data = validate_transaction_payload(
            transaction_payload(dealOrderId=str(deal_order_id))
        )
        assert data.deal_order_id == deal_order_id

    def test_bad_deal_order_id(self, transaction_payload):
        with pytest.raises(ValidationError) as exc_info:
            validate_transaction_payload(transaction_payload(dealOrderId="DO-1"))
        assert exc_info.value.field == "dealOrderId"


class TestVoucherDate:
    def test_iso_with_zulu(self):
        assert parse_voucher_date("2024-03-15T09:00:00Z") == datetime(
            2024, 3, 15, 9, 0, tzinfo=timezone.utc
        )

    def test_naive_is_utc(self):
        parsed = parse_voucher_date(datetime(2024, 3, 15))
        assert parsed.tzinfo is timezone.utc

    def test_garbage(self):
        with pytest.raises(ValidationError):
            parse_voucher_date("yesterday")


class TestUpdatePayload:
    def test_only_present_fields(self):
        changes = parse_update_payload({"partyCode": "CUST-001", "hedge": True})
        assert changes == {"party_code": "CUST-001", "hedge": True}

    def test_unknown_keys_ignored(self):
        assert parse_update_payload({"dealOrderId": str(uuid4())}) == {}

    def test_stock_items_parsed(self, line_payload):
        changes = parse_update_payload({"stockItems": [line_payload()]})
        assert changes["stock_items"][0].gross_weight == Decimal("100")

    def test_blank_required_field(self):
        with pytest.raises(MissingRequiredFieldsError):
            parse_update_payload({"voucherNumber": ""})

    def test_transaction_type(self):
        changes = parse_update_payload({"transactionType": "saleReturn"})
        assert changes["transaction_type"] is TransactionType.SALE_RETURN
