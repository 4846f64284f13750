"""Tests for transaction types, direction and the deterministic clock."""

from datetime import datetime, timedelta, timezone

import pytest

from bullion_kernel.domain.clock import DeterministicClock, SystemClock
from bullion_kernel.domain.transaction_types import (
    TransactionMode,
    TransactionType,
    direction_sign,
    get_transaction_mode,
    inventory_factor,
    is_purchase_side,
    parse_transaction_type,
)
from bullion_kernel.exceptions import InvalidTransactionTypeError


class TestTransactionType:
    def test_wire_strings(self):
        assert {t.value for t in TransactionType} == {
            "purchase",
            "sale",
            "purchaseReturn",
            "saleReturn",
            "importPurchase",
            "importPurchaseReturn",
            "exportSale",
            "exportSaleReturn",
        }

    def test_parse(self):
        assert parse_transaction_type("exportSale") is TransactionType.EXPORT_SALE
        assert parse_transaction_type(TransactionType.SALE) is TransactionType.SALE

    def test_parse_unknown(self):
        with pytest.raises(InvalidTransactionTypeError) as exc_info:
            parse_transaction_type("Purchase")
        assert exc_info.value.transaction_type == "Purchase"

    @pytest.mark.parametrize(
        "transaction_type, sign",
        [
            (TransactionType.PURCHASE, 1),
            (TransactionType.SALE_RETURN, 1),
            (TransactionType.SALE, -1),
            (TransactionType.PURCHASE_RETURN, -1),
        ],
    )
    def test_direction(self, transaction_type, sign):
        assert direction_sign(transaction_type) == sign
        assert inventory_factor(transaction_type) == sign

    def test_purchase_side(self):
        assert is_purchase_side(TransactionType.IMPORT_PURCHASE_RETURN)
        assert not is_purchase_side(TransactionType.EXPORT_SALE_RETURN)

    def test_mode(self):
        assert get_transaction_mode(True, False) is TransactionMode.FIX
        assert get_transaction_mode(True, True) is TransactionMode.UNFIX


class TestDeterministicClock:
    def test_default_time(self):
        assert DeterministicClock().now() == datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )

    def test_stable_until_advanced(self):
        clock = DeterministicClock()
        first = clock.now()

        assert clock.now() == first
        assert clock.tick() == first + timedelta(seconds=1)

    def test_set_time(self):
        clock = DeterministicClock()
        clock.advance(30)
        target = datetime(2025, 6, 1, tzinfo=timezone.utc)
        clock.set_time(target)

        assert clock.now() == target


class TestSystemClock:
    def test_timezone_aware(self):
        assert SystemClock().now().tzinfo is not None
