"""Tests for MetalStockService: SKU creation, opening inventory and lookups."""

from decimal import Decimal

import pytest
from sqlalchemy import select

from bullion_kernel.exceptions import MetalStockNotFoundError, ValidationError
from bullion_kernel.models.metal_stock import InventoryLog
from bullion_kernel.services.metal_stock_service import (
    OPENING_VOUCHER,
    MetalStockService,
)


class TestCreateMetalStock:
    def test_karat_percent_divided(self, session, gold_stock):
        assert gold_stock.standard_purity == Decimal("0.916")
        assert gold_stock.karat == "22K"

    def test_zero_inventory_created(self, session, gold_stock):
        inventory = MetalStockService(session).get_inventory("GOLD-22K")

        assert inventory.pcs_count == 0
        assert inventory.gross_weight == Decimal("0")
        assert inventory.pure_weight == Decimal("0")
        assert inventory.purity == Decimal("0.916")

    def test_opening_log_written(self, session, gold_stock):
        logs = session.execute(
            select(InventoryLog).where(InventoryLog.stock_code == "GOLD-22K")
        ).scalars().all()

        assert len(logs) == 1
        assert logs[0].voucher_code == OPENING_VOUCHER
        assert logs[0].action == "add"
        assert logs[0].transaction_type == "opening"

    def test_policy_flags(self, session, test_actor_id):
        stock = MetalStockService(session).create_metal_stock(
            code="GOLD-PCS",
            metal_type="gold",
            actor_id=test_actor_id,
            standard_purity="0.999",
            pcs=True,
            exclude_vat=True,
            vat_on_making=True,
            making_unit="pieces",
            brand="PAMP",
        )

        assert stock.pcs is True
        assert stock.exclude_vat is True
        assert stock.vat_on_making is True
        assert stock.brand == "PAMP"

    def test_purity_required(self, session, test_actor_id):
        with pytest.raises(ValidationError) as exc_info:
            MetalStockService(session).create_metal_stock(
                code="NO-PURITY", metal_type="gold", actor_id=test_actor_id
            )
        assert exc_info.value.field == "standard_purity"

    def test_purity_out_of_range(self, session, test_actor_id):
        with pytest.raises(ValidationError):
            MetalStockService(session).create_metal_stock(
                code="BAD-PURITY",
                metal_type="gold",
                actor_id=test_actor_id,
                karat_purity_percent="105",
            )


class TestLookup:
    def test_get_by_code(self, session, gold_stock):
        assert MetalStockService(session).get_by_code("GOLD-22K").id == gold_stock.id

    def test_unknown_code(self, session):
        with pytest.raises(MetalStockNotFoundError):
            MetalStockService(session).get_by_code("SILVER-999")

    def test_get_many(self, session, gold_stock, fine_gold_stock):
        found = MetalStockService(session).get_many(["GOLD-FINE", "GOLD-22K", "GOLD-22K"])
        assert set(found) == {"GOLD-22K", "GOLD-FINE"}

    def test_get_many_missing(self, session, gold_stock):
        with pytest.raises(MetalStockNotFoundError) as exc_info:
            MetalStockService(session).get_many(["GOLD-22K", "SILVER-999"])
        assert exc_info.value.stock_ref == "SILVER-999"
