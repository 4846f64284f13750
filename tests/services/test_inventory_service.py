"""
Tests for InventoryService.

Covers:
- Inbound and outbound adjustments with pure weight recomputation
- Inventory log rows (add / remove, opt-out for reversal)
- Underflow enforcement and its configuration switch
- Deleting logs by voucher
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from bullion_kernel.exceptions import InsufficientStockError
from bullion_kernel.models.metal_stock import InventoryLog
from bullion_kernel.services.inventory_service import InventoryService
from bullion_kernel.services.metal_stock_service import MetalStockService

VOUCHER_DATE = datetime(2024, 3, 15, tzinfo=timezone.utc)


def _adjust(service, stock, gross, factor, actor_id, pieces=0, voucher="MP-0001", **kw):
    return service.adjust(
        stock,
        pieces=pieces,
        gross_weight=Decimal(gross),
        factor=factor,
        voucher_code=voucher,
        voucher_date=VOUCHER_DATE,
        transaction_type="purchase" if factor > 0 else "sale",
        actor_id=actor_id,
        **kw,
    )


def _logs(session, voucher):
    return session.execute(
        select(InventoryLog).where(InventoryLog.voucher_code == voucher)
    ).scalars().all()


class TestAdjust:
    def test_inbound(self, session, gold_stock, test_actor_id):
        service = InventoryService(session)
        inventory = _adjust(service, gold_stock, "100", 1, test_actor_id, pieces=3)

        assert inventory.gross_weight == Decimal("100")
        assert inventory.pure_weight == Decimal("91.6")
        assert inventory.pcs_count == 3

    def test_outbound_recomputes_pure_from_stored_purity(
        self, session, gold_stock, test_actor_id
    ):
        service = InventoryService(session)
        _adjust(service, gold_stock, "100", 1, test_actor_id)
        _adjust(service, gold_stock, "40", -1, test_actor_id, voucher="MS-0001")

        info = MetalStockService(session).get_inventory("GOLD-22K")
        assert info.gross_weight == Decimal("60")
        assert info.pure_weight == Decimal("54.96")

    def test_log_rows(self, session, gold_stock, test_actor_id):
        service = InventoryService(session)
        _adjust(service, gold_stock, "100", 1, test_actor_id)
        _adjust(service, gold_stock, "10", -1, test_actor_id, voucher="MS-0001")

        added = _logs(session, "MP-0001")
        removed = _logs(session, "MS-0001")
        assert [(log.action, log.gross_weight) for log in added] == [
            ("add", Decimal("100"))
        ]
        assert removed[0].action == "remove"
        assert removed[0].transaction_type == "sale"

    def test_no_log_when_disabled(self, session, gold_stock, test_actor_id):
        _adjust(InventoryService(session), gold_stock, "5", 1, test_actor_id, write_log=False)
        assert _logs(session, "MP-0001") == []


class TestUnderflow:
    def test_weight_underflow_rejected(self, session, gold_stock, test_actor_id):
        service = InventoryService(session)
        _adjust(service, gold_stock, "10", 1, test_actor_id)

        with pytest.raises(InsufficientStockError) as exc_info:
            _adjust(service, gold_stock, "10.5", -1, test_actor_id, voucher="MS-0001")

        assert exc_info.value.stock_code == "GOLD-22K"
        assert exc_info.value.weight_delta == "-10.5"

    def test_pieces_underflow_rejected(self, session, gold_stock, test_actor_id):
        service = InventoryService(session)
        _adjust(service, gold_stock, "10", 1, test_actor_id, pieces=1)

        with pytest.raises(InsufficientStockError):
            _adjust(service, gold_stock, "1", -1, test_actor_id, pieces=2)

    def test_exact_depletion_allowed(self, session, gold_stock, test_actor_id):
        service = InventoryService(session)
        _adjust(service, gold_stock, "10", 1, test_actor_id)
        inventory = _adjust(service, gold_stock, "10", -1, test_actor_id)

        assert inventory.gross_weight == Decimal("0")

    def test_enforcement_disabled(self, session, gold_stock, test_actor_id):
        inventory = _adjust(
            InventoryService(session, enforce_underflow=False),
            gold_stock,
            "5",
            -1,
            test_actor_id,
        )
        assert inventory.gross_weight == Decimal("-5")

    def test_underflow_logged(self, session, gold_stock, test_actor_id, captured_logs):
        with pytest.raises(InsufficientStockError):
            _adjust(InventoryService(session), gold_stock, "1", -1, test_actor_id)

        assert any(r["message"] == "insufficient_stock" for r in captured_logs())


class TestDeleteLogs:
    def test_deletes_only_voucher(self, session, gold_stock, test_actor_id):
        service = InventoryService(session)
        _adjust(service, gold_stock, "10", 1, test_actor_id, voucher="MP-0001")
        _adjust(service, gold_stock, "10", 1, test_actor_id, voucher="MP-0002")

        assert service.delete_logs_for_voucher("MP-0001") == 1
        assert _logs(session, "MP-0001") == []
        assert len(_logs(session, "MP-0002")) == 1
