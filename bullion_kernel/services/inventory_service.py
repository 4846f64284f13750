"""
InventoryService -- per-SKU stock adjustments.

Responsibility:
    Moves pieces and gross weight of one SKU by ``factor`` times a stock
    line's quantities (+1 inbound, -1 outbound, negated on reversal),
    recomputes pure weight from the stored purity and appends an
    InventoryLog row keyed by the voucher.

Invariants enforced:
    - The inventory row is read under ``SELECT ... FOR UPDATE`` so the
      underflow check and the write are serialized per SKU.
    - pure_weight == gross_weight * purity after every adjustment.
    - With underflow enforcement on, neither pieces nor gross weight ever
      goes below zero.

Failure modes:
    - InventoryNotFoundError: SKU has no inventory row.
    - InsufficientStockError: the delta would drive stock below zero.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, select

from bullion_kernel.exceptions import InsufficientStockError, InventoryNotFoundError
from bullion_kernel.logging_config import get_logger
from bullion_kernel.models.metal_stock import (
    Inventory,
    InventoryAction,
    InventoryLog,
    MetalStock,
)
from bullion_kernel.services.base import BaseService

logger = get_logger("services.inventory")


class InventoryService(BaseService[Inventory]):
    """Flush-only service for inventory adjustments."""

    def __init__(self, session, enforce_underflow: bool = True):
        super().__init__(session)
        self._enforce_underflow = enforce_underflow

    def _locked_inventory(self, stock: MetalStock) -> Inventory:
        inventory = self.session.execute(
            select(Inventory)
            .where(Inventory.metal_stock_id == stock.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if inventory is None:
            raise InventoryNotFoundError(stock.code)
        return inventory

    def adjust(
        self,
        stock: MetalStock,
        pieces: int,
        gross_weight: Decimal,
        factor: int,
        voucher_code: str,
        voucher_date: datetime,
        transaction_type: str,
        actor_id: UUID,
        write_log: bool = True,
    ) -> Inventory:
        """
        Apply ``factor`` x (pieces, gross_weight) to the SKU's inventory.

        Raises:
            InventoryNotFoundError: SKU has no inventory row.
            InsufficientStockError: enforcement is on and the result would
                be negative.
        """
        inventory = self._locked_inventory(stock)

        pcs_delta = factor * pieces
        weight_delta = factor * gross_weight
        new_pcs = inventory.pcs_count + pcs_delta
        new_gross = inventory.gross_weight + weight_delta

        if self._enforce_underflow and (new_pcs < 0 or new_gross < 0):
            logger.warning(
                "insufficient_stock",
                extra={
                    "stock_code": stock.code,
                    "pcs_count": inventory.pcs_count,
                    "gross_weight": str(inventory.gross_weight),
                    "pcs_delta": pcs_delta,
                    "weight_delta": str(weight_delta),
                },
            )
            raise InsufficientStockError(
                stock.code,
                str(inventory.pcs_count),
                str(inventory.gross_weight),
                str(pcs_delta),
                str(weight_delta),
            )

        inventory.pcs_count = new_pcs
        inventory.gross_weight = new_gross
        inventory.pure_weight = new_gross * inventory.purity
        inventory.updated_by_id = actor_id

        if write_log:
            self.session.add(
                InventoryLog(
                    metal_stock_id=stock.id,
                    stock_code=stock.code,
                    voucher_code=voucher_code,
                    voucher_date=voucher_date,
                    transaction_type=transaction_type,
                    action=(
                        InventoryAction.ADD.value
                        if factor > 0
                        else InventoryAction.REMOVE.value
                    ),
                    gross_weight=gross_weight,
                    pieces=pieces,
                    pcs=stock.pcs,
                    created_by_id=actor_id,
                )
            )
        self.session.flush()

        logger.info(
            "inventory_adjusted",
            extra={
                "stock_code": stock.code,
                "pcs_delta": pcs_delta,
                "weight_delta": str(weight_delta),
                "pcs_count": new_pcs,
                "gross_weight": str(new_gross),
            },
        )
        return inventory

    def delete_logs_for_voucher(self, voucher_code: str) -> int:
        """Delete every inventory log row written for ``voucher_code``."""
        result = self.session.execute(
            delete(InventoryLog).where(InventoryLog.voucher_code == voucher_code)
        )
        return result.rowcount or 0
