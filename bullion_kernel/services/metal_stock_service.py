"""
Service layer for stock-keeping units and their inventory rows.

A MetalStock is always created together with a zero Inventory row and an
opening InventoryLog so that posting never has to create inventory lazily.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from bullion_kernel.db.types import ONE, ZERO, to_decimal
from bullion_kernel.exceptions import (
    InventoryNotFoundError,
    MetalStockNotFoundError,
    ValidationError,
)
from bullion_kernel.logging_config import get_logger
from bullion_kernel.models.metal_stock import (
    Inventory,
    InventoryAction,
    InventoryLog,
    MetalStock,
)
from bullion_kernel.services.base import BaseService

logger = get_logger("services.metal_stock")

OPENING_VOUCHER = "OPENING"


@dataclass(frozen=True)
class InventoryInfo:
    """Immutable snapshot of one SKU's running inventory."""

    stock_code: str
    metal_stock_id: UUID
    pcs_count: int
    gross_weight: Decimal
    pure_weight: Decimal
    purity: Decimal


class MetalStockService(BaseService[MetalStock]):
    """Service for SKU master data and inventory lookups."""

    def _get_by_code(self, code: str) -> MetalStock:
        stock = self.session.execute(
            select(MetalStock)
            .where(MetalStock.code == code)
            .options(selectinload(MetalStock.inventory))
        ).scalar_one_or_none()
        if stock is None:
            raise MetalStockNotFoundError(code)
        return stock

    def get_by_code(self, code: str) -> MetalStock:
        """
        Load a SKU by code.

        Raises:
            MetalStockNotFoundError: If the code is unknown.
        """
        return self._get_by_code(code)

    def get_many(self, codes: list[str]) -> dict[str, MetalStock]:
        """
        Load every SKU referenced by ``codes``.

        Raises:
            MetalStockNotFoundError: for the first code that does not exist.
        """
        wanted = sorted(set(codes))
        stocks = self.session.execute(
            select(MetalStock).where(MetalStock.code.in_(wanted))
        ).scalars().all()
        found = {stock.code: stock for stock in stocks}
        for code in codes:
            if code not in found:
                raise MetalStockNotFoundError(code)
        return found

    def create_metal_stock(
        self,
        code: str,
        metal_type: str,
        actor_id: UUID,
        standard_purity: Decimal | str | None = None,
        karat_purity_percent: Decimal | str | None = None,
        karat: str | None = None,
        description: str | None = None,
        pcs: bool = False,
        pass_purity_diff: bool = False,
        exclude_vat: bool = False,
        vat_on_making: bool = False,
        wastage: bool = False,
        making_unit: str | None = None,
        voucher_date: datetime | None = None,
        **attributes: str | None,
    ) -> MetalStock:
        """
        Create a SKU with an empty inventory row.

        Purity may be given either as a fraction (``standard_purity``) or as
        the karat master's percentage (``karat_purity_percent``), which is
        divided by 100.

        Raises:
            ValidationError: If no purity is given or it falls outside [0, 1].
        """
        if standard_purity is not None:
            purity = to_decimal(standard_purity)
        elif karat_purity_percent is not None:
            purity = to_decimal(karat_purity_percent) / Decimal("100")
        else:
            raise ValidationError("standard purity is required", field="standard_purity")

        if purity < ZERO or purity > ONE:
            raise ValidationError(
                f"standard purity must be within [0, 1], got {purity}",
                field="standard_purity",
            )

        stock = MetalStock(
            code=code,
            metal_type=metal_type,
            karat=karat,
            description=description,
            pcs=pcs,
            standard_purity=purity,
            pass_purity_diff=pass_purity_diff,
            exclude_vat=exclude_vat,
            vat_on_making=vat_on_making,
            wastage=wastage,
            making_unit=making_unit,
            created_by_id=actor_id,
            **attributes,
        )
        stock.inventory = Inventory(
            purity=purity,
            pcs_count=0,
            gross_weight=ZERO,
            pure_weight=ZERO,
            created_by_id=actor_id,
        )
        self.session.add(stock)
        self.session.flush()

        self.session.add(
            InventoryLog(
                metal_stock_id=stock.id,
                stock_code=code,
                voucher_code=OPENING_VOUCHER,
                voucher_date=voucher_date or datetime.now().astimezone(),
                transaction_type="opening",
                action=InventoryAction.ADD.value,
                gross_weight=ZERO,
                pieces=0,
                pcs=pcs,
                created_by_id=actor_id,
            )
        )
        self.session.flush()

        logger.info(
            "metal_stock_created",
            extra={"stock_code": code, "standard_purity": str(purity), "pcs": pcs},
        )
        return stock

    def get_inventory(self, code: str) -> InventoryInfo:
        """
        Current inventory for a SKU.

        Raises:
            MetalStockNotFoundError: If the code is unknown.
            InventoryNotFoundError: If the SKU has no inventory row.
        """
        stock = self._get_by_code(code)
        inventory = self.session.execute(
            select(Inventory)
            .where(Inventory.metal_stock_id == stock.id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if inventory is None:
            raise InventoryNotFoundError(code)
        return InventoryInfo(
            stock_code=code,
            metal_stock_id=stock.id,
            pcs_count=inventory.pcs_count,
            gross_weight=inventory.gross_weight,
            pure_weight=inventory.pure_weight,
            purity=inventory.purity,
        )
