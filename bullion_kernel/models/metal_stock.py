"""
Module: bullion_kernel.models.metal_stock
Responsibility: ORM persistence for stock-keeping units (MetalStock), their
    running inventory balance (Inventory) and the append-only inventory audit
    log (InventoryLog).
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - MetalStock.code is unique.
    - Exactly one Inventory row per MetalStock (uq_inventory_metal_stock).
    - Inventory.pure_weight == gross_weight * purity after every adjustment.
    - standard_purity is a decimal fraction in [0, 1], never a percentage.

Failure modes:
    - IntegrityError on duplicate code or a second inventory row.

Audit relevance:
    InventoryLog is append-only; every adjustment posted by a metal
    transaction writes one row keyed by the transaction's voucher.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bullion_kernel.db.base import TrackedBase
from bullion_kernel.db.types import ZERO


class MakingUnit(str, Enum):
    """Basis on which making charges are quoted."""

    GRAMS = "grams"
    PIECES = "pieces"
    PERCENTAGE = "percentage"


class InventoryAction(str, Enum):
    ADD = "add"
    REMOVE = "remove"


class MetalStock(TrackedBase):
    """
    Stock-keeping unit.

    Policy flags (pass_purity_diff, exclude_vat, vat_on_making) are the
    defaults for stock lines that do not override them.  ``wastage`` is
    recorded but not consumed by posting.
    """

    __tablename__ = "metal_stocks"

    __table_args__ = (
        UniqueConstraint("code", name="uq_metal_stock_code"),
        Index("idx_metal_stock_active", "is_active"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    metal_type: Mapped[str] = mapped_column(String(50), nullable=False)
    karat: Mapped[str | None] = mapped_column(String(20), nullable=True)
    size: Mapped[str | None] = mapped_column(String(50), nullable=True)
    color: Mapped[str | None] = mapped_column(String(50), nullable=True)
    brand: Mapped[str | None] = mapped_column(String(50), nullable=True)
    country: Mapped[str | None] = mapped_column(String(50), nullable=True)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Pieces-tracked (True) or weight-tracked (False)
    pcs: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    standard_purity: Mapped[Decimal] = mapped_column(nullable=False)

    pass_purity_diff: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    exclude_vat: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    vat_on_making: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    wastage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    making_unit: Mapped[str | None] = mapped_column(String(20), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    inventory: Mapped[Optional["Inventory"]] = relationship(
        back_populates="metal_stock",
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<MetalStock {self.code}>"


class Inventory(TrackedBase):
    """Running per-SKU balance."""

    __tablename__ = "inventories"

    __table_args__ = (
        UniqueConstraint("metal_stock_id", name="uq_inventory_metal_stock"),
    )

    metal_stock_id: Mapped[UUID] = mapped_column(
        ForeignKey("metal_stocks.id"), nullable=False
    )

    pcs_count: Mapped[int] = mapped_column(nullable=False, default=0)
    gross_weight: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    pure_weight: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    purity: Mapped[Decimal] = mapped_column(nullable=False)

    metal_stock: Mapped[MetalStock] = relationship(back_populates="inventory")

    def __repr__(self) -> str:
        return (
            f"<Inventory {self.metal_stock_id}: pcs={self.pcs_count} "
            f"gross={self.gross_weight}>"
        )


class InventoryLog(TrackedBase):
    """Append-only audit row for one inventory adjustment."""

    __tablename__ = "inventory_logs"

    __table_args__ = (
        Index("idx_inventory_log_voucher", "voucher_code"),
        Index("idx_inventory_log_stock", "metal_stock_id"),
    )

    metal_stock_id: Mapped[UUID] = mapped_column(
        ForeignKey("metal_stocks.id"), nullable=False
    )
    stock_code: Mapped[str] = mapped_column(String(50), nullable=False)

    voucher_code: Mapped[str] = mapped_column(String(100), nullable=False)
    voucher_date: Mapped[datetime] = mapped_column(nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(30), nullable=False)

    action: Mapped[str] = mapped_column(String(10), nullable=False)
    gross_weight: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    pieces: Mapped[int] = mapped_column(nullable=False, default=0)
    pcs: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_draft: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<InventoryLog {self.stock_code} {self.action} {self.gross_weight}>"
