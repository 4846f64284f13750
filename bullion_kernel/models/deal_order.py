"""
Module: bullion_kernel.models.deal_order
Responsibility: Minimal persistence for deal orders that metal transactions
    may settle.  Only the status transition to ``completed`` is driven by
    the posting engine.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bullion_kernel.db.base import TrackedBase


class DealOrderStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DealOrder(TrackedBase):
    """A negotiated order awaiting settlement by a metal transaction."""

    __tablename__ = "deal_orders"

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_deal_order_number"),
    )

    order_number: Mapped[str] = mapped_column(String(50), nullable=False)
    party_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("parties.id"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DealOrderStatus.PENDING.value
    )

    def __repr__(self) -> str:
        return f"<DealOrder {self.order_number} {self.status}>"
