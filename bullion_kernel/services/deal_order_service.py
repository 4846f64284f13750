"""Deal orders settled by metal transactions."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from bullion_kernel.logging_config import get_logger
from bullion_kernel.models.deal_order import DealOrder, DealOrderStatus
from bullion_kernel.services.base import BaseService

logger = get_logger("services.deal_order")


class DealOrderService(BaseService[DealOrder]):
    def create_deal_order(
        self,
        order_number: str,
        actor_id: UUID,
        party_id: UUID | None = None,
        status: DealOrderStatus = DealOrderStatus.PENDING,
    ) -> DealOrder:
        order = DealOrder(
            order_number=order_number,
            party_id=party_id,
            status=status.value,
            created_by_id=actor_id,
        )
        self.session.add(order)
        self.session.flush()
        return order

    def get(self, deal_order_id: UUID) -> DealOrder | None:
        return self.session.execute(
            select(DealOrder).where(DealOrder.id == deal_order_id)
        ).scalar_one_or_none()

    def mark_completed(self, deal_order_id: UUID, actor_id: UUID) -> bool:
        """Mark a deal order completed; returns False when it does not exist."""
        order = self.get(deal_order_id)
        if order is None:
            logger.warning(
                "deal_order_not_found", extra={"deal_order_id": str(deal_order_id)}
            )
            return False
        order.status = DealOrderStatus.COMPLETED.value
        order.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "deal_order_completed",
            extra={"deal_order_id": str(deal_order_id), "order_number": order.order_number},
        )
        return True
