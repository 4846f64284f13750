"""
FixingService -- hedge positions and fixing price snapshots.

Responsibility:
    Records the TransactionFixing (with one order) opened by a hedged
    posting, records the FixingPrice snapshot of a fix-mode posting, and
    removes both when a posting is unwound.

Invariants enforced:
    - TransactionFixing.transaction_id is the side prefix followed by four
      random digits and is unique; generation gives up after a bounded
      number of draws.
    - Purchase-side postings open a SALE-HEDGE position, sale-side postings
      a PURCHASE-HEDGE position.

Failure modes:
    - IdGenerationError: no free fixing id after ``max_attempts`` draws.
"""

from __future__ import annotations

import random
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select

from bullion_config.schema import FixingIdPrefixes
from bullion_kernel.db.types import ONE
from bullion_kernel.domain.line_totaliser import LineTotals
from bullion_kernel.domain.transaction_types import TransactionType, is_purchase_side
from bullion_kernel.exceptions import IdGenerationError
from bullion_kernel.logging_config import get_logger
from bullion_kernel.models.fixing import (
    FixingPrice,
    FixingStatus,
    TransactionFixing,
    TransactionFixingOrder,
)
from bullion_kernel.services.base import BaseService

logger = get_logger("services.fixing")

SALE_HEDGE = "SALE-HEDGE"
PURCHASE_HEDGE = "PURCHASE-HEDGE"


def hedge_type_for(transaction_type: TransactionType) -> str:
    return SALE_HEDGE if is_purchase_side(transaction_type) else PURCHASE_HEDGE


class FixingService(BaseService[TransactionFixing]):
    """Flush-only service for fixing records."""

    def __init__(
        self,
        session,
        prefixes: FixingIdPrefixes | None = None,
        rng: random.Random | None = None,
        max_attempts: int = 50,
    ):
        super().__init__(session)
        self._prefixes = prefixes or FixingIdPrefixes()
        self._rng = rng or random.Random()
        self._max_attempts = max_attempts

    def prefix_for(self, transaction_type: TransactionType) -> str:
        if is_purchase_side(transaction_type):
            return self._prefixes.purchase_side
        return self._prefixes.sale_side

    def generate_fixing_id(self, prefix: str) -> str:
        """
        Draw a free ``<prefix><4 digits>`` fixing id.

        Raises:
            IdGenerationError: every draw collided.
        """
        for _ in range(self._max_attempts):
            candidate = f"{prefix}{self._rng.randint(1000, 9999)}"
            taken = self.session.execute(
                select(TransactionFixing.id).where(
                    TransactionFixing.transaction_id == candidate
                )
            ).first()
            if taken is None:
                return candidate
        raise IdGenerationError(prefix, self._max_attempts)

    def record_transaction_fixing(
        self,
        *,
        metal_transaction_id: UUID,
        transaction_type: TransactionType,
        party_id: UUID,
        hedge_voucher_number: str,
        voucher_number: str,
        voucher_date: datetime,
        totals: LineTotals,
        commodity: str,
        metal_type: str | None,
        currency: str,
        actor_id: UUID,
        notes: str | None = None,
    ) -> TransactionFixing:
        """Open the hedge position for a hedged posting."""
        fixing = TransactionFixing(
            transaction_id=self.generate_fixing_id(self.prefix_for(transaction_type)),
            metal_transaction_id=metal_transaction_id,
            party_id=party_id,
            type=hedge_type_for(transaction_type),
            voucher_number=hedge_voucher_number,
            reference_number=voucher_number,
            transaction_date=voucher_date,
            status=FixingStatus.ACTIVE.value,
            notes=notes,
            created_by_id=actor_id,
        )
        fixing.orders.append(
            TransactionFixingOrder(
                commodity=commodity,
                metal_type=metal_type,
                gross_weight=totals.gross_weight,
                pure_weight=totals.pure_weight,
                purity=ONE,
                one_gram_rate=totals.rate_in_gram,
                current_bid_value=totals.current_bid_value,
                bid_value=totals.bid_value,
                currency=currency,
                price=totals.gold_value,
                created_by_id=actor_id,
            )
        )
        self.session.add(fixing)
        self.session.flush()
        logger.info(
            "transaction_fixing_recorded",
            extra={
                "fixing_id": fixing.transaction_id,
                "fixing_type": fixing.type,
                "hedge_voucher_number": hedge_voucher_number,
                "pure_weight": str(totals.pure_weight),
            },
        )
        return fixing

    def record_fixing_price(
        self,
        metal_transaction_id: UUID,
        totals: LineTotals,
        actor_id: UUID,
        fixed_at: datetime,
    ) -> FixingPrice:
        """Snapshot the rate a fix-mode posting was fixed at."""
        price = FixingPrice(
            metal_transaction_id=metal_transaction_id,
            metal_rate=totals.metal_rate,
            rate_in_gram=totals.rate_in_gram,
            bid_value=totals.bid_value,
            current_bid_value=totals.current_bid_value,
            entry_by_id=actor_id,
            fixed_at=fixed_at,
            status=FixingStatus.ACTIVE.value,
            created_by_id=actor_id,
        )
        self.session.add(price)
        self.session.flush()
        logger.info(
            "fixing_price_recorded",
            extra={
                "metal_transaction_id": str(metal_transaction_id),
                "rate_in_gram": str(totals.rate_in_gram),
            },
        )
        return price

    def delete_for_transaction(self, metal_transaction_id: UUID) -> int:
        """Delete fixings, their orders and fixing prices of a metal transaction."""
        fixing_ids = select(TransactionFixing.id).where(
            TransactionFixing.metal_transaction_id == metal_transaction_id
        )
        self.session.execute(
            delete(TransactionFixingOrder)
            .where(TransactionFixingOrder.fixing_id.in_(fixing_ids))
            .execution_options(synchronize_session=False)
        )
        fixings = self.session.execute(
            delete(TransactionFixing)
            .where(TransactionFixing.metal_transaction_id == metal_transaction_id)
            .execution_options(synchronize_session=False)
        )
        prices = self.session.execute(
            delete(FixingPrice)
            .where(FixingPrice.metal_transaction_id == metal_transaction_id)
            .execution_options(synchronize_session=False)
        )
        return (fixings.rowcount or 0) + (prices.rowcount or 0)
