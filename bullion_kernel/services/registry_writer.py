"""
RegistryWriter -- persistence of posting candidates.

Responsibility:
    Stamps every candidate of one posting with the shared group id
    (``TXN<YYYY><3 digits>``), the metal transaction back-reference and the
    transaction date, allocates a monotonic ``seq`` and maintains the
    running balance per cost centre.  Rows are inserted unordered: each row
    goes through its own savepoint, good rows are kept and every rejected
    row is reported together.

Invariants enforced:
    - A row never carries both a debit and a credit.
    - ``running_balance = previous_balance - debit + credit`` per cost
      centre, in ``seq`` order.
    - All rows of one posting share one group id.

Failure modes:
    - RegistryWriteError: one or more rows were rejected; the caller rolls
      back the whole posting.
    - IdGenerationError: no free group id after ``max_attempts`` draws.
"""

from __future__ import annotations

import random
from datetime import datetime
from decimal import Decimal
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from bullion_kernel.db.types import ZERO
from bullion_kernel.domain.registry_builder import PostingCandidate
from bullion_kernel.exceptions import IdGenerationError, RegistryWriteError
from bullion_kernel.logging_config import get_logger
from bullion_kernel.models.registry import RegistryEntry
from bullion_kernel.services.base import BaseService
from bullion_kernel.services.sequence_service import SequenceService

logger = get_logger("services.registry")

TRANSACTION_ID_PREFIX = "TXN"


class RegistryWriter(BaseService[RegistryEntry]):
    """Flush-only writer for registry rows."""

    def __init__(
        self,
        session,
        rng: random.Random | None = None,
        max_attempts: int = 50,
    ):
        super().__init__(session)
        self._sequence = SequenceService(session)
        self._rng = rng or random.Random()
        self._max_attempts = max_attempts

    def generate_transaction_id(self, year: int) -> str:
        """
        Draw a free ``TXN<YYYY><NNN>`` group id.

        Raises:
            IdGenerationError: every draw collided with an existing group.
        """
        prefix = f"{TRANSACTION_ID_PREFIX}{year}"
        for _ in range(self._max_attempts):
            candidate = f"{prefix}{self._rng.randint(100, 999)}"
            taken = self.session.execute(
                select(RegistryEntry.id)
                .where(RegistryEntry.transaction_id == candidate)
                .limit(1)
            ).first()
            if taken is None:
                return candidate
        raise IdGenerationError(prefix, self._max_attempts)

    def _previous_balance(self, cost_center: str | None) -> Decimal:
        if cost_center is None:
            return ZERO
        previous = self.session.execute(
            select(RegistryEntry.running_balance)
            .where(RegistryEntry.cost_center == cost_center)
            .order_by(RegistryEntry.seq.desc())
            .limit(1)
        ).scalar_one_or_none()
        return previous if previous is not None else ZERO

    def write(
        self,
        candidates: Sequence[PostingCandidate],
        transaction_id: str,
        metal_transaction_id: UUID | None,
        transaction_type: str,
        transaction_date: datetime,
        actor_id: UUID,
    ) -> list[RegistryEntry]:
        """
        Insert every candidate as a registry row.

        Raises:
            RegistryWriteError: listing every rejected row.
        """
        written: list[RegistryEntry] = []
        failures: list[dict[str, Any]] = []

        for index, candidate in enumerate(candidates):
            if candidate.debit > 0 and candidate.credit > 0:
                failures.append(
                    {
                        "index": index,
                        "type": candidate.posting_class,
                        "reason": "row carries both debit and credit",
                    }
                )
                continue

            savepoint = self.session.begin_nested()
            try:
                previous = self._previous_balance(candidate.cost_center)
                entry = RegistryEntry(
                    seq=self._sequence.next_value(SequenceService.REGISTRY_ENTRY),
                    transaction_id=transaction_id,
                    metal_transaction_id=metal_transaction_id,
                    transaction_type=transaction_type,
                    type=candidate.posting_class,
                    posting_code=candidate.posting_code,
                    description=candidate.description,
                    party_id=candidate.party_id,
                    cost_center=candidate.cost_center,
                    is_bullion=candidate.is_bullion,
                    value=candidate.value,
                    debit=candidate.debit,
                    credit=candidate.credit,
                    cash_debit=candidate.cash_debit,
                    cash_credit=candidate.cash_credit,
                    gold_debit=candidate.gold_debit,
                    gold_credit=candidate.gold_credit,
                    gold_bid_value=candidate.gold_bid_value,
                    gross_weight=candidate.gross_weight,
                    pure_weight=candidate.pure_weight,
                    purity=candidate.purity,
                    transaction_date=transaction_date,
                    reference=candidate.reference,
                    hedge_reference=candidate.hedge_reference,
                    asset_type=candidate.asset_type,
                    currency_rate=candidate.currency_rate,
                    deal_order_id=candidate.deal_order_id,
                    previous_balance=previous,
                    running_balance=previous - candidate.debit + candidate.credit,
                    created_by_id=actor_id,
                )
                self.session.add(entry)
                self.session.flush()
                savepoint.commit()
                written.append(entry)
            except SQLAlchemyError as exc:
                savepoint.rollback()
                failures.append(
                    {
                        "index": index,
                        "type": candidate.posting_class,
                        "reason": str(exc.orig) if getattr(exc, "orig", None) else str(exc),
                    }
                )

        if failures:
            logger.error(
                "registry_write_failed",
                extra={
                    "registry_transaction_id": transaction_id,
                    "failed_count": len(failures),
                    "written_count": len(written),
                },
            )
            raise RegistryWriteError(failures)

        logger.info(
            "registry_entries_written",
            extra={
                "registry_transaction_id": transaction_id,
                "row_count": len(written),
            },
        )
        return written

    def delete_for_metal_transaction(self, metal_transaction_id: UUID) -> int:
        """Delete every registry row back-referencing a metal transaction."""
        result = self.session.execute(
            delete(RegistryEntry).where(
                RegistryEntry.metal_transaction_id == metal_transaction_id
            )
        )
        return result.rowcount or 0
