"""
BalanceService -- atomic party balance increments.

Responsibility:
    Applies a BalanceChange to a party's gold totals and to its cash row in
    the party currency, and applies other-charge deltas to the cash rows of
    the charge accounts.  Posting and reversal both go through here; a
    reversal is the same change scaled by -1.

Architecture position:
    Kernel > Services -- imperative shell.  Consumes the pure vector from
    ``domain/balance_policy.py``.

Invariants enforced:
    - Every increment is a single ``UPDATE ... SET col = col + :delta``
      statement; balances are never read, modified and written back.
    - The cash row for (party, currency) exists before it is incremented.
      A party's first cash row becomes its default row.
    - Cash increments are rounded to 2 dp (the net_cash of the vector).

Failure modes:
    - PartyNotFoundError: an other-charge account has no party.
    - IntegrityError on cash row creation race (savepoint retry).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Mapping
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from bullion_kernel.db.types import round_money
from bullion_kernel.domain.balance_policy import BalanceChange
from bullion_kernel.domain.clock import Clock, SystemClock
from bullion_kernel.logging_config import get_logger
from bullion_kernel.models.party import Party, PartyCashBalance
from bullion_kernel.services.base import BaseService
from bullion_kernel.services.party_service import PartyService

logger = get_logger("services.balance")


class BalanceService(BaseService[Party]):
    """Flush-only service for party balance updates."""

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def _cash_row_exists(self, party_id: UUID, currency: str) -> bool:
        return self.session.execute(
            select(PartyCashBalance.id).where(
                PartyCashBalance.party_id == party_id,
                PartyCashBalance.currency == currency,
            )
        ).first() is not None

    def ensure_cash_row(self, party_id: UUID, currency: str, actor_id: UUID) -> None:
        """Create the (party, currency) cash row with a zero amount if missing."""
        if self._cash_row_exists(party_id, currency):
            return

        has_rows = self.session.execute(
            select(func.count(PartyCashBalance.id)).where(
                PartyCashBalance.party_id == party_id
            )
        ).scalar_one()

        savepoint = self.session.begin_nested()
        try:
            self.session.add(
                PartyCashBalance(
                    party_id=party_id,
                    currency=currency,
                    is_default=has_rows == 0,
                    created_by_id=actor_id,
                )
            )
            self.session.flush()
            savepoint.commit()
            logger.info(
                "cash_row_created",
                extra={"party_id": str(party_id), "currency": currency},
            )
        except IntegrityError:
            savepoint.rollback()
            if not self._cash_row_exists(party_id, currency):
                raise

    def inc_cash(
        self,
        party_id: UUID,
        currency: str,
        delta: Decimal,
        actor_id: UUID,
    ) -> None:
        """Atomically add ``delta`` to the party's cash row in ``currency``."""
        self.ensure_cash_row(party_id, currency, actor_id)
        now = self._clock.now()
        self.session.execute(
            update(PartyCashBalance)
            .where(
                PartyCashBalance.party_id == party_id,
                PartyCashBalance.currency == currency,
            )
            .values(
                amount=PartyCashBalance.amount + delta,
                last_updated=now,
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        self.session.execute(
            update(Party)
            .where(Party.id == party_id)
            .values(last_balance_update=now)
            .execution_options(synchronize_session=False)
        )

    def inc_gold(
        self,
        party_id: UUID,
        grams: Decimal,
        value: Decimal,
        actor_id: UUID,
    ) -> None:
        """Atomically add to the party's gold grams and gold value."""
        now = self._clock.now()
        self.session.execute(
            update(Party)
            .where(Party.id == party_id)
            .values(
                gold_total_grams=Party.gold_total_grams + grams,
                gold_total_value=Party.gold_total_value + value,
                gold_last_updated=now,
                last_balance_update=now,
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )

    def apply_change(
        self,
        party_id: UUID,
        currency: str,
        change: BalanceChange,
        actor_id: UUID,
    ) -> None:
        """
        Apply one balance-change vector to a party.

        The gold increment is skipped when both gold components are zero;
        the cash row is always ensured so a posting leaves a row in the
        party currency.
        """
        if change.gold_balance != 0 or change.gold_value != 0:
            self.inc_gold(party_id, change.gold_balance, change.gold_value, actor_id)
        self.inc_cash(party_id, currency, change.net_cash, actor_id)
        self.session.flush()
        logger.info(
            "party_balance_applied",
            extra={
                "party_id": str(party_id),
                "currency": currency,
                "gold_delta": str(change.gold_balance),
                "gold_value_delta": str(change.gold_value),
                "cash_delta": str(change.net_cash),
            },
        )

    def apply_other_charges(
        self,
        deltas: Mapping[tuple[str, str], Decimal],
        actor_id: UUID,
    ) -> None:
        """
        Apply per-(account, currency) other-charge deltas.

        Accounts are party codes.  Every cash row is ensured before any
        increment is issued.

        Raises:
            PartyNotFoundError: an account code has no party.
        """
        if not deltas:
            return
        party_ids = PartyService(self.session).ids_by_code(
            account for account, _ in deltas
        )
        for (account, currency) in sorted(deltas):
            self.ensure_cash_row(party_ids[account], currency, actor_id)
        for (account, currency), delta in sorted(deltas.items()):
            self.inc_cash(party_ids[account], currency, round_money(delta), actor_id)
            logger.info(
                "other_charge_balance_updated",
                extra={
                    "account": account,
                    "currency": currency,
                    "cash_delta": str(round_money(delta)),
                },
            )
        self.session.flush()
