"""
Service layer for Party operations.

Creates counterparties with their initial cash rows and guards which
parties may transact.  Returns PartyInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from bullion_kernel.exceptions import InvalidPartyError, PartyNotFoundError
from bullion_kernel.logging_config import get_logger
from bullion_kernel.models.party import Party, PartyCashBalance
from bullion_kernel.services.base import BaseService

logger = get_logger("services.party")


@dataclass(frozen=True)
class CashBalanceInfo:
    currency: str
    amount: Decimal
    is_default: bool
    last_updated: datetime | None


@dataclass(frozen=True)
class PartyInfo:
    """Immutable DTO for party data and balances."""

    id: UUID
    party_code: str
    name: str
    is_active: bool
    gold_total_grams: Decimal
    gold_total_value: Decimal
    gold_last_updated: datetime | None
    last_balance_update: datetime | None
    cash_balances: tuple[CashBalanceInfo, ...]

    @property
    def can_transact(self) -> bool:
        return self.is_active

    def cash(self, currency: str) -> Decimal:
        """Cash amount in ``currency``; zero when the row does not exist."""
        for row in self.cash_balances:
            if row.currency == currency:
                return row.amount
        return Decimal("0")


class PartyService(BaseService[Party]):
    """
    Service for managing parties.

    All public methods return PartyInfo DTOs; ``get_transactable`` returns the
    ORM entity for use inside the posting session.
    """

    def _to_dto(self, party: Party) -> PartyInfo:
        return PartyInfo(
            id=party.id,
            party_code=party.party_code,
            name=party.name,
            is_active=party.is_active,
            gold_total_grams=party.gold_total_grams,
            gold_total_value=party.gold_total_value,
            gold_last_updated=party.gold_last_updated,
            last_balance_update=party.last_balance_update,
            cash_balances=tuple(
                CashBalanceInfo(
                    currency=row.currency,
                    amount=row.amount,
                    is_default=row.is_default,
                    last_updated=row.last_updated,
                )
                for row in party.cash_balances
            ),
        )

    def _get_by_code(self, party_code: str) -> Party:
        """Get party by code with fresh balances, raising if not found."""
        stmt = (
            select(Party)
            .where(Party.party_code == party_code)
            .options(selectinload(Party.cash_balances))
            .execution_options(populate_existing=True)
        )
        party = self.session.execute(stmt).scalar_one_or_none()
        if party is None:
            raise PartyNotFoundError(party_code)
        return party

    def _get_by_id(self, party_id: UUID) -> Party:
        stmt = (
            select(Party)
            .where(Party.id == party_id)
            .options(selectinload(Party.cash_balances))
            .execution_options(populate_existing=True)
        )
        party = self.session.execute(stmt).scalar_one_or_none()
        if party is None:
            raise PartyNotFoundError(str(party_id))
        return party

    def get_by_code(self, party_code: str) -> PartyInfo:
        """
        Get party by code.

        Raises:
            PartyNotFoundError: If party doesn't exist.
        """
        return self._to_dto(self._get_by_code(party_code))

    def get_by_id(self, party_id: UUID) -> PartyInfo:
        return self._to_dto(self._get_by_id(party_id))

    def ids_by_code(self, party_codes: Iterable[str]) -> dict[str, UUID]:
        """
        Resolve party codes to ids.

        Raises:
            PartyNotFoundError: for the first code that does not exist.
        """
        codes = sorted(set(party_codes))
        if not codes:
            return {}
        rows = self.session.execute(
            select(Party.party_code, Party.id).where(Party.party_code.in_(codes))
        ).all()
        found = {code: party_id for code, party_id in rows}
        for code in codes:
            if code not in found:
                raise PartyNotFoundError(code)
        return found

    def create_party(
        self,
        party_code: str,
        name: str,
        actor_id: UUID,
        currencies: Iterable[str] = (),
        is_active: bool = True,
    ) -> PartyInfo:
        """
        Create a new party with zero balances.

        One cash row is created per currency; the first one is flagged as
        the default row.

        Args:
            party_code: Unique identifier (e.g., "SUPP-001").
            name: Display name.
            actor_id: UUID of user/actor creating the party.
            currencies: Currency codes for the initial cash rows.
            is_active: Whether the party may transact.
        """
        party = Party(
            party_code=party_code,
            name=name,
            is_active=is_active,
            created_by_id=actor_id,
        )
        seen: set[str] = set()
        for currency in currencies:
            if currency in seen:
                continue
            party.cash_balances.append(
                PartyCashBalance(
                    currency=currency,
                    is_default=not seen,
                    created_by_id=actor_id,
                )
            )
            seen.add(currency)
        self.session.add(party)
        self.session.flush()
        logger.info(
            "party_created",
            extra={"party_code": party_code, "currencies": sorted(seen)},
        )
        return self._to_dto(party)

    def deactivate_party(self, party_code: str) -> PartyInfo:
        """Deactivated parties remain for history but cannot transact."""
        party = self._get_by_code(party_code)
        party.is_active = False
        self.session.flush()
        return self._to_dto(party)

    def reactivate_party(self, party_code: str) -> PartyInfo:
        party = self._get_by_code(party_code)
        party.is_active = True
        self.session.flush()
        return self._to_dto(party)

    def get_transactable(self, party_code: str) -> Party:
        """
        Load a party that is allowed to transact.

        Raises:
            PartyNotFoundError: If party doesn't exist.
            InvalidPartyError: If party is inactive.
        """
        party = self._get_by_code(party_code)
        if not party.can_transact:
            raise InvalidPartyError(party_code)
        return party
