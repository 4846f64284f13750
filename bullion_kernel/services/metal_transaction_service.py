"""
MetalTransactionService -- orchestrates posting of metal transactions.

Responsibility:
    Runs create / update / delete of a metal transaction as one atomic unit
    of work: persist the transaction, build and write registry rows, apply
    party balances, adjust inventory and record hedge positions.  Update and
    delete unwind the previous posting through ReversalService first.

Architecture position:
    Kernel > Services -- the only service that owns a session lifecycle.
    Opens a session from the injected factory, commits on success and rolls
    back on any failure.

Invariants enforced:
    - Validation runs before any session is opened.
    - Everything inside the session is all-or-nothing; the caller always
      sees a taxonomy error (``translate_error``).
    - Within one posting the order of effects is registry rows, balances,
      inventory.
    - A hedge voucher number is assigned at most once per transaction and
      reused on every later re-post.
    - FixingPrice recording and the deal-order status push are advisory:
      they run after commit in their own session and only log failures.

Failure modes:
    - ValidationError family: malformed payload (no session opened).
    - PartyNotFoundError / InvalidPartyError: unknown or inactive party.
    - MetalStockNotFoundError / InventoryNotFoundError / InsufficientStockError.
    - DuplicateTransactionError: voucher number already used.
    - UnbalancedPostingError / RegistryWriteError: posting rejected.
    - DeleteRegistryFailedError / InventoryUpdateFailedError /
      ReverseBalancesFailedError: unwinding failed on update or delete.
    - InternalServerError: anything else.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from bullion_config.schema import EngineConfig
from bullion_kernel.domain.balance_policy import (
    compute_balance_change,
    other_charge_deltas,
)
from bullion_kernel.domain.clock import Clock, SystemClock
from bullion_kernel.domain.dtos import MetalTransactionInput, TransactionSnapshot
from bullion_kernel.domain.line_totaliser import totalise_lines
from bullion_kernel.domain.registry_builder import (
    PostingCandidate,
    PostingContext,
    RegistryEntryBuilder,
    check_balanced,
)
from bullion_kernel.domain.transaction_types import TransactionMode, inventory_factor
from bullion_kernel.domain.validation import (
    parse_update_payload,
    validate_transaction_payload,
)
from bullion_kernel.exceptions import TransactionNotFoundError, translate_error
from bullion_kernel.logging_config import LogContext, get_logger
from bullion_kernel.models.metal_stock import MetalStock
from bullion_kernel.models.metal_transaction import (
    MetalTransaction,
    MetalTransactionCharge,
    MetalTransactionLine,
)
from bullion_kernel.models.party import Party
from bullion_kernel.services.balance_service import BalanceService
from bullion_kernel.services.deal_order_service import DealOrderService
from bullion_kernel.services.fixing_service import FixingService
from bullion_kernel.services.inventory_service import InventoryService
from bullion_kernel.services.metal_stock_service import MetalStockService
from bullion_kernel.services.party_service import PartyService
from bullion_kernel.services.registry_writer import RegistryWriter
from bullion_kernel.services.reversal_service import ReversalService
from bullion_kernel.services.voucher_service import VoucherService

logger = get_logger("services.metal_transaction")


@dataclass(frozen=True)
class PostingResult:
    """Outcome of a create or update."""

    metal_transaction_id: UUID
    voucher_number: str
    registry_transaction_id: str
    registry_entry_count: int
    hedge_voucher_number: str | None = None
    fixing_transaction_id: str | None = None


class _UnitOfWork:
    """Services bound to one session."""

    def __init__(
        self,
        session: Session,
        config: EngineConfig,
        clock: Clock,
        rng: random.Random,
    ):
        self.session = session
        self.parties = PartyService(session)
        self.stocks = MetalStockService(session)
        self.balances = BalanceService(session, clock)
        self.inventory = InventoryService(session, config.enforce_stock_underflow)
        self.registry = RegistryWriter(session, rng, config.max_id_attempts)
        self.fixings = FixingService(
            session, config.fixing_id_prefixes, rng, config.max_id_attempts
        )
        self.vouchers = VoucherService(session, config)
        self.reversal = ReversalService(
            self.balances, self.inventory, self.stocks, self.registry, self.fixings
        )


class MetalTransactionService:
    """
    Orchestrator for metal transaction postings.

    Args:
        session_factory: Callable returning a new Session per unit of work.
        config: Active engine configuration.
        clock: Time source; defaults to the system clock.
        rng: Random source for generated ids; injectable for determinism.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        config: EngineConfig,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ):
        self._session_factory = session_factory
        self._config = config
        self._clock = clock or SystemClock()
        self._rng = rng or random.Random()
        self._builder = RegistryEntryBuilder(
            config.ledger_accounts,
            base_currency=config.base_currency,
            default_currency_rate=config.default_currency_rate,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create_transaction(
        self, payload: Mapping[str, Any], actor_id: UUID
    ) -> PostingResult:
        """Validate, persist and post a new metal transaction."""
        data = validate_transaction_payload(payload)

        with LogContext.bind(
            correlation_id=str(uuid4()),
            voucher_number=data.voucher_number,
            actor_id=str(actor_id),
        ):
            logger.info(
                "metal_transaction_create_started",
                extra={
                    "transaction_type": data.transaction_type.value,
                    "party_code": data.party_code,
                    "mode": data.mode.value,
                    "hedge": data.hedge,
                    "line_count": len(data.stock_items),
                },
            )
            session = self._session_factory()
            try:
                uow = _UnitOfWork(session, self._config, self._clock, self._rng)
                party = uow.parties.get_transactable(data.party_code)
                data, stocks = self._resolve_lines(uow, data)

                txn = MetalTransaction(created_by_id=actor_id)
                self._apply_fields(txn, data, party, stocks, actor_id)
                session.add(txn)
                session.flush()

                with LogContext.bind(transaction_id=str(txn.id)):
                    result = self._post(uow, txn, data, party, stocks, actor_id)
                session.commit()
            except Exception as exc:
                session.rollback()
                logger.error(
                    "metal_transaction_create_failed",
                    extra={"error": type(exc).__name__},
                    exc_info=True,
                )
                raise translate_error(exc) from exc
            finally:
                session.close()

            logger.info(
                "metal_transaction_created",
                extra={
                    "metal_transaction_id": str(result.metal_transaction_id),
                    "registry_transaction_id": result.registry_transaction_id,
                    "registry_entry_count": result.registry_entry_count,
                    "hedge_voucher_number": result.hedge_voucher_number,
                },
            )
            self._run_advisory(result.metal_transaction_id, data, actor_id)
            return result

    def update_transaction(
        self,
        transaction_id: UUID,
        payload: Mapping[str, Any],
        actor_id: UUID,
    ) -> PostingResult:
        """
        Unwind the stored posting and re-post it with the updated fields.

        Only the updatable fields present in ``payload`` change; everything
        else (deal order, currencies, hedge voucher) is kept.
        """
        changes = parse_update_payload(payload)

        with LogContext.bind(
            correlation_id=str(uuid4()),
            transaction_id=str(transaction_id),
            actor_id=str(actor_id),
        ):
            session = self._session_factory()
            try:
                uow = _UnitOfWork(session, self._config, self._clock, self._rng)
                txn = self._load(session, transaction_id)
                snapshot = TransactionSnapshot.from_model(txn)

                uow.reversal.delete_dependents(snapshot)
                uow.reversal.reverse_balances(snapshot, actor_id)
                uow.reversal.reverse_inventory(snapshot, actor_id)

                data = replace(snapshot.data, **changes)
                party = uow.parties.get_transactable(data.party_code)
                data, stocks = self._resolve_lines(uow, data)

                # Replaced children must be deleted before new line numbers
                # are inserted.
                txn.lines.clear()
                txn.other_charges.clear()
                session.flush()
                self._apply_fields(txn, data, party, stocks, actor_id)
                txn.updated_by_id = actor_id
                session.flush()

                result = self._post(uow, txn, data, party, stocks, actor_id)
                session.commit()
            except Exception as exc:
                session.rollback()
                logger.error(
                    "metal_transaction_update_failed",
                    extra={"error": type(exc).__name__},
                    exc_info=True,
                )
                raise translate_error(exc) from exc
            finally:
                session.close()

            logger.info(
                "metal_transaction_updated",
                extra={
                    "metal_transaction_id": str(transaction_id),
                    "previous_party_code": snapshot.data.party_code,
                    "party_code": data.party_code,
                    "registry_transaction_id": result.registry_transaction_id,
                    "registry_entry_count": result.registry_entry_count,
                },
            )
            self._run_advisory(transaction_id, data, actor_id)
            return result

    def delete_transaction(self, transaction_id: UUID, actor_id: UUID) -> None:
        """Reverse the posting, delete its dependents and hard-delete it."""
        with LogContext.bind(
            correlation_id=str(uuid4()),
            transaction_id=str(transaction_id),
            actor_id=str(actor_id),
        ):
            session = self._session_factory()
            try:
                uow = _UnitOfWork(session, self._config, self._clock, self._rng)
                txn = self._load(session, transaction_id)
                snapshot = TransactionSnapshot.from_model(txn)

                uow.reversal.reverse_balances(snapshot, actor_id)
                uow.reversal.reverse_inventory(snapshot, actor_id)
                uow.reversal.delete_dependents(snapshot)

                session.delete(txn)
                session.commit()
            except Exception as exc:
                session.rollback()
                logger.error(
                    "metal_transaction_delete_failed",
                    extra={"error": type(exc).__name__},
                    exc_info=True,
                )
                raise translate_error(exc) from exc
            finally:
                session.close()

            logger.info(
                "metal_transaction_deleted",
                extra={
                    "metal_transaction_id": str(transaction_id),
                    "voucher_number": snapshot.voucher_number,
                },
            )

    def get_transaction(self, transaction_id: UUID) -> TransactionSnapshot:
        """
        Load a stored transaction as an immutable snapshot.

        Raises:
            TransactionNotFoundError: If the id is unknown.
        """
        session = self._session_factory()
        try:
            return TransactionSnapshot.from_model(self._load(session, transaction_id))
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Posting core
    # ------------------------------------------------------------------

    def _load(self, session: Session, transaction_id: UUID) -> MetalTransaction:
        txn = session.execute(
            select(MetalTransaction)
            .where(MetalTransaction.id == transaction_id)
            .options(
                selectinload(MetalTransaction.lines),
                selectinload(MetalTransaction.other_charges),
            )
        ).scalar_one_or_none()
        if txn is None:
            raise TransactionNotFoundError(str(transaction_id))
        return txn

    def _resolve_lines(
        self, uow: _UnitOfWork, data: MetalTransactionInput
    ) -> tuple[MetalTransactionInput, dict[str, MetalStock]]:
        """Load every referenced SKU and fill line policy from it."""
        stocks = uow.stocks.get_many([line.stock_code for line in data.stock_items])
        lines = tuple(
            line.resolve_policy(stocks[line.stock_code]) for line in data.stock_items
        )
        return replace(data, stock_items=lines), stocks

    def _apply_fields(
        self,
        txn: MetalTransaction,
        data: MetalTransactionInput,
        party: Party,
        stocks: Mapping[str, MetalStock],
        actor_id: UUID,
    ) -> None:
        txn.transaction_type = data.transaction_type.value
        txn.fixed = data.fixed
        txn.unfix = data.unfix
        txn.hedge = data.hedge
        txn.party_id = party.id
        txn.party_code = party.party_code
        txn.party_currency = data.party_currency
        txn.item_currency = data.item_currency
        txn.base_currency = data.base_currency or self._config.base_currency
        txn.voucher_date = data.voucher_date
        txn.voucher_number = data.voucher_number
        if data.hedge_voucher_number and not txn.hedge_voucher_number:
            txn.hedge_voucher_number = data.hedge_voucher_number
        txn.item_total_amount = data.total_summary.item_total_amount
        txn.deal_order_id = data.deal_order_id
        txn.notes = data.notes

        for line_no, line in enumerate(data.stock_items, start=1):
            txn.lines.append(
                MetalTransactionLine(
                    line_no=line_no,
                    metal_stock_id=stocks[line.stock_code].id,
                    stock_code=line.stock_code,
                    pieces=line.pieces,
                    gross_weight=line.gross_weight,
                    purity=line.purity,
                    purity_std=line.purity_std,
                    pure_weight=line.pure_weight,
                    purity_difference=line.purity_difference,
                    base_amount=line.base_amount,
                    making_charges=line.making_charges,
                    premium=line.premium,
                    vat_amount=line.vat_amount,
                    other_charges_amount=line.other_charges_amount,
                    other_charges_description=line.other_charges_description,
                    metal_rate=line.metal_rate,
                    rate_in_gram=line.rate_in_gram,
                    bid_value=line.bid_value,
                    current_bid_value=line.current_bid_value,
                    pass_purity_diff=bool(line.pass_purity_diff),
                    exclude_vat=bool(line.exclude_vat),
                    vat_on_making=bool(line.vat_on_making),
                    currency_code=line.currency_code,
                    currency_rate=line.currency_rate,
                    fx_gain=line.fx_gain,
                    fx_loss=line.fx_loss,
                    created_by_id=actor_id,
                )
            )

        for line_no, charge in enumerate(data.other_charges, start=1):
            txn.other_charges.append(
                MetalTransactionCharge(
                    line_no=line_no,
                    description=charge.description,
                    debit_account=charge.debit.account,
                    debit_amount=charge.debit.amount,
                    debit_currency=charge.debit.currency,
                    credit_account=charge.credit.account,
                    credit_amount=charge.credit.amount,
                    credit_currency=charge.credit.currency,
                    vat_rate=charge.vat_rate,
                    vat_amount=charge.vat_amount,
                    created_by_id=actor_id,
                )
            )

    def _post(
        self,
        uow: _UnitOfWork,
        txn: MetalTransaction,
        data: MetalTransactionInput,
        party: Party,
        stocks: Mapping[str, MetalStock],
        actor_id: UUID,
    ) -> PostingResult:
        """Registry rows, balances, inventory and hedge position for ``txn``."""
        if data.hedge and not txn.hedge_voucher_number:
            txn.hedge_voucher_number = uow.vouchers.next_hedge_voucher(
                data.transaction_type
            )
            uow.session.flush()

        ctx = PostingContext(
            transaction_type=data.transaction_type,
            mode=data.mode,
            hedge=data.hedge,
            party_id=party.id,
            party_code=party.party_code,
            party_name=party.name,
            party_currency=data.party_currency,
            voucher_number=data.voucher_number,
            hedge_voucher_number=txn.hedge_voucher_number,
            deal_order_id=data.deal_order_id,
        )

        candidates: list[PostingCandidate] = []
        for line in data.stock_items:
            line_totals = totalise_lines([line], is_registry=True)
            candidates.extend(self._builder.build_line_entries(ctx, line_totals))
        charge_parties = uow.parties.ids_by_code(
            account
            for charge in data.other_charges
            for account in (charge.debit.account, charge.credit.account)
        )
        candidates.extend(
            self._builder.build_other_charge_entries(
                ctx, data.other_charges, charge_parties
            )
        )
        check_balanced(candidates)

        registry_id = uow.registry.generate_transaction_id(self._clock.now().year)
        entries = uow.registry.write(
            candidates,
            transaction_id=registry_id,
            metal_transaction_id=txn.id,
            transaction_type=data.transaction_type.value,
            transaction_date=data.voucher_date,
            actor_id=actor_id,
        )

        totals = totalise_lines(data.stock_items, data.total_summary)
        change = compute_balance_change(
            data.transaction_type, data.mode, data.hedge, totals
        )
        uow.balances.apply_change(party.id, data.party_currency, change, actor_id)
        uow.balances.apply_other_charges(
            other_charge_deltas(data.other_charges, data.party_currency), actor_id
        )

        factor = inventory_factor(data.transaction_type)
        for line in data.stock_items:
            uow.inventory.adjust(
                stocks[line.stock_code],
                pieces=line.pieces,
                gross_weight=line.gross_weight,
                factor=factor,
                voucher_code=data.voucher_number,
                voucher_date=data.voucher_date,
                transaction_type=data.transaction_type.value,
                actor_id=actor_id,
            )

        fixing_id = None
        if data.hedge:
            first = data.stock_items[0]
            fixing = uow.fixings.record_transaction_fixing(
                metal_transaction_id=txn.id,
                transaction_type=data.transaction_type,
                party_id=party.id,
                hedge_voucher_number=txn.hedge_voucher_number,
                voucher_number=data.voucher_number,
                voucher_date=data.voucher_date,
                totals=totals,
                commodity=first.stock_code,
                metal_type=stocks[first.stock_code].metal_type,
                currency=data.party_currency,
                actor_id=actor_id,
            )
            fixing_id = fixing.transaction_id

        return PostingResult(
            metal_transaction_id=txn.id,
            voucher_number=data.voucher_number,
            registry_transaction_id=registry_id,
            registry_entry_count=len(entries),
            hedge_voucher_number=txn.hedge_voucher_number,
            fixing_transaction_id=fixing_id,
        )

    # ------------------------------------------------------------------
    # Advisory steps
    # ------------------------------------------------------------------

    def _run_advisory(
        self,
        metal_transaction_id: UUID,
        data: MetalTransactionInput,
        actor_id: UUID,
    ) -> None:
        """Fixing price and deal-order push; failures are logged only."""
        if data.mode is TransactionMode.FIX:
            self._advisory(
                "fixing_price_failed",
                lambda session: FixingService(session).record_fixing_price(
                    metal_transaction_id,
                    totalise_lines(data.stock_items, data.total_summary),
                    actor_id,
                    self._clock.now(),
                ),
            )
        if data.deal_order_id is not None:
            self._advisory(
                "deal_order_update_failed",
                lambda session: DealOrderService(session).mark_completed(
                    data.deal_order_id, actor_id
                ),
            )

    def _advisory(self, failure_event: str, step: Callable[[Session], Any]) -> None:
        session = self._session_factory()
        try:
            step(session)
            session.commit()
        except Exception:
            session.rollback()
            logger.warning(failure_event, exc_info=True)
        finally:
            session.close()
