"""
ReversalService -- undoes the footprint of a previously posted transaction.

Responsibility:
    Given a TransactionSnapshot captured before mutation, negates every
    effect the original posting had: party balances, other-charge account
    balances and inventory.  Also deletes the rows that back-reference the
    transaction (registry rows, fixings, fixing prices, inventory logs).

Architecture position:
    Kernel > Services.  Called by MetalTransactionService inside the same
    session as the re-post (update) or the row deletion (delete), so a
    failure anywhere leaves the original state intact.

Invariants enforced:
    - post(T) followed by reverse(T) restores every party balance and every
      inventory row to its pre-post value.
    - Cash rows are ensured before any decrement.
    - Inventory reversal writes no log rows; the voucher's logs are deleted.

Failure modes:
    - ReverseBalancesFailedError: balance reversal failed for a reason
      outside the error taxonomy.
    - InventoryUpdateFailedError: inventory reversal failed likewise.
    - DeleteRegistryFailedError: dependent row deletion failed.
    - Taxonomy errors (e.g. InsufficientStockError) propagate unchanged.
"""

from __future__ import annotations

from uuid import UUID

from bullion_kernel.domain.balance_policy import (
    compute_balance_change,
    other_charge_deltas,
)
from bullion_kernel.domain.dtos import TransactionSnapshot
from bullion_kernel.domain.line_totaliser import totalise_lines
from bullion_kernel.domain.transaction_types import inventory_factor
from bullion_kernel.exceptions import (
    BullionKernelError,
    DeleteRegistryFailedError,
    InventoryUpdateFailedError,
    ReverseBalancesFailedError,
)
from bullion_kernel.logging_config import get_logger
from bullion_kernel.services.balance_service import BalanceService
from bullion_kernel.services.fixing_service import FixingService
from bullion_kernel.services.inventory_service import InventoryService
from bullion_kernel.services.metal_stock_service import MetalStockService
from bullion_kernel.services.registry_writer import RegistryWriter

logger = get_logger("services.reversal")


class ReversalService:
    """Flush-only reversal of a posted metal transaction."""

    def __init__(
        self,
        balances: BalanceService,
        inventory: InventoryService,
        stocks: MetalStockService,
        registry: RegistryWriter,
        fixings: FixingService,
    ):
        self._balances = balances
        self._inventory = inventory
        self._stocks = stocks
        self._registry = registry
        self._fixings = fixings

    def reverse_balances(self, snapshot: TransactionSnapshot, actor_id: UUID) -> None:
        """Apply the negated balance-change vector and other-charge deltas."""
        data = snapshot.data
        try:
            totals = totalise_lines(data.stock_items, data.total_summary)
            change = compute_balance_change(
                data.transaction_type, data.mode, data.hedge, totals
            ).scaled(-1)
            self._balances.apply_change(
                snapshot.party_id, data.party_currency, change, actor_id
            )
            deltas = other_charge_deltas(data.other_charges, data.party_currency)
            self._balances.apply_other_charges(
                {key: -delta for key, delta in deltas.items()}, actor_id
            )
        except BullionKernelError:
            raise
        except Exception as exc:
            raise ReverseBalancesFailedError(
                str(snapshot.transaction_id), str(exc)
            ) from exc
        logger.info(
            "balances_reversed",
            extra={"metal_transaction_id": str(snapshot.transaction_id)},
        )

    def reverse_inventory(self, snapshot: TransactionSnapshot, actor_id: UUID) -> None:
        """Apply every stock line with the opposite inventory factor."""
        data = snapshot.data
        factor = -inventory_factor(data.transaction_type)
        try:
            stocks = self._stocks.get_many([line.stock_code for line in data.stock_items])
            for line in data.stock_items:
                self._inventory.adjust(
                    stocks[line.stock_code],
                    pieces=line.pieces,
                    gross_weight=line.gross_weight,
                    factor=factor,
                    voucher_code=data.voucher_number,
                    voucher_date=data.voucher_date,
                    transaction_type=data.transaction_type.value,
                    actor_id=actor_id,
                    write_log=False,
                )
        except BullionKernelError:
            raise
        except Exception as exc:
            raise InventoryUpdateFailedError(
                str(snapshot.transaction_id), str(exc)
            ) from exc
        logger.info(
            "inventory_reversed",
            extra={"metal_transaction_id": str(snapshot.transaction_id)},
        )

    def delete_dependents(self, snapshot: TransactionSnapshot) -> None:
        """Delete registry rows, fixings, fixing prices and inventory logs."""
        try:
            registry_rows = self._registry.delete_for_metal_transaction(
                snapshot.transaction_id
            )
            fixing_rows = self._fixings.delete_for_transaction(snapshot.transaction_id)
            log_rows = self._inventory.delete_logs_for_voucher(snapshot.voucher_number)
        except BullionKernelError:
            raise
        except Exception as exc:
            raise DeleteRegistryFailedError(
                str(snapshot.transaction_id), str(exc)
            ) from exc
        logger.info(
            "dependents_deleted",
            extra={
                "metal_transaction_id": str(snapshot.transaction_id),
                "registry_rows": registry_rows,
                "fixing_rows": fixing_rows,
                "inventory_log_rows": log_rows,
            },
        )

    def reverse(self, snapshot: TransactionSnapshot, actor_id: UUID) -> None:
        """Undo balances and inventory, then delete dependent rows."""
        self.reverse_balances(snapshot, actor_id)
        self.reverse_inventory(snapshot, actor_id)
        self.delete_dependents(snapshot)
