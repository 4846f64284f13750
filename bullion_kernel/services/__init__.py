"""Services for the bullion kernel (write side)."""

from bullion_kernel.services.balance_service import BalanceService
from bullion_kernel.services.deal_order_service import DealOrderService
from bullion_kernel.services.fixing_service import FixingService
from bullion_kernel.services.inventory_service import InventoryService
from bullion_kernel.services.metal_stock_service import InventoryInfo, MetalStockService
from bullion_kernel.services.metal_transaction_service import (
    MetalTransactionService,
    PostingResult,
)
from bullion_kernel.services.party_service import CashBalanceInfo, PartyInfo, PartyService
from bullion_kernel.services.registry_writer import RegistryWriter
from bullion_kernel.services.reversal_service import ReversalService
from bullion_kernel.services.sequence_service import SequenceService
from bullion_kernel.services.voucher_service import VoucherService

__all__ = [
    "BalanceService",
    "CashBalanceInfo",
    "DealOrderService",
    "FixingService",
    "InventoryInfo",
    "InventoryService",
    "MetalStockService",
    "MetalTransactionService",
    "PartyInfo",
    "PartyService",
    "PostingResult",
    "RegistryWriter",
    "ReversalService",
    "SequenceService",
    "VoucherService",
]
