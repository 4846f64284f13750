"""ORM models for the bullion kernel."""

from bullion_kernel.models.deal_order import DealOrder, DealOrderStatus
from bullion_kernel.models.fixing import (
    FixingPrice,
    FixingStatus,
    TransactionFixing,
    TransactionFixingOrder,
)
from bullion_kernel.models.metal_stock import (
    Inventory,
    InventoryAction,
    InventoryLog,
    MakingUnit,
    MetalStock,
)
from bullion_kernel.models.metal_transaction import (
    MetalTransaction,
    MetalTransactionCharge,
    MetalTransactionLine,
)
from bullion_kernel.models.party import Party, PartyCashBalance
from bullion_kernel.models.registry import RegistryEntry
from bullion_kernel.models.sequence import SequenceCounter

__all__ = [
    "DealOrder",
    "DealOrderStatus",
    "FixingPrice",
    "FixingStatus",
    "Inventory",
    "InventoryAction",
    "InventoryLog",
    "MakingUnit",
    "MetalStock",
    "MetalTransaction",
    "MetalTransactionCharge",
    "MetalTransactionLine",
    "Party",
    "PartyCashBalance",
    "RegistryEntry",
    "SequenceCounter",
    "TransactionFixing",
    "TransactionFixingOrder",
]
