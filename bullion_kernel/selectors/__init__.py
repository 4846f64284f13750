"""Selectors for the bullion kernel (read side)."""

from bullion_kernel.selectors.registry_selector import (
    LegTotals,
    RegistryRow,
    RegistrySelector,
)

__all__ = [
    "LegTotals",
    "RegistryRow",
    "RegistrySelector",
]
