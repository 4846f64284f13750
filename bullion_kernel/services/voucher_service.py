"""Hedge voucher numbering: ``<prefix><counter, zero-padded to 3>`` per prefix."""

from __future__ import annotations

from bullion_config.schema import EngineConfig
from bullion_kernel.domain.transaction_types import TransactionType
from bullion_kernel.logging_config import get_logger
from bullion_kernel.services.sequence_service import SequenceService

logger = get_logger("services.voucher")


class VoucherService:
    """Allocates hedge voucher numbers from locked counters."""

    def __init__(self, session, config: EngineConfig):
        self._sequence = SequenceService(session)
        self._config = config

    def next_hedge_voucher(self, transaction_type: TransactionType) -> str:
        prefix = self._config.hedge_prefix_for(transaction_type.value)
        value = self._sequence.next_value(SequenceService.hedge_voucher_sequence(prefix))
        voucher = f"{prefix}{value:03d}"
        logger.info(
            "hedge_voucher_allocated",
            extra={"hedge_voucher_number": voucher, "prefix": prefix},
        )
        return voucher
