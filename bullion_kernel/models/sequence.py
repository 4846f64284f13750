"""Sequence counter table backing SequenceService."""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from bullion_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Named counter with its current value.

    Row-level locking (SELECT ... FOR UPDATE) ensures monotonicity under
    concurrency.
    """

    __tablename__ = "sequence_counters"

    # Sequence name (e.g. "registry_entry", "hedge_voucher:HPM")
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
