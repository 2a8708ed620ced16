"""
WithdrawalFeeTier model.

Amount band ``[min_amount, max_amount)`` with a fee percentage. A NULL
``max_amount`` means the band is unbounded above.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Integer
from sqlalchemy.orm import Mapped, mapped_column

from ledger_engine.models.base import Base
from ledger_engine.models.types import MoneyType, PercentType, UTCDateTime
from ledger_engine.utils.datetime_utils import utc_now


class WithdrawalFeeTier(Base):
    """Withdrawal fee tier."""

    __tablename__ = "withdrawal_fee_tiers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    min_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    max_amount: Mapped[Decimal | None] = mapped_column(MoneyType, nullable=True)
    percent: Mapped[Decimal] = mapped_column(PercentType, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        upper = self.max_amount if self.max_amount is not None else "inf"
        return f"<WithdrawalFeeTier([{self.min_amount}, {upper}) -> {self.percent}%)>"
