"""
Withdrawal model.

The requested amount is debited from the ledger at request time; a
rejection posts an offsetting credit.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_engine.models.base import Base
from ledger_engine.models.enums import WithdrawalStatus
from ledger_engine.models.types import MoneyType, PercentType, UTCDateTime
from ledger_engine.utils.datetime_utils import utc_now


class Withdrawal(Base):
    """Withdrawal model - user payout requests."""

    __tablename__ = "withdrawals"
    __table_args__ = (
        CheckConstraint("amount > 0", name="check_withdrawal_amount_positive"),
        CheckConstraint("fee_amount >= 0", name="check_withdrawal_fee_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    fee_percent: Mapped[Decimal] = mapped_column(PercentType, nullable=False)
    fee_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    currency: Mapped[str] = mapped_column(String(10), nullable=False)
    network: Mapped[str | None] = mapped_column(String(20), nullable=True)
    wallet_address: Mapped[str] = mapped_column(String(100), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default=WithdrawalStatus.PENDING.value, nullable=False, index=True
    )

    ledger_entry_id: Mapped[int | None] = mapped_column(
        ForeignKey("ledger_entries.id", ondelete="SET NULL"), nullable=True
    )
    payout_tx_hash: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reviewed_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reject_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )
    processed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
