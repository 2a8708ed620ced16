"""
Deposit model.

A user's declaration that they sent funds; becomes a DEPOSIT ledger entry
only once approved (manually or by auto-confirmation).
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_engine.models.base import Base
from ledger_engine.models.enums import DepositStatus
from ledger_engine.models.types import MoneyType, UTCDateTime
from ledger_engine.utils.datetime_utils import utc_now


class Deposit(Base):
    """Deposit model - pending and processed deposit requests."""

    __tablename__ = "deposits"
    __table_args__ = (
        CheckConstraint("amount > 0", name="check_deposit_amount_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Declared by the user
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False)
    network: Mapped[str | None] = mapped_column(String(20), nullable=True)
    tx_hash: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)

    status: Mapped[str] = mapped_column(
        String(20), default=DepositStatus.PENDING.value, nullable=False, index=True
    )

    # Verification outcome
    verified_network: Mapped[str | None] = mapped_column(String(20), nullable=True)
    verification_result: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True
    )
    review_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    auto_confirmed: Mapped[bool] = mapped_column(default=False, nullable=False)

    # Approval
    reviewed_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ledger_entry_id: Mapped[int | None] = mapped_column(
        ForeignKey("ledger_entries.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )
    processed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
