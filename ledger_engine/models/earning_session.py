"""
EarningSession model.

One row per user. The row stores timestamps only; the current state is
derived from them at read time (see services.earning.state_machine), and
``state`` is the last state that was written back.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_engine.models.base import Base
from ledger_engine.models.enums import EarningSessionState
from ledger_engine.models.types import MoneyType, UTCDateTime
from ledger_engine.utils.datetime_utils import utc_now


class EarningSession(Base):
    """
    EarningSession entity.

    Attributes:
        id: Primary key
        user_id: Owner (unique: one live session per user)
        state: Last persisted EarningSessionState
        start_time: Start of the current/last session
        duration_seconds: Session length fixed at start
        cycle_seconds: Time from start until the next session may start
        vip_daily_rate: Payout copied from the VIP level at start
        last_earnings: Payout of the last finished session
        cooldown_until: End of the cooldown that follows the last session
        payout_entry_id: VIP_EARNINGS ledger entry posted at start
        sessions_started: Lifetime counter
    """

    __tablename__ = "earning_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    state: Mapped[str] = mapped_column(
        String(20), default=EarningSessionState.IDLE.value, nullable=False
    )

    start_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    cycle_seconds: Mapped[int] = mapped_column(Integer, nullable=False)

    vip_daily_rate: Mapped[Decimal | None] = mapped_column(MoneyType, nullable=True)
    last_earnings: Mapped[Decimal | None] = mapped_column(MoneyType, nullable=True)
    cooldown_until: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    payout_entry_id: Mapped[int | None] = mapped_column(
        ForeignKey("ledger_entries.id", ondelete="SET NULL"), nullable=True
    )

    sessions_started: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now, nullable=False
    )
