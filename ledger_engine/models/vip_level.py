"""
VIP level catalog and user memberships.

The catalog itself is managed elsewhere; the engine only reads it and
records which level a user bought.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_engine.models.base import Base
from ledger_engine.models.types import MoneyType, UTCDateTime
from ledger_engine.utils.datetime_utils import utc_now


class VipLevel(Base):
    """
    VIP level entity.

    Attributes:
        id: Primary key
        name: Display name (unique)
        amount: Entry investment
        daily_earning: Fixed payout granted per earning session
        is_active: Whether the level can be bought and earn
    """

    __tablename__ = "vip_levels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    daily_earning: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class UserVip(Base):
    """A user's VIP membership (at most one per user)."""

    __tablename__ = "user_vips"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    vip_level_id: Mapped[int] = mapped_column(
        ForeignKey("vip_levels.id", ondelete="RESTRICT"),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    purchased_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )
