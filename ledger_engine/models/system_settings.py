"""
SystemSettings model.

Single row of admin-editable engine settings. Services never read it
directly; they receive an EngineSettings snapshot loaded once per operation.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Integer
from sqlalchemy.orm import Mapped, mapped_column

from ledger_engine.config.business_constants import (
    DEFAULT_MIN_DEPOSIT_AMOUNT,
    DEFAULT_MIN_WITHDRAWAL_AMOUNT,
    DEFAULT_REFERRAL_RATES,
    DEFAULT_WITHDRAWAL_FEE_FIXED,
    DEFAULT_WITHDRAWAL_FEE_PERCENT,
)
from ledger_engine.models.base import Base
from ledger_engine.models.types import MoneyType, PercentType, RateType, UTCDateTime
from ledger_engine.utils.datetime_utils import utc_now


class SystemSettings(Base):
    """Admin settings consumed by the engine."""

    __tablename__ = "system_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Referral rates as fractions (0.10 == 10%)
    referral_rate_level_1: Mapped[Decimal] = mapped_column(
        RateType, default=DEFAULT_REFERRAL_RATES[1], nullable=False
    )
    referral_rate_level_2: Mapped[Decimal] = mapped_column(
        RateType, default=DEFAULT_REFERRAL_RATES[2], nullable=False
    )
    referral_rate_level_3: Mapped[Decimal] = mapped_column(
        RateType, default=DEFAULT_REFERRAL_RATES[3], nullable=False
    )

    min_deposit_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=DEFAULT_MIN_DEPOSIT_AMOUNT, nullable=False
    )
    min_withdrawal_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=DEFAULT_MIN_WITHDRAWAL_AMOUNT, nullable=False
    )

    # Fallback fee when no tier matches
    withdrawal_fee_percent: Mapped[Decimal] = mapped_column(
        PercentType, default=DEFAULT_WITHDRAWAL_FEE_PERCENT, nullable=False
    )
    withdrawal_fee_fixed: Mapped[Decimal] = mapped_column(
        MoneyType, default=DEFAULT_WITHDRAWAL_FEE_FIXED, nullable=False
    )

    is_deposit_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    is_withdrawal_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    is_auto_confirm_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now, nullable=False
    )
