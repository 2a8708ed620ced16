"""
Standard type definitions for database models.

Provides consistent types for monetary, percentage and timestamp fields
across all models.
"""

from datetime import UTC, datetime

from sqlalchemy import DECIMAL, DateTime
from sqlalchemy.types import TypeDecorator

# Standard money type for amounts, balances, rewards
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999
MoneyType = DECIMAL(18, 8)

# Fee percentage type (e.g. 10.0000 == 10%)
# Precision: 7 digits total, 4 after decimal point
PercentType = DECIMAL(7, 4)

# Referral rate type stored as a fraction (e.g. 0.1000 == 10%)
RateType = DECIMAL(6, 4)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime that always comes back in UTC.

    Some drivers (SQLite) drop tzinfo on the way back; session timing math
    compares against aware ``utc_now()`` values, so naive results are
    re-tagged as UTC here.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("Naive datetime passed to a UTCDateTime column")
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
