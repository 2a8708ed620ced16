"""
Business logic constants for the ledger engine.

Central location for business rules and default values. Values that admins
may change at runtime are only defaults here: the live values come from the
``system_settings`` row (see SystemSettingsRepository).
"""

from decimal import Decimal

# 3-level referral program: 10% / 5% / 2% of the qualifying amount
REFERRAL_DEPTH = 3
DEFAULT_REFERRAL_RATES = {
    1: Decimal("0.10"),  # direct referrer
    2: Decimal("0.05"),
    3: Decimal("0.02"),
}

# Deposits and withdrawals
DEFAULT_MIN_DEPOSIT_AMOUNT = Decimal("10")
DEFAULT_MIN_WITHDRAWAL_AMOUNT = Decimal("10")

# Global withdrawal fee used only when no fee tier matches the amount
DEFAULT_WITHDRAWAL_FEE_PERCENT = Decimal("10")
DEFAULT_WITHDRAWAL_FEE_FIXED = Decimal("0")

# Fee percents are stored as percentages (10 == 10%)
MAX_FEE_PERCENT = Decimal("100")

# Weekdays on which an earning session may start (Monday=0 .. Friday=4)
EARNING_WEEKDAYS = frozenset({0, 1, 2, 3, 4})
