"""Withdrawal fee tiers."""

from ledger_engine.services.fees.fee_tier_resolver import (
    AmountRange,
    FeeQuote,
    FeeTierResolver,
    TierValidationReport,
    find_tier,
    validate_tiers,
)
from ledger_engine.services.fees.fee_tier_service import FeeTierService, TierChangeResult


__all__ = [
    "AmountRange",
    "FeeQuote",
    "FeeTierResolver",
    "FeeTierService",
    "TierChangeResult",
    "TierValidationReport",
    "find_tier",
    "validate_tiers",
]
