"""Referral bonus distribution."""

from ledger_engine.services.referral.distributor import (
    LevelOutcome,
    LevelStatus,
    ReferralBonusDistributor,
    ReferralReport,
    referral_idempotency_key,
)


__all__ = [
    "LevelOutcome",
    "LevelStatus",
    "ReferralBonusDistributor",
    "ReferralReport",
    "referral_idempotency_key",
]
