"""Withdrawal lifecycle."""

from ledger_engine.services.withdrawal.withdrawal_service import (
    WithdrawalRequestResult,
    WithdrawalService,
)


__all__ = ["WithdrawalRequestResult", "WithdrawalService"]
