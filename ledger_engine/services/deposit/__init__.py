"""Deposit lifecycle."""

from ledger_engine.services.deposit.deposit_service import (
    DepositApprovalResult,
    DepositService,
    DepositVerificationResult,
    deposit_idempotency_key,
)


__all__ = [
    "DepositApprovalResult",
    "DepositService",
    "DepositVerificationResult",
    "deposit_idempotency_key",
]
