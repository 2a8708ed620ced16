"""
Enumerations shared by models and services.
"""

from enum import StrEnum


class LedgerEntryKind(StrEnum):
    """Kind of money movement recorded in the ledger."""

    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    VIP_EARNINGS = "VIP_EARNINGS"
    REFERRAL_BONUS = "REFERRAL_BONUS"
    VIP_PAYMENT = "VIP_PAYMENT"
    TASK_REWARD = "TASK_REWARD"


# Kinds posted as negative amounts
DEBIT_KINDS = frozenset({LedgerEntryKind.WITHDRAWAL, LedgerEntryKind.VIP_PAYMENT})


class EarningSessionState(StrEnum):
    """Earning session state."""

    IDLE = "IDLE"
    ACTIVE = "ACTIVE"
    COOLDOWN = "COOLDOWN"


class Network(StrEnum):
    """Blockchain networks a deposit may arrive on."""

    BSC = "BSC"
    ETHEREUM = "ETHEREUM"
    POLYGON = "POLYGON"
    TRON = "TRON"


class DepositStatus(StrEnum):
    """Deposit request status."""

    PENDING = "PENDING"  # Submitted, waiting for verification
    MANUAL_REVIEW = "MANUAL_REVIEW"  # Verifier could not auto-confirm
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class WithdrawalStatus(StrEnum):
    """Withdrawal request status."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
