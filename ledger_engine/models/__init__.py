"""
Database models.

Importing this package registers every table on ``Base.metadata``.
"""

from ledger_engine.models.base import Base
from ledger_engine.models.deposit import Deposit
from ledger_engine.models.earning_session import EarningSession
from ledger_engine.models.enums import (
    DEBIT_KINDS,
    DepositStatus,
    EarningSessionState,
    LedgerEntryKind,
    Network,
    WithdrawalStatus,
)
from ledger_engine.models.fee_tier import WithdrawalFeeTier
from ledger_engine.models.ledger_entry import LedgerEntry
from ledger_engine.models.system_settings import SystemSettings
from ledger_engine.models.user import User
from ledger_engine.models.vip_level import UserVip, VipLevel
from ledger_engine.models.wallet import Wallet
from ledger_engine.models.withdrawal import Withdrawal


__all__ = [
    "Base",
    "DEBIT_KINDS",
    "Deposit",
    "DepositStatus",
    "EarningSession",
    "EarningSessionState",
    "LedgerEntry",
    "LedgerEntryKind",
    "Network",
    "SystemSettings",
    "User",
    "UserVip",
    "VipLevel",
    "Wallet",
    "Withdrawal",
    "WithdrawalFeeTier",
    "WithdrawalStatus",
]
