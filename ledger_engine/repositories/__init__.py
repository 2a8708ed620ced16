"""
Data access layer.

Each repository wraps one model; services compose them over a shared
AsyncSession and own the transaction.
"""

from ledger_engine.repositories.base import BaseRepository
from ledger_engine.repositories.deposit_repository import DepositRepository
from ledger_engine.repositories.earning_session_repository import (
    EarningSessionRepository,
)
from ledger_engine.repositories.fee_tier_repository import FeeTierRepository
from ledger_engine.repositories.ledger_repository import LedgerRepository
from ledger_engine.repositories.system_settings_repository import (
    SystemSettingsRepository,
)
from ledger_engine.repositories.user_repository import UserRepository
from ledger_engine.repositories.vip_repository import VipRepository
from ledger_engine.repositories.wallet_repository import WalletRepository
from ledger_engine.repositories.withdrawal_repository import WithdrawalRepository


__all__ = [
    "BaseRepository",
    "DepositRepository",
    "EarningSessionRepository",
    "FeeTierRepository",
    "LedgerRepository",
    "SystemSettingsRepository",
    "UserRepository",
    "VipRepository",
    "WalletRepository",
    "WithdrawalRepository",
]
