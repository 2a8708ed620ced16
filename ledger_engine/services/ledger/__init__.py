"""
Ledger services.

LedgerPoster writes entries; BalanceReconciler derives wallets from them.
"""

from ledger_engine.services.ledger.poster import LedgerPoster, PostResult
from ledger_engine.services.ledger.reconciler import (
    BalanceDrift,
    BalanceReconciler,
    ReconcileAllReport,
)
from ledger_engine.services.ledger.task_rewards import TaskRewardService
from ledger_engine.services.ledger.wallet_math import (
    WalletTotals,
    compute_totals,
    quantize_money,
)


__all__ = [
    "BalanceDrift",
    "BalanceReconciler",
    "LedgerPoster",
    "PostResult",
    "ReconcileAllReport",
    "TaskRewardService",
    "WalletTotals",
    "compute_totals",
    "quantize_money",
]
