"""
Business logic services.

Services own transactions: public operations commit or roll back, while
building blocks (poster, distributor, rebuild_wallet) run inside the
caller's transaction.
"""

from ledger_engine.services.base_service import BaseService, transaction
from ledger_engine.services.engine import LedgerEngine


__all__ = ["BaseService", "LedgerEngine", "transaction"]
