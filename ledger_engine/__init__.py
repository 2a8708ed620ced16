"""
Ledger & earning state engine.

Ledger-backed wallets, daily earning sessions, referral bonuses,
withdrawal fee tiers and cross-network deposit verification.
"""

__version__ = "1.0.0"
