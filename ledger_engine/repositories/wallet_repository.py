"""
Wallet repository.

``overwrite_totals`` is the only method that writes wallet money columns
and is called exclusively by BalanceReconciler.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.models.wallet import Wallet
from ledger_engine.repositories.base import BaseRepository


class WalletRepository(BaseRepository[Wallet]):
    """Wallet repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Wallet, session)

    async def get_by_user_id(self, user_id: int) -> Wallet | None:
        """Get cached wallet for user."""
        stmt = select(Wallet).where(Wallet.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def overwrite_totals(
        self,
        user_id: int,
        *,
        balance: Decimal,
        total_deposits: Decimal,
        total_earnings: Decimal,
        total_referral_bonus: Decimal,
        total_withdrawals: Decimal,
        total_vip_payments: Decimal,
        reconciled_at: datetime,
    ) -> Wallet:
        """
        Replace every derived column of the user's wallet.

        Creates the wallet row when the user has none yet.

        Returns:
            Persisted wallet
        """
        wallet = await self.get_by_user_id(user_id)
        if wallet is None:
            wallet = Wallet(user_id=user_id)
            self.session.add(wallet)

        wallet.balance = balance
        wallet.total_deposits = total_deposits
        wallet.total_earnings = total_earnings
        wallet.total_referral_bonus = total_referral_bonus
        wallet.total_withdrawals = total_withdrawals
        wallet.total_vip_payments = total_vip_payments
        wallet.reconciled_at = reconciled_at

        await self.session.flush()
        await self.session.refresh(wallet)
        return wallet
