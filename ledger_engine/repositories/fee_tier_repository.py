"""
Withdrawal fee tier repository.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.models.fee_tier import WithdrawalFeeTier
from ledger_engine.repositories.base import BaseRepository


class FeeTierRepository(BaseRepository[WithdrawalFeeTier]):
    """Fee tier repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(WithdrawalFeeTier, session)

    async def get_active_tiers(self) -> list[WithdrawalFeeTier]:
        """Get active tiers sorted by lower bound."""
        stmt = (
            select(WithdrawalFeeTier)
            .where(WithdrawalFeeTier.is_active.is_(True))
            .order_by(WithdrawalFeeTier.min_amount, WithdrawalFeeTier.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
