"""
Withdrawal repository.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.models.enums import WithdrawalStatus
from ledger_engine.models.withdrawal import Withdrawal
from ledger_engine.repositories.base import BaseRepository


class WithdrawalRepository(BaseRepository[Withdrawal]):
    """Withdrawal repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Withdrawal, session)

    async def has_pending(self, user_id: int) -> bool:
        """Check whether the user already has a withdrawal awaiting review."""
        return await self.exists(
            user_id=user_id, status=WithdrawalStatus.PENDING.value
        )

    async def get_pending(self, limit: int | None = None) -> list[Withdrawal]:
        """Get pending withdrawals, oldest first."""
        stmt = (
            select(Withdrawal)
            .where(Withdrawal.status == WithdrawalStatus.PENDING.value)
            .order_by(Withdrawal.created_at, Withdrawal.id)
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
