"""
Deposit repository.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.models.deposit import Deposit
from ledger_engine.models.enums import DepositStatus
from ledger_engine.repositories.base import BaseRepository


class DepositRepository(BaseRepository[Deposit]):
    """Deposit repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Deposit, session)

    async def is_tx_hash_used(
        self, tx_hash: str, exclude_deposit_id: int | None = None
    ) -> bool:
        """
        Check whether a hash already backs an approved deposit.

        Args:
            tx_hash: Normalized transaction hash
            exclude_deposit_id: Deposit to ignore (the one being verified)

        Returns:
            True if another approved deposit carries this hash
        """
        stmt = select(func.count(Deposit.id)).where(
            Deposit.tx_hash == tx_hash,
            Deposit.status == DepositStatus.APPROVED.value,
        )
        if exclude_deposit_id is not None:
            stmt = stmt.where(Deposit.id != exclude_deposit_id)
        result = await self.session.execute(stmt)
        return (result.scalar() or 0) > 0

    async def get_user_deposits(
        self, user_id: int, status: DepositStatus | None = None
    ) -> list[Deposit]:
        """Get user deposits, newest first."""
        stmt = select(Deposit).where(Deposit.user_id == user_id)
        if status is not None:
            stmt = stmt.where(Deposit.status == status.value)
        stmt = stmt.order_by(Deposit.created_at.desc(), Deposit.id.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
