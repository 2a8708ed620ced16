"""
Earning session repository.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.models.earning_session import EarningSession
from ledger_engine.repositories.base import BaseRepository


class EarningSessionRepository(BaseRepository[EarningSession]):
    """Earning session repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(EarningSession, session)

    async def get_by_user_id(self, user_id: int) -> EarningSession | None:
        """Get the user's session row, if one was ever created."""
        stmt = select(EarningSession).where(EarningSession.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
