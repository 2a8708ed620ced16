"""
User repository.

Referral graph reads and the per-user row lock that serializes wallet and
earning session mutations.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.models.user import User
from ledger_engine.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(User, session)

    async def get_referrer_id(self, user_id: int) -> int | None:
        """
        Get the direct referrer of a user.

        Args:
            user_id: User ID

        Returns:
            Referrer's user ID, or None when the user has no referrer
            or does not exist
        """
        stmt = select(User.referrer_id).where(User.id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def lock_user(self, user_id: int) -> User | None:
        """
        Lock the user's row (SELECT ... FOR UPDATE).

        Every mutation of one user's wallet or earning session takes this
        lock first; it is released when the transaction ends.

        Args:
            user_id: User ID

        Returns:
            Locked user or None if not found
        """
        return await self.get_for_update(user_id)
