"""
VIP catalog repository.

Read-only access to VIP levels plus the user's membership row.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.models.vip_level import UserVip, VipLevel
from ledger_engine.repositories.base import BaseRepository
from ledger_engine.utils.datetime_utils import utc_now


class VipRepository(BaseRepository[VipLevel]):
    """VIP level repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(VipLevel, session)

    async def get_active_level(self, user_id: int) -> VipLevel | None:
        """
        Get the VIP level the user currently earns with.

        Both the membership and the level itself must be active.

        Args:
            user_id: User ID

        Returns:
            Active VIP level or None
        """
        stmt = (
            select(VipLevel)
            .join(UserVip, UserVip.vip_level_id == VipLevel.id)
            .where(
                UserVip.user_id == user_id,
                UserVip.is_active.is_(True),
                VipLevel.is_active.is_(True),
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_membership(self, user_id: int) -> UserVip | None:
        """Get the user's membership row, active or not."""
        stmt = select(UserVip).where(UserVip.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def set_membership(self, user_id: int, vip_level_id: int) -> UserVip:
        """
        Activate a membership for the user, replacing any previous one.

        Args:
            user_id: User ID
            vip_level_id: Purchased level

        Returns:
            Active membership
        """
        membership = await self.get_membership(user_id)
        if membership is None:
            membership = UserVip(user_id=user_id, vip_level_id=vip_level_id)
            self.session.add(membership)
        else:
            membership.vip_level_id = vip_level_id
            membership.purchased_at = utc_now()
        membership.is_active = True

        await self.session.flush()
        await self.session.refresh(membership)
        return membership
