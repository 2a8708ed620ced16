"""
Task reward crediting.

Completed platform tasks pay into the ledger as TASK_REWARD entries,
which count toward the wallet's earnings.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.models.enums import LedgerEntryKind
from ledger_engine.services.base_service import BaseService, transaction
from ledger_engine.services.ledger.poster import LedgerPoster, PostResult


class TaskRewardService(BaseService):
    """Credits task rewards exactly once per user and completion."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.poster = LedgerPoster(session)

    @transaction
    async def credit_task_reward(
        self, user_id: int, amount: Decimal, completion_id: str
    ) -> PostResult:
        """
        Credit a reward for one task completion.

        Args:
            user_id: Rewarded user
            amount: Reward amount
            completion_id: Identifier of the completion (repeatable tasks
                produce a new one per completion)

        Returns:
            PostResult (``created`` is False for a repeated completion ID)
        """
        return await self.poster.post(
            user_id,
            LedgerEntryKind.TASK_REWARD,
            amount,
            metadata={"completion_id": completion_id},
            idempotency_key=f"task:{user_id}:{completion_id}",
        )
