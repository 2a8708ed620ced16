"""
VIP membership purchase.

The only writer of VIP_PAYMENT entries. Deposited funds are meant to be
spent here, so the whole wallet balance counts toward the price.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.models.enums import LedgerEntryKind
from ledger_engine.models.vip_level import UserVip
from ledger_engine.models.wallet import Wallet
from ledger_engine.repositories.user_repository import UserRepository
from ledger_engine.repositories.vip_repository import VipRepository
from ledger_engine.services.base_service import BaseService, transaction
from ledger_engine.services.ledger.poster import LedgerPoster
from ledger_engine.services.ledger.reconciler import BalanceReconciler
from ledger_engine.utils.exceptions import ValidationError


@dataclass
class VipPurchaseResult:
    """Outcome of a VIP purchase."""

    membership: UserVip
    payment_entry_id: int
    wallet: Wallet | None


class VipPurchaseService(BaseService):
    """Buys VIP levels with wallet balance."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.vip_repo = VipRepository(session)
        self.user_repo = UserRepository(session)
        self.poster = LedgerPoster(session)
        self.reconciler = BalanceReconciler(session)

    @transaction
    async def purchase_vip(self, user_id: int, vip_level_id: int) -> VipPurchaseResult:
        """
        Pay for a VIP level and activate the membership.

        A previous membership is replaced by the new level.

        Raises:
            ValidationError: Unknown user or level, inactive level,
                insufficient balance
        """
        user = await self.user_repo.lock_user(user_id)
        if user is None:
            raise ValidationError(ValidationError.NOT_FOUND, f"User {user_id} not found")

        level = await self.vip_repo.get_by_id(vip_level_id)
        if level is None or not level.is_active:
            raise ValidationError(
                ValidationError.NOT_FOUND, f"VIP level {vip_level_id} is not available"
            )

        totals = await self.reconciler.compute_totals(user_id)
        if totals.balance < level.amount:
            raise ValidationError(
                ValidationError.INSUFFICIENT_BALANCE,
                f"VIP level {level.name} costs {level.amount}, balance is {totals.balance}",
            )

        posted = await self.poster.post(
            user_id,
            LedgerEntryKind.VIP_PAYMENT,
            level.amount,
            metadata={"vip_level_id": level.id, "vip_level": level.name},
        )
        membership = await self.vip_repo.set_membership(user_id, level.id)

        self.logger.info(
            "VIP level purchased",
            extra={"user_id": user_id, "vip_level_id": level.id, "amount": str(level.amount)},
        )
        return VipPurchaseResult(
            membership=membership, payment_entry_id=posted.entry.id, wallet=posted.wallet
        )
