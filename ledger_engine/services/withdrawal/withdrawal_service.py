"""
Withdrawal lifecycle.

The full requested amount is debited when the request is made, so the
balance can never be spent twice while an admin reviews it. A rejection
posts an offsetting credit of the same kind; nothing is ever deleted.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.config.constants import DEFAULT_CURRENCY
from ledger_engine.config.engine_settings import EngineSettings
from ledger_engine.models.enums import LedgerEntryKind, Network, WithdrawalStatus
from ledger_engine.models.wallet import Wallet
from ledger_engine.models.withdrawal import Withdrawal
from ledger_engine.repositories.ledger_repository import LedgerRepository
from ledger_engine.repositories.user_repository import UserRepository
from ledger_engine.repositories.withdrawal_repository import WithdrawalRepository
from ledger_engine.services.base_service import BaseService, transaction
from ledger_engine.services.fees.fee_tier_resolver import FeeQuote, FeeTierResolver
from ledger_engine.services.ledger.poster import LedgerPoster
from ledger_engine.services.ledger.reconciler import BalanceReconciler
from ledger_engine.utils.datetime_utils import utc_now
from ledger_engine.utils.exceptions import (
    ConflictError,
    LedgerIntegrityError,
    ValidationError,
)
from ledger_engine.utils.security import mask_address


@dataclass
class WithdrawalRequestResult:
    """Outcome of a withdrawal request."""

    withdrawal: Withdrawal
    quote: FeeQuote
    wallet: Wallet | None


class WithdrawalService(BaseService):
    """Withdrawal requests and their review."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(session)
        self.clock = clock
        self.withdrawal_repo = WithdrawalRepository(session)
        self.ledger_repo = LedgerRepository(session)
        self.user_repo = UserRepository(session)
        self.poster = LedgerPoster(session)
        self.reconciler = BalanceReconciler(session)

    def quote_withdrawal(
        self, amount: Decimal, engine_settings: EngineSettings
    ) -> FeeQuote:
        """Fee percent, fee amount and net payout for ``amount``."""
        if amount <= 0:
            raise ValidationError(ValidationError.INVALID_AMOUNT, "Amount must be positive")
        return FeeTierResolver(engine_settings).quote(amount)

    @transaction
    async def request_withdrawal(
        self,
        user_id: int,
        amount: Decimal,
        wallet_address: str,
        engine_settings: EngineSettings,
        currency: str = DEFAULT_CURRENCY,
        network: Network | None = None,
    ) -> WithdrawalRequestResult:
        """
        Create a withdrawal request and debit the ledger.

        Args:
            user_id: Requesting user
            amount: Gross amount (fee is taken out of it)
            wallet_address: Payout address
            engine_settings: Settings snapshot
            currency: Currency code
            network: Payout network

        Returns:
            WithdrawalRequestResult

        Raises:
            ValidationError: Disabled, bad amount, below minimum,
                insufficient withdrawable balance, unknown user
            ConflictError: Another withdrawal is still pending
        """
        if not engine_settings.is_withdrawal_enabled:
            raise ValidationError(
                ValidationError.WITHDRAWALS_DISABLED, "Withdrawals are temporarily disabled"
            )
        quote = self.quote_withdrawal(amount, engine_settings)
        if amount < engine_settings.min_withdrawal_amount:
            raise ValidationError(
                ValidationError.AMOUNT_BELOW_MINIMUM,
                f"Minimum withdrawal is {engine_settings.min_withdrawal_amount}",
            )

        user = await self.user_repo.lock_user(user_id)
        if user is None:
            raise ValidationError(ValidationError.NOT_FOUND, f"User {user_id} not found")

        if await self.withdrawal_repo.has_pending(user_id):
            raise ConflictError(
                ConflictError.WITHDRAWAL_PENDING,
                "A previous withdrawal is still awaiting review",
            )

        totals = await self.reconciler.compute_totals(user_id)
        if amount > totals.withdrawable:
            raise ValidationError(
                ValidationError.INSUFFICIENT_BALANCE,
                f"Withdrawable balance is {totals.withdrawable}",
            )

        withdrawal = await self.withdrawal_repo.create(
            user_id=user_id,
            amount=amount,
            fee_percent=quote.fee_percent,
            fee_amount=quote.fee_amount,
            net_amount=quote.net_amount,
            currency=currency,
            network=network.value if network else None,
            wallet_address=wallet_address,
            status=WithdrawalStatus.PENDING.value,
            created_at=self.clock(),
        )

        posted = await self.poster.post(
            user_id,
            LedgerEntryKind.WITHDRAWAL,
            amount,
            currency=currency,
            metadata={
                "withdrawal_id": withdrawal.id,
                "fee_amount": str(quote.fee_amount),
                "net_amount": str(quote.net_amount),
                "network": withdrawal.network,
            },
            idempotency_key=f"withdrawal:{withdrawal.id}",
        )
        withdrawal.ledger_entry_id = posted.entry.id
        await self.session.flush()

        self.logger.info(
            "Withdrawal requested",
            extra={
                "withdrawal_id": withdrawal.id,
                "user_id": user_id,
                "amount": str(amount),
                "fee": str(quote.fee_amount),
                "address": mask_address(wallet_address),
            },
        )
        return WithdrawalRequestResult(withdrawal=withdrawal, quote=quote, wallet=posted.wallet)

    async def _get_pending(self, withdrawal_id: int) -> Withdrawal:
        withdrawal = await self.withdrawal_repo.get_for_update(withdrawal_id)
        if withdrawal is None:
            raise ValidationError(
                ValidationError.NOT_FOUND, f"Withdrawal {withdrawal_id} not found"
            )
        if withdrawal.status != WithdrawalStatus.PENDING.value:
            raise ConflictError(
                ConflictError.WITHDRAWAL_NOT_PENDING,
                f"Withdrawal {withdrawal_id} is already {withdrawal.status}",
            )
        return withdrawal

    @transaction
    async def approve_withdrawal(
        self,
        withdrawal_id: int,
        admin_id: int,
        payout_tx_hash: str | None = None,
    ) -> Withdrawal:
        """Mark a pending withdrawal as paid out. The ledger is already debited."""
        withdrawal = await self._get_pending(withdrawal_id)
        withdrawal.status = WithdrawalStatus.COMPLETED.value
        withdrawal.reviewed_by = admin_id
        withdrawal.payout_tx_hash = payout_tx_hash
        withdrawal.processed_at = self.clock()
        await self.session.flush()

        self.logger.info(
            "Withdrawal completed",
            extra={"withdrawal_id": withdrawal_id, "admin_id": admin_id},
        )
        return withdrawal

    @transaction
    async def reject_withdrawal(
        self, withdrawal_id: int, admin_id: int, reason: str
    ) -> Withdrawal:
        """
        Reject a pending withdrawal and refund it with an offsetting entry.

        Raises:
            ValidationError: Withdrawal not found
            ConflictError: Withdrawal already processed
            LedgerIntegrityError: Debit entry is missing
        """
        withdrawal = await self._get_pending(withdrawal_id)

        debit = (
            await self.ledger_repo.get_by_id(withdrawal.ledger_entry_id)
            if withdrawal.ledger_entry_id is not None
            else None
        )
        if debit is None:
            raise LedgerIntegrityError(
                LedgerIntegrityError.READ_FAILED,
                f"Debit entry for withdrawal {withdrawal_id} not found",
            )

        await self.poster.post_reversal(
            debit,
            idempotency_key=f"withdrawal-refund:{withdrawal_id}",
            reason=reason,
        )

        withdrawal.status = WithdrawalStatus.REJECTED.value
        withdrawal.reviewed_by = admin_id
        withdrawal.reject_reason = reason
        withdrawal.processed_at = self.clock()
        await self.session.flush()

        self.logger.info(
            "Withdrawal rejected and refunded",
            extra={"withdrawal_id": withdrawal_id, "admin_id": admin_id, "reason": reason},
        )
        return withdrawal
