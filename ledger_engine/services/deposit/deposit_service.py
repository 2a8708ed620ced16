"""
Deposit lifecycle.

submit -> (verify) -> approve | manual review -> approve | reject

``approve_deposit`` is the single approval path for both admins and
auto-confirmation: it posts the DEPOSIT entry, rebuilds the wallet and
distributes referral bonuses.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.config.constants import DEFAULT_CURRENCY
from ledger_engine.config.engine_settings import EngineSettings
from ledger_engine.models.deposit import Deposit
from ledger_engine.models.enums import DepositStatus, LedgerEntryKind, Network
from ledger_engine.repositories.deposit_repository import DepositRepository
from ledger_engine.repositories.user_repository import UserRepository
from ledger_engine.services.base_service import BaseService, transaction
from ledger_engine.services.ledger.poster import LedgerPoster
from ledger_engine.services.referral.distributor import (
    ReferralBonusDistributor,
    ReferralReport,
)
from ledger_engine.services.verification.cross_network_verifier import (
    CrossNetworkResult,
    CrossNetworkVerifier,
    evaluate_auto_confirm,
)
from ledger_engine.utils.datetime_utils import utc_now
from ledger_engine.utils.exceptions import ConflictError, EngineError, ValidationError
from ledger_engine.utils.security import mask_tx_hash
from ledger_engine.utils.validation import is_valid_tx_hash, normalize_tx_hash

OPEN_STATUSES = (DepositStatus.PENDING.value, DepositStatus.MANUAL_REVIEW.value)


@dataclass
class DepositApprovalResult:
    """Outcome of approving a deposit."""

    deposit: Deposit
    ledger_entry_id: int
    referral: ReferralReport


@dataclass
class DepositVerificationResult:
    """Outcome of verifying a deposit's transaction hash."""

    deposit: Deposit
    verification: CrossNetworkResult
    auto_confirmed: bool
    review_reason: str | None = None
    approval: DepositApprovalResult | None = None


def deposit_idempotency_key(deposit_id: int) -> str:
    return f"deposit:{deposit_id}"


class DepositService(BaseService):
    """Deposit submission, verification and review."""

    def __init__(
        self,
        session: AsyncSession,
        verifier: CrossNetworkVerifier | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(session)
        self.verifier = verifier
        self.clock = clock
        self.deposit_repo = DepositRepository(session)
        self.user_repo = UserRepository(session)
        self.poster = LedgerPoster(session)
        self.distributor = ReferralBonusDistributor(session)

    @transaction
    async def submit_deposit(
        self,
        user_id: int,
        amount: Decimal,
        engine_settings: EngineSettings,
        currency: str = DEFAULT_CURRENCY,
        network: Network | None = None,
        tx_hash: str | None = None,
    ) -> Deposit:
        """
        Create a pending deposit request.

        Args:
            user_id: Depositing user
            amount: Declared amount
            engine_settings: Settings snapshot (enable flag, minimum)
            currency: Currency code
            network: Declared network, if known
            tx_hash: Transaction hash, if already known

        Returns:
            Created deposit

        Raises:
            ValidationError: Deposits disabled, bad amount, bad hash, unknown user
        """
        if not engine_settings.is_deposit_enabled:
            raise ValidationError(
                ValidationError.DEPOSITS_DISABLED, "Deposits are temporarily disabled"
            )
        if amount <= 0:
            raise ValidationError(ValidationError.INVALID_AMOUNT, "Amount must be positive")
        if amount < engine_settings.min_deposit_amount:
            raise ValidationError(
                ValidationError.AMOUNT_BELOW_MINIMUM,
                f"Minimum deposit is {engine_settings.min_deposit_amount}",
            )
        if tx_hash is not None and not is_valid_tx_hash(tx_hash):
            raise ValidationError(ValidationError.INVALID_TX_HASH, "Invalid transaction hash")
        if await self.user_repo.get_by_id(user_id) is None:
            raise ValidationError(ValidationError.NOT_FOUND, f"User {user_id} not found")

        deposit = await self.deposit_repo.create(
            user_id=user_id,
            amount=amount,
            currency=currency,
            network=network.value if network else None,
            tx_hash=normalize_tx_hash(tx_hash) if tx_hash else None,
            status=DepositStatus.PENDING.value,
            created_at=self.clock(),
        )
        self.logger.info(
            "Deposit submitted",
            extra={"deposit_id": deposit.id, "user_id": user_id, "amount": str(amount)},
        )
        return deposit

    async def _get_open_deposit(self, deposit_id: int) -> Deposit:
        deposit = await self.deposit_repo.get_for_update(deposit_id)
        if deposit is None:
            raise ValidationError(ValidationError.NOT_FOUND, f"Deposit {deposit_id} not found")
        if deposit.status not in OPEN_STATUSES:
            raise ConflictError(
                ConflictError.DEPOSIT_NOT_PENDING,
                f"Deposit {deposit_id} is already {deposit.status}",
            )
        return deposit

    async def _approve(
        self,
        deposit: Deposit,
        engine_settings: EngineSettings,
        admin_id: int | None,
        auto_confirmed: bool,
    ) -> DepositApprovalResult:
        """Post the deposit, mark it approved and fan out referral bonuses."""
        metadata = {
            "deposit_id": deposit.id,
            "network": deposit.verified_network or deposit.network,
            "tx_hash": deposit.tx_hash,
            "auto_confirmed": auto_confirmed,
        }
        posted = await self.poster.post(
            deposit.user_id,
            LedgerEntryKind.DEPOSIT,
            deposit.amount,
            currency=deposit.currency,
            metadata=metadata,
            idempotency_key=deposit_idempotency_key(deposit.id),
        )

        deposit.status = DepositStatus.APPROVED.value
        deposit.ledger_entry_id = posted.entry.id
        deposit.reviewed_by = admin_id
        deposit.auto_confirmed = auto_confirmed
        deposit.processed_at = self.clock()
        await self.session.flush()

        referral = await self.distributor.distribute(
            deposit.user_id,
            deposit.amount,
            LedgerEntryKind.DEPOSIT,
            posted.entry.id,
            engine_settings,
            currency=deposit.currency,
        )

        self.logger.info(
            "Deposit approved",
            extra={
                "deposit_id": deposit.id,
                "user_id": deposit.user_id,
                "amount": str(deposit.amount),
                "auto_confirmed": auto_confirmed,
                "admin_id": admin_id,
            },
        )
        return DepositApprovalResult(
            deposit=deposit, ledger_entry_id=posted.entry.id, referral=referral
        )

    @transaction
    async def approve_deposit(
        self,
        deposit_id: int,
        engine_settings: EngineSettings,
        admin_id: int | None = None,
    ) -> DepositApprovalResult:
        """
        Approve a pending or under-review deposit.

        Raises:
            ValidationError: Deposit not found
            ConflictError: Deposit already approved or rejected
        """
        deposit = await self._get_open_deposit(deposit_id)
        return await self._approve(deposit, engine_settings, admin_id, auto_confirmed=False)

    @transaction
    async def reject_deposit(
        self, deposit_id: int, admin_id: int, reason: str
    ) -> Deposit:
        """
        Reject a deposit. Nothing is posted to the ledger.

        Raises:
            ValidationError: Deposit not found
            ConflictError: Deposit already approved or rejected
        """
        deposit = await self._get_open_deposit(deposit_id)
        deposit.status = DepositStatus.REJECTED.value
        deposit.reviewed_by = admin_id
        deposit.review_reason = reason
        deposit.processed_at = self.clock()
        await self.session.flush()

        self.logger.info(
            "Deposit rejected",
            extra={"deposit_id": deposit_id, "admin_id": admin_id, "reason": reason},
        )
        return deposit

    @transaction
    async def verify_deposit(
        self,
        deposit_id: int,
        tx_hash: str,
        engine_settings: EngineSettings,
    ) -> DepositVerificationResult:
        """
        Check a deposit's hash on every network and auto-confirm if it matches.

        A deposit that cannot be auto-confirmed goes to manual review with
        a reason; it is never rejected here.

        Args:
            deposit_id: Deposit being verified
            tx_hash: Hash supplied by the user
            engine_settings: Settings snapshot

        Returns:
            DepositVerificationResult

        Raises:
            ValidationError: Bad hash or unknown deposit
            ConflictError: Deposit already processed
        """
        if self.verifier is None:
            raise RuntimeError("DepositService needs a CrossNetworkVerifier to verify deposits")

        # Network I/O happens before any row is locked
        verification = await self.verifier.check_all_networks(tx_hash)

        deposit = await self._get_open_deposit(deposit_id)
        deposit.tx_hash = verification.tx_hash
        deposit.verification_result = verification.to_dict()
        deposit.verified_network = (
            verification.found_on_network.value if verification.found_on_network else None
        )

        review_reason = await self._auto_confirm_blocker(deposit, verification, engine_settings)
        if review_reason is None:
            try:
                async with self.session.begin_nested():
                    approval = await self._approve(
                        deposit, engine_settings, admin_id=None, auto_confirmed=True
                    )
                return DepositVerificationResult(
                    deposit=deposit,
                    verification=verification,
                    auto_confirmed=True,
                    approval=approval,
                )
            except (EngineError, SQLAlchemyError) as e:
                self.logger.error(
                    "Auto-confirmation failed, sending deposit to manual review",
                    extra={"deposit_id": deposit_id, "error": str(e)},
                )
                review_reason = f"Auto-confirmation failed: {e}"

        deposit.status = DepositStatus.MANUAL_REVIEW.value
        deposit.review_reason = review_reason
        await self.session.flush()
        await self.session.refresh(deposit)

        self.logger.info(
            "Deposit sent to manual review",
            extra={
                "deposit_id": deposit_id,
                "tx_hash": mask_tx_hash(verification.tx_hash),
                "reason": review_reason,
            },
        )
        return DepositVerificationResult(
            deposit=deposit,
            verification=verification,
            auto_confirmed=False,
            review_reason=review_reason,
        )

    async def _auto_confirm_blocker(
        self,
        deposit: Deposit,
        verification: CrossNetworkResult,
        engine_settings: EngineSettings,
    ) -> str | None:
        """Reason the deposit must go to manual review, or None if it may auto-confirm."""
        if await self.deposit_repo.is_tx_hash_used(
            verification.tx_hash, exclude_deposit_id=deposit.id
        ):
            return "Transaction hash already used by another deposit"
        if not engine_settings.is_auto_confirm_enabled:
            return "Auto-confirmation is disabled"
        decision = evaluate_auto_confirm(verification, deposit.amount, engine_settings)
        return decision.reason if not decision.eligible else None
