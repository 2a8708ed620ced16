"""
Balance reconciler.

Rebuilds a user's cached wallet from the ledger. This is the only code
path that writes wallet money columns: it sums every entry by kind and
overwrites the row, so running it twice changes nothing and running it
after drift repairs the cache.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.models.wallet import Wallet
from ledger_engine.repositories.ledger_repository import LedgerRepository
from ledger_engine.repositories.user_repository import UserRepository
from ledger_engine.repositories.wallet_repository import WalletRepository
from ledger_engine.services.base_service import BaseService, transaction
from ledger_engine.services.ledger.wallet_math import WalletTotals, compute_totals
from ledger_engine.utils.datetime_utils import utc_now
from ledger_engine.utils.exceptions import LedgerIntegrityError, ValidationError


@dataclass
class BalanceDrift:
    """Cached balance that disagreed with the ledger."""

    user_id: int
    cached_balance: Decimal | None
    ledger_balance: Decimal


@dataclass
class ReconcileAllReport:
    """Result of a full reconciliation run."""

    checked: int = 0
    drifted: list[BalanceDrift] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)


class BalanceReconciler(BaseService):
    """Derives wallets from ledger entries."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.ledger_repo = LedgerRepository(session)
        self.wallet_repo = WalletRepository(session)
        self.user_repo = UserRepository(session)

    async def compute_totals(self, user_id: int) -> WalletTotals:
        """
        Read the ledger and derive totals without writing anything.

        Raises:
            LedgerIntegrityError: Ledger read failed
        """
        try:
            sums = await self.ledger_repo.sum_by_kind(user_id)
        except SQLAlchemyError as e:
            raise LedgerIntegrityError(
                LedgerIntegrityError.READ_FAILED,
                f"Failed to read ledger for user {user_id}: {e}",
            ) from e
        return compute_totals(sums)

    async def rebuild_wallet(self, user_id: int) -> Wallet:
        """
        Lock the user, replay the ledger and overwrite the wallet.

        Runs inside the caller's transaction and does not commit. The
        user row lock serializes concurrent rebuilds for the same user.

        Args:
            user_id: User ID

        Returns:
            Rebuilt wallet

        Raises:
            ValidationError: User does not exist
            LedgerIntegrityError: Ledger read failed (wallet untouched)
        """
        user = await self.user_repo.lock_user(user_id)
        if user is None:
            raise ValidationError(ValidationError.NOT_FOUND, f"User {user_id} not found")

        totals = await self.compute_totals(user_id)

        if totals.raw_balance < 0:
            self.logger.warning(
                "Ledger overdrawn, wallet balance clamped to zero",
                extra={"user_id": user_id, "raw_balance": str(totals.raw_balance)},
            )

        return await self.wallet_repo.overwrite_totals(
            user_id,
            balance=totals.balance,
            total_deposits=totals.total_deposits,
            total_earnings=totals.total_earnings,
            total_referral_bonus=totals.total_referral_bonus,
            total_withdrawals=totals.total_withdrawals,
            total_vip_payments=totals.total_vip_payments,
            reconciled_at=utc_now(),
        )

    @transaction
    async def reconcile(self, user_id: int) -> Wallet:
        """
        Reconcile one user's wallet and commit.

        On any failure the transaction is rolled back and the previous
        wallet row stays as it was.

        Args:
            user_id: User ID

        Returns:
            Reconciled wallet
        """
        wallet = await self.rebuild_wallet(user_id)
        self.logger.info(
            "Wallet reconciled",
            extra={"user_id": user_id, "balance": str(wallet.balance)},
        )
        return wallet

    async def reconcile_all(self) -> ReconcileAllReport:
        """
        Reconcile every user that has ledger entries.

        Each user is reconciled in its own transaction; a failure is
        recorded in the report and the run moves on to the next user.

        Returns:
            ReconcileAllReport listing users whose cached balance drifted
        """
        report = ReconcileAllReport()
        user_ids = await self.ledger_repo.get_user_ids_with_entries()

        for user_id in user_ids:
            cached = await self.wallet_repo.get_by_user_id(user_id)
            cached_balance = cached.balance if cached is not None else None
            try:
                wallet = await self.reconcile(user_id)
            except (LedgerIntegrityError, SQLAlchemyError) as e:
                report.failed[user_id] = str(e)
                continue

            report.checked += 1
            if cached_balance is None or cached_balance != wallet.balance:
                report.drifted.append(
                    BalanceDrift(
                        user_id=user_id,
                        cached_balance=cached_balance,
                        ledger_balance=wallet.balance,
                    )
                )

        self.logger.info(
            "Full reconciliation finished",
            extra={
                "checked": report.checked,
                "drifted": len(report.drifted),
                "failed": len(report.failed),
            },
        )
        return report
