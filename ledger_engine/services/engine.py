"""
Ledger engine facade.

One object exposing every engine operation to routes, admin tools and
jobs. Each call loads a fresh EngineSettings snapshot and hands it to the
service that does the work.
"""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.config.constants import DEFAULT_CURRENCY
from ledger_engine.config.engine_settings import EngineSettings
from ledger_engine.config.settings import Settings, settings as app_settings
from ledger_engine.models.deposit import Deposit
from ledger_engine.models.enums import LedgerEntryKind, Network
from ledger_engine.models.wallet import Wallet
from ledger_engine.models.withdrawal import Withdrawal
from ledger_engine.repositories.system_settings_repository import (
    SystemSettingsRepository,
)
from ledger_engine.services.base_service import BaseService, transaction
from ledger_engine.services.deposit.deposit_service import (
    DepositApprovalResult,
    DepositService,
    DepositVerificationResult,
)
from ledger_engine.services.earning.session_service import (
    EarningSessionService,
    EarningStartResult,
    EarningStatus,
)
from ledger_engine.services.fees.fee_tier_resolver import (
    FeeQuote,
    FeeTierResolver,
    TierValidationReport,
)
from ledger_engine.services.fees.fee_tier_service import FeeTierService, TierChangeResult
from ledger_engine.services.ledger.poster import PostResult
from ledger_engine.services.ledger.reconciler import BalanceReconciler, ReconcileAllReport
from ledger_engine.services.ledger.task_rewards import TaskRewardService
from ledger_engine.services.referral.distributor import (
    ReferralBonusDistributor,
    ReferralReport,
)
from ledger_engine.services.verification.cross_network_verifier import (
    CrossNetworkResult,
    CrossNetworkVerifier,
)
from ledger_engine.services.verification.networks import build_default_lookups
from ledger_engine.services.vip.purchase_service import VipPurchaseResult, VipPurchaseService
from ledger_engine.services.withdrawal.withdrawal_service import (
    WithdrawalRequestResult,
    WithdrawalService,
)
from ledger_engine.utils.datetime_utils import utc_now


class LedgerEngine(BaseService):
    """
    Facade over the ledger, earning, referral, fee and verification services.

    Example:
        async with session_maker() as session:
            engine = LedgerEngine(session)
            status = await engine.get_earning_status(user_id)
    """

    def __init__(
        self,
        session: AsyncSession,
        verifier: CrossNetworkVerifier | None = None,
        config: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Args:
            session: Async database session
            verifier: Network verifier (built from config when omitted)
            config: Process configuration (global settings when omitted)
            clock: Time source for session and review timestamps
        """
        super().__init__(session)
        self.config = config or app_settings
        self.verifier = verifier or CrossNetworkVerifier(
            build_default_lookups(self.config),
            timeout=self.config.network_lookup_timeout,
        )
        self.settings_repo = SystemSettingsRepository(session)
        self.reconciler = BalanceReconciler(session)
        self.fee_tiers = FeeTierService(session)
        self.distributor = ReferralBonusDistributor(session)
        self.earning = EarningSessionService(session, clock=clock)
        self.deposits = DepositService(session, verifier=self.verifier, clock=clock)
        self.withdrawals = WithdrawalService(session, clock=clock)
        self.vip = VipPurchaseService(session)
        self.task_rewards = TaskRewardService(session)

    async def close(self) -> None:
        """Close network clients."""
        await self.verifier.close()

    async def load_settings(self) -> EngineSettings:
        """Snapshot of admin settings and process configuration."""
        return await self.settings_repo.load_snapshot(self.config)

    # Balance

    async def reconcile(self, user_id: int) -> Wallet:
        return await self.reconciler.reconcile(user_id)

    async def reconcile_all(self) -> ReconcileAllReport:
        return await self.reconciler.reconcile_all()

    # Fees

    async def resolve_fee(self, amount: Decimal) -> Decimal:
        """Fee percent for a withdrawal amount."""
        return FeeTierResolver(await self.load_settings()).resolve_fee(amount)

    async def quote_withdrawal(self, amount: Decimal) -> FeeQuote:
        return self.withdrawals.quote_withdrawal(amount, await self.load_settings())

    async def validate_tiers(self) -> TierValidationReport:
        return await self.fee_tiers.validate_tiers()

    async def create_fee_tier(
        self, min_amount: Decimal, max_amount: Decimal | None, percent: Decimal
    ) -> TierChangeResult:
        return await self.fee_tiers.create_tier(min_amount, max_amount, percent)

    async def delete_fee_tier(self, tier_id: int) -> TierChangeResult:
        return await self.fee_tiers.delete_tier(tier_id)

    # Earning sessions

    async def start_earning(self, user_id: int) -> EarningStartResult:
        return await self.earning.start_earning(user_id, await self.load_settings())

    async def get_earning_status(self, user_id: int) -> EarningStatus:
        return await self.earning.get_earning_status(user_id)

    # Referrals

    @transaction
    async def distribute_referral(
        self,
        user_id: int,
        amount: Decimal,
        kind: LedgerEntryKind,
        source_entry_id: int,
    ) -> ReferralReport:
        """
        Distribute referral bonuses for a qualifying entry posted elsewhere.

        Repeating the call for the same entry credits nothing new.
        """
        return await self.distributor.distribute(
            user_id, amount, kind, source_entry_id, await self.load_settings()
        )

    # Verification and deposits

    async def check_all_networks(
        self, tx_hash: str, pending_deposit_id: int | None = None
    ) -> CrossNetworkResult | DepositVerificationResult:
        """
        Look a hash up on every network.

        With ``pending_deposit_id`` the result is applied to that deposit:
        it is auto-confirmed on a match, otherwise sent to manual review.
        """
        if pending_deposit_id is None:
            return await self.verifier.check_all_networks(tx_hash)
        return await self.verify_deposit(pending_deposit_id, tx_hash)

    async def submit_deposit(
        self,
        user_id: int,
        amount: Decimal,
        currency: str = DEFAULT_CURRENCY,
        network: Network | None = None,
        tx_hash: str | None = None,
    ) -> Deposit:
        return await self.deposits.submit_deposit(
            user_id, amount, await self.load_settings(), currency, network, tx_hash
        )

    async def verify_deposit(self, deposit_id: int, tx_hash: str) -> DepositVerificationResult:
        return await self.deposits.verify_deposit(
            deposit_id, tx_hash, await self.load_settings()
        )

    async def approve_deposit(
        self, deposit_id: int, admin_id: int | None = None
    ) -> DepositApprovalResult:
        return await self.deposits.approve_deposit(
            deposit_id, await self.load_settings(), admin_id
        )

    async def reject_deposit(self, deposit_id: int, admin_id: int, reason: str) -> Deposit:
        return await self.deposits.reject_deposit(deposit_id, admin_id, reason)

    # Withdrawals

    async def request_withdrawal(
        self,
        user_id: int,
        amount: Decimal,
        wallet_address: str,
        currency: str = DEFAULT_CURRENCY,
        network: Network | None = None,
    ) -> WithdrawalRequestResult:
        return await self.withdrawals.request_withdrawal(
            user_id, amount, wallet_address, await self.load_settings(), currency, network
        )

    async def approve_withdrawal(
        self, withdrawal_id: int, admin_id: int, payout_tx_hash: str | None = None
    ) -> Withdrawal:
        return await self.withdrawals.approve_withdrawal(withdrawal_id, admin_id, payout_tx_hash)

    async def reject_withdrawal(
        self, withdrawal_id: int, admin_id: int, reason: str
    ) -> Withdrawal:
        return await self.withdrawals.reject_withdrawal(withdrawal_id, admin_id, reason)

    # VIP and tasks

    async def purchase_vip(self, user_id: int, vip_level_id: int) -> VipPurchaseResult:
        return await self.vip.purchase_vip(user_id, vip_level_id)

    async def credit_task_reward(
        self, user_id: int, amount: Decimal, completion_id: str
    ) -> PostResult:
        return await self.task_rewards.credit_task_reward(user_id, amount, completion_id)
