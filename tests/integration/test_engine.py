"""
Integration tests for the LedgerEngine facade.

Each call loads a fresh settings snapshot from the database and process
configuration.
"""

from decimal import Decimal

import pytest

from ledger_engine.config.settings import Settings
from ledger_engine.models.enums import EarningSessionState, LedgerEntryKind, Network
from ledger_engine.models.system_settings import SystemSettings
from ledger_engine.services.engine import LedgerEngine
from ledger_engine.services.verification.cross_network_verifier import CrossNetworkResult
from ledger_engine.services.verification.networks import build_default_lookups


@pytest.fixture
def config(collection_address):
    return Settings(environment="test", bsc_collection_address=collection_address)


@pytest.fixture
def make_engine(session, clock, config, build_verifier, platform_transfer):
    def _make_engine(amount_on_chain: str = "150") -> LedgerEngine:
        return LedgerEngine(
            session,
            verifier=build_verifier(Network.BSC, platform_transfer(amount_on_chain)),
            config=config,
            clock=clock,
        )

    return _make_engine


class TestLoadSettings:
    """Test settings snapshots."""

    @pytest.mark.asyncio
    async def test_defaults_without_settings_row(self, make_engine, collection_address):
        engine = make_engine()

        snapshot = await engine.load_settings()

        assert snapshot.referral_rate(1) == Decimal("0.10")
        assert snapshot.min_withdrawal_amount == Decimal("10")
        assert snapshot.fee_tiers == ()
        assert snapshot.collection_address(Network.BSC) == collection_address
        assert snapshot.collection_address(Network.TRON) is None
        assert snapshot.supported_token_symbol(Network.TRON, "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t") == "USDT"
        assert snapshot.supported_token_symbol(Network.BSC, None) is None

    @pytest.mark.asyncio
    async def test_admin_row_and_tiers_are_loaded(self, session, make_engine):
        session.add(
            SystemSettings(
                referral_rate_level_1=Decimal("0.2"),
                min_deposit_amount=Decimal("25"),
                is_withdrawal_enabled=False,
            )
        )
        await session.commit()
        engine = make_engine()
        await engine.create_fee_tier(Decimal("0"), None, Decimal("3"))

        snapshot = await engine.load_settings()

        assert snapshot.referral_rate(1) == Decimal("0.2")
        assert snapshot.referral_rate(2) == Decimal("0.05")
        assert snapshot.min_deposit_amount == Decimal("25")
        assert snapshot.is_withdrawal_enabled is False
        assert [t.percent for t in snapshot.fee_tiers] == [Decimal("3")]
        assert await engine.resolve_fee(Decimal("500")) == Decimal("3")

    @pytest.mark.asyncio
    async def test_settings_change_applies_to_next_call(self, session, make_engine):
        engine = make_engine()
        assert await engine.resolve_fee(Decimal("100")) == Decimal("10")

        session.add(SystemSettings(withdrawal_fee_percent=Decimal("4")))
        await session.commit()

        assert await engine.resolve_fee(Decimal("100")) == Decimal("4")


class TestEngineFlow:
    """Walk a user through deposit, VIP, earning and withdrawal."""

    @pytest.mark.asyncio
    async def test_full_cycle(self, session, clock, make_engine, make_user, make_vip_level, tx_hash):
        engine = make_engine("150")
        sponsor = await make_user("sponsor")
        user = await make_user("member", referrer=sponsor)
        level = await make_vip_level(amount="100", daily_earning="30")

        deposit = await engine.submit_deposit(user.id, Decimal("150"))
        verified = await engine.check_all_networks(tx_hash, pending_deposit_id=deposit.id)
        assert verified.auto_confirmed is True

        purchase = await engine.purchase_vip(user.id, level.id)
        assert purchase.wallet.balance == Decimal("50")

        started = await engine.start_earning(user.id)
        assert started.payout_amount == Decimal("30")

        clock.advance(3600)
        status = await engine.get_earning_status(user.id)
        assert status.state == EarningSessionState.COOLDOWN
        assert status.last_earnings == Decimal("30")

        requested = await engine.request_withdrawal(user.id, Decimal("30"), "0x" + "4" * 40)
        assert requested.wallet.balance == Decimal("50")

        completed = await engine.approve_withdrawal(requested.withdrawal.id, admin_id=1)
        assert completed.processed_at == clock.now

        wallet = await engine.reconcile(user.id)
        assert wallet.balance == Decimal("50")
        assert wallet.total_deposits == Decimal("150")
        assert wallet.total_earnings == Decimal("30")
        assert wallet.total_withdrawals == Decimal("30")
        assert wallet.total_vip_payments == Decimal("100")

        # 10% of the deposit plus 10% of the session payout
        sponsor_wallet = await engine.reconcile(sponsor.id)
        assert sponsor_wallet.total_referral_bonus == Decimal("18")

        report = await engine.reconcile_all()
        assert report.drifted == []
        assert report.failed == {}

    @pytest.mark.asyncio
    async def test_check_without_deposit_returns_raw_result(self, make_engine, tx_hash):
        result = await make_engine().check_all_networks(tx_hash)

        assert isinstance(result, CrossNetworkResult)
        assert result.found_on_network == Network.BSC

    @pytest.mark.asyncio
    async def test_distribute_referral_is_idempotent(self, session, make_engine, make_user):
        engine = make_engine()
        sponsor = await make_user("sponsor")
        user = await make_user("member", referrer=sponsor)
        posted = await engine.credit_task_reward(user.id, Decimal("20"), "quiz:1")

        first = await engine.distribute_referral(
            user.id, Decimal("20"), LedgerEntryKind.TASK_REWARD, posted.entry.id
        )
        second = await engine.distribute_referral(
            user.id, Decimal("20"), LedgerEntryKind.TASK_REWARD, posted.entry.id
        )

        assert first.total_credited == Decimal("2")
        assert second.total_credited == Decimal("0")

    @pytest.mark.asyncio
    async def test_reject_flows(self, make_engine, make_user):
        engine = make_engine()
        user = await make_user()
        deposit = await engine.submit_deposit(user.id, Decimal("20"))

        rejected = await engine.reject_deposit(deposit.id, admin_id=2, reason="duplicate")
        quote = await engine.quote_withdrawal(Decimal("100"))
        tiers = await engine.validate_tiers()

        assert rejected.review_reason == "duplicate"
        assert quote.fee_amount == Decimal("10")
        assert tiers.is_valid is True

    @pytest.mark.asyncio
    async def test_close_releases_lookups(self, session, config):
        engine = LedgerEngine(session, config=config)

        assert [lookup.network for lookup in engine.verifier.lookups] == [
            lookup.network for lookup in build_default_lookups(config)
        ]
        await engine.close()
