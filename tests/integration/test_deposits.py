"""
Integration tests for the deposit lifecycle.

Covers:
- Submission checks
- Verification with auto-confirmation and manual review
- Manual approval with referral fan-out
- Rejection
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from ledger_engine.models.enums import DepositStatus, LedgerEntryKind, Network
from ledger_engine.repositories.ledger_repository import LedgerRepository
from ledger_engine.repositories.wallet_repository import WalletRepository
from ledger_engine.services.deposit.deposit_service import DepositService
from ledger_engine.utils.exceptions import ConflictError, ValidationError


async def deposit_entries(session, user_id: int):
    return await LedgerRepository(session).get_user_entries(user_id, LedgerEntryKind.DEPOSIT)


class TestSubmitDeposit:
    """Test creating deposit requests."""

    @pytest.mark.asyncio
    async def test_submit_creates_pending_deposit(
        self, session, clock, make_user, engine_settings, tx_hash
    ):
        user = await make_user()
        service = DepositService(session, clock=clock)

        deposit = await service.submit_deposit(
            user.id, Decimal("50"), engine_settings, network=Network.BSC, tx_hash=tx_hash
        )

        assert deposit.status == DepositStatus.PENDING.value
        assert deposit.tx_hash == "ab" * 32
        assert deposit.network == "BSC"
        assert deposit.created_at == clock.now
        assert await deposit_entries(session, user.id) == []

    @pytest.mark.asyncio
    async def test_below_minimum(self, session, make_user, engine_settings):
        user = await make_user()

        with pytest.raises(ValidationError) as exc_info:
            await DepositService(session).submit_deposit(user.id, Decimal("5"), engine_settings)

        assert exc_info.value.reason == ValidationError.AMOUNT_BELOW_MINIMUM

    @pytest.mark.asyncio
    async def test_deposits_disabled(self, session, make_user, engine_settings):
        user = await make_user()
        settings = engine_settings.model_copy(update={"is_deposit_enabled": False})

        with pytest.raises(ValidationError) as exc_info:
            await DepositService(session).submit_deposit(user.id, Decimal("50"), settings)

        assert exc_info.value.reason == ValidationError.DEPOSITS_DISABLED

    @pytest.mark.asyncio
    async def test_invalid_hash(self, session, make_user, engine_settings):
        user = await make_user()

        with pytest.raises(ValidationError) as exc_info:
            await DepositService(session).submit_deposit(
                user.id, Decimal("50"), engine_settings, tx_hash="0xnothex"
            )

        assert exc_info.value.reason == ValidationError.INVALID_TX_HASH


class TestVerifyDeposit:
    """Test cross-network verification of a pending deposit."""

    @pytest.mark.asyncio
    async def test_matching_transfer_auto_confirms(
        self,
        session,
        clock,
        make_user,
        engine_settings,
        build_verifier,
        platform_transfer,
        tx_hash,
    ):
        sponsor = await make_user("sponsor")
        user = await make_user("depositor", referrer=sponsor)
        service = DepositService(
            session,
            verifier=build_verifier(Network.BSC, platform_transfer("50")),
            clock=clock,
        )
        deposit = await service.submit_deposit(user.id, Decimal("50"), engine_settings)

        result = await service.verify_deposit(deposit.id, tx_hash, engine_settings)

        assert result.auto_confirmed is True
        assert result.deposit.status == DepositStatus.APPROVED.value
        assert result.deposit.verified_network == "BSC"
        assert result.deposit.auto_confirmed is True
        entries = await deposit_entries(session, user.id)
        assert [e.amount for e in entries] == [Decimal("50")]
        assert entries[0].idempotency_key == f"deposit:{deposit.id}"
        assert result.approval.referral.total_credited == Decimal("5")
        wallet = await WalletRepository(session).get_by_user_id(user.id)
        assert wallet.balance == Decimal("50")

    @pytest.mark.asyncio
    async def test_amount_mismatch_goes_to_manual_review(
        self, session, make_user, engine_settings, build_verifier, platform_transfer, tx_hash
    ):
        user = await make_user()
        service = DepositService(
            session, verifier=build_verifier(Network.BSC, platform_transfer("45"))
        )
        deposit = await service.submit_deposit(user.id, Decimal("50"), engine_settings)

        result = await service.verify_deposit(deposit.id, tx_hash, engine_settings)

        assert result.auto_confirmed is False
        assert result.deposit.status == DepositStatus.MANUAL_REVIEW.value
        assert "mismatch" in result.review_reason
        assert result.deposit.verification_result["found_on_network"] == "BSC"
        assert await deposit_entries(session, user.id) == []

    @pytest.mark.asyncio
    async def test_unknown_token_goes_to_manual_review(
        self, session, make_user, engine_settings, build_verifier, platform_transfer, tx_hash
    ):
        """A lookalike token of the declared amount credits nothing."""
        lookalike = replace(
            platform_transfer("50"),
            token_contract="0x0000000000000000000000000000000000000abc",
            token_symbol=None,
        )
        user = await make_user()
        service = DepositService(session, verifier=build_verifier(Network.BSC, lookalike))
        deposit = await service.submit_deposit(user.id, Decimal("50"), engine_settings)

        result = await service.verify_deposit(deposit.id, tx_hash, engine_settings)

        assert result.auto_confirmed is False
        assert result.deposit.status == DepositStatus.MANUAL_REVIEW.value
        assert result.review_reason.startswith("Unsupported token")
        assert await deposit_entries(session, user.id) == []

    @pytest.mark.asyncio
    async def test_not_found_goes_to_manual_review(
        self, session, make_user, engine_settings, build_verifier, tx_hash
    ):
        user = await make_user()
        service = DepositService(session, verifier=build_verifier())
        deposit = await service.submit_deposit(user.id, Decimal("50"), engine_settings)

        result = await service.verify_deposit(deposit.id, tx_hash, engine_settings)

        assert result.deposit.status == DepositStatus.MANUAL_REVIEW.value
        assert result.review_reason == "Transaction not found on any network"

    @pytest.mark.asyncio
    async def test_auto_confirm_disabled(
        self, session, make_user, engine_settings, build_verifier, platform_transfer, tx_hash
    ):
        user = await make_user()
        settings = engine_settings.model_copy(update={"is_auto_confirm_enabled": False})
        service = DepositService(
            session, verifier=build_verifier(Network.BSC, platform_transfer("50"))
        )
        deposit = await service.submit_deposit(user.id, Decimal("50"), settings)

        result = await service.verify_deposit(deposit.id, tx_hash, settings)

        assert result.auto_confirmed is False
        assert result.review_reason == "Auto-confirmation is disabled"

    @pytest.mark.asyncio
    async def test_reused_hash_goes_to_manual_review(
        self, session, make_user, engine_settings, build_verifier, platform_transfer, tx_hash
    ):
        user = await make_user()
        service = DepositService(
            session, verifier=build_verifier(Network.BSC, platform_transfer("50"))
        )
        first = await service.submit_deposit(user.id, Decimal("50"), engine_settings)
        await service.verify_deposit(first.id, tx_hash, engine_settings)
        second = await service.submit_deposit(user.id, Decimal("50"), engine_settings)

        result = await service.verify_deposit(second.id, tx_hash, engine_settings)

        assert result.auto_confirmed is False
        assert result.review_reason == "Transaction hash already used by another deposit"
        assert len(await deposit_entries(session, user.id)) == 1

    @pytest.mark.asyncio
    async def test_processed_deposit_cannot_be_verified(
        self, session, make_user, engine_settings, build_verifier, platform_transfer, tx_hash
    ):
        user = await make_user()
        service = DepositService(
            session, verifier=build_verifier(Network.BSC, platform_transfer("50"))
        )
        deposit = await service.submit_deposit(user.id, Decimal("50"), engine_settings)
        await service.verify_deposit(deposit.id, tx_hash, engine_settings)

        with pytest.raises(ConflictError) as exc_info:
            await service.verify_deposit(deposit.id, tx_hash, engine_settings)

        assert exc_info.value.reason == ConflictError.DEPOSIT_NOT_PENDING


class TestReviewDeposit:
    """Test manual approval and rejection."""

    @pytest.mark.asyncio
    async def test_manual_approval(self, session, make_user, engine_settings):
        sponsor = await make_user("sponsor")
        user = await make_user("depositor", referrer=sponsor)
        service = DepositService(session)
        deposit = await service.submit_deposit(user.id, Decimal("200"), engine_settings)

        result = await service.approve_deposit(deposit.id, engine_settings, admin_id=7)

        assert result.deposit.status == DepositStatus.APPROVED.value
        assert result.deposit.reviewed_by == 7
        assert result.deposit.auto_confirmed is False
        assert result.referral.total_credited == Decimal("20")

    @pytest.mark.asyncio
    async def test_double_approval_rejected(self, session, make_user, engine_settings):
        user = await make_user()
        service = DepositService(session)
        deposit = await service.submit_deposit(user.id, Decimal("50"), engine_settings)
        await service.approve_deposit(deposit.id, engine_settings)

        with pytest.raises(ConflictError):
            await service.approve_deposit(deposit.id, engine_settings)

        assert len(await deposit_entries(session, user.id)) == 1

    @pytest.mark.asyncio
    async def test_reject(self, session, make_user, engine_settings):
        user = await make_user()
        service = DepositService(session)
        deposit = await service.submit_deposit(user.id, Decimal("50"), engine_settings)

        rejected = await service.reject_deposit(deposit.id, admin_id=7, reason="No funds arrived")

        assert rejected.status == DepositStatus.REJECTED.value
        assert rejected.review_reason == "No funds arrived"
        assert await deposit_entries(session, user.id) == []

    @pytest.mark.asyncio
    async def test_unknown_deposit(self, session, engine_settings):
        with pytest.raises(ValidationError) as exc_info:
            await DepositService(session).approve_deposit(404, engine_settings)

        assert exc_info.value.reason == ValidationError.NOT_FOUND
