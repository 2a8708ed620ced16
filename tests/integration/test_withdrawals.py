"""
Integration tests for withdrawals.

The requested amount is debited at request time; a rejection posts an
offsetting entry.
"""

from decimal import Decimal

import pytest

from ledger_engine.config.engine_settings import FeeBand
from ledger_engine.models.enums import LedgerEntryKind, Network, WithdrawalStatus
from ledger_engine.repositories.ledger_repository import LedgerRepository
from ledger_engine.repositories.wallet_repository import WalletRepository
from ledger_engine.services.ledger.poster import LedgerPoster
from ledger_engine.services.withdrawal.withdrawal_service import WithdrawalService
from ledger_engine.utils.exceptions import ConflictError, ValidationError

PAYOUT_ADDRESS = "0x3333333333333333333333333333333333333333"


async def credit(session, user_id: int, kind: LedgerEntryKind, amount: str) -> None:
    await LedgerPoster(session).post(user_id, kind, Decimal(amount))
    await session.commit()


class TestRequestWithdrawal:
    """Test withdrawal requests."""

    @pytest.mark.asyncio
    async def test_request_debits_ledger(self, session, clock, make_user, engine_settings):
        user = await make_user()
        await credit(session, user.id, LedgerEntryKind.VIP_EARNINGS, "100")
        service = WithdrawalService(session, clock=clock)

        result = await service.request_withdrawal(
            user.id, Decimal("40"), PAYOUT_ADDRESS, engine_settings, network=Network.BSC
        )

        assert result.withdrawal.status == WithdrawalStatus.PENDING.value
        assert result.withdrawal.fee_amount == Decimal("4")
        assert result.withdrawal.net_amount == Decimal("36")
        assert result.quote.is_fallback is True
        assert result.wallet.balance == Decimal("60")
        assert result.wallet.total_withdrawals == Decimal("40")
        debits = await LedgerRepository(session).get_user_entries(
            user.id, LedgerEntryKind.WITHDRAWAL
        )
        assert [d.amount for d in debits] == [Decimal("-40")]
        assert debits[0].idempotency_key == f"withdrawal:{result.withdrawal.id}"

    @pytest.mark.asyncio
    async def test_fee_tier_applied(self, session, make_user, engine_settings):
        user = await make_user()
        await credit(session, user.id, LedgerEntryKind.REFERRAL_BONUS, "100")
        settings = engine_settings.model_copy(
            update={
                "fee_tiers": (
                    FeeBand(min_amount=Decimal("0"), max_amount=Decimal("50"), percent=Decimal("10")),
                    FeeBand(min_amount=Decimal("50"), percent=Decimal("2"), tier_id=9),
                )
            }
        )

        result = await WithdrawalService(session).request_withdrawal(
            user.id, Decimal("50"), PAYOUT_ADDRESS, settings
        )

        assert result.withdrawal.fee_percent == Decimal("2")
        assert result.quote.tier_id == 9
        assert result.withdrawal.net_amount == Decimal("49")

    @pytest.mark.asyncio
    async def test_deposits_are_not_withdrawable(self, session, make_user, engine_settings):
        user = await make_user()
        await credit(session, user.id, LedgerEntryKind.DEPOSIT, "500")

        with pytest.raises(ValidationError) as exc_info:
            await WithdrawalService(session).request_withdrawal(
                user.id, Decimal("20"), PAYOUT_ADDRESS, engine_settings
            )

        assert exc_info.value.reason == ValidationError.INSUFFICIENT_BALANCE

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, session, make_user, engine_settings):
        user = await make_user()
        await credit(session, user.id, LedgerEntryKind.VIP_EARNINGS, "15")

        with pytest.raises(ValidationError) as exc_info:
            await WithdrawalService(session).request_withdrawal(
                user.id, Decimal("20"), PAYOUT_ADDRESS, engine_settings
            )

        assert exc_info.value.reason == ValidationError.INSUFFICIENT_BALANCE
        assert await LedgerRepository(session).get_user_entries(
            user.id, LedgerEntryKind.WITHDRAWAL
        ) == []

    @pytest.mark.asyncio
    async def test_below_minimum(self, session, make_user, engine_settings):
        user = await make_user()
        await credit(session, user.id, LedgerEntryKind.VIP_EARNINGS, "100")

        with pytest.raises(ValidationError) as exc_info:
            await WithdrawalService(session).request_withdrawal(
                user.id, Decimal("5"), PAYOUT_ADDRESS, engine_settings
            )

        assert exc_info.value.reason == ValidationError.AMOUNT_BELOW_MINIMUM

    @pytest.mark.asyncio
    async def test_withdrawals_disabled(self, session, make_user, engine_settings):
        user = await make_user()
        settings = engine_settings.model_copy(update={"is_withdrawal_enabled": False})

        with pytest.raises(ValidationError) as exc_info:
            await WithdrawalService(session).request_withdrawal(
                user.id, Decimal("50"), PAYOUT_ADDRESS, settings
            )

        assert exc_info.value.reason == ValidationError.WITHDRAWALS_DISABLED

    @pytest.mark.asyncio
    async def test_pending_withdrawal_conflict(self, session, make_user, engine_settings):
        user = await make_user()
        await credit(session, user.id, LedgerEntryKind.VIP_EARNINGS, "100")
        service = WithdrawalService(session)
        await service.request_withdrawal(user.id, Decimal("20"), PAYOUT_ADDRESS, engine_settings)

        with pytest.raises(ConflictError) as exc_info:
            await service.request_withdrawal(
                user.id, Decimal("20"), PAYOUT_ADDRESS, engine_settings
            )

        assert exc_info.value.reason == ConflictError.WITHDRAWAL_PENDING


class TestReviewWithdrawal:
    """Test approval and rejection."""

    @pytest.mark.asyncio
    async def test_approve_keeps_debit(self, session, make_user, engine_settings):
        user = await make_user()
        await credit(session, user.id, LedgerEntryKind.VIP_EARNINGS, "100")
        service = WithdrawalService(session)
        requested = await service.request_withdrawal(
            user.id, Decimal("30"), PAYOUT_ADDRESS, engine_settings
        )

        withdrawal = await service.approve_withdrawal(
            requested.withdrawal.id, admin_id=1, payout_tx_hash="0x" + "cd" * 32
        )

        assert withdrawal.status == WithdrawalStatus.COMPLETED.value
        assert withdrawal.reviewed_by == 1
        wallet = await WalletRepository(session).get_by_user_id(user.id)
        assert wallet.balance == Decimal("70")

    @pytest.mark.asyncio
    async def test_reject_refunds(self, session, make_user, engine_settings):
        user = await make_user()
        await credit(session, user.id, LedgerEntryKind.VIP_EARNINGS, "100")
        service = WithdrawalService(session)
        requested = await service.request_withdrawal(
            user.id, Decimal("30"), PAYOUT_ADDRESS, engine_settings
        )

        withdrawal = await service.reject_withdrawal(
            requested.withdrawal.id, admin_id=1, reason="Address blacklisted"
        )

        assert withdrawal.status == WithdrawalStatus.REJECTED.value
        assert withdrawal.reject_reason == "Address blacklisted"
        entries = await LedgerRepository(session).get_user_entries(
            user.id, LedgerEntryKind.WITHDRAWAL
        )
        assert [e.amount for e in entries] == [Decimal("-30"), Decimal("30")]
        wallet = await WalletRepository(session).get_by_user_id(user.id)
        assert wallet.balance == Decimal("100")
        assert wallet.total_withdrawals == Decimal("0")

    @pytest.mark.asyncio
    async def test_processed_withdrawal_cannot_be_reviewed_again(
        self, session, make_user, engine_settings
    ):
        user = await make_user()
        await credit(session, user.id, LedgerEntryKind.VIP_EARNINGS, "100")
        service = WithdrawalService(session)
        requested = await service.request_withdrawal(
            user.id, Decimal("30"), PAYOUT_ADDRESS, engine_settings
        )
        await service.reject_withdrawal(requested.withdrawal.id, admin_id=1, reason="no")

        with pytest.raises(ConflictError) as exc_info:
            await service.reject_withdrawal(requested.withdrawal.id, admin_id=1, reason="no")

        assert exc_info.value.reason == ConflictError.WITHDRAWAL_NOT_PENDING

    @pytest.mark.asyncio
    async def test_new_request_after_rejection(self, session, make_user, engine_settings):
        user = await make_user()
        await credit(session, user.id, LedgerEntryKind.VIP_EARNINGS, "100")
        service = WithdrawalService(session)
        first = await service.request_withdrawal(
            user.id, Decimal("100"), PAYOUT_ADDRESS, engine_settings
        )
        await service.reject_withdrawal(first.withdrawal.id, admin_id=1, reason="retry")

        second = await service.request_withdrawal(
            user.id, Decimal("100"), PAYOUT_ADDRESS, engine_settings
        )

        assert second.wallet.balance == Decimal("0")
