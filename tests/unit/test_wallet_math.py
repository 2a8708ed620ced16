"""
Tests for wallet arithmetic.

Covers:
- Balance derived from per-kind sums
- Withdrawable limited to earnings and referral bonuses
- Clamping of overdrawn ledgers
- Money quantization
"""

from decimal import Decimal

from ledger_engine.models.enums import LedgerEntryKind
from ledger_engine.services.ledger.wallet_math import (
    WalletTotals,
    compute_totals,
    quantize_money,
)


class TestComputeTotals:
    """Test totals built from signed ledger sums."""

    def test_balance_from_signed_sums(self):
        """Debit kinds are negative in the ledger and positive in totals."""
        totals = compute_totals(
            {
                LedgerEntryKind.DEPOSIT: Decimal("100"),
                LedgerEntryKind.VIP_EARNINGS: Decimal("20"),
                LedgerEntryKind.REFERRAL_BONUS: Decimal("5"),
                LedgerEntryKind.WITHDRAWAL: Decimal("-10"),
                LedgerEntryKind.VIP_PAYMENT: Decimal("-50"),
            }
        )

        assert totals.total_deposits == Decimal("100")
        assert totals.total_earnings == Decimal("20")
        assert totals.total_referral_bonus == Decimal("5")
        assert totals.total_withdrawals == Decimal("10")
        assert totals.total_vip_payments == Decimal("50")
        assert totals.balance == Decimal("65")

    def test_task_rewards_count_as_earnings(self):
        totals = compute_totals(
            {
                LedgerEntryKind.VIP_EARNINGS: Decimal("5"),
                LedgerEntryKind.TASK_REWARD: Decimal("2.5"),
            }
        )

        assert totals.total_earnings == Decimal("7.5")

    def test_missing_kinds_are_zero(self):
        totals = compute_totals({})

        assert totals.balance == Decimal("0")
        assert totals.withdrawable == Decimal("0")


class TestWithdrawable:
    """Test which part of the balance may leave the platform."""

    def test_deposits_are_not_withdrawable(self):
        """Deposit-only balance can be spent on VIP but not withdrawn."""
        totals = WalletTotals(total_deposits=Decimal("100"))

        assert totals.balance == Decimal("100")
        assert totals.withdrawable == Decimal("0")

    def test_earnings_minus_withdrawals(self):
        totals = WalletTotals(
            total_deposits=Decimal("100"),
            total_earnings=Decimal("30"),
            total_referral_bonus=Decimal("10"),
            total_withdrawals=Decimal("15"),
        )

        assert totals.withdrawable == Decimal("25")

    def test_withdrawable_never_exceeds_balance(self):
        """Earnings spent on VIP are no longer withdrawable."""
        totals = WalletTotals(
            total_earnings=Decimal("50"),
            total_vip_payments=Decimal("40"),
        )

        assert totals.balance == Decimal("10")
        assert totals.withdrawable == Decimal("10")

    def test_overdrawn_ledger_clamps_to_zero(self):
        totals = WalletTotals(total_deposits=Decimal("10"), total_withdrawals=Decimal("15"))

        assert totals.raw_balance == Decimal("-5")
        assert totals.balance == Decimal("0")
        assert totals.withdrawable == Decimal("0")


class TestQuantizeMoney:
    """Test rounding to storage precision."""

    def test_rounds_down(self):
        assert quantize_money(Decimal("1.123456789")) == Decimal("1.12345678")

    def test_keeps_exact_values(self):
        assert quantize_money(Decimal("0.5")) == Decimal("0.50000000")
