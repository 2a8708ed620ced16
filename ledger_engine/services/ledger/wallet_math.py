"""
Pure wallet arithmetic.

Turns per-kind ledger sums into wallet totals. No I/O; used by the
reconciler and by withdrawal checks.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal

from ledger_engine.config.constants import MONEY_QUANT_EXP
from ledger_engine.models.enums import LedgerEntryKind

ZERO = Decimal("0")
MONEY_QUANT = Decimal(1).scaleb(-MONEY_QUANT_EXP)


def quantize_money(amount: Decimal) -> Decimal:
    """Round down to storage precision (never pay out a fraction too much)."""
    return amount.quantize(MONEY_QUANT, rounding=ROUND_DOWN)


@dataclass(frozen=True)
class WalletTotals:
    """Derived wallet aggregate, all values non-negative magnitudes."""

    total_deposits: Decimal = ZERO
    total_earnings: Decimal = ZERO
    total_referral_bonus: Decimal = ZERO
    total_withdrawals: Decimal = ZERO
    total_vip_payments: Decimal = ZERO

    @property
    def raw_balance(self) -> Decimal:
        """Balance before clamping; negative means the ledger is overdrawn."""
        return (
            self.total_deposits
            + self.total_earnings
            + self.total_referral_bonus
            - self.total_withdrawals
            - self.total_vip_payments
        )

    @property
    def balance(self) -> Decimal:
        return max(ZERO, self.raw_balance)

    @property
    def withdrawable(self) -> Decimal:
        """
        Amount a user may withdraw.

        Only earnings and referral bonuses are withdrawable; deposits can
        only be spent on VIP levels. Never more than the balance itself.
        """
        earned = self.total_earnings + self.total_referral_bonus - self.total_withdrawals
        return max(ZERO, min(earned, self.balance))


def compute_totals(sums: Mapping[LedgerEntryKind, Decimal]) -> WalletTotals:
    """
    Build wallet totals from signed per-kind sums.

    Debit kinds are summed as negative amounts and reported as positive
    totals; reversals of either sign are already netted in the sums.

    Args:
        sums: Signed total per entry kind (missing kinds count as zero)

    Returns:
        WalletTotals
    """
    def total(kind: LedgerEntryKind) -> Decimal:
        return sums.get(kind, ZERO)

    return WalletTotals(
        total_deposits=total(LedgerEntryKind.DEPOSIT),
        total_earnings=total(LedgerEntryKind.VIP_EARNINGS) + total(LedgerEntryKind.TASK_REWARD),
        total_referral_bonus=total(LedgerEntryKind.REFERRAL_BONUS),
        total_withdrawals=-total(LedgerEntryKind.WITHDRAWAL),
        total_vip_payments=-total(LedgerEntryKind.VIP_PAYMENT),
    )
