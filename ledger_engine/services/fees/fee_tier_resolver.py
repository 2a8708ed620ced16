"""
Withdrawal fee tier resolution and validation.

Tiers are ``[min_amount, max_amount)`` bands; a valid set partitions
``[0, inf)`` with no gaps and no overlaps. Resolution works with whatever
set exists and only warns when the set is inconsistent.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from loguru import logger

from ledger_engine.config.business_constants import MAX_FEE_PERCENT
from ledger_engine.config.engine_settings import EngineSettings, FeeBand
from ledger_engine.services.ledger.wallet_math import quantize_money

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class AmountRange:
    """Half-open amount range; ``end=None`` means unbounded."""

    start: Decimal
    end: Decimal | None

    def __str__(self) -> str:
        end = "inf" if self.end is None else str(self.end)
        return f"[{self.start}, {end})"


@dataclass
class TierValidationReport:
    """Problems found in a tier set."""

    overlaps: list[AmountRange] = field(default_factory=list)
    gaps: list[AmountRange] = field(default_factory=list)
    malformed: list[str] = field(default_factory=list)
    missing_tail: bool = False

    @property
    def is_valid(self) -> bool:
        return not (self.overlaps or self.gaps or self.malformed or self.missing_tail)

    def summary(self) -> str:
        parts = []
        if self.overlaps:
            parts.append("overlaps " + ", ".join(str(r) for r in self.overlaps))
        if self.gaps:
            parts.append("gaps " + ", ".join(str(r) for r in self.gaps))
        if self.malformed:
            parts.append("malformed " + "; ".join(self.malformed))
        return "; ".join(parts) or "ok"


@dataclass(frozen=True)
class FeeQuote:
    """Fee breakdown for a withdrawal amount."""

    amount: Decimal
    fee_percent: Decimal
    fee_amount: Decimal
    net_amount: Decimal
    tier_id: int | None = None
    is_fallback: bool = False


def describe_malformed(tier: FeeBand) -> str | None:
    """Return why a single tier is unusable, or None if it is well formed."""
    if tier.min_amount < 0:
        return f"{tier.min_amount}: negative lower bound"
    if tier.max_amount is not None and tier.max_amount <= tier.min_amount:
        return f"{tier.min_amount}: upper bound {tier.max_amount} not above lower bound"
    if tier.percent < 0 or tier.percent > MAX_FEE_PERCENT:
        return f"{tier.min_amount}: percent {tier.percent} outside [0, {MAX_FEE_PERCENT}]"
    return None


def sort_tiers(tiers: Sequence[FeeBand]) -> list[FeeBand]:
    """Sort by lower bound; unbounded tiers last among equal lower bounds."""
    return sorted(
        tiers,
        key=lambda t: (t.min_amount, t.max_amount is None, t.max_amount or ZERO),
    )


def validate_tiers(tiers: Sequence[FeeBand]) -> TierValidationReport:
    """
    Check that a tier set partitions ``[0, inf)``.

    An empty set is valid: every withdrawal then uses the global fallback fee.

    Args:
        tiers: Tier set in any order

    Returns:
        TierValidationReport with overlaps, gaps and malformed tiers
    """
    report = TierValidationReport()
    usable = []
    for tier in sort_tiers(tiers):
        problem = describe_malformed(tier)
        if problem:
            report.malformed.append(problem)
        else:
            usable.append(tier)

    if not usable:
        return report

    first = usable[0]
    if first.min_amount > 0:
        report.gaps.append(AmountRange(ZERO, first.min_amount))

    # Highest upper bound covered so far (None == unbounded)
    covered_until: Decimal | None = first.max_amount
    for tier in usable[1:]:
        if covered_until is None:
            report.overlaps.append(AmountRange(tier.min_amount, tier.max_amount))
            continue

        if tier.min_amount < covered_until:
            overlap_end = (
                covered_until
                if tier.max_amount is None
                else min(covered_until, tier.max_amount)
            )
            report.overlaps.append(AmountRange(tier.min_amount, overlap_end))
        elif tier.min_amount > covered_until:
            report.gaps.append(AmountRange(covered_until, tier.min_amount))

        if tier.max_amount is None:
            covered_until = None
        else:
            covered_until = max(covered_until, tier.max_amount)

    if covered_until is not None:
        report.missing_tail = True
        report.gaps.append(AmountRange(covered_until, None))

    return report


def find_tier(amount: Decimal, tiers: Sequence[FeeBand]) -> FeeBand | None:
    """
    First tier (by lower bound) containing ``amount``.

    A boundary amount belongs to the upper tier since lower bounds are
    inclusive and upper bounds exclusive.
    """
    for tier in sort_tiers(tiers):
        if describe_malformed(tier):
            continue
        if tier.contains(amount):
            return tier
    return None


class FeeTierResolver:
    """Resolves withdrawal fees from one settings snapshot."""

    def __init__(self, engine_settings: EngineSettings) -> None:
        self.engine_settings = engine_settings
        self.tiers = sort_tiers(engine_settings.fee_tiers)
        self.report = validate_tiers(self.tiers)
        if not self.report.is_valid:
            logger.warning(
                "Withdrawal fee tiers are inconsistent",
                extra={"problems": self.report.summary()},
            )

    def resolve_fee(self, amount: Decimal) -> Decimal:
        """
        Fee percent for ``amount``.

        Falls back to the global fee percent when no tier matches.
        """
        tier = find_tier(amount, self.tiers)
        if tier is None:
            return self.engine_settings.withdrawal_fee_percent
        return tier.percent

    def quote(self, amount: Decimal) -> FeeQuote:
        """
        Full fee breakdown for ``amount``.

        Tier fees are ``amount * percent / 100``; the fallback adds the
        global fixed fee on top. The fee never exceeds the amount.
        """
        tier = find_tier(amount, self.tiers)
        if tier is not None:
            percent = tier.percent
            fee = amount * percent / HUNDRED
            tier_id = tier.tier_id
            is_fallback = False
        else:
            percent = self.engine_settings.withdrawal_fee_percent
            fee = amount * percent / HUNDRED + self.engine_settings.withdrawal_fee_fixed
            tier_id = None
            is_fallback = True
            logger.warning(
                "No fee tier matched, using global fee",
                extra={"amount": str(amount), "percent": str(percent)},
            )

        fee = min(quantize_money(fee), amount)
        return FeeQuote(
            amount=amount,
            fee_percent=percent,
            fee_amount=fee,
            net_amount=amount - fee,
            tier_id=tier_id,
            is_fallback=is_fallback,
        )
