"""
Fee tier administration.

Every create or delete re-validates the active tier set and hands the
report back to the operator; an inconsistent set is saved but flagged.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.config.engine_settings import FeeBand
from ledger_engine.models.fee_tier import WithdrawalFeeTier
from ledger_engine.repositories.fee_tier_repository import FeeTierRepository
from ledger_engine.services.base_service import BaseService, transaction
from ledger_engine.services.fees.fee_tier_resolver import (
    TierValidationReport,
    describe_malformed,
    validate_tiers,
)
from ledger_engine.utils.exceptions import ValidationError


@dataclass
class TierChangeResult:
    """Outcome of a tier mutation."""

    tier: WithdrawalFeeTier | None
    report: TierValidationReport


def to_band(tier: WithdrawalFeeTier) -> FeeBand:
    return FeeBand(
        min_amount=tier.min_amount,
        max_amount=tier.max_amount,
        percent=tier.percent,
        tier_id=tier.id,
    )


class FeeTierService(BaseService):
    """Admin operations on withdrawal fee tiers."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.fee_tier_repo = FeeTierRepository(session)

    async def validate_tiers(self) -> TierValidationReport:
        """Validate the currently active tier set."""
        tiers = await self.fee_tier_repo.get_active_tiers()
        return validate_tiers([to_band(t) for t in tiers])

    @transaction
    async def create_tier(
        self,
        min_amount: Decimal,
        max_amount: Decimal | None,
        percent: Decimal,
    ) -> TierChangeResult:
        """
        Create a tier and re-validate the set.

        Args:
            min_amount: Inclusive lower bound
            max_amount: Exclusive upper bound (None for unbounded)
            percent: Fee percent in [0, 100]

        Returns:
            TierChangeResult with the new tier and the set's report

        Raises:
            ValidationError: The tier itself is malformed
        """
        problem = describe_malformed(
            FeeBand(min_amount=min_amount, max_amount=max_amount, percent=percent)
        )
        if problem:
            raise ValidationError(ValidationError.INVALID_FEE_TIER, problem)

        tier = await self.fee_tier_repo.create(
            min_amount=min_amount,
            max_amount=max_amount,
            percent=percent,
            is_active=True,
        )
        report = await self.validate_tiers()
        self._log_report("created", tier.id, report)
        return TierChangeResult(tier=tier, report=report)

    @transaction
    async def delete_tier(self, tier_id: int) -> TierChangeResult:
        """
        Delete a tier and re-validate the set.

        Raises:
            ValidationError: Tier does not exist
        """
        deleted = await self.fee_tier_repo.delete(tier_id)
        if not deleted:
            raise ValidationError(
                ValidationError.NOT_FOUND, f"Fee tier {tier_id} not found"
            )
        report = await self.validate_tiers()
        self._log_report("deleted", tier_id, report)
        return TierChangeResult(tier=None, report=report)

    def _log_report(
        self, action: str, tier_id: int, report: TierValidationReport
    ) -> None:
        if report.is_valid:
            self.logger.info(f"Fee tier {action}", extra={"tier_id": tier_id})
        else:
            self.logger.warning(
                f"Fee tier {action}, tier set is inconsistent",
                extra={"tier_id": tier_id, "problems": report.summary()},
            )
