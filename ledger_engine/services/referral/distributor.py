"""
Referral bonus distributor.

Walks the referral chain above a user and credits each ancestor a share of
a qualifying amount. Every level is posted in its own savepoint: a failed
level is logged and skipped without touching the other levels or the
entry that triggered the distribution.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.config.business_constants import REFERRAL_DEPTH
from ledger_engine.config.constants import DEFAULT_CURRENCY
from ledger_engine.config.engine_settings import EngineSettings
from ledger_engine.models.enums import LedgerEntryKind
from ledger_engine.repositories.user_repository import UserRepository
from ledger_engine.services.base_service import BaseService
from ledger_engine.services.ledger.poster import LedgerPoster
from ledger_engine.services.ledger.wallet_math import quantize_money
from ledger_engine.utils.exceptions import EngineError


class LevelStatus(StrEnum):
    """Outcome of one referral level."""

    CREDITED = "credited"
    ALREADY_CREDITED = "already_credited"
    SKIPPED = "skipped"  # zero rate or zero amount
    FAILED = "failed"


@dataclass
class LevelOutcome:
    """What happened at one referral level."""

    level: int
    referrer_id: int
    status: LevelStatus
    amount: Decimal = Decimal("0")
    entry_id: int | None = None
    error: str | None = None


@dataclass
class ReferralReport:
    """Per-level outcome of one distribution."""

    user_id: int
    source_entry_id: int
    outcomes: list[LevelOutcome] = field(default_factory=list)

    @property
    def total_credited(self) -> Decimal:
        return sum(
            (o.amount for o in self.outcomes if o.status == LevelStatus.CREDITED),
            Decimal("0"),
        )

    @property
    def failed_levels(self) -> list[int]:
        return [o.level for o in self.outcomes if o.status == LevelStatus.FAILED]


def referral_idempotency_key(source_entry_id: int, level: int) -> str:
    """Key that makes a level's bonus exactly-once per qualifying entry."""
    return f"referral:{source_entry_id}:{level}"


class ReferralBonusDistributor(BaseService):
    """Posts REFERRAL_BONUS entries up the referral chain. Never commits."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.user_repo = UserRepository(session)
        self.poster = LedgerPoster(session)

    async def get_referral_chain(
        self, user_id: int, depth: int = REFERRAL_DEPTH
    ) -> list[int]:
        """
        Get ancestor IDs from the direct referrer upwards.

        Stops early when a link is missing; a repeated user cuts the chain.

        Args:
            user_id: User whose ancestors to walk
            depth: Maximum number of levels

        Returns:
            Ancestor IDs, index 0 is level 1
        """
        chain: list[int] = []
        seen = {user_id}
        current = user_id
        for _ in range(depth):
            referrer_id = await self.user_repo.get_referrer_id(current)
            if referrer_id is None:
                break
            if referrer_id in seen:
                self.logger.warning(
                    "Referral cycle detected, chain cut",
                    extra={"user_id": user_id, "repeated_user_id": referrer_id},
                )
                break
            seen.add(referrer_id)
            chain.append(referrer_id)
            current = referrer_id
        return chain

    async def distribute(
        self,
        user_id: int,
        qualifying_amount: Decimal,
        source_kind: LedgerEntryKind,
        source_entry_id: int,
        engine_settings: EngineSettings,
        currency: str | None = None,
    ) -> ReferralReport:
        """
        Credit referral bonuses for a qualifying entry.

        Args:
            user_id: User who produced the qualifying amount
            qualifying_amount: Deposit or earning amount
            source_kind: Kind of the qualifying entry
            source_entry_id: ID of the qualifying entry
            engine_settings: Settings snapshot with the level rates
            currency: Currency of the bonuses (defaults to the ledger default)

        Returns:
            ReferralReport with one outcome per ancestor reached
        """
        report = ReferralReport(user_id=user_id, source_entry_id=source_entry_id)
        chain = await self.get_referral_chain(user_id)

        for level, referrer_id in enumerate(chain, start=1):
            rate = engine_settings.referral_rate(level)
            amount = quantize_money(qualifying_amount * rate)
            if amount <= 0:
                report.outcomes.append(
                    LevelOutcome(level=level, referrer_id=referrer_id, status=LevelStatus.SKIPPED)
                )
                continue

            outcome = await self._credit_level(
                level=level,
                referrer_id=referrer_id,
                amount=amount,
                rate=rate,
                user_id=user_id,
                source_kind=source_kind,
                source_entry_id=source_entry_id,
                currency=currency,
            )
            report.outcomes.append(outcome)

        self.logger.info(
            "Referral rewards processed",
            extra={
                "user_id": user_id,
                "source_kind": source_kind.value,
                "source_entry_id": source_entry_id,
                "levels": len(chain),
                "total_rewards": str(report.total_credited),
                "failed_levels": report.failed_levels,
            },
        )
        return report

    async def _credit_level(
        self,
        *,
        level: int,
        referrer_id: int,
        amount: Decimal,
        rate: Decimal,
        user_id: int,
        source_kind: LedgerEntryKind,
        source_entry_id: int,
        currency: str | None,
    ) -> LevelOutcome:
        metadata = {
            "source_user_id": user_id,
            "source_kind": source_kind.value,
            "source_entry_id": source_entry_id,
            "level": level,
            "rate": str(rate),
        }
        try:
            async with self.session.begin_nested():
                result = await self.poster.post(
                    referrer_id,
                    LedgerEntryKind.REFERRAL_BONUS,
                    amount,
                    currency=currency or DEFAULT_CURRENCY,
                    metadata=metadata,
                    idempotency_key=referral_idempotency_key(source_entry_id, level),
                )
        except (EngineError, SQLAlchemyError) as e:
            self.logger.error(
                "Referral level failed, continuing with next level",
                extra={
                    "referrer_id": referrer_id,
                    "level": level,
                    "source_entry_id": source_entry_id,
                    "error": str(e),
                },
            )
            return LevelOutcome(
                level=level,
                referrer_id=referrer_id,
                status=LevelStatus.FAILED,
                amount=amount,
                error=str(e),
            )

        status = LevelStatus.CREDITED if result.created else LevelStatus.ALREADY_CREDITED
        return LevelOutcome(
            level=level,
            referrer_id=referrer_id,
            status=status,
            amount=amount,
            entry_id=result.entry.id,
        )
