"""
Earning session service.

Runs the per-user daily earning cycle on top of the pure state machine.
The payout is granted when the session starts: a VIP_EARNINGS entry for
the level's daily earning is posted immediately and referral bonuses are
distributed for it.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.config.business_constants import EARNING_WEEKDAYS
from ledger_engine.config.engine_settings import EngineSettings
from ledger_engine.models.earning_session import EarningSession
from ledger_engine.models.enums import EarningSessionState, LedgerEntryKind
from ledger_engine.repositories.earning_session_repository import (
    EarningSessionRepository,
)
from ledger_engine.repositories.user_repository import UserRepository
from ledger_engine.repositories.vip_repository import VipRepository
from ledger_engine.services.base_service import BaseService, transaction
from ledger_engine.services.earning.state_machine import (
    SessionSnapshot,
    advance,
    progress_percent,
    remaining_seconds,
)
from ledger_engine.services.ledger.poster import LedgerPoster
from ledger_engine.services.referral.distributor import (
    ReferralBonusDistributor,
    ReferralReport,
)
from ledger_engine.utils.datetime_utils import utc_now
from ledger_engine.utils.exceptions import ConflictError, ValidationError


@dataclass
class EarningStatus:
    """Session status as shown to the user."""

    state: EarningSessionState
    remaining_seconds: int
    progress: float | None = None
    last_earnings: Decimal | None = None
    vip_daily_rate: Decimal | None = None
    start_time: datetime | None = None
    session_ends_at: datetime | None = None
    cooldown_until: datetime | None = None

    @property
    def can_start(self) -> bool:
        return self.state == EarningSessionState.IDLE


@dataclass
class EarningStartResult:
    """Result of starting a session."""

    status: EarningStatus
    payout_entry_id: int
    payout_amount: Decimal
    referral: ReferralReport


def is_earning_day(now: datetime, timezone: str) -> bool:
    """Check whether ``now`` falls on Monday-Friday in ``timezone``."""
    return now.astimezone(ZoneInfo(timezone)).weekday() in EARNING_WEEKDAYS


def snapshot_of(row: EarningSession) -> SessionSnapshot:
    return SessionSnapshot(
        state=EarningSessionState(row.state),
        start_time=row.start_time,
        duration_seconds=row.duration_seconds,
        cycle_seconds=row.cycle_seconds,
        vip_daily_rate=row.vip_daily_rate,
        last_earnings=row.last_earnings,
        cooldown_until=row.cooldown_until,
    )


def build_status(snapshot: SessionSnapshot, now: datetime) -> EarningStatus:
    """Status payload for a snapshot that was already advanced to ``now``."""
    active = snapshot.state == EarningSessionState.ACTIVE
    return EarningStatus(
        state=snapshot.state,
        remaining_seconds=remaining_seconds(snapshot, now),
        progress=progress_percent(snapshot, now),
        last_earnings=None if active else snapshot.last_earnings,
        vip_daily_rate=snapshot.vip_daily_rate,
        start_time=snapshot.start_time,
        session_ends_at=snapshot.session_end,
        cooldown_until=snapshot.cooldown_until,
    )


class EarningSessionService(BaseService):
    """Starts earning sessions and reports their status."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(session)
        self.clock = clock
        self.session_repo = EarningSessionRepository(session)
        self.user_repo = UserRepository(session)
        self.vip_repo = VipRepository(session)
        self.poster = LedgerPoster(session)
        self.distributor = ReferralBonusDistributor(session)

    async def _advance_row(self, row: EarningSession, now: datetime) -> SessionSnapshot:
        """Apply due transitions and write them back to the row."""
        result = advance(snapshot_of(row), now)
        if result.changed:
            snapshot = result.snapshot
            row.state = snapshot.state.value
            row.last_earnings = snapshot.last_earnings
            row.cooldown_until = snapshot.cooldown_until
            await self.session.flush()
            for transition in result.transitions:
                self.logger.info(
                    "Earning session transition",
                    extra={
                        "user_id": row.user_id,
                        "from": transition.from_state.value,
                        "to": transition.to_state.value,
                        "at": transition.at.isoformat(),
                    },
                )
        return result.snapshot

    @transaction
    async def get_earning_status(self, user_id: int) -> EarningStatus:
        """
        Get the user's session status, applying any due transitions first.

        Args:
            user_id: User ID

        Returns:
            EarningStatus (IDLE if the user never started a session)
        """
        now = self.clock()
        row = await self.session_repo.get_by_user_id(user_id)
        if row is None:
            return EarningStatus(state=EarningSessionState.IDLE, remaining_seconds=0)

        snapshot = await self._advance_row(row, now)
        return build_status(snapshot, now)

    @transaction
    async def start_earning(
        self, user_id: int, engine_settings: EngineSettings
    ) -> EarningStartResult:
        """
        Start a session and grant its payout.

        Checks, in order: active VIP membership, weekday, no live session.

        Args:
            user_id: User ID
            engine_settings: Settings snapshot (durations, timezone, rates)

        Returns:
            EarningStartResult

        Raises:
            ValidationError: NO_ACTIVE_VIP, WEEKEND or NOT_FOUND
            ConflictError: SESSION_ACTIVE or SESSION_COOLDOWN
        """
        now = self.clock()

        user = await self.user_repo.lock_user(user_id)
        if user is None:
            raise ValidationError(ValidationError.NOT_FOUND, f"User {user_id} not found")

        vip_level = await self.vip_repo.get_active_level(user_id)
        if vip_level is None:
            raise ValidationError(
                ValidationError.NO_ACTIVE_VIP,
                "An active VIP level is required to start earning",
            )

        if not is_earning_day(now, engine_settings.earning_timezone):
            raise ValidationError(
                ValidationError.WEEKEND,
                "Earning sessions can only be started Monday to Friday",
            )

        row = await self.session_repo.get_by_user_id(user_id)
        if row is not None:
            snapshot = await self._advance_row(row, now)
            if snapshot.state == EarningSessionState.ACTIVE:
                raise ConflictError(
                    ConflictError.SESSION_ACTIVE,
                    f"Session already running, {remaining_seconds(snapshot, now)}s left",
                )
            if snapshot.state == EarningSessionState.COOLDOWN:
                raise ConflictError(
                    ConflictError.SESSION_COOLDOWN,
                    f"Next session available in {remaining_seconds(snapshot, now)}s",
                )
        else:
            row = EarningSession(
                user_id=user_id,
                state=EarningSessionState.IDLE.value,
                duration_seconds=engine_settings.session_duration_seconds,
                cycle_seconds=engine_settings.cycle_seconds,
                sessions_started=0,
            )
            self.session.add(row)
            try:
                await self.session.flush()
            except IntegrityError as e:
                raise ConflictError(
                    ConflictError.SESSION_ACTIVE,
                    "Session was started concurrently",
                ) from e

        session_number = row.sessions_started + 1
        row.state = EarningSessionState.ACTIVE.value
        row.start_time = now
        row.duration_seconds = engine_settings.session_duration_seconds
        row.cycle_seconds = engine_settings.cycle_seconds
        row.vip_daily_rate = vip_level.daily_earning
        row.cooldown_until = None
        row.sessions_started = session_number
        await self.session.flush()

        payout = await self.poster.post(
            user_id,
            LedgerEntryKind.VIP_EARNINGS,
            vip_level.daily_earning,
            metadata={
                "vip_level_id": vip_level.id,
                "vip_level": vip_level.name,
                "session_number": session_number,
            },
            idempotency_key=f"vip-earnings:{user_id}:{session_number}",
        )
        row.payout_entry_id = payout.entry.id
        await self.session.flush()

        # A failed referral level rolls back its savepoint and expires what it
        # touched; read everything needed afterwards first
        status = build_status(snapshot_of(row), now)
        payout_entry_id = payout.entry.id
        daily_earning = vip_level.daily_earning
        vip_level_id = vip_level.id

        referral = await self.distributor.distribute(
            user_id,
            daily_earning,
            LedgerEntryKind.VIP_EARNINGS,
            payout_entry_id,
            engine_settings,
        )

        self.logger.info(
            "Earning session started",
            extra={
                "user_id": user_id,
                "vip_level_id": vip_level_id,
                "payout": str(daily_earning),
                "session_number": session_number,
            },
        )

        return EarningStartResult(
            status=status,
            payout_entry_id=payout_entry_id,
            payout_amount=daily_earning,
            referral=referral,
        )
