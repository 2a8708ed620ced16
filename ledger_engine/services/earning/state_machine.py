"""
Earning session state machine.

Pure functions over the two timestamps that define a session: when it
started and when its cooldown ends. Transitions are applied lazily in
order, so a read long after both boundaries still passes through
COOLDOWN before reaching IDLE.

    IDLE --start--> ACTIVE --(start + duration)--> COOLDOWN --(start + cycle)--> IDLE
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from ledger_engine.models.enums import EarningSessionState


@dataclass(frozen=True)
class SessionSnapshot:
    """Stored fields that determine the state."""

    state: EarningSessionState
    start_time: datetime | None
    duration_seconds: int
    cycle_seconds: int
    vip_daily_rate: Decimal | None = None
    last_earnings: Decimal | None = None
    cooldown_until: datetime | None = None

    @property
    def session_end(self) -> datetime | None:
        if self.start_time is None:
            return None
        return self.start_time + timedelta(seconds=self.duration_seconds)


@dataclass(frozen=True)
class Transition:
    """A state change applied while advancing."""

    from_state: EarningSessionState
    to_state: EarningSessionState
    at: datetime


@dataclass(frozen=True)
class AdvanceResult:
    """Snapshot after applying every due transition."""

    snapshot: SessionSnapshot
    transitions: tuple[Transition, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.transitions)


def advance(snapshot: SessionSnapshot, now: datetime) -> AdvanceResult:
    """
    Apply every transition due at ``now``, in order.

    ACTIVE ends at ``start_time + duration``: ``last_earnings`` is taken
    from the session rate and the cooldown runs until
    ``start_time + cycle``. COOLDOWN ends at ``cooldown_until``.

    Args:
        snapshot: Stored session fields
        now: Current time (aware)

    Returns:
        AdvanceResult with the resulting snapshot and applied transitions
    """
    transitions: list[Transition] = []
    state = snapshot.state
    last_earnings = snapshot.last_earnings
    cooldown_until = snapshot.cooldown_until

    if state == EarningSessionState.ACTIVE and snapshot.start_time is not None:
        session_end = snapshot.session_end
        if now >= session_end:
            cooldown_until = snapshot.start_time + timedelta(seconds=snapshot.cycle_seconds)
            last_earnings = snapshot.vip_daily_rate
            transitions.append(
                Transition(EarningSessionState.ACTIVE, EarningSessionState.COOLDOWN, session_end)
            )
            state = EarningSessionState.COOLDOWN

    if state == EarningSessionState.COOLDOWN:
        if cooldown_until is None or now >= cooldown_until:
            transitions.append(
                Transition(
                    EarningSessionState.COOLDOWN,
                    EarningSessionState.IDLE,
                    cooldown_until or now,
                )
            )
            state = EarningSessionState.IDLE

    if not transitions:
        return AdvanceResult(snapshot=snapshot)

    return AdvanceResult(
        snapshot=SessionSnapshot(
            state=state,
            start_time=snapshot.start_time,
            duration_seconds=snapshot.duration_seconds,
            cycle_seconds=snapshot.cycle_seconds,
            vip_daily_rate=snapshot.vip_daily_rate,
            last_earnings=last_earnings,
            cooldown_until=cooldown_until,
        ),
        transitions=tuple(transitions),
    )


def remaining_seconds(snapshot: SessionSnapshot, now: datetime) -> int:
    """Seconds left in the current state (0 while IDLE)."""
    if snapshot.state == EarningSessionState.ACTIVE and snapshot.session_end:
        end = snapshot.session_end
    elif snapshot.state == EarningSessionState.COOLDOWN and snapshot.cooldown_until:
        end = snapshot.cooldown_until
    else:
        return 0
    return max(0, int((end - now).total_seconds()))


def progress_percent(snapshot: SessionSnapshot, now: datetime) -> float | None:
    """Progress of an ACTIVE session in percent, None in other states."""
    if snapshot.state != EarningSessionState.ACTIVE or snapshot.start_time is None:
        return None
    elapsed = (now - snapshot.start_time).total_seconds()
    percent = elapsed / snapshot.duration_seconds * 100
    return round(min(100.0, max(0.0, percent)), 2)
