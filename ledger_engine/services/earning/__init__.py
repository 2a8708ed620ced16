"""Daily earning sessions."""

from ledger_engine.services.earning.session_service import (
    EarningSessionService,
    EarningStartResult,
    EarningStatus,
    is_earning_day,
)
from ledger_engine.services.earning.state_machine import (
    AdvanceResult,
    SessionSnapshot,
    Transition,
    advance,
)


__all__ = [
    "AdvanceResult",
    "EarningSessionService",
    "EarningStartResult",
    "EarningStatus",
    "SessionSnapshot",
    "Transition",
    "advance",
    "is_earning_day",
]
