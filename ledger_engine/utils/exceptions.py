"""
Engine exceptions.

Every error raised by the engine carries a stable ``reason`` code so
callers can route the user (buy VIP, wait for Monday, wait for cooldown)
without parsing messages.
"""


class EngineError(Exception):
    """Base class for all engine errors."""

    def __init__(self, reason: str, message: str | None = None) -> None:
        self.reason = reason
        self.message = message or reason
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.reason}] {self.message}"


class ValidationError(EngineError):
    """Bad input: rejected synchronously, nothing written."""

    NO_ACTIVE_VIP = "NO_ACTIVE_VIP"
    WEEKEND = "WEEKEND"
    INVALID_TX_HASH = "INVALID_TX_HASH"
    INVALID_FEE_TIER = "INVALID_FEE_TIER"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    AMOUNT_BELOW_MINIMUM = "AMOUNT_BELOW_MINIMUM"
    DEPOSITS_DISABLED = "DEPOSITS_DISABLED"
    WITHDRAWALS_DISABLED = "WITHDRAWALS_DISABLED"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    NOT_FOUND = "NOT_FOUND"


class ConflictError(EngineError):
    """Target is in a state incompatible with the request."""

    SESSION_ACTIVE = "SESSION_ACTIVE"
    SESSION_COOLDOWN = "SESSION_COOLDOWN"
    DEPOSIT_NOT_PENDING = "DEPOSIT_NOT_PENDING"
    WITHDRAWAL_PENDING = "WITHDRAWAL_PENDING"
    WITHDRAWAL_NOT_PENDING = "WITHDRAWAL_NOT_PENDING"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"


class ExternalUnavailableError(EngineError):
    """Blockchain lookup failed or timed out."""

    TIMEOUT = "TIMEOUT"
    LOOKUP_FAILED = "LOOKUP_FAILED"

    def __init__(self, network: str, reason: str, message: str | None = None) -> None:
        self.network = network
        super().__init__(reason, message)


class LedgerIntegrityError(EngineError):
    """Ledger could not be read consistently, or an entry mutation was attempted."""

    READ_FAILED = "LEDGER_READ_FAILED"
    IMMUTABLE_ENTRY = "IMMUTABLE_ENTRY"
