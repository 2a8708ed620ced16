"""
Engine settings snapshot.

Admin-editable values (referral rates, fee tiers, limits, enable flags)
combined with the process configuration the engine needs. A snapshot is
loaded once per operation and passed explicitly into every component, so
one operation never sees two different versions of a setting.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from ledger_engine.config.business_constants import (
    DEFAULT_MIN_DEPOSIT_AMOUNT,
    DEFAULT_MIN_WITHDRAWAL_AMOUNT,
    DEFAULT_REFERRAL_RATES,
    DEFAULT_WITHDRAWAL_FEE_FIXED,
    DEFAULT_WITHDRAWAL_FEE_PERCENT,
    REFERRAL_DEPTH,
)
from ledger_engine.models.enums import Network


class FeeBand(BaseModel):
    """One withdrawal fee tier: ``[min_amount, max_amount)`` -> percent."""

    model_config = ConfigDict(frozen=True)

    min_amount: Decimal
    max_amount: Decimal | None = None
    percent: Decimal
    tier_id: int | None = None

    def contains(self, amount: Decimal) -> bool:
        """Lower bound inclusive, upper bound exclusive."""
        if amount < self.min_amount:
            return False
        return self.max_amount is None or amount < self.max_amount


class EngineSettings(BaseModel):
    """Immutable settings snapshot for one engine operation."""

    model_config = ConfigDict(frozen=True)

    # Referral rates for levels 1..REFERRAL_DEPTH, as fractions
    referral_rates: tuple[Decimal, ...] = Field(
        default=tuple(DEFAULT_REFERRAL_RATES[level] for level in range(1, REFERRAL_DEPTH + 1))
    )

    min_deposit_amount: Decimal = DEFAULT_MIN_DEPOSIT_AMOUNT
    min_withdrawal_amount: Decimal = DEFAULT_MIN_WITHDRAWAL_AMOUNT
    withdrawal_fee_percent: Decimal = DEFAULT_WITHDRAWAL_FEE_PERCENT
    withdrawal_fee_fixed: Decimal = DEFAULT_WITHDRAWAL_FEE_FIXED

    is_deposit_enabled: bool = True
    is_withdrawal_enabled: bool = True
    is_auto_confirm_enabled: bool = True

    fee_tiers: tuple[FeeBand, ...] = ()

    session_duration_seconds: int = Field(default=3600, gt=0)
    cycle_seconds: int = Field(default=86400, gt=0)
    earning_timezone: str = "UTC"

    auto_confirm_tolerance: Decimal = Decimal("0.01")
    collection_addresses: dict[Network, str] = Field(default_factory=dict)
    # Deposit token contracts accepted per network: address -> symbol
    supported_tokens: dict[Network, dict[str, str]] = Field(default_factory=dict)

    def referral_rate(self, level: int) -> Decimal:
        """
        Get the rate for a referral level (1-based).

        Levels beyond the configured depth earn nothing.
        """
        if level < 1 or level > len(self.referral_rates):
            return Decimal("0")
        return self.referral_rates[level - 1]

    def collection_address(self, network: Network) -> str | None:
        """Platform address deposits on ``network`` must be sent to."""
        return self.collection_addresses.get(network)

    def supported_token_symbol(self, network: Network, contract: str | None) -> str | None:
        """Symbol of an accepted deposit token, or None when the contract is not accepted."""
        if not contract:
            return None
        for address, symbol in self.supported_tokens.get(network, {}).items():
            if address.lower() == contract.lower():
                return symbol
        return None
