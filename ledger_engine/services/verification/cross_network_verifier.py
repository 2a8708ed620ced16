"""
Cross-network transaction verifier.

A transaction hash is not scoped to a network, so every supported network
is asked concurrently and every outcome is reported. A slow or failing
network never fails the whole check: it shows up as ``found=False`` with
an error.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from loguru import logger

from ledger_engine.config.constants import LOOKUP_TIMEOUT_ERROR, NETWORK_LOOKUP_TIMEOUT
from ledger_engine.config.engine_settings import EngineSettings
from ledger_engine.models.enums import Network
from ledger_engine.services.verification.networks import NetworkLookup, TransferDetails
from ledger_engine.utils.exceptions import ValidationError
from ledger_engine.utils.security import mask_tx_hash
from ledger_engine.utils.validation import is_valid_tx_hash, normalize_tx_hash


@dataclass
class NetworkCheckResult:
    """Outcome of one network lookup."""

    network: Network
    found: bool
    details: TransferDetails | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "network": self.network.value,
            "found": self.found,
            "details": self.details.to_dict() if self.details else None,
            "error": self.error,
        }


@dataclass
class CrossNetworkResult:
    """Aggregate of all network lookups for one hash."""

    tx_hash: str
    found: bool
    found_on_network: Network | None
    results: list[NetworkCheckResult] = field(default_factory=list)

    def result_for(self, network: Network) -> NetworkCheckResult | None:
        for result in self.results:
            if result.network == network:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tx_hash": self.tx_hash,
            "found": self.found,
            "found_on_network": self.found_on_network.value if self.found_on_network else None,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass(frozen=True)
class AutoConfirmDecision:
    """Whether a verification result may approve a deposit, and why not."""

    eligible: bool
    reason: str | None = None


def evaluate_auto_confirm(
    result: CrossNetworkResult,
    expected_amount: Decimal,
    engine_settings: EngineSettings,
) -> AutoConfirmDecision:
    """
    Decide auto-confirmation for a declared deposit amount.

    Requires a network hit, a confirmed transfer of an accepted stablecoin
    contract to that network's collection address (case-insensitive) and
    an amount within the configured tolerance. Native coin transfers and
    unknown tokens always go to manual review.

    Args:
        result: Cross-network verification result
        expected_amount: Amount the user declared
        engine_settings: Snapshot with collection addresses and tolerance

    Returns:
        AutoConfirmDecision with a review reason when not eligible
    """
    if not result.found or result.found_on_network is None:
        return AutoConfirmDecision(False, "Transaction not found on any network")

    network_result = result.result_for(result.found_on_network)
    details = network_result.details if network_result else None
    if details is None:
        return AutoConfirmDecision(False, "Transaction details unavailable")

    network = result.found_on_network
    collection_address = engine_settings.collection_address(network)
    if not collection_address:
        return AutoConfirmDecision(
            False, f"No collection address configured for {network.value}"
        )

    if (details.recipient_address or "").lower() != collection_address.lower():
        return AutoConfirmDecision(False, "Recipient is not the platform address")

    if engine_settings.supported_token_symbol(network, details.token_contract) is None:
        contract = details.token_contract or "no contract"
        token = details.token_symbol or ("unknown" if details.token_contract else "native coin")
        return AutoConfirmDecision(False, f"Unsupported token: {token} ({contract})")

    if details.amount is None:
        return AutoConfirmDecision(False, "Transfer amount unavailable")

    difference = abs(details.amount - expected_amount)
    if difference > engine_settings.auto_confirm_tolerance:
        return AutoConfirmDecision(
            False,
            f"Amount mismatch: on-chain {details.amount}, declared {expected_amount}",
        )

    if not details.is_confirmed:
        return AutoConfirmDecision(False, "Transaction not confirmed yet")

    return AutoConfirmDecision(True)


def can_auto_confirm(
    result: CrossNetworkResult,
    expected_amount: Decimal,
    engine_settings: EngineSettings,
) -> bool:
    """Boolean form of :func:`evaluate_auto_confirm`."""
    return evaluate_auto_confirm(result, expected_amount, engine_settings).eligible


class CrossNetworkVerifier:
    """Queries every configured network for a hash."""

    def __init__(
        self,
        lookups: Sequence[NetworkLookup],
        timeout: float = NETWORK_LOOKUP_TIMEOUT,
    ) -> None:
        """
        Args:
            lookups: One lookup per supported network; order decides which
                network wins when several report the hash
            timeout: Per-network timeout in seconds
        """
        self.lookups = list(lookups)
        self.timeout = timeout

    async def close(self) -> None:
        for lookup in self.lookups:
            await lookup.close()

    async def _check_network(
        self, lookup: NetworkLookup, tx_hash: str
    ) -> NetworkCheckResult:
        try:
            details = await asyncio.wait_for(
                lookup.get_transfer_by_hash(tx_hash), timeout=self.timeout
            )
        except TimeoutError:
            logger.warning(
                "Network lookup timed out",
                extra={
                    "network": lookup.network.value,
                    "tx_hash": mask_tx_hash(tx_hash),
                    "timeout": self.timeout,
                },
            )
            return NetworkCheckResult(
                network=lookup.network, found=False, error=LOOKUP_TIMEOUT_ERROR
            )
        except Exception as e:
            # Constant message: loguru formats it with the keyword arguments
            logger.warning(
                "Network lookup failed",
                extra={
                    "network": lookup.network.value,
                    "tx_hash": mask_tx_hash(tx_hash),
                    "error": str(e),
                },
            )
            return NetworkCheckResult(
                network=lookup.network, found=False, error=str(e) or type(e).__name__
            )

        if details is None:
            return NetworkCheckResult(network=lookup.network, found=False)
        return NetworkCheckResult(network=lookup.network, found=True, details=details)

    async def check_all_networks(self, tx_hash: str) -> CrossNetworkResult:
        """
        Look the hash up on every network concurrently.

        Args:
            tx_hash: Transaction hash, with or without 0x prefix

        Returns:
            CrossNetworkResult with one entry per network

        Raises:
            ValidationError: Hash format is invalid
        """
        if not is_valid_tx_hash(tx_hash):
            raise ValidationError(
                ValidationError.INVALID_TX_HASH,
                "Transaction hash must be 64 hex characters (optional 0x prefix)",
            )
        normalized = normalize_tx_hash(tx_hash)

        results = list(
            await asyncio.gather(
                *(self._check_network(lookup, normalized) for lookup in self.lookups)
            )
        )
        found_on = next((r.network for r in results if r.found), None)

        logger.info(
            "Cross-network check complete",
            extra={
                "tx_hash": mask_tx_hash(normalized),
                "found_on_network": found_on.value if found_on else None,
                "networks_checked": len(results),
            },
        )
        return CrossNetworkResult(
            tx_hash=normalized,
            found=found_on is not None,
            found_on_network=found_on,
            results=results,
        )
