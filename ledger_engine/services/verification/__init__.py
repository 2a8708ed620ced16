"""Blockchain transaction verification."""

from ledger_engine.services.verification.cross_network_verifier import (
    AutoConfirmDecision,
    CrossNetworkResult,
    CrossNetworkVerifier,
    NetworkCheckResult,
    can_auto_confirm,
    evaluate_auto_confirm,
)
from ledger_engine.services.verification.networks import (
    EvmNetworkLookup,
    NetworkLookup,
    TransferDetails,
    TronscanNetworkLookup,
    build_default_lookups,
    parse_tronscan_transaction,
)


__all__ = [
    "AutoConfirmDecision",
    "CrossNetworkResult",
    "CrossNetworkVerifier",
    "EvmNetworkLookup",
    "NetworkCheckResult",
    "NetworkLookup",
    "TransferDetails",
    "TronscanNetworkLookup",
    "build_default_lookups",
    "can_auto_confirm",
    "evaluate_auto_confirm",
    "parse_tronscan_transaction",
]
