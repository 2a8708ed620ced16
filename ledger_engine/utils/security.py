"""
Masking of addresses and transaction hashes before they reach the logs.
"""

HIDDEN = "***"


def _mask(value: str | None, head: int, tail: int) -> str:
    # Too short to show both ends without revealing most of it
    if not value or len(value) < head + tail:
        return HIDDEN
    return f"{value[:head]}...{value[-tail:]}"


def mask_address(address: str | None) -> str:
    """
    Wallet address as ``0x1234...5678`` (Tron: ``TXyz12...abcd``).

    >>> mask_address("0x1234567890abcdef1234567890abcdef12345678")
    '0x1234...5678'
    """
    return _mask(address, 6, 4)


def mask_tx_hash(tx_hash: str | None) -> str:
    """Transaction hash with the first 10 and last 6 characters kept."""
    return _mask(tx_hash, 10, 6)
