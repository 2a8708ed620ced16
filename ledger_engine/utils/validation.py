"""Input validation helpers."""

from decimal import Decimal, InvalidOperation

from ledger_engine.config.constants import TX_HASH_HEX_LENGTH


def normalize_tx_hash(tx_hash: str) -> str:
    """
    Strip whitespace and the optional 0x prefix, lowercase the rest.

    Tron hashes carry no prefix while EVM ones do; the normalized form is
    what gets stored and compared.
    """
    value = tx_hash.strip().lower()
    if value.startswith("0x"):
        value = value[2:]
    return value


def is_valid_tx_hash(tx_hash: str | None) -> bool:
    """
    Validate transaction hash format.

    Accepts 64 hex characters with or without a 0x prefix.

    Args:
        tx_hash: Transaction hash

    Returns:
        True if valid
    """
    if not tx_hash or not isinstance(tx_hash, str):
        return False

    value = normalize_tx_hash(tx_hash)
    if len(value) != TX_HASH_HEX_LENGTH:
        return False

    try:
        int(value, 16)
        return True
    except ValueError:
        return False


def to_decimal(value: Decimal | int | str) -> Decimal | None:
    """Parse a money value, returning None for garbage or non-finite input."""
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result
