"""
Tests for input validation and log masking helpers.
"""

from decimal import Decimal

import pytest

from ledger_engine.utils.security import mask_address, mask_tx_hash
from ledger_engine.utils.validation import is_valid_tx_hash, normalize_tx_hash, to_decimal

EVM_HASH = "0x" + "0123456789abcdef" * 4
TRON_HASH = "0123456789ABCDEF" * 4


class TestTxHashValidation:
    """Test transaction hash format checks."""

    @pytest.mark.parametrize("tx_hash", [EVM_HASH, TRON_HASH, "  " + EVM_HASH + "\n"])
    def test_valid_hashes(self, tx_hash):
        assert is_valid_tx_hash(tx_hash) is True

    @pytest.mark.parametrize(
        "tx_hash",
        [
            None,
            "",
            "0x1234",
            "0x" + "g" * 64,
            "0x" + "a" * 63,
            "0x" + "a" * 65,
        ],
    )
    def test_invalid_hashes(self, tx_hash):
        assert is_valid_tx_hash(tx_hash) is False

    def test_normalize_strips_prefix_and_case(self):
        assert normalize_tx_hash("  0xABCDEF  ") == "abcdef"

    def test_evm_and_tron_forms_normalize_alike(self):
        assert normalize_tx_hash(EVM_HASH) == normalize_tx_hash(TRON_HASH)


class TestToDecimal:
    """Test money parsing."""

    def test_parses_strings(self):
        assert to_decimal("12.50") == Decimal("12.50")

    @pytest.mark.parametrize("value", ["abc", "NaN", "Infinity"])
    def test_rejects_garbage(self, value):
        assert to_decimal(value) is None


class TestMasking:
    """Test log masking."""

    def test_mask_address(self):
        assert mask_address("0x1234567890abcdef1234567890abcdef12345678") == "0x1234...5678"

    def test_mask_short_address(self):
        assert mask_address("0x12") == "***"

    def test_mask_tx_hash(self):
        assert mask_tx_hash(EVM_HASH) == "0x01234567...abcdef"
