"""
Tests for the web3-backed EVM lookup with a mocked client.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from hexbytes import HexBytes
from web3.exceptions import TransactionNotFound

from ledger_engine.config.constants import ERC20_TRANSFER_TOPIC
from ledger_engine.models.enums import Network
from ledger_engine.services.verification.networks import EvmNetworkLookup

USDT = "0x55d398326f99059ff775485246999027b3197955"
OTHER_TOKEN = "0x0000000000000000000000000000000000000abc"
SENDER = "0x2222222222222222222222222222222222222222"
RECIPIENT = "0x1111111111111111111111111111111111111111"
TX_HASH = "ab" * 32


def address_topic(address: str) -> HexBytes:
    return HexBytes("0x" + "00" * 12 + address[2:])


def transfer_log(contract: str, value: int) -> dict:
    return {
        "address": contract,
        "topics": [
            HexBytes(ERC20_TRANSFER_TOPIC),
            address_topic(SENDER),
            address_topic(RECIPIENT),
        ],
        "data": HexBytes(value.to_bytes(32, "big")),
    }


def mock_web3(receipt=None, tx=None, decimals: int = 18) -> MagicMock:
    web3 = MagicMock()
    web3.eth.get_transaction_receipt = AsyncMock(return_value=receipt)
    web3.eth.get_transaction = AsyncMock(return_value=tx)
    token = MagicMock()
    token.functions.decimals.return_value.call = AsyncMock(return_value=decimals)
    web3.eth.contract.return_value = token
    return web3


def make_lookup(web3: MagicMock) -> EvmNetworkLookup:
    return EvmNetworkLookup(
        Network.BSC,
        "http://localhost:8545",
        token_contracts={USDT: "USDT"},
        native_symbol="BNB",
        web3=web3,
    )


class TestEvmNetworkLookup:
    """Test decoding receipts into transfer details."""

    @pytest.mark.asyncio
    async def test_token_transfer(self):
        receipt = {
            "status": 1,
            "blockNumber": 42,
            "logs": [transfer_log(USDT, 50 * 10**18)],
        }
        lookup = make_lookup(mock_web3(receipt=receipt))

        details = await lookup.get_transfer_by_hash(TX_HASH)

        assert details.recipient_address == RECIPIENT
        assert details.sender_address == SENDER
        assert details.amount == Decimal("50")
        assert details.token_symbol == "USDT"
        assert details.block_number == 42
        assert details.is_confirmed is True

    @pytest.mark.asyncio
    async def test_known_contract_preferred(self):
        receipt = {
            "status": 1,
            "blockNumber": 42,
            "logs": [transfer_log(OTHER_TOKEN, 1), transfer_log(USDT, 10**18)],
        }
        lookup = make_lookup(mock_web3(receipt=receipt))

        details = await lookup.get_transfer_by_hash(TX_HASH)

        assert details.token_contract == USDT

    @pytest.mark.asyncio
    async def test_decimals_cached_per_contract(self):
        receipt = {"status": 1, "blockNumber": 1, "logs": [transfer_log(USDT, 10**18)]}
        web3 = mock_web3(receipt=receipt)
        lookup = make_lookup(web3)

        await lookup.get_transfer_by_hash(TX_HASH)
        await lookup.get_transfer_by_hash(TX_HASH)

        assert web3.eth.contract.call_count == 1

    @pytest.mark.asyncio
    async def test_native_transfer(self):
        receipt = {"status": 1, "blockNumber": 7, "logs": []}
        tx = {"to": RECIPIENT.upper().replace("0X", "0x"), "from": SENDER, "value": 2 * 10**18}
        lookup = make_lookup(mock_web3(receipt=receipt, tx=tx))

        details = await lookup.get_transfer_by_hash(TX_HASH)

        assert details.amount == Decimal("2")
        assert details.recipient_address == RECIPIENT
        assert details.token_symbol == "BNB"

    @pytest.mark.asyncio
    async def test_failed_transaction_not_confirmed(self):
        receipt = {"status": 0, "blockNumber": 9, "logs": [transfer_log(USDT, 10**18)]}
        lookup = make_lookup(mock_web3(receipt=receipt))

        details = await lookup.get_transfer_by_hash(TX_HASH)

        assert details.is_confirmed is False

    @pytest.mark.asyncio
    async def test_pending_transaction(self):
        web3 = mock_web3(tx={"to": RECIPIENT, "from": SENDER, "value": 0})
        web3.eth.get_transaction_receipt = AsyncMock(side_effect=TransactionNotFound("pending"))
        lookup = make_lookup(web3)

        details = await lookup.get_transfer_by_hash(TX_HASH)

        assert details.is_confirmed is False
        assert details.amount is None

    @pytest.mark.asyncio
    async def test_unknown_transaction(self):
        web3 = mock_web3()
        web3.eth.get_transaction_receipt = AsyncMock(side_effect=TransactionNotFound("missing"))
        web3.eth.get_transaction = AsyncMock(side_effect=TransactionNotFound("missing"))
        lookup = make_lookup(web3)

        assert await lookup.get_transfer_by_hash(TX_HASH) is None
