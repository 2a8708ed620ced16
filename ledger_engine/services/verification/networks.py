"""
Blockchain network lookups.

One NetworkLookup per supported network. Each answers a single question:
what transfer does this transaction hash describe on my network?
EVM chains (BSC, Ethereum, Polygon) are read through web3 receipts;
Tron is read through the Tronscan HTTP API.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any

import aiohttp
from eth_utils import to_checksum_address
from hexbytes import HexBytes
from loguru import logger
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound

from ledger_engine.config.constants import (
    ERC20_METADATA_ABI,
    ERC20_TRANSFER_TOPIC,
    TRC20_DEFAULT_DECIMALS,
    TRONSCAN_HTTP_TIMEOUT,
    TRX_DECIMALS,
)
from ledger_engine.config.settings import Settings
from ledger_engine.models.enums import Network
from ledger_engine.utils.exceptions import ExternalUnavailableError
from ledger_engine.utils.validation import normalize_tx_hash


@dataclass(frozen=True)
class TransferDetails:
    """Transfer described by a transaction on one network."""

    recipient_address: str | None
    sender_address: str | None
    amount: Decimal | None
    token_contract: str | None = None
    token_symbol: str | None = None
    block_number: int | None = None
    is_confirmed: bool = True

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["amount"] = None if self.amount is None else str(self.amount)
        return data


class NetworkLookup(ABC):
    """Transaction lookup on one network."""

    network: Network

    @abstractmethod
    async def get_transfer_by_hash(self, tx_hash: str) -> TransferDetails | None:
        """
        Look up a transaction.

        Args:
            tx_hash: Normalized hash (64 hex characters, no prefix)

        Returns:
            TransferDetails, or None when the network does not know the hash

        Raises:
            ExternalUnavailableError: Network could not be queried
        """

    async def close(self) -> None:
        """Release network resources."""
        return None


class EvmNetworkLookup(NetworkLookup):
    """
    Lookup on an EVM chain via web3.

    Token transfers are decoded from the receipt's ERC-20 Transfer logs,
    preferring known stablecoin contracts; transactions without a
    Transfer log are reported as native coin transfers.
    """

    def __init__(
        self,
        network: Network,
        rpc_url: str,
        token_contracts: Mapping[str, str] | None = None,
        native_symbol: str = "ETH",
        web3: AsyncWeb3 | None = None,
    ) -> None:
        """
        Args:
            network: Network this lookup serves
            rpc_url: JSON-RPC endpoint
            token_contracts: Known token contract address -> symbol
            native_symbol: Symbol reported for plain coin transfers
            web3: Preconfigured client (tests)
        """
        self.network = network
        self.web3 = web3 or AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self.token_contracts = {
            address.lower(): symbol for address, symbol in (token_contracts or {}).items()
        }
        self.native_symbol = native_symbol
        self._decimals_cache: dict[str, int] = {}

    async def get_transfer_by_hash(self, tx_hash: str) -> TransferDetails | None:
        prefixed = "0x" + normalize_tx_hash(tx_hash)
        try:
            receipt = await self.web3.eth.get_transaction_receipt(prefixed)
        except TransactionNotFound:
            return await self._pending_transfer(prefixed)

        is_confirmed = receipt["status"] == 1
        block_number = receipt["blockNumber"]

        transfer = self._pick_transfer_log(receipt["logs"])
        if transfer is not None:
            contract, sender, recipient, raw_value = transfer
            decimals = await self._token_decimals(contract)
            return TransferDetails(
                recipient_address=recipient,
                sender_address=sender,
                amount=Decimal(raw_value) / Decimal(10**decimals),
                token_contract=contract,
                token_symbol=self.token_contracts.get(contract),
                block_number=block_number,
                is_confirmed=is_confirmed,
            )

        tx = await self.web3.eth.get_transaction(prefixed)
        return TransferDetails(
            recipient_address=(tx.get("to") or "").lower() or None,
            sender_address=(tx.get("from") or "").lower() or None,
            amount=Decimal(Web3.from_wei(tx["value"], "ether")),
            token_symbol=self.native_symbol,
            block_number=block_number,
            is_confirmed=is_confirmed,
        )

    async def _pending_transfer(self, prefixed: str) -> TransferDetails | None:
        """Transaction known to the node but not mined yet."""
        try:
            tx = await self.web3.eth.get_transaction(prefixed)
        except TransactionNotFound:
            return None
        return TransferDetails(
            recipient_address=(tx.get("to") or "").lower() or None,
            sender_address=(tx.get("from") or "").lower() or None,
            amount=None,
            block_number=None,
            is_confirmed=False,
        )

    def _pick_transfer_log(
        self, logs: list[Any]
    ) -> tuple[str, str, str, int] | None:
        """Decode the most relevant Transfer log: (contract, from, to, value)."""
        candidates = []
        for log in logs:
            topics = log.get("topics") or []
            if len(topics) < 3:
                continue
            if Web3.to_hex(HexBytes(topics[0])).lower() != ERC20_TRANSFER_TOPIC:
                continue
            contract = str(log["address"]).lower()
            sender = "0x" + HexBytes(topics[1]).hex()[-40:].lower()
            recipient = "0x" + HexBytes(topics[2]).hex()[-40:].lower()
            raw_data = HexBytes(log.get("data") or b"")
            value = int.from_bytes(raw_data, "big") if raw_data else 0
            candidates.append((contract, sender, recipient, value))

        if not candidates:
            return None
        for candidate in candidates:
            if candidate[0] in self.token_contracts:
                return candidate
        return candidates[0]

    async def _token_decimals(self, contract: str) -> int:
        if contract not in self._decimals_cache:
            token = self.web3.eth.contract(
                address=to_checksum_address(contract), abi=ERC20_METADATA_ABI
            )
            self._decimals_cache[contract] = int(await token.functions.decimals().call())
        return self._decimals_cache[contract]


class TronscanNetworkLookup(NetworkLookup):
    """Lookup on Tron via the Tronscan ``transaction-info`` endpoint."""

    network = Network.TRON

    def __init__(
        self,
        api_url: str,
        api_key: str | None = None,
        http_timeout: float = TRONSCAN_HTTP_TIMEOUT,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.http_timeout = http_timeout
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def fetch_transaction_info(self, tx_hash: str) -> dict[str, Any]:
        """Raw Tronscan payload for a hash (empty dict when unknown)."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["TRON-PRO-API-KEY"] = self.api_key

        session = await self._get_session()
        async with session.get(
            f"{self.api_url}/api/transaction-info",
            params={"hash": normalize_tx_hash(tx_hash)},
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=self.http_timeout),
        ) as response:
            if response.status != 200:
                raise ExternalUnavailableError(
                    Network.TRON.value,
                    ExternalUnavailableError.LOOKUP_FAILED,
                    f"Tronscan HTTP {response.status}",
                )
            return await response.json(content_type=None) or {}

    async def get_transfer_by_hash(self, tx_hash: str) -> TransferDetails | None:
        data = await self.fetch_transaction_info(tx_hash)
        if not data or not data.get("hash"):
            return None
        return parse_tronscan_transaction(data)


def parse_tronscan_transaction(data: dict[str, Any]) -> TransferDetails:
    """
    Build TransferDetails from a Tronscan ``transaction-info`` payload.

    TRC-20 transfers come from ``trc20TransferInfo[0]``; plain TRX
    transfers from ``contractData``. Tron addresses are base58 and are
    kept as reported.
    """
    block_number = data.get("block")
    is_confirmed = bool(data.get("confirmed"))

    transfers = data.get("trc20TransferInfo") or []
    if transfers:
        info = transfers[0]
        decimals = int(info.get("decimals") or TRC20_DEFAULT_DECIMALS)
        amount_str = info.get("amount_str")
        amount = (
            Decimal(amount_str) / Decimal(10**decimals)
            if amount_str is not None
            else None
        )
        return TransferDetails(
            recipient_address=info.get("to_address"),
            sender_address=info.get("from_address"),
            amount=amount,
            token_contract=info.get("contract_address"),
            token_symbol=info.get("symbol"),
            block_number=block_number,
            is_confirmed=is_confirmed,
        )

    contract_data = data.get("contractData") or {}
    raw_amount = contract_data.get("amount")
    return TransferDetails(
        recipient_address=data.get("toAddress") or contract_data.get("to_address"),
        sender_address=data.get("ownerAddress") or contract_data.get("owner_address"),
        amount=(
            Decimal(raw_amount) / Decimal(10**TRX_DECIMALS)
            if raw_amount is not None
            else None
        ),
        token_symbol="TRX" if raw_amount is not None else None,
        block_number=block_number,
        is_confirmed=is_confirmed,
    )


def build_default_lookups(config: Settings) -> list[NetworkLookup]:
    """
    Create the fixed set of lookups: BSC, Ethereum, Polygon, Tron.

    Args:
        config: Process configuration with endpoints and token contracts

    Returns:
        One lookup per supported network
    """
    contracts = config.stablecoin_contracts()
    lookups: list[NetworkLookup] = [
        EvmNetworkLookup(
            Network.BSC,
            config.bsc_rpc_url,
            contracts[Network.BSC],
            native_symbol="BNB",
        ),
        EvmNetworkLookup(
            Network.ETHEREUM,
            config.ethereum_rpc_url,
            contracts[Network.ETHEREUM],
            native_symbol="ETH",
        ),
        EvmNetworkLookup(
            Network.POLYGON,
            config.polygon_rpc_url,
            contracts[Network.POLYGON],
            native_symbol="POL",
        ),
        TronscanNetworkLookup(config.tronscan_api_url, config.tronscan_api_key),
    ]
    logger.debug(
        "Network lookups configured",
        extra={"networks": [lookup.network.value for lookup in lookups]},
    )
    return lookups

