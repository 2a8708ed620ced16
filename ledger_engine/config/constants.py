"""
Application constants.

Centralized technical constants for the engine.
"""

# ========================================================================
# BLOCKCHAIN CONSTANTS
# ========================================================================

# Per-network lookup timeout (in seconds). A slow network is reported as
# "timeout" instead of blocking the whole verification request.
NETWORK_LOOKUP_TIMEOUT = 10.0

# HTTP timeout for the Tronscan API client
TRONSCAN_HTTP_TIMEOUT = 10.0

# keccak256("Transfer(address,address,uint256)")
ERC20_TRANSFER_TOPIC = (
    "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
)

# Transaction hash: 64 hex characters, optional 0x prefix (Tron omits it)
TX_HASH_HEX_LENGTH = 64

# Reason reported for a network lookup that exceeded its timeout
LOOKUP_TIMEOUT_ERROR = "timeout"

# ========================================================================
# LEDGER CONSTANTS
# ========================================================================

# Quantization used when persisting money values (matches DECIMAL(18, 8))
MONEY_QUANT_EXP = 8

# Default ledger currency
DEFAULT_CURRENCY = "USDT"

# Minimal ERC-20 ABI: token metadata used to scale Transfer amounts
ERC20_METADATA_ABI = [
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "symbol",
        "outputs": [{"name": "", "type": "string"}],
        "type": "function",
    },
]

# TRC-20 tokens report decimals themselves; USDT on Tron uses 6
TRC20_DEFAULT_DECIMALS = 6

# Native coin decimals for plain transfers
TRX_DECIMALS = 6
