"""
Indexer constants.

Static values shared by the blockchain services and the ledger.
Runtime-tunable values live in settings.py.
"""

# ========================================================================
# TOKEN / CHAIN
# ========================================================================

# PGC (Petgascoin) token on BNB Smart Chain mainnet
TOKEN_CONTRACT_ADDRESS = "0x46617e7bca14de818d9E5cFf2aa106b72CB33fe3"
BSC_CHAIN_ID = 56

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# keccak256("Transfer(address,address,uint256)")
TRANSFER_TOPIC = (
    "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
)

DEFAULT_TOKEN_DECIMALS = 18

# Public RPC endpoints, in priority order.
# Binance dataseeds last: some of them fail handshake from server side.
DEFAULT_RPC_ENDPOINTS = [
    "https://bsc.publicnode.com",
    "https://rpc.ankr.com/bsc",
    "https://1rpc.io/bnb",
    "https://bsc-dataseed.binance.org",
    "https://bsc-dataseed1.defibit.io",
    "https://bsc-dataseed1.ninicoin.io",
]

# ========================================================================
# SCANNING
# ========================================================================

LOG_CHUNK_SIZE = 3000  # Blocks per eth_getLogs window (public BSC nodes cap ~5000)
LOCATOR_WINDOW = 2048  # Presence-test window for the first-block search
LOCATOR_CUSHION = 100  # Safety margin subtracted from the located block
LOCATOR_MAX_PROBES = 128  # Hard cap on binary search RPC calls

# ========================================================================
# TIMING
# ========================================================================

FRESHNESS_WINDOW_SECONDS = 60.0  # Requests inside the window never touch RPC
RPC_CALL_TIMEOUT = 20.0  # Per-call timeout, expiry counts as provider failure
RPC_HTTP_TIMEOUT = 30  # aiohttp session timeout inside the provider

# ========================================================================
# FALLBACKS
# ========================================================================

# Last known good numbers, served when the ledger has never been built
FALLBACK_HOLDERS = 301
FALLBACK_TOTAL_TRANSFERS = 331

TOP_HOLDERS_LIMIT = 10

# Minimal ERC20 ABI: Transfer event plus read-only introspection calls
ERC20_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "from", "type": "address"},
            {"indexed": True, "name": "to", "type": "address"},
            {"indexed": False, "name": "value", "type": "uint256"},
        ],
        "name": "Transfer",
        "type": "event",
    },
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
        "name": "totalSupply",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "name",
        "outputs": [{"name": "", "type": "string"}],
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
