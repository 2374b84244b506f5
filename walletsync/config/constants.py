"""
Application constants.

Centralized constants for wallet reconciliation.
"""

# ========================================================================
# RPC CONSTANTS
# ========================================================================

# RPC operation timeouts (in seconds)
RPC_TIMEOUT = 30.0  # Standard wallet host / seed authority calls
RPC_CONNECT_TIMEOUT = 10.0  # TCP connect timeout inside the HTTP client

# RPC retry settings
RPC_MAX_RETRIES = 3  # Attempts for connectivity failures
RPC_RETRY_DELAY_BASE = 1.0  # Base delay in seconds for exponential backoff

# HTTP statuses that mean the endpoint is temporarily unavailable
# (only when the body is not a JSON-RPC object)
RETRYABLE_HTTP_STATUSES = frozenset({500, 502, 503, 504})

# ========================================================================
# BITCOIN CONSTANTS
# ========================================================================

BITCOIN_JSONRPC_VERSION = "1.0"
BITCOIN_RPC_ID = "walletsync"

# Bitcoin Core RPC error codes
BITCOIN_RPC_WALLET_NOT_FOUND = -18
BITCOIN_RPC_WALLET_ALREADY_LOADED = -35

# Environment override for the cookie file contents
BITCOIN_COOKIE_ENV = "BITCOIN_RPC_COOKIE"

# ========================================================================
# MONERO CONSTANTS
# ========================================================================

MONERO_JSONRPC_VERSION = "2.0"
MONERO_RPC_ID = "0"

# monero-wallet-rpc error codes
MONERO_RPC_NO_WALLET_FILE = -13

# Full rescan when the wallet's creation height is unknown
MONERO_DEFAULT_RESTORE_HEIGHT = 0
MONERO_SEED_LANGUAGE = "English"

ATOMIC_UNITS_PER_XMR = 1_000_000_000_000

# ========================================================================
# SEED AUTHORITY CONSTANTS
# ========================================================================

SEED_AUTHORITY_JSONRPC_VERSION = "2.0"
SEED_AUTHORITY_BITCOIN_METHOD = "bitcoin_seed"
SEED_AUTHORITY_MONERO_METHOD = "monero_seed"
SEED_AUTHORITY_PING_METHOD = "get_swaps"
