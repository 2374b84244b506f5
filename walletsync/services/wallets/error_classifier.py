"""
Host error classification.

Wallet hosts answer redundant operations ("wallet already loaded",
"already exists") with the same error shape as invalid ones. This module
is the single place where host error text is interpreted: two fixed
tables, matched case-insensitively, and one classify function.
Anything that matches neither table is fatal.
"""

from dataclasses import dataclass
from enum import StrEnum

from walletsync.config.constants import (
    BITCOIN_RPC_WALLET_ALREADY_LOADED,
    BITCOIN_RPC_WALLET_NOT_FOUND,
    MONERO_RPC_NO_WALLET_FILE,
)
from walletsync.utils.exceptions import RpcError


class BenignOutcome(StrEnum):
    """What a benign-redundant host answer means."""

    ALREADY_LOADED = "already_loaded"
    ALREADY_EXISTS = "already_exists"
    ALREADY_OPEN = "already_open"


class HostErrorKind(StrEnum):
    """Classified meaning of a host error."""

    BENIGN = "benign"
    NOT_FOUND = "not_found"
    FATAL = "fatal"


# Substring (lowercase) -> benign outcome. Order matters: first match wins.
BENIGN_ERROR_PATTERNS: tuple[tuple[str, BenignOutcome], ...] = (
    ("already loaded", BenignOutcome.ALREADY_LOADED),
    ("already exists", BenignOutcome.ALREADY_EXISTS),
    ("already open", BenignOutcome.ALREADY_OPEN),
    ("already imported", BenignOutcome.ALREADY_EXISTS),
)

# Substrings (lowercase) meaning the wallet is not loaded / not on disk
NOT_FOUND_ERROR_PATTERNS: tuple[str, ...] = (
    "does not exist or is not loaded",
    "wallet file not found",
    "failed to open wallet",
    "no wallet file",
    "wallet not found",
)

# Host error codes with a fixed meaning
BENIGN_ERROR_CODES: dict[int, BenignOutcome] = {
    BITCOIN_RPC_WALLET_ALREADY_LOADED: BenignOutcome.ALREADY_LOADED,
}
NOT_FOUND_ERROR_CODES: frozenset[int] = frozenset(
    {BITCOIN_RPC_WALLET_NOT_FOUND, MONERO_RPC_NO_WALLET_FILE}
)


@dataclass(frozen=True)
class HostErrorClass:
    """Result of classifying a host error."""

    kind: HostErrorKind
    benign: BenignOutcome | None = None


def match_benign(message: str) -> BenignOutcome | None:
    """
    Match a host message against the benign table.

    Args:
        message: Host error text

    Returns:
        Matching outcome, or None if the message is not benign

    Examples:
        >>> match_benign("Wallet file verification failed. Already loaded.")
        <BenignOutcome.ALREADY_LOADED: 'already_loaded'>
        >>> match_benign("Insufficient funds") is None
        True
    """
    lowered = message.lower()
    for pattern, outcome in BENIGN_ERROR_PATTERNS:
        if pattern in lowered:
            return outcome
    return None


def is_not_found(message: str) -> bool:
    """Check a host message against the not-found table."""
    lowered = message.lower()
    return any(pattern in lowered for pattern in NOT_FOUND_ERROR_PATTERNS)


def classify_message(message: str, code: int | None = None) -> HostErrorClass:
    """
    Classify host error text and optional code.

    Benign patterns are checked before not-found patterns, so
    "Wallet already loaded" is never read as a missing wallet.

    Args:
        message: Host error text
        code: Host error code, if any

    Returns:
        HostErrorClass with kind and, for benign errors, the outcome
    """
    benign = match_benign(message)
    if benign is None and code is not None:
        benign = BENIGN_ERROR_CODES.get(code)
    if benign is not None:
        return HostErrorClass(HostErrorKind.BENIGN, benign)

    if (code is not None and code in NOT_FOUND_ERROR_CODES) or is_not_found(message):
        return HostErrorClass(HostErrorKind.NOT_FOUND)

    return HostErrorClass(HostErrorKind.FATAL)


def classify_error(error: BaseException) -> HostErrorClass:
    """
    Classify an exception raised by a host call.

    Only RpcError carries host text worth interpreting. Connectivity,
    credential and malformed-response errors are always fatal here: a
    connectivity failure must never be mistaken for a missing wallet.

    Args:
        error: Exception raised by the host client

    Returns:
        HostErrorClass
    """
    if isinstance(error, RpcError):
        return classify_message(error.message, error.code)
    return HostErrorClass(HostErrorKind.FATAL)
