"""
Exception handling utilities.

Defines categorized exception types for proper error handling.
Every error raised by walletsync derives from WalletSyncError and carries
the category that decides how it is handled.
"""

from enum import StrEnum


class ErrorCategory(StrEnum):
    """Error categories based on handling strategy."""

    CONNECTIVITY = "connectivity"  # Retried with bounded backoff
    BENIGN_REDUNDANT = "benign_redundant"  # Absorbed, never raised
    NOT_PROVISIONED = "not_provisioned"  # Fatal, not retried
    MALFORMED_INPUT = "malformed_input"  # Fatal, no secret payload
    HOST_REJECTION = "host_rejection"  # Fatal, surfaced for operators


class WalletSyncError(Exception):
    """Base exception for wallet reconciliation errors."""

    category: ErrorCategory = ErrorCategory.HOST_REJECTION

    @property
    def retryable(self) -> bool:
        return self.category == ErrorCategory.CONNECTIVITY


# Connectivity


class ConnectivityError(WalletSyncError):
    """Raised when a wallet host or the seed authority cannot be reached."""

    category = ErrorCategory.CONNECTIVITY


class RpcTimeoutError(ConnectivityError):
    """Raised when an RPC call times out."""


class AuthorityUnreachableError(ConnectivityError):
    """Raised when the seed authority is unreachable after all retries."""


# Not provisioned


class NotProvisionedError(WalletSyncError):
    """Raised when the seed authority has no material for an identity."""

    category = ErrorCategory.NOT_PROVISIONED


# Malformed input


class MalformedInputError(WalletSyncError):
    """Raised for unparseable input. Messages never include the payload."""

    category = ErrorCategory.MALFORMED_INPUT


class InvalidDescriptorError(MalformedInputError):
    """Raised when a Bitcoin descriptor has invalid syntax or checksum."""


class MalformedResponseError(MalformedInputError):
    """Raised when an RPC response does not have the expected shape."""


# Host rejection


class HostRejectedError(WalletSyncError):
    """Raised when a host rejects an operation for a non-benign reason."""

    category = ErrorCategory.HOST_REJECTION


class RpcError(HostRejectedError):
    """
    JSON-RPC error object returned by a host.

    Attributes:
        code: JSON-RPC error code (None if the host sent none)
        message: Error message as sent by the host
        method: RPC method that failed
    """

    def __init__(self, message: str, code: int | None = None, method: str = "") -> None:
        self.code = code
        self.message = message
        self.method = method
        prefix = f"{method}: " if method else ""
        suffix = f" (code {code})" if code is not None else ""
        super().__init__(f"{prefix}{message}{suffix}")


class CredentialError(HostRejectedError):
    """Raised when host credentials cannot be read or are refused."""


# Aggregation


class WalletInitError(WalletSyncError):
    """
    Raised when no requested wallet could be initialized.

    Attributes:
        errors: Per-identity errors
    """

    def __init__(self, errors: dict) -> None:
        self.errors = errors
        details = "; ".join(f"{identity}: {error}" for identity, error in errors.items())
        super().__init__(f"All wallet initializations failed: {details}")


def is_retryable(exc: BaseException) -> bool:
    """
    Check if exception may be retried.

    Args:
        exc: Exception to check

    Returns:
        True if exception is a connectivity failure
    """
    return isinstance(exc, WalletSyncError) and exc.retryable
