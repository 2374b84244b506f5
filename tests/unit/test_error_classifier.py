"""Unit tests for host error classification."""

import pytest

from walletsync.services.wallets.error_classifier import (
    BenignOutcome,
    HostErrorKind,
    classify_error,
    classify_message,
    is_not_found,
    match_benign,
)
from walletsync.utils.exceptions import (
    ConnectivityError,
    CredentialError,
    MalformedResponseError,
    RpcError,
)


class TestMatchBenign:
    """Tests for the benign-redundant table."""

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("Wallet file verification failed. Already loaded.", BenignOutcome.ALREADY_LOADED),
            ("Wallet \"eigenix\" is ALREADY LOADED.", BenignOutcome.ALREADY_LOADED),
            ("Wallet already exists", BenignOutcome.ALREADY_EXISTS),
            ("Wallet file already exists", BenignOutcome.ALREADY_EXISTS),
            ("Wallet already open", BenignOutcome.ALREADY_OPEN),
            ("Descriptor already imported", BenignOutcome.ALREADY_EXISTS),
        ],
    )
    def test_benign_messages(self, message, expected):
        """Redundant answers should match case-insensitively."""
        assert match_benign(message) == expected

    @pytest.mark.parametrize(
        "message",
        ["Insufficient funds", "Invalid descriptor", "Method not found", ""],
    )
    def test_other_messages(self, message):
        """Anything outside the table should not be benign."""
        assert match_benign(message) is None


class TestClassifyMessage:
    """Tests for classify_message()."""

    def test_not_found_message(self):
        """Bitcoin Core's missing wallet answer should be NOT_FOUND."""
        result = classify_message("Requested wallet does not exist or is not loaded")

        assert result.kind == HostErrorKind.NOT_FOUND
        assert result.benign is None

    def test_not_found_code(self):
        """Known not-found codes should classify without text."""
        assert classify_message("", code=-18).kind == HostErrorKind.NOT_FOUND
        assert classify_message("", code=-13).kind == HostErrorKind.NOT_FOUND

    def test_benign_code(self):
        """Code -35 should mean already loaded."""
        result = classify_message("Wallet loading failed", code=-35)

        assert result.kind == HostErrorKind.BENIGN
        assert result.benign == BenignOutcome.ALREADY_LOADED

    def test_benign_wins_over_not_found(self):
        """Benign text should never be read as a missing wallet."""
        result = classify_message("Failed to open wallet: already open")

        assert result.kind == HostErrorKind.BENIGN
        assert result.benign == BenignOutcome.ALREADY_OPEN

    def test_method_not_found_is_fatal(self):
        """A missing RPC method must not look like a missing wallet."""
        assert classify_message("Method not found", code=-32601).kind == HostErrorKind.FATAL

    def test_is_not_found(self):
        """Monero's missing file answers should match."""
        assert is_not_found("No wallet file")
        assert is_not_found("Failed to open wallet")
        assert not is_not_found("Wallet already open")


class TestClassifyError:
    """Tests for classify_error()."""

    def test_rpc_error_is_interpreted(self):
        """RpcError text and code should be classified."""
        error = RpcError("Wallet \"eigenix\" is already loaded.", code=-35, method="loadwallet")

        result = classify_error(error)

        assert result.kind == HostErrorKind.BENIGN
        assert result.benign == BenignOutcome.ALREADY_LOADED

    @pytest.mark.parametrize(
        "error",
        [
            ConnectivityError("wallet not found behind proxy"),
            CredentialError("HTTP 401"),
            MalformedResponseError("already exists"),
            ValueError("already loaded"),
        ],
    )
    def test_other_errors_are_fatal(self, error):
        """Only host RPC errors carry text worth interpreting."""
        assert classify_error(error).kind == HostErrorKind.FATAL
