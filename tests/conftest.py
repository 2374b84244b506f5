"""Pytest configuration and shared fixtures for all tests."""

import os

# Keep tests independent of the host environment
os.environ.setdefault("WALLET_NAME", "eigenix")
os.environ.setdefault("BITCOIN_RPC_COOKIE", "__cookie__:testpassword")
os.environ.setdefault("LOG_FILE", "")

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402

from walletsync.models.wallet import (  # noqa: E402
    BitcoinDescriptor,
    Currency,
    MoneroSeed,
    WalletIdentity,
)
from walletsync.utils.exceptions import RpcError  # noqa: E402


BITCOIN_DESCRIPTOR = (
    "wpkh(tprv8ZgxMBicQKsPd9TeAdPADNnSyH9SSUUbTVeFszDE23Ki6TBB5nCefAdHkK8Fm3qMQR6sHwA56"
    "zqRmKmxnHk37JkiFzvncDqoKmPWubu7hDF/84h/1h/0h/0/*)"
)
MONERO_MNEMONIC = (
    "sequence atlas unveil summon pebbles tuesday beer rudely snake rockets "
    "different fuselage woven tagged bested dented vegan hover rapid fawns "
    "obvious muppet randomly seasons randomly"
)
MONERO_ADDRESS = (
    "9wviCeWe2D8XS82k2ovp5EUYLzBt9pYNW2LXUFsZiv8S3Mt21FZ5qQaAroko1enzw3eGr9qC7X1D7Geoo2"
    "RrAotYPwq9Gm8"
)


def rpc_error(message: str, code: int | None = None, method: str = "") -> RpcError:
    """Build a host JSON-RPC error."""
    return RpcError(message, code=code, method=method)


@pytest.fixture
def bitcoin_identity():
    """Bitcoin identity for the default wallet."""
    return WalletIdentity(Currency.BITCOIN, "eigenix")


@pytest.fixture
def monero_identity():
    """Monero identity for the default wallet."""
    return WalletIdentity(Currency.MONERO, "eigenix")


@pytest.fixture
def bitcoin_material():
    """Descriptor as sent by the seed authority (no checksum)."""
    return BitcoinDescriptor(raw=BITCOIN_DESCRIPTOR, has_checksum=False)


@pytest.fixture
def monero_material():
    """Monero seed with a known restore height."""
    return MoneroSeed(mnemonic=MONERO_MNEMONIC, restore_height=3_100_000)


@pytest.fixture
def monero_address():
    """Primary address reported by the mock Monero host."""
    return MONERO_ADDRESS

@pytest.fixture
def mock_seed_authority():
    """Mock SeedAuthorityClient."""
    authority = MagicMock()
    authority.fetch = AsyncMock()
    authority.check_connection = AsyncMock(return_value=True)
    authority.close = AsyncMock()
    return authority


@pytest.fixture
def mock_bitcoin_host():
    """
    Mock BitcoinHostClient.

    Default behaviour: wallet not loaded, create and import succeed,
    and an existing wallet holds an active descriptor.

    Returns:
        MagicMock: Host with AsyncMock RPC methods
    """
    host = MagicMock()
    host.rpc_url = "http://127.0.0.1:8332"
    host.get_wallet_info = AsyncMock(
        side_effect=rpc_error(
            "Requested wallet does not exist or is not loaded", code=-18, method="getwalletinfo"
        )
    )
    host.create_wallet = AsyncMock(return_value=None)
    host.load_wallet = AsyncMock(return_value=None)
    host.list_descriptors = AsyncMock(
        return_value=[{"desc": "wpkh([d34db33f/84h/1h/0h]tpubD6/0/*)#abcdefgh", "active": True}]
    )
    host.import_descriptors = AsyncMock(return_value=[{"success": True}])
    host.get_balances = AsyncMock()
    host.close = AsyncMock()
    return host


@pytest.fixture
def mock_monero_host():
    """
    Mock MoneroHostClient.

    Default behaviour: wallet file missing, restore succeeds, and the
    open wallet reports MONERO_ADDRESS.

    Returns:
        MagicMock: Host with AsyncMock RPC methods
    """
    host = MagicMock()
    host.rpc_url = "http://127.0.0.1:18082/json_rpc"
    host.open_wallet = AsyncMock(
        side_effect=rpc_error("Failed to open wallet", code=-1, method="open_wallet")
    )
    host.close_wallet = AsyncMock(return_value=None)
    host.restore_wallet_from_seed = AsyncMock(return_value=None)
    host.get_height = AsyncMock(return_value=3_200_000)
    host.get_balance = AsyncMock()
    host.get_address = AsyncMock(return_value=MONERO_ADDRESS)
    host.refresh = AsyncMock(return_value=0)
    host.close = AsyncMock()
    return host
