"""Unit tests for MoneroWalletReconciler."""

import pytest

from walletsync.models.wallet import MoneroSeed, WalletHandle, WalletState
from walletsync.services.wallets.monero_reconciler import MoneroWalletReconciler
from walletsync.utils.exceptions import (
    ConnectivityError,
    HostRejectedError,
    NotProvisionedError,
    RpcError,
    RpcTimeoutError,
)


NOT_FOUND = RpcError("Failed to open wallet", code=-1, method="open_wallet")


@pytest.fixture
def reconciler(mock_monero_host, mock_seed_authority, monero_material):
    """Reconciler whose authority returns the test seed."""
    mock_seed_authority.fetch.return_value = monero_material
    return MoneroWalletReconciler(mock_monero_host, mock_seed_authority)


class TestReconcile:
    """Tests for reconcile()."""

    @pytest.mark.asyncio
    async def test_opens_existing_wallet(
        self, reconciler, mock_monero_host, mock_seed_authority, monero_identity
    ):
        """An existing wallet file should be opened without fetching the seed."""
        mock_monero_host.open_wallet.side_effect = None

        report = await reconciler.reconcile(monero_identity)

        assert report.state == WalletState.LOADED_EXISTING
        assert report.handle.endpoint == "http://127.0.0.1:18082/json_rpc"
        mock_monero_host.open_wallet.assert_awaited_once_with("eigenix")
        mock_seed_authority.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_already_open_closes_then_reopens(
        self, reconciler, mock_monero_host, mock_seed_authority, monero_identity
    ):
        """A wallet open in another session should be closed before reopening."""
        mock_monero_host.open_wallet.side_effect = [
            RpcError("Wallet already open", code=-1, method="open_wallet"),
            None,
        ]

        report = await reconciler.reconcile(monero_identity)

        assert report.state == WalletState.LOADED_EXISTING
        mock_monero_host.close_wallet.assert_awaited_once()
        assert mock_monero_host.open_wallet.await_count == 2
        mock_seed_authority.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_close_without_open_wallet_is_ignored(
        self, reconciler, mock_monero_host, monero_identity
    ):
        """'No wallet file' from close_wallet should not stop the reopen."""
        mock_monero_host.open_wallet.side_effect = [
            RpcError("Wallet already open", code=-1, method="open_wallet"),
            None,
        ]
        mock_monero_host.close_wallet.side_effect = RpcError(
            "No wallet file", code=-13, method="close_wallet"
        )

        report = await reconciler.reconcile(monero_identity)

        assert report.state == WalletState.LOADED_EXISTING

    @pytest.mark.asyncio
    async def test_reopen_failure(self, reconciler, mock_monero_host, monero_identity):
        """A wallet that cannot be reopened should fail as a host rejection."""
        mock_monero_host.open_wallet.side_effect = [
            RpcError("Wallet already open", code=-1, method="open_wallet"),
            NOT_FOUND,
        ]

        with pytest.raises(HostRejectedError, match="could not be reopened"):
            await reconciler.reconcile(monero_identity)

    @pytest.mark.asyncio
    async def test_restores_from_seed(
        self, reconciler, mock_monero_host, mock_seed_authority, monero_identity, monero_material
    ):
        """A missing wallet file should be restored with the authority's height."""
        report = await reconciler.reconcile(monero_identity)

        assert report.state == WalletState.LOADED_FROM_SEED
        mock_seed_authority.fetch.assert_awaited_once_with(monero_identity)
        mock_monero_host.restore_wallet_from_seed.assert_awaited_once_with(
            "eigenix", monero_material.mnemonic, 3_100_000
        )

    @pytest.mark.asyncio
    async def test_unknown_restore_height_defaults_to_zero(
        self, reconciler, mock_monero_host, mock_seed_authority, monero_identity, monero_material
    ):
        """Without a restore height the wallet should scan from genesis."""
        mock_seed_authority.fetch.return_value = MoneroSeed(mnemonic=monero_material.mnemonic)

        await reconciler.reconcile(monero_identity)

        assert mock_monero_host.restore_wallet_from_seed.await_args.args[2] == 0

    @pytest.mark.asyncio
    async def test_restore_finds_existing_file(
        self, reconciler, mock_monero_host, monero_identity
    ):
        """An existing file reported by restore should be opened, never restored twice."""
        mock_monero_host.open_wallet.side_effect = [NOT_FOUND, None]
        mock_monero_host.restore_wallet_from_seed.side_effect = RpcError(
            "Wallet already exists.", code=-1, method="restore_deterministic_wallet"
        )

        report = await reconciler.reconcile(monero_identity)

        assert report.state == WalletState.LOADED_EXISTING
        mock_monero_host.restore_wallet_from_seed.assert_awaited_once()
        assert mock_monero_host.open_wallet.await_count == 2

    @pytest.mark.asyncio
    async def test_restore_error_is_redacted(
        self, reconciler, mock_monero_host, monero_identity, monero_material
    ):
        """Host errors that echo the seed should not carry any seed word."""
        mock_monero_host.restore_wallet_from_seed.side_effect = RpcError(
            f"Electrum-style word list failed verification: {monero_material.mnemonic}",
            code=-1,
            method="restore_deterministic_wallet",
        )

        with pytest.raises(RpcError) as exc_info:
            await reconciler.reconcile(monero_identity)

        message = str(exc_info.value)
        assert monero_material.mnemonic not in message
        assert "fuselage" not in message
        assert "muppet" not in message

    @pytest.mark.asyncio
    async def test_open_fatal_error(
        self, reconciler, mock_monero_host, mock_seed_authority, monero_identity
    ):
        """A non-benign, non-missing open error should fail without restoring."""
        mock_monero_host.open_wallet.side_effect = RpcError(
            "Internal error", code=-32603, method="open_wallet"
        )

        with pytest.raises(RpcError, match="Internal error"):
            await reconciler.reconcile(monero_identity)

        mock_seed_authority.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_provisioned(
        self, reconciler, mock_monero_host, mock_seed_authority, monero_identity
    ):
        """Missing seed should fail before any host mutation."""
        mock_seed_authority.fetch.side_effect = NotProvisionedError("no seed")

        with pytest.raises(NotProvisionedError):
            await reconciler.reconcile(monero_identity)

        mock_monero_host.restore_wallet_from_seed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unreachable_host(
        self, reconciler, mock_monero_host, mock_seed_authority, monero_identity
    ):
        """Connectivity failures should never lead to a restore."""
        mock_monero_host.open_wallet.side_effect = ConnectivityError("connection refused")

        with pytest.raises(ConnectivityError):
            await reconciler.reconcile(monero_identity)

        mock_seed_authority.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handle_records_address(
        self, reconciler, mock_monero_host, monero_identity, monero_address
    ):
        """The handle should carry the open wallet's primary address."""
        mock_monero_host.open_wallet.side_effect = None

        report = await reconciler.reconcile(monero_identity)

        assert report.handle.address == monero_address


class TestInitialRefresh:
    """Tests for the sync after a restore."""

    @pytest.mark.asyncio
    async def test_restored_wallet_is_refreshed(
        self, reconciler, mock_monero_host, monero_identity
    ):
        """A wallet restored from seed should be refreshed once."""
        await reconciler.reconcile(monero_identity)

        mock_monero_host.refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_restore_path_to_existing_file_is_refreshed(
        self, reconciler, mock_monero_host, monero_identity
    ):
        """An existing file opened after a restore attempt should be refreshed once."""
        mock_monero_host.open_wallet.side_effect = [NOT_FOUND, None]
        mock_monero_host.restore_wallet_from_seed.side_effect = RpcError(
            "Wallet already exists.", code=-1, method="restore_deterministic_wallet"
        )

        await reconciler.reconcile(monero_identity)

        mock_monero_host.refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_opened_wallet_is_not_refreshed(
        self, reconciler, mock_monero_host, monero_identity
    ):
        """Opening an existing wallet should leave syncing to the host."""
        mock_monero_host.open_wallet.side_effect = None

        await reconciler.reconcile(monero_identity)

        mock_monero_host.refresh.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refresh_failure_is_not_fatal(
        self, reconciler, mock_monero_host, monero_identity
    ):
        """A timed-out refresh should still publish the restored wallet."""
        mock_monero_host.refresh.side_effect = RpcTimeoutError("refresh timed out")

        report = await reconciler.reconcile(monero_identity)

        assert report.state == WalletState.LOADED_FROM_SEED


class TestValidate:
    """Tests for validate()."""

    def _handle(self, identity, host, address):
        return WalletHandle(
            currency=identity.currency,
            wallet_name=identity.name,
            endpoint=host.rpc_url,
            state=WalletState.LOADED_EXISTING,
            address=address,
            host=host,
        )

    @pytest.mark.asyncio
    async def test_open(self, reconciler, mock_monero_host, monero_identity, monero_address):
        """The same wallet still open on the host is valid."""
        handle = self._handle(monero_identity, mock_monero_host, monero_address)

        assert await reconciler.validate(handle) is True

    @pytest.mark.asyncio
    async def test_other_wallet_open(
        self, reconciler, mock_monero_host, monero_identity, monero_address
    ):
        """A different wallet opened on the host makes the handle stale."""
        mock_monero_host.get_address.return_value = "4" + "B" * 94
        handle = self._handle(monero_identity, mock_monero_host, monero_address)

        assert await reconciler.validate(handle) is False

    @pytest.mark.asyncio
    async def test_closed(self, reconciler, mock_monero_host, monero_identity, monero_address):
        """'No wallet file' means the handle is stale."""
        mock_monero_host.get_address.side_effect = RpcError(
            "No wallet file", code=-13, method="get_address"
        )
        handle = self._handle(monero_identity, mock_monero_host, monero_address)

        assert await reconciler.validate(handle) is False

    @pytest.mark.asyncio
    async def test_unreachable(self, reconciler, mock_monero_host, monero_identity, monero_address):
        """Connectivity failures should propagate."""
        mock_monero_host.get_address.side_effect = ConnectivityError("timeout")
        handle = self._handle(monero_identity, mock_monero_host, monero_address)

        with pytest.raises(ConnectivityError):
            await reconciler.validate(handle)
