"""
Bitcoin Core wallet host client.

Thin async wrapper around the Bitcoin Core wallet RPCs used by the
reconciler and by handle consumers. Authentication uses the node's
cookie file, re-read on every request since bitcoind rewrites it on
restart.
"""

import os
from decimal import Decimal
from pathlib import Path
from typing import Any

import aiohttp
from loguru import logger

from walletsync.config.constants import (
    BITCOIN_COOKIE_ENV,
    BITCOIN_JSONRPC_VERSION,
    BITCOIN_RPC_ID,
)
from walletsync.services.rpc.json_rpc import JsonRpcClient
from walletsync.utils.exceptions import CredentialError, MalformedResponseError


def read_cookie(cookie_path: str, override: str | None = None) -> aiohttp.BasicAuth:
    """
    Build Basic auth from a Bitcoin Core cookie.

    Args:
        cookie_path: Path to the .cookie file ("user:password")
        override: Cookie contents that take precedence over the file

    Returns:
        BasicAuth for the RPC request

    Raises:
        CredentialError: If the cookie cannot be read or has no ':' separator
    """
    cookie = override or os.environ.get(BITCOIN_COOKIE_ENV)
    if not cookie:
        try:
            cookie = Path(cookie_path).read_text(encoding="utf-8")
        except OSError as e:
            raise CredentialError(
                f"Cannot read Bitcoin RPC cookie file {cookie_path}: {e.strerror}"
            ) from e

    user, sep, password = cookie.strip().partition(":")
    if not sep or not user:
        raise CredentialError("Bitcoin RPC cookie must have the form user:password")
    return aiohttp.BasicAuth(user, password)


class BitcoinHostClient:
    """
    Bitcoin Core RPC operations.

    Node-level calls go to the base URL; wallet-scoped calls go to
    <url>/wallet/<name>.
    """

    def __init__(
        self,
        rpc_url: str,
        cookie_path: str,
        *,
        cookie: str | None = None,
        timeout: float,
        max_retries: int,
        retry_delay_base: float,
    ) -> None:
        """
        Initialize Bitcoin host client.

        Args:
            rpc_url: Bitcoin Core RPC URL (e.g. http://127.0.0.1:8332)
            cookie_path: Path to the node's .cookie file
            cookie: Cookie contents overriding the file
            timeout: Per-call timeout in seconds
            max_retries: Attempts for connectivity failures
            retry_delay_base: Backoff base delay in seconds
        """
        self.rpc_url = rpc_url
        self.cookie_path = cookie_path
        self._cookie = cookie
        self._rpc = JsonRpcClient(
            rpc_url,
            name="bitcoind",
            jsonrpc_version=BITCOIN_JSONRPC_VERSION,
            request_id=BITCOIN_RPC_ID,
            auth_provider=self._auth,
            timeout=timeout,
            max_retries=max_retries,
            retry_delay_base=retry_delay_base,
            content_type="text/plain",
        )

    def _auth(self) -> aiohttp.BasicAuth:
        return read_cookie(self.cookie_path, self._cookie)

    @staticmethod
    def _wallet_path(wallet_name: str) -> str:
        return f"/wallet/{wallet_name}"

    async def get_wallet_info(self, wallet_name: str) -> dict[str, Any]:
        """
        Query getwalletinfo for a loaded wallet.

        Raises:
            RpcError: code -18 if the wallet is not loaded
        """
        result = await self._rpc.call(
            "getwalletinfo", [], path=self._wallet_path(wallet_name)
        )
        if not isinstance(result, dict):
            raise MalformedResponseError("getwalletinfo returned a non-object result")
        return result

    async def create_wallet(self, wallet_name: str) -> None:
        """
        Create a blank descriptor wallet that is loaded on node startup.

        The wallet holds no keys until a descriptor is imported. Never
        retried: a replayed create could race a second wallet.
        """
        params = [
            wallet_name,
            False,  # disable_private_keys
            True,  # blank
            "",  # passphrase
            False,  # avoid_reuse
            True,  # descriptors
            True,  # load_on_startup
        ]
        await self._rpc.call("createwallet", params, retry=False)
        logger.info(f"Created Bitcoin wallet '{wallet_name}'")

    async def list_descriptors(self, wallet_name: str) -> list[dict[str, Any]]:
        """
        List the public descriptors of a loaded wallet.

        Returns:
            Descriptor entries (desc, active, ...) as returned by the node
        """
        result = await self._rpc.call(
            "listdescriptors", [], path=self._wallet_path(wallet_name)
        )
        descriptors = result.get("descriptors") if isinstance(result, dict) else None
        if not isinstance(descriptors, list):
            raise MalformedResponseError("listdescriptors response missing descriptors")
        return descriptors

    async def load_wallet(self, wallet_name: str) -> None:
        """Load an existing wallet from the node's wallet directory."""
        await self._rpc.call("loadwallet", [wallet_name])
        logger.info(f"Loaded Bitcoin wallet '{wallet_name}'")

    async def import_descriptors(
        self, wallet_name: str, descriptor: str, rescan: bool = False
    ) -> list[dict[str, Any]]:
        """
        Import an active descriptor into a wallet.

        Args:
            wallet_name: Target wallet
            descriptor: Descriptor with checksum
            rescan: Scan from genesis (timestamp 0) instead of "now"

        Returns:
            Per-request results as returned by the node
        """
        request = {
            "desc": descriptor,
            "timestamp": 0 if rescan else "now",
            "active": True,
        }
        result = await self._rpc.call(
            "importdescriptors",
            [[request]],
            path=self._wallet_path(wallet_name),
            retry=False,
        )
        if not isinstance(result, list):
            raise MalformedResponseError("importdescriptors returned a non-list result")
        return result

    async def get_balances(self, wallet_name: str) -> dict[str, Decimal]:
        """
        Get trusted / pending / immature balances in BTC.

        Returns:
            Dict with balance, unconfirmed_balance, immature_balance
        """
        result = await self._rpc.call(
            "getbalances", [], path=self._wallet_path(wallet_name)
        )
        try:
            mine = result["mine"]
            return {
                "balance": Decimal(mine["trusted"]),
                "unconfirmed_balance": Decimal(mine["untrusted_pending"]),
                "immature_balance": Decimal(mine["immature"]),
            }
        except (KeyError, TypeError) as e:
            raise MalformedResponseError(
                f"getbalances response missing field: {e}"
            ) from e

    async def close(self) -> None:
        await self._rpc.close()
