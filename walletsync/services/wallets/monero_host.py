"""
monero-wallet-rpc host client.

The host serves a single wallet session at a time: opening or restoring
a wallet replaces whatever wallet was open before.
"""

from decimal import Decimal

from loguru import logger

from walletsync.config.constants import (
    ATOMIC_UNITS_PER_XMR,
    MONERO_JSONRPC_VERSION,
    MONERO_RPC_ID,
    MONERO_SEED_LANGUAGE,
)
from walletsync.services.rpc.json_rpc import JsonRpcClient
from walletsync.utils.exceptions import MalformedResponseError


def atomic_to_xmr(atomic: int) -> Decimal:
    """
    Convert atomic units to XMR.

    Examples:
        >>> atomic_to_xmr(500_000_000_000)
        Decimal('0.5')
    """
    return Decimal(atomic) / Decimal(ATOMIC_UNITS_PER_XMR)


class MoneroHostClient:
    """monero-wallet-rpc operations."""

    def __init__(
        self,
        rpc_url: str,
        *,
        password: str = "",
        timeout: float,
        max_retries: int,
        retry_delay_base: float,
    ) -> None:
        """
        Initialize Monero host client.

        Args:
            rpc_url: monero-wallet-rpc JSON-RPC URL (ends in /json_rpc)
            password: Wallet file password
            timeout: Per-call timeout in seconds
            max_retries: Attempts for connectivity failures
            retry_delay_base: Backoff base delay in seconds
        """
        self.rpc_url = rpc_url
        self._password = password
        self._rpc = JsonRpcClient(
            rpc_url,
            name="monero-wallet-rpc",
            jsonrpc_version=MONERO_JSONRPC_VERSION,
            request_id=MONERO_RPC_ID,
            timeout=timeout,
            max_retries=max_retries,
            retry_delay_base=retry_delay_base,
        )

    async def open_wallet(self, wallet_name: str) -> None:
        """Open a wallet file in the host's wallet directory."""
        await self._rpc.call(
            "open_wallet", {"filename": wallet_name, "password": self._password}
        )
        logger.info(f"Opened Monero wallet '{wallet_name}'")

    async def close_wallet(self) -> None:
        """Save and close the currently open wallet."""
        await self._rpc.call("close_wallet", {})

    async def restore_wallet_from_seed(
        self, wallet_name: str, seed: str, restore_height: int
    ) -> None:
        """
        Create a wallet file from a mnemonic seed.

        Never retried: the file is created on the host's storage.
        """
        params = {
            "filename": wallet_name,
            "password": self._password,
            "seed": seed,
            "restore_height": restore_height,
            "language": MONERO_SEED_LANGUAGE,
            "autosave_current": True,
        }
        await self._rpc.call("restore_deterministic_wallet", params, retry=False)
        logger.info(
            f"Restored Monero wallet '{wallet_name}' from seed "
            f"(restore height {restore_height})"
        )

    async def get_height(self) -> int:
        """Get the block height the open wallet is synced to."""
        result = await self._rpc.call("get_height", {})
        try:
            return int(result["height"])
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError("get_height response missing height") from e

    async def get_balance(self) -> dict[str, Decimal]:
        """
        Get total and unlocked balance in XMR.

        Returns:
            Dict with balance and unlocked_balance
        """
        result = await self._rpc.call("get_balance", {"account_index": 0})
        try:
            return {
                "balance": atomic_to_xmr(int(result["balance"])),
                "unlocked_balance": atomic_to_xmr(int(result["unlocked_balance"])),
            }
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError(
                f"get_balance response missing field: {e}"
            ) from e

    async def get_address(self) -> str:
        """Get the primary address of account 0."""
        result = await self._rpc.call("get_address", {"account_index": 0})
        try:
            return str(result["address"])
        except (KeyError, TypeError) as e:
            raise MalformedResponseError("get_address response missing address") from e

    async def refresh(self) -> int:
        """
        Sync the open wallet with the daemon.

        Returns:
            Number of blocks fetched
        """
        result = await self._rpc.call("refresh", {})
        blocks = int(result.get("blocks_fetched", 0)) if isinstance(result, dict) else 0
        if blocks:
            logger.info(f"Refreshed Monero wallet, fetched {blocks} blocks")
        return blocks

    async def close(self) -> None:
        await self._rpc.close()
