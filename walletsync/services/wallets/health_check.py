"""
Health Check Module.

Reports wallet readiness and balances for the wallet manager.
"""

from decimal import Decimal
from typing import Any

from loguru import logger

from walletsync.models.wallet import Currency, WalletHandle
from walletsync.services.wallets.error_classifier import HostErrorKind, classify_error
from walletsync.utils.exceptions import WalletInitError, WalletSyncError
from walletsync.utils.security import mask_sensitive


class WalletHealthCheck:
    """
    Handles health check operations.

    Features:
    - Per-currency readiness
    - Balance queries
    - Seed authority reachability
    - Re-initialization of degraded currencies on request
    """

    def __init__(self, manager):
        """
        Initialize health check.

        Args:
            manager: WalletManager instance
        """
        self.manager = manager

    async def _query_balances(self, handle: WalletHandle, refresh: bool) -> dict[str, Decimal]:
        if handle.currency == Currency.BITCOIN:
            return await handle.host.get_balances(handle.wallet_name)
        if refresh:
            await handle.host.refresh()
        return await handle.host.get_balance()

    async def _balances_for(
        self, handle: WalletHandle, refresh: bool = False
    ) -> dict[str, Decimal] | None:
        try:
            return await self._query_balances(handle, refresh)
        except WalletSyncError as e:
            if classify_error(e).kind == HostErrorKind.NOT_FOUND:
                self.manager.invalidate(handle.identity)
            logger.error(f"[{handle.identity}] Error checking balances: {e}")
            return None

    async def _address_for(self, handle: WalletHandle) -> str | None:
        if handle.currency != Currency.MONERO:
            return None
        try:
            return mask_sensitive(await handle.host.get_address(), show_chars=6)
        except WalletSyncError as e:
            logger.warning(f"[{handle.identity}] Error fetching address: {e}")
            return None

    async def _seed_authority_reachable(self) -> bool | None:
        seed_authority = self.manager.seed_authority
        if seed_authority is None:
            return None
        try:
            return await seed_authority.check_connection()
        except WalletSyncError as e:
            logger.warning(f"Seed authority health check failed: {e}")
            return False

    async def get_balances(self, refresh: bool = False) -> dict[Currency, Decimal | None]:
        """
        Get the spendable balance of every currency.

        Args:
            refresh: Sync the Monero wallet with its daemon first

        Returns:
            Balance per currency, None where the wallet is unavailable
        """
        balances: dict[Currency, Decimal | None] = {}
        for currency in Currency:
            handle = self.manager.get_handle(currency)
            result = await self._balances_for(handle, refresh) if handle else None
            balances[currency] = result["balance"] if result else None
        return balances

    async def health_check(self, retry_degraded: bool = False) -> dict[str, Any]:
        """
        Perform health check on the wallets.

        Args:
            retry_degraded: Re-initialize currencies without a handle first

        Returns:
            Dict with health status
        """
        if retry_degraded:
            missing = [i for i in self.manager.identities if i not in self.manager.handles]
            if missing:
                logger.info(f"Retrying degraded wallets: {', '.join(str(i) for i in missing)}")
                try:
                    await self.manager.initialize(missing)
                except WalletInitError as e:
                    logger.warning(f"Degraded wallets still unavailable: {e}")

        wallets: dict[str, Any] = {}
        for currency in Currency:
            handle = self.manager.get_handle(currency)
            balances = await self._balances_for(handle) if handle else None
            # The balance query may have invalidated the handle
            ready = (
                handle is not None
                and handle.state.is_ready
                and self.manager.get_handle(currency) is not None
            )
            wallets[currency.value] = {
                "ready": ready,
                "wallet_name": handle.wallet_name if handle else None,
                "state": handle.state.value if ready else None,
                "address": await self._address_for(handle) if ready else None,
                "balances": (
                    {key: str(value) for key, value in balances.items()}
                    if balances
                    else None
                ),
            }

        ready_count = sum(1 for status in wallets.values() if status["ready"])
        return {
            "healthy": ready_count == len(wallets),
            "degraded": 0 < ready_count < len(wallets),
            "seed_authority_reachable": await self._seed_authority_reachable(),
            "wallets": wallets,
        }
