"""
Wallet Manager.

Orchestrates the Bitcoin and Monero reconcilers and owns the resulting
wallet handles. Handles live in this instance only; collaborators get
the manager (or a handle from it) injected, never a global.

Guarantees:
- currencies reconcile concurrently and never block each other
- one reconciliation per identity at a time (single-flight); concurrent
  callers share the in-flight result
- re-initialization re-validates existing handles instead of reloading;
  a handle whose re-validation fails for any reason is dropped
"""

import asyncio
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from loguru import logger

from walletsync.config.settings import Settings
from walletsync.models.wallet import (
    Currency,
    InitResult,
    ReconcileReport,
    WalletHandle,
    WalletIdentity,
    WalletState,
)
from walletsync.services.seed_authority import SeedAuthorityClient
from walletsync.services.wallets.bitcoin_host import BitcoinHostClient
from walletsync.services.wallets.bitcoin_reconciler import BitcoinWalletReconciler
from walletsync.services.wallets.monero_host import MoneroHostClient
from walletsync.services.wallets.monero_reconciler import MoneroWalletReconciler
from walletsync.services.wallets.single_flight import SingleFlight
from walletsync.utils.exceptions import WalletInitError, WalletSyncError


class WalletManager:
    """
    Owner of one wallet handle per currency.

    Usage:
        manager = WalletManager.from_settings(settings)
        result = await manager.initialize()
        handle = manager.get_handle(Currency.BITCOIN)
    """

    def __init__(
        self,
        reconcilers: Mapping[Currency, BitcoinWalletReconciler | MoneroWalletReconciler],
        identities: Iterable[WalletIdentity] = (),
        closeables: Iterable = (),
    ) -> None:
        """
        Initialize wallet manager.

        Args:
            reconcilers: Reconciler per currency
            identities: Default identities for initialize()
            closeables: Clients closed by close()
        """
        self.reconcilers = dict(reconcilers)
        self.identities = frozenset(identities)
        self._closeables = list(closeables)
        self._handles: dict[WalletIdentity, WalletHandle] = {}
        self._flights: SingleFlight[ReconcileReport] = SingleFlight()
        self.logger = logger.bind(service=self.__class__.__name__)

    @classmethod
    def from_settings(cls, settings: Settings) -> "WalletManager":
        """
        Build a manager and its clients from application settings.

        Args:
            settings: Application settings

        Returns:
            WalletManager wired to Bitcoin Core, monero-wallet-rpc and the seed authority
        """
        rpc_options = {
            "timeout": settings.rpc_timeout,
            "max_retries": settings.rpc_max_retries,
            "retry_delay_base": settings.rpc_retry_delay_base,
        }
        seed_authority = SeedAuthorityClient(settings.seed_authority_rpc_url, **rpc_options)
        bitcoin_host = BitcoinHostClient(
            settings.bitcoin_rpc_url,
            settings.bitcoin_cookie_path,
            cookie=(
                settings.bitcoin_rpc_cookie.get_secret_value()
                if settings.bitcoin_rpc_cookie
                else None
            ),
            **rpc_options,
        )
        monero_host = MoneroHostClient(
            settings.monero_wallet_rpc_url,
            password=settings.monero_wallet_password.get_secret_value(),
            **rpc_options,
        )

        return cls(
            reconcilers={
                Currency.BITCOIN: BitcoinWalletReconciler(
                    bitcoin_host, seed_authority, rescan=settings.bitcoin_rescan
                ),
                Currency.MONERO: MoneroWalletReconciler(monero_host, seed_authority),
            },
            identities=settings.wallet_identities(),
            closeables=(seed_authority, bitcoin_host, monero_host),
        )

    @property
    def handles(self) -> Mapping[WalletIdentity, WalletHandle]:
        """Read-only view of the current handles."""
        return MappingProxyType(self._handles)

    @property
    def seed_authority(self) -> SeedAuthorityClient | None:
        reconciler = next(iter(self.reconcilers.values()), None)
        return reconciler.seed_authority if reconciler else None

    def get_handle(self, currency: Currency) -> WalletHandle | None:
        """
        Get the ready handle for a currency.

        Returns:
            WalletHandle, or None if the currency is degraded
        """
        for identity, handle in self._handles.items():
            if identity.currency == currency:
                return handle
        return None

    def invalidate(self, identity: WalletIdentity) -> None:
        """Drop a handle whose wallet could not be confirmed on its host."""
        if self._handles.pop(identity, None) is not None:
            self.logger.warning(f"[{identity}] Handle invalidated")

    async def initialize(self, identities: Iterable[WalletIdentity] | None = None) -> InitResult:
        """
        Converge every requested wallet and publish handles.

        Args:
            identities: Wallets to reconcile (defaults to the configured set)

        Returns:
            InitResult with handles for converged identities and errors for
            the rest

        Raises:
            WalletInitError: If every requested identity failed
        """
        targets = list(identities) if identities is not None else sorted(
            self.identities, key=str
        )
        if not targets:
            raise ValueError("No wallet identities to initialize")

        self.logger.info(f"Initializing wallets: {', '.join(str(i) for i in targets)}")

        outcomes = await asyncio.gather(
            *(self._flights.run(identity, lambda i=identity: self._converge(i)) for identity in targets),
            return_exceptions=True,
        )

        result = InitResult()
        for identity, outcome in zip(targets, outcomes, strict=True):
            if isinstance(outcome, ReconcileReport):
                result.handles[identity] = outcome.handle
            elif isinstance(outcome, WalletSyncError):
                result.errors[identity] = outcome
                self.logger.error(
                    f"[{identity}] Initialization failed ({outcome.category.value}): {outcome}"
                )
            elif isinstance(outcome, Exception):
                result.errors[identity] = outcome
                self.logger.opt(exception=outcome).error(
                    f"[{identity}] Unexpected initialization error: {type(outcome).__name__}"
                )
            else:
                # CancelledError and other BaseExceptions are not ours to absorb
                raise outcome

        if result.all_failed:
            raise WalletInitError(result.errors)
        if result.partial:
            degraded = ", ".join(str(i) for i in result.errors)
            self.logger.warning(f"Wallets partially available, degraded: {degraded}")
        else:
            self.logger.success("All wallets initialized and ready")
        return result

    async def _converge(self, identity: WalletIdentity) -> ReconcileReport:
        reconciler = self.reconcilers.get(identity.currency)
        if reconciler is None:
            raise ValueError(f"No reconciler configured for {identity.currency.value}")

        existing = self._handles.get(identity)
        if existing is not None:
            try:
                valid = await reconciler.validate(existing)
            except Exception:
                # A handle that cannot be confirmed is not published
                self.invalidate(identity)
                raise
            if valid:
                self.logger.info(f"[{identity}] Existing handle still valid")
                return ReconcileReport(identity, WalletState.LOADED_EXISTING, existing)
            self.invalidate(identity)

        report = await reconciler.reconcile(identity)
        self._handles[identity] = report.handle
        return report

    async def close(self) -> None:
        """Close all RPC clients."""
        for client in self._closeables:
            await client.close()
