"""
Bitcoin Wallet Reconciler.

Drives Bitcoin Core to a loaded descriptor wallet:

    TryConnectExisting -> (not found / no keys) FetchMaterial -> Normalize -> LoadFromDescriptor

Bitcoin Core can hold many wallets loaded at once, so no close/reopen
ordering is needed. "Already exists" on create and "already loaded" on
load are redundant answers, not failures: the existing wallet is loaded
and its descriptor is not imported again. Wallets are created blank, so
a wallet without an active descriptor is one whose import never
completed; the import is run for it and "already imported" is absorbed.
"""

from walletsync.models.wallet import (
    BitcoinDescriptor,
    ReconcileReport,
    WalletHandle,
    WalletIdentity,
    WalletState,
)
from walletsync.services.seed_authority import SeedAuthorityClient
from walletsync.services.wallets.base_reconciler import BaseReconciler, ReconcileAttempt
from walletsync.services.wallets.bitcoin_host import BitcoinHostClient
from walletsync.services.wallets.descriptor import normalize
from walletsync.services.wallets.error_classifier import (
    HostErrorKind,
    classify_error,
    match_benign,
)
from walletsync.services.wallets.state_machine import (
    BitcoinStep,
    StepOutcome,
    next_bitcoin_step,
    terminal_state,
)
from walletsync.utils.exceptions import (
    HostRejectedError,
    MalformedResponseError,
    WalletSyncError,
)
from walletsync.utils.security import mask_descriptor, redact_secrets


class BitcoinWalletReconciler(BaseReconciler):
    """Reconciles one Bitcoin Core wallet per identity."""

    def __init__(
        self,
        host: BitcoinHostClient,
        seed_authority: SeedAuthorityClient,
        rescan: bool = False,
    ) -> None:
        """
        Initialize Bitcoin reconciler.

        Args:
            host: Bitcoin Core client
            seed_authority: Client for fetching the descriptor
            rescan: Import new descriptors with timestamp 0 (full rescan)
        """
        super().__init__(host, seed_authority)
        self.rescan = rescan
        self._steps = {
            BitcoinStep.TRY_CONNECT_EXISTING: self._try_connect_existing,
            BitcoinStep.FETCH_MATERIAL: self._fetch_material,
            BitcoinStep.NORMALIZE: self._normalize,
            BitcoinStep.LOAD_FROM_DESCRIPTOR: self._load_from_descriptor,
        }

    async def reconcile(self, identity: WalletIdentity) -> ReconcileReport:
        """
        Converge Bitcoin Core to a single loaded wallet for identity.

        Args:
            identity: Bitcoin wallet identity

        Returns:
            ReconcileReport with LOADED_EXISTING or LOADED_FROM_SEED

        Raises:
            WalletSyncError: Terminal failure, secrets redacted
        """
        attempt = ReconcileAttempt(identity=identity)
        step = BitcoinStep.TRY_CONNECT_EXISTING
        self.logger.info(f"[{identity}] Reconciling Bitcoin wallet")

        try:
            while not step.is_terminal:
                outcome = await self._steps[step](attempt)
                next_step = next_bitcoin_step(step, outcome)
                self.logger.debug(
                    f"[{identity}] {step.value} --{outcome.value}--> {next_step.value}"
                )
                step = next_step
        finally:
            attempt.discard_material()

        state = terminal_state(step)
        if state == WalletState.FAILED:
            raise attempt.error
        return self._report(attempt, state)

    async def validate(self, handle: WalletHandle) -> bool:
        """
        Re-check that a handle's wallet is still loaded.

        Returns:
            True if loaded, False if the node no longer has it loaded

        Raises:
            WalletSyncError: Connectivity or other host failure
        """
        try:
            await self.host.get_wallet_info(handle.wallet_name)
        except WalletSyncError as e:
            if classify_error(e).kind == HostErrorKind.NOT_FOUND:
                self.logger.warning(f"[{handle.identity}] Wallet no longer loaded")
                return False
            raise
        return True

    async def _try_connect_existing(self, attempt: ReconcileAttempt) -> StepOutcome:
        try:
            info = await self.host.get_wallet_info(attempt.identity.name)
        except WalletSyncError as e:
            if classify_error(e).kind == HostErrorKind.NOT_FOUND:
                self.logger.info(f"[{attempt.identity}] Wallet not loaded on node")
                return StepOutcome.NOT_FOUND
            self._fail(attempt, e)
            return StepOutcome.ERROR

        attempt.observed = WalletState.LOADED_EXISTING
        self.logger.info(
            f"[{attempt.identity}] Connected to loaded wallet "
            f"(descriptors={info.get('descriptors')}, txcount={info.get('txcount')})"
        )

        try:
            has_keys = await self._has_active_descriptor(attempt.identity.name)
        except WalletSyncError as e:
            self._fail(attempt, e)
            return StepOutcome.ERROR
        if not has_keys:
            self.logger.warning(
                f"[{attempt.identity}] Loaded wallet has no active descriptor, importing"
            )
            return StepOutcome.NO_KEYS
        return StepOutcome.OK

    async def _has_active_descriptor(self, wallet_name: str) -> bool:
        descriptors = await self.host.list_descriptors(wallet_name)
        return any(isinstance(d, dict) and d.get("active") for d in descriptors)

    async def _fetch_material(self, attempt: ReconcileAttempt) -> StepOutcome:
        if await self._fetch(attempt, BitcoinDescriptor):
            return StepOutcome.OK
        return StepOutcome.ERROR

    async def _normalize(self, attempt: ReconcileAttempt) -> StepOutcome:
        try:
            attempt.prepared = normalize(attempt.material.raw)
        except WalletSyncError as e:
            self._fail(attempt, e)
            return StepOutcome.ERROR

        if not attempt.material.has_checksum:
            self.logger.info(
                f"[{attempt.identity}] Appended checksum to {mask_descriptor(attempt.prepared)}"
            )
        return StepOutcome.OK

    async def _load_from_descriptor(self, attempt: ReconcileAttempt) -> StepOutcome:
        name = attempt.identity.name

        if attempt.observed == WalletState.LOADED_EXISTING:
            # Loaded without keys: only the import is missing
            return await self._import_descriptor(attempt)

        try:
            await self.host.create_wallet(name)
        except WalletSyncError as e:
            if classify_error(e).kind != HostErrorKind.BENIGN:
                self._fail(attempt, e)
                return StepOutcome.ERROR
            attempt.observed = WalletState.PRESENT_NOT_LOADED
            self.logger.info(f"[{attempt.identity}] Wallet already exists, loading it")
            return await self._load_existing(attempt)

        attempt.observed = WalletState.NOT_PRESENT
        return await self._import_descriptor(attempt)

    async def _load_existing(self, attempt: ReconcileAttempt) -> StepOutcome:
        try:
            await self.host.load_wallet(attempt.identity.name)
        except WalletSyncError as e:
            if classify_error(e).kind != HostErrorKind.BENIGN:
                self._fail(attempt, e)
                return StepOutcome.ERROR
            self.logger.info(f"[{attempt.identity}] Wallet already loaded")

        try:
            has_keys = await self._has_active_descriptor(attempt.identity.name)
        except WalletSyncError as e:
            self._fail(attempt, e)
            return StepOutcome.ERROR
        if not has_keys:
            self.logger.warning(
                f"[{attempt.identity}] Existing wallet has no active descriptor, importing"
            )
            return await self._import_descriptor(attempt)

        self.logger.info(f"[{attempt.identity}] Skipping descriptor import for existing wallet")
        return StepOutcome.ALREADY_PRESENT

    async def _import_descriptor(self, attempt: ReconcileAttempt) -> StepOutcome:
        try:
            results = await self.host.import_descriptors(
                attempt.identity.name, attempt.prepared, rescan=self.rescan
            )
        except WalletSyncError as e:
            self._fail(attempt, e)
            return StepOutcome.ERROR

        if not results:
            self._fail(attempt, MalformedResponseError("importdescriptors returned no results"))
            return StepOutcome.ERROR

        for result in results:
            for warning in result.get("warnings", []) if isinstance(result, dict) else []:
                self.logger.warning(
                    f"[{attempt.identity}] Descriptor import warning: "
                    f"{redact_secrets(str(warning), attempt.secrets())}"
                )

            if isinstance(result, dict) and result.get("success"):
                continue

            error = result.get("error") if isinstance(result, dict) else result
            message = error.get("message", "") if isinstance(error, dict) else str(error)
            if match_benign(message) is not None:
                self.logger.info(f"[{attempt.identity}] Descriptor already imported")
                continue

            self._fail(attempt, HostRejectedError(f"Failed to import descriptor: {message}"))
            return StepOutcome.ERROR

        self.logger.info(f"[{attempt.identity}] Imported descriptor into wallet")
        return StepOutcome.OK
