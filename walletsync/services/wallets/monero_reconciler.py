"""
Monero Wallet Reconciler.

Drives monero-wallet-rpc to an open wallet:

    TryOpenExisting -> (already open) CloseThenReopen
                    -> (not found) FetchMaterial -> RestoreFromSeed

monero-wallet-rpc serves a single wallet session, so a wallet reported
as already open must be closed before it is reopened. A restore that
reports the wallet file already exists opens that file instead; the
seed is never restored twice. A wallet reached through the restore path
is refreshed once, and every handle records the wallet's primary
address so a later validate() can tell it from another open wallet.
"""

from walletsync.config.constants import MONERO_DEFAULT_RESTORE_HEIGHT
from walletsync.models.wallet import (
    MoneroSeed,
    ReconcileReport,
    WalletHandle,
    WalletIdentity,
    WalletState,
)
from walletsync.services.seed_authority import SeedAuthorityClient
from walletsync.services.wallets.base_reconciler import BaseReconciler, ReconcileAttempt
from walletsync.services.wallets.error_classifier import (
    BenignOutcome,
    HostErrorKind,
    classify_error,
)
from walletsync.services.wallets.monero_host import MoneroHostClient
from walletsync.services.wallets.state_machine import (
    MoneroStep,
    StepOutcome,
    next_monero_step,
    terminal_state,
)
from walletsync.utils.exceptions import HostRejectedError, WalletSyncError


class MoneroWalletReconciler(BaseReconciler):
    """Reconciles the monero-wallet-rpc session for one identity."""

    def __init__(
        self,
        host: MoneroHostClient,
        seed_authority: SeedAuthorityClient,
    ) -> None:
        """
        Initialize Monero reconciler.

        Args:
            host: monero-wallet-rpc client
            seed_authority: Client for fetching the seed
        """
        super().__init__(host, seed_authority)
        self._steps = {
            MoneroStep.TRY_OPEN_EXISTING: self._try_open_existing,
            MoneroStep.CLOSE_THEN_REOPEN: self._close_then_reopen,
            MoneroStep.FETCH_MATERIAL: self._fetch_material,
            MoneroStep.RESTORE_FROM_SEED: self._restore_from_seed,
            MoneroStep.OPEN_RESTORED: self._open_restored,
        }

    async def reconcile(self, identity: WalletIdentity) -> ReconcileReport:
        """
        Converge monero-wallet-rpc to the identity's wallet, open.

        Args:
            identity: Monero wallet identity

        Returns:
            ReconcileReport with LOADED_EXISTING or LOADED_FROM_SEED

        Raises:
            WalletSyncError: Terminal failure, secrets redacted
        """
        attempt = ReconcileAttempt(identity=identity)
        step = MoneroStep.TRY_OPEN_EXISTING
        self.logger.info(f"[{identity}] Reconciling Monero wallet")

        try:
            while not step.is_terminal:
                outcome = await self._steps[step](attempt)
                next_step = next_monero_step(step, outcome)
                self.logger.debug(
                    f"[{identity}] {step.value} --{outcome.value}--> {next_step.value}"
                )
                step = next_step
        finally:
            attempt.discard_material()

        state = terminal_state(step)
        if state == WalletState.FAILED:
            raise attempt.error

        if attempt.fetch_count:
            await self._initial_refresh(attempt)
        address = await self.host.get_address()
        return self._report(attempt, state, address=address)

    async def validate(self, handle: WalletHandle) -> bool:
        """
        Re-check that the handle's wallet is the one open on the host.

        The open wallet's primary address must match the address captured
        when the handle was acquired; get_address changes nothing.

        Returns:
            True if the same wallet is open, False if none or another is

        Raises:
            WalletSyncError: Connectivity or other host failure
        """
        try:
            address = await self.host.get_address()
        except WalletSyncError as e:
            if classify_error(e).kind == HostErrorKind.NOT_FOUND:
                self.logger.warning(f"[{handle.identity}] No wallet open on host")
                return False
            raise

        if handle.address is not None and address != handle.address:
            self.logger.warning(f"[{handle.identity}] A different wallet is open on host")
            return False
        return True

    async def _initial_refresh(self, attempt: ReconcileAttempt) -> None:
        """
        Sync a restored wallet once.

        The wallet is already open and usable, and monero-wallet-rpc keeps
        refreshing it in the background, so a failed or timed-out refresh
        is logged, not fatal.
        """
        try:
            blocks = await self.host.refresh()
        except WalletSyncError as e:
            self.logger.warning(f"[{attempt.identity}] Initial refresh failed: {e}")
            return
        self.logger.info(f"[{attempt.identity}] Initial refresh fetched {blocks} blocks")

    async def _open(self, attempt: ReconcileAttempt) -> StepOutcome:
        """Open the wallet and map the host answer to an outcome."""
        try:
            await self.host.open_wallet(attempt.identity.name)
        except WalletSyncError as e:
            classified = classify_error(e)
            if classified.kind == HostErrorKind.BENIGN and classified.benign in (
                BenignOutcome.ALREADY_OPEN,
                BenignOutcome.ALREADY_LOADED,
            ):
                return StepOutcome.ALREADY_OPEN
            if classified.kind == HostErrorKind.NOT_FOUND:
                return StepOutcome.NOT_FOUND
            self._fail(attempt, e)
            return StepOutcome.ERROR
        return StepOutcome.OK

    async def _try_open_existing(self, attempt: ReconcileAttempt) -> StepOutcome:
        outcome = await self._open(attempt)
        if outcome == StepOutcome.OK:
            attempt.observed = WalletState.LOADED_EXISTING
        elif outcome == StepOutcome.ALREADY_OPEN:
            attempt.observed = WalletState.LOADED_EXISTING
            self.logger.info(f"[{attempt.identity}] Wallet open in another session, reopening")
        elif outcome == StepOutcome.NOT_FOUND:
            attempt.observed = WalletState.NOT_PRESENT
            self.logger.info(f"[{attempt.identity}] Wallet file not found on host")
        return outcome

    async def _close_then_reopen(self, attempt: ReconcileAttempt) -> StepOutcome:
        try:
            await self.host.close_wallet()
        except WalletSyncError as e:
            # Nothing open any more is what we wanted
            if classify_error(e).kind != HostErrorKind.NOT_FOUND:
                self._fail(attempt, e)
                return StepOutcome.ERROR

        outcome = await self._open(attempt)
        if outcome == StepOutcome.OK:
            return outcome
        if attempt.error is None:
            self._fail(
                attempt,
                HostRejectedError(
                    f"Wallet '{attempt.identity.name}' could not be reopened ({outcome.value})"
                ),
            )
        return StepOutcome.ERROR

    async def _fetch_material(self, attempt: ReconcileAttempt) -> StepOutcome:
        if await self._fetch(attempt, MoneroSeed):
            return StepOutcome.OK
        return StepOutcome.ERROR

    async def _restore_from_seed(self, attempt: ReconcileAttempt) -> StepOutcome:
        seed: MoneroSeed = attempt.material
        restore_height = (
            seed.restore_height
            if seed.restore_height is not None
            else MONERO_DEFAULT_RESTORE_HEIGHT
        )
        if seed.restore_height is None:
            self.logger.warning(
                f"[{attempt.identity}] Restore height unknown, restoring from height "
                f"{MONERO_DEFAULT_RESTORE_HEIGHT} (full rescan)"
            )

        try:
            await self.host.restore_wallet_from_seed(
                attempt.identity.name, seed.mnemonic, restore_height
            )
        except WalletSyncError as e:
            classified = classify_error(e)
            if classified.benign == BenignOutcome.ALREADY_EXISTS:
                attempt.observed = WalletState.PRESENT_NOT_LOADED
                self.logger.info(f"[{attempt.identity}] Wallet file already exists, opening it")
                return StepOutcome.ALREADY_PRESENT
            self._fail(attempt, e)
            return StepOutcome.ERROR

        return StepOutcome.OK

    async def _open_restored(self, attempt: ReconcileAttempt) -> StepOutcome:
        # Drop the seed before touching the host again
        attempt.discard_material()

        outcome = await self._open(attempt)
        if outcome == StepOutcome.ALREADY_OPEN:
            return await self._close_then_reopen(attempt)
        if outcome == StepOutcome.OK:
            return outcome
        if attempt.error is None:
            self._fail(
                attempt,
                HostRejectedError(
                    f"Wallet '{attempt.identity.name}' exists but could not be opened"
                ),
            )
        return StepOutcome.ERROR
