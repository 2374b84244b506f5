"""
Base reconciler class.

Provides what both currency reconcilers share: bound logging, the
per-attempt scratch state, secret-free failure recording, and handle
construction.
"""

from dataclasses import dataclass, field

from loguru import logger

from walletsync.models.wallet import (
    ReconcileReport,
    SeedMaterial,
    WalletHandle,
    WalletIdentity,
    WalletState,
    material_secret,
)
from walletsync.services.seed_authority import SeedAuthorityClient
from walletsync.utils.exceptions import MalformedResponseError, RpcError, WalletSyncError
from walletsync.utils.security import redact_secrets


@dataclass
class ReconcileAttempt:
    """
    Scratch state of one reconciliation attempt.

    Holds key material only until the attempt ends; the reconciler
    clears it in a finally block.
    """

    identity: WalletIdentity
    observed: WalletState = WalletState.UNKNOWN
    material: SeedMaterial | None = field(default=None, repr=False)
    prepared: str | None = field(default=None, repr=False)
    error: WalletSyncError | None = None
    fetch_count: int = 0

    def secrets(self) -> list[str | None]:
        material = material_secret(self.material) if self.material else None
        return [material, self.prepared]

    def discard_material(self) -> None:
        self.material = None
        self.prepared = None


def redact_error(error: WalletSyncError, secrets: list[str | None]) -> WalletSyncError:
    """
    Return an equivalent error whose message carries no secret.

    The original error is not chained: its message (and traceback
    context) may contain the very material being redacted.
    """
    text = str(error)
    clean = redact_secrets(text, secrets)
    if clean == text:
        return error

    if isinstance(error, RpcError):
        redacted: WalletSyncError = RpcError(
            redact_secrets(error.message, secrets), code=error.code, method=error.method
        )
    else:
        redacted = type(error)(clean)
    redacted.__suppress_context__ = True
    return redacted


class BaseReconciler:
    """
    Base reconciler.

    Subclasses implement reconcile() and validate() for one wallet host.
    """

    def __init__(self, host, seed_authority: SeedAuthorityClient) -> None:
        """
        Initialize base reconciler.

        Args:
            host: Currency-specific wallet host client
            seed_authority: Client for fetching key material
        """
        self.host = host
        self.seed_authority = seed_authority
        self.logger = logger.bind(service=self.__class__.__name__)

    def _fail(self, attempt: ReconcileAttempt, error: WalletSyncError) -> None:
        attempt.error = redact_error(error, attempt.secrets())
        self.logger.error(f"[{attempt.identity}] {attempt.error}")

    async def _fetch(self, attempt: ReconcileAttempt, expected: type) -> bool:
        """
        Fetch key material once per attempt.

        Returns:
            True on success, False with attempt.error set otherwise
        """
        if attempt.fetch_count:
            raise RuntimeError(f"Key material already fetched for {attempt.identity}")
        attempt.fetch_count += 1

        try:
            material = await self.seed_authority.fetch(attempt.identity)
        except WalletSyncError as e:
            self._fail(attempt, e)
            return False

        if not isinstance(material, expected):
            self._fail(
                attempt,
                MalformedResponseError(
                    f"Seed authority returned {type(material).__name__}, "
                    f"expected {expected.__name__}"
                ),
            )
            return False

        attempt.material = material
        return True

    def _report(
        self, attempt: ReconcileAttempt, state: WalletState, address: str | None = None
    ) -> ReconcileReport:
        handle = WalletHandle(
            currency=attempt.identity.currency,
            wallet_name=attempt.identity.name,
            endpoint=self.host.rpc_url,
            state=state,
            address=address,
            host=self.host,
        )
        self.logger.success(
            f"[{attempt.identity}] Wallet ready ({state.value}, observed {attempt.observed.value})"
        )
        return ReconcileReport(identity=attempt.identity, state=state, handle=handle)
