"""
Wallet domain types.

Identities, key material, reconciliation states and the handles
published to collaborators once a wallet is ready.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class Currency(StrEnum):
    """Supported wallet currencies."""

    BITCOIN = "bitcoin"
    MONERO = "monero"


class WalletState(StrEnum):
    """
    Reconciliation state of a wallet on its host.

    Recomputed on every attempt: the wallet host is the source of truth.
    """

    UNKNOWN = "unknown"
    NOT_PRESENT = "not_present"
    PRESENT_NOT_LOADED = "present_not_loaded"
    LOADED_EXISTING = "loaded_existing"
    LOADED_FROM_SEED = "loaded_from_seed"
    FAILED = "failed"

    @property
    def is_ready(self) -> bool:
        return self in (WalletState.LOADED_EXISTING, WalletState.LOADED_FROM_SEED)


@dataclass(frozen=True)
class WalletIdentity:
    """Currency plus logical wallet name, stable across restarts."""

    currency: Currency
    name: str

    def __str__(self) -> str:
        return f"{self.currency.value}:{self.name}"


@dataclass(frozen=True)
class BitcoinDescriptor:
    """
    Bitcoin output descriptor received from the seed authority.

    SECURITY: descriptors carry private keys. The raw value is excluded
    from repr() and must never be logged.
    """

    raw: str = field(repr=False)
    has_checksum: bool = False

    currency = Currency.BITCOIN


@dataclass(frozen=True)
class MoneroSeed:
    """
    Monero mnemonic seed and its restore height.

    SECURITY: the mnemonic is excluded from repr() and must never be logged.
    """

    mnemonic: str = field(repr=False)
    restore_height: int | None = None

    currency = Currency.MONERO


SeedMaterial = BitcoinDescriptor | MoneroSeed


def material_secret(material: SeedMaterial) -> str:
    """Return the secret string carried by seed material, for redaction."""
    if isinstance(material, BitcoinDescriptor):
        return material.raw
    return material.mnemonic


@dataclass(frozen=True)
class WalletHandle:
    """
    Reference to a ready wallet on a specific host.

    Owned by WalletManager and shared read-only with collaborators.
    Two handles are equal when they describe the same wallet session;
    the host client is not part of the comparison.
    """

    currency: Currency
    wallet_name: str
    endpoint: str
    state: WalletState
    address: str | None = field(default=None, repr=False)  # Monero primary address
    acquired_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    host: Any = field(default=None, repr=False, compare=False)

    @property
    def identity(self) -> WalletIdentity:
        return WalletIdentity(self.currency, self.wallet_name)


@dataclass(frozen=True)
class ReconcileReport:
    """Terminal outcome of one successful reconciliation."""

    identity: WalletIdentity
    state: WalletState
    handle: WalletHandle


@dataclass
class InitResult:
    """
    Aggregated outcome of WalletManager.initialize().

    Handles for identities that converged, errors for those that did not.
    """

    handles: dict[WalletIdentity, WalletHandle] = field(default_factory=dict)
    errors: dict[WalletIdentity, Exception] = field(default_factory=dict)

    @property
    def all_failed(self) -> bool:
        return not self.handles and bool(self.errors)

    @property
    def partial(self) -> bool:
        return bool(self.handles) and bool(self.errors)

    def handle_for(self, currency: Currency) -> WalletHandle | None:
        """Get the handle for a currency, if it converged."""
        for identity, handle in self.handles.items():
            if identity.currency == currency:
                return handle
        return None

    def error_for(self, currency: Currency) -> Exception | None:
        """Get the error for a currency, if it failed."""
        for identity, error in self.errors.items():
            if identity.currency == currency:
                return error
        return None
