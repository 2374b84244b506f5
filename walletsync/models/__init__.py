"""
Domain models.

Exports wallet identity, key material and handle types for easy imports.
"""

from walletsync.models.wallet import (
    BitcoinDescriptor,
    Currency,
    InitResult,
    MoneroSeed,
    ReconcileReport,
    SeedMaterial,
    WalletHandle,
    WalletIdentity,
    WalletState,
    material_secret,
)


__all__ = [
    "BitcoinDescriptor",
    "Currency",
    "InitResult",
    "MoneroSeed",
    "ReconcileReport",
    "SeedMaterial",
    "WalletHandle",
    "WalletIdentity",
    "WalletState",
    "material_secret",
]
