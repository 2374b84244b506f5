"""
Services.

Wallet reconciliation layer.
"""

from walletsync.services.seed_authority import SeedAuthorityClient
from walletsync.services.wallets import WalletHealthCheck, WalletManager


__all__ = [
    "SeedAuthorityClient",
    "WalletHealthCheck",
    "WalletManager",
]
