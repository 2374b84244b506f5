"""
Wallet services module.

Provides wallet reconciliation for Bitcoin Core and monero-wallet-rpc
through a modular architecture: host clients, per-currency reconcilers
driven by explicit state machines, and a manager that owns the handles.
"""

from .bitcoin_host import BitcoinHostClient
from .bitcoin_reconciler import BitcoinWalletReconciler
from .descriptor import descriptor_checksum, normalize
from .error_classifier import BenignOutcome, classify_error
from .health_check import WalletHealthCheck
from .manager import WalletManager
from .monero_host import MoneroHostClient
from .monero_reconciler import MoneroWalletReconciler
from .single_flight import SingleFlight


__all__ = [
    "BenignOutcome",
    "BitcoinHostClient",
    "BitcoinWalletReconciler",
    "MoneroHostClient",
    "MoneroWalletReconciler",
    "SingleFlight",
    "WalletHealthCheck",
    "WalletManager",
    "classify_error",
    "descriptor_checksum",
    "normalize",
]
