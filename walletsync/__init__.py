"""
walletsync.

Converges Bitcoin and Monero wallet hosts to a single loaded wallet each,
using key material from the upstream seed authority.
"""

__version__ = "0.1.0"
