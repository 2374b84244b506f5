"""
RPC transport.

JSON-RPC client over aiohttp and the timeout/retry helpers it uses.
"""

from walletsync.services.rpc.json_rpc import JsonRpcClient
from walletsync.services.rpc.rpc_wrapper import (
    rpc_call_with_retry,
    with_timeout,
)


__all__ = [
    "JsonRpcClient",
    "rpc_call_with_retry",
    "with_timeout",
]
