"""
JSON-RPC client over aiohttp.

Shared transport for Bitcoin Core, monero-wallet-rpc and the seed
authority. Classifies every failure into the walletsync error taxonomy:

- transport failures, timeouts and gateway statuses -> ConnectivityError
- JSON-RPC error objects -> RpcError (host rejection, classified later)
- HTTP 401/403 -> CredentialError
- unparseable bodies or missing result -> MalformedResponseError

SECURITY: request params may carry key material. They are never logged
and never copied into exception messages.
"""

import json
from collections.abc import Callable
from decimal import Decimal
from functools import partial
from typing import Any

import aiohttp
from loguru import logger

from walletsync.config.constants import (
    RETRYABLE_HTTP_STATUSES,
    RPC_CONNECT_TIMEOUT,
    RPC_MAX_RETRIES,
    RPC_RETRY_DELAY_BASE,
    RPC_TIMEOUT,
)
from walletsync.services.rpc.rpc_wrapper import rpc_call_with_retry
from walletsync.utils.exceptions import (
    ConnectivityError,
    CredentialError,
    MalformedResponseError,
    RpcError,
)


# Keep amounts exact
_loads = partial(json.loads, parse_float=Decimal)

AuthProvider = Callable[[], aiohttp.BasicAuth | None]


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonRpcClient:
    """
    Minimal JSON-RPC client with timeout, retry and error classification.

    Usage:
        client = JsonRpcClient("http://127.0.0.1:18082/json_rpc", name="monero")
        height = await client.call("get_height")
        await client.close()
    """

    def __init__(
        self,
        url: str,
        *,
        name: str = "rpc",
        jsonrpc_version: str = "2.0",
        request_id: str | int = 1,
        auth_provider: AuthProvider | None = None,
        timeout: float = RPC_TIMEOUT,
        max_retries: int = RPC_MAX_RETRIES,
        retry_delay_base: float = RPC_RETRY_DELAY_BASE,
        content_type: str = "application/json",
        connectivity_error: type[ConnectivityError] = ConnectivityError,
    ) -> None:
        """
        Initialize JSON-RPC client.

        Args:
            url: Endpoint URL
            name: Short client name for logging
            jsonrpc_version: "1.0" for Bitcoin Core, "2.0" otherwise
            request_id: Value of the "id" member
            auth_provider: Callable returning Basic auth per request
            timeout: Per-attempt timeout in seconds
            max_retries: Attempts for connectivity failures
            retry_delay_base: Base delay for exponential backoff
            content_type: Content-Type header sent with requests
            connectivity_error: Error type raised when retries are exhausted
        """
        self.url = url.rstrip("/")
        self.name = name
        self.jsonrpc_version = jsonrpc_version
        self.request_id = request_id
        self.auth_provider = auth_provider
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay_base = retry_delay_base
        self.content_type = content_type
        self.connectivity_error = connectivity_error
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(
                    total=self.timeout, connect=min(RPC_CONNECT_TIMEOUT, self.timeout)
                ),
                json_serialize=partial(json.dumps, default=_json_default),
            )
        return self._session

    async def call(
        self,
        method: str,
        params: Any = None,
        *,
        path: str = "",
        retry: bool = True,
    ) -> Any:
        """
        Call a JSON-RPC method.

        Args:
            method: RPC method name
            params: Positional list or named dict (defaults to empty)
            path: Extra URL path, e.g. "/wallet/<name>" for Bitcoin Core
            retry: Retry connectivity failures. Pass False for calls that
                create state on the host, so a timed-out request is never
                replayed.

        Returns:
            The "result" member of the response

        Raises:
            ConnectivityError: Host unreachable or timed out
            RpcError: Host returned a JSON-RPC error object
            CredentialError: Host refused the credentials
            MalformedResponseError: Response could not be interpreted
        """
        operation_name = f"{self.name}.{method}"
        attempts = self.max_retries if retry else 1

        return await rpc_call_with_retry(
            lambda: self._post(method, params, path),
            max_retries=attempts,
            timeout=self.timeout,
            operation_name=operation_name,
            delay_base=self.retry_delay_base,
            error_factory=self.connectivity_error,
        )

    async def _post(self, method: str, params: Any, path: str) -> Any:
        payload = {
            "jsonrpc": self.jsonrpc_version,
            "id": self.request_id,
            "method": method,
            "params": params if params is not None else {},
        }
        auth = self.auth_provider() if self.auth_provider else None

        logger.debug(f"[{self.name}] -> {method}")

        try:
            session = await self._get_session()
            async with session.post(
                f"{self.url}{path}",
                json=payload,
                auth=auth,
                headers={"Content-Type": self.content_type},
            ) as response:
                status = response.status
                body = await response.text()
        except aiohttp.ClientError as e:
            raise ConnectivityError(
                f"{self.name}.{method}: {type(e).__name__}: {e}"
            ) from e

        if status in (401, 403):
            raise CredentialError(f"{self.name}.{method}: HTTP {status}, credentials refused")

        try:
            data = _loads(body) if body else None
        except ValueError:
            data = None

        if not isinstance(data, dict):
            if status in RETRYABLE_HTTP_STATUSES:
                raise ConnectivityError(f"{self.name}.{method}: HTTP {status}")
            raise MalformedResponseError(
                f"{self.name}.{method}: HTTP {status}, response is not a JSON-RPC object"
            )

        # Bitcoin Core sends errors with HTTP 404/500 and a JSON body
        error = data.get("error")
        if error:
            if isinstance(error, dict):
                code = error.get("code")
                raise RpcError(
                    str(error.get("message", "unknown error")),
                    code=code if isinstance(code, int) else None,
                    method=method,
                )
            raise RpcError(str(error), method=method)

        if "result" not in data:
            raise MalformedResponseError(f"{self.name}.{method}: response missing result")

        logger.debug(f"[{self.name}] <- {method} ok")
        return data["result"]

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
