"""
RPC Wrapper with Timeout and Retry Logic.

Provides centralized timeout and retry functionality for all wallet host
and seed authority RPC calls. Only connectivity failures are retried;
every other error propagates on the first attempt.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger

from walletsync.config.constants import RPC_MAX_RETRIES, RPC_RETRY_DELAY_BASE, RPC_TIMEOUT
from walletsync.utils.exceptions import ConnectivityError, RpcTimeoutError, is_retryable

T = TypeVar("T")


async def with_timeout(
    coro: Awaitable[T],
    timeout: float = RPC_TIMEOUT,
    operation_name: str = "RPC call",
) -> T:
    """
    Execute async coroutine with timeout.

    Args:
        coro: Coroutine to execute
        timeout: Timeout in seconds (default: RPC_TIMEOUT)
        operation_name: Operation name for logging

    Returns:
        Result of the coroutine

    Raises:
        RpcTimeoutError: If operation times out
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except TimeoutError as e:
        error_msg = f"{operation_name} timed out after {timeout}s"
        logger.error(error_msg)
        raise RpcTimeoutError(error_msg) from e


async def rpc_call_with_retry(
    coro_factory: Callable[[], Awaitable[T]],
    max_retries: int = RPC_MAX_RETRIES,
    timeout: float = RPC_TIMEOUT,
    operation_name: str = "RPC call",
    delay_base: float = RPC_RETRY_DELAY_BASE,
    error_factory: Callable[[str], ConnectivityError] = ConnectivityError,
) -> T:
    """
    Execute RPC call with retry logic and timeout.

    Retries only connectivity failures (including timeouts), with
    exponential backoff: delay_base * 2**attempt between attempts.

    Args:
        coro_factory: Factory function that returns a coroutine
        max_retries: Maximum number of attempts
        timeout: Timeout per attempt in seconds
        operation_name: Operation name for logging
        delay_base: Base delay in seconds for the backoff
        error_factory: Connectivity error type raised once attempts are exhausted

    Returns:
        Result of the RPC call

    Raises:
        ConnectivityError: If all attempts fail with connectivity errors
        WalletSyncError: Any non-retryable error, on first occurrence
    """
    last_error: BaseException | None = None

    for attempt in range(max_retries):
        try:
            result = await with_timeout(
                coro_factory(),
                timeout=timeout,
                operation_name=f"{operation_name} (attempt {attempt + 1}/{max_retries})",
            )

            if attempt > 0:
                logger.success(f"{operation_name} succeeded on attempt {attempt + 1}")

            return result

        except Exception as e:
            if not is_retryable(e):
                raise

            last_error = e

            if attempt < max_retries - 1:
                delay = delay_base * (2 ** attempt)  # 1s, 2s, 4s...
                logger.warning(
                    f"{operation_name} failed on attempt {attempt + 1}/{max_retries}: {e}. "
                    f"Retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
            else:
                logger.error(f"{operation_name} failed after {max_retries} attempts: {e}")

    raise error_factory(
        f"{operation_name} failed after {max_retries} attempts: {last_error}"
    ) from last_error
