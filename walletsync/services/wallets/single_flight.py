"""
Single-flight gate.

Ensures at most one execution per key is in flight. Concurrent callers
for the same key await the running execution and share its result or
exception. Different keys never block each other.
"""

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class _Flight(Generic[T]):
    task: asyncio.Task
    waiters: int = 0


class SingleFlight(Generic[T]):
    """
    Per-key deduplication of concurrent async work.

    Usage:
        flights: SingleFlight[ReconcileReport] = SingleFlight()
        report = await flights.run(identity, lambda: reconcile(identity))

    Cancellation: a cancelled caller stops waiting. The shared execution is
    cancelled only when its last waiter goes away.
    """

    def __init__(self) -> None:
        self._flights: dict[Hashable, _Flight[T]] = {}

    def in_flight(self, key: Hashable) -> bool:
        """Check whether an execution for the key is running."""
        return key in self._flights

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        """
        Run factory() for key, or join the execution already in flight.

        Args:
            key: Deduplication key
            factory: Returns the awaitable to run when no flight exists

        Returns:
            Result of the (possibly shared) execution

        Raises:
            Exception: Whatever the shared execution raised
        """
        flight = self._flights.get(key)
        if flight is None:
            flight = _Flight(task=asyncio.ensure_future(factory()))
            self._flights[key] = flight
            flight.task.add_done_callback(lambda _, k=key, f=flight: self._forget(k, f))
        else:
            logger.debug(f"Joining in-flight execution for {key}")

        flight.waiters += 1
        try:
            return await asyncio.shield(flight.task)
        except asyncio.CancelledError:
            if flight.waiters == 1 and not flight.task.done():
                flight.task.cancel()
            raise
        finally:
            flight.waiters -= 1

    def _forget(self, key: Hashable, flight: "_Flight[Any]") -> None:
        if self._flights.get(key) is flight:
            del self._flights[key]
