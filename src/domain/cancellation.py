"""
Cancellation token - explicit early-termination signal for async calls.

A token is handed to a network call by whoever owns the call. The owner
cancels it when the call is superseded or torn down; the callee checks it
before sending and races it against the in-flight request. Tokens are
single-use: a restarted operation always gets a fresh token.
"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from .exceptions import CheckCancelled

T = TypeVar("T")


class CancellationToken:
    """One-shot cancellation signal bound to the running event loop."""

    def __init__(self) -> None:
        self._cancelled = False
        self._event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Signal cancellation. Idempotent."""
        self._cancelled = True
        if self._event is not None:
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise CheckCancelled()

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await an operation unless the token fires first.

        The operation runs as its own task; if cancellation wins the race
        that task is cancelled and CheckCancelled is raised. The token is
        checked again after completion so a result that lands in the same
        loop iteration as cancel() is still discarded.

        Raises:
            CheckCancelled: If the token is cancelled before or during the call
        """
        if self._cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise CheckCancelled()

        operation = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self.wait())
        try:
            await asyncio.wait({operation, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            # Owner task torn down: don't leave the request running
            operation.cancel()
            raise
        finally:
            waiter.cancel()

        if not operation.done():
            operation.cancel()
            try:
                await operation
            except asyncio.CancelledError:
                pass
            raise CheckCancelled()

        self.raise_if_cancelled()
        return operation.result()
