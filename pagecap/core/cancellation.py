"""
Cancellation Tokens
===================

Explicit cancellation signal passed down every long-running step of a capture
(navigation, post-load delay, screenshot). A token fires when the client
disconnects, the request deadline passes, or the service shuts down.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from pagecap.core.errors import ScreenshotCancelledError

T = TypeVar("T")


def _consume_result(task: "asyncio.Future[object]") -> None:
    # Mark the outcome of an abandoned step as retrieved.
    if not task.cancelled():
        task.exception()


class CancellationToken:
    """One-shot cancellation signal for a single capture."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "operation cancelled") -> None:
        """Fire the token. Only the first reason is kept."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    def cancel_after(self, seconds: float) -> None:
        """Fire the token once ``seconds`` have elapsed."""
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(seconds, self.cancel, "deadline exceeded")

    def dispose(self) -> None:
        """Disarm the deadline timer, if any."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScreenshotCancelledError(self._reason or "operation cancelled")

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, seconds: float) -> None:
        """
        Sleep for ``seconds`` unless the token fires first.

        Raises:
            ScreenshotCancelledError: If the token fires before the delay ends
        """
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        self.raise_if_cancelled()

    async def run(self, aw: Awaitable[T]) -> T:
        """
        Await ``aw``, abandoning it if the token fires first.

        Args:
            aw: Awaitable for one step of the capture

        Returns:
            The awaitable's result

        Raises:
            ScreenshotCancelledError: If the token fires before ``aw`` completes
        """
        if self._event.is_set():
            if asyncio.iscoroutine(aw):
                aw.close()
            self.raise_if_cancelled()

        task = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self._event.wait())
        abandoned = False
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                abandoned = True
                task.cancel()
                task.add_done_callback(_consume_result)

        if abandoned:
            raise ScreenshotCancelledError(self._reason or "operation cancelled")
        return task.result()
