"""
Unit Tests for Cancellation Tokens
==================================
"""

import asyncio
import time

import pytest

from pagecap.core.cancellation import CancellationToken
from pagecap.core.errors import ScreenshotCancelledError


async def slow_value(value, seconds=10.0):
    await asyncio.sleep(seconds)
    return value


class TestCancellationToken:
    """Test firing and inspecting a token."""

    def test_new_token_is_not_cancelled(self):
        """A fresh token has not fired."""
        token = CancellationToken()

        assert token.cancelled is False
        assert token.reason is None
        token.raise_if_cancelled()

    def test_first_reason_wins(self):
        """Cancelling twice keeps the first reason."""
        token = CancellationToken()
        token.cancel("client disconnected")
        token.cancel("server shutting down")

        assert token.cancelled is True
        assert token.reason == "client disconnected"

    def test_raise_if_cancelled(self):
        """A fired token raises with its reason."""
        token = CancellationToken()
        token.cancel("client disconnected")

        with pytest.raises(ScreenshotCancelledError, match="client disconnected"):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_cancel_after_fires_deadline(self):
        """The deadline fires the token on its own."""
        token = CancellationToken()
        token.cancel_after(0.01)

        await asyncio.wait_for(token.wait(), timeout=1)

        assert token.reason == "deadline exceeded"

    @pytest.mark.asyncio
    async def test_dispose_disarms_deadline(self):
        """A disposed deadline never fires."""
        token = CancellationToken()
        token.cancel_after(0.01)
        token.dispose()

        await asyncio.sleep(0.05)

        assert token.cancelled is False


class TestCancellableSleep:
    """Test the cancellable delay."""

    @pytest.mark.asyncio
    async def test_sleep_completes(self):
        """Without cancellation the full delay elapses."""
        token = CancellationToken()
        start = time.monotonic()

        await token.sleep(0.05)

        assert time.monotonic() - start >= 0.04

    @pytest.mark.asyncio
    async def test_sleep_interrupted(self):
        """Cancellation ends the delay early with an error."""
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.01, token.cancel, "client disconnected")
        start = time.monotonic()

        with pytest.raises(ScreenshotCancelledError):
            await token.sleep(10)

        assert time.monotonic() - start < 1

    @pytest.mark.asyncio
    async def test_sleep_on_cancelled_token(self):
        """A fired token does not sleep at all."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(ScreenshotCancelledError, match="operation cancelled"):
            await token.sleep(10)


class TestCancellableRun:
    """Test racing an awaitable against the token."""

    @pytest.mark.asyncio
    async def test_run_returns_result(self):
        """A step that finishes first returns its result."""
        token = CancellationToken()

        assert await token.run(slow_value("done", 0)) == "done"

    @pytest.mark.asyncio
    async def test_run_propagates_errors(self):
        """Errors from the step are raised unchanged."""

        async def failing():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await CancellationToken().run(failing())

    @pytest.mark.asyncio
    async def test_run_on_cancelled_token(self):
        """A fired token never starts the step."""
        token = CancellationToken()
        token.cancel("client disconnected")
        started = []

        async def step():
            started.append(True)

        with pytest.raises(ScreenshotCancelledError):
            await token.run(step())

        assert started == []

    @pytest.mark.asyncio
    async def test_run_abandons_slow_step(self):
        """A step still running when the token fires is cancelled."""
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.01, token.cancel, "deadline exceeded")
        start = time.monotonic()

        with pytest.raises(ScreenshotCancelledError, match="deadline exceeded"):
            await token.run(slow_value("late"))

        assert time.monotonic() - start < 1
