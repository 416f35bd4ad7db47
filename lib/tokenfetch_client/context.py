"""Cancellable request context passed to :meth:`TokenClient.request_token`."""

from __future__ import annotations

import asyncio
import time


class ContextError(Exception):
    """Reason a request context stopped being usable."""


class RequestCancelled(ContextError):
    def __init__(self) -> None:
        super().__init__("request context cancelled")


class DeadlineExceeded(ContextError):
    def __init__(self) -> None:
        super().__init__("request context deadline exceeded")


class RequestContext:
    """Cancellation event plus an optional monotonic deadline.

    ``cancel()`` must be called from the event loop thread (for example from a
    handler installed with ``loop.add_signal_handler``).
    """

    def __init__(self, *, deadline: float | None = None):
        self._deadline = deadline
        self._event = asyncio.Event()

    @classmethod
    def with_timeout(cls, seconds: float) -> RequestContext:
        return cls(deadline=time.monotonic() + seconds)

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self.error() is not None

    def error(self) -> ContextError | None:
        if self._event.is_set():
            return RequestCancelled()
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DeadlineExceeded()
        return None

    def remaining(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    async def wait(self) -> ContextError:
        """Block until the context is cancelled or its deadline passes."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout=self.remaining())
        except TimeoutError:
            return DeadlineExceeded()
        return RequestCancelled()
