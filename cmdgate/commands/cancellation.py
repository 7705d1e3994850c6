"""Cancellation token shared by the permission gate and the process supervisor."""

import asyncio


class CancellationToken:
    """One-shot cancellation signal.

    Once cancelled, a token stays cancelled. Waiters are woken on the event
    loop they are waiting in; call ``cancel`` from other threads or signal
    handlers through ``loop.call_soon_threadsafe``.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason = ""

    def cancel(self, reason: str = "") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def __repr__(self):
        state = "cancelled" if self.cancelled else "active"
        return f"CancellationToken({state})"
