"""Cooperative cancellation shared by the orchestrator, transport and poller."""

from __future__ import annotations

import asyncio
from typing import Callable

from services.uploader.domain.errors import OperationCancelledError


class CancellationToken:
    """Caller-owned signal checked at every suspension point.

    Cancelling never preempts work that is already running; holders observe
    the flag the next time they call :meth:`raise_if_cancelled` or wake up
    from :meth:`sleep`.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._event: asyncio.Event | None = None
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._event is not None:
            self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> None:
        if self._cancelled:
            callback()
            return
        self._callbacks.append(callback)

    def raise_if_cancelled(self, message: str = "Upload cancelled.") -> None:
        if self._cancelled:
            raise OperationCancelledError(message)

    async def sleep(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True if woken by cancellation."""
        if self._cancelled:
            return True
        if self._event is None:
            self._event = asyncio.Event()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
