"""Clock and countdown timer implementations."""

import asyncio
from datetime import datetime
from typing import Callable

from .interfaces import Clock, PeriodicTimer


class SystemClock(Clock):
    """Wall-clock time in the local timezone."""

    def now(self) -> datetime:
        return datetime.now()


class AsyncioPeriodicTimer(PeriodicTimer):
    """Periodic tick scheduled on an asyncio event loop.

    Ticks run on the loop thread, so the owner sees them interleaved with its
    other events rather than concurrently.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop = None):
        self._owner_loop = loop
        self._loop = loop
        self._handle = None
        self._interval = 0.0
        self._callback = None

    def start(self, interval: float, callback: Callable[[], None]) -> None:
        """Must be called from a running loop unless one was given explicitly."""
        self.cancel()
        self._loop = self._owner_loop or asyncio.get_running_loop()
        self._interval = interval
        self._callback = callback
        self._schedule()

    def _schedule(self) -> None:
        self._handle = self._loop.call_later(self._interval, self._fire)

    def _fire(self) -> None:
        callback = self._callback
        # Re-arm first so the callback can cancel us
        self._schedule()
        callback()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._callback = None

    @property
    def active(self) -> bool:
        return self._handle is not None
