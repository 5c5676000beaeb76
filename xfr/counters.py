"""Per-stream counters and boolean signals shared between transfer tasks."""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field


@dataclass
class StreamStats:
    """Running byte, retransmit and UDP counters for one data stream."""

    stream_id: int
    bytes_sent: int = 0
    bytes_received: int = 0
    retransmits: int = 0
    udp_jitter_us: int = 0
    udp_lost: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def add_bytes_sent(self, n: int) -> None:
        with self._lock:
            self.bytes_sent += n

    def add_bytes_received(self, n: int) -> None:
        with self._lock:
            self.bytes_received += n

    def add_retransmits(self, n: int) -> None:
        with self._lock:
            self.retransmits += n

    def set_udp_jitter_us(self, jitter_us: int) -> None:
        with self._lock:
            self.udp_jitter_us = int(jitter_us)

    def add_udp_lost(self, n: int) -> None:
        with self._lock:
            self.udp_lost += n


class Flag:
    """A boolean value that tasks can read and await changes of.

    Every call to :meth:`set` wakes the current waiters, even when the value
    stays the same.
    """

    def __init__(self, value: bool = False) -> None:
        self._value = bool(value)
        self._event = asyncio.Event()

    def set(self, value: bool) -> None:
        self._value = bool(value)
        event, self._event = self._event, asyncio.Event()
        event.set()

    def is_set(self) -> bool:
        return self._value

    def __bool__(self) -> bool:
        return self._value

    async def wait_changed(self) -> bool:
        """Wait for the next :meth:`set` and return the new value."""
        await self._event.wait()
        return self._value


async def wait_while_paused(pause: Flag, cancel: Flag) -> bool:
    """Block while ``pause`` is set.

    Returns True if ``cancel`` was set before the pause ended, False once the
    pause has been lifted.
    """
    while True:
        if cancel.is_set():
            return True
        if not pause.is_set():
            return False
        waiters = {
            asyncio.ensure_future(pause.wait_changed()),
            asyncio.ensure_future(cancel.wait_changed()),
        }
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in waiters:
                task.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)