"""Per-host request spacing."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Dict
from urllib.parse import urlsplit


def host_of(url: str) -> str:
    return (urlsplit(url).hostname or "").lower()


class HostGate:
    """One dispatch slot per host, refilled ``interval`` seconds after each use.

    Requests to the same host are serialized through a per-host lock and
    spaced by at least ``interval``; requests to different hosts never wait on
    each other. A gate belongs to a single run.
    """

    def __init__(
        self,
        interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._locks: Dict[str, asyncio.Lock] = {}
        self._last_dispatch: Dict[str, float] = {}

    async def acquire(self, host: str) -> float:
        """Wait for the host's slot and return the dispatch timestamp."""
        lock = self._locks.setdefault(host, asyncio.Lock())
        async with lock:
            last = self._last_dispatch.get(host)
            now = self._clock()
            if last is not None:
                # Timers may fire marginally early; loop until the gap is real.
                while now - last < self.interval:
                    await self._sleep(self.interval - (now - last))
                    now = self._clock()
            self._last_dispatch[host] = now
            return now


__all__ = ["HostGate", "host_of"]
