"""Tests for checklinks.validate.ratelimit."""

from __future__ import annotations

import asyncio
from typing import List

from checklinks.validate.ratelimit import HostGate, host_of


class FakeClock:
    """Monotonic clock that only moves when something sleeps on it."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay
        await asyncio.sleep(0)


def test_same_host_dispatches_are_spaced_by_interval() -> None:
    clock = FakeClock()
    gate = HostGate(1.0, clock=clock, sleep=clock.sleep)

    async def _run() -> List[float]:
        return list(await asyncio.gather(*(gate.acquire("example.com") for _ in range(4))))

    stamps = asyncio.run(_run())

    assert stamps == sorted(stamps)
    gaps = [later - earlier for earlier, later in zip(stamps, stamps[1:])]
    assert all(gap >= 1.0 for gap in gaps)


def test_different_hosts_do_not_wait_on_each_other() -> None:
    clock = FakeClock()
    gate = HostGate(5.0, clock=clock, sleep=clock.sleep)

    async def _run() -> List[float]:
        return list(await asyncio.gather(gate.acquire("a.example"), gate.acquire("b.example")))

    assert asyncio.run(_run()) == [0.0, 0.0]
    assert clock.sleeps == []


def test_gap_already_elapsed_needs_no_sleep() -> None:
    clock = FakeClock()
    gate = HostGate(1.0, clock=clock, sleep=clock.sleep)

    async def _run() -> None:
        await gate.acquire("example.com")
        clock.now = 2.5
        await gate.acquire("example.com")

    asyncio.run(_run())

    assert clock.sleeps == []


def test_host_of_lowercases_and_drops_port() -> None:
    assert host_of("https://Docs.Example.com:8443/path") == "docs.example.com"
