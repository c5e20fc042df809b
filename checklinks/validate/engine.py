"""Concurrent validation of deduplicated link targets."""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Dict, FrozenSet, Optional, Sequence

import httpx

from ..config import Configuration
from ..logging import get_logger
from ..models import DedupKey, ErrorKind, TargetKind, ValidationOutcome
from .probes import HttpProbe, ProbeResult, check_local_path
from .ratelimit import HostGate, host_of
from .retry import Attempting, RetryPolicy, Retrying, TaskState, Terminal

logger = get_logger("validate.engine")

HttpProbeFn = Callable[..., Awaitable[ProbeResult]]
LocalProbeFn = Callable[..., ProbeResult]

RUN_TIMEOUT_REASON = "run-timeout"


@dataclass(frozen=True)
class ValidationTask:
    """One unit of validation work: a key and the fragments its occurrences want."""

    key: DedupKey
    fragments: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def want_anchors(self) -> bool:
        return bool(self.fragments)


class ValidationSession:
    """Objects owned by a single run: host gate, probes and outcome cache."""

    def __init__(
        self,
        config: Configuration,
        *,
        gate: HostGate,
        http_probe: HttpProbeFn,
        local_probe: LocalProbeFn,
        policy: RetryPolicy,
        sleep: Callable[[float], Awaitable[None]],
        clock: Callable[[], float],
    ) -> None:
        self.config = config
        self.gate = gate
        self.http_probe = http_probe
        self.local_probe = local_probe
        self.policy = policy
        self.outcomes: Dict[DedupKey, ValidationOutcome] = {}
        self._sleep = sleep
        self._clock = clock

    async def validate(self, task: ValidationTask) -> ValidationOutcome:
        """Drive one task's retry state machine to a terminal outcome."""
        started = self._clock()
        state: TaskState = Attempting()
        while True:
            if isinstance(state, Terminal):
                return state.outcome
            if isinstance(state, Retrying):
                logger.debug(
                    "Retrying %s in %.2fs (retry %d of %d)",
                    task.key.location,
                    state.delay,
                    state.retries_used + 1,
                    self.policy.max_retries,
                )
                await self._sleep(state.delay)
                state = self.policy.resume(state)
                continue
            result = await self._probe(task)
            state = self.policy.advance(state, result, latency=self._clock() - started)

    async def run(self, tasks: Sequence[ValidationTask]) -> Dict[DedupKey, ValidationOutcome]:
        """Validate every task with a bounded worker pool under the run deadline."""
        if len({task.key for task in tasks}) != len(tasks):
            raise ValueError("Each key must be scheduled exactly once")

        queue: "asyncio.Queue[ValidationTask]" = asyncio.Queue()
        for task in tasks:
            queue.put_nowait(task)

        worker_count = min(self.config.concurrency, len(tasks))
        if worker_count:
            workers = [
                asyncio.create_task(self._worker(queue), name=f"checklinks-worker-{index}")
                for index in range(worker_count)
            ]
            done, pending = await asyncio.wait(workers, timeout=self.config.run_timeout)
            if pending:
                logger.warning(
                    "Run timeout of %.1fs reached with %d of %d targets unchecked",
                    self.config.run_timeout,
                    len(tasks) - len(self.outcomes),
                    len(tasks),
                )
                for worker in pending:
                    worker.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
            for worker in done:
                worker.result()

        for task in tasks:
            if task.key not in self.outcomes:
                self.outcomes[task.key] = ValidationOutcome.skipped(RUN_TIMEOUT_REASON)
        return {task.key: self.outcomes[task.key] for task in tasks}

    async def _worker(self, queue: "asyncio.Queue[ValidationTask]") -> None:
        while True:
            try:
                task = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                outcome = await self.validate(task)
            except Exception as exc:
                logger.warning("Unexpected error checking %s: %s", task.key.location, exc)
                outcome = ValidationOutcome.broken(
                    ErrorKind.REQUEST_ERROR, reason=str(exc) or type(exc).__name__
                )
            self.outcomes[task.key] = outcome
            logger.debug("%s -> %s", task.key.location, outcome.describe())

    async def _probe(self, task: ValidationTask) -> ProbeResult:
        key = task.key
        if key.kind is TargetKind.HTTP:
            await self.gate.acquire(host_of(key.location))
            return await self.http_probe(key.location, want_anchors=task.want_anchors)
        if key.kind is TargetKind.LOCAL_PATH:
            want_anchors = task.want_anchors and self.config.follow_local_anchors
            return await asyncio.to_thread(self.local_probe, key.location, want_anchors=want_anchors)
        raise ValueError(f"{key.kind.value} targets are never probed")


class LinkValidator:
    """Validates unique targets concurrently.

    Probes can be injected for tests; by default HTTP targets go through an
    ``httpx.AsyncClient`` created for the run and local targets through a
    filesystem check.
    """

    def __init__(
        self,
        config: Configuration,
        *,
        http_probe: Optional[HttpProbeFn] = None,
        local_probe: Optional[LocalProbeFn] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self._http_probe = http_probe
        self._local_probe = local_probe or check_local_path
        self._transport = transport
        self._sleep = sleep
        self._clock = clock

    @asynccontextmanager
    async def session(self) -> AsyncIterator[ValidationSession]:
        """Construct the run-scoped gate, client and probes, and tear them down."""
        gate = HostGate(self.config.per_host_interval, clock=self._clock, sleep=self._sleep)
        policy = RetryPolicy.from_config(self.config)
        if self._http_probe is not None:
            yield self._new_session(gate, self._http_probe, policy)
            return
        async with httpx.AsyncClient(
            follow_redirects=True,
            max_redirects=self.config.max_redirects,
            timeout=self.config.request_timeout,
            headers={"User-Agent": self.config.user_agent},
            transport=self._transport,
        ) as client:
            yield self._new_session(gate, HttpProbe(client, gate), policy)

    async def validate(self, task: ValidationTask) -> ValidationOutcome:
        """Validate a single key in a session of its own."""
        async with self.session() as session:
            return await session.validate(task)

    async def run(self, tasks: Sequence[ValidationTask]) -> Dict[DedupKey, ValidationOutcome]:
        async with self.session() as session:
            return await session.run(tasks)

    def validate_all(self, tasks: Sequence[ValidationTask]) -> Dict[DedupKey, ValidationOutcome]:
        """Synchronous entry point that runs its own event loop."""
        return asyncio.run(self.run(tasks))

    def _new_session(
        self, gate: HostGate, http_probe: HttpProbeFn, policy: RetryPolicy
    ) -> ValidationSession:
        return ValidationSession(
            self.config,
            gate=gate,
            http_probe=http_probe,
            local_probe=self._local_probe,
            policy=policy,
            sleep=self._sleep,
            clock=self._clock,
        )


__all__ = ["LinkValidator", "RUN_TIMEOUT_REASON", "ValidationSession", "ValidationTask"]
