"""Retry state machine for validation tasks.

Each task moves through ``Attempting(n) -> Retrying(delay) -> Attempting(n + 1)``
until the policy produces ``Terminal(outcome)``. The scheduler owns the
sleeping and the probing; the policy only decides the next state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, Union

from ..config import Configuration
from ..models import ErrorKind, ValidationOutcome
from .probes import ProbeResult

TRANSIENT_ERRORS = frozenset(
    {
        ErrorKind.TIMEOUT,
        ErrorKind.DNS_FAILURE,
        ErrorKind.CONNECTION_REFUSED,
        ErrorKind.CONNECTION_RESET,
        ErrorKind.CONNECTION_ERROR,
    }
)


@dataclass(frozen=True)
class Attempting:
    retries_used: int = 0


@dataclass(frozen=True)
class Retrying:
    retries_used: int
    delay: float
    last: ProbeResult


@dataclass(frozen=True)
class Terminal:
    outcome: ValidationOutcome


TaskState = Union[Attempting, Retrying, Terminal]


class RetryPolicy:
    """Bounded exponential backoff for transient probe failures."""

    def __init__(
        self,
        *,
        max_retries: int = 2,
        backoff_base: float = 0.5,
        backoff_max: float = 8.0,
        allowed_statuses: Collection[int] = (),
    ) -> None:
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.allowed_statuses = frozenset(allowed_statuses)

    @classmethod
    def from_config(cls, config: Configuration) -> "RetryPolicy":
        return cls(
            max_retries=config.max_retries,
            backoff_base=config.backoff_base,
            backoff_max=config.backoff_max,
            allowed_statuses=config.allowed_statuses,
        )

    def is_transient(self, result: ProbeResult) -> bool:
        if result.error is not None:
            return result.error in TRANSIENT_ERRORS
        status = result.status_code
        if status is None or status in self.allowed_statuses:
            return False
        return status == 429 or status >= 500

    def backoff(self, retries_used: int, result: ProbeResult) -> float:
        delay = min(self.backoff_base * (2**retries_used), self.backoff_max)
        if result.retry_after is not None:
            delay = max(delay, min(result.retry_after, self.backoff_max))
        return delay

    def advance(self, state: Attempting, result: ProbeResult, *, latency: float) -> TaskState:
        """Decide what follows an attempt that produced ``result``."""
        if self.is_transient(result) and state.retries_used < self.max_retries:
            return Retrying(
                retries_used=state.retries_used,
                delay=self.backoff(state.retries_used, result),
                last=result,
            )
        return Terminal(self.outcome(result, retries_used=state.retries_used, latency=latency))

    @staticmethod
    def resume(state: Retrying) -> Attempting:
        return Attempting(retries_used=state.retries_used + 1)

    def outcome(self, result: ProbeResult, *, retries_used: int, latency: float) -> ValidationOutcome:
        if result.error is not None:
            return ValidationOutcome.broken(
                result.error,
                reason=result.detail,
                retries_used=retries_used,
                latency=latency,
            )
        status = result.status_code
        if status is None or status < 400 or status in self.allowed_statuses:
            return ValidationOutcome.ok(
                http_status=status,
                anchors=result.anchors,
                retries_used=retries_used,
                latency=latency,
            )
        return ValidationOutcome.broken(
            ErrorKind.HTTP_STATUS,
            http_status=status,
            retries_used=retries_used,
            latency=latency,
        )


__all__ = ["Attempting", "RetryPolicy", "Retrying", "TaskState", "Terminal", "TRANSIENT_ERRORS"]
