"""Target validation: probes, retry policy, per-host gating and the scheduler."""

from .engine import LinkValidator, RUN_TIMEOUT_REASON, ValidationSession, ValidationTask
from .probes import HttpProbe, ProbeResult, check_local_path, classify_transport_error
from .ratelimit import HostGate, host_of
from .retry import Attempting, RetryPolicy, Retrying, Terminal

__all__ = [
    "Attempting",
    "HostGate",
    "HttpProbe",
    "LinkValidator",
    "ProbeResult",
    "RUN_TIMEOUT_REASON",
    "RetryPolicy",
    "Retrying",
    "Terminal",
    "ValidationSession",
    "ValidationTask",
    "check_local_path",
    "classify_transport_error",
    "host_of",
]
