"""Network and filesystem probes for link targets."""

from __future__ import annotations

import socket
import ssl
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from datetime import datetime, timezone
from pathlib import Path
from typing import FrozenSet, Iterator, Optional
from urllib.parse import urlsplit

import httpx

from ..anchors import anchors_for, html_anchors, markdown_anchors
from ..logging import get_logger
from ..models import ErrorKind
from .ratelimit import HostGate, host_of

logger = get_logger("validate.probes")

_DNS_MESSAGES = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
    "name resolution",
)


@dataclass(frozen=True)
class ProbeResult:
    """What a single probe attempt observed.

    A result with neither ``status_code`` nor ``error`` is a successful
    filesystem check.
    """

    status_code: Optional[int] = None
    error: Optional[ErrorKind] = None
    detail: Optional[str] = None
    anchors: Optional[FrozenSet[str]] = None
    retry_after: Optional[float] = None


class HttpProbe:
    """Checks HTTP targets with HEAD, falling back to GET when HEAD is refused.

    The caller acquires the host gate before invoking the probe; the probe
    acquires it again for its own fallback request.
    """

    HEAD_FALLBACK_STATUSES = frozenset({403, 405, 406, 501})

    def __init__(self, client: httpx.AsyncClient, gate: HostGate | None = None) -> None:
        self._client = client
        self._gate = gate

    async def __call__(self, url: str, *, want_anchors: bool = False) -> ProbeResult:
        try:
            if want_anchors:
                # Fragments need the body, so HEAD would only cost an extra request.
                response = await self._client.get(url)
                return _result_from_response(response, want_anchors=True)

            response = await self._client.head(url)
            if response.status_code not in self.HEAD_FALLBACK_STATUSES:
                return _result_from_response(response, want_anchors=False)

            logger.debug("HEAD %s returned %s; retrying with GET", url, response.status_code)
            if self._gate is not None:
                await self._gate.acquire(host_of(url))
            async with self._client.stream("GET", url) as streamed:
                return _result_from_response(streamed, want_anchors=False)
        except httpx.InvalidURL as exc:
            return ProbeResult(error=ErrorKind.MALFORMED_TARGET, detail=str(exc))
        except httpx.HTTPError as exc:
            return ProbeResult(error=classify_transport_error(exc), detail=_describe(exc))


def check_local_path(location: str, *, want_anchors: bool = False) -> ProbeResult:
    """Check that a local target exists and, if asked, collect its anchors."""
    path = Path(location)
    try:
        exists = path.exists()
        is_file = exists and path.is_file()
    except OSError as exc:
        return ProbeResult(error=ErrorKind.LOCAL_PATH_MISSING, detail=str(exc))
    if not exists:
        return ProbeResult(error=ErrorKind.LOCAL_PATH_MISSING, detail=f"{location} does not exist")
    if not want_anchors or not is_file:
        return ProbeResult()
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return ProbeResult()
    return ProbeResult(anchors=anchors_for(path.name, text))


def classify_transport_error(exc: BaseException) -> ErrorKind:
    """Map an httpx exception onto the error taxonomy."""
    if isinstance(exc, httpx.TooManyRedirects):
        return ErrorKind.TOO_MANY_REDIRECTS
    if isinstance(exc, httpx.TimeoutException):
        return ErrorKind.TIMEOUT
    if isinstance(exc, httpx.UnsupportedProtocol):
        return ErrorKind.MALFORMED_TARGET

    chain = list(_exception_chain(exc))
    messages = " ".join(str(item).lower() for item in chain)
    if any(isinstance(item, socket.gaierror) for item in chain) or any(
        phrase in messages for phrase in _DNS_MESSAGES
    ):
        return ErrorKind.DNS_FAILURE
    if any(isinstance(item, ssl.SSLError) for item in chain) or "certificate verify failed" in messages:
        return ErrorKind.TLS_ERROR
    if any(isinstance(item, ConnectionRefusedError) for item in chain) or "connection refused" in messages:
        return ErrorKind.CONNECTION_REFUSED
    if any(isinstance(item, ConnectionResetError) for item in chain) or isinstance(
        exc, (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError)
    ):
        return ErrorKind.CONNECTION_RESET
    if isinstance(exc, httpx.NetworkError):
        return ErrorKind.CONNECTION_ERROR
    return ErrorKind.REQUEST_ERROR


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Return the delay requested by a Retry-After header, in seconds."""
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return float(value)
    try:
        moment = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return max(0.0, (moment - datetime.now(timezone.utc)).total_seconds())


def _result_from_response(response: httpx.Response, *, want_anchors: bool) -> ProbeResult:
    status = response.status_code
    anchors = None
    if want_anchors and 200 <= status < 300:
        anchors = _anchors_from_response(response)
    retry_after = None
    if status in (429, 503):
        retry_after = parse_retry_after(response.headers.get("Retry-After"))
    return ProbeResult(status_code=status, anchors=anchors, retry_after=retry_after)


def _anchors_from_response(response: httpx.Response) -> Optional[FrozenSet[str]]:
    content_type = response.headers.get("Content-Type", "").lower()
    if "html" in content_type:
        return html_anchors(response.text)
    if "markdown" in content_type:
        return markdown_anchors(response.text)
    path = urlsplit(str(response.url)).path
    if content_type.startswith("text/") or not content_type:
        return anchors_for(path, response.text)
    return None


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


__all__ = ["HttpProbe", "ProbeResult", "check_local_path", "classify_transport_error", "parse_retry_after"]
