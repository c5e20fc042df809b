"""Tests for checklinks.validate.probes."""

from __future__ import annotations

import asyncio
import socket
from pathlib import Path
from typing import Callable, List

import httpx
import pytest

from checklinks.models import ErrorKind
from checklinks.validate.probes import (
    HttpProbe,
    ProbeResult,
    check_local_path,
    classify_transport_error,
    parse_retry_after,
)

Handler = Callable[[httpx.Request], httpx.Response]


def _probe(handler: Handler, url: str, *, want_anchors: bool = False) -> ProbeResult:
    async def _run() -> ProbeResult:
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            follow_redirects=True,
            max_redirects=3,
        ) as client:
            return await HttpProbe(client)(url, want_anchors=want_anchors)

    return asyncio.run(_run())


def test_head_success_needs_a_single_request() -> None:
    methods: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(200)

    result = _probe(handler, "https://example.com/")

    assert methods == ["HEAD"]
    assert result.status_code == 200
    assert result.error is None


@pytest.mark.parametrize("refused", [403, 405, 501])
def test_refused_head_falls_back_to_get(refused: int) -> None:
    methods: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        if request.method == "HEAD":
            return httpx.Response(refused)
        return httpx.Response(200, text="hello")

    result = _probe(handler, "https://example.com/")

    assert methods == ["HEAD", "GET"]
    assert result.status_code == 200


def test_not_found_is_reported_as_status() -> None:
    result = _probe(lambda request: httpx.Response(404), "https://example.com/missing")

    assert result.status_code == 404
    assert result.error is None


def test_redirect_loop_is_too_many_redirects() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": "https://example.com/loop"})

    result = _probe(handler, "https://example.com/loop")

    assert result.error is ErrorKind.TOO_MANY_REDIRECTS


def test_redirects_are_followed_to_the_final_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old":
            return httpx.Response(301, headers={"Location": "https://example.com/new"})
        return httpx.Response(200)

    assert _probe(handler, "https://example.com/old").status_code == 200


@pytest.mark.parametrize(
    ("exception", "expected"),
    [
        (httpx.ConnectError("[Errno -2] Name or service not known"), ErrorKind.DNS_FAILURE),
        (httpx.ConnectError("[Errno 111] Connection refused"), ErrorKind.CONNECTION_REFUSED),
        (httpx.ReadTimeout("timed out"), ErrorKind.TIMEOUT),
        (httpx.ReadError("connection reset by peer"), ErrorKind.CONNECTION_RESET),
    ],
)
def test_transport_failures_are_classified(exception: Exception, expected: ErrorKind) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exception

    result = _probe(handler, "https://nonexistent.invalid/x")

    assert result.status_code is None
    assert result.error is expected
    assert result.detail


def test_anchors_are_collected_from_html_with_a_single_get() -> None:
    methods: List[str] = []
    page = '<html><body><h2 id="user-content-setup">Setup</h2><a name="legacy"></a></body></html>'

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(200, text=page, headers={"Content-Type": "text/html; charset=utf-8"})

    result = _probe(handler, "https://example.com/guide", want_anchors=True)

    assert methods == ["GET"]
    assert result.anchors is not None
    assert {"setup", "user-content-setup", "legacy"} <= result.anchors


def test_unknown_content_type_yields_no_anchors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"\x89PNG", headers={"Content-Type": "image/png"})

    assert _probe(handler, "https://example.com/logo.png", want_anchors=True).anchors is None


def test_retry_after_is_parsed_for_throttled_responses() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, headers={"Retry-After": "7"})

    result = _probe(handler, "https://example.com/")

    assert result.status_code == 429
    assert result.retry_after == 7.0


def test_check_local_path_reports_missing_files(tmp_path: Path) -> None:
    result = check_local_path(str(tmp_path / "nope.md"))

    assert result.error is ErrorKind.LOCAL_PATH_MISSING


def test_check_local_path_accepts_directories(tmp_path: Path) -> None:
    assert check_local_path(str(tmp_path), want_anchors=True) == ProbeResult()


def test_check_local_path_collects_markdown_anchors(tmp_path: Path) -> None:
    guide = tmp_path / "guide.md"
    guide.write_text("Guide\n=====\n\n## Getting Started\n", encoding="utf-8")

    result = check_local_path(str(guide), want_anchors=True)

    assert result.anchors == frozenset({"guide", "getting-started"})


def test_chained_gaierror_is_a_dns_failure() -> None:
    error = httpx.ConnectError("connection failed")
    error.__cause__ = socket.gaierror(socket.EAI_NONAME, "unknown host")

    assert classify_transport_error(error) is ErrorKind.DNS_FAILURE


def test_parse_retry_after() -> None:
    assert parse_retry_after("12") == 12.0
    assert parse_retry_after(None) is None
    assert parse_retry_after("soon") is None
    assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") == 0.0
