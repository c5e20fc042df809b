"""Classification and normalization of raw link text."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import unquote, urlsplit, urlunsplit

from .models import LinkOccurrence, ResolvedTarget, TargetKind

_SCHEME = re.compile(r"^(?P<scheme>[A-Za-z][A-Za-z0-9+.\-]*):")
_CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f]")
_HTTP_SCHEMES = {"http", "https"}


class Resolver:
    """Turns link occurrences into resolved targets.

    Resolution is pure and total: anything that cannot be interpreted is
    classified as malformed instead of raising.
    """

    def __init__(self, root: Path | None = None) -> None:
        self.root = Path(os.path.abspath(root)) if root is not None else None

    def resolve(self, occurrence: LinkOccurrence) -> ResolvedTarget:
        raw = occurrence.raw_text.strip()
        if not raw:
            return _malformed("empty link target")
        if _CONTROL_CHARACTERS.search(raw):
            return _malformed("link target contains control characters")

        if raw.startswith("#"):
            return self._local(occurrence.source_file, "", raw[1:])
        if raw.startswith("//"):
            return self._http("https:" + raw)

        scheme_match = _SCHEME.match(raw)
        # A one-letter scheme is a Windows drive, not a URL.
        if scheme_match is None or len(scheme_match.group("scheme")) == 1:
            base, fragment = _split_fragment(raw)
            return self._local(occurrence.source_file, base, fragment)

        scheme = scheme_match.group("scheme").lower()
        if scheme in _HTTP_SCHEMES:
            return self._http(raw)
        if scheme == "file":
            return self._file_url(raw)
        return ResolvedTarget(kind=TargetKind.IGNORED, location=scheme)

    def _http(self, raw: str) -> ResolvedTarget:
        if any(character.isspace() for character in raw):
            return _malformed("URL contains whitespace")
        try:
            parts = urlsplit(raw)
            port = parts.port
        except ValueError as exc:
            return _malformed(f"invalid URL: {exc}")
        host = parts.hostname
        if not host:
            return _malformed("URL has no host")

        netloc = host
        if ":" in host:
            netloc = f"[{host}]"
        if port is not None:
            netloc = f"{netloc}:{port}"
        if parts.username:
            credentials = parts.username
            if parts.password is not None:
                credentials = f"{credentials}:{parts.password}"
            netloc = f"{credentials}@{netloc}"
        url = urlunsplit((parts.scheme.lower(), netloc, parts.path or "/", parts.query, ""))
        fragment = unquote(parts.fragment) if parts.fragment else None
        return ResolvedTarget(kind=TargetKind.HTTP, location=url, fragment=fragment)

    def _file_url(self, raw: str) -> ResolvedTarget:
        parts = urlsplit(raw)
        if parts.netloc not in ("", "localhost"):
            return _malformed("file URL points at a remote host")
        path = unquote(parts.path)
        if not path:
            return _malformed("file URL has no path")
        return ResolvedTarget(
            kind=TargetKind.LOCAL_PATH,
            location=os.path.normpath(path),
            fragment=unquote(parts.fragment) if parts.fragment else None,
        )

    def _local(self, source_file: Path, base: str, fragment: str) -> ResolvedTarget:
        base = base.split("?", 1)[0]
        fragment_value: Optional[str] = unquote(fragment) if fragment else None
        source = Path(os.path.abspath(source_file))
        if not base:
            return ResolvedTarget(
                kind=TargetKind.LOCAL_PATH, location=str(source), fragment=fragment_value
            )

        relative = unquote(base)
        if relative.startswith("/") and self.root is not None:
            candidate = self.root / relative.lstrip("/")
        else:
            candidate = source.parent / relative
        return ResolvedTarget(
            kind=TargetKind.LOCAL_PATH,
            location=os.path.normpath(str(candidate)),
            fragment=fragment_value,
        )


def resolve(occurrence: LinkOccurrence, root: Path | None = None) -> ResolvedTarget:
    """Resolve a single occurrence without keeping a Resolver around."""
    return Resolver(root).resolve(occurrence)


def _split_fragment(raw: str) -> Tuple[str, str]:
    if "#" not in raw:
        return raw, ""
    base, fragment = raw.split("#", 1)
    return base, fragment


def _malformed(reason: str) -> ResolvedTarget:
    return ResolvedTarget(kind=TargetKind.MALFORMED, location=reason)


__all__ = ["Resolver", "resolve"]
