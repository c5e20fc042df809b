"""Tests for checklinks.resolve."""

from __future__ import annotations

from pathlib import Path

import pytest

from checklinks.models import LinkOccurrence, TargetKind
from checklinks.resolve import Resolver, resolve


def _occurrence(source: Path, raw: str) -> LinkOccurrence:
    return LinkOccurrence(source_file=source, line=1, column=1, raw_text=raw)


@pytest.fixture
def source(tmp_path: Path) -> Path:
    return tmp_path / "docs" / "index.md"


def test_relative_path_resolves_against_source_directory(source: Path, tmp_path: Path) -> None:
    target = resolve(_occurrence(source, "guide.md#setup"))

    assert target.kind is TargetKind.LOCAL_PATH
    assert target.location == str(tmp_path / "docs" / "guide.md")
    assert target.fragment == "setup"


def test_parent_path_is_normalized_and_unquoted(source: Path, tmp_path: Path) -> None:
    target = resolve(_occurrence(source, "../notes/a%20b.md?plain=1"))

    assert target.location == str(tmp_path / "notes" / "a b.md")
    assert target.fragment is None


def test_fragment_only_link_points_at_its_own_file(source: Path) -> None:
    target = resolve(_occurrence(source, "#Intro%20Part"))

    assert target.kind is TargetKind.LOCAL_PATH
    assert target.location == str(source)
    assert target.fragment == "Intro Part"


def test_root_relative_path_uses_configured_root(source: Path, tmp_path: Path) -> None:
    target = Resolver(tmp_path).resolve(_occurrence(source, "/README.md"))

    assert target.location == str(tmp_path / "README.md")


def test_http_urls_are_normalized_without_fragment(source: Path) -> None:
    target = resolve(_occurrence(source, "HTTPS://Example.COM/a?q=1#frag"))

    assert target.kind is TargetKind.HTTP
    assert target.location == "https://example.com/a?q=1"
    assert target.fragment == "frag"


def test_empty_http_path_becomes_root(source: Path) -> None:
    assert resolve(_occurrence(source, "https://example.com")).location == "https://example.com/"


def test_protocol_relative_url_defaults_to_https(source: Path) -> None:
    target = resolve(_occurrence(source, "//cdn.example/lib.js"))

    assert target.kind is TargetKind.HTTP
    assert target.location == "https://cdn.example/lib.js"


def test_fragments_do_not_change_the_dedup_key(source: Path) -> None:
    first = resolve(_occurrence(source, "https://example.com/page#a"))
    second = resolve(_occurrence(source, "https://example.com/page#b"))

    assert first.key == second.key
    assert first.fragment != second.fragment


@pytest.mark.parametrize("raw", ["mailto:someone@example.com", "ftp://files.example/", "tel:+100"])
def test_other_schemes_are_ignored(source: Path, raw: str) -> None:
    target = resolve(_occurrence(source, raw))

    assert target.kind is TargetKind.IGNORED
    assert target.location == raw.split(":", 1)[0]


@pytest.mark.parametrize(
    "raw",
    ["", "   ", "http://", "https://exa mple.com/", "https://example.com:99999/", "docs\x00.md"],
)
def test_uninterpretable_links_are_malformed(source: Path, raw: str) -> None:
    target = resolve(_occurrence(source, raw))

    assert target.kind is TargetKind.MALFORMED
    assert target.location


def test_file_url_is_a_local_path(source: Path, tmp_path: Path) -> None:
    target = resolve(_occurrence(source, f"file://{tmp_path}/guide.md#top"))

    assert target.kind is TargetKind.LOCAL_PATH
    assert target.location == str(tmp_path / "guide.md")
    assert target.fragment == "top"
