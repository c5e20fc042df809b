"""Tests for checklinks.report."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from checklinks.aggregate import aggregate
from checklinks.models import (
    DedupKey,
    ErrorKind,
    FileError,
    LinkOccurrence,
    Report,
    ResolvedTarget,
    TargetKind,
    ValidationOutcome,
)
from checklinks.report import ReportRenderer

ROOT = Path("/project")


def _report() -> Report:
    guide = ResolvedTarget(TargetKind.LOCAL_PATH, "/project/guide.md", "setup")
    broken = ResolvedTarget(TargetKind.HTTP, "https://nonexistent.invalid/x")
    mail = ResolvedTarget(TargetKind.IGNORED, "mailto")
    pairs = [
        (LinkOccurrence(ROOT / "docs.md", 1, 5, "./guide.md#setup"), guide),
        (LinkOccurrence(ROOT / "docs.md", 2, 1, "https://nonexistent.invalid/x"), broken),
        (LinkOccurrence(ROOT / "docs.md", 3, 1, "mailto:a@b.c"), mail),
    ]
    outcomes = {
        guide.key: ValidationOutcome.ok(anchors=frozenset({"setup"})),
        broken.key: ValidationOutcome.broken(
            ErrorKind.DNS_FAILURE, reason="Name or service not known", retries_used=2
        ),
        DedupKey(TargetKind.IGNORED, "mailto"): ValidationOutcome.skipped("unsupported-scheme"),
    }
    return aggregate(
        pairs,
        outcomes,
        elapsed=1.234,
        file_errors=[FileError(ROOT / "bad.md", "cannot decode as UTF-8")],
    )


def test_text_report_lists_problems_and_summary() -> None:
    text = ReportRenderer(base=ROOT).render_text(_report())

    assert text.splitlines() == [
        "! bad.md: cannot decode as UTF-8",
        "✗ docs.md [line 2]: https://nonexistent.invalid/x",
        "        ► dns failure: Name or service not known",
        "1 bad links out of 3 links found (3 unique targets, 1 skipped, 1 unreadable files) in 1.23s",
    ]


def test_verbose_text_report_lists_every_link() -> None:
    text = ReportRenderer(base=ROOT).render_text(_report(), verbose=True)

    lines = text.splitlines()
    assert "✓ docs.md [line 1]: ./guide.md#setup" in lines
    assert "- docs.md [line 3]: mailto:a@b.c" in lines
    assert "        ► skipped (unsupported-scheme)" in lines


def test_json_report_is_machine_readable() -> None:
    payload = json.loads(ReportRenderer(base=ROOT).render(_report(), fmt="json"))

    assert payload["summary"]["broken_count"] == 1
    assert payload["summary"]["total_occurrences"] == 3
    (file_entry,) = payload["files"]
    assert file_entry["path"] == "docs.md"
    first, second, _ = file_entry["links"]
    assert first["status"] == "ok" and first["fragment_present"] is True
    assert second["error"] == "dns-failure"
    assert second["retries_used"] == 2
    assert "http_status" not in second
    assert payload["file_errors"] == [{"path": "bad.md", "message": "cannot decode as UTF-8"}]


def test_clean_run_has_no_bad_links_headline() -> None:
    report = aggregate([], {})

    text = ReportRenderer(base=ROOT).render_text(report)

    assert text == "No bad links out of 0 links found (0 unique targets) in 0.00s\n"


def test_unknown_format_is_rejected() -> None:
    with pytest.raises(ValueError):
        ReportRenderer().render(aggregate([], {}), fmt="xml")
