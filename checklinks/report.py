"""Text and JSON rendering of check-links reports."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, StrictUndefined

from .models import OutcomeStatus, Report, ReportEntry

_TEXT_TEMPLATE = """\
{% for error in report.file_errors -%}
! {{ error.path | relpath }}: {{ error.message }}
{% endfor -%}
{% for file in report.files -%}
{% for entry in file.entries if verbose or entry.outcome.is_broken or entry.outcome.is_warning -%}
{{ entry | marker }} {{ file.path | relpath }} [line {{ entry.occurrence.line }}]: {{ entry.occurrence.raw_text }}
{% if entry.outcome.is_broken or entry.outcome.is_warning or entry.outcome.reason -%}
{{ "        ► " }}{{ entry.outcome.describe() }}
{% endif -%}
{% endfor -%}
{% endfor -%}
{{ headline }} ({{ details | join(", ") }}) in {{ "%.2f" | format(report.summary.elapsed) }}s
"""


class ReportRenderer:
    """Renders a report for people (text) or machines (JSON)."""

    def __init__(self, *, base: Optional[Path] = None) -> None:
        self.base = base
        self._environment = Environment(
            autoescape=False,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self._environment.filters["relpath"] = self._relativize
        self._environment.filters["marker"] = _marker
        self._text_template = self._environment.from_string(_TEXT_TEMPLATE)

    def render(self, report: Report, *, fmt: str = "text", verbose: bool = False) -> str:
        if fmt == "json":
            return self.render_json(report)
        if fmt == "text":
            return self.render_text(report, verbose=verbose)
        raise ValueError(f"Unknown report format: {fmt}")

    def render_text(self, report: Report, *, verbose: bool = False) -> str:
        """Render problems (or every link when verbose) followed by a summary line."""
        summary = report.summary
        if summary.broken_count:
            headline = f"{summary.broken_count} bad links out of {summary.total_occurrences} links found"
        else:
            headline = f"No bad links out of {summary.total_occurrences} links found"
        details = [f"{summary.total_unique_targets} unique targets"]
        if summary.warning_count:
            details.append(f"{summary.warning_count} warnings")
        if summary.skipped_count:
            details.append(f"{summary.skipped_count} skipped")
        if report.file_errors:
            details.append(f"{len(report.file_errors)} unreadable files")
        return self._text_template.render(
            report=report, verbose=verbose, headline=headline, details=details
        )

    def render_json(self, report: Report) -> str:
        payload: Dict[str, Any] = {
            "summary": {
                "total_occurrences": report.summary.total_occurrences,
                "total_unique_targets": report.summary.total_unique_targets,
                "broken_count": report.summary.broken_count,
                "skipped_count": report.summary.skipped_count,
                "warning_count": report.summary.warning_count,
                "elapsed": round(report.summary.elapsed, 3),
            },
            "files": [
                {
                    "path": self._relativize(file_report.path),
                    "links": [_entry_to_dict(entry) for entry in file_report.entries],
                }
                for file_report in report.files
            ],
            "file_errors": [
                {"path": self._relativize(error.path), "message": error.message}
                for error in report.file_errors
            ],
        }
        return json.dumps(payload, indent=2)

    def _relativize(self, path: Path) -> str:
        base = self.base or Path.cwd()
        try:
            return Path(os.path.relpath(path, base)).as_posix()
        except ValueError:
            return str(path)


def _marker(entry: ReportEntry) -> str:
    if entry.outcome.is_broken:
        return "✗"
    if entry.outcome.is_warning:
        return "?"
    if entry.outcome.status is OutcomeStatus.SKIPPED:
        return "-"
    return "✓"


def _entry_to_dict(entry: ReportEntry) -> Dict[str, Any]:
    outcome = entry.outcome
    data: Dict[str, Any] = {
        "line": entry.occurrence.line,
        "column": entry.occurrence.column,
        "target": entry.occurrence.raw_text,
        "context": entry.occurrence.context.value,
        "status": outcome.status.value,
        "retries_used": outcome.retries_used,
    }
    optional: List[tuple[str, Any]] = [
        ("error", outcome.error.value if outcome.error else None),
        ("http_status", outcome.http_status),
        ("reason", outcome.reason),
        ("fragment_present", outcome.checked_fragment_present),
    ]
    for name, value in optional:
        if value is not None:
            data[name] = value
    return data


__all__ = ["ReportRenderer"]
