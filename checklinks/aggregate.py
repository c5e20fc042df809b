"""Fan-out of per-target outcomes back to every occurrence."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence

from .dedup import ResolvedPair
from .models import (
    DedupKey,
    FileError,
    FileReport,
    OutcomeStatus,
    Report,
    ReportEntry,
    RunSummary,
    ValidationOutcome,
)


def aggregate(
    pairs: Iterable[ResolvedPair],
    outcomes: Mapping[DedupKey, ValidationOutcome],
    *,
    elapsed: float = 0.0,
    file_errors: Sequence[FileError] = (),
    strict_fragments: bool = False,
) -> Report:
    """Join occurrences with their key's outcome and group them by source file.

    Files are ordered by path and entries by line, then column, so the report
    does not depend on the order in which targets finished.
    """
    by_file: Dict[Path, List[ReportEntry]] = {}
    keys = set()
    for occurrence, target in pairs:
        key = target.key
        if key not in outcomes:
            raise KeyError(f"No outcome recorded for {key.kind.value} target {key.location}")
        keys.add(key)
        outcome = outcomes[key].with_fragment(target.fragment, strict=strict_fragments)
        by_file.setdefault(occurrence.source_file, []).append(ReportEntry(occurrence, outcome))

    files: List[FileReport] = []
    for path in sorted(by_file, key=str):
        entries = sorted(by_file[path], key=lambda entry: entry.occurrence.sort_key())
        files.append(FileReport(path=path, entries=entries))

    entries = [entry for report in files for entry in report.entries]
    summary = RunSummary(
        total_occurrences=len(entries),
        total_unique_targets=len(keys),
        broken_count=sum(1 for entry in entries if entry.outcome.is_broken),
        skipped_count=sum(1 for entry in entries if entry.outcome.status is OutcomeStatus.SKIPPED),
        warning_count=sum(1 for entry in entries if entry.outcome.is_warning),
        elapsed=elapsed,
    )
    return Report(
        files=files,
        summary=summary,
        file_errors=sorted(file_errors, key=lambda error: str(error.path)),
    )


__all__ = ["aggregate"]
