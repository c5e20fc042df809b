"""Core data models shared across check-links components."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import FrozenSet, List, Optional

from .anchors import anchor_present, is_line_anchor


class DocFormat(str, Enum):
    """How a document's text should be searched for links."""

    MARKDOWN = "markdown"
    SOURCE = "source"


class ContextKind(str, Enum):
    """Where in a document a link mention was found."""

    MARKDOWN_BODY = "markdown-body"
    # Code spans and fences are excluded; nothing is ever emitted with this kind.
    MARKDOWN_CODE_SPAN = "markdown-code-span"
    DOC_COMMENT = "doc-comment"


class TargetKind(str, Enum):
    HTTP = "http"
    LOCAL_PATH = "local-path"
    IGNORED = "ignored"
    MALFORMED = "malformed"


class ErrorKind(str, Enum):
    """Reasons a target is reported as broken."""

    HTTP_STATUS = "http-status"
    TOO_MANY_REDIRECTS = "too-many-redirects"
    DNS_FAILURE = "dns-failure"
    CONNECTION_REFUSED = "connection-refused"
    CONNECTION_RESET = "connection-reset"
    CONNECTION_ERROR = "connection-error"
    TIMEOUT = "timeout"
    TLS_ERROR = "tls-error"
    REQUEST_ERROR = "request-error"
    LOCAL_PATH_MISSING = "local-path-missing"
    MALFORMED_TARGET = "malformed-target"
    FRAGMENT_MISSING = "fragment-missing"


class OutcomeStatus(str, Enum):
    OK = "ok"
    BROKEN = "broken"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class SourceDocument:
    """A discovered file, already decoded, together with how to search it."""

    path: Path
    format: DocFormat
    contents: str
    language: Optional[str] = None


@dataclass(frozen=True)
class LinkOccurrence:
    """One textual mention of a link at a specific file, line and column."""

    source_file: Path
    line: int
    column: int
    raw_text: str
    context: ContextKind = ContextKind.MARKDOWN_BODY

    def __post_init__(self) -> None:
        if self.line < 1 or self.column < 1:
            raise ValueError(
                f"Link positions are 1-based, got line={self.line} column={self.column}"
            )

    def sort_key(self) -> tuple[str, int, int, str]:
        return (str(self.source_file), self.line, self.column, self.raw_text)


@dataclass(frozen=True)
class DedupKey:
    """The unit of validation work: a resolved target without its fragment."""

    kind: TargetKind
    location: str


@dataclass(frozen=True)
class ResolvedTarget:
    """Destination of a link.

    ``location`` holds the URL for HTTP targets, the absolute normalized path
    for local targets, the scheme for ignored targets and the reason for
    malformed ones.
    """

    kind: TargetKind
    location: str
    fragment: Optional[str] = None

    @property
    def key(self) -> DedupKey:
        return DedupKey(kind=self.kind, location=self.location)


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of validating one DedupKey, shared by every occurrence of it."""

    status: OutcomeStatus
    error: Optional[ErrorKind] = None
    http_status: Optional[int] = None
    reason: Optional[str] = None
    checked_fragment_present: Optional[bool] = None
    latency: float = field(default=0.0, compare=False)
    retries_used: int = 0
    # Anchors found in the fetched content; None when they could not be read.
    anchors: Optional[FrozenSet[str]] = field(default=None, repr=False)

    @classmethod
    def ok(cls, **kwargs: object) -> "ValidationOutcome":
        return cls(status=OutcomeStatus.OK, **kwargs)  # type: ignore[arg-type]

    @classmethod
    def broken(cls, error: ErrorKind, **kwargs: object) -> "ValidationOutcome":
        return cls(status=OutcomeStatus.BROKEN, error=error, **kwargs)  # type: ignore[arg-type]

    @classmethod
    def skipped(cls, reason: str) -> "ValidationOutcome":
        return cls(status=OutcomeStatus.SKIPPED, reason=reason)

    @property
    def is_broken(self) -> bool:
        return self.status is OutcomeStatus.BROKEN

    @property
    def is_warning(self) -> bool:
        return self.status is OutcomeStatus.OK and self.checked_fragment_present is False

    def describe(self) -> str:
        """Short human readable explanation of the outcome."""
        if self.status is OutcomeStatus.SKIPPED:
            return f"skipped ({self.reason})"
        if self.status is OutcomeStatus.BROKEN:
            if self.error is ErrorKind.HTTP_STATUS:
                return f"received status code {self.http_status}"
            detail = self.error.value.replace("-", " ") if self.error else "broken"
            if self.reason:
                return f"{detail}: {self.reason}"
            return detail
        if self.checked_fragment_present is False:
            return self.reason or "fragment not found"
        return "ok"

    def with_fragment(
        self, fragment: Optional[str], *, strict: bool = False
    ) -> "ValidationOutcome":
        """Return the outcome as seen by an occurrence that requested ``fragment``."""

        if fragment is None or self.status is not OutcomeStatus.OK:
            return self
        if self.anchors is None or is_line_anchor(fragment):
            return replace(self, checked_fragment_present=None)
        if anchor_present(fragment, self.anchors):
            return replace(self, checked_fragment_present=True)
        reason = f"failed to resolve section #{fragment}"
        if strict:
            return replace(
                self,
                status=OutcomeStatus.BROKEN,
                error=ErrorKind.FRAGMENT_MISSING,
                reason=reason,
                checked_fragment_present=False,
            )
        return replace(self, checked_fragment_present=False, reason=reason)


@dataclass(frozen=True)
class ReportEntry:
    occurrence: LinkOccurrence
    outcome: ValidationOutcome


@dataclass
class FileReport:
    path: Path
    entries: List[ReportEntry] = field(default_factory=list)


@dataclass(frozen=True)
class FileError:
    """A file that was skipped because it could not be read or parsed."""

    path: Path
    message: str


@dataclass(frozen=True)
class RunSummary:
    total_occurrences: int
    total_unique_targets: int
    broken_count: int
    skipped_count: int
    warning_count: int
    elapsed: float = field(default=0.0, compare=False)


@dataclass
class Report:
    """Final result of a run, grouped by source file."""

    files: List[FileReport]
    summary: RunSummary
    file_errors: List[FileError] = field(default_factory=list)

    def entries(self) -> List[ReportEntry]:
        return [entry for file_report in self.files for entry in file_report.entries]

    def broken(self) -> List[ReportEntry]:
        return [entry for entry in self.entries() if entry.outcome.is_broken]


__all__ = [
    "ContextKind",
    "DedupKey",
    "DocFormat",
    "ErrorKind",
    "FileError",
    "FileReport",
    "LinkOccurrence",
    "OutcomeStatus",
    "Report",
    "ReportEntry",
    "ResolvedTarget",
    "RunSummary",
    "SourceDocument",
    "TargetKind",
    "ValidationOutcome",
]
