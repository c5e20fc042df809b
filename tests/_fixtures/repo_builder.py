"""Helper utilities for constructing temporary documentation trees in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

from checklinks.discovery import DiscoveryResult, DocumentScanner
from checklinks.extract import detect_format
from checklinks.models import SourceDocument


class RepoBuilder:
    """Utility for writing files into a throwaway project and rescanning it."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "repo"
        self.root.mkdir()
        self._scanner = DocumentScanner()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the project."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def scan(self) -> DiscoveryResult:
        """Return the documents currently in the project."""
        return self._scanner.scan(self.root)

    def document(self, relative: str) -> SourceDocument:
        """Load a single written file as a document."""
        path = self.root / relative
        detected = detect_format(path)
        assert detected is not None, f"unsupported file {relative}"
        doc_format, language = detected
        return SourceDocument(
            path=path,
            format=doc_format,
            contents=path.read_text(encoding="utf-8"),
            language=language,
        )

    def path(self) -> Path:
        """Return the project root path."""
        return self.root


__all__ = ["RepoBuilder"]
