"""Link extractors and format detection."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Tuple

from ..anchors import MARKDOWN_SUFFIXES
from ..models import DocFormat, SourceDocument
from .base import Extractor, LinkStream, Segment
from .markdown import MarkdownExtractor, MarkdownScanner, mask_code_spans
from .source import SUPPORTED_LANGUAGES, SourceExtractor

_LANGUAGE_BY_SUFFIX: Dict[str, str] = {
    ".rs": "rust",
    ".py": "python",
    ".pyi": "python",
    ".go": "go",
    ".c": "c",
    ".h": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".cxx": "cpp",
    ".hh": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".java": "java",
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".scala": "scala",
    ".swift": "swift",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".php": "php",
}

# Every suffix some extractor understands, Markdown first.
SUPPORTED_SUFFIXES: Tuple[str, ...] = tuple(sorted(MARKDOWN_SUFFIXES)) + tuple(_LANGUAGE_BY_SUFFIX)


def detect_format(path: Path) -> Optional[Tuple[DocFormat, Optional[str]]]:
    """Return the format and source language for a path, or None if unsupported."""
    suffix = path.suffix.lower()
    if suffix in MARKDOWN_SUFFIXES:
        return DocFormat.MARKDOWN, None
    language = _LANGUAGE_BY_SUFFIX.get(suffix)
    if language is not None:
        return DocFormat.SOURCE, language
    return None


def get_extractor(document: SourceDocument) -> Extractor:
    if document.format is DocFormat.MARKDOWN:
        return MarkdownExtractor()
    language = document.language
    if language is None:
        detected = detect_format(document.path)
        language = detected[1] if detected else None
    if language is None:
        raise ValueError(f"No documentation comment syntax known for {document.path}")
    return SourceExtractor(language)


def extract(document: SourceDocument) -> LinkStream:
    """Return a lazy stream of the link occurrences in ``document``."""
    return get_extractor(document).extract(document)


__all__ = [
    "Extractor",
    "LinkStream",
    "MarkdownExtractor",
    "MarkdownScanner",
    "SUPPORTED_LANGUAGES",
    "SUPPORTED_SUFFIXES",
    "Segment",
    "SourceExtractor",
    "detect_format",
    "extract",
    "get_extractor",
    "mask_code_spans",
]
