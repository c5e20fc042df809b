"""Markdown link extraction."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from ..models import ContextKind, LinkOccurrence, SourceDocument
from .base import Extractor, LinkStream, Segment

# Fences may be indented: list items and doc comments nest them.
_FENCE = re.compile(r"^[ \t]*(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
_BACKTICK_RUN = re.compile(r"`+")
_TITLE = r"(?:[ \t]+(?:\"[^\"]*\"|'[^']*'|\([^()]*\)))?"
_REFERENCE_DEFINITION = re.compile(
    r"^[ \t]{0,3}\[(?!\^)(?P<label>[^\]]+)\]:[ \t]*(?P<target><[^<>\n]*>|\S+)" + _TITLE + r"[ \t]*$"
)
_INLINE_LINK = re.compile(
    r"!?\[(?P<text>(?:[^\[\]]|\[[^\[\]]*\])*)\]"
    r"\([ \t]*(?P<target><[^<>\n]*>|(?:[^\s()]|\([^\s()]*\))*)" + _TITLE + r"[ \t]*\)"
)
_HTML_ATTRIBUTE = re.compile(
    r"<(?:a|img|link|script|source|iframe)\b[^>]*?\s(?:href|src)\s*=\s*"
    r"(?P<quote>[\"'])(?P<target>[^\"']*)(?P=quote)",
    re.IGNORECASE,
)
_ANGLE_AUTOLINK = re.compile(r"<(?P<target>[A-Za-z][A-Za-z0-9+.\-]{1,31}:[^<>\s]*)>")
_BARE_URL = re.compile(r"(?<![\w/.@-])(?P<target>https?://[^\s<>\"'`]+)", re.IGNORECASE)
_TRAILING_PUNCTUATION = ".,:;!?*_~'\""
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def iter_lines(text: str) -> Iterator[Tuple[int, str]]:
    """Yield ``(line_number, line)`` pairs, treating CRLF, CR and LF alike as line breaks."""
    for number, line in enumerate(_LINE_BREAK.split(text), start=1):
        yield number, line


def mask_code_spans(text: str) -> str:
    """Blank out inline code spans, keeping every other column in place."""
    runs = list(_BACKTICK_RUN.finditer(text))
    index = 0
    while index < len(runs):
        opening = runs[index]
        closing = next(
            (
                position
                for position in range(index + 1, len(runs))
                if len(runs[position].group()) == len(opening.group())
            ),
            None,
        )
        if closing is None:
            index += 1
            continue
        text = _blank(text, opening.start(), runs[closing].end())
        index = closing + 1
    return text


class MarkdownScanner:
    """Finds links on successive lines of Markdown, tracking fenced code."""

    def __init__(self, path: Path, context: ContextKind = ContextKind.MARKDOWN_BODY) -> None:
        self.path = path
        self.context = context
        self._fence: Optional[str] = None
        self._block: Optional[int] = None

    def __call__(self, segment: Segment) -> List[LinkOccurrence]:
        if segment.block != self._block:
            self._block = segment.block
            self._fence = None
        if self._in_fence(segment.text):
            return []

        found: List[Tuple[int, str]] = []
        masked = mask_code_spans(segment.text)
        definition = _REFERENCE_DEFINITION.match(masked)
        if definition:
            found.append((definition.start("label") - 1, _unwrap(definition.group("target"))))
        else:
            masked = self._collect_inline(masked, found)
            masked = _collect(_HTML_ATTRIBUTE, masked, found)
            masked = _collect(_ANGLE_AUTOLINK, masked, found)
            for match in _BARE_URL.finditer(masked):
                url = _trim_url(match.group("target"))
                if url:
                    found.append((match.start(), url))

        found.sort(key=lambda item: item[0])
        return [
            LinkOccurrence(
                source_file=self.path,
                line=segment.line,
                column=segment.column + index,
                raw_text=raw,
                context=self.context,
            )
            for index, raw in found
        ]

    def _in_fence(self, text: str) -> bool:
        match = _FENCE.match(text)
        if self._fence is not None:
            if (
                match
                and match.group("fence")[0] == self._fence[0]
                and len(match.group("fence")) >= len(self._fence)
                and not match.group("info").strip()
            ):
                self._fence = None
            return True
        if match is None:
            return False
        fence = match.group("fence")
        if fence[0] == "`" and "`" in match.group("info"):
            # Not a fence: a code span that happens to start the line.
            return False
        self._fence = fence
        return True

    @staticmethod
    def _collect_inline(masked: str, found: List[Tuple[int, str]]) -> str:
        for match in _INLINE_LINK.finditer(masked):
            found.append((match.start(), _unwrap(match.group("target"))))
            # Badges nest an image inside the link text.
            for inner in _INLINE_LINK.finditer(masked, match.start("text"), match.end("text")):
                found.append((inner.start(), _unwrap(inner.group("target"))))
            masked = _blank(masked, match.start(), match.end())
        return masked


class MarkdownExtractor(Extractor):
    """Extracts inline, reference, HTML and autolinks from Markdown documents."""

    def extract(self, document: SourceDocument) -> LinkStream:
        segments = (
            Segment(line=number, column=1, text=line)
            for number, line in iter_lines(document.contents)
        )
        return LinkStream(segments, MarkdownScanner(document.path))


def _collect(pattern: "re.Pattern[str]", masked: str, found: List[Tuple[int, str]]) -> str:
    for match in pattern.finditer(masked):
        found.append((match.start(), match.group("target").strip()))
        masked = _blank(masked, match.start(), match.end())
    return masked


def _blank(text: str, start: int, end: int) -> str:
    return text[:start] + " " * (end - start) + text[end:]


def _unwrap(target: str) -> str:
    target = target.strip()
    if target.startswith("<") and target.endswith(">"):
        return target[1:-1].strip()
    return target


def _trim_url(url: str) -> str:
    while url:
        last = url[-1]
        if last in _TRAILING_PUNCTUATION:
            url = url[:-1]
        elif last == ")" and url.count("(") < url.count(")"):
            url = url[:-1]
        elif last == "]" and url.count("[") < url.count("]"):
            url = url[:-1]
        else:
            break
    return url


__all__ = ["MarkdownExtractor", "MarkdownScanner", "iter_lines", "mask_code_spans"]
