"""Link extraction from documentation comments in source files."""

from __future__ import annotations

import ast
from dataclasses import dataclass
from typing import Dict, Iterator, List, Tuple

from ..errors import ExtractionError
from ..models import ContextKind, SourceDocument
from .base import Extractor, LinkStream, Segment
from .markdown import MarkdownScanner, iter_lines


@dataclass(frozen=True)
class CommentSyntax:
    """Documentation comment delimiters for one language."""

    line_prefixes: Tuple[str, ...] = ()
    block_openers: Tuple[str, ...] = ()
    block_closer: str = "*/"


_C_FAMILY = CommentSyntax(line_prefixes=("///", "//!"), block_openers=("/**", "/*!"))
_GO = CommentSyntax(line_prefixes=("//",))

_SYNTAX_BY_LANGUAGE: Dict[str, CommentSyntax] = {
    "rust": _C_FAMILY,
    "c": _C_FAMILY,
    "cpp": _C_FAMILY,
    "csharp": _C_FAMILY,
    "java": _C_FAMILY,
    "kotlin": _C_FAMILY,
    "scala": _C_FAMILY,
    "swift": _C_FAMILY,
    "javascript": _C_FAMILY,
    "typescript": _C_FAMILY,
    "php": _C_FAMILY,
    "go": _GO,
}

SUPPORTED_LANGUAGES = frozenset(_SYNTAX_BY_LANGUAGE) | {"python"}


class SourceExtractor(Extractor):
    """Extracts links from a source file's documentation comments only.

    Comment bodies are Markdown in every supported language, so they are fed
    through the Markdown scanner; fenced code and code spans inside comments
    are excluded the same way they are in Markdown files.
    """

    def __init__(self, language: str) -> None:
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported source language: {language}")
        self.language = language

    def extract(self, document: SourceDocument) -> LinkStream:
        scanner = MarkdownScanner(document.path, ContextKind.DOC_COMMENT)
        if self.language == "python":
            return LinkStream(_docstring_segments(document), scanner)
        syntax = _SYNTAX_BY_LANGUAGE[self.language]
        return LinkStream(_comment_segments(document.contents, syntax), scanner)


def _comment_segments(text: str, syntax: CommentSyntax) -> Iterator[Segment]:
    block = 0
    in_line_block = False
    in_block_comment = False

    for number, line in iter_lines(text):
        stripped = line.lstrip()
        indent = len(line) - len(stripped)

        if in_block_comment:
            closer = stripped.find(syntax.block_closer)
            body, offset = _strip_leading_star(stripped[:closer] if closer >= 0 else stripped)
            yield Segment(line=number, column=indent + offset + 1, text=body, block=block)
            if closer >= 0:
                in_block_comment = False
            continue

        prefix = next((p for p in syntax.line_prefixes if stripped.startswith(p)), None)
        if prefix is not None:
            if not in_line_block:
                block += 1
                in_line_block = True
            start = indent + len(prefix)
            yield Segment(line=number, column=start + 1, text=line[start:], block=block)
            continue
        in_line_block = False

        opener = next((o for o in syntax.block_openers if stripped.startswith(o)), None)
        # "/**/" is an empty ordinary comment, not documentation.
        if opener is None or stripped.startswith("/**/"):
            continue
        block += 1
        start = indent + len(opener)
        rest = line[start:]
        closer = rest.find(syntax.block_closer)
        yield Segment(
            line=number,
            column=start + 1,
            text=rest[:closer] if closer >= 0 else rest,
            block=block,
        )
        in_block_comment = closer < 0


def _strip_leading_star(text: str) -> Tuple[str, int]:
    """Drop the decorative ``*`` that starts block comment lines."""
    if text.startswith("*"):
        return text[1:], 1
    return text, 0


def _docstring_segments(document: SourceDocument) -> Iterator[Segment]:
    spans = _docstring_spans(document)
    lines = [line for _, line in iter_lines(document.contents)]
    return _iter_docstring_segments(spans, lines)


def _iter_docstring_segments(
    spans: List[Tuple[int, int, int]], lines: List[str]
) -> Iterator[Segment]:
    for block, (start, col_offset, end) in enumerate(spans, start=1):
        for number in range(start, end + 1):
            line = lines[number - 1]
            offset = 0
            if number == start:
                # ast reports UTF-8 byte offsets.
                offset = len(line.encode("utf-8")[:col_offset].decode("utf-8", errors="ignore"))
            yield Segment(line=number, column=offset + 1, text=line[offset:], block=block)


def _docstring_spans(document: SourceDocument) -> List[Tuple[int, int, int]]:
    try:
        tree = ast.parse(document.contents, filename=str(document.path))
    except (SyntaxError, ValueError) as exc:
        raise ExtractionError(document.path, f"cannot parse Python source: {exc}") from exc

    spans: List[Tuple[int, int, int]] = []
    for node in ast.walk(tree):
        if not isinstance(node, (ast.Module, ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
            continue
        if not node.body:
            continue
        first = node.body[0]
        if (
            isinstance(first, ast.Expr)
            and isinstance(first.value, ast.Constant)
            and isinstance(first.value.value, str)
        ):
            value = first.value
            end = value.end_lineno if value.end_lineno is not None else value.lineno
            spans.append((value.lineno, value.col_offset, end))
    spans.sort()
    return spans


__all__ = ["CommentSyntax", "SUPPORTED_LANGUAGES", "SourceExtractor"]
