"""Tests for checklinks.extract.markdown."""

from __future__ import annotations

from pathlib import Path
from typing import List

from checklinks.extract import extract
from checklinks.extract.markdown import MarkdownExtractor, mask_code_spans
from checklinks.models import ContextKind, DocFormat, LinkOccurrence, SourceDocument


def _document(text: str, name: str = "README.md") -> SourceDocument:
    return SourceDocument(path=Path("/project") / name, format=DocFormat.MARKDOWN, contents=text)


def _links(text: str) -> List[LinkOccurrence]:
    return list(MarkdownExtractor().extract(_document(text)))


def _targets(text: str) -> List[str]:
    return [occurrence.raw_text for occurrence in _links(text)]


def test_inline_link_reports_line_and_column() -> None:
    occurrences = _links("# Title\n\nSee `https://a.example/x` and [docs](docs.md).\n")

    assert len(occurrences) == 1
    occurrence = occurrences[0]
    assert occurrence.raw_text == "docs.md"
    assert occurrence.line == 3
    assert occurrence.column == 31
    assert occurrence.context is ContextKind.MARKDOWN_BODY
    assert occurrence.source_file == Path("/project/README.md")


def test_code_spans_are_never_links() -> None:
    text = "Use ``[not](a-link.md)`` or `https://code.example/` here.\n"

    assert _targets(text) == []


def test_fenced_code_blocks_are_skipped() -> None:
    text = (
        "Intro https://ok.example/\n"
        "```bash\n"
        "curl https://in-fence.example/\n"
        "[x](inside.md)\n"
        "```\n"
        "~~~\n"
        "https://tilde-fence.example/\n"
        "~~~\n"
        "After [x](after.md)\n"
    )

    assert _targets(text) == ["https://ok.example/", "after.md"]


def test_indented_fence_inside_list_item_is_skipped() -> None:
    text = "- step one\n\n    ```\n    https://hidden.example/\n    ```\n- [next](next.md)\n"

    assert _targets(text) == ["next.md"]


def test_reference_definitions_are_occurrences() -> None:
    text = 'Read the [guide][].\n\n[guide]: ./guide.md "Guide"\n[^note]: https://footnote.example/\n'

    occurrences = _links(text)

    assert [(o.raw_text, o.line, o.column) for o in occurrences] == [
        ("./guide.md", 3, 1),
        ("https://footnote.example/", 4, 10),
    ]


def test_badge_yields_both_image_and_link_targets() -> None:
    text = "[![build](https://ci.example/badge.svg)](https://ci.example/)\n"

    occurrences = _links(text)

    assert [(o.raw_text, o.column) for o in occurrences] == [
        ("https://ci.example/", 1),
        ("https://ci.example/badge.svg", 2),
    ]


def test_html_and_autolinks_are_extracted() -> None:
    text = '<a href="https://html.example/">x</a> and <https://auto.example/path>\n'

    assert _targets(text) == ["https://html.example/", "https://auto.example/path"]


def test_bare_urls_drop_trailing_punctuation() -> None:
    text = "Visit https://example.com/page. Also (see https://example.com/a_(b)).\n"

    assert _targets(text) == ["https://example.com/page", "https://example.com/a_(b)"]


def test_angle_bracket_destination_is_unwrapped() -> None:
    assert _targets("[spaced](<docs/my file.md>)\n") == ["docs/my file.md"]


def test_links_on_one_line_are_in_column_order() -> None:
    occurrences = _links("https://b.example/ then [a](a.md) then <https://c.example/>\n")

    assert [o.raw_text for o in occurrences] == [
        "https://b.example/",
        "a.md",
        "https://c.example/",
    ]
    columns = [o.column for o in occurrences]
    assert columns == sorted(columns)


def test_stream_is_single_pass_and_reports_exhaustion() -> None:
    stream = extract(_document("[a](a.md)\n[b](b.md)\n"))

    assert stream.exhausted is False
    assert [o.raw_text for o in stream] == ["a.md", "b.md"]
    assert stream.exhausted is True
    assert list(stream) == []


def test_mask_code_spans_preserves_columns() -> None:
    masked = mask_code_spans("a `b` c ``d`e`` f")

    assert masked == "a     c         f"
    assert len(masked) == len("a `b` c ``d`e`` f")


def test_unmatched_backtick_is_left_alone() -> None:
    assert _targets("A stray ` then [x](x.md)\n") == ["x.md"]


def test_carriage_return_line_endings_keep_positions() -> None:
    cr_only = _links("line one\r[x](https://example.com/)\r")
    crlf = _links("line one\r\n\r\n[y](https://example.com/y)\r\n")

    assert [(o.raw_text, o.line, o.column) for o in cr_only] == [("https://example.com/", 2, 1)]
    assert [(o.raw_text, o.line, o.column) for o in crlf] == [("https://example.com/y", 3, 1)]
