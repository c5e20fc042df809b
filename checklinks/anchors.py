"""Anchor collection for fragment checks."""

from __future__ import annotations

import re
from typing import Dict, FrozenSet, Iterable, Set
from urllib.parse import unquote

from bs4 import BeautifulSoup

_ATX_HEADING = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$")
_SETEXT_UNDERLINE = re.compile(r"^ {0,3}(=+|-+)[ \t]*$")
_FENCE = re.compile(r"^ {0,3}(`{3,}|~{3,})")
_HEADING_ID = re.compile(r"\s*\{#([^}\s]+)\}\s*$")
_HTML_ANCHOR = re.compile(r"""<[A-Za-z][^>]*?\s(?:id|name)\s*=\s*["']([^"']+)["']""")
_LINE_ANCHOR = re.compile(r"^L\d+(?:C\d+)?(?:-L\d+(?:C\d+)?)?$")
_GITHUB_PREFIX = "user-content-"

MARKDOWN_SUFFIXES = frozenset({".md", ".markdown", ".mdown", ".mkd"})
HTML_SUFFIXES = frozenset({".html", ".htm", ".xhtml"})


def slugify(title: str) -> str:
    """Return the GitHub-style anchor for a heading title."""
    slug = title.strip().lower()
    # Inline markup does not survive rendering.
    slug = re.sub(r"!?\[([^\]]*)\]\([^)]*\)", r"\1", slug)
    slug = re.sub(r"<[^>]+>", "", slug)
    slug = re.sub(r"[^\w\- ]", "", slug)
    return slug.replace(" ", "-")


def markdown_anchors(markdown: str) -> FrozenSet[str]:
    """Collect heading slugs and explicit HTML anchors from Markdown text."""
    anchors: Set[str] = set()
    seen: Dict[str, int] = {}
    fence: str | None = None
    previous = ""

    def _add_heading(title: str) -> None:
        explicit = _HEADING_ID.search(title)
        if explicit:
            anchors.add(explicit.group(1))
            title = title[: explicit.start()]
        slug = slugify(title)
        count = seen.get(slug, 0)
        seen[slug] = count + 1
        anchors.add(slug if count == 0 else f"{slug}-{count}")

    for line in markdown.splitlines():
        fence_match = _FENCE.match(line)
        if fence is not None:
            if fence_match and fence_match.group(1)[0] == fence[0] and len(
                fence_match.group(1)
            ) >= len(fence) and not line.strip().strip(fence[0]):
                fence = None
            previous = ""
            continue
        if fence_match:
            fence = fence_match.group(1)
            previous = ""
            continue

        anchors.update(_HTML_ANCHOR.findall(line))

        heading = _ATX_HEADING.match(line)
        if heading:
            _add_heading(heading.group(2) or "")
            previous = ""
            continue
        if previous.strip() and _SETEXT_UNDERLINE.match(line):
            _add_heading(previous)
            previous = ""
            continue
        previous = line
    return frozenset(anchors)


def html_anchors(html: str) -> FrozenSet[str]:
    """Collect element ids and named anchors from an HTML document."""
    soup = BeautifulSoup(html, "html.parser")
    anchors: Set[str] = set()
    for element in soup.find_all(attrs={"id": True}):
        anchors.add(str(element["id"]))
    for element in soup.find_all("a", attrs={"name": True}):
        anchors.add(str(element["name"]))
    for anchor in list(anchors):
        # GitHub renders README headings as user-content-<slug>.
        if anchor.startswith(_GITHUB_PREFIX):
            anchors.add(anchor[len(_GITHUB_PREFIX) :])
    return frozenset(anchors)


def anchors_for(name: str, text: str) -> FrozenSet[str] | None:
    """Return anchors for a document, or None when its type cannot be checked."""
    lowered = name.lower()
    if any(lowered.endswith(suffix) for suffix in MARKDOWN_SUFFIXES):
        return markdown_anchors(text)
    if any(lowered.endswith(suffix) for suffix in HTML_SUFFIXES):
        return html_anchors(text)
    return None


def is_line_anchor(fragment: str) -> bool:
    """True for source-view anchors such as ``L10`` or ``L10-L20``."""
    return bool(_LINE_ANCHOR.match(fragment))


def anchor_present(fragment: str, anchors: Iterable[str]) -> bool:
    available = set(anchors)
    decoded = unquote(fragment)
    candidates = {fragment, decoded, decoded.lower(), slugify(decoded)}
    return any(candidate in available for candidate in candidates if candidate)


__all__ = [
    "HTML_SUFFIXES",
    "MARKDOWN_SUFFIXES",
    "anchor_present",
    "anchors_for",
    "html_anchors",
    "is_line_anchor",
    "markdown_anchors",
    "slugify",
]
