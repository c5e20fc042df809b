"""Discovery of documentation files to search for links."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

from .extract import detect_format
from .logging import get_logger
from .models import FileError, SourceDocument

logger = get_logger("discovery")

# Tooling and dependency trees never hold the project's own documentation.
SKIPPED_DIRECTORIES = frozenset(
    {
        ".git", ".hg", ".svn", ".venv", "venv", "node_modules", "__pycache__",
        ".pytest_cache", ".mypy_cache", ".tox", "target",
    }
)


@dataclass(frozen=True)
class IgnorePattern:
    """One gitignore-style pattern, matched against ``/``-separated relative paths.

    ``base`` is the directory holding the ignore file the pattern came from;
    the pattern only applies below it.
    """

    glob: str
    negated: bool = False
    directories_only: bool = False
    rooted: bool = False
    base: str = ""

    @classmethod
    def parse(cls, line: str, base: str = "") -> Optional["IgnorePattern"]:
        """Parse a gitignore line; blanks and comments give None."""
        text = line.strip()
        if not text or text.startswith("#"):
            return None
        negated = text.startswith("!")
        text = text.removeprefix("!")
        directories_only = text.endswith("/")
        text = text.rstrip("/")
        # A slash anywhere but the end ties the pattern to the ignore file's directory.
        rooted = "/" in text
        text = text.lstrip("/")
        if not text:
            return None
        return cls(
            glob=text,
            negated=negated,
            directories_only=directories_only,
            rooted=rooted,
            base=base.strip("/"),
        )

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if self.directories_only and not is_dir:
            return False
        if self.base:
            if not rel_path.startswith(self.base + "/"):
                return False
            rel_path = rel_path[len(self.base) + 1 :]
        if self.rooted:
            return _match_segments(self.glob.split("/"), rel_path.split("/"))
        name = rel_path.rsplit("/", 1)[-1]
        return fnmatchcase(name, self.glob)


def _match_segments(globs: List[str], parts: List[str]) -> bool:
    """Match path segments one by one; ``*`` never crosses a ``/`` but ``**`` spans any depth."""
    if not globs:
        return not parts
    head, rest = globs[0], globs[1:]
    if head == "**":
        return any(_match_segments(rest, parts[index:]) for index in range(len(parts) + 1))
    if not parts or not fnmatchcase(parts[0], head):
        return False
    return _match_segments(rest, parts[1:])


@dataclass
class IgnoreList:
    """Ordered ignore patterns where the last matching pattern decides."""

    patterns: List[IgnorePattern] = field(default_factory=list)

    def load(self, path: Path, base: str = "") -> None:
        """Append the patterns of an ignore file living in directory ``base``."""
        if not path.is_file():
            return
        try:
            self.extend(path.read_text(encoding="utf-8").splitlines(), base)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Ignoring unreadable %s: %s", path, exc)

    def extend(self, lines: Iterable[str], base: str = "") -> None:
        for line in lines:
            pattern = IgnorePattern.parse(line, base)
            if pattern is not None:
                self.patterns.append(pattern)

    def ignores(self, rel_path: str, is_dir: bool) -> bool:
        decision = False
        for pattern in self.patterns:
            if pattern.matches(rel_path, is_dir):
                decision = not pattern.negated
        return decision


@dataclass
class DiscoveryResult:
    documents: List[SourceDocument] = field(default_factory=list)
    errors: List[FileError] = field(default_factory=list)


class DocumentScanner:
    """Walks a project tree and loads the documentation files it contains.

    ``max_depth`` counts directory levels: 1 keeps only files directly under
    the root, 2 adds their subdirectories, and so on.
    """

    def __init__(
        self,
        *,
        include_patterns: Sequence[str] = (),
        exclude_patterns: Sequence[str] = (),
        max_depth: Optional[int] = None,
    ) -> None:
        self.include_patterns = tuple(include_patterns)
        self.exclude_patterns = tuple(exclude_patterns)
        self.max_depth = max_depth

    def scan(self, root: Path) -> DiscoveryResult:
        """Return every readable supported document under ``root``."""
        target = root.expanduser().resolve()
        if not target.exists():
            raise FileNotFoundError(f"Path not found: {root}")

        result = DiscoveryResult()
        paths = [target] if target.is_file() else self.iter_paths(target)
        for path in paths:
            self._load(path, result)
        logger.debug(
            "Discovered %d documents (%d unreadable) under %s",
            len(result.documents),
            len(result.errors),
            target,
        )
        return result

    def iter_paths(self, root: Path) -> Iterator[Path]:
        """Yield candidate files under ``root`` in sorted, depth-first order."""
        gitignore = IgnoreList()
        excluded = IgnoreList()
        excluded.extend(self.exclude_patterns)

        def ignored(rel_path: str, is_dir: bool) -> bool:
            return excluded.ignores(rel_path, is_dir) or gitignore.ignores(rel_path, is_dir)

        for dirpath, dirnames, filenames in os.walk(root):
            here = Path(dirpath)
            prefix = "" if here == root else here.relative_to(root).as_posix() + "/"
            level = prefix.count("/") + 1
            # Nested ignore files apply below their own directory and override outer ones.
            gitignore.load(here / ".gitignore", prefix.rstrip("/"))

            dirnames[:] = [
                name
                for name in sorted(dirnames)
                if self._descend(name, prefix + name, level, ignored)
            ]
            for name in sorted(filenames):
                rel_path = prefix + name
                if name.startswith(".") or not self._included(rel_path):
                    continue
                if not ignored(rel_path, False):
                    yield here / name

    def _descend(
        self, name: str, rel_path: str, level: int, ignored: Callable[[str, bool], bool]
    ) -> bool:
        if name.startswith(".") or name in SKIPPED_DIRECTORIES:
            return False
        if self.max_depth is not None and level >= self.max_depth:
            return False
        return not ignored(rel_path, True)

    def _included(self, rel_path: str) -> bool:
        if not self.include_patterns:
            return True
        name = rel_path.rsplit("/", 1)[-1]
        return any(
            fnmatchcase(name, pattern) or fnmatchcase(rel_path, pattern)
            for pattern in self.include_patterns
        )

    @staticmethod
    def _load(path: Path, result: DiscoveryResult) -> None:
        detected = detect_format(path)
        if detected is None:
            return
        doc_format, language = detected
        try:
            contents = path.read_bytes().decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.warning("Skipping %s: not valid UTF-8 (%s)", path, exc.reason)
            result.errors.append(FileError(path=path, message=f"cannot decode as UTF-8: {exc.reason}"))
            return
        except OSError as exc:
            logger.warning("Skipping %s: %s", path, exc)
            result.errors.append(FileError(path=path, message=f"cannot read file: {exc}"))
            return
        logger.debug("Searching %s", path)
        result.documents.append(
            SourceDocument(path=path, format=doc_format, contents=contents, language=language)
        )


__all__ = ["DiscoveryResult", "DocumentScanner", "IgnoreList", "IgnorePattern", "SKIPPED_DIRECTORIES"]
