"""Pipeline orchestration: extract, resolve, deduplicate, validate, aggregate."""

from __future__ import annotations

import asyncio
import re
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .aggregate import aggregate
from .config import Configuration
from .dedup import ResolvedPair, bypass_outcome, dedup, fragments_by_key
from .discovery import DocumentScanner
from .errors import ConfigError, ExtractionError, NoInputError
from .extract import extract
from .logging import get_logger
from .models import DedupKey, FileError, Report, SourceDocument, ValidationOutcome
from .resolve import Resolver
from .validate import LinkValidator, ValidationTask

EXIT_OK = 0
EXIT_BROKEN_LINKS = 1
EXIT_FATAL = 2


class LinkChecker:
    """Coordinates a single check-links run over a set of documents."""

    def __init__(
        self,
        config: Configuration,
        *,
        scanner: DocumentScanner | None = None,
        resolver: Resolver | None = None,
        validator: LinkValidator | None = None,
    ) -> None:
        self.config = config
        self.scanner = scanner or DocumentScanner(
            include_patterns=config.include_patterns,
            exclude_patterns=config.exclude_patterns,
            max_depth=config.max_depth,
        )
        self.resolver = resolver or Resolver(config.root)
        self.validator = validator or LinkValidator(config)
        self.logger = get_logger("orchestrator")
        try:
            self._exclude_urls = [re.compile(pattern) for pattern in config.exclude_urls]
        except re.error as exc:
            raise ConfigError(f"Invalid exclude_urls pattern: {exc}") from exc

    def check_path(self, path: Path) -> Report:
        """Discover documents under ``path`` and check every link in them."""
        self.logger.info("Checking links under %s", path)
        discovered = self.scanner.scan(path)
        if not discovered.documents:
            raise NoInputError(f"No readable documentation files found under {path}")
        return self.check(discovered.documents, file_errors=discovered.errors)

    def check(
        self,
        documents: Iterable[SourceDocument],
        *,
        file_errors: Sequence[FileError] = (),
    ) -> Report:
        return asyncio.run(self.check_async(documents, file_errors=file_errors))

    async def check_async(
        self,
        documents: Iterable[SourceDocument],
        *,
        file_errors: Sequence[FileError] = (),
    ) -> Report:
        started = time.monotonic()
        errors: List[FileError] = list(file_errors)
        pairs = self._resolve_all(documents, errors)

        groups = dedup(pairs)
        fragments = fragments_by_key(pairs)
        outcomes: Dict[DedupKey, ValidationOutcome] = {}
        tasks: List[ValidationTask] = []
        for key in groups:
            bypassed = bypass_outcome(key, exclude_urls=self._exclude_urls, offline=self.config.offline)
            if bypassed is not None:
                outcomes[key] = bypassed
            else:
                tasks.append(ValidationTask(key=key, fragments=frozenset(fragments.get(key, ()))))

        self.logger.info(
            "Found %d links to %d unique targets (%d to probe)",
            len(pairs),
            len(groups),
            len(tasks),
        )
        outcomes.update(await self.validator.run(tasks))

        report = aggregate(
            pairs,
            outcomes,
            elapsed=time.monotonic() - started,
            file_errors=errors,
            strict_fragments=self.config.strict_fragments,
        )
        self.logger.debug("Run finished in %.2fs", report.summary.elapsed)
        return report

    def _resolve_all(
        self, documents: Iterable[SourceDocument], errors: List[FileError]
    ) -> List[ResolvedPair]:
        pairs: List[ResolvedPair] = []
        for document in documents:
            try:
                found = [
                    (occurrence, self.resolver.resolve(occurrence))
                    for occurrence in extract(document)
                ]
            except (ExtractionError, ValueError) as exc:
                self.logger.warning("Skipping %s: %s", document.path, exc)
                errors.append(FileError(path=document.path, message=str(exc)))
                continue
            pairs.extend(found)
        return pairs


def exit_code(report: Optional[Report]) -> int:
    """Process exit status for a finished run."""
    if report is None:
        return EXIT_FATAL
    return EXIT_BROKEN_LINKS if report.summary.broken_count else EXIT_OK


__all__ = ["EXIT_BROKEN_LINKS", "EXIT_FATAL", "EXIT_OK", "LinkChecker", "exit_code"]
