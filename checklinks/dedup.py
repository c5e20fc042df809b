"""Grouping of link occurrences by validation target."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .models import (
    DedupKey,
    ErrorKind,
    LinkOccurrence,
    ResolvedTarget,
    TargetKind,
    ValidationOutcome,
)

ResolvedPair = Tuple[LinkOccurrence, ResolvedTarget]


def dedup(pairs: Iterable[ResolvedPair]) -> Dict[DedupKey, List[LinkOccurrence]]:
    """Group occurrences by their fragment-free target, in first-seen order."""
    groups: Dict[DedupKey, List[LinkOccurrence]] = {}
    for occurrence, target in pairs:
        groups.setdefault(target.key, []).append(occurrence)
    return groups


def fragments_by_key(pairs: Iterable[ResolvedPair]) -> Dict[DedupKey, Set[str]]:
    """Return the fragments requested for each key that asked for any."""
    fragments: Dict[DedupKey, Set[str]] = {}
    for _, target in pairs:
        if target.fragment:
            fragments.setdefault(target.key, set()).add(target.fragment)
    return fragments


def bypass_outcome(
    key: DedupKey,
    *,
    exclude_urls: Sequence["re.Pattern[str]"] = (),
    offline: bool = False,
) -> Optional[ValidationOutcome]:
    """Return the outcome of a key that must not be probed, or None to probe it."""
    if key.kind is TargetKind.IGNORED:
        return ValidationOutcome.skipped("unsupported-scheme")
    if key.kind is TargetKind.MALFORMED:
        return ValidationOutcome.broken(ErrorKind.MALFORMED_TARGET, reason=key.location)
    if key.kind is TargetKind.HTTP:
        if any(pattern.search(key.location) for pattern in exclude_urls):
            return ValidationOutcome.skipped("excluded")
        if offline:
            return ValidationOutcome.skipped("offline")
    return None


__all__ = ["ResolvedPair", "bypass_outcome", "dedup", "fragments_by_key"]
