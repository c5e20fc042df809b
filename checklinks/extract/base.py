"""Base classes for link extractors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Iterator, List

from ..models import LinkOccurrence, SourceDocument


@dataclass(frozen=True)
class Segment:
    """A run of searchable text on one line of a document.

    ``column`` is the 1-based column of the first character of ``text`` in the
    original line. Segments sharing a ``block`` belong to the same comment or
    document body, so fenced code state carries over between them.
    """

    line: int
    column: int
    text: str
    block: int = 0


class LinkStream:
    """Finite, single-pass iterator over the links found in one document.

    Segments are pulled from ``segments`` one at a time and handed to
    ``scan``; occurrences found on a segment are buffered and returned in
    column order. Once the segments run out the stream is exhausted and stays
    that way.
    """

    def __init__(
        self,
        segments: Iterator[Segment],
        scan: Callable[[Segment], List[LinkOccurrence]],
    ) -> None:
        self._segments = segments
        self._scan = scan
        self._pending: Deque[LinkOccurrence] = deque()
        self.exhausted = False

    def __iter__(self) -> "LinkStream":
        return self

    def __next__(self) -> LinkOccurrence:
        while not self._pending:
            if self.exhausted:
                raise StopIteration
            segment = next(self._segments, None)
            if segment is None:
                self.exhausted = True
                raise StopIteration
            self._pending.extend(self._scan(segment))
        return self._pending.popleft()


class Extractor(ABC):
    """Contract for extractors that find link mentions in a document."""

    @abstractmethod
    def extract(self, document: SourceDocument) -> LinkStream:
        """Return a lazy stream of the document's link occurrences."""
