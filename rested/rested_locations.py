"""
Positions and ranges over rested source text.

Lines and columns are zero-indexed. A Span's `end` is the location just past
the last character it covers, so a one-character token at column 4 spans
columns 4..5.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import total_ordering
from typing import Iterable, Optional


@total_ordering
@dataclass(frozen=True)
class Location:
    line: int
    col: int

    def __lt__(self, other: 'Location') -> bool:
        if not isinstance(other, Location):
            return NotImplemented
        return (self.line, self.col) < (other.line, other.col)

    def to_end_of(self, span: 'Span') -> 'Span':
        """A span starting here and ending where `span` ends."""
        return Span(self, span.end)

    def is_before(self, other: 'Location') -> bool:
        return self <= other

    def __str__(self) -> str:
        return f"[{self.line + 1}:{self.col + 1}]"


@dataclass(frozen=True)
class Span:
    start: Location
    end: Location

    def extend_to(self, end: Location) -> 'Span':
        return Span(self.start, end)

    def to_end_of(self, other: 'Span') -> 'Span':
        """Take this span's start and the other span's end."""
        return Span(self.start, other.end)

    @property
    def width(self) -> int:
        return abs(self.end.col - self.start.col)

    def contains(self, location: Location) -> bool:
        # Inclusive of `end` so a cursor sitting right after a token still hits it.
        return self.start <= location <= self.end

    def is_after(self, location: Location) -> bool:
        return self.start > location

    def is_on_or_after(self, location: Location) -> bool:
        return self.is_after(location) or self.contains(location)

    def __str__(self) -> str:
        return f"{self.start}..{self.end}"


def span_of(nodes: Iterable) -> Optional[Span]:
    """Span from the first node's start to the last node's end, or None if empty."""
    nodes = list(nodes)
    if not nodes:
        return None
    return nodes[0].span.to_end_of(nodes[-1].span)
