from __future__ import annotations

import math
from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple, Union

from .book_mappings import Book


@dataclass(frozen=True, order=True)
class VerseReference:
    """A resolved book, chapter and verse."""
    book: Book
    chapter: int
    verse: int

    def __str__(self) -> str:
        return f"{self.book.display_name} {self.chapter}:{self.verse}"

    @property
    def key(self) -> Tuple[int, int, int]:
        return (int(self.book), self.chapter, self.verse)


@dataclass(frozen=True)
class VerseRange:
    """
    A resolved, inclusive span of verses within one book.

    chapter_end is only different from chapter for chapter ranges
    ("Ps 1-2") and explicit cross-chapter ranges ("Gen 1:31-2:3").
    """
    book: Book
    chapter: int
    verse_start: int
    verse_end: int
    chapter_end: Optional[int] = None

    def __post_init__(self):
        if self.chapter_end is None:
            object.__setattr__(self, "chapter_end", self.chapter)

    @property
    def start(self) -> VerseReference:
        return VerseReference(self.book, self.chapter, self.verse_start)

    @property
    def end(self) -> VerseReference:
        return VerseReference(self.book, self.chapter_end, self.verse_end)

    def __str__(self) -> str:
        name = self.book.display_name
        if self.chapter_end != self.chapter:
            return f"{name} {self.chapter}:{self.verse_start}-{self.chapter_end}:{self.verse_end}"
        return f"{name} {self.chapter}:{self.verse_start}-{self.verse_end}"


Resolved = Union[VerseReference, VerseRange]


@dataclass(frozen=True)
class Verse:
    """A verse record, as supplied by the corpus loader."""
    book: Book
    chapter: int
    verse: int
    text: str
    tokens: Tuple[str, ...] = ()

    @property
    def reference(self) -> VerseReference:
        return VerseReference(self.book, self.chapter, self.verse)


class Token(NamedTuple):
    """A normalized term and its position in the verse."""
    text: str
    position: int


@dataclass(frozen=True)
class Posting:
    """One verse in a term's postings list."""
    ordinal: int
    tf: int
    positions: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Query:
    """Normalized query terms, in query order, for one translation."""
    translation: str
    raw: str
    terms: Tuple[str, ...]
    usable: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ScoredResult:
    """
    A single result handed to the display layer.

    score is None for reference lookups. Results compare by score
    descending, then canonical order ascending.
    """
    reference: VerseReference
    text: str
    score: Optional[float]
    rank: int

    @property
    def sort_key(self) -> Tuple[float, Tuple[int, int, int]]:
        score = -math.inf if self.score is None else self.score
        return (-score, self.reference.key)

    def __lt__(self, other: "ScoredResult") -> bool:
        if not isinstance(other, ScoredResult):
            return NotImplemented
        return self.sort_key < other.sort_key


@dataclass(frozen=True)
class ReferenceRequest:
    """Look up a passage by reference."""
    reference: str
    translation: Optional[str] = None


@dataclass(frozen=True)
class SearchRequest:
    """Free-text search for the top `limit` verses."""
    query: str
    limit: int = 10
    translation: Optional[str] = None
    book: Optional[str] = None


Request = Union[ReferenceRequest, SearchRequest]
