"""
Reference resolution: "John 3:16", "Gen 1:1-3", "Ps 23", "Ps 1-2",
"Gen 1:31-2:3", "Ruth".

Book names are matched against the static alias table (exact, then
case-insensitive, then unique prefix, then edit distance), and chapter
and verse numbers are checked against the translation's verse table.
"""

import logging
import re
from typing import Dict, List, NamedTuple, Optional, Tuple

from rapidfuzz import process
from rapidfuzz.distance import OSA

from .errors import (
    ChapterOutOfRange,
    InvalidRange,
    MalformedReference,
    UnknownBook,
    VerseOutOfRange,
)
from .utils.book_mappings import BOOK_ALIASES, BOOK_ALIASES_FOLDED, Book, fold_book_name
from .utils.indexing import InvertedIndex
from .utils.types import Resolved, VerseRange, VerseReference

logger = logging.getLogger(__name__)

DEFAULT_MAX_EDITS = 2
DEFAULT_MARGIN = 1

_REFERENCE_RE = re.compile(
    r"""^\s*
    (?P<book>(?:[123]\s*)?[^\d\s:.][^\d:]*?)
    [\s.]*
    (?:
        (?P<chapter>\d+)
        (?::(?P<verse>\d+))?
        (?:\s*[-–]\s*
            (?:(?P<chapter_end>\d+):)?
            (?P<end>\d+)
        )?
    )?
    \s*$""",
    re.VERBOSE,
)


class ParsedReference(NamedTuple):
    """Raw pieces of a reference, before any lookup."""
    book: str
    chapter: Optional[int] = None
    verse: Optional[int] = None
    chapter_end: Optional[int] = None
    end: Optional[int] = None


def parse_reference(text: str) -> ParsedReference:
    match = _REFERENCE_RE.match(text)
    if not match:
        raise MalformedReference(text)
    g = match.groupdict()
    if g["chapter_end"] is not None and g["verse"] is None:
        # "Gen 1-2:3" names a verse only at one end
        raise MalformedReference(text)

    def num(key: str) -> Optional[int]:
        return int(g[key]) if g[key] is not None else None

    return ParsedReference(
        book=g["book"].strip(),
        chapter=num("chapter"),
        verse=num("verse"),
        chapter_end=num("chapter_end"),
        end=num("end"),
    )


# Two-letter aliases are too close to everything to be fuzzy targets.
_FUZZY_ALIASES = tuple(alias for alias in BOOK_ALIASES_FOLDED if len(alias) >= 3)


def fuzzy_candidates(key: str, max_edits: int) -> List[Tuple[str, int]]:
    """
    Aliases within `max_edits` optimal-string-alignment edits of `key`
    (Levenshtein plus adjacent swaps), closest first.
    """
    choices = [a for a in _FUZZY_ALIASES if abs(len(a) - len(key)) <= max_edits]
    if not choices:
        return []
    matches = process.extract(
        key,
        choices,
        scorer=OSA.distance,
        score_cutoff=max_edits,
        limit=None,
    )
    return [(alias, int(distance)) for alias, distance, _ in matches]


class ReferenceResolver:
    """
    Resolves reference strings against one translation's verse table.

    max_edits caps the edit distance of a fuzzy book match (shorter inputs
    get less: none under three characters, one up to four). A fuzzy match
    is taken only if the runner-up book is at least `margin` edits worse.
    """

    def __init__(self, max_edits: int = DEFAULT_MAX_EDITS, margin: int = DEFAULT_MARGIN):
        if margin < 1:
            raise ValueError("margin must be >= 1")
        self.max_edits = max_edits
        self.margin = margin

    def _allowed_edits(self, key: str) -> int:
        if len(key) < 3:
            return 0
        if len(key) <= 4:
            return min(1, self.max_edits)
        return self.max_edits

    def match_book(self, text: str) -> Book:
        name = text.strip()
        book = BOOK_ALIASES.get(name)
        if book is not None:
            return book

        key = fold_book_name(name)
        if not key:
            raise UnknownBook(text)
        book = BOOK_ALIASES_FOLDED.get(key)
        if book is not None:
            return book

        prefixed = set()
        if len(key) >= 2 and not key.isdigit():
            prefixed = {b for alias, b in BOOK_ALIASES_FOLDED.items() if alias.startswith(key)}
            if len(prefixed) == 1:
                book = prefixed.pop()
                logger.debug("Book %r matched %s by prefix", text, book)
                return book

        allowed = self._allowed_edits(key)
        best: Dict[Book, int] = {}
        if allowed:
            for alias, d in fuzzy_candidates(key, allowed):
                b = BOOK_ALIASES_FOLDED[alias]
                if d < best.get(b, allowed + 1):
                    best[b] = d
        if not best:
            raise UnknownBook(text, candidates=sorted(prefixed))

        ranked: List[Tuple[int, Book]] = sorted((d, b) for b, d in best.items())
        top_distance, top_book = ranked[0]
        if len(ranked) == 1 or ranked[1][0] - top_distance >= self.margin:
            logger.debug("Book %r matched %s at edit distance %d", text, top_book, top_distance)
            return top_book
        candidates = [b for d, b in ranked if d - top_distance < self.margin]
        raise UnknownBook(text, candidates=candidates)

    def resolve(self, text: str, index: InvertedIndex) -> Resolved:
        parsed = parse_reference(text)
        book = self.match_book(parsed.book)
        chapters = index.chapters(book)
        if not chapters:
            raise UnknownBook(parsed.book, reason=f"{book} is not in translation {index.translation}")
        last_chapter = chapters[-1]

        def check_chapter(chapter: int) -> None:
            if index.chapter_span(book, chapter) is None:
                raise ChapterOutOfRange(book, chapter, last_chapter)

        def check_verse(chapter: int, verse: int) -> None:
            check_chapter(chapter)
            if index.ordinal(VerseReference(book, chapter, verse)) is None:
                raise VerseOutOfRange(book, chapter, verse, index.last_verse(book, chapter))

        if parsed.chapter is None:
            return VerseRange(
                book,
                chapters[0],
                index.first_verse(book, chapters[0]),
                index.last_verse(book, last_chapter),
                chapter_end=last_chapter,
            )

        chapter = parsed.chapter
        if parsed.verse is None:
            end_chapter = parsed.end if parsed.end is not None else chapter
            check_chapter(chapter)
            if end_chapter < chapter:
                raise InvalidRange(f"chapter range ends before it starts: {text.strip()}")
            check_chapter(end_chapter)
            return VerseRange(
                book,
                chapter,
                index.first_verse(book, chapter),
                index.last_verse(book, end_chapter),
                chapter_end=end_chapter,
            )

        check_verse(chapter, parsed.verse)
        if parsed.end is None:
            return VerseReference(book, chapter, parsed.verse)

        end_chapter = parsed.chapter_end if parsed.chapter_end is not None else chapter
        if (end_chapter, parsed.end) < (chapter, parsed.verse):
            raise InvalidRange(f"range ends before it starts: {text.strip()}")
        check_verse(end_chapter, parsed.end)
        return VerseRange(book, chapter, parsed.verse, parsed.end, chapter_end=end_chapter)


def ordinal_span(resolved: Resolved, index: InvertedIndex) -> Tuple[int, int]:
    """Inclusive ordinal bounds of a resolved reference."""
    if isinstance(resolved, VerseReference):
        start = end = index.ordinal(resolved)
    else:
        start = index.ordinal(resolved.start)
        end = index.ordinal(resolved.end)
    if start is None or end is None:
        raise VerseOutOfRange(resolved.book, resolved.chapter, 0, 0)
    return start, end
