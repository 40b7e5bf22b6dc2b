"""
Typed failures reported by the engine.

Everything except IndexUnavailable is an ordinary validation failure
that the caller turns into a user-facing message.
"""

from typing import Optional, Sequence

from .utils.book_mappings import Book


def abbrev(text: str, limit: int = 20) -> str:
    """Shorten user-supplied text for inclusion in an error message."""
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class LampstandError(Exception):
    """Base class for all engine failures."""


class ConfigError(LampstandError, ValueError):
    pass


class CorpusFormatError(LampstandError, ValueError):
    """Corpus records could not be parsed or are inconsistent."""

    def __init__(self, message: str, source: Optional[str] = None, line: Optional[int] = None):
        self.source = source
        self.line = line
        where = ""
        if source is not None:
            where = f"{source}:{line}: " if line is not None else f"{source}: "
        super().__init__(f"{where}{message}")


class UnknownTranslation(LampstandError, LookupError):
    def __init__(self, translation: str, available: Sequence[str] = ()):
        self.translation = translation
        self.available = tuple(available)
        msg = f"unknown translation: {abbrev(translation)}"
        if self.available:
            msg += f" (available: {', '.join(self.available)})"
        super().__init__(msg)


class UnknownBook(LampstandError, LookupError):
    """No alias matched, or a fuzzy match was ambiguous (candidates is non-empty)."""

    def __init__(self, text: str, candidates: Sequence[Book] = (), reason: Optional[str] = None):
        self.text = text
        self.candidates = tuple(candidates)
        if reason:
            msg = f"book not found: {abbrev(text)} ({reason})"
        elif self.candidates:
            names = ", ".join(b.display_name for b in self.candidates)
            msg = f"ambiguous book: {abbrev(text)} (could be {names})"
        else:
            msg = f"book not found: {abbrev(text)}"
        super().__init__(msg)

    @property
    def ambiguous(self) -> bool:
        return bool(self.candidates)


class ChapterOutOfRange(LampstandError, LookupError):
    def __init__(self, book: Book, chapter: int, last_chapter: int):
        self.book = book
        self.chapter = chapter
        self.last_chapter = last_chapter
        super().__init__(f"chapter not found: {book} {chapter} ({book} has {last_chapter} chapters)")


class VerseOutOfRange(LampstandError, LookupError):
    def __init__(self, book: Book, chapter: int, verse: int, last_verse: int):
        self.book = book
        self.chapter = chapter
        self.verse = verse
        self.last_verse = last_verse
        super().__init__(
            f"verse not found: {book} {chapter}:{verse} ({book} {chapter} has {last_verse} verses)"
        )


class InvalidRange(LampstandError, ValueError):
    pass


class MalformedReference(LampstandError, ValueError):
    def __init__(self, text: str):
        self.text = text
        super().__init__(f"could not parse reference: {abbrev(text, 30)}")


class EmptyQuery(LampstandError, ValueError):
    def __init__(self):
        super().__init__("search query is empty")


class InvalidLimit(LampstandError, ValueError):
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"result limit must be at least 1, got {limit}")


class IndexUnavailable(LampstandError, RuntimeError):
    """The index could not be loaded or rebuilt; fatal to the request."""

    def __init__(self, translation: str, cause: Optional[BaseException] = None):
        self.translation = translation
        self.cause = cause
        msg = f"index unavailable for translation {translation}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)
