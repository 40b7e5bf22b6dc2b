import json
import logging
import os
import tempfile
from collections import defaultdict
from dataclasses import dataclass, replace
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import joblib
import numpy as np

from ..errors import CorpusFormatError
from .book_mappings import Book
from .loaders import corpus_fingerprint
from .normalize import Normalizer
from .scoring import DEFAULT_B, DEFAULT_K1, VerseBM25
from .types import Posting, Verse, VerseReference

logger = logging.getLogger(__name__)

# Bump whenever the bundle layout or tokenization changes.
INDEX_FORMAT_VERSION = 2

Span = Tuple[int, int]


@dataclass(frozen=True)
class IndexBundle:
    """Everything that is persisted for one translation."""
    translation: str
    fingerprint: str
    normalizer: Normalizer
    verses: Tuple[Verse, ...]
    postings: Dict[str, Tuple[Posting, ...]]
    scorer: VerseBM25
    format_version: int = INDEX_FORMAT_VERSION


class InvertedIndex:
    """
    Read-only inverted index and verse table for one translation.

    Verse ordinals are dense and zero-based in canonical book, chapter,
    verse order, so any chapter, book or verse range is a contiguous
    ordinal slice. Nothing is mutated after construction; instances are
    safe to share between concurrent readers.
    """

    def __init__(self, bundle: IndexBundle):
        self.bundle = bundle
        self._postings: Mapping[str, Tuple[Posting, ...]] = MappingProxyType(bundle.postings)
        self._arrays: Dict[str, Tuple[np.ndarray, np.ndarray]] = {}
        for term, plist in bundle.postings.items():
            ords = np.fromiter((p.ordinal for p in plist), dtype=np.int64, count=len(plist))
            tfs = np.fromiter((p.tf for p in plist), dtype=np.int64, count=len(plist))
            ords.setflags(write=False)
            tfs.setflags(write=False)
            self._arrays[term] = (ords, tfs)

        self._ordinals: Dict[VerseReference, int] = {}
        chapters: Dict[Tuple[Book, int], List[int]] = {}
        books: Dict[Book, List[int]] = {}
        for ordinal, verse in enumerate(bundle.verses):
            self._ordinals[verse.reference] = ordinal
            chapters.setdefault((verse.book, verse.chapter), [ordinal, ordinal])[1] = ordinal
            books.setdefault(verse.book, [ordinal, ordinal])[1] = ordinal
        self._chapter_spans: Dict[Tuple[Book, int], Span] = {k: tuple(v) for k, v in chapters.items()}
        self._book_spans: Dict[Book, Span] = {k: tuple(v) for k, v in books.items()}
        self._book_chapters: Dict[Book, Tuple[int, ...]] = defaultdict(tuple)
        for book, chapter in sorted(self._chapter_spans):
            self._book_chapters[book] += (chapter,)
        self._book_chapters = dict(self._book_chapters)

    # --- corpus statistics -------------------------------------------------

    @property
    def translation(self) -> str:
        return self.bundle.translation

    @property
    def fingerprint(self) -> str:
        return self.bundle.fingerprint

    @property
    def normalizer(self) -> Normalizer:
        return self.bundle.normalizer

    @property
    def scorer(self) -> VerseBM25:
        return self.bundle.scorer

    @property
    def verses(self) -> Tuple[Verse, ...]:
        return self.bundle.verses

    @property
    def verse_count(self) -> int:
        return len(self.bundle.verses)

    @property
    def total_terms(self) -> int:
        return self.scorer.total_terms

    @property
    def average_verse_length(self) -> float:
        return float(self.scorer.avgdl)

    @property
    def vocabulary(self) -> Mapping[str, Tuple[Posting, ...]]:
        return self._postings

    def __contains__(self, term: str) -> bool:
        return term in self._postings

    def doc_freq(self, term: str) -> int:
        return len(self._postings.get(term, ()))

    def postings(self, term: str) -> Tuple[Posting, ...]:
        return self._postings.get(term, ())

    def posting_arrays(self, term: str) -> Tuple[np.ndarray, np.ndarray]:
        """Ordinals and term frequencies of a term's postings, as read-only arrays."""
        return self._arrays[term]

    # --- verse table -------------------------------------------------------

    def verse_at(self, ordinal: int) -> Verse:
        return self.bundle.verses[ordinal]

    def ordinal(self, ref: VerseReference) -> Optional[int]:
        return self._ordinals.get(ref)

    def span(self, start: int, end: int) -> Tuple[Verse, ...]:
        """Verses with ordinals start..end inclusive."""
        return self.bundle.verses[start : end + 1]

    def books(self) -> Tuple[Book, ...]:
        return tuple(self._book_spans)

    def book_span(self, book: Book) -> Optional[Span]:
        return self._book_spans.get(book)

    def chapters(self, book: Book) -> Tuple[int, ...]:
        return self._book_chapters.get(book, ())

    def chapter_span(self, book: Book, chapter: int) -> Optional[Span]:
        return self._chapter_spans.get((book, chapter))

    def last_verse(self, book: Book, chapter: int) -> int:
        span = self._chapter_spans.get((book, chapter))
        if span is None:
            return 0
        return self.bundle.verses[span[1]].verse

    def first_verse(self, book: Book, chapter: int) -> int:
        span = self._chapter_spans.get((book, chapter))
        if span is None:
            return 0
        return self.bundle.verses[span[0]].verse

    # --- build / persist ---------------------------------------------------

    @classmethod
    def build(
        cls,
        translation: str,
        verses: Iterable[Verse],
        normalizer: Optional[Normalizer] = None,
        *,
        k1: float = DEFAULT_K1,
        b: float = DEFAULT_B,
        fingerprint: Optional[str] = None,
    ) -> "InvertedIndex":
        normalizer = normalizer or Normalizer()
        ordered = sorted(verses, key=lambda v: (v.book, v.chapter, v.verse))
        if not ordered:
            raise CorpusFormatError(f"translation {translation} has no verses")

        table: List[Verse] = []
        corpus: List[Tuple[str, ...]] = []
        postings: Dict[str, List[Posting]] = defaultdict(list)
        for ordinal, verse in enumerate(ordered):
            if table and table[-1].reference == verse.reference:
                raise CorpusFormatError(f"duplicate verse {verse.reference} in {translation}")
            tokens = normalizer.tokenize(verse.text)
            positions: Dict[str, List[int]] = defaultdict(list)
            for token in tokens:
                positions[token.text].append(token.position)
            for term, pos in positions.items():
                postings[term].append(Posting(ordinal, len(pos), tuple(pos)))
            terms = tuple(t.text for t in tokens)
            table.append(replace(verse, tokens=terms))
            corpus.append(terms)

        bundle = IndexBundle(
            translation=translation,
            fingerprint=fingerprint or corpus_fingerprint(ordered),
            normalizer=normalizer,
            verses=tuple(table),
            postings={term: tuple(plist) for term, plist in postings.items()},
            scorer=VerseBM25(corpus, k1=k1, b=b),
        )
        index = cls(bundle)
        logger.info(
            "Built index for %s: %d verses, %d terms, %d distinct",
            translation, index.verse_count, index.total_terms, len(bundle.postings),
        )
        return index

    def meta(self) -> dict:
        return {
            "translation": self.translation,
            "fingerprint": self.fingerprint,
            "format_version": self.bundle.format_version,
            "normalizer": self.normalizer.options(),
            "k1": self.scorer.k1,
            "b": self.scorer.b,
            "verse_count": self.verse_count,
            "total_terms": self.total_terms,
            "vocabulary_size": len(self._postings),
        }

    def save(self, index_path: str | Path, meta_path: str | Path) -> None:
        index_path = Path(index_path)
        meta_path = Path(meta_path)
        index_path.parent.mkdir(parents=True, exist_ok=True)
        meta_path.parent.mkdir(parents=True, exist_ok=True)
        # Write to private temporary files first so a reader never sees half
        # a file and concurrent writers never share one.
        tmp_index = _temp_beside(index_path)
        tmp_meta = _temp_beside(meta_path)
        try:
            joblib.dump(self.bundle, tmp_index, compress=3)
            tmp_meta.write_text(json.dumps(self.meta(), ensure_ascii=False, indent=2), encoding="utf-8")
            tmp_index.replace(index_path)
            tmp_meta.replace(meta_path)
        finally:
            tmp_index.unlink(missing_ok=True)
            tmp_meta.unlink(missing_ok=True)

    @classmethod
    def load(cls, index_path: str | Path, meta_path: str | Path) -> "InvertedIndex":
        index_path = Path(index_path)
        bundle = joblib.load(index_path)
        if not isinstance(bundle, IndexBundle):
            raise CorpusFormatError("not an index bundle", str(index_path))
        meta = read_meta(meta_path)
        if meta is None or meta.get("fingerprint") != bundle.fingerprint:
            raise CorpusFormatError("index metadata does not match bundle", str(index_path))
        return cls(bundle)


def _temp_beside(path: Path) -> Path:
    fd, name = tempfile.mkstemp(dir=path.parent, prefix=path.name + ".", suffix=".tmp")
    os.close(fd)
    return Path(name)


def read_meta(meta_path: str | Path) -> Optional[dict]:
    """Cached index metadata, or None if missing or unreadable."""
    p = Path(meta_path)
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None


def expected_meta(
    translation: str,
    fingerprint: str,
    normalizer: Normalizer,
    k1: float,
    b: float,
) -> dict:
    """The subset of meta() that must match for a cached index to be reused."""
    return {
        "translation": translation,
        "fingerprint": fingerprint,
        "format_version": INDEX_FORMAT_VERSION,
        "normalizer": normalizer.options(),
        "k1": k1,
        "b": b,
    }


def meta_matches(meta: Optional[dict], expected: dict) -> bool:
    if not meta:
        return False
    return all(meta.get(key) == value for key, value in expected.items())


def build_from_records(
    translation: str,
    verses: Sequence[Verse],
    normalizer: Normalizer,
    k1: float = DEFAULT_K1,
    b: float = DEFAULT_B,
) -> IndexBundle:
    """
    Build one translation and return its bundle.

    Module-level so a process pool can call it; the bundle pickles, the
    InvertedIndex wrapper (with its mapping proxy) does not.
    """
    return InvertedIndex.build(translation, verses, normalizer, k1=k1, b=b).bundle


def cache_paths(cache_dir: str | Path, translation: str) -> Tuple[Path, Path]:
    """Bundle and metadata file locations for one translation."""
    d = Path(cache_dir)
    return d / f"{translation}.joblib", d / f"{translation}.meta.json"
