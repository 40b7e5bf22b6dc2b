"""
Engine facade for lampstand.
Holds one index per translation and dispatches reference and search requests.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from .config import Settings
from .errors import CorpusFormatError, IndexUnavailable, UnknownBook, UnknownTranslation
from .references import ReferenceResolver
from .results import aggregate
from .search import BibleSearch
from .utils.indexing import (
    InvertedIndex,
    cache_paths,
    expected_meta,
    meta_matches,
    read_meta,
)
from .utils.loaders import compute_coverage, corpus_fingerprint, discover_translations, load_corpus
from .utils.types import (
    ReferenceRequest,
    Request,
    Resolved,
    ScoredResult,
    SearchRequest,
    Verse,
)

logger = logging.getLogger(__name__)


class BibleEngine:
    """
    Registry of translation indexes plus request dispatch.

    Readers take the current index without locking. Publishing a new
    index replaces the whole registry mapping in one assignment, so a
    concurrent reader sees either the old index or the new one.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        corpora: Optional[Mapping[str, Path]] = None,
        *,
        use_cache: bool = True,
    ):
        self.settings = settings or Settings()
        self.resolver = ReferenceResolver(
            max_edits=self.settings.fuzzy_max_edits,
            margin=self.settings.fuzzy_margin,
        )
        self.cache_dir: Optional[Path] = Path(self.settings.cache_dir) if use_cache else None
        self._corpora: Dict[str, Path] = {t.lower(): Path(p) for t, p in (corpora or {}).items()}
        self._indexes: Mapping[str, InvertedIndex] = {}
        self._lock = threading.RLock()

    # --- registry ----------------------------------------------------------

    def translations(self) -> List[str]:
        return sorted(set(self._indexes) | set(self._corpora))

    def publish(self, index: InvertedIndex) -> None:
        """Make `index` the current index for its translation."""
        with self._lock:
            updated = dict(self._indexes)
            updated[index.translation] = index
            self._indexes = updated
        logger.info("Published index for %s (%s)", index.translation, index.fingerprint[:12])

    def index(self, translation: Optional[str] = None) -> InvertedIndex:
        """Current index for a translation, loading it on first use."""
        translation = (translation or self.settings.translation).lower()
        current = self._indexes.get(translation)
        if current is not None:
            return current
        path = self._corpora.get(translation)
        if path is None:
            raise UnknownTranslation(translation, self.translations())
        with self._lock:
            current = self._indexes.get(translation)
            if current is not None:
                return current
            try:
                verses = load_corpus(path)
            except (OSError, CorpusFormatError) as e:
                raise IndexUnavailable(translation, e) from e
            return self.load_or_build(translation, verses)

    # --- build / cache -----------------------------------------------------

    def _build(self, translation: str, verses: Sequence[Verse], fingerprint: str) -> InvertedIndex:
        try:
            return InvertedIndex.build(
                translation,
                verses,
                self.settings.normalizer,
                k1=self.settings.k1,
                b=self.settings.b,
                fingerprint=fingerprint,
            )
        except CorpusFormatError as e:
            raise IndexUnavailable(translation, e) from e

    def _write_cache(self, index: InvertedIndex) -> None:
        if self.cache_dir is None:
            return
        index_path, meta_path = cache_paths(self.cache_dir, index.translation)
        try:
            index.save(index_path, meta_path)
        except OSError as e:
            logger.warning("Could not write index cache for %s: %s", index.translation, e)

    def _load_cached(self, translation: str, fingerprint: str) -> Optional[InvertedIndex]:
        if self.cache_dir is None:
            return None
        index_path, meta_path = cache_paths(self.cache_dir, translation)
        meta = read_meta(meta_path)
        if meta is None:
            return None
        expected = expected_meta(
            translation, fingerprint, self.settings.normalizer, self.settings.k1, self.settings.b
        )
        if not meta_matches(meta, expected):
            logger.warning("Cached index for %s is stale, rebuilding", translation)
            return None
        try:
            index = InvertedIndex.load(index_path, meta_path)
        except Exception as e:
            # joblib surfaces truncated or foreign files as a range of errors
            logger.warning("Cached index for %s is unreadable (%s), rebuilding", translation, e)
            return None
        logger.info("Loaded index for %s from %s", translation, index_path)
        return index

    def load_or_build(self, translation: str, verses: Sequence[Verse]) -> InvertedIndex:
        """
        Publish an index for `verses`, reusing the on-disk cache when its
        fingerprint, format version and options all match.

        Raises IndexUnavailable if the corpus cannot be indexed.
        """
        translation = translation.lower()
        ordered = sorted(verses, key=lambda v: (v.book, v.chapter, v.verse))
        fingerprint = corpus_fingerprint(ordered)
        with self._lock:
            index = self._load_cached(translation, fingerprint)
            if index is None:
                index = self._build(translation, ordered, fingerprint)
                self._write_cache(index)
            self.publish(index)
        return index

    def rebuild(self, translation: str, verses: Sequence[Verse]) -> InvertedIndex:
        """Build from scratch, ignoring any cache, then publish."""
        translation = translation.lower()
        ordered = sorted(verses, key=lambda v: (v.book, v.chapter, v.verse))
        # Built outside the lock; readers keep using the old index meanwhile.
        index = self._build(translation, ordered, corpus_fingerprint(ordered))
        self._write_cache(index)
        self.publish(index)
        return index

    # --- requests ----------------------------------------------------------

    def resolve(self, reference: str, translation: Optional[str] = None) -> Resolved:
        return self.resolver.resolve(reference, self.index(translation))

    def lookup(self, reference: str, translation: Optional[str] = None) -> List[ScoredResult]:
        """All verses of a reference, in canonical order, with no score."""
        index = self.index(translation)
        resolved = self.resolver.resolve(reference, index)
        return aggregate(index, resolved=resolved)

    def search(
        self,
        query: str,
        limit: Optional[int] = None,
        translation: Optional[str] = None,
        book: Optional[str] = None,
    ) -> List[ScoredResult]:
        """Top `limit` verses for a free-text query, optionally within one book."""
        index = self.index(translation)
        span = None
        if book is not None:
            matched = self.resolver.match_book(book)
            span = index.book_span(matched)
            if span is None:
                raise UnknownBook(book, reason=f"{matched} is not in translation {index.translation}")
        searcher = BibleSearch(index, phrase_boost=self.settings.phrase_boost)
        ranked = searcher.search_keyword(
            query,
            top_k=self.settings.limit if limit is None else limit,
            span=span,
        )
        return aggregate(index, ranked=ranked)

    def handle(self, request: Request) -> List[ScoredResult]:
        if isinstance(request, ReferenceRequest):
            return self.lookup(request.reference, request.translation)
        if isinstance(request, SearchRequest):
            return self.search(request.query, request.limit, request.translation, request.book)
        raise TypeError(f"unsupported request type: {type(request).__name__}")

    def list_books(self, translation: Optional[str] = None) -> List[dict]:
        """Books present in a translation, in canonical order."""
        coverage = compute_coverage(self.index(translation).verses)
        return [
            {
                "book": book,
                "name": info["name"],
                "chapter_count": info["chapter_count"],
                "verse_count": info["total_verses"],
            }
            for book, info in coverage.items()
        ]


def create_engine(settings: Optional[Settings] = None, use_cache: bool = True) -> BibleEngine:
    """
    Factory function to create an engine over the corpora in the data directory.

    Indexes are loaded lazily, on the first request for each translation.
    """
    settings = settings or Settings.from_env()
    corpora = discover_translations(settings.data_dir)
    if not corpora:
        logger.warning("No corpus files found in %s", settings.data_dir)
    return BibleEngine(settings, corpora, use_cache=use_cache)
