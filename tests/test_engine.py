"""
Tests for the engine: translation registry, cache reuse and request dispatch.
"""

import sys
import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from fixture_corpus import ASV_DAT, KJV_VERSE_COUNT, asv_verses, kjv_verses, write_corpus

from lampstand.config import Settings
from lampstand.engine import BibleEngine, create_engine
from lampstand.errors import (
    EmptyQuery,
    IndexUnavailable,
    InvalidLimit,
    UnknownBook,
    UnknownTranslation,
    VerseOutOfRange,
)
from lampstand.utils.book_mappings import Book
from lampstand.utils.indexing import InvertedIndex, cache_paths
from lampstand.utils.types import ReferenceRequest, SearchRequest, Verse, VerseReference


class EngineTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        root = Path(self.tmp.name)
        self.data_dir = root / "data"
        self.cache_dir = root / "cache"
        self.data_dir.mkdir()
        self.settings = Settings(data_dir=self.data_dir, cache_dir=self.cache_dir)

    def tearDown(self):
        self.tmp.cleanup()


class TestRequests(EngineTestCase):

    def setUp(self):
        super().setUp()
        self.engine = BibleEngine(self.settings, use_cache=False)
        self.engine.load_or_build("kjv", kjv_verses())

    def test_lookup(self):
        results = self.engine.lookup("John 3:16")
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].reference, VerseReference(Book.JOHN, 3, 16))
        self.assertIsNone(results[0].score)

    def test_lookup_range(self):
        results = self.engine.lookup("Gen 1:1-3")
        self.assertEqual([r.reference.verse for r in results], [1, 2, 3])

    def test_lookup_errors(self):
        with self.assertRaises(VerseOutOfRange):
            self.engine.lookup("Gen 1:1-999")
        with self.assertRaises(UnknownBook):
            self.engine.lookup("Ddd 1:1")

    def test_search(self):
        results = self.engine.search("shepherd")
        self.assertEqual(results[0].reference, VerseReference(Book.PSALMS, 23, 1))
        self.assertEqual(len(self.engine.search("God", limit=2)), 2)
        self.assertEqual(self.engine.search("xyzzy"), [])
        with self.assertRaises(EmptyQuery):
            self.engine.search("  ")
        with self.assertRaises(InvalidLimit):
            self.engine.search("God", limit=0)

    def test_default_limit(self):
        engine = BibleEngine(Settings(cache_dir=self.cache_dir, limit=3), use_cache=False)
        engine.load_or_build("kjv", kjv_verses())
        self.assertEqual(len(engine.search("God")), 3)

    def test_search_within_book(self):
        results = self.engine.search("God", limit=20, book="1 Jn")
        self.assertTrue(results)
        self.assertTrue(all(r.reference.book == Book.JOHN_1 for r in results))
        with self.assertRaises(UnknownBook):
            self.engine.search("God", book="Mark")

    def test_handle(self):
        by_ref = self.engine.handle(ReferenceRequest("Ps 23:1"))
        self.assertEqual(by_ref[0].reference, VerseReference(Book.PSALMS, 23, 1))
        by_query = self.engine.handle(SearchRequest("shepherd", limit=1))
        self.assertEqual(by_query[0].reference, VerseReference(Book.PSALMS, 23, 1))
        with self.assertRaises(TypeError):
            self.engine.handle("John 3:16")

    def test_unknown_translation(self):
        with self.assertRaises(UnknownTranslation) as ctx:
            self.engine.lookup("John 3:16", translation="web")
        self.assertEqual(ctx.exception.available, ("kjv",))

    def test_translations_are_independent(self):
        self.engine.load_or_build("ASV", asv_verses())
        self.assertEqual(self.engine.translations(), ["asv", "kjv"])
        asv = self.engine.lookup("Ps 23:1", translation="asv")
        self.assertTrue(asv[0].text.startswith("Jehovah"))
        kjv = self.engine.lookup("Ps 23:1", translation="kjv")
        self.assertTrue(kjv[0].text.startswith("The LORD"))
        with self.assertRaises(VerseOutOfRange):
            self.engine.lookup("Ps 23:2", translation="asv")

    def test_list_books(self):
        books = self.engine.list_books()
        self.assertEqual([b["book"] for b in books], [Book.GENESIS, Book.PSALMS, Book.JOHN, Book.JOHN_1, Book.REVELATION])
        self.assertEqual(books[0], {"book": Book.GENESIS, "name": "Genesis", "chapter_count": 2, "verse_count": 9})
        self.assertEqual(sum(b["verse_count"] for b in books), KJV_VERSE_COUNT)


class TestPublication(EngineTestCase):

    def test_rebuild_swaps_whole_index(self):
        engine = BibleEngine(self.settings, use_cache=False)
        old = engine.load_or_build("kjv", kjv_verses())
        held = engine.index("kjv")
        new = engine.rebuild("kjv", kjv_verses()[:9])
        self.assertIsNot(old, new)
        self.assertIs(engine.index("kjv"), new)
        # a reader still holding the old index sees it unchanged
        self.assertIs(held, old)
        self.assertEqual(held.verse_count, KJV_VERSE_COUNT)
        self.assertEqual(new.verse_count, 9)
        with self.assertRaises(UnknownBook):
            engine.lookup("John 3:16")

    def test_concurrent_readers_see_complete_index(self):
        engine = BibleEngine(self.settings, use_cache=False)
        engine.load_or_build("kjv", kjv_verses())
        small = kjv_verses()[:9]
        errors = []
        counts = set()

        def reader():
            for _ in range(50):
                index = engine.index("kjv")
                counts.add(index.verse_count)
                if index.verse_count != len(index.verses):
                    errors.append(index)

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for _ in range(5):
            engine.rebuild("kjv", small)
            engine.rebuild("kjv", kjv_verses())
        for t in threads:
            t.join()
        self.assertEqual(errors, [])
        self.assertTrue(counts <= {9, KJV_VERSE_COUNT})

    def test_idempotent_rebuild(self):
        engine = BibleEngine(self.settings, use_cache=False)
        engine.load_or_build("kjv", kjv_verses())
        before = [engine.search(q, limit=30) for q in ("God", "love", "light")]
        engine.rebuild("kjv", kjv_verses())
        after = [engine.search(q, limit=30) for q in ("God", "love", "light")]
        self.assertEqual(before, after)

    def test_bad_corpus_is_index_unavailable(self):
        engine = BibleEngine(self.settings, use_cache=False)
        with self.assertRaises(IndexUnavailable):
            engine.load_or_build("kjv", [])
        verse = Verse(Book.GENESIS, 1, 1, "In the beginning")
        with self.assertRaises(IndexUnavailable):
            engine.load_or_build("kjv", [verse, verse])


class TestCache(EngineTestCase):

    def test_written_then_reused(self):
        BibleEngine(self.settings).load_or_build("kjv", kjv_verses())
        index_path, meta_path = cache_paths(self.cache_dir, "kjv")
        self.assertTrue(index_path.exists())
        self.assertTrue(meta_path.exists())

        with patch.object(InvertedIndex, "build", side_effect=AssertionError("rebuilt")):
            index = BibleEngine(self.settings).load_or_build("kjv", kjv_verses())
        self.assertEqual(index.verse_count, KJV_VERSE_COUNT)

    def test_changed_corpus_rebuilds(self):
        BibleEngine(self.settings).load_or_build("kjv", kjv_verses())
        changed = kjv_verses()[:-1]
        with self.assertLogs("lampstand.engine", level="WARNING"):
            index = BibleEngine(self.settings).load_or_build("kjv", changed)
        self.assertEqual(index.verse_count, KJV_VERSE_COUNT - 1)

    def test_changed_options_rebuild(self):
        BibleEngine(self.settings).load_or_build("kjv", kjv_verses())
        stemming = Settings(data_dir=self.data_dir, cache_dir=self.cache_dir, stemming=True)
        index = BibleEngine(stemming).load_or_build("kjv", kjv_verses())
        self.assertTrue(index.normalizer.stemming)

    def test_corrupt_cache_rebuilds(self):
        BibleEngine(self.settings).load_or_build("kjv", kjv_verses())
        index_path, _ = cache_paths(self.cache_dir, "kjv")
        index_path.write_bytes(b"not a joblib file")
        with self.assertLogs("lampstand.engine", level="WARNING"):
            index = BibleEngine(self.settings).load_or_build("kjv", kjv_verses())
        self.assertEqual(index.verse_count, KJV_VERSE_COUNT)
        # the rebuilt index was written back
        reloaded = InvertedIndex.load(*cache_paths(self.cache_dir, "kjv"))
        self.assertEqual(reloaded.fingerprint, index.fingerprint)


class TestCreateEngine(EngineTestCase):

    def test_lazy_load_from_data_dir(self):
        write_corpus(self.data_dir, "kjv")
        write_corpus(self.data_dir, "asv", ASV_DAT)
        engine = create_engine(self.settings)
        self.assertEqual(engine.translations(), ["asv", "kjv"])
        self.assertEqual(engine.lookup("Gen 1:1")[0].reference, VerseReference(Book.GENESIS, 1, 1))
        self.assertEqual(len(engine.lookup("Ps 23", translation="ASV")), 1)

    def test_malformed_corpus_file(self):
        write_corpus(self.data_dir, "kjv", "not a verse line\n")
        engine = create_engine(self.settings)
        with self.assertRaises(IndexUnavailable):
            engine.lookup("Gen 1:1")

    def test_corpus_file_not_utf8(self):
        (self.data_dir / "kjv.dat").write_bytes(b"01001001 In the \xff beginning\n")
        engine = create_engine(self.settings)
        with self.assertRaises(IndexUnavailable):
            engine.lookup("Gen 1:1")

    def test_empty_data_dir(self):
        engine = create_engine(self.settings)
        with self.assertRaises(UnknownTranslation):
            engine.index()


if __name__ == "__main__":
    unittest.main()
