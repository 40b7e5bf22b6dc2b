"""
Tests for corpus loading.
"""

import json
import sys
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from fixture_corpus import KJV_VERSE_COUNT, kjv_verses, write_corpus

from lampstand.errors import CorpusFormatError
from lampstand.utils.book_mappings import Book
from lampstand.utils.loaders import (
    compute_coverage,
    corpus_fingerprint,
    discover_translations,
    load_corpus,
    load_verses,
    parse_dat_lines,
    save_verses,
)
from lampstand.utils.types import VerseReference


class TestDat(unittest.TestCase):

    def test_fixture(self):
        verses = kjv_verses()
        self.assertEqual(len(verses), KJV_VERSE_COUNT)
        self.assertEqual(verses[0].reference, VerseReference(Book.GENESIS, 1, 1))
        self.assertEqual(verses[0].text, "In the beginning God created the heaven and the earth.")

    def test_sorted_and_blank_lines_skipped(self):
        verses = parse_dat_lines(["43003016 For God so loved", "", "01001001 In the beginning"])
        self.assertEqual([v.book for v in verses], [Book.GENESIS, Book.JOHN])

    def test_bad_id(self):
        with self.assertRaises(CorpusFormatError) as ctx:
            parse_dat_lines(["01001001 ok", "0100100X bad"], source="x.dat")
        self.assertEqual(ctx.exception.line, 2)
        self.assertIn("x.dat:2", str(ctx.exception))

    def test_book_out_of_range(self):
        with self.assertRaises(CorpusFormatError):
            parse_dat_lines(["67001001 Apocrypha"])

    def test_zero_chapter(self):
        with self.assertRaises(CorpusFormatError):
            parse_dat_lines(["01000001 nothing"])

    def test_duplicate(self):
        with self.assertRaises(CorpusFormatError):
            parse_dat_lines(["01001001 one", "01001001 two"])


class TestFiles(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def test_json_names_and_numbers(self):
        path = self.dir / "web.json"
        path.write_text(json.dumps([
            {"book": "1 John", "chapter": 4, "verse": 8, "text": "God is love."},
            {"book": 1, "chapter": 1, "verse": 1, "text": "In the beginning."},
            {"book": "Gen", "chapter": 1, "verse": 2, "text": "And the earth."},
        ]), encoding="utf-8")
        verses = load_corpus(path)
        self.assertEqual(
            [v.reference for v in verses],
            [
                VerseReference(Book.GENESIS, 1, 1),
                VerseReference(Book.GENESIS, 1, 2),
                VerseReference(Book.JOHN_1, 4, 8),
            ],
        )

    def test_json_errors(self):
        path = self.dir / "bad.json"
        path.write_text("{", encoding="utf-8")
        with self.assertRaises(CorpusFormatError):
            load_verses(path)
        path.write_text(json.dumps({"book": 1}), encoding="utf-8")
        with self.assertRaises(CorpusFormatError):
            load_verses(path)
        path.write_text(json.dumps([{"book": "Nowhere", "chapter": 1, "verse": 1, "text": ""}]), encoding="utf-8")
        with self.assertRaises(CorpusFormatError):
            load_verses(path)
        path.write_text(json.dumps([{"book": 1, "chapter": 1}]), encoding="utf-8")
        with self.assertRaises(CorpusFormatError):
            load_verses(path)
        path.write_text(json.dumps([{"book": 1, "chapter": 0, "verse": 1, "text": ""}]), encoding="utf-8")
        with self.assertRaises(CorpusFormatError):
            load_verses(path)
        path.write_text(json.dumps([{"book": 1, "chapter": 1, "verse": -2, "text": ""}]), encoding="utf-8")
        with self.assertRaises(CorpusFormatError):
            load_verses(path)

    def test_invalid_utf8(self):
        dat = self.dir / "kjv.dat"
        dat.write_bytes(b"01001001 In the \xff beginning\n")
        with self.assertRaises(CorpusFormatError):
            load_corpus(dat)
        js = self.dir / "kjv.json"
        js.write_bytes(b'[{"book": 1, "chapter": 1, "verse": 1, "text": "\xff"}]')
        with self.assertRaises(CorpusFormatError):
            load_corpus(js)

    def test_save_then_load(self):
        path = self.dir / "kjv.json"
        save_verses(kjv_verses(), path)
        self.assertEqual(corpus_fingerprint(load_verses(path)), corpus_fingerprint(kjv_verses()))

    def test_unsupported_suffix(self):
        path = self.dir / "kjv.txt"
        path.write_text("", encoding="utf-8")
        with self.assertRaises(CorpusFormatError):
            load_corpus(path)

    def test_discover(self):
        write_corpus(self.dir, "kjv")
        (self.dir / "ASV.json").write_text("[]", encoding="utf-8")
        (self.dir / "notes.txt").write_text("", encoding="utf-8")
        found = discover_translations(self.dir)
        self.assertEqual(sorted(found), ["asv", "kjv"])
        self.assertEqual(len(load_corpus(found["kjv"])), KJV_VERSE_COUNT)
        self.assertEqual(discover_translations(self.dir / "missing"), {})


class TestCoverage(unittest.TestCase):

    def test_counts(self):
        coverage = compute_coverage(kjv_verses())
        self.assertEqual(list(coverage), [Book.GENESIS, Book.PSALMS, Book.JOHN, Book.JOHN_1, Book.REVELATION])
        genesis = coverage[Book.GENESIS]
        self.assertEqual(genesis["name"], "Genesis")
        self.assertEqual(genesis["chapter_count"], 2)
        self.assertEqual(genesis["total_verses"], 9)
        self.assertEqual(genesis["last_verse"], {1: 31, 2: 3})


if __name__ == "__main__":
    unittest.main()
