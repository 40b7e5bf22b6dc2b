"""
Tests for the command-line adapter.
"""

import io
import os
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from fixture_corpus import ASV_DAT, write_corpus

from lampstand.main import main


class TestCLI(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        root = Path(self.tmp.name)
        data_dir = root / "data"
        data_dir.mkdir()
        write_corpus(data_dir, "kjv")
        write_corpus(data_dir, "asv", ASV_DAT)
        env = {k: v for k, v in os.environ.items() if not k.startswith("LAMPSTAND_")}
        env.update({
            "LAMPSTAND_DATA_DIR": str(data_dir),
            "LAMPSTAND_CACHE_DIR": str(root / "cache"),
        })
        self.env = patch.dict(os.environ, env, clear=True)
        self.env.start()

    def tearDown(self):
        self.env.stop()
        self.tmp.cleanup()

    def run_cli(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def test_reference(self):
        code, out, _ = self.run_cli("John", "3:16")
        self.assertEqual(code, 0)
        self.assertTrue(out.startswith("John 3:16  For God so loved the world"))

    def test_range_with_urls(self):
        code, out, _ = self.run_cli("Gen", "1:1-2", "--url")
        self.assertEqual(code, 0)
        lines = out.splitlines()
        self.assertEqual(len(lines), 4)
        self.assertEqual(lines[1].strip(), "https://biblia.com/bible/kjv/genesis/1/1")

    def test_translation_flags(self):
        code, out, _ = self.run_cli("--asv", "Ps", "23:1")
        self.assertEqual(code, 0)
        self.assertIn("Jehovah is my shepherd", out)
        code, out, _ = self.run_cli("-t", "KJV", "Ps", "23:1")
        self.assertIn("The LORD is my shepherd", out)

    def test_search(self):
        code, out, _ = self.run_cli("search", "-l", "2", "love", "one", "another")
        self.assertEqual(code, 0)
        lines = out.splitlines()
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].lstrip().startswith("1. 1 John 4:"))

    def test_search_no_hits(self):
        code, out, _ = self.run_cli("search", "xyzzy")
        self.assertEqual(code, 0)
        self.assertEqual(out.strip(), "No matching verses.")

    def test_search_book_filter(self):
        code, out, _ = self.run_cli("search", "God", "--book", "Gen", "-l", "50")
        self.assertEqual(code, 0)
        self.assertTrue(all(" Genesis " in line for line in out.splitlines()))

    def test_books(self):
        code, out, _ = self.run_cli("books")
        self.assertEqual(code, 0)
        names = [line.split()[0] for line in out.splitlines()]
        self.assertEqual(names, ["Genesis", "Psalms", "John", "1", "Revelation"])

    def test_errors(self):
        code, out, err = self.run_cli("Ddd", "1:1")
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("book not found: Ddd", err)

        code, _, err = self.run_cli("search", "   ")
        self.assertEqual(code, 1)
        self.assertIn("empty", err)

        code, _, err = self.run_cli("--translation", "web", "John", "3:16")
        self.assertEqual(code, 1)
        self.assertIn("unknown translation: web", err)

    def test_index_unavailable_exit_code(self):
        write_corpus(Path(os.environ["LAMPSTAND_DATA_DIR"]), "bad", "garbage\n")
        code, _, err = self.run_cli("-t", "bad", "Gen", "1:1")
        self.assertEqual(code, 2)
        self.assertIn("index unavailable", err)
        (Path(os.environ["LAMPSTAND_DATA_DIR"]) / "latin.dat").write_bytes(b"01001001 In \xff principio\n")
        code, _, err = self.run_cli("-t", "latin", "Gen", "1:1")
        self.assertEqual(code, 2)
        self.assertIn("invalid UTF-8", err)

    def test_no_arguments(self):
        code, _, err = self.run_cli()
        self.assertEqual(code, 1)
        self.assertIn("usage", err)


if __name__ == "__main__":
    unittest.main()
