from __future__ import annotations

import hashlib
import json
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Union

from ..errors import CorpusFormatError
from .book_mappings import BOOK_ALIASES_FOLDED, Book, fold_book_name
from .types import Verse

CORPUS_SUFFIXES = (".dat", ".json")


def _book_from_field(value: Union[int, str], source: str, line: int) -> Book:
    if isinstance(value, int) or (isinstance(value, str) and value.strip().isdigit()):
        try:
            return Book(int(value))
        except ValueError:
            raise CorpusFormatError(f"book number out of range: {value}", source, line) from None
    book = BOOK_ALIASES_FOLDED.get(fold_book_name(str(value)))
    if book is None:
        raise CorpusFormatError(f"unknown book: {value!r}", source, line)
    return book


def _sorted_unique(verses: List[Verse], source: str) -> List[Verse]:
    verses.sort(key=lambda v: (v.book, v.chapter, v.verse))
    for prev, cur in zip(verses, verses[1:]):
        if prev.reference == cur.reference:
            raise CorpusFormatError(f"duplicate verse {cur.reference}", source)
    return verses


def parse_dat_lines(lines: Iterable[str], source: str = "<dat>") -> List[Verse]:
    """
    Parse `BBCCCVVV text` records (book, chapter, verse zero-padded).

    Blank lines are skipped; anything else that does not fit is an error.
    """
    verses: List[Verse] = []
    for lineno, line in enumerate(lines, start=1):
        line = line.rstrip("\r\n")
        if not line.strip():
            continue
        head, _, text = line.partition(" ")
        if len(head) != 8 or not head.isdigit():
            raise CorpusFormatError(f"bad verse id {head[:12]!r}", source, lineno)
        chapter, verse = int(head[2:5]), int(head[5:8])
        if chapter < 1 or verse < 1:
            raise CorpusFormatError(f"chapter and verse must be >= 1 in {head}", source, lineno)
        verses.append(
            Verse(
                book=_book_from_field(head[:2], source, lineno),
                chapter=chapter,
                verse=verse,
                text=text.strip(),
            )
        )
    return _sorted_unique(verses, source)


def load_dat(path: str | Path) -> List[Verse]:
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as f:
            return parse_dat_lines(f, source=str(p))
    except UnicodeDecodeError as e:
        raise CorpusFormatError(f"invalid UTF-8: {e}", str(p)) from e


def load_verses(path: str | Path) -> List[Verse]:
    """Load a flat JSON list of {book, chapter, verse, text} records."""
    p = Path(path)
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except UnicodeDecodeError as e:
        raise CorpusFormatError(f"invalid UTF-8: {e}", str(p)) from e
    except json.JSONDecodeError as e:
        raise CorpusFormatError(f"invalid JSON: {e}", str(p)) from e
    if not isinstance(raw, list):
        raise CorpusFormatError("expected a list of verse records", str(p))
    verses: List[Verse] = []
    for i, v in enumerate(raw, start=1):
        try:
            chapter, verse = int(v["chapter"]), int(v["verse"])
            if chapter < 1 or verse < 1:
                raise CorpusFormatError(f"chapter and verse must be >= 1, got {chapter}:{verse}", str(p), i)
            verses.append(
                Verse(
                    book=_book_from_field(v["book"], str(p), i),
                    chapter=chapter,
                    verse=verse,
                    text=str(v["text"]).strip(),
                )
            )
        except CorpusFormatError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise CorpusFormatError(f"bad record: {e}", str(p), i) from e
    return _sorted_unique(verses, str(p))


def load_corpus(path: str | Path) -> List[Verse]:
    p = Path(path)
    if p.suffix == ".dat":
        return load_dat(p)
    if p.suffix == ".json":
        return load_verses(p)
    raise CorpusFormatError(f"unsupported corpus format {p.suffix!r}", str(p))


def save_verses(verses: Sequence[Verse], path: str | Path) -> None:
    p = Path(path)
    data = []
    for v in verses:
        data.append(
            {
                "book": int(v.book),
                "chapter": v.chapter,
                "verse": v.verse,
                "text": v.text,
            }
        )
    p.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def discover_translations(data_dir: str | Path) -> Dict[str, Path]:
    """Map translation id (file stem, lower-cased) to corpus file."""
    found: Dict[str, Path] = {}
    d = Path(data_dir)
    if not d.is_dir():
        return found
    for p in sorted(d.iterdir()):
        if p.suffix in CORPUS_SUFFIXES and p.is_file():
            found.setdefault(p.stem.lower(), p)
    return found


def corpus_fingerprint(verses: Sequence[Verse]) -> str:
    h = hashlib.sha256()
    for v in verses:
        h.update(f"{int(v.book)}\t{v.chapter}\t{v.verse}\t{v.text}\n".encode("utf-8"))
    return h.hexdigest()


def compute_coverage(verses: Sequence[Verse]) -> Dict[Book, dict]:
    """Per-book chapter and verse counts, in canonical book order."""
    by_book: Dict[Book, List[Verse]] = defaultdict(list)
    for v in verses:
        by_book[v.book].append(v)

    coverage: Dict[Book, dict] = {}
    for book in sorted(by_book):
        lst = by_book[book]
        chapters: Dict[int, int] = defaultdict(int)
        for v in lst:
            chapters[v.chapter] = max(chapters[v.chapter], v.verse)
        coverage[book] = {
            "name": book.display_name,
            "chapters_present": sorted(chapters),
            "last_verse": dict(sorted(chapters.items())),
            "chapter_count": len(chapters),
            "total_verses": len(lst),
        }
    return coverage
