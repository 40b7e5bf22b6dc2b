"""
Canonical book list and the static alias table.

Books are numbered 1-66 in canonical (Protestant) order; the number is
also the book field of the .dat corpus format.
"""

import re
from enum import IntEnum
from typing import Dict, Tuple


class Book(IntEnum):
    GENESIS = 1
    EXODUS = 2
    LEVITICUS = 3
    NUMBERS = 4
    DEUTERONOMY = 5
    JOSHUA = 6
    JUDGES = 7
    RUTH = 8
    SAMUEL_1 = 9
    SAMUEL_2 = 10
    KINGS_1 = 11
    KINGS_2 = 12
    CHRONICLES_1 = 13
    CHRONICLES_2 = 14
    EZRA = 15
    NEHEMIAH = 16
    ESTHER = 17
    JOB = 18
    PSALMS = 19
    PROVERBS = 20
    ECCLESIASTES = 21
    SONG_OF_SONGS = 22
    ISAIAH = 23
    JEREMIAH = 24
    LAMENTATIONS = 25
    EZEKIEL = 26
    DANIEL = 27
    HOSEA = 28
    JOEL = 29
    AMOS = 30
    OBADIAH = 31
    JONAH = 32
    MICAH = 33
    NAHUM = 34
    HABAKKUK = 35
    ZEPHANIAH = 36
    HAGGAI = 37
    ZECHARIAH = 38
    MALACHI = 39
    MATTHEW = 40
    MARK = 41
    LUKE = 42
    JOHN = 43
    ACTS = 44
    ROMANS = 45
    CORINTHIANS_1 = 46
    CORINTHIANS_2 = 47
    GALATIANS = 48
    EPHESIANS = 49
    PHILIPPIANS = 50
    COLOSSIANS = 51
    THESSALONIANS_1 = 52
    THESSALONIANS_2 = 53
    TIMOTHY_1 = 54
    TIMOTHY_2 = 55
    TITUS = 56
    PHILEMON = 57
    HEBREWS = 58
    JAMES = 59
    PETER_1 = 60
    PETER_2 = 61
    JOHN_1 = 62
    JOHN_2 = 63
    JOHN_3 = 64
    JUDE = 65
    REVELATION = 66

    @property
    def display_name(self) -> str:
        return BOOK_NAMES[self]

    @property
    def slug(self) -> str:
        return fold_book_name(BOOK_NAMES[self])

    def __str__(self) -> str:
        return self.display_name

    def __format__(self, format_spec: str) -> str:
        return format(self.display_name, format_spec)


BOOK_NAMES: Dict[Book, str] = {
    Book.GENESIS: "Genesis",
    Book.EXODUS: "Exodus",
    Book.LEVITICUS: "Leviticus",
    Book.NUMBERS: "Numbers",
    Book.DEUTERONOMY: "Deuteronomy",
    Book.JOSHUA: "Joshua",
    Book.JUDGES: "Judges",
    Book.RUTH: "Ruth",
    Book.SAMUEL_1: "1 Samuel",
    Book.SAMUEL_2: "2 Samuel",
    Book.KINGS_1: "1 Kings",
    Book.KINGS_2: "2 Kings",
    Book.CHRONICLES_1: "1 Chronicles",
    Book.CHRONICLES_2: "2 Chronicles",
    Book.EZRA: "Ezra",
    Book.NEHEMIAH: "Nehemiah",
    Book.ESTHER: "Esther",
    Book.JOB: "Job",
    Book.PSALMS: "Psalms",
    Book.PROVERBS: "Proverbs",
    Book.ECCLESIASTES: "Ecclesiastes",
    Book.SONG_OF_SONGS: "Song of Songs",
    Book.ISAIAH: "Isaiah",
    Book.JEREMIAH: "Jeremiah",
    Book.LAMENTATIONS: "Lamentations",
    Book.EZEKIEL: "Ezekiel",
    Book.DANIEL: "Daniel",
    Book.HOSEA: "Hosea",
    Book.JOEL: "Joel",
    Book.AMOS: "Amos",
    Book.OBADIAH: "Obadiah",
    Book.JONAH: "Jonah",
    Book.MICAH: "Micah",
    Book.NAHUM: "Nahum",
    Book.HABAKKUK: "Habakkuk",
    Book.ZEPHANIAH: "Zephaniah",
    Book.HAGGAI: "Haggai",
    Book.ZECHARIAH: "Zechariah",
    Book.MALACHI: "Malachi",
    Book.MATTHEW: "Matthew",
    Book.MARK: "Mark",
    Book.LUKE: "Luke",
    Book.JOHN: "John",
    Book.ACTS: "Acts",
    Book.ROMANS: "Romans",
    Book.CORINTHIANS_1: "1 Corinthians",
    Book.CORINTHIANS_2: "2 Corinthians",
    Book.GALATIANS: "Galatians",
    Book.EPHESIANS: "Ephesians",
    Book.PHILIPPIANS: "Philippians",
    Book.COLOSSIANS: "Colossians",
    Book.THESSALONIANS_1: "1 Thessalonians",
    Book.THESSALONIANS_2: "2 Thessalonians",
    Book.TIMOTHY_1: "1 Timothy",
    Book.TIMOTHY_2: "2 Timothy",
    Book.TITUS: "Titus",
    Book.PHILEMON: "Philemon",
    Book.HEBREWS: "Hebrews",
    Book.JAMES: "James",
    Book.PETER_1: "1 Peter",
    Book.PETER_2: "2 Peter",
    Book.JOHN_1: "1 John",
    Book.JOHN_2: "2 John",
    Book.JOHN_3: "3 John",
    Book.JUDE: "Jude",
    Book.REVELATION: "Revelation",
}

# Abbreviations in addition to the display name. Numbered books list the
# bare stem only; the numeric prefix is added when the table is built.
_ABBREVIATIONS: Dict[Book, Tuple[str, ...]] = {
    Book.GENESIS: ("Gen", "Ge", "Gn"),
    Book.EXODUS: ("Exod", "Exo", "Ex"),
    Book.LEVITICUS: ("Lev", "Le", "Lv"),
    Book.NUMBERS: ("Num", "Nu", "Nm", "Nb"),
    Book.DEUTERONOMY: ("Deut", "Deu", "Dt"),
    Book.JOSHUA: ("Josh", "Jos", "Jsh"),
    Book.JUDGES: ("Judg", "Jdg", "Jg", "Jdgs"),
    Book.RUTH: ("Rth", "Ru"),
    Book.SAMUEL_1: ("Sam", "Sa", "Sm"),
    Book.SAMUEL_2: ("Sam", "Sa", "Sm"),
    Book.KINGS_1: ("Kgs", "Ki", "Kin"),
    Book.KINGS_2: ("Kgs", "Ki", "Kin"),
    Book.CHRONICLES_1: ("Chr", "Chron", "Ch"),
    Book.CHRONICLES_2: ("Chr", "Chron", "Ch"),
    Book.EZRA: ("Ezr",),
    Book.NEHEMIAH: ("Neh", "Ne"),
    Book.ESTHER: ("Esth", "Est", "Es"),
    Book.JOB: ("Jb",),
    Book.PSALMS: ("Ps", "Psa", "Psalm", "Pss", "Psm"),
    Book.PROVERBS: ("Prov", "Pro", "Prv", "Pr"),
    Book.ECCLESIASTES: ("Eccl", "Ecc", "Ec", "Qoh", "Qoheleth"),
    Book.SONG_OF_SONGS: ("Song", "Songs", "Song of Solomon", "SOS", "Canticles", "Cant", "Sg"),
    Book.ISAIAH: ("Isa", "Is"),
    Book.JEREMIAH: ("Jer", "Je", "Jr"),
    Book.LAMENTATIONS: ("Lam", "La"),
    Book.EZEKIEL: ("Ezek", "Eze", "Ezk"),
    Book.DANIEL: ("Dan", "Da", "Dn"),
    Book.HOSEA: ("Hos", "Ho"),
    Book.JOEL: ("Jl",),
    Book.AMOS: ("Am",),
    Book.OBADIAH: ("Obad", "Ob"),
    Book.JONAH: ("Jnh",),
    Book.MICAH: ("Mic", "Mc"),
    Book.NAHUM: ("Nah", "Na"),
    Book.HABAKKUK: ("Hab", "Hb"),
    Book.ZEPHANIAH: ("Zeph", "Zep", "Zp"),
    Book.HAGGAI: ("Hag", "Hg"),
    Book.ZECHARIAH: ("Zech", "Zec", "Zc"),
    Book.MALACHI: ("Mal", "Ml"),
    Book.MATTHEW: ("Matt", "Mat", "Mt"),
    Book.MARK: ("Mrk", "Mk", "Mr"),
    Book.LUKE: ("Luk", "Lk"),
    Book.JOHN: ("Jhn", "Jn"),
    Book.ACTS: ("Act", "Ac"),
    Book.ROMANS: ("Rom", "Ro", "Rm"),
    Book.CORINTHIANS_1: ("Cor", "Co"),
    Book.CORINTHIANS_2: ("Cor", "Co"),
    Book.GALATIANS: ("Gal", "Ga"),
    Book.EPHESIANS: ("Eph", "Ephes"),
    Book.PHILIPPIANS: ("Phil", "Php", "Pp"),
    Book.COLOSSIANS: ("Col",),
    Book.THESSALONIANS_1: ("Thess", "Thes", "Th"),
    Book.THESSALONIANS_2: ("Thess", "Thes", "Th"),
    Book.TIMOTHY_1: ("Tim", "Ti"),
    Book.TIMOTHY_2: ("Tim", "Ti"),
    Book.TITUS: ("Tit",),
    Book.PHILEMON: ("Philem", "Phm", "Phlm"),
    Book.HEBREWS: ("Heb",),
    Book.JAMES: ("Jas", "Jm"),
    Book.PETER_1: ("Pet", "Pe", "Pt"),
    Book.PETER_2: ("Pet", "Pe", "Pt"),
    Book.JOHN_1: ("John", "Jn", "Jhn", "Jo"),
    Book.JOHN_2: ("John", "Jn", "Jhn", "Jo"),
    Book.JOHN_3: ("John", "Jn", "Jhn", "Jo"),
    Book.JUDE: ("Jud", "Jd"),
    Book.REVELATION: ("Rev", "Re", "Revelations", "Apocalypse"),
}

_ORDINAL_PREFIX_RE = re.compile(r"^(iii|ii|i|first|second|third|1st|2nd|3rd)\s+")
_ORDINALS = {
    "i": "1", "first": "1", "1st": "1",
    "ii": "2", "second": "2", "2nd": "2",
    "iii": "3", "third": "3", "3rd": "3",
}
_NUMBERED_RE = re.compile(r"^([123])\s*(\D.*)$")


def fold_book_name(text: str) -> str:
    """Case-fold a book name and strip everything that does not identify it."""
    text = text.casefold().replace(".", " ").strip()
    text = _ORDINAL_PREFIX_RE.sub(lambda m: _ORDINALS[m.group(1)] + " ", text)
    return re.sub(r"\s+", "", text)


def _numbered_prefix(book: Book) -> str:
    match = _NUMBERED_RE.match(BOOK_NAMES[book])
    return match.group(1) if match else ""


def _build_alias_tables() -> Tuple[Dict[str, Book], Dict[str, Book]]:
    exact: Dict[str, Book] = {}
    folded: Dict[str, Book] = {}
    for book in Book:
        prefix = _numbered_prefix(book)
        names = [BOOK_NAMES[book]]
        for abbrev in _ABBREVIATIONS[book]:
            if prefix:
                names.extend([f"{prefix} {abbrev}", f"{prefix}{abbrev}"])
            else:
                names.append(abbrev)
        for name in names:
            key = fold_book_name(name)
            owner = folded.setdefault(key, book)
            if owner is not book:
                raise ValueError(f"alias {name!r} claimed by {owner.name} and {book.name}")
            exact.setdefault(name, book)
    return exact, folded


# Built once at import and never mutated.
BOOK_ALIASES, BOOK_ALIASES_FOLDED = _build_alias_tables()
