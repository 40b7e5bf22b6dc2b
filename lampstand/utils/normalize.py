"""
Text normalization shared by index build and query planning.

Both sides must go through the same Normalizer instance (or one with
identical options); the index records its options and the cache treats
a difference as stale.
"""

import re
import unicodedata
from dataclasses import asdict, dataclass
from typing import Dict, List, Tuple

from .types import Token

# Words that carry no retrieval signal in English Bible text.
STOPWORDS = frozenset(
    """
    a an and are as at be but by for from he her him his i in is it its me my
    not of on or our she so that the their them then there these they this
    those to unto us was we were which who whom will with ye you your
    """.split()
)

_WORD_RE = re.compile(r"[^\W_]+(?:['’][^\W_]+)*")

_SUFFIXES = ("ings", "ing", "edst", "eth", "est", "ed", "ies", "es", "s")
_MIN_STEM = 3


def stem(term: str) -> str:
    """
    Light suffix stripping, tuned for archaic English verb endings.

    loveth, lovest, loved, loves, loving and love all reduce to "lov".
    """
    if term.endswith("'s"):
        term = term[:-2]
    for suffix in _SUFFIXES:
        if not term.endswith(suffix) or len(term) - len(suffix) < _MIN_STEM:
            continue
        if suffix == "s" and term.endswith(("ss", "us", "is")):
            break
        base = term[: -len(suffix)]
        if suffix == "ies":
            base += "y"
        return base
    if term.endswith("e") and len(term) > _MIN_STEM:
        return term[:-1]
    return term


@dataclass(frozen=True)
class Normalizer:
    """
    Turns raw text into normalized tokens.

    Case-folds, strips punctuation (keeping intra-word apostrophes),
    optionally folds diacritics, drops stopwords and stems.
    """
    stemming: bool = False
    fold_diacritics: bool = True
    drop_stopwords: bool = True

    def _fold(self, text: str) -> str:
        text = text.casefold()
        if self.fold_diacritics:
            text = unicodedata.normalize("NFKD", text)
            text = "".join(ch for ch in text if not unicodedata.combining(ch))
        return text.replace("’", "'")

    def tokenize(self, text: str) -> List[Token]:
        tokens: List[Token] = []
        for position, match in enumerate(_WORD_RE.finditer(self._fold(text))):
            word = match.group(0)
            if self.drop_stopwords and word in STOPWORDS:
                continue
            if self.stemming:
                word = stem(word)
            tokens.append(Token(word, position))
        return tokens

    def terms(self, text: str) -> List[str]:
        return [t.text for t in self.tokenize(text)]

    def query_terms(self, text: str) -> Tuple[str, ...]:
        """Distinct terms of a query, in first-occurrence order."""
        return tuple(dict.fromkeys(self.terms(text)))

    def options(self) -> Dict[str, bool]:
        return asdict(self)
