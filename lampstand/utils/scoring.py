import math
from typing import Sequence

import numpy as np
from rank_bm25 import BM25

DEFAULT_K1 = 1.2
DEFAULT_B = 0.75


class VerseBM25(BM25):
    """
    Okapi BM25 over tokenized verses.

    BM25Okapi floors negative idf values at epsilon * average_idf, which is
    itself negative on small corpora where most terms are common. This
    variant uses the Lucene idf, log(1 + (N - n + 0.5) / (n + 0.5)), which
    is positive for every document frequency n <= N, so an extra matching
    term can never lower a verse's score.
    """

    def __init__(self, corpus: Sequence[Sequence[str]], k1: float = DEFAULT_K1, b: float = DEFAULT_B):
        if k1 < 0:
            raise ValueError("k1 must be >= 0")
        if not 0.0 <= b <= 1.0:
            raise ValueError("b must be in [0, 1]")
        self.k1 = k1
        self.b = b
        super().__init__(corpus)
        # Per-verse term counts already live in the index postings.
        self.doc_freqs = []
        self._doc_len = np.asarray(self.doc_len, dtype=np.float64)

    @property
    def total_terms(self) -> int:
        return int(self._doc_len.sum())

    def _calc_idf(self, nd):
        for word, freq in nd.items():
            self.idf[word] = math.log(1.0 + (self.corpus_size - freq + 0.5) / (freq + 0.5))

    def _length_norm(self, doc_len: np.ndarray) -> np.ndarray:
        avgdl = self.avgdl or 1.0
        return self.k1 * (1.0 - self.b + self.b * doc_len / avgdl)

    def weigh(self, term: str, ordinals: np.ndarray, tfs: np.ndarray) -> np.ndarray:
        """Score contribution of one term to each verse in its postings."""
        idf = self.idf.get(term, 0.0)
        tfs = tfs.astype(np.float64, copy=False)
        return idf * tfs * (self.k1 + 1.0) / (tfs + self._length_norm(self._doc_len[ordinals]))
