"""
Free-text search over one translation.
Plans a query into index terms and ranks verses with BM25.
"""

import logging
from typing import Dict, List, Optional, Set, Tuple

import numpy as np

from .errors import EmptyQuery, InvalidLimit
from .utils.indexing import InvertedIndex
from .utils.types import Query, ScoredResult

logger = logging.getLogger(__name__)

# A later query term counts as "near" an earlier one if it follows
# within this many word positions (stopwords included).
PHRASE_WINDOW = 3


class BibleSearch:
    """
    Query planner and ranker for one translation's index.

    Scores accumulate term by term from the postings lists; terms missing
    from the vocabulary are dropped during planning. phrase_boost adds a
    fixed bonus for each pair of consecutive query terms found near each
    other in a verse (0 disables it).
    """

    def __init__(self, index: InvertedIndex, phrase_boost: float = 0.0):
        if phrase_boost < 0:
            raise ValueError("phrase_boost must be >= 0")
        self.index = index
        self.phrase_boost = phrase_boost

    def plan(self, query: str) -> Query:
        if query is None or not query.strip():
            raise EmptyQuery()
        terms = self.index.normalizer.query_terms(query)
        usable = tuple(t for t in terms if t in self.index)
        logger.debug("Planned %r -> terms=%s usable=%s", query, terms, usable)
        return Query(translation=self.index.translation, raw=query, terms=terms, usable=usable)

    def _phrase_bonus(self, query: Query, scores: np.ndarray) -> None:
        for first, second in zip(query.usable, query.usable[1:]):
            following: Dict[int, Set[int]] = {
                p.ordinal: set(p.positions) for p in self.index.postings(second)
            }
            for posting in self.index.postings(first):
                later = following.get(posting.ordinal)
                if not later:
                    continue
                if any(pos + gap in later for pos in posting.positions for gap in range(1, PHRASE_WINDOW + 1)):
                    scores[posting.ordinal] += self.phrase_boost

    def score(
        self,
        query: Query,
        span: Optional[Tuple[int, int]] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Candidate ordinals (ascending) and their scores.

        Only verses containing at least one usable term are candidates;
        span restricts them to an inclusive ordinal range.
        """
        if not query.usable:
            return np.zeros(0, dtype=np.int64), np.zeros(0)

        scorer = self.index.scorer
        scores = np.zeros(self.index.verse_count)
        touched = []
        for term in query.usable:
            ords, tfs = self.index.posting_arrays(term)
            scores[ords] += scorer.weigh(term, ords, tfs)
            touched.append(ords)
        if self.phrase_boost and len(query.usable) > 1:
            self._phrase_bonus(query, scores)

        candidates = np.unique(np.concatenate(touched))
        if span is not None:
            lo, hi = span
            candidates = candidates[(candidates >= lo) & (candidates <= hi)]
        return candidates, scores[candidates]

    def search_keyword(
        self,
        query: str,
        top_k: int = 10,
        span: Optional[Tuple[int, int]] = None,
    ) -> List[ScoredResult]:
        """
        Return the top_k verses for a free-text query.

        Ordered by score descending, ties by canonical verse order. A query
        with no terms in the vocabulary returns an empty list.
        """
        if top_k < 1:
            raise InvalidLimit(top_k)
        planned = self.plan(query)
        candidates, cand_scores = self.score(planned, span=span)
        if candidates.size == 0:
            return []

        # lexsort: last key is primary
        order = np.lexsort((candidates, -cand_scores))[:top_k]
        results: List[ScoredResult] = []
        for rank, i in enumerate(order, start=1):
            verse = self.index.verse_at(int(candidates[i]))
            results.append(ScoredResult(
                reference=verse.reference,
                text=verse.text,
                score=float(cand_scores[i]),
                rank=rank,
            ))
        return results
