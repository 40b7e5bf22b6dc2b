"""
Merges reference lookups and ranked search hits into the single ordered
result list handed to the display layer.
"""

from typing import Iterable, List, Optional, Sequence

from .references import ordinal_span
from .utils.indexing import InvertedIndex
from .utils.types import Resolved, ScoredResult


def expand_reference(resolved: Resolved, index: InvertedIndex) -> List[ScoredResult]:
    """One result per verse of a resolved reference, in canonical order, score None."""
    start, end = ordinal_span(resolved, index)
    return [
        ScoredResult(reference=v.reference, text=v.text, score=None, rank=rank)
        for rank, v in enumerate(index.span(start, end), start=1)
    ]


def aggregate(
    index: InvertedIndex,
    resolved: Optional[Resolved] = None,
    ranked: Optional[Sequence[ScoredResult]] = None,
) -> List[ScoredResult]:
    """
    Build the final result list.

    Reference verses come first in canonical order, then ranked hits in
    the ranker's order. A verse already present is not repeated, and
    ranks are renumbered from 1.
    """
    parts: List[Iterable[ScoredResult]] = []
    if resolved is not None:
        parts.append(expand_reference(resolved, index))
    if ranked:
        parts.append(ranked)

    seen = set()
    merged: List[ScoredResult] = []
    for part in parts:
        for result in part:
            if result.reference in seen:
                continue
            seen.add(result.reference)
            merged.append(ScoredResult(
                reference=result.reference,
                text=result.text,
                score=result.score,
                rank=len(merged) + 1,
            ))
    return merged
