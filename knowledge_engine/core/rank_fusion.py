"""
Reciprocal Rank Fusion.

Combines ranked lists from retrieval methods whose raw scores are not
comparable (ts_rank vs. cosine distance). Each id earns weight / (k + rank + 1)
per list it appears in, with zero-based rank; contributions are summed.

Dependencies: None
System role: Fusion step of hybrid search
"""

from typing import Hashable, Sequence, TypeVar

DEFAULT_RRF_K = 60

IdT = TypeVar("IdT", bound=Hashable)


def reciprocal_rank_fusion(
    runs: Sequence[Sequence[IdT]],
    k: int = DEFAULT_RRF_K,
    weights: Sequence[float] | None = None,
) -> list[tuple[IdT, float]]:
    """
    Fuse multiple ranked lists using Reciprocal Rank Fusion.

    Args:
        runs: Ranked id lists, best first
        k: RRF constant; larger values flatten the rank curve
        weights: Optional per-run multipliers, same length as runs

    Returns:
        list[tuple]: (id, score) pairs sorted by descending score. The sort is
        stable, so ties keep first-seen order.

    Raises:
        ValueError: When k is not positive or weights do not match runs
    """
    if k <= 0:
        raise ValueError("k must be positive")
    if weights is not None and len(weights) != len(runs):
        raise ValueError("Length of weights must match number of runs")
    if not runs:
        return []

    if weights is None:
        weights = [1.0] * len(runs)

    scores: dict[IdT, float] = {}
    for weight, run in zip(weights, runs):
        for rank, doc_id in enumerate(run):
            scores[doc_id] = scores.get(doc_id, 0.0) + weight / (k + rank + 1)

    return sorted(scores.items(), key=lambda item: item[1], reverse=True)
