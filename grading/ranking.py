"""
Rank and percentile for the closed attempts of one exam.

Competition ranking ("1224") on percentage, highest first. Percentile is the
share of the other closed attempts that scored strictly lower.
"""

from typing import Dict, List, NamedTuple


class RankEntry(NamedTuple):
    attempt_id: int
    percentage: float


class RankResult(NamedTuple):
    rank: int
    percentile: float


def assign_ranks(entries: List[RankEntry]) -> Dict[int, RankResult]:
    """
    Args:
        entries: One entry per closed attempt of an exam

    Returns:
        attempt_id → RankResult
    """
    ordered = sorted(entries, key=lambda e: e.percentage, reverse=True)
    total = len(ordered)
    results: Dict[int, RankResult] = {}

    for position, entry in enumerate(ordered):
        if position and entry.percentage == ordered[position - 1].percentage:
            rank = results[ordered[position - 1].attempt_id].rank
        else:
            rank = position + 1
        below = sum(1 for other in ordered if other.percentage < entry.percentage)
        percentile = (below / (total - 1)) * 100 if total > 1 else 100.0
        results[entry.attempt_id] = RankResult(rank=rank, percentile=percentile)

    return results
