"""Filtering, sorting and pagination over a computed leaderboard.

All functions are pure: they take entries (or a whole leaderboard) and return
new values. Positions are always reassigned 1..N on the final list.
"""

from typing import Iterable, Optional

from judgeboard.schemas import (
    Leaderboard,
    LeaderboardEntry,
    LeaderboardFilter,
    LeaderboardSort,
    LeaderboardSortField,
)


def matches(entry: LeaderboardEntry, criteria: LeaderboardFilter) -> bool:
    if criteria.min_score is not None and entry.average_score < criteria.min_score:
        return False
    if criteria.max_score is not None and entry.average_score > criteria.max_score:
        return False
    if criteria.min_submissions is not None and entry.submission_count < criteria.min_submissions:
        return False
    if criteria.team_ids is not None and entry.entity_id not in criteria.team_ids:
        return False
    return True


def apply_filter(entries: Iterable[LeaderboardEntry], criteria: LeaderboardFilter) -> list[LeaderboardEntry]:
    """Keep entries passing every predicate; ``top_n`` cuts the survivors last."""
    kept = [entry for entry in entries if matches(entry, criteria)]
    if criteria.top_n is not None:
        kept = kept[: criteria.top_n]
    return kept


_SORT_KEYS = {
    LeaderboardSortField.AVERAGE_SCORE: lambda e: e.average_score,
    LeaderboardSortField.TOTAL_SCORE: lambda e: e.total_score,
    LeaderboardSortField.SUBMISSION_COUNT: lambda e: e.submission_count,
    LeaderboardSortField.DISPLAY_NAME: lambda e: e.display_name,
}


def apply_sort(entries: Iterable[LeaderboardEntry], order: LeaderboardSort) -> list[LeaderboardEntry]:
    # sorted() is stable in both directions, so equal keys keep base order
    return sorted(entries, key=_SORT_KEYS[order.field], reverse=not order.ascending)


def paginate(
    entries: list[LeaderboardEntry], limit: Optional[int] = None, offset: Optional[int] = None
) -> list[LeaderboardEntry]:
    if (limit is not None and limit < 0) or (offset is not None and offset < 0):
        raise ValueError("limit and offset must be non-negative")
    start = offset or 0
    end = start + limit if limit is not None else None
    return entries[start:end]


def rerank(entries: Iterable[LeaderboardEntry]) -> list[LeaderboardEntry]:
    return [entry.model_copy(update={"position": i}) for i, entry in enumerate(entries, start=1)]


def refine(
    base: Leaderboard,
    filter: Optional[LeaderboardFilter] = None,
    sort: Optional[LeaderboardSort] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> Leaderboard:
    """Filter, sort, paginate and re-rank ``base`` into a new leaderboard."""
    entries = list(base.entries)
    if filter is not None:
        entries = apply_filter(entries, filter)
    if sort is not None:
        entries = apply_sort(entries, sort)
    entries = rerank(paginate(entries, limit=limit, offset=offset))

    metadata = {
        **base.metadata,
        "filtered": filter is not None,
        "sorted": sort is not None,
        "total_entries": len(base.entries),
        "filtered_entries": len(entries),
    }
    return base.model_copy(update={"entries": entries, "metadata": metadata})
