"""Sorting, pagination and tag suggestions for result sets."""

import math
from collections import Counter
from dataclasses import dataclass

from marksearch.models.search import ScoredResult


@dataclass
class Page:
    """One page of results plus pagination totals."""

    items: list[ScoredResult]
    total: int
    page: int
    total_pages: int


def sort_results(results: list[ScoredResult], sort_by: str) -> list[ScoredResult]:
    """Order results by the requested policy.

    ``relevance`` keeps the engine's order, ``date`` is newest first with a
    missing createdAt treated as oldest, ``title`` is ascending and
    case-insensitive with a missing title sorting as "". All sorts are
    stable.
    """
    if sort_by == "date":
        return sorted(results, key=lambda r: r.item.created_at or 0, reverse=True)
    if sort_by == "title":
        return sorted(results, key=lambda r: (r.item.title or "").casefold())
    return list(results)


def paginate(results: list[ScoredResult], page: int, limit: int) -> Page:
    """Slice one 1-based page out of the results.

    Raises:
        ValueError: If page or limit is below 1
    """
    if page < 1:
        raise ValueError("page must be >= 1")
    if limit < 1:
        raise ValueError("limit must be >= 1")

    total = len(results)
    start_index = (page - 1) * limit
    return Page(
        items=results[start_index : start_index + limit],
        total=total,
        page=page,
        total_pages=math.ceil(total / limit),
    )


def tag_suggestions(results: list[ScoredResult], count: int = 5) -> list[str]:
    """Most frequent tags in the result set, formatted ``#tag``.

    Ties keep the order in which tags were first encountered.
    """
    tally: Counter[str] = Counter()
    for result in results:
        tally.update(result.item.tags)
    return [f"#{tag}" for tag, _ in tally.most_common(count)]
