"""Result ordering and pagination on top of FTS5 relevance.

FTS5's ``bm25()`` is negative and more negative means more relevant, so
every ordering sorts scores ascending. Orderings are described here as a
``RankingPlan`` value; the store renders the plan as ``ORDER BY`` so only
one page of rows ever leaves SQLite.

- ``date_desc``/``date_asc``: date, then score.
- ``relevance``: rows whose title contains the first search term first,
  then score, then newest date.

Every ordering ends on rowid so equal keys stay deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass
import math

from site_search.domain.search import SortOrder


@dataclass(frozen=True, slots=True)
class RankingPlan:
    """How one request's matches are ordered."""

    sort: SortOrder = SortOrder.RELEVANCE
    # Case-folded first term; None disables the title boost
    title_needle: str | None = None

    @property
    def boosts_title(self) -> bool:
        return self.sort is SortOrder.RELEVANCE and bool(self.title_needle)


def plan_ranking(sort: SortOrder, *, first_term: str | None = None) -> RankingPlan:
    """Build the ordering for a request.

    The title boost uses the first plain term without any trailing ``*``.
    With no term the boost would match every row, so it is left out.
    """
    if sort is not SortOrder.RELEVANCE:
        return RankingPlan(sort=sort)
    needle = (first_term or "").rstrip("*").casefold()
    return RankingPlan(sort=sort, title_needle=needle or None)


@dataclass(frozen=True, slots=True)
class Pagination:
    """Page arithmetic for a result set."""

    page: int
    per_page: int
    total: int

    @classmethod
    def build(cls, *, page: int, per_page: int, total: int) -> Pagination:
        return cls(page=max(1, page), per_page=max(0, per_page), total=max(0, total))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def total_pages(self) -> int:
        if self.per_page == 0:
            return 0
        return math.ceil(self.total / self.per_page)

    @property
    def is_past_end(self) -> bool:
        return self.per_page == 0 or self.offset >= self.total
