"""Search, filter and sort over the materialized record set."""

from enum import Enum
from typing import Callable, Iterable, List

from pydantic import BaseModel, Field

from reelshelf.models.record import MetadataRecord


class FilterOption(str, Enum):
    """Library category filter."""

    ALL = "all"
    COLLECTED = "collected"
    WANTED = "wanted"
    RATED = "rated"


class SortOrder(str, Enum):
    """Library sort key."""

    DATE_ADDED = "date_added"
    TITLE = "title"
    YEAR = "year"
    RATING = "rating"


class LibraryQuery(BaseModel):
    """A browse request: search text, category and sort key."""

    search: str = Field(default="", description="Substring matched on title, director, genre, actors")
    filter: FilterOption = Field(default=FilterOption.ALL)
    sort: SortOrder = Field(default=SortOrder.DATE_ADDED)


_FILTERS: dict[FilterOption, Callable[[MetadataRecord], bool]] = {
    FilterOption.ALL: lambda r: True,
    FilterOption.COLLECTED: lambda r: not r.is_wanted,
    FilterOption.WANTED: lambda r: r.is_wanted,
    FilterOption.RATED: lambda r: r.user_rating is not None,
}

# (key, descending). Missing year/rating sort as 0 so they land last.
_SORTS: dict[SortOrder, tuple[Callable[[MetadataRecord], object], bool]] = {
    SortOrder.DATE_ADDED: (lambda r: r.date_added, True),
    SortOrder.TITLE: (lambda r: r.title, False),
    SortOrder.YEAR: (lambda r: r.year if r.year is not None else 0, True),
    SortOrder.RATING: (lambda r: r.user_rating if r.user_rating is not None else 0, True),
}


def matches_search(record: MetadataRecord, needle: str) -> bool:
    """Case-insensitive substring match on title, director, genre or actors.

    Args:
        record: Record to test
        needle: Already trimmed and casefolded search text
    """
    for value in (record.title, record.director, record.genre, record.actors):
        if value and needle in value.casefold():
            return True
    return False


class QueryEngine:
    """Produces the display order for a set of records.

    ``run`` is a pure function of its arguments. Title sorting compares the
    stored strings as-is, so it is case-sensitive ("Zeta" before "alpha").
    """

    def run(
        self,
        records: Iterable[MetadataRecord],
        search_text: str = "",
        filter_option: FilterOption = FilterOption.ALL,
        sort_order: SortOrder = SortOrder.DATE_ADDED,
    ) -> List[MetadataRecord]:
        """Search, filter, sort and de-duplicate records.

        Steps, in order:
        1. De-duplicate by id (first occurrence wins)
        2. Search filter (skipped when the trimmed text is empty)
        3. Category filter
        4. Stable sort, so equal keys keep their input order

        Args:
            records: Materialized record set (not modified)
            search_text: Free-text query
            filter_option: Category filter
            sort_order: Sort key

        Returns:
            New list in display order (may be empty)
        """
        filter_option = FilterOption(filter_option)
        sort_order = SortOrder(sort_order)

        seen: set[str] = set()
        results: List[MetadataRecord] = []
        for record in records:
            if record.id in seen:
                continue
            seen.add(record.id)
            results.append(record)

        needle = (search_text or "").strip().casefold()
        if needle:
            results = [r for r in results if matches_search(r, needle)]

        keep = _FILTERS[filter_option]
        results = [r for r in results if keep(r)]

        key, descending = _SORTS[sort_order]
        # sorted() stays stable with reverse=True
        return sorted(results, key=key, reverse=descending)

    def execute(self, records: Iterable[MetadataRecord], query: LibraryQuery) -> List[MetadataRecord]:
        return self.run(records, query.search, query.filter, query.sort)
