"""Unit tests for the query engine."""

import pytest

from reelshelf.core.query import FilterOption, LibraryQuery, QueryEngine, SortOrder


@pytest.fixture
def engine():
    return QueryEngine()


@pytest.fixture
def library(record_factory):
    """Small library with deterministic dates (later minutes = newer)."""
    return [
        record_factory(
            "The Matrix",
            minutes=1,
            year=1999,
            director="Lana Wachowski, Lilly Wachowski",
            genre="Action, Sci-Fi",
            actors="Keanu Reeves",
            user_rating=9,
        ),
        record_factory("Heat", minutes=2, year=1995, genre="Crime", is_wanted=True),
        record_factory("alpha", minutes=3, year=1999, user_rating=7),
        record_factory("Zeta", minutes=4, genre="Drama", actors="Sam Reeves"),
    ]


def titles(records):
    return [r.title for r in records]


class TestSearch:
    """Test free-text search."""

    def test_director_substring_case_insensitive(self, engine, library):
        results = engine.run(library, search_text="wach")

        assert titles(results) == ["The Matrix"]

    def test_matches_actors_and_genre(self, engine, library):
        assert set(titles(engine.run(library, search_text="REEVES"))) == {"The Matrix", "Zeta"}
        assert titles(engine.run(library, search_text="crime")) == ["Heat"]

    def test_blank_search_matches_everything(self, engine, library):
        assert len(engine.run(library, search_text="   ")) == 4

    def test_no_match(self, engine, library):
        assert engine.run(library, search_text="zzz") == []


class TestFilter:
    """Test category filters."""

    @pytest.mark.parametrize(
        "option,expected",
        [
            (FilterOption.ALL, {"The Matrix", "Heat", "alpha", "Zeta"}),
            (FilterOption.COLLECTED, {"The Matrix", "alpha", "Zeta"}),
            (FilterOption.WANTED, {"Heat"}),
            (FilterOption.RATED, {"The Matrix", "alpha"}),
        ],
    )
    def test_filters(self, engine, library, option, expected):
        assert set(titles(engine.run(library, filter_option=option))) == expected

    def test_accepts_string_values(self, engine, library):
        assert titles(engine.run(library, filter_option="wanted")) == ["Heat"]


class TestSort:
    """Test sort orders and stability."""

    def test_date_added_newest_first(self, engine, library):
        assert titles(engine.run(library)) == ["Zeta", "alpha", "Heat", "The Matrix"]

    def test_title_is_case_sensitive(self, engine, record_factory):
        records = [record_factory("alpha", minutes=1), record_factory("Zeta", minutes=2)]

        results = engine.run(records, sort_order=SortOrder.TITLE)

        assert titles(results) == ["Zeta", "alpha"]

    def test_year_descending_missing_last_and_stable(self, engine, library):
        results = engine.run(library, sort_order=SortOrder.YEAR)

        # Both 1999 records keep their input order
        assert titles(results) == ["The Matrix", "alpha", "Heat", "Zeta"]

    def test_rating_descending_missing_last(self, engine, library):
        results = engine.run(library, sort_order=SortOrder.RATING)

        assert titles(results) == ["The Matrix", "alpha", "Heat", "Zeta"]

    @pytest.mark.parametrize("order", list(SortOrder))
    def test_every_order_is_stable(self, engine, record_factory, order):
        records = [record_factory("Same", minutes=0, year=2000) for _ in range(5)]

        results = engine.run(records, sort_order=order)

        assert [r.id for r in results] == [r.id for r in records]


class TestRun:
    """Test pipeline-level behavior."""

    def test_empty_input(self, engine):
        assert engine.run([]) == []

    def test_duplicates_collapsed_first_wins(self, engine, record_factory):
        first = record_factory("Original", minutes=1)
        copy = first.model_copy(update={"title": "Copy"})

        results = engine.run([first, copy])

        assert titles(results) == ["Original"]

    def test_input_not_modified(self, engine, library):
        before = [r.id for r in library]

        engine.run(library, sort_order=SortOrder.TITLE)

        assert [r.id for r in library] == before

    def test_execute_with_query(self, engine, library):
        query = LibraryQuery(search="99", filter="all", sort="title")

        # "99" isn't in any searched field
        assert engine.execute(library, query) == []

        query = LibraryQuery(search="", filter=FilterOption.RATED, sort=SortOrder.TITLE)
        assert titles(engine.execute(library, query)) == ["The Matrix", "alpha"]

    def test_search_then_filter_then_sort(self, engine, library):
        results = engine.run(
            library,
            search_text="reeves",
            filter_option=FilterOption.COLLECTED,
            sort_order=SortOrder.TITLE,
        )

        assert titles(results) == ["The Matrix", "Zeta"]
