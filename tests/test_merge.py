"""
Tests for dupmark/merge.py

Covers canonical id/url selection, every per-field strategy and the
fallback branches taken when a selector is left unset.
"""
import pytest
from datetime import datetime, timedelta, timezone

from dupmark.entities import (
    DatesStrategy,
    MergeOptions,
    TextStrategy,
    VisitsStrategy,
)
from dupmark.exceptions import EmptyMergeSet, InvalidOptionsError
from dupmark.merge import merge_snapshots


BASE_DATE = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def trio(make_snapshot):
    """Three duplicates passed out of chronological order."""
    return [
        make_snapshot("b", "https://example.com/b", "Middle title here", day=1,
                      description="Short", category="Reading", tags=["b", "a"],
                      visits=3, favicon="b.ico",
                      date_modified=BASE_DATE + timedelta(days=9)),
        make_snapshot("a", "https://example.com/a", "First", day=0,
                      description="The longest description", category="Work",
                      tags=["a"], visits=5, is_favorite=True, favicon=None),
        make_snapshot("c", "https://example.com/c", "Last", day=2,
                      description="Medium text", category="Later", tags=["c"],
                      visits=10, favicon="c.ico",
                      date_modified=BASE_DATE + timedelta(days=2)),
    ]


class TestMergeBasics:
    """Test input handling and canonical fields."""

    def test_empty_raises(self):
        """Merging nothing is an error."""
        with pytest.raises(EmptyMergeSet, match="Cannot merge an empty set"):
            merge_snapshots([])

    def test_empty_is_value_error(self):
        with pytest.raises(ValueError):
            merge_snapshots([])

    def test_single_returned_as_is(self, make_snapshot):
        """A single bookmark is returned unchanged, whatever the options."""
        bookmark = make_snapshot(1)
        assert merge_snapshots([bookmark], MergeOptions.defaults()) is bookmark

    def test_id_and_url_from_earliest(self, trio):
        """The earliest bookmark provides id and url regardless of options."""
        options = MergeOptions(keep_title="last", keep_dates="latest")
        merged = merge_snapshots(trio, options)

        assert merged.id == "a"
        assert merged.url == "https://example.com/a"

    def test_input_not_modified(self, trio):
        before = list(trio)
        merge_snapshots(trio, MergeOptions.defaults())
        assert trio == before


class TestTextStrategies:
    """Test title and description selection."""

    @pytest.mark.parametrize("strategy,expected", [
        ("first", "First"),
        ("last", "Last"),
        ("longest", "Middle title here"),
    ])
    def test_title(self, trio, strategy, expected):
        merged = merge_snapshots(trio, MergeOptions(keep_title=strategy))
        assert merged.title == expected

    def test_longest_description(self, trio):
        merged = merge_snapshots(trio, MergeOptions(keep_description=TextStrategy.LONGEST))
        assert merged.description == "The longest description"

    def test_longest_tie_keeps_earliest(self, make_snapshot):
        bookmarks = [
            make_snapshot(2, title="bbbb", day=1),
            make_snapshot(1, title="aaaa", day=0),
        ]
        merged = merge_snapshots(bookmarks, MergeOptions(keep_title="longest"))
        assert merged.title == "aaaa"

    def test_custom_title(self, trio):
        merged = merge_snapshots(trio, MergeOptions(keep_title="custom", custom_title="Mine"))
        assert merged.title == "Mine"

    def test_custom_without_value_falls_back_to_first(self, trio):
        merged = merge_snapshots(trio, MergeOptions(keep_title="custom"))
        assert merged.title == "First"

    def test_unset_selector_takes_first(self, trio):
        merged = merge_snapshots(trio, MergeOptions())
        assert merged.title == "First"
        assert merged.description == "The longest description"
        assert merged.category == "Work"
        assert merged.favicon is None


class TestChoiceStrategies:
    """Test category and favicon selection."""

    def test_category_last(self, trio):
        merged = merge_snapshots(trio, MergeOptions(keep_category="last"))
        assert merged.category == "Later"

    def test_category_custom(self, trio):
        merged = merge_snapshots(trio, MergeOptions(keep_category="custom", custom_category="Mixed"))
        assert merged.category == "Mixed"

    def test_favicon_last(self, trio):
        merged = merge_snapshots(trio, MergeOptions(keep_favicon="last"))
        assert merged.favicon == "c.ico"

    def test_favicon_custom(self, trio):
        merged = merge_snapshots(trio, MergeOptions(keep_favicon="custom", custom_favicon="*"))
        assert merged.favicon == "*"


class TestTags:
    """Test tag combination."""

    def test_combined_tags_are_sorted_union(self, trio):
        merged = merge_snapshots(trio, MergeOptions(combine_tags=True))
        assert merged.tags == ["a", "b", "c"]

    def test_without_combine_keeps_earliest_tags(self, trio):
        merged = merge_snapshots(trio, MergeOptions(combine_tags=False))
        assert merged.tags == ["a"]


class TestFavoriteStrategies:
    """Test favorite status."""

    @pytest.mark.parametrize("strategy,expected", [
        ("any", True),
        ("all", False),
        ("first", True),
        ("last", False),
    ])
    def test_favorite(self, trio, strategy, expected):
        merged = merge_snapshots(trio, MergeOptions(keep_favorite_status=strategy))
        assert merged.is_favorite is expected


class TestVisitsStrategies:
    """Test visit counters."""

    def test_sum(self, make_snapshot):
        """Visits 5, 3 and 10 sum to 18."""
        bookmarks = [
            make_snapshot(1, visits=5, day=0),
            make_snapshot(2, visits=3, day=1),
            make_snapshot(3, visits=10, day=2),
        ]
        merged = merge_snapshots(bookmarks, MergeOptions(keep_visits=VisitsStrategy.SUM))
        assert merged.visits == 18

    @pytest.mark.parametrize("strategy,expected", [
        ("max", 10),
        ("first", 5),
        ("last", 10),
    ])
    def test_other_strategies(self, trio, strategy, expected):
        merged = merge_snapshots(trio, MergeOptions(keep_visits=strategy))
        assert merged.visits == expected

    def test_unset_sums(self, trio):
        assert merge_snapshots(trio, MergeOptions()).visits == 18


class TestDatesStrategies:
    """Test date_added/date_modified selection."""

    def test_earliest(self, trio):
        merged = merge_snapshots(trio, MergeOptions(keep_dates=DatesStrategy.EARLIEST))
        assert merged.date_added == BASE_DATE
        assert merged.date_modified == BASE_DATE

    def test_latest(self, trio):
        merged = merge_snapshots(trio, MergeOptions(keep_dates="latest"))
        assert merged.date_added == BASE_DATE + timedelta(days=2)
        assert merged.date_modified == BASE_DATE + timedelta(days=9)

    def test_first(self, trio):
        merged = merge_snapshots(trio, MergeOptions(keep_dates="first"))
        assert merged.date_added == BASE_DATE
        assert merged.date_modified == BASE_DATE

    def test_last(self, trio):
        merged = merge_snapshots(trio, MergeOptions(keep_dates="last"))
        assert merged.date_added == BASE_DATE + timedelta(days=2)
        assert merged.date_modified == BASE_DATE + timedelta(days=2)

    def test_unset_marks_modified_now(self, trio):
        merged = merge_snapshots(trio, MergeOptions())
        assert merged.date_added == BASE_DATE
        assert merged.date_modified > BASE_DATE + timedelta(days=9)

    def test_naive_and_aware_dates_mix(self, make_snapshot):
        """Naive dates are read as UTC, so they order against aware ones."""
        naive = make_snapshot("n", "https://example.com/n", "Naive",
                              date_added=datetime(2024, 1, 1, 11, 0, 0),
                              date_modified=datetime(2024, 1, 5))
        aware = make_snapshot("a", "https://example.com/a", "Aware", day=0)

        merged = merge_snapshots([aware, naive], MergeOptions(keep_dates="latest"))

        assert merged.id == "n"
        assert merged.date_added == BASE_DATE
        assert merged.date_modified == datetime(2024, 1, 5, tzinfo=timezone.utc)


class TestMergeOptions:
    """Test option construction."""

    def test_defaults(self):
        options = MergeOptions.defaults()

        assert options.keep_title is TextStrategy.LONGEST
        assert options.keep_description is TextStrategy.LONGEST
        assert options.combine_tags is True
        assert options.keep_visits is VisitsStrategy.SUM
        assert options.keep_dates is DatesStrategy.EARLIEST

    def test_strings_coerced(self):
        options = MergeOptions(keep_title="longest", keep_dates="latest")
        assert options.keep_title is TextStrategy.LONGEST
        assert options.keep_dates is DatesStrategy.LATEST

    def test_invalid_strategy(self):
        with pytest.raises(InvalidOptionsError, match="keep_title"):
            MergeOptions(keep_title="shortest")

    def test_strategy_not_valid_for_field(self):
        """'longest' only applies to text fields."""
        with pytest.raises(InvalidOptionsError):
            MergeOptions(keep_category="longest")

    def test_from_dict_overlays_defaults(self):
        options = MergeOptions.from_dict({"keepVisits": "max"})

        assert options.keep_visits is VisitsStrategy.MAX
        assert options.keep_title is TextStrategy.LONGEST

    def test_from_dict_unknown_key(self):
        with pytest.raises(InvalidOptionsError, match="keep_colour"):
            MergeOptions.from_dict({"keep_colour": "first"})

    def test_full_default_merge(self, trio):
        merged = merge_snapshots(trio, MergeOptions.defaults())

        assert merged.id == "a"
        assert merged.title == "Middle title here"
        assert merged.description == "The longest description"
        assert merged.category == "Work"
        assert merged.tags == ["a", "b", "c"]
        assert merged.is_favorite is True
        assert merged.visits == 18
        assert merged.date_added == BASE_DATE
