"""Tests for the inline search syntax."""

from datetime import date

from marksearch.models.search import SearchFilters
from marksearch.retrieval.filters import day_bounds
from marksearch.retrieval.query_parser import parse_query


class TestParseQuery:
    """Test token extraction."""

    def test_plain_text(self):
        parsed = parse_query("machine learning")

        assert parsed.text == "machine learning"
        assert parsed.has_filters is False

    def test_all_token_kinds(self):
        parsed = parse_query("type:videos tag:ml #python date:lastweek site:github.com -draft transformers")

        assert parsed.text == "transformers"
        assert parsed.types == ["youtube"]
        assert parsed.tags == ["ml", "python"]
        assert parsed.date_preset == "week"
        assert parsed.sites == ["github.com"]
        assert parsed.exclude == ["draft"]
        assert parsed.has_filters is True

    def test_type_aliases(self):
        parsed = parse_query("type:notes type:post type:article")

        assert parsed.types == ["note", "tweet", "link"]

    def test_unknown_values_are_dropped(self):
        parsed = parse_query("type:podcast date:someday hello")

        assert parsed.types == []
        assert parsed.date_preset is None
        assert parsed.text == "hello"

    def test_prefixes_are_case_insensitive(self):
        parsed = parse_query("TYPE:Note #Work")

        assert parsed.types == ["note"]
        assert parsed.tags == ["work"]

    def test_duplicates_are_collapsed(self):
        parsed = parse_query("#ml tag:ml type:note type:notes")

        assert parsed.tags == ["ml"]
        assert parsed.types == ["note"]

    def test_hyphenated_words_stay_in_text(self):
        parsed = parse_query("e-mail - templates")

        assert parsed.text == "e-mail - templates"
        assert parsed.exclude == []

    def test_exact_phrase(self):
        parsed = parse_query('"Sourdough Starter" guide')

        assert parsed.phrases == ["sourdough starter"]
        assert parsed.text == "guide sourdough starter"
        assert parsed.has_filters is True

    def test_negated_phrase_with_or_group(self):
        parsed = parse_query('-"draft notes" react || vue')

        assert parsed.exclude == ["draft notes"]
        assert parsed.any_of == [["react", "vue"]]
        assert parsed.phrases == []
        assert parsed.text == ""

    def test_chained_or_group(self):
        parsed = parse_query("cats||dogs || birds pets")

        assert parsed.any_of == [["cats", "dogs", "birds"]]
        assert parsed.text == "pets"

    def test_text_prefix(self):
        parsed = parse_query("text:Invoice receipts")

        assert parsed.text_terms == ["invoice"]
        assert parsed.text == "receipts"

    def test_explicit_day(self):
        parsed = parse_query("date:2024-01-15 standup")

        start, end = day_bounds(date(2024, 1, 15))
        assert parsed.date_from == start
        assert parsed.date_to == end
        assert parsed.date_preset is None
        assert parsed.text == "standup"

    def test_invalid_day_is_dropped(self):
        parsed = parse_query("date:2024-13-45")

        assert parsed.date_from is None
        assert parsed.has_filters is False


class TestMergeInto:
    """Test merging parsed values into request filters."""

    def test_union_keeps_request_values_first(self):
        filters = SearchFilters(tags=["work"], types=["link"])

        merged = parse_query("#ideas #work type:note").merge_into(filters)

        assert merged.tags == ["work", "ideas"]
        assert merged.types == ["link", "note"]

    def test_request_preset_wins(self):
        filters = SearchFilters(date_preset="month")

        merged = parse_query("date:today").merge_into(filters)

        assert merged.date_preset == "month"

    def test_parsed_preset_used_when_request_has_none(self):
        merged = parse_query("date:yesterday").merge_into(SearchFilters())

        assert merged.date_preset == "yesterday"

    def test_request_filters_unchanged(self):
        filters = SearchFilters(tags=["work"])

        parse_query("#ideas").merge_into(filters)

        assert filters.tags == ["work"]

    def test_phrases_and_groups_merge(self):
        filters = SearchFilters(phrases=["weekly"], any_of=[["a", "b"]])

        merged = parse_query('"weekly" "sprint review" x || y').merge_into(filters)

        assert merged.phrases == ["weekly", "sprint review"]
        assert merged.any_of == [["a", "b"], ["x", "y"]]

    def test_request_range_wins_over_parsed_day(self):
        filters = SearchFilters(date_from=1000)

        merged = parse_query("date:2024-01-15").merge_into(filters)

        assert merged.date_from == 1000
        assert merged.date_to is None

    def test_parsed_day_used_when_request_has_no_range(self):
        merged = parse_query("date:2024-01-15").merge_into(SearchFilters())

        assert (merged.date_from, merged.date_to) == day_bounds(date(2024, 1, 15))
