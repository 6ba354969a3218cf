"""
Shared search, filter and sort helpers used by the list and report endpoints.
"""

import pytest

from dealership.services import list_filters


ROWS = [
    {"name": "Alpha Bikes", "phone": "0100", "status": "active", "last": "2026-03-01"},
    {"name": "beta wheels", "phone": "0200", "status": "inactive", "last": None},
    {"name": "Gamma Motors", "phone": None, "status": "active", "last": "2026-01-15"},
]


class TestSearchRows:

    @pytest.mark.parametrize("term", [None, "", "   ", "\t"])
    def test_blank_term_returns_everything(self, term):
        assert list_filters.search_rows(ROWS, term, ["name", "phone"]) == ROWS

    def test_case_insensitive_substring(self):
        hits = list_filters.search_rows(ROWS, "  BETA ", ["name"])
        assert [r["name"] for r in hits] == ["beta wheels"]

    def test_any_field_matches_and_none_is_skipped(self):
        hits = list_filters.search_rows(ROWS, "0100", ["phone", "name"])
        assert [r["name"] for r in hits] == ["Alpha Bikes"]


class TestFilterEquals:

    @pytest.mark.parametrize("value", [None, "", "all"])
    def test_default_dropdown_values_do_not_filter(self, value):
        assert list_filters.filter_equals(ROWS, status=value) == ROWS

    def test_equality(self):
        hits = list_filters.filter_equals(ROWS, status="active")
        assert [r["name"] for r in hits] == ["Alpha Bikes", "Gamma Motors"]


class TestSortRows:

    KEYS = {
        "name": lambda row: row["name"].casefold(),
        "last": lambda row: row["last"],
    }

    @pytest.mark.parametrize("order", ["asc", "desc"])
    def test_missing_values_sort_last(self, order):
        rows = list_filters.sort_rows(ROWS, "last", order, keys=self.KEYS, default="name")
        assert rows[-1]["name"] == "beta wheels"

    def test_unknown_key_falls_back_to_default(self):
        rows = list_filters.sort_rows(ROWS, "bogus", "desc", keys=self.KEYS, default="name")
        assert [r["name"] for r in rows] == ["Gamma Motors", "beta wheels", "Alpha Bikes"]
