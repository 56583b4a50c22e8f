"""Tests for structured kind-filter parsing."""

from __future__ import annotations

import unittest

from lazypick.search.prefix import (
    DEFAULT_KIND_FILTERS,
    kind_filters_from_config,
    make_kind_filter,
    parse_kind_filter,
)


class ParseKindFilterTests(unittest.TestCase):
    def test_recognized_code_strips_prefix(self) -> None:
        parsed = parse_kind_filter("/fn parse", DEFAULT_KIND_FILTERS)
        self.assertIsNotNone(parsed.kind_filter)
        self.assertEqual(parsed.kind_filter.code, "fn")
        self.assertEqual(parsed.effective, "parse")
        self.assertEqual(parsed.raw, "/fn parse")

    def test_code_without_remainder_keeps_empty_effective_query(self) -> None:
        parsed = parse_kind_filter("/cl", DEFAULT_KIND_FILTERS)
        self.assertEqual(parsed.kind_filter.code, "cl")
        self.assertEqual(parsed.effective, "")

    def test_unknown_code_is_literal_text(self) -> None:
        parsed = parse_kind_filter("/zz parse", DEFAULT_KIND_FILTERS)
        self.assertIsNone(parsed.kind_filter)
        self.assertEqual(parsed.effective, "/zz parse")

    def test_without_vocabulary_query_is_untouched(self) -> None:
        parsed = parse_kind_filter("/fn parse", None)
        self.assertIsNone(parsed.kind_filter)
        self.assertEqual(parsed.effective, "/fn parse")

    def test_custom_sentinel_and_separator(self) -> None:
        vocabulary = {"t": make_kind_filter("t", ["Test"])}
        parsed = parse_kind_filter("@t:name", vocabulary, sentinel="@", separator=":")
        self.assertEqual(parsed.kind_filter.code, "t")
        self.assertEqual(parsed.effective, "name")

    def test_kind_filter_accepts_case_insensitively(self) -> None:
        kind_filter = DEFAULT_KIND_FILTERS["fn"]
        self.assertTrue(kind_filter.accepts("function"))
        self.assertTrue(kind_filter.accepts("Constructor"))
        self.assertFalse(kind_filter.accepts("Class"))
        self.assertFalse(kind_filter.accepts(None))


class KindFiltersFromConfigTests(unittest.TestCase):
    def test_invalid_entries_are_dropped(self) -> None:
        vocabulary = kind_filters_from_config(
            {
                "t": {"kinds": ["Test", 3], "description": "Tests"},
                "": {"kinds": ["Empty"]},
                "x": {"kinds": []},
                "y": "bad-shape",
                "z": {"kinds": "Function"},
            }
        )
        self.assertEqual(list(vocabulary), ["t"])
        self.assertEqual(vocabulary["t"].kinds, frozenset({"test"}))
        self.assertEqual(vocabulary["t"].description, "Tests")

    def test_non_mapping_yields_empty_vocabulary(self) -> None:
        self.assertEqual(kind_filters_from_config(["fn"]), {})
