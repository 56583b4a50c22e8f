"""Scoring and query-prefix parsing exports."""

from __future__ import annotations

from .fuzzy import MatchResult, fuzzy_score, is_subsequence, is_word_boundary, score_match
from .prefix import (
    DEFAULT_KIND_FILTERS,
    KindFilter,
    ParsedQuery,
    kind_filters_from_config,
    make_kind_filter,
    parse_kind_filter,
)

__all__ = [
    "DEFAULT_KIND_FILTERS",
    "KindFilter",
    "MatchResult",
    "ParsedQuery",
    "fuzzy_score",
    "is_subsequence",
    "is_word_boundary",
    "kind_filters_from_config",
    "make_kind_filter",
    "parse_kind_filter",
    "score_match",
]
