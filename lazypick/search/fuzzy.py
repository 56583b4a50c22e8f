"""Fuzzy scoring of one item text against a query.

Scores fall into three tiers (prefix, contiguous substring, fuzzy
subsequence). A tier always outranks every bonus inside a lower tier.
"""

from __future__ import annotations

from dataclasses import dataclass

TIER_WEIGHT = 1_000.0
TIER_OFFSET = TIER_WEIGHT / 2
PREFIX_TIER = 3
CONTAINS_TIER = 2
FUZZY_TIER = 1

EXACT_MATCH_BONUS = 25.0
WORD_BOUNDARY_BONUS = 20.0
SEPARATOR_BONUS = 10.0
FUZZY_BASE = 25.0
FUZZY_BOUNDARY_BONUS = 9.0
CONSECUTIVE_BONUS = 7.0
MAX_CONSECUTIVE_RUN = 3
GAP_PENALTY = 3.0
MAX_GAP_PENALTY = 20.0
POSITION_WEIGHT = 10.0
LENGTH_WEIGHT = 2.0
SEPARATOR_CHARS = ":/_-."


@dataclass(frozen=True)
class MatchResult:
    score: float
    positions: tuple[int, ...]
    kind: str  # "prefix", "contains", "fuzzy" or "empty"
    gaps: int = 0


EMPTY_MATCH = MatchResult(score=0.0, positions=(), kind="empty")


def is_word_boundary(text: str, pos: int) -> bool:
    """Return whether ``text[pos]`` starts a word.

    Start of text, any character after a non-alphanumeric or ``_``, and a
    lower-to-upper camelCase step all count.
    """
    if pos <= 0:
        return True
    prev_char = text[pos - 1]
    if not prev_char.isalnum() or prev_char == "_":
        return True
    return text[pos].isupper() and prev_char.islower()


def _fold_char(char: str) -> str:
    folded = char.casefold()
    if len(folded) == 1:
        return folded
    lowered = char.lower()
    return lowered if len(lowered) == 1 else char


def fold_case(text: str) -> str:
    """Case-fold ``text`` one character at a time, keeping its length.

    Characters whose fold expands (sharp s, dotted capital I) are kept as
    they are so offsets into the folded text stay valid in the original.
    """
    return "".join(_fold_char(char) for char in text)


def _tiered(tier: int, detail: float) -> float:
    clamped = max(0.0, min(TIER_WEIGHT - 1.0, TIER_OFFSET + detail))
    return tier * TIER_WEIGHT + clamped


def _position_bonus(start: int) -> float:
    return POSITION_WEIGHT / (start + 1)


def _length_bonus(text_length: int) -> float:
    return LENGTH_WEIGHT / max(1, text_length)


def _best_substring_start(text: str, haystack: str, needle: str) -> tuple[int, float] | None:
    best_start = -1
    best_detail = -1.0
    idx = haystack.find(needle)
    while idx >= 0:
        detail = EXACT_MATCH_BONUS if len(needle) > 1 else 0.0
        if is_word_boundary(text, idx):
            detail += WORD_BOUNDARY_BONUS
            if idx > 0 and text[idx - 1] in SEPARATOR_CHARS:
                detail += SEPARATOR_BONUS
        detail += _position_bonus(idx)
        if detail > best_detail:
            best_detail = detail
            best_start = idx
        idx = haystack.find(needle, idx + 1)
    if best_start < 0:
        return None
    return best_start, best_detail


def _fuzzy_positions(haystack: str, needle: str) -> list[int] | None:
    # Forward leftmost scan fixes the end; a backward scan from there finds
    # the tightest start for that end.
    idx = -1
    for char in needle:
        idx = haystack.find(char, idx + 1)
        if idx < 0:
            return None
    end = idx
    positions = [0] * len(needle)
    cursor = end + 1
    for q_idx in range(len(needle) - 1, -1, -1):
        cursor = haystack.rfind(needle[q_idx], 0, cursor)
        positions[q_idx] = cursor
    return positions


def score_match(match_text: str, query: str, *, smart_case: bool = False) -> MatchResult | None:
    """Score ``match_text`` against ``query``.

    Returns ``None`` when the query characters do not all appear in order.
    Matching ignores case unless ``smart_case`` is set and the query holds
    an uppercase character.
    """
    if not query:
        return EMPTY_MATCH
    if not match_text or len(query) > len(match_text):
        return None

    case_sensitive = smart_case and any(char.isupper() for char in query)
    if case_sensitive:
        haystack, needle = match_text, query
    else:
        haystack, needle = fold_case(match_text), fold_case(query)

    text_length = len(match_text)
    length_bonus = _length_bonus(text_length)

    if haystack.startswith(needle):
        detail = EXACT_MATCH_BONUS + WORD_BOUNDARY_BONUS + _position_bonus(0) + length_bonus
        if len(needle) == text_length:
            detail += EXACT_MATCH_BONUS * 2
        return MatchResult(
            score=_tiered(PREFIX_TIER, detail),
            positions=tuple(range(len(needle))),
            kind="prefix",
        )

    substring = _best_substring_start(match_text, haystack, needle)
    if substring is not None:
        start, detail = substring
        return MatchResult(
            score=_tiered(CONTAINS_TIER, detail + length_bonus),
            positions=tuple(range(start, start + len(needle))),
            kind="contains",
        )

    positions = _fuzzy_positions(haystack, needle)
    if positions is None:
        return None

    detail = FUZZY_BASE
    gaps = 0
    run = 0
    prev = -2
    for pos in positions:
        if pos == prev + 1:
            run += 1
            if run <= MAX_CONSECUTIVE_RUN:
                detail += CONSECUTIVE_BONUS
        else:
            if prev >= 0:
                gap = pos - prev - 1
                gaps += gap
                detail -= min(MAX_GAP_PENALTY, GAP_PENALTY * gap)
            run = 0
        if is_word_boundary(match_text, pos):
            detail += FUZZY_BOUNDARY_BONUS
        prev = pos
    detail += _position_bonus(positions[0]) + length_bonus
    return MatchResult(
        score=_tiered(FUZZY_TIER, detail),
        positions=tuple(positions),
        kind="fuzzy",
        gaps=gaps,
    )


def fuzzy_score(query: str, candidate: str, *, smart_case: bool = False) -> float | None:
    """Return only the numeric score, or ``None`` when ``candidate`` does not match."""
    result = score_match(candidate, query, smart_case=smart_case)
    return None if result is None else result.score


def is_subsequence(query: str, text: str) -> bool:
    """Case-insensitive in-order containment check."""
    haystack = fold_case(text)
    idx = -1
    for char in fold_case(query):
        idx = haystack.find(char, idx + 1)
        if idx < 0:
            return False
    return True
