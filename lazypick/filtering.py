"""Filter pipeline: score a snapshot of items and order the surviving rows.

Flat mode sorts by score (ties by ``order_index``). Order-preserving and
hierarchical modes keep ``order_index`` order; hierarchical mode also keeps
the ancestors of every direct match so the tree path stays visible.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field

from .items import Item, Match
from .search.fuzzy import MatchResult, score_match
from .search.prefix import DEFAULT_SENTINEL, DEFAULT_SEPARATOR, KindFilter, parse_kind_filter


@dataclass(frozen=True)
class FilteredView:
    """Ordered matches for one query over one snapshot of the collection."""

    matches: list[Match] = field(default_factory=list)
    effective_query: str = ""
    kind_filter: KindFilter | None = None
    best_index: int | None = None
    direct_count: int = 0
    snapshot_len: int = 0

    def __len__(self) -> int:
        return len(self.matches)

    def __iter__(self) -> Iterator[Match]:
        return iter(self.matches)

    def __getitem__(self, index: int) -> Match:
        return self.matches[index]

    @property
    def items(self) -> list[Item]:
        return [match.item for match in self.matches]

    def first_direct_index(self) -> int | None:
        for idx, match in enumerate(self.matches):
            if match.is_direct:
                return idx
        return None

    def index_of(self, identity: Hashable) -> int | None:
        for idx, match in enumerate(self.matches):
            if match.item.identity == identity:
                return idx
        return None


EMPTY_VIEW = FilteredView()


def _order_key(items: Sequence[Item], idx: int) -> tuple[int, int]:
    return (items[idx].order_index, idx)


def _ancestor_rows(
    items: Sequence[Item],
    direct_rows: Sequence[int],
    row_by_identity: Mapping[Hashable, int],
) -> set[int]:
    keep = set(direct_rows)
    for idx in direct_rows:
        visited = {idx}
        parent = items[idx].parent_identity
        while parent is not None:
            parent_idx = row_by_identity.get(parent)
            if parent_idx is None or parent_idx in visited:
                break
            visited.add(parent_idx)
            if parent_idx in keep:
                # Already kept: its own chain is, or will be, walked.
                break
            keep.add(parent_idx)
            parent = items[parent_idx].parent_identity
    return keep


def _descendant_rows(
    items: Sequence[Item],
    length: int,
    direct_rows: Sequence[int],
    row_by_identity: Mapping[Hashable, int],
) -> set[int]:
    children: dict[int, list[int]] = {}
    for idx in range(length):
        parent_idx = row_by_identity.get(items[idx].parent_identity)
        if parent_idx is not None and parent_idx != idx:
            children.setdefault(parent_idx, []).append(idx)

    found: set[int] = set()
    stack = list(direct_rows)
    while stack:
        current = stack.pop()
        for child in children.get(current, ()):
            if child in found:
                continue
            found.add(child)
            stack.append(child)
    return found


def _hierarchical_rows(
    items: Sequence[Item],
    length: int,
    direct_rows: Sequence[int],
    *,
    include_descendants: bool,
    always_include_roots: bool,
) -> list[int]:
    row_by_identity: dict[Hashable, int] = {}
    for idx in range(length):
        row_by_identity.setdefault(items[idx].identity, idx)

    keep = _ancestor_rows(items, direct_rows, row_by_identity)
    if include_descendants:
        keep |= _descendant_rows(items, length, direct_rows, row_by_identity)
    if always_include_roots:
        keep.update(idx for idx in range(length) if items[idx].parent_identity is None)
    return sorted(keep, key=lambda idx: _order_key(items, idx))


def filter_items(
    items: Sequence[Item],
    query: str,
    *,
    hierarchical: bool = False,
    preserve_order: bool = False,
    kind_filters: Mapping[str, KindFilter] | None = None,
    sentinel: str = DEFAULT_SENTINEL,
    separator: str = DEFAULT_SEPARATOR,
    smart_case: bool = False,
    include_descendants: bool = False,
    always_include_roots: bool = False,
) -> FilteredView:
    """Filter and order ``items`` for ``query``.

    Only the first ``len(items)`` rows at call time are read, so a collection
    appended to mid-call is seen as the snapshot taken on entry.
    """
    length = len(items)
    parsed = parse_kind_filter(query, kind_filters, sentinel=sentinel, separator=separator)
    kind_filter = parsed.kind_filter
    effective_query = parsed.effective

    scored: dict[int, MatchResult] = {}
    for idx in range(length):
        item = items[idx]
        if kind_filter is not None and not kind_filter.accepts(item.kind):
            continue
        result = score_match(item.text, effective_query, smart_case=smart_case)
        if result is not None:
            scored[idx] = result

    direct_rows = list(scored)
    if hierarchical:
        rows = _hierarchical_rows(
            items,
            length,
            direct_rows,
            include_descendants=include_descendants,
            always_include_roots=always_include_roots,
        )
    elif preserve_order:
        rows = sorted(direct_rows, key=lambda idx: _order_key(items, idx))
    else:
        rows = sorted(direct_rows, key=lambda idx: (-scored[idx].score, items[idx].order_index, idx))

    matches: list[Match] = []
    best_index: int | None = None
    best_score = float("-inf")
    for idx in rows:
        result = scored.get(idx)
        if result is None:
            matches.append(Match(item=items[idx], score=None, is_direct=False))
            continue
        if result.score > best_score:
            best_score = result.score
            best_index = len(matches)
        matches.append(Match(item=items[idx], score=result.score, positions=result.positions))

    return FilteredView(
        matches=matches,
        effective_query=effective_query,
        kind_filter=kind_filter,
        best_index=best_index,
        direct_count=len(direct_rows),
        snapshot_len=length,
    )
