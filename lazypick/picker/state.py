"""Mutable state owned by one picker session, plus its options."""

from __future__ import annotations

from collections.abc import Callable, Hashable, Mapping, Sequence
from dataclasses import dataclass, field

from ..async_source import DEFAULT_TIMEOUT_SECONDS, Producer, SourceSignal, TaskPool
from ..filtering import EMPTY_VIEW, FilteredView
from ..items import Item, ItemCollection, Match
from ..query import QueryBuffer
from ..search.prefix import DEFAULT_SENTINEL, DEFAULT_SEPARATOR, KindFilter
from ..selection import SelectionSet

IDLE = "idle"
ACTIVE = "active"
SELECTED = "selected"
MULTI_SELECTED = "multi_selected"
CANCELLED = "cancelled"
TERMINAL_STATUSES = frozenset({SELECTED, MULTI_SELECTED, CANCELLED})

Renderer = Callable[[Sequence[Match], int, list[Hashable]], None]


@dataclass(frozen=True)
class PickerOptions:
    """Per-session behavior switches and host callbacks."""

    multiselect: bool = False
    multiselect_max: int | None = None
    hierarchical: bool = False
    auto_select: bool = False
    preserve_order: bool = False
    async_source: Producer | None = None
    prompt: str = "> "
    initial_query: str = ""
    initially_hidden: bool = False
    preserve_cursor: bool = False
    jump_to_best_match: bool = False
    smart_case: bool = False
    kind_filters: Mapping[str, KindFilter] | None = None
    sentinel: str = DEFAULT_SENTINEL
    separator: str = DEFAULT_SEPARATOR
    include_descendants: bool = False
    always_include_roots: bool = False
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    debounce_seconds: float = 0.0
    pool: TaskPool | None = None
    renderer: Renderer | None = None
    on_move: Callable[[Item], None] | None = None
    on_signal: Callable[[SourceSignal], None] | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, object] | None) -> PickerOptions:
        """Build options from a plain mapping; unknown keys raise ``TypeError``."""
        return cls(**dict(raw or {}))


@dataclass
class PickerState:
    """Everything one session mutates while it is active."""

    generation: int
    query: QueryBuffer
    selection: SelectionSet
    static_items: tuple[Item, ...]
    items: ItemCollection
    view: FilteredView = EMPTY_VIEW
    cursor_row: int = 0
    has_navigated: bool = False
    status: str = IDLE
    hidden: bool = False
    loading: bool = False
    auto_select_pending: bool = False
    last_signal: SourceSignal | None = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        return self.status == ACTIVE

    @property
    def finished(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def current_match(self) -> Match | None:
        if not self.view.matches:
            return None
        if not 0 <= self.cursor_row < len(self.view.matches):
            return None
        return self.view.matches[self.cursor_row]

    def current_item(self) -> Item | None:
        match = self.current_match()
        return None if match is None else match.item
