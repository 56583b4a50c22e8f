"""Picker state machine: query edits, cursor motion, selection, termination.

Every event handler returns whether it changed anything. Handlers are inert
outside the ``active`` status, so a finished session cannot be mutated.
Rendering and async production are injected so the transitions stay
deterministic under test.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..async_source import AsyncSourceAdapter, SourceSignal, SourceUpdate
from ..filtering import EMPTY_VIEW, FilteredView, filter_items
from ..items import ItemCollection, MalformedItemError
from ..search.prefix import parse_kind_filter
from .outcome import Cancelled, MultiSelected, Outcome, Selected
from .state import ACTIVE, CANCELLED, IDLE, MULTI_SELECTED, SELECTED, PickerOptions, PickerState

logger = logging.getLogger(__name__)


def _while_active(method):
    @functools.wraps(method)
    def wrapper(self: PickerController, *args, **kwargs) -> bool:
        if not self.state.active:
            logger.debug("ignoring %s on %s picker", method.__name__, self.state.status)
            return False
        return method(self, *args, **kwargs)

    return wrapper


@dataclass(frozen=True)
class PickerDeps:
    """Runtime dependencies required by :class:`PickerController`."""

    state: PickerState
    options: PickerOptions
    resolve: Callable[[Outcome], None]
    adapter: AsyncSourceAdapter | None = None


class PickerController:
    """State-bound picker operations driven by host input events."""

    def __init__(self, deps: PickerDeps) -> None:
        self.state = deps.state
        self.options = deps.options
        self.resolve = deps.resolve
        self.adapter = deps.adapter
        self._last_moved_identity: object = None
        self.state.items.on_invalid = self._on_invalid_item

    # Filtering -----------------------------------------------------------

    def _effective_query(self) -> str:
        parsed = parse_kind_filter(
            self.state.query.text,
            self.options.kind_filters,
            sentinel=self.options.sentinel,
            separator=self.options.separator,
        )
        return parsed.effective

    def _compute_view(self) -> FilteredView:
        if self.state.hidden:
            return EMPTY_VIEW
        return filter_items(
            self.state.items,
            self.state.query.text,
            hierarchical=self.options.hierarchical,
            preserve_order=self.options.preserve_order,
            kind_filters=self.options.kind_filters,
            sentinel=self.options.sentinel,
            separator=self.options.separator,
            smart_case=self.options.smart_case,
            include_descendants=self.options.include_descendants,
            always_include_roots=self.options.always_include_roots,
        )

    def _initial_row(self, view: FilteredView) -> int:
        if self.options.jump_to_best_match and view.best_index is not None:
            return view.best_index
        first = view.first_direct_index()
        return 0 if first is None else first

    def _refilter(self, *, query_changed: bool) -> None:
        state = self.state
        previous = state.current_item()
        view = self._compute_view()
        kept_row = view.index_of(previous.identity) if previous is not None else None

        if query_changed:
            keep_position = self.options.preserve_cursor and state.has_navigated
            if not keep_position:
                state.has_navigated = False
            if keep_position and kept_row is not None:
                state.cursor_row = kept_row
            else:
                state.cursor_row = self._initial_row(view)
        elif state.has_navigated and kept_row is not None:
            state.cursor_row = kept_row
        elif state.has_navigated:
            state.cursor_row = min(state.cursor_row, max(0, len(view) - 1))
        else:
            state.cursor_row = self._initial_row(view)
        state.view = view

    # Output --------------------------------------------------------------

    def emit(self) -> None:
        """Push the current frame to the renderer and report cursor moves."""
        state = self.state
        if self.options.renderer is not None:
            self.options.renderer(state.view.matches, state.cursor_row, state.selection.identities())
        item = state.current_item()
        identity = None if item is None else item.identity
        if item is not None and identity != self._last_moved_identity and self.options.on_move is not None:
            self.options.on_move(item)
        self._last_moved_identity = identity

    def _signal(self, signal: SourceSignal) -> None:
        self.state.last_signal = signal
        if self.options.on_signal is not None:
            self.options.on_signal(signal)

    def _on_invalid_item(self, raw: object, error: MalformedItemError) -> None:
        self._signal(SourceSignal(kind="invalid_item", query=self.state.query.text, message=str(error)))

    # Lifecycle -----------------------------------------------------------

    def start(self) -> bool:
        state = self.state
        if state.status != IDLE:
            return False
        state.status = ACTIVE
        state.hidden = self.options.initially_hidden
        self._refilter(query_changed=True)
        if self.adapter is not None:
            self.adapter.request(self._effective_query())
            state.loading = self.adapter.loading
        self.emit()
        return True

    def _finish(self, status: str, outcome: Outcome) -> bool:
        state = self.state
        state.status = status
        state.loading = False
        state.auto_select_pending = False
        if self.adapter is not None:
            self.adapter.close()
        logger.debug("picker generation %d finished: %s", state.generation, status)
        self.resolve(outcome)
        return True

    def _query_changed(self) -> bool:
        state = self.state
        untouched = not state.has_navigated
        state.hidden = False
        if self.adapter is not None:
            self.adapter.request(self._effective_query())
            state.loading = self.adapter.loading
        self._refilter(query_changed=True)
        state.auto_select_pending = self.options.auto_select and untouched
        if self._maybe_auto_select():
            return True
        self.emit()
        return True

    def _maybe_auto_select(self) -> bool:
        # Waits for the newest async request so a stale view never confirms.
        state = self.state
        if not state.auto_select_pending or state.loading:
            return False
        state.auto_select_pending = False
        if state.has_navigated or state.selection:
            return False
        if state.view.direct_count != 1:
            return False
        row = state.view.first_direct_index()
        if row is None:
            return False
        state.cursor_row = row
        return self._finish(SELECTED, Selected(state.view.matches[row].item))

    # Query events --------------------------------------------------------

    @_while_active
    def insert(self, chars: str) -> bool:
        if not self.state.query.insert(chars):
            return False
        return self._query_changed()

    @_while_active
    def backspace(self) -> bool:
        if not self.state.query.backspace():
            return False
        return self._query_changed()

    @_while_active
    def delete_word(self) -> bool:
        if not self.state.query.delete_word():
            return False
        return self._query_changed()

    @_while_active
    def clear_line(self) -> bool:
        if not self.state.query.clear():
            return False
        return self._query_changed()

    @_while_active
    def cursor_left(self) -> bool:
        if not self.state.query.move_cursor(-1):
            return False
        self.emit()
        return True

    @_while_active
    def cursor_right(self) -> bool:
        if not self.state.query.move_cursor(1):
            return False
        self.emit()
        return True

    # Navigation and selection -------------------------------------------

    def _step(self, delta: int) -> None:
        count = len(self.state.view)
        self.state.cursor_row = (self.state.cursor_row + delta) % count
        self.state.has_navigated = True

    @_while_active
    def navigate(self, delta: int) -> bool:
        if not self.state.view.matches or delta == 0:
            return False
        self._step(1 if delta > 0 else -1)
        self.emit()
        return True

    @_while_active
    def toggle(self) -> bool:
        state = self.state
        item = state.current_item()
        if not self.options.multiselect or item is None:
            return False
        if not state.selection.toggle(item):
            logger.debug("toggle refused for %r at selection limit", item.identity)
            return False
        self._step(1)
        self.emit()
        return True

    @_while_active
    def untoggle(self) -> bool:
        state = self.state
        if not self.options.multiselect or not state.selection or not state.view.matches:
            return False
        count = len(state.view)
        start = state.cursor_row
        for offset in range(1, count + 1):
            row = (start - offset) % count
            item = state.view.matches[row].item
            if state.selection.is_selected(item.identity):
                state.selection.discard(item.identity)
                state.cursor_row = row
                state.has_navigated = True
                self.emit()
                return True
        return False

    @_while_active
    def select_all(self) -> bool:
        if not self.options.multiselect or not self.state.view.matches:
            return False
        if not self.state.selection.select_many(self.state.view.items):
            logger.debug("select_all refused or nothing new to select")
            return False
        self.emit()
        return True

    @_while_active
    def clear_all(self) -> bool:
        if not self.options.multiselect:
            return False
        if not self.state.selection.clear_many(self.state.view.items):
            return False
        self.emit()
        return True

    # Termination ---------------------------------------------------------

    @_while_active
    def confirm(self) -> bool:
        state = self.state
        if self.options.multiselect and state.selection:
            return self._finish(MULTI_SELECTED, MultiSelected(tuple(state.selection.members())))
        item = state.current_item()
        if item is None:
            return self._finish(CANCELLED, Cancelled("no match"))
        return self._finish(SELECTED, Selected(item))

    @_while_active
    def cancel(self, reason: str = "cancelled") -> bool:
        return self._finish(CANCELLED, Cancelled(reason))

    # Host events ---------------------------------------------------------

    @_while_active
    def resize(self, *_size: int) -> bool:
        self.emit()
        return True

    @_while_active
    def refresh(self) -> bool:
        self.emit()
        return True

    def _apply_update(self, update: SourceUpdate) -> bool:
        state = self.state
        changed = False
        if update.reset:
            state.items = ItemCollection(state.static_items, on_invalid=self._on_invalid_item)
            changed = True
        if update.items and state.items.extend(update.items):
            changed = True
        return changed

    @_while_active
    def poll(self, timeout_seconds: float = 0.0) -> bool:
        """Apply pending async results; returns whether the frame changed."""
        if self.adapter is None:
            return False
        state = self.state
        items_changed = False
        for event in self.adapter.poll(timeout_seconds):
            if isinstance(event, SourceSignal):
                self._signal(event)
                continue
            if self._apply_update(event):
                items_changed = True
        was_loading = state.loading
        state.loading = self.adapter.loading
        if items_changed:
            self._refilter(query_changed=False)
        if was_loading and not state.loading and self._maybe_auto_select():
            return True
        if items_changed or was_loading != state.loading:
            self.emit()
            return True
        return False

    def close(self, reason: str = "closed") -> bool:
        """End the session from any non-terminal status, e.g. when the host UI goes away."""
        if self.state.finished:
            return False
        return self._finish(CANCELLED, Cancelled(reason))
