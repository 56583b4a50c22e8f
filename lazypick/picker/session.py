"""Caller-owned picker sessions and the ``show`` entry point."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import Future
from dataclasses import replace

from ..async_source import AsyncSourceAdapter, SourceSignal
from ..filtering import FilteredView
from ..items import ItemCollection, MalformedItemError
from ..query import QueryBuffer
from ..selection import SelectionSet
from .controller import PickerController, PickerDeps
from .outcome import Outcome
from .state import PickerOptions, PickerState

logger = logging.getLogger(__name__)

EVENT_NAMES = frozenset(
    {
        "insert",
        "backspace",
        "cursor_left",
        "cursor_right",
        "navigate",
        "toggle",
        "untoggle",
        "select_all",
        "clear_all",
        "delete_word",
        "clear_line",
        "confirm",
        "cancel",
        "resize",
        "refresh",
    }
)

_generation_ids = itertools.count(1)


def _normalize_options(
    options: PickerOptions | Mapping[str, object] | None,
    overrides: Mapping[str, object],
) -> PickerOptions:
    if options is None:
        resolved = PickerOptions()
    elif isinstance(options, PickerOptions):
        resolved = options
    else:
        resolved = PickerOptions.from_mapping(options)
    return replace(resolved, **overrides) if overrides else resolved


class PickerSession:
    """One generation of a picker, from ``start`` to a terminal outcome.

    ``outcome`` is a ``Future`` resolved exactly once with ``Selected``,
    ``MultiSelected`` or ``Cancelled``.
    """

    def __init__(
        self,
        items: Iterable[object] = (),
        options: PickerOptions | Mapping[str, object] | None = None,
        **overrides: object,
    ) -> None:
        self.options = _normalize_options(options, overrides)
        self.outcome: Future[Outcome] = Future()

        collection = ItemCollection(items, on_invalid=self._report_invalid_item)
        state = PickerState(
            generation=next(_generation_ids),
            query=QueryBuffer(self.options.initial_query),
            selection=SelectionSet(self.options.multiselect_max),
            static_items=tuple(collection),
            items=collection,
        )
        adapter = None
        if self.options.async_source is not None:
            adapter = AsyncSourceAdapter(
                self.options.async_source,
                pool=self.options.pool,
                timeout_seconds=self.options.timeout_seconds,
                debounce_seconds=self.options.debounce_seconds,
            )
        self.controller = PickerController(
            PickerDeps(state=state, options=self.options, resolve=self._resolve, adapter=adapter)
        )

    def _report_invalid_item(self, raw: object, error: MalformedItemError) -> None:
        if self.options.on_signal is not None:
            query = self.options.initial_query
            self.options.on_signal(SourceSignal(kind="invalid_item", query=query, message=str(error)))

    def _resolve(self, outcome: Outcome) -> None:
        if not self.outcome.done():
            self.outcome.set_result(outcome)

    def __enter__(self) -> PickerSession:
        self.start()
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()

    @property
    def state(self) -> PickerState:
        return self.controller.state

    @property
    def status(self) -> str:
        return self.controller.state.status

    @property
    def view(self) -> FilteredView:
        return self.controller.state.view

    @property
    def query(self) -> str:
        return self.controller.state.query.text

    @property
    def done(self) -> bool:
        return self.outcome.done()

    def start(self) -> bool:
        return self.controller.start()

    def send(self, event: str, *args: object) -> bool:
        """Dispatch a named input event; unknown names are refused."""
        if event not in EVENT_NAMES:
            logger.debug("unknown picker event %r", event)
            return False
        return getattr(self.controller, event)(*args)

    def poll(self, timeout_seconds: float = 0.0) -> bool:
        return self.controller.poll(timeout_seconds)

    def close(self, reason: str = "closed") -> bool:
        return self.controller.close(reason)

    def result(self, timeout: float | None = None) -> Outcome:
        return self.outcome.result(timeout)


def show(
    items: Iterable[object] = (),
    options: PickerOptions | Mapping[str, object] | None = None,
    **overrides: object,
) -> PickerSession:
    """Open a picker over ``items`` and return its active session.

    The caller feeds input through ``session.send`` (and ``session.poll``
    when an async source is configured) and reads ``session.outcome``.
    """
    session = PickerSession(items, options, **overrides)
    session.start()
    return session
