"""Public package surface for lazypick.

Exports the picker entry point, item types and outcomes, plus ``main`` for
programmatic CLI invocation. Most implementation lives in submodules.
"""

from __future__ import annotations

import logging

from .async_source import AsyncSourceAdapter, ProducerPool, SourceSignal, shared_producer_pool
from .filtering import FilteredView, filter_items
from .items import Item, ItemCollection, MalformedItemError, Match
from .picker import Cancelled, MultiSelected, PickerOptions, PickerSession, Selected, show
from .search import KindFilter, score_match
from .selection import SelectionSet

logging.getLogger(__name__).addHandler(logging.NullHandler())


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)

__all__ = [
    "AsyncSourceAdapter",
    "Cancelled",
    "FilteredView",
    "Item",
    "ItemCollection",
    "KindFilter",
    "MalformedItemError",
    "Match",
    "MultiSelected",
    "PickerOptions",
    "PickerSession",
    "ProducerPool",
    "Selected",
    "SelectionSet",
    "SourceSignal",
    "filter_items",
    "main",
    "score_match",
    "shared_producer_pool",
    "show",
]
