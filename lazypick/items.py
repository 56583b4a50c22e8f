"""Item records and the append-only live collection.

Items are immutable. ``ItemCollection`` stamps ``order_index`` once, when an
item first enters the collection, and never mutates stored items afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

P = TypeVar("P")


class MalformedItemError(ValueError):
    """Raised when a raw item cannot be turned into an ``Item``."""


@dataclass(frozen=True)
class Item(Generic[P]):
    """One selectable record.

    ``match_text`` defaults to ``display_text`` when not given. ``payload`` is
    returned to the caller untouched on selection.
    """

    display_text: str
    identity: Hashable
    payload: P | None = None
    match_text: str | None = None
    parent_identity: Hashable | None = None
    kind: str | None = None
    order_index: int = -1

    @property
    def text(self) -> str:
        """Text scored against the query."""
        return self.display_text if self.match_text is None else self.match_text


@dataclass(frozen=True)
class Match:
    """One row of a filtered view."""

    item: Item
    score: float | None
    positions: tuple[int, ...] = ()
    is_direct: bool = True

    @property
    def identity(self) -> Hashable:
        return self.item.identity


def coerce_item(raw: object) -> Item:
    """Build an ``Item`` from an ``Item`` or a mapping.

    Mappings accept ``display_text`` (or ``text``), ``identity`` (or ``id``),
    ``payload`` (or ``value``), ``match_text``, ``parent_identity`` (or
    ``parent``) and ``kind``. Raises ``MalformedItemError`` when the display
    text or identity is missing or of the wrong type.
    """
    if isinstance(raw, Item):
        if not isinstance(raw.display_text, str):
            raise MalformedItemError("display_text must be a string")
        if raw.identity is None:
            raise MalformedItemError("item has no identity")
        return raw
    if not isinstance(raw, Mapping):
        raise MalformedItemError(f"unsupported item type: {type(raw).__name__}")

    display_text = raw.get("display_text", raw.get("text"))
    if not isinstance(display_text, str):
        raise MalformedItemError("item has no display text")
    identity = raw.get("identity", raw.get("id"))
    if identity is None:
        raise MalformedItemError(f"item {display_text!r} has no identity")
    if not isinstance(identity, Hashable):
        raise MalformedItemError(f"item {display_text!r} has an unhashable identity")

    match_text = raw.get("match_text")
    if match_text is not None and not isinstance(match_text, str):
        raise MalformedItemError(f"item {display_text!r} has a non-string match_text")
    kind = raw.get("kind")
    if kind is not None and not isinstance(kind, str):
        raise MalformedItemError(f"item {display_text!r} has a non-string kind")
    parent_identity = raw.get("parent_identity", raw.get("parent"))
    if parent_identity is not None and not isinstance(parent_identity, Hashable):
        raise MalformedItemError(f"item {display_text!r} has an unhashable parent identity")

    return Item(
        display_text=display_text,
        identity=identity,
        payload=raw.get("payload", raw.get("value")),
        match_text=match_text,
        parent_identity=parent_identity,
        kind=kind,
    )


class ItemCollection(Sequence[Item]):
    """Append-only item sequence shared by the picker and async source.

    Readers take ``len()`` once and index below it; appends never disturb
    rows a reader has already seen. ``version`` increases on every append.
    """

    def __init__(
        self,
        items: Iterable[object] = (),
        *,
        on_invalid: Callable[[object, MalformedItemError], None] | None = None,
    ) -> None:
        self._items: list[Item] = []
        self._identities: set[Hashable] = set()
        self.version = 0
        self.on_invalid = on_invalid
        self.extend(items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index):  # type: ignore[override]
        return self._items[index]

    def __iter__(self) -> Iterator[Item]:
        return iter(self._items)

    def __contains__(self, identity: object) -> bool:
        return identity in self._identities

    def _reject(self, raw: object, error: MalformedItemError) -> None:
        logger.warning("dropping malformed item: %s", error)
        if self.on_invalid is not None:
            self.on_invalid(raw, error)

    def append(self, raw: object) -> Item | None:
        """Coerce and append one item, returning it or ``None`` when rejected."""
        try:
            item = coerce_item(raw)
        except MalformedItemError as exc:
            self._reject(raw, exc)
            return None
        if item.identity in self._identities:
            self._reject(raw, MalformedItemError(f"duplicate identity {item.identity!r}"))
            return None
        stamped = replace(item, order_index=len(self._items))
        self._items.append(stamped)
        self._identities.add(stamped.identity)
        self.version += 1
        return stamped

    def extend(self, raw_items: Iterable[object]) -> int:
        """Append a batch; malformed entries are skipped. Returns count added."""
        added = 0
        for raw in raw_items:
            if self.append(raw) is not None:
                added += 1
        return added

    def snapshot(self) -> tuple[int, int]:
        """Return ``(length, version)`` for a consistent read."""
        return len(self._items), self.version


def items_from_lines(lines: Iterable[str], *, start: int = 1) -> list[Item[str]]:
    """Build items from text lines; identity is the 1-based line number."""
    out: list[Item[str]] = []
    for offset, line in enumerate(lines):
        text = line.rstrip("\r\n")
        out.append(Item(display_text=text, identity=start + offset, payload=text))
    return out

