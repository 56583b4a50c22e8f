"""Multi-selection membership keyed by item identity."""

from __future__ import annotations

from collections.abc import Hashable, Iterable

from .items import Item


class SelectionSet:
    """Marked items, independent of what the current view shows.

    Membership is keyed by ``identity`` and survives refiltering and
    collection swaps; the marked ``Item`` is kept so ``members`` can return it
    even when it is no longer in the live collection.
    """

    def __init__(self, max_items: int | None = None) -> None:
        self.max_items = max_items
        self._marked: dict[Hashable, Item] = {}

    def __len__(self) -> int:
        return len(self._marked)

    def __bool__(self) -> bool:
        return bool(self._marked)

    def __contains__(self, identity: object) -> bool:
        return identity in self._marked

    def count(self) -> int:
        return len(self._marked)

    def is_selected(self, identity: Hashable) -> bool:
        return identity in self._marked

    def _has_room(self, extra: int = 1) -> bool:
        return self.max_items is None or len(self._marked) + extra <= self.max_items

    def set(self, item: Item, selected: bool) -> bool:
        """Set membership for ``item``; returns whether anything changed.

        Adding past ``max_items`` is refused.
        """
        if not selected:
            return self._marked.pop(item.identity, None) is not None
        if item.identity in self._marked:
            return False
        if not self._has_room():
            return False
        self._marked[item.identity] = item
        return True

    def toggle(self, item: Item) -> bool:
        """Flip membership for ``item``; returns whether the flip happened."""
        return self.set(item, item.identity not in self._marked)

    def discard(self, identity: Hashable) -> bool:
        return self._marked.pop(identity, None) is not None

    def select_many(self, items: Iterable[Item]) -> bool:
        """Mark every item, or nothing when the result would exceed ``max_items``."""
        new_items: dict[Hashable, Item] = {}
        for item in items:
            if item.identity not in self._marked:
                new_items.setdefault(item.identity, item)
        if not new_items:
            return False
        if not self._has_room(len(new_items)):
            return False
        self._marked.update(new_items)
        return True

    def clear_many(self, items: Iterable[Item]) -> bool:
        changed = False
        for item in items:
            if self._marked.pop(item.identity, None) is not None:
                changed = True
        return changed

    def clear(self) -> bool:
        if not self._marked:
            return False
        self._marked.clear()
        return True

    def identities(self) -> list[Hashable]:
        return [item.identity for item in self.members()]

    def members(self) -> list[Item]:
        """Selected items in ``order_index`` order."""
        return sorted(self._marked.values(), key=lambda item: item.order_index)
