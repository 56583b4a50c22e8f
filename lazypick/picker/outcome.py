"""Terminal results of a picker session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..items import Item


@dataclass(frozen=True)
class Selected:
    item: Item

    @property
    def payload(self) -> Any:
        return self.item.payload


@dataclass(frozen=True)
class MultiSelected:
    """Marked items in ``order_index`` order, never in marking order."""

    items: tuple[Item, ...]

    @property
    def payloads(self) -> list[Any]:
        return [item.payload for item in self.items]


@dataclass(frozen=True)
class Cancelled:
    reason: str = "cancelled"


Outcome = Selected | MultiSelected | Cancelled
