"""Structured kind filters typed at the front of a query.

``"/fn parse"`` narrows candidates to the kinds mapped to ``fn`` and leaves
``"parse"`` to be fuzzy-scored. Unknown codes are plain query text.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_SENTINEL = "/"
DEFAULT_SEPARATOR = " "


@dataclass(frozen=True)
class KindFilter:
    code: str
    kinds: frozenset[str]
    description: str = ""

    def accepts(self, kind: str | None) -> bool:
        return kind is not None and kind.casefold() in self.kinds


@dataclass(frozen=True)
class ParsedQuery:
    """Query split into an optional kind filter and the remaining text."""

    raw: str
    effective: str
    kind_filter: KindFilter | None = None


def make_kind_filter(code: str, kinds, description: str = "") -> KindFilter:
    return KindFilter(
        code=code,
        kinds=frozenset(str(kind).casefold() for kind in kinds),
        description=description,
    )


DEFAULT_KIND_FILTERS: dict[str, KindFilter] = {
    code: make_kind_filter(code, kinds, description)
    for code, kinds, description in (
        ("fn", ("Function", "Constructor"), "Functions, methods and constructors"),
        ("me", ("Method", "Accessor"), "Methods"),
        ("va", ("Variable", "Parameter", "TypeParameter"), "Variables and parameters"),
        ("cl", ("Class", "Interface", "Struct"), "Classes, interfaces and structures"),
        ("co", ("Constant", "Boolean", "Number", "String"), "Constants and literal values"),
        ("fi", ("Field", "Property", "EnumMember"), "Object fields and properties"),
        ("mo", ("Module", "Package", "Namespace"), "Modules and packages"),
        ("ar", ("Array", "List", "Sequence"), "Arrays, lists and sequences"),
        ("ob", ("Object", "Class", "Instance"), "Objects and class instances"),
    )
}


def parse_kind_filter(
    query: str,
    vocabulary: Mapping[str, KindFilter] | None,
    *,
    sentinel: str = DEFAULT_SENTINEL,
    separator: str = DEFAULT_SEPARATOR,
) -> ParsedQuery:
    """Split ``query`` into a recognized kind filter and the text after it."""
    if not vocabulary or not sentinel or not query.startswith(sentinel):
        return ParsedQuery(raw=query, effective=query)

    head, _sep, remaining = query[len(sentinel):].partition(separator)
    kind_filter = vocabulary.get(head)
    if kind_filter is None:
        return ParsedQuery(raw=query, effective=query)
    return ParsedQuery(raw=query, effective=remaining, kind_filter=kind_filter)


def kind_filters_from_config(raw: object) -> dict[str, KindFilter]:
    """Build a vocabulary from ``{code: {"kinds": [...], "description": str}}``.

    Entries with a non-string code, an empty code, or no string kinds are
    dropped.
    """
    if not isinstance(raw, Mapping):
        return {}
    out: dict[str, KindFilter] = {}
    for code, spec in raw.items():
        if not isinstance(code, str) or not code.strip() or not isinstance(spec, Mapping):
            continue
        kinds = spec.get("kinds")
        if not isinstance(kinds, (list, tuple)):
            continue
        kinds = [kind for kind in kinds if isinstance(kind, str) and kind]
        if not kinds:
            continue
        description = spec.get("description")
        out[code.strip()] = make_kind_filter(
            code.strip(),
            kinds,
            description if isinstance(description, str) else "",
        )
    return out
