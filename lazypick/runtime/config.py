"""Persistent JSON config helpers.

Stores picker defaults: selection limit, producer timeout and debounce,
process-wide producer cap, kind-filter vocabulary, and prompt.
All access is defensive: malformed or missing config falls back safely.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path

from platformdirs import user_config_dir

from ..async_source import DEFAULT_MAX_CONCURRENT_PRODUCERS, DEFAULT_TIMEOUT_SECONDS
from ..search.prefix import DEFAULT_KIND_FILTERS, KindFilter, kind_filters_from_config

logger = logging.getLogger(__name__)

APP_NAME = "lazypick"
CONFIG_FILENAME = "config.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH
DEFAULT_PROMPT = "> "


@dataclass(frozen=True)
class PickerDefaults:
    """Config-backed defaults applied before command-line overrides."""

    multiselect_max: int | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    debounce_seconds: float = 0.0
    max_concurrent_producers: int = DEFAULT_MAX_CONCURRENT_PRODUCERS
    kind_filters: dict[str, KindFilter] = field(default_factory=lambda: dict(DEFAULT_KIND_FILTERS))
    prompt: str = DEFAULT_PROMPT


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except Exception:
        logger.debug("ignoring unreadable config at %s", CONFIG_PATH, exc_info=True)
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Any filesystem/serialization error is ignored to keep runtime behavior
    non-fatal when config cannot be written.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except Exception:
        logger.debug("could not write config to %s", CONFIG_PATH, exc_info=True)


def _positive_int(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return None
    return value


def _number(value: object, *, allow_zero: bool) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value < 0 or (value == 0 and not allow_zero):
        return None
    return float(value)


def load_defaults() -> PickerDefaults:
    """Read picker defaults, dropping each invalid field independently."""
    data = load_config()
    defaults = PickerDefaults()
    values: dict[str, object] = {}

    multiselect_max = _positive_int(data.get("multiselect_max"))
    if multiselect_max is not None:
        values["multiselect_max"] = multiselect_max
    timeout_seconds = _number(data.get("timeout_seconds"), allow_zero=False)
    if timeout_seconds is not None:
        values["timeout_seconds"] = timeout_seconds
    debounce_seconds = _number(data.get("debounce_seconds"), allow_zero=True)
    if debounce_seconds is not None:
        values["debounce_seconds"] = debounce_seconds
    max_concurrent = _positive_int(data.get("max_concurrent_producers"))
    if max_concurrent is not None:
        values["max_concurrent_producers"] = max_concurrent

    raw_filters = data.get("kind_filters")
    if isinstance(raw_filters, dict):
        kind_filters = kind_filters_from_config(raw_filters)
        if kind_filters:
            values["kind_filters"] = kind_filters

    prompt = data.get("prompt")
    if isinstance(prompt, str) and prompt:
        values["prompt"] = prompt

    return replace(defaults, **values) if values else defaults


def save_defaults(
    *,
    multiselect_max: int | None = None,
    timeout_seconds: float | None = None,
    debounce_seconds: float | None = None,
    prompt: str | None = None,
) -> None:
    """Merge the given non-``None`` defaults into the persisted config."""
    updates: dict[str, object] = {}
    if multiselect_max is not None and multiselect_max > 0:
        updates["multiselect_max"] = int(multiselect_max)
    if timeout_seconds is not None and timeout_seconds > 0:
        updates["timeout_seconds"] = float(timeout_seconds)
    if debounce_seconds is not None and debounce_seconds >= 0:
        updates["debounce_seconds"] = float(debounce_seconds)
    if prompt:
        updates["prompt"] = prompt
    if not updates:
        return
    config = load_config()
    config.update(updates)
    save_config(config)
