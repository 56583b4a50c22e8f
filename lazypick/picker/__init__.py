"""Picker state machine, session object and outcomes."""

from .controller import PickerController, PickerDeps
from .outcome import Cancelled, MultiSelected, Outcome, Selected
from .session import EVENT_NAMES, PickerSession, show
from .state import (
    ACTIVE,
    CANCELLED,
    IDLE,
    MULTI_SELECTED,
    SELECTED,
    PickerOptions,
    PickerState,
)

__all__ = [
    "ACTIVE",
    "CANCELLED",
    "EVENT_NAMES",
    "IDLE",
    "MULTI_SELECTED",
    "SELECTED",
    "Cancelled",
    "MultiSelected",
    "Outcome",
    "PickerController",
    "PickerDeps",
    "PickerOptions",
    "PickerSession",
    "PickerState",
    "Selected",
    "show",
]
