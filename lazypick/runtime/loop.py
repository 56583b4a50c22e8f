"""Main interactive event loop for the terminal picker.

Translates key tokens into picker events, pumps async producer results, and
redraws whenever the picker reports a new frame. Feature logic lives in the
picker session; this loop is wiring only.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass

from ..async_source import SourceSignal
from ..input import is_printable_key, read_key
from ..items import Match
from ..picker import Outcome, PickerSession
from ..render import FrameContext, render_frame
from .terminal import TerminalController

KEY_EVENTS: dict[str, tuple[str, tuple[int, ...]]] = {
    "BACKSPACE": ("backspace", ()),
    "LEFT": ("cursor_left", ()),
    "RIGHT": ("cursor_right", ()),
    "UP": ("navigate", (-1,)),
    "CTRL_P": ("navigate", (-1,)),
    "DOWN": ("navigate", (1,)),
    "CTRL_N": ("navigate", (1,)),
    "TAB": ("toggle", ()),
    "SHIFT_TAB": ("untoggle", ()),
    "CTRL_A": ("select_all", ()),
    "CTRL_L": ("clear_all", ()),
    "CTRL_W": ("delete_word", ()),
    "CTRL_U": ("clear_line", ()),
    "ENTER": ("confirm", ()),
    "ESC": ("cancel", ()),
    "CTRL_C": ("cancel", ()),
}


@dataclass(frozen=True)
class RuntimeLoopTiming:
    """Timing constants controlling interactive loop behavior."""

    key_poll_ms: int = 30
    spinner_frame_seconds: float = 0.1


class TerminalRenderer:
    """Picker renderer callback that records the latest frame for drawing.

    The picker calls it after every state change; the loop draws from it when
    ``dirty`` is set, so bursts of events collapse into one redraw.
    """

    def __init__(self) -> None:
        self.matches: Sequence[Match] = ()
        self.cursor_row = 0
        self.selected: frozenset[Hashable] = frozenset()
        self.message = ""
        self.dirty = True

    def __call__(self, matches: Sequence[Match], cursor_row: int, selection: list[Hashable]) -> None:
        self.matches = list(matches)
        self.cursor_row = cursor_row
        self.selected = frozenset(selection)
        self.dirty = True

    def on_signal(self, signal: SourceSignal) -> None:
        if signal.kind == "empty":
            self.message = ""
        else:
            self.message = f"{signal.kind}: {signal.message}" if signal.message else signal.kind
        self.dirty = True


def dispatch_key(session: PickerSession, key: str) -> bool:
    """Send the picker event bound to ``key``; returns whether state changed."""
    bound = KEY_EVENTS.get(key)
    if bound is not None:
        name, args = bound
        return session.send(name, *args)
    if is_printable_key(key):
        return session.send("insert", key)
    return False


def _frame_context(
    session: PickerSession,
    renderer: TerminalRenderer,
    prompt: str,
    size: tuple[int, int],
    spinner_frame: int,
) -> FrameContext:
    state = session.state
    return FrameContext(
        prompt=prompt,
        query=state.query.text,
        query_cursor=state.query.cursor,
        matches=renderer.matches,
        cursor_row=renderer.cursor_row,
        selected=renderer.selected,
        total=len(state.items),
        width=size[0],
        height=size[1],
        loading=state.loading,
        spinner_frame=spinner_frame,
        message=renderer.message,
    )


def run_picker_loop(
    session: PickerSession,
    terminal: TerminalController,
    input_fd: int,
    renderer: TerminalRenderer,
    *,
    prompt: str,
    timing: RuntimeLoopTiming = RuntimeLoopTiming(),
    read_key_fn: Callable[..., str] = read_key,
) -> Outcome:
    """Run the picker until it reaches a terminal outcome and return it."""
    last_size: tuple[int, int] | None = None
    spinner_frame = 0

    with terminal.raw_mode():
        try:
            while not session.done:
                size = terminal.size()
                if size != last_size:
                    last_size = size
                    session.send("resize", *size)

                session.poll()
                if session.done:
                    break

                if session.state.loading:
                    next_spinner_frame = int(time.monotonic() / timing.spinner_frame_seconds)
                    if next_spinner_frame != spinner_frame:
                        spinner_frame = next_spinner_frame
                        renderer.dirty = True

                if renderer.dirty:
                    renderer.dirty = False
                    terminal.write(render_frame(_frame_context(session, renderer, prompt, size, spinner_frame)))

                key = read_key_fn(input_fd, timeout_ms=timing.key_poll_ms)
                if key:
                    dispatch_key(session, key)
        finally:
            session.close("terminal closed")
    return session.result()
