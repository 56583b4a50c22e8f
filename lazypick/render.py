"""Plain ANSI frame rendering for the terminal picker.

Builds one full-screen frame string from the picker's current view: the
prompt line, a status line, then one row per match with matched characters
highlighted, the cursor row in reverse video and marked rows flagged.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Hashable, Sequence
from dataclasses import dataclass

from .items import Match

RESET = "\033[0m"
REVERSE = "\033[7m"
DIM = "\033[2m"
MATCH_STYLE = "\033[1;33m"
MARKER_STYLE = "\033[1;35m"
ERROR_STYLE = "\033[31m"
CLEAR_SCREEN = "\033[H\033[2J"
SPINNER_FRAMES = "|/-\\"


@dataclass(frozen=True)
class FrameContext:
    """Everything needed to draw one frame."""

    prompt: str
    query: str
    query_cursor: int
    matches: Sequence[Match]
    cursor_row: int
    selected: frozenset[Hashable]
    total: int
    width: int
    height: int
    loading: bool = False
    spinner_frame: int = 0
    message: str = ""


def char_display_width(ch: str) -> int:
    """Return terminal column width for one character."""
    if unicodedata.combining(ch):
        return 0
    if unicodedata.east_asian_width(ch) in {"W", "F"}:
        return 2
    return 1


def text_display_width(text: str) -> int:
    return sum(char_display_width(ch) for ch in text)


def clip_text(text: str, max_cols: int) -> str:
    """Trim plain text to at most ``max_cols`` display columns."""
    if max_cols <= 0:
        return ""
    col = 0
    for idx, ch in enumerate(text):
        w = char_display_width(ch)
        if col + w > max_cols:
            return text[:idx]
        col += w
    return text


def highlight(text: str, positions: Sequence[int], base: str = "") -> str:
    """Wrap matched character positions in the match style."""
    if not positions:
        return text
    marked = set(positions)
    out: list[str] = []
    for idx, ch in enumerate(text):
        if idx in marked:
            out.append(f"{MATCH_STYLE}{ch}{RESET}{base}")
        else:
            out.append(ch)
    return "".join(out)


def visible_window(cursor_row: int, count: int, rows: int) -> tuple[int, int]:
    """Return ``[start, stop)`` of match rows that keeps the cursor on screen."""
    if rows <= 0 or count <= 0:
        return 0, 0
    start = max(0, cursor_row - rows + 1)
    return start, min(count, start + rows)


def render_row(match: Match, *, is_cursor: bool, is_selected: bool, width: int) -> str:
    marker = f"{MARKER_STYLE}*{RESET}" if is_selected else " "
    pointer = ">" if is_cursor else " "
    text = clip_text(match.item.display_text, max(0, width - 3))
    # Positions index ``match_text``; only highlight when it is what we draw.
    positions = match.positions if match.item.match_text is None else ()
    positions = [pos for pos in positions if pos < len(text)]
    if not match.is_direct:
        body = f"{DIM}{text}{RESET}"
    elif is_cursor:
        body = f"{REVERSE}{highlight(text, positions, REVERSE)}{RESET}"
    else:
        body = highlight(text, positions)
    return f"{pointer}{marker} {body}"


def render_status(context: FrameContext) -> str:
    direct = sum(1 for match in context.matches if match.is_direct)
    status = f"  {direct}/{context.total}"
    if context.selected:
        status += f" ({len(context.selected)} selected)"
    if context.loading:
        status += f" {SPINNER_FRAMES[context.spinner_frame % len(SPINNER_FRAMES)]}"
    line = f"{DIM}{clip_text(status, context.width)}{RESET}"
    if context.message:
        room = max(0, context.width - len(status) - 2)
        line += f"  {ERROR_STYLE}{clip_text(context.message, room)}{RESET}"
    return line


def render_frame(context: FrameContext) -> str:
    """Build the escape-sequence string for one full-screen frame."""
    lines = [clip_text(context.prompt + context.query, context.width), render_status(context)]
    list_rows = max(0, context.height - len(lines))
    start, stop = visible_window(context.cursor_row, len(context.matches), list_rows)
    for row in range(start, stop):
        match = context.matches[row]
        lines.append(
            render_row(
                match,
                is_cursor=row == context.cursor_row,
                is_selected=match.item.identity in context.selected,
                width=context.width,
            )
        )
    cursor_col = text_display_width(context.prompt + context.query[: context.query_cursor]) + 1
    body = "\r\n".join(line + "\033[K" for line in lines)
    return f"{CLEAR_SCREEN}{body}\033[1;{min(cursor_col, context.width)}H\033[?25h"
