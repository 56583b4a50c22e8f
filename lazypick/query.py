"""Editable query line with an insertion cursor."""

from __future__ import annotations


class QueryBuffer:
    """Query text plus a cursor offset in ``[0, len(text)]``.

    Every edit returns whether the text actually changed so callers can skip
    refiltering on no-op edits.
    """

    def __init__(self, text: str = "") -> None:
        self.text = text
        self.cursor = len(text)

    def __len__(self) -> int:
        return len(self.text)

    def insert(self, chars: str) -> bool:
        if not chars:
            return False
        self.text = self.text[: self.cursor] + chars + self.text[self.cursor:]
        self.cursor += len(chars)
        return True

    def backspace(self) -> bool:
        if self.cursor <= 0:
            return False
        self.text = self.text[: self.cursor - 1] + self.text[self.cursor:]
        self.cursor -= 1
        return True

    def move_cursor(self, direction: int) -> bool:
        target = max(0, min(len(self.text), self.cursor + direction))
        if target == self.cursor:
            return False
        self.cursor = target
        return True

    def delete_word(self) -> bool:
        """Delete the word before the cursor along with spaces trailing it."""
        if self.cursor <= 0:
            return False
        end = self.cursor
        start = end
        while start > 0 and self.text[start - 1] == " ":
            start -= 1
        while start > 0 and self.text[start - 1] != " ":
            start -= 1
        self.text = self.text[:start] + self.text[end:]
        self.cursor = start
        return True

    def clear(self) -> bool:
        if not self.text:
            self.cursor = 0
            return False
        self.text = ""
        self.cursor = 0
        return True
