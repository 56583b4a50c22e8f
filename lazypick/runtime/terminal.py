"""Terminal control helpers for the picker frontend.

Owns raw-mode lifecycle and alternate-screen switching. The picker draws to
the controlling terminal so stdout stays free for the chosen lines.
"""

from __future__ import annotations

import contextlib
import os
import termios
import tty

TTY_PATH = "/dev/tty"


class TerminalController:
    """Manage terminal mode transitions for one picker run."""

    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        """Capture tty state and bind input/output file descriptors."""
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        self._saved_tty_state = termios.tcgetattr(stdin_fd)

    def enable_tui_mode(self) -> None:
        """Enter raw alternate-screen mode with the cursor hidden."""
        tty.setraw(self.stdin_fd, termios.TCSAFLUSH)
        os.write(self.stdout_fd, b"\x1b[?1049h\x1b[?25l")

    def disable_tui_mode(self) -> None:
        """Restore the main screen buffer, cursor, and saved tty state."""
        os.write(self.stdout_fd, b"\x1b[?25h\x1b[?1049l")
        termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)

    def size(self) -> tuple[int, int]:
        """Return ``(columns, rows)``, falling back to 80x24."""
        try:
            size = os.get_terminal_size(self.stdout_fd)
        except OSError:
            return 80, 24
        return size.columns, size.lines

    def write(self, text: str) -> None:
        os.write(self.stdout_fd, text.encode("utf-8", errors="replace"))

    @contextlib.contextmanager
    def raw_mode(self):
        """Hold raw alternate-screen mode for the duration of the block."""
        try:
            self.enable_tui_mode()
            yield
        finally:
            self.disable_tui_mode()


@contextlib.contextmanager
def open_tty(path: str = TTY_PATH):
    """Open the controlling terminal for reading keys and drawing frames."""
    fd = os.open(path, os.O_RDWR | os.O_NOCTTY)
    try:
        yield fd
    finally:
        os.close(fd)
