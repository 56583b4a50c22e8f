"""Command-line front door for lazypick.

Reads candidate lines from a file or stdin (or streams them from a shell
command re-run on every query change), runs the interactive picker on the
controlling terminal, and prints the chosen lines to stdout.
"""

from __future__ import annotations

import argparse
import logging
import os
import select
import shlex
import subprocess
import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import TextIO

from .async_source import Producer, shared_producer_pool
from .items import Item, items_from_lines
from .picker import Cancelled, MultiSelected, Outcome, PickerOptions, PickerSession, Selected
from .runtime.config import PickerDefaults, load_defaults, save_defaults
from .runtime.loop import TerminalRenderer, run_picker_loop
from .runtime.terminal import TerminalController, open_tty

logger = logging.getLogger(__name__)

EXIT_SELECTED = 0
EXIT_NO_MATCH = 1
EXIT_CANCELLED = 130
COMMAND_POLL_SECONDS = 0.05
QUERY_PLACEHOLDER = "{q}"


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def _seconds(value: str) -> float:
    """argparse type for non-negative durations."""
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("value must be >= 0")
    return parsed


def _iter_output_lines(proc: subprocess.Popen, should_cancel: Callable[[], bool]) -> Iterator[str]:
    fd = proc.stdout.fileno()
    buffer = b""
    while True:
        if should_cancel():
            return
        ready, _, _ = select.select([fd], [], [], COMMAND_POLL_SECONDS)
        if not ready:
            continue
        chunk = os.read(fd, 65536)
        if not chunk:
            break
        buffer += chunk
        *lines, buffer = buffer.split(b"\n")
        for line in lines:
            yield line.decode("utf-8", errors="replace").rstrip("\r")
    if buffer:
        yield buffer.decode("utf-8", errors="replace").rstrip("\r")


def command_producer(command: str) -> Producer:
    """Producer running ``command`` through the shell for each query.

    ``{q}`` in the command is replaced by the shell-quoted query. A line's
    identity is its text plus how many identical lines preceded it, so marks
    follow the same line across re-runs. The process is killed as soon as the
    request is cancelled or superseded.
    """

    def produce(query: str, should_cancel: Callable[[], bool]) -> Iterator[dict[str, object]]:
        rendered = command.replace(QUERY_PLACEHOLDER, shlex.quote(query))
        logger.debug("running producer command: %s", rendered)
        proc = subprocess.Popen(
            rendered,
            shell=True,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
        seen: dict[str, int] = {}
        try:
            for line in _iter_output_lines(proc, should_cancel):
                occurrence = seen.get(line, 0)
                seen[line] = occurrence + 1
                yield {"display_text": line, "identity": ("command", line, occurrence), "payload": line}
        finally:
            if proc.poll() is None:
                proc.kill()
            proc.wait()
            proc.stdout.close()

    return produce


def read_items(path: str | None, stdin: TextIO) -> list[Item[str]]:
    """Load candidate lines from ``path`` (``-`` or ``None`` means stdin)."""
    if path is not None and path != "-":
        target = Path(path)
        if not target.is_file():
            raise SystemExit(f"File not found: {target}")
        with target.open(encoding="utf-8", errors="replace") as handle:
            return items_from_lines(handle)
    if stdin.isatty():
        return []
    return items_from_lines(stdin)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lazypick",
        description="Interactively pick lines from a file, stdin, or a command's output.",
    )
    parser.add_argument("file", nargs="?", default=None, help="File with one candidate per line. Defaults to stdin.")
    parser.add_argument("--multi", action="store_true", help="Allow marking several lines with TAB.")
    parser.add_argument("--max", type=_positive_int, default=None, help="Maximum number of marked lines.")
    parser.add_argument("--auto-select", action="store_true", help="Accept automatically when one line matches.")
    parser.add_argument("--preserve-order", action="store_true", help="Keep input order instead of sorting by score.")
    parser.add_argument("--prompt", default=None, help="Prompt shown before the query.")
    parser.add_argument(
        "--command",
        default=None,
        help=f"Shell command producing candidates; {QUERY_PLACEHOLDER} is replaced by the query.",
    )
    parser.add_argument("--timeout", type=_seconds, default=None, help="Seconds to wait for --command output.")
    parser.add_argument("--debounce", type=_seconds, default=None, help="Seconds to wait before re-running --command.")
    parser.add_argument("--query", default="", help="Initial query.")
    parser.add_argument("--log-file", default=None, help="Write debug logs to this file.")
    parser.add_argument(
        "--save-defaults",
        action="store_true",
        help="Persist --max, --timeout, --debounce and --prompt as defaults.",
    )
    return parser


def build_options(
    args: argparse.Namespace,
    defaults: PickerDefaults,
    renderer: TerminalRenderer,
) -> PickerOptions:
    """Merge config defaults with command-line overrides."""
    timeout_seconds = args.timeout if args.timeout is not None else defaults.timeout_seconds
    debounce_seconds = args.debounce if args.debounce is not None else defaults.debounce_seconds
    return PickerOptions(
        multiselect=args.multi or args.max is not None,
        multiselect_max=args.max if args.max is not None else defaults.multiselect_max,
        auto_select=args.auto_select,
        preserve_order=args.preserve_order,
        async_source=command_producer(args.command) if args.command else None,
        prompt=args.prompt if args.prompt is not None else defaults.prompt,
        initial_query=args.query,
        kind_filters=defaults.kind_filters,
        timeout_seconds=timeout_seconds,
        debounce_seconds=debounce_seconds,
        renderer=renderer,
        on_signal=renderer.on_signal,
    )


def format_outcome(outcome: Outcome) -> tuple[list[str], int]:
    """Return the lines to print and the process exit status."""
    if isinstance(outcome, Selected):
        return [str(outcome.payload)], EXIT_SELECTED
    if isinstance(outcome, MultiSelected):
        return [str(payload) for payload in outcome.payloads], EXIT_SELECTED
    if isinstance(outcome, Cancelled) and outcome.reason == "no match":
        return [], EXIT_NO_MATCH
    return [], EXIT_CANCELLED


def configure_logging(log_file: str | None) -> None:
    if not log_file:
        return
    logging.basicConfig(
        filename=log_file,
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments, run the picker, print the outcome, and exit."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_file)

    if args.save_defaults:
        save_defaults(
            multiselect_max=args.max,
            timeout_seconds=args.timeout,
            debounce_seconds=args.debounce,
            prompt=args.prompt,
        )
    defaults = load_defaults()
    shared_producer_pool(defaults.max_concurrent_producers)

    items = read_items(args.file, sys.stdin)
    if not items and not args.command:
        raise SystemExit(EXIT_NO_MATCH)

    renderer = TerminalRenderer()
    options = build_options(args, defaults, renderer)
    session = PickerSession(items, options)
    try:
        with open_tty() as tty_fd:
            terminal = TerminalController(tty_fd, tty_fd)
            session.start()
            outcome = run_picker_loop(session, terminal, tty_fd, renderer, prompt=options.prompt)
    except OSError as exc:
        raise SystemExit(f"lazypick: cannot open terminal: {exc}") from exc

    lines, status = format_outcome(outcome)
    for line in lines:
        sys.stdout.write(line + "\n")
    sys.stdout.flush()
    raise SystemExit(status)


if __name__ == "__main__":
    main()
