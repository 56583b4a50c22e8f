"""Tests for CLI parsing, option merging, output formatting and exit codes."""

from __future__ import annotations

import contextlib
import io
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from lazypick import cli
from lazypick.items import Item
from lazypick.picker import Cancelled, MultiSelected, Selected, show
from lazypick.runtime.config import PickerDefaults
from lazypick.runtime.loop import TerminalRenderer


class ManualPool:
    def __init__(self) -> None:
        self.tasks: list = []

    def submit(self, fn) -> None:
        self.tasks.append(fn)

    def run(self, index: int) -> None:
        self.tasks[index]()


class FakeStdin(io.StringIO):
    def __init__(self, text: str = "", *, tty: bool = False) -> None:
        super().__init__(text)
        self._tty = tty

    def isatty(self) -> bool:
        return self._tty


class ParserTests(unittest.TestCase):
    def test_defaults(self) -> None:
        args = cli.build_parser().parse_args([])
        self.assertIsNone(args.file)
        self.assertFalse(args.multi)
        self.assertIsNone(args.max)
        self.assertEqual(args.query, "")

    def test_invalid_numbers_are_rejected(self) -> None:
        parser = cli.build_parser()
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                parser.parse_args(["--max", "0"])
            with self.assertRaises(SystemExit):
                parser.parse_args(["--timeout", "-1"])

    def test_build_options_prefers_flags_over_config(self) -> None:
        defaults = PickerDefaults(multiselect_max=9, timeout_seconds=2.0, debounce_seconds=0.5, prompt="$ ")
        args = cli.build_parser().parse_args(["--max", "3", "--timeout", "1", "--prompt", "? "])
        options = cli.build_options(args, defaults, TerminalRenderer())
        self.assertTrue(options.multiselect)
        self.assertEqual(options.multiselect_max, 3)
        self.assertEqual(options.timeout_seconds, 1.0)
        self.assertEqual(options.debounce_seconds, 0.5)
        self.assertEqual(options.prompt, "? ")
        self.assertIsNone(options.async_source)

    def test_build_options_falls_back_to_config(self) -> None:
        defaults = PickerDefaults(multiselect_max=4, prompt="$ ")
        args = cli.build_parser().parse_args(["--multi", "--command", "ls {q}"])
        options = cli.build_options(args, defaults, TerminalRenderer())
        self.assertEqual(options.multiselect_max, 4)
        self.assertEqual(options.prompt, "$ ")
        self.assertIsNotNone(options.async_source)


class OutcomeFormattingTests(unittest.TestCase):
    def test_exit_codes(self) -> None:
        item = Item(display_text="a", identity=1, payload="a")
        other = Item(display_text="b", identity=2, payload="b")
        self.assertEqual(cli.format_outcome(Selected(item)), (["a"], cli.EXIT_SELECTED))
        self.assertEqual(cli.format_outcome(MultiSelected((item, other))), (["a", "b"], cli.EXIT_SELECTED))
        self.assertEqual(cli.format_outcome(Cancelled("no match")), ([], cli.EXIT_NO_MATCH))
        self.assertEqual(cli.format_outcome(Cancelled()), ([], cli.EXIT_CANCELLED))


class ReadItemsTests(unittest.TestCase):
    def test_reads_lines_from_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "items.txt"
            path.write_text("one\ntwo\r\n", encoding="utf-8")
            items = cli.read_items(str(path), FakeStdin())
        self.assertEqual([item.display_text for item in items], ["one", "two"])
        self.assertEqual([item.identity for item in items], [1, 2])

    def test_missing_file_exits(self) -> None:
        with self.assertRaises(SystemExit):
            cli.read_items("/nonexistent/lazypick-items.txt", FakeStdin())

    def test_reads_stdin_unless_it_is_a_terminal(self) -> None:
        self.assertEqual(len(cli.read_items("-", FakeStdin("x\ny\n"))), 2)
        self.assertEqual(cli.read_items(None, FakeStdin("x\n", tty=True)), [])


class CommandProducerTests(unittest.TestCase):
    def test_query_is_quoted_and_lines_become_items(self) -> None:
        produce = cli.command_producer("printf '%s\\n' {q} tail")
        items = list(produce("a b; echo injected", lambda: False))
        self.assertEqual([item["display_text"] for item in items], ["a b; echo injected", "tail"])
        self.assertEqual(items[0]["identity"], ("command", "a b; echo injected", 0))

    def test_repeated_lines_get_distinct_identities(self) -> None:
        produce = cli.command_producer("printf '%s\\n' x y x")
        identities = [item["identity"] for item in produce("", lambda: False)]
        self.assertEqual(identities, [("command", "x", 0), ("command", "y", 0), ("command", "x", 1)])

    def test_marks_follow_the_same_line_across_queries(self) -> None:
        pool = ManualPool()
        session = show(
            [],
            async_source=cli.command_producer("printf '%s\\n' apple apricot banana | grep -e {q}"),
            pool=pool,
            multiselect=True,
            preserve_order=True,
        )
        pool.run(0)
        session.poll()
        session.send("insert", "a")
        pool.run(1)
        session.poll()
        self.assertEqual([match.item.display_text for match in session.view], ["apple", "apricot", "banana"])
        session.send("toggle")

        session.send("insert", "n")
        pool.run(2)
        session.poll()
        selection = session.state.selection
        self.assertEqual(
            [(match.item.display_text, selection.is_selected(match.identity)) for match in session.view],
            [("banana", False)],
        )
        session.send("confirm")
        self.assertEqual(cli.format_outcome(session.result(timeout=0)), (["apple"], cli.EXIT_SELECTED))

    def test_cancellation_stops_reading(self) -> None:
        produce = cli.command_producer("sleep 5; echo late")
        self.assertEqual(list(produce("", lambda: True)), [])


class MainTests(unittest.TestCase):
    def _run_main(self, argv: list[str], stdin_text: str, outcome) -> tuple[int, str]:
        @contextlib.contextmanager
        def fake_tty():
            yield 99

        stdout = io.StringIO()
        with (
            mock.patch("lazypick.cli.load_defaults", return_value=PickerDefaults()),
            mock.patch("lazypick.cli.open_tty", fake_tty),
            mock.patch("lazypick.cli.TerminalController"),
            mock.patch("lazypick.cli.run_picker_loop", return_value=outcome) as loop,
            mock.patch("sys.stdin", FakeStdin(stdin_text)),
            contextlib.redirect_stdout(stdout),
        ):
            with self.assertRaises(SystemExit) as exit_info:
                cli.main(argv)
        self.loop = loop
        return exit_info.exception.code, stdout.getvalue()

    def test_selection_is_printed_with_zero_status(self) -> None:
        item = Item(display_text="beta", identity=2, payload="beta")
        code, out = self._run_main([], "alpha\nbeta\n", Selected(item))
        self.assertEqual(code, cli.EXIT_SELECTED)
        self.assertEqual(out, "beta\n")
        session = self.loop.call_args.args[0]
        self.assertEqual(len(session.state.items), 2)

    def test_cancel_exits_130_without_output(self) -> None:
        code, out = self._run_main([], "alpha\n", Cancelled())
        self.assertEqual(code, cli.EXIT_CANCELLED)
        self.assertEqual(out, "")

    def test_empty_input_exits_without_opening_terminal(self) -> None:
        code, _out = self._run_main([], "", Cancelled())
        self.assertEqual(code, cli.EXIT_NO_MATCH)
        self.loop.assert_not_called()

    def test_save_defaults_persists_flags(self) -> None:
        with mock.patch("lazypick.cli.save_defaults") as save:
            self._run_main(["--save-defaults", "--max", "2"], "a\n", Cancelled())
        save.assert_called_once_with(multiselect_max=2, timeout_seconds=None, debounce_seconds=None, prompt=None)
