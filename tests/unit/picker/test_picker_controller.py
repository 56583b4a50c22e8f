"""State-machine tests for query edits, navigation, selection and outcomes."""

from __future__ import annotations

import unittest

from lazypick.picker import (
    ACTIVE,
    CANCELLED,
    MULTI_SELECTED,
    SELECTED,
    Cancelled,
    MultiSelected,
    PickerSession,
    Selected,
    show,
)

FRUIT = [
    {"id": 1, "text": "apple"},
    {"id": 2, "text": "banana"},
    {"id": 3, "text": "applesauce"},
]


class FrameRecorder:
    def __init__(self) -> None:
        self.frames: list[tuple[list, int, list]] = []

    def __call__(self, matches, cursor_row, selection) -> None:
        self.frames.append(([match.identity for match in matches], cursor_row, list(selection)))

    @property
    def last(self) -> tuple[list, int, list]:
        return self.frames[-1]


def _type(session: PickerSession, text: str) -> None:
    for char in text:
        session.send("insert", char)


class LifecycleTests(unittest.TestCase):
    def test_session_starts_idle_and_events_are_refused(self) -> None:
        session = PickerSession(FRUIT)
        self.assertEqual(session.status, "idle")
        self.assertFalse(session.send("insert", "a"))
        self.assertTrue(session.start())
        self.assertEqual(session.status, ACTIVE)
        self.assertFalse(session.start())

    def test_initial_view_lists_everything_and_renders(self) -> None:
        recorder = FrameRecorder()
        session = show(FRUIT, renderer=recorder)
        self.assertEqual(recorder.last, ([1, 2, 3], 0, []))
        self.assertEqual(len(session.view), 3)

    def test_confirm_selects_item_under_cursor(self) -> None:
        session = show(FRUIT)
        session.send("navigate", 1)
        self.assertTrue(session.send("confirm"))
        self.assertEqual(session.status, SELECTED)
        outcome = session.result(timeout=0)
        self.assertIsInstance(outcome, Selected)
        self.assertEqual(outcome.item.identity, 2)
        self.assertEqual(outcome.payload, None)

    def test_confirm_on_empty_view_cancels(self) -> None:
        session = show([])
        session.send("confirm")
        self.assertEqual(session.status, CANCELLED)
        self.assertEqual(session.result(timeout=0), Cancelled("no match"))

    def test_confirm_when_query_matches_nothing_cancels(self) -> None:
        session = show(FRUIT)
        _type(session, "zzz")
        session.send("confirm")
        self.assertIsInstance(session.result(timeout=0), Cancelled)

    def test_terminal_states_ignore_further_events(self) -> None:
        recorder = FrameRecorder()
        session = show(FRUIT, renderer=recorder)
        session.send("cancel")
        frames = len(recorder.frames)
        for event, args in (("insert", ("a",)), ("navigate", (1,)), ("confirm", ()), ("cancel", ())):
            self.assertFalse(session.send(event, *args))
        self.assertFalse(session.poll())
        self.assertEqual(len(recorder.frames), frames)
        self.assertEqual(session.result(timeout=0), Cancelled("cancelled"))

    def test_unknown_event_names_are_refused(self) -> None:
        session = show(FRUIT)
        self.assertFalse(session.send("explode"))
        self.assertEqual(session.status, ACTIVE)

    def test_close_cancels_and_context_manager_closes(self) -> None:
        with PickerSession(FRUIT) as session:
            self.assertEqual(session.status, ACTIVE)
        self.assertEqual(session.result(timeout=0), Cancelled("closed"))
        self.assertFalse(session.close())


class QueryEditTests(unittest.TestCase):
    def test_typing_filters_and_resets_cursor_to_first_match(self) -> None:
        recorder = FrameRecorder()
        session = show(FRUIT, renderer=recorder)
        session.send("navigate", 1)
        _type(session, "app")
        self.assertEqual(recorder.last, ([1, 3], 0, []))
        self.assertEqual(session.query, "app")

    def test_backspace_and_cursor_motion_edit_at_cursor(self) -> None:
        session = show(FRUIT)
        _type(session, "apl")
        session.send("cursor_left")
        session.send("insert", "p")
        self.assertEqual(session.query, "appl")
        session.send("cursor_right")
        session.send("backspace")
        self.assertEqual(session.query, "app")
        self.assertFalse(session.send("cursor_right"))

    def test_noop_query_edits_do_not_refilter_or_render(self) -> None:
        recorder = FrameRecorder()
        session = show(FRUIT, renderer=recorder)
        frames = len(recorder.frames)
        self.assertFalse(session.send("clear_line"))
        self.assertFalse(session.send("delete_word"))
        self.assertFalse(session.send("backspace"))
        self.assertEqual(len(recorder.frames), frames)

    def test_delete_word_and_clear_line_refilter(self) -> None:
        session = show(FRUIT)
        _type(session, "x ban")
        self.assertEqual(len(session.view), 0)
        self.assertTrue(session.send("delete_word"))
        self.assertEqual(session.query, "x ")
        _type(session, "ban")
        self.assertTrue(session.send("clear_line"))
        self.assertEqual(len(session.view), 3)

    def test_preserve_cursor_keeps_navigated_item(self) -> None:
        session = show(FRUIT, preserve_cursor=True)
        session.send("navigate", 1)
        session.send("navigate", 1)
        _type(session, "a")
        self.assertEqual(session.state.current_item().identity, 3)

    def test_initially_hidden_view_appears_on_first_edit(self) -> None:
        recorder = FrameRecorder()
        session = show(FRUIT, initially_hidden=True, renderer=recorder)
        self.assertEqual(recorder.last, ([], 0, []))
        self.assertFalse(session.send("navigate", 1))
        _type(session, "b")
        self.assertEqual(recorder.last[0], [2])

    def test_jump_to_best_match_in_order_preserving_mode(self) -> None:
        items = [{"id": 1, "text": "xx_apple"}, {"id": 2, "text": "apple"}]
        session = show(items, preserve_order=True, jump_to_best_match=True)
        _type(session, "apple")
        self.assertEqual([match.identity for match in session.view], [1, 2])
        self.assertEqual(session.state.cursor_row, 1)

    def test_hierarchical_view_keeps_parent_context(self) -> None:
        items = [{"id": 1, "text": "A"}, {"id": 2, "text": "B", "parent": 1}]
        recorder = FrameRecorder()
        session = show(items, hierarchical=True, renderer=recorder)
        _type(session, "b")
        self.assertEqual(recorder.last[0], [1, 2])
        self.assertEqual(session.state.cursor_row, 1)


class NavigationTests(unittest.TestCase):
    def test_navigation_wraps_around(self) -> None:
        session = show(FRUIT)
        session.send("navigate", -1)
        self.assertEqual(session.state.cursor_row, 2)
        session.send("navigate", 1)
        self.assertEqual(session.state.cursor_row, 0)
        self.assertTrue(session.state.has_navigated)

    def test_navigation_on_empty_view_is_noop(self) -> None:
        session = show([])
        self.assertFalse(session.send("navigate", 1))
        self.assertFalse(session.state.has_navigated)

    def test_on_move_reports_item_changes(self) -> None:
        moved: list = []
        session = show(FRUIT, on_move=lambda item: moved.append(item.identity))
        session.send("navigate", 1)
        session.send("resize", 80, 24)
        session.send("navigate", 1)
        self.assertEqual(moved, [1, 2, 3])


class MultiSelectTests(unittest.TestCase):
    def test_toggle_requires_multiselect(self) -> None:
        session = show(FRUIT)
        self.assertFalse(session.send("toggle"))
        self.assertFalse(session.send("select_all"))
        self.assertEqual(session.state.selection.count(), 0)

    def test_toggle_marks_and_advances_with_wraparound(self) -> None:
        recorder = FrameRecorder()
        session = show(FRUIT, multiselect=True, renderer=recorder)
        session.send("navigate", -1)
        self.assertTrue(session.send("toggle"))
        self.assertEqual(recorder.last, ([1, 2, 3], 0, [3]))

    def test_confirm_returns_members_in_original_order(self) -> None:
        session = show(FRUIT, multiselect=True)
        session.send("navigate", -1)
        session.send("toggle")
        session.send("toggle")
        session.send("confirm")
        self.assertEqual(session.status, MULTI_SELECTED)
        outcome = session.result(timeout=0)
        self.assertIsInstance(outcome, MultiSelected)
        self.assertEqual([item.identity for item in outcome.items], [1, 3])

    def test_select_all_refused_past_limit(self) -> None:
        session = show(FRUIT, multiselect=True, multiselect_max=2)
        session.send("toggle")
        self.assertFalse(session.send("select_all"))
        self.assertEqual(session.state.selection.count(), 1)
        self.assertTrue(session.send("toggle"))
        self.assertFalse(session.send("toggle"))
        self.assertEqual(session.state.selection.count(), 2)

    def test_select_all_and_clear_all_apply_to_visible_rows_only(self) -> None:
        session = show(FRUIT, multiselect=True)
        _type(session, "app")
        self.assertTrue(session.send("select_all"))
        self.assertEqual(session.state.selection.identities(), [1, 3])
        session.send("clear_line")
        session.send("navigate", 1)
        session.send("toggle")
        _type(session, "apples")
        self.assertTrue(session.send("clear_all"))
        self.assertEqual(session.state.selection.identities(), [1, 2])

    def test_selection_persists_across_filtering(self) -> None:
        recorder = FrameRecorder()
        session = show(FRUIT, multiselect=True, renderer=recorder)
        session.send("toggle")
        _type(session, "ban")
        self.assertEqual(recorder.last[0], [2])
        self.assertTrue(session.state.selection.is_selected(1))
        session.send("clear_line")
        self.assertEqual(recorder.last, ([1, 2, 3], 0, [1]))

    def test_untoggle_scans_backward_with_wraparound(self) -> None:
        session = show(FRUIT, multiselect=True)
        session.send("toggle")
        session.send("navigate", 1)
        session.send("toggle")
        self.assertEqual(session.state.cursor_row, 0)
        self.assertEqual(session.state.selection.identities(), [1, 3])

        self.assertTrue(session.send("untoggle"))
        self.assertEqual(session.state.cursor_row, 2)
        self.assertEqual(session.state.selection.identities(), [1])
        self.assertTrue(session.send("untoggle"))
        self.assertEqual(session.state.cursor_row, 0)
        self.assertFalse(session.send("untoggle"))


class AutoSelectTests(unittest.TestCase):
    def test_single_match_after_edit_confirms(self) -> None:
        session = show(FRUIT, auto_select=True)
        session.send("insert", "b")
        self.assertEqual(session.status, SELECTED)
        self.assertEqual(session.result(timeout=0).item.identity, 2)

    def test_does_not_fire_on_open(self) -> None:
        session = show([{"id": 1, "text": "only"}], auto_select=True)
        self.assertEqual(session.status, ACTIVE)
        session = show(FRUIT, auto_select=True, initial_query="ban")
        self.assertEqual(session.status, ACTIVE)

    def test_does_not_fire_with_two_matches(self) -> None:
        session = show(FRUIT, auto_select=True)
        _type(session, "app")
        self.assertEqual(session.status, ACTIVE)
        _type(session, "les")
        self.assertEqual(session.status, SELECTED)
        self.assertEqual(session.result(timeout=0).item.identity, 3)

    def test_does_not_fire_while_items_are_marked(self) -> None:
        session = show(FRUIT, auto_select=True, multiselect=True)
        session.send("toggle")
        _type(session, "ban")
        self.assertEqual(session.status, ACTIVE)

    def test_does_not_fire_after_navigation_since_last_edit(self) -> None:
        session = show(FRUIT, auto_select=True)
        session.send("navigate", 1)
        session.send("insert", "b")
        self.assertEqual(session.status, ACTIVE)
        session.send("insert", "a")
        self.assertEqual(session.status, SELECTED)

    def test_hierarchy_context_rows_do_not_count_as_matches(self) -> None:
        items = [{"id": 1, "text": "A"}, {"id": 2, "text": "B", "parent": 1}]
        session = show(items, hierarchical=True, auto_select=True)
        session.send("insert", "b")
        self.assertEqual(session.result(timeout=0).item.identity, 2)
