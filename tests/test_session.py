"""Tests for EditorSession: selection, recoverable errors, analysis and export."""

import dataclasses
import unittest

import pytest

from bubble_model import Position
from conftest import FailingSource, FakeSource, make_image_bytes
from page_image import PageImage
from session import (
    EditorSession, ExportFailed, MANUAL_MODE_MESSAGE, NUDGE_STEP,
)
from suggestions import parse_suggestions


def open_session():
    s = EditorSession()
    s.open_page(PageImage.from_bytes(make_image_bytes(), "/pages/p1.png"))
    return s


class TestPageLifecycle(unittest.TestCase):

    def test_open_page_discards_bubbles(self):
        s = open_session()
        s.add_bubble({"text": "old"})
        s.open_page(PageImage.from_bytes(make_image_bytes((64, 64))))
        self.assertEqual(len(s.model), 0)
        self.assertIsNone(s.selected_id)
        self.assertEqual(s.page.size, (64, 64))

    def test_new_session_resets(self):
        s = open_session()
        s.add_manual_bubble()
        s.suggestions_failed("x")
        s.new_session()
        self.assertFalse(s.has_page())
        self.assertFalse(s.manual_mode)
        self.assertEqual(len(s.model), 0)

    def test_listeners_notified(self):
        s = EditorSession()
        calls = []
        s.subscribe(lambda: calls.append(s.status))
        s.open_page(PageImage.from_bytes(make_image_bytes()))
        self.assertTrue(calls)
        self.assertIn("Loaded", calls[-1])


class TestEdits(unittest.TestCase):
    """Edits through the session never raise on stale ids."""

    def setUp(self):
        self.s = open_session()
        self.bid = self.s.add_manual_bubble()

    def test_manual_bubble_defaults(self):
        d = self.s.selected()
        self.assertEqual(d.id, self.bid)
        self.assertEqual(d.position, (50.0, 30.0))
        self.assertEqual(d.tail_angle, 180)
        self.assertEqual(d.tail_length, 60)
        self.assertEqual(d.font_size, 18)
        self.assertTrue(d.has_tail)

    def test_update(self):
        self.assertTrue(self.s.update(self.bid, "text", "Hey!"))
        self.assertEqual(self.s.selected().text, "Hey!")

    def test_update_stale_id_clears_selection(self):
        self.s.select(None)
        self.s.select(self.bid)
        self.s.model.remove(self.bid)
        self.assertIsNone(self.s.selected_id)
        self.assertFalse(self.s.update(self.bid, "text", "gone"))

    def test_stale_edits_are_noops(self):
        self.assertFalse(self.s.move(999, 1, 1))
        self.assertFalse(self.s.remove(999))
        self.assertIsNone(self.s.duplicate(999))
        self.assertFalse(self.s.bring_to_front(999))
        self.assertFalse(self.s.send_to_back(999))
        self.assertEqual(self.s.selected_id, self.bid)

    def test_invalid_shape_ignored(self):
        self.assertFalse(self.s.update(self.bid, "shape_kind", "hexagon"))
        self.assertEqual(self.s.selected().shape_kind, "speech")

    def test_nudge(self):
        self.s.nudge(self.bid, 1, -1)
        self.assertEqual(self.s.selected().position,
                         Position(50.0 + NUDGE_STEP, 30.0 - NUDGE_STEP))

    def test_nudge_stops_at_edge(self):
        self.s.update(self.bid, "position", (99.0, 1.0))
        self.s.nudge(self.bid, 1, -1)
        self.assertEqual(self.s.selected().position, (100.0, 0.0))

    def test_remove_selected_clears_selection(self):
        self.assertTrue(self.s.remove(self.bid))
        self.assertIsNone(self.s.selected_id)
        self.assertIsNone(self.s.selected())

    def test_duplicate_selects_copy(self):
        new_id = self.s.duplicate(self.bid)
        self.assertEqual(self.s.selected_id, new_id)
        self.assertEqual(len(self.s.model), 2)

    def test_select_unknown_id(self):
        self.s.select(4242)
        self.assertIsNone(self.s.selected_id)

    def test_nan_update_is_ignored(self):
        before = self.s.selected()
        self.assertFalse(self.s.update(self.bid, "tail_angle", float("nan")))
        self.assertFalse(self.s.update(self.bid, "font_size", float("nan")))
        self.assertEqual(self.s.selected(), before)

    def test_infinite_update_clamps(self):
        self.assertTrue(self.s.update(self.bid, "scale", float("inf")))
        self.assertEqual(self.s.selected().scale, 98.0)

    def test_nan_move_is_ignored(self):
        self.assertFalse(self.s.move(self.bid, float("nan"), 0))
        self.assertEqual(self.s.selected().position, (50.0, 30.0))
        self.assertEqual(self.s.selected_id, self.bid)


class TestAnalysis(unittest.TestCase):

    def test_success(self):
        s = open_session()
        source = FakeSource([{"text": "b", "reading_order": 2},
                             {"text": "a", "reading_order": 1}])
        self.assertTrue(s.analyze_page(source))
        self.assertEqual([d.text for d in s.model.snapshot()], ["a", "b"])
        self.assertFalse(s.manual_mode)
        self.assertFalse(s.analyzing)
        self.assertEqual(source.calls[0][1], "image/png")

    def test_failure_keeps_collection_and_enters_manual_mode(self):
        s = open_session()
        bid = s.add_bubble({"text": "mine"})
        self.assertFalse(s.analyze_page(FailingSource()))
        self.assertTrue(s.manual_mode)
        self.assertEqual(s.status, MANUAL_MODE_MESSAGE)
        self.assertIn(bid, s.model)

    def test_empty_result_enters_manual_mode(self):
        s = open_session()
        s.analyze_page(FakeSource([]))
        self.assertTrue(s.manual_mode)
        self.assertEqual(len(s.model), 0)

    def test_no_page(self):
        self.assertFalse(EditorSession().analyze_page(FakeSource([])))

    def test_non_finite_wire_numbers_do_not_crash(self):
        s = open_session()
        records = parse_suggestions(
            '[{"suggestedDialogue": "a", "tailAngle": 1e999, "fontSize": 1e999,'
            '  "bubbleScale": NaN, "readingOrder": 1}]')
        self.assertTrue(s.analyze_page(FakeSource(records)))
        d = s.model.snapshot()[0]
        self.assertEqual(d.text, "a")
        self.assertEqual(d.tail_angle, 0)
        self.assertFalse(s.manual_mode)


class TestExport(unittest.TestCase):

    def setUp(self):
        self.s = open_session()
        self.bid = self.s.add_manual_bubble()

    def test_selection_hidden_during_rasterize(self):
        seen = {}

        def rasterize():
            seen["selected"] = self.s.selected_id
            seen["exporting"] = self.s.exporting
            return b"png-bytes"

        self.assertEqual(self.s.export(rasterize), b"png-bytes")
        self.assertEqual(seen, {"selected": None, "exporting": True})
        self.assertEqual(self.s.selected_id, self.bid)
        self.assertFalse(self.s.exporting)

    def test_failure_restores_selection(self):
        def rasterize():
            raise MemoryError("too big")

        with self.assertRaises(ExportFailed):
            self.s.export(rasterize)
        self.assertEqual(self.s.selected_id, self.bid)
        self.assertFalse(self.s.exporting)

    def test_empty_output(self):
        with self.assertRaises(ExportFailed):
            self.s.export(lambda: b"")

    def test_no_page(self):
        with self.assertRaises(ExportFailed):
            EditorSession().export(lambda: b"x")


# -----------------------------------------------------------------------------
# End to end
# -----------------------------------------------------------------------------

def test_lettering_a_page(session, fake_source):
    """Analyze, refine by hand, reorder, then export with the selection hidden."""
    assert session.analyze_page(fake_source)
    first, second = (d.id for d in session.model.snapshot())
    assert session.model.get(first).text == "Who's there?"

    session.select(second)
    session.update(second, "text", "Nobody.")
    session.update(second, "shape_kind", "whisper")
    session.nudge(second, -1, 0)
    assert session.model.get(second).position == (28.0, 60.0)

    session.bring_to_front(first)
    assert session.model.snapshot()[-1].id == first

    extra = session.add_manual_bubble()
    assert session.selected_id == extra
    session.remove(extra)
    assert session.selected_id is None

    session.select(second)
    data = session.export(lambda: b"\x89PNG fake")
    assert data.startswith(b"\x89PNG")
    assert session.selected_id == second
    assert session.page.base_name == "chapter1-p03"


def test_text_edit_after_suggestions_touches_only_text(session):
    """Wire reading order 2,1 is applied as 1,2; a text edit changes nothing else."""
    records = parse_suggestions(
        '[{"suggestedDialogue": "later", "readingOrder": 2, "tailAngle": 90,'
        '  "tailLength": 30, "position": {"x": 20, "y": 70}},'
        ' {"suggestedDialogue": "first", "readingOrder": 1, "bubbleType": "scream",'
        '  "fontSize": 22, "bubbleScale": 40, "position": {"x": 75, "y": 15}}]')
    session.apply_suggestions(records)
    before = session.model.snapshot()[0]
    assert before.reading_order == 1
    assert before.text == "first"

    assert session.update(before.id, "text", "Hello")
    after = session.model.get(before.id)
    assert after == dataclasses.replace(before, text="Hello")


def test_failed_analysis_then_manual_work(session, failing_source):
    session.analyze_page(failing_source)
    assert session.manual_mode
    bid = session.add_manual_bubble()
    session.update(bid, "tail_angle", -45)
    assert session.model.get(bid).tail_angle == 315


@pytest.mark.parametrize("field,value,expected", [
    ("scale", 0, 5.0),
    ("font_size", 500, 72),
    ("tail_length", -3, 0.0),
])
def test_session_updates_clamp(session, field, value, expected):
    bid = session.add_bubble()
    session.update(bid, field, value)
    assert getattr(session.model.get(bid), field) == expected
