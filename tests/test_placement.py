"""Unit tests for placement geometry: bodies, tails and their inverse."""

import math
import unittest

from bubble_model import BubbleDescriptor, Position
from placement import (
    bubble_geometry, tail_geometry, tail_from_point, layout_page,
    percent_delta, estimate_content_height, style_for, DEFAULT_STYLE,
    MIN_BODY_HEIGHT, TAIL_BASE_FRACTION, TAIL_BASE_HALF_WIDTH, LINE_HEIGHT,
)

W, H = 1000.0, 800.0


def desc(**kw):
    base = dict(id=1, text="Hello", position=Position(50.0, 50.0), scale=50.0,
                shape_kind="speech", font_size=16, tail_angle=0,
                tail_length=80.0, show_tail=True)
    base.update(kw)
    return BubbleDescriptor(**base)


class TestBody(unittest.TestCase):
    """Body box follows position, scale and text height."""

    def test_anchor_and_width(self):
        g = bubble_geometry(desc(), W, H, content_height=40)
        self.assertEqual(g.anchor, (500.0, 400.0))
        self.assertEqual(g.width, 500.0)
        self.assertEqual(g.rect[0], 250.0)

    def test_height_from_content(self):
        """Speech pads the text by 28 px above and below."""
        g = bubble_geometry(desc(), W, H, content_height=40)
        self.assertAlmostEqual(g.height, 96.0)
        self.assertAlmostEqual(g.rect[1], 400.0 - 48.0)

    def test_min_height(self):
        g = bubble_geometry(desc(shape_kind="narrative", text=""), W, H,
                            content_height=0)
        self.assertGreaterEqual(g.height, MIN_BODY_HEIGHT)

    def test_text_rect_centered(self):
        g = bubble_geometry(desc(), W, H, content_height=40)
        tx, ty, tw, th = g.text_rect
        self.assertAlmostEqual(tx + tw / 2, 500.0)
        self.assertAlmostEqual(ty + th / 2, 400.0)
        self.assertLess(tw, g.width)

    def test_estimated_height_grows_with_text(self):
        short = bubble_geometry(desc(text="Hi"), W, H)
        long = bubble_geometry(desc(text="word " * 80), W, H)
        self.assertGreater(long.height, short.height)

    def test_estimate_empty_text_is_one_line(self):
        self.assertAlmostEqual(estimate_content_height("", 20, 300),
                               20 * LINE_HEIGHT)

    def test_unknown_kind_uses_default_style(self):
        self.assertIs(style_for("hexagon"), DEFAULT_STYLE)


class TestTail(unittest.TestCase):
    """Tail direction: 0 deg up, growing clockwise."""

    def geom(self, **kw):
        d = desc(**kw)
        return d, bubble_geometry(d, W, H, content_height=40)

    def test_angle_zero_points_up(self):
        d, g = self.geom(tail_angle=0, tail_length=80)
        t = tail_geometry(d, g)
        self.assertAlmostEqual(t.tip[0], 500.0)
        expected_base_y = 400.0 - g.height / 2 * TAIL_BASE_FRACTION
        self.assertAlmostEqual(t.base_center[1], expected_base_y)
        self.assertAlmostEqual(t.tip[1], expected_base_y - 80.0)

    def test_angle_ninety_points_right(self):
        d, g = self.geom(tail_angle=90)
        t = tail_geometry(d, g)
        self.assertGreater(t.tip[0], g.rect[0] + g.width)
        self.assertAlmostEqual(t.tip[1], 400.0)

    def test_angle_one_eighty_points_down(self):
        d, g = self.geom(tail_angle=180)
        t = tail_geometry(d, g)
        self.assertAlmostEqual(t.tip[0], 500.0)
        self.assertGreater(t.tip[1], g.rect[1] + g.height)

    def test_base_width(self):
        d, g = self.geom(tail_angle=30)
        t = tail_geometry(d, g)
        width = math.dist(t.base_left, t.base_right)
        self.assertAlmostEqual(width, 2 * TAIL_BASE_HALF_WIDTH)

    def test_rectangular_body_edge(self):
        """Box-like bodies measure the edge on the rectangle, not an ellipse."""
        d, g = self.geom(shape_kind="modern", tail_angle=90)
        t = tail_geometry(d, g)
        self.assertAlmostEqual(t.base_center[0],
                               500.0 + g.width / 2 * TAIL_BASE_FRACTION)

    def test_no_tail_cases(self):
        for kw in ({"show_tail": False}, {"tail_length": 0.0},
                   {"shape_kind": "narrative"}):
            with self.subTest(**kw):
                d, g = self.geom(**kw)
                self.assertIsNone(tail_geometry(d, g))

    def test_thought_dots(self):
        d, g = self.geom(shape_kind="thought", tail_angle=200, tail_length=60)
        t = tail_geometry(d, g)
        self.assertEqual(t.kind, "dots")
        self.assertGreaterEqual(len(t.dots), 2)
        self.assertGreater(t.dots[0][2], t.dots[-1][2])
        for x, y, r in t.dots:
            self.assertLessEqual(math.dist(t.base_center, (x, y)) + r,
                                 60.0 + 1e-9)

    def test_long_thought_tail_has_more_dots(self):
        d, g = self.geom(shape_kind="thought", tail_length=40)
        short = tail_geometry(d, g)
        d, g = self.geom(shape_kind="thought", tail_length=200)
        longer = tail_geometry(d, g)
        self.assertGreater(len(longer.dots), len(short.dots))

    def test_tail_from_point_inverts(self):
        for angle in (0, 45, 135, 250, 330):
            with self.subTest(angle=angle):
                d, g = self.geom(tail_angle=angle, tail_length=75)
                t = tail_geometry(d, g)
                got_angle, got_len = tail_from_point(g, t.tip)
                self.assertEqual(got_angle, angle)
                self.assertAlmostEqual(got_len, 75.0, places=6)

    def test_tail_from_point_inside_body(self):
        _, g = self.geom()
        self.assertEqual(tail_from_point(g, g.anchor), (0, 0.0))
        _, length = tail_from_point(g, (510.0, 400.0))
        self.assertEqual(length, 0.0)


class TestLayoutPage(unittest.TestCase):

    def test_deterministic(self):
        snap = [desc(id=1), desc(id=2, tail_angle=120, shape_kind="scream")]
        self.assertEqual(layout_page(snap, W, H), layout_page(snap, W, H))

    def test_paint_order_kept(self):
        snap = [desc(id=7), desc(id=3)]
        placed = layout_page(snap, W, H)
        self.assertEqual([p.bubble_id for p in placed], [7, 3])
        self.assertEqual([p.z_index for p in placed], [0, 1])

    def test_measure_callback(self):
        seen = []

        def measure(d, text_width):
            seen.append(text_width)
            return 100.0

        placed = layout_page([desc()], W, H, measure)
        self.assertEqual(placed[0].geometry.text_rect[3], 100.0)
        self.assertAlmostEqual(seen[0], 500.0 * 0.70)

    def test_percent_delta(self):
        self.assertEqual(percent_delta(50, 20, 1000, 400), (5.0, 5.0))
        self.assertEqual(percent_delta(50, 20, 0, 400), (0.0, 0.0))


if __name__ == "__main__":
    unittest.main()
