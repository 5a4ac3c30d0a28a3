"""
placement.py — Pure geometry for bubble bodies and tails.

Given one BubbleDescriptor and the canvas size in pixels, compute where the
bubble body sits and, when it has one, where its tail points.  Nothing here
keeps state between calls: identical inputs always give identical (frozen,
comparable) results, so the scene can call layout_page() on every model change.

Tail angle convention: 0° points straight up and angles grow clockwise on
screen (y grows downward), so the unit direction is (sin θ, -cos θ).
"""

import math
from dataclasses import dataclass
from typing import Callable, Iterable

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TAIL_BASE_FRACTION   = 0.96   # base centre, as a fraction of the edge radius
TAIL_BASE_HALF_WIDTH = 13.0
MIN_BODY_HEIGHT      = 48.0
LINE_HEIGHT          = 1.2    # × font size
AVG_CHAR_WIDTH       = 0.55   # × font size

ELLIPTIC_BODIES = ("oval", "cloud", "spiky", "wavy")


# ---------------------------------------------------------------------------
# Shape table
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ShapeStyle:
    """Geometry recipe for one shape kind.

    body:             outline family used by the painter
    has_tail:         False suppresses the tail whatever the descriptor says
    tail_kind:        "wedge" (triangle) or "dots" (thought chain)
    pad_y:            vertical padding above and below the text
    text_width_ratio: share of the body width available to text
    dashed:           outline drawn dashed (whisper)
    """
    body:             str
    has_tail:         bool  = True
    tail_kind:        str   = "wedge"
    pad_y:            float = 28.0
    text_width_ratio: float = 0.70
    dashed:           bool  = False


SHAPE_STYLES: dict[str, ShapeStyle] = {
    "speech":    ShapeStyle("oval"),
    "thought":   ShapeStyle("cloud",   tail_kind="dots", pad_y=34, text_width_ratio=0.62),
    "scream":    ShapeStyle("spiky",   pad_y=40, text_width_ratio=0.55),
    "narrative": ShapeStyle("rect",    has_tail=False, tail_kind="none",
                            pad_y=14, text_width_ratio=0.88),
    "whisper":   ShapeStyle("oval",    dashed=True),
    "wavy":      ShapeStyle("wavy",    pad_y=30, text_width_ratio=0.68),
    "impact":    ShapeStyle("spiky",   pad_y=44, text_width_ratio=0.50),
    "organic":   ShapeStyle("oval",    pad_y=26, text_width_ratio=0.72),
    "sharp":     ShapeStyle("polygon", pad_y=30, text_width_ratio=0.66),
    "modern":    ShapeStyle("rounded", pad_y=18, text_width_ratio=0.84),
}
DEFAULT_STYLE = SHAPE_STYLES["speech"]


def style_for(kind: str) -> ShapeStyle:
    """Unrecognized kinds render as a plain oval speech bubble."""
    return SHAPE_STYLES.get(kind, DEFAULT_STYLE)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BubbleGeometry:
    anchor:    tuple[float, float]              # centre of the body, px
    rect:      tuple[float, float, float, float]  # left, top, width, height
    text_rect: tuple[float, float, float, float]
    style:     ShapeStyle

    @property
    def width(self) -> float:
        return self.rect[2]

    @property
    def height(self) -> float:
        return self.rect[3]


@dataclass(frozen=True)
class TailGeometry:
    angle:       int
    direction:   tuple[float, float]
    base_center: tuple[float, float]
    base_left:   tuple[float, float]
    base_right:  tuple[float, float]
    tip:         tuple[float, float]
    length:      float
    kind:        str
    dots:        tuple[tuple[float, float, float], ...] = ()   # (x, y, radius)


@dataclass(frozen=True)
class PlacedBubble:
    bubble_id: int
    z_index:   int          # position in paint order
    geometry:  BubbleGeometry
    tail:      TailGeometry | None


# ---------------------------------------------------------------------------
# Body
# ---------------------------------------------------------------------------

def estimate_content_height(text: str, font_size: float,
                            text_width: float) -> float:
    """Rough reflow: average glyph width, one line minimum per paragraph."""
    char_w = max(1.0, font_size * AVG_CHAR_WIDTH)
    per_line = max(1, int(text_width // char_w))
    lines = 0
    for para in (text or "").split("\n"):
        lines += max(1, math.ceil(len(para) / per_line))
    return lines * font_size * LINE_HEIGHT


def bubble_geometry(desc, canvas_w: float, canvas_h: float,
                    content_height: float | None = None) -> BubbleGeometry:
    """Body box centred on the descriptor's anchor.

    Width follows scale (percent of canvas width); height follows the text.
    Pass content_height when the host has measured the text itself.
    """
    style = style_for(desc.shape_kind)
    px, py = desc.position
    ax = px / 100.0 * canvas_w
    ay = py / 100.0 * canvas_h

    width = desc.scale / 100.0 * canvas_w
    tw    = max(1.0, width * style.text_width_ratio)
    if content_height is None:
        content_height = estimate_content_height(desc.text, desc.font_size, tw)
    height = max(MIN_BODY_HEIGHT, content_height + 2 * style.pad_y,
                 desc.font_size * LINE_HEIGHT + 2 * style.pad_y)

    left, top = ax - width / 2, ay - height / 2
    text_rect = (ax - tw / 2, ay - content_height / 2, tw, content_height)
    return BubbleGeometry((ax, ay), (left, top, width, height),
                          text_rect, style)


def _edge_radius(body: str, half_w: float, half_h: float,
                 ux: float, uy: float) -> float:
    """Distance from the centre to the body outline along (ux, uy)."""
    if half_w <= 0 or half_h <= 0:
        return 0.0
    if body in ELLIPTIC_BODIES:
        return 1.0 / math.hypot(ux / half_w, uy / half_h)
    limits = []
    if abs(ux) > 1e-12:
        limits.append(half_w / abs(ux))
    if abs(uy) > 1e-12:
        limits.append(half_h / abs(uy))
    return min(limits)


# ---------------------------------------------------------------------------
# Tail
# ---------------------------------------------------------------------------

def _thought_dots(base: tuple[float, float], ux: float, uy: float,
                  length: float) -> tuple[tuple[float, float, float], ...]:
    """Dot chain from the cloud edge toward the tip; more and bigger dots
    for longer tails."""
    if length < 10:
        return ()
    scale = min(2.2, max(0.7, length / 60.0))
    specs = [(0.12, 11), (0.38, 8), (0.60, 6)]
    if length > 80:
        specs.append((0.75, 4))
    if length > 140:
        specs.append((0.87, 3))
    dots = []
    for frac, base_r in specs:
        r = max(2.0, float(int(base_r * scale)))
        d = frac * length
        if d + r > length:
            break
        dots.append((base[0] + ux * d, base[1] + uy * d, r))
    return tuple(dots)


def tail_geometry(desc, geometry: BubbleGeometry) -> TailGeometry | None:
    """Tail from the body outline toward tail_angle, or None.

    Shapes without a tail (narrative boxes) never get one, whatever
    show_tail and tail_length say.
    """
    style = geometry.style
    if not style.has_tail or not desc.show_tail or desc.tail_length <= 0:
        return None

    angle = int(desc.tail_angle) % 360
    theta = math.radians(angle)
    ux, uy = math.sin(theta), -math.cos(theta)
    ax, ay = geometry.anchor

    edge = _edge_radius(style.body, geometry.width / 2, geometry.height / 2,
                        ux, uy)
    d = edge * TAIL_BASE_FRACTION
    base = (ax + ux * d, ay + uy * d)
    tip  = (base[0] + ux * desc.tail_length, base[1] + uy * desc.tail_length)

    # Perpendicular to the tail direction
    nx, ny = -uy, ux
    hw = TAIL_BASE_HALF_WIDTH
    left  = (base[0] + nx * hw, base[1] + ny * hw)
    right = (base[0] - nx * hw, base[1] - ny * hw)

    dots = ()
    if style.tail_kind == "dots":
        dots = _thought_dots(base, ux, uy, desc.tail_length)
    return TailGeometry(angle, (ux, uy), base, left, right, tip,
                        float(desc.tail_length), style.tail_kind, dots)


def tail_from_point(geometry: BubbleGeometry,
                    point: tuple[float, float]) -> tuple[int, float]:
    """Inverse of tail_geometry: the (angle, length) whose tip lands on point.

    Used when the user drags the tail handle.
    """
    ax, ay = geometry.anchor
    dx, dy = point[0] - ax, point[1] - ay
    dist = math.hypot(dx, dy)
    if dist == 0:
        return 0, 0.0
    angle = int(round(math.degrees(math.atan2(dx, -dy)))) % 360
    ux, uy = dx / dist, dy / dist
    edge = _edge_radius(geometry.style.body, geometry.width / 2,
                        geometry.height / 2, ux, uy)
    return angle, max(0.0, dist - edge * TAIL_BASE_FRACTION)


# ---------------------------------------------------------------------------
# Whole page
# ---------------------------------------------------------------------------

def layout_page(snapshot: Iterable, canvas_w: float, canvas_h: float,
                measure: Callable[[object, float], float] | None = None
                ) -> list[PlacedBubble]:
    """Geometry for every descriptor, in the paint order given.

    measure(desc, text_width) -> content height, when supplied, replaces the
    built-in text estimate.
    """
    placed = []
    for z, desc in enumerate(snapshot):
        content_h = None
        if measure is not None:
            style = style_for(desc.shape_kind)
            tw = max(1.0, desc.scale / 100.0 * canvas_w * style.text_width_ratio)
            content_h = measure(desc, tw)
        geom = bubble_geometry(desc, canvas_w, canvas_h, content_h)
        placed.append(PlacedBubble(desc.id, z, geom, tail_geometry(desc, geom)))
    return placed


def percent_delta(dx_px: float, dy_px: float,
                  canvas_w: float, canvas_h: float) -> tuple[float, float]:
    """Convert a pixel drag delta into position percentage points."""
    if canvas_w <= 0 or canvas_h <= 0:
        return 0.0, 0.0
    return dx_px / canvas_w * 100.0, dy_px / canvas_h * 100.0
