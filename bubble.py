"""
bubble.py — BubbleItem: one descriptor painted on the page canvas.

The item holds no bubble state of its own.  PageScene hands it the current
descriptor plus the geometry from placement.py, and the item turns that into
a QPainterPath.  Dragging, resizing and repointing the tail are sent back to
the scene as model edits.

Key design: tail + body are united into ONE QPainterPath so the border
traces the outer edge seamlessly — no seam, no black line cutting the tail.

Bodies: "oval" | "cloud" | "spiky" | "wavy" | "polygon" | "rounded" | "rect"
"""

import math

from PyQt6.QtWidgets import (
    QGraphicsItem, QGraphicsEllipseItem, QGraphicsRectItem,
    QGraphicsSceneMouseEvent, QGraphicsSceneContextMenuEvent, QMenu,
    QStyleOptionGraphicsItem, QWidget,
)
from PyQt6.QtGui import (
    QPainter, QPainterPath, QColor, QPen, QBrush, QFont, QFontMetrics,
    QCursor,
)
from PyQt6.QtCore import Qt, QRect, QRectF, QPointF

from bubble_model import SHAPE_KINDS
from placement import PlacedBubble, percent_delta, tail_from_point

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HANDLE_SIZE  = 10
TAIL_DOT_R   = 9
FONT_FAMILY  = "Klee One"
FILL_COLOR   = QColor(255, 255, 255)
BORDER_COLOR = QColor(0, 0, 0)
TEXT_COLOR   = QColor(0, 0, 0)
BORDER_WIDTH = 4.0
SELECT_COLOR = QColor(80, 130, 230)

SHAPE_LABELS = {
    "speech":    "Speech — oval",
    "thought":   "Thought — cloud",
    "scream":    "Scream — spiky",
    "narrative": "Narrative — box",
    "whisper":   "Whisper — dashed",
    "wavy":      "Wavy",
    "impact":    "Impact — burst",
    "organic":   "Organic",
    "sharp":     "Sharp — angular",
    "modern":    "Modern — rounded",
}


def bubble_font(font_size: int) -> QFont:
    font = QFont(FONT_FAMILY)
    font.setPixelSize(max(1, int(font_size)))
    font.setBold(True)
    font.setCapitalization(QFont.Capitalization.AllUppercase)
    return font


_TEXT_FLAGS = (int(Qt.AlignmentFlag.AlignCenter) |
               int(Qt.TextFlag.TextWordWrap))


def measure_text(desc, text_width: float) -> float:
    """Height the descriptor's text needs when wrapped to text_width."""
    fm = QFontMetrics(bubble_font(desc.font_size))
    text = desc.text or " "
    r = fm.boundingRect(QRect(0, 0, max(1, int(text_width)), 1_000_000),
                        _TEXT_FLAGS, text)
    return float(r.height())


# ---------------------------------------------------------------------------
# TailHandle: manual-drag red dot
# ---------------------------------------------------------------------------

class TailHandle(QGraphicsEllipseItem):
    """
    Red dot the user drags to repoint the tail.
    Manual drag (no ItemIsMovable) so it doesn't fight the bubble drag.
    """

    def __init__(self, parent_bubble: "BubbleItem"):
        r = TAIL_DOT_R
        super().__init__(-r, -r, r * 2, r * 2, parent_bubble)
        self._bubble   = parent_bubble
        self._dragging = False
        self._start    = None   # (angle, length, show_tail) at press

        self.setBrush(QBrush(QColor(220, 40, 40)))
        self.setPen(QPen(QColor(255, 255, 255), 2.0))
        self.setZValue(10)
        self.setFlag(QGraphicsItem.GraphicsItemFlag.ItemIsMovable, False)
        self.setCursor(QCursor(Qt.CursorShape.CrossCursor))
        self.setToolTip("Drag to repoint tail")

    def mousePressEvent(self, event: QGraphicsSceneMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            d = self._bubble.descriptor
            self._dragging = True
            self._start = (d.tail_angle, d.tail_length, d.show_tail)
            event.accept()
        else:
            event.ignore()

    def mouseMoveEvent(self, event: QGraphicsSceneMouseEvent):
        if self._dragging:
            p = event.scenePos()
            angle, length = tail_from_point(self._bubble.placed.geometry,
                                            (p.x(), p.y()))
            self._bubble.scene().set_tail_live(self._bubble.bubble_id,
                                               angle, length)
            event.accept()
        else:
            event.ignore()

    def mouseReleaseEvent(self, event: QGraphicsSceneMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton and self._dragging:
            self._dragging = False
            d = self._bubble.descriptor
            end = (d.tail_angle, d.tail_length, d.show_tail)
            if self._start != end:
                self._bubble.scene().commit_tail(
                    self._bubble.bubble_id, self._start, end)
            event.accept()
        else:
            event.ignore()


# ---------------------------------------------------------------------------
# ResizeHandle: left/right edge, drives scale
# ---------------------------------------------------------------------------

class ResizeHandle(QGraphicsRectItem):

    def __init__(self, anchor: str, parent_bubble: "BubbleItem"):
        s = HANDLE_SIZE
        super().__init__(-s / 2, -s / 2, s, s, parent_bubble)
        self._anchor      = anchor
        self._bubble      = parent_bubble
        self._dragging    = False
        self._start_scale = 0.0

        self.setBrush(QBrush(QColor(255, 255, 255)))
        self.setPen(QPen(SELECT_COLOR, 1.5))
        self.setZValue(11)
        self.setCursor(QCursor(Qt.CursorShape.SizeHorCursor))
        self.setFlag(QGraphicsItem.GraphicsItemFlag.ItemIsMovable, False)

    def mousePressEvent(self, event: QGraphicsSceneMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            self._dragging    = True
            self._start_scale = self._bubble.descriptor.scale
            event.accept()
        else:
            event.ignore()

    def mouseMoveEvent(self, event: QGraphicsSceneMouseEvent):
        if not self._dragging:
            return
        scene = self._bubble.scene()
        ax = self._bubble.placed.geometry.anchor[0]
        half_w = abs(event.scenePos().x() - ax)
        canvas_w = scene.page_rect().width()
        if canvas_w > 0:
            scene.set_scale_live(self._bubble.bubble_id,
                                 2 * half_w / canvas_w * 100.0)
        event.accept()

    def mouseReleaseEvent(self, event: QGraphicsSceneMouseEvent):
        if self._dragging and event.button() == Qt.MouseButton.LeftButton:
            self._dragging = False
            new_scale = self._bubble.descriptor.scale
            if new_scale != self._start_scale:
                self._bubble.scene().commit_field(
                    self._bubble.bubble_id, "scale",
                    self._start_scale, new_scale)
        event.accept()


# ---------------------------------------------------------------------------
# BubbleItem
# ---------------------------------------------------------------------------

class BubbleItem(QGraphicsItem):
    """Speech bubble on the page canvas, positioned in scene coordinates."""

    def __init__(self, descriptor, placed: PlacedBubble, parent=None):
        super().__init__(parent)
        self.descriptor = descriptor
        self.placed     = placed
        self._selected  = False

        self.setFlag(QGraphicsItem.GraphicsItemFlag.ItemIsFocusable, True)
        self.setCursor(QCursor(Qt.CursorShape.SizeAllCursor))

        # Drag state: scene pos at press and the position (percent) it started from
        self._press_scene = None
        self._press_pos   = None

        self._tail = TailHandle(self)
        self._tail.setVisible(False)
        self._handles = {a: ResizeHandle(a, self) for a in ("ML", "MR")}
        for h in self._handles.values():
            h.setVisible(False)
        self._sync_children()

    @property
    def bubble_id(self) -> int:
        return self.descriptor.id

    # ------------------------------------------------------------------
    # State from the scene
    # ------------------------------------------------------------------

    def apply(self, descriptor, placed: PlacedBubble):
        self.prepareGeometryChange()
        self.descriptor = descriptor
        self.placed     = placed
        self.setZValue(placed.z_index + 1)
        self._sync_children()
        self.update()

    def set_highlighted(self, on: bool):
        self._selected = on
        self._sync_children()
        self.update()

    def _sync_children(self):
        g = self.placed.geometry
        left, top, w, h = g.rect
        cy = top + h / 2
        self._handles["ML"].setPos(left, cy)
        self._handles["MR"].setPos(left + w, cy)
        for handle in self._handles.values():
            handle.setVisible(self._selected)

        tail = self.placed.tail
        if tail is not None:
            self._tail.setPos(*tail.tip)
        elif g.style.has_tail:
            # Park the handle below the body so a tail can be pulled out
            self._tail.setPos(g.anchor[0], top + h + 30)
        self._tail.setVisible(self._selected and g.style.has_tail)

    # ------------------------------------------------------------------
    # QGraphicsItem overrides
    # ------------------------------------------------------------------

    def boundingRect(self) -> QRectF:
        pad = HANDLE_SIZE + BORDER_WIDTH
        r   = QRectF(*self.placed.geometry.rect).adjusted(-pad, -pad, pad, pad)
        tail = self.placed.tail
        if tail is None:
            return r
        tx, ty = tail.tip
        tip_r = QRectF(tx - TAIL_DOT_R - pad, ty - TAIL_DOT_R - pad,
                       2 * (TAIL_DOT_R + pad), 2 * (TAIL_DOT_R + pad))
        return r.united(tip_r)

    def shape(self) -> QPainterPath:
        body = self._build_body_path()
        tail = self.placed.tail
        if tail is None or tail.kind == "dots":
            return body
        return body.united(self._triangle_tail_path(tail))

    def paint(self, painter: QPainter,
              option: QStyleOptionGraphicsItem,
              widget: QWidget | None = None):

        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        style = self.placed.geometry.style
        tail  = self.placed.tail

        pen = QPen(BORDER_COLOR, BORDER_WIDTH,
                   Qt.PenStyle.DashLine if style.dashed else Qt.PenStyle.SolidLine,
                   Qt.PenCapStyle.RoundCap,
                   Qt.PenJoinStyle.RoundJoin)
        painter.setBrush(QBrush(FILL_COLOR))
        painter.setPen(pen)

        body = self._build_body_path()
        if tail is None:
            painter.drawPath(body)
        elif tail.kind == "dots":
            # Thought dots are distinct circles, drawn after the cloud
            painter.drawPath(body)
            painter.drawPath(self._thought_dots_path(tail))
        else:
            # Unite body + tail into ONE path → border is ONE seamless outline
            painter.drawPath(body.united(self._triangle_tail_path(tail)))

        painter.setPen(TEXT_COLOR)
        painter.setFont(bubble_font(self.descriptor.font_size))
        painter.drawText(QRectF(*self.placed.geometry.text_rect),
                         _TEXT_FLAGS, self.descriptor.text)

        # Selection dashed rectangle
        if self._selected:
            painter.setPen(QPen(SELECT_COLOR, 1.5, Qt.PenStyle.DashLine))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(QRectF(*self.placed.geometry.rect))

    # ------------------------------------------------------------------
    # Shape builders
    # ------------------------------------------------------------------

    def _build_body_path(self) -> QPainterPath:
        r    = QRectF(*self.placed.geometry.rect)
        body = self.placed.geometry.style.body
        path = QPainterPath()
        if body == "oval":
            path = self._organic_oval_path(r)
        elif body == "cloud":
            path = self._cloud_path(r)
        elif body == "spiky":
            path = self._spiky_path(r)
        elif body == "wavy":
            path = self._wavy_path(r)
        elif body == "polygon":
            path = self._polygon_path(r)
        elif body == "rounded":
            path.addRoundedRect(r, 16, 16)
        elif body == "rect":
            path.addRect(r)
        else:
            path.addEllipse(r)
        return path

    def _organic_oval_path(self, r: QRectF) -> QPainterPath:
        """
        Smooth oval using cubic bezier curves — more organic than addEllipse.
        Classic comics/manga speech bubble shape.
        """
        cx, cy = r.center().x(), r.center().y()
        w2, h2 = r.width() / 2, r.height() / 2
        # Bezier "magic number" for approximating an ellipse with cubics
        k = 0.5523

        path = QPainterPath()
        path.moveTo(cx, cy - h2)
        path.cubicTo(cx + w2*k, cy - h2, cx + w2, cy - h2*k, cx + w2, cy)
        path.cubicTo(cx + w2, cy + h2*k, cx + w2*k, cy + h2, cx, cy + h2)
        path.cubicTo(cx - w2*k, cy + h2, cx - w2, cy + h2*k, cx - w2, cy)
        path.cubicTo(cx - w2, cy - h2*k, cx - w2*k, cy - h2, cx, cy - h2)
        path.closeSubpath()
        return path

    def _triangle_tail_path(self, tail) -> QPainterPath:
        """
        Wedge from the base on the outline to the tip.  The base sits just
        inside the body so the union hides the join.
        """
        path = QPainterPath()
        path.moveTo(*tail.base_left)
        path.lineTo(*tail.tip)
        path.lineTo(*tail.base_right)
        path.closeSubpath()
        return path

    def _thought_dots_path(self, tail) -> QPainterPath:
        path = QPainterPath()
        for x, y, rad in tail.dots:
            path.addEllipse(QPointF(x, y), rad, rad)
        return path

    def _cloud_path(self, r: QRectF) -> QPainterPath:
        """
        Thought-cloud: 9 circles united into ONE path so the border traces the
        outer silhouette only — no internal rings.
        """
        w, h = r.width(), r.height()
        # (fraction-x, fraction-y, radius-fraction-of-min-dimension)
        bumps = [
            (0.16, 0.50, 0.30), (0.30, 0.26, 0.32), (0.52, 0.20, 0.34),
            (0.72, 0.28, 0.32), (0.86, 0.50, 0.30), (0.74, 0.74, 0.32),
            (0.52, 0.80, 0.34), (0.30, 0.74, 0.32), (0.50, 0.50, 0.45),
        ]
        path = QPainterPath()
        for fx, fy, fr in bumps:
            bump = QPainterPath()
            bump.addEllipse(QPointF(r.left() + fx * w, r.top() + fy * h),
                            fr * w * 0.5, fr * h * 0.9)
            path = path.united(bump)
        return path

    def _spiky_path(self, r: QRectF) -> QPainterPath:
        """Starburst / shout bubble with 18 spikes of varying height."""
        cx, cy = r.center().x(), r.center().y()
        rx, ry = r.width() / 2, r.height() / 2
        spikes = 18
        path   = QPainterPath()
        for i in range(spikes * 2):
            angle = math.pi * i / spikes - math.pi / 2
            if i % 2 == 0:
                # Spike tip, outer radius jittered
                f = 1.0 + 0.12 * math.sin(i * 1.9 + 0.8)
            else:
                f = 0.78
            px = cx + math.cos(angle) * rx * f
            py = cy + math.sin(angle) * ry * f
            if i == 0:
                path.moveTo(px, py)
            else:
                path.lineTo(px, py)
        path.closeSubpath()
        return path

    def _wavy_path(self, r: QRectF) -> QPainterPath:
        """Ellipse with a sinusoidal ripple along its outline."""
        cx, cy = r.center().x(), r.center().y()
        rx, ry = r.width() / 2, r.height() / 2
        steps, waves = 96, 14
        path = QPainterPath()
        for i in range(steps + 1):
            t = 2 * math.pi * i / steps
            f = 1.0 - 0.04 * (1 + math.sin(waves * t))
            px = cx + math.cos(t) * rx * f
            py = cy + math.sin(t) * ry * f
            if i == 0:
                path.moveTo(px, py)
            else:
                path.lineTo(px, py)
        path.closeSubpath()
        return path

    def _polygon_path(self, r: QRectF) -> QPainterPath:
        """Angular octagon with uneven cuts."""
        l, t, w, h = r.left(), r.top(), r.width(), r.height()
        pts = [(0.10, 0.0), (0.88, 0.04), (1.0, 0.30), (0.96, 0.82),
               (0.80, 1.0), (0.06, 0.94), (0.0, 0.62), (0.03, 0.16)]
        path = QPainterPath()
        path.moveTo(l + pts[0][0] * w, t + pts[0][1] * h)
        for fx, fy in pts[1:]:
            path.lineTo(l + fx * w, t + fy * h)
        path.closeSubpath()
        return path

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------

    def mousePressEvent(self, event: QGraphicsSceneMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            self.scene().select_bubble(self.bubble_id)
            self._press_scene = event.scenePos()
            self._press_pos   = self.descriptor.position
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QGraphicsSceneMouseEvent):
        if self._press_scene is None:
            return
        scene = self.scene()
        pr = scene.page_rect()
        d = event.scenePos() - self._press_scene
        dx, dy = percent_delta(d.x(), d.y(), pr.width(), pr.height())
        scene.move_live(self.bubble_id,
                        (self._press_pos.x + dx, self._press_pos.y + dy))
        event.accept()

    def mouseReleaseEvent(self, event: QGraphicsSceneMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton and self._press_pos is not None:
            old, new = self._press_pos, self.descriptor.position
            if old != new:
                self.scene().commit_move(self.bubble_id, old, new)
            self._press_scene = None
            self._press_pos   = None
            event.accept()
            return
        super().mouseReleaseEvent(event)

    def mouseDoubleClickEvent(self, event: QGraphicsSceneMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            self.scene().edit_text_requested.emit(self.bubble_id)
            event.accept()
            return
        super().mouseDoubleClickEvent(event)

    def contextMenuEvent(self, event: QGraphicsSceneContextMenuEvent):
        scene = self.scene()
        menu = QMenu()
        act_del = menu.addAction("Delete")
        act_dup = menu.addAction("Duplicate")
        menu.addSeparator()
        menu.addSection("Change Shape")
        shape_acts = {}
        for kind in SHAPE_KINDS:
            act = menu.addAction(SHAPE_LABELS.get(kind, kind.title()))
            act.setCheckable(True)
            act.setChecked(self.descriptor.shape_kind == kind)
            shape_acts[act] = kind
        menu.addSeparator()
        act_front = menu.addAction("Bring to Front")
        act_back  = menu.addAction("Send to Back")

        chosen = menu.exec(event.screenPos())
        bid = self.bubble_id
        if   chosen == act_del:       scene.delete_bubble(bid)
        elif chosen == act_dup:       scene.duplicate_bubble(bid)
        elif chosen == act_front:     scene.reorder_bubble(bid, to_front=True)
        elif chosen == act_back:      scene.reorder_bubble(bid, to_front=False)
        elif chosen in shape_acts:    scene.set_field(bid, "shape_kind",
                                                      shape_acts[chosen])
