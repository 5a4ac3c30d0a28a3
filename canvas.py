"""
canvas.py — Page canvas using QGraphicsScene and QGraphicsView.

PageScene mirrors the EditorSession: the page pixmap sits at the origin in
its native pixel size and one BubbleItem exists per descriptor.  Whenever the
model or the selection changes the scene re-runs layout_page() and updates
the items in place.  User edits are pushed onto the scene's undo stack.

ZoomBar lives below the view.
"""

import logging

from PyQt6.QtWidgets import (
    QGraphicsScene, QGraphicsView, QGraphicsPixmapItem,
    QWidget, QHBoxLayout, QLabel, QPushButton, QSlider,
)
from PyQt6.QtCore import Qt, QRectF, pyqtSignal
from PyQt6.QtGui import (
    QPixmap, QPainter, QColor, QUndoStack, QFont, QPen, QBrush, QTransform,
)

from bubble import BubbleItem, measure_text
from page_image import IMAGE_EXTENSIONS, PageImage
from placement import layout_page
from session import EditorSession, MANUAL_BUBBLE
from undo_commands import (
    AddBubbleCommand, DuplicateBubbleCommand, RemoveBubbleCommand,
    UpdateFieldCommand, MoveBubbleCommand, ReorderCommand,
)

logger = logging.getLogger(__name__)

_ZOOM_STEP_IN  = 1.25
_ZOOM_STEP_OUT = 0.80
_MIN_SCALE     = 0.05
_MAX_SCALE     = 10.0

_ARROWS = {
    Qt.Key.Key_Left:  (-1, 0),
    Qt.Key.Key_Right: (1, 0),
    Qt.Key.Key_Up:    (0, -1),
    Qt.Key.Key_Down:  (0, 1),
}


# ---------------------------------------------------------------------------
# PageScene
# ---------------------------------------------------------------------------

class PageScene(QGraphicsScene):
    """
    Scene holding the page background and the bubble items.

    Signals:
        edit_text_requested(int)  — a bubble was double-clicked
        layout_changed()          — items were re-laid out
    """

    edit_text_requested = pyqtSignal(int)
    layout_changed      = pyqtSignal()

    def __init__(self, session: EditorSession, parent=None):
        super().__init__(parent)
        self.session     = session
        self.undo_stack  = QUndoStack(self)
        self._page_item: QGraphicsPixmapItem | None = None
        self._items:     dict[int, BubbleItem] = {}
        self._nudge_burst = 0     # bumped when an arrow key is released

        session.model.subscribe(self.resync)
        session.subscribe(self.resync)

    # ------------------------------------------------------------------
    # Page loading
    # ------------------------------------------------------------------

    def load_page(self, page: PageImage) -> bool:
        pixmap = QPixmap()
        if not pixmap.loadFromData(page.data):
            logger.warning("Qt could not decode %s", page.source_path or "page")
            return False
        self.undo_stack.clear()
        self._clear_page_item()
        self._page_item = QGraphicsPixmapItem(pixmap)
        self._page_item.setTransformationMode(
            Qt.TransformationMode.SmoothTransformation)
        self._page_item.setZValue(-1)
        self._page_item.setPos(0, 0)
        self.addItem(self._page_item)
        self.setSceneRect(QRectF(0, 0, pixmap.width(), pixmap.height()))
        # open_page() clears the model, which triggers a resync
        self.session.open_page(page)
        return True

    def new_session(self):
        self.undo_stack.clear()
        self._clear_page_item()
        self.setSceneRect(QRectF())
        self.session.new_session()

    def _clear_page_item(self):
        if self._page_item is not None:
            self.removeItem(self._page_item)
            self._page_item = None

    def has_page(self) -> bool:
        return self._page_item is not None

    def page_rect(self) -> QRectF:
        if self._page_item is None:
            return QRectF()
        return self._page_item.sceneBoundingRect()

    # ------------------------------------------------------------------
    # Model → items
    # ------------------------------------------------------------------

    def resync(self):
        pr = self.page_rect()
        if pr.isEmpty():
            self._drop_items(set(self._items))
            return

        snapshot = self.session.model.snapshot()
        placed   = layout_page(snapshot, pr.width(), pr.height(), measure_text)
        selected = None if self.session.exporting else self.session.selected_id

        seen = set()
        for desc, pb in zip(snapshot, placed):
            seen.add(desc.id)
            item = self._items.get(desc.id)
            if item is None:
                item = BubbleItem(desc, pb)
                self._items[desc.id] = item
                self.addItem(item)
            item.apply(desc, pb)
            item.set_highlighted(desc.id == selected)

        self._drop_items(set(self._items) - seen)
        self.layout_changed.emit()

    def _drop_items(self, ids):
        for bid in ids:
            self.removeItem(self._items.pop(bid))

    def bubble_item(self, bubble_id: int) -> BubbleItem | None:
        return self._items.get(bubble_id)

    # ------------------------------------------------------------------
    # Edits from items and widgets
    # ------------------------------------------------------------------

    def select_bubble(self, bubble_id: int | None):
        self.session.select(bubble_id)

    def add_bubble_at(self, x: float, y: float):
        """Add a manual bubble centred on the scene point (x, y)."""
        pr = self.page_rect()
        if pr.isEmpty():
            return
        partial = dict(MANUAL_BUBBLE)
        partial["position"] = ((x - pr.left()) / pr.width() * 100.0,
                               (y - pr.top()) / pr.height() * 100.0)
        self.undo_stack.push(AddBubbleCommand(self.session, partial))

    def add_manual_bubble(self):
        if self.has_page():
            self.undo_stack.push(AddBubbleCommand(self.session, MANUAL_BUBBLE))

    def set_field(self, bubble_id: int, field: str, value):
        desc = self._current(bubble_id)
        if desc is None or getattr(desc, field) == value:
            return
        self.undo_stack.push(
            UpdateFieldCommand(self.session, bubble_id, field, value))

    def commit_field(self, bubble_id: int, field: str, old_value, new_value):
        """Record an edit that was already applied live."""
        self.undo_stack.push(UpdateFieldCommand(
            self.session, bubble_id, field, new_value, old_value=old_value))

    def move_live(self, bubble_id: int, position):
        self.session.update(bubble_id, "position", position)

    def commit_move(self, bubble_id: int, old_pos, new_pos, burst=None):
        self.undo_stack.push(
            MoveBubbleCommand(self.session, bubble_id, old_pos, new_pos, burst))

    def nudge_bubble(self, bubble_id: int, dx_steps: int, dy_steps: int,
                     burst: int | None = None):
        desc = self._current(bubble_id)
        if desc is None:
            return
        self.session.nudge(bubble_id, dx_steps, dy_steps)
        after = self._current(bubble_id)
        if after is not None and after.position != desc.position:
            self.commit_move(bubble_id, desc.position, after.position, burst)

    def set_scale_live(self, bubble_id: int, scale: float):
        self.session.update(bubble_id, "scale", scale)

    def set_tail_live(self, bubble_id: int, angle: int, length: float):
        self.session.update(bubble_id, "tail_angle", angle)
        self.session.update(bubble_id, "tail_length", length)
        self.session.update(bubble_id, "show_tail", True)

    def commit_tail(self, bubble_id: int, start: tuple, end: tuple):
        """start/end are (tail_angle, tail_length, show_tail) triples."""
        self.undo_stack.beginMacro("Move Tail")
        for field, old, new in zip(("tail_angle", "tail_length", "show_tail"),
                                   start, end):
            if old != new:
                self.commit_field(bubble_id, field, old, new)
        self.undo_stack.endMacro()

    def delete_bubble(self, bubble_id: int):
        if self._current(bubble_id) is not None:
            self.undo_stack.push(RemoveBubbleCommand(self.session, bubble_id))

    def duplicate_bubble(self, bubble_id: int):
        if self._current(bubble_id) is not None:
            self.undo_stack.push(DuplicateBubbleCommand(self.session, bubble_id))

    def reorder_bubble(self, bubble_id: int, to_front: bool):
        if self._current(bubble_id) is not None:
            self.undo_stack.push(
                ReorderCommand(self.session, bubble_id, to_front))

    def _current(self, bubble_id: int):
        if bubble_id is None or bubble_id not in self.session.model:
            return None
        return self.session.model.get(bubble_id)

    # ------------------------------------------------------------------
    # Mouse / keyboard
    # ------------------------------------------------------------------

    def _is_background(self, item) -> bool:
        return item is None or item is self._page_item

    def _item_under(self, event):
        t = self.views()[0].transform() if self.views() else QTransform()
        return self.itemAt(event.scenePos(), t)

    def mousePressEvent(self, event):
        if (event.button() == Qt.MouseButton.LeftButton
                and self._is_background(self._item_under(event))):
            self.session.select(None)
        super().mousePressEvent(event)

    def mouseDoubleClickEvent(self, event):
        if (event.button() == Qt.MouseButton.LeftButton and self.has_page()
                and self._is_background(self._item_under(event))):
            self.add_bubble_at(event.scenePos().x(), event.scenePos().y())
            return
        super().mouseDoubleClickEvent(event)

    def keyPressEvent(self, event):
        bid = self.session.selected_id
        if bid is not None:
            key = event.key()
            if key in _ARROWS:
                self.nudge_bubble(bid, *_ARROWS[key], burst=self._nudge_burst)
                event.accept()
                return
            if key in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
                self.delete_bubble(bid)
                event.accept()
                return
        super().keyPressEvent(event)

    def keyReleaseEvent(self, event):
        if event.key() in _ARROWS and not event.isAutoRepeat():
            self._nudge_burst += 1
        super().keyReleaseEvent(event)


# ---------------------------------------------------------------------------
# PageView
# ---------------------------------------------------------------------------

class PageView(QGraphicsView):
    """
    View that renders the PageScene with zoom, pan, and drop support.
    """

    open_page_requested = pyqtSignal()   # emitted when user clicks empty canvas
    page_dropped        = pyqtSignal(str)
    zoom_changed        = pyqtSignal(int)

    def __init__(self, scene: PageScene, parent=None):
        super().__init__(scene, parent)
        self.setRenderHint(QPainter.RenderHint.Antialiasing)
        self.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAsNeeded)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAsNeeded)
        self.setBackgroundBrush(QColor(45, 45, 45))
        self.setDragMode(QGraphicsView.DragMode.NoDrag)
        self.setAcceptDrops(True)
        self._page_scene    = scene
        self._fit_to_window = True
        self.viewport().setCursor(Qt.CursorShape.PointingHandCursor)

    def fit_page(self):
        if self._page_scene.has_page():
            self.fitInView(self._page_scene.page_rect(),
                           Qt.AspectRatioMode.KeepAspectRatio)
            self._fit_to_window = True
            self._emit_zoom()

    def fit_width(self):
        if not self._page_scene.has_page():
            return
        sw = self._page_scene.page_rect().width()
        vw = self.viewport().width()
        if sw > 0 and vw > 0:
            self.resetTransform()
            self.scale(vw / sw, vw / sw)
            self._fit_to_window = False
            self._emit_zoom()

    def zoom_100(self):
        self.set_zoom_percent(100)

    def zoom_in(self):
        cur = self._current_scale()
        if cur >= _MAX_SCALE:
            return
        f = min(_ZOOM_STEP_IN, _MAX_SCALE / cur)
        self.scale(f, f)
        self._fit_to_window = False
        self._emit_zoom()

    def zoom_out(self):
        cur = self._current_scale()
        if cur <= _MIN_SCALE:
            return
        f = max(_ZOOM_STEP_OUT, _MIN_SCALE / cur)
        self.scale(f, f)
        self._fit_to_window = False
        self._emit_zoom()

    def set_zoom_percent(self, percent: int):
        """Set an absolute zoom level (e.g. 100 = 1:1)."""
        target = max(_MIN_SCALE, min(_MAX_SCALE, percent / 100.0))
        self.resetTransform()
        self.scale(target, target)
        self._fit_to_window = False
        self._emit_zoom()

    def _current_scale(self):
        return self.transform().m11()

    def _zoom_percent(self):
        return max(1, int(round(self._current_scale() * 100)))

    def _emit_zoom(self):
        page = self._page_scene.session.page
        if page is not None:
            page.view.set_zoom(self._current_scale())
        self.zoom_changed.emit(self._zoom_percent())

    def scrollContentsBy(self, dx: int, dy: int):
        super().scrollContentsBy(dx, dy)
        page = self._page_scene.session.page
        if page is not None:
            page.view.pan(dx, dy)

    _WELCOME_LINES = (
        # text, pixel size, bold, grey level, y offset below the icon
        ("Open a manga page to start lettering",               18, True,  200, 18),
        ("Click here, drop an image, or use  Open  above",     13, False, 130, 52),
        ("Then  Analyze  for suggestions, or double-click the page "
         "to place a bubble",                                   13, False, 130, 74),
    )

    def drawBackground(self, painter, rect):
        super().drawBackground(painter, rect)
        if self._page_scene.has_page():
            return
        # Welcome screen in viewport coordinates so it stays centred
        painter.save()
        painter.resetTransform()
        vr = self.viewport().rect()

        icon = 64
        ix = vr.center().x() - icon // 2
        iy = vr.center().y() - icon // 2 - 40
        painter.setBrush(QBrush(QColor(63, 63, 70)))
        painter.setPen(QPen(QColor(113, 113, 122), 2))
        painter.drawRoundedRect(ix, iy, icon, icon, 12, 12)
        painter.setPen(QPen(QColor(170, 170, 170), 3))
        painter.setFont(QFont("sans-serif", 28))
        painter.drawText(ix, iy, icon, icon,
                         int(Qt.AlignmentFlag.AlignCenter), "+")

        for text, px, bold, grey, dy in self._WELCOME_LINES:
            font = QFont()
            font.setPixelSize(px)
            font.setBold(bold)
            painter.setFont(font)
            painter.setPen(QPen(QColor(grey, grey, grey)))
            painter.drawText(vr.left(), iy + icon + dy, vr.width(), px + 10,
                             int(Qt.AlignmentFlag.AlignHCenter), text)
        painter.restore()

    def mousePressEvent(self, event):
        # With no page loaded the canvas acts as a giant "open" button
        if (event.button() == Qt.MouseButton.LeftButton
                and not self._page_scene.has_page()):
            self.open_page_requested.emit()
            event.accept()
            return
        super().mousePressEvent(event)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        if self._fit_to_window:
            self.fit_page()

    def wheelEvent(self, event):
        if event.angleDelta().y() > 0:
            self.zoom_in()
        else:
            self.zoom_out()
        event.accept()

    def dragEnterEvent(self, event):
        if event.mimeData().hasUrls():
            for url in event.mimeData().urls():
                if url.toLocalFile().lower().endswith(IMAGE_EXTENSIONS):
                    event.acceptProposedAction()
                    return
        event.ignore()

    def dragMoveEvent(self, event):
        event.acceptProposedAction() if event.mimeData().hasUrls() \
            else event.ignore()

    def dropEvent(self, event):
        if event.mimeData().hasUrls():
            for url in event.mimeData().urls():
                path = url.toLocalFile()
                if path.lower().endswith(IMAGE_EXTENSIONS):
                    self.page_dropped.emit(path)
                    event.acceptProposedAction()
                    return
        event.ignore()


# ---------------------------------------------------------------------------
# ZoomBar
# ---------------------------------------------------------------------------

class ZoomBar(QWidget):
    """Thin bar with zoom controls shown below the canvas."""

    _SLIDER_MIN = 5
    _SLIDER_MAX = 500

    def __init__(self, view: PageView, parent=None):
        super().__init__(parent)
        self._view = view
        self._updating = False
        self.setFixedHeight(34)
        self._build()

    def _build(self):
        layout = QHBoxLayout(self)
        layout.setContentsMargins(8, 2, 8, 2)
        layout.setSpacing(4)

        def _btn(text, tip, slot, width):
            b = QPushButton(text)
            b.setToolTip(tip)
            b.setFixedHeight(26)
            b.setFixedWidth(width)
            b.clicked.connect(slot)
            layout.addWidget(b)
            return b

        layout.addStretch()
        _btn("Fit",   "Fit the page to the window", self._view.fit_page,  36)
        _btn("Width", "Fit width to viewport",      self._view.fit_width, 48)
        _btn("100%",  "Actual pixel size (1:1)",    self._view.zoom_100,  44)
        layout.addSpacing(6)
        _btn("−", "Zoom out", self._view.zoom_out, 26)

        self._slider = QSlider(Qt.Orientation.Horizontal)
        self._slider.setRange(self._SLIDER_MIN, self._SLIDER_MAX)
        self._slider.setValue(100)
        self._slider.setFixedWidth(160)
        self._slider.setFixedHeight(20)
        self._slider.setToolTip("Drag to zoom")
        self._slider.valueChanged.connect(self._on_slider)
        layout.addWidget(self._slider)

        _btn("+", "Zoom in", self._view.zoom_in, 26)
        layout.addSpacing(4)
        self._zoom_label = QLabel("100%")
        self._zoom_label.setFixedWidth(46)
        self._zoom_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self._zoom_label)
        layout.addStretch()

    def _on_slider(self, value: int):
        if not self._updating:
            self._view.set_zoom_percent(value)

    def update_zoom(self, percent: int):
        self._zoom_label.setText(f"{percent}%")
        self._updating = True
        self._slider.setValue(max(self._SLIDER_MIN,
                                  min(self._SLIDER_MAX, percent)))
        self._updating = False
