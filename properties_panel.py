"""
properties_panel.py — Side panel: text, placement, tail and shape controls.

Shows context-sensitive controls for the currently selected bubble.
When no bubble is selected, shows a hint label.
"""

from PyQt6.QtWidgets import (
    QWidget, QLabel, QHBoxLayout, QVBoxLayout, QGridLayout, QPushButton,
    QToolButton, QSpinBox, QSlider, QFrame, QButtonGroup, QStackedWidget,
    QCheckBox, QPlainTextEdit,
)
from PyQt6.QtCore import Qt

from bubble_model import (
    SHAPE_KINDS, SCALE_MIN, SCALE_MAX, FONT_MIN, FONT_MAX,
    TAIL_LEN_MIN, TAIL_LEN_MAX,
)


# ---------------------------------------------------------------------------
# Helper utilities
# ---------------------------------------------------------------------------

def _hsep() -> QFrame:
    """Horizontal separator line."""
    f = QFrame()
    f.setFrameShape(QFrame.Shape.HLine)
    f.setFrameShadow(QFrame.Shadow.Sunken)
    return f


def _section(text: str) -> QLabel:
    lbl = QLabel(text)
    lbl.setStyleSheet("font-weight: bold; color: #bbb;")
    return lbl


_TOGGLE_STYLE = (
    "QToolButton { border: 1px solid #888; border-radius: 4px; padding: 2px 6px; }"
    "QToolButton:checked { background: #3a7bd5; color: white; border: 1px solid #2a5fa0; }"
    "QToolButton:hover { background: #e0e8f8; }"
)


class _SliderRow(QWidget):
    """Label + slider + value readout on one line."""

    def __init__(self, label: str, lo: int, hi: int, suffix: str = "",
                 parent=None):
        super().__init__(parent)
        self._suffix = suffix
        row = QHBoxLayout(self)
        row.setContentsMargins(0, 0, 0, 0)
        row.setSpacing(6)
        name = QLabel(label)
        name.setFixedWidth(56)
        row.addWidget(name)
        self.slider = QSlider(Qt.Orientation.Horizontal)
        self.slider.setRange(lo, hi)
        row.addWidget(self.slider, 1)
        self._value = QLabel()
        self._value.setFixedWidth(44)
        self._value.setAlignment(Qt.AlignmentFlag.AlignRight |
                                 Qt.AlignmentFlag.AlignVCenter)
        row.addWidget(self._value)
        self.slider.valueChanged.connect(self._show)

    def _show(self, value: int):
        self._value.setText(f"{value}{self._suffix}")

    def set_value(self, value: float):
        self.slider.setValue(int(round(value)))
        self._show(self.slider.value())


# ---------------------------------------------------------------------------
# PropertiesPanel
# ---------------------------------------------------------------------------

class PropertiesPanel(QWidget):
    """
    Side strip showing controls for the selected bubble.
    Page 0 = hint, Page 1 = bubble controls.
    Every change goes through the scene so it lands on the undo stack.
    """

    def __init__(self, scene, parent=None):
        super().__init__(parent)
        self._scene    = scene
        self._session  = scene.session
        self._bubble_id: int | None = None
        self._updating = False   # guard against recursive updates
        self.setFixedWidth(300)
        self._build_ui()

        self._session.subscribe(self.refresh)
        self._session.model.subscribe(self.refresh)

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------

    def _build_ui(self):
        outer = QVBoxLayout(self)
        outer.setContentsMargins(6, 6, 6, 6)
        outer.setSpacing(0)

        self._stack = QStackedWidget()
        outer.addWidget(self._stack)

        # --- Page 0: no-selection hint ---
        hint_page = QWidget()
        hint_layout = QVBoxLayout(hint_page)
        hint_layout.setAlignment(Qt.AlignmentFlag.AlignCenter)
        hint = QLabel("Click a bubble to edit it\n\n"
                      "Double-click the page to add one,\n"
                      "or use  Analyze  for suggestions")
        hint.setAlignment(Qt.AlignmentFlag.AlignCenter)
        hint.setStyleSheet("color: #888; font-size: 12px;")
        hint_layout.addWidget(hint)
        self._stack.addWidget(hint_page)    # index 0

        # --- Page 1: controls ---
        ctrl_page = QWidget()
        col = QVBoxLayout(ctrl_page)
        col.setContentsMargins(0, 0, 0, 0)
        col.setSpacing(6)

        self._info = QLabel()
        self._info.setWordWrap(True)
        self._info.setStyleSheet("color: #999; font-size: 11px;")
        col.addWidget(self._info)

        # ---- Text ----------------------------------------------------
        col.addWidget(_section("Text"))
        self._text = QPlainTextEdit()
        self._text.setFixedHeight(72)
        self._text.setPlaceholderText("Dialogue...")
        self._text.textChanged.connect(self._on_text)
        col.addWidget(self._text)

        font_row = QHBoxLayout()
        font_row.addWidget(QLabel("Font size"))
        self._font_size = QSpinBox()
        self._font_size.setRange(FONT_MIN, FONT_MAX)
        self._font_size.setSuffix(" px")
        self._font_size.setFixedHeight(26)
        self._font_size.valueChanged.connect(self._on_font_size)
        font_row.addWidget(self._font_size)
        font_row.addStretch()
        col.addLayout(font_row)
        col.addWidget(_hsep())

        # ---- Placement -----------------------------------------------
        col.addWidget(_section("Placement"))
        self._x = _SliderRow("X", 0, 100, "%")
        self._y = _SliderRow("Y", 0, 100, "%")
        self._scale = _SliderRow("Scale", int(SCALE_MIN), int(SCALE_MAX), "%")
        self._x.slider.valueChanged.connect(self._on_x)
        self._y.slider.valueChanged.connect(self._on_y)
        self._scale.slider.valueChanged.connect(self._on_scale)
        for w in (self._x, self._y, self._scale):
            col.addWidget(w)

        nudge = QGridLayout()
        nudge.setSpacing(2)
        for text, tip, r, c, step in (
            ("▲", "Move up",    0, 1, (0, -1)),
            ("◀", "Move left",  1, 0, (-1, 0)),
            ("▶", "Move right", 1, 2, (1, 0)),
            ("▼", "Move down",  2, 1, (0, 1)),
        ):
            b = QToolButton()
            b.setText(text)
            b.setToolTip(tip)
            b.setFixedSize(28, 24)
            b.clicked.connect(lambda _=False, s=step: self._on_nudge(*s))
            nudge.addWidget(b, r, c)
        nudge_row = QHBoxLayout()
        nudge_row.addStretch()
        nudge_row.addLayout(nudge)
        nudge_row.addStretch()
        col.addLayout(nudge_row)
        col.addWidget(_hsep())

        # ---- Tail ----------------------------------------------------
        col.addWidget(_section("Tail"))
        self._show_tail = QCheckBox("Show tail")
        self._show_tail.toggled.connect(self._on_show_tail)
        col.addWidget(self._show_tail)
        self._tail_angle  = _SliderRow("Angle", 0, 359, "°")
        self._tail_length = _SliderRow("Length", int(TAIL_LEN_MIN),
                                       int(TAIL_LEN_MAX), "")
        self._tail_angle.slider.valueChanged.connect(self._on_tail_angle)
        self._tail_length.slider.valueChanged.connect(self._on_tail_length)
        col.addWidget(self._tail_angle)
        col.addWidget(self._tail_length)
        col.addWidget(_hsep())

        # ---- Shape buttons -------------------------------------------
        col.addWidget(_section("Shape"))
        grid = QGridLayout()
        grid.setSpacing(3)
        self._shape_group = QButtonGroup(self)
        self._shape_btns: dict[str, QToolButton] = {}
        for i, kind in enumerate(SHAPE_KINDS):
            btn = QToolButton()
            btn.setText(kind.title())
            btn.setCheckable(True)
            btn.setFixedHeight(26)
            btn.setToolTip(f"Change to {kind} bubble")
            btn.setStyleSheet(_TOGGLE_STYLE)
            self._shape_group.addButton(btn)
            self._shape_btns[kind] = btn
            grid.addWidget(btn, i // 3, i % 3)
            btn.clicked.connect(lambda checked, k=kind: self._on_shape(k))
        col.addLayout(grid)
        col.addWidget(_hsep())

        # ---- Order / delete ------------------------------------------
        act_row = QHBoxLayout()
        for text, slot in (("Front", self._on_front), ("Back", self._on_back),
                           ("Duplicate", self._on_duplicate),
                           ("Delete", self._on_delete)):
            b = QPushButton(text)
            b.setFixedHeight(26)
            b.clicked.connect(slot)
            act_row.addWidget(b)
        col.addLayout(act_row)
        col.addStretch()

        self._stack.addWidget(ctrl_page)   # index 1
        self._stack.setCurrentIndex(0)     # start with hint

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def refresh(self):
        """Populate all controls from the selected descriptor."""
        desc = self._session.selected()
        if desc is None:
            self.clear()
            return
        self._bubble_id = desc.id
        self._updating = True
        try:
            self._info.setText(
                f"Panel {desc.panel_number} · reading order {desc.reading_order}"
                + (f"\n{desc.description}" if desc.description else ""))
            if self._text.toPlainText() != desc.text:
                self._text.setPlainText(desc.text)
            self._font_size.setValue(desc.font_size)
            self._x.set_value(desc.position.x)
            self._y.set_value(desc.position.y)
            self._scale.set_value(desc.scale)
            self._show_tail.setChecked(desc.show_tail)
            self._tail_angle.set_value(desc.tail_angle)
            self._tail_length.set_value(desc.tail_length)
            for kind, btn in self._shape_btns.items():
                btn.setChecked(kind == desc.shape_kind)
        finally:
            self._updating = False
        self._stack.setCurrentIndex(1)

    def clear(self):
        """No bubble selected — show the hint page."""
        self._bubble_id = None
        self._stack.setCurrentIndex(0)

    def focus_text(self, bubble_id: int):
        self._session.select(bubble_id)
        if self._bubble_id == bubble_id:
            self._text.setFocus()
            self._text.selectAll()

    # ------------------------------------------------------------------
    # Control callbacks: each pushes an undoable edit
    # ------------------------------------------------------------------

    def _edit(self, field: str, value):
        if self._bubble_id is not None and not self._updating:
            self._scene.set_field(self._bubble_id, field, value)

    def _on_text(self):
        self._edit("text", self._text.toPlainText())

    def _on_font_size(self, size: int):
        self._edit("font_size", size)

    def _on_x(self, value: int):
        desc = self._session.selected()
        if desc is not None:
            self._edit("position", (float(value), desc.position.y))

    def _on_y(self, value: int):
        desc = self._session.selected()
        if desc is not None:
            self._edit("position", (desc.position.x, float(value)))

    def _on_scale(self, value: int):
        self._edit("scale", float(value))

    def _on_show_tail(self, checked: bool):
        self._edit("show_tail", checked)

    def _on_tail_angle(self, value: int):
        self._edit("tail_angle", value)

    def _on_tail_length(self, value: int):
        self._edit("tail_length", float(value))

    def _on_shape(self, kind: str):
        self._edit("shape_kind", kind)

    def _on_nudge(self, dx: int, dy: int):
        if self._bubble_id is not None:
            self._scene.nudge_bubble(self._bubble_id, dx, dy)

    def _on_front(self):
        if self._bubble_id is not None:
            self._scene.reorder_bubble(self._bubble_id, to_front=True)

    def _on_back(self):
        if self._bubble_id is not None:
            self._scene.reorder_bubble(self._bubble_id, to_front=False)

    def _on_duplicate(self):
        if self._bubble_id is not None:
            self._scene.duplicate_bubble(self._bubble_id)

    def _on_delete(self):
        if self._bubble_id is not None:
            self._scene.delete_bubble(self._bubble_id)
