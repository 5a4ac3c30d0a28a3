"""
toolbar.py — Top toolbar: Open, Export, Undo, Redo, + Bubble, Analyze,
             New Session, About.
"""

from PyQt6.QtWidgets import QToolBar, QFileDialog, QWidget, QSizePolicy
from PyQt6.QtGui import QAction, QKeySequence
from PyQt6.QtCore import pyqtSignal, QSize

from page_image import IMAGE_EXTENSIONS
from version import __app_name__


def image_filter() -> str:
    ext_list = " ".join(f"*{e}" for e in IMAGE_EXTENSIONS)
    return f"Manga pages ({ext_list})"


class MainToolbar(QToolBar):

    open_page_requested   = pyqtSignal(str)
    export_requested      = pyqtSignal()
    undo_requested        = pyqtSignal()
    redo_requested        = pyqtSignal()
    add_bubble_requested  = pyqtSignal()
    analyze_requested     = pyqtSignal()
    new_session_requested = pyqtSignal()
    about_requested       = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__("Main Toolbar", parent)
        self.setMovable(False)
        self.setIconSize(QSize(20, 20))
        self._build_actions()

    def _build_actions(self):
        act = QAction("Open", self)
        act.setShortcut("Ctrl+O")
        ext_str = ", ".join(e.lstrip(".").upper() for e in IMAGE_EXTENSIONS)
        act.setToolTip(f"Open a manga page ({ext_str})  (Ctrl+O)")
        act.triggered.connect(self._on_open)
        self.addAction(act)

        self.addSeparator()

        self.act_export = QAction("Export", self)
        self.act_export.setShortcut("Ctrl+E")
        self.act_export.setToolTip("Export the lettered page as PNG (Ctrl+E)")
        self.act_export.setEnabled(False)
        self.act_export.triggered.connect(self.export_requested)
        self.addAction(self.act_export)

        self.addSeparator()

        self.act_undo = QAction("Undo", self)
        self.act_undo.setShortcut("Ctrl+Z")
        self.act_undo.setEnabled(False)
        self.act_undo.triggered.connect(self.undo_requested)
        self.addAction(self.act_undo)

        self.act_redo = QAction("Redo", self)
        self.act_redo.setShortcuts([QKeySequence("Ctrl+Y"),
                                    QKeySequence("Ctrl+Shift+Z")])
        self.act_redo.setEnabled(False)
        self.act_redo.triggered.connect(self.redo_requested)
        self.addAction(self.act_redo)

        self.addSeparator()

        self.act_add_bubble = QAction("＋ Bubble", self)
        self.act_add_bubble.setShortcut("Ctrl+B")
        self.act_add_bubble.setToolTip(
            "Add a speech bubble to the page (Ctrl+B)\n"
            "You can also double-click anywhere on the page"
        )
        self.act_add_bubble.setEnabled(False)
        self.act_add_bubble.triggered.connect(self.add_bubble_requested)
        self.addAction(self.act_add_bubble)

        self.act_analyze = QAction("Analyze", self)
        self.act_analyze.setShortcut("Ctrl+R")
        self.act_analyze.setToolTip(
            "Ask the AI for dialogue and bubble placement (Ctrl+R)\n"
            "Replaces the bubbles currently on the page")
        self.act_analyze.setEnabled(False)
        self.act_analyze.triggered.connect(self.analyze_requested)
        self.addAction(self.act_analyze)

        self.addSeparator()

        act_new = QAction("New Session", self)
        act_new.setShortcut("Ctrl+N")
        act_new.setToolTip("Discard the page and its bubbles (Ctrl+N)")
        act_new.triggered.connect(self.new_session_requested)
        self.addAction(act_new)

        # About: right-aligned
        spacer = QWidget()
        spacer.setSizePolicy(QSizePolicy.Policy.Expanding,
                             QSizePolicy.Policy.Preferred)
        self.addWidget(spacer)

        act_about = QAction("About", self)
        act_about.setToolTip(f"About {__app_name__}")
        act_about.triggered.connect(self.about_requested)
        self.addAction(act_about)

    # ------------------------------------------------------------------

    def _on_open(self):
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Page", "", image_filter())
        if path:
            self.open_page_requested.emit(path)

    def set_page_loaded(self, loaded: bool):
        self.act_export.setEnabled(loaded)
        self.act_add_bubble.setEnabled(loaded)
        self.act_analyze.setEnabled(loaded)

    def set_analyzing(self, busy: bool):
        self.act_analyze.setEnabled(not busy)
        self.act_analyze.setText("Analyzing..." if busy else "Analyze")

    def set_undo_enabled(self, enabled: bool):
        self.act_undo.setEnabled(enabled)

    def set_redo_enabled(self, enabled: bool):
        self.act_redo.setEnabled(enabled)
