"""
main_window.py — MainWindow: assembles toolbar, canvas, zoom bar,
                 properties panel and status bar, and runs page analysis
                 on a worker thread.
"""

import logging

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QFileDialog, QMessageBox,
    QLabel,
)
from PyQt6.QtCore import Qt, QThread

from canvas import PageScene, PageView, ZoomBar
from toolbar import MainToolbar, image_filter
from properties_panel import PropertiesPanel
from page_image import PageImage, PageImageError
from session import EditorSession
from suggestions import GeminiSuggestionSource, SuggestionWorker
from undo_commands import ReplaceAllCommand
from version import __version__, __app_name__
from about_dialog import AboutDialog

import export as exporter

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):

    def __init__(self, source=None):
        super().__init__()
        self.setWindowTitle(f"{__app_name__} v{__version__}")
        self.setMinimumSize(1100, 720)
        self.session = EditorSession()
        self._source = source           # None → Gemini, built per analysis
        self._thread: QThread | None = None
        self._worker: SuggestionWorker | None = None
        self._analysis_page = None     # page the running analysis belongs to
        self._build_ui()
        self._connect_signals()

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------

    def _build_ui(self):
        self.toolbar = MainToolbar(self)
        self.addToolBar(self.toolbar)

        self.scene = PageScene(self.session, self)
        self.view  = PageView(self.scene)
        self.zoom_bar = ZoomBar(self.view)
        self.props = PropertiesPanel(self.scene)

        central = QWidget()
        self.setCentralWidget(central)
        hbox = QHBoxLayout(central)
        hbox.setContentsMargins(0, 0, 0, 0)
        hbox.setSpacing(0)

        canvas_col = QVBoxLayout()
        canvas_col.setSpacing(0)
        canvas_col.addWidget(self.view, stretch=1)
        canvas_col.addWidget(self.zoom_bar)
        hbox.addLayout(canvas_col, stretch=1)
        hbox.addWidget(self.props)

        self._mode_label = QLabel("Manual mode")
        self._mode_label.setStyleSheet("color: #e0a030; padding: 0 8px;")
        self._mode_label.setVisible(False)
        self.statusBar().addPermanentWidget(self._mode_label)

    # ------------------------------------------------------------------
    # Signal wiring
    # ------------------------------------------------------------------

    def _connect_signals(self):
        tb = self.toolbar
        sc = self.scene

        tb.open_page_requested.connect(self._open_page)
        tb.export_requested.connect(self._on_export)
        tb.undo_requested.connect(sc.undo_stack.undo)
        tb.redo_requested.connect(sc.undo_stack.redo)
        tb.add_bubble_requested.connect(sc.add_manual_bubble)
        tb.analyze_requested.connect(self._on_analyze)
        tb.new_session_requested.connect(self._on_new_session)
        tb.about_requested.connect(self._on_about)

        sc.undo_stack.canUndoChanged.connect(tb.set_undo_enabled)
        sc.undo_stack.canRedoChanged.connect(tb.set_redo_enabled)
        sc.edit_text_requested.connect(self.props.focus_text)

        self.view.zoom_changed.connect(self.zoom_bar.update_zoom)
        self.view.open_page_requested.connect(self._show_open_dialog)
        self.view.page_dropped.connect(self._open_page)

        self.session.subscribe(self._on_session_changed)

    def _on_session_changed(self):
        self.statusBar().showMessage(self.session.status)
        self._mode_label.setVisible(self.session.manual_mode)

    # ------------------------------------------------------------------
    # Page loading
    # ------------------------------------------------------------------

    def _show_open_dialog(self):
        """Open file dialog — called from the empty-canvas click."""
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Page", "", image_filter())
        if path:
            self._open_page(path)

    def _open_page(self, path: str):
        try:
            page = PageImage.from_file(path)
        except PageImageError as exc:
            logger.warning("cannot open %s: %s", path, exc)
            QMessageBox.warning(self, "Open", f"Cannot open:\n{path}\n\n{exc}")
            return
        if not self.scene.load_page(page):
            QMessageBox.warning(self, "Open", f"Cannot open:\n{path}")
            return

        self.toolbar.set_page_loaded(True)
        self.props.clear()
        self.view.fit_page()
        # Restore normal cursor once a page is loaded
        self.view.viewport().setCursor(Qt.CursorShape.ArrowCursor)

    def _on_new_session(self):
        if len(self.session.model):
            answer = QMessageBox.question(
                self, "New Session",
                "Discard the current page and all its bubbles?")
            if answer != QMessageBox.StandardButton.Yes:
                return
        self.scene.new_session()
        self.toolbar.set_analyzing(False)
        self.toolbar.set_page_loaded(False)
        self.props.clear()
        self.view.resetTransform()
        self.view.viewport().setCursor(Qt.CursorShape.PointingHandCursor)

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def _on_analyze(self):
        page = self.session.page
        if page is None or self.session.analyzing:
            return
        if len(self.session.model):
            answer = QMessageBox.question(
                self, "Analyze",
                "Suggestions replace the bubbles already on the page.\n"
                "Continue?")
            if answer != QMessageBox.StandardButton.Yes:
                return

        self._analysis_page = page
        self.session.begin_analysis()
        self.toolbar.set_analyzing(True)
        source = self._source or GeminiSuggestionSource()

        self._thread = QThread()
        self._worker = SuggestionWorker(source, page.data, page.mime_type)
        self._worker.moveToThread(self._thread)

        self._thread.started.connect(self._worker.run)
        self._worker.finished.connect(self._on_suggestions)
        self._worker.failed.connect(self._on_suggestions_failed)

        self._worker.finished.connect(self._thread.quit)
        self._worker.failed.connect(self._thread.quit)

        self._thread.finished.connect(self._on_analysis_done)
        self._thread.finished.connect(self._thread.deleteLater)

        self._thread.start()

    def _on_analysis_done(self):
        self.toolbar.set_analyzing(False)
        self.toolbar.set_page_loaded(self.session.has_page())

    def _on_suggestions(self, records: list):
        if self.session.page is not self._analysis_page:
            logger.info("discarding suggestions for a page no longer open")
            return
        self.scene.undo_stack.push(ReplaceAllCommand(self.session, records))

    def _on_suggestions_failed(self, reason: str):
        if self.session.page is not self._analysis_page:
            return
        self.session.suggestions_failed(reason)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def _on_export(self):
        exporter.export_page(self, self.session, self.scene)

    # ------------------------------------------------------------------
    # About
    # ------------------------------------------------------------------

    def _on_about(self):
        AboutDialog(self).exec()
