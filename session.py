"""
session.py — EditorSession: one page being lettered.

Holds the page image, the BubbleModel, the current selection and the
manual-mode flag, and is the boundary where recoverable errors stop:

  NotFound              → selection cleared, edit reported as a no-op
  InvalidShape          → field change ignored
  InvalidValue          → NaN (or an infinite angle) ignored
  SuggestionUnavailable → collection untouched, manual mode on
  ExportFailed          → raised to the window; nothing in the session changes

No Qt in here, so the whole edit flow runs under plain pytest.
"""

import logging
from typing import Any, Callable, Iterable

from bubble_model import (
    BubbleDescriptor, BubbleModel, InvalidShape, InvalidValue, NotFound,
)
from page_image import PageImage
from suggestions import SuggestionSource, SuggestionUnavailable

logger = logging.getLogger(__name__)

MANUAL_MODE_MESSAGE = "AI unavailable, use manual mode."
NUDGE_STEP = 2.0

# Values the "+ Bubble" button starts a new bubble with
MANUAL_BUBBLE = {
    "text":        "Type here...",
    "position":    (50.0, 30.0),
    "tail_angle":  180,
    "tail_length": 60,
    "font_size":   18,
    "description": "Manual insert",
    "panel_number": 1,
}


class ExportFailed(RuntimeError):
    """Rasterizing or saving the composed page failed."""


class EditorSession:

    def __init__(self, model: BubbleModel | None = None):
        self.model = model if model is not None else BubbleModel()
        self.page: PageImage | None = None
        self._selected_id: int | None = None
        self.manual_mode = False
        self.analyzing   = False
        self.exporting   = False
        self.status      = ""
        self._listeners: list[Callable[[], None]] = []
        self.model.subscribe(self._on_model_changed)

    # ------------------------------------------------------------------
    # Listeners (selection / status; bubble data changes come from model)
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[], None]):
        if callback not in self._listeners:
            self._listeners.append(callback)

    def _notify(self):
        for cb in list(self._listeners):
            cb()

    def _set_status(self, text: str):
        self.status = text
        logger.info(text)
        self._notify()

    def _on_model_changed(self):
        # A removal elsewhere (undo, remove) can orphan the selection
        if self._selected_id is not None and self._selected_id not in self.model:
            self._selected_id = None
            self._notify()

    # ------------------------------------------------------------------
    # Page lifecycle
    # ------------------------------------------------------------------

    def has_page(self) -> bool:
        return self.page is not None

    def open_page(self, page: PageImage):
        """Start a new page: the previous collection is discarded."""
        self.page = page
        self._selected_id = None
        self.manual_mode = False
        self.model.clear()
        self._set_status(f"Loaded {page.base_name} ({page.width}×{page.height})")

    def new_session(self):
        self.page = None
        self._selected_id = None
        self.manual_mode = False
        self.analyzing = False
        self.model.clear()
        self._set_status("New session")

    def begin_analysis(self):
        self.analyzing = True
        self._set_status("Analyzing artwork...")

    def apply_suggestions(self, records: Iterable[dict]):
        records = list(records)
        self.analyzing = False
        self.model.replace_all(records)
        self._selected_id = None
        if records:
            self.manual_mode = False
            self._set_status(f"{len(records)} bubble suggestion(s) placed")
        else:
            self.manual_mode = True
            self._set_status("No suggestions; add bubbles manually.")

    def mode_state(self) -> tuple[bool, str]:
        return self.manual_mode, self.status

    def restore_mode_state(self, state: tuple[bool, str]):
        """Put back manual mode and status saved by mode_state() (undo)."""
        self.manual_mode, status = state
        self._set_status(status)

    def suggestions_failed(self, reason: str):
        self.analyzing = False
        self.manual_mode = True
        logger.warning("suggestions unavailable: %s", reason)
        self._set_status(MANUAL_MODE_MESSAGE)

    def analyze_page(self, source: SuggestionSource) -> bool:
        """Synchronous analysis; the window uses SuggestionWorker instead."""
        if self.page is None:
            return False
        self.begin_analysis()
        try:
            records = source.analyze(self.page.data, self.page.mime_type)
        except SuggestionUnavailable as exc:
            self.suggestions_failed(str(exc))
            return False
        self.apply_suggestions(records)
        return True

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @property
    def selected_id(self) -> int | None:
        return self._selected_id

    def select(self, bubble_id: int | None):
        if bubble_id is not None and bubble_id not in self.model:
            bubble_id = None
        if bubble_id != self._selected_id:
            self._selected_id = bubble_id
            self._notify()

    def selected(self) -> BubbleDescriptor | None:
        if self._selected_id is None:
            return None
        return self.model.get(self._selected_id)

    def _lost(self, exc: NotFound) -> bool:
        logger.debug("%s; clearing selection", exc)
        if self._selected_id == exc.bubble_id:
            self._selected_id = None
            self._notify()
        return False

    # ------------------------------------------------------------------
    # Edits: each returns True when the model was asked to change
    # ------------------------------------------------------------------

    def add_bubble(self, partial: dict[str, Any] | None = None,
                   select: bool = True) -> int:
        bubble_id = self.model.add(partial)
        if select:
            self.select(bubble_id)
        return bubble_id

    def add_manual_bubble(self) -> int:
        return self.add_bubble(dict(MANUAL_BUBBLE))

    def update(self, bubble_id: int, field: str, value) -> bool:
        try:
            self.model.update(bubble_id, field, value)
        except NotFound as exc:
            return self._lost(exc)
        except InvalidShape as exc:
            logger.warning("%s; keeping previous shape", exc)
            return False
        except InvalidValue as exc:
            logger.warning("%s; keeping previous value", exc)
            return False
        return True

    def move(self, bubble_id: int, dx: float, dy: float) -> bool:
        try:
            self.model.move(bubble_id, dx, dy)
        except NotFound as exc:
            return self._lost(exc)
        except InvalidValue as exc:
            logger.warning("%s; bubble not moved", exc)
            return False
        return True

    def nudge(self, bubble_id: int, dx_steps: int, dy_steps: int) -> bool:
        return self.move(bubble_id, dx_steps * NUDGE_STEP, dy_steps * NUDGE_STEP)

    def remove(self, bubble_id: int) -> bool:
        try:
            self.model.remove(bubble_id)
        except NotFound as exc:
            return self._lost(exc)
        return True

    def restore(self, descriptor: BubbleDescriptor, index: int | None = None):
        self.model.restore(descriptor, index)

    def duplicate(self, bubble_id: int) -> int | None:
        try:
            new_id = self.model.duplicate(bubble_id)
        except NotFound as exc:
            self._lost(exc)
            return None
        self.select(new_id)
        return new_id

    def bring_to_front(self, bubble_id: int) -> bool:
        try:
            self.model.bring_to_front(bubble_id)
        except NotFound as exc:
            return self._lost(exc)
        return True

    def send_to_back(self, bubble_id: int) -> bool:
        try:
            self.model.send_to_back(bubble_id)
        except NotFound as exc:
            return self._lost(exc)
        return True

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export(self, rasterize: Callable[[], bytes]) -> bytes:
        """Run rasterize() with the selection highlight hidden.

        The selection comes back afterwards whether or not it worked, so a
        failed export can simply be retried.
        """
        if self.page is None:
            raise ExportFailed("no page loaded")
        saved = self._selected_id
        self._selected_id = None
        self.exporting = True
        self._notify()
        try:
            data = rasterize()
        except ExportFailed:
            raise
        except Exception as exc:
            raise ExportFailed(str(exc)) from exc
        finally:
            self.exporting = False
            self._selected_id = saved if saved in self.model else None
            self._notify()
        if not data:
            raise ExportFailed("rasterizer produced no data")
        return data
