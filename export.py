"""
export.py — Rasterize the lettered page to PNG.

The page is rendered at pixel_ratio × its native size (WYSIWYG: the bubbles
are painted by the scene exactly as on screen) onto a white background.
Selection handles are hidden for the duration by EditorSession.export().
"""

import logging
import os
from datetime import datetime

from PyQt6.QtCore import QBuffer, QByteArray, QIODevice, QRectF
from PyQt6.QtGui import QColor, QImage, QPainter
from PyQt6.QtWidgets import QFileDialog, QMessageBox

import config
from session import ExportFailed

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Rasterizer
# ---------------------------------------------------------------------------

def rasterize_scene(scene, source_rect: QRectF, pixel_ratio: int = 1,
                    fmt: str = "PNG") -> bytes:
    """Render source_rect of the scene and return the encoded image bytes."""
    if source_rect.isEmpty():
        raise ExportFailed("nothing to export: empty page")

    W = int(round(source_rect.width() * pixel_ratio))
    H = int(round(source_rect.height() * pixel_ratio))

    image = QImage(W, H, QImage.Format.Format_ARGB32_Premultiplied)
    if image.isNull():
        raise ExportFailed(f"cannot allocate a {W}×{H} image")
    image.fill(QColor(255, 255, 255))

    painter = QPainter(image)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
    painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
    try:
        scene.render(painter, QRectF(0, 0, W, H), source_rect)
    finally:
        painter.end()

    buf = QByteArray()
    device = QBuffer(buf)
    device.open(QIODevice.OpenModeFlag.WriteOnly)
    ok = image.save(device, fmt)
    device.close()
    if not ok:
        raise ExportFailed(f"{fmt} encoding failed")
    return bytes(buf.data())


# ---------------------------------------------------------------------------
# Export action
# ---------------------------------------------------------------------------

def export_page(parent, session, scene, pixel_ratio: int | None = None):
    """Ask for a file name, rasterize the page, save it and report back."""
    if not session.has_page() or not scene.has_page():
        QMessageBox.warning(parent, "Export", "No page loaded.")
        return

    ratio = pixel_ratio or config.EXPORT_PIXEL_RATIO
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    default_name = f"manga-{session.page.base_name}-{timestamp}.png"

    path, _ = QFileDialog.getSaveFileName(
        parent, "Export Page", default_name, "PNG (*.png)"
    )
    if not path:
        return
    if not os.path.splitext(path)[1]:
        path += ".png"

    try:
        data = session.export(
            lambda: rasterize_scene(scene, scene.page_rect(), ratio))
        _write(path, data)
    except ExportFailed as exc:
        logger.warning("export failed: %s", exc)
        QMessageBox.critical(parent, "Export", f"Failed to export:\n{exc}")
        return

    logger.info("exported %s (%d bytes, ×%d)", path, len(data), ratio)
    QMessageBox.information(parent, "Export", f"Saved to:\n{path}")


def _write(path: str, data: bytes):
    try:
        with open(path, "wb") as fh:
            fh.write(data)
    except OSError as exc:
        raise ExportFailed(f"cannot write {path}: {exc}") from exc
