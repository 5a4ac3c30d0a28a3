"""
main.py — Entry point for Manga Lettering Studio.
"""

import logging
import os
import sys

import config
from version import __app_name__, __org_name__


def _resource_path(relative: str) -> str:
    """Return absolute path to a bundled resource (PyInstaller-aware)."""
    if hasattr(sys, "_MEIPASS"):
        return os.path.join(sys._MEIPASS, relative)
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), relative)


def _setup_logging():
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
    # The SDK's HTTP client is chatty at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _apply_dark_theme(app):
    """Fusion style + dark palette so the page artwork stands out."""
    from PyQt6.QtGui import QPalette, QColor

    app.setStyle("Fusion")
    p = QPalette()
    bg      = QColor(24,  24,  27)
    panel   = QColor(39,  39,  42)
    ctrl    = QColor(52,  52,  56)
    fg      = QColor(228, 228, 231)
    hi      = QColor(79,  70,  229)
    hi_text = QColor(255, 255, 255)
    p.setColor(QPalette.ColorRole.Window,          bg)
    p.setColor(QPalette.ColorRole.WindowText,      fg)
    p.setColor(QPalette.ColorRole.Base,            panel)
    p.setColor(QPalette.ColorRole.AlternateBase,   ctrl)
    p.setColor(QPalette.ColorRole.ToolTipBase,     ctrl)
    p.setColor(QPalette.ColorRole.ToolTipText,     fg)
    p.setColor(QPalette.ColorRole.Text,            fg)
    p.setColor(QPalette.ColorRole.Button,          ctrl)
    p.setColor(QPalette.ColorRole.ButtonText,      fg)
    p.setColor(QPalette.ColorRole.Link,            hi)
    p.setColor(QPalette.ColorRole.Highlight,       hi)
    p.setColor(QPalette.ColorRole.HighlightedText, hi_text)
    dim = QColor(113, 113, 122)
    p.setColor(QPalette.ColorGroup.Disabled, QPalette.ColorRole.Text,       dim)
    p.setColor(QPalette.ColorGroup.Disabled, QPalette.ColorRole.ButtonText, dim)
    p.setColor(QPalette.ColorGroup.Disabled, QPalette.ColorRole.WindowText, dim)
    app.setPalette(p)


def main():
    _setup_logging()
    log = logging.getLogger("main")

    from PyQt6.QtWidgets import QApplication
    from PyQt6.QtGui import QIcon, QFontDatabase

    app = QApplication(sys.argv)
    app.setApplicationName(__app_name__)
    app.setOrganizationName(__org_name__)

    _apply_dark_theme(app)

    # Load bundled fonts (the bubble lettering uses Klee One when present)
    fonts_dir = _resource_path("fonts")
    if os.path.isdir(fonts_dir):
        for fname in os.listdir(fonts_dir):
            if fname.lower().endswith((".ttf", ".otf")):
                if QFontDatabase.addApplicationFont(
                        os.path.join(fonts_dir, fname)) < 0:
                    log.warning("could not load font %s", fname)

    icon_path = _resource_path(os.path.join("icons", "icon.png"))
    if os.path.exists(icon_path):
        app.setWindowIcon(QIcon(icon_path))

    if not config.GEMINI_API_KEY:
        log.info("no GEMINI_API_KEY set; analysis will fall back to manual mode")

    from main_window import MainWindow
    window = MainWindow()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
