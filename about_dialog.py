"""
about_dialog.py — About dialog: name, version and the settings in effect.
"""

from PyQt6.QtWidgets import (
    QDialog, QDialogButtonBox, QVBoxLayout, QLabel, QFrame,
)
from PyQt6.QtGui import QFont
from PyQt6.QtCore import Qt

import config
from version import __version__, __app_name__, __org_name__, __copyright__


def _centered(text: str, css: str = "", point_size: int = 0,
              bold: bool = False) -> QLabel:
    lbl = QLabel(text)
    lbl.setAlignment(Qt.AlignmentFlag.AlignHCenter)
    lbl.setWordWrap(True)
    if point_size or bold:
        f = QFont()
        if point_size:
            f.setPointSize(point_size)
        f.setBold(bold)
        lbl.setFont(f)
    if css:
        lbl.setStyleSheet(css)
    return lbl


class AboutDialog(QDialog):

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle(f"About {__app_name__}")
        self.setFixedWidth(420)
        self.setModal(True)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(24, 24, 24, 18)
        layout.setSpacing(10)

        layout.addWidget(_centered(__app_name__, point_size=18, bold=True))
        layout.addWidget(_centered(f"Version {__version__}", "color: #888;", 11))
        layout.addWidget(_centered(f"{__org_name__}\n{__copyright__}",
                                   "color: #aaa; font-size: 11px;"))

        rule = QFrame()
        rule.setFrameShape(QFrame.Shape.HLine)
        rule.setFrameShadow(QFrame.Shadow.Sunken)
        layout.addWidget(rule)

        key_state = ("configured" if config.GEMINI_API_KEY
                     else "not set, analysis falls back to manual mode")
        layout.addWidget(_centered(
            f"Model: {config.GEMINI_MODEL}\n"
            f"API key: {key_state}\n"
            f"Export scale: ×{config.EXPORT_PIXEL_RATIO}",
            "color: #bbb; font-size: 11px;"))
        layout.addWidget(_centered(
            "Letter manga pages: ask Gemini for dialogue and placement, "
            "refine every bubble by hand, export a PNG.\n\n"
            "Built with Python, PyQt6, Pillow and google-genai",
            "color: #999; font-size: 10px;"))

        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Close)
        buttons.rejected.connect(self.reject)
        buttons.accepted.connect(self.accept)
        buttons.setCenterButtons(True)
        layout.addWidget(buttons)
