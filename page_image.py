"""
page_image.py — PageImage: the background artwork for one editing session.

Pillow sniffs the real format and pixel size so the MIME type sent to the
suggestion service matches the bytes, whatever the file extension claims.
"""

import io
import os
from dataclasses import dataclass, field

from PIL import Image, UnidentifiedImageError

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.webp', '.bmp', '.gif', '.tiff')

_MIN_ZOOM = 0.05
_MAX_ZOOM = 10.0


class PageImageError(ValueError):
    """The data could not be decoded as an image."""


@dataclass
class ViewTransform:
    """Display framing only; bubble coordinates never depend on it."""
    zoom:     float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    def set_zoom(self, zoom: float):
        self.zoom = max(_MIN_ZOOM, min(_MAX_ZOOM, float(zoom)))

    def pan(self, dx: float, dy: float):
        self.offset_x += dx
        self.offset_y += dy


@dataclass
class PageImage:
    data:        bytes
    mime_type:   str
    width:       int
    height:      int
    source_path: str = ""
    view:        ViewTransform = field(default_factory=ViewTransform)

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def base_name(self) -> str:
        if not self.source_path:
            return "page"
        return os.path.splitext(os.path.basename(self.source_path))[0]

    @classmethod
    def from_bytes(cls, data: bytes, source_path: str = "") -> "PageImage":
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.verify()
            # verify() leaves the image unusable; reopen for size/format
            with Image.open(io.BytesIO(data)) as img:
                fmt = img.format
                width, height = img.size
        except (UnidentifiedImageError, OSError, SyntaxError) as exc:
            raise PageImageError(f"not a readable image: {exc}") from exc
        mime = Image.MIME.get(fmt or "", "application/octet-stream")
        return cls(data, mime, width, height, source_path)

    @classmethod
    def from_file(cls, path: str) -> "PageImage":
        try:
            with open(path, "rb") as fh:
                data = fh.read()
        except OSError as exc:
            raise PageImageError(f"cannot read {path}: {exc}") from exc
        return cls.from_bytes(data, source_path=path)
