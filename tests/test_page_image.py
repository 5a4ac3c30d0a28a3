"""Tests for PageImage sniffing and the view transform."""

import os
import tempfile
import unittest

from conftest import make_image_bytes
from page_image import PageImage, PageImageError, ViewTransform


class TestPageImage(unittest.TestCase):

    def test_png(self):
        page = PageImage.from_bytes(make_image_bytes((320, 480)))
        self.assertEqual(page.mime_type, "image/png")
        self.assertEqual(page.size, (320, 480))

    def test_mime_follows_content_not_extension(self):
        """A JPEG saved as .png is still sent as image/jpeg."""
        data = make_image_bytes((40, 30), fmt="JPEG")
        page = PageImage.from_bytes(data, source_path="/scans/lying.png")
        self.assertEqual(page.mime_type, "image/jpeg")
        self.assertEqual(page.base_name, "lying")

    def test_garbage_rejected(self):
        with self.assertRaises(PageImageError):
            PageImage.from_bytes(b"definitely not an image")

    def test_from_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "page-07.webp")
            with open(path, "wb") as fh:
                fh.write(make_image_bytes((10, 20), fmt="WEBP"))
            page = PageImage.from_file(path)
        self.assertEqual(page.mime_type, "image/webp")
        self.assertEqual(page.base_name, "page-07")

    def test_missing_file(self):
        with self.assertRaises(PageImageError):
            PageImage.from_file("/no/such/page.png")

    def test_default_base_name(self):
        self.assertEqual(PageImage.from_bytes(make_image_bytes()).base_name,
                         "page")


class TestViewTransform(unittest.TestCase):

    def test_zoom_clamped(self):
        v = ViewTransform()
        v.set_zoom(100)
        self.assertEqual(v.zoom, 10.0)
        v.set_zoom(0)
        self.assertEqual(v.zoom, 0.05)

    def test_pan_accumulates(self):
        v = ViewTransform()
        v.pan(5, -3)
        v.pan(1, 1)
        self.assertEqual((v.offset_x, v.offset_y), (6, -2))


if __name__ == "__main__":
    unittest.main()
