"""Shared pytest fixtures for the lettering test suite.

Fixtures:
    model: empty BubbleModel
    session: EditorSession with a 200x100 PNG page open
    png_bytes: encoded 200x100 PNG made with Pillow
    fake_source: suggestion source returning canned records
    failing_source: suggestion source that always reports unavailability
"""

import io
import sys
from pathlib import Path

import pytest
from PIL import Image

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from bubble_model import BubbleModel  # noqa: E402
from page_image import PageImage  # noqa: E402
from session import EditorSession  # noqa: E402
from suggestions import SuggestionUnavailable  # noqa: E402


def make_image_bytes(size=(200, 100), fmt="PNG", color=(240, 240, 240)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


class FakeSource:
    """Returns the records it was built with and remembers each call."""

    def __init__(self, records):
        self.records = records
        self.calls = []

    def analyze(self, image_bytes, mime_type):
        self.calls.append((image_bytes, mime_type))
        return [dict(r) for r in self.records]


class FailingSource:
    def __init__(self, reason="service down"):
        self.reason = reason

    def analyze(self, image_bytes, mime_type):
        raise SuggestionUnavailable(self.reason)


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def model():
    return BubbleModel()


@pytest.fixture
def png_bytes():
    return make_image_bytes()


@pytest.fixture
def page(png_bytes):
    return PageImage.from_bytes(png_bytes, source_path="/tmp/chapter1-p03.png")


@pytest.fixture
def session(page):
    s = EditorSession()
    s.open_page(page)
    return s


@pytest.fixture
def fake_source():
    return FakeSource([
        {"text": "Who's there?", "position": (70.0, 20.0), "reading_order": 1,
         "tail_angle": 200, "tail_length": 60, "show_tail": True,
         "shape_kind": "speech", "panel_number": 1},
        {"text": "...", "position": (30.0, 60.0), "reading_order": 2,
         "shape_kind": "thought", "tail_length": 40, "panel_number": 2},
    ])


@pytest.fixture
def failing_source():
    return FailingSource()
