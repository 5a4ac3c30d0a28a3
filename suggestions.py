"""
suggestions.py — Bubble suggestions from a vision-language model.

A suggestion source takes the page bytes and returns records in the model's
field names (text, position, tail_angle, ...).  Every failure, from a missing
API key to malformed JSON, is reported as SuggestionUnavailable so the editor
can drop into manual mode.  The records are not trusted: BubbleModel clamps
them like any user input.
"""

import json
import math
import logging
from typing import Any, Protocol

from PyQt6.QtCore import QObject, pyqtSignal

import config

logger = logging.getLogger(__name__)


class SuggestionUnavailable(RuntimeError):
    """The suggestion call failed or returned something unusable."""


class SuggestionSource(Protocol):
    def analyze(self, image_bytes: bytes, mime_type: str) -> list[dict]: ...


# ---------------------------------------------------------------------------
# Prompt and response schema
# ---------------------------------------------------------------------------

PROMPT = """Act as a manga editor-in-chief and lettering specialist.
Your job is to bring this page to life with speech bubbles or narration boxes.

GUIDELINES:
1. IF THERE ARE CHARACTERS: work out who is speaking and write lines that fit
   their expressions. 'tailAngle' must point at the speaker.
2. IF THERE IS NO CLEAR DIALOGUE: read the mood of the image and write a
   short narration (poetic, epic or descriptive inner monologue) that helps
   tell what is happening, using bubbleType 'narrative'.
3. PLACEMENT: put bubbles in empty areas (negative space) so they do not
   cover important details of the art.
4. READING ORDER: number 'readingOrder' following the Japanese convention
   (right to left, top to bottom).

Return a strict JSON array of objects with:
- panelNumber: panel number.
- description: short note on why this line goes here.
- suggestedDialogue: the text for the bubble.
- position: {x, y} as percentages (0-100) of the page, bubble centre.
- tailAngle: angle in degrees (0 = up, clockwise) pointing at the speaker.
- tailLength: tail length in pixels (40-100).
- fontSize: suggested font size (12-20).
- bubbleScale: bubble width as a percentage of the page width (20-60).
- bubbleType: one of speech, thought, scream, narrative, whisper, wavy,
  impact, organic, sharp, modern.
- readingOrder: sequential reading order."""

RESPONSE_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "panelNumber":       {"type": "INTEGER"},
            "description":       {"type": "STRING"},
            "suggestedDialogue": {"type": "STRING"},
            "position": {
                "type": "OBJECT",
                "properties": {
                    "x": {"type": "NUMBER"},
                    "y": {"type": "NUMBER"},
                },
                "required": ["x", "y"],
            },
            "tailAngle":   {"type": "NUMBER"},
            "tailLength":  {"type": "NUMBER"},
            "fontSize":    {"type": "INTEGER"},
            "bubbleScale": {"type": "NUMBER"},
            "bubbleType":  {"type": "STRING"},
            "readingOrder": {"type": "INTEGER"},
        },
        "required": ["panelNumber", "description", "suggestedDialogue",
                     "position", "tailAngle", "tailLength", "fontSize",
                     "bubbleScale", "readingOrder"],
    },
}

# Wire name -> model field name
_KEY_MAP = {
    "suggestedDialogue": "text",
    "text":              "text",
    "tailAngle":         "tail_angle",
    "tailLength":        "tail_length",
    "fontSize":          "font_size",
    "bubbleScale":       "scale",
    "bubbleType":        "shape_kind",
    "readingOrder":      "reading_order",
    "panelNumber":       "panel_number",
    "description":       "description",
}
_NUMERIC = ("tail_angle", "tail_length", "font_size", "scale",
            "reading_order", "panel_number")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    # json.loads accepts NaN, Infinity and 1e999
    return num if math.isfinite(num) else None


def _convert(record: dict) -> dict:
    out: dict[str, Any] = {}
    for key, name in _KEY_MAP.items():
        if key in record and record[key] is not None:
            out[name] = record[key]

    pos = record.get("position")
    if isinstance(pos, dict):
        x, y = _number(pos.get("x")), _number(pos.get("y"))
        if x is not None and y is not None:
            out["position"] = (x, y)

    for name in _NUMERIC:
        if name in out:
            num = _number(out[name])
            if num is None:
                del out[name]
            elif name in ("reading_order", "panel_number", "font_size"):
                out[name] = int(round(num))
            else:
                out[name] = num
    if "text" in out:
        out["text"] = str(out["text"])
    if out.get("tail_length", 0) > 0:
        out["show_tail"] = True
    return out


def parse_suggestions(payload: str | list) -> list[dict]:
    """Turn the model's JSON array into partial descriptors.

    Non-object entries are skipped; a payload that is not an array raises
    SuggestionUnavailable.
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload or "[]")
        except json.JSONDecodeError as exc:
            raise SuggestionUnavailable(f"malformed suggestion JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise SuggestionUnavailable(
            f"expected a JSON array, got {type(payload).__name__}")

    records = []
    for item in payload:
        if not isinstance(item, dict):
            logger.debug("skipping non-object suggestion %r", item)
            continue
        records.append(_convert(item))
    records.sort(key=lambda r: r.get("reading_order", 0))
    return records


# ---------------------------------------------------------------------------
# Gemini source
# ---------------------------------------------------------------------------

class GeminiSuggestionSource:
    """Suggestion source backed by the google-genai SDK."""

    def __init__(self, api_key: str | None = None, model: str | None = None,
                 client=None):
        self._api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self._model   = model or config.GEMINI_MODEL
        self._client  = client

    def _get_client(self):
        if self._client is None:
            if not self._api_key:
                raise SuggestionUnavailable("no Gemini API key configured")
            from google import genai
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def analyze(self, image_bytes: bytes, mime_type: str) -> list[dict]:
        from google.genai import types

        client = self._get_client()
        try:
            response = client.models.generate_content(
                model=self._model,
                contents=[
                    types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                    PROMPT,
                ],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=RESPONSE_SCHEMA,
                ),
            )
        except Exception as exc:
            # The SDK raises a mix of its own, httpx and OS errors
            raise SuggestionUnavailable(f"suggestion request failed: {exc}") from exc

        records = parse_suggestions(getattr(response, "text", None) or "[]")
        logger.info("model suggested %d bubble(s)", len(records))
        return records


# ---------------------------------------------------------------------------
# Worker: runs a source on a QThread
# ---------------------------------------------------------------------------

class SuggestionWorker(QObject):
    """Calls source.analyze() off the UI thread.

    Signals:
        finished(list)  — parsed records
        failed(str)     — reason the suggestions are unavailable
    """

    finished = pyqtSignal(list)
    failed   = pyqtSignal(str)

    def __init__(self, source: SuggestionSource, image_bytes: bytes,
                 mime_type: str):
        super().__init__()
        self._source    = source
        self._data      = image_bytes
        self._mime_type = mime_type

    def run(self):
        try:
            records = self._source.analyze(self._data, self._mime_type)
        except SuggestionUnavailable as exc:
            self.failed.emit(str(exc))
            return
        except Exception as exc:
            # The thread must always end with one of the two signals
            logger.exception("suggestion source crashed")
            self.failed.emit(f"unexpected error: {exc}")
            return
        self.finished.emit(records)
