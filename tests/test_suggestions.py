"""Unit tests for suggestion parsing and the Gemini-backed source."""

import json
import unittest
from types import SimpleNamespace

from bubble_model import BubbleModel
from suggestions import (
    GeminiSuggestionSource, SuggestionUnavailable, SuggestionWorker,
    parse_suggestions, PROMPT,
)

SAMPLE = [
    {"panelNumber": 2, "description": "the girl answers",
     "suggestedDialogue": "Not today.", "position": {"x": 30, "y": 70},
     "tailAngle": 200, "tailLength": 50, "fontSize": 14.6,
     "bubbleScale": 28, "bubbleType": "speech", "readingOrder": 2},
    {"panelNumber": 1, "description": "opening narration",
     "suggestedDialogue": "The city never sleeps.",
     "position": {"x": 80, "y": 10}, "tailAngle": 0, "tailLength": 0,
     "fontSize": 12, "bubbleScale": 40, "bubbleType": "narrative",
     "readingOrder": 1},
]


class FakeModels:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.kwargs = None

    def generate_content(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


def fake_client(**kw):
    return SimpleNamespace(models=FakeModels(**kw))


class TestParseSuggestions(unittest.TestCase):
    """Wire records become partial descriptors in reading order."""

    def test_maps_and_sorts(self):
        records = parse_suggestions(json.dumps(SAMPLE))
        self.assertEqual([r["text"] for r in records],
                         ["The city never sleeps.", "Not today."])
        second = records[1]
        self.assertEqual(second["position"], (30.0, 70.0))
        self.assertEqual(second["tail_angle"], 200.0)
        self.assertEqual(second["font_size"], 15)
        self.assertEqual(second["scale"], 28.0)
        self.assertEqual(second["shape_kind"], "speech")
        self.assertEqual(second["panel_number"], 2)
        self.assertEqual(second["description"], "the girl answers")
        self.assertTrue(second["show_tail"])

    def test_zero_length_tail_not_forced_on(self):
        records = parse_suggestions(SAMPLE)
        self.assertNotIn("show_tail", records[0])

    def test_malformed_json(self):
        with self.assertRaises(SuggestionUnavailable):
            parse_suggestions("[{not json")

    def test_not_an_array(self):
        with self.assertRaises(SuggestionUnavailable):
            parse_suggestions('{"suggestedDialogue": "hi"}')

    def test_empty_payload(self):
        self.assertEqual(parse_suggestions(""), [])
        self.assertEqual(parse_suggestions("[]"), [])

    def test_skips_non_objects(self):
        records = parse_suggestions('[1, "x", {"suggestedDialogue": "ok"}]')
        self.assertEqual(records, [{"text": "ok"}])

    def test_drops_non_numeric_values(self):
        records = parse_suggestions([{"suggestedDialogue": "a",
                                      "tailAngle": "left",
                                      "position": {"x": "?", "y": 3}}])
        self.assertNotIn("tail_angle", records[0])
        self.assertNotIn("position", records[0])

    def test_non_finite_numbers_dropped(self):
        """json.loads accepts 1e999, -Infinity and NaN; none of them survive."""
        records = parse_suggestions(
            '[{"suggestedDialogue": "a", "fontSize": 1e999, "tailAngle": NaN,'
            '  "tailLength": -Infinity, "readingOrder": 1e999,'
            '  "position": {"x": 1e999, "y": 4}}]')
        self.assertEqual(records, [{"text": "a"}])

    def test_records_load_into_model_clamped(self):
        records = parse_suggestions([{"suggestedDialogue": "big",
                                      "bubbleScale": 150,
                                      "position": {"x": 120, "y": -4},
                                      "bubbleType": "explosion"}])
        model = BubbleModel()
        model.replace_all(records)
        d = model.descriptors()[0]
        self.assertEqual(d.scale, 98.0)
        self.assertEqual(d.position, (100.0, 0.0))
        self.assertEqual(d.shape_kind, "speech")


class TestGeminiSource(unittest.TestCase):
    """The SDK client is injected, so no network is touched."""

    def test_analyze_parses_response(self):
        client = fake_client(text=json.dumps(SAMPLE))
        source = GeminiSuggestionSource(api_key="k", model="test-model",
                                        client=client)
        records = source.analyze(b"\x89PNG...", "image/png")
        self.assertEqual(len(records), 2)
        self.assertEqual(client.models.kwargs["model"], "test-model")
        self.assertIn(PROMPT, client.models.kwargs["contents"])

    def test_sdk_error_becomes_unavailable(self):
        client = fake_client(error=RuntimeError("quota exceeded"))
        source = GeminiSuggestionSource(api_key="k", client=client)
        with self.assertRaises(SuggestionUnavailable) as ctx:
            source.analyze(b"data", "image/png")
        self.assertIn("quota exceeded", str(ctx.exception))

    def test_missing_key(self):
        source = GeminiSuggestionSource(api_key="")
        with self.assertRaises(SuggestionUnavailable):
            source.analyze(b"data", "image/png")

    def test_empty_response_text(self):
        source = GeminiSuggestionSource(api_key="k",
                                        client=fake_client(text=None))
        self.assertEqual(source.analyze(b"data", "image/png"), [])

    def test_bad_json_response(self):
        source = GeminiSuggestionSource(api_key="k",
                                        client=fake_client(text="sorry, no"))
        with self.assertRaises(SuggestionUnavailable):
            source.analyze(b"data", "image/png")


class CrashingSource:
    def analyze(self, image_bytes, mime_type):
        raise OverflowError("cannot convert float infinity to integer")


class TestSuggestionWorker(unittest.TestCase):
    """run() always ends with exactly one of finished / failed."""

    def run_worker(self, source):
        worker = SuggestionWorker(source, b"data", "image/png")
        done, failed = [], []
        worker.finished.connect(done.append)
        worker.failed.connect(failed.append)
        worker.run()
        return done, failed

    def test_records_delivered(self):
        source = GeminiSuggestionSource(api_key="k",
                                        client=fake_client(text=json.dumps(SAMPLE)))
        done, failed = self.run_worker(source)
        self.assertEqual(len(done), 1)
        self.assertEqual(len(done[0]), 2)
        self.assertEqual(failed, [])

    def test_unavailable_reported(self):
        done, failed = self.run_worker(GeminiSuggestionSource(api_key=""))
        self.assertEqual(done, [])
        self.assertEqual(len(failed), 1)

    def test_unexpected_error_reported_as_failure(self):
        done, failed = self.run_worker(CrashingSource())
        self.assertEqual(done, [])
        self.assertEqual(len(failed), 1)
        self.assertIn("infinity", failed[0])


if __name__ == "__main__":
    unittest.main()
