"""
config.py — Runtime settings read from the environment (and an optional .env).
"""

import os

from dotenv import load_dotenv

load_dotenv()

GEMINI_API_KEY = (os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or "").strip()
GEMINI_MODEL   = os.getenv("GEMINI_MODEL", "gemini-2.5-flash").strip()

LOG_LEVEL = os.getenv("MANGA_LOG_LEVEL", "INFO").strip().upper()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


EXPORT_PIXEL_RATIO = max(1, _int_env("MANGA_EXPORT_PIXEL_RATIO", 3))
