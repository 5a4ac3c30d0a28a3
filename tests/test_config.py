"""Tests for environment-driven settings."""

import importlib

import config


def test_int_env_parses(monkeypatch):
    monkeypatch.setenv("MANGA_TEST_INT", " 4 ")
    assert config._int_env("MANGA_TEST_INT", 1) == 4


def test_int_env_bad_value_falls_back(monkeypatch):
    monkeypatch.setenv("MANGA_TEST_INT", "lots")
    assert config._int_env("MANGA_TEST_INT", 3) == 3


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "")
    monkeypatch.setenv("API_KEY", "fallback-key")
    monkeypatch.setenv("GEMINI_MODEL", "gemini-test")
    monkeypatch.setenv("MANGA_EXPORT_PIXEL_RATIO", "0")
    monkeypatch.setenv("MANGA_LOG_LEVEL", "debug")
    try:
        importlib.reload(config)
        assert config.GEMINI_API_KEY == "fallback-key"
        assert config.GEMINI_MODEL == "gemini-test"
        assert config.EXPORT_PIXEL_RATIO == 1
        assert config.LOG_LEVEL == "DEBUG"
    finally:
        monkeypatch.undo()
        importlib.reload(config)
