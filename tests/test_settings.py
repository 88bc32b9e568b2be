# -*- coding: utf-8 -*-
"""
Settings + SimpleLogger smoke tests.
"""

from __future__ import annotations

import pytest

from rulestream.config.settings import Settings
from rulestream.utils.logging import SimpleLogger


def test_defaults_and_environment(monkeypatch):
    assert Settings.get_int("RULESTREAM_RULES_MAX_LINES") == 200
    assert Settings.get_optional_int("RULESTREAM_MAX_CHARS") is None

    monkeypatch.setenv("RULESTREAM_MAX_CHARS", "5000")
    assert Settings.get_optional_int("RULESTREAM_MAX_CHARS") is None  # cached
    Settings.clear_cache()
    assert Settings.get_optional_int("RULESTREAM_MAX_CHARS") == 5000


def test_bad_integer_is_reported(monkeypatch):
    monkeypatch.setenv("RULESTREAM_RULES_MAX_LINES", "many")
    with pytest.raises(ValueError):
        Settings.get_int("RULESTREAM_RULES_MAX_LINES")


def test_logger_threshold_and_format(capsys):
    SimpleLogger.set_level("WARNING")
    try:
        SimpleLogger.info("hidden")
        SimpleLogger.error("shown")
    finally:
        SimpleLogger.set_level(None)
    out = capsys.readouterr().out.strip().splitlines()
    assert len(out) == 1
    prefix, level, _clock, msg = [part.strip() for part in out[0].split("|")]
    assert (prefix, level, msg) == ("RuleStream", "ERROR", "shown")

    with pytest.raises(ValueError):
        SimpleLogger.set_level("chatty")


def test_logger_threshold_follows_settings(monkeypatch, capsys):
    monkeypatch.setenv("RULESTREAM_LOG_LEVEL", "ERROR")
    Settings.clear_cache()
    SimpleLogger.info("quiet")
    monkeypatch.setenv("RULESTREAM_LOG_LEVEL", "debug")
    Settings.clear_cache()
    SimpleLogger.debug("loud")
    out = capsys.readouterr().out.strip().splitlines()
    assert [line.split("|")[-1].strip() for line in out] == ["loud"]
