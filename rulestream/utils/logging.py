# -*- coding: utf-8 -*-
"""
SimpleLogger: tiny logging facade for RuleStream.

Goal:
- One class with classmethods, printing `prefix | LEVEL | HH:MM:SS | msg` lines.
- Level threshold read from RULESTREAM_LOG_LEVEL through Settings, so it moves
  with Settings.clear_cache(); set_level() pins it until set_level(None).
  Callers never configure handlers.
- Parse workers may log concurrently; each line is one print call.
"""

from __future__ import annotations
import sys
import datetime
from typing import ClassVar, Dict, Optional

from rulestream.config.settings import Settings

_LEVELS: Dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


def _level_name(level: str) -> str:
    name = level.strip().upper()
    return "WARN" if name == "WARNING" else name


class SimpleLogger:
    """
    Very small logging helper.

    Usage:
        SimpleLogger.info("message")
        SimpleLogger.debug("details")
    """

    _enabled: ClassVar[bool] = True
    _prefix: ClassVar[str] = "RuleStream"
    _pinned: ClassVar[Optional[int]] = None

    @classmethod
    def _current_threshold(cls) -> int:
        if cls._pinned is not None:
            return cls._pinned
        name = _level_name(str(Settings.get("RULESTREAM_LOG_LEVEL") or "INFO"))
        return _LEVELS.get(name, _LEVELS["INFO"])

    @classmethod
    def _log(cls, level: str, msg: str) -> None:
        if not cls._enabled or _LEVELS[level] < cls._current_threshold():
            return
        now = datetime.datetime.now().strftime("%H:%M:%S")
        line = f"{cls._prefix} | {level:5s} | {now} | {msg}"
        print(line, file=sys.stdout, flush=True)

    @classmethod
    def debug(cls, msg: str) -> None:
        cls._log("DEBUG", msg)

    @classmethod
    def info(cls, msg: str) -> None:
        cls._log("INFO", msg)

    @classmethod
    def warning(cls, msg: str) -> None:
        cls._log("WARN", msg)

    @classmethod
    def error(cls, msg: str) -> None:
        cls._log("ERROR", msg)

    @classmethod
    def set_enabled(cls, enabled: bool) -> None:
        cls._enabled = enabled

    @classmethod
    def set_level(cls, level: Optional[str]) -> None:
        """Pin the threshold; None goes back to RULESTREAM_LOG_LEVEL."""
        if level is None:
            cls._pinned = None
            return
        name = _level_name(level)
        if name not in _LEVELS:
            raise ValueError(f"SimpleLogger: unknown level {level!r}")
        cls._pinned = _LEVELS[name]
