"""
Settings
========
Centralised, cached access to environment configuration.

Values come from the process environment, with a `.env` file (if present)
loaded once on first access via python-dotenv. Every key used by the engine
is listed in DEFAULTS so there is one place to look them up.
"""
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv

DEFAULTS: Dict[str, Any] = {
    "RULESTREAM_LIBRARY_DIR": None,          # None -> PATHS["library"]
    "RULESTREAM_RULES_MAX_LINES": 200,
    "RULESTREAM_TEMPLATE_SOFT_LIMIT": 400,
    "RULESTREAM_MAX_CHARS": None,            # None -> unrestricted
    "RULESTREAM_PARSE_WORKERS": 4,
    "RULESTREAM_LOG_LEVEL": "INFO",
}


class Settings:
    _CACHE: Dict[str, Any] = {}
    _DOTENV_LOADED: bool = False

    @classmethod
    def _ensure_dotenv(cls) -> None:
        if not cls._DOTENV_LOADED:
            load_dotenv()
            cls._DOTENV_LOADED = True

    @classmethod
    def get(cls, key: str, default: Any | None = None) -> Any:
        if key not in cls._CACHE:
            cls._ensure_dotenv()
            fallback = default if default is not None else DEFAULTS.get(key)
            cls._CACHE[key] = os.getenv(key, fallback)
        return cls._CACHE[key]

    @classmethod
    def get_int(cls, key: str, default: int | None = None) -> int:
        value = cls.get_optional_int(key, default)
        if value is None:
            raise ValueError(f"Settings: {key} is not set and has no default")
        return value

    @classmethod
    def get_optional_int(cls, key: str, default: int | None = None) -> Optional[int]:
        raw = cls.get(key, default)
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return None
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise ValueError(f"Settings: {key} must be an integer, got {raw!r}") from None

    @classmethod
    def clear_cache(cls) -> None:
        """Forget cached values (tests, or after changing os.environ)."""
        cls._CACHE.clear()
