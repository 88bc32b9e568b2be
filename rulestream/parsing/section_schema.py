# rulestream/parsing/section_schema.py
# Purpose: Load the section-name schema JSON once and expose it to the parser,
# validator and renderer.
# Notes:
# - Header keys are normalized the same way everywhere (NFKC, lowercase,
#   collapsed whitespace, punctuation removed), so "TL;DR" == "tldr".
# - Values in the JSON are SectionKind values; unknown ones fail loudly.

from __future__ import annotations
from typing import Dict, FrozenSet, Optional, Tuple
from pathlib import Path
import json
import unicodedata
import re

from rulestream.model.document import DocumentKind, SectionKind
from rulestream.utils.paths import PATHS


class SectionSchema:
    def __init__(self, json_path: Optional[str] = None) -> None:
        self.json_path = str(json_path or PATHS["schema"])
        self.canonical: Dict[str, SectionKind] = {}
        self.aliases: Dict[str, SectionKind] = {}
        self.display_titles: Dict[SectionKind, str] = {}
        self.required_template: Tuple[SectionKind, ...] = ()
        self.rules_any_of: Tuple[SectionKind, ...] = ()
        self.hard_empty: FrozenSet[SectionKind] = frozenset()

        self._load()

    def _load(self) -> None:
        with open(self.json_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        self.canonical = {
            self.normalize_key(k): SectionKind(v)
            for k, v in (data.get("canonical_sections", {}) or {}).items()
        }
        # aliases point at canonical names, not at kinds
        for alias, target in (data.get("aliases", {}) or {}).items():
            kind = self.canonical.get(self.normalize_key(target))
            if kind is None:
                raise ValueError(f"SectionSchema: alias {alias!r} targets unknown section {target!r}")
            self.aliases[self.normalize_key(alias)] = kind

        self.display_titles = {
            SectionKind(k): v for k, v in (data.get("display_titles", {}) or {}).items()
        }
        required = data.get("required", {}) or {}
        self.required_template = tuple(SectionKind(k) for k in required.get("template", []))
        self.rules_any_of = tuple(SectionKind(k) for k in required.get("rules_any_of", []))
        self.hard_empty = frozenset(SectionKind(k) for k in data.get("hard_empty", []))

    # Normalization used everywhere: lowercase, NFKC, trim, collapse inner spaces, strip punctuation runs.
    @staticmethod
    def normalize_key(s: str) -> str:
        if not isinstance(s, str):
            return ""
        s = unicodedata.normalize("NFKC", s).lower().strip()
        s = re.sub(r"[^\w\s]+", "", s)          # drop punctuation (only for header keys)
        s = re.sub(r"[\s_]+", " ", s).strip()   # collapse whitespace
        return s

    def kind_for(self, header: str) -> Optional[SectionKind]:
        nk = self.normalize_key(header)
        if nk in self.canonical:
            return self.canonical[nk]
        return self.aliases.get(nk)

    def title_for(self, kind: SectionKind) -> str:
        return self.display_titles.get(kind, kind.value.replace("_", " ").title())

    def required_for(self, kind: DocumentKind) -> Tuple[SectionKind, ...]:
        """Sections that must all be present (Templates only)."""
        if kind is DocumentKind.TEMPLATE:
            return self.required_template
        return ()

    def is_hard_empty(self, kind: SectionKind) -> bool:
        return kind in self.hard_empty


_DEFAULT: Optional[SectionSchema] = None


def default_schema() -> SectionSchema:
    """Schema loaded from the packaged JSON, shared after the first call."""
    global _DEFAULT
    if _DEFAULT is None:
        _DEFAULT = SectionSchema()
    return _DEFAULT
