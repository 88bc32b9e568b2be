# rulestream/parsing/header_matcher.py
# Purpose: Deterministic header -> SectionKind resolution.
# Methods, in order:
#   1) exact canonical (case-insensitive after normalization)
#   2) alias
#   3) freeform (unknown header, preserved verbatim)
# No edit-distance and no guessing: an unknown header is never "close enough".

from __future__ import annotations
from typing import Tuple
from .section_schema import SectionSchema
from rulestream.model.document import SectionKind

class HeaderMatcher:
    def __init__(self, schema: SectionSchema) -> None:
        self.schema = schema

    def resolve(self, raw_header: str) -> Tuple[SectionKind, str]:
        """
        Returns (kind, method)
        method ∈ {"canonical","alias","freeform"}
        """
        nk = self.schema.normalize_key(raw_header)

        # 1) canonical
        if nk in self.schema.canonical:
            return (self.schema.canonical[nk], "canonical")

        # 2) alias
        if nk in self.schema.aliases:
            return (self.schema.aliases[nk], "alias")

        # 3) unknown -> freeform
        return (SectionKind.FREEFORM, "freeform")
