# -*- coding: utf-8 -*-
"""
Document model
==============
Immutable records produced by the parser: Document, Section, Rule, Reference.

Notes:
- Everything is a frozen dataclass holding tuples, so a parsed Document can be
  shared across threads and compared by value (round-trip tests rely on ==).
- Section is a tagged variant: `kind` is a SectionKind, with an explicit
  FREEFORM member for headers the schema does not know.
- Sections keep their verbatim header title/level and content lines, which is
  what the serializer writes back out.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple


class DocumentKind(str, Enum):
    RULES = "rules"
    TEMPLATE = "template"


class Tier(str, Enum):
    """Rule priority class. Declaration order is precedence order."""

    MUST = "must"
    SHOULD = "should"
    COULD = "could"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]


_TIER_RANK: Dict[Tier, int] = {Tier.MUST: 0, Tier.SHOULD: 1, Tier.COULD: 2}


class SectionKind(str, Enum):
    ROLE = "role"
    CONTEXT = "context"
    INSTRUCTIONS = "instructions"
    CONSTRAINTS = "constraints"
    OUTPUT_FORMAT = "output_format"
    PRINCIPLES = "principles"
    MUST_RULES = "must_rules"
    SHOULD_RULES = "should_rules"
    COULD_RULES = "could_rules"
    PATTERNS = "patterns"
    REFERENCES = "references"
    TLDR = "tldr"
    FREEFORM = "freeform"

    @property
    def tier(self) -> Optional[Tier]:
        """Tier bucket for rule sections, None for every other kind."""
        return TIER_SECTIONS.get(self)


TIER_SECTIONS: Dict[SectionKind, Tier] = {
    SectionKind.MUST_RULES: Tier.MUST,
    SectionKind.SHOULD_RULES: Tier.SHOULD,
    SectionKind.COULD_RULES: Tier.COULD,
}

SECTION_FOR_TIER: Dict[Tier, SectionKind] = {t: k for k, t in TIER_SECTIONS.items()}


@dataclass(frozen=True)
class Rule:
    """A single tiered directive. `id` is unique inside `document_id`."""

    id: str
    tier: Tier
    text: str
    document_id: str
    line_no: int = 0
    overrides: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Reference:
    """Directed edge source -> target. External targets are leaves."""

    source_id: str
    target_id: str
    external: bool = False


@dataclass(frozen=True)
class Section:
    kind: SectionKind
    title: str                        # header text exactly as written
    level: int                        # number of '#' characters
    lines: Tuple[str, ...] = ()       # verbatim content lines
    rules: Tuple[Rule, ...] = ()      # only filled for tier sections
    start_line: int = 0               # 1-based line number of the header

    @property
    def is_freeform(self) -> bool:
        return self.kind is SectionKind.FREEFORM

    @property
    def content_lines(self) -> Tuple[str, ...]:
        """Non-blank content lines, stripped of trailing whitespace."""
        return tuple(line.rstrip() for line in self.lines if line.strip())


@dataclass(frozen=True)
class Document:
    id: str
    kind: DocumentKind
    sections: Tuple[Section, ...]
    line_count: int
    references: Tuple[Reference, ...] = ()
    preamble: Tuple[str, ...] = ()
    metadata: Tuple[Tuple[str, str], ...] = ()
    budget: Optional[int] = None
    declared_kind: bool = False       # kind came from a `kind:` preamble line

    # ------------------------------------------------------------------
    # Section access
    # ------------------------------------------------------------------

    def sections_of(self, kind: SectionKind) -> Tuple[Section, ...]:
        return tuple(s for s in self.sections if s.kind is kind)

    def section(self, kind: SectionKind) -> Optional[Section]:
        for s in self.sections:
            if s.kind is kind:
                return s
        return None

    def has_section(self, kind: SectionKind) -> bool:
        return self.section(kind) is not None

    def lines_of(self, kind: SectionKind) -> Tuple[str, ...]:
        """Verbatim lines of every section of `kind`, in document order."""
        out = []
        for s in self.sections_of(kind):
            out.extend(s.lines)
        return tuple(out)

    # ------------------------------------------------------------------
    # Rules / references
    # ------------------------------------------------------------------

    def iter_rules(self) -> Iterator[Rule]:
        for s in self.sections:
            yield from s.rules

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return tuple(self.iter_rules())

    def rules_for(self, tier: Tier) -> Tuple[Rule, ...]:
        return tuple(r for r in self.iter_rules() if r.tier is tier)

    def rule(self, rule_id: str) -> Optional[Rule]:
        for r in self.iter_rules():
            if r.id == rule_id:
                return r
        return None

    @property
    def reference_ids(self) -> Tuple[str, ...]:
        """Ids of internal (non-external) reference targets."""
        return tuple(r.target_id for r in self.references if not r.external)

    def meta(self, key: str, default: Optional[str] = None) -> Optional[str]:
        for k, v in self.metadata:
            if k == key:
                return v
        return default

    def __repr__(self) -> str:
        return f"Document(id={self.id!r}, kind={self.kind.value!r}, sections={len(self.sections)})"
