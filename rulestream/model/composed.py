# -*- coding: utf-8 -*-
"""
Composition results
===================
MergedRuleSet (Rule Merger output) and ComposedContext (Compositor output).
Both are created per request and never persisted by the engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .document import Rule, SectionKind, Tier


@dataclass(frozen=True)
class RuleOverride:
    """A closer-to-root declaration replaced (or explicitly removed) a rule."""

    rule_id: str
    tier: Tier
    winner_id: str             # document whose declaration survives
    loser_id: str              # document whose declaration was replaced
    previous_text: str
    explicit: bool = False     # True for "(overrides X)" declarations


@dataclass(frozen=True)
class MergedRuleSet:
    root_id: str
    must: Tuple[Rule, ...] = ()
    should: Tuple[Rule, ...] = ()
    could: Tuple[Rule, ...] = ()
    principles: Tuple[str, ...] = ()
    patterns: Tuple[str, ...] = ()
    overrides: Tuple[RuleOverride, ...] = ()
    source_ids: Tuple[str, ...] = ()       # leaf-to-root walk order

    def rules_for(self, tier: Tier) -> Tuple[Rule, ...]:
        return {Tier.MUST: self.must, Tier.SHOULD: self.should, Tier.COULD: self.could}[tier]

    @property
    def rules(self) -> Tuple[Rule, ...]:
        """All rules, Must then Should then Could."""
        return self.must + self.should + self.could

    def rule(self, rule_id: str, tier: Optional[Tier] = None) -> Optional[Rule]:
        for r in self.rules:
            if r.id == rule_id and (tier is None or r.tier is tier):
                return r
        return None

    def as_dict(self) -> Dict[str, Dict[str, str]]:
        """tier -> {rule_id: text}; handy for comparisons and display."""
        return {t.value: {r.id: r.text for r in self.rules_for(t)} for t in Tier}

    def __len__(self) -> int:
        return len(self.must) + len(self.should) + len(self.could)


@dataclass(frozen=True)
class RenderedSection:
    kind: SectionKind
    title: str
    lines: Tuple[str, ...]


@dataclass(frozen=True)
class ComposedContext:
    template_id: str
    sections: Tuple[RenderedSection, ...]
    merged_rules: MergedRuleSet
    text: str
    line_count: int
    char_count: int
    source_ids: Tuple[str, ...]

    def section(self, kind: SectionKind) -> Optional[RenderedSection]:
        for s in self.sections:
            if s.kind is kind:
                return s
        return None
