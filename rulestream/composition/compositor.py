# -*- coding: utf-8 -*-
"""
Compositor
==========

compose(template, merged, variables, max_budget=None) -> ComposedContext

Fixed rendering order:
    Role -> Context -> Instructions -> Constraints
    -> Principles -> Must -> Should -> Could   (from the merged rule set)
    -> Patterns -> Output Format -> TL;DR

- Placeholders ({{name}}, {{name|default}}) are substituted in every rendered
  block outside fenced code. A placeholder with no value and no default fails
  the render with UnresolvedPlaceholderError listing every missing name.
- The budget is a ceiling on the rendered text's character count. Over the
  ceiling the render fails with BudgetExceededError; text is never truncated.
- Blocks with no content are omitted.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Tuple

from rulestream.composition.placeholders import substitute_lines
from rulestream.composition.render import render_text, rule_lines, trim_block
from rulestream.config.settings import Settings
from rulestream.errors import BudgetExceededError, UnresolvedPlaceholderError
from rulestream.model.composed import ComposedContext, MergedRuleSet, RenderedSection
from rulestream.model.document import Document, DocumentKind, SectionKind, Tier
from rulestream.parsing.section_schema import SectionSchema, default_schema
from rulestream.utils.logging import SimpleLogger

RENDER_ORDER: Tuple[SectionKind, ...] = (
    SectionKind.ROLE,
    SectionKind.CONTEXT,
    SectionKind.INSTRUCTIONS,
    SectionKind.CONSTRAINTS,
    SectionKind.PRINCIPLES,
    SectionKind.MUST_RULES,
    SectionKind.SHOULD_RULES,
    SectionKind.COULD_RULES,
    SectionKind.PATTERNS,
    SectionKind.OUTPUT_FORMAT,
    SectionKind.TLDR,
)

_RULE_BLOCKS: Dict[SectionKind, Tier] = {
    SectionKind.MUST_RULES: Tier.MUST,
    SectionKind.SHOULD_RULES: Tier.SHOULD,
    SectionKind.COULD_RULES: Tier.COULD,
}


def _default_budget() -> Optional[int]:
    return Settings.get_optional_int("RULESTREAM_MAX_CHARS")


class Compositor:
    def __init__(self, schema: Optional[SectionSchema] = None) -> None:
        self.schema = schema or default_schema()

    def _block(self, kind: SectionKind, template: Document, merged: MergedRuleSet) -> Tuple[str, ...]:
        if kind in _RULE_BLOCKS:
            return rule_lines(merged.rules_for(_RULE_BLOCKS[kind]))
        if kind in (SectionKind.PRINCIPLES, SectionKind.PATTERNS):
            merged_lines = merged.principles if kind is SectionKind.PRINCIPLES else merged.patterns
            if template.id in merged.source_ids:
                return trim_block(merged_lines)
            # template was not part of the merge: its own block goes first
            own = trim_block(template.lines_of(kind))
            rest = trim_block(merged_lines)
            return own + (("",) if own and rest else ()) + rest
        return trim_block(template.lines_of(kind))

    def compose(
        self,
        template: Document,
        merged: MergedRuleSet,
        variables: Optional[Mapping[str, str]] = None,
        max_budget: Optional[int] = None,
    ) -> ComposedContext:
        if template.kind is not DocumentKind.TEMPLATE:
            raise ValueError(f"compose: '{template.id}' is a {template.kind.value} document, not a template")
        variables = variables or {}
        budget = max_budget if max_budget is not None else _default_budget()
        if budget is not None and budget < 0:
            raise ValueError(f"compose: budget must be non-negative, got {budget}")

        # ---------------- render blocks + substitute placeholders ----------------
        sections: List[RenderedSection] = []
        missing: List[str] = []
        for kind in RENDER_ORDER:
            lines = self._block(kind, template, merged)
            if not lines:
                continue
            rendered, absent = substitute_lines(lines, variables)
            missing.extend(name for name in absent if name not in missing)
            sections.append(RenderedSection(kind=kind, title=self.schema.title_for(kind), lines=rendered))

        if missing:
            SimpleLogger.error(f"compositor: {template.id} unresolved placeholders: {', '.join(missing)}")
            raise UnresolvedPlaceholderError(missing[0], missing)

        # ---------------- budget: fail, never truncate ----------------
        text = render_text(sections)
        if budget is not None and len(text) > budget:
            SimpleLogger.error(f"compositor: {template.id} renders {len(text)} chars, budget {budget}")
            raise BudgetExceededError(budget, len(text), "characters", template.id)

        source_ids = [template.id]
        source_ids.extend(doc_id for doc_id in merged.source_ids if doc_id != template.id)

        ctx = ComposedContext(
            template_id=template.id,
            sections=tuple(sections),
            merged_rules=merged,
            text=text,
            line_count=len(text.splitlines()),
            char_count=len(text),
            source_ids=tuple(source_ids),
        )
        SimpleLogger.info(
            f"compositor: {template.id} -> {len(sections)} sections, {ctx.line_count} lines, {ctx.char_count} chars"
        )
        return ctx


def compose(
    template: Document,
    merged: MergedRuleSet,
    variables: Optional[Mapping[str, str]] = None,
    max_budget: Optional[int] = None,
) -> ComposedContext:
    return Compositor().compose(template, merged, variables, max_budget)
