# -*- coding: utf-8 -*-
"""
Validator
=========

Two passes, both read-only:

1) validate(document)          structural + budget checks after parsing
   - MissingSection   required section absent                      (error)
   - DuplicateRuleID  two rules in one document share an id        (error)
   - EmptySection     required section without content             (warning;
                      error for Instructions and Must rules)
   - BudgetExceeded   Rules document over its line ceiling         (error)
                      Template over the soft limit                 (warning)
                      Template over its own `budget:`              (error)

2) validate_merged(merged)     budget pass after merging
   - EmptySection     merged set has no Must rules                 (warning)
   - BudgetExceeded   merged rule lines over the rules ceiling     (warning)

Documents built by the parser already satisfy the hard structural checks;
the validator still runs them so programmatically built documents and
reloaded snapshots get the same guarantees.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from rulestream.config.settings import Settings
from rulestream.model.composed import MergedRuleSet
from rulestream.model.document import SECTION_FOR_TIER, Document, DocumentKind, Section, SectionKind
from rulestream.parsing.section_schema import SectionSchema, default_schema
from rulestream.utils.logging import SimpleLogger
from rulestream.validation.findings import Finding, FindingKind, Severity


@dataclass(frozen=True)
class ValidationLimits:
    rules_max_lines: int = 200
    template_soft_limit: int = 400

    @classmethod
    def from_settings(cls) -> "ValidationLimits":
        return cls(
            rules_max_lines=Settings.get_int("RULESTREAM_RULES_MAX_LINES"),
            template_soft_limit=Settings.get_int("RULESTREAM_TEMPLATE_SOFT_LIMIT"),
        )


def _is_empty(section: Section) -> bool:
    if section.kind.tier is not None:
        return not section.rules
    return not section.content_lines


class Validator:
    def __init__(self, limits: Optional[ValidationLimits] = None, schema: Optional[SectionSchema] = None) -> None:
        self.limits = limits or ValidationLimits.from_settings()
        self.schema = schema or default_schema()

    # ------------------------------------------------------------------
    # Pass 1: single document
    # ------------------------------------------------------------------

    def validate(self, document: Document) -> List[Finding]:
        findings: List[Finding] = []
        findings.extend(self._missing_sections(document))
        findings.extend(self._duplicate_ids(document))
        findings.extend(self._empty_sections(document))
        findings.extend(self._budget(document))
        for f in findings:
            log = SimpleLogger.error if f.is_error else SimpleLogger.warning
            log(f"validator: {f}")
        return findings

    def _required_kinds(self, document: Document) -> List[SectionKind]:
        if document.kind is DocumentKind.TEMPLATE:
            return list(self.schema.required_for(DocumentKind.TEMPLATE))
        return [k for k in self.schema.rules_any_of if document.has_section(k)]

    def _missing_sections(self, document: Document) -> List[Finding]:
        if document.kind is DocumentKind.RULES:
            if any(document.has_section(k) for k in self.schema.rules_any_of):
                return []
            names = "/".join(self.schema.title_for(k) for k in self.schema.rules_any_of)
            return [
                Finding(
                    FindingKind.MISSING_SECTION,
                    Severity.ERROR,
                    document.id,
                    f"rules document has no {names} section",
                )
            ]
        out = []
        for kind in self.schema.required_for(DocumentKind.TEMPLATE):
            if not document.has_section(kind):
                out.append(
                    Finding(
                        FindingKind.MISSING_SECTION,
                        Severity.ERROR,
                        document.id,
                        f"missing required section '{self.schema.title_for(kind)}'",
                        section=kind,
                    )
                )
        return out

    @staticmethod
    def _duplicate_ids(document: Document) -> List[Finding]:
        out = []
        seen: Dict[str, int] = {}
        for rule in document.iter_rules():
            if rule.id in seen:
                out.append(
                    Finding(
                        FindingKind.DUPLICATE_RULE_ID,
                        Severity.ERROR,
                        document.id,
                        f"rule id '{rule.id}' declared on lines {seen[rule.id]} and {rule.line_no}",
                        section=SECTION_FOR_TIER[rule.tier],
                        rule_id=rule.id,
                    )
                )
            else:
                seen[rule.id] = rule.line_no
        return out

    def _empty_sections(self, document: Document) -> List[Finding]:
        out = []
        for kind in self._required_kinds(document):
            sections = document.sections_of(kind)
            if not sections or not all(_is_empty(s) for s in sections):
                continue
            severity = Severity.ERROR if self.schema.is_hard_empty(kind) else Severity.WARNING
            out.append(
                Finding(
                    FindingKind.EMPTY_SECTION,
                    severity,
                    document.id,
                    f"section '{self.schema.title_for(kind)}' is empty",
                    section=kind,
                )
            )
        return out

    def _budget(self, document: Document) -> List[Finding]:
        if document.kind is DocumentKind.RULES:
            limit = document.budget or self.limits.rules_max_lines
            severity = Severity.ERROR
        elif document.budget is not None:
            limit, severity = document.budget, Severity.ERROR
        else:
            limit, severity = self.limits.template_soft_limit, Severity.WARNING
        if document.line_count <= limit:
            return []
        return [
            Finding(
                FindingKind.BUDGET_EXCEEDED,
                severity,
                document.id,
                f"{document.line_count} lines exceeds budget of {limit}",
            )
        ]

    # ------------------------------------------------------------------
    # Pass 2: merged rule set
    # ------------------------------------------------------------------

    def validate_merged(self, merged: MergedRuleSet) -> List[Finding]:
        findings: List[Finding] = []
        if not merged.must:
            findings.append(
                Finding(
                    FindingKind.EMPTY_SECTION,
                    Severity.WARNING,
                    merged.root_id,
                    "merged rule set has no Must rules",
                    section=SectionKind.MUST_RULES,
                )
            )
        rendered_lines = len(merged) + len(merged.principles)
        if rendered_lines > self.limits.rules_max_lines:
            findings.append(
                Finding(
                    FindingKind.BUDGET_EXCEEDED,
                    Severity.WARNING,
                    merged.root_id,
                    f"merged rules render to {rendered_lines} lines, over {self.limits.rules_max_lines}",
                )
            )
        for f in findings:
            SimpleLogger.warning(f"validator: {f}")
        return findings


def validate(document: Document, limits: Optional[ValidationLimits] = None) -> List[Finding]:
    return Validator(limits).validate(document)


def validate_merged(merged: MergedRuleSet, limits: Optional[ValidationLimits] = None) -> List[Finding]:
    return Validator(limits).validate_merged(merged)


def validate_library(
    documents: Iterable[Document],
    limits: Optional[ValidationLimits] = None,
) -> Dict[str, List[Finding]]:
    """Findings per document id; one broken document never hides the others."""
    validator = Validator(limits)
    return {doc.id: validator.validate(doc) for doc in sorted(documents, key=lambda d: d.id)}
