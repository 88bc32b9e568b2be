# -*- coding: utf-8 -*-
"""
Validator tests: findings are classified, never raised.
"""

from __future__ import annotations

from rulestream.config.settings import Settings
from rulestream.model.composed import MergedRuleSet
from rulestream.model.document import Document, DocumentKind, Rule, Section, SectionKind, Tier
from rulestream.parsing.parser import parse
from rulestream.validation.findings import Finding, FindingKind, Severity, errors_only, has_errors
from rulestream.validation.validator import ValidationLimits, validate, validate_library, validate_merged


def _kinds(findings):
    return [(f.kind, f.severity) for f in findings]


def test_complete_template_has_no_findings(template_text):
    assert validate(parse(template_text(), "tpl")) == []


def test_empty_instructions_is_an_error(template_text):
    findings = validate(parse(template_text(instructions=""), "tpl"))
    assert _kinds(findings) == [(FindingKind.EMPTY_SECTION, Severity.ERROR)]
    assert findings[0].section is SectionKind.INSTRUCTIONS
    assert has_errors(findings)


def test_empty_context_is_a_warning(template_text):
    findings = validate(parse(template_text(context=""), "tpl"))
    assert _kinds(findings) == [(FindingKind.EMPTY_SECTION, Severity.WARNING)]
    assert not has_errors(findings)


def test_must_section_without_rules_is_an_error():
    doc = parse("kind: rules\n## Must Have\nNothing decided yet.\n## Should Have\n- S-1: x\n", "r")
    findings = validate(doc)
    assert _kinds(findings) == [(FindingKind.EMPTY_SECTION, Severity.ERROR)]
    assert findings[0].section is SectionKind.MUST_RULES


def test_empty_should_section_is_a_warning():
    doc = parse("## Must Have\n- M-1: x\n## Should Have\n", "r")
    assert _kinds(validate(doc)) == [(FindingKind.EMPTY_SECTION, Severity.WARNING)]


def test_rules_document_over_its_budget(rules_text):
    text = rules_text(must=[(f"M-{i}", "rule") for i in range(6)], kind_line="budget: 5")
    findings = validate(parse(text, "r"))
    assert _kinds(findings) == [(FindingKind.BUDGET_EXCEEDED, Severity.ERROR)]
    assert "exceeds budget of 5" in findings[0].message


def test_rules_document_over_the_configured_ceiling(rules_text):
    doc = parse(rules_text(must=[("M-1", "a"), ("M-2", "b")]), "r")
    assert validate(doc, ValidationLimits(rules_max_lines=100)) == []
    findings = validate(doc, ValidationLimits(rules_max_lines=3))
    assert _kinds(findings) == [(FindingKind.BUDGET_EXCEEDED, Severity.ERROR)]


def test_template_soft_limit_is_a_warning(template_text):
    findings = validate(parse(template_text(), "tpl"), ValidationLimits(template_soft_limit=5))
    assert _kinds(findings) == [(FindingKind.BUDGET_EXCEEDED, Severity.WARNING)]


def test_template_with_its_own_budget_fails_hard(template_text):
    text = template_text().replace("kind: template", "kind: template\nbudget: 5")
    findings = validate(parse(text, "tpl"))
    assert _kinds(findings) == [(FindingKind.BUDGET_EXCEEDED, Severity.ERROR)]


def test_hand_built_documents_get_structural_checks():
    rule_a = Rule("R-1", Tier.MUST, "first", "hand", 2)
    rule_b = Rule("R-1", Tier.SHOULD, "second", "hand", 4)
    rules_doc = Document(
        id="hand",
        kind=DocumentKind.RULES,
        sections=(
            Section(SectionKind.MUST_RULES, "Must Have", 2, ("- R-1: first",), (rule_a,), 1),
            Section(SectionKind.SHOULD_RULES, "Should Have", 2, ("- R-1: second",), (rule_b,), 3),
        ),
        line_count=4,
    )
    findings = validate(rules_doc)
    assert _kinds(findings) == [(FindingKind.DUPLICATE_RULE_ID, Severity.ERROR)]
    assert findings[0].rule_id == "R-1"

    template = Document(
        id="bare",
        kind=DocumentKind.TEMPLATE,
        sections=(Section(SectionKind.CONTEXT, "Context", 2, ("ctx",), (), 1),),
        line_count=2,
    )
    missing = [f for f in validate(template) if f.kind is FindingKind.MISSING_SECTION]
    assert {f.section for f in missing} == {
        SectionKind.ROLE,
        SectionKind.INSTRUCTIONS,
        SectionKind.OUTPUT_FORMAT,
    }
    assert all(f.is_error for f in missing)


def test_merged_set_without_must_rules_warns():
    merged = MergedRuleSet(root_id="root", should=(Rule("S-1", Tier.SHOULD, "x", "root"),))
    findings = validate_merged(merged)
    assert _kinds(findings) == [(FindingKind.EMPTY_SECTION, Severity.WARNING)]


def test_merged_set_over_ceiling_warns():
    must = tuple(Rule(f"M-{i}", Tier.MUST, "x", "root") for i in range(3))
    merged = MergedRuleSet(root_id="root", must=must, principles=("- a", "- b"))
    findings = validate_merged(merged, ValidationLimits(rules_max_lines=4))
    assert _kinds(findings) == [(FindingKind.BUDGET_EXCEEDED, Severity.WARNING)]


def test_validate_library_reports_per_document(make_rules, template_text):
    docs = [parse(template_text(instructions=""), "t"), make_rules("a", must=[("M-1", "x")])]
    report = validate_library(docs)
    assert list(report) == ["a", "t"]
    assert report["a"] == []
    assert has_errors(report["t"])


def test_limits_come_from_settings(monkeypatch):
    monkeypatch.setenv("RULESTREAM_RULES_MAX_LINES", "12")
    monkeypatch.setenv("RULESTREAM_TEMPLATE_SOFT_LIMIT", "34")
    Settings.clear_cache()
    assert ValidationLimits.from_settings() == ValidationLimits(rules_max_lines=12, template_soft_limit=34)


def test_errors_only_keeps_errors_in_order():
    warn = Finding(FindingKind.EMPTY_SECTION, Severity.WARNING, "a", "empty Could")
    err1 = Finding(FindingKind.EMPTY_SECTION, Severity.ERROR, "a", "empty Must")
    err2 = Finding(FindingKind.MISSING_SECTION, Severity.ERROR, "b", "no tiers")
    assert errors_only(iter([warn, err1, err2])) == [err1, err2]
    assert errors_only([warn]) == []
