# -*- coding: utf-8 -*-
"""
Parser tests: section partitioning, tier buckets, rule extraction, references,
strictness on required structure, and the parse -> serialize -> parse round trip.
"""

from __future__ import annotations

import pytest

from rulestream.errors import DuplicateRuleIdError, MalformedDocumentError
from rulestream.model.document import DocumentKind, Reference, SectionKind, Tier
from rulestream.parsing.parser import normalize_reference, parse
from rulestream.parsing.serializer import serialize


def test_rules_document_sections_rules_and_references(rules_text):
    text = rules_text(
        refs=["base"],
        must=[("RULE-001", "Retention is at least 7 days.")],
        should=[("RULE-101", "Avoid peak hours.")],
    )
    doc = parse(text, "repo-root")

    assert doc.kind is DocumentKind.RULES
    assert doc.declared_kind is True
    assert doc.line_count == 9
    assert [s.kind for s in doc.sections] == [
        SectionKind.FREEFORM,
        SectionKind.REFERENCES,
        SectionKind.MUST_RULES,
        SectionKind.SHOULD_RULES,
    ]
    assert doc.sections[0].title == "Rules"

    rule = doc.rule("RULE-001")
    assert rule.tier is Tier.MUST
    assert rule.text == "Retention is at least 7 days."
    assert rule.document_id == "repo-root"
    assert rule.line_no == 7
    assert [r.id for r in doc.rules_for(Tier.SHOULD)] == ["RULE-101"]
    assert doc.references == (Reference("repo-root", "base", False),)


def test_tier_headers_match_case_insensitively_and_by_alias():
    text = "\n".join([
        "### must",
        "- M1: one",
        "## SHOULD HAVE",
        "- S1: two",
        "## Could rules:",
        "- C1: three",
    ])
    doc = parse(text, "aliases")
    assert doc.kind is DocumentKind.RULES
    assert doc.declared_kind is False
    assert [(r.id, r.tier) for r in doc.rules] == [
        ("M1", Tier.MUST),
        ("S1", Tier.SHOULD),
        ("C1", Tier.COULD),
    ]


def test_rule_line_variants():
    text = "\n".join([
        "## Must Have",
        "* **SEC-1**: bold id",
        "1. SEC-2: numbered",
        "SEC-3: no bullet",
        "Applies to production accounts.",
        "  - nested detail under SEC-3",
        "- SEC-4: encrypt snapshots (overrides SEC-9, SEC-10)",
    ])
    doc = parse(text, "variants")
    assert [r.id for r in doc.rules] == ["SEC-1", "SEC-2", "SEC-3", "SEC-4"]
    assert doc.rule("SEC-1").text == "bold id"
    sec4 = doc.rule("SEC-4")
    assert sec4.text == "encrypt snapshots"
    assert sec4.overrides == ("SEC-9", "SEC-10")
    # prose and nested lines stay as content
    assert "Applies to production accounts." in doc.section(SectionKind.MUST_RULES).lines


def test_unknown_headers_become_freeform_and_nested_ones_stay_content():
    text = "\n".join([
        "kind: template",
        "## Role",
        "Reviewer.",
        "### Tone",
        "Calm.",
        "## Context",
        "ctx",
        "## Rollout Notes",
        "note",
        "## Instructions",
        "do it",
        "## Output Format",
        "table",
    ])
    doc = parse(text, "tpl")
    assert [s.kind for s in doc.sections] == [
        SectionKind.ROLE,
        SectionKind.CONTEXT,
        SectionKind.FREEFORM,
        SectionKind.INSTRUCTIONS,
        SectionKind.OUTPUT_FORMAT,
    ]
    assert doc.section(SectionKind.ROLE).lines == ("Reviewer.", "### Tone", "Calm.")
    freeform = doc.sections[2]
    assert freeform.is_freeform
    assert freeform.title == "Rollout Notes"
    assert freeform.lines == ("note",)


def test_header_without_title_is_content():
    doc = parse("kind: rules\n## Must Have\n- R-1: x\n##  \ntail\n", "rules/blank")
    assert [s.kind for s in doc.sections] == [SectionKind.MUST_RULES]
    assert doc.sections[0].lines[-2:] == ("##  ", "tail")


def test_headers_inside_fenced_code_are_payload(rules_text):
    text = rules_text(
        must=[("RULE-1", "x")],
        patterns=["```hcl", "# terraform comment", "## not a header", "- RULE-9: not a rule", "```"],
    )
    doc = parse(text, "fenced")
    patterns = doc.section(SectionKind.PATTERNS)
    assert "## not a header" in patterns.lines
    assert [s.kind for s in doc.sections][-1] is SectionKind.PATTERNS
    assert [r.id for r in doc.rules] == ["RULE-1"]


def test_fenced_rule_lookalikes_in_tier_section_are_ignored():
    text = "\n".join(["## Must Have", "- R1: real", "```", "- not a rule bullet", "```"])
    doc = parse(text, "fence-tier")
    assert [r.id for r in doc.rules] == ["R1"]


# ----------------------------------------------------------------------
# strictness
# ----------------------------------------------------------------------

def test_rules_document_without_tier_sections_is_malformed():
    with pytest.raises(MalformedDocumentError) as info:
        parse("kind: rules\n## Principles\n- be kind\n", "no-tiers")
    assert info.value.document_id == "no-tiers"
    assert "Must Have" in info.value.reason


def test_template_missing_output_format_is_malformed(template_text):
    text = template_text().replace("## Output Format", "## Appendix")
    with pytest.raises(MalformedDocumentError) as info:
        parse(text, "tpl")
    assert "Output Format" in info.value.reason


def test_document_without_headers_is_malformed():
    with pytest.raises(MalformedDocumentError):
        parse("just some text\n", "plain")


def test_bullet_without_id_is_malformed_with_line_number():
    text = "kind: rules\n## Must Have\n- RULE-1: ok\n- no identifier here\n"
    with pytest.raises(MalformedDocumentError) as info:
        parse(text, "bad-bullet")
    assert info.value.line_no == 4


def test_bullet_with_wordy_id_is_malformed():
    with pytest.raises(MalformedDocumentError):
        parse("## Must Have\n- Note: ids need a digit\n", "wordy")


def test_rule_without_description_is_malformed():
    with pytest.raises(MalformedDocumentError):
        parse("## Must Have\n- RULE-1:\n", "empty-rule")


def test_duplicate_rule_ids_across_tiers():
    text = "## Must Have\n- R1: a\n## Should Have\n- R1: b\n"
    with pytest.raises(DuplicateRuleIdError) as info:
        parse(text, "dup")
    assert info.value.rule_id == "R1"
    assert info.value.line_no == 4
    assert isinstance(info.value, MalformedDocumentError)


def test_rule_ids_are_case_sensitive():
    doc = parse("## Must Have\n- r1: lower\n- R1: upper\n", "case")
    assert [r.id for r in doc.rules] == ["r1", "R1"]


def test_unterminated_placeholder_is_malformed(template_text):
    text = template_text(context="Deploy to {{env and more")
    with pytest.raises(MalformedDocumentError) as info:
        parse(text, "tpl")
    assert "unterminated" in info.value.reason


def test_invalid_placeholder_name_is_malformed(template_text):
    with pytest.raises(MalformedDocumentError):
        parse(template_text(context="Value {{ 9x }}"), "tpl")


def test_placeholder_syntax_inside_fence_is_not_checked(template_text):
    context = "\n".join(["```yaml", "image: {{ .Values.image", "```"])
    doc = parse(template_text(context=context), "helm")
    assert doc.kind is DocumentKind.TEMPLATE


def test_unknown_kind_and_bad_budget_are_malformed(rules_text):
    with pytest.raises(MalformedDocumentError):
        parse(rules_text(must=[("R1", "x")], kind_line="kind: widget"), "k")
    with pytest.raises(MalformedDocumentError):
        parse(rules_text(must=[("R1", "x")], kind_line="budget: lots"), "b")
    with pytest.raises(MalformedDocumentError):
        parse(rules_text(must=[("R1", "x")], kind_line="budget: 0"), "b")


def test_budget_metadata(rules_text):
    doc = parse(rules_text(must=[("R1", "x")], kind_line="budget: 50"), "b")
    assert doc.budget == 50
    assert doc.meta("budget") == "50"
    assert doc.kind is DocumentKind.RULES


def test_template_kind_is_inferred_without_preamble(template_text):
    text = template_text().replace("kind: template\n", "")
    doc = parse(text, "tpl")
    assert doc.kind is DocumentKind.TEMPLATE
    assert doc.declared_kind is False


# ----------------------------------------------------------------------
# references
# ----------------------------------------------------------------------

def test_reference_forms(template_text):
    refs = [
        "[Aurora rules](../rules/aurora.md)",
        "./shared.md",
        "`rules/base-backup`",
        "https://example.com/guide",
        "../rules/aurora.md",
    ]
    doc = parse(template_text(refs=refs), "templates/review")
    assert [(r.target_id, r.external) for r in doc.references] == [
        ("rules/aurora", False),
        ("templates/shared", False),
        ("rules/base-backup", False),
        ("https://example.com/guide", True),
    ]
    assert doc.reference_ids == ("rules/aurora", "templates/shared", "rules/base-backup")


def test_normalize_reference_drops_anchor_and_leading_slash():
    assert normalize_reference("/rules/a.md#section", "x") == ("rules/a", False)
    assert normalize_reference("s3://bucket/key", "x") == ("s3://bucket/key", True)


# ----------------------------------------------------------------------
# round trip
# ----------------------------------------------------------------------

ROUND_TRIP_SOURCES = [
    "\n".join([
        "kind: rules",
        "budget: 120",
        "owner: platform team",
        "",
        "# Aurora rules",
        "Intro paragraph.",
        "## References ##",
        "- ./base-backup.md",
        "- https://docs.example.com",
        "## Principles",
        "- Test restores.",
        "## Must Have   ",
        "- RULE-001: Retention is at least 7 days.",
        "Applies everywhere.",
        "  - continuation",
        "- RULE-002: Encrypt (overrides RULE-009)",
        "",
        "## Should Have",
        "- RULE-101: Avoid peaks.",
        "## Patterns",
        "```hcl",
        "# comment",
        "```",
        "### Extra notes",
        "text   ",
    ]),
    "\n".join([
        "## Role",
        "You review {{team|platform}} code.",
        "## Context",
        "Env {{env}}.",
        "## Instructions",
        "Do it.",
        "## Rollout",
        "freeform",
        "## Output Format",
        "table",
        "## TL;DR",
        "short",
    ]),
    "kind: rules\n## Must Have\n- R-1: x\n##  \ntail\n",
]


@pytest.mark.parametrize("source", ROUND_TRIP_SOURCES)
def test_parse_serialize_parse_is_identity(source):
    doc = parse(source, "rules/aurora")
    again = parse(serialize(doc), "rules/aurora")
    assert again == doc
    assert again.line_count == doc.line_count
    assert serialize(again) == serialize(doc)
