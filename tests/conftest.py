# -*- coding: utf-8 -*-
"""
Shared builders for test documents.

Tests describe documents as data (ids, rule tuples, references) and these
builders write the Markdown the parser reads, so every test exercises the
real text format.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence, Tuple

import pytest

from rulestream.config.settings import Settings
from rulestream.parsing.parser import parse
from rulestream.utils.logging import SimpleLogger

RuleSpec = Tuple[str, str]


def build_rules_text(
    *,
    refs: Iterable[str] = (),
    must: Sequence[RuleSpec] = (),
    should: Sequence[RuleSpec] = (),
    could: Sequence[RuleSpec] = (),
    principles: Sequence[str] = (),
    patterns: Sequence[str] = (),
    title: str = "Rules",
    kind_line: str = "kind: rules",
) -> str:
    lines: List[str] = []
    if kind_line:
        lines += [kind_line, ""]
    lines.append(f"# {title}")
    if refs:
        lines += ["## References"] + [f"- {r}" for r in refs]
    if principles:
        lines += ["## Principles"] + [f"- {p}" for p in principles]
    for header, rules in (("Must Have", must), ("Should Have", should), ("Could Have", could)):
        if rules:
            lines += [f"## {header}"] + [f"- {rid}: {text}" for rid, text in rules]
    if patterns:
        lines += ["## Patterns"] + list(patterns)
    return "\n".join(lines) + "\n"


def build_template_text(
    *,
    role: str = "You are a reviewer.",
    context: str = "A Terraform module.",
    instructions: str = "Review the module.",
    output: str = "A table.",
    constraints: str = "",
    tldr: str = "",
    refs: Iterable[str] = (),
    extra: str = "",
) -> str:
    lines: List[str] = ["kind: template", "", "## Role", role, "", "## Context", context, ""]
    lines += ["## Instructions", instructions, ""]
    if constraints:
        lines += ["## Constraints", constraints, ""]
    if refs:
        lines += ["## References"] + [f"- {r}" for r in refs] + [""]
    if extra:
        lines += [extra, ""]
    lines += ["## Output Format", output]
    if tldr:
        lines += ["", "## TL;DR", tldr]
    return "\n".join(lines) + "\n"


def rules_doc(doc_id: str, **kwargs):
    """Parse a rules document built from keyword data. A rules doc needs a tier,
    so a placeholder Could rule is added when none is given."""
    if not any(kwargs.get(t) for t in ("must", "should", "could")):
        marker = re.sub(r"[^A-Za-z0-9]", "-", doc_id).upper()
        kwargs["could"] = ((f"{marker}-0", f"{doc_id} marker"),)
    return parse(build_rules_text(**kwargs), doc_id)


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    for key in (
        "RULESTREAM_MAX_CHARS",
        "RULESTREAM_RULES_MAX_LINES",
        "RULESTREAM_TEMPLATE_SOFT_LIMIT",
        "RULESTREAM_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    Settings.clear_cache()
    SimpleLogger.set_enabled(True)
    SimpleLogger.set_level(None)
    yield
    Settings.clear_cache()


@pytest.fixture
def rules_text():
    return build_rules_text


@pytest.fixture
def template_text():
    return build_template_text


@pytest.fixture
def make_rules():
    return rules_doc
