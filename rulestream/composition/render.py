# -*- coding: utf-8 -*-
"""
render
======

What it does:
- `rule_lines(rules)` formats merged rules as `- ID: text` bullets.
- `trim_block(lines)` drops leading/trailing blank lines.
- `render_text(sections)` joins rendered sections into Markdown: one
  `## Title` header per section, a blank line between sections.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

from rulestream.model.composed import RenderedSection
from rulestream.model.document import Rule


def rule_lines(rules: Iterable[Rule]) -> Tuple[str, ...]:
    return tuple(f"- {rule.id}: {rule.text}" for rule in rules)


def trim_block(lines: Sequence[str]) -> Tuple[str, ...]:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return tuple(line.rstrip() for line in lines[start:end])


def render_text(sections: Sequence[RenderedSection]) -> str:
    """
    Build the composed Markdown. Only sections with content are passed in;
    order is decided by the caller.
    """
    out: List[str] = []
    for section in sections:
        if out:
            out.append("")  # blank line between blocks
        out.append(f"## {section.title}")
        out.extend(section.lines)
    return "\n".join(out) + ("\n" if out else "")
