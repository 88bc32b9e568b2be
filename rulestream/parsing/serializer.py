# -*- coding: utf-8 -*-
"""
serializer
==========
Document -> text, the inverse of the parser.

The parser keeps the preamble, every header's title/level and every content
line verbatim, so writing them back in order gives a text that re-parses to
an equal Document (same sections, rules, references and line count).
"""

from __future__ import annotations

from typing import List

from rulestream.model.document import Document, Section


def header_line(section: Section) -> str:
    return f"{'#' * section.level} {section.title}"


def serialize(document: Document) -> str:
    lines: List[str] = list(document.preamble)
    for section in document.sections:
        lines.append(header_line(section))
        lines.extend(section.lines)
    return "\n".join(lines) + ("\n" if lines else "")
