# -*- coding: utf-8 -*-
"""
placeholders
============

Placeholder syntax inside template text:

    {{name}}            -> value from the variables mapping (required)
    {{ name | default }}-> value from the mapping, else the inline default

Names start with a letter or underscore and may contain letters, digits,
'_', '.', '-'. Fenced code blocks are never scanned or substituted.

This module provides:
- scan_line(line) -> (tokens, problem): tokenizes one line, reporting an
  unterminated or invalid token (used by the parser).
- placeholders_in(lines) -> ordered unique Placeholder tuple.
- substitute_lines(lines, variables) -> (new_lines, missing_names).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from rulestream.parsing.fences import fence_mask

OPEN = "{{"
CLOSE = "}}"

_TOKEN_BODY = re.compile(r"^\s*(?P<name>[A-Za-z_][A-Za-z0-9_.\-]*)\s*(?:\|(?P<default>.*))?$", re.DOTALL)


@dataclass(frozen=True)
class Placeholder:
    name: str
    default: Optional[str] = None

    @property
    def has_default(self) -> bool:
        return self.default is not None


@dataclass(frozen=True)
class _Token:
    start: int
    end: int            # index just past the closing braces
    placeholder: Placeholder


def scan_line(line: str) -> Tuple[List[_Token], Optional[str]]:
    """
    Return (tokens, problem). `problem` is a human-readable reason when a
    token is opened but never closed, or its body is not a valid name.
    """
    tokens: List[_Token] = []
    pos = 0
    while True:
        start = line.find(OPEN, pos)
        if start == -1:
            return tokens, None
        end = line.find(CLOSE, start + len(OPEN))
        if end == -1:
            return tokens, f"unterminated placeholder starting at column {start + 1}"
        body = line[start + len(OPEN):end]
        m = _TOKEN_BODY.match(body)
        if not m:
            return tokens, f"invalid placeholder '{{{{{body}}}}}'"
        default = m.group("default")
        if default is not None:
            default = default.strip()
        tokens.append(_Token(start, end + len(CLOSE), Placeholder(m.group("name"), default)))
        pos = end + len(CLOSE)


def placeholders_in(lines: Sequence[str]) -> Tuple[Placeholder, ...]:
    """Unique placeholders in first-seen order (first declaration's default wins)."""
    seen: Dict[str, Placeholder] = {}
    for line, fenced in zip(lines, fence_mask(lines)):
        if fenced:
            continue
        tokens, _problem = scan_line(line)
        for tok in tokens:
            seen.setdefault(tok.placeholder.name, tok.placeholder)
    return tuple(seen.values())


def substitute_lines(
    lines: Sequence[str],
    variables: Mapping[str, str],
) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """
    Replace every placeholder outside fenced blocks.

    Returns (rendered_lines, missing_names). Lines containing a missing
    placeholder are left untouched; the caller decides to fail.
    """
    out: List[str] = []
    missing: List[str] = []
    for line, fenced in zip(lines, fence_mask(lines)):
        if fenced or OPEN not in line:
            out.append(line)
            continue
        tokens, _problem = scan_line(line)
        pieces: List[str] = []
        cursor = 0
        for tok in tokens:
            ph = tok.placeholder
            if ph.name in variables:
                value = str(variables[ph.name])
            elif ph.has_default:
                value = ph.default or ""
            else:
                if ph.name not in missing:
                    missing.append(ph.name)
                value = line[tok.start:tok.end]
            pieces.append(line[cursor:tok.start])
            pieces.append(value)
            cursor = tok.end
        pieces.append(line[cursor:])
        out.append("".join(pieces))
    return tuple(out), tuple(missing)
