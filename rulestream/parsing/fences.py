# -*- coding: utf-8 -*-
"""
fences
======
Fenced code blocks (``` or ~~~) hold opaque payloads: Terraform, shell, YAML.
Header recognition, rule extraction and placeholder handling all skip them,
so they share this one scanner.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

_FENCE_CHARS = ("`", "~")


def _fence_marker(line: str) -> Optional[str]:
    stripped = line.lstrip()
    for ch in _FENCE_CHARS:
        if stripped.startswith(ch * 3):
            run = len(stripped) - len(stripped.lstrip(ch))
            return ch * run
    return None


def fence_mask(lines: Sequence[str]) -> List[bool]:
    """
    mask[i] is True when line i is a fence delimiter or inside a fenced block.
    An unclosed fence runs to the end of the input.
    """
    mask: List[bool] = []
    open_marker: Optional[str] = None
    for line in lines:
        marker = _fence_marker(line)
        if open_marker is None:
            if marker is not None:
                open_marker = marker
                mask.append(True)
            else:
                mask.append(False)
            continue
        mask.append(True)
        # closing fence: same char, at least as long, nothing after it
        if marker is not None and marker[0] == open_marker[0] and len(marker) >= len(open_marker):
            if not line.strip()[len(marker):].strip():
                open_marker = None
    return mask
