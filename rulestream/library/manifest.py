# -*- coding: utf-8 -*-
"""
manifest.py

Purpose:
    A tiny, deterministic "ledger" for library reloads. It tells the snapshot
    builder which documents changed since the previous snapshot so only those
    are re-parsed.

What this module provides:
    1) fingerprint(text) -> str
       - SHA-256 hex digest of the document text (UTF-8).

    2) diff(now, previous) -> (to_parse, unchanged, tombstones)
       - Compares current fingerprints against the previous snapshot's.

Data shapes:
    Fingerprints: Dict[document_id, sha256_hex]

Notes:
    - Hashes are computed from text, not from bytes on disk: the loader has
      already decoded the file, and the parser only ever sees text.
    - 'tombstones' are documents present in the previous snapshot but missing
      now; they simply drop out of the new snapshot.
"""

from __future__ import annotations

import hashlib
from typing import Dict, List, Mapping, Tuple


def fingerprint(text: str) -> str:
    """SHA-256 hex digest of `text` encoded as UTF-8."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def diff(
    now: Mapping[str, str],
    previous: Mapping[str, str],
) -> Tuple[List[str], List[str], List[str]]:
    """
    Args:
        now: current {document_id: sha256}.
        previous: {document_id: sha256} from the previous snapshot (may be empty).

    Returns:
        (to_parse, unchanged, tombstones), each sorted by document id.
    """
    to_parse: List[str] = []
    unchanged: List[str] = []
    for doc_id in sorted(now):
        if previous.get(doc_id) == now[doc_id]:
            unchanged.append(doc_id)
        else:
            to_parse.append(doc_id)
    tombstones = sorted(set(previous) - set(now))
    return to_parse, unchanged, tombstones


def fingerprints_for(sources: Mapping[str, str]) -> Dict[str, str]:
    return {doc_id: fingerprint(text) for doc_id, text in sources.items()}
