# -*- coding: utf-8 -*-
"""
snapshot.py

Purpose:
    Build an immutable LibrarySnapshot from (document_id, raw_text) pairs:
      fingerprint -> diff vs. previous snapshot -> parse changed (in parallel)
      -> collect documents and per-document parse errors

Key points:
    • Parsing is the one stage that runs in parallel: each worker turns one
      raw text into an isolated Document, no shared mutable state.
    • A malformed document is recorded in `load_errors` and never stops its
      siblings from loading.
    • Reloading never mutates a snapshot; it returns a new one, reusing the
      parsed Documents whose text did not change.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from rulestream.config.settings import Settings
from rulestream.errors import MalformedDocumentError, UnknownDocumentError
from rulestream.library.manifest import diff as manifest_diff
from rulestream.library.manifest import fingerprints_for
from rulestream.model.document import Document, DocumentKind
from rulestream.parsing.parser import DocumentParser
from rulestream.utils.logging import SimpleLogger


@dataclass(frozen=True)
class SnapshotStats:
    """Aggregate numbers for quick reporting / testing."""
    sources: int
    parsed: int
    reused: int
    removed: int
    failed: int


@dataclass(frozen=True)
class LibrarySnapshot:
    documents: Mapping[str, Document] = field(default_factory=dict)
    load_errors: Mapping[str, MalformedDocumentError] = field(default_factory=dict)
    fingerprints: Mapping[str, str] = field(default_factory=dict)
    stats: SnapshotStats = SnapshotStats(0, 0, 0, 0, 0)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self.documents

    def __len__(self) -> int:
        return len(self.documents)

    def get(self, document_id: str) -> Document:
        try:
            return self.documents[document_id]
        except KeyError:
            raise UnknownDocumentError(document_id) from None

    def of_kind(self, kind: DocumentKind) -> Tuple[Document, ...]:
        return tuple(d for d in sorted(self.documents.values(), key=lambda d: d.id) if d.kind is kind)

    @property
    def templates(self) -> Tuple[Document, ...]:
        return self.of_kind(DocumentKind.TEMPLATE)

    @property
    def rules(self) -> Tuple[Document, ...]:
        return self.of_kind(DocumentKind.RULES)


def _parse_one(parser: DocumentParser, doc_id: str, text: str):
    try:
        return doc_id, parser.parse(text, doc_id), None
    except MalformedDocumentError as exc:
        return doc_id, None, exc


def build_snapshot(
    sources: Iterable[Tuple[str, str]],
    previous: Optional[LibrarySnapshot] = None,
    workers: Optional[int] = None,
    parser: Optional[DocumentParser] = None,
) -> LibrarySnapshot:
    """
    Args:
        sources: (document_id, raw_text) pairs; ids must be unique.
        previous: snapshot to reuse unchanged Documents from.
        workers: parse thread count (default RULESTREAM_PARSE_WORKERS).
    """
    raw: Dict[str, str] = {}
    for doc_id, text in sources:
        if doc_id in raw:
            raise ValueError(f"build_snapshot: duplicate document id '{doc_id}'")
        raw[doc_id] = text

    now = fingerprints_for(raw)
    prev_prints = previous.fingerprints if previous is not None else {}
    to_parse, unchanged, tombstones = manifest_diff(now, prev_prints)

    documents: Dict[str, Document] = {}
    errors: Dict[str, MalformedDocumentError] = {}

    # unchanged text -> same outcome as last time, success or failure
    for doc_id in unchanged:
        if doc_id in previous.documents:
            documents[doc_id] = previous.documents[doc_id]
        elif doc_id in previous.load_errors:
            errors[doc_id] = previous.load_errors[doc_id]
        else:
            to_parse.append(doc_id)

    parser = parser or DocumentParser()
    n_workers = workers or Settings.get_int("RULESTREAM_PARSE_WORKERS")
    results: List[Tuple[str, Optional[Document], Optional[MalformedDocumentError]]]
    if n_workers > 1 and len(to_parse) > 1:
        with ThreadPoolExecutor(max_workers=n_workers) as pool:
            results = list(pool.map(lambda d: _parse_one(parser, d, raw[d]), to_parse))
    else:
        results = [_parse_one(parser, d, raw[d]) for d in to_parse]

    for doc_id, doc, exc in results:
        if exc is not None:
            SimpleLogger.error(f"snapshot: {exc}")
            errors[doc_id] = exc
        else:
            documents[doc_id] = doc

    stats = SnapshotStats(
        sources=len(raw),
        parsed=len(to_parse),
        reused=len(raw) - len(to_parse),
        removed=len(tombstones),
        failed=len(errors),
    )
    SimpleLogger.info(
        f"snapshot: {stats.sources} sources, {stats.parsed} parsed, {stats.reused} reused, "
        f"{stats.removed} removed, {stats.failed} failed"
    )
    return LibrarySnapshot(
        documents=MappingProxyType(dict(sorted(documents.items()))),
        load_errors=MappingProxyType(dict(sorted(errors.items()))),
        fingerprints=MappingProxyType(now),
        stats=stats,
    )
