# -*- coding: utf-8 -*-
"""
parser.py: raw text -> Document, in one deterministic pass.

Document format (plain Markdown):

    kind: rules                 <- optional preamble, `key: value` lines
    budget: 150                    before the first header

    # Backup rules              <- unknown header -> Freeform section
    ## References
    - base-backup               <- reference to another document id
    ## Must Have                <- tier header -> MustRules section
    - RULE-001: retention >= 7 days
    - RULE-002: encrypt snapshots (overrides RULE-009)

Rules:
- Headers are ATX headers ('#'..'######' + space). Lines inside fenced code
  blocks are never headers, rules, references or placeholders.
- Known names are matched through SectionSchema/HeaderMatcher. Unknown headers
  open a Freeform section, unless nested deeper than the current section's
  header, in which case they stay content of that section.
- Permissive about extra structure, strict about required structure:
  missing required sections, unparseable rule bullets, duplicate rule ids
  and unterminated placeholders raise MalformedDocumentError.
"""

from __future__ import annotations

import posixpath
import re
from typing import Dict, List, Optional, Tuple

from rulestream.composition.placeholders import scan_line
from rulestream.errors import DuplicateRuleIdError, MalformedDocumentError
from rulestream.model.document import (
    Document,
    DocumentKind,
    Reference,
    Rule,
    Section,
    SectionKind,
    Tier,
)
from rulestream.parsing.fences import fence_mask
from rulestream.parsing.header_matcher import HeaderMatcher
from rulestream.parsing.section_schema import SectionSchema, default_schema
from rulestream.utils.logging import SimpleLogger


HEADER_RE = re.compile(r"^(#{1,6})[ \t]+(\S.*?)(?:[ \t]+#+)?[ \t]*$")
META_RE = re.compile(r"^\s*(?P<key>[A-Za-z][\w\-]*)\s*:\s*(?P<value>.*?)\s*$")
BULLET_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+")
RULE_RE = re.compile(
    r"^\s?(?:(?:[-*+]|\d+[.)])\s+)?"
    r"(?:\*\*|`)?(?P<id>[A-Za-z][A-Za-z0-9_.\-]*)(?:\*\*|`)?"
    r"\s*:(?:\*\*)?\s*(?P<text>.*?)\s*$"
)
RULE_ID_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_.\-]*$")
OVERRIDES_RE = re.compile(r"\s*\(\s*overrides?\s*:?\s*(?P<ids>[^)]*)\)\s*$", re.IGNORECASE)
LINK_RE = re.compile(r"\[[^\]]*\]\(\s*<?(?P<target>[^)\s>]+)>?(?:\s+\"[^\"]*\")?\s*\)")
SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")

_DOC_SUFFIXES = (".md", ".markdown", ".txt")

_KIND_WORDS: Dict[str, DocumentKind] = {
    "rules": DocumentKind.RULES,
    "rule": DocumentKind.RULES,
    "ruleset": DocumentKind.RULES,
    "template": DocumentKind.TEMPLATE,
    "prompt": DocumentKind.TEMPLATE,
    "prompt template": DocumentKind.TEMPLATE,
}


def _is_rule_id(candidate: str) -> bool:
    """Rule ids are codes: letter first, at least one digit (RULE-001, SEC3)."""
    return bool(RULE_ID_RE.match(candidate)) and any(ch.isdigit() for ch in candidate)


def normalize_reference(raw: str, source_id: str) -> Tuple[str, bool]:
    """
    Turn a written reference into (target_id, external).

    - scheme://... targets are external leaves, kept as written.
    - '#anchor' parts and .md/.markdown/.txt suffixes are dropped.
    - './x' and '../x' resolve against the source document's directory.
    """
    if SCHEME_RE.match(raw):
        return raw, True
    target = raw.split("#", 1)[0].strip()
    lowered = target.lower()
    for suffix in _DOC_SUFFIXES:
        if lowered.endswith(suffix):
            target = target[: -len(suffix)]
            break
    if target.startswith("./") or target.startswith("../"):
        base = posixpath.dirname(source_id)
        target = posixpath.normpath(posixpath.join(base, target))
    return target.lstrip("/"), False


class _OpenSection:
    __slots__ = ("kind", "title", "level", "start_line", "lines")

    def __init__(self, kind: SectionKind, title: str, level: int, start_line: int) -> None:
        self.kind = kind
        self.title = title
        self.level = level
        self.start_line = start_line
        self.lines: List[str] = []


class DocumentParser:
    """Stateless apart from its schema; one instance may parse many documents."""

    def __init__(self, schema: Optional[SectionSchema] = None) -> None:
        self.schema = schema or default_schema()
        self.matcher = HeaderMatcher(self.schema)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, raw_text: str, document_id: str) -> Document:
        lines = (raw_text or "").splitlines()

        preamble, opened = self._split_sections(lines)
        self._check_placeholders(document_id, lines)

        metadata = self._read_metadata(preamble)
        declared = self._declared_kind(document_id, metadata)
        budget = self._declared_budget(document_id, metadata)

        sections = tuple(self._build_section(document_id, s) for s in opened)
        self._check_duplicate_ids(document_id, sections)

        kind = declared or self._infer_kind(sections)
        self._check_required(document_id, kind, sections)

        references = self._extract_references(document_id, sections)

        doc = Document(
            id=document_id,
            kind=kind,
            sections=sections,
            line_count=len(lines),
            references=references,
            preamble=tuple(preamble),
            metadata=metadata,
            budget=budget,
            declared_kind=declared is not None,
        )
        SimpleLogger.debug(
            f"parser: {document_id} -> {kind.value}, {len(sections)} sections, "
            f"{len(doc.rules)} rules, {len(references)} references"
        )
        return doc

    # ------------------------------------------------------------------
    # Step 1: partition lines into sections
    # ------------------------------------------------------------------

    def _split_sections(self, lines: List[str]) -> Tuple[List[str], List[_OpenSection]]:
        preamble: List[str] = []
        opened: List[_OpenSection] = []
        current: Optional[_OpenSection] = None

        for line_no, (line, fenced) in enumerate(zip(lines, fence_mask(lines)), start=1):
            m = None if fenced else HEADER_RE.match(line)
            if m is not None:
                title = m.group(2).strip()
                level = len(m.group(1))
                kind, _method = self.matcher.resolve(title)
                nested = current is not None and level > current.level
                if not (kind is SectionKind.FREEFORM and nested):
                    current = _OpenSection(kind, title, level, line_no)
                    opened.append(current)
                    continue
            if current is None:
                preamble.append(line)
            else:
                current.lines.append(line)

        return preamble, opened

    # ------------------------------------------------------------------
    # Step 2: preamble metadata (kind, budget, ...)
    # ------------------------------------------------------------------

    @staticmethod
    def _read_metadata(preamble: List[str]) -> Tuple[Tuple[str, str], ...]:
        pairs: List[Tuple[str, str]] = []
        for line in preamble:
            m = META_RE.match(line)
            if m:
                pairs.append((m.group("key").lower(), m.group("value")))
        return tuple(pairs)

    @staticmethod
    def _meta(metadata: Tuple[Tuple[str, str], ...], *keys: str) -> Optional[str]:
        for k, v in metadata:
            if k in keys:
                return v
        return None

    def _declared_kind(self, document_id: str, metadata) -> Optional[DocumentKind]:
        raw = self._meta(metadata, "kind")
        if raw is None:
            return None
        word = SectionSchema.normalize_key(raw)
        if word not in _KIND_WORDS:
            raise MalformedDocumentError(document_id, f"unknown document kind '{raw}'")
        return _KIND_WORDS[word]

    def _declared_budget(self, document_id: str, metadata) -> Optional[int]:
        raw = self._meta(metadata, "budget", "max-lines", "max_lines")
        if raw is None:
            return None
        try:
            value = int(raw)
        except ValueError:
            raise MalformedDocumentError(document_id, f"budget must be an integer, got '{raw}'") from None
        if value <= 0:
            raise MalformedDocumentError(document_id, f"budget must be positive, got {value}")
        return value

    # ------------------------------------------------------------------
    # Step 3: build typed sections, extracting rules from tier buckets
    # ------------------------------------------------------------------

    def _build_section(self, document_id: str, opened: _OpenSection) -> Section:
        rules: Tuple[Rule, ...] = ()
        tier = opened.kind.tier
        if tier is not None:
            rules = self._extract_rules(document_id, tier, opened)
        return Section(
            kind=opened.kind,
            title=opened.title,
            level=opened.level,
            lines=tuple(opened.lines),
            rules=rules,
            start_line=opened.start_line,
        )

    def _extract_rules(self, document_id: str, tier: Tier, opened: _OpenSection) -> Tuple[Rule, ...]:
        rules: List[Rule] = []
        for offset, (line, fenced) in enumerate(zip(opened.lines, fence_mask(opened.lines)), start=1):
            if fenced or not line.strip():
                continue
            indent = len(line) - len(line.lstrip())
            if indent >= 2:
                continue  # continuation / nested bullet
            line_no = opened.start_line + offset
            m = RULE_RE.match(line)
            is_bullet = bool(BULLET_RE.match(line))
            if m is None or not _is_rule_id(m.group("id")):
                if is_bullet:
                    raise MalformedDocumentError(
                        document_id, f"{tier.value} rule entry lacks an 'ID: description' pair", line_no
                    )
                continue  # prose note inside the tier bucket

            rule_id = m.group("id")
            text = m.group("text")
            overrides: Tuple[str, ...] = ()
            om = OVERRIDES_RE.search(text)
            if om:
                text = text[: om.start()].rstrip()
                overrides = tuple(t for t in re.split(r"[,\s]+", om.group("ids")) if t)
                for target in overrides:
                    if not _is_rule_id(target):
                        raise MalformedDocumentError(
                            document_id, f"rule '{rule_id}' overrides invalid id '{target}'", line_no
                        )
                    if target == rule_id:
                        raise MalformedDocumentError(
                            document_id, f"rule '{rule_id}' overrides itself", line_no
                        )
            if not text:
                raise MalformedDocumentError(document_id, f"rule '{rule_id}' has no description", line_no)

            rules.append(
                Rule(
                    id=rule_id,
                    tier=tier,
                    text=text,
                    document_id=document_id,
                    line_no=line_no,
                    overrides=overrides,
                )
            )
        return tuple(rules)

    @staticmethod
    def _check_duplicate_ids(document_id: str, sections: Tuple[Section, ...]) -> None:
        seen: Dict[str, Rule] = {}
        for section in sections:
            for rule in section.rules:
                if rule.id in seen:
                    raise DuplicateRuleIdError(document_id, rule.id, rule.line_no)
                seen[rule.id] = rule

    # ------------------------------------------------------------------
    # Step 4: kind + required structure
    # ------------------------------------------------------------------

    def _infer_kind(self, sections: Tuple[Section, ...]) -> DocumentKind:
        if any(s.kind in self.schema.rules_any_of for s in sections):
            return DocumentKind.RULES
        return DocumentKind.TEMPLATE

    def _check_required(self, document_id: str, kind: DocumentKind, sections: Tuple[Section, ...]) -> None:
        present = {s.kind for s in sections}
        if kind is DocumentKind.RULES:
            if not present.intersection(self.schema.rules_any_of):
                names = "/".join(self.schema.title_for(k) for k in self.schema.rules_any_of)
                raise MalformedDocumentError(document_id, f"rules document has no {names} section")
            return
        missing = [k for k in self.schema.required_for(kind) if k not in present]
        if missing:
            names = ", ".join(self.schema.title_for(k) for k in missing)
            raise MalformedDocumentError(document_id, f"template is missing required section(s): {names}")

    # ------------------------------------------------------------------
    # Step 5: placeholders must be closed and well-formed
    # ------------------------------------------------------------------

    @staticmethod
    def _check_placeholders(document_id: str, lines: List[str]) -> None:
        for line_no, (line, fenced) in enumerate(zip(lines, fence_mask(lines)), start=1):
            if fenced:
                continue
            _tokens, problem = scan_line(line)
            if problem:
                raise MalformedDocumentError(document_id, problem, line_no)

    # ------------------------------------------------------------------
    # Step 6: references
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_references(document_id: str, sections: Tuple[Section, ...]) -> Tuple[Reference, ...]:
        targets: List[Tuple[str, bool]] = []
        for section in sections:
            if section.kind is not SectionKind.REFERENCES:
                continue
            for line, fenced in zip(section.lines, fence_mask(section.lines)):
                if fenced or not line.strip():
                    continue
                links = [m.group("target") for m in LINK_RE.finditer(line)]
                if not links:
                    body = BULLET_RE.sub("", line, count=1).strip()
                    token = body.split()[0].strip("`'\",;") if body.split() else ""
                    links = [token] if token else []
                for raw in links:
                    normalized = normalize_reference(raw, document_id)
                    if normalized[0] and normalized not in targets:
                        targets.append(normalized)
        return tuple(Reference(document_id, target, external) for target, external in targets)


def parse(raw_text: str, document_id: str, schema: Optional[SectionSchema] = None) -> Document:
    """Parse one raw document. Raises MalformedDocumentError (or DuplicateRuleIdError)."""
    return DocumentParser(schema).parse(raw_text, document_id)
