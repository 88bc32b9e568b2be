# -*- coding: utf-8 -*-
"""
pipeline.py: one composition request over a library snapshot.

Steps (each stage pure, all state request-scoped):
  Step 1: resolve the reference graph of the whole snapshot
  Step 2: structural validation of the template and every document it reaches;
          ERROR findings block the request (ValidationFailedError)
  Step 3: merge the tiered rules reachable from the rules root
  Step 4: budget validation of the merged set (warnings only)
  Step 5: compose the template with the merged rules and variables

The rules root defaults to the template itself, so a template's References
pull in the rules documents it builds on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from rulestream.composition.compositor import Compositor
from rulestream.errors import UnknownDocumentError, ValidationFailedError
from rulestream.library.snapshot import LibrarySnapshot
from rulestream.merging.merger import merge_rules
from rulestream.model.composed import ComposedContext, RuleOverride
from rulestream.resolution.resolver import ResolutionResult, resolve_library
from rulestream.utils.logging import SimpleLogger
from rulestream.validation.findings import Finding, errors_only
from rulestream.validation.validator import ValidationLimits, Validator


@dataclass(frozen=True)
class CompositionReport:
    context: ComposedContext
    findings: Tuple[Finding, ...]          # warnings that did not block
    resolution: ResolutionResult

    @property
    def overrides(self) -> Tuple[RuleOverride, ...]:
        return self.context.merged_rules.overrides

    @property
    def text(self) -> str:
        return self.context.text


def compose_from_library(
    snapshot: LibrarySnapshot,
    template_id: str,
    variables: Optional[Mapping[str, str]] = None,
    *,
    rules_root: Optional[str] = None,
    max_budget: Optional[int] = None,
    limits: Optional[ValidationLimits] = None,
    resolution: Optional[ResolutionResult] = None,
) -> CompositionReport:
    template = snapshot.get(template_id)
    root_id = rules_root or template_id
    if root_id not in snapshot:
        raise UnknownDocumentError(root_id)

    # ---------------- Step 1: resolve ----------------
    resolution = resolution or resolve_library(snapshot.documents)
    graph = resolution.graph

    # ---------------- Step 2: structural validation ----------------
    validator = Validator(limits)
    involved = set(graph.closure(root_id)) | {template_id}
    findings: List[Finding] = []
    for doc_id in sorted(involved):
        findings.extend(validator.validate(graph.document(doc_id)))
    blocking = errors_only(findings)
    if blocking:
        raise ValidationFailedError(blocking)

    # ---------------- Step 3: merge ----------------
    merged = merge_rules(root_id, graph, resolution.order)

    # ---------------- Step 4: post-merge budget pass ----------------
    findings.extend(validator.validate_merged(merged))

    # ---------------- Step 5: compose ----------------
    context = Compositor().compose(template, merged, variables, max_budget)

    SimpleLogger.info(
        f"pipeline: composed {template_id} (rules root {root_id}) with {len(findings)} warning(s)"
    )
    return CompositionReport(context=context, findings=tuple(findings), resolution=resolution)


def validate_snapshot(
    snapshot: LibrarySnapshot,
    limits: Optional[ValidationLimits] = None,
) -> Dict[str, List[Finding]]:
    """Structural findings for every parsed document in the snapshot."""
    validator = Validator(limits)
    return {doc_id: validator.validate(doc) for doc_id, doc in snapshot.documents.items()}
