# -*- coding: utf-8 -*-
"""
errors
======
Exception taxonomy for the composition engine.

Every exception keeps the structured facts of the failure as attributes
(document ids, rule ids, cycle paths, limits) so callers can report them
without parsing messages. Collectors (library snapshot, reference resolver)
store these instances as values instead of raising them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from rulestream.validation.findings import Finding


class RuleStreamError(Exception):
    """Base class for all engine errors."""


class MalformedDocumentError(RuleStreamError):
    """A required section or field is missing or cannot be parsed."""

    def __init__(self, document_id: str, reason: str, line_no: Optional[int] = None) -> None:
        self.document_id = document_id
        self.reason = reason
        self.line_no = line_no
        where = f" (line {line_no})" if line_no is not None else ""
        super().__init__(f"{document_id}{where}: {reason}")


class DuplicateRuleIdError(MalformedDocumentError):
    """Two rules inside one document share an id."""

    def __init__(self, document_id: str, rule_id: str, line_no: Optional[int] = None) -> None:
        self.rule_id = rule_id
        super().__init__(document_id, f"duplicate rule id '{rule_id}'", line_no)


class CircularReferenceError(RuleStreamError):
    """The reference graph contains a cycle; `cycle` lists every node on it."""

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle: Tuple[str, ...] = tuple(cycle)
        path = " -> ".join(self.cycle + self.cycle[:1])
        super().__init__(f"circular reference: {path}")


class UnresolvedReferenceError(RuleStreamError):
    """A document references an id that is not in the library."""

    def __init__(self, source_id: str, target_id: str) -> None:
        self.source_id = source_id
        self.target_id = target_id
        super().__init__(f"{source_id}: unresolved reference to '{target_id}'")


class UnknownDocumentError(RuleStreamError):
    """A requested document id is not part of the library snapshot."""

    def __init__(self, document_id: str) -> None:
        self.document_id = document_id
        super().__init__(f"unknown document '{document_id}'")


class ConflictingRulesError(RuleStreamError):
    """Unrelated documents declare the same rule id at one tier with different text."""

    def __init__(self, rule_id: str, tier: str, first_id: str, second_id: str) -> None:
        self.rule_id = rule_id
        self.tier = tier
        self.document_ids: Tuple[str, str] = (first_id, second_id)
        super().__init__(
            f"conflicting {tier} rule '{rule_id}' declared by '{first_id}' and '{second_id}'"
        )


class UnresolvedRuleReferenceError(RuleStreamError):
    """An override declaration names a rule id that is not reachable."""

    def __init__(self, document_id: str, rule_id: str) -> None:
        self.document_id = document_id
        self.rule_id = rule_id
        super().__init__(f"{document_id}: override target '{rule_id}' not found")


class UnresolvedPlaceholderError(RuleStreamError):
    """A template placeholder has no bound value and no inline default."""

    def __init__(self, name: str, names: Sequence[str] = ()) -> None:
        self.name = name
        self.names: Tuple[str, ...] = tuple(names) or (name,)
        super().__init__(f"unresolved placeholder(s): {', '.join(self.names)}")


class BudgetExceededError(RuleStreamError):
    """Rendered or parsed size is over its ceiling. Nothing is truncated."""

    def __init__(
        self,
        limit: int,
        actual: int,
        unit: str = "characters",
        document_id: Optional[str] = None,
    ) -> None:
        self.limit = limit
        self.actual = actual
        self.unit = unit
        self.document_id = document_id
        owner = f"{document_id}: " if document_id else ""
        super().__init__(f"{owner}{actual} {unit} exceeds budget of {limit}")


class ValidationFailedError(RuleStreamError):
    """ERROR-severity findings block a composition request."""

    def __init__(self, findings: Sequence["Finding"]) -> None:
        self.findings = tuple(findings)
        lines = "; ".join(str(f) for f in self.findings)
        super().__init__(f"validation failed: {lines}")
