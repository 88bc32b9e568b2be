# -*- coding: utf-8 -*-
"""
Finding: one validator result.

Validators classify, they never raise: ERROR findings block composition
downstream, WARNING findings are reported and ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from rulestream.model.document import SectionKind


class FindingKind(str, Enum):
    MISSING_SECTION = "MissingSection"
    DUPLICATE_RULE_ID = "DuplicateRuleID"
    EMPTY_SECTION = "EmptySection"
    BUDGET_EXCEEDED = "BudgetExceeded"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Finding:
    kind: FindingKind
    severity: Severity
    document_id: str
    message: str
    section: Optional[SectionKind] = None
    rule_id: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def __str__(self) -> str:
        return f"[{self.severity.value}] {self.kind.value} {self.document_id}: {self.message}"


def has_errors(findings: Iterable[Finding]) -> bool:
    return any(f.is_error for f in findings)


def errors_only(findings: Iterable[Finding]) -> List[Finding]:
    return [f for f in findings if f.is_error]
