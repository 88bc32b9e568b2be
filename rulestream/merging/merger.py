# -*- coding: utf-8 -*-
"""
Rule Merger
===========

merge_rules(root_id, graph, order) -> MergedRuleSet

Walk:
- Restrict the dependency order (leaves first) to the root's transitive
  closure and walk it. Referenced documents are therefore seen before the
  documents that include them, and the root is seen last.

Per tier (Must, Should, Could are independent buckets), rules are keyed by id.
Each id keeps the declarations still standing:
- first declaration          -> stands; its position fixes the output order.
- redeclared by a document that includes some standing declarers
                             -> override: those declarations are replaced by
                                the closer-to-root one, each replacement is
                                recorded in `overrides`.
- redeclared by an unrelated document
                             -> stands next to the others.
When the walk ends, standing declarations of one id with the same text are a
shared inclusion and collapse to one rule. Different texts are a conflict and
the merge fails with ConflictingRulesError (highest tier first). A later
document including both declarers therefore settles the conflict.

Explicit "(overrides X)" declarations remove rule X (any tier) declared by a
document in the declaring document's closure. X must exist there, else
UnresolvedRuleReferenceError.

Resolver problems inside the closure (dangling references, cycles) abort the
merge: a correct rule set cannot be computed over an inconsistent subgraph.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, List, Sequence, Tuple

from rulestream.errors import (
    CircularReferenceError,
    ConflictingRulesError,
    UnresolvedReferenceError,
    UnresolvedRuleReferenceError,
)
from rulestream.model.composed import MergedRuleSet, RuleOverride
from rulestream.model.document import Document, Rule, SectionKind, Tier
from rulestream.resolution.graph import ReferenceGraph
from rulestream.resolution.resolver import iter_cycles
from rulestream.utils.logging import SimpleLogger

_Key = Tuple[Tier, str]


class _Accumulator:
    """Request-scoped merge state. One instance per merge_rules call.

    `live` maps each (tier, id) to the declarations still standing, keyed by
    declaring document in walk order. Standing declarers never include one
    another: a document that includes an earlier declarer replaces it.
    """

    def __init__(self, graph: ReferenceGraph) -> None:
        self.graph = graph
        self.live: Dict[Tier, Dict[str, Dict[str, Rule]]] = {t: {} for t in Tier}
        self.overrides: List[RuleOverride] = []
        self._closures: Dict[str, FrozenSet[str]] = {}

    def closure(self, document_id: str) -> FrozenSet[str]:
        if document_id not in self._closures:
            self._closures[document_id] = self.graph.closure(document_id)
        return self._closures[document_id]

    # ------------------------------------------------------------------
    # Tier accumulation
    # ------------------------------------------------------------------

    def add(self, doc: Document, rule: Rule) -> None:
        standing = self.live[rule.tier].setdefault(rule.id, {})
        below = self.closure(doc.id)
        covered = [prior for prior in standing if prior in below and prior != doc.id]
        if len({standing[prior].text for prior in covered}) > 1:
            SimpleLogger.info(
                f"merger: {doc.id} resolves {rule.tier.value} conflict on '{rule.id}' "
                f"between {', '.join(covered)}"
            )
        for prior in covered:
            # closer to root: this declaration replaces the included one
            loser = standing.pop(prior)
            self.overrides.append(
                RuleOverride(
                    rule_id=rule.id,
                    tier=rule.tier,
                    winner_id=doc.id,
                    loser_id=prior,
                    previous_text=loser.text,
                )
            )
        standing.setdefault(doc.id, rule)

    def conflicts(self) -> List[Tuple[_Key, Tuple[str, str]]]:
        """Standing declarations that disagree, highest tier first."""
        found: List[Tuple[_Key, Tuple[str, str]]] = []
        for tier in sorted(Tier, key=lambda t: t.rank):
            for rule_id, standing in self.live[tier].items():
                decls = list(standing.values())
                for other in decls[1:]:
                    if other.text != decls[0].text:
                        found.append(((tier, rule_id), (decls[0].document_id, other.document_id)))
                        break
        return found

    def rules(self, tier: Tier) -> Tuple[Rule, ...]:
        """One rule per id, in first-declaration order."""
        return tuple(
            next(iter(standing.values())) for standing in self.live[tier].values() if standing
        )

    # ------------------------------------------------------------------
    # Explicit overrides
    # ------------------------------------------------------------------

    def apply_explicit(self, doc: Document, rule: Rule) -> None:
        below = self.closure(doc.id)
        for target in rule.overrides:
            victims: List[Rule] = []
            for tier in Tier:
                standing = self.live[tier].get(target, {})
                victims = [r for r in standing.values() if r.document_id != doc.id and r.document_id in below]
                if victims:
                    break
            if not victims:
                raise UnresolvedRuleReferenceError(doc.id, target)
            tier = victims[0].tier
            for victim in victims:
                del self.live[tier][target][victim.document_id]
                self.overrides.append(
                    RuleOverride(
                        rule_id=target,
                        tier=tier,
                        winner_id=doc.id,
                        loser_id=victim.document_id,
                        previous_text=victim.text,
                        explicit=True,
                    )
                )
            if not self.live[tier][target]:
                del self.live[tier][target]


def _blocks(walk: Sequence[Document], kind: SectionKind) -> Tuple[str, ...]:
    """Concatenate section bodies along the walk; identical bodies appear once."""
    seen: List[Tuple[str, ...]] = []
    for doc in walk:
        for section in doc.sections_of(kind):
            body = list(section.lines)
            while body and not body[0].strip():
                body.pop(0)
            while body and not body[-1].strip():
                body.pop()
            if body and tuple(body) not in seen:
                seen.append(tuple(body))
    lines: List[str] = []
    for block in seen:
        if lines:
            lines.append("")
        lines.extend(block)
    return tuple(lines)


def _check_closure(root_id: str, graph: ReferenceGraph, closure: FrozenSet[str], walk_ids: Sequence[str]) -> None:
    for doc_id in sorted(closure):
        dangling = graph.dangling_of(doc_id)
        if dangling:
            raise UnresolvedReferenceError(doc_id, dangling[0])
    if len(walk_ids) != len(closure):
        for cycle in iter_cycles(graph):
            if closure.intersection(cycle):
                raise CircularReferenceError(cycle)
        missing = sorted(closure.difference(walk_ids))
        raise ValueError(f"merge_rules: order is missing documents reachable from '{root_id}': {missing}")


def merge_rules(root_id: str, graph: ReferenceGraph, order: Sequence[str]) -> MergedRuleSet:
    """Merge the tiered rules reachable from `root_id` into one ordered set."""
    closure = graph.closure(root_id)
    walk_ids = [doc_id for doc_id in order if doc_id in closure]
    _check_closure(root_id, graph, closure, walk_ids)

    walk = [graph.document(doc_id) for doc_id in walk_ids]
    acc = _Accumulator(graph)
    for doc in walk:
        for rule in doc.iter_rules():
            acc.add(doc, rule)
        for rule in doc.iter_rules():
            if rule.overrides:
                acc.apply_explicit(doc, rule)

    ranked = acc.conflicts()
    if ranked:
        (tier, rule_id), (first_id, second_id) = ranked[0]
        for (t, rid), (a, b) in ranked:
            SimpleLogger.error(f"merger: {t.value} rule '{rid}' conflicts between {a} and {b}")
        raise ConflictingRulesError(rule_id, tier.value, first_id, second_id)

    merged = MergedRuleSet(
        root_id=root_id,
        must=acc.rules(Tier.MUST),
        should=acc.rules(Tier.SHOULD),
        could=acc.rules(Tier.COULD),
        principles=_blocks(walk, SectionKind.PRINCIPLES),
        patterns=_blocks(walk, SectionKind.PATTERNS),
        overrides=tuple(acc.overrides),
        source_ids=tuple(walk_ids),
    )
    SimpleLogger.info(
        f"merger: {root_id} <- {len(walk_ids)} documents: "
        f"{len(merged.must)} must / {len(merged.should)} should / {len(merged.could)} could, "
        f"{len(merged.overrides)} overrides"
    )
    for ov in merged.overrides:
        SimpleLogger.debug(
            f"merger: {ov.tier.value} '{ov.rule_id}' from {ov.loser_id} overridden by {ov.winner_id}"
        )
    return merged
