# -*- coding: utf-8 -*-
"""
Reference Resolver
==================

resolve_library(documents) -> ResolutionResult(graph, order, errors)

- Builds the arena graph (graph.py).
- Finds cycles with a depth-first walk that keeps the current path on an
  explicit stack; each cycle is reported once, rotated so its smallest id
  comes first, in a CircularReferenceError carrying the full path.
- Reports every dangling edge as an UnresolvedReferenceError. Nothing aborts:
  one run lists every problem.
- Computes the dependency order (leaves first; ties broken by document id).
  Documents on a cycle, or depending on one, have no valid position and are
  left out of `order`; everything else is still ordered.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Mapping, Set, Tuple, Union

from rulestream.errors import CircularReferenceError, RuleStreamError, UnresolvedReferenceError
from rulestream.model.document import Document
from rulestream.resolution.graph import ReferenceGraph, build_graph
from rulestream.utils.logging import SimpleLogger


@dataclass(frozen=True)
class ResolutionResult:
    graph: ReferenceGraph
    order: Tuple[str, ...]                    # dependency order, leaves first
    errors: Tuple[RuleStreamError, ...]

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def topological_order(self) -> Tuple[str, ...]:
        """Every reference source before its target (reverse of `order`)."""
        return tuple(reversed(self.order))

    @property
    def cycles(self) -> Tuple[CircularReferenceError, ...]:
        return tuple(e for e in self.errors if isinstance(e, CircularReferenceError))

    @property
    def unresolved(self) -> Tuple[UnresolvedReferenceError, ...]:
        return tuple(e for e in self.errors if isinstance(e, UnresolvedReferenceError))

    def errors_for(self, document_ids: Iterable[str]) -> Tuple[RuleStreamError, ...]:
        """Errors that touch any of the given documents."""
        wanted = set(document_ids)
        found: List[RuleStreamError] = []
        for err in self.errors:
            if isinstance(err, CircularReferenceError) and wanted.intersection(err.cycle):
                found.append(err)
            elif isinstance(err, UnresolvedReferenceError) and err.source_id in wanted:
                found.append(err)
        return tuple(found)


def iter_cycles(graph: ReferenceGraph) -> Iterator[Tuple[str, ...]]:
    """Yield each cycle once as a tuple of ids, smallest id first."""
    white, gray, black = 0, 1, 2
    color = [white] * len(graph)
    reported: Set[Tuple[str, ...]] = set()

    for root in range(len(graph)):
        if color[root] != white:
            continue
        path: List[int] = [root]
        on_path = {root: 0}
        stack = [(root, iter(graph.successor_indices(root)))]
        color[root] = gray
        while stack:
            node, successors = stack[-1]
            nxt = next(successors, None)
            if nxt is None:
                stack.pop()
                path.pop()
                del on_path[node]
                color[node] = black
                continue
            if color[nxt] == gray:
                cycle = [graph.node_ids[i] for i in path[on_path[nxt]:]]
                pivot = cycle.index(min(cycle))
                canonical = tuple(cycle[pivot:] + cycle[:pivot])
                if canonical not in reported:
                    reported.add(canonical)
                    yield canonical
            elif color[nxt] == white:
                color[nxt] = gray
                on_path[nxt] = len(path)
                path.append(nxt)
                stack.append((nxt, iter(graph.successor_indices(nxt))))


def _dependency_order(graph: ReferenceGraph) -> Tuple[str, ...]:
    # Kahn's algorithm on outbound degree: a document is ready once all the
    # documents it references are placed. The heap keeps ties lexicographic.
    remaining = [len(graph.successor_indices(i)) for i in range(len(graph))]
    ready = [graph.node_ids[i] for i, n in enumerate(remaining) if n == 0]
    heapq.heapify(ready)
    order: List[str] = []
    while ready:
        doc_id = heapq.heappop(ready)
        order.append(doc_id)
        for parent in graph.predecessor_indices(graph.index_of(doc_id)):
            remaining[parent] -= 1
            if remaining[parent] == 0:
                heapq.heappush(ready, graph.node_ids[parent])
    return tuple(order)


def resolve_library(documents: Union[Iterable[Document], Mapping[str, Document]]) -> ResolutionResult:
    """Build the graph and collect every cycle and dangling reference."""
    graph = build_graph(documents)

    errors: List[RuleStreamError] = []
    for i, doc_id in enumerate(graph.node_ids):
        for target in graph.dangling[i]:
            errors.append(UnresolvedReferenceError(doc_id, target))
    for cycle in sorted(iter_cycles(graph)):
        errors.append(CircularReferenceError(cycle))

    order = _dependency_order(graph)

    SimpleLogger.info(
        f"resolver: {len(graph)} documents, {len(order)} ordered, "
        f"{sum(isinstance(e, CircularReferenceError) for e in errors)} cycles, "
        f"{sum(isinstance(e, UnresolvedReferenceError) for e in errors)} unresolved references"
    )
    for err in errors:
        SimpleLogger.warning(f"resolver: {err}")

    return ResolutionResult(graph=graph, order=order, errors=tuple(errors))
