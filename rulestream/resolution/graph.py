# -*- coding: utf-8 -*-
"""
ReferenceGraph
==============
Arena + index representation of the document reference graph.

- Nodes are Document ids, stored once in `node_ids` (sorted), and addressed by
  their integer position.
- `edges[i]` holds the positions of the documents node i references
  (resolved, de-duplicated, sorted by target id).
- `dangling[i]` keeps targets that are not in the library; `external[i]` keeps
  URL targets, which are leaves and never expanded.

The graph is immutable and holds the Document snapshot it was built from, so
the merger needs nothing else to walk it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Set, Tuple, Union

from rulestream.errors import UnknownDocumentError
from rulestream.model.document import Document


@dataclass(frozen=True)
class ReferenceGraph:
    node_ids: Tuple[str, ...]
    edges: Tuple[Tuple[int, ...], ...]
    dangling: Tuple[Tuple[str, ...], ...]
    external: Tuple[Tuple[str, ...], ...]
    documents: Mapping[str, Document]
    _index: Dict[str, int] = field(default_factory=dict, compare=False, repr=False)
    _reverse: Tuple[Tuple[int, ...], ...] = field(default=(), compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_index", {doc_id: i for i, doc_id in enumerate(self.node_ids)})
        reverse: List[List[int]] = [[] for _ in self.node_ids]
        for src, targets in enumerate(self.edges):
            for dst in targets:
                reverse[dst].append(src)
        object.__setattr__(self, "_reverse", tuple(tuple(r) for r in reverse))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._index

    def __len__(self) -> int:
        return len(self.node_ids)

    def index_of(self, document_id: str) -> int:
        try:
            return self._index[document_id]
        except KeyError:
            raise UnknownDocumentError(document_id) from None

    def document(self, document_id: str) -> Document:
        self.index_of(document_id)
        return self.documents[document_id]

    def successors(self, document_id: str) -> Tuple[str, ...]:
        return tuple(self.node_ids[j] for j in self.edges[self.index_of(document_id)])

    def predecessors(self, document_id: str) -> Tuple[str, ...]:
        return tuple(self.node_ids[j] for j in self._reverse[self.index_of(document_id)])

    def successor_indices(self, i: int) -> Tuple[int, ...]:
        return self.edges[i]

    def predecessor_indices(self, i: int) -> Tuple[int, ...]:
        return self._reverse[i]

    def dangling_of(self, document_id: str) -> Tuple[str, ...]:
        return self.dangling[self.index_of(document_id)]

    # ------------------------------------------------------------------
    # Reachability
    # ------------------------------------------------------------------

    def closure(self, document_id: str) -> FrozenSet[str]:
        """`document_id` plus every document reachable from it."""
        start = self.index_of(document_id)
        seen: Set[int] = {start}
        stack = [start]
        while stack:
            i = stack.pop()
            for j in self.edges[i]:
                if j not in seen:
                    seen.add(j)
                    stack.append(j)
        return frozenset(self.node_ids[i] for i in seen)

    def reaches(self, source_id: str, target_id: str) -> bool:
        """True when target is source itself or transitively referenced by it."""
        return target_id in self.closure(source_id)


def build_graph(documents: Union[Iterable[Document], Mapping[str, Document]]) -> ReferenceGraph:
    """Build the arena graph. Duplicate document ids are a caller error."""
    docs = list(documents.values()) if isinstance(documents, Mapping) else list(documents)
    by_id: Dict[str, Document] = {}
    for doc in docs:
        if doc.id in by_id:
            raise ValueError(f"build_graph: duplicate document id '{doc.id}'")
        by_id[doc.id] = doc

    node_ids = tuple(sorted(by_id))
    index = {doc_id: i for i, doc_id in enumerate(node_ids)}

    edges: List[Tuple[int, ...]] = []
    dangling: List[Tuple[str, ...]] = []
    external: List[Tuple[str, ...]] = []
    for doc_id in node_ids:
        resolved: Set[int] = set()
        missing: List[str] = []
        urls: List[str] = []
        for ref in by_id[doc_id].references:
            if ref.external:
                urls.append(ref.target_id)
            elif ref.target_id in index:
                resolved.add(index[ref.target_id])
            elif ref.target_id not in missing:
                missing.append(ref.target_id)
        edges.append(tuple(sorted(resolved)))
        dangling.append(tuple(sorted(missing)))
        external.append(tuple(urls))

    return ReferenceGraph(
        node_ids=node_ids,
        edges=tuple(edges),
        dangling=tuple(dangling),
        external=tuple(external),
        documents=dict(by_id),
    )
