# -*- coding: utf-8 -*-
"""
rulestream
==========
Rule & prompt template composition engine.

The four core operations:
- parse(raw_text, document_id)                     -> Document
- resolve_library(documents)                       -> ResolutionResult
- merge_rules(root_id, graph, order)               -> MergedRuleSet
- compose(template, merged, variables, max_budget) -> ComposedContext

Library loading, snapshots and the end-to-end pipeline live in
rulestream.library and rulestream.orchestration.
"""

from rulestream.composition.compositor import compose
from rulestream.merging.merger import merge_rules
from rulestream.parsing.parser import parse
from rulestream.parsing.serializer import serialize
from rulestream.resolution.resolver import resolve_library

__all__ = ["parse", "serialize", "resolve_library", "merge_rules", "compose"]
