# -*- coding: utf-8 -*-
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from rulestream.composition.placeholders import Placeholder, placeholders_in
from rulestream.config.settings import Settings
from rulestream.library.loader import DocumentLoader
from rulestream.library.snapshot import LibrarySnapshot, build_snapshot
from rulestream.orchestration.pipeline import CompositionReport, compose_from_library, validate_snapshot
from rulestream.resolution.resolver import ResolutionResult, resolve_library
from rulestream.utils.logging import SimpleLogger
from rulestream.utils.paths import PATHS
from rulestream.validation.findings import Finding
from rulestream.validation.validator import ValidationLimits


class AppController:
    def __init__(self, library_root: Optional[Path] = None, limits: Optional[ValidationLimits] = None) -> None:
        """
        Central app controller.

        - Owns the current LibrarySnapshot; reload() swaps in a new one, the old
          snapshot stays valid for anyone still holding it.
        - Caches the ResolutionResult per snapshot so repeated compositions do
          not rebuild the graph.
        """
        configured = Settings.get("RULESTREAM_LIBRARY_DIR")
        self.library_root = Path(library_root or configured or PATHS["library"])
        self.limits = limits or ValidationLimits.from_settings()
        self.loader = DocumentLoader(self.library_root)
        self.snapshot: LibrarySnapshot = LibrarySnapshot()
        self._resolution: Optional[ResolutionResult] = None

    def reload(self) -> LibrarySnapshot:
        """Re-read the library folder; unchanged documents are not re-parsed."""
        sources = self.loader.load_sources()
        self.snapshot = build_snapshot(sources, previous=self.snapshot)
        self._resolution = None
        SimpleLogger.info(f"AppController: library {self.library_root} -> {len(self.snapshot)} documents")
        return self.snapshot

    def resolve(self) -> ResolutionResult:
        if self._resolution is None:
            self._resolution = resolve_library(self.snapshot.documents)
        return self._resolution

    def validate_library(self) -> Dict[str, List[Finding]]:
        return validate_snapshot(self.snapshot, self.limits)

    def compose(
        self,
        template_id: str,
        variables: Optional[Mapping[str, str]] = None,
        *,
        rules_root: Optional[str] = None,
        max_budget: Optional[int] = None,
    ) -> CompositionReport:
        return compose_from_library(
            self.snapshot,
            template_id,
            variables,
            rules_root=rules_root,
            max_budget=max_budget,
            limits=self.limits,
            resolution=self.resolve(),
        )

    def template_variables(self, template_id: str) -> Tuple[Placeholder, ...]:
        """Placeholders the template itself declares (rule text may add more)."""
        template = self.snapshot.get(template_id)
        lines: List[str] = []
        for section in template.sections:
            lines.extend(section.lines)
        return placeholders_in(lines)

    def save(self, report: CompositionReport, out_dir: Optional[Path] = None) -> Path:
        """Write the composed text to `<out_dir>/<template id with '/' -> '__'>.md`."""
        target_dir = Path(out_dir or PATHS["composed"])
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / f"{report.context.template_id.replace('/', '__')}.md"
        target.write_text(report.text, encoding="utf-8")
        SimpleLogger.info(f"AppController: saved {report.context.template_id} -> {target}")
        return target
