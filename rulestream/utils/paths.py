"""
Paths
=====
Centralises all on-disk locations for the project so that a single import
(`from rulestream.utils.paths import PATHS`) provides **typed** access to
directories used by the library loader, the UI and composed output.
"""
from pathlib import Path
from typing import TypedDict

class _Paths(TypedDict):
    root:          Path
    library:       Path
    composed:      Path
    schema:        Path

ROOT = Path(__file__).resolve().parents[2]
PACKAGE = Path(__file__).resolve().parents[1]

PATHS: _Paths = {
    "root":        ROOT,
    "library":     ROOT / "library",
    "composed":    ROOT / "data" / "composed",   # where the UI saves renders
    "schema":      PACKAGE / "config" / "section_schema.json",
}
