"""
DocumentLoader
==============
Responsible for discovering and loading raw rule/template files from a library
folder and its subfolders. This is the only place the engine touches disk.
"""

from pathlib import Path
from typing import List, Sequence, Tuple

DEFAULT_SUFFIXES: Tuple[str, ...] = (".md", ".markdown", ".txt")


class DocumentLoader:
    """Scans the library directory and yields (document_id, file_text) tuples."""

    def __init__(self, root: Path) -> None:
        """
        :param root: Path to the library folder (e.g. 'library/').
        """
        self.root = Path(root)

    @staticmethod
    def document_id_for(rel_path: Path) -> str:
        """'rules/base-backup.md' -> 'rules/base-backup' (POSIX, no suffix)."""
        return rel_path.with_suffix("").as_posix()

    def load_sources(self, suffixes: Sequence[str] = DEFAULT_SUFFIXES) -> List[Tuple[str, str]]:
        """
        Load every file with one of `suffixes` below the root, sorted by id.

        :return: List of tuples (document_id, file_text).
        """
        if not self.root.exists():
            raise FileNotFoundError(f"Library folder does not exist: {self.root}")
        if not self.root.is_dir():
            raise NotADirectoryError(f"Library root is not a directory: {self.root}")

        wanted = {s.lower() for s in suffixes}
        sources: List[Tuple[str, str]] = []
        seen = set()

        for file_path in sorted(self.root.rglob("*")):
            if not file_path.is_file() or file_path.suffix.lower() not in wanted:
                continue
            doc_id = self.document_id_for(file_path.relative_to(self.root))
            if doc_id in seen:
                # 'x.md' and 'x.txt' map to the same id; first (sorted) wins
                continue
            seen.add(doc_id)
            try:
                text = file_path.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                # Fallback: try latin-1 to avoid crash on non-UTF8 files
                text = file_path.read_text(encoding="latin-1")
            sources.append((doc_id, text))

        return sorted(sources)
