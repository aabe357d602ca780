"""Helper utilities for constructing temporary repositories in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

from pipegen.classifier import RepoClassifier
from pipegen.models import ProjectProfile


class RepoBuilder:
    """Utility for writing files into a throwaway repository and reclassifying it."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "repo"
        self.root.mkdir()
        self._classifier = RepoClassifier()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the repository."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def mkdir(self, *relatives: str) -> None:
        """Create empty directories inside the repository."""
        for relative in relatives:
            (self.root / relative).mkdir(parents=True, exist_ok=True)

    def classify(self) -> ProjectProfile:
        """Return a fresh profile of the repository contents."""
        return self._classifier.classify(self.root)

    def path(self) -> Path:
        """Return the repository root path."""
        return self.root


__all__ = ["RepoBuilder"]
