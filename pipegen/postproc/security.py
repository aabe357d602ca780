"""Secret-handling rules enforced on every generated workflow."""

from __future__ import annotations

import re
from typing import Iterable, List

from ..prompting.constants import DEFAULT_SECRETS

_SECRET_EXPRESSION = re.compile(r"\$\{\{\s*secrets\.[A-Za-z_][A-Za-z0-9_]*\s*\}\}")
_SHARED_ENV_SINK = re.compile(r"\$\{?GITHUB_(?:ENV|OUTPUT)\}?|core\.exportVariable")
_ENV_REFERENCE = re.compile(r"\$\{\{\s*env\.([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


class SecretPolicy:
    """Removes secret exports and restores secret references."""

    def __init__(self, secret_names: Iterable[str] | None = None) -> None:
        names = secret_names if secret_names is not None else DEFAULT_SECRETS.keys()
        self.secret_names = frozenset(names)

    def apply(self, content: str) -> str:
        """Return ``content`` with both rules applied."""
        return self.restore_secret_references(self.strip_secret_exports(content))

    def strip_secret_exports(self, content: str) -> str:
        """Drop lines that write a secret expression into shared environment state."""
        kept: List[str] = []
        for line in content.splitlines(keepends=True):
            if _SECRET_EXPRESSION.search(line) and _SHARED_ENV_SINK.search(line):
                continue
            kept.append(line)
        return "".join(kept)

    def restore_secret_references(self, content: str) -> str:
        """Replace ``${{ env.NAME }}`` with ``${{ secrets.NAME }}`` for known secrets."""

        def _replace(match: re.Match[str]) -> str:
            name = match.group(1)
            if name in self.secret_names:
                return f"${{{{ secrets.{name} }}}}"
            return match.group(0)

        return _ENV_REFERENCE.sub(_replace, content)


__all__ = ["SecretPolicy"]
