"""Auxiliary scaffolder actions: file writing, cache busting and GitHub workflow calls."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .github.client import GitHubClient, parse_repo_url
from .github.publisher import workflow_path
from .logging import get_logger

CACHE_BUST_FILE = Path("templates") / ".template-cache-bust"

_ESCAPES = (("\\n", "\n"), ("\\t", "\t"), ('\\"', '"'), ("\\\\", "\\"))

logger = get_logger("actions")


def unescape_content(content: str) -> str:
    """Turn literal escape sequences produced by templating back into characters."""
    for literal, replacement in _ESCAPES:
        content = content.replace(literal, replacement)
    return content


def write_file(root: Path | str, path: str, content: str) -> Path:
    """Write ``content`` (un-escaped) to ``path`` relative to ``root``."""
    base = Path(root).resolve()
    target = (base / path).resolve()
    if target != base and base not in target.parents:
        raise ValueError(f"Refusing to write outside {base}: {path}")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(unescape_content(content), encoding="utf-8")
    logger.info("File written to %s", target)
    return target


def bust_template_cache(
    root: Path | str,
    template_name: str,
    *,
    clock: Callable[[], datetime] | None = None,
) -> Path:
    """Record a new template so catalog readers refresh their cached copy."""
    now = (clock or (lambda: datetime.now(timezone.utc)))()
    payload = {
        "lastUpdate": now.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "newTemplate": template_name,
        "version": int(now.timestamp() * 1000),
    }
    target = Path(root) / CACHE_BUST_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.info("Cache bust file created: %s", target)
    return target


def dispatch_workflow(
    client: GitHubClient,
    repo_url: str,
    workflow_path: str,
    ref: str,
    inputs: Optional[Dict[str, Any]] = None,
) -> None:
    """Trigger ``workflow_dispatch`` for the workflow named by the last path segment."""
    owner, repo = parse_repo_url(repo_url)
    workflow_id = workflow_path.rstrip("/").split("/")[-1]
    if not workflow_id:
        raise ValueError(f"Invalid workflow path: {workflow_path!r}")
    client.dispatch_workflow(owner, repo, workflow_id, ref, inputs or {})
    logger.info("Triggered workflow %s in %s/%s", workflow_path, owner, repo)


def create_workflow(
    client: GitHubClient,
    repo_url: str,
    workflow_content: str,
    workflow_file_name: str,
    commit_message: str,
    *,
    branch: str = "main",
) -> str:
    """Create or update ``.github/workflows/<file>`` and return its browser URL."""
    owner, repo = parse_repo_url(repo_url)
    path = workflow_path(workflow_file_name)
    client.commit_file(owner, repo, path, workflow_content, branch, commit_message)
    logger.info("Created or updated workflow %s in %s/%s", path, owner, repo)
    return f"https://github.com/{owner}/{repo}/blob/{branch}/{path}"


__all__ = [
    "CACHE_BUST_FILE",
    "bust_template_cache",
    "create_workflow",
    "dispatch_workflow",
    "unescape_content",
    "write_file",
]
