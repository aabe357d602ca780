"""Minimal GitHub REST client used for publishing workflows."""

from __future__ import annotations

import base64
import json
import re
import socket
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from ..logging import get_logger

DEFAULT_API_URL = "https://api.github.com"

_REPO_URL_PATTERNS = (
    re.compile(r"^(?:https?://)?github\.com/(?P<owner>[^/\s]+)/(?P<repo>[^/\s?#]+?)(?:\.git)?/?$"),
    re.compile(r"^git@github\.com:(?P<owner>[^/\s]+)/(?P<repo>[^/\s]+?)(?:\.git)?$"),
    re.compile(r"^github\.com\?owner=(?P<owner>[^&\s]+)&repo=(?P<repo>[^&\s]+)$"),
    re.compile(r"^(?P<owner>[A-Za-z0-9_.-]+)/(?P<repo>[A-Za-z0-9_.-]+)$"),
)


class GitHubError(RuntimeError):
    """Raised when a GitHub REST call fails."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class GitHubResponse:
    status: int
    payload: Any


@dataclass(frozen=True)
class CommitResult:
    commit_sha: str
    file_url: str


Transport = Callable[[str, str, Dict[str, str], Optional[bytes], float], GitHubResponse]


def parse_repo_url(repo_url: str) -> Tuple[str, str]:
    """Return ``(owner, repo)`` for the URL forms accepted by the scaffolder actions."""
    candidate = (repo_url or "").strip()
    for pattern in _REPO_URL_PATTERNS:
        match = pattern.match(candidate)
        if match:
            return match.group("owner"), match.group("repo")
    raise GitHubError(f"Invalid repository URL: {repo_url!r}")


class GitHubClient:
    """Wraps the handful of REST endpoints pipegen needs."""

    def __init__(
        self,
        token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: Transport | None = None,
    ) -> None:
        if not token:
            raise GitHubError("A GitHub token is required")
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport or _http_transport
        self.logger = get_logger("github")

    def get_branch_sha(self, owner: str, repo: str, branch: str) -> str:
        payload = self._request("GET", f"/repos/{owner}/{repo}/git/ref/heads/{_path(branch)}")
        sha = _dig(payload, "object", "sha")
        if not sha:
            raise GitHubError(f"Branch {branch!r} has no commit SHA")
        return sha

    def create_branch(self, owner: str, repo: str, branch: str, from_sha: str) -> None:
        self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/refs",
            {"ref": f"refs/heads/{branch}", "sha": from_sha},
        )

    def get_file_sha(self, owner: str, repo: str, path: str, ref: str) -> Optional[str]:
        """Return the blob SHA of ``path`` on ``ref``, or ``None`` when it does not exist."""
        try:
            payload = self._request(
                "GET", f"/repos/{owner}/{repo}/contents/{_path(path)}?ref={quote(ref, safe='')}"
            )
        except GitHubError as exc:
            if exc.status == 404:
                return None
            raise
        sha = payload.get("sha") if isinstance(payload, dict) else None
        return sha if isinstance(sha, str) else None

    def commit_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        branch: str,
        message: str,
    ) -> CommitResult:
        """Create or update ``path`` on ``branch`` with a single commit."""
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        existing = self.get_file_sha(owner, repo, path, branch)
        if existing:
            body["sha"] = existing
        payload = self._request("PUT", f"/repos/{owner}/{repo}/contents/{_path(path)}", body)
        commit_sha = _dig(payload, "commit", "sha") or ""
        file_url = _dig(payload, "content", "html_url") or (
            f"https://github.com/{owner}/{repo}/blob/{branch}/{path}"
        )
        self.logger.debug("Committed %s to %s/%s@%s", path, owner, repo, branch)
        return CommitResult(commit_sha=commit_sha, file_url=file_url)

    def create_pull_request(
        self,
        owner: str,
        repo: str,
        *,
        head: str,
        base: str,
        title: str,
        body: str,
    ) -> str:
        payload = self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            {"title": title, "head": head, "base": base, "body": body},
        )
        url = payload.get("html_url") if isinstance(payload, dict) else None
        if not isinstance(url, str) or not url:
            raise GitHubError("Pull request response did not include a URL")
        return url

    def dispatch_workflow(
        self,
        owner: str,
        repo: str,
        workflow_id: str,
        ref: str,
        inputs: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._request(
            "POST",
            f"/repos/{owner}/{repo}/actions/workflows/{_path(workflow_id)}/dispatches",
            {"ref": ref, "inputs": dict(inputs or {})},
        )

    # ------------------------------------------------------------------
    # Helpers

    def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.api_url}{path}"
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.token}",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "pipegen",
        }
        data = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"
        self.logger.debug("%s %s", method, url)
        response = self._transport(method, url, headers, data, self.timeout)
        if response.status >= 400:
            message = _error_message(response.payload)
            raise GitHubError(
                f"GitHub API {method} {path} failed with status {response.status}: {message}",
                status=response.status,
            )
        return response.payload


def _http_transport(
    method: str,
    url: str,
    headers: Dict[str, str],
    data: Optional[bytes],
    timeout: float,
) -> GitHubResponse:
    request = Request(url, data=data, headers=headers, method=method)
    try:
        with urlopen(request, timeout=timeout) as response:
            status = getattr(response, "status", 200)
            raw = response.read()
    except HTTPError as exc:
        detail = exc.read() if hasattr(exc, "read") else b""
        return GitHubResponse(status=exc.code, payload=_decode(detail) or exc.reason)
    except URLError as exc:
        raise GitHubError(f"GitHub API unreachable: {exc.reason}") from exc
    except (socket.timeout, TimeoutError) as exc:
        raise GitHubError(f"GitHub API timed out after {timeout}s") from exc
    return GitHubResponse(status=status, payload=_decode(raw))


def _decode(raw: bytes) -> Any:
    if not raw:
        return None
    text = raw.decode("utf-8", errors="ignore")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _error_message(payload: Any) -> str:
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str):
            return message
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return "no details"


def _dig(payload: Any, *keys: str) -> Optional[str]:
    current = payload
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current if isinstance(current, str) else None


def _path(value: str) -> str:
    return quote(value.strip("/"), safe="/")


__all__ = [
    "CommitResult",
    "GitHubClient",
    "GitHubError",
    "GitHubResponse",
    "parse_repo_url",
]
