"""Publishing of generated workflows to disk and to GitHub pull requests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Mapping, Optional

from ..logging import get_logger
from ..models import ProjectProfile
from ..prompting.constants import DEFAULT_SECRETS
from .client import GitHubClient, GitHubError

WORKFLOW_DIR = ".github/workflows"


def workflow_path(file_name: str) -> str:
    """Return the repository path of a workflow file, rejecting anything but a bare name."""
    if file_name.strip() in {"", ".", ".."} or any(sep in file_name for sep in ("/", "\\", "\0")):
        raise ValueError(f"Workflow file name must be a plain file name: {file_name!r}")
    return f"{WORKFLOW_DIR}/{file_name}"


@dataclass(frozen=True)
class PublishResult:
    """Outcome of a pull request attempt."""

    created: bool
    branch_name: Optional[str] = None
    pull_request_url: Optional[str] = None
    file_url: Optional[str] = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Publisher:
    """Writes workflows locally and opens pull requests through the GitHub REST API."""

    def __init__(
        self,
        client: GitHubClient | None = None,
        *,
        base_branch: str = "main",
        branch_prefix: str = "ai-pipeline-",
        clock: Callable[[], datetime] | None = None,
        secrets: Mapping[str, str] | None = None,
    ) -> None:
        self.client = client
        self.base_branch = base_branch
        self.branch_prefix = branch_prefix
        self._clock = clock or _utc_now
        self.secrets = dict(secrets) if secrets is not None else dict(DEFAULT_SECRETS)
        self.logger = get_logger("publisher")

    def write_file(self, path: Path | str, content: str) -> Path:
        """Write ``content`` to ``path``, creating parent directories as needed."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        self.logger.debug("Wrote %s (%d bytes)", target, len(content.encode("utf-8")))
        return target

    def branch_name(self) -> str:
        return f"{self.branch_prefix}{self._clock().strftime('%Y-%m-%dT%H-%M-%S')}"

    def publish_pr(
        self,
        owner: str,
        repo: str,
        *,
        content: str,
        file_name: str,
        profile: ProjectProfile,
        user_request: str,
    ) -> PublishResult:
        """Create a branch, commit the workflow and open a pull request.

        Failures are logged as warnings and reported through ``created=False``
        so callers keep the locally written file.
        """
        if self.client is None:
            self.logger.warning(
                "Pull request skipped: no GitHub token configured. Pipeline saved locally."
            )
            return PublishResult(created=False)

        path = workflow_path(file_name)
        branch = self.branch_name()
        try:
            self.logger.info("Creating branch %s on %s/%s", branch, owner, repo)
            base_sha = self.client.get_branch_sha(owner, repo, self.base_branch)
            self.client.create_branch(owner, repo, branch, base_sha)
            commit = self.client.commit_file(
                owner,
                repo,
                path,
                content,
                branch,
                commit_message(profile, user_request),
            )
            url = self.client.create_pull_request(
                owner,
                repo,
                head=branch,
                base=self.base_branch,
                title=pull_request_title(profile),
                body=self._pull_request_body(profile, user_request, path),
            )
        except GitHubError as exc:
            self.logger.warning(
                "Failed to create pull request: %s. Pipeline saved locally for manual PR creation.",
                exc,
            )
            return PublishResult(created=False, branch_name=branch)

        self.logger.info("Pull request created: %s", url)
        return PublishResult(
            created=True,
            branch_name=branch,
            pull_request_url=url,
            file_url=commit.file_url,
        )

    def _pull_request_body(self, profile: ProjectProfile, user_request: str, path: str) -> str:
        lines = [
            "## AI-generated GitHub Actions pipeline",
            "",
            f"This pull request adds a workflow tailored for this {profile.type} project.",
            "",
            "### Project analysis",
            f"- **Project type:** {profile.type}",
            f"- **Framework:** {profile.framework or 'Not detected'}",
            f"- **Build tool:** {profile.build_tool or 'Standard'}",
            f"- **Package manager:** {profile.package_manager}",
            f"- **Has Docker:** {'yes' if profile.has_docker else 'no'}",
            f"- **Has tests:** {'yes' if profile.has_tests else 'no'}",
            "",
            "### Request",
            f"> {user_request}",
            "",
            "### Required secrets",
            "| Secret | Description |",
            "| ------ | ----------- |",
        ]
        lines.extend(f"| `{name}` | {description} |" for name, description in self.secrets.items())
        lines.extend(["", "### File", f"`{path}`", ""])
        return "\n".join(lines)


def pull_request_title(profile: ProjectProfile) -> str:
    suffix = f" for {profile.framework}" if profile.framework else ""
    return f"Add AI-generated {profile.type} pipeline{suffix}"


def commit_message(profile: ProjectProfile, user_request: str) -> str:
    framework = f" ({profile.framework})" if profile.framework else ""
    return "\n".join(
        [
            "Add AI-generated GitHub Actions pipeline",
            "",
            f"Project type: {profile.type}{framework}",
            f"Request: {user_request}",
        ]
    )


__all__ = ["PublishResult", "Publisher", "WORKFLOW_DIR", "commit_message", "pull_request_title"]
