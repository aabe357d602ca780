"""Tests for workflow publishing."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from pipegen.github.client import CommitResult, GitHubError
from pipegen.github.publisher import Publisher, pull_request_title
from pipegen.models import ProjectProfile, ProjectType


class FakeClient:
    def __init__(self, *, fail_on: str | None = None) -> None:
        self.calls = []
        self.fail_on = fail_on

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if name == self.fail_on:
            raise GitHubError(f"{name} failed", status=422)

    def get_branch_sha(self, owner, repo, branch):
        self._record("get_branch_sha", owner, repo, branch)
        return "base-sha"

    def create_branch(self, owner, repo, branch, from_sha):
        self._record("create_branch", owner, repo, branch, from_sha)

    def commit_file(self, owner, repo, path, content, branch, message):
        self._record("commit_file", owner, repo, path, content, branch, message)
        return CommitResult(commit_sha="c0ffee", file_url=f"https://github.com/{owner}/{repo}/blob/{branch}/{path}")

    def create_pull_request(self, owner, repo, *, head, base, title, body):
        self._record("create_pull_request", owner, repo, head=head, base=base, title=title, body=body)
        return "https://github.com/acme/web/pull/1"


def _clock() -> datetime:
    return datetime(2024, 5, 1, 12, 30, 45, tzinfo=timezone.utc)


PROFILE = ProjectProfile(type=ProjectType.NODEJS, framework="React")


def test_write_file_creates_parents(tmp_path: Path) -> None:
    target = Publisher().write_file(tmp_path / ".github" / "workflows" / "ci.yml", "name: CI\n")

    assert target.read_text(encoding="utf-8") == "name: CI\n"


def test_publish_pr_creates_branch_commit_and_pr() -> None:
    client = FakeClient()
    publisher = Publisher(client, clock=_clock)

    result = publisher.publish_pr(
        "acme", "web", content="name: CI\n", file_name="ci.yml", profile=PROFILE, user_request="CI"
    )

    assert result.created is True
    assert result.branch_name == "ai-pipeline-2024-05-01T12-30-45"
    assert result.pull_request_url == "https://github.com/acme/web/pull/1"
    names = [name for name, _, _ in client.calls]
    assert names == ["get_branch_sha", "create_branch", "commit_file", "create_pull_request"]
    _, commit_args, _ = client.calls[2]
    assert commit_args[2] == ".github/workflows/ci.yml"
    assert commit_args[4] == "ai-pipeline-2024-05-01T12-30-45"
    _, _, pr_kwargs = client.calls[3]
    assert pr_kwargs["base"] == "main"
    assert pr_kwargs["title"] == "Add AI-generated nodejs pipeline for React"
    assert "GCP_SA_KEY" in pr_kwargs["body"]


def test_publish_pr_failure_is_reported_not_raised(caplog) -> None:
    publisher = Publisher(FakeClient(fail_on="create_pull_request"), clock=_clock)

    with caplog.at_level("WARNING", logger="pipegen"):
        result = publisher.publish_pr(
            "acme", "web", content="x", file_name="ci.yml", profile=PROFILE, user_request="CI"
        )

    assert result.created is False
    assert result.pull_request_url is None
    assert "Failed to create pull request" in caplog.text


def test_publish_pr_without_client_is_skipped() -> None:
    result = Publisher().publish_pr(
        "acme", "web", content="x", file_name="ci.yml", profile=PROFILE, user_request="CI"
    )

    assert result.created is False


def test_pull_request_title_without_framework() -> None:
    assert pull_request_title(ProjectProfile(type=ProjectType.GO)) == "Add AI-generated go pipeline"
