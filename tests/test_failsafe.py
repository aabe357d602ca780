"""Tests for fallback workflows and templates."""

from __future__ import annotations

import yaml

from pipegen.failsafe import build_fallback, build_pipeline_fallback
from pipegen.models import PackageManager, ProjectProfile, ProjectType


def _args():
    return (None, "s3-bucket", "S3 Bucket", "Creates a bucket", "storage", "acme/infra")


def test_fallback_is_deterministic() -> None:
    first = build_fallback(*_args(), reason="upstream timeout")
    second = build_fallback(*_args(), reason="upstream timeout")

    assert first == second
    assert first.template_content == second.template_content
    assert first.workflow_content == second.workflow_content


def test_fallback_template_and_workflow_are_valid_yaml() -> None:
    result = build_fallback(*_args())

    template = yaml.safe_load(result.template_content)
    workflow = yaml.safe_load(result.workflow_content)

    assert result.kind == "fallback"
    assert result.workflow_file_name == "s3-bucket.yml"
    assert result.parameters == ("resourceName",)
    assert template["metadata"]["name"] == "s3-bucket"
    assert template["spec"]["owner"] == "platform-team"
    step = template["spec"]["steps"][0]
    assert step["action"] == "github:workflows:dispatch"
    assert step["input"]["repoUrl"] == "https://github.com/acme/infra"
    assert step["input"]["workflowPath"] == "s3-bucket.yml"
    assert step["input"]["branchOrTagName"] == "master"
    assert "workflow_dispatch" in workflow[True]  # YAML 1.1 reads `on` as a boolean key


def test_fallback_quotes_unsafe_scalars() -> None:
    result = build_fallback(None, "db", "DB: Postgres #1", None, "database", "acme/infra")

    template = yaml.safe_load(result.template_content)

    assert template["metadata"]["title"] == "DB: Postgres #1"
    assert template["metadata"]["description"] == "AI-generated template"


def test_profile_type_becomes_a_tag() -> None:
    profile = ProjectProfile(type=ProjectType.GO)

    template = yaml.safe_load(build_fallback(profile, *_args()[1:]).template_content)

    assert template["metadata"]["tags"] == ["storage", "ai-generated", "go"]


def test_pipeline_fallback_for_node_without_lock_file() -> None:
    profile = ProjectProfile(
        type=ProjectType.NODEJS,
        package_manager=PackageManager.NPM_NO_LOCK,
        scripts={"test": "jest", "build": "tsc"},
        has_docker=True,
    )

    result = build_pipeline_fallback(profile, "ci.yml", reason="boom")
    workflow = yaml.safe_load(result.workflow_content)
    steps = workflow["jobs"]["build"]["steps"]

    assert result.workflow_file_name == "ci.yml"
    assert result.reason == "boom"
    assert "cache" not in steps[1]["with"]
    assert {"name": "Install dependencies", "run": "npm install"} in steps
    test_step = next(step for step in steps if step["name"] == "Run tests")
    assert test_step["continue-on-error"] is True
    assert any("docker build" in step.get("run", "") for step in steps)
    for step in steps:
        uses = step.get("uses", "")
        assert not uses.endswith(("@main", "@master", "@latest"))


def test_pipeline_fallback_caches_with_lock_file() -> None:
    profile = ProjectProfile(type=ProjectType.NODEJS, package_manager=PackageManager.NPM_LOCK)

    steps = yaml.safe_load(build_pipeline_fallback(profile, "ci.yml").workflow_content)["jobs"]["build"][
        "steps"
    ]

    assert steps[1]["with"]["cache"] == "npm"
    assert {"name": "Install dependencies", "run": "npm ci"} in steps


def test_pipeline_fallback_for_unknown_project_is_valid() -> None:
    result = build_pipeline_fallback(ProjectProfile(), "generated-pipeline.yml")

    workflow = yaml.safe_load(result.workflow_content)

    assert workflow["jobs"]["build"]["runs-on"] == "ubuntu-latest"
    assert result.template_content == ""
    assert result.parameters == ()
