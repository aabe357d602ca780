"""Tests for workflow and template prompt construction."""

from __future__ import annotations

import json

import pytest

from pipegen.models import PackageManager, ProjectProfile, ProjectType, TemplateRequest
from pipegen.prompting.builder import PromptBuilder


def _node_profile(manager: str, **overrides) -> ProjectProfile:
    values = {
        "type": ProjectType.NODEJS,
        "framework": "Express.js",
        "package_manager": manager,
        "dependencies": {"express": "^4.0.0"},
        "files": ("package.json",),
    }
    values.update(overrides)
    return ProjectProfile(**values)


def test_no_lock_file_prompt_uses_npm_install_without_cache() -> None:
    prompts = PromptBuilder().build(_node_profile(PackageManager.NPM_NO_LOCK), "Build and test")

    assert "use npm install" in prompts.system_prompt
    assert "Do NOT configure dependency caching" in prompts.system_prompt
    assert "npm ci" not in prompts.system_prompt
    assert "cache: 'npm'" not in prompts.system_prompt


def test_lock_file_prompt_uses_clean_install_and_cache() -> None:
    prompts = PromptBuilder().build(_node_profile(PackageManager.NPM_LOCK), "Build and test")

    assert "use npm ci" in prompts.system_prompt
    assert "cache: 'npm'" in prompts.system_prompt
    assert "use npm install" not in prompts.system_prompt


def test_system_prompt_lists_secrets_and_pinned_actions() -> None:
    prompts = PromptBuilder().build(ProjectProfile(), "CI please")

    assert "GCP_SA_KEY" in prompts.system_prompt
    assert "actions/checkout@v4" in prompts.system_prompt
    assert "@latest" in prompts.system_prompt  # named as forbidden
    assert "continue-on-error: true" in prompts.system_prompt
    assert "$GITHUB_ENV" in prompts.system_prompt


def test_user_prompt_embeds_summary_and_guidance() -> None:
    profile = _node_profile(
        PackageManager.YARN,
        framework="React",
        scripts={"build": "vite build", "test": "vitest"},
        has_docker=True,
    )

    prompts = PromptBuilder().build(profile, "Deploy to Cloud Run", "https://github.com/acme/web")

    user = prompts.user_prompt
    assert user.startswith("User request: Deploy to Cloud Run")
    assert "Repository: https://github.com/acme/web" in user
    summary = user.split("Project summary:\n", 1)[1].split("\n\nProject-specific guidance:", 1)[0]
    assert json.loads(summary)["packageManager"] == PackageManager.YARN
    assert "Build static assets for production" in user
    assert "`yarn build`" in user
    assert "`yarn test` and continue-on-error: true" in user
    assert "docker/build-push-action@v5" in user


def test_prompts_are_deterministic() -> None:
    profile = _node_profile(PackageManager.PNPM)

    first = PromptBuilder().build(profile, "CI")
    second = PromptBuilder().build(profile, "CI")

    assert first == second


def test_custom_secrets_replace_defaults() -> None:
    builder = PromptBuilder(secrets={"AWS_ROLE_ARN": "Role to assume"})

    prompt = builder.build(ProjectProfile(), "CI").system_prompt

    assert "AWS_ROLE_ARN (Role to assume)" in prompt
    assert "GCP_SA_KEY" not in prompt


@pytest.mark.parametrize("action", ["actions/checkout@main", "actions/checkout"])
def test_unpinned_actions_are_rejected(action: str) -> None:
    with pytest.raises(ValueError):
        PromptBuilder(actions=[action])


def test_template_prompt_requests_json_envelope() -> None:
    request = TemplateRequest(
        prompt="S3 bucket",
        name="s3-bucket",
        title="S3 Bucket",
        workflow_repo="acme/infra",
    )

    prompts = PromptBuilder().build_template_prompt(request)

    assert '"templateContent"' in prompts.system_prompt
    assert "platform-team" in prompts.system_prompt
    assert "github:workflows:dispatch" in prompts.system_prompt
    assert "Name: s3-bucket" in prompts.user_prompt
    assert "Workflow Repo: acme/infra" in prompts.user_prompt
    assert "Description: AI-generated template" in prompts.user_prompt
