"""Builds prompts for workflow and template generation."""

from __future__ import annotations

import json
from typing import Iterable, List, Mapping, Optional, Sequence, Union

from ..models import PackageManager, ProjectProfile, PromptPair, TemplateRequest
from .constants import (
    DEFAULT_SECRETS,
    FORBIDDEN_REFS,
    GUIDANCE,
    GUIDED_SCRIPTS,
    INSTALL_RULES,
    PINNED_ACTIONS,
    SCRIPT_COMMANDS,
)

SecretSpec = Union[Mapping[str, str], Sequence[str]]

_TEMPLATE_SYSTEM_PROMPT = """You generate Backstage scaffolder templates together with the GitHub Actions workflow they trigger. Respond with ONLY valid JSON.

CRITICAL RULES:
1. Return ONLY a JSON object: no markdown, no explanations, no code fences.
2. Both YAML documents are JSON strings: encode newlines as \\n and quotes as \\".
3. Templates use the scaffolder.backstage.io/v1beta3 format.
4. Always use "platform-team" as spec.owner, never a repository URL.
5. The workflow must be triggered by workflow_dispatch with typed inputs:
   on:\\n  workflow_dispatch:\\n    inputs:

VARIABLE SYNTAX:
- Use ${{ inputs.variableName }} inside the workflow.
- Use ${{ parameters.variableName }} inside the template.
- Never double-escape the dollar sign.

TEMPLATE DISPATCH STEP:
- action: github:workflows:dispatch
- input.repoUrl: the full GitHub repository URL of the workflow repository
- input.workflowPath: the workflow file name
- input.branchOrTagName: master
- input.workflowInputs: one entry per template parameter, mapped with ${{ parameters.name }}

TEMPLATE EXAMPLE:
apiVersion: scaffolder.backstage.io/v1beta3\\nkind: Template\\nmetadata:\\n  name: example\\n  title: Example Template\\nspec:\\n  owner: platform-team\\n  type: infrastructure\\n  parameters:\\n    - title: Config\\n      required:\\n        - bucketName\\n      properties:\\n        bucketName:\\n          type: string\\n  steps:\\n    - id: trigger\\n      action: github:workflows:dispatch\\n      input:\\n        repoUrl: https://github.com/user/repo\\n        workflowPath: example.yml\\n        branchOrTagName: master\\n        workflowInputs:\\n          bucketName: ${{ parameters.bucketName }}

WORKFLOW EXAMPLE:
name: Create S3 Bucket\\non:\\n  workflow_dispatch:\\n    inputs:\\n      bucketName:\\n        description: 'Name of the S3 bucket'\\n        required: true\\n        type: string\\njobs:\\n  create-s3:\\n    runs-on: ubuntu-latest\\n    steps:\\n      - name: Create S3 bucket\\n        run: aws s3api create-bucket --bucket ${{ inputs.bucketName }}

Return exactly this JSON structure:
{
  "templateContent": "ESCAPED_YAML_STRING",
  "workflowContent": "ESCAPED_YAML_STRING",
  "workflowFileName": "filename.yml",
  "parameters": ["param1", "param2"]
}"""


class PromptBuilder:
    """Assembles system and user prompts from a project profile."""

    def __init__(
        self,
        *,
        secrets: SecretSpec | None = None,
        actions: Sequence[str] | None = None,
    ) -> None:
        self.secrets = _normalise_secrets(secrets)
        self.actions = _normalise_actions(actions)

    def build(
        self,
        profile: ProjectProfile,
        user_request: str,
        repository_url: str | None = None,
    ) -> PromptPair:
        """Return the prompt pair for a workflow generation request."""
        return PromptPair(
            system_prompt=self._system_prompt(profile),
            user_prompt=self._user_prompt(profile, user_request, repository_url),
        )

    def build_template_prompt(self, request: TemplateRequest) -> PromptPair:
        """Return the prompt pair for template + workflow envelope generation."""
        user_prompt = "\n".join(
            [
                f"Generate for: {request.prompt}",
                f"Name: {request.name}",
                f"Title: {request.title}",
                f"Description: {request.description or 'AI-generated template'}",
                f"Infrastructure: {request.infrastructure_type}",
                f"Workflow Repo: {request.workflow_repo}",
                "",
                "Return ONLY the JSON response with properly escaped YAML strings.",
            ]
        )
        return PromptPair(system_prompt=_TEMPLATE_SYSTEM_PROMPT, user_prompt=user_prompt)

    def _system_prompt(self, profile: ProjectProfile) -> str:
        lines: List[str] = [
            "You are a GitHub Actions expert. Produce a complete CI/CD pipeline "
            "as a single GitHub Actions workflow file: triggers, named jobs and ordered steps.",
            "",
            "Available GitHub Secrets (reference them by these exact names as ${{ secrets.NAME }}):",
        ]
        for name, description in self.secrets.items():
            lines.append(f"- {name} ({description})" if description else f"- {name}")

        lines.extend(["", "Use only these GitHub Actions, pinned to the exact versions listed:"])
        for action, purpose in self.actions.items():
            lines.append(f"- {action} ({purpose})" if purpose else f"- {action}")
        forbidden = ", ".join(FORBIDDEN_REFS)
        lines.append(
            f"Never use {forbidden} or any other unpinned reference; every `uses:` "
            "must carry an explicit version tag."
        )

        lines.extend(["", "Dependency installation:"])
        rules = INSTALL_RULES.get(profile.package_manager, INSTALL_RULES[PackageManager.NOT_APPLICABLE])
        lines.extend(f"- {rule}" for rule in rules)

        lines.extend(
            [
                "",
                "Rules:",
                "- Enable dependency caching only when a matching lock file was detected; "
                "otherwise omit caching entirely.",
                "- Every test step must set continue-on-error: true so failing tests do not block the pipeline.",
                "- Never write secret values to $GITHUB_ENV, $GITHUB_OUTPUT or any other shared environment state.",
                "- Where a secret is needed, reference ${{ secrets.NAME }} directly; never use ${{ env.NAME }} in its place.",
                "- Tag container images with ${{ github.sha }}, not a floating tag.",
                "",
                "Output only the raw workflow YAML. No explanations, no markdown, no code fences.",
            ]
        )
        return "\n".join(lines)

    def _user_prompt(
        self,
        profile: ProjectProfile,
        user_request: str,
        repository_url: str | None,
    ) -> str:
        lines = [f"User request: {user_request.strip()}"]
        if repository_url:
            lines.append(f"Repository: {repository_url}")
        lines.extend(["", "Project summary:", json.dumps(profile.to_dict(), indent=2)])

        guidance = list(self._guidance_lines(profile))
        if guidance:
            lines.extend(["", "Project-specific guidance:"])
            lines.extend(f"- {line}" for line in guidance)

        lines.extend(["", "Generate the GitHub Actions workflow YAML for this project."])
        return "\n".join(lines)

    def _guidance_lines(self, profile: ProjectProfile) -> Iterable[str]:
        descriptor = profile.type
        details = [
            f"framework: {profile.framework}" if profile.framework else None,
            f"build tool: {profile.build_tool}" if profile.build_tool else None,
        ]
        extras = ", ".join(item for item in details if item)
        yield f"Detected project type: {descriptor}" + (f" ({extras})" if extras else "")

        for project_type, framework, text in GUIDANCE:
            if project_type != profile.type:
                continue
            if framework is not None and framework != profile.framework:
                continue
            yield text

        template = SCRIPT_COMMANDS.get(profile.package_manager)
        if template:
            for script in GUIDED_SCRIPTS:
                if script not in profile.scripts:
                    continue
                command = template.format(script=script)
                if script == "test":
                    yield f"Run the `test` script with `{command}` and continue-on-error: true."
                else:
                    yield f"Run the `{script}` script with `{command}`."

        if profile.has_tests and "test" not in profile.scripts:
            yield "Tests were detected: run them with continue-on-error: true."
        if profile.has_docker:
            yield (
                "A Dockerfile was detected: build and push the image with docker/setup-buildx-action@v3 "
                "and docker/build-push-action@v5, tagged with ${{ github.sha }}."
            )


def _normalise_secrets(secrets: SecretSpec | None) -> dict[str, Optional[str]]:
    if secrets is None:
        return dict(DEFAULT_SECRETS)
    if isinstance(secrets, Mapping):
        return {str(name): (str(desc) if desc else None) for name, desc in secrets.items()}
    return {name: DEFAULT_SECRETS.get(name) for name in secrets}


def _normalise_actions(actions: Sequence[str] | None) -> dict[str, Optional[str]]:
    if not actions:
        return dict(PINNED_ACTIONS)
    for action in actions:
        if "@" not in action or action.endswith(FORBIDDEN_REFS):
            raise ValueError(f"Action '{action}' must be pinned to an explicit version")
    return {action: PINNED_ACTIONS.get(action) for action in actions}


__all__ = ["PromptBuilder"]
