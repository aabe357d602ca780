"""Fail-safe workflows and templates used when generation fails."""

from __future__ import annotations

import json
import re
from typing import List, Optional

from .models import FallbackResult, PackageManager, ProjectProfile, ProjectType
from .prompting.constants import SCRIPT_COMMANDS

_PLAIN_SCALAR = re.compile(r"^[A-Za-z0-9][A-Za-z0-9 _./-]*$")

DEFAULT_NODE_VERSION = "20"
DEFAULT_PYTHON_VERSION = "3.12"
DEFAULT_JAVA_VERSION = "17"
DEFAULT_DOTNET_VERSION = "8.0.x"


def build_fallback(
    profile: ProjectProfile | None,
    template_name: str,
    template_title: str,
    template_description: str | None,
    infra_type: str,
    workflow_repo: str,
    *,
    reason: str | None = None,
) -> FallbackResult:
    """Return a minimal scaffolder template and its dispatch workflow."""
    name = _scalar(template_name)
    title = _scalar(template_title)
    tags = [_scalar(infra_type), "ai-generated"]
    if profile is not None and profile.type != ProjectType.UNKNOWN:
        tags.append(profile.type)

    template_lines = [
        "apiVersion: scaffolder.backstage.io/v1beta3",
        "kind: Template",
        "metadata:",
        f"  name: {name}",
        f"  title: {title}",
        f"  description: {_scalar(template_description or 'AI-generated template')}",
        "  tags:",
        *(f"    - {tag}" for tag in tags),
        "spec:",
        "  owner: platform-team",
        "  type: infrastructure",
        "  parameters:",
        "    - title: Configuration",
        "      required:",
        "        - resourceName",
        "      properties:",
        "        resourceName:",
        "          title: Resource Name",
        "          type: string",
        "          description: Name of the resource to create",
        "  steps:",
        "    - id: trigger-workflow",
        "      name: Trigger GitHub Workflow",
        "      action: github:workflows:dispatch",
        "      input:",
        f"        repoUrl: {_scalar(f'https://github.com/{workflow_repo}')}",
        f"        workflowPath: {_scalar(f'{template_name}.yml')}",
        "        branchOrTagName: master",
        "        workflowInputs:",
        "          resourceName: ${{ parameters.resourceName }}",
        "  output:",
        "    links:",
        "      - title: View Workflow",
        f"        url: {_scalar(f'https://github.com/{workflow_repo}/actions')}",
    ]

    workflow_lines = [
        f"name: {title}",
        "on:",
        "  workflow_dispatch:",
        "    inputs:",
        "      resourceName:",
        '        description: "Resource Name"',
        "        required: true",
        "        type: string",
        "jobs:",
        "  provision:",
        "    runs-on: ubuntu-latest",
        "    steps:",
        "      - name: Provision Resource",
        '        run: echo "Provisioning ${{ github.event.inputs.resourceName }}"',
    ]

    return FallbackResult(
        template_content=_join(template_lines),
        workflow_content=_join(workflow_lines),
        workflow_file_name=f"{template_name}.yml",
        parameters=("resourceName",),
        reason=_format_reason(reason),
    )


def build_pipeline_fallback(
    profile: ProjectProfile,
    file_name: str,
    *,
    reason: str | None = None,
) -> FallbackResult:
    """Return a minimal CI workflow for the detected toolchain."""
    lines = [
        "name: CI",
        "on:",
        "  push:",
        "    branches: [main]",
        "  pull_request:",
        "    branches: [main]",
        "  workflow_dispatch:",
        "jobs:",
        "  build:",
        "    runs-on: ubuntu-latest",
        "    steps:",
        "      - name: Checkout",
        "        uses: actions/checkout@v4",
    ]
    lines.extend(_toolchain_steps(profile))
    if profile.has_docker:
        lines.extend(
            [
                "      - name: Build container image",
                "        run: docker build -t ${{ github.event.repository.name }}:${{ github.sha }} .",
            ]
        )

    return FallbackResult(
        template_content="",
        workflow_content=_join(lines),
        workflow_file_name=file_name,
        parameters=(),
        reason=_format_reason(reason),
    )


def _toolchain_steps(profile: ProjectProfile) -> List[str]:
    builders = {
        ProjectType.NODEJS: _node_steps,
        ProjectType.PYTHON: _python_steps,
        ProjectType.JAVA: _java_steps,
        ProjectType.GO: _go_steps,
        ProjectType.DOTNET: _dotnet_steps,
    }
    builder = builders.get(profile.type)
    if builder is None:
        return [
            "      - name: Report toolchain",
            '        run: echo "No supported toolchain detected; add build steps here."',
        ]
    return builder(profile)


def _step(name: str, run: str, *, allow_failure: bool = False) -> List[str]:
    lines = [f"      - name: {name}", f"        run: {run}"]
    if allow_failure:
        lines.append("        continue-on-error: true")
    return lines


def _node_steps(profile: ProjectProfile) -> List[str]:
    manager = profile.package_manager
    lines: List[str] = []
    if manager == PackageManager.PNPM:
        lines.extend(
            [
                "      - name: Set up pnpm",
                "        uses: pnpm/action-setup@v4",
                "        with:",
                "          version: 9",
            ]
        )
    lines.extend(
        [
            "      - name: Set up Node.js",
            "        uses: actions/setup-node@v4",
            "        with:",
            f'          node-version: "{DEFAULT_NODE_VERSION}"',
        ]
    )
    cache = {
        PackageManager.NPM_LOCK: "npm",
        PackageManager.YARN: "yarn",
        PackageManager.PNPM: "pnpm",
    }.get(manager)
    if cache:
        lines.append(f"          cache: {cache}")

    install = {
        PackageManager.NPM_LOCK: "npm ci",
        PackageManager.YARN: "yarn install --frozen-lockfile",
        PackageManager.PNPM: "pnpm install --frozen-lockfile",
    }.get(manager, "npm install")
    lines.extend(_step("Install dependencies", install))

    command = SCRIPT_COMMANDS.get(manager, SCRIPT_COMMANDS[PackageManager.NPM_NO_LOCK])
    if "lint" in profile.scripts:
        lines.extend(_step("Lint", command.format(script="lint")))
    if "test" in profile.scripts:
        lines.extend(_step("Run tests", command.format(script="test"), allow_failure=True))
    if "build" in profile.scripts:
        lines.extend(_step("Build", command.format(script="build")))
    return lines


def _python_steps(profile: ProjectProfile) -> List[str]:
    lines = [
        "      - name: Set up Python",
        "        uses: actions/setup-python@v5",
        "        with:",
        f'          python-version: "{DEFAULT_PYTHON_VERSION}"',
    ]
    files = set(profile.files)
    if profile.build_tool == "Poetry":
        install = "python -m pip install poetry && poetry install"
        test = "poetry run pytest"
    elif "requirements.txt" in files:
        install = "python -m pip install -r requirements.txt"
        test = "python -m pytest"
    else:
        install = "python -m pip install ."
        test = "python -m pytest"
    lines.extend(_step("Install dependencies", install))
    if profile.has_tests:
        lines.extend(_step("Run tests", test, allow_failure=True))
    return lines


def _java_steps(profile: ProjectProfile) -> List[str]:
    lines = [
        "      - name: Set up JDK",
        "        uses: actions/setup-java@v4",
        "        with:",
        "          distribution: temurin",
        f'          java-version: "{DEFAULT_JAVA_VERSION}"',
    ]
    if profile.build_tool == "Gradle":
        gradle = "./gradlew" if "gradlew" in profile.files else "gradle"
        lines.extend(_step("Build", f"{gradle} build -x test"))
        if profile.has_tests:
            lines.extend(_step("Run tests", f"{gradle} test", allow_failure=True))
    else:
        lines.extend(_step("Build", "mvn -B package -DskipTests"))
        if profile.has_tests:
            lines.extend(_step("Run tests", "mvn -B test", allow_failure=True))
    return lines


def _go_steps(profile: ProjectProfile) -> List[str]:
    lines = [
        "      - name: Set up Go",
        "        uses: actions/setup-go@v5",
        "        with:",
        "          go-version-file: go.mod",
    ]
    lines.extend(_step("Download modules", "go mod download"))
    lines.extend(_step("Build", "go build ./..."))
    if profile.has_tests:
        lines.extend(_step("Run tests", "go test ./...", allow_failure=True))
    return lines


def _dotnet_steps(profile: ProjectProfile) -> List[str]:
    lines = [
        "      - name: Set up .NET",
        "        uses: actions/setup-dotnet@v4",
        "        with:",
        f"          dotnet-version: {DEFAULT_DOTNET_VERSION}",
    ]
    lines.extend(_step("Restore", "dotnet restore"))
    lines.extend(_step("Build", "dotnet build --no-restore"))
    if profile.has_tests:
        lines.extend(_step("Run tests", "dotnet test --no-build", allow_failure=True))
    return lines


def _scalar(value: str) -> str:
    """Render ``value`` as a YAML scalar, quoting when it is not plain-safe."""
    if _PLAIN_SCALAR.match(value) and not value.endswith(" "):
        return value
    return json.dumps(value, ensure_ascii=False)


def _join(lines: List[str]) -> str:
    return "\n".join(lines) + "\n"


def _format_reason(reason: Optional[str]) -> Optional[str]:
    if not reason:
        return None
    cleaned = " ".join(reason.strip().split())
    if not cleaned:
        return None
    return cleaned[:200] + ("…" if len(cleaned) > 200 else "")


__all__ = ["build_fallback", "build_pipeline_fallback"]
