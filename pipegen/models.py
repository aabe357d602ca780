"""Core data models shared across pipegen components."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union


class ProjectType:
    """Closed set of toolchains the classifier can assign."""

    NODEJS = "nodejs"
    PYTHON = "python"
    DOTNET = "dotnet"
    JAVA = "java"
    GO = "go"
    UNKNOWN = "unknown"

    ALL: Tuple[str, ...] = (NODEJS, PYTHON, DOTNET, JAVA, GO, UNKNOWN)


class PackageManager:
    """Lock-file derived install strategy for Node.js projects."""

    NPM_NO_LOCK = "npm-no-lock"
    NPM_LOCK = "npm-lock"
    YARN = "yarn"
    PNPM = "pnpm"
    NOT_APPLICABLE = "n/a"

    ALL: Tuple[str, ...] = (NPM_NO_LOCK, NPM_LOCK, YARN, PNPM, NOT_APPLICABLE)


@dataclass(frozen=True)
class ProjectProfile:
    """Structured summary of a repository's toolchain."""

    type: str = ProjectType.UNKNOWN
    framework: Optional[str] = None
    build_tool: Optional[str] = None
    package_manager: str = PackageManager.NOT_APPLICABLE
    has_docker: bool = False
    has_tests: bool = False
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    scripts: Dict[str, str] = field(default_factory=dict)
    files: Tuple[str, ...] = ()
    structure: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Return the camelCase summary embedded in prompts and API output."""
        return {
            "type": self.type,
            "framework": self.framework,
            "buildTool": self.build_tool,
            "packageManager": self.package_manager,
            "hasDocker": self.has_docker,
            "hasTests": self.has_tests,
            "dependencies": dict(self.dependencies),
            "devDependencies": dict(self.dev_dependencies),
            "scripts": dict(self.scripts),
            "files": list(self.files),
            "structure": list(self.structure),
        }


@dataclass(frozen=True)
class PromptPair:
    """System and user instructions for a single generation request."""

    system_prompt: str
    user_prompt: str


@dataclass(frozen=True)
class TemplateRequest:
    """Caller-supplied naming fields for template + workflow generation."""

    prompt: str
    name: str
    title: str
    description: str = ""
    infrastructure_type: str = "infrastructure"
    workflow_repo: str = ""


@dataclass(frozen=True)
class YamlResult:
    """Plain workflow text returned by the model."""

    content: str
    kind: str = "yaml"


@dataclass(frozen=True)
class StructuredResult:
    """JSON envelope carrying a template, a workflow and its metadata."""

    template_content: str
    workflow_content: str
    workflow_file_name: str
    parameters: Tuple[str, ...] = ()
    kind: str = "structured"


@dataclass(frozen=True)
class FallbackResult:
    """Deterministic substitute used when generation or parsing fails."""

    template_content: str
    workflow_content: str
    workflow_file_name: str
    parameters: Tuple[str, ...] = ()
    reason: Optional[str] = None
    kind: str = "fallback"


GenerationResult = Union[YamlResult, StructuredResult, FallbackResult]


def workflow_text(result: GenerationResult) -> str:
    """Return the workflow document carried by any result kind."""
    if result.kind == "yaml":
        return result.content  # type: ignore[union-attr]
    if result.kind in {"structured", "fallback"}:
        return result.workflow_content  # type: ignore[union-attr]
    raise ValueError(f"Unknown generation result kind: {result.kind}")


@dataclass
class PipelineOutcome:
    """Result of an ai:generate-pipeline run."""

    result: GenerationResult
    profile: ProjectProfile
    file_path: Optional[Path]
    pull_request_created: bool = False
    branch_name: Optional[str] = None
    pull_request_url: Optional[str] = None

    @property
    def pipeline_content(self) -> str:
        return workflow_text(self.result)

    @property
    def used_fallback(self) -> bool:
        return self.result.kind == "fallback"


@dataclass
class TemplateOutcome:
    """Result of an ai:generate-template run."""

    result: Union[StructuredResult, FallbackResult]
    parameters: List[str] = field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return self.result.kind == "fallback"
