"""Repository classification into a project profile."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Dict, List, Sequence

from .analyzers.manifests import (
    ManifestData,
    load_dotnet_manifest,
    load_go_manifest,
    load_java_manifest,
    load_node_manifest,
    load_python_manifest,
)
from .analyzers.signatures import (
    BUILD_TOOL_SIGNATURES,
    CONTAINER_FILES,
    FRAMEWORK_SIGNATURES,
    TEST_DIRECTORY_NAMES,
    TEST_TOOL_PACKAGES,
    TYPE_MARKERS,
    SignatureContext,
    first_match,
)
from .logging import get_logger
from .models import PackageManager, ProjectProfile, ProjectType

MAX_DEPTH = 2
DIRECTORY_MARKER = "/"

# Hidden entries that matter for CI and are kept in the structure listing.
_HIDDEN_ALLOW_LIST = {
    ".github",
    ".gitlab-ci.yml",
    ".dockerignore",
    ".nvmrc",
    ".node-version",
    ".python-version",
    ".tool-versions",
    ".env.example",
}

# Listed, never descended.
_OPAQUE_DIRS = {
    ".git",
    "node_modules",
    "__pycache__",
    ".venv",
    "venv",
    "dist",
    "build",
    "target",
    "bin",
    "obj",
}

_TEST_NAME_TOKENS = ("test", "spec")


class InaccessibleRootError(RuntimeError):
    """Raised when the repository root cannot be read."""


def _manifest_for_type(project_type: str, root: Path, files: Sequence[str]) -> ManifestData:
    loaders: Dict[str, Callable[[], ManifestData]] = {
        ProjectType.NODEJS: lambda: load_node_manifest(root),
        ProjectType.PYTHON: lambda: load_python_manifest(root),
        ProjectType.DOTNET: lambda: load_dotnet_manifest(root, files),
        ProjectType.JAVA: lambda: load_java_manifest(root),
        ProjectType.GO: lambda: load_go_manifest(root),
    }
    loader = loaders.get(project_type)
    return loader() if loader else ManifestData()


def detect_package_manager(project_type: str, files: Sequence[str]) -> str:
    """Infer the Node.js install strategy from lock files."""
    if project_type != ProjectType.NODEJS:
        return PackageManager.NOT_APPLICABLE
    present = set(files)
    if "pnpm-lock.yaml" in present:
        return PackageManager.PNPM
    if "yarn.lock" in present:
        return PackageManager.YARN
    if "package-lock.json" in present:
        return PackageManager.NPM_LOCK
    return PackageManager.NPM_NO_LOCK


def _is_test_name(entry: str) -> bool:
    for part in entry.rstrip(DIRECTORY_MARKER).split("/"):
        lowered = part.lower()
        if lowered in TEST_DIRECTORY_NAMES:
            return True
        if any(token in lowered for token in _TEST_NAME_TOKENS):
            return True
    return False


def _list_directory(path: Path) -> List[os.DirEntry[str]]:
    with os.scandir(path) as iterator:
        return sorted(iterator, key=lambda entry: entry.name)


def _is_visible(name: str) -> bool:
    return not name.startswith(".") or name in _HIDDEN_ALLOW_LIST


def _walk_structure(root: Path) -> List[str]:
    entries: List[str] = []

    def _visit(directory: Path, prefix: str, depth: int) -> None:
        try:
            children = _list_directory(directory)
        except OSError:
            return
        for child in children:
            if not _is_visible(child.name):
                continue
            rel = f"{prefix}{child.name}"
            try:
                is_dir = child.is_dir()
            except OSError:
                continue
            if not is_dir:
                entries.append(rel)
                continue
            entries.append(f"{rel}{DIRECTORY_MARKER}")
            if depth < MAX_DEPTH and child.name not in _OPAQUE_DIRS:
                _visit(Path(child.path), f"{rel}/", depth + 1)

    _visit(root, "", 1)
    return entries


class RepoClassifier:
    """Inspects a checked-out repository and derives its project profile."""

    def __init__(self) -> None:
        self.logger = get_logger("classifier")

    def classify(self, root: str | Path) -> ProjectProfile:
        """Return the profile for the repository at ``root``."""
        root_path = Path(root).expanduser()
        if not root_path.exists():
            raise InaccessibleRootError(f"Repository path not found: {root}")
        if not root_path.is_dir():
            raise InaccessibleRootError(f"Repository path is not a directory: {root}")
        try:
            files = [entry.name for entry in _list_directory(root_path)]
        except OSError as exc:
            raise InaccessibleRootError(f"Repository path is not readable: {root}") from exc

        structure = _walk_structure(root_path)
        file_context = SignatureContext(files=frozenset(files))
        project_type = first_match(TYPE_MARKERS, file_context) or ProjectType.UNKNOWN

        manifest = _manifest_for_type(project_type, root_path, files)
        context = SignatureContext(
            files=frozenset(files),
            dependencies=manifest.dependencies,
            dev_dependencies=manifest.dev_dependencies,
        )

        framework = None
        build_tool = None
        if project_type != ProjectType.UNKNOWN:
            framework = first_match(FRAMEWORK_SIGNATURES.get(project_type, ()), context)
            build_tool = first_match(BUILD_TOOL_SIGNATURES.get(project_type, ()), context)

        has_tests = any(_is_test_name(entry) for entry in (*files, *structure)) or not (
            TEST_TOOL_PACKAGES.isdisjoint(context.dependency_names())
        )
        has_docker = first_match(CONTAINER_FILES, file_context) is not None

        profile = ProjectProfile(
            type=project_type,
            framework=framework,
            build_tool=build_tool,
            package_manager=detect_package_manager(project_type, files),
            has_docker=has_docker,
            has_tests=has_tests,
            dependencies=dict(manifest.dependencies),
            dev_dependencies=dict(manifest.dev_dependencies),
            scripts=dict(manifest.scripts) if project_type == ProjectType.NODEJS else {},
            files=tuple(files),
            structure=tuple(structure),
        )
        self.logger.debug(
            "Classified %s as %s (framework=%s, build_tool=%s, package_manager=%s)",
            root_path,
            profile.type,
            profile.framework or "none",
            profile.build_tool or "none",
            profile.package_manager,
        )
        return profile


__all__ = [
    "InaccessibleRootError",
    "RepoClassifier",
    "detect_package_manager",
]
