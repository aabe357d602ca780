"""Readers for the dependency manifests of each supported toolchain.

Every loader tolerates a missing, unreadable or malformed file and returns
empty mappings instead of raising: an absent manifest only means the feature
is not present.
"""

from __future__ import annotations

import json
import re
import tomllib
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

_LATEST = "latest"
_REQUIREMENT_NAME = re.compile(r"^([A-Za-z0-9][A-Za-z0-9._-]*)(\[[^\]]*\])?\s*(.*)$")
_URL_REQUIREMENT = re.compile(r"^(?:(?:git|hg|svn|bzr)\+|[A-Za-z][A-Za-z0-9+.-]*://)")


@dataclass
class ManifestData:
    """Dependencies, dev dependencies and scripts read from a manifest."""

    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    scripts: Dict[str, str] = field(default_factory=dict)


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError):
        return None


# Node.js


def load_node_manifest(root: Path) -> ManifestData:
    """Return package.json dependencies, devDependencies and scripts."""
    text = _read_text(root / "package.json")
    if text is None:
        return ManifestData()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return ManifestData()
    if not isinstance(data, dict):
        return ManifestData()

    return ManifestData(
        dependencies=_string_mapping(data.get("dependencies")),
        dev_dependencies=_string_mapping(data.get("devDependencies")),
        scripts=_string_mapping(data.get("scripts")),
    )


def _string_mapping(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(key): str(item) for key, item in value.items() if isinstance(item, (str, int, float))}


# Python


def load_python_manifest(root: Path) -> ManifestData:
    """Collect Python dependencies from requirements files, pyproject.toml and Pipfile."""
    manifest = ManifestData()

    manifest.dependencies.update(parse_requirements(_read_text(root / "requirements.txt") or ""))
    for name in ("requirements-dev.txt", "requirements-test.txt", "dev-requirements.txt"):
        manifest.dev_dependencies.update(parse_requirements(_read_text(root / name) or ""))

    pyproject = _read_text(root / "pyproject.toml")
    if pyproject is not None:
        runtime, dev = _parse_pyproject(pyproject)
        _merge_missing(manifest.dependencies, runtime)
        _merge_missing(manifest.dev_dependencies, dev)

    pipfile = _read_text(root / "Pipfile")
    if pipfile is not None:
        runtime, dev = _parse_pipfile(pipfile)
        _merge_missing(manifest.dependencies, runtime)
        _merge_missing(manifest.dev_dependencies, dev)

    return manifest


def parse_requirements(text: str) -> Dict[str, str]:
    """Map requirement names to pinned versions, raw specifiers or ``latest``."""
    packages: Dict[str, str] = {}
    for line in text.splitlines():
        stripped = line.split(" #", 1)[0].strip()
        if not stripped or stripped.startswith(("#", "-")):
            continue
        if _URL_REQUIREMENT.match(stripped):
            continue
        stripped = stripped.split(";", 1)[0].strip()
        name, version = _split_requirement(stripped)
        if name:
            packages[name] = version
    return packages


def _split_requirement(requirement: str) -> tuple[str, str]:
    match = _REQUIREMENT_NAME.match(requirement)
    if not match:
        return "", _LATEST
    name = match.group(1)
    specifier = match.group(3).strip()
    if not specifier:
        return name, _LATEST
    if specifier.startswith("==") and "," not in specifier:
        return name, specifier[2:].strip() or _LATEST
    return name, specifier


def _parse_pyproject(text: str) -> tuple[Dict[str, str], Dict[str, str]]:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError:
        return {}, {}

    runtime: Dict[str, str] = {}
    dev: Dict[str, str] = {}

    project = data.get("project")
    if isinstance(project, dict):
        for requirement in project.get("dependencies", []) or []:
            if isinstance(requirement, str):
                name, version = _split_requirement(requirement.split(";", 1)[0].strip())
                if name:
                    runtime[name] = version
        optional = project.get("optional-dependencies", {}) or {}
        if isinstance(optional, dict):
            for extra in ("dev", "test", "tests", "testing"):
                for requirement in optional.get(extra, []) or []:
                    if isinstance(requirement, str):
                        name, version = _split_requirement(requirement.split(";", 1)[0].strip())
                        if name:
                            dev[name] = version

    tool = data.get("tool")
    poetry = tool.get("poetry", {}) if isinstance(tool, dict) else {}
    if isinstance(poetry, dict):
        runtime.update(_poetry_mapping(poetry.get("dependencies")))
        dev.update(_poetry_mapping(poetry.get("dev-dependencies")))
        groups = poetry.get("group", {})
        if isinstance(groups, dict):
            for group in groups.values():
                if isinstance(group, dict):
                    dev.update(_poetry_mapping(group.get("dependencies")))

    return runtime, dev


def _poetry_mapping(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    result: Dict[str, str] = {}
    for name, spec in value.items():
        if str(name).lower() == "python":
            continue
        if isinstance(spec, str):
            result[str(name)] = spec
        elif isinstance(spec, dict) and isinstance(spec.get("version"), str):
            result[str(name)] = spec["version"]
        else:
            result[str(name)] = _LATEST
    return result


def _parse_pipfile(text: str) -> tuple[Dict[str, str], Dict[str, str]]:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError:
        return {}, {}

    def _section(key: str) -> Dict[str, str]:
        values = data.get(key)
        if not isinstance(values, dict):
            return {}
        result: Dict[str, str] = {}
        for name, spec in values.items():
            if isinstance(spec, str) and spec != "*":
                result[str(name)] = spec.lstrip("=") if spec.startswith("==") else spec
            else:
                result[str(name)] = _LATEST
        return result

    return _section("packages"), _section("dev-packages")


def _merge_missing(target: Dict[str, str], source: Dict[str, str]) -> None:
    for name, version in source.items():
        target.setdefault(name, version)


# Java


def load_java_manifest(root: Path) -> ManifestData:
    """Collect Maven and Gradle dependencies keyed by ``group:artifact``."""
    manifest = ManifestData()
    pom = _read_text(root / "pom.xml")
    if pom is not None:
        runtime, test = _parse_pom(pom)
        manifest.dependencies.update(runtime)
        manifest.dev_dependencies.update(test)

    for name in ("build.gradle", "build.gradle.kts"):
        gradle = _read_text(root / name)
        if gradle is not None:
            runtime, test = _parse_gradle(gradle)
            _merge_missing(manifest.dependencies, runtime)
            _merge_missing(manifest.dev_dependencies, test)
    return manifest


def _parse_pom(text: str) -> tuple[Dict[str, str], Dict[str, str]]:
    runtime: Dict[str, str] = {}
    test: Dict[str, str] = {}
    try:
        root = ET.fromstring(text)
    except ET.ParseError:
        return runtime, test

    namespace = _detect_xml_namespace(root)
    prefix = f"{{{namespace}}}" if namespace else ""

    for dep in root.findall(f".//{prefix}dependency"):
        group = dep.findtext(f"{prefix}groupId", default="").strip()
        artifact = dep.findtext(f"{prefix}artifactId", default="").strip()
        if not group or not artifact:
            continue
        version = dep.findtext(f"{prefix}version", default="").strip() or _LATEST
        scope = dep.findtext(f"{prefix}scope", default="").strip()
        target = test if scope == "test" else runtime
        target[f"{group}:{artifact}"] = version
    return runtime, test


def _detect_xml_namespace(element: ET.Element) -> str | None:
    match = re.match(r"\{(.+)}", element.tag)
    return match.group(1) if match else None


_GRADLE_DEPENDENCY = re.compile(
    r"^\s*(\w+)\s*\(?\s*['\"]([\w\-.]+):([\w\-.]+)(?::([\w\-.+]+))?['\"]"
)


def _parse_gradle(text: str) -> tuple[Dict[str, str], Dict[str, str]]:
    runtime: Dict[str, str] = {}
    test: Dict[str, str] = {}
    for line in text.splitlines():
        if line.strip().startswith("//"):
            continue
        match = _GRADLE_DEPENDENCY.match(line)
        if not match:
            continue
        configuration, group, artifact, version = match.groups()
        target = test if configuration.lower().startswith("test") else runtime
        target[f"{group}:{artifact}"] = version or _LATEST
    return runtime, test


# Go


def load_go_manifest(root: Path) -> ManifestData:
    """Collect module requirements from go.mod."""
    text = _read_text(root / "go.mod")
    if text is None:
        return ManifestData()

    dependencies: Dict[str, str] = {}
    in_block = False
    for raw in text.splitlines():
        line = raw.split("//", 1)[0].strip()
        if not line:
            continue
        if line.startswith("require ("):
            in_block = True
            continue
        if in_block and line == ")":
            in_block = False
            continue
        if line.startswith("require "):
            line = line[len("require "):].strip()
        elif not in_block:
            continue
        parts = line.split()
        if len(parts) >= 2:
            dependencies[parts[0]] = parts[1]
    return ManifestData(dependencies=dependencies)


# .NET


def load_dotnet_manifest(root: Path, project_files: Iterable[str]) -> ManifestData:
    """Collect PackageReference items from top-level project files."""
    dependencies: Dict[str, str] = {}
    for name in project_files:
        if not name.endswith((".csproj", ".fsproj")):
            continue
        text = _read_text(root / name)
        if text is None:
            continue
        try:
            project = ET.fromstring(text)
        except ET.ParseError:
            continue
        namespace = _detect_xml_namespace(project)
        prefix = f"{{{namespace}}}" if namespace else ""
        for reference in project.iter(f"{prefix}PackageReference"):
            package = reference.get("Include")
            if not package:
                continue
            version = reference.get("Version") or reference.findtext(f"{prefix}Version") or _LATEST
            dependencies[package] = version.strip()
    return ManifestData(dependencies=dependencies)


__all__ = [
    "ManifestData",
    "load_dotnet_manifest",
    "load_go_manifest",
    "load_java_manifest",
    "load_node_manifest",
    "load_python_manifest",
    "parse_requirements",
]
