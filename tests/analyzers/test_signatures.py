"""Tests for the ordered signature tables."""

from __future__ import annotations

from pipegen.analyzers.signatures import (
    BUILD_TOOL_SIGNATURES,
    FRAMEWORK_SIGNATURES,
    TYPE_MARKERS,
    SignatureContext,
    dependency,
    file_present,
    first_match,
)
from pipegen.models import ProjectType


def test_first_match_returns_first_label() -> None:
    table = (
        (dependency("a"), "first"),
        (dependency("a", "b"), "second"),
    )

    assert first_match(table, SignatureContext(dependencies={"A": "1"})) == "first"
    assert first_match(table, SignatureContext(dependencies={"b": "1"})) == "second"
    assert first_match(table, SignatureContext()) is None


def test_file_present_matches_globs() -> None:
    context = SignatureContext(files=frozenset({"Service.fsproj"}))

    assert file_present("*.fsproj")(context) is True
    assert first_match(TYPE_MARKERS, context) == ProjectType.DOTNET


def test_dev_dependencies_participate() -> None:
    context = SignatureContext(
        files=frozenset({"package.json"}),
        dev_dependencies={"vite": "5.0.0", "vue": "3.4.0"},
    )

    assert first_match(FRAMEWORK_SIGNATURES[ProjectType.NODEJS], context) == "Vue.js"
    assert first_match(BUILD_TOOL_SIGNATURES[ProjectType.NODEJS], context) == "Vite"


def test_python_build_tool_prefers_lock_files() -> None:
    context = SignatureContext(files=frozenset({"pyproject.toml", "poetry.lock", "requirements.txt"}))

    assert first_match(BUILD_TOOL_SIGNATURES[ProjectType.PYTHON], context) == "Poetry"
