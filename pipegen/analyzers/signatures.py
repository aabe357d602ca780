"""Ordered signature tables used to classify repositories.

Each table is a sequence of ``(predicate, label)`` pairs evaluated in order;
the first predicate that holds decides the label. Adding a signature means
adding a row, never editing detection code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Callable, Dict, FrozenSet, Mapping, Optional, Sequence, Tuple

from ..models import ProjectType


@dataclass(frozen=True)
class SignatureContext:
    """Facts a signature predicate may inspect."""

    files: FrozenSet[str] = frozenset()
    dependencies: Mapping[str, str] = field(default_factory=dict)
    dev_dependencies: Mapping[str, str] = field(default_factory=dict)

    def dependency_names(self) -> FrozenSet[str]:
        return frozenset(
            name.lower() for name in (*self.dependencies.keys(), *self.dev_dependencies.keys())
        )


Predicate = Callable[[SignatureContext], bool]
SignatureTable = Sequence[Tuple[Predicate, str]]


def dependency(*names: str) -> Predicate:
    """Match when any of ``names`` is a (dev) dependency, case-insensitively."""
    wanted = frozenset(name.lower() for name in names)

    def _predicate(context: SignatureContext) -> bool:
        return not wanted.isdisjoint(context.dependency_names())

    return _predicate


def dependency_prefix(*prefixes: str) -> Predicate:
    """Match when a dependency coordinate starts with any of ``prefixes``."""
    lowered = tuple(prefix.lower() for prefix in prefixes)

    def _predicate(context: SignatureContext) -> bool:
        return any(name.startswith(lowered) for name in context.dependency_names())

    return _predicate


def file_present(*patterns: str) -> Predicate:
    """Match when a top-level entry matches any glob in ``patterns``."""

    def _predicate(context: SignatureContext) -> bool:
        return any(
            fnmatchcase(name, pattern) for name in context.files for pattern in patterns
        )

    return _predicate


def any_of(*predicates: Predicate) -> Predicate:
    def _predicate(context: SignatureContext) -> bool:
        return any(predicate(context) for predicate in predicates)

    return _predicate


def first_match(table: SignatureTable, context: SignatureContext) -> Optional[str]:
    """Return the label of the first matching row, or None."""
    for predicate, label in table:
        if predicate(context):
            return label
    return None


TYPE_MARKERS: SignatureTable = (
    (file_present("package.json"), ProjectType.NODEJS),
    (file_present("requirements.txt", "pyproject.toml", "setup.py", "Pipfile"), ProjectType.PYTHON),
    (file_present("*.csproj", "*.fsproj", "*.sln"), ProjectType.DOTNET),
    (file_present("pom.xml", "build.gradle", "build.gradle.kts"), ProjectType.JAVA),
    (file_present("go.mod"), ProjectType.GO),
)


FRAMEWORK_SIGNATURES: Dict[str, SignatureTable] = {
    ProjectType.NODEJS: (
        (dependency("next"), "Next.js"),
        (dependency("nuxt"), "Nuxt.js"),
        (dependency("@angular/core"), "Angular"),
        (dependency("@nestjs/core"), "NestJS"),
        (dependency("gatsby"), "Gatsby"),
        (dependency("vue"), "Vue.js"),
        (dependency("svelte", "@sveltejs/kit"), "Svelte"),
        (dependency("react"), "React"),
        (dependency("express"), "Express.js"),
        (dependency("fastify"), "Fastify"),
        (dependency("koa"), "Koa"),
    ),
    ProjectType.PYTHON: (
        (dependency("django"), "Django"),
        (dependency("fastapi"), "FastAPI"),
        (dependency("flask"), "Flask"),
        (dependency("streamlit"), "Streamlit"),
        (dependency("tornado"), "Tornado"),
    ),
    ProjectType.DOTNET: (
        (dependency_prefix("microsoft.aspnetcore"), "ASP.NET Core"),
        (dependency_prefix("microsoft.azure.functions", "microsoft.azure.webjobs"), "Azure Functions"),
    ),
    ProjectType.JAVA: (
        (dependency_prefix("org.springframework.boot:", "org.springframework:"), "Spring Boot"),
        (dependency_prefix("io.quarkus:"), "Quarkus"),
        (dependency_prefix("io.micronaut:"), "Micronaut"),
    ),
    ProjectType.GO: (
        (dependency("github.com/gin-gonic/gin"), "Gin"),
        (dependency_prefix("github.com/labstack/echo"), "Echo"),
        (dependency_prefix("github.com/gofiber/fiber"), "Fiber"),
        (dependency("github.com/gorilla/mux"), "Gorilla Mux"),
    ),
}


BUILD_TOOL_SIGNATURES: Dict[str, SignatureTable] = {
    ProjectType.NODEJS: (
        (any_of(dependency("vite"), file_present("vite.config.*")), "Vite"),
        (dependency("react-scripts"), "Create React App"),
        (any_of(dependency("webpack"), file_present("webpack.config.*")), "Webpack"),
        (dependency("parcel"), "Parcel"),
        (any_of(dependency("rollup"), file_present("rollup.config.*")), "Rollup"),
        (dependency("esbuild"), "esbuild"),
        (any_of(dependency("typescript"), file_present("tsconfig.json")), "TypeScript"),
    ),
    ProjectType.PYTHON: (
        (file_present("poetry.lock"), "Poetry"),
        (file_present("Pipfile", "Pipfile.lock"), "Pipenv"),
        (file_present("pdm.lock"), "PDM"),
        (file_present("uv.lock"), "uv"),
        (file_present("setup.py", "setup.cfg"), "setuptools"),
        (file_present("requirements.txt"), "pip"),
        (file_present("pyproject.toml"), "pip"),
    ),
    ProjectType.DOTNET: (
        (file_present("*.sln", "*.csproj", "*.fsproj"), "dotnet CLI"),
    ),
    ProjectType.JAVA: (
        (file_present("pom.xml"), "Maven"),
        (file_present("build.gradle", "build.gradle.kts"), "Gradle"),
    ),
    ProjectType.GO: (
        (file_present("Makefile"), "Make"),
        (file_present("go.mod"), "Go modules"),
    ),
}


TEST_TOOL_PACKAGES: FrozenSet[str] = frozenset(
    {
        "jest",
        "mocha",
        "vitest",
        "jasmine",
        "karma",
        "ava",
        "cypress",
        "playwright",
        "@playwright/test",
        "@testing-library/react",
        "supertest",
        "pytest",
        "nose",
        "nose2",
        "tox",
        "junit:junit",
        "org.junit.jupiter:junit-jupiter",
        "org.junit.jupiter:junit-jupiter-api",
        "org.testng:testng",
        "xunit",
        "nunit",
        "mstest.testframework",
        "github.com/stretchr/testify",
    }
)

TEST_DIRECTORY_NAMES: FrozenSet[str] = frozenset(
    {"__tests__", "e2e", "cypress", "testing"}
)

CONTAINER_FILES: SignatureTable = (
    (
        file_present(
            "Dockerfile",
            "Dockerfile.*",
            "dockerfile",
            "Containerfile",
            "docker-compose.yml",
            "docker-compose.yaml",
            "compose.yml",
            "compose.yaml",
        ),
        "docker",
    ),
)


__all__ = [
    "BUILD_TOOL_SIGNATURES",
    "CONTAINER_FILES",
    "FRAMEWORK_SIGNATURES",
    "Predicate",
    "SignatureContext",
    "SignatureTable",
    "TEST_DIRECTORY_NAMES",
    "TEST_TOOL_PACKAGES",
    "TYPE_MARKERS",
    "any_of",
    "dependency",
    "dependency_prefix",
    "file_present",
    "first_match",
]
