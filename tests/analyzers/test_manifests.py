"""Tests for manifest readers."""

from __future__ import annotations

from pathlib import Path

from pipegen.analyzers.manifests import (
    load_java_manifest,
    load_node_manifest,
    load_python_manifest,
    parse_requirements,
)


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_parse_requirements_versions() -> None:
    packages = parse_requirements(
        "\n".join(
            [
                "# comment",
                "Flask==2.3.0",
                "requests>=2.31",
                "uvicorn[standard]",
                "-r base.txt",
                "pydantic==2.5.0 ; python_version >= '3.8'",
                "",
            ]
        )
    )

    assert packages == {
        "Flask": "2.3.0",
        "requests": ">=2.31",
        "uvicorn": "latest",
        "pydantic": "2.5.0",
    }


def test_parse_requirements_skips_vcs_and_url_lines() -> None:
    packages = parse_requirements(
        "git+https://github.com/acme/tools.git@v1#egg=tools\n"
        "https://files.example/wheels/lib-1.0-py3-none-any.whl\n"
        "hg+https://hg.example/repo\n"
        "django==4.2\n"
    )

    assert packages == {"django": "4.2"}


def test_requirements_with_byte_order_mark_keep_first_entry(tmp_path: Path) -> None:
    (tmp_path / "requirements.txt").write_text("flask==3.0.0\nrequests\n", encoding="utf-8-sig")

    manifest = load_python_manifest(tmp_path)

    assert manifest.dependencies == {"flask": "3.0.0", "requests": "latest"}


def test_python_manifest_merges_pyproject_and_dev_requirements(tmp_path: Path) -> None:
    _write(tmp_path / "requirements.txt", "fastapi==0.111.0\n")
    _write(tmp_path / "requirements-dev.txt", "pytest\n")
    _write(
        tmp_path / "pyproject.toml",
        '[project]\ndependencies = ["fastapi>=0.100", "httpx==0.27.0"]\n'
        '[project.optional-dependencies]\ntest = ["coverage"]\n',
    )

    manifest = load_python_manifest(tmp_path)

    assert manifest.dependencies == {"fastapi": "0.111.0", "httpx": "0.27.0"}
    assert manifest.dev_dependencies == {"pytest": "latest", "coverage": "latest"}


def test_poetry_dependencies_skip_python(tmp_path: Path) -> None:
    _write(
        tmp_path / "pyproject.toml",
        '[tool.poetry.dependencies]\npython = "^3.11"\ndjango = "^5.0"\n'
        '[tool.poetry.group.dev.dependencies]\npytest = { version = "^8.0" }\n',
    )

    manifest = load_python_manifest(tmp_path)

    assert manifest.dependencies == {"django": "^5.0"}
    assert manifest.dev_dependencies == {"pytest": "^8.0"}


def test_malformed_manifests_are_tolerated(tmp_path: Path) -> None:
    _write(tmp_path / "package.json", "{not json")
    _write(tmp_path / "pyproject.toml", "[project\n")
    _write(tmp_path / "pom.xml", "<project>")

    assert load_node_manifest(tmp_path).dependencies == {}
    assert load_python_manifest(tmp_path).dependencies == {}
    assert load_java_manifest(tmp_path).dependencies == {}


def test_node_manifest_reads_scripts(tmp_path: Path) -> None:
    _write(
        tmp_path / "package.json",
        '{"dependencies": {"koa": "^2.0.0"}, "devDependencies": {"jest": "29"},'
        ' "scripts": {"test": "jest", "build": "tsc"}}',
    )

    manifest = load_node_manifest(tmp_path)

    assert manifest.dependencies == {"koa": "^2.0.0"}
    assert manifest.dev_dependencies == {"jest": "29"}
    assert manifest.scripts == {"test": "jest", "build": "tsc"}


def test_gradle_test_configurations_are_dev(tmp_path: Path) -> None:
    _write(
        tmp_path / "build.gradle",
        "dependencies {\n"
        "    implementation 'io.quarkus:quarkus-core:3.6.0'\n"
        "    testImplementation 'org.junit.jupiter:junit-jupiter:5.10.0'\n"
        "}\n",
    )

    manifest = load_java_manifest(tmp_path)

    assert manifest.dependencies == {"io.quarkus:quarkus-core": "3.6.0"}
    assert manifest.dev_dependencies == {"org.junit.jupiter:junit-jupiter": "5.10.0"}
