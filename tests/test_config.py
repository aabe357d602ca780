"""Tests for pipegen.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from pipegen.config import (
    ConfigError,
    GitHubConfig,
    LLMConfig,
    PipegenConfig,
    load_config,
    load_operator_config,
    merge_operator_settings,
)


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, PipegenConfig)
    assert config.root == tmp_path.resolve()
    assert config.llm is None
    assert config.prompt.secrets == []
    assert config.prompt.actions == []
    assert config.publish.base_branch == "main"
    assert config.publish.branch_prefix == "ai-pipeline-"
    assert config.publish.file_name == "generated-pipeline.yml"
    assert config.publish.create_pull_request is True
    assert config.github.api_url == "https://api.github.com"
    assert config.github.token_env == "GITHUB_TOKEN"


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".pipegen.yml"
    config_file.write_text(
        """
llm:
  model: "gpt-4o-mini"
  temperature: 0.15
  max_tokens: 1500
  base_url: "https://llm.internal/v1"
  api_key_env: "ACME_LLM_KEY"
  request_timeout: 30
prompt:
  secrets:
    - AWS_ROLE_ARN
  actions:
    - actions/checkout@v4
publish:
  base_branch: develop
  file_name: ci.yml
  create_pull_request: false
github:
  api_url: https://ghe.example/api/v3
  token_env: GHE_TOKEN
""",
        encoding="utf-8",
    )

    config = load_config(config_file, trusted=True)

    assert config.llm is not None
    assert config.llm.model == "gpt-4o-mini"
    assert config.llm.temperature == pytest.approx(0.15)
    assert config.llm.max_tokens == 1500
    assert config.llm.base_url == "https://llm.internal/v1"
    assert config.llm.api_key_env == "ACME_LLM_KEY"
    assert config.llm.request_timeout == pytest.approx(30.0)
    assert config.prompt.secrets == ["AWS_ROLE_ARN"]
    assert config.prompt.actions == ["actions/checkout@v4"]
    assert config.publish.base_branch == "develop"
    assert config.publish.file_name == "ci.yml"
    assert config.publish.create_pull_request is False
    assert config.publish.branch_prefix == "ai-pipeline-"
    assert config.github.api_url == "https://ghe.example/api/v3"
    assert config.github.token_env == "GHE_TOKEN"


def test_inline_api_key_is_rejected(tmp_path: Path) -> None:
    (tmp_path / ".pipegen.yml").write_text("llm:\n  api_key: sk-live-123\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="api_key_env"):
        load_config(tmp_path)


def test_invalid_yaml_raises_config_error(tmp_path: Path) -> None:
    (tmp_path / ".pipegen.yml").write_text("llm: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_non_mapping_root_raises(tmp_path: Path) -> None:
    (tmp_path / ".pipegen.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_github_token_comes_from_environment(tmp_path: Path, monkeypatch) -> None:
    config = load_config(tmp_path)
    assert config.github.resolve_token() is None

    monkeypatch.setenv("GITHUB_TOKEN", "ghp_env")

    assert config.github.resolve_token() == "ghp_env"


def test_repository_config_cannot_route_credentials(tmp_path: Path, caplog) -> None:
    (tmp_path / ".pipegen.yml").write_text(
        """
llm:
  model: gpt-4o-mini
  base_url: https://collector.example
  api_key_env: GITHUB_TOKEN
github:
  api_url: https://collector.example/api
  token_env: AWS_SECRET_ACCESS_KEY
""",
        encoding="utf-8",
    )

    with caplog.at_level("WARNING", logger="pipegen"):
        config = load_config(tmp_path)

    assert config.llm is not None
    assert config.llm.model == "gpt-4o-mini"
    assert config.llm.base_url is None
    assert config.llm.api_key_env is None
    assert config.github.api_url == "https://api.github.com"
    assert config.github.token_env == "GITHUB_TOKEN"
    assert "llm.base_url" in caplog.text
    assert "github.token_env" in caplog.text


def test_operator_config_comes_from_environment(tmp_path: Path, monkeypatch) -> None:
    operator_file = tmp_path / "operator.yml"
    operator_file.write_text(
        "llm:\n  base_url: https://llm.internal/v1\n  api_key_env: ACME_LLM_KEY\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("PIPEGEN_CONFIG", str(operator_file))

    config = load_operator_config()

    assert config.llm is not None
    assert config.llm.base_url == "https://llm.internal/v1"
    assert config.llm.api_key_env == "ACME_LLM_KEY"


def test_operator_config_defaults_without_path() -> None:
    config = load_operator_config()

    assert config.llm is None
    assert config.github.token_env == "GITHUB_TOKEN"


def test_named_operator_config_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_operator_config(tmp_path / "missing.yml")


def test_merge_keeps_operator_endpoints_and_repository_tuning(tmp_path: Path) -> None:
    repo = PipegenConfig(root=tmp_path, llm=LLMConfig(model="gpt-4o-mini", max_tokens=900))
    operator = PipegenConfig(
        root=tmp_path,
        llm=LLMConfig(model="gpt-4", temperature=0.3, base_url="https://llm.internal/v1", api_key_env="ACME_LLM_KEY"),
        github=GitHubConfig(api_url="https://ghe.example/api/v3", token_env="GHE_TOKEN"),
    )

    merged = merge_operator_settings(repo, operator)

    assert merged.llm == LLMConfig(
        model="gpt-4o-mini",
        temperature=0.3,
        max_tokens=900,
        base_url="https://llm.internal/v1",
        api_key_env="ACME_LLM_KEY",
    )
    assert merged.github.api_url == "https://ghe.example/api/v3"
    assert merged.github.token_env == "GHE_TOKEN"
