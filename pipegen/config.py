"""Configuration loading for pipegen (.pipegen.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .logging import get_logger

CONFIG_FILENAME = ".pipegen.yml"
OPERATOR_CONFIG_ENV = "PIPEGEN_CONFIG"

# Settings that decide where credentials are sent. Only operator configuration
# may set them; a repository .pipegen.yml is input to the tool, not trusted.
CREDENTIAL_SETTINGS = {
    "llm": ("base_url", "api_key_env"),
    "github": ("api_url", "token_env"),
}

logger = get_logger("config")


class ConfigError(RuntimeError):
    """Raised when configuration is missing or cannot be parsed."""


@dataclass
class LLMConfig:
    """Generation client settings from .pipegen.yml."""

    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    base_url: Optional[str] = None
    api_key_env: Optional[str] = None
    request_timeout: Optional[float] = None


@dataclass
class PromptConfig:
    """Secrets and pinned actions advertised to the model."""

    secrets: List[str] = field(default_factory=list)
    actions: List[str] = field(default_factory=list)


@dataclass
class PublishConfig:
    """Where generated workflows land and how pull requests are opened."""

    base_branch: str = "main"
    branch_prefix: str = "ai-pipeline-"
    file_name: str = "generated-pipeline.yml"
    create_pull_request: bool = True


@dataclass
class GitHubConfig:
    """GitHub REST settings. The token itself always comes from the environment."""

    api_url: str = "https://api.github.com"
    token_env: str = "GITHUB_TOKEN"

    def resolve_token(self) -> Optional[str]:
        value = os.getenv(self.token_env)
        return value or None


@dataclass
class PipegenConfig:
    """Represents the high-level settings defined in .pipegen.yml."""

    root: Path
    llm: Optional[LLMConfig] = None
    prompt: PromptConfig = field(default_factory=PromptConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)


def load_config(config_path: Path, *, trusted: bool = False) -> PipegenConfig:
    """Load configuration from disk, returning defaults when the file is absent.

    ``config_path`` may be a repository root or a path next to its
    .pipegen.yml. Unless ``trusted`` is set, the credential routing settings
    in :data:`CREDENTIAL_SETTINGS` are ignored with a warning.
    """
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return PipegenConfig(root=root)
    return _parse_config(config_file, root, trusted=trusted)


def load_operator_config(config_path: Path | None = None) -> PipegenConfig:
    """Load the operator's own configuration file.

    The path comes from the caller (``--config``) or ``$PIPEGEN_CONFIG``.
    Without either, defaults apply. A named file that does not exist is an
    error.
    """
    if config_path is None:
        env_path = os.getenv(OPERATOR_CONFIG_ENV)
        if not env_path:
            return PipegenConfig(root=Path.cwd().resolve())
        config_path = Path(env_path)

    config_file = config_path.expanduser()
    if config_file.is_dir():
        config_file = config_file / CONFIG_FILENAME
    if not config_file.is_file():
        raise ConfigError(f"Operator configuration not found: {config_file}")
    return _parse_config(config_file.resolve(), config_file.resolve().parent, trusted=True)


def merge_operator_settings(repo_config: PipegenConfig, operator: PipegenConfig) -> PipegenConfig:
    """Combine repository settings with the operator's credential routing.

    Repository values win for model tuning, prompts and publishing. Endpoint
    and credential variable names always come from ``operator``; operator
    model tuning fills whatever the repository leaves unset.
    """
    repo_llm = repo_config.llm or LLMConfig()
    operator_llm = operator.llm or LLMConfig()
    llm = LLMConfig(
        model=_first_set(repo_llm.model, operator_llm.model),
        temperature=_first_set(repo_llm.temperature, operator_llm.temperature),
        max_tokens=_first_set(repo_llm.max_tokens, operator_llm.max_tokens),
        base_url=operator_llm.base_url,
        api_key_env=operator_llm.api_key_env,
        request_timeout=_first_set(repo_llm.request_timeout, operator_llm.request_timeout),
    )
    return replace(repo_config, llm=llm, github=replace(operator.github))


def _first_set(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _parse_config(config_file: Path, root: Path, *, trusted: bool) -> PipegenConfig:
    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    if "api_key" in _as_dict(data.get("llm")):
        raise ConfigError(
            "llm.api_key is not supported; set llm.api_key_env to the name of an environment variable"
        )

    if not trusted:
        data = _drop_credential_settings(data, config_file)

    llm_data = _as_dict(data.get("llm"))
    llm = None
    if llm_data:
        llm = LLMConfig(
            model=_as_str(llm_data.get("model")),
            temperature=_as_float(llm_data.get("temperature")),
            max_tokens=_as_int(llm_data.get("max_tokens")),
            base_url=_as_str(llm_data.get("base_url")),
            api_key_env=_as_str(llm_data.get("api_key_env")),
            request_timeout=_as_float(llm_data.get("request_timeout")),
        )

    prompt_data = _as_dict(data.get("prompt"))
    prompt = PromptConfig(
        secrets=_as_str_list(prompt_data.get("secrets")),
        actions=_as_str_list(prompt_data.get("actions")),
    )

    publish_data = _as_dict(data.get("publish"))
    publish = PublishConfig()
    if publish_data:
        publish.base_branch = _as_str(publish_data.get("base_branch")) or publish.base_branch
        publish.branch_prefix = _as_str(publish_data.get("branch_prefix")) or publish.branch_prefix
        publish.file_name = _as_str(publish_data.get("file_name")) or publish.file_name
        create_pr = _as_bool(publish_data.get("create_pull_request"))
        if create_pr is not None:
            publish.create_pull_request = create_pr

    github_data = _as_dict(data.get("github"))
    github = GitHubConfig()
    if github_data:
        github.api_url = _as_str(github_data.get("api_url")) or github.api_url
        github.token_env = _as_str(github_data.get("token_env")) or github.token_env

    return PipegenConfig(
        root=root,
        llm=llm,
        prompt=prompt,
        publish=publish,
        github=github,
    )


def _drop_credential_settings(data: Dict[str, Any], config_file: Path) -> Dict[str, Any]:
    cleaned = dict(data)
    for section, keys in CREDENTIAL_SETTINGS.items():
        values = _as_dict(data.get(section))
        ignored = [key for key in keys if key in values]
        if not ignored:
            continue
        for key in ignored:
            logger.warning(
                "Ignoring %s.%s from %s; set it in the operator configuration instead",
                section,
                key,
                config_file,
            )
        cleaned[section] = {key: value for key, value in values.items() if key not in ignored}
    return cleaned


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []
