from __future__ import annotations

import logging
from pathlib import Path

import pytest

from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable repo builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture(autouse=True)
def _reset_pipegen_logger() -> None:
    """Undo CLI logging setup so caplog sees pipegen records in every test."""
    logger = logging.getLogger("pipegen")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def _clear_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "PIPEGEN_LLM_API_KEY",
        "OPENAI_API_KEY",
        "PIPEGEN_LLM_MODEL",
        "OPENAI_MODEL",
        "PIPEGEN_LLM_BASE_URL",
        "OPENAI_BASE_URL",
        "GITHUB_TOKEN",
        "PIPEGEN_CONFIG",
    ):
        monkeypatch.delenv(key, raising=False)
