from __future__ import annotations

import io
import logging
from pathlib import Path

from pipegen.logging import configure_logging, format_preview, get_logger


def test_get_logger_nests_under_pipegen() -> None:
    assert get_logger().name == "pipegen"
    assert get_logger("orchestrator").name == "pipegen.orchestrator"


def test_configure_logging_replaces_handlers_on_repeat_calls() -> None:
    stream = io.StringIO()
    configure_logging(stream=stream)
    logger = configure_logging(verbose=True, stream=stream)

    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False

    get_logger("cli").debug("hello")
    assert "[pipegen] DEBUG hello" in stream.getvalue()


def test_configure_logging_info_level_hides_debug() -> None:
    stream = io.StringIO()
    configure_logging(stream=stream)

    get_logger("cli").debug("hidden")
    get_logger("cli").info("shown")

    output = stream.getvalue()
    assert "hidden" not in output
    assert "[pipegen] INFO shown" in output


def test_configure_logging_writes_file_sink(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "pipegen.log"
    logger = configure_logging(log_file=log_file, stream=io.StringIO())

    get_logger("publisher").warning("branch exists")
    for handler in logger.handlers:
        handler.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "WARNING pipegen.publisher: branch exists" in text


def test_format_preview_truncates_long_text() -> None:
    text = "\n".join(f"line {i}" for i in range(15))
    preview = format_preview(text, max_lines=3)
    assert preview == "line 0\nline 1\nline 2\n..."


def test_format_preview_keeps_short_text() -> None:
    assert format_preview("a\nb") == "a\nb"
