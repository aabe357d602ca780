"""Logging helpers shared by the CLI, the service and the pipeline stages."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

ROOT_LOGGER = "pipegen"
CONSOLE_FORMAT = "[pipegen] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``pipegen.<name>``, or the root pipegen logger when ``name`` is empty."""
    if not name:
        return logging.getLogger(ROOT_LOGGER)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Route pipegen records to stderr (and optionally a file).

    Generated workflows and JSON payloads are written to stdout, so console
    logging never shares that stream unless a caller passes it explicitly.
    Calling this again replaces the handlers installed by the previous call.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = get_logger()
    logger.setLevel(level)
    logger.propagate = False
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    handlers: list[logging.Handler] = [
        _handler(logging.StreamHandler(stream or sys.stderr), level, CONSOLE_FORMAT)
    ]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            _handler(logging.FileHandler(log_file, encoding="utf-8"), level, FILE_FORMAT)
        )
    for handler in handlers:
        logger.addHandler(handler)
    return logger


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def format_preview(text: str, *, max_lines: int = 10) -> str:
    """Return the first ``max_lines`` lines of generated text, marking any cut."""
    lines = text.splitlines()
    if len(lines) <= max_lines:
        return "\n".join(lines)
    return "\n".join(lines[:max_lines] + ["..."])


__all__ = ["configure_logging", "format_preview", "get_logger"]
