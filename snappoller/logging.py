"""Logging utilities for snappoller commands."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "snappoller"

# Outcomes not listed here are logged at INFO.
_OUTCOME_LEVELS = {"FAILED": logging.ERROR, "SKIPPED": logging.DEBUG}


class ProjectFilter(logging.Filter):
    """Ensures every record carries ``project`` so formats can key lines by repository."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "project"):
            record.project = "-"
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the snappoller hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def log_outcome(
    logger: logging.Logger, slug: str, status: str, message: str | None = None
) -> None:
    """Emit the ``owner/name: STATUS (message)`` line for one polled project."""
    line = f"{slug}: {status} ({message})" if message else f"{slug}: {status}"
    logger.log(_OUTCOME_LEVELS.get(status, logging.INFO), line, extra={"project": slug})


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the snappoller logger for a CLI run or a service process.

    Console lines stay short. The optional file sink adds the thread and the
    project slug, which keeps pooled checks attributable.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter("[snappoller] %(levelname)s %(message)s"))
    logger.addHandler(console)

    if log_file is not None:
        sink = logging.FileHandler(log_file, encoding="utf-8")
        sink.setLevel(level)
        sink.addFilter(ProjectFilter())
        sink.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(project)s: %(message)s"
            )
        )
        logger.addHandler(sink)

    return logger


__all__ = ["ProjectFilter", "configure_logging", "get_logger", "log_outcome"]
