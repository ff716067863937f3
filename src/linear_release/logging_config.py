"""Structured logging configuration.

Release runs happen inside CI, where log lines are the only record of what
happened to each issue. structlog gives us event-style lines with the issue
identifier, label name and version attached as fields:

    {"event": "issue_updated", "issue": "MOB-12", "label": "mobile - 2.3.0"}

Inside GitHub Actions, warning and error lines are additionally prefixed
with the matching workflow command (``::warning::`` / ``::error::``) so
skipped issues show up as annotations on the run summary.

Usage:
    from linear_release.logging_config import setup_logging, get_logger

    setup_logging(environment="production")
    logger = get_logger(__name__)
    logger.info("label_created", name="mobile - 2.3.0")
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

_ANNOTATIONS = {
    "warning": "::warning::",
    "error": "::error::",
    "critical": "::error::",
    "exception": "::error::",
}


def annotate_for_github(_logger: Any, method_name: str, rendered: str) -> str:
    """Prefix a rendered line with a workflow command for its level.

    Runs after the renderer, so it receives the final string.
    """
    prefix = _ANNOTATIONS.get(method_name)
    if prefix is None:
        return rendered
    # Workflow commands are single-line
    return prefix + rendered.replace("\n", "%0A")


def setup_logging(
    environment: str | None = None,
    log_level: str | None = None,
    github_actions: bool | None = None,
) -> None:
    """Configure structured logging for the run.

    In development: console output, colorized outside of CI.
    In production: JSON lines, one per event.

    Args:
        environment: "development" or "production". Reads from
                     ENVIRONMENT env var if not provided.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Reads from LOG_LEVEL env var if not provided.
        github_actions: Emit workflow-command annotations for warnings and
                        errors. Detected from GITHUB_ACTIONS if not provided.

    Raises:
        ValueError: If the level is not a standard logging level name.
    """
    env = environment or os.environ.get("ENVIRONMENT", "development")
    level = log_level or os.environ.get("LOG_LEVEL", "INFO")
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level {level!r}")
    if github_actions is None:
        github_actions = os.environ.get("GITHUB_ACTIONS") == "true"

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if env == "production":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=not github_actions))

    if github_actions:
        processors.append(annotate_for_github)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # httpx logs every request through the standard library
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )


def get_logger(name: str) -> Any:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        A structlog bound logger
    """
    return structlog.get_logger(name)
