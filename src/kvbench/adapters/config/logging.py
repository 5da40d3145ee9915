# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Yakov Shkolnikov and contributors
"""Structured logging configuration.

Everything is written to stderr. Stdout carries only the summary and
comparison tables, so they can be piped.
"""

import logging
import sys
from typing import Any

import structlog

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Libraries that log connection chatter through stdlib logging
CLIENT_LOGGERS = ("valkey", "asyncio")


def _resolve_level(log_level: str) -> int:
    normalized = log_level.upper()
    if normalized not in VALID_LEVELS:
        logging.getLogger(__name__).warning(
            "Invalid log level %r, defaulting to INFO. Valid levels: %s",
            log_level,
            ", ".join(VALID_LEVELS),
        )
        normalized = "INFO"
    return getattr(logging, normalized)


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog and stdlib logging for one run.

    Client library loggers stay at WARNING unless DEBUG is requested.
    """
    level = _resolve_level(log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    client_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(client_level)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        processors += [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def bind_run_context(**values: Any) -> None:
    """Attach ``values`` to every later log line of this run.

    Replaces whatever a previous run in the same context had bound.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)
