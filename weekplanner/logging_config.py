"""
structlog setup shared by the Streamlit app and scripts.

- WEEKPLANNER_LOG_FORMAT=json  -> JSON lines
- anything else                -> colored console output
- WEEKPLANNER_LOG_LEVEL        -> DEBUG / INFO (default) / WARNING / ERROR
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Optional

import structlog


def resolve_log_level(name: Optional[str] = None) -> int:
    raw = (name or os.environ.get("WEEKPLANNER_LOG_LEVEL", "INFO")).upper()
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(fmt: Optional[str] = None, level: Optional[str] = None) -> None:
    fmt = fmt or os.environ.get("WEEKPLANNER_LOG_FORMAT", "console")
    log_level = resolve_log_level(level)

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if fmt == "json":
        shared_processors.append(structlog.processors.format_exc_info)
        shared_processors.append(structlog.processors.JSONRenderer())
    else:
        shared_processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)
