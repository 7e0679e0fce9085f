"""
Structured logging for mcp-deploy.

structlog on top of the standard library ``logging`` module. Log records
always go to stderr so that they never interleave with the command output
printed on stdout.

Level and format come from ``DeploySettings`` (``MCP_LOG_LEVEL``,
``MCP_LOG_FORMAT``); the CLI passes them in explicitly.

Usage:
    from mcp_deploy.core.logging import configure_logging, get_logger

    configure_logging(level="DEBUG")
    logger = get_logger(__name__)
    logger.info("state.written", path=str(state_file), servers=3)
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Literal, get_args

import structlog
from structlog.types import Processor

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["console", "json"]

LOG_LEVELS: tuple[str, ...] = get_args(LogLevel)
LOG_FORMATS: tuple[str, ...] = get_args(LogFormat)


def configure_logging(level: str = "WARNING", fmt: str = "console") -> None:
    """Configure structlog and stdlib logging.

    Safe to call more than once; every call rebinds the handler to the
    current ``sys.stderr``.

    Args:
        level: One of ``LOG_LEVELS``
        fmt: ``console`` or ``json``
    """
    log_level = level.upper()
    log_format = fmt.lower()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"Unknown log level {level!r}")

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level),
        force=True,
    )
    logging.getLogger("mcp_deploy").setLevel(getattr(logging, log_level))


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


__all__ = ["LOG_FORMATS", "LOG_LEVELS", "LogFormat", "LogLevel", "configure_logging", "get_logger"]
