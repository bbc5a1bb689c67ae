# src/drawflow/core/logging.py
"""Structured logging for drawflow.

structlog and stdlib logging share one processor chain: stdlib records
(SQLAlchemy, dynaconf) pass through ProcessorFormatter's foreign_pre_chain,
so every line has the same shape whether it came from get_logger() or
logging.getLogger().
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Any

import structlog
from structlog.stdlib import ProcessorFormatter

from drawflow.core.config import LoggingSettings

# Clamped to WARNING or above; they flood DEBUG output.
_NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "dynaconf")


def _pre_chain() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def _renderer(json_output: bool, stream: IO[str]) -> Any:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=stream.isatty())


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    stream: IO[str] | None = None,
) -> None:
    """Route structlog and stdlib logging to one handler on stream (stderr by default).

    Safe to call repeatedly; each call replaces the root handlers.
    """
    out = stream if stream is not None else sys.stderr
    root_level = logging.getLevelName(level.upper())
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            _renderer(json_output, out),
        ],
    )
    handler = logging.StreamHandler(out)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(root_level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(root_level, logging.WARNING))


def configure_from_settings(
    settings: LoggingSettings,
    *,
    level: str | None = None,
    json_output: bool | None = None,
) -> None:
    """Configure from settings.logging; explicit arguments (CLI flags) win."""
    configure_logging(
        json_output=settings.json_output if json_output is None else json_output,
        level=settings.level if level is None else level,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
