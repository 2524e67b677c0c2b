"""Structured logging configuration for buildgraph.

Uses structlog for structured logging.

Architecture:
    This module configures BOTH structlog and stdlib logging to emit
    consistent output (JSON or console). It uses ProcessorFormatter
    to route stdlib log records through structlog's processor chain,
    ensuring that modules using logging.getLogger(__name__) produce
    the same output format as modules using structlog.get_logger().

    Records go to stderr: exported documents are written to stdout and
    must never be interleaved with log lines.
"""

import itertools
import logging
import sys
from pathlib import PurePath
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# Third-party loggers that are noise at DEBUG level.
_NOISY_LOGGERS: tuple[str, ...] = (
    "dynaconf",
    "markdown_it",
)


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Remove internal structlog fields from output.

    ProcessorFormatter ALWAYS adds _record and _from_structlog when processing
    log records. These are internal bookkeeping and should not appear in output.
    """
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def _stringify_paths(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Render snapshot and output paths as plain strings.

    JSONRenderer falls back to repr() for unknown types, which would log
    "PosixPath('graph.yaml')" instead of the path.
    """
    for key, value in event_dict.items():
        if isinstance(value, PurePath):
            event_dict[key] = str(value)
    return event_dict


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
) -> None:
    """Configure structlog and stdlib logging for buildgraph.

    Args:
        json_output: If True, output JSON. If False, human-readable.
        level: Log level (DEBUG, INFO, WARNING, ERROR).
    """
    log_level = getattr(logging, level.upper())

    # Shared processors applied to ALL log records (structlog and stdlib)
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _stringify_paths,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        final_processors: list[Any] = [
            _remove_internal_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final_processors = [
            _remove_internal_fields,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Disable caching to allow reconfiguration in tests
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ProcessorFormatter(
            processors=final_processors,
            foreign_pre_chain=shared_processors,
        )
    )

    # Replace root logger handlers
    root = logging.getLogger()
    root.handlers = []
    root.addHandler(handler)
    root.setLevel(log_level)

    # Never make noisy loggers less restrictive than the configured root level.
    noisy_level = max(log_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a bound logger for a module.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Bound structlog logger.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


_export_sessions = itertools.count(1)


def bind_export_session(logger: structlog.stdlib.BoundLogger) -> structlog.stdlib.BoundLogger:
    """Bind ``logger`` to a new export session number.

    Every event from one GraphExporter carries the same ``export_session``,
    so registrations and flushes of interleaved sessions can be told apart.
    """
    bound: structlog.stdlib.BoundLogger = logger.bind(export_session=next(_export_sessions))
    return bound
