"""Structured logging configuration -- structlog + stdlib integration.

Provides a single :func:`setup_logging` entry-point that configures
**structlog** and Python's built-in :mod:`logging` so that every log
statement flows through a unified processor pipeline and renderer.

Processors added to every log event:

* **timestamp** -- UTC ISO-8601 (``2024-01-15T09:23:01.123Z``)
* **log level** -- ``debug`` / ``info`` / ``warning`` / ``error`` /
  ``critical``
* **logger name** -- the ``__name__`` of the calling module
* **caller info** -- file, function, line number
* **run_id** -- pulled from :mod:`structlog.contextvars` (bound by the CLI
  for one policy load + query session)

With ``json_output=True`` events are rendered as single-line JSON objects.
Otherwise they are rendered with :class:`structlog.dev.ConsoleRenderer` on
stderr, which keeps stdout free for matrices and query answers.
"""
from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def _add_caller_info(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor that adds caller file, function and line."""
    record = event_dict.get("_record")
    if record is not None:
        event_dict["caller"] = f"{record.pathname}:{record.lineno}"
        event_dict["function"] = record.funcName
    return event_dict


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def setup_logging(
    level: str = "info",
    json_output: bool = False,
    log_file: str | None = None,
) -> None:
    """Configure structlog with stdlib logging integration.

    Args:
        level: Log level string (``debug``, ``info``, ``warning``, ``error``,
            ``critical``).
        json_output: If ``True``, output JSON lines; otherwise human-readable
            output.
        log_file: Optional file path for log output **in addition** to
            stderr.  File output is always JSON regardless of
            ``json_output``.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_caller_info,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            pad_event_to=40,
        )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)

    handlers: list[logging.Handler] = [console_handler]

    # Optional file handler (always JSON for machine ingestion)
    if log_file:
        file_formatter = structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.JSONRenderer(),
            ],
            foreign_pre_chain=shared_processors,
        )
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    for handler in handlers:
        root_logger.addHandler(handler)

    structlog.get_logger(__name__).info(
        "logging_configured",
        level=level,
        json_output=json_output,
        log_file=log_file or "none",
    )


def bind_run_id(run_id: str) -> None:
    """Bind a run identifier so every event of one CLI session carries it."""
    structlog.contextvars.bind_contextvars(run_id=run_id)


def clear_run_id() -> None:
    """Drop the run identifier bound by :func:`bind_run_id`."""
    structlog.contextvars.unbind_contextvars("run_id")


__all__ = ["bind_run_id", "clear_run_id", "setup_logging"]
