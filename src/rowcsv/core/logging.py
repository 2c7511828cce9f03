"""structlog setup for rowcsv.

stdout is reserved for CSV, so every log line goes to stderr.  Context
bound here (command, profile, output target) is merged into each event,
including the converter's batch and exhaustion events.
"""

import logging
import sys
from typing import Any

import structlog


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # Looked up per logger: CliRunner swaps sys.stderr between invocations.
    return structlog.PrintLogger(file=sys.stderr)


def setup_logging(verbose: bool = False, **context: Any) -> None:
    """Configure structlog and bind ``context`` to every later event.

    Args:
        verbose: Emit DEBUG events (batch fetches, query timing) as well.
        context: Key/value pairs such as ``command="export"``; None values
            are dropped.
    """
    structlog.contextvars.clear_contextvars()
    bind_context(**context)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        ),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


def bind_context(**context: Any) -> None:
    """Add conversion context (output target, batch size, ...) to later events."""
    structlog.contextvars.bind_contextvars(
        **{k: v for k, v in context.items() if v is not None}
    )


def get_logger(name: str | None = None) -> Any:
    """Return a logger, bound to ``name`` when given.

    Call inside functions so the logger picks up the current configuration.
    """
    logger = structlog.get_logger()
    return logger.bind(logger=name) if name else logger
