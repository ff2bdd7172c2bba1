"""Structured logging configuration.

Logs are rendered by structlog and routed through the stdlib ``logging``
module, so records from SQLAlchemy or click land in the same stream. The
stream is stderr; stdout is reserved for command output.
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from structlog.stdlib import BoundLogger
from structlog.types import Processor


def _build_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def _select_renderer(json_output: bool) -> Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def configure_logging(level: str = "WARNING", json_output: bool = False) -> None:
    """Configure structlog and the root stdlib logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_output: Render one JSON object per line instead of console text
    """
    processors = _build_processors()

    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=_select_renderer(json_output),
        foreign_pre_chain=processors,
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.WARNING))


def get_logger(name: Optional[str] = None) -> BoundLogger:
    """Get a structured logger."""
    return structlog.get_logger(name)


@contextmanager
def log_timing(operation: str, logger: Optional[BoundLogger] = None, **context: Any) -> Iterator[dict[str, Any]]:
    """Log how long the wrapped block took.

    Yields a dict the block may fill with extra context; it is logged along
    with ``duration_ms`` when the block exits. A block that raises is logged
    as ``"<operation> failed"`` at error level and the exception propagates.
    """
    log = logger or get_logger(__name__)
    start = time.perf_counter()
    result_context: dict[str, Any] = {}
    try:
        yield result_context
    except Exception as e:
        log.error(
            f"{operation} failed",
            operation=operation,
            outcome="failed",
            error=str(e),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
            **context,
            **result_context,
        )
        raise
    log.info(
        f"{operation} completed",
        operation=operation,
        outcome="ok",
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
        **context,
        **result_context,
    )
