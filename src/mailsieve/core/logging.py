"""structlog setup for mailsieve.

Library modules only call get_logger(); nothing is emitted in a particular
format until the application (the CLI, or an embedding service) calls
configure_logging() once at startup.

Ingestion batches are traced with a batch ID held in a context variable.
Every log line written inside batch_context() carries it as "batch_id",
including lines from the classifier and threader, which know nothing about
batches.

Usage:
    from mailsieve.core.logging import batch_context, get_logger

    logger = get_logger(__name__)

    with batch_context():
        logger.info("spam_verdict", email_id="abc123", score=72.5)
"""

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, TextIO

import structlog

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_batch_id: ContextVar[str | None] = ContextVar("batch_id", default=None)


def get_batch_id() -> str | None:
    """Return the ID of the batch being processed in this context, if any."""
    return _batch_id.get()


@contextmanager
def batch_context(batch_id: str | None = None) -> Iterator[str]:
    """Tag every log line written inside the block with a batch ID.

    The previous value is restored on exit, so nested blocks and concurrent
    contexts (threads, asyncio tasks) do not see each other's IDs.

    Args:
        batch_id: ID to use; a random hex UUID when omitted

    Yields:
        The batch ID in effect inside the block
    """
    value = batch_id or uuid.uuid4().hex
    token = _batch_id.set(value)
    try:
        yield value
    finally:
        _batch_id.reset(token)


def add_batch_id(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog processor adding the current batch ID, when one is set."""
    batch_id = _batch_id.get()
    if batch_id is not None:
        event_dict.setdefault("batch_id", batch_id)
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Route mailsieve logging through structlog.

    Logs go to stderr by default so they never interleave with command
    output written to stdout. The stdlib root handler is only installed if
    the root logger has none yet; the root level and the structlog pipeline
    are replaced on every call.

    Args:
        log_level: One of DEBUG, INFO, WARNING, ERROR (case-insensitive)
        json_output: JSON lines when True, colored console lines otherwise
        stream: Destination stream (default: sys.stderr)

    Raises:
        ValueError: If log_level is not a known level
    """
    level_name = log_level.upper()
    if level_name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level {log_level!r}, expected one of {LOG_LEVELS}")

    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stderr,
        level=getattr(logging, level_name),
    )
    logging.getLogger().setLevel(level_name)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_batch_id,
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, usually get_logger(__name__)."""
    return structlog.get_logger(name)
