"""
Structured logging, failure counters and latency logging
"""

import inspect
import logging
import sys
import time
from collections import Counter
from functools import wraps
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from bugtracker.core.config import settings


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add application context to log entries

    Args:
        logger: Logger instance
        method_name: Logging method name
        event_dict: Event dictionary

    Returns:
        Modified event dictionary
    """
    event_dict["app"] = settings.app_name
    event_dict["version"] = settings.app_version
    event_dict["environment"] = settings.environment
    return event_dict


def configure_logging() -> None:
    """
    Configure structured logging

    Sets up structlog with JSON output if enabled in settings,
    otherwise uses console output for development.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
    ]

    if settings.log_json:
        # Production: JSON logging
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # Development: Console logging with colors
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Configure stdlib logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.getLevelName(settings.log_level),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance

    Usage:
        logger = get_logger(__name__)
        logger.info("bug_created", bug_id="...", owner_id=1)
    """
    return structlog.get_logger(name)


# --- Counters and latency ---

# Only these labels take part in a counter key; anything else a caller
# passes is dropped so the set of series stays fixed.
METRIC_LABELS: dict[str, tuple[str, ...]] = {
    "embedding_failures": ("purpose",),
}

_counters: Counter = Counter()


def metrics_counter(name: str, **labels: Any) -> int:
    """Increment an in-process counter and return its new value."""

    allowed = METRIC_LABELS.get(name, ())
    key = (name, tuple((label, str(labels[label])) for label in allowed if label in labels))
    _counters[key] += 1
    get_logger("metrics").debug("counter_incremented", metric=name, value=_counters[key], **dict(key[1]))
    return _counters[key]


def metrics_snapshot() -> dict[str, int]:
    """Counter values keyed as ``name{label=value}``."""

    snapshot: dict[str, int] = {}
    for (name, labels), value in _counters.items():
        rendered = ",".join(f"{label}={label_value}" for label, label_value in labels)
        snapshot[f"{name}{{{rendered}}}"] = value
    return snapshot


def reset_metrics() -> None:
    _counters.clear()


def measure_latency(operation: str):
    """Latency logging decorator for sync and async callables."""

    def decorator(func):
        is_coro = inspect.iscoroutinefunction(func)

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                logger = get_logger(func.__module__)
                logger.info("latency", operation=operation, latency_ms=elapsed_ms)

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                logger = get_logger(func.__module__)
                logger.info("latency", operation=operation, latency_ms=elapsed_ms)

        return async_wrapper if is_coro else sync_wrapper

    return decorator


def log_embedding_call(
    *,
    operation: str,
    model: str | None,
    latency_ms: float,
    dimension: int | None = None,
    error: str | None = None,
) -> None:
    """Embedding provider call monitoring helper."""

    logger = get_logger("embedding")
    logger.info(
        "embedding_call",
        operation=operation,
        model=model,
        latency_ms=latency_ms,
        dimension=dimension,
        error=error,
    )
