"""
Logging configuration using structlog.

User-facing progress goes through the Messenger; structlog carries the
diagnostic stream (JSON lines on stderr) and is quiet by default.
"""

import sys

import structlog


def configure_logging(log_level: str = "WARNING") -> None:
    """Configure structured logging with JSON output on stderr.

    Sets up structlog with a pipeline of processors that include timestamps,
    log levels, stack traces, and contextual information.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level.upper()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
