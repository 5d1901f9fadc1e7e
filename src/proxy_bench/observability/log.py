"""Logging configuration for the proxy-bench entry point.

Library modules only create module-level loggers. Handlers and levels are set
once by the entry point through configure_logging(). Events are logged either
as one JSON object per line (structured) or as readable key=value text.
"""

import json
import logging
import sys
from typing import Any, TextIO

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
STRUCTURED_FORMAT = "%(message)s"


def configure_logging(
    verbose: bool = False,
    structured: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure the ``proxy_bench`` logger hierarchy.

    Args:
        verbose: Log at DEBUG instead of INFO, including per-request failures.
        structured: Emit bare JSON messages instead of timestamped text lines.
        stream: Destination stream (default: stderr).

    Returns:
        The configured ``proxy_bench`` logger.
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(STRUCTURED_FORMAT if structured else LOG_FORMAT))

    root = logging.getLogger("proxy_bench")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    return root


def log_event(
    logger: logging.Logger,
    event: str,
    *,
    structured: bool = False,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Log a named event with fields.

    Example:
        >>> log_event(logger, "benchmark_started", structured=True, requests=1000)
        {"event": "benchmark_started", "requests": 1000}
    """
    if structured:
        logger.log(level, json.dumps({"event": event, **fields}, default=str))
    else:
        details = ", ".join(f"{key}={value}" for key, value in fields.items())
        logger.log(level, f"{event}: {details}" if details else event)
