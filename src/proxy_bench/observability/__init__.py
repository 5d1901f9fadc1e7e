"""Logging setup and structured event logging."""

from proxy_bench.observability.log import configure_logging, log_event

__all__ = [
    "configure_logging",
    "log_event",
]
