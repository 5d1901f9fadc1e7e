"""Exception hierarchy for proxy-bench.

Configuration problems are fatal and surface before any request is sent.
Execution problems belong to a single request attempt and never escape the
dispatcher.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from proxy_bench.engine.models import RequestState


class ProxyBenchError(Exception):
    """Base class for all proxy-bench errors."""

    pass


class ConfigError(ProxyBenchError, ValueError):
    """Raised when the benchmark cannot be configured.

    Covers unparsable proxy addresses, unsupported schemes, invalid numeric
    settings and HTTP clients that cannot be built with the given proxy.
    """

    pass


class ExecutionError(ProxyBenchError):
    """Raised when a single request attempt cannot complete.

    Attributes:
        state: The request state the attempt was in when it failed.
    """

    def __init__(self, message: str, state: RequestState) -> None:
        super().__init__(message)
        self.state = state


class NetworkError(ExecutionError):
    """Transport-level failure: timeout, refused connection, DNS, TLS or body read.

    The underlying exception is available as ``__cause__``.
    """

    pass
