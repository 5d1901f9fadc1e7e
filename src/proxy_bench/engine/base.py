"""Protocols for request executors.

An executor performs one full request/response cycle through the proxy and
returns a BenchmarkResult, or raises ExecutionError. A single executor instance
is shared by every task of a run and must be safe for concurrent use.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from proxy_bench.engine.models import BenchmarkResult


@runtime_checkable
class RequestExecutor(Protocol):
    """Protocol for blocking executors driven by worker threads.

    Example:
        >>> from proxy_bench.engine.base import RequestExecutor
        >>> from proxy_bench.engine import RequestsRequestExecutor
        >>> isinstance(RequestsRequestExecutor(config), RequestExecutor)
        True
    """

    @property
    def name(self) -> str:
        """Name of the executor implementation (e.g. "threaded")."""
        ...

    def execute_once(self) -> BenchmarkResult:
        """Send one request and return its timing-decorated result.

        Raises:
            ExecutionError: If the attempt cannot complete.
        """
        ...


@runtime_checkable
class AsyncRequestExecutor(Protocol):
    """Protocol for executors driven by an asyncio event loop."""

    @property
    def name(self) -> str:
        """Name of the executor implementation (e.g. "async")."""
        ...

    async def execute_once(self) -> BenchmarkResult:
        """Send one request and return its timing-decorated result.

        Raises:
            ExecutionError: If the attempt cannot complete.
        """
        ...
