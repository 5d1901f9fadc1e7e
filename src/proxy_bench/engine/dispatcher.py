"""Bounded-concurrency dispatchers.

A dispatcher schedules exactly ``total_requests`` invocations of a shared
executor's ``execute_once()`` while never letting more than ``max_concurrent``
of them hold a permit at the same time. Results of completed attempts are
returned in no meaningful order. Failed attempts are logged and dropped, so
``total_requests - len(results)`` is the failure count.

- AsyncDispatcher: asyncio.TaskGroup + SemaphoreLimiter.
- ThreadedDispatcher: ThreadPoolExecutor + ThreadSemaphoreLimiter.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed

from proxy_bench.engine.base import AsyncRequestExecutor, RequestExecutor
from proxy_bench.engine.models import BenchmarkResult
from proxy_bench.errors import ExecutionError
from proxy_bench.patterns.semaphore import (
    SemaphoreLimiter,
    SemaphoreMetrics,
    ThreadSemaphoreLimiter,
)


def _check_max_concurrent(max_concurrent: int) -> None:
    if max_concurrent < 1:
        raise ValueError("max_concurrent must be at least 1")


def _check_total(total_requests: int) -> None:
    if total_requests < 0:
        raise ValueError("total_requests must be non-negative")


class AsyncDispatcher:
    """Fan out request attempts as asyncio tasks under a permit pool.

    Uses asyncio.TaskGroup for structured concurrency. Each task acquires a
    permit from a SemaphoreLimiter before sending and releases it once the
    attempt completes or fails.

    Args:
        max_concurrent: Maximum number of attempts in flight (default: 100).
        logger: Logger for failed attempts (default: this module's logger).

    Raises:
        ValueError: If max_concurrent is less than 1.

    Example:
        ```python
        dispatcher = AsyncDispatcher(max_concurrent=50)
        async with HttpxRequestExecutor(config) as executor:
            results = await dispatcher.run(executor, 1000)
        stats = aggregate(results, requested=1000)
        ```
    """

    def __init__(
        self,
        max_concurrent: int = 100,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        _check_max_concurrent(max_concurrent)
        self._max_concurrent = max_concurrent
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._limiter: SemaphoreLimiter | None = None

    @property
    def name(self) -> str:
        """Name of the dispatcher."""
        return "async"

    @property
    def max_concurrent(self) -> int:
        """Concurrency ceiling."""
        return self._max_concurrent

    def get_metrics(self) -> SemaphoreMetrics:
        """Permit metrics of the most recent run, all zero before the first."""
        if self._limiter is None:
            return SemaphoreMetrics(current_active=0, peak_active=0, total_acquisitions=0)
        return self._limiter.get_metrics()

    async def run(
        self, executor: AsyncRequestExecutor, total_requests: int
    ) -> list[BenchmarkResult]:
        """Run ``total_requests`` attempts and collect the completed results.

        Args:
            executor: Shared executor invoked once per attempt.
            total_requests: Number of attempts to schedule.

        Returns:
            Results of the attempts that completed, in no particular order.

        Raises:
            ValueError: If total_requests is negative.
        """
        _check_total(total_requests)
        # asyncio.Semaphore binds to one event loop; one limiter per run.
        limiter = SemaphoreLimiter(max_concurrent=self._max_concurrent)
        self._limiter = limiter
        if total_requests == 0:
            return []

        async with asyncio.TaskGroup() as tg:
            tasks = [
                tg.create_task(self._attempt(executor, attempt, limiter))
                for attempt in range(total_requests)
            ]

        return [result for task in tasks if (result := task.result()) is not None]

    async def _attempt(
        self, executor: AsyncRequestExecutor, attempt: int, limiter: SemaphoreLimiter
    ) -> BenchmarkResult | None:
        async with limiter:
            try:
                return await executor.execute_once()
            except ExecutionError as exc:
                self._logger.debug(f"Request {attempt} failed in state {exc.state.value}: {exc}")
            except Exception:  # pylint: disable=broad-except
                self._logger.warning(f"Unexpected error in request {attempt}", exc_info=True)
        return None


class ThreadedDispatcher:
    """Fan out request attempts over a thread pool under a permit pool.

    The pool has ``min(max_concurrent, total_requests)`` workers and each
    attempt additionally holds a ThreadSemaphoreLimiter permit while it runs.

    Args:
        max_concurrent: Maximum number of attempts in flight (default: 100).
        logger: Logger for failed attempts (default: this module's logger).

    Raises:
        ValueError: If max_concurrent is less than 1.
    """

    def __init__(
        self,
        max_concurrent: int = 100,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        _check_max_concurrent(max_concurrent)
        self._max_concurrent = max_concurrent
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._limiter: ThreadSemaphoreLimiter | None = None

    @property
    def name(self) -> str:
        """Name of the dispatcher."""
        return "threaded"

    @property
    def max_concurrent(self) -> int:
        """Concurrency ceiling."""
        return self._max_concurrent

    def get_metrics(self) -> SemaphoreMetrics:
        """Permit metrics of the most recent run, all zero before the first."""
        if self._limiter is None:
            return SemaphoreMetrics(current_active=0, peak_active=0, total_acquisitions=0)
        return self._limiter.get_metrics()

    def run(self, executor: RequestExecutor, total_requests: int) -> list[BenchmarkResult]:
        """Run ``total_requests`` attempts and collect the completed results.

        Blocks the calling thread until every attempt has completed or failed.

        Args:
            executor: Shared executor invoked once per attempt.
            total_requests: Number of attempts to schedule.

        Returns:
            Results of the attempts that completed, in no particular order.

        Raises:
            ValueError: If total_requests is negative.
        """
        _check_total(total_requests)
        limiter = ThreadSemaphoreLimiter(max_concurrent=self._max_concurrent)
        self._limiter = limiter
        if total_requests == 0:
            return []

        results: list[BenchmarkResult] = []
        workers = min(self._max_concurrent, total_requests)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="proxy-bench") as pool:
            futures = [
                pool.submit(self._attempt, executor, attempt, limiter)
                for attempt in range(total_requests)
            ]
            for future in as_completed(futures):
                result = future.result()
                if result is not None:
                    results.append(result)

        return results

    def _attempt(
        self, executor: RequestExecutor, attempt: int, limiter: ThreadSemaphoreLimiter
    ) -> BenchmarkResult | None:
        with limiter:
            try:
                return executor.execute_once()
            except ExecutionError as exc:
                self._logger.debug(f"Request {attempt} failed in state {exc.state.value}: {exc}")
            except Exception:  # pylint: disable=broad-except
                self._logger.warning(f"Unexpected error in request {attempt}", exc_info=True)
        return None
