"""Permit pools for bounded concurrency, for asyncio tasks and for threads.

Both limiters are context managers: a permit is taken on entry and given back
on exit, whether the body finished normally or raised. Their bookkeeping is
shared through PermitCounter, so the dispatchers can report how many attempts
were ever in flight at once.
"""

import asyncio
import threading
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass, field
from typing import Self


class AcquisitionTimeoutError(Exception):
    """Raised when a permit cannot be acquired within the acquire timeout."""


@dataclass
class SemaphoreMetrics:
    """Snapshot of permit usage."""

    current_active: int
    peak_active: int
    total_acquisitions: int
    timeout_count: int = field(default=0)


class PermitCounter:
    """Counts permit holders.

    Args:
        guard: Context manager held around every update. Pass a
            threading.Lock when permits are taken from several threads.
    """

    def __init__(self, guard: AbstractContextManager | None = None) -> None:
        self._guard = guard if guard is not None else nullcontext()
        self._metrics = SemaphoreMetrics(current_active=0, peak_active=0, total_acquisitions=0)

    def acquired(self) -> None:
        with self._guard:
            m = self._metrics
            m.current_active += 1
            m.total_acquisitions += 1
            m.peak_active = max(m.peak_active, m.current_active)

    def released(self) -> None:
        with self._guard:
            self._metrics.current_active -= 1

    def timed_out(self) -> None:
        with self._guard:
            self._metrics.timeout_count += 1

    def snapshot(self) -> SemaphoreMetrics:
        with self._guard:
            m = self._metrics
            return SemaphoreMetrics(
                current_active=m.current_active,
                peak_active=m.peak_active,
                total_acquisitions=m.total_acquisitions,
                timeout_count=m.timeout_count,
            )


class SemaphoreLimiter:
    """
    Async context manager bounding concurrent tasks with asyncio.Semaphore.

    Args:
        max_concurrent: Maximum number of tasks holding a permit.
                       Defaults to 100.
        acquire_timeout: Seconds to wait for a permit, or None to wait
                         indefinitely (default).

    Raises:
        ValueError: If max_concurrent is less than 1 or acquire_timeout is
            negative.

    Example:
        ```python
        limiter = SemaphoreLimiter(max_concurrent=5)

        async def send(executor):
            async with limiter:
                # Only 5 of these will execute concurrently
                return await executor.execute_once()
        ```
    """

    def __init__(
        self,
        max_concurrent: int = 100,
        acquire_timeout: float | None = None,
    ) -> None:
        _validate(max_concurrent, acquire_timeout)
        self._max_concurrent = max_concurrent
        self._acquire_timeout = acquire_timeout
        self._semaphore = asyncio.Semaphore(max_concurrent)
        # Only the event loop thread updates the counter.
        self._counter = PermitCounter()

    @property
    def max_concurrent(self) -> int:
        """Permit pool size."""
        return self._max_concurrent

    async def __aenter__(self) -> Self:
        """Wait for a permit.

        Raises:
            AcquisitionTimeoutError: If no permit frees up within the timeout.
        """
        try:
            await asyncio.wait_for(self._semaphore.acquire(), timeout=self._acquire_timeout)
        except TimeoutError:
            self._counter.timed_out()
            raise AcquisitionTimeoutError(
                f"No permit available within {self._acquire_timeout}s"
            ) from None
        self._counter.acquired()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        self._counter.released()
        self._semaphore.release()

    def get_metrics(self) -> SemaphoreMetrics:
        """Current permit usage."""
        return self._counter.snapshot()


class ThreadSemaphoreLimiter:
    """Thread-safe counterpart of SemaphoreLimiter built on threading.BoundedSemaphore.

    Args:
        max_concurrent: Maximum number of threads holding a permit at once.
        acquire_timeout: Seconds to wait for a permit, or None to wait
                         indefinitely (default).
    """

    def __init__(
        self,
        max_concurrent: int = 100,
        acquire_timeout: float | None = None,
    ) -> None:
        _validate(max_concurrent, acquire_timeout)
        self._max_concurrent = max_concurrent
        self._acquire_timeout = acquire_timeout
        self._semaphore = threading.BoundedSemaphore(max_concurrent)
        self._counter = PermitCounter(threading.Lock())

    @property
    def max_concurrent(self) -> int:
        """Permit pool size."""
        return self._max_concurrent

    def __enter__(self) -> Self:
        """Wait for a permit, blocking the calling thread.

        Raises:
            AcquisitionTimeoutError: If no permit frees up within the timeout.
        """
        if not self._semaphore.acquire(timeout=self._acquire_timeout):
            self._counter.timed_out()
            raise AcquisitionTimeoutError(f"No permit available within {self._acquire_timeout}s")
        self._counter.acquired()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        self._counter.released()
        self._semaphore.release()

    def get_metrics(self) -> SemaphoreMetrics:
        """Current permit usage."""
        return self._counter.snapshot()


def _validate(max_concurrent: int, acquire_timeout: float | None) -> None:
    if max_concurrent < 1:
        raise ValueError("max_concurrent must be at least 1")
    if acquire_timeout is not None and acquire_timeout < 0:
        raise ValueError("acquire_timeout must be non-negative")
