"""Concurrency patterns module."""

from proxy_bench.patterns.semaphore import (
    AcquisitionTimeoutError,
    PermitCounter,
    SemaphoreLimiter,
    SemaphoreMetrics,
    ThreadSemaphoreLimiter,
)

__all__ = [
    "AcquisitionTimeoutError",
    "PermitCounter",
    "SemaphoreLimiter",
    "SemaphoreMetrics",
    "ThreadSemaphoreLimiter",
]
