"""Benchmark engines: request executors, dispatchers and aggregation."""

from proxy_bench.engine.aggregate import aggregate
from proxy_bench.engine.async_executor import HttpxRequestExecutor
from proxy_bench.engine.base import AsyncRequestExecutor, RequestExecutor
from proxy_bench.engine.dispatcher import AsyncDispatcher, ThreadedDispatcher
from proxy_bench.engine.models import (
    AggregateStats,
    BenchmarkResult,
    RequestState,
    RequestTiming,
)
from proxy_bench.engine.threaded_executor import RequestsRequestExecutor
from proxy_bench.engine.timing import estimate_timing

__all__ = [
    "AggregateStats",
    "AsyncDispatcher",
    "AsyncRequestExecutor",
    "BenchmarkResult",
    "HttpxRequestExecutor",
    "RequestExecutor",
    "RequestState",
    "RequestTiming",
    "RequestsRequestExecutor",
    "ThreadedDispatcher",
    "aggregate",
    "estimate_timing",
]
