"""proxy-bench: proxy performance benchmarking.

Sends a batch of GET requests through an HTTP(S) or SOCKS proxy at bounded
concurrency and summarizes per-phase timings, throughput and status codes.
"""

__version__ = "0.1.0"

from proxy_bench.config import BenchmarkConfig, ConnectionConfig, ProxyScheme  # noqa: E402
from proxy_bench.engine import (  # noqa: E402
    AggregateStats,
    AsyncDispatcher,
    BenchmarkResult,
    HttpxRequestExecutor,
    RequestsRequestExecutor,
    RequestState,
    RequestTiming,
    ThreadedDispatcher,
    aggregate,
)
from proxy_bench.errors import (  # noqa: E402
    ConfigError,
    ExecutionError,
    NetworkError,
    ProxyBenchError,
)

__all__ = [
    "AggregateStats",
    "AsyncDispatcher",
    "BenchmarkConfig",
    "BenchmarkResult",
    "ConfigError",
    "ConnectionConfig",
    "ExecutionError",
    "HttpxRequestExecutor",
    "NetworkError",
    "ProxyBenchError",
    "ProxyScheme",
    "RequestState",
    "RequestTiming",
    "RequestsRequestExecutor",
    "ThreadedDispatcher",
    "aggregate",
]
