"""Pytest configuration and fixtures for proxy-bench tests."""

from __future__ import annotations

import asyncio
import logging
import threading
import time

import pytest

from proxy_bench.config import BenchmarkConfig
from proxy_bench.engine.models import BenchmarkResult, RequestState, RequestTiming
from proxy_bench.errors import NetworkError

FIXED_TIMING = RequestTiming(
    dns_lookup_ms=None,
    tcp_connect_ms=20.0,
    tls_handshake_ms=None,
    time_to_first_byte_ms=5.0,
    download_ms=50.0,
    total_ms=100.0,
)


def make_result(
    status_code: int = 200,
    body_size: int = 1000,
    timing: RequestTiming = FIXED_TIMING,
) -> BenchmarkResult:
    """Build a BenchmarkResult without response details."""
    return BenchmarkResult(status_code=status_code, timing=timing, body_size=body_size)


class StubAsyncExecutor:
    """Async executor stub that records how many attempts overlap.

    Every ``fail_every``-th call raises NetworkError; the others return
    ``result`` after ``delay`` seconds.
    """

    name = "stub-async"

    def __init__(
        self,
        result: BenchmarkResult | None = None,
        delay: float = 0.001,
        fail_every: int = 0,
    ) -> None:
        self.result = result or make_result()
        self.delay = delay
        self.fail_every = fail_every
        self.calls = 0
        self.active = 0
        self.peak_active = 0

    async def execute_once(self) -> BenchmarkResult:
        self.calls += 1
        call = self.calls
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            if self.fail_every and call % self.fail_every == 0:
                raise NetworkError("stub failure", RequestState.AWAITING_HEADERS)
            return self.result
        finally:
            self.active -= 1


class StubThreadedExecutor:
    """Blocking executor stub, thread-safe counterpart of StubAsyncExecutor."""

    name = "stub-threaded"

    def __init__(
        self,
        result: BenchmarkResult | None = None,
        delay: float = 0.001,
        fail_every: int = 0,
    ) -> None:
        self.result = result or make_result()
        self.delay = delay
        self.fail_every = fail_every
        self.calls = 0
        self.active = 0
        self.peak_active = 0
        self._lock = threading.Lock()

    def execute_once(self) -> BenchmarkResult:
        with self._lock:
            self.calls += 1
            call = self.calls
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
        try:
            time.sleep(self.delay)
            if self.fail_every and call % self.fail_every == 0:
                raise NetworkError("stub failure", RequestState.AWAITING_HEADERS)
            return self.result
        finally:
            with self._lock:
                self.active -= 1


@pytest.fixture()
def async_stub() -> type[StubAsyncExecutor]:
    """Provide the async executor stub class."""
    return StubAsyncExecutor


@pytest.fixture()
def threaded_stub() -> type[StubThreadedExecutor]:
    """Provide the threaded executor stub class."""
    return StubThreadedExecutor


@pytest.fixture()
def result_factory():
    """Provide a BenchmarkResult factory."""
    return make_result


@pytest.fixture()
def http_config() -> BenchmarkConfig:
    """Configuration with an http proxy and an http target."""
    return BenchmarkConfig(
        proxy="http://127.0.0.1:8080",
        url="http://example.com/text",
        requests=10,
        concurrency=2,
        timeout=5.0,
    )


@pytest.fixture()
def https_config() -> BenchmarkConfig:
    """Configuration with a socks5 proxy and an https target."""
    return BenchmarkConfig(
        proxy="socks5://127.0.0.1:1080",
        url="https://example.com/text",
        requests=10,
        concurrency=2,
        timeout=5.0,
    )


@pytest.fixture(autouse=True)
def _clean_proxy_bench_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep PROXY_BENCH_* variables from the host environment out of tests."""
    for name in (
        "PROXY_BENCH_PROXY",
        "PROXY_BENCH_URL",
        "PROXY_BENCH_REQUESTS",
        "PROXY_BENCH_CONCURRENCY",
        "PROXY_BENCH_TIMEOUT",
        "PROXY_BENCH_ENGINE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers installed on the proxy_bench logger by configure_logging()."""
    yield
    package_logger = logging.getLogger("proxy_bench")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
