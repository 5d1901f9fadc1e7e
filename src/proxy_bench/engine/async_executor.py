"""Async request executor using httpx.AsyncClient.

This module implements the AsyncRequestExecutor protocol with a single shared
httpx.AsyncClient routed through the configured proxy. The client's connection
pool is sized to the concurrency ceiling and is shared by every task of a run.

Supported proxy schemes are http, https and socks5 (through httpx's socksio
extra). SOCKS4 proxies are handled by the threaded executor.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from types import TracebackType
from typing import Any, Self

import httpx

from proxy_bench.config import BenchmarkConfig, ProxyScheme, redact_proxy_url
from proxy_bench.engine.models import BenchmarkResult, RequestState
from proxy_bench.engine.timing import estimate_timing
from proxy_bench.errors import ConfigError, NetworkError

SUPPORTED_SCHEMES = frozenset({ProxyScheme.HTTP, ProxyScheme.HTTPS, ProxyScheme.SOCKS5})

# Failures raised before any byte of the request reached the target.
_SEND_ERRORS = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ProxyError,
    httpx.PoolTimeout,
    httpx.WriteError,
    httpx.WriteTimeout,
)


class HttpxRequestExecutor:
    """Proxy-routed request executor backed by httpx.AsyncClient.

    Args:
        config: Benchmark configuration (proxy, target URL, timeout).
        transport: Optional transport replacing the proxy transport. Used to
            run the executor against httpx.MockTransport.
        clock: Monotonic clock returning seconds (default: time.perf_counter).

    Raises:
        ConfigError: If the proxy scheme is unsupported or the client cannot
            be built with the given proxy and timeout.

    Example:
        ```python
        import asyncio

        from proxy_bench.config import BenchmarkConfig
        from proxy_bench.engine.async_executor import HttpxRequestExecutor

        async def main():
            config = BenchmarkConfig(proxy="http://127.0.0.1:8080")
            async with HttpxRequestExecutor(config) as executor:
                result = await executor.execute_once()
                print(result.status_code, result.timing.total_ms)

        asyncio.run(main())
        ```
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        scheme = config.proxy_scheme
        if scheme not in SUPPORTED_SCHEMES:
            raise ConfigError(
                f"{scheme.value} proxies are not supported by the async engine; "
                "use the threaded engine"
            )

        self._config = config
        self._clock = clock
        self._secure = config.is_secure_target
        self._client = self._build_client(config, transport)

    @staticmethod
    def _build_client(
        config: BenchmarkConfig, transport: httpx.AsyncBaseTransport | None
    ) -> httpx.AsyncClient:
        pool = config.connection
        limits = httpx.Limits(
            max_connections=config.effective_concurrency,
            max_keepalive_connections=min(pool.max_keepalive_connections, config.effective_concurrency),
            keepalive_expiry=pool.keepalive_expiry,
        )
        timeout = httpx.Timeout(config.timeout)

        try:
            if transport is not None:
                return httpx.AsyncClient(
                    transport=transport,
                    timeout=timeout,
                    follow_redirects=pool.follow_redirects,
                    trust_env=False,
                )
            return httpx.AsyncClient(
                proxy=config.proxy,
                limits=limits,
                timeout=timeout,
                http2=pool.http2,
                follow_redirects=pool.follow_redirects,
                trust_env=False,
            )
        except (ValueError, ImportError, httpx.InvalidURL) as exc:
            raise ConfigError(
                f"Failed to build client for proxy {redact_proxy_url(config.proxy)}: {exc}"
            ) from exc

    @property
    def name(self) -> str:
        """Name of the executor implementation."""
        return "async"

    async def execute_once(self) -> BenchmarkResult:
        """Send one GET request through the proxy and time it.

        The configured timeout is a deadline for the whole attempt, from
        sending the request until the body is drained.

        Returns:
            BenchmarkResult with status, body size, estimated phases and,
            when enabled, response details.

        Raises:
            NetworkError: If the request or the body read fails, or the
                attempt overruns the timeout.
        """
        start = self._clock()
        request = self._client.build_request("GET", self._config.url)
        sent = self._clock()

        state = RequestState.AWAITING_HEADERS
        try:
            async with asyncio.timeout(self._config.timeout):
                response = await self._send(request)
                headers_at = self._clock()
                details = self._capture_details(response)
                state = RequestState.READING_BODY
                body_size = await self._drain(response)
        except TimeoutError as exc:
            raise NetworkError(
                f"Request exceeded the {self._config.timeout}s timeout", state
            ) from exc

        done = self._clock()

        timing = estimate_timing(
            measured_connect_ms=(headers_at - sent) * 1000,
            download_ms=(done - headers_at) * 1000,
            total_ms=(done - start) * 1000,
            secure=self._secure,
            dns_lookup_ms=(sent - start) * 1000,
        )

        return BenchmarkResult(
            status_code=response.status_code,
            timing=timing,
            body_size=body_size,
            **details,
        )

    async def _send(self, request: httpx.Request) -> httpx.Response:
        try:
            return await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            state = (
                RequestState.SENDING
                if isinstance(exc, _SEND_ERRORS)
                else RequestState.AWAITING_HEADERS
            )
            raise NetworkError(f"Request failed: {exc!r}", state) from exc

    async def _drain(self, response: httpx.Response) -> int:
        body_size = 0
        try:
            async for chunk in response.aiter_bytes():
                body_size += len(chunk)
        except httpx.HTTPError as exc:
            raise NetworkError(
                f"Failed to read response body: {exc!r}", RequestState.READING_BODY
            ) from exc
        finally:
            await response.aclose()
        return body_size

    def _capture_details(self, response: httpx.Response) -> dict[str, Any]:
        """Collect optional response details before the body is consumed."""
        if not self._config.capture_details:
            return {}

        return {
            "headers": dict(response.headers),
            "content_length": _content_length(response.headers.get("content-length")),
            "remote_addr": _peer_address(response),
            "url": str(response.url),
            "http_version": response.http_version,
        }

    async def aclose(self) -> None:
        """Close the shared client and its connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def _content_length(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _peer_address(response: httpx.Response) -> str | None:
    stream = response.extensions.get("network_stream")
    if stream is None:
        return None
    address = stream.get_extra_info("server_addr")
    if isinstance(address, tuple) and len(address) >= 2:
        return f"{address[0]}:{address[1]}"
    return None
