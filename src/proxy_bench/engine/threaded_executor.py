"""Threaded request executor using the `requests` library.

This module implements the RequestExecutor protocol for worker threads.
`requests` sessions are not safe to share across threads, so each worker
thread lazily gets its own proxy-configured session. SOCKS proxies (both v4
and v5) go through PySocks via urllib3's SOCKS support.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from types import TracebackType
from typing import Any, Self

import requests

from proxy_bench.config import BenchmarkConfig, redact_proxy_url
from proxy_bench.engine.models import BenchmarkResult, RequestState
from proxy_bench.engine.timing import estimate_timing
from proxy_bench.errors import ConfigError, NetworkError

_HTTP_VERSIONS = {10: "HTTP/1.0", 11: "HTTP/1.1", 20: "HTTP/2"}


class ThreadLocalSession(threading.local):
    """Thread-local session manager for connection pooling.

    Each thread gets its own requests Session configured with the proxy.
    Every session created is also recorded in a shared registry so they can
    all be closed at the end of the run.
    """

    def __init__(
        self,
        proxies: dict[str, str],
        registry: list[requests.Session],
        registry_lock: threading.Lock,
    ) -> None:
        """Initialize the thread-local session."""
        super().__init__()
        self.session: requests.Session | None = None
        self._proxies = proxies
        self._registry = registry
        self._registry_lock = registry_lock

    def get_session(self) -> requests.Session:
        """Get or create a session for the current thread.

        Returns:
            A requests Session routed through the proxy.
        """
        if self.session is None:
            session = requests.Session()
            session.trust_env = False
            session.proxies.update(self._proxies)
            with self._registry_lock:
                self._registry.append(session)
            self.session = session
        return self.session


class RequestsRequestExecutor:
    """Proxy-routed request executor backed by thread-local requests sessions.

    Args:
        config: Benchmark configuration (proxy, target URL, timeout).
        clock: Monotonic clock returning seconds (default: time.perf_counter).

    Raises:
        ConfigError: If requests cannot build a connection manager for the
            proxy (unknown scheme, missing SOCKS support).

    Example:
        >>> config = BenchmarkConfig(proxy="socks4://127.0.0.1:1080")
        >>> with RequestsRequestExecutor(config) as executor:
        ...     result = executor.execute_once()
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        *,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._config = config
        self._clock = clock
        self._secure = config.is_secure_target
        self._proxies = {"http": config.proxy, "https": config.proxy}
        self._validate_proxy()

        self._sessions_created: list[requests.Session] = []
        self._sessions_lock = threading.Lock()
        self._session_manager = ThreadLocalSession(
            self._proxies, self._sessions_created, self._sessions_lock
        )

    def _validate_proxy(self) -> None:
        """Build the proxy connection manager once without opening a connection."""
        session = requests.Session()
        try:
            adapter = session.get_adapter(self._config.url)
            adapter.proxy_manager_for(self._config.proxy)
        except (requests.exceptions.InvalidSchema, requests.exceptions.InvalidURL, ValueError) as exc:
            raise ConfigError(
                f"Failed to build client for proxy {redact_proxy_url(self._config.proxy)}: {exc}"
            ) from exc
        finally:
            session.close()

    @property
    def name(self) -> str:
        """Name of the executor implementation."""
        return "threaded"

    @property
    def timeout(self) -> float:
        """Request timeout in seconds."""
        return self._config.timeout

    def execute_once(self) -> BenchmarkResult:
        """Send one GET request through the proxy and time it.

        The configured timeout bounds each socket operation in requests, and
        is also checked against the elapsed time once headers arrive and
        after every body chunk, so a slowly dripping body cannot run past it.

        Returns:
            BenchmarkResult with status, body size, estimated phases and,
            when enabled, response details.

        Raises:
            NetworkError: If the request or the body read fails, or the
                attempt overruns the timeout.
        """
        session = self._session_manager.get_session()

        start = self._clock()
        prepared = session.prepare_request(requests.Request("GET", self._config.url))
        sent = self._clock()

        try:
            response = session.send(
                prepared,
                stream=True,
                timeout=self._config.timeout,
                allow_redirects=self._config.connection.follow_redirects,
                proxies=self._proxies,
            )
        except requests.ConnectionError as exc:
            # Also covers ConnectTimeout and ProxyError.
            raise NetworkError(f"Request failed: {exc!r}", RequestState.SENDING) from exc
        except requests.RequestException as exc:
            raise NetworkError(f"Request failed: {exc!r}", RequestState.AWAITING_HEADERS) from exc

        headers_at = self._clock()
        if headers_at - start > self._config.timeout:
            response.close()
            raise NetworkError(self._overrun_message(), RequestState.AWAITING_HEADERS)
        details = self._capture_details(response)

        body_size = 0
        try:
            for chunk in response.iter_content(chunk_size=64 * 1024):
                body_size += len(chunk)
                if self._clock() - start > self._config.timeout:
                    raise NetworkError(self._overrun_message(), RequestState.READING_BODY)
        except requests.RequestException as exc:
            raise NetworkError(
                f"Failed to read response body: {exc!r}", RequestState.READING_BODY
            ) from exc
        finally:
            response.close()

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

    def _overrun_message(self) -> str:
        return f"Request exceeded the {self._config.timeout}s timeout"

    def _capture_details(self, response: requests.Response) -> dict[str, Any]:
        """Collect optional response details before the body is consumed.

        The peer address is not exposed by requests' public API and is left
        unset.
        """
        if not self._config.capture_details:
            return {}

        content_length = response.headers.get("Content-Length")
        return {
            "headers": dict(response.headers),
            "content_length": int(content_length) if content_length and content_length.isdigit() else None,
            "remote_addr": None,
            "url": response.url,
            "http_version": _HTTP_VERSIONS.get(getattr(response.raw, "version", None)),
        }

    def close(self) -> None:
        """Close every session created by worker threads."""
        with self._sessions_lock:
            sessions = list(self._sessions_created)
            self._sessions_created.clear()
        for session in sessions:
            session.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
