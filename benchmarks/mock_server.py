#!/usr/bin/env python3
"""Mock forward proxy for deterministic proxy benchmarking.

This module provides an aiohttp server that stands in for an HTTP forward
proxy. Clients configured with ``http://host:port`` as their proxy send
absolute-form requests (``GET http://target/path``); the server answers them
itself instead of forwarding, so benchmarks run without any external network.
It supports:
- Configurable fixed latency with optional seeded jitter
- Random error injection (500s)
- Status code, delay, byte payload, slow drip and redirect endpoints
- Bookkeeping of proxied requests and the target hosts they named

Usage:
    config = MockServerConfig(base_latency_ms=5.0, jitter_seed=42)
    async with MockServer(config) as server:
        proxy = server.base_url
        url = "http://bench.target.test/bytes/1000"
        # ... point an executor at proxy/url ...
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from typing import Any

from aiohttp import web

TARGET_HOST = "bench.target.test"


@dataclass(frozen=True, slots=True)
class MockServerConfig:
    """Configuration for the mock proxy server.

    Attributes:
        host: Host address to bind to (default: 127.0.0.1)
        port: Port number to listen on, 0 for an ephemeral port (default: 0)
        base_latency_ms: Fixed latency in milliseconds to add to responses
        jitter_seed: Optional seed for reproducible random jitter
        error_rate: Probability of answering a proxied request with 500 (0-1)
    """

    host: str = "127.0.0.1"
    port: int = 0
    base_latency_ms: float = 1.0
    jitter_seed: int | None = None
    error_rate: float = 0.0


@dataclass
class MockServer:
    """Async mock forward proxy.

    Example:
        ```python
        async def main():
            server = MockServer(MockServerConfig(base_latency_ms=5.0))
            await server.start()
            print(f"Proxy listening at {server.base_url}")
            await server.stop()
        ```
    """

    config: MockServerConfig = field(default_factory=MockServerConfig)
    proxied_requests: int = field(default=0, init=False)
    seen_hosts: set[str] = field(default_factory=set, init=False)
    _random: random.Random = field(default_factory=random.Random, init=False)
    _runner: web.AppRunner | None = field(default=None, init=False)
    _bound_port: int | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        """Seed the random number generator used for jitter and errors."""
        self._random = random.Random(self.config.jitter_seed)

    @property
    def base_url(self) -> str:
        """URL of the server, usable as an ``http://`` proxy address."""
        port = self._bound_port or self.config.port
        return f"http://{self.config.host}:{port}"

    def _calculate_delay(self) -> float:
        base_delay = self.config.base_latency_ms / 1000.0
        if self.config.jitter_seed is not None:
            # Jitter range: 0% to 20% of base latency
            return base_delay + self._random.uniform(0, 0.2) * base_delay
        return base_delay

    @web.middleware
    async def _proxy_middleware(self, request: web.Request, handler: Any) -> web.StreamResponse:
        """Count proxied requests, apply latency and inject errors."""
        # Only origin-form health checks bypass; proxied ones are counted.
        if request.path == "/health" and request.raw_path.startswith("/"):
            return await handler(request)

        if request.url.host:
            self.seen_hosts.add(request.url.host)
        self.proxied_requests += 1

        await asyncio.sleep(self._calculate_delay())

        if self._random.random() < self.config.error_rate:
            return web.json_response({"error": "simulated error"}, status=500)

        return await handler(request)

    async def handle_health(self, request: web.Request) -> web.Response:
        """Health check, answered immediately."""
        return web.json_response({"status": "healthy", "server": "mock-proxy"})

    async def handle_text(self, request: web.Request) -> web.Response:
        """Plain-text client address, like an IP echo service."""
        return web.Response(text=f"{request.remote}\n")

    async def handle_status(self, request: web.Request) -> web.Response:
        """Path: /status/{code}."""
        try:
            code = int(request.match_info["code"])
        except ValueError:
            return web.json_response({"error": "Invalid status code"}, status=400)
        return web.Response(status=code, text=f"status {code}")

    async def handle_delay(self, request: web.Request) -> web.Response:
        """Path: /delay/{seconds}, capped at 60 seconds."""
        try:
            seconds = float(request.match_info["seconds"])
        except ValueError:
            return web.Response(text="Invalid delay value", status=400)

        seconds = min(seconds, 60.0)
        await asyncio.sleep(seconds)
        return web.json_response({"delay": seconds})

    async def handle_bytes(self, request: web.Request) -> web.Response:
        """Path: /bytes/{n}, between 1 byte and 1 MB of random data."""
        try:
            n = int(request.match_info["n"])
        except ValueError:
            return web.json_response({"error": "Invalid byte count"}, status=400)

        n = min(max(1, n), 1048576)
        return web.Response(
            body=self._random.randbytes(n),
            headers={"Content-Type": "application/octet-stream"},
        )

    async def handle_drip(self, request: web.Request) -> web.StreamResponse:
        """Path: /drip/{n}, n bytes sent one at a time, ``interval`` seconds apart."""
        try:
            n = int(request.match_info["n"])
            interval = float(request.query.get("interval", "0.1"))
        except ValueError:
            return web.json_response({"error": "Invalid drip parameters"}, status=400)

        n = min(max(1, n), 1024)
        response = web.StreamResponse(headers={"Content-Type": "application/octet-stream"})
        response.enable_chunked_encoding()
        await response.prepare(request)
        for _ in range(n):
            await asyncio.sleep(interval)
            await response.write(b"x")
        await response.write_eof()
        return response

    async def handle_redirect(self, request: web.Request) -> web.Response:
        """Path: /redirect, points at /text on the same target host."""
        raise web.HTTPFound(location=str(request.url.with_path("/text")))

    def _create_app(self) -> web.Application:
        app = web.Application(middlewares=[self._proxy_middleware])
        app.router.add_get("/health", self.handle_health)
        app.router.add_get("/text", self.handle_text)
        app.router.add_get("/status/{code}", self.handle_status)
        app.router.add_get("/delay/{seconds}", self.handle_delay)
        app.router.add_get("/bytes/{n}", self.handle_bytes)
        app.router.add_get("/drip/{n}", self.handle_drip)
        app.router.add_get("/redirect", self.handle_redirect)
        return app

    async def start(self) -> None:
        """Start listening.

        Raises:
            RuntimeError: If the server is already running.
        """
        if self._runner is not None:
            raise RuntimeError("Server is already running")

        self._runner = web.AppRunner(self._create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await site.start()

        self._bound_port = self.config.port
        for address in self._runner.addresses:
            if isinstance(address, tuple) and len(address) >= 2:
                self._bound_port = address[1]
                break

        self.proxied_requests = 0
        self.seen_hosts.clear()

    async def stop(self) -> None:
        """Stop listening.

        Raises:
            RuntimeError: If the server is not running.
        """
        if self._runner is None:
            raise RuntimeError("Server is not running")

        await self._runner.cleanup()
        self._runner = None
        self._bound_port = None

    async def __aenter__(self) -> MockServer:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()


@dataclass
class MockServerFixture:
    """Handle given to tests by the ``mock_proxy`` fixture.

    Attributes:
        server: The running mock proxy.
        proxy_url: Proxy address pointing at the server.
    """

    server: MockServer
    proxy_url: str

    def target(self, path: str) -> str:
        """Absolute http URL on the fake target host, to be sent through the proxy."""
        if not path.startswith("/"):
            path = "/" + path
        return f"http://{TARGET_HOST}{path}"

    def bytes_target(self, n: int) -> str:
        """Target URL answering with n random bytes."""
        return self.target(f"/bytes/{n}")

    def status_target(self, code: int) -> str:
        """Target URL answering with the given status code."""
        return self.target(f"/status/{code}")

    def delay_target(self, seconds: float) -> str:
        """Target URL answering after the given delay."""
        return self.target(f"/delay/{seconds}")

    def drip_target(self, n: int, interval: float) -> str:
        """Target URL trickling n bytes, one every ``interval`` seconds."""
        return self.target(f"/drip/{n}?interval={interval}")
