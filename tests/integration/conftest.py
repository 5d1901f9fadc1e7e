"""Fixtures for integration tests against the mock forward proxy."""

from __future__ import annotations

import socket
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from benchmarks.mock_server import MockServer, MockServerConfig, MockServerFixture


@pytest_asyncio.fixture()
async def mock_proxy() -> AsyncIterator[MockServerFixture]:
    """Run a mock forward proxy on an ephemeral port for one test."""
    async with MockServer(MockServerConfig(base_latency_ms=1.0)) as server:
        yield MockServerFixture(server=server, proxy_url=server.base_url)


@pytest.fixture()
def closed_proxy() -> str:
    """Proxy address on a local port nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}"
