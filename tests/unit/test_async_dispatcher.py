"""Unit tests for AsyncDispatcher.

Tests cover:
- Exact scheduling of R attempts
- Bounded concurrency under the permit pool
- Dropping of failed attempts
- The end-to-end stub scenario through aggregation
"""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import MagicMock

import pytest

from proxy_bench.engine import AsyncDispatcher, aggregate


class TestAsyncDispatcherInitialization:
    """Tests for AsyncDispatcher initialization."""

    def test_default_max_concurrent(self) -> None:
        """Default concurrency ceiling is 100."""
        assert AsyncDispatcher().max_concurrent == 100

    def test_invalid_max_concurrent(self) -> None:
        """max_concurrent below 1 is rejected."""
        with pytest.raises(ValueError, match="max_concurrent"):
            AsyncDispatcher(max_concurrent=0)

    def test_name(self) -> None:
        """The dispatcher reports its name."""
        assert AsyncDispatcher().name == "async"


class TestAsyncDispatcherScheduling:
    """Tests for AsyncDispatcher.run() scheduling."""

    @pytest.mark.asyncio
    async def test_zero_requests(self, async_stub) -> None:
        """R == 0 returns an empty collection without calling the executor."""
        executor = async_stub()
        results = await AsyncDispatcher(max_concurrent=5).run(executor, 0)
        assert results == []
        assert executor.calls == 0

    @pytest.mark.asyncio
    async def test_negative_requests(self, async_stub) -> None:
        """A negative request count is rejected."""
        with pytest.raises(ValueError, match="total_requests"):
            await AsyncDispatcher().run(async_stub(), -1)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("total", "concurrency"),
        [(1, 1), (10, 1), (10, 3), (25, 25), (5, 100), (200, 7)],
    )
    async def test_schedules_exactly_r_attempts(self, async_stub, total, concurrency) -> None:
        """Exactly R attempts run and all successful ones are returned."""
        executor = async_stub()
        results = await AsyncDispatcher(max_concurrent=concurrency).run(executor, total)

        assert executor.calls == total
        assert len(results) == total

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("total", "concurrency"),
        [(10, 1), (10, 3), (50, 8), (5, 100), (100, 100)],
    )
    async def test_never_exceeds_concurrency(self, async_stub, total, concurrency) -> None:
        """The executor never observes more than C overlapping attempts."""
        executor = async_stub(delay=0.002)
        dispatcher = AsyncDispatcher(max_concurrent=concurrency)

        await dispatcher.run(executor, total)

        assert executor.peak_active <= concurrency
        assert executor.peak_active == min(concurrency, total)
        assert dispatcher.get_metrics().peak_active == executor.peak_active


class TestAsyncDispatcherFailures:
    """Tests for failure handling."""

    @pytest.mark.asyncio
    async def test_failed_attempts_are_dropped(self, async_stub) -> None:
        """Failed attempts produce no result and are not re-raised."""
        executor = async_stub(fail_every=3)
        results = await AsyncDispatcher(max_concurrent=4).run(executor, 10)

        assert executor.calls == 10
        assert len(results) == 7

    @pytest.mark.asyncio
    async def test_permits_balance_after_failures(self, async_stub) -> None:
        """Every permit is returned, including on the failure path."""
        dispatcher = AsyncDispatcher(max_concurrent=2)
        await dispatcher.run(async_stub(fail_every=2), 9)

        metrics = dispatcher.get_metrics()
        assert metrics.current_active == 0
        assert metrics.total_acquisitions == 9

    @pytest.mark.asyncio
    async def test_all_attempts_fail(self, async_stub) -> None:
        """A batch where every attempt fails still completes with no results."""
        results = await AsyncDispatcher(max_concurrent=3).run(async_stub(fail_every=1), 6)
        assert results == []

    @pytest.mark.asyncio
    async def test_execution_error_logged_at_debug(self, async_stub, caplog) -> None:
        """Per-request failures are logged at DEBUG with the failing state."""
        caplog.set_level(logging.DEBUG, logger="proxy_bench.engine.dispatcher")

        await AsyncDispatcher(max_concurrent=1).run(async_stub(fail_every=1), 1)

        assert "failed in state awaiting_headers" in caplog.text

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_dropped(self) -> None:
        """Unexpected executor exceptions count as failures and are logged."""
        executor = MagicMock()
        calls = 0

        async def execute_once():
            nonlocal calls
            calls += 1
            raise RuntimeError("bug in executor")

        executor.execute_once = execute_once
        log = MagicMock(spec=logging.Logger)

        results = await AsyncDispatcher(max_concurrent=2, logger=log).run(executor, 3)

        assert results == []
        assert calls == 3
        assert log.warning.call_count == 3


class TestAsyncDispatcherReuse:
    """Tests for running one dispatcher more than once."""

    def test_metrics_zero_before_first_run(self) -> None:
        """A fresh dispatcher reports empty metrics."""
        metrics = AsyncDispatcher(max_concurrent=3).get_metrics()
        assert metrics.peak_active == 0
        assert metrics.total_acquisitions == 0

    def test_runs_on_separate_event_loops(self, async_stub) -> None:
        """Each asyncio.run() gets a complete batch and fresh metrics."""
        dispatcher = AsyncDispatcher(max_concurrent=2)

        first = asyncio.run(dispatcher.run(async_stub(), 10))
        second_executor = async_stub()
        second = asyncio.run(dispatcher.run(second_executor, 10))

        assert len(first) == 10
        assert len(second) == 10
        assert second_executor.calls == 10
        metrics = dispatcher.get_metrics()
        assert metrics.total_acquisitions == 10
        assert metrics.current_active == 0


class TestAsyncDispatcherEndToEnd:
    """Stub executor through dispatcher and aggregator."""

    @pytest.mark.asyncio
    async def test_fixed_stub_scenario(self, async_stub) -> None:
        """R=10, C=2 with a fixed 200/1000-byte stub produces the expected summary."""
        results = await AsyncDispatcher(max_concurrent=2).run(async_stub(), 10)
        stats = aggregate(results, requested=10)

        assert stats.completed == 10
        assert stats.successful == 10
        assert stats.avg_total_ms == 100.0
        assert stats.avg_tcp_connect_ms == 20.0
        assert stats.avg_time_to_first_byte_ms == 5.0
        assert stats.avg_download_ms == 50.0
        assert stats.total_bytes == 10000
        assert stats.status_codes == frozenset({200})
        assert stats.failed == 0
