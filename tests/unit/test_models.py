"""Tests for domain models.

These tests verify the RequestTiming, BenchmarkResult, AggregateStats and
RequestState types.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from proxy_bench.engine import AggregateStats, BenchmarkResult, RequestState, RequestTiming


def _timing(**overrides: float | None) -> RequestTiming:
    values: dict[str, float | None] = {
        "dns_lookup_ms": 0.1,
        "tcp_connect_ms": 20.0,
        "tls_handshake_ms": 20.0,
        "time_to_first_byte_ms": 5.0,
        "download_ms": 50.0,
        "total_ms": 100.0,
    }
    values.update(overrides)
    return RequestTiming(**values)  # type: ignore[arg-type]


def _stats(**overrides: object) -> AggregateStats:
    values: dict[str, object] = {
        "requested": 10,
        "completed": 8,
        "successful": 6,
        "avg_total_ms": 100.0,
        "avg_tcp_connect_ms": 20.0,
        "avg_time_to_first_byte_ms": 5.0,
        "avg_download_ms": 50.0,
        "avg_dns_lookup_ms": None,
        "avg_tls_handshake_ms": None,
        "total_bytes": 8000,
        "status_codes": frozenset({200, 404}),
    }
    values.update(overrides)
    return AggregateStats(**values)  # type: ignore[arg-type]


class TestRequestTiming:
    """Test cases for the RequestTiming dataclass."""

    def test_is_frozen(self) -> None:
        """RequestTiming should be immutable (frozen=True)."""
        timing = _timing()
        with pytest.raises(FrozenInstanceError):
            timing.total_ms = 1.0  # type: ignore[misc]

    def test_has_slots(self) -> None:
        """RequestTiming should use __slots__."""
        assert hasattr(RequestTiming, "__slots__")

    def test_optional_phases_may_be_absent(self) -> None:
        """DNS and TLS phases are optional."""
        timing = _timing(dns_lookup_ms=None, tls_handshake_ms=None)
        assert timing.dns_lookup_ms is None
        assert timing.tls_handshake_ms is None

    @pytest.mark.parametrize(
        "field_name",
        [
            "dns_lookup_ms",
            "tcp_connect_ms",
            "tls_handshake_ms",
            "time_to_first_byte_ms",
            "download_ms",
            "total_ms",
        ],
    )
    def test_negative_duration_rejected(self, field_name: str) -> None:
        """Every present duration must be non-negative."""
        with pytest.raises(ValueError, match=field_name):
            _timing(**{field_name: -0.5})

    def test_zero_durations_allowed(self) -> None:
        """Zero is a valid duration."""
        timing = _timing(tcp_connect_ms=0.0, download_ms=0.0, time_to_first_byte_ms=0.0)
        assert timing.download_ms == 0.0


class TestBenchmarkResult:
    """Test cases for the BenchmarkResult dataclass."""

    def test_is_frozen(self) -> None:
        """BenchmarkResult should be immutable."""
        result = BenchmarkResult(status_code=200, timing=_timing(), body_size=10)
        with pytest.raises(FrozenInstanceError):
            result.status_code = 404  # type: ignore[misc]

    def test_details_default_to_none(self) -> None:
        """The reduced variant carries only status, timing and body size."""
        result = BenchmarkResult(status_code=200, timing=_timing(), body_size=10)
        assert result.headers is None
        assert result.content_length is None
        assert result.remote_addr is None
        assert result.url is None
        assert result.http_version is None

    def test_rich_fields(self) -> None:
        """The rich variant stores response details."""
        result = BenchmarkResult(
            status_code=301,
            timing=_timing(),
            body_size=0,
            headers={"location": "https://example.com/"},
            content_length=0,
            remote_addr="10.0.0.1:1080",
            url="https://example.com/",
            http_version="HTTP/1.1",
        )
        assert result.headers == {"location": "https://example.com/"}
        assert result.remote_addr == "10.0.0.1:1080"
        assert result.http_version == "HTTP/1.1"


class TestAggregateStats:
    """Test cases for AggregateStats derived properties."""

    def test_failed(self) -> None:
        """failed is requested minus completed."""
        assert _stats().failed == 2

    def test_success_rate(self) -> None:
        """success_rate is successful over requested."""
        assert _stats().success_rate == 0.6

    def test_success_rate_with_nothing_requested(self) -> None:
        """success_rate is 0.0 for an empty batch."""
        stats = _stats(requested=0, completed=0, successful=0, status_codes=frozenset())
        assert stats.success_rate == 0.0

    def test_has_data(self) -> None:
        """has_data reflects whether anything completed."""
        assert _stats().has_data
        assert not _stats(completed=0).has_data


class TestRequestState:
    """Test cases for the RequestState enum."""

    def test_lifecycle_values(self) -> None:
        """All lifecycle states should be defined."""
        assert [s.value for s in RequestState] == [
            "init",
            "sending",
            "awaiting_headers",
            "reading_body",
            "complete",
            "failed",
        ]

    def test_is_string_enum(self) -> None:
        """RequestState values compare equal to strings."""
        assert RequestState.FAILED == "failed"
