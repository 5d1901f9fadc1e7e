"""Domain models for the proxy benchmark engines.

This module defines the core data structures shared by the executors,
dispatchers and the aggregator. All durations are in milliseconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RequestState(str, Enum):
    """Lifecycle state of a single request attempt.

    Attributes:
        INIT: Attempt created, request not yet prepared.
        SENDING: Request is being sent through the proxy.
        AWAITING_HEADERS: Waiting for the response status line and headers.
        READING_BODY: Draining the response body.
        COMPLETE: Body fully read; a BenchmarkResult was produced.
        FAILED: Attempt aborted; no result was produced.
    """

    INIT = "init"
    SENDING = "sending"
    AWAITING_HEADERS = "awaiting_headers"
    READING_BODY = "reading_body"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class RequestTiming:
    """Phase durations of one request attempt, in milliseconds.

    Only ``total_ms``, ``download_ms`` and ``dns_lookup_ms`` are measured
    directly. ``tcp_connect_ms``, ``tls_handshake_ms`` and
    ``time_to_first_byte_ms`` are estimates; see proxy_bench.engine.timing.

    Attributes:
        dns_lookup_ms: Request preparation interval before sending, if recorded.
        tcp_connect_ms: Estimated connection time.
        tls_handshake_ms: Estimated TLS handshake time (https targets only).
        time_to_first_byte_ms: Estimated time to first body byte.
        download_ms: Time spent draining the response body.
        total_ms: Wall-clock span of the whole attempt.

    Raises:
        ValueError: If any present duration is negative.
    """

    dns_lookup_ms: float | None
    tcp_connect_ms: float
    tls_handshake_ms: float | None
    time_to_first_byte_ms: float
    download_ms: float
    total_ms: float

    def __post_init__(self) -> None:
        for name in (
            "dns_lookup_ms",
            "tcp_connect_ms",
            "tls_handshake_ms",
            "time_to_first_byte_ms",
            "download_ms",
            "total_ms",
        ):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    """Outcome of one completed request attempt.

    Any HTTP status counts as completed; only transport failures produce no
    result. The optional fields are None when detail capture is disabled or
    the transport does not expose the value.

    Attributes:
        status_code: HTTP status code of the response.
        timing: Phase durations of the attempt.
        body_size: Number of body bytes received.
        headers: Response headers.
        content_length: Declared Content-Length header value.
        remote_addr: ``host:port`` of the connected peer.
        url: Final URL after redirects.
        http_version: Protocol version, e.g. ``HTTP/1.1``.
    """

    status_code: int
    timing: RequestTiming
    body_size: int
    headers: dict[str, str] | None = None
    content_length: int | None = None
    remote_addr: str | None = None
    url: str | None = None
    http_version: str | None = None


@dataclass(frozen=True, slots=True)
class AggregateStats:
    """Summary statistics for one benchmark run.

    Averages are taken over completed results. Required averages are 0.0 when
    nothing completed; optional averages are None when no result carried the
    value.

    Attributes:
        requested: Number of attempts scheduled.
        completed: Number of attempts that produced a result.
        successful: Number of results with status 200.
        avg_total_ms: Mean total duration.
        avg_tcp_connect_ms: Mean TCP connect estimate.
        avg_time_to_first_byte_ms: Mean time-to-first-byte estimate.
        avg_download_ms: Mean download duration.
        avg_dns_lookup_ms: Mean request preparation interval, or None.
        avg_tls_handshake_ms: Mean TLS handshake estimate, or None.
        total_bytes: Sum of body sizes.
        status_codes: Distinct status codes observed.
    """

    requested: int
    completed: int
    successful: int
    avg_total_ms: float
    avg_tcp_connect_ms: float
    avg_time_to_first_byte_ms: float
    avg_download_ms: float
    avg_dns_lookup_ms: float | None
    avg_tls_handshake_ms: float | None
    total_bytes: int
    status_codes: frozenset[int]

    @property
    def failed(self) -> int:
        """Number of scheduled attempts that produced no result."""
        return self.requested - self.completed

    @property
    def success_rate(self) -> float:
        """Fraction of requested attempts that returned status 200."""
        if self.requested == 0:
            return 0.0
        return self.successful / self.requested

    @property
    def has_data(self) -> bool:
        """Whether at least one attempt completed."""
        return self.completed > 0
