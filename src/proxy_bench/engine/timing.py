"""Phase estimation for request timings.

The transports used here only expose two boundaries inside a request: the
moment response headers arrive and the moment the body is drained. The finer
phases are derived from those intervals with fixed ratios:

- time to first byte is one tenth of the download interval;
- for https targets, the connect interval is split evenly between TCP connect
  and TLS handshake; for http targets it is all TCP connect.

These ratios are approximations, not measurements. They are fixed.
"""

from __future__ import annotations

from proxy_bench.engine.models import RequestTiming

TTFB_DOWNLOAD_RATIO = 10
TLS_CONNECT_SPLIT = 2


def estimate_timing(
    *,
    measured_connect_ms: float,
    download_ms: float,
    total_ms: float,
    secure: bool,
    dns_lookup_ms: float | None = None,
) -> RequestTiming:
    """Build a RequestTiming from the measured intervals.

    Args:
        measured_connect_ms: Time from sending the request until headers were
            available. Covers proxy negotiation, connection and TLS together.
        download_ms: Time spent draining the response body.
        total_ms: Wall-clock span of the attempt, measured independently.
        secure: Whether the target URL uses https.
        dns_lookup_ms: Request preparation interval, if recorded.

    Returns:
        A RequestTiming with estimated connect, TLS and first-byte phases.
    """
    if secure:
        tcp_connect_ms = measured_connect_ms / TLS_CONNECT_SPLIT
        tls_handshake_ms: float | None = tcp_connect_ms
    else:
        tcp_connect_ms = measured_connect_ms
        tls_handshake_ms = None

    return RequestTiming(
        dns_lookup_ms=dns_lookup_ms,
        tcp_connect_ms=tcp_connect_ms,
        tls_handshake_ms=tls_handshake_ms,
        time_to_first_byte_ms=download_ms / TTFB_DOWNLOAD_RATIO,
        download_ms=download_ms,
        total_ms=total_ms,
    )
