"""Human-readable and JSON rendering of benchmark summaries."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from proxy_bench.config import BenchmarkConfig, redact_proxy_url
from proxy_bench.engine.models import AggregateStats

RULE = "=" * 50


def _ms(value: float | None) -> str:
    if value is None:
        return "n/a"
    return f"{value:.2f}ms"


def requests_per_second(stats: AggregateStats, elapsed_s: float | None) -> float:
    """Completed requests per second of wall-clock run time."""
    if not elapsed_s:
        return 0.0
    return stats.completed / elapsed_s


def format_summary(stats: AggregateStats, elapsed_s: float | None = None) -> str:
    """Render the summary block printed at the end of a run.

    Args:
        stats: Aggregate statistics of the run.
        elapsed_s: Wall-clock duration of the run; adds a throughput line.

    Returns:
        Multi-line summary text without a trailing newline.
    """
    codes = ", ".join(str(code) for code in sorted(stats.status_codes)) or "none"

    lines = [
        RULE,
        "BENCHMARK RESULTS",
        RULE,
        f"Completed requests:     {stats.completed}/{stats.requested}",
        f"Successful requests:    {stats.successful}",
        f"Failed requests:        {stats.failed}",
        f"Average total time:     {_ms(stats.avg_total_ms)}",
        f"Average TCP connect:    {_ms(stats.avg_tcp_connect_ms)}",
    ]
    if stats.avg_tls_handshake_ms is not None:
        lines.append(f"Average TLS handshake:  {_ms(stats.avg_tls_handshake_ms)}")
    lines += [
        f"Average TTFB:           {_ms(stats.avg_time_to_first_byte_ms)}",
        f"Average download:       {_ms(stats.avg_download_ms)}",
        f"Total bytes:            {stats.total_bytes}",
        f"Status codes:           {codes}",
    ]
    if elapsed_s is not None:
        lines.append(
            f"Elapsed:                {elapsed_s:.3f}s "
            f"({requests_per_second(stats, elapsed_s):.1f} RPS)"
        )
    lines.append(RULE)
    return "\n".join(lines)


def summary_to_dict(
    stats: AggregateStats,
    config: BenchmarkConfig,
    elapsed_s: float,
    engine: str,
) -> dict[str, Any]:
    """Build the JSON document written by ``--output``.

    Proxy passwords are redacted.
    """
    return {
        "timestamp": datetime.now(UTC).isoformat(),
        "engine": engine,
        "config": {
            "proxy": redact_proxy_url(config.proxy),
            "url": config.url,
            "requests": config.requests,
            "concurrency": config.concurrency,
            "timeout_sec": config.timeout,
        },
        "elapsed_sec": elapsed_s,
        "rps": requests_per_second(stats, elapsed_s),
        "requested": stats.requested,
        "completed": stats.completed,
        "successful": stats.successful,
        "failed": stats.failed,
        "success_rate": stats.success_rate,
        "latency_ms": {
            "avg_total": stats.avg_total_ms,
            "avg_dns_lookup": stats.avg_dns_lookup_ms,
            "avg_tcp_connect": stats.avg_tcp_connect_ms,
            "avg_tls_handshake": stats.avg_tls_handshake_ms,
            "avg_time_to_first_byte": stats.avg_time_to_first_byte_ms,
            "avg_download": stats.avg_download_ms,
        },
        "total_bytes": stats.total_bytes,
        "status_codes": sorted(stats.status_codes),
    }
