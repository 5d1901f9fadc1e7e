"""Aggregation of per-request results into summary statistics."""

from __future__ import annotations

import statistics
from collections.abc import Iterable

from proxy_bench.engine.models import AggregateStats, BenchmarkResult

SUCCESS_STATUS = 200


def aggregate(results: Iterable[BenchmarkResult], requested: int) -> AggregateStats:
    """Reduce completed results to an AggregateStats.

    The reduction does not depend on the order of ``results``: means are
    computed with exact rational arithmetic (statistics.mean), so any
    permutation of the same results gives identical statistics, and the mean
    of N identical values is that value.

    Args:
        results: Completed results of one run. Not modified.
        requested: Number of attempts that were scheduled.

    Returns:
        AggregateStats for the run. With no results, required averages are
        0.0 and optional averages are None.

    Raises:
        ValueError: If requested is negative or smaller than the number of
            results.
    """
    collected = list(results)
    completed = len(collected)

    if requested < 0:
        raise ValueError("requested must be non-negative")
    if completed > requested:
        raise ValueError(f"{completed} results exceed the {requested} requested attempts")

    timings = [r.timing for r in collected]

    return AggregateStats(
        requested=requested,
        completed=completed,
        successful=sum(1 for r in collected if r.status_code == SUCCESS_STATUS),
        avg_total_ms=_mean([t.total_ms for t in timings]),
        avg_tcp_connect_ms=_mean([t.tcp_connect_ms for t in timings]),
        avg_time_to_first_byte_ms=_mean([t.time_to_first_byte_ms for t in timings]),
        avg_download_ms=_mean([t.download_ms for t in timings]),
        avg_dns_lookup_ms=_optional_mean([t.dns_lookup_ms for t in timings]),
        avg_tls_handshake_ms=_optional_mean([t.tls_handshake_ms for t in timings]),
        total_bytes=sum(r.body_size for r in collected),
        status_codes=frozenset(r.status_code for r in collected),
    )


def _mean(values: list[float]) -> float:
    if not values:
        return 0.0
    return float(statistics.mean(values))


def _optional_mean(values: list[float | None]) -> float | None:
    present = [v for v in values if v is not None]
    if not present:
        return None
    return float(statistics.mean(present))
