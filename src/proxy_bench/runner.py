"""Benchmark runner and command-line entry point.

Usage:
    proxy-bench --proxy socks5://127.0.0.1:1080 [--url URL] [--requests N]
                [--concurrency N] [--timeout SECONDS] [--engine ENGINE]
                [--output FILE] [--json-logs] [--verbose]

Every option can also be given through a ``PROXY_BENCH_*`` environment
variable (see proxy_bench.config). Exit codes: 0 once a batch has run, even
if every request failed; 1 on configuration errors, before any request is
sent; 130 when interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path

from proxy_bench import __version__
from proxy_bench.config import ENGINES, BenchmarkConfig, redact_proxy_url
from proxy_bench.engine.aggregate import aggregate
from proxy_bench.engine.async_executor import HttpxRequestExecutor
from proxy_bench.engine.dispatcher import AsyncDispatcher, ThreadedDispatcher
from proxy_bench.engine.models import AggregateStats
from proxy_bench.engine.threaded_executor import RequestsRequestExecutor
from proxy_bench.errors import ConfigError
from proxy_bench.observability.log import configure_logging, log_event
from proxy_bench.report import format_summary, summary_to_dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BenchmarkRun:
    """Outcome of one benchmark run.

    Attributes:
        engine: Engine that ran the batch ("async" or "threaded").
        stats: Aggregate statistics.
        elapsed_s: Wall-clock duration of the dispatch phase in seconds.
        peak_active: Highest number of attempts in flight at once.
    """

    engine: str
    stats: AggregateStats
    elapsed_s: float
    peak_active: int


def _log_started(
    log: logging.Logger, config: BenchmarkConfig, engine: str, structured: bool
) -> None:
    log_event(
        log,
        "benchmark_started",
        structured=structured,
        engine=engine,
        proxy=redact_proxy_url(config.proxy),
        url=config.url,
        requests=config.requests,
        concurrency=config.concurrency,
        timeout=config.timeout,
    )


async def _run_async(
    config: BenchmarkConfig, log: logging.Logger, structured: bool
) -> BenchmarkRun:
    dispatcher = AsyncDispatcher(max_concurrent=config.concurrency, logger=log)
    async with HttpxRequestExecutor(config) as executor:
        _log_started(log, config, "async", structured)
        start = time.perf_counter()
        results = await dispatcher.run(executor, config.requests)
        elapsed = time.perf_counter() - start

    return BenchmarkRun(
        engine="async",
        stats=aggregate(results, requested=config.requests),
        elapsed_s=elapsed,
        peak_active=dispatcher.get_metrics().peak_active,
    )


def _run_threaded(config: BenchmarkConfig, log: logging.Logger, structured: bool) -> BenchmarkRun:
    dispatcher = ThreadedDispatcher(max_concurrent=config.concurrency, logger=log)
    with RequestsRequestExecutor(config) as executor:
        _log_started(log, config, "threaded", structured)
        start = time.perf_counter()
        results = dispatcher.run(executor, config.requests)
        elapsed = time.perf_counter() - start

    return BenchmarkRun(
        engine="threaded",
        stats=aggregate(results, requested=config.requests),
        elapsed_s=elapsed,
        peak_active=dispatcher.get_metrics().peak_active,
    )


def run_benchmark(
    config: BenchmarkConfig,
    log: logging.Logger | None = None,
    structured: bool = False,
) -> BenchmarkRun:
    """Run one batch through the engine selected by the configuration.

    The ``benchmark_started`` event is logged once the executor has been
    built, so a configuration error never produces it.

    Args:
        config: Validated benchmark configuration.
        log: Logger for run events and per-request failures.
        structured: Log events as JSON objects.

    Returns:
        BenchmarkRun with the aggregate statistics.

    Raises:
        ConfigError: If the executor cannot be built. Raised before any
            request is sent.
    """
    log = log or logger

    if config.resolved_engine == "threaded":
        run = _run_threaded(config, log, structured)
    else:
        run = asyncio.run(_run_async(config, log, structured))

    log_event(
        log,
        "benchmark_finished",
        structured=structured,
        engine=run.engine,
        completed=run.stats.completed,
        failed=run.stats.failed,
        elapsed_sec=round(run.elapsed_s, 3),
        peak_active=run.peak_active,
    )
    return run


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser.

    Defaults are None so unset options fall back to the environment.
    """
    parser = argparse.ArgumentParser(
        prog="proxy-bench",
        description="Benchmark proxies.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-u",
        "--url",
        help="URL to send requests to (default: https://wtfismyip.com/text)",
    )
    parser.add_argument(
        "-r",
        "--requests",
        type=int,
        help="Number of requests to send (default: 1000)",
    )
    parser.add_argument(
        "-c",
        "--concurrency",
        type=int,
        help="Number of concurrent requests to send (default: 100)",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=float,
        help="Timeout for each request in seconds (default: 5)",
    )
    parser.add_argument(
        "-p",
        "--proxy",
        help=(
            "Proxy to use for requests. Supported formats: http://proxy-server:8080, "
            "https://proxy-server:8080, socks4://proxy-server:1080, socks5://proxy-server:1080"
        ),
    )
    parser.add_argument(
        "--engine",
        choices=ENGINES,
        help="Request engine (default: auto, which picks threaded for socks4 proxies)",
    )
    parser.add_argument(
        "--no-details",
        action="store_true",
        help="Do not capture response headers, peer address and protocol version",
    )
    parser.add_argument("--output", type=str, help="Write the summary as JSON to FILE")
    parser.add_argument("--json-logs", action="store_true", help="Emit log events as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the benchmark CLI.

    Returns:
        Exit code.
    """
    args = build_parser().parse_args(argv)
    log = configure_logging(verbose=args.verbose, structured=args.json_logs)

    try:
        config = BenchmarkConfig.from_env(
            proxy=args.proxy,
            url=args.url,
            requests=args.requests,
            concurrency=args.concurrency,
            timeout=args.timeout,
            engine=args.engine,
            capture_details=False if args.no_details else None,
        )
        run = run_benchmark(config, log=log, structured=args.json_logs)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130

    print(format_summary(run.stats, elapsed_s=run.elapsed_s))

    if args.output:
        output_path = Path(args.output)
        try:
            with open(output_path, "w", encoding="utf-8") as f:
                json.dump(summary_to_dict(run.stats, config, run.elapsed_s, run.engine), f, indent=2)
        except OSError as e:
            print(f"Error writing {output_path}: {e}", file=sys.stderr)
            return 1
        print(f"Results saved to: {output_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
