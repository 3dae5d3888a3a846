#!/usr/bin/env python3
# cli.py: command-line runner for Tempest load tests

import argparse
import asyncio
import logging
import os
import sys

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TimeElapsedColumn
from rich.table import Table

from tempest.controller import LoadTestController
from tempest.logging_config import setup_logging
from tempest.metrics import compute_summary
from tempest.models import AttackPattern, ConfigValidationError, TestConfig
from tempest.utils import GracefulKiller

POLL_INTERVAL_S = 1.0


def parse_headers(values: list[str] | None) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in values or []:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise argparse.ArgumentTypeError(f"Header must look like 'Name: value', got {raw!r}")
        headers[name.strip()] = value.strip()
    return headers


def parse_args(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Tempest: rate-shaped HTTP load generator",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug-level logging")
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional file to write logs to (e.g., tempest.log)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # run
    run_p = sub.add_parser(
        "run",
        help="Run one load test against a target URL",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    run_p.add_argument("url", help="Target endpoint")
    run_p.add_argument("-X", "--method", default="GET", help="HTTP method")
    run_p.add_argument(
        "-H",
        "--header",
        action="append",
        default=None,
        help="Request header 'Name: value' (repeatable)",
    )
    run_p.add_argument("-d", "--body", default=None, help="Request body (ignored for GET/HEAD)")
    run_p.add_argument("--start-rps", type=float, default=1.0, help="Baseline requests per second")
    run_p.add_argument("--max-rps", type=float, default=10.0, help="Peak requests per second")
    run_p.add_argument("--duration", type=float, default=30.0, help="Test duration in seconds")
    run_p.add_argument("--workers", type=int, default=5, help="Concurrent workers")
    run_p.add_argument(
        "--pattern",
        choices=[p.value for p in AttackPattern],
        default=AttackPattern.SUSTAINED.value,
        help="Attack pattern",
    )
    run_p.add_argument(
        "--timeout",
        type=float,
        default=float(os.getenv("TEMPEST_REQUEST_TIMEOUT_S", "30")),
        help="Per-request timeout in seconds",
    )

    # Security simulation
    run_p.add_argument("--endpoint-scanning", action="store_true", help="Probe sensitive paths")
    run_p.add_argument("--brute-force", action="store_true", help="Add random attempt parameter")
    run_p.add_argument("--random-headers", action="store_true", help="Rotate User-Agent")
    run_p.add_argument("--error-inducing", action="store_true", help="Send malformed JSON bodies")

    # serve
    serve_p = sub.add_parser(
        "serve",
        help="Serve the HTTP control API",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    serve_p.add_argument("--host", default="0.0.0.0")
    serve_p.add_argument("--port", type=int, default=3000)

    return parser.parse_args(argv)


def build_config(args) -> TestConfig:
    return TestConfig.from_dict(
        {
            "target_url": args.url,
            "http_method": args.method,
            "headers": parse_headers(args.header),
            "body": args.body,
            "start_rps": args.start_rps,
            "max_rps": args.max_rps,
            "duration": args.duration,
            "worker_count": args.workers,
            "attack_pattern": args.pattern,
            "security_options": {
                "endpoint_scanning": args.endpoint_scanning,
                "brute_force": args.brute_force,
                "random_headers": args.random_headers,
                "error_inducing": args.error_inducing,
            },
        }
    )


async def run_load_test(config: TestConfig, timeout_s: float, console: Console) -> int:
    controller = LoadTestController(request_timeout_s=timeout_s)
    controller.start(config)

    killer = GracefulKiller()
    progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed:.0f}/{task.total:.0f}s"),
        TimeElapsedColumn(),
        console=console,
    )
    try:
        with progress:
            task_id = progress.add_task("[cyan]Starting...", total=config.duration)
            while True:
                status = controller.get_status()
                progress.update(
                    task_id,
                    completed=min(status.elapsed, config.duration),
                    description=(
                        f"[cyan]{status.current_rps:.0f} rps[/] "
                        f"[green]{status.success_requests} ok[/] "
                        f"[red]{status.failed_requests} failed[/]"
                    ),
                )
                if not status.is_running:
                    break
                if killer.kill_now:
                    controller.stop()
                    break
                await asyncio.sleep(POLL_INTERVAL_S)
    finally:
        killer.restore()
        await controller.shutdown()

    snapshot = controller.get_status()
    summary = compute_summary(snapshot)

    table = Table(title=f"{config.http_method} {config.target_url} ({config.attack_pattern.value})")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Total requests", str(summary.total))
    table.add_row("Succeeded", str(summary.success))
    table.add_row("Failed", str(summary.failed))
    table.add_row("Error rate", f"{summary.error_rate * 100:.1f}%")
    table.add_row("Mean RPS", f"{summary.mean_rps:.2f}")
    table.add_row("Elapsed", f"{summary.elapsed}s")
    table.add_row("Last status", str(summary.last_response_code or "-"))
    for message, count in summary.top_errors:
        table.add_row(f"Error: {message}", str(count))
    console.print(table)

    if snapshot.recent_logs:
        console.print("[bold]Recent activity[/]")
        for line in snapshot.recent_logs[:10]:
            console.print(line, markup=False, highlight=False)

    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    log_level = "DEBUG" if args.debug else None
    setup_logging(level=log_level, log_file=args.log_file)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("tempest.api.main:app", host=args.host, port=args.port)
        return 0

    try:
        config = build_config(args)
    except (ConfigValidationError, argparse.ArgumentTypeError) as e:
        logging.error(f"Invalid configuration: {e}")
        return 2

    logging.info(
        f"Starting Tempest against {config.target_url} | Pattern: {config.attack_pattern.value} | "
        f"RPS: {config.start_rps}->{config.max_rps} | Workers: {config.effective_workers}"
    )
    return asyncio.run(run_load_test(config, args.timeout, Console()))


if __name__ == "__main__":
    sys.exit(main())
