# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Yakov Shkolnikov and contributors
"""CLI entrypoint for kvbench.

Usage:
    kvbench list
    kvbench run
    kvbench run --filter 'incrby.*' --variant baseline --output baseline.json
    kvbench compare baseline.json candidate.json
"""

from pathlib import Path

import structlog
import typer
from pydantic import ValidationError

from kvbench import __version__
from kvbench.adapters.config.logging import bind_run_context, configure_logging
from kvbench.adapters.config.settings import HostSettings, get_settings
from kvbench.adapters.outbound.valkey_store_adapter import ValkeyStoreFactory
from kvbench.application.host import MeasurementHost
from kvbench.application.registry import build_registry
from kvbench.application.reporting import (
    BenchmarkReporter,
    compare_reports,
    load_reports,
    print_comparison,
)
from kvbench.domain.errors import BenchError
from kvbench.domain.value_objects import Diagnoser, Variant

app = typer.Typer(
    name="kvbench",
    help="Blocking vs asyncio throughput benchmarks for key-value/geo store clients",
    add_completion=False,
)

logger = structlog.get_logger(__name__)

EXIT_CORRECTNESS = 1
EXIT_SETUP = 2


@app.command("list")
def list_scenarios(
    variant: Variant = typer.Option(None, "--variant", help="Variant label (default: from settings)"),
) -> None:
    """List registered scenarios in execution order."""
    settings = get_settings()
    registry = build_registry(variant or settings.host.variant, settings.workload)
    for entry in registry:
        typer.echo(
            f"{entry.scenario_id:<22} {entry.description:<18} "
            f"suite={entry.suite:<5} ops/invocation={entry.config.operations_per_invocation}"
        )


@app.command()
def run(
    filters: list[str] = typer.Option(
        None,
        "--filter",
        "-f",
        help="Scenario id or description pattern, e.g. 'incrby.*' (repeatable)",
    ),
    variant: Variant = typer.Option(None, "--variant", help="Variant label (default: from settings)"),
    iterations: int = typer.Option(None, "--iterations", "-n", min=1, help="Measured invocations"),
    warmup: int = typer.Option(None, "--warmup", "-w", min=0, help="Warmup invocations"),
    output: Path = typer.Option(None, "--output", "-o", help="Write JSON report to this file"),
    in_process: bool = typer.Option(
        None, "--in-process/--out-of-process", help="Measure here or in one child process per suite"
    ),
    force_gc: bool = typer.Option(
        None, "--force-gc/--no-force-gc", help="Collect garbage before each measured invocation"
    ),
    memory: bool = typer.Option(None, "--memory/--no-memory", help="Trace allocations"),
    fail_on_missed_optimizations: bool = typer.Option(
        None,
        "--fail-on-missed-optimizations/--allow-missed-optimizations",
        help="Refuse to measure under a tracer, dev mode or asyncio debug",
    ),
    log_level: str = typer.Option(None, "--log-level", "-l", help="Log level (default: from settings)"),
    json_logs: bool = typer.Option(None, "--json-logs/--console-logs", help="Log format"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Do not print the summary table"),
) -> None:
    """Run scenarios and report throughput.

    Exit status is 1 when any scenario failed its correctness check and 2
    when an option is invalid, the store could not be reached or the host
    refused to run.
    """
    settings = get_settings()
    overrides = {
        key: value
        for key, value in {
            "variant": variant,
            "iterations": iterations,
            "warmup_iterations": warmup,
            "in_process": in_process,
            "force_gc": force_gc,
            "memory_diagnoser": memory,
            "fail_on_missed_optimizations": fail_on_missed_optimizations,
            "log_level": log_level.upper() if log_level else None,
            "json_logs": json_logs,
        }.items()
        if value is not None
    }
    try:
        host_settings = HostSettings.model_validate({**settings.host.model_dump(), **overrides})
    except ValidationError as exc:
        typer.echo(f"Invalid run options:\n{exc}", err=True)
        raise typer.Exit(code=EXIT_SETUP) from exc
    configure_logging(host_settings.log_level, json_output=host_settings.json_logs)
    bind_run_context(variant=host_settings.variant.value)

    host_config = host_settings.to_host_config()
    registry = build_registry(
        host_settings.variant,
        settings.workload,
        core_db=settings.store.core_db,
        load_db=settings.store.load_db,
    )
    host = MeasurementHost(
        host_config,
        ValkeyStoreFactory(settings.store),
        settings.workload,
        log_level=host_settings.log_level,
        json_logs=host_settings.json_logs,
    )

    reporter = BenchmarkReporter(output)
    reporter.add_metadata("variant", host_settings.variant.value)
    reporter.add_metadata("iterations", host_config.iterations)
    reporter.add_metadata("warmup_iterations", host_config.warmup_iterations)
    reporter.add_metadata("force_gc", host_config.force_garbage_collection)
    reporter.add_metadata("memory_diagnoser", Diagnoser.MEMORY in host_config.diagnosers)
    reporter.add_metadata("store", f"{settings.store.host}:{settings.store.port}")

    try:
        entries = registry.select(filters)
        reporter.extend(host.run(registry, entries))
    except BenchError as exc:
        logger.error("run_aborted", error_type=type(exc).__name__, error_message=str(exc))
        raise typer.Exit(code=EXIT_SETUP) from exc

    saved = reporter.save()
    if saved is not None:
        logger.info("report_saved", path=str(saved))
    if not quiet:
        reporter.print_summary(host_config.ordered_columns)
    if reporter.failed:
        raise typer.Exit(code=EXIT_CORRECTNESS)


@app.command()
def compare(
    baseline: Path = typer.Argument(..., exists=True, dir_okay=False, help="Baseline JSON report"),
    candidate: Path = typer.Argument(..., exists=True, dir_okay=False, help="Candidate JSON report"),
) -> None:
    """Compare throughput of two saved reports scenario by scenario."""
    rows = compare_reports(load_reports(baseline), load_reports(candidate))
    if not rows:
        typer.echo("No scenarios in common", err=True)
        raise typer.Exit(code=EXIT_SETUP)
    print_comparison(rows)


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"kvbench version {__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
