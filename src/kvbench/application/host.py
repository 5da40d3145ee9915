# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Yakov Shkolnikov and contributors
"""Minimal measurement host.

Drives registered scenarios: opens one fixture session per suite, runs
warmup and measured invocations, converts wall-clock samples into
per-operation throughput, and optionally traces allocations of one extra
invocation. Suites run one after another and scenarios never overlap.

Failure policy:
    CorrectnessError   -> the scenario gets a failed report, the host moves on
    StoreError         -> propagates; the session is still torn down
    anything else      -> propagates
"""

import gc
import os
import subprocess
import sys
import tempfile
import time
import tracemalloc
from pathlib import Path

import structlog

from kvbench.adapters.config.settings import WorkloadSettings
from kvbench.application.fixtures import ScenarioContext
from kvbench.application.registry import ScenarioEntry, ScenarioRegistry
from kvbench.application.reporting import ScenarioReport, load_reports
from kvbench.domain.errors import BenchError, CorrectnessError, HostConfigurationError
from kvbench.domain.value_objects import Diagnoser, HostConfig
from kvbench.ports.outbound import StoreFactoryPort

logger = structlog.get_logger(__name__)

# Exit status of a child run that measured everything it was asked to
_CHILD_OK_STATUSES = {0, 1}


def missed_optimizations() -> list[str]:
    """Reasons this interpreter would produce distorted timings."""
    reasons = []
    if sys.gettrace() is not None:
        reasons.append("a trace function is installed (debugger or coverage)")
    monitoring = getattr(sys, "monitoring", None)
    if monitoring is not None:
        for tool_id, name in ((monitoring.DEBUGGER_ID, "debugger"), (monitoring.COVERAGE_ID, "coverage")):
            if monitoring.get_tool(tool_id) is not None:
                reasons.append(f"a {name} monitoring tool is registered")
    if sys.flags.dev_mode:
        reasons.append("Python development mode is enabled (-X dev)")
    if os.environ.get("PYTHONASYNCIODEBUG"):
        reasons.append("asyncio debug mode is enabled (PYTHONASYNCIODEBUG)")
    return reasons


class MeasurementHost:
    """Runs scenarios according to a HostConfig.

    ``log_level`` and ``json_logs`` are only forwarded to child processes;
    None leaves the child on its own settings.
    """

    def __init__(
        self,
        config: HostConfig,
        factory: StoreFactoryPort,
        workload: WorkloadSettings,
        log_level: str | None = None,
        json_logs: bool | None = None,
    ) -> None:
        self.config = config
        self._factory = factory
        self._workload = workload
        self._log_level = log_level
        self._json_logs = json_logs

    def check_environment(self) -> None:
        """Raise HostConfigurationError when timings would be distorted."""
        reasons = missed_optimizations()
        if not reasons:
            return
        if self.config.fail_on_missed_optimizations:
            raise HostConfigurationError(
                "Refusing to measure: " + "; ".join(reasons)
                + " (use --allow-missed-optimizations to override)"
            )
        logger.warning("missed_optimizations", reasons=reasons)

    def run(self, registry: ScenarioRegistry, entries: list[ScenarioEntry]) -> list[ScenarioReport]:
        """Measure ``entries`` suite by suite, in registration order."""
        self.check_environment()
        reports: list[ScenarioReport] = []
        for suite, suite_entries in registry.group_by_suite(entries).items():
            if self.config.in_process_execution:
                reports.extend(self.run_suite(registry, suite, suite_entries))
            else:
                reports.extend(self.run_suite_out_of_process(suite, suite_entries))
        return reports

    def run_suite(
        self, registry: ScenarioRegistry, suite: str, entries: list[ScenarioEntry]
    ) -> list[ScenarioReport]:
        fixture = registry.fixture_for(suite, self._factory, self._workload)
        reports = []
        with structlog.contextvars.bound_contextvars(suite=suite), fixture.session() as ctx:
            for entry in entries:
                reports.append(self.measure(entry, ctx))
        return reports

    def measure(self, entry: ScenarioEntry, ctx: ScenarioContext) -> ScenarioReport:
        """Warm up, sample and optionally trace one scenario."""
        config = entry.config
        report = ScenarioReport(
            scenario_id=entry.scenario_id,
            description=entry.description,
            suite=entry.suite,
            variant=config.variant.value,
            mode=config.mode.value,
            operations_per_invocation=config.operations_per_invocation,
        )
        log = logger.bind(scenario=entry.scenario_id, description=entry.description)
        log.info("scenario_start", iterations=self.config.iterations)

        samples: list[float] = []
        try:
            for _ in range(self.config.warmup_iterations):
                report.result = entry.invoke(ctx)
            for _ in range(self.config.iterations):
                if self.config.force_garbage_collection:
                    gc.collect()
                start = time.perf_counter()
                report.result = entry.invoke(ctx)
                samples.append(time.perf_counter() - start)
            if Diagnoser.MEMORY in self.config.diagnosers:
                report.peak_bytes, report.retained_bytes = self._trace_allocations(entry, ctx)
        except CorrectnessError as exc:
            report.failed = True
            report.error = str(exc)
            log.error(
                "correctness_violation",
                expected=exc.expected,
                actual=exc.actual,
                completed_iterations=len(samples),
            )
            return report

        report.apply_samples(samples)
        log.info(
            "scenario_complete",
            ops_per_second=round(report.ops_per_second or 0.0, 1),
            mean_ns_per_op=round(report.mean_ns_per_op or 0.0, 1),
            peak_bytes=report.peak_bytes,
        )
        return report

    def _trace_allocations(self, entry: ScenarioEntry, ctx: ScenarioContext) -> tuple[int, int]:
        """Peak and retained traced bytes of one extra invocation."""
        gc.collect()
        already_tracing = tracemalloc.is_tracing()
        if not already_tracing:
            tracemalloc.start()
        try:
            tracemalloc.reset_peak()
            baseline, _ = tracemalloc.get_traced_memory()
            entry.invoke(ctx)
            current, peak = tracemalloc.get_traced_memory()
        finally:
            if not already_tracing:
                tracemalloc.stop()
        return max(peak - baseline, 0), max(current - baseline, 0)

    def child_command(self, entries: list[ScenarioEntry], output: Path) -> list[str]:
        """Command line that measures ``entries`` in a fresh interpreter."""
        config = self.config
        command = [
            sys.executable, "-m", "kvbench.entrypoints.cli", "run",
            "--in-process",
            "--quiet",
            "--output", str(output),
            "--variant", entries[0].config.variant.value,
            "--iterations", str(config.iterations),
            "--warmup", str(config.warmup_iterations),
            "--force-gc" if config.force_garbage_collection else "--no-force-gc",
            "--memory" if Diagnoser.MEMORY in config.diagnosers else "--no-memory",
            "--fail-on-missed-optimizations"
            if config.fail_on_missed_optimizations
            else "--allow-missed-optimizations",
        ]
        if self._log_level is not None:
            command += ["--log-level", self._log_level]
        if self._json_logs is not None:
            command.append("--json-logs" if self._json_logs else "--console-logs")
        for entry in entries:
            command += ["--filter", entry.scenario_id]
        return command

    def run_suite_out_of_process(self, suite: str, entries: list[ScenarioEntry]) -> list[ScenarioReport]:
        with tempfile.TemporaryDirectory(prefix="kvbench-") as tmp:
            output = Path(tmp) / f"{suite}.json"
            command = self.child_command(entries, output)
            logger.info("suite_spawn", suite=suite, scenarios=[e.scenario_id for e in entries])
            completed = subprocess.run(command, check=False)
            if completed.returncode not in _CHILD_OK_STATUSES or not output.exists():
                raise BenchError(
                    f"Suite '{suite}' child process exited with status {completed.returncode}"
                )
            return load_reports(output)
