# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Yakov Shkolnikov and contributors
"""Scenario reports: JSON persistence, console summary, variant comparison."""

import json
import platform
import sys
import time
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import typer

from kvbench import __version__

COLUMN_HEADERS = {
    "ops_per_second": "ops/s",
    "mean": "mean ns/op",
    "min": "min ns/op",
    "max": "max ns/op",
}


@dataclass
class ScenarioReport:
    """Outcome of measuring one scenario.

    A failed report carries no timing statistics: a correctness violation
    means the run is not a valid sample.
    """

    scenario_id: str
    description: str
    suite: str
    variant: str
    mode: str
    operations_per_invocation: int
    iterations: int = 0
    samples_s: list[float] = field(default_factory=list)
    ops_per_second: float | None = None
    mean_ns_per_op: float | None = None
    min_ns_per_op: float | None = None
    max_ns_per_op: float | None = None
    peak_bytes: int | None = None
    retained_bytes: int | None = None
    result: Any = None
    failed: bool = False
    error: str | None = None

    def apply_samples(self, samples_s: list[float]) -> None:
        """Fill throughput columns from per-invocation wall-clock samples."""
        self.samples_s = list(samples_s)
        self.iterations = len(samples_s)
        total = sum(samples_s)
        if not samples_s or total <= 0:
            return
        ops = self.operations_per_invocation
        self.ops_per_second = ops * len(samples_s) / total
        per_op = [s * 1e9 / ops for s in samples_s]
        self.mean_ns_per_op = sum(per_op) / len(per_op)
        self.min_ns_per_op = min(per_op)
        self.max_ns_per_op = max(per_op)

    def column(self, name: str) -> float | None:
        return {
            "ops_per_second": self.ops_per_second,
            "mean": self.mean_ns_per_op,
            "min": self.min_ns_per_op,
            "max": self.max_ns_per_op,
        }[name]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScenarioReport":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


class BenchmarkReporter:
    """Collects scenario reports and writes them out."""

    def __init__(self, output_file: str | Path | None = None):
        """Initialize benchmark reporter.

        Args:
            output_file: Path to save results (None = do not save)
        """
        self.output_file = Path(output_file) if output_file else None
        self.reports: list[ScenarioReport] = []
        self.metadata: dict[str, Any] = {
            "timestamp": time.time(),
            "date": time.strftime("%Y-%m-%d %H:%M:%S"),
            "kvbench_version": __version__,
            "python": sys.version.split()[0],
            "implementation": platform.python_implementation(),
            "platform": platform.platform(),
        }

    def record(self, report: ScenarioReport) -> None:
        self.reports.append(report)

    def extend(self, reports: list[ScenarioReport]) -> None:
        self.reports.extend(reports)

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value

    @property
    def failed(self) -> list[ScenarioReport]:
        return [r for r in self.reports if r.failed]

    def save(self) -> Path | None:
        """Save reports to the JSON output file, if one was given."""
        if self.output_file is None:
            return None
        output = {
            "metadata": self.metadata,
            "results": [r.to_dict() for r in self.reports],
        }
        self.output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.output_file, "w") as f:
            json.dump(output, f, indent=2, default=str)
        return self.output_file

    def print_summary(self, columns: list[str] | tuple[str, ...] = ("ops_per_second", "mean")) -> None:
        """Print a fixed-width summary table to stdout."""
        headers = ["scenario", "description"] + [COLUMN_HEADERS[c] for c in columns] + ["peak bytes"]
        rows = []
        for report in self.reports:
            row = [report.scenario_id, report.description]
            if report.failed:
                row += ["FAILED"] + [""] * (len(columns) - 1) + [""]
            else:
                row += [_fmt(report.column(c)) for c in columns]
                row.append("" if report.peak_bytes is None else str(report.peak_bytes))
            rows.append(row)
        typer.echo(_table(headers, rows))
        for report in self.failed:
            typer.echo(f"{report.scenario_id}: {report.error}", err=True)


def load_reports(path: str | Path) -> list[ScenarioReport]:
    """Read reports written by BenchmarkReporter.save()."""
    with open(path) as f:
        data = json.load(f)
    return [ScenarioReport.from_dict(item) for item in data.get("results", [])]


def compare_reports(
    baseline: list[ScenarioReport], candidate: list[ScenarioReport]
) -> list[dict[str, Any]]:
    """Pair reports by scenario id and compute candidate/baseline throughput ratio."""
    by_id = {r.scenario_id: r for r in baseline}
    rows = []
    for report in candidate:
        base = by_id.get(report.scenario_id)
        if base is None:
            continue
        ratio = None
        if base.ops_per_second and report.ops_per_second:
            ratio = report.ops_per_second / base.ops_per_second
        rows.append(
            {
                "scenario_id": report.scenario_id,
                "baseline": base.description,
                "candidate": report.description,
                "baseline_ops_per_second": base.ops_per_second,
                "candidate_ops_per_second": report.ops_per_second,
                "ratio": ratio,
                "failed": base.failed or report.failed,
            }
        )
    return rows


def print_comparison(rows: list[dict[str, Any]]) -> None:
    headers = ["scenario", "baseline ops/s", "candidate ops/s", "ratio"]
    table_rows = [
        [
            row["scenario_id"],
            _fmt(row["baseline_ops_per_second"]),
            _fmt(row["candidate_ops_per_second"]),
            "FAILED" if row["failed"] else (f"{row['ratio']:.3f}x" if row["ratio"] else "-"),
        ]
        for row in rows
    ]
    typer.echo(_table(headers, table_rows))


def _fmt(value: float | None) -> str:
    if value is None:
        return "-"
    return f"{value:,.1f}"


def _table(headers: list[str], rows: list[list[str]]) -> str:
    widths = [len(h) for h in headers]
    for row in rows:
        widths = [max(w, len(cell)) for w, cell in zip(widths, row)]
    lines = ["  ".join(h.ljust(w) for h, w in zip(headers, widths))]
    lines.append("  ".join("-" * w for w in widths))
    for row in rows:
        lines.append("  ".join(cell.ljust(w) for cell, w in zip(row, widths)))
    return "\n".join(lines)
