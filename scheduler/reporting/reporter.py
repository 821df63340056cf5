"""Report persistence and console output.

Turns a RunReport into the structured ``{"report": {...}}`` document that
downstream formatters consume, writes it as JSON (or YAML for ``.yaml`` /
``.yml`` paths), and prints the human-readable run summary.
"""

from __future__ import annotations

import json
import sys
import time
from pathlib import Path
from typing import Any, TextIO

import yaml

from scheduler.execution.dispatcher import ExecutionResult
from scheduler.execution.groups import ExecutionGroup
from scheduler.reporting.aggregator import RunReport

YAML_SUFFIXES = frozenset({".yaml", ".yml"})


def default_report_path(report_dir: Path, now: float | None = None) -> Path:
    """Timestamped report path inside ``report_dir``."""
    if now is None:
        now = time.time()
    return report_dir / f"parallel-test-{int(now * 1000)}.json"


class Reporter:
    """Serializes a RunReport and writes it to disk.

    The document carries the run summary, one entry per dispatched group,
    every execution result, and any classification warnings.
    """

    def __init__(self, run_report: RunReport) -> None:
        self.run_report = run_report

    def generate_report(self) -> dict[str, Any]:
        """Generate the report data structure.

        Returns:
            Dictionary representing the full report, suitable for JSON or
            YAML serialization.
        """
        rr = self.run_report
        report: dict[str, Any] = dict(rr.metadata)
        report["summary"] = rr.overall.to_dict()
        report["success"] = rr.success
        report["groups"] = [g.to_dict() for g in rr.group_summaries]
        report["results"] = [r.to_dict() for r in rr.results]
        report["warnings"] = list(rr.warnings)
        return {"report": report}

    def write_report(self, path: Path) -> None:
        """Write the report, choosing the format from the path suffix.

        Args:
            path: File path to write; ``.yaml``/``.yml`` writes YAML,
                anything else JSON.
        """
        if path.suffix.lower() in YAML_SUFFIXES:
            self.write_yaml(path)
            return

        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(report, f, indent=2)
            f.write("\n")

    def write_yaml(self, path: Path) -> None:
        """Write the report as a YAML file.

        Args:
            path: File path to write the YAML report to.
        """
        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(
                report,
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )


def format_result_line(result: ExecutionResult) -> str:
    icon = "PASS" if result.passed else "FAIL"
    seconds = result.duration_millis / 1000
    return f"  [{icon}] {result.artifact_id} ({seconds:.2f}s)"


def print_result(result: ExecutionResult, file: TextIO | None = None) -> None:
    """Print one result line, with the error detail indented for failures."""
    out = file or sys.stdout
    print(format_result_line(result), file=out)
    if not result.passed and result.error_detail:
        for line in result.error_detail.strip().splitlines():
            print(f"         {line}", file=out)


def print_group_header(group: ExecutionGroup, file: TextIO | None = None) -> None:
    out = file or sys.stdout
    print(file=out)
    print(f"Running {group.name}...", file=out)
    print(
        f"Files: {len(group.members)}, Policy: {group.policy.describe()}, "
        f"Workers: {group.effective_max_workers}",
        file=out,
    )


def print_plan(groups: list[ExecutionGroup], file: TextIO | None = None) -> None:
    """Print each group's policy and members without running anything."""
    out = file or sys.stdout
    for group in groups:
        print(file=out)
        print(f"{group.name} [{group.policy.describe()}]", file=out)
        for artifact in group.members:
            extra = ""
            if artifact.matched_indicators:
                extra = f" shared: {', '.join(artifact.matched_indicators)}"
            print(
                f"  {artifact.identifier} (cost {artifact.cost_estimate:.0f}){extra}",
                file=out,
            )


def print_summary(run_report: RunReport, file: TextIO | None = None) -> None:
    """Print the run summary, failures, and per-group performance."""
    out = file or sys.stdout
    overall = run_report.overall

    print(file=out)
    print("Test Execution Report", file=out)
    print("=" * 60, file=out)
    print(f"Total tests: {overall.total_tests}", file=out)
    print(f"Passed: {overall.passed}", file=out)
    print(f"Failed: {overall.failed}", file=out)
    print(f"Total duration: {overall.total_duration_millis / 1000:.2f}s", file=out)
    print(
        f"Average duration: {overall.average_duration_millis / 1000:.2f}s",
        file=out,
    )

    failures = run_report.failed_results()
    if failures:
        print(file=out)
        print("Failed tests:", file=out)
        for r in failures:
            print(f"  {r.artifact_id}", file=out)
            if r.error_detail:
                first_line = r.error_detail.strip().splitlines()[0]
                print(f"    Error: {first_line}", file=out)

    if run_report.warnings:
        print(file=out)
        print(f"Warnings ({len(run_report.warnings)}):", file=out)
        for warning in run_report.warnings:
            print(f"  {warning}", file=out)

    print(file=out)
    print("Performance Analysis:", file=out)
    for g in run_report.group_summaries:
        print(file=out)
        print(f"{g.name}:", file=out)
        print(f"  Files: {g.count}", file=out)
        print(f"  Total duration: {g.total_duration_millis / 1000:.2f}s", file=out)
        print(f"  Wall-clock: {g.wall_duration_millis / 1000:.2f}s", file=out)
        print(f"  Parallel factor: {g.effective_max_workers}x", file=out)
        print(
            f"  Theoretical minimum: {g.theoretical_min_millis / 1000:.2f}s",
            file=out,
        )
