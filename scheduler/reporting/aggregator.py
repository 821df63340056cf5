"""Result aggregation into an immutable run report."""

from __future__ import annotations

import datetime
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from scheduler.execution.dispatcher import ExecutionResult, GroupRun
from scheduler.planning.probe import HostFacts


@dataclass(frozen=True)
class GroupSummary:
    """Counts and timings for one dispatched group."""

    name: str
    policy: str
    max_workers: int
    effective_max_workers: int
    count: int
    passed: int
    failed: int
    total_duration_millis: int
    wall_duration_millis: int = 0
    peak_running: int = 0

    @property
    def theoretical_min_millis(self) -> float:
        """Total duration divided across the effective workers."""
        return self.total_duration_millis / max(1, self.effective_max_workers)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "policy": self.policy,
            "max_workers": self.max_workers,
            "effective_max_workers": self.effective_max_workers,
            "count": self.count,
            "passed": self.passed,
            "failed": self.failed,
            "total_duration_millis": self.total_duration_millis,
            "wall_duration_millis": self.wall_duration_millis,
            "theoretical_min_millis": round(self.theoretical_min_millis, 3),
            "peak_running": self.peak_running,
        }


@dataclass(frozen=True)
class OverallSummary:
    """Counts and timings across the whole run."""

    total_tests: int = 0
    passed: int = 0
    failed: int = 0
    total_duration_millis: int = 0

    @property
    def average_duration_millis(self) -> float:
        if self.total_tests == 0:
            return 0.0
        return self.total_duration_millis / self.total_tests

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_tests": self.total_tests,
            "passed": self.passed,
            "failed": self.failed,
            "total_duration_millis": self.total_duration_millis,
            "average_duration_millis": round(self.average_duration_millis, 3),
        }


@dataclass(frozen=True)
class RunReport:
    """Everything a scheduling run produced.  Built once, never mutated."""

    results: tuple[ExecutionResult, ...]
    group_summaries: tuple[GroupSummary, ...]
    overall: OverallSummary
    warnings: tuple[str, ...] = ()
    metadata: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}),
    )

    @property
    def success(self) -> bool:
        """True when no artifact failed."""
        return self.overall.failed == 0

    def failed_results(self) -> list[ExecutionResult]:
        return [r for r in self.results if not r.passed]


def summarize_group(run: GroupRun) -> GroupSummary:
    passed = sum(1 for r in run.results if r.passed)
    return GroupSummary(
        name=run.group.name,
        policy=run.group.policy.describe(),
        max_workers=run.group.max_workers,
        effective_max_workers=run.group.effective_max_workers,
        count=len(run.results),
        passed=passed,
        failed=len(run.results) - passed,
        total_duration_millis=sum(r.duration_millis for r in run.results),
        wall_duration_millis=run.wall_duration_millis,
        peak_running=run.peak_running,
    )


def aggregate(
    group_runs: Iterable[GroupRun],
    max_workers: int,
    warnings: Iterable[str] = (),
    host_facts: HostFacts | None = None,
    override_used: bool = False,
    generated_at: str | None = None,
) -> RunReport:
    """Merge drained groups into a RunReport.

    Pure function of its inputs; nothing is written.

    Args:
        group_runs: Drained groups in dispatch order.
        max_workers: Worker count the run was planned with.
        warnings: Classification warnings to surface in the report.
        host_facts: Probe output, recorded as metadata when given.
        override_used: Whether max_workers came from an explicit override.
        generated_at: ISO timestamp; defaults to now (UTC).

    Returns:
        The immutable RunReport.
    """
    runs = list(group_runs)
    results: list[ExecutionResult] = []
    for run in runs:
        results.extend(run.results)

    summaries = tuple(summarize_group(run) for run in runs)
    passed = sum(1 for r in results if r.passed)
    overall = OverallSummary(
        total_tests=len(results),
        passed=passed,
        failed=len(results) - passed,
        total_duration_millis=sum(r.duration_millis for r in results),
    )

    if generated_at is None:
        generated_at = datetime.datetime.now(tz=datetime.timezone.utc).isoformat()

    metadata: dict[str, Any] = {
        "generated_at": generated_at,
        "max_workers": max_workers,
        "max_workers_source": "override" if override_used else "planner",
    }
    if host_facts is not None:
        metadata["host"] = host_facts.to_dict()

    return RunReport(
        results=tuple(results),
        group_summaries=summaries,
        overall=overall,
        warnings=tuple(warnings),
        metadata=MappingProxyType(metadata),
    )
