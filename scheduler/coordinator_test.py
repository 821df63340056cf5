"""Unit tests for the scheduling run coordinator."""

from __future__ import annotations

import asyncio
import threading

from scheduler.classification.discovery import ArtifactDescriptor
from scheduler.coordinator import Coordinator
from scheduler.execution.launcher import LaunchOutcome
from scheduler.planning.planner import plan_max_workers
from scheduler.planning.probe import HostFacts


class RecordingLauncher:
    """Fake launcher that records start/finish events and concurrency."""

    def __init__(self, exit_codes: dict[str, int] | None = None, delay: float = 0.01) -> None:
        self.exit_codes = exit_codes or {}
        self.delay = delay
        self.events: list[tuple[str, str]] = []
        self.running = 0
        self.peak = 0

    async def __call__(self, artifact, cancel_event: threading.Event) -> LaunchOutcome:
        self.events.append(("start", artifact.identifier))
        self.running += 1
        self.peak = max(self.peak, self.running)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.running -= 1
        self.events.append(("finish", artifact.identifier))
        return LaunchOutcome(self.exit_codes.get(artifact.identifier, 0), "")


def _unit(identifier: str, source: str = "") -> ArtifactDescriptor:
    return ArtifactDescriptor(identifier, "unit", source)


class TestPlan:
    """Tests for Coordinator.plan()."""

    def test_groups_and_warnings(self):
        coordinator = Coordinator(RecordingLauncher(), max_workers=4)
        plan = coordinator.plan([
            _unit("u1"),
            _unit("db", "from sqlalchemy import create_engine"),
            ArtifactDescriptor("i1", "integration"),
            ArtifactDescriptor(None, "unit"),
            _unit("u1"),
        ])

        assert [g.name for g in plan.groups] == [
            "ParallelUnit", "ResourceConstrainedUnit", "Integration",
        ]
        assert plan.artifact_count == 3
        assert plan.warnings == [
            "Artifact #3 rejected: missing identifier",
            "Artifact u1 rejected: duplicate identifier",
        ]

    def test_empty_input(self):
        plan = Coordinator(RecordingLauncher(), max_workers=2).plan([])
        assert plan.groups == []
        assert plan.artifact_count == 0


class TestRun:
    """End-to-end runs with a fake launcher."""

    def test_ci_host_limits_parallel_unit(self):
        """CI on an 8-CPU host plans two workers; six unit tests never exceed it."""
        facts = HostFacts(logical_cpu_count=8, total_memory_bytes=32 * 1024**3, ci_mode=True)
        max_workers = plan_max_workers(facts)
        assert max_workers == 2

        launcher = RecordingLauncher()
        report = Coordinator(launcher, max_workers, host_facts=facts).run(
            [_unit(f"u{i}") for i in range(6)],
        )

        assert launcher.peak <= 2
        assert report.overall.total_tests == 6
        assert report.overall.passed == 6
        (summary,) = report.group_summaries
        assert summary.name == "ParallelUnit"
        assert summary.max_workers == 2
        assert report.metadata["host"]["logical_cpu_count"] == 8
        assert report.metadata["max_workers_source"] == "planner"

    def test_integration_failure_is_reported(self):
        launcher = RecordingLauncher(exit_codes={"i2": 1})
        report = Coordinator(launcher, max_workers=4).run([
            ArtifactDescriptor("i1", "integration"),
            ArtifactDescriptor("i2", "integration"),
            ArtifactDescriptor("i3", "integration"),
        ])

        assert [(r.artifact_id, r.outcome) for r in report.results] == [
            ("i1", "passed"), ("i2", "failed"), ("i3", "passed"),
        ]
        assert report.overall.failed == 1
        assert report.success is False

    def test_groups_drained_in_order(self):
        """No member of a later group starts before the earlier group finishes."""
        launcher = RecordingLauncher()
        Coordinator(launcher, max_workers=3).run([
            ArtifactDescriptor("e1", "e2e"),
            ArtifactDescriptor("i1", "integration"),
            _unit("u1"),
            _unit("u2"),
            _unit("s1", "redis client"),
        ])

        order = {"u": 0, "s": 1, "i": 2, "e": 3}
        last_finish: dict[int, int] = {}
        first_start: dict[int, int] = {}
        for position, (kind, identifier) in enumerate(launcher.events):
            group = order[identifier[0]]
            if kind == "start":
                first_start.setdefault(group, position)
            else:
                last_finish[group] = position

        for group in range(3):
            assert last_finish[group] < first_start[group + 1]

    def test_rejections_surface_as_warnings(self):
        report = Coordinator(RecordingLauncher(), max_workers=2).run([
            _unit("u1"),
            ArtifactDescriptor("x", "smoke"),
        ])
        assert report.overall.total_tests == 1
        assert report.warnings == ("Artifact x rejected: unknown category 'smoke'",)

    def test_override_recorded(self):
        report = Coordinator(RecordingLauncher(), max_workers=3, override_used=True).run(
            [_unit("u1")],
        )
        assert report.metadata["max_workers"] == 3
        assert report.metadata["max_workers_source"] == "override"

    def test_verbose_prints_progress(self, capsys):
        Coordinator(RecordingLauncher(exit_codes={"u2": 1}), max_workers=2, verbose=True).run([
            _unit("u1"),
            _unit("u2"),
            ArtifactDescriptor("", "unit"),
        ])
        captured = capsys.readouterr()
        assert "Running ParallelUnit..." in captured.out
        assert "[PASS] u1" in captured.out
        assert "[FAIL] u2" in captured.out
        assert "Warning: Artifact #2 rejected: missing identifier" in captured.err
