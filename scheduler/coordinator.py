"""Scheduling run coordinator.

Classifies descriptors, builds execution groups, drains the groups one at
a time through the bounded dispatcher, and aggregates the results.  Group
k+1 is not started until every member of group k has a result.
"""

from __future__ import annotations

import asyncio
import sys
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from scheduler.classification.classifier import Classifier
from scheduler.classification.discovery import ArtifactDescriptor
from scheduler.execution.dispatcher import BoundedDispatcher, GroupRun
from scheduler.execution.groups import DEFAULT_SHARED_RESOURCE_CAP, ExecutionGroup, build_groups
from scheduler.execution.launcher import Launcher
from scheduler.planning.probe import HostFacts
from scheduler.reporting.aggregator import RunReport, aggregate
from scheduler.reporting.reporter import print_group_header, print_result


@dataclass
class SchedulePlan:
    """Groups to dispatch plus warnings for rejected descriptors."""

    groups: list[ExecutionGroup] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def artifact_count(self) -> int:
        return sum(len(g.members) for g in self.groups)


class Coordinator:
    """Drives one scheduling run from descriptors to RunReport."""

    def __init__(
        self,
        launcher: Launcher,
        max_workers: int,
        classifier: Classifier | None = None,
        shared_resource_cap: int = DEFAULT_SHARED_RESOURCE_CAP,
        host_facts: HostFacts | None = None,
        override_used: bool = False,
        clock: Callable[[], float] = time.monotonic,
        verbose: bool = False,
    ) -> None:
        self.max_workers = max_workers
        self.classifier = classifier or Classifier()
        self.shared_resource_cap = shared_resource_cap
        self.host_facts = host_facts
        self.override_used = override_used
        self.verbose = verbose
        self.dispatcher = BoundedDispatcher(
            launcher,
            clock=clock,
            on_result=print_result if verbose else None,
        )

    def plan(self, descriptors: Iterable[ArtifactDescriptor]) -> SchedulePlan:
        """Classify descriptors and partition them into groups."""
        classification = self.classifier.classify(descriptors)
        if self.verbose:
            for warning in classification.rejected:
                print(f"Warning: {warning}", file=sys.stderr)

        groups = build_groups(
            classification.artifacts,
            self.max_workers,
            shared_resource_cap=self.shared_resource_cap,
        )
        return SchedulePlan(groups=groups, warnings=list(classification.rejected))

    def run(self, descriptors: Iterable[ArtifactDescriptor]) -> RunReport:
        """Plan and execute a run.

        Returns:
            RunReport covering every accepted artifact.
        """
        return self.execute(self.plan(descriptors))

    def execute(self, plan: SchedulePlan) -> RunReport:
        """Execute an already built plan."""
        return asyncio.run(self.execute_async(plan))

    async def execute_async(self, plan: SchedulePlan) -> RunReport:
        """Async implementation of plan execution."""
        group_runs: list[GroupRun] = []
        for group in plan.groups:
            if self.verbose:
                print_group_header(group)
            group_runs.append(await self.dispatcher.dispatch_async(group))

        return aggregate(
            group_runs,
            self.max_workers,
            warnings=plan.warnings,
            host_facts=self.host_facts,
            override_used=self.override_used,
        )
