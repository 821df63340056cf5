"""Bounded dispatcher: drains one execution group through a worker pool.

The dispatcher keeps a FIFO queue of pending artifacts and an active set
of in-flight tasks.  It tops the active set up to the group's limit, waits
for whichever task finishes first, records its result, and refills before
waiting again.  Members are launched in group order; results are recorded
in completion order.

Every member produces exactly one ExecutionResult.  A failing or
unlaunchable artifact never cancels or delays its siblings.  The
dispatcher imposes no timeout: a unit that never returns stalls its group
unless its launcher enforces one.  The cancel event is handed to every
launch so a launcher may stop early once it is set.
"""

from __future__ import annotations

import asyncio
import itertools
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from scheduler.classification.classifier import TestArtifact
from scheduler.execution.groups import ExecutionGroup
from scheduler.execution.launcher import Launcher

PASSED = "passed"
FAILED = "failed"

# Lines of captured output kept in a failure's error detail
ERROR_TAIL_LINES = 20


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of running one artifact."""

    artifact_id: str
    outcome: str  # passed, failed
    duration_millis: int = 0
    error_detail: str | None = None
    group: str = ""
    exit_status: int | None = None
    output: str = ""
    started_at: float = 0.0
    finished_at: float = 0.0
    launch_fault: bool = False

    @property
    def passed(self) -> bool:
        return self.outcome == PASSED

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "artifact_id": self.artifact_id,
            "group": self.group,
            "outcome": self.outcome,
            "duration_millis": self.duration_millis,
            "exit_status": self.exit_status,
        }
        if self.error_detail is not None:
            data["error_detail"] = self.error_detail
        if self.launch_fault:
            data["launch_fault"] = True
        return data


@dataclass
class GroupRun:
    """A drained group with its results in completion order."""

    group: ExecutionGroup
    results: list[ExecutionResult] = field(default_factory=list)
    wall_duration_millis: int = 0
    peak_running: int = 0


def _elapsed_millis(start: float, end: float) -> int:
    return max(0, int(round((end - start) * 1000)))


def _failure_detail(exit_status: int, captured_output: str) -> str:
    detail = f"Test failed with exit code {exit_status}"
    lines = captured_output.strip().splitlines()
    if lines:
        detail += "\n" + "\n".join(lines[-ERROR_TAIL_LINES:])
    return detail


class BoundedDispatcher:
    """Runs group members with at most ``group.max_workers`` in flight."""

    def __init__(
        self,
        launcher: Launcher,
        clock: Callable[[], float] = time.monotonic,
        on_result: Callable[[ExecutionResult], None] | None = None,
    ) -> None:
        self.launcher = launcher
        self.clock = clock
        self.on_result = on_result
        self.cancel_event = threading.Event()

    def cancel(self) -> None:
        """Signal launchers that the run is being cancelled."""
        self.cancel_event.set()

    def dispatch(self, group: ExecutionGroup) -> GroupRun:
        """Execute all members of a group.

        Returns:
            GroupRun with one result per member, in completion order.
        """
        return asyncio.run(self.dispatch_async(group))

    async def dispatch_async(self, group: ExecutionGroup) -> GroupRun:
        """Async implementation of group dispatch."""
        run = GroupRun(group=group)
        queue: deque[TestArtifact] = deque(group.members)
        active: dict[asyncio.Task[ExecutionResult], int] = {}
        launch_seq = itertools.count()
        limit = group.max_workers

        group_start = self.clock()

        while queue or active:
            # Refill free slots in member order
            while queue and len(active) < limit:
                artifact = queue.popleft()
                task = asyncio.create_task(self._execute(group.name, artifact))
                active[task] = next(launch_seq)

            run.peak_running = max(run.peak_running, len(active))

            done, _ = await asyncio.wait(
                active.keys(), return_when=asyncio.FIRST_COMPLETED,
            )

            finished = sorted(
                done, key=lambda t: (t.result().finished_at, active[t]),
            )
            for task in finished:
                del active[task]
                result = task.result()
                run.results.append(result)
                if self.on_result is not None:
                    self.on_result(result)

        run.wall_duration_millis = _elapsed_millis(group_start, self.clock())
        return run

    async def _execute(
        self, group_name: str, artifact: TestArtifact,
    ) -> ExecutionResult:
        """Launch one artifact and convert its outcome to a result.

        Never raises for failures of the unit itself: launch faults,
        malformed outcomes and non-zero exits all become failed results.
        """
        started_at = self.clock()
        try:
            outcome = await self.launcher(artifact, self.cancel_event)
            exit_status = int(outcome.exit_status)
            output = str(outcome.captured_output)
        except Exception as e:
            finished_at = self.clock()
            return ExecutionResult(
                artifact_id=artifact.identifier,
                outcome=FAILED,
                duration_millis=_elapsed_millis(started_at, finished_at),
                error_detail=str(e) or type(e).__name__,
                group=group_name,
                started_at=started_at,
                finished_at=finished_at,
                launch_fault=True,
            )

        finished_at = self.clock()
        passed = exit_status == 0
        return ExecutionResult(
            artifact_id=artifact.identifier,
            outcome=PASSED if passed else FAILED,
            duration_millis=_elapsed_millis(started_at, finished_at),
            error_detail=None if passed else _failure_detail(exit_status, output),
            group=group_name,
            exit_status=exit_status,
            output=output,
            started_at=started_at,
            finished_at=finished_at,
        )
