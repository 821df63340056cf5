"""Execution groups and their concurrency policies.

Classified artifacts are partitioned into a fixed, ordered list of groups.
The order is also the dispatch order:

1. ParallelUnit: unit tests with no shared resource, full worker count.
2. ResourceConstrainedUnit: unit tests touching a shared resource, capped.
3. Integration: sequential, they mutate one shared environment.
4. EndToEnd: sequential for the same reason.

Groups without members are never produced.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from scheduler.classification.classifier import TestArtifact

SEQUENTIAL = "sequential"
BOUNDED = "bounded"
UNBOUNDED = "unbounded"

GROUP_PARALLEL_UNIT = "ParallelUnit"
GROUP_CONSTRAINED_UNIT = "ResourceConstrainedUnit"
GROUP_INTEGRATION = "Integration"
GROUP_END_TO_END = "EndToEnd"

DEFAULT_SHARED_RESOURCE_CAP = 2


@dataclass(frozen=True)
class ConcurrencyPolicy:
    """Maximum number of simultaneously running members of a group."""

    kind: str
    max_workers: int

    def __post_init__(self) -> None:
        if self.kind not in (SEQUENTIAL, BOUNDED, UNBOUNDED):
            raise ValueError(f"Unknown concurrency policy: {self.kind}")
        if self.max_workers < 1:
            raise ValueError(
                f"Concurrency policy needs max_workers >= 1, got {self.max_workers}"
            )
        if self.kind == SEQUENTIAL and self.max_workers != 1:
            raise ValueError("Sequential policy must have max_workers == 1")
        if self.kind == BOUNDED and self.max_workers < 2:
            raise ValueError("Bounded policy must have max_workers > 1")

    @classmethod
    def sequential(cls) -> ConcurrencyPolicy:
        return cls(SEQUENTIAL, 1)

    @classmethod
    def bounded(cls, max_workers: int) -> ConcurrencyPolicy:
        """Bounded(N); a bound below 2 is just sequential."""
        if max_workers < 2:
            return cls.sequential()
        return cls(BOUNDED, max_workers)

    @classmethod
    def unbounded(cls, max_workers: int) -> ConcurrencyPolicy:
        return cls(UNBOUNDED, max(1, max_workers))

    def describe(self) -> str:
        if self.kind == SEQUENTIAL:
            return "Sequential"
        return f"{self.kind.capitalize()}({self.max_workers})"


@dataclass
class ExecutionGroup:
    """A partition of artifacts sharing one concurrency policy."""

    name: str
    policy: ConcurrencyPolicy
    members: list[TestArtifact] = field(default_factory=list)

    @property
    def max_workers(self) -> int:
        return self.policy.max_workers

    @property
    def effective_max_workers(self) -> int:
        """Workers that can actually be busy at once for this group."""
        return max(1, min(self.policy.max_workers, len(self.members)))


def build_groups(
    artifacts: Iterable[TestArtifact],
    max_workers: int,
    shared_resource_cap: int = DEFAULT_SHARED_RESOURCE_CAP,
) -> list[ExecutionGroup]:
    """Partition classified artifacts into ordered execution groups.

    Args:
        artifacts: Classified artifacts in discovery order.
        max_workers: Worker count from the planner (or override).
        shared_resource_cap: Ceiling for shared-resource unit tests.

    Returns:
        Non-empty groups in dispatch order.

    Raises:
        ValueError: If max_workers is less than 1.
    """
    if max_workers < 1:
        raise ValueError(f"max_workers must be >= 1, got {max_workers}")

    parallel_unit: list[TestArtifact] = []
    constrained_unit: list[TestArtifact] = []
    integration: list[TestArtifact] = []
    end_to_end: list[TestArtifact] = []

    for artifact in artifacts:
        if artifact.category == "unit":
            if artifact.is_shared_resource:
                constrained_unit.append(artifact)
            else:
                parallel_unit.append(artifact)
        elif artifact.category == "integration":
            integration.append(artifact)
        elif artifact.category == "e2e":
            end_to_end.append(artifact)
        else:
            raise ValueError(
                f"Unknown category {artifact.category!r} for {artifact.identifier}"
            )

    candidates = [
        ExecutionGroup(
            GROUP_PARALLEL_UNIT,
            ConcurrencyPolicy.unbounded(max_workers),
            parallel_unit,
        ),
        ExecutionGroup(
            GROUP_CONSTRAINED_UNIT,
            ConcurrencyPolicy.bounded(min(shared_resource_cap, max_workers)),
            constrained_unit,
        ),
        ExecutionGroup(GROUP_INTEGRATION, ConcurrencyPolicy.sequential(), integration),
        ExecutionGroup(GROUP_END_TO_END, ConcurrencyPolicy.sequential(), end_to_end),
    ]

    return [group for group in candidates if group.members]
