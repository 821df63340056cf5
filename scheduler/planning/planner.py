"""Concurrency planner: derive a safe worker count from host facts."""

from __future__ import annotations

from scheduler.config import GIB, SchedulerConfig
from scheduler.planning.probe import HostFacts

DEFAULT_BYTES_PER_WORKER = 2 * GIB
DEFAULT_HARD_CAP = 4
DEFAULT_CI_CAP = 2


def plan_max_workers(
    facts: HostFacts,
    bytes_per_worker: int = DEFAULT_BYTES_PER_WORKER,
    hard_cap: int = DEFAULT_HARD_CAP,
    ci_cap: int = DEFAULT_CI_CAP,
) -> int:
    """Compute the default maximum worker count for a host.

    In CI the count is capped at ``ci_cap``.  Locally it is the smallest
    of the memory budget (``bytes_per_worker`` each), the CPU count minus
    one reserved core, and ``hard_cap``.

    Args:
        facts: Host facts from the resource probe.
        bytes_per_worker: Memory reserved for one worker.
        hard_cap: Absolute ceiling outside CI.
        ci_cap: Ceiling in CI mode.

    Returns:
        Worker count, always >= 1.
    """
    cpu_count = max(1, facts.logical_cpu_count)

    if facts.ci_mode:
        workers = min(ci_cap, cpu_count)
    else:
        memory_limit = max(0, facts.total_memory_bytes) // max(1, bytes_per_worker)
        cpu_limit = max(1, cpu_count - 1)
        workers = min(memory_limit, cpu_limit, hard_cap)

    return max(1, workers)


def resolve_max_workers(
    facts: HostFacts,
    override: int | None = None,
    config: SchedulerConfig | None = None,
) -> int:
    """Return the worker count for a run, honouring an explicit override.

    Raises:
        ValueError: If the override is less than 1.
    """
    if override is not None:
        if override < 1:
            raise ValueError(f"Worker override must be >= 1, got {override}")
        return override

    if config is None:
        return plan_max_workers(facts)

    return plan_max_workers(
        facts,
        bytes_per_worker=config.bytes_per_worker,
        hard_cap=config.hard_cap,
        ci_cap=config.ci_worker_cap,
    )
