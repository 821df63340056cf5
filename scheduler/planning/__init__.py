"""Capacity planning: host probing and worker-count planning."""

from scheduler.planning.planner import plan_max_workers, resolve_max_workers
from scheduler.planning.probe import HostFacts, is_ci, probe_host

__all__ = [
    "HostFacts",
    "is_ci",
    "plan_max_workers",
    "probe_host",
    "resolve_max_workers",
]
