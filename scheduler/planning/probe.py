"""Host resource probe.

Reads the facts the concurrency planner needs from the running host:
logical CPU count, total physical memory, and whether we are inside a CI
job. Every read falls back to a conservative default, so the probe never
raises.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

# Values of the CI environment variable that enable CI mode
CI_TRUTHY = frozenset({"true", "1"})


@dataclass(frozen=True)
class HostFacts:
    """Capacity facts about the host a run executes on."""

    logical_cpu_count: int = 1
    total_memory_bytes: int = 0
    ci_mode: bool = False

    def to_dict(self) -> dict[str, int | bool]:
        return {
            "logical_cpu_count": self.logical_cpu_count,
            "total_memory_bytes": self.total_memory_bytes,
            "ci_mode": self.ci_mode,
        }


def _cpu_count() -> int:
    count = os.cpu_count()
    if count is None or count < 1:
        return 1
    return count


def _total_memory_bytes() -> int:
    """Total physical memory via sysconf, or 0 when the host hides it."""
    try:
        page_size = os.sysconf("SC_PAGE_SIZE")
        pages = os.sysconf("SC_PHYS_PAGES")
    except (AttributeError, ValueError, OSError):
        return 0
    if page_size <= 0 or pages <= 0:
        return 0
    return int(page_size) * int(pages)


def is_ci(environ: Mapping[str, str] | None = None) -> bool:
    """Return True if the environment marks this as a CI job."""
    env = os.environ if environ is None else environ
    return env.get("CI", "").strip().lower() in CI_TRUTHY


def probe_host(
    environ: Mapping[str, str] | None = None,
    force_ci: bool = False,
) -> HostFacts:
    """Read host capacity facts.

    Args:
        environ: Environment mapping to inspect (defaults to os.environ).
        force_ci: Treat the run as CI regardless of the environment.

    Returns:
        HostFacts with cpu count >= 1 and memory >= 0.
    """
    return HostFacts(
        logical_cpu_count=_cpu_count(),
        total_memory_bytes=_total_memory_bytes(),
        ci_mode=force_ci or is_ci(environ),
    )
