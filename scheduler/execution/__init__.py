"""Test execution engine: group building, launching and bounded dispatch."""

from scheduler.execution.dispatcher import BoundedDispatcher, ExecutionResult, GroupRun
from scheduler.execution.groups import ConcurrencyPolicy, ExecutionGroup, build_groups
from scheduler.execution.launcher import LaunchFault, LaunchOutcome, SubprocessLauncher

__all__ = [
    "BoundedDispatcher",
    "ConcurrencyPolicy",
    "ExecutionGroup",
    "ExecutionResult",
    "GroupRun",
    "LaunchFault",
    "LaunchOutcome",
    "SubprocessLauncher",
    "build_groups",
]
