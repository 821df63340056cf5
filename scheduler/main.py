"""Entry point for the parallel test scheduler.

Parses command-line arguments, probes the host, plans the worker count,
and runs every discovered (or manifest-listed) test artifact through the
grouped, bounded dispatcher.  Exits 1 when any artifact failed.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from scheduler.classification.classifier import Classifier, indicators_from_config
from scheduler.classification.discovery import ArtifactDescriptor, discover_artifacts, load_manifest
from scheduler.config import DEFAULT_CONFIG_PATH, SchedulerConfig
from scheduler.coordinator import Coordinator
from scheduler.execution.launcher import SubprocessLauncher
from scheduler.planning.planner import resolve_max_workers
from scheduler.planning.probe import probe_host
from scheduler.reporting.reporter import Reporter, default_report_path, print_plan, print_summary


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Parallel test scheduler - runs test artifacts in "
                    "resource-aware execution groups"
    )
    parser.add_argument(
        "--manifest",
        type=Path,
        default=None,
        help="JSON manifest of artifacts (default: discover under --root)",
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=Path("."),
        help="Source tree to discover test files in (default: current directory)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Override the planned maximum worker count",
    )
    parser.add_argument(
        "--config-file",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the scheduler config JSON file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Path to write the report (.json, or .yaml/.yml for YAML; "
             "default: <report_dir>/parallel-test-<timestamp>.json)",
    )
    parser.add_argument(
        "--ci",
        action="store_true",
        default=False,
        help="Plan as a CI run even if the CI environment variable is unset",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-artifact timeout in seconds (default: no timeout)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Print the execution plan without running anything",
    )
    return parser.parse_args(argv)


def _load_descriptors(
    args: argparse.Namespace, config: SchedulerConfig,
) -> list[ArtifactDescriptor]:
    """Read descriptors from the manifest, or discover them under --root.

    Raises:
        ValueError: If the manifest is missing or malformed.
    """
    if args.manifest is not None:
        return load_manifest(args.manifest)
    return discover_artifacts(args.root, config.discovery_patterns)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    config = SchedulerConfig(args.config_file)

    facts = probe_host(force_ci=args.ci)

    try:
        override = args.workers if args.workers is not None else config.max_workers
        max_workers = resolve_max_workers(facts, override, config)
        indicators = indicators_from_config(config.shared_resource_indicators)
        shared_resource_cap = config.shared_resource_cap
        timeout = args.timeout if args.timeout is not None else config.unit_timeout
        harness_commands = config.harness_commands
        report_dir = config.report_dir
        descriptors = _load_descriptors(args, config)
    except (ValueError, TypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("Parallel Test Scheduler")
    print(f"Max workers: {max_workers}"
          f"{' (override)' if override is not None else ''}")
    print(f"CI mode: {'Yes' if facts.ci_mode else 'No'}")

    launcher = SubprocessLauncher(
        harness_commands,
        timeout=timeout,
        cwd=args.root if args.manifest is None else None,
    )
    coordinator = Coordinator(
        launcher,
        max_workers,
        classifier=Classifier(indicators),
        shared_resource_cap=shared_resource_cap,
        host_facts=facts,
        override_used=override is not None,
        verbose=True,
    )

    plan = coordinator.plan(descriptors)
    print(f"Found {plan.artifact_count} test artifacts in {len(plan.groups)} groups")

    if args.dry_run:
        print_plan(plan.groups)
        return 0

    report = coordinator.execute(plan)
    print_summary(report)

    output = args.output or default_report_path(report_dir)
    Reporter(report).write_report(output)
    print(f"\nReport written to: {output}")

    return 0 if report.success else 1


if __name__ == "__main__":
    sys.exit(main())
