"""Scheduler configuration file management.

Reads and writes the .test_scheduler_config JSON file that stores the
capacity-planning constants, discovery globs, harness commands and
shared-resource indicator patterns used by a scheduling run.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

GIB = 1024 * 1024 * 1024

DEFAULT_CONFIG_PATH = Path(".test_scheduler_config")

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "bytes_per_worker": 2 * GIB,
    "hard_cap": 4,
    "ci_worker_cap": 2,
    "shared_resource_cap": 2,
    "max_workers": None,
    "report_dir": "test-reports",
    "unit_timeout": None,
    "shared_resource_indicators": None,
    "discovery_patterns": {
        "unit": ["tests/unit/**/test_*.py", "src/**/*_test.py"],
        "integration": ["tests/integration/**/test_*.py"],
        "e2e": ["tests/e2e/**/test_*.py"],
    },
    "harness_commands": {
        "unit": ["pytest", "-q"],
        "integration": ["pytest", "-q"],
        "e2e": ["pytest", "-q", "-x"],
    },
}


class SchedulerConfig:
    """Manages the .test_scheduler_config JSON configuration file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if path is not None and path.exists():
            self._load()

    def _load(self) -> None:
        """Load config from the file."""
        assert self.path is not None
        try:
            text = self.path.read_text()
            data = json.loads(text)
            if isinstance(data, dict):
                self._data = {**DEFAULT_CONFIG, **data}
        except (json.JSONDecodeError, OSError):
            self._data = dict(DEFAULT_CONFIG)

    def save(self) -> None:
        """Write config to the file."""
        if self.path is None:
            raise ValueError("No config file path specified")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)
            f.write("\n")

    @property
    def config(self) -> dict[str, Any]:
        """Get the full configuration dict."""
        return dict(self._data)

    @property
    def bytes_per_worker(self) -> int:
        """Get the memory budget reserved for each worker."""
        return int(
            self._data.get("bytes_per_worker", DEFAULT_CONFIG["bytes_per_worker"])
        )

    @property
    def hard_cap(self) -> int:
        """Get the absolute worker ceiling outside CI."""
        return int(self._data.get("hard_cap", DEFAULT_CONFIG["hard_cap"]))

    @property
    def ci_worker_cap(self) -> int:
        """Get the worker ceiling applied in CI mode."""
        return int(
            self._data.get("ci_worker_cap", DEFAULT_CONFIG["ci_worker_cap"])
        )

    @property
    def shared_resource_cap(self) -> int:
        """Get the worker ceiling for shared-resource unit tests."""
        return int(
            self._data.get(
                "shared_resource_cap",
                DEFAULT_CONFIG["shared_resource_cap"],
            )
        )

    @property
    def max_workers(self) -> int | None:
        """Get the explicit worker override (None = planner decides)."""
        val = self._data.get("max_workers", DEFAULT_CONFIG["max_workers"])
        return int(val) if val is not None else None

    @property
    def report_dir(self) -> Path:
        """Get the directory reports are written to by default."""
        return Path(self._data.get("report_dir", DEFAULT_CONFIG["report_dir"]))

    @property
    def unit_timeout(self) -> float | None:
        """Get the per-unit timeout in seconds (None = wait forever)."""
        val = self._data.get("unit_timeout", DEFAULT_CONFIG["unit_timeout"])
        return float(val) if val is not None else None

    @property
    def shared_resource_indicators(self) -> list[dict[str, str]] | None:
        """Get custom indicator patterns (None = built-in set)."""
        val = self._data.get("shared_resource_indicators")
        if val is None:
            return None
        return [dict(entry) for entry in val]

    @property
    def discovery_patterns(self) -> dict[str, list[str]]:
        """Get the discovery globs keyed by category."""
        val = self._data.get("discovery_patterns") or DEFAULT_CONFIG["discovery_patterns"]
        return {category: list(globs) for category, globs in val.items()}

    @property
    def harness_commands(self) -> dict[str, list[str]]:
        """Get the harness argv prefix keyed by category."""
        val = self._data.get("harness_commands") or DEFAULT_CONFIG["harness_commands"]
        return {category: list(argv) for category, argv in val.items()}

    def set_config(
        self,
        max_workers: int | None = None,
        report_dir: str | None = None,
        unit_timeout: float | None = None,
    ) -> None:
        """Update configuration values."""
        if max_workers is not None:
            self._data["max_workers"] = max_workers
        if report_dir is not None:
            self._data["report_dir"] = report_dir
        if unit_timeout is not None:
            self._data["unit_timeout"] = unit_timeout
