"""Execution-unit launchers.

A launcher starts one test artifact and eventually reports its exit status
and captured output.  The dispatcher only needs the async call signature::

    async def launch(artifact, cancel_event) -> LaunchOutcome

and treats any exception raised by it as a launch fault.  SubprocessLauncher
is the stock implementation: it runs the harness command configured for
the artifact's category with the artifact identifier appended.
"""

from __future__ import annotations

import asyncio
import os
import subprocess
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from scheduler.classification.classifier import TestArtifact


@dataclass(frozen=True)
class LaunchOutcome:
    """Terminal outcome of a started execution unit."""

    exit_status: int
    captured_output: str = ""


class LaunchFault(Exception):
    """The execution unit could not be started."""


Launcher = Callable[[TestArtifact, threading.Event], Awaitable[LaunchOutcome]]


class SubprocessLauncher:
    """Runs each artifact through its category's harness command.

    The subprocess is run in the event loop's default thread pool, so a
    blocking harness never stalls the dispatcher's wait on other units.
    """

    def __init__(
        self,
        harness_commands: dict[str, list[str]],
        timeout: float | None = None,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        self.harness_commands = harness_commands
        self.timeout = timeout
        self.cwd = cwd
        self.env = env or {}

    def command_for(self, artifact: TestArtifact) -> list[str]:
        """Build the argv for an artifact.

        Raises:
            LaunchFault: If no harness is configured for the category.
        """
        prefix = self.harness_commands.get(artifact.category)
        if not prefix:
            raise LaunchFault(
                f"No harness command configured for category {artifact.category!r}"
            )
        return [*prefix, artifact.identifier]

    async def __call__(
        self, artifact: TestArtifact, cancel_event: threading.Event,
    ) -> LaunchOutcome:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, self._run_sync, artifact, cancel_event,
        )

    def _run_sync(
        self, artifact: TestArtifact, cancel_event: threading.Event,
    ) -> LaunchOutcome:
        """Run a single artifact synchronously (called from thread pool).

        Args:
            artifact: Artifact to run.
            cancel_event: Set when the run was cancelled.

        Returns:
            LaunchOutcome with the harness exit status and output.

        Raises:
            LaunchFault: If the harness could not be started.
        """
        if cancel_event.is_set():
            raise LaunchFault("Cancelled before launch")

        command = self.command_for(artifact)
        env = {**os.environ, "FORCE_COLOR": "0", **self.env}

        try:
            proc = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                cwd=self.cwd,
                env=env,
            )
        except subprocess.TimeoutExpired:
            return LaunchOutcome(
                exit_status=-1,
                captured_output=f"Test timed out after {self.timeout} seconds",
            )
        except FileNotFoundError:
            raise LaunchFault(f"Executable not found: {command[0]}")
        except OSError as e:
            raise LaunchFault(f"OS error launching test: {e}")

        return LaunchOutcome(
            exit_status=proc.returncode,
            captured_output=proc.stdout + proc.stderr,
        )
