"""
Engine process launching and timing.

The engine is reached through a ProcessLauncher so the harness can be driven
by a stub in tests. SubprocessLauncher is the real implementation.
"""

import logging
import resource
import subprocess
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from rulebench.errors import EngineLaunchError
from rulebench.models import InvocationRecord

logger = logging.getLogger(__name__)


class EngineProcess(ABC):
    """
    Handle on one running engine process.

    Use as a context manager: on exit the input pipe is closed and the
    process is reaped, killing it first if it is still running.
    """

    input_truncated: bool = False

    @abstractmethod
    def write_input(self, data: bytes) -> None:
        """Deliver bytes to the engine's stdin."""

    @abstractmethod
    def close_input(self) -> None:
        """Signal end of input."""

    @abstractmethod
    def wait(self) -> int:
        """Block until the engine terminates and return its exit status."""

    @abstractmethod
    def close(self) -> None:
        """Release pipes and reap the process."""

    def resource_usage(self) -> tuple[float, float] | None:
        """(user, system) CPU seconds used by the engine, if known."""
        return None

    def __enter__(self) -> "EngineProcess":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class ProcessLauncher(ABC):
    """Starts engine processes."""

    @abstractmethod
    def launch(self, command: list[str], cwd: Path | None = None) -> EngineProcess:
        """
        Start the engine with a writable stdin and a discarded stdout.

        Raises:
            EngineLaunchError: If the process cannot be started
        """


class SubprocessEngineProcess(EngineProcess):
    """EngineProcess backed by subprocess.Popen."""

    def __init__(self, process: subprocess.Popen, usage_before: resource.struct_rusage):
        self.process = process
        self.input_truncated = False
        self._usage_before = usage_before
        self._usage: tuple[float, float] | None = None

    def write_input(self, data: bytes) -> None:
        try:
            self.process.stdin.write(data)
        except BrokenPipeError:
            # Engine exited or closed stdin without reading everything
            self.input_truncated = True

    def close_input(self) -> None:
        if self.process.stdin.closed:
            return
        try:
            self.process.stdin.close()
        except BrokenPipeError:
            self.input_truncated = True

    def wait(self) -> int:
        return_code = self.process.wait()

        # RUSAGE_CHILDREN only grows when a child is reaped, and runs are
        # sequential, so the delta belongs to this process.
        after = resource.getrusage(resource.RUSAGE_CHILDREN)
        self._usage = (
            after.ru_utime - self._usage_before.ru_utime,
            after.ru_stime - self._usage_before.ru_stime,
        )
        return return_code

    def resource_usage(self) -> tuple[float, float] | None:
        return self._usage

    def close(self) -> None:
        try:
            self.close_input()
        finally:
            if self.process.poll() is None:
                logger.warning("Engine process %d still running, killing it", self.process.pid)
                self.process.kill()
                self.process.wait()


class SubprocessLauncher(ProcessLauncher):
    """Launches the engine as a real child process."""

    def __init__(self, discard_stderr: bool = False):
        self.discard_stderr = discard_stderr

    def launch(self, command: list[str], cwd: Path | None = None) -> EngineProcess:
        if not command:
            raise EngineLaunchError("Engine command is empty")

        usage_before = resource.getrusage(resource.RUSAGE_CHILDREN)

        try:
            process = subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL if self.discard_stderr else None,
                cwd=cwd,
            )
        except OSError as e:
            raise EngineLaunchError(f"Cannot start engine {command[0]!r}: {e}") from e

        logger.debug("Started engine pid=%d: %s", process.pid, " ".join(command))
        return SubprocessEngineProcess(process, usage_before)


class TimedInvoker:
    """Runs the engine once per payload and times the run."""

    def __init__(
        self,
        launcher: ProcessLauncher,
        command: list[str],
        cwd: Path | None = None,
    ):
        self.launcher = launcher
        self.command = list(command)
        self.cwd = cwd

    def invoke(self, label: str, payload: bytes) -> InvocationRecord:
        """
        Run the engine with payload on stdin.

        Timing starts immediately before launch and ends once the process is
        reaped, so building the payload is never charged to the engine.

        Args:
            label: Fixture label for the record
            payload: Complete stdin contents

        Returns:
            InvocationRecord; a non-zero exit status is recorded, not raised

        Raises:
            EngineLaunchError: If the engine cannot be started
        """
        start = time.perf_counter()
        with self.launcher.launch(self.command, cwd=self.cwd) as process:
            process.write_input(payload)
            process.close_input()
            exit_status = process.wait()
            end = time.perf_counter()
            usage = process.resource_usage()
            truncated = process.input_truncated

        if truncated:
            logger.info("%s: engine stopped reading before all input was delivered", label)

        return InvocationRecord(
            label=label,
            start=start,
            end=end,
            exit_status=exit_status,
            cpu_user_seconds=usage[0] if usage else None,
            cpu_system_seconds=usage[1] if usage else None,
            input_truncated=truncated,
        )


def run_build(launcher: ProcessLauncher, command: list[str], cwd: Path | None = None) -> None:
    """
    Run the engine build step once, before any fixture is timed.

    Raises:
        EngineLaunchError: If the build cannot start or exits non-zero
    """
    with launcher.launch(command, cwd=cwd) as process:
        process.close_input()
        exit_status = process.wait()

    if exit_status != 0:
        raise EngineLaunchError(
            f"Build command {' '.join(command)!r} failed with status {exit_status}"
        )
