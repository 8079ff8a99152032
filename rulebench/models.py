"""
Data models for the benchmark harness.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from rulebench.errors import EngineExitFailure, FixtureReadError


class RunStatus(Enum):
    """Outcome of a single fixture run."""
    OK = "ok"
    ENGINE_FAILED = "engine-failed"  # Engine exited non-zero
    READ_ERROR = "read-error"  # Fixture bytes could not be read


@dataclass(frozen=True)
class Fixture:
    """One input payload, identified by a label derived from its path."""
    label: str
    path: Path

    @property
    def name(self) -> str:
        return self.path.name


@dataclass
class InvocationRecord:
    """Bookkeeping for one timed engine run."""
    label: str
    start: float  # time.perf_counter() immediately before launch
    end: float  # time.perf_counter() after the process was reaped
    exit_status: int

    # Child CPU time, when the platform reports it
    cpu_user_seconds: float | None = None
    cpu_system_seconds: float | None = None

    # Engine closed its stdin before all input was written
    input_truncated: bool = False

    @property
    def elapsed_seconds(self) -> float:
        return self.end - self.start

    @property
    def succeeded(self) -> bool:
        return self.exit_status == 0

    def exit_failure(self) -> EngineExitFailure | None:
        """Describe a non-zero exit, or None if the engine succeeded."""
        if self.succeeded:
            return None
        return EngineExitFailure(self.label, self.exit_status)

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "start": self.start,
            "end": self.end,
            "elapsed_seconds": self.elapsed_seconds,
            "exit_status": self.exit_status,
            "cpu_user_seconds": self.cpu_user_seconds,
            "cpu_system_seconds": self.cpu_system_seconds,
            "input_truncated": self.input_truncated,
        }


@dataclass(frozen=True)
class ReportLine:
    """The per-fixture output artifact. Produced once, never updated."""
    label: str
    status: RunStatus
    elapsed_seconds: float | None = None
    exit_status: int | None = None
    error_message: str = ""

    @classmethod
    def from_record(cls, record: InvocationRecord) -> "ReportLine":
        """Build the report line for a completed engine run."""
        failure = record.exit_failure()
        return cls(
            label=record.label,
            status=RunStatus.OK if failure is None else RunStatus.ENGINE_FAILED,
            elapsed_seconds=record.elapsed_seconds,
            exit_status=record.exit_status,
            error_message=str(failure) if failure else "",
        )

    @classmethod
    def read_failure(cls, error: FixtureReadError) -> "ReportLine":
        """Build the report line for a fixture that could not be read."""
        return cls(
            label=error.label,
            status=RunStatus.READ_ERROR,
            error_message=error.reason,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "status": self.status.value,
            "elapsed_seconds": self.elapsed_seconds,
            "exit_status": self.exit_status,
            "error_message": self.error_message,
        }


@dataclass
class BenchmarkResult:
    """Everything reported during one harness run, in enumeration order."""
    run_id: str
    start_time: datetime
    end_time: datetime | None = None

    lines: list[ReportLine] = field(default_factory=list)
    records: list[InvocationRecord] = field(default_factory=list)

    # Metadata
    config_snapshot: dict[str, Any] = field(default_factory=dict)

    def add_line(self, line: ReportLine) -> None:
        self.lines.append(line)

    def add_record(self, record: InvocationRecord) -> None:
        self.records.append(record)

    @property
    def read_errors(self) -> list[ReportLine]:
        return [line for line in self.lines if line.status == RunStatus.READ_ERROR]

    @property
    def engine_failures(self) -> list[ReportLine]:
        return [line for line in self.lines if line.status == RunStatus.ENGINE_FAILED]

    def get_summary(self) -> dict[str, Any]:
        """Get run summary counts."""
        return {
            "run_id": self.run_id,
            "fixtures": len(self.lines),
            "ok": len([line for line in self.lines if line.status == RunStatus.OK]),
            "engine_failed": len(self.engine_failures),
            "read_errors": len(self.read_errors),
            "total_elapsed_seconds": sum(r.elapsed_seconds for r in self.records),
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "run_id": self.run_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "config": self.config_snapshot,
            "summary": self.get_summary(),
            "lines": [line.to_dict() for line in self.lines],
            "records": [record.to_dict() for record in self.records],
        }
