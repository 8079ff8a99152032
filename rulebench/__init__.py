"""
rulebench

Timing harness for a stdin-driven rule engine: runs the engine once per
fixture with the rule definition prefixed onto its input.
"""

from rulebench.config import BenchmarkConfig
from rulebench.models import BenchmarkResult, Fixture, InvocationRecord, ReportLine, RunStatus
from rulebench.fixtures import FixtureEnumerator
from rulebench.launcher import ProcessLauncher, SubprocessLauncher, TimedInvoker
from rulebench.reporter import RichReporter, TextReporter
from rulebench.runner import BenchmarkDriver

__all__ = [
    "BenchmarkConfig",
    "BenchmarkResult",
    "Fixture",
    "InvocationRecord",
    "ReportLine",
    "RunStatus",
    "FixtureEnumerator",
    "ProcessLauncher",
    "SubprocessLauncher",
    "TimedInvoker",
    "RichReporter",
    "TextReporter",
    "BenchmarkDriver",
]
