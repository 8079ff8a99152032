"""
Harness errors.

Errors about the harness's own preconditions or its ability to report abort
the run. Errors local to one fixture are recorded in that fixture's report
line and the run continues.
"""


class HarnessError(Exception):
    """Base exception for benchmark harness failures."""

    pass


class DiscoveryError(HarnessError):
    """Fixture source does not exist or cannot be listed."""

    pass


class RuleDefinitionError(HarnessError):
    """Rule definition file cannot be read."""

    pass


class FixtureReadError(HarnessError):
    """A single fixture's bytes cannot be read."""

    def __init__(self, label: str, reason: str):
        super().__init__(f"{label}: {reason}")
        self.label = label
        self.reason = reason


class EngineLaunchError(HarnessError):
    """The engine (or its build step) cannot be started."""

    pass


class EngineExitFailure(HarnessError):
    """The engine ran and terminated with a non-success status."""

    def __init__(self, label: str, exit_status: int):
        super().__init__(f"{label}: engine exited with status {exit_status}")
        self.label = label
        self.exit_status = exit_status


class ReportEmissionError(HarnessError):
    """The harness cannot write its own report output."""

    pass


class ResultsWriteError(HarnessError):
    """Saved results cannot be written to the results directory."""

    pass
