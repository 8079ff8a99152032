"""
Benchmark driver and command-line entry point.
"""

import argparse
import json
import logging
import shlex
import sys
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from rulebench.config import BenchmarkConfig, create_run_metadata, load_config
from rulebench.errors import FixtureReadError, HarnessError, ResultsWriteError
from rulebench.fixtures import FixtureEnumerator
from rulebench.launcher import ProcessLauncher, SubprocessLauncher, TimedInvoker, run_build
from rulebench.models import BenchmarkResult, Fixture, InvocationRecord, ReportLine
from rulebench.pipeline import build_input, load_fixture, load_rule_definition
from rulebench.reporter import Reporter, RichReporter, TextReporter, display_label

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FIXTURE_ERRORS = 1
EXIT_FATAL = 2


class BenchmarkDriver:
    """Runs every fixture through the engine, one at a time, and reports timings."""

    def __init__(
        self,
        config: BenchmarkConfig,
        launcher: ProcessLauncher | None = None,
        reporter: Reporter | None = None,
        fixture_names: list[str] | None = None,
    ):
        self.config = config
        self.launcher = launcher or SubprocessLauncher(discard_stderr=config.discard_stderr)
        self.reporter = reporter or TextReporter()
        self.enumerator = FixtureEnumerator(
            config.fixture_source,
            pattern=config.fixture_pattern,
            names=fixture_names,
        )
        self.invoker = TimedInvoker(
            self.launcher,
            config.engine_command,
            cwd=config.engine_cwd,
        )

    def load_fixtures(self) -> list[Fixture]:
        """
        List fixtures in run order.

        Raises:
            DiscoveryError: If the fixture source is unavailable
        """
        return self.enumerator.discover()

    def run_fixture(
        self, fixture: Fixture, rules: bytes
    ) -> tuple[ReportLine, InvocationRecord | None]:
        """
        Build, invoke and time a single fixture.

        Args:
            fixture: Fixture to run
            rules: Rule definition bytes prefixed onto the fixture

        Returns:
            Report line and, if the engine ran, its invocation record

        Raises:
            EngineLaunchError: If the engine cannot be started
        """
        try:
            payload = build_input(rules, load_fixture(fixture))
        except FixtureReadError as e:
            logger.error("Skipping %s", e)
            return ReportLine.read_failure(e), None

        record = self.invoker.invoke(fixture.label, payload)
        return ReportLine.from_record(record), record

    def run(self) -> BenchmarkResult:
        """
        Run the whole benchmark.

        Returns:
            BenchmarkResult with one report line per fixture

        Raises:
            DiscoveryError, RuleDefinitionError, EngineLaunchError,
            ReportEmissionError, ResultsWriteError: The run cannot continue
        """
        # Preconditions are checked before the engine is touched
        fixtures = self.load_fixtures()
        rules = load_rule_definition(self.config.rule_definition_path)

        result = BenchmarkResult(
            run_id=datetime.now().strftime("run_%Y%m%d_%H%M%S"),
            start_time=datetime.now(),
            config_snapshot=create_run_metadata(self.config),
        )

        if self.config.build_command:
            logger.info("Building engine: %s", " ".join(self.config.build_command))
            run_build(self.launcher, self.config.build_command, cwd=self.config.engine_cwd)

        for fixture in fixtures:
            self.reporter.announce(fixture.label)

            line, record = self.run_fixture(fixture, rules)
            if record is not None:
                result.add_record(record)
            result.add_line(line)

            self.reporter.report(line)

        result.end_time = datetime.now()
        self.reporter.finish(result)

        if self.config.results_dir:
            self._save_results(result)

        return result

    def _save_results(self, result: BenchmarkResult) -> Path:
        """
        Save run results to disk.

        Raises:
            ResultsWriteError: If the results directory or file cannot be written
        """
        results_dir = self.config.results_dir / result.run_id
        results_path = results_dir / "results.json"

        try:
            results_dir.mkdir(parents=True, exist_ok=True)
            with open(results_path, "w") as f:
                json.dump(result.to_dict(), f, indent=2)
        except OSError as e:
            raise ResultsWriteError(f"Cannot save results to {results_dir}: {e}") from e

        logger.info("Results saved to: %s", results_path)
        return results_path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rulebench",
        description="Time a rule engine against every fixture in a directory",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="JSON config file; command-line options override its values",
    )

    parser.add_argument(
        "--fixtures",
        type=Path,
        help="Directory of fixture files (default: inputs)",
    )

    parser.add_argument(
        "--rules",
        type=Path,
        help="Rule definition prefixed onto every fixture (default: rules.json)",
    )

    parser.add_argument(
        "--engine",
        help="Engine command line (default: 'cargo run --release --quiet')",
    )

    parser.add_argument(
        "--cwd",
        type=Path,
        help="Working directory for the engine and build command",
    )

    parser.add_argument(
        "--build",
        help="Command run once before the first fixture, e.g. 'cargo build --release'",
    )

    parser.add_argument(
        "--pattern",
        help="Only run fixtures whose file name matches this glob",
    )

    parser.add_argument(
        "--fixture",
        action="append",
        metavar="NAME",
        help="Run only this fixture file name (repeatable)",
    )

    parser.add_argument(
        "--results-dir",
        type=Path,
        help="Save results.json under this directory",
    )

    parser.add_argument(
        "--quiet-engine",
        action="store_true",
        help="Discard engine stderr as well as stdout",
    )

    parser.add_argument(
        "--plain",
        action="store_true",
        help="Disable Rich output (use simple text lines)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List fixtures without running the engine",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def config_from_args(args: argparse.Namespace) -> BenchmarkConfig:
    """Build the run configuration from an optional config file plus CLI overrides."""
    config = load_config(args.config) if args.config else BenchmarkConfig()

    if args.fixtures is not None:
        config.fixture_source = args.fixtures
    if args.rules is not None:
        config.rule_definition_path = args.rules
    if args.engine is not None:
        config.engine_command = shlex.split(args.engine)
    if args.cwd is not None:
        config.engine_cwd = args.cwd
    if args.build is not None:
        config.build_command = shlex.split(args.build)
    if args.pattern is not None:
        config.fixture_pattern = args.pattern
    if args.results_dir is not None:
        config.results_dir = args.results_dir
    if args.quiet_engine:
        config.discard_stderr = True

    return config


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = config_from_args(args)
    except (OSError, ValueError) as e:
        print(f"Error: cannot load config: {e}", file=sys.stderr)
        return EXIT_FATAL

    reporter = TextReporter() if args.plain else RichReporter()
    driver = BenchmarkDriver(config, reporter=reporter, fixture_names=args.fixture)

    try:
        if args.dry_run:
            fixtures = driver.load_fixtures()
            print(f"Found {len(fixtures)} fixtures:")
            for fixture in fixtures:
                print(f"  - {display_label(fixture.label)}")
            return EXIT_OK

        result = driver.run()
    except HarnessError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FATAL

    if result.read_errors:
        return EXIT_FIXTURE_ERRORS
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
