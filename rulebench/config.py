"""
Configuration management for the benchmark harness.
"""

import hashlib
import json
import os
import shlex
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

DEFAULT_ENGINE_COMMAND = ["cargo", "run", "--release", "--quiet"]


@dataclass
class BenchmarkConfig:
    """Configuration for a benchmark run."""

    # Paths
    fixture_source: Path = field(default_factory=lambda: Path("inputs"))
    rule_definition_path: Path = field(default_factory=lambda: Path("rules.json"))

    # Engine settings
    engine_command: list[str] = field(default_factory=lambda: list(DEFAULT_ENGINE_COMMAND))
    engine_cwd: Path | None = None  # Defaults to the harness's cwd
    build_command: list[str] | None = None  # Run once before the first fixture
    discard_stderr: bool = False  # Engine stderr passes through unless set

    # Fixture selection
    fixture_pattern: str = "*"

    # Output
    results_dir: Path | None = None  # Save results.json here when set

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "fixture_source": str(self.fixture_source),
            "rule_definition_path": str(self.rule_definition_path),
            "engine_command": list(self.engine_command),
            "engine_cwd": str(self.engine_cwd) if self.engine_cwd else None,
            "build_command": list(self.build_command) if self.build_command else None,
            "discard_stderr": self.discard_stderr,
            "fixture_pattern": self.fixture_pattern,
            "results_dir": str(self.results_dir) if self.results_dir else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BenchmarkConfig":
        """Create from dictionary."""
        engine_cwd = data.get("engine_cwd")
        results_dir = data.get("results_dir")
        build_command = data.get("build_command")
        return cls(
            fixture_source=Path(data.get("fixture_source", "inputs")),
            rule_definition_path=Path(data.get("rule_definition_path", "rules.json")),
            engine_command=_parse_command(data.get("engine_command", DEFAULT_ENGINE_COMMAND)),
            engine_cwd=Path(engine_cwd) if engine_cwd else None,
            build_command=_parse_command(build_command) if build_command else None,
            discard_stderr=data.get("discard_stderr", False),
            fixture_pattern=data.get("fixture_pattern", "*"),
            results_dir=Path(results_dir) if results_dir else None,
        )


def _parse_command(value: Any) -> list[str]:
    """
    Accept a command as an argument list or a shell-style string.

    >>> _parse_command("cargo run --release")
    ['cargo', 'run', '--release']
    """
    if isinstance(value, str):
        return shlex.split(value)
    if isinstance(value, list) and all(isinstance(arg, str) for arg in value):
        return list(value)
    raise ValueError(f"Command must be a string or a list of strings, got {value!r}")


def load_config(path: Path) -> BenchmarkConfig:
    """
    Load a configuration from a JSON file.

    Keys missing from the file take their defaults.

    Args:
        path: Path to a JSON object with BenchmarkConfig field names

    Returns:
        BenchmarkConfig

    Raises:
        ValueError: If the file does not hold a JSON object
    """
    with open(path) as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")

    return BenchmarkConfig.from_dict(data)


def get_file_hash(file_path: Path) -> str:
    """SHA256 prefix of a single file, or an empty string if it is unreadable."""
    try:
        return hashlib.sha256(file_path.read_bytes()).hexdigest()[:12]
    except OSError:
        return ""


def get_fixtures_hash(fixture_dir: Path) -> str:
    """
    Calculate hash of the fixture set for comparing runs.

    Args:
        fixture_dir: Directory containing fixture files

    Returns:
        SHA256 prefix over names and contents of all non-hidden files
    """
    hasher = hashlib.sha256()

    if not fixture_dir.is_dir():
        return ""

    for file_path in sorted(fixture_dir.iterdir()):
        if not file_path.is_dir() and not file_path.name.startswith("."):
            hasher.update(os.fsencode(file_path.name))
            hasher.update(get_file_hash(file_path).encode())

    return hasher.hexdigest()[:12]


def create_run_metadata(config: BenchmarkConfig) -> dict[str, Any]:
    """
    Create run metadata for reproducibility.

    Args:
        config: Benchmark configuration

    Returns:
        Dictionary with run metadata
    """
    return {
        "timestamp": datetime.now().isoformat(),
        "config": config.to_dict(),
        "input_hashes": {
            "rules": get_file_hash(config.rule_definition_path),
            "fixtures": get_fixtures_hash(config.fixture_source),
        },
    }
