"""
Input stream construction for engine runs.
"""

from pathlib import Path

from rulebench.errors import FixtureReadError, RuleDefinitionError
from rulebench.models import Fixture


def load_rule_definition(path: Path) -> bytes:
    """
    Read the rule definition once for the whole run.

    Raises:
        RuleDefinitionError: If the file cannot be read
    """
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise RuleDefinitionError(f"Cannot read rule definition {path}: {e}") from e


def load_fixture(fixture: Fixture) -> bytes:
    """
    Read one fixture's bytes.

    Raises:
        FixtureReadError: If the fixture cannot be read
    """
    try:
        return fixture.path.read_bytes()
    except OSError as e:
        raise FixtureReadError(fixture.label, e.strerror or str(e)) from e


def build_input(rules: bytes, fixture_bytes: bytes) -> bytes:
    """
    Build the engine's stdin: rule bytes immediately followed by fixture bytes.

    >>> build_input(b'{"request": "load-rewrites"}\\n', b'{"request": "version"}')
    b'{"request": "load-rewrites"}\\n{"request": "version"}'
    """
    return rules + fixture_bytes
