"""
Fixture discovery.
"""

import fnmatch
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from rulebench.errors import DiscoveryError
from rulebench.models import Fixture

logger = logging.getLogger(__name__)


class FixtureEnumerator:
    """
    Lists fixture files in a directory in lexicographic order by name.

    Iterating re-lists the directory each time, so the sequence is lazy and
    restartable. Subdirectories and hidden files are skipped; anything else,
    including a dangling symlink, is listed so a read failure gets reported.
    """

    def __init__(
        self,
        source: Path,
        pattern: str = "*",
        names: Iterable[str] | None = None,
    ):
        self.source = Path(source)
        self.pattern = pattern
        self.names = set(names) if names else None

    def __iter__(self) -> Iterator[Fixture]:
        for path in self._list_paths():
            yield Fixture(label=str(self.source / path.name), path=path)

    def discover(self) -> list[Fixture]:
        """List all fixtures eagerly."""
        return list(self)

    def _list_paths(self) -> list[Path]:
        if not self.source.exists():
            raise DiscoveryError(f"Fixture source does not exist: {self.source}")
        if not self.source.is_dir():
            raise DiscoveryError(f"Fixture source is not a directory: {self.source}")

        try:
            entries = list(self.source.iterdir())
        except OSError as e:
            raise DiscoveryError(f"Cannot list fixture source {self.source}: {e}") from e

        paths = sorted(
            (
                p for p in entries
                if not p.name.startswith(".")
                and fnmatch.fnmatchcase(p.name, self.pattern)
                and not p.is_dir()
            ),
            key=lambda p: p.name,
        )

        if self.names is not None:
            missing = self.names - {p.name for p in paths}
            if missing:
                raise DiscoveryError(
                    f"Fixture(s) not found in {self.source}: {', '.join(sorted(missing))}"
                )
            paths = [p for p in paths if p.name in self.names]

        logger.debug("Discovered %d fixture(s) in %s", len(paths), self.source)
        return paths
