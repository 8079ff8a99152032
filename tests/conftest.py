import sys
import textwrap
from pathlib import Path

import pytest

# Ensure project root is on sys.path for `import rulebench.*`
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rulebench.launcher import EngineProcess, ProcessLauncher  # noqa: E402


# Reads all of stdin, saves it as the next numbered file in argv[1], then obeys
# "SLEEP <seconds>" and "EXIT <status>" lines found in its input.
STUB_ENGINE = textwrap.dedent(
    """
    import os
    import sys
    import time

    data = sys.stdin.buffer.read()
    record_dir = sys.argv[1]
    index = len(os.listdir(record_dir))
    with open(os.path.join(record_dir, "%04d.bin" % index), "wb") as f:
        f.write(data)

    for line in data.decode("utf-8", errors="replace").splitlines():
        if line.startswith("SLEEP "):
            time.sleep(float(line.split()[1]))
        elif line.startswith("EXIT "):
            sys.exit(int(line.split()[1]))
    """
)


class StubProcess(EngineProcess):
    def __init__(self, launcher: "StubLauncher", command: list[str]):
        self.launcher = launcher
        self.command = command
        self.received = b""
        self.input_closed = False
        self.closed = False

    def write_input(self, data: bytes) -> None:
        assert not self.input_closed
        self.received += data

    def close_input(self) -> None:
        self.input_closed = True

    def wait(self) -> int:
        return self.launcher.exit_status_for(self.received)

    def close(self) -> None:
        self.closed = True


class StubLauncher(ProcessLauncher):
    """Records launches instead of starting processes."""

    def __init__(self, exit_statuses: dict[bytes, int] | None = None):
        self.exit_statuses = exit_statuses or {}
        self.processes: list[StubProcess] = []

    def launch(self, command, cwd=None):
        process = StubProcess(self, list(command))
        self.processes.append(process)
        return process

    def exit_status_for(self, payload: bytes) -> int:
        for marker, status in self.exit_statuses.items():
            if marker in payload:
                return status
        return 0

    @property
    def payloads(self) -> list[bytes]:
        return [p.received for p in self.processes]


@pytest.fixture
def stub_launcher():
    return StubLauncher()


@pytest.fixture
def rules_file(tmp_path):
    path = tmp_path / "rules.json"
    path.write_bytes(b'{"request": "load-rewrites", "rewrites": []}\n')
    return path


@pytest.fixture
def make_fixtures(tmp_path):
    """Create a fixture directory from a name -> bytes mapping."""
    def _make(files: dict[str, bytes], dirname: str = "inputs") -> Path:
        fixture_dir = tmp_path / dirname
        fixture_dir.mkdir()
        for name, content in files.items():
            (fixture_dir / name).write_bytes(content)
        return fixture_dir
    return _make


@pytest.fixture
def stub_engine(tmp_path):
    """Command for a real child process that records each stdin it receives."""
    script = tmp_path / "stub_engine.py"
    script.write_text(STUB_ENGINE)
    record_dir = tmp_path / "received"
    record_dir.mkdir()
    return [sys.executable, str(script), str(record_dir)], record_dir
