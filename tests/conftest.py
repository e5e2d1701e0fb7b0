"""
Shared fixtures: a scripted stand-in for SystemProbe so checks can be
exercised without touching the real host.
"""

import fnmatch
import sys
from pathlib import Path
from typing import Optional, Union

import pytest

# Add project root to import path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from hostpulse.core.config import SweepConfig
from hostpulse.core.errors import SweepCancelled, ToolAbsent
from hostpulse.core.probe import CommandOutput


class FakeProbe:
    """In-memory host: executables on PATH, command outputs, files, dirs."""

    def __init__(self) -> None:
        self.executables: set[str] = set()
        self.commands: dict[tuple[str, ...], Union[CommandOutput, BaseException]] = {}
        self.files: dict[str, str] = {}
        self.dirs: set[str] = set()
        self.mtimes: dict[str, float] = {}
        self.dangling: set[str] = set()
        self.calls: list[tuple[str, ...]] = []
        self.timeouts: dict[tuple[str, ...], Optional[float]] = {}
        self.terminated = False

    # scripting helpers

    def add_command(
        self,
        argv: list[str],
        stdout: str = "",
        returncode: int = 0,
        stderr: str = "",
    ) -> "FakeProbe":
        """Script the output of a command and put its executable on PATH."""
        self.executables.add(argv[0])
        self.commands[tuple(argv)] = CommandOutput(tuple(argv), returncode, stdout, stderr)
        return self

    def add_failure(self, argv: list[str], error: BaseException) -> "FakeProbe":
        """Script a command that raises."""
        self.executables.add(argv[0])
        self.commands[tuple(argv)] = error
        return self

    def add_file(self, path: str, content: str = "", mtime: float = 0.0) -> "FakeProbe":
        self.files[path] = content
        self.mtimes[path] = mtime
        return self

    def add_dir(self, path: str) -> "FakeProbe":
        self.dirs.add(path)
        return self

    def add_dangling_link(self, path: str) -> "FakeProbe":
        """A symlink that globs match but whose target is gone."""
        self.dangling.add(path)
        return self

    # SystemProbe interface

    @property
    def cancelled(self) -> bool:
        return self.terminated

    def which(self, name: str) -> Optional[str]:
        return f"/usr/bin/{name}" if name in self.executables else None

    def has_command(self, name: str) -> bool:
        return name in self.executables

    def run(self, command: list[str], timeout: Optional[float] = None) -> CommandOutput:
        if self.terminated:
            raise SweepCancelled()
        key = tuple(command)
        self.calls.append(key)
        self.timeouts[key] = timeout
        if key not in self.commands:
            if command[0] not in self.executables:
                raise ToolAbsent(command[0])
            raise AssertionError(f"unscripted command: {' '.join(command)}")
        outcome = self.commands[key]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def terminate(self) -> None:
        self.terminated = True

    def read_text(self, path: str) -> str:
        if path not in self.files:
            raise ToolAbsent(path)
        return self.files[path]

    def exists(self, path: str) -> bool:
        return path in self.files or path in self.dirs

    def is_dir(self, path: str) -> bool:
        return path in self.dirs

    def glob(self, pattern: str) -> list[str]:
        entries = list(self.files) + list(self.dangling)
        return sorted(p for p in entries if fnmatch.fnmatch(p, pattern))

    def mtime(self, path: str) -> float:
        if path in self.dangling:
            raise FileNotFoundError(2, "No such file or directory", path)
        return self.mtimes.get(path, 0.0)

    def listdir(self, path: str) -> list[str]:
        names = set()
        prefix = path.rstrip("/") + "/"
        for entry in list(self.files) + list(self.dirs):
            if entry.startswith(prefix):
                names.add(entry[len(prefix):].split("/", 1)[0])
        return sorted(names)


@pytest.fixture
def probe() -> FakeProbe:
    """An empty fake host."""
    return FakeProbe()


@pytest.fixture
def config() -> SweepConfig:
    """Default configuration."""
    return SweepConfig()


@pytest.fixture
def run_check(config):
    """Execute a check class against a fake probe."""
    def _run(check_class, fake_probe, cfg: Optional[SweepConfig] = None):
        return check_class(fake_probe, cfg or config).execute()
    return _run


def proc_stat(pid: int, comm: str, state: str) -> str:
    """Build a /proc/<pid>/stat line."""
    return f"{pid} ({comm}) {state} 1 {pid} {pid} 0 -1 4194560 100 0 0 0 0 0"


@pytest.fixture
def make_proc_stat():
    return proc_stat
