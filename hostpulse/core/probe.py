"""
HostPulse - System Probe

Thin, read-only access to the host: running external diagnostic commands
and reading files or pseudo-files. Every check gets its own probe so the
subprocesses it spawns can be killed when the check times out or the
sweep is cancelled.
"""

from __future__ import annotations

from dataclasses import dataclass
import glob as _glob
import logging
import os
import shutil
import subprocess
import threading
from typing import Optional

from .errors import CommandTimeout, CommandFailure, SweepCancelled, ToolAbsent


logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 30.0


@dataclass(frozen=True)
class CommandOutput:
    """Captured result of an external command."""

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str = ""

    @property
    def ok(self) -> bool:
        """True if the command exited with status 0."""
        return self.returncode == 0

    def lines(self) -> list[str]:
        """Return stdout split into lines."""
        return self.stdout.splitlines()


class SystemProbe:
    """Executes diagnostic commands and reads host interfaces.

    Failure modes are kept distinct: a missing tool or file raises
    ToolAbsent, a command that overruns its budget raises CommandTimeout,
    and a probe used after cancellation raises SweepCancelled. A command
    that runs but exits nonzero is *not* an error here; callers decide
    what a nonzero status means.

    Example:
        probe = SystemProbe(command_timeout=5)
        if probe.has_command("getenforce"):
            output = probe.run(["getenforce"])
            print(output.stdout.strip())
    """

    def __init__(
        self,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        cancel_event: Optional[threading.Event] = None,
        search_path: Optional[str] = None,
    ) -> None:
        """Initialize the probe.

        Args:
            command_timeout: Default timeout in seconds for each command
            cancel_event: Shared event set when the whole sweep is cancelled
            search_path: PATH override used for executable lookup
        """
        self._command_timeout = command_timeout
        self._cancel_event = cancel_event or threading.Event()
        self._search_path = search_path
        self._processes: set[subprocess.Popen[str]] = set()
        self._lock = threading.Lock()
        self._terminated = False

    @property
    def cancelled(self) -> bool:
        """True once the probe was terminated or the sweep cancelled."""
        return self._terminated or self._cancel_event.is_set()

    def which(self, name: str) -> Optional[str]:
        """Locate an executable on the search path."""
        return shutil.which(name, path=self._search_path)

    def has_command(self, name: str) -> bool:
        """Check whether an executable is on the search path."""
        return self.which(name) is not None

    def run(self, command: list[str], timeout: Optional[float] = None) -> CommandOutput:
        """Run a command and capture its output.

        Args:
            command: Argument vector; never passed through a shell
            timeout: Override of the default command timeout

        Returns:
            CommandOutput with exit status and captured streams

        Raises:
            ToolAbsent: If the executable does not exist
            CommandFailure: If the executable cannot be started
            CommandTimeout: If the command overruns its budget
            SweepCancelled: If the probe was terminated
        """
        if self.cancelled:
            raise SweepCancelled()

        budget = self._command_timeout if timeout is None else timeout
        env = dict(os.environ)
        env["LC_ALL"] = "C"
        logger.debug("running %s (timeout %.1fs)", " ".join(command), budget)

        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
                env=env,
            )
        except FileNotFoundError:
            raise ToolAbsent(command[0]) from None
        except (PermissionError, OSError) as e:
            raise CommandFailure(command, 126, str(e)) from e

        with self._lock:
            self._processes.add(process)
            if self.cancelled:
                process.kill()

        try:
            stdout, stderr = process.communicate(timeout=budget)
        except subprocess.TimeoutExpired:
            process.kill()
            process.communicate()
            raise CommandTimeout(command, budget) from None
        finally:
            with self._lock:
                self._processes.discard(process)

        if self.cancelled:
            raise SweepCancelled()

        return CommandOutput(
            command=tuple(command),
            returncode=process.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
        )

    def terminate(self) -> None:
        """Kill every in-flight subprocess and refuse further commands."""
        with self._lock:
            self._terminated = True
            processes = list(self._processes)

        for process in processes:
            try:
                process.kill()
            except OSError:
                continue
            logger.debug("killed pid %s", process.pid)

    def read_text(self, path: str) -> str:
        """Read a file or pseudo-file.

        Raises:
            ToolAbsent: If the path does not exist
        """
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return f.read()
        except FileNotFoundError:
            raise ToolAbsent(path) from None

    def exists(self, path: str) -> bool:
        """Check whether a path exists."""
        return os.path.exists(path)

    def is_dir(self, path: str) -> bool:
        """Check whether a path is a directory."""
        return os.path.isdir(path)

    def glob(self, pattern: str) -> list[str]:
        """Expand a glob pattern, sorted by name."""
        return sorted(_glob.glob(pattern))

    def mtime(self, path: str) -> float:
        """Get the modification time of a path."""
        return os.path.getmtime(path)

    def listdir(self, path: str) -> list[str]:
        """List directory entries, or an empty list if unreadable."""
        try:
            return sorted(os.listdir(path))
        except OSError:
            return []
