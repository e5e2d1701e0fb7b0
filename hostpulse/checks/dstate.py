"""
Health Check: Processes in D State

Processes in uninterruptible sleep are usually stuck on slow or broken
I/O and cannot be killed. Any such process is reported.
"""

import logging
import os

from hostpulse.core.capability import UNAVAILABLE, process_candidates
from hostpulse.core.check import BaseCheck, CheckResult
from hostpulse.core.errors import ToolAbsent
from hostpulse.core.parsers import ProcessState, parse_proc_stat, parse_ps_states
from hostpulse.core.thresholds import Comparator, Metric, Threshold, evaluate


logger = logging.getLogger(__name__)

UNINTERRUPTIBLE = "D"


class DStateProcessCheck(BaseCheck):
    """Check for processes in uninterruptible sleep."""

    id = "dstate"
    name = "Processes in D State (Uninterruptible Sleep)"
    description = "Lists processes blocked in uninterruptible sleep (state D)"

    def _from_ps(self) -> list[ProcessState]:
        output = self.probe.run(["ps", "-eo", "state,pid,cmd"])
        return parse_ps_states(output.stdout).unwrap()

    def _from_procfs(self) -> list[ProcessState]:
        """Scan <proc>/<pid>/stat when ps is not installed."""
        proc_dir = self.config.paths.proc
        processes: list[ProcessState] = []
        for entry in self.probe.listdir(proc_dir):
            if not entry.isdigit():
                continue
            try:
                stat = self.probe.read_text(os.path.join(proc_dir, entry, "stat"))
            except (ToolAbsent, OSError):
                # Process exited while scanning
                continue
            process = parse_proc_stat(stat)
            if process is None:
                continue
            if process.state == UNINTERRUPTIBLE:
                process = self._with_cmdline(process)
            processes.append(process)
        return processes

    def _with_cmdline(self, process: ProcessState) -> ProcessState:
        path = os.path.join(self.config.paths.proc, str(process.pid), "cmdline")
        try:
            cmdline = self.probe.read_text(path).replace("\x00", " ").strip()
        except (ToolAbsent, OSError):
            return process
        if not cmdline:
            return ProcessState(process.state, process.pid, f"[{process.command}]")
        return ProcessState(process.state, process.pid, cmdline)

    def run(self) -> CheckResult:
        """Execute the D-state process check.

        Returns:
            CheckResult with the outcome of the check
        """
        capability = self.detector.detect(process_candidates(self.config.paths.proc))
        if capability is UNAVAILABLE:
            return self.unknown("No process table available (ps not found)")

        if capability.name == "ps":
            processes = self._from_ps()
        else:
            logger.debug("ps not available, scanning %s", self.config.paths.proc)
            processes = self._from_procfs()

        blocked = [p for p in processes if p.state == UNINTERRUPTIBLE]
        result = evaluate(Metric("dstate_count", len(blocked)), [
            Threshold(
                "dstate_count",
                0,
                Comparator.GT,
                message="Found {value} processes in uninterruptible sleep (D) state",
            ),
        ])

        metrics = {
            "dstate_count": len(blocked),
            "processes": [
                {"state": p.state, "pid": p.pid, "command": p.command} for p in blocked
            ],
        }

        if not result.breached:
            return CheckResult.ok(
                self.id,
                self.name,
                summary="No processes in uninterruptible sleep (D) state",
                metrics=metrics,
            )

        return CheckResult.warning(
            self.id,
            self.name,
            list(result.warnings),
            summary="Details of processes in D state:",
            details=[f"{p.state} {p.pid:>7} {p.command}" for p in blocked],
            metrics=metrics,
        )
