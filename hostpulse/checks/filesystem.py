"""
Health Check: File System Usage

Warns about every mounted filesystem with more than 90% of its space or
more than 90% of its inodes used. Space and inode breaches are tracked
independently, so one mountpoint can be reported twice.
"""

import logging
import time

from hostpulse.core.check import BaseCheck, CheckResult
from hostpulse.core.errors import HostPulseError, SweepCancelled
from hostpulse.core.parsers import FilesystemUsage, format_kib, parse_df, parse_du
from hostpulse.core.thresholds import Comparator, Metric, Scope, Threshold, evaluate


logger = logging.getLogger(__name__)

# Part of the check budget df and du may use together
DU_BUDGET_SHARE = 0.7


def _percent_text(percent):
    return "-" if percent is None else f"{percent}%"


class FilesystemUsageCheck(BaseCheck):
    """Check space and inode usage of mounted filesystems."""

    id = "filesystem"
    name = "File System Usage"
    description = (
        "Warns when a mounted filesystem has less than 10% of its space "
        "or inodes remaining"
    )

    def _is_excluded(self, fs: FilesystemUsage) -> bool:
        """Pseudo filesystems (tmpfs, devtmpfs, snaps...) are not evaluated."""
        if fs.fs_type in self.config.excluded_fs_types:
            return True
        return any(
            pattern in fs.device or pattern in fs.mountpoint
            for pattern in self.config.excluded_fs_patterns
        )

    def _collect(self, inodes: bool) -> list[FilesystemUsage]:
        """Run df for blocks or inodes and drop excluded filesystems."""
        command = ["df", "-P", "-T", "-i" if inodes else "-k"]
        output = self.probe.run(command)
        # df exits 1 when one mount is unreadable but still lists the rest
        parsed = parse_df(output.stdout)
        if not parsed.ok:
            logger.debug("df exited %s: %s", output.returncode, output.stderr.strip())
        rows = parsed.unwrap()
        return [fs for fs in rows if not self._is_excluded(fs)]

    def _du_timeout(self, deadline: float) -> float:
        """Time left for one du run, capped by the configured du timeout."""
        return min(self.config.du_timeout, deadline - time.monotonic())

    def _largest_directories(self, mountpoint: str, deadline: float) -> list[str]:
        """List the largest directories directly below a mountpoint."""
        timeout = self._du_timeout(deadline)
        if timeout <= 0:
            logger.debug("no time left to size directories on %s", mountpoint)
            return [f"Could not size directories on {mountpoint}"]
        try:
            output = self.probe.run(["du", "-x", "-k", "-d", "1", mountpoint], timeout=timeout)
        except SweepCancelled:
            raise
        except HostPulseError as e:
            logger.debug("du on %s failed: %s", mountpoint, e)
            return [f"Could not size directories on {mountpoint}"]

        # du lists the mountpoint itself as the grand total
        entries = [
            (size, path) for size, path in parse_du(output.stdout)
            if path.rstrip("/") != mountpoint.rstrip("/")
        ]
        top = entries[: self.config.largest_dirs_count]
        if not top:
            return []
        lines = [f"Largest directories on {mountpoint}:"]
        lines.extend(f"  {format_kib(size):>6}  {path}" for size, path in top)
        return lines

    def run(self) -> CheckResult:
        """Execute the filesystem usage check.

        Returns:
            CheckResult with the outcome of the check
        """
        if not self.probe.has_command("df"):
            return self.unknown("df command not found")

        budget = self.config.timeout_for(self.id, self.default_timeout)
        deadline = time.monotonic() + budget * DU_BUDGET_SHARE

        space_rows = self._collect(inodes=False)
        details = [
            f"{fs.device:<25} {_percent_text(fs.percent):<8} {fs.mountpoint}"
            for fs in space_rows
        ]
        undetermined: list[str] = []

        space_metric = Metric(
            "disk_percent", {fs.mountpoint: fs.percent for fs in space_rows}, "%"
        )
        space = evaluate(space_metric, [
            Threshold(
                "disk_percent",
                self.config.disk_percent,
                Comparator.GT,
                Scope.PER_ENTITY,
                f"Less than {100 - self.config.disk_percent}% space remaining on {{entity}}",
            ),
        ])

        inode_values: dict[str, object] = {}
        try:
            inode_rows = self._collect(inodes=True)
            inode_values = {fs.mountpoint: fs.percent for fs in inode_rows}
        except SweepCancelled:
            raise
        except HostPulseError as e:
            logger.warning("inode usage unavailable: %s", e)
            undetermined.append("inode usage")

        inodes = evaluate(Metric("inode_percent", inode_values, "%"), [
            Threshold(
                "inode_percent",
                self.config.inode_percent,
                Comparator.GT,
                Scope.PER_ENTITY,
                f"Less than {100 - self.config.inode_percent}% inodes remaining on {{entity}}",
            ),
        ])

        if self.config.report_largest_dirs:
            for mountpoint, value in space_metric.value.items():
                if value is not None and value > self.config.disk_percent:
                    details.extend(self._largest_directories(mountpoint, deadline))

        return CheckResult.combine(
            self.id,
            self.name,
            details=details,
            warnings=list(space.warnings) + list(inodes.warnings),
            undetermined=undetermined,
            metrics={
                "disk_percent": space_metric.value,
                "inode_percent": inode_values,
            },
        )
