"""
Health Check: Reboot Required

Signals are consulted in priority order and the first one that gives an
answer wins: the reboot-required marker, the marker listing packages,
the needs-restarting advisory tool, and finally a comparison of the
running kernel against the newest kernel image installed in /boot.
"""

import logging
import os
from typing import Optional

from hostpulse.core.capability import CapabilityCandidate, reboot_candidates
from hostpulse.core.check import BaseCheck, CheckResult
from hostpulse.core.errors import ToolAbsent
from hostpulse.core.parsers import kernel_version_from_image


logger = logging.getLogger(__name__)

# needs-restarting -r exits 1 when a reboot is needed, 0 when not
NEEDS_RESTARTING_REBOOT = 1
NEEDS_RESTARTING_CLEAN = 0


class RebootRequiredCheck(BaseCheck):
    """Check whether the system needs a reboot."""

    id = "reboot"
    name = "Reboot Required Check"
    description = "Warns when package updates or a newer kernel require a reboot"

    def _marker(self, candidate: CapabilityCandidate) -> CheckResult:
        return CheckResult.warning(
            self.id, self.name, ["System requires a reboot"],
            summary=f"{candidate.target} is present",
            metrics={"signal": candidate.name},
        )

    def _marker_pkgs(self, candidate: CapabilityCandidate) -> CheckResult:
        content = self.probe.read_text(candidate.target)
        packages = [line.strip() for line in content.splitlines() if line.strip()]
        return CheckResult.warning(
            self.id, self.name,
            [f"System requires a reboot due to package updates ({len(packages)} packages)"],
            summary=f"{candidate.target} is present",
            details=packages,
            metrics={"signal": candidate.name, "packages": len(packages)},
        )

    def _needs_restarting(self) -> Optional[CheckResult]:
        output = self.probe.run(["needs-restarting", "-r"])
        metrics = {"signal": "needs_restarting", "exit_status": output.returncode}
        if output.returncode == NEEDS_RESTARTING_REBOOT:
            return CheckResult.warning(
                self.id, self.name,
                ["System requires a reboot according to needs-restarting"],
                summary=output.stdout.strip().splitlines()[0] if output.stdout.strip() else "",
                metrics=metrics,
            )
        if output.returncode == NEEDS_RESTARTING_CLEAN:
            return CheckResult.ok(self.id, self.name, summary="No reboot required", metrics=metrics)
        logger.debug("needs-restarting exited %s, falling through", output.returncode)
        return None

    def _running_kernel(self) -> Optional[str]:
        try:
            output = self.probe.run(["uname", "-r"])
            if output.ok and output.stdout.strip():
                return output.stdout.strip()
        except ToolAbsent:
            logger.debug("uname not available, reading %s", self.config.paths.osrelease)
        try:
            return self.probe.read_text(self.config.paths.osrelease).strip() or None
        except ToolAbsent:
            return None

    def _newest_kernel(self, boot_dir: str) -> Optional[str]:
        """Newest vmlinuz image by modification time, name breaking ties."""
        images: list[tuple[float, str]] = []
        for path in self.probe.glob(os.path.join(boot_dir, "vmlinuz-*")):
            try:
                images.append((self.probe.mtime(path), path))
            except OSError as e:
                # Dangling symlink or image removed while scanning
                logger.debug("skipping kernel image %s: %s", path, e)
        if not images:
            return None
        return kernel_version_from_image(max(images)[1])

    def _kernel(self, candidate: CapabilityCandidate) -> Optional[CheckResult]:
        running = self._running_kernel()
        if running is None:
            logger.warning("running kernel version could not be determined")
            return None

        newest = self._newest_kernel(candidate.target)
        metrics = {"signal": "kernel", "running_kernel": running, "newest_kernel": newest}
        if newest and newest != running:
            return CheckResult.warning(
                self.id, self.name,
                [f"System is running kernel {running} but kernel {newest} is available"],
                summary="Newer kernel installed",
                metrics=metrics,
            )
        return CheckResult.ok(
            self.id, self.name,
            summary="No reboot required (running latest kernel)",
            details=[f"Running kernel: {running}"],
            metrics=metrics,
        )

    def run(self) -> CheckResult:
        """Execute the reboot-required check.

        Returns:
            CheckResult with the outcome of the check
        """
        paths = self.config.paths
        candidates = reboot_candidates(paths.reboot_marker, paths.reboot_marker_pkgs, paths.boot_dir)

        for candidate in self.detector.available(candidates):
            logger.debug("reboot signal candidate: %s", candidate.name)
            if candidate.name == "marker":
                return self._marker(candidate)
            if candidate.name == "marker_pkgs":
                return self._marker_pkgs(candidate)
            if candidate.name == "needs_restarting":
                result = self._needs_restarting()
            else:
                result = self._kernel(candidate)
            if result is not None:
                return result

        return self.unknown("Unable to determine if reboot is required")
