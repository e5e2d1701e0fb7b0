"""
Health Check: Available Updates

Counts pending package updates with the first package manager found
(apt-get, yum, dnf). On apt systems the security subset is reported too.
"""

import logging

from hostpulse.core.capability import UNAVAILABLE, UPDATE_CANDIDATES
from hostpulse.core.check import BaseCheck, CheckResult
from hostpulse.core.errors import CommandFailure
from hostpulse.core.parsers import UpdateCounts, parse_apt_simulation, parse_check_update
from hostpulse.core.thresholds import Comparator, Metric, Threshold, evaluate


logger = logging.getLogger(__name__)

# yum/dnf check-update exit with 100 when updates are available
CHECK_UPDATE_OK_CODES = (0, 100)


class PackageUpdatesCheck(BaseCheck):
    """Check for pending package updates."""

    id = "updates"
    name = "Available Updates"
    description = "Warns when the package manager reports pending updates"
    default_timeout = 120.0

    def _apt(self) -> tuple[UpdateCounts, str]:
        if self.config.refresh_package_lists:
            refresh = self.probe.run(["apt-get", "update"])
            if not refresh.ok:
                logger.warning("apt-get update failed: %s", refresh.stderr.strip())
        output = self.probe.run(["apt-get", "--simulate", "upgrade"])
        if not output.ok:
            raise CommandFailure(list(output.command), output.returncode, output.stderr)
        counts = parse_apt_simulation(output.stdout)
        return counts, "Checking for updates on Debian/Ubuntu based system..."

    def _check_update(self, tool: str) -> tuple[UpdateCounts, str]:
        output = self.probe.run([tool, "check-update", "--quiet"])
        if output.returncode not in CHECK_UPDATE_OK_CODES:
            raise CommandFailure(list(output.command), output.returncode, output.stderr)
        counts = parse_check_update(output.stdout)
        label = "Red Hat based system" if tool == "yum" else "Red Hat based system (using DNF)"
        return counts, f"Checking for updates on {label}..."

    def run(self) -> CheckResult:
        """Execute the pending updates check.

        Returns:
            CheckResult with the outcome of the check
        """
        capability = self.detector.detect(UPDATE_CANDIDATES)
        if capability is UNAVAILABLE:
            return self.unknown("Unable to determine package manager for updates check")

        try:
            if capability.name == "apt":
                counts, intro = self._apt()
            else:
                counts, intro = self._check_update(capability.name)
        except CommandFailure as e:
            return self.unknown(f"{capability.target} could not list updates", details=[str(e)])

        metrics = {"package_manager": capability.name, "updates": counts.total}
        if capability.name == "apt":
            metrics["security_updates"] = counts.security
            summary = (
                f"Available updates: {counts.total} "
                f"(including {counts.security} security updates)"
            )
        else:
            summary = f"Available updates: {counts.total}"

        result = evaluate(Metric("updates", counts.total), [
            Threshold(
                "updates", 0, Comparator.GT,
                message="System has {value} updates available",
            ),
        ])
        if result.breached:
            return CheckResult.warning(
                self.id, self.name, list(result.warnings),
                summary=summary, details=[intro], metrics=metrics,
            )
        return CheckResult.ok(self.id, self.name, summary=summary, details=[intro], metrics=metrics)
