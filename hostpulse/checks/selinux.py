"""
Health Check: SELinux Status

Warns when SELinux is present but not enforcing. The live mode from
getenforce is preferred; the config file is consulted only when the tool
is not installed. Hosts without SELinux report UNKNOWN, never WARNING.
"""

import logging

from hostpulse.core.capability import UNAVAILABLE, selinux_candidates
from hostpulse.core.check import BaseCheck, CheckResult
from hostpulse.core.parsers import parse_getenforce, parse_selinux_config
from hostpulse.core.thresholds import Comparator, Metric, Threshold, evaluate


logger = logging.getLogger(__name__)

# getenforce prints the capitalised mode, the config file holds it lower-case.
LIVE_ENFORCING = "Enforcing"
CONFIG_ENFORCING = "enforcing"


class SELinuxStatusCheck(BaseCheck):
    """Check that SELinux is enforcing."""

    id = "selinux"
    name = "SELinux Status"
    description = "Warns when SELinux is installed but not in enforcing mode"

    def run(self) -> CheckResult:
        """Execute the SELinux status check.

        Returns:
            CheckResult with the outcome of the check
        """
        config_path = self.config.paths.selinux_config
        capability = self.detector.detect(selinux_candidates(config_path))

        if capability is UNAVAILABLE:
            return self.unknown("SELinux not present on this system")

        if capability.name == "getenforce":
            output = self.probe.run(["getenforce"])
            if not output.ok:
                return self.unknown(
                    "getenforce failed",
                    details=[output.stderr.strip() or f"exit status {output.returncode}"],
                )
            parsed = parse_getenforce(output.stdout)
            expected = LIVE_ENFORCING
            label = "SELinux is {mode}"
        else:
            logger.debug("getenforce not available, reading %s", config_path)
            parsed = parse_selinux_config(self.probe.read_text(config_path))
            expected = CONFIG_ENFORCING
            label = "SELinux configuration: {mode}"

        if not parsed.ok:
            return self.unknown("Could not determine SELinux mode", details=[str(parsed.anomaly)])

        mode = parsed.unwrap()
        metrics = {"source": capability.name, "mode": mode}
        result = evaluate(Metric("selinux_mode", mode), [
            Threshold("selinux_mode", expected, Comparator.NE, message="SELinux is not enforcing"),
        ])

        if result.breached:
            return CheckResult.warning(
                self.id,
                self.name,
                list(result.warnings),
                summary=label.format(mode=mode),
                metrics=metrics,
            )
        return CheckResult.ok(self.id, self.name, summary=label.format(mode=mode), metrics=metrics)
