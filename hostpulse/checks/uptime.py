"""
Health Check: System Uptime

Informational only; uptime never produces a warning.
"""

from hostpulse.core.capability import UNAVAILABLE, uptime_candidates
from hostpulse.core.check import BaseCheck, CheckResult
from hostpulse.core.parsers import format_uptime, parse_proc_uptime


class UptimeCheck(BaseCheck):
    """Report how long the system has been up."""

    id = "uptime"
    name = "System Uptime"
    description = "Reports system uptime"

    def run(self) -> CheckResult:
        capability = self.detector.detect(uptime_candidates(self.config.paths.uptime))
        if capability is UNAVAILABLE:
            return self.unknown("Unable to determine uptime")

        if capability.name == "uptime":
            output = self.probe.run(["uptime", "-p"])
            if not output.ok or not output.stdout.strip():
                # busybox and older procps lack -p
                output = self.probe.run(["uptime"])
            text = output.stdout.strip()
            if text:
                return CheckResult.ok(self.id, self.name, summary=text, metrics={"uptime": text})
            return self.unknown("uptime printed nothing")

        parsed = parse_proc_uptime(self.probe.read_text(capability.target))
        if not parsed.ok:
            return self.unknown("Unable to determine uptime", details=[str(parsed.anomaly)])
        seconds = parsed.unwrap()
        return CheckResult.ok(
            self.id,
            self.name,
            summary=format_uptime(seconds),
            metrics={"uptime_seconds": seconds},
        )
