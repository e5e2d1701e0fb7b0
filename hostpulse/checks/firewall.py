"""
Health Check: Firewall Status

Only the highest-priority firewall front end present is inspected
(firewalld, then ufw, then nftables, then iptables); each has its own
breach rule. A host with none of them reports UNKNOWN.
"""

import logging

from hostpulse.core.capability import FIREWALL_CANDIDATES, UNAVAILABLE, CapabilityCandidate
from hostpulse.core.check import BaseCheck, CheckResult
from hostpulse.core.parsers import count_rules


logger = logging.getLogger(__name__)


class FirewallStatusCheck(BaseCheck):
    """Check that the host firewall is active."""

    id = "firewall"
    name = "Firewall Status"
    description = "Warns when the detected firewall front end is inactive or has no rules"

    def _firewalld(self) -> CheckResult:
        output = self.probe.run(["firewall-cmd", "--state"])
        state = output.stdout.strip()
        metrics = {"tool": "firewalld", "state": state or None}
        if not output.ok:
            return CheckResult.warning(
                self.id, self.name, ["firewalld service is inactive"],
                summary=f"firewalld state: {state or 'not running'}",
                metrics=metrics,
            )
        if state != "running":
            return CheckResult.warning(
                self.id, self.name, ["firewalld is not running"],
                summary=f"firewalld state: {state}",
                metrics=metrics,
            )
        return CheckResult.ok(self.id, self.name, summary=f"firewalld state: {state}", metrics=metrics)

    def _ufw(self) -> CheckResult:
        output = self.probe.run(["ufw", "status"])
        if not output.ok:
            # ufw refuses to report without root
            return self.unknown(
                "Could not query ufw status",
                details=[output.stderr.strip() or f"exit status {output.returncode}"],
            )
        lines = output.lines()
        status = lines[0].strip() if lines else ""
        metrics = {"tool": "ufw", "status": status}
        if "inactive" in status.lower():
            return CheckResult.warning(
                self.id, self.name, ["UFW firewall is inactive"], summary=status, metrics=metrics
            )
        if not status:
            return self.unknown("ufw printed no status")
        return CheckResult.ok(self.id, self.name, summary=status, metrics=metrics)

    def _nftables(self) -> CheckResult:
        output = self.probe.run(["systemctl", "is-active", "--quiet", "nftables"])
        metrics = {"tool": "nftables", "active": output.ok}
        if not output.ok:
            return CheckResult.warning(
                self.id, self.name, ["nftables service is inactive"],
                summary="nftables service is not active",
                metrics=metrics,
            )
        return CheckResult.ok(self.id, self.name, summary="nftables service is active", metrics=metrics)

    def _iptables(self) -> CheckResult:
        output = self.probe.run(["iptables", "-S"])
        if not output.ok:
            return self.unknown(
                "Could not list iptables rules",
                details=[output.stderr.strip() or f"exit status {output.returncode}"],
            )
        rules = count_rules(output.stdout)
        metrics = {"tool": "iptables", "rules": rules}
        summary = f"iptables rules configured: {rules}"
        if rules == 0:
            return CheckResult.warning(
                self.id, self.name, ["iptables has no active rules"], summary=summary, metrics=metrics
            )
        return CheckResult.ok(self.id, self.name, summary=summary, metrics=metrics)

    def run(self) -> CheckResult:
        """Execute the firewall status check.

        Returns:
            CheckResult with the outcome of the check
        """
        capability = self.detector.detect(FIREWALL_CANDIDATES)
        if capability is UNAVAILABLE:
            return self.unknown("No recognized firewall service detected")

        logger.debug("firewall front end: %s", capability.name)
        return self._strategy(capability)()

    def _strategy(self, capability: CapabilityCandidate):
        return {
            "firewalld": self._firewalld,
            "ufw": self._ufw,
            "nftables": self._nftables,
            "iptables": self._iptables,
        }[capability.name]
