"""
HostPulse - Capability Detection

Each subsystem can be inspected through several mutually exclusive tools
or interfaces depending on the distribution. This module holds the fixed
priority chains and the detector that picks the first one present.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Iterator, Optional, TYPE_CHECKING

from .errors import HostPulseError, SweepCancelled

if TYPE_CHECKING:
    from .probe import SystemProbe


logger = logging.getLogger(__name__)

PresenceTest = Callable[["SystemProbe"], bool]


@dataclass(frozen=True)
class CapabilityCandidate:
    """A tool or interface that can serve a subsystem.

    Attributes:
        name: Identifier used by checks to select a collection strategy
        priority: Lower value is tried first
        probe: Presence test run against the host
        target: Executable or path the candidate refers to
    """

    name: str
    priority: int
    probe: PresenceTest
    target: str = ""


class _Unavailable:
    """Sentinel returned when no candidate is present."""

    _instance: Optional["_Unavailable"] = None

    def __new__(cls) -> "_Unavailable":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNAVAILABLE"


UNAVAILABLE = _Unavailable()


# Presence tests

def executable(name: str) -> PresenceTest:
    """Presence test: executable found on the search path."""
    def test(probe: "SystemProbe") -> bool:
        return probe.has_command(name)
    test.__name__ = f"executable({name})"
    return test


def file_exists(path: str) -> PresenceTest:
    """Presence test: a file exists."""
    def test(probe: "SystemProbe") -> bool:
        return probe.exists(path)
    test.__name__ = f"file_exists({path})"
    return test


def directory_exists(path: str) -> PresenceTest:
    """Presence test: a directory exists."""
    def test(probe: "SystemProbe") -> bool:
        return probe.is_dir(path)
    test.__name__ = f"directory_exists({path})"
    return test


def service_unit_registered(unit: str) -> PresenceTest:
    """Presence test: systemd lists the unit file.

    Looks for a line starting with the unit name in
    ``systemctl list-unit-files`` output.
    """
    def test(probe: "SystemProbe") -> bool:
        if not probe.has_command("systemctl"):
            return False
        output = probe.run(["systemctl", "list-unit-files", "--no-pager"])
        return any(line.startswith(unit) for line in output.lines())
    test.__name__ = f"service_unit_registered({unit})"
    return test


def all_of(*tests: PresenceTest) -> PresenceTest:
    """Presence test: every given test succeeds, evaluated in order."""
    def test(probe: "SystemProbe") -> bool:
        return all(t(probe) for t in tests)
    test.__name__ = "all_of(" + ", ".join(t.__name__ for t in tests) + ")"
    return test


# Fixed priority chains

FIREWALL_CANDIDATES: tuple[CapabilityCandidate, ...] = (
    CapabilityCandidate("firewalld", 10, executable("firewall-cmd"), "firewall-cmd"),
    CapabilityCandidate("ufw", 20, executable("ufw"), "ufw"),
    CapabilityCandidate(
        "nftables",
        30,
        all_of(executable("nft"), service_unit_registered("nftables.service")),
        "nft",
    ),
    CapabilityCandidate("iptables", 40, executable("iptables"), "iptables"),
)

UPDATE_CANDIDATES: tuple[CapabilityCandidate, ...] = (
    CapabilityCandidate("apt", 10, executable("apt-get"), "apt-get"),
    CapabilityCandidate("yum", 20, executable("yum"), "yum"),
    CapabilityCandidate("dnf", 30, executable("dnf"), "dnf"),
)


def memory_candidates(meminfo_path: str) -> tuple[CapabilityCandidate, ...]:
    """Memory chain: free(1), then the meminfo interface."""
    return (
        CapabilityCandidate("free", 10, executable("free"), "free"),
        CapabilityCandidate("meminfo", 20, file_exists(meminfo_path), meminfo_path),
    )


def process_candidates(proc_dir: str) -> tuple[CapabilityCandidate, ...]:
    """Process table chain: ps(1), then a scan of procfs."""
    return (
        CapabilityCandidate("ps", 10, executable("ps"), "ps"),
        CapabilityCandidate("procfs", 20, directory_exists(proc_dir), proc_dir),
    )


def uptime_candidates(uptime_path: str) -> tuple[CapabilityCandidate, ...]:
    """Uptime chain: uptime(1), then the uptime interface."""
    return (
        CapabilityCandidate("uptime", 10, executable("uptime"), "uptime"),
        CapabilityCandidate("proc_uptime", 20, file_exists(uptime_path), uptime_path),
    )


def selinux_candidates(config_path: str) -> tuple[CapabilityCandidate, ...]:
    """SELinux chain: live enforcement query, then config file."""
    return (
        CapabilityCandidate("getenforce", 10, executable("getenforce"), "getenforce"),
        CapabilityCandidate("config", 20, file_exists(config_path), config_path),
    )


def reboot_candidates(
    marker: str,
    marker_pkgs: str,
    boot_dir: str,
) -> tuple[CapabilityCandidate, ...]:
    """Reboot-required chain: marker files, advisory tool, kernel comparison."""
    return (
        CapabilityCandidate("marker", 10, file_exists(marker), marker),
        CapabilityCandidate("marker_pkgs", 20, file_exists(marker_pkgs), marker_pkgs),
        CapabilityCandidate(
            "needs_restarting", 30, executable("needs-restarting"), "needs-restarting"
        ),
        CapabilityCandidate("kernel", 40, directory_exists(boot_dir), boot_dir),
    )


class CapabilityDetector:
    """Selects the highest-priority capability present on the host.

    Candidates are probed lazily in priority order; probing stops at the
    first success. A presence test that raises a HostPulseError (e.g. the
    systemctl listing timed out) counts as absent.

    Example:
        detector = CapabilityDetector(probe)
        firewall = detector.detect(FIREWALL_CANDIDATES)
        if firewall is UNAVAILABLE:
            ...
    """

    def __init__(self, probe: "SystemProbe") -> None:
        """Initialize the detector.

        Args:
            probe: Probe used to run presence tests
        """
        self._probe = probe

    def is_present(self, candidate: CapabilityCandidate) -> bool:
        """Run a single candidate's presence test."""
        try:
            present = bool(candidate.probe(self._probe))
        except SweepCancelled:
            raise
        except HostPulseError as e:
            logger.debug("presence test for %s failed: %s", candidate.name, e)
            return False
        logger.debug("candidate %s present=%s", candidate.name, present)
        return present

    def available(
        self, candidates: tuple[CapabilityCandidate, ...]
    ) -> Iterator[CapabilityCandidate]:
        """Yield present candidates in priority order."""
        for candidate in sorted(candidates, key=lambda c: c.priority):
            if self.is_present(candidate):
                yield candidate

    def detect(
        self, candidates: tuple[CapabilityCandidate, ...]
    ) -> CapabilityCandidate | _Unavailable:
        """Return the first present candidate or UNAVAILABLE."""
        return next(self.available(candidates), UNAVAILABLE)
