"""
HostPulse - Health Checks

The fixed, ordered set of checks run by a sweep.
"""

from .filesystem import FilesystemUsageCheck
from .load_memory import SystemLoadCheck
from .dstate import DStateProcessCheck
from .selinux import SELinuxStatusCheck
from .firewall import FirewallStatusCheck
from .updates import PackageUpdatesCheck
from .reboot import RebootRequiredCheck
from .uptime import UptimeCheck

# Report order
DEFAULT_CHECKS = (
    FilesystemUsageCheck,
    SystemLoadCheck,
    DStateProcessCheck,
    SELinuxStatusCheck,
    FirewallStatusCheck,
    PackageUpdatesCheck,
    RebootRequiredCheck,
    UptimeCheck,
)

__all__ = [
    "DEFAULT_CHECKS",
    "FilesystemUsageCheck",
    "SystemLoadCheck",
    "DStateProcessCheck",
    "SELinuxStatusCheck",
    "FirewallStatusCheck",
    "PackageUpdatesCheck",
    "RebootRequiredCheck",
    "UptimeCheck",
]
