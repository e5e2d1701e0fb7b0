"""
HostPulse

A single-shot Linux host health sweep: filesystems, load, memory,
stuck processes, SELinux, firewall, pending updates, reboot requirement
and uptime, each classified as OK, WARNING or UNKNOWN.
"""

__version__ = "1.0.0"
__author__ = "HostPulse Project"

from .core.check import CheckResult, CheckStatus
from .core.config import SweepConfig, load_config
from .core.orchestrator import CheckOrchestrator, SweepResult

__all__ = [
    "CheckResult",
    "CheckStatus",
    "SweepConfig",
    "load_config",
    "CheckOrchestrator",
    "SweepResult",
]
