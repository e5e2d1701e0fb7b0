"""
HostPulse - Core Module

This module contains the check framework, capability detection,
threshold evaluation and sweep orchestration.
"""

from .capability import (
    CapabilityCandidate,
    CapabilityDetector,
    UNAVAILABLE,
)
from .check import (
    BaseCheck,
    CheckResult,
    CheckStatus,
)
from .config import (
    HostPaths,
    SweepConfig,
    load_config,
)
from .errors import (
    CommandFailure,
    CommandTimeout,
    ConfigError,
    HostPulseError,
    ParseAnomaly,
    SweepCancelled,
    ToolAbsent,
)
from .orchestrator import (
    CheckOrchestrator,
    SweepResult,
)
from .probe import (
    CommandOutput,
    SystemProbe,
)
from .thresholds import (
    Classification,
    Comparator,
    Metric,
    Scope,
    Threshold,
    evaluate,
)

__all__ = [
    "CapabilityCandidate",
    "CapabilityDetector",
    "UNAVAILABLE",
    "BaseCheck",
    "CheckResult",
    "CheckStatus",
    "HostPaths",
    "SweepConfig",
    "load_config",
    "CommandFailure",
    "CommandTimeout",
    "ConfigError",
    "HostPulseError",
    "ParseAnomaly",
    "SweepCancelled",
    "ToolAbsent",
    "CheckOrchestrator",
    "SweepResult",
    "CommandOutput",
    "SystemProbe",
    "Classification",
    "Comparator",
    "Metric",
    "Scope",
    "Threshold",
    "evaluate",
]
