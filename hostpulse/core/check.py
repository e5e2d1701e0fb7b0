"""
HostPulse - Base Check Class

This module provides the abstract base class for all health checks
and the CheckResult dataclass for storing check results.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, Optional, TYPE_CHECKING

from .capability import CapabilityDetector
from .errors import HostPulseError, SweepCancelled

if TYPE_CHECKING:
    from .config import SweepConfig
    from .probe import SystemProbe


logger = logging.getLogger(__name__)


class CheckStatus(Enum):
    """Classification of a check.

    Attributes:
        OK: Metric collected, no threshold or expectation breached
        WARNING: At least one breach detected
        UNKNOWN: No capability detected, or the metric could not be determined
    """
    OK = "ok"
    WARNING = "warning"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CheckResult:
    """Result of a health check execution.

    Attributes:
        check_id: Unique identifier for the check
        name: Human-readable name of the check (section title)
        status: OK, WARNING or UNKNOWN
        summary: One-line explanation of the result
        details: Informational lines, in order
        warnings: One line per detected breach, in order
        metrics: Raw collected values for machine-readable output
    """
    check_id: str
    name: str
    status: CheckStatus
    summary: str = ""
    details: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    metrics: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        """Validate the result after initialization."""
        if not self.check_id:
            raise ValueError("check_id cannot be empty")
        if not self.name:
            raise ValueError("name cannot be empty")
        if (self.status is CheckStatus.WARNING) != bool(self.warnings):
            raise ValueError("status must be WARNING exactly when warnings are present")
        # Accept lists from callers but store tuples.
        object.__setattr__(self, "details", tuple(self.details))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    @property
    def is_problem(self) -> bool:
        """True for WARNING and UNKNOWN results."""
        return self.status is not CheckStatus.OK

    def to_dict(self) -> dict[str, Any]:
        """Convert the result to a dictionary for JSON serialization."""
        return {
            "check_id": self.check_id,
            "name": self.name,
            "status": self.status.value,
            "summary": self.summary,
            "details": list(self.details),
            "warnings": list(self.warnings),
            "metrics": self.metrics,
        }

    @classmethod
    def ok(
        cls,
        check_id: str,
        name: str,
        summary: str = "OK",
        details: Optional[list[str]] = None,
        metrics: Optional[dict[str, Any]] = None,
    ) -> "CheckResult":
        """Create an OK result."""
        return cls(
            check_id=check_id,
            name=name,
            status=CheckStatus.OK,
            summary=summary,
            details=tuple(details or ()),
            metrics=metrics or {},
        )

    @classmethod
    def warning(
        cls,
        check_id: str,
        name: str,
        warnings: list[str],
        summary: str = "",
        details: Optional[list[str]] = None,
        metrics: Optional[dict[str, Any]] = None,
    ) -> "CheckResult":
        """Create a WARNING result.

        Args:
            warnings: Breach lines; must not be empty
        """
        return cls(
            check_id=check_id,
            name=name,
            status=CheckStatus.WARNING,
            summary=summary or f"{len(warnings)} warning(s)",
            details=tuple(details or ()),
            warnings=tuple(warnings),
            metrics=metrics or {},
        )

    @classmethod
    def unknown(
        cls,
        check_id: str,
        name: str,
        summary: str = "Could not determine",
        details: Optional[list[str]] = None,
        metrics: Optional[dict[str, Any]] = None,
    ) -> "CheckResult":
        """Create an UNKNOWN result."""
        return cls(
            check_id=check_id,
            name=name,
            status=CheckStatus.UNKNOWN,
            summary=summary,
            details=tuple(details or ()),
            metrics=metrics or {},
        )

    @classmethod
    def combine(
        cls,
        check_id: str,
        name: str,
        details: list[str],
        warnings: list[str],
        undetermined: list[str],
        metrics: Optional[dict[str, Any]] = None,
    ) -> "CheckResult":
        """Build a result from several sub-metrics of one check.

        Any breach makes the result WARNING; otherwise any undetermined
        sub-metric makes it UNKNOWN; otherwise OK.
        """
        lines = list(details) + [f"Could not determine {item}" for item in undetermined]
        if warnings:
            return cls.warning(check_id, name, warnings, details=lines, metrics=metrics)
        if undetermined:
            return cls.unknown(
                check_id,
                name,
                summary=f"Could not determine {', '.join(undetermined)}",
                details=lines,
                metrics=metrics,
            )
        return cls.ok(check_id, name, details=lines, metrics=metrics)


class BaseCheck(ABC):
    """Abstract base class for all health checks.

    All checks must inherit from this class and implement
    the required attributes and the run() method.

    Example:
        class SwapCheck(BaseCheck):
            id = "swap"
            name = "Swap Usage"
            description = "Warns when swap usage is high"

            def run(self) -> CheckResult:
                ...
                return CheckResult.ok(self.id, self.name, summary="Swap usage 3%")
    """

    # Check metadata - must be overridden by subclasses
    id: str = ""  # Unique identifier (e.g., "filesystem")
    name: str = ""  # Section title
    description: str = ""  # What this check does
    default_timeout: Optional[float] = None  # Per-check timeout override

    def __init_subclass__(cls, **kwargs: Any) -> None:
        """Validate that subclasses define required attributes."""
        super().__init_subclass__(**kwargs)

        if not cls.id:
            raise ValueError(f"Check class {cls.__name__} must define 'id'")
        if not cls.name:
            raise ValueError(f"Check class {cls.__name__} must define 'name'")
        if not cls.description:
            raise ValueError(f"Check class {cls.__name__} must define 'description'")

        if not cls.id.replace("_", "").isalnum() or not cls.id.islower():
            raise ValueError(
                f"Check id '{cls.id}' must be lowercase alphanumeric with underscores only"
            )

    def __init__(self, probe: "SystemProbe", config: "SweepConfig") -> None:
        """Initialize the check.

        Args:
            probe: Probe owned by this check for its whole run
            config: Thresholds, paths and timeouts for the sweep
        """
        self._probe = probe
        self._config = config
        self._detector = CapabilityDetector(probe)

    @property
    def probe(self) -> "SystemProbe":
        """Probe used to reach the host."""
        return self._probe

    @property
    def config(self) -> "SweepConfig":
        """Sweep configuration."""
        return self._config

    @property
    def detector(self) -> CapabilityDetector:
        """Capability detector bound to this check's probe."""
        return self._detector

    @abstractmethod
    def run(self) -> CheckResult:
        """Execute the check.

        Returns:
            CheckResult containing the outcome of the check
        """

    def unknown(self, summary: str, details: Optional[list[str]] = None) -> CheckResult:
        """Shortcut for an UNKNOWN result of this check."""
        return CheckResult.unknown(self.id, self.name, summary=summary, details=details)

    def execute(self) -> CheckResult:
        """Execute the check, containing every failure.

        This is the entry point used by the orchestrator. Probe errors and
        unexpected exceptions become an UNKNOWN result; cancellation is
        re-raised so the orchestrator can record it.

        Returns:
            CheckResult from run(), or an UNKNOWN result on failure
        """
        try:
            return self.run()
        except SweepCancelled:
            raise
        except HostPulseError as e:
            logger.warning("check %s could not complete: %s", self.id, e)
            return self.unknown("Could not determine", details=[str(e)])
        except Exception as e:
            logger.exception("check %s raised an unexpected error", self.id)
            return self.unknown(
                "Check execution failed",
                details=[f"{type(e).__name__}: {e}"],
            )

    def get_metadata(self) -> dict[str, Any]:
        """Get check metadata as a dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
        }
