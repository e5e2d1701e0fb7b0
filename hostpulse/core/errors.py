"""
HostPulse - Error Taxonomy

Exceptions raised by probes, parsers and configuration loading. Checks
catch these and turn them into UNKNOWN results; none of them is allowed
to abort a sweep.
"""

from typing import Any, Optional


class HostPulseError(Exception):
    """Base exception for all HostPulse errors.

    Attributes:
        message: Human-readable error message
        context: Additional context (command, path, subsystem...)
    """

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} [{context_str}]"


class ToolAbsent(HostPulseError):
    """A tool or interface is not installed on this host."""

    def __init__(self, tool: str) -> None:
        super().__init__(f"{tool} is not available", {"tool": tool})
        self.tool = tool


class CommandFailure(HostPulseError):
    """An invoked tool exited with an unexpected status."""

    def __init__(self, command: list[str], returncode: int, stderr: str = "") -> None:
        super().__init__(
            f"'{' '.join(command)}' exited with status {returncode}",
            {"stderr": stderr.strip()[:200]} if stderr.strip() else None,
        )
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class CommandTimeout(HostPulseError):
    """An invoked tool did not finish within its time budget."""

    def __init__(self, command: list[str], timeout: float) -> None:
        super().__init__(f"'{' '.join(command)}' timed out after {timeout:g}s")
        self.command = command
        self.timeout = timeout


class ParseAnomaly(HostPulseError):
    """Tool output or interface content did not have the expected shape."""

    def __init__(self, subsystem: str, reason: str, raw: str = "") -> None:
        context = {"raw": raw.strip()[:80]} if raw and raw.strip() else None
        super().__init__(f"{subsystem}: {reason}", context)
        self.subsystem = subsystem
        self.reason = reason


class SweepCancelled(HostPulseError):
    """The sweep was cancelled while a probe was running."""

    def __init__(self) -> None:
        super().__init__("sweep cancelled")


class ConfigError(HostPulseError):
    """Invalid configuration value or file."""
