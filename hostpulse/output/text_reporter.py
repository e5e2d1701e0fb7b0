"""
HostPulse - Text Reporter

Renders a sweep as the classic terminal health report: a banner, one
titled section per check, and a completion banner.
"""

from __future__ import annotations

from dataclasses import dataclass
import sys
from typing import Optional, TextIO

from ..core.check import CheckResult, CheckStatus
from ..core.orchestrator import SweepResult


@dataclass(frozen=True)
class ReportStyle:
    """ANSI sequences used by the reporter; empty strings disable color."""

    header: str = "\033[0;32m"
    warning: str = "\033[0;33m"
    unknown: str = "\033[0;36m"
    error: str = "\033[0;31m"
    reset: str = "\033[0m"

    @classmethod
    def plain(cls) -> "ReportStyle":
        """Style without any escape sequences."""
        return cls(header="", warning="", unknown="", error="", reset="")

    @classmethod
    def for_stream(cls, stream: TextIO, color: bool = True) -> "ReportStyle":
        """Colored style for terminals, plain otherwise."""
        is_tty = hasattr(stream, "isatty") and stream.isatty()
        return cls() if color and is_tty else cls.plain()

    def paint(self, text: str, color: str) -> str:
        if not color:
            return text
        return f"{color}{text}{self.reset}"


class TextReporter:
    """Formatter for sweep results as human-readable text.

    Example:
        reporter = TextReporter(ReportStyle.for_stream(sys.stdout))
        reporter.write(sweep)
    """

    TIMESTAMP_FORMAT = "%a %b %d %H:%M:%S %Z %Y"

    def __init__(self, style: Optional[ReportStyle] = None) -> None:
        self._style = style or ReportStyle.plain()

    def format(self, sweep: SweepResult) -> str:
        """Render the whole report."""
        style = self._style
        started = sweep.started_at.astimezone()
        lines = [
            style.paint(f"Linux Health Check - {started.strftime(self.TIMESTAMP_FORMAT)}", style.header),
            style.paint(f"Hostname: {sweep.hostname}", style.header),
        ]

        for result in sweep.results:
            lines.extend(self.format_section(result))

        if sweep.interrupted:
            lines.append("")
            lines.append(style.paint("ERROR: Health check interrupted; results are partial", style.error))

        lines.append("")
        lines.append(style.paint("=== Health Check Complete ===", style.header))
        lines.append(
            f"{sweep.ok_count} OK, {sweep.warning_count} WARNING, "
            f"{sweep.unknown_count} UNKNOWN"
        )
        return "\n".join(lines) + "\n"

    def format_section(self, result: CheckResult) -> list[str]:
        """Render one check as a titled section."""
        style = self._style
        lines = ["", style.paint(f"=== {result.name} ===", style.header)]

        if result.status is CheckStatus.UNKNOWN:
            lines.append(style.paint(f"UNKNOWN: {result.summary}", style.unknown))
        elif result.summary:
            lines.append(result.summary)

        lines.extend(result.details)
        lines.extend(style.paint(f"WARNING: {w}", style.warning) for w in result.warnings)
        return lines

    def write(self, sweep: SweepResult, stream: Optional[TextIO] = None) -> None:
        """Write the report to a stream (stdout by default)."""
        out = stream or sys.stdout
        out.write(self.format(sweep))
        out.flush()
