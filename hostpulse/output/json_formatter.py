"""
HostPulse - JSON Output Formatter

This module provides JSON formatting capabilities for sweep results.
"""

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from ..core.check import CheckResult, CheckStatus
from ..core.orchestrator import SweepResult


class DateTimeEncoder(json.JSONEncoder):
    """Custom JSON encoder to handle datetime and status serialization."""

    def default(self, o: Any) -> Any:
        """Convert datetime objects to ISO format strings."""
        if isinstance(o, datetime):
            return o.isoformat()
        if isinstance(o, CheckStatus):
            return o.value.upper()
        return super().default(o)


class JSONFormatter:
    """Formatter for sweep results in JSON format.

    Produces structured JSON output with metadata, summary statistics,
    and detailed check results.

    Example:
        formatter = JSONFormatter(pretty=True)
        sweep = orchestrator.run_all()
        print(formatter.format(sweep))
    """

    SCHEMA_VERSION = "1.0"

    def __init__(self, pretty: bool = False) -> None:
        """Initialize the JSON formatter.

        Args:
            pretty: If True, output formatted JSON with indentation
        """
        self._pretty = pretty

    def format(self, sweep: SweepResult) -> str:
        """Format sweep results as JSON.

        Args:
            sweep: Result of a sweep

        Returns:
            JSON string containing formatted results
        """
        output = {
            "metadata": self._build_metadata(sweep),
            "summary": self._build_summary(sweep),
            "checks": self._build_checks(sweep.results),
        }

        if self._pretty:
            return json.dumps(output, cls=DateTimeEncoder, indent=2, sort_keys=False)
        return json.dumps(output, cls=DateTimeEncoder, separators=(",", ":"))

    def _build_metadata(self, sweep: SweepResult) -> dict[str, Any]:
        return {
            "schema_version": self.SCHEMA_VERSION,
            "hostname": sweep.hostname,
            "started_at": sweep.started_at,
            "finished_at": sweep.finished_at,
            "duration_seconds": round(sweep.duration, 3),
            "interrupted": sweep.interrupted,
        }

    def _build_summary(self, sweep: SweepResult) -> dict[str, Any]:
        return {
            "total_checks": len(sweep.results),
            "ok": sweep.ok_count,
            "warning": sweep.warning_count,
            "unknown": sweep.unknown_count,
        }

    def _build_checks(self, results: list[CheckResult]) -> list[dict[str, Any]]:
        return [
            {
                "id": result.check_id,
                "name": result.name,
                "status": result.status,
                "summary": result.summary,
                "details": list(result.details),
                "warnings": list(result.warnings),
                "metrics": result.metrics if result.metrics else None,
            }
            for result in results
        ]

    def write_to_file(self, sweep: SweepResult, output_path: Path) -> None:
        """Write formatted JSON results to a file."""
        output_path.write_text(self.format(sweep), encoding="utf-8")

    def write_to_stdout(self, sweep: SweepResult) -> None:
        """Write formatted JSON results to stdout."""
        sys.stdout.write(self.format(sweep))
        if self._pretty:
            sys.stdout.write("\n")
