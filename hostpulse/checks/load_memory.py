"""
Health Check: System Load and Memory

Warns when the 1-minute load average exceeds 80% of CPU capacity
(cores x 0.8) or when memory usage exceeds 80%.
"""

import logging
from typing import Optional

from hostpulse.core.capability import UNAVAILABLE, memory_candidates
from hostpulse.core.check import BaseCheck, CheckResult
from hostpulse.core.errors import ToolAbsent
from hostpulse.core.parsers import (
    MemoryUsage,
    Parsed,
    parse_cpu_count,
    parse_free,
    parse_loadavg,
    parse_meminfo,
)
from hostpulse.core.thresholds import Comparator, Metric, Threshold, evaluate


logger = logging.getLogger(__name__)


class SystemLoadCheck(BaseCheck):
    """Check load average against core count, and memory usage."""

    id = "load_memory"
    name = "System Load and Memory"
    description = (
        "Warns when the 1-minute load average exceeds 80% of CPU capacity "
        "or memory usage exceeds 80%"
    )

    def _read(self, path: str) -> Optional[str]:
        try:
            return self.probe.read_text(path)
        except ToolAbsent:
            return None

    def _memory(self) -> Parsed[MemoryUsage]:
        """Collect memory usage via the first available capability."""
        paths = self.config.paths
        capability = self.detector.detect(memory_candidates(paths.meminfo))
        if capability is UNAVAILABLE:
            return Parsed.failure("memory", "free command not found and no meminfo interface")

        if capability.name == "free":
            output = self.probe.run(["free", "-m"])
            if output.ok:
                return parse_free(output.stdout)
            return Parsed.failure("memory", f"free exited with status {output.returncode}")

        logger.debug("free not available, reading %s", paths.meminfo)
        return parse_meminfo(self.probe.read_text(paths.meminfo))

    def run(self) -> CheckResult:
        """Execute the load and memory check.

        Returns:
            CheckResult with the outcome of the check
        """
        paths = self.config.paths
        details: list[str] = []
        warnings: list[str] = []
        undetermined: list[str] = []
        metrics: dict = {}

        cpuinfo = self._read(paths.cpuinfo)
        loadavg = self._read(paths.loadavg)
        cores = parse_cpu_count(cpuinfo) if cpuinfo is not None else None
        loads = parse_loadavg(loadavg) if loadavg is not None else None

        if cores is None or loads is None or not cores.ok or not loads.ok:
            for parsed in (cores, loads):
                if parsed is not None and not parsed.ok:
                    logger.warning("%s", parsed.anomaly)
                    details.append(str(parsed.anomaly))
            undetermined.append("load average")
        else:
            core_count = cores.unwrap()
            one, five, fifteen = loads.unwrap()
            threshold = core_count * self.config.load_factor
            details.append(f"Load average (1, 5, 15 min): {one:g}, {five:g}, {fifteen:g}")
            result = evaluate(Metric("load_1min", one), [
                Threshold(
                    "load_1min",
                    threshold,
                    Comparator.GT,
                    message=(
                        f"Load average exceeds {self.config.load_factor * 100:g}% "
                        f"of CPU capacity (cores: {core_count})"
                    ),
                ),
            ])
            warnings.extend(result.warnings)
            metrics.update({
                "cpu_cores": core_count,
                "load_1min": one,
                "load_5min": five,
                "load_15min": fifteen,
                "load_threshold": threshold,
            })

        memory = self._memory()
        if memory.ok:
            usage = memory.unwrap()
            percent = usage.percent
            details.append(
                f"Memory usage: {percent}% ({usage.used_mb} MB used out of {usage.total_mb} MB)"
            )
            result = evaluate(Metric("mem_percent", percent, "%"), [
                Threshold(
                    "mem_percent",
                    self.config.memory_percent,
                    Comparator.GT,
                    message=f"Memory usage exceeds {self.config.memory_percent}% capacity",
                ),
            ])
            warnings.extend(result.warnings)
            metrics.update({
                "mem_total_mb": usage.total_mb,
                "mem_used_mb": usage.used_mb,
                "mem_percent": percent,
            })
        else:
            logger.warning("%s", memory.anomaly)
            details.append(f"Memory usage: unable to determine ({memory.anomaly.reason})")
            undetermined.append("memory usage")

        return CheckResult.combine(
            self.id,
            self.name,
            details=details,
            warnings=warnings,
            undetermined=undetermined,
            metrics=metrics,
        )
