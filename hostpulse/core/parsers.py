"""
HostPulse - Output Parsers

Typed parsers for the raw text produced by diagnostic tools and kernel
interfaces. Parsers never raise on malformed input; they return a Parsed
value carrying either the result or a ParseAnomaly describing what was
wrong, so checks can resolve the metric to UNKNOWN explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
import re
from typing import Generic, Optional, TypeVar

from .errors import ParseAnomaly


T = TypeVar("T")


@dataclass(frozen=True)
class Parsed(Generic[T]):
    """Either a parsed value or the anomaly that prevented parsing."""

    value: Optional[T] = None
    anomaly: Optional[ParseAnomaly] = None

    @property
    def ok(self) -> bool:
        return self.anomaly is None

    @classmethod
    def success(cls, value: T) -> "Parsed[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, subsystem: str, reason: str, raw: str = "") -> "Parsed[T]":
        return cls(anomaly=ParseAnomaly(subsystem, reason, raw))

    def unwrap(self) -> T:
        """Return the value or raise the anomaly."""
        if self.anomaly is not None:
            raise self.anomaly
        return self.value  # type: ignore[return-value]


@dataclass(frozen=True)
class FilesystemUsage:
    """One row of df output."""
    device: str
    fs_type: str
    percent: Optional[int]
    mountpoint: str


@dataclass(frozen=True)
class MemoryUsage:
    """Memory totals in MiB."""
    total_mb: int
    used_mb: int

    @property
    def percent(self) -> int:
        """Used percentage, truncated toward zero."""
        return self.used_mb * 100 // self.total_mb


@dataclass(frozen=True)
class ProcessState:
    """A process table row."""
    state: str
    pid: int
    command: str


@dataclass(frozen=True)
class UpdateCounts:
    """Pending package updates."""
    total: int
    security: int = 0


# CPU / load / memory

def parse_cpu_count(cpuinfo: str) -> Parsed[int]:
    """Count ``processor`` entries in /proc/cpuinfo."""
    count = sum(1 for line in cpuinfo.splitlines() if line.startswith("processor"))
    if count == 0:
        return Parsed.failure("cpu", "no processor entries found", cpuinfo)
    return Parsed.success(count)


def parse_loadavg(text: str) -> Parsed[tuple[float, float, float]]:
    """Parse the 1, 5 and 15 minute load averages."""
    fields = text.split()
    if len(fields) < 3:
        return Parsed.failure("load", "expected at least three fields", text)
    try:
        one, five, fifteen = (float(f) for f in fields[:3])
    except ValueError:
        return Parsed.failure("load", "load averages are not numeric", text)
    return Parsed.success((one, five, fifteen))


def parse_free(text: str) -> Parsed[MemoryUsage]:
    """Parse the ``Mem:`` row of ``free -m``."""
    for line in text.splitlines():
        if not line.startswith("Mem:"):
            continue
        fields = line.split()
        try:
            total, used = int(fields[1]), int(fields[2])
        except (IndexError, ValueError):
            return Parsed.failure("memory", "malformed Mem: row", line)
        if total <= 0:
            return Parsed.failure("memory", "total memory is zero", line)
        return Parsed.success(MemoryUsage(total_mb=total, used_mb=used))
    return Parsed.failure("memory", "no Mem: row in free output", text)


def parse_meminfo(text: str) -> Parsed[MemoryUsage]:
    """Derive used memory from /proc/meminfo (total minus available)."""
    values: dict[str, int] = {}
    for line in text.splitlines():
        key, _, rest = line.partition(":")
        fields = rest.split()
        if fields and fields[0].isdigit():
            values[key.strip()] = int(fields[0])

    total_kb = values.get("MemTotal")
    if not total_kb:
        return Parsed.failure("memory", "MemTotal missing", text)

    available_kb = values.get("MemAvailable")
    if available_kb is None:
        available_kb = (
            values.get("MemFree", 0) + values.get("Buffers", 0) + values.get("Cached", 0)
        )

    total_mb = total_kb // 1024
    if total_mb <= 0:
        return Parsed.failure("memory", "total memory is zero", text)
    used_mb = max(total_kb - available_kb, 0) // 1024
    return Parsed.success(MemoryUsage(total_mb=total_mb, used_mb=used_mb))


# Filesystems

def _parse_percent(field: str) -> Optional[int]:
    field = field.strip().rstrip("%")
    if not field.isdigit():
        return None
    return int(field)


def parse_df(text: str) -> Parsed[list[FilesystemUsage]]:
    """Parse ``df -P -T`` output (blocks or inodes).

    Columns: device, type, total, used, available, capacity, mountpoint.
    Mountpoints containing spaces are rejoined. A capacity of ``-`` (no
    inode accounting) yields percent None.
    """
    rows: list[FilesystemUsage] = []
    for line in text.splitlines():
        if not line.strip() or line.startswith("Filesystem"):
            continue
        fields = line.split()
        if len(fields) < 7:
            continue
        rows.append(
            FilesystemUsage(
                device=fields[0],
                fs_type=fields[1],
                percent=_parse_percent(fields[5]),
                mountpoint=" ".join(fields[6:]),
            )
        )
    if not rows:
        return Parsed.failure("filesystem", "no filesystems listed", text)
    return Parsed.success(rows)


def parse_du(text: str) -> list[tuple[int, str]]:
    """Parse ``du -k`` output into (size_kb, path), largest first."""
    entries: list[tuple[int, str]] = []
    for line in text.splitlines():
        size, _, path = line.partition("\t")
        if not size.strip().isdigit() or not path:
            continue
        entries.append((int(size), path))
    return sorted(entries, key=lambda e: e[0], reverse=True)


def format_kib(size_kb: int) -> str:
    """Format a KiB count the way ``du -h`` does (1K, 12M, 3.4G)."""
    value = float(size_kb)
    for unit in ("K", "M", "G", "T"):
        if value < 1024 or unit == "T":
            if value < 10 and unit != "K":
                return f"{value:.1f}{unit}"
            return f"{value:.0f}{unit}"
        value /= 1024
    return f"{value:.0f}P"


# Processes

def parse_ps_states(text: str) -> Parsed[list[ProcessState]]:
    """Parse ``ps -eo state,pid,cmd`` output."""
    processes: list[ProcessState] = []
    lines = text.splitlines()
    if not lines:
        return Parsed.failure("processes", "empty process list", text)

    for line in lines:
        fields = line.split(None, 2)
        if len(fields) < 2 or not fields[1].isdigit():
            # Header row or garbage
            continue
        command = fields[2] if len(fields) > 2 else ""
        processes.append(ProcessState(state=fields[0], pid=int(fields[1]), command=command))

    if not processes:
        return Parsed.failure("processes", "no process rows", text)
    return Parsed.success(processes)


def parse_proc_stat(stat: str) -> Optional[ProcessState]:
    """Parse /proc/<pid>/stat; the command name may contain spaces and parens."""
    head, sep, tail = stat.rpartition(")")
    if not sep:
        return None
    pid_str, _, comm = head.partition(" (")
    fields = tail.split()
    if not pid_str.strip().isdigit() or not fields:
        return None
    return ProcessState(state=fields[0], pid=int(pid_str), command=comm)


# SELinux

def parse_getenforce(text: str) -> Parsed[str]:
    """Parse ``getenforce`` output (Enforcing, Permissive, Disabled)."""
    mode = text.strip()
    if not mode:
        return Parsed.failure("selinux", "getenforce printed nothing", text)
    return Parsed.success(mode)


_SELINUX_LINE = re.compile(r"^SELINUX=", re.IGNORECASE)


def parse_selinux_config(text: str) -> Parsed[str]:
    """Extract the SELINUX= value from the config file.

    The key is matched case-insensitively at the start of a line; the
    value is kept verbatim apart from surrounding whitespace and quotes.
    """
    for line in text.splitlines():
        if _SELINUX_LINE.match(line):
            value = line.split("=")[1].strip().strip("\"'")
            return Parsed.success(value)
    return Parsed.failure("selinux", "no SELINUX= line in config", text)


# Firewall / updates

def count_rules(text: str) -> int:
    """Count non-empty lines of ``iptables -S`` output."""
    return sum(1 for line in text.splitlines() if line.strip())


def parse_apt_simulation(text: str) -> UpdateCounts:
    """Count ``Inst`` lines, and the security subset, in apt-get simulation."""
    installs = [line for line in text.splitlines() if line.startswith("Inst")]
    security = sum(1 for line in installs if "security" in line)
    return UpdateCounts(total=len(installs), security=security)


def parse_check_update(text: str) -> UpdateCounts:
    """Count pending updates in yum/dnf ``check-update --quiet`` output.

    Non-blank lines are counted and one is subtracted for the header row
    whenever anything was listed.
    """
    count = sum(1 for line in text.splitlines() if line.strip())
    if count > 0:
        count -= 1
    return UpdateCounts(total=count)


# Reboot / kernel / uptime

def kernel_version_from_image(path: str) -> str:
    """Turn ``/boot/vmlinuz-6.8.0-45-generic`` into ``6.8.0-45-generic``."""
    name = os.path.basename(path)
    prefix = "vmlinuz-"
    return name[len(prefix):] if name.startswith(prefix) else name


def parse_proc_uptime(text: str) -> Parsed[float]:
    """Parse seconds since boot from /proc/uptime."""
    fields = text.split()
    try:
        return Parsed.success(float(fields[0]))
    except (IndexError, ValueError):
        return Parsed.failure("uptime", "malformed uptime interface", text)


def format_uptime(seconds: float) -> str:
    """Format seconds like ``uptime -p`` (up 2 days, 3 hours, 4 minutes)."""
    minutes_total = int(seconds) // 60
    weeks, rem = divmod(minutes_total, 7 * 24 * 60)
    days, rem = divmod(rem, 24 * 60)
    hours, minutes = divmod(rem, 60)

    parts = []
    for amount, unit in ((weeks, "week"), (days, "day"), (hours, "hour"), (minutes, "minute")):
        if amount:
            parts.append(f"{amount} {unit}{'' if amount == 1 else 's'}")
    if not parts:
        parts.append("0 minutes")
    return "up " + ", ".join(parts)
