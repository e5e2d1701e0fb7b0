"""
Sweep configuration: thresholds, host paths and time budgets.

Defaults reproduce the classic health-check constants. They can be
overridden by a JSON file (deep-merged), then by HOSTPULSE_* environment
variables, then by CLI flags.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from .errors import ConfigError


@dataclass(frozen=True)
class HostPaths:
    """Read-only host interfaces consulted by the checks."""

    cpuinfo: str = "/proc/cpuinfo"
    loadavg: str = "/proc/loadavg"
    meminfo: str = "/proc/meminfo"
    proc: str = "/proc"
    uptime: str = "/proc/uptime"
    osrelease: str = "/proc/sys/kernel/osrelease"
    selinux_config: str = "/etc/selinux/config"
    boot_dir: str = "/boot"
    reboot_marker: str = "/var/run/reboot-required"
    reboot_marker_pkgs: str = "/var/run/reboot-required.pkgs"


@dataclass(frozen=True)
class SweepConfig:
    """Runtime configuration for a sweep."""

    disk_percent: int = 90
    inode_percent: int = 90
    load_factor: float = 0.8
    memory_percent: int = 80
    check_timeout: float = 10.0
    check_timeouts: Mapping[str, float] = field(
        default_factory=lambda: {"updates": 120.0}
    )
    command_timeout: float = 30.0
    du_timeout: float = 5.0
    max_workers: int = 8
    refresh_package_lists: bool = False
    report_largest_dirs: bool = True
    largest_dirs_count: int = 3
    excluded_fs_types: tuple[str, ...] = ("tmpfs", "devtmpfs", "squashfs", "overlay", "udev")
    excluded_fs_patterns: tuple[str, ...] = ("snap",)
    paths: HostPaths = field(default_factory=HostPaths)

    def __post_init__(self) -> None:
        """Validate values after initialization."""
        for name in ("disk_percent", "inode_percent", "memory_percent"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ConfigError(f"{name} must be between 0 and 100, got {value}")
        if self.load_factor <= 0:
            raise ConfigError(f"load_factor must be positive, got {self.load_factor}")
        if self.check_timeout <= 0 or self.command_timeout <= 0 or self.du_timeout <= 0:
            raise ConfigError("timeouts must be positive")
        if any(t <= 0 for t in self.check_timeouts.values()):
            raise ConfigError("per-check timeouts must be positive")
        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be at least 1, got {self.max_workers}")

    def timeout_for(self, check_id: str, default: Optional[float] = None) -> float:
        """Time budget for one check.

        An explicit per-check entry wins, then the check's own default,
        then the global check timeout.
        """
        if check_id in self.check_timeouts:
            return float(self.check_timeouts[check_id])
        if default is not None:
            return default
        return self.check_timeout


# Environment variable -> (field, type)
ENV_OVERRIDES: dict[str, tuple[str, type]] = {
    "HOSTPULSE_DISK_PERCENT": ("disk_percent", int),
    "HOSTPULSE_INODE_PERCENT": ("inode_percent", int),
    "HOSTPULSE_LOAD_FACTOR": ("load_factor", float),
    "HOSTPULSE_MEMORY_PERCENT": ("memory_percent", int),
    "HOSTPULSE_CHECK_TIMEOUT": ("check_timeout", float),
    "HOSTPULSE_COMMAND_TIMEOUT": ("command_timeout", float),
    "HOSTPULSE_DU_TIMEOUT": ("du_timeout", float),
    "HOSTPULSE_MAX_WORKERS": ("max_workers", int),
}


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> SweepConfig:
    """Build the sweep configuration from all sources.

    Args:
        config_path: Optional JSON file with overrides
        environ: Environment mapping (defaults to os.environ)
        **overrides: Highest-precedence values (CLI flags); None is ignored

    Returns:
        Validated SweepConfig

    Raises:
        ConfigError: On unreadable files, unknown keys or invalid values
    """
    data: dict[str, Any] = {}
    if config_path:
        data = _deep_merge(data, _load_config_file(config_path))

    data = _deep_merge(data, _env_overrides(os.environ if environ is None else environ))
    data = _deep_merge(data, {k: v for k, v in overrides.items() if v is not None})

    return _build(data)


def _load_config_file(config_path: str) -> dict[str, Any]:
    """Load a JSON configuration file."""
    path = Path(config_path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"configuration file not found: {path}") from None
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigError(f"cannot read configuration file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"configuration file {path} must contain a JSON object")
    return data


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect HOSTPULSE_* overrides."""
    values: dict[str, Any] = {}
    for variable, (name, kind) in ENV_OVERRIDES.items():
        raw = environ.get(variable)
        if raw is None or raw == "":
            continue
        try:
            values[name] = kind(raw)
        except ValueError:
            raise ConfigError(f"{variable}={raw!r} is not a valid {kind.__name__}") from None
    return values


def _build(data: dict[str, Any]) -> SweepConfig:
    """Instantiate SweepConfig from merged plain data."""
    known = {f.name for f in fields(SweepConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"unknown configuration keys: {', '.join(unknown)}")

    values = dict(data)
    if "paths" in values:
        paths = values["paths"]
        if not isinstance(paths, dict):
            raise ConfigError("paths must be an object mapping path names to paths")
        path_fields = {f.name for f in fields(HostPaths)}
        bad = sorted(set(paths) - path_fields)
        if bad:
            raise ConfigError(f"unknown path keys: {', '.join(bad)}")
        values["paths"] = replace(HostPaths(), **{k: str(v) for k, v in paths.items()})
    if "check_timeouts" in values:
        timeouts = values["check_timeouts"]
        if not isinstance(timeouts, dict):
            raise ConfigError("check_timeouts must be an object mapping check ids to seconds")
        base = dict(SweepConfig().check_timeouts)
        for check_id, seconds in timeouts.items():
            try:
                base[str(check_id)] = float(seconds)
            except (TypeError, ValueError):
                raise ConfigError(
                    f"check_timeouts.{check_id} must be a number, got {seconds!r}"
                ) from None
        values["check_timeouts"] = base
    for name in ("excluded_fs_types", "excluded_fs_patterns"):
        if name in values:
            if not isinstance(values[name], (list, tuple)):
                raise ConfigError(f"{name} must be a list of strings")
            values[name] = tuple(str(v) for v in values[name])

    try:
        return SweepConfig(**values)
    except TypeError as e:
        raise ConfigError(f"invalid configuration: {e}") from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two dictionaries."""
    merged: dict[str, Any] = dict(base)

    for key, value in override.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(value, dict)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value

    return merged
