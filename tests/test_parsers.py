"""
HostPulse - Output Parser Tests

Parsers are fed captured tool output; malformed input must come back as
an anomaly rather than an exception.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from hostpulse.core.errors import ParseAnomaly
from hostpulse.core.parsers import (
    FilesystemUsage,
    MemoryUsage,
    Parsed,
    ProcessState,
    UpdateCounts,
    count_rules,
    format_kib,
    format_uptime,
    kernel_version_from_image,
    parse_apt_simulation,
    parse_check_update,
    parse_cpu_count,
    parse_df,
    parse_du,
    parse_free,
    parse_getenforce,
    parse_loadavg,
    parse_meminfo,
    parse_proc_stat,
    parse_proc_uptime,
    parse_ps_states,
    parse_selinux_config,
)


DF_OUTPUT = """\
Filesystem     Type     1024-blocks     Used Available Capacity Mounted on
/dev/sda1      ext4        41152736 38000000   1000000      95% /
tmpfs          tmpfs        1000000        0   1000000       0% /run/user/1000
/dev/sdb1      xfs        104857600 10485760  94371840      10% /mnt/My Data
"""

FREE_OUTPUT = """\
               total        used        free      shared  buff/cache   available
Mem:            3909         387        2800          10         721        3300
Swap:           2047           0        2047
"""

MEMINFO = """\
MemTotal:        4002304 kB
MemFree:         2867200 kB
MemAvailable:    3605504 kB
Buffers:           20480 kB
Cached:           512000 kB
"""


class TestParsed:
    """Tests for the Parsed container."""

    def test_success_unwraps(self) -> None:
        assert Parsed.success(3).unwrap() == 3
        assert Parsed.success(3).ok is True

    def test_failure_raises_anomaly(self) -> None:
        parsed = Parsed.failure("load", "bad", "raw text")
        assert parsed.ok is False
        with pytest.raises(ParseAnomaly, match="load: bad"):
            parsed.unwrap()


class TestCpuAndLoad:
    """Tests for cpuinfo and loadavg parsing."""

    def test_counts_processor_entries(self) -> None:
        cpuinfo = "".join(f"processor\t: {i}\nmodel name\t: x\n\n" for i in range(4))
        assert parse_cpu_count(cpuinfo).unwrap() == 4

    def test_no_processor_entries_is_anomaly(self) -> None:
        assert parse_cpu_count("model name\t: x\n").ok is False

    def test_loadavg(self) -> None:
        parsed = parse_loadavg("3.20 2.10 1.05 2/345 6789\n")
        assert parsed.unwrap() == (3.2, 2.1, 1.05)

    @pytest.mark.parametrize("text", ["", "1.0 2.0", "a b c d"])
    def test_malformed_loadavg(self, text) -> None:
        assert parse_loadavg(text).ok is False


class TestMemory:
    """Tests for free and meminfo parsing."""

    def test_free_mem_row(self) -> None:
        usage = parse_free(FREE_OUTPUT).unwrap()
        assert usage == MemoryUsage(total_mb=3909, used_mb=387)
        assert usage.percent == 9

    def test_percent_truncates(self) -> None:
        assert MemoryUsage(total_mb=3, used_mb=2).percent == 66

    def test_free_without_mem_row(self) -> None:
        assert parse_free("Swap: 1 0 1\n").ok is False

    def test_free_zero_total(self) -> None:
        assert parse_free("Mem: 0 0 0\n").ok is False

    def test_meminfo_uses_available(self) -> None:
        usage = parse_meminfo(MEMINFO).unwrap()
        assert usage.total_mb == 3908
        assert usage.used_mb == (4002304 - 3605504) // 1024

    def test_meminfo_without_available(self) -> None:
        text = "MemTotal: 1048576 kB\nMemFree: 262144 kB\nBuffers: 0 kB\nCached: 262144 kB\n"
        usage = parse_meminfo(text).unwrap()
        assert usage == MemoryUsage(total_mb=1024, used_mb=512)

    def test_meminfo_missing_total(self) -> None:
        assert parse_meminfo("MemFree: 10 kB\n").ok is False


class TestFilesystems:
    """Tests for df and du parsing."""

    def test_df_rows(self) -> None:
        rows = parse_df(DF_OUTPUT).unwrap()
        assert rows[0] == FilesystemUsage("/dev/sda1", "ext4", 95, "/")
        assert rows[1].fs_type == "tmpfs"
        assert len(rows) == 3

    def test_df_mountpoint_with_spaces(self) -> None:
        rows = parse_df(DF_OUTPUT).unwrap()
        assert rows[2].mountpoint == "/mnt/My Data"

    def test_df_inodes_without_accounting(self) -> None:
        text = (
            "Filesystem Type Inodes IUsed IFree IUse% Mounted on\n"
            "/dev/sdc1 vfat 0 0 0 - /boot/efi\n"
        )
        assert parse_df(text).unwrap()[0].percent is None

    def test_df_header_only_is_anomaly(self) -> None:
        assert parse_df("Filesystem Type 1024-blocks Used Available Capacity Mounted on\n").ok is False

    def test_du_sorted_largest_first(self) -> None:
        text = "12\t/var/tmp\n4096\t/var/log\n900\t/var/cache\n5008\t/var\n"
        assert parse_du(text) == [
            (5008, "/var"),
            (4096, "/var/log"),
            (900, "/var/cache"),
            (12, "/var/tmp"),
        ]

    def test_du_skips_garbage(self) -> None:
        assert parse_du("du: cannot read directory\n10\t/x\n") == [(10, "/x")]

    @pytest.mark.parametrize(
        "size_kb, expected",
        [(1, "1K"), (1023, "1023K"), (1024, "1.0M"), (12 * 1024, "12M"), (3 * 1024 * 1024, "3.0G")],
    )
    def test_format_kib(self, size_kb, expected) -> None:
        assert format_kib(size_kb) == expected


class TestProcesses:
    """Tests for process table parsing."""

    def test_ps_states(self) -> None:
        text = "S   PID CMD\nS     1 /sbin/init splash\nD   812 [jbd2/sda1-8]\n"
        processes = parse_ps_states(text).unwrap()
        assert processes == [
            ProcessState("S", 1, "/sbin/init splash"),
            ProcessState("D", 812, "[jbd2/sda1-8]"),
        ]

    def test_ps_header_only_is_anomaly(self) -> None:
        assert parse_ps_states("S   PID CMD\n").ok is False

    def test_proc_stat_with_parens_in_name(self) -> None:
        stat = "4242 (weird (name)) D 1 4242 4242 0 -1"
        assert parse_proc_stat(stat) == ProcessState("D", 4242, "weird (name)")

    def test_proc_stat_garbage(self) -> None:
        assert parse_proc_stat("nonsense") is None


class TestSELinux:
    """Tests for SELinux mode parsing."""

    def test_getenforce(self) -> None:
        assert parse_getenforce("Permissive\n").unwrap() == "Permissive"

    def test_getenforce_empty(self) -> None:
        assert parse_getenforce("\n").ok is False

    def test_config_value(self) -> None:
        text = "# SELINUX= can take one of these values\nSELINUX=permissive\nSELINUXTYPE=targeted\n"
        assert parse_selinux_config(text).unwrap() == "permissive"

    def test_config_value_quoted(self) -> None:
        assert parse_selinux_config('SELINUX="enforcing"\n').unwrap() == "enforcing"

    def test_config_case_preserved(self) -> None:
        assert parse_selinux_config("selinux=Enforcing\n").unwrap() == "Enforcing"

    def test_config_without_key(self) -> None:
        assert parse_selinux_config("SELINUXTYPE=targeted\n").ok is False


class TestPackagesAndFirewall:
    """Tests for update counting and rule counting."""

    def test_apt_simulation(self) -> None:
        text = (
            "Reading package lists...\n"
            "Inst libssl3 [3.0.2-0ubuntu1.14] (3.0.2-0ubuntu1.15 Ubuntu:22.04/jammy-security [amd64])\n"
            "Inst vim [2:8.2.3995-1ubuntu2.15] (2:8.2.3995-1ubuntu2.16 Ubuntu:22.04/jammy-updates [amd64])\n"
            "Conf libssl3 (3.0.2-0ubuntu1.15 Ubuntu:22.04/jammy-security [amd64])\n"
        )
        assert parse_apt_simulation(text) == UpdateCounts(total=2, security=1)

    def test_check_update_subtracts_header(self) -> None:
        text = "\nkernel.x86_64  6.8.5-201.fc39  updates\nvim.x86_64  9.1  updates\n"
        assert parse_check_update(text) == UpdateCounts(total=1)

    def test_check_update_empty(self) -> None:
        assert parse_check_update("") == UpdateCounts(total=0)

    def test_count_rules(self) -> None:
        assert count_rules("-P INPUT ACCEPT\n\n-A INPUT -j DROP\n") == 2
        assert count_rules("") == 0


class TestKernelAndUptime:
    """Tests for kernel image names and uptime formatting."""

    def test_kernel_version_from_image(self) -> None:
        assert kernel_version_from_image("/boot/vmlinuz-6.8.0-45-generic") == "6.8.0-45-generic"

    def test_proc_uptime(self) -> None:
        assert parse_proc_uptime("350735.47 234388.90\n").unwrap() == 350735.47

    def test_proc_uptime_garbage(self) -> None:
        assert parse_proc_uptime("").ok is False

    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (30, "up 0 minutes"),
            (60, "up 1 minute"),
            (3 * 3600 + 4 * 60, "up 3 hours, 4 minutes"),
            (9 * 86400 + 3600, "up 1 week, 2 days, 1 hour"),
        ],
    )
    def test_format_uptime(self, seconds, expected) -> None:
        assert format_uptime(seconds) == expected
