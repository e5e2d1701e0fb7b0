"""
HostPulse - Orchestrator Tests

Integration tests for registration, ordering, isolation, timeouts and
cancellation of a sweep.
"""

import pytest
import sys
import threading
import time
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from hostpulse.checks import DEFAULT_CHECKS
from hostpulse.core.check import BaseCheck, CheckResult, CheckStatus
from hostpulse.core.config import SweepConfig
from hostpulse.core.orchestrator import CheckOrchestrator, SweepResult

from conftest import FakeProbe


def make_check(check_id: str, delay: float = 0.0, status: CheckStatus = CheckStatus.OK):
    """Build a check class that sleeps, then reports a fixed status."""

    class TimedCheck(BaseCheck):
        id = check_id
        name = f"Check {check_id}"
        description = "Test check with a fixed outcome"

        def run(self) -> CheckResult:
            time.sleep(delay)
            if status is CheckStatus.WARNING:
                return CheckResult.warning(self.id, self.name, ["breach"])
            if status is CheckStatus.UNKNOWN:
                return self.unknown("not measurable")
            return CheckResult.ok(self.id, self.name)

    return TimedCheck


class HangingCheck(BaseCheck):
    """Blocks until its probe is terminated."""

    id = "hanging"
    name = "Hanging Check"
    description = "Never finishes on its own"

    def run(self) -> CheckResult:
        deadline = time.monotonic() + 5
        while not self.probe.cancelled and time.monotonic() < deadline:
            time.sleep(0.01)
        return CheckResult.ok(self.id, self.name)


class CrashingCheck(BaseCheck):
    id = "crashing"
    name = "Crashing Check"
    description = "Raises an unexpected error"

    def run(self) -> CheckResult:
        raise ZeroDivisionError("division by zero")


class RecordingFactory:
    """Probe factory that keeps every probe it hands out."""

    def __init__(self) -> None:
        self.probes: list[FakeProbe] = []
        self._lock = threading.Lock()

    def __call__(self, config, cancel_event) -> FakeProbe:
        probe = FakeProbe()
        with self._lock:
            self.probes.append(probe)
        return probe


@pytest.fixture
def factory() -> RecordingFactory:
    return RecordingFactory()


class TestRegistration:
    """Tests for check registration."""

    def test_default_checks_in_report_order(self, factory) -> None:
        orchestrator = CheckOrchestrator(probe_factory=factory)
        assert orchestrator.get_check_ids() == [
            "filesystem",
            "load_memory",
            "dstate",
            "selinux",
            "firewall",
            "updates",
            "reboot",
            "uptime",
        ]
        assert len(orchestrator) == len(DEFAULT_CHECKS)
        assert "selinux" in orchestrator

    def test_register_duplicate(self, factory) -> None:
        check = make_check("dup")
        orchestrator = CheckOrchestrator(checks=[check], probe_factory=factory)
        with pytest.raises(ValueError, match="already registered"):
            orchestrator.register(check)

    def test_register_non_class(self, factory) -> None:
        orchestrator = CheckOrchestrator(checks=[], probe_factory=factory)
        with pytest.raises(TypeError, match="Expected a class"):
            orchestrator.register("not a class")  # type: ignore[arg-type]

    def test_register_non_check(self, factory) -> None:
        orchestrator = CheckOrchestrator(checks=[], probe_factory=factory)
        with pytest.raises(TypeError, match="must inherit from BaseCheck"):
            orchestrator.register(dict)  # type: ignore[arg-type]

    def test_unregister(self, factory) -> None:
        orchestrator = CheckOrchestrator(checks=[make_check("a")], probe_factory=factory)
        orchestrator.unregister("a")
        assert len(orchestrator) == 0
        with pytest.raises(KeyError):
            orchestrator.unregister("a")

    def test_subset_keeps_registration_order(self, factory) -> None:
        checks = [make_check("a"), make_check("b"), make_check("c")]
        orchestrator = CheckOrchestrator(checks=checks, probe_factory=factory)
        selected = orchestrator.get_checks(["c", "a"])
        assert [c.id for c in selected] == ["a", "c"]

    def test_subset_with_unknown_id(self, factory) -> None:
        orchestrator = CheckOrchestrator(checks=[make_check("a")], probe_factory=factory)
        with pytest.raises(KeyError, match="Unknown check id"):
            orchestrator.get_checks(["a", "nope"])


class TestSweep:
    """Tests for run_all."""

    def test_results_follow_registration_order(self, factory) -> None:
        checks = [make_check("slow", 0.3), make_check("medium", 0.15), make_check("fast")]
        orchestrator = CheckOrchestrator(checks=checks, probe_factory=factory)
        sweep = orchestrator.run_all()
        assert [r.check_id for r in sweep.results] == ["slow", "medium", "fast"]
        assert sweep.interrupted is False
        assert sweep.finished_at is not None

    def test_each_check_gets_its_own_probe(self, factory) -> None:
        checks = [make_check("a"), make_check("b")]
        CheckOrchestrator(checks=checks, probe_factory=factory).run_all()
        assert len(factory.probes) == 2
        assert factory.probes[0] is not factory.probes[1]

    def test_failure_is_isolated(self, factory) -> None:
        checks = [make_check("before"), CrashingCheck, make_check("after", status=CheckStatus.WARNING)]
        sweep = CheckOrchestrator(checks=checks, probe_factory=factory).run_all()
        assert sweep.statuses() == {
            "before": CheckStatus.OK,
            "crashing": CheckStatus.UNKNOWN,
            "after": CheckStatus.WARNING,
        }
        crashed = sweep.results[1]
        assert crashed.details == ("ZeroDivisionError: division by zero",)

    def test_timeout_becomes_unknown(self, factory) -> None:
        config = SweepConfig(check_timeouts={"hanging": 0.3})
        checks = [make_check("quick"), HangingCheck]
        sweep = CheckOrchestrator(config, checks=checks, probe_factory=factory).run_all()
        hanging = sweep.results[1]
        assert hanging.status is CheckStatus.UNKNOWN
        assert hanging.summary == "Timed out after 0.3s"
        assert sweep.results[0].status is CheckStatus.OK
        assert factory.probes[1].terminated is True
        assert sweep.duration < 5

    def test_sequential_sweep(self, factory) -> None:
        config = SweepConfig(max_workers=1)
        checks = [make_check("a", 0.05), make_check("b"), make_check("c", status=CheckStatus.UNKNOWN)]
        sweep = CheckOrchestrator(config, checks=checks, probe_factory=factory).run_all()
        assert [r.check_id for r in sweep.results] == ["a", "b", "c"]
        assert sweep.unknown_count == 1

    def test_repeated_sweeps_agree(self, factory) -> None:
        checks = [make_check("a"), make_check("b", status=CheckStatus.WARNING)]
        orchestrator = CheckOrchestrator(checks=checks, probe_factory=factory)
        first = orchestrator.run_all()
        second = orchestrator.run_all()
        assert first.results == second.results

    def test_progress_events(self, factory) -> None:
        events = []
        lock = threading.Lock()

        def callback(event_type, check_id, check_name, result):
            with lock:
                events.append((event_type, check_id))

        checks = [make_check("a"), make_check("b")]
        CheckOrchestrator(checks=checks, probe_factory=factory).run_all(progress_callback=callback)
        assert sorted(events) == [
            ("complete", "a"),
            ("complete", "b"),
            ("start", "a"),
            ("start", "b"),
        ]

    def test_interrupt_returns_partial_results(self, factory) -> None:
        def callback(event_type, check_id, check_name, result):
            if event_type == "complete" and check_id == "quick":
                raise KeyboardInterrupt

        checks = [make_check("quick"), HangingCheck]
        orchestrator = CheckOrchestrator(checks=checks, probe_factory=factory)
        sweep = orchestrator.run_all(progress_callback=callback)
        assert sweep.interrupted is True
        assert sweep.results[0].status is CheckStatus.OK
        assert sweep.results[1].status is CheckStatus.UNKNOWN
        assert sweep.results[1].summary == "Interrupted"
        assert all(p.terminated for p in factory.probes)

    def test_empty_host_reports_every_check(self, factory) -> None:
        sweep = CheckOrchestrator(probe_factory=factory).run_all()
        assert len(sweep.results) == len(DEFAULT_CHECKS)
        assert all(r.status is CheckStatus.UNKNOWN for r in sweep.results)
        assert sweep.has_problems is True

    def test_run_check(self, factory) -> None:
        orchestrator = CheckOrchestrator(checks=[make_check("a")], probe_factory=factory)
        assert orchestrator.run_check("a").status is CheckStatus.OK
        with pytest.raises(KeyError):
            orchestrator.run_check("missing")


class TestSweepResult:
    """Tests for SweepResult aggregation."""

    def test_counts(self) -> None:
        sweep = SweepResult(results=[
            CheckResult.ok("a", "A"),
            CheckResult.warning("b", "B", ["w"]),
            CheckResult.unknown("c", "C"),
            CheckResult.ok("d", "D"),
        ])
        assert (sweep.ok_count, sweep.warning_count, sweep.unknown_count) == (2, 1, 1)
        assert sweep.has_problems is True
        assert sweep.duration == 0.0

    def test_all_ok_has_no_problems(self) -> None:
        sweep = SweepResult(results=[CheckResult.ok("a", "A")])
        assert sweep.has_problems is False
