"""
HostPulse - Check Orchestrator

Registers the health checks and runs a sweep: every check in its own
worker with its own probe and time budget, results collected back into
the fixed report order.
"""

from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
import inspect
import logging
import socket
import threading
import time
from typing import Callable, Optional, Sequence, Type

from .check import BaseCheck, CheckResult, CheckStatus
from .config import SweepConfig
from .errors import SweepCancelled
from .probe import SystemProbe


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str, str, Optional[CheckResult]], None]
ProbeFactory = Callable[[SweepConfig, threading.Event], SystemProbe]

# Seconds between deadline checks while waiting on workers
POLL_INTERVAL = 0.1


def default_probe_factory(config: SweepConfig, cancel_event: threading.Event) -> SystemProbe:
    """Create a fresh probe for one check."""
    return SystemProbe(command_timeout=config.command_timeout, cancel_event=cancel_event)


@dataclass
class SweepResult:
    """Aggregated outcome of one sweep.

    Attributes:
        results: One CheckResult per check, in report order
        hostname: Host the sweep ran on
        started_at: UTC start time
        finished_at: UTC end time
        interrupted: True if the operator cancelled the sweep
    """
    results: list[CheckResult] = field(default_factory=list)
    hostname: str = ""
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    interrupted: bool = False

    def _count(self, status: CheckStatus) -> int:
        return sum(1 for r in self.results if r.status is status)

    @property
    def ok_count(self) -> int:
        return self._count(CheckStatus.OK)

    @property
    def warning_count(self) -> int:
        return self._count(CheckStatus.WARNING)

    @property
    def unknown_count(self) -> int:
        return self._count(CheckStatus.UNKNOWN)

    @property
    def has_problems(self) -> bool:
        """True if any check is WARNING or UNKNOWN."""
        return any(r.is_problem for r in self.results)

    @property
    def duration(self) -> float:
        """Sweep duration in seconds (0 while running)."""
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def statuses(self) -> dict[str, CheckStatus]:
        """Map check id to status."""
        return {r.check_id: r.status for r in self.results}


@dataclass(eq=False)
class _Task:
    """Book-keeping for one check inside a sweep."""
    index: int
    check_class: Type[BaseCheck]
    probe: SystemProbe
    timeout: float
    future: Optional[Future] = None
    started_at: Optional[float] = None


class CheckOrchestrator:
    """Registry and runner for health checks.

    Checks are kept in registration order, which is also the report
    order. A failure in one check never affects another: exceptions,
    timeouts and cancellation are turned into UNKNOWN results.

    Example:
        orchestrator = CheckOrchestrator(SweepConfig(check_timeout=5))
        sweep = orchestrator.run_all()
        for result in sweep.results:
            print(result.name, result.status.value)
    """

    def __init__(
        self,
        config: Optional[SweepConfig] = None,
        checks: Optional[Sequence[Type[BaseCheck]]] = None,
        probe_factory: Optional[ProbeFactory] = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Sweep configuration (defaults used when omitted)
            checks: Check classes to register (the standard set when omitted)
            probe_factory: Builds the probe handed to each check
        """
        self._config = config or SweepConfig()
        self._probe_factory = probe_factory or default_probe_factory
        self._checks: dict[str, Type[BaseCheck]] = {}

        if checks is None:
            from hostpulse.checks import DEFAULT_CHECKS
            checks = DEFAULT_CHECKS
        for check_class in checks:
            self.register(check_class)

    @property
    def config(self) -> SweepConfig:
        return self._config

    def register(self, check_class: Type[BaseCheck]) -> None:
        """Register a check class; it runs after those already registered.

        Raises:
            TypeError: If check_class is not a subclass of BaseCheck
            ValueError: If a check with the same id is already registered
        """
        if not inspect.isclass(check_class):
            raise TypeError(f"Expected a class, got {type(check_class).__name__}")

        if not issubclass(check_class, BaseCheck):
            raise TypeError(
                f"Check class must inherit from BaseCheck, "
                f"got {check_class.__name__}"
            )

        check_id = check_class.id
        if check_id in self._checks:
            raise ValueError(
                f"Check with id '{check_id}' is already registered "
                f"({self._checks[check_id].__name__})"
            )

        self._checks[check_id] = check_class

    def unregister(self, check_id: str) -> None:
        """Remove a check from the registry.

        Raises:
            KeyError: If the check_id is not registered
        """
        if check_id not in self._checks:
            raise KeyError(f"Check with id '{check_id}' is not registered")

        del self._checks[check_id]

    def get_check(self, check_id: str) -> Optional[Type[BaseCheck]]:
        """Get a registered check class by id."""
        return self._checks.get(check_id)

    def get_checks(self, check_ids: Optional[Sequence[str]] = None) -> list[Type[BaseCheck]]:
        """Get registered check classes in report order.

        Args:
            check_ids: Optional subset to select; order still follows registration

        Raises:
            KeyError: If a requested id is not registered
        """
        if not check_ids:
            return list(self._checks.values())

        unknown = [cid for cid in check_ids if cid not in self._checks]
        if unknown:
            raise KeyError(f"Unknown check id(s): {', '.join(unknown)}")
        wanted = set(check_ids)
        return [cls for cid, cls in self._checks.items() if cid in wanted]

    def get_check_ids(self) -> list[str]:
        """Get registered check ids in report order."""
        return list(self._checks)

    def run_check(self, check_id: str) -> CheckResult:
        """Execute a single check synchronously in the calling thread.

        Raises:
            KeyError: If the check_id is not registered
        """
        check_class = self.get_check(check_id)
        if check_class is None:
            raise KeyError(f"Check with id '{check_id}' is not registered")

        probe = self._probe_factory(self._config, threading.Event())
        try:
            return check_class(probe, self._config).execute()
        except SweepCancelled:
            return _interrupted_result(check_class)

    def run_all(
        self,
        check_ids: Optional[Sequence[str]] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> SweepResult:
        """Run a sweep of the registered checks.

        Checks run concurrently on a bounded pool. A check that exceeds
        its time budget is recorded as UNKNOWN and its subprocesses are
        killed. On KeyboardInterrupt every in-flight check is cancelled
        and the partial result is returned with ``interrupted`` set.

        Args:
            check_ids: Optional subset of checks to run
            progress_callback: Called with (event_type, check_id, check_name,
                result); 'start' events come from worker threads, 'complete'
                events from the calling thread

        Returns:
            SweepResult with one result per selected check, in report order
        """
        check_classes = self.get_checks(check_ids)
        sweep = SweepResult(hostname=socket.gethostname())
        cancel_event = threading.Event()
        slots: list[Optional[CheckResult]] = [None] * len(check_classes)

        tasks = [
            _Task(
                index=i,
                check_class=check_class,
                probe=self._probe_factory(self._config, cancel_event),
                timeout=self._config.timeout_for(check_class.id, check_class.default_timeout),
            )
            for i, check_class in enumerate(check_classes)
        ]

        workers = max(1, min(self._config.max_workers, len(tasks)))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="hostpulse")

        def complete(task: _Task, result: CheckResult) -> None:
            slots[task.index] = result
            if progress_callback:
                progress_callback("complete", task.check_class.id, task.check_class.name, result)

        try:
            for task in tasks:
                task.future = executor.submit(self._execute, task, progress_callback)

            pending = set(tasks)
            while pending:
                wait([t.future for t in pending], timeout=POLL_INTERVAL, return_when=FIRST_COMPLETED)
                now = time.monotonic()
                for task in list(pending):
                    if task.future.done():
                        pending.discard(task)
                        complete(task, _collect(task))
                    elif task.started_at is not None and now - task.started_at > task.timeout:
                        logger.warning(
                            "check %s timed out after %gs", task.check_class.id, task.timeout
                        )
                        task.probe.terminate()
                        pending.discard(task)
                        complete(task, _timeout_result(task))
        except KeyboardInterrupt:
            logger.warning("sweep interrupted, cancelling in-flight checks")
            sweep.interrupted = True
            # Checks that finished before the interrupt keep their result
            finished = [t for t in tasks if t.future is not None and t.future.done()]
            cancel_event.set()
            for task in tasks:
                task.probe.terminate()
            for task in tasks:
                if slots[task.index] is not None:
                    continue
                if task in finished:
                    slots[task.index] = _collect(task)
                else:
                    slots[task.index] = _interrupted_result(task.check_class)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        sweep.results = [slot for slot in slots if slot is not None]
        sweep.finished_at = datetime.now(timezone.utc)
        return sweep

    def _execute(self, task: _Task, progress_callback: Optional[ProgressCallback]) -> CheckResult:
        """Worker body: instantiate and execute one check."""
        task.started_at = time.monotonic()
        if progress_callback:
            progress_callback("start", task.check_class.id, task.check_class.name, None)
        check = task.check_class(task.probe, self._config)
        return check.execute()

    def __len__(self) -> int:
        return len(self._checks)

    def __contains__(self, check_id: str) -> bool:
        return check_id in self._checks


def _collect(task: _Task) -> CheckResult:
    """Turn a finished future into a result, whatever happened."""
    try:
        return task.future.result()
    except SweepCancelled:
        return _interrupted_result(task.check_class)
    except Exception as e:
        logger.error("check %s failed outside its own error handling: %s", task.check_class.id, e)
        return CheckResult.unknown(
            task.check_class.id,
            task.check_class.name,
            summary="Check execution failed",
            details=[f"{type(e).__name__}: {e}"],
        )


def _timeout_result(task: _Task) -> CheckResult:
    return CheckResult.unknown(
        task.check_class.id,
        task.check_class.name,
        summary=f"Timed out after {task.timeout:g}s",
        details=["The check did not finish within its time budget"],
    )


def _interrupted_result(check_class: Type[BaseCheck]) -> CheckResult:
    return CheckResult.unknown(
        check_class.id,
        check_class.name,
        summary="Interrupted",
        details=["The sweep was cancelled before this check finished"],
    )
