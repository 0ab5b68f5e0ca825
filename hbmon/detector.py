from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from threading import Event, Lock, Thread
from typing import Any, Callable

from .actuator import RemediationActuator, RestartOutcome
from .events import EventLog, utc_iso
from .registry import ServiceRegistry, ServiceStatus
from .settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    started_at: float
    checked: int = 0
    failed: list[str] = field(default_factory=list)
    outcomes: dict[str, RestartOutcome] = field(default_factory=dict)
    skipped: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "startedAt": utc_iso(self.started_at),
            "checked": self.checked,
            "failed": list(self.failed),
            "outcomes": {
                name: {"started": o.started, "verifiedRunning": o.verified_running, "message": o.message}
                for name, o in self.outcomes.items()
            },
            "skipped": self.skipped,
        }


class FailureDetector:
    """Periodically marks silent services DEAD and asks the actuator to restart them.

    Only the HEALTHY -> DEAD edge triggers remediation. A service that stays
    DEAD is left alone until a heartbeat brings it back; failed restarts are
    not retried.
    """

    def __init__(
        self,
        registry: ServiceRegistry,
        actuator: RemediationActuator,
        settings: Settings,
        events: EventLog | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.registry = registry
        self.actuator = actuator
        self.threshold_s = int(settings.failure_threshold_s)
        self.interval_s = int(settings.sweep_interval_s)
        self.parallel = bool(settings.parallel_remediation)
        self.workers = max(1, int(settings.remediation_workers))
        self.events = events or EventLog()
        self.clock = clock
        self._sweep_lock = Lock()
        self._stop: Event | None = None
        self._thr: Thread | None = None

        if not settings.interval_below_threshold:
            logger.warning(
                "Sweep interval (%ss) is not below the failure threshold (%ss); failures will be detected late",
                self.interval_s,
                self.threshold_s,
            )

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        # Each run owns its stop event, so a loop left behind by a timed-out
        # stop() still exits once its in-flight sweep returns.
        self._stop = Event()
        self._thr = Thread(target=self._loop, args=(self._stop,), name="hbmon-detector", daemon=True)
        self._thr.start()

    def stop(self, timeout: float | None = None) -> None:
        if self._stop is not None:
            self._stop.set()
        thr, self._thr = self._thr, None
        if thr is not None:
            thr.join(timeout)

    @property
    def running(self) -> bool:
        return self._thr is not None and self._thr.is_alive()

    def _loop(self, stop: Event) -> None:
        self.events.log_event(
            "INFO", f"Failure detector started (threshold={self.threshold_s}s, interval={self.interval_s}s)"
        )
        while not stop.wait(self.interval_s):
            try:
                self.sweep()
            except Exception as e:
                self.events.log_event("ERROR", f"Sweep failed: {type(e).__name__}: {e}")
        self.events.log_event("INFO", "Failure detector stopped")

    def sweep(self) -> SweepReport:
        if not self._sweep_lock.acquire(blocking=False):
            logger.info("Sweep already in progress; skipping")
            return SweepReport(started_at=self.clock(), skipped=True)
        try:
            return self._sweep()
        finally:
            self._sweep_lock.release()

    def _sweep(self) -> SweepReport:
        now = self.clock()
        report = SweepReport(started_at=now)

        # Detect every edge against the same `now` before any remediation runs.
        for rec in self.registry.snapshot():
            report.checked += 1
            if rec.status is not ServiceStatus.HEALTHY:
                continue
            elapsed = int(now - rec.last_heartbeat_at)
            if elapsed < self.threshold_s:
                continue
            if self.registry.mark_dead(rec.name, now, observed_heartbeat_at=rec.last_heartbeat_at):
                self.events.log_event(
                    "WARN", f"Service marked DEAD: no heartbeat for {elapsed}s", service_name=rec.name
                )
                report.failed.append(rec.name)

        if not report.failed:
            return report

        if self.parallel and len(report.failed) > 1:
            with ThreadPoolExecutor(max_workers=min(self.workers, len(report.failed))) as pool:
                outcomes = list(pool.map(self._remediate, report.failed))
        else:
            outcomes = [self._remediate(name) for name in report.failed]
        report.outcomes = dict(zip(report.failed, outcomes))
        return report

    def _remediate(self, name: str) -> RestartOutcome:
        self.registry.note_remediation(name)
        self.events.log_event("INFO", "Self-healing: restarting service container", service_name=name)
        try:
            outcome = self.actuator.restart(name)
        except Exception as e:
            logger.exception("Actuator raised while restarting %s", name)
            outcome = RestartOutcome(started=False, verified_running=False, message=f"{type(e).__name__}: {e}")

        if outcome.ok:
            self.events.log_event("INFO", "Restart succeeded; waiting for heartbeat", service_name=name)
        elif outcome.started:
            self.events.log_event(
                "ERROR", f"Restart issued but not verified running: {outcome.message}", service_name=name
            )
        else:
            self.events.log_event("ERROR", f"Restart failed: {outcome.message}", service_name=name)
        return outcome
