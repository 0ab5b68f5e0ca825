from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from threading import Lock
from typing import Any

from .events import utc_iso


class ServiceStatus(str, Enum):
    HEALTHY = "HEALTHY"
    DEAD = "DEAD"


@dataclass(frozen=True)
class ServiceRecord:
    name: str
    host: str
    port: int
    last_heartbeat_at: float
    status: ServiceStatus
    last_status_change_at: float
    registered_at: float
    heartbeat_count: int = 1
    remediation_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "serviceName": self.name,
            "host": self.host,
            "port": self.port,
            "status": self.status.value,
            "lastHeartbeat": utc_iso(self.last_heartbeat_at),
            "lastHeartbeatAt": self.last_heartbeat_at,
            "lastStatusChange": utc_iso(self.last_status_change_at),
            "lastStatusChangeAt": self.last_status_change_at,
            "registeredAt": utc_iso(self.registered_at),
            "heartbeatCount": self.heartbeat_count,
            "remediationCount": self.remediation_count,
        }


@dataclass(frozen=True)
class RegistryCounts:
    total: int
    healthy: int
    dead: int


class ServiceRegistry:
    """In-memory store of monitored services.

    Records are immutable; every mutation swaps in a new record under the lock,
    so callers only ever see consistent copies. The lock guards dict work only
    and is never held while talking to a container runtime.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._services: dict[str, ServiceRecord] = {}

    def upsert_heartbeat(self, name: str, host: str, port: int, now: float) -> ServiceStatus:
        """Record a heartbeat, creating the service on first contact.

        A heartbeat while DEAD is the only way back to HEALTHY.
        """
        return self.touch(name, host, port, now)[1]

    def touch(self, name: str, host: str, port: int, now: float) -> tuple[ServiceStatus | None, ServiceStatus]:
        """Same as ``upsert_heartbeat`` but returns (previous_status or None, current_status).

        previous is None only for the call that created the record.
        """
        with self._lock:
            rec = self._services.get(name)
            prev = rec.status if rec is not None else None
            if rec is None:
                rec = ServiceRecord(
                    name=name,
                    host=host,
                    port=int(port),
                    last_heartbeat_at=now,
                    status=ServiceStatus.HEALTHY,
                    last_status_change_at=now,
                    registered_at=now,
                )
            elif rec.status is ServiceStatus.DEAD:
                rec = replace(
                    rec,
                    host=host,
                    port=int(port),
                    last_heartbeat_at=now,
                    status=ServiceStatus.HEALTHY,
                    last_status_change_at=now,
                    heartbeat_count=rec.heartbeat_count + 1,
                )
            else:
                rec = replace(
                    rec,
                    host=host,
                    port=int(port),
                    last_heartbeat_at=now,
                    heartbeat_count=rec.heartbeat_count + 1,
                )
            self._services[name] = rec
            return prev, rec.status

    def register(self, name: str, host: str, port: int, now: float) -> ServiceStatus:
        return self.upsert_heartbeat(name, host, port, now)

    def get(self, name: str) -> ServiceRecord | None:
        with self._lock:
            return self._services.get(name)

    def snapshot(self) -> list[ServiceRecord]:
        with self._lock:
            records = list(self._services.values())
        return sorted(records, key=lambda r: r.name)

    def mark_dead(self, name: str, now: float, observed_heartbeat_at: float | None = None) -> bool:
        """Transition HEALTHY -> DEAD.

        Returns False when the record is absent, already DEAD, or (when
        ``observed_heartbeat_at`` is given) has received a heartbeat since
        the caller looked at it.
        """
        with self._lock:
            rec = self._services.get(name)
            if rec is None or rec.status is ServiceStatus.DEAD:
                return False
            if observed_heartbeat_at is not None and rec.last_heartbeat_at != observed_heartbeat_at:
                return False
            self._services[name] = replace(rec, status=ServiceStatus.DEAD, last_status_change_at=now)
            return True

    def note_remediation(self, name: str) -> None:
        with self._lock:
            rec = self._services.get(name)
            if rec is not None:
                self._services[name] = replace(rec, remediation_count=rec.remediation_count + 1)

    def counts(self) -> RegistryCounts:
        with self._lock:
            total = len(self._services)
            dead = sum(1 for r in self._services.values() if r.status is ServiceStatus.DEAD)
        return RegistryCounts(total=total, healthy=total - dead, dead=dead)
