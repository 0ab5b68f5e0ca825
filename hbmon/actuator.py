from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class ContainerStatus(str, Enum):
    RUNNING = "running"
    EXITED = "exited"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class RestartOutcome:
    started: bool
    verified_running: bool
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.started and self.verified_running


class RemediationActuator(ABC):
    """Corrective actions against a monitored service's runtime.

    Implementations must never raise: every failure is reported through the
    return value and a log line.
    """

    @abstractmethod
    def locate(self, name: str) -> str | None:
        """Resolve a service name to a runtime handle, or None."""

    @abstractmethod
    def restart(self, name: str) -> RestartOutcome:
        ...

    @abstractmethod
    def start(self, name: str) -> bool:
        ...

    @abstractmethod
    def stop(self, name: str) -> bool:
        ...

    @abstractmethod
    def status(self, name: str) -> ContainerStatus:
        ...
