import os as _os
import sys

import pytest

# Ensure project root is importable (so `import hbmon` and `import cli` work without installing)
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from hbmon.actuator import ContainerStatus, RemediationActuator, RestartOutcome  # noqa: E402
from hbmon.registry import ServiceRegistry  # noqa: E402
from hbmon.settings import Settings  # noqa: E402


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeActuator(RemediationActuator):
    """Records calls; returns a configurable restart outcome."""

    def __init__(self, outcome: RestartOutcome | None = None):
        self.outcome = outcome or RestartOutcome(started=True, verified_running=True, message="running")
        self.calls: list[tuple[str, str]] = []

    @property
    def restarts(self) -> list[str]:
        return [name for op, name in self.calls if op == "restart"]

    def locate(self, name):
        self.calls.append(("locate", name))
        return f"id-{name}"

    def restart(self, name):
        self.calls.append(("restart", name))
        return self.outcome

    def start(self, name):
        self.calls.append(("start", name))
        return True

    def stop(self, name):
        self.calls.append(("stop", name))
        return False

    def status(self, name):
        self.calls.append(("status", name))
        return ContainerStatus.RUNNING


@pytest.fixture
def clock():
    return FakeClock(1_000.0)


@pytest.fixture
def registry():
    return ServiceRegistry()


@pytest.fixture
def actuator():
    return FakeActuator()


@pytest.fixture
def settings():
    return Settings(failure_threshold_s=15, sweep_interval_s=10, enable_detector=False, verify_wait_s=0.0)
