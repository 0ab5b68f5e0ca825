from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable

import docker
from docker.errors import DockerException, NotFound
from requests.exceptions import RequestException

from .actuator import ContainerStatus, RemediationActuator, RestartOutcome
from .settings import Settings

logger = logging.getLogger(__name__)

# docker-py surfaces transport problems either wrapped or as raw requests errors.
BACKEND_ERRORS = (DockerException, RequestException)


@dataclass(frozen=True)
class ContainerRef:
    id: str
    name: str
    status: str


class DockerActuator(RemediationActuator):
    """Remediation through the local Docker daemon.

    Service names are matched against container names. Docker Compose names
    containers like ``project-service-a-1``, so an exact name wins and
    otherwise the first container whose name contains the service name is
    used. Ambiguous matches are logged, not rejected.
    """

    def __init__(
        self,
        settings: Settings,
        client_factory: Callable[[], Any] = docker.from_env,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.restart_timeout_s = int(settings.restart_timeout_s)
        self.verify_wait_s = float(settings.verify_wait_s)
        self.verify_poll_s = float(settings.verify_poll_s)
        self._client_factory = client_factory
        self._sleep = sleep
        self._clock = clock
        self._lock = Lock()
        self._cli: Any = None

    def _client(self) -> Any:
        with self._lock:
            if self._cli is None:
                self._cli = self._client_factory()
            return self._cli

    def close(self) -> None:
        with self._lock:
            cli, self._cli = self._cli, None
        if cli is None:
            return
        try:
            cli.close()
        except BACKEND_ERRORS as e:
            logger.warning("Error closing docker client: %s", e)

    def docker_available(self) -> bool:
        try:
            self._client().ping()
            return True
        except BACKEND_ERRORS:
            return False

    def list_containers(self) -> list[ContainerRef]:
        containers = self._client().containers.list(all=True)
        return [ContainerRef(id=c.id, name=c.name.lstrip("/"), status=c.status) for c in containers]

    def _find(self, name: str) -> ContainerRef | None:
        refs = self.list_containers()
        for ref in refs:
            if ref.name == name:
                return ref
        matches = [ref for ref in refs if name in ref.name]
        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(
                "Ambiguous container match for %s: %s; using %s",
                name,
                ", ".join(m.name for m in matches),
                matches[0].name,
            )
        return matches[0]

    def locate(self, name: str) -> str | None:
        try:
            ref = self._find(name)
        except BACKEND_ERRORS as e:
            logger.error("Error finding container for service %s: %s", name, e)
            return None
        if ref is None:
            logger.warning("Container not found for service: %s", name)
            return None
        logger.debug("Found container %s for service %s", ref.id, name)
        return ref.id

    def _container_is_running(self, container_id: str) -> bool:
        try:
            cont = self._client().containers.get(container_id)
            cont.reload()
            return cont.status == "running"
        except NotFound:
            return False

    def _wait_running(self, container_id: str) -> bool:
        """Poll until the container reports running or the deadline passes."""
        deadline = self._clock() + self.verify_wait_s
        while True:
            if self._container_is_running(container_id):
                return True
            remaining = deadline - self._clock()
            if remaining <= 0:
                return False
            self._sleep(min(self.verify_poll_s, remaining))

    def restart(self, name: str) -> RestartOutcome:
        container_id = self.locate(name)
        if container_id is None:
            logger.error("Cannot restart %s: container not found", name)
            return RestartOutcome(started=False, verified_running=False, message="container not found")

        try:
            cont = self._client().containers.get(container_id)
            logger.info("Restarting %s (id=%s, status=%s)", name, container_id[:12], cont.status)
            cont.restart(timeout=self.restart_timeout_s)
        except BACKEND_ERRORS as e:
            logger.error("Failed to restart %s: %s", name, e)
            return RestartOutcome(started=False, verified_running=False, message=f"{type(e).__name__}: {e}")

        try:
            running = self._wait_running(container_id)
        except BACKEND_ERRORS as e:
            logger.error("Restarted %s but could not verify state: %s", name, e)
            return RestartOutcome(started=True, verified_running=False, message=f"verify failed: {e}")

        if running:
            logger.info("Restarted %s; container is running", name)
            return RestartOutcome(started=True, verified_running=True, message="running")
        logger.error("Restart command executed but %s is not running", name)
        return RestartOutcome(started=True, verified_running=False, message="not running after restart")

    def start(self, name: str) -> bool:
        container_id = self.locate(name)
        if container_id is None:
            logger.error("Cannot start %s: container not found", name)
            return False
        try:
            self._client().containers.get(container_id).start()
        except BACKEND_ERRORS as e:
            logger.error("Failed to start %s: %s", name, e)
            return False
        logger.info("Started container for %s", name)
        return True

    def stop(self, name: str) -> bool:
        container_id = self.locate(name)
        if container_id is None:
            logger.error("Cannot stop %s: container not found", name)
            return False
        try:
            self._client().containers.get(container_id).stop(timeout=self.restart_timeout_s)
        except BACKEND_ERRORS as e:
            logger.error("Failed to stop %s: %s", name, e)
            return False
        logger.info("Stopped container for %s", name)
        return True

    def status(self, name: str) -> ContainerStatus:
        try:
            ref = self._find(name)
            if ref is None:
                return ContainerStatus.NOT_FOUND
            cont = self._client().containers.get(ref.id)
            cont.reload()
        except NotFound:
            return ContainerStatus.NOT_FOUND
        except BACKEND_ERRORS as e:
            logger.error("Error getting status for %s: %s", name, e)
            return ContainerStatus.ERROR
        return ContainerStatus.RUNNING if cont.status == "running" else ContainerStatus.EXITED
