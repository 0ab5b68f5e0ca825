from __future__ import annotations

import logging
from threading import Event, Thread
from typing import Callable

import httpx

logger = logging.getLogger(__name__)


def _default_client() -> httpx.Client:
    return httpx.Client(timeout=2.0, follow_redirects=False)


def send_heartbeat(
    monitor_url: str,
    name: str,
    host: str,
    port: int,
    timeout_s: float = 2.0,
    client: httpx.Client | None = None,
    endpoint: str = "heartbeat",
) -> tuple[bool, str]:
    """POST one heartbeat to ``{monitor_url}/monitor/{endpoint}``.

    ``endpoint`` is ``heartbeat`` or ``register``. Returns (accepted, status
    or error message). Never raises.
    """
    url = f"{monitor_url.rstrip('/')}/monitor/{endpoint}"
    payload = {"serviceName": name, "host": host, "port": int(port)}
    try:
        if client is None:
            with httpx.Client(timeout=timeout_s, follow_redirects=False) as c:
                resp = c.post(url, json=payload)
        else:
            resp = client.post(url, json=payload)
    except httpx.HTTPError as e:
        return False, f"Error: {type(e).__name__}: {e}"
    if resp.status_code != 200:
        return False, f"HTTP {resp.status_code}"
    try:
        data = resp.json()
    except ValueError:
        return False, "Invalid JSON"
    return True, str(data.get("status", "")) if isinstance(data, dict) else ""


class HeartbeatSender:
    """Background thread that keeps a service alive in the monitor's registry.

    Registers until the monitor accepts once, then sends plain heartbeats.
    """

    def __init__(
        self,
        monitor_url: str,
        name: str,
        host: str,
        port: int,
        interval_s: float = 5.0,
        client_factory: Callable[[], httpx.Client] = _default_client,
    ):
        self.monitor_url = monitor_url
        self.name = name
        self.host = host
        self.port = port
        self.interval_s = max(0.1, float(interval_s))
        self.registered = False
        self._client_factory = client_factory
        self._stop = Event()
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop = Event()
        self._thr = Thread(target=self._loop, args=(self._stop,), name=f"heartbeat-{self.name}", daemon=True)
        self._thr.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thr is not None:
            self._thr.join(self.interval_s + 5)
            self._thr = None

    def beat(self, client: httpx.Client | None = None) -> bool:
        endpoint = "heartbeat" if self.registered else "register"
        ok, msg = send_heartbeat(self.monitor_url, self.name, self.host, self.port, client=client, endpoint=endpoint)
        if ok:
            self.registered = True
            logger.debug("%s sent for %s (%s)", endpoint.capitalize(), self.name, msg)
        else:
            logger.warning("Failed to send %s for %s: %s", endpoint, self.name, msg)
        return ok

    def _loop(self, stop: Event) -> None:
        with self._client_factory() as client:
            while True:
                self.beat(client)
                if stop.wait(self.interval_s):
                    return
