from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from threading import Lock
from typing import Any

logger = logging.getLogger(__name__)


def utc_iso(ts: float | None = None) -> str:
    dt = datetime.now(timezone.utc) if ts is None else datetime.fromtimestamp(ts, timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


class EventLog:
    """Recent monitor events, newest last. In-memory only; lost on restart."""

    def __init__(self, capacity: int = 500) -> None:
        self._lock = Lock()
        self._events: deque[dict[str, Any]] = deque(maxlen=max(1, int(capacity)))
        self._next_id = 1

    def log_event(self, level: str, message: str, service_name: str | None = None) -> None:
        level = "WARNING" if level.upper() == "WARN" else level.upper()
        levelno = logging.getLevelName(level)
        if not isinstance(levelno, int):
            levelno = logging.INFO
        if service_name:
            logger.log(levelno, "[%s] %s", service_name, message)
        else:
            logger.log(levelno, "%s", message)
        with self._lock:
            self._events.append(
                {
                    "id": self._next_id,
                    "ts": utc_iso(),
                    "level": level,
                    "service_name": service_name,
                    "message": message,
                }
            )
            self._next_id += 1

    def latest(self, limit: int = 100) -> list[dict[str, Any]]:
        with self._lock:
            items = list(self._events)
        return list(reversed(items))[: max(0, int(limit))]
