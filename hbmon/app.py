from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Callable

from fastapi import APIRouter, FastAPI, HTTPException, Query
from fastapi.concurrency import run_in_threadpool

from .actuator import RemediationActuator
from .api_models import (
    ActionResponse,
    HealthSummary,
    HeartbeatRequest,
    HeartbeatResponse,
    RegisterResponse,
    ServiceInfo,
    ServiceList,
)
from .detector import FailureDetector
from .docker_ops import DockerActuator
from .events import EventLog, utc_iso
from .registry import ServiceRegistry
from .settings import Settings
from .settings import settings as default_settings

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    registry: ServiceRegistry | None = None,
    actuator: RemediationActuator | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Wire registry, actuator and detector into a FastAPI app.

    The detector thread lives for the duration of the app lifespan.
    """
    settings = settings or default_settings
    registry = registry or ServiceRegistry()
    actuator = actuator or DockerActuator(settings)
    events = EventLog(settings.event_log_size)
    detector = FailureDetector(registry, actuator, settings, events=events, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.enable_detector:
            detector.start()
        try:
            yield
        finally:
            detector.stop(timeout=5)
            if isinstance(actuator, DockerActuator):
                actuator.close()

    app = FastAPI(title="Heartbeat Monitor", lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.actuator = actuator
    app.state.detector = detector
    app.state.events = events

    router = APIRouter(prefix="/monitor")

    @router.post("/register", response_model=RegisterResponse)
    def register(req: HeartbeatRequest) -> dict[str, Any]:
        prev, status = registry.touch(req.service_name, req.host, req.port, clock())
        if prev is None:
            events.log_event("INFO", f"Service registered on {req.host}:{req.port}", service_name=req.service_name)
        return {"message": "Service registered successfully", "serviceName": req.service_name, "status": status.value}

    @router.post("/heartbeat", response_model=HeartbeatResponse)
    def heartbeat(req: HeartbeatRequest) -> dict[str, Any]:
        now = clock()
        prev, status = registry.touch(req.service_name, req.host, req.port, now)
        if prev is None:
            events.log_event("INFO", "Auto-registered from heartbeat", service_name=req.service_name)
        elif prev is not status:
            events.log_event("INFO", "Service recovered", service_name=req.service_name)
        else:
            logger.debug("Heartbeat from %s", req.service_name)
        return {
            "message": "Heartbeat received",
            "serviceName": req.service_name,
            "status": status.value,
            "timestamp": utc_iso(now),
        }

    @router.get("/services", response_model=ServiceList)
    def list_services() -> dict[str, Any]:
        records = registry.snapshot()
        return {
            "totalServices": len(records),
            "services": {r.name: r.to_dict() for r in records},
            "timestamp": utc_iso(clock()),
        }

    @router.get("/services/{name}", response_model=ServiceInfo)
    def get_service(name: str) -> dict[str, Any]:
        rec = registry.get(name)
        if rec is None:
            raise HTTPException(status_code=404, detail=f"Unknown service '{name}'")
        return rec.to_dict()

    @router.get("/health", response_model=HealthSummary)
    def health() -> dict[str, Any]:
        c = registry.counts()
        return {
            "status": "running",
            "totalServices": c.total,
            "healthyCount": c.healthy,
            "deadCount": c.dead,
            "timestamp": utc_iso(clock()),
        }

    @router.get("/events")
    def list_events(limit: int = Query(100, ge=1, le=1000)) -> list[dict[str, Any]]:
        return events.latest(limit)

    @router.post("/sweep")
    def sweep_now() -> dict[str, Any]:
        return detector.sweep().to_dict()

    # Operator actions. They never change registry status.
    @router.post("/services/{name}/restart", response_model=ActionResponse)
    async def restart_service(name: str) -> dict[str, Any]:
        outcome = await run_in_threadpool(actuator.restart, name)
        events.log_event("INFO" if outcome.ok else "ERROR", f"Manual restart: {outcome.message}", service_name=name)
        return {"serviceName": name, "action": "restart", "success": outcome.ok, "detail": outcome.message}

    @router.post("/services/{name}/start", response_model=ActionResponse)
    async def start_service(name: str) -> dict[str, Any]:
        ok = await run_in_threadpool(actuator.start, name)
        events.log_event("INFO" if ok else "ERROR", f"Manual start {'succeeded' if ok else 'failed'}", service_name=name)
        return {"serviceName": name, "action": "start", "success": ok}

    @router.post("/services/{name}/stop", response_model=ActionResponse)
    async def stop_service(name: str) -> dict[str, Any]:
        ok = await run_in_threadpool(actuator.stop, name)
        events.log_event("INFO" if ok else "ERROR", f"Manual stop {'succeeded' if ok else 'failed'}", service_name=name)
        return {"serviceName": name, "action": "stop", "success": ok}

    @router.get("/services/{name}/container")
    async def container_status(name: str) -> dict[str, Any]:
        status = await run_in_threadpool(actuator.status, name)
        return {"serviceName": name, "container": status.value}

    app.include_router(router)
    return app
