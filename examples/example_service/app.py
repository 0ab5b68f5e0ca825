from __future__ import annotations

import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI

from hbmon.heartbeat import HeartbeatSender

SERVICE_NAME = os.getenv("SERVICE_NAME", "service-a")
SERVICE_HOST = os.getenv("SERVICE_HOST", "localhost")
SERVICE_PORT = int(os.getenv("SERVICE_PORT", "8081"))
MONITOR_URL = os.getenv("MONITOR_URL", "http://localhost:8080")
HEARTBEAT_INTERVAL_S = float(os.getenv("HEARTBEAT_INTERVAL_S", "5"))

sender = HeartbeatSender(MONITOR_URL, SERVICE_NAME, SERVICE_HOST, SERVICE_PORT, interval_s=HEARTBEAT_INTERVAL_S)


@asynccontextmanager
async def lifespan(app: FastAPI):
    sender.start()
    try:
        yield
    finally:
        sender.stop()


app = FastAPI(title=f"Example Service {SERVICE_NAME}", lifespan=lifespan)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "healthy", "service": SERVICE_NAME}


@app.get("/data")
def data() -> dict[str, object]:
    return {"service": SERVICE_NAME, "timestamp_ms": int(time.time() * 1000)}


@app.post("/simulate/hang")
def hang() -> dict[str, str]:
    # Stop heartbeating without exiting, so the monitor marks this service DEAD.
    sender.stop()
    return {"msg": f"{SERVICE_NAME} stopped sending heartbeats"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=SERVICE_PORT)
