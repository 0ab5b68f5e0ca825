from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class HeartbeatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    service_name: str = Field(..., alias="serviceName", min_length=1, max_length=255, description="Unique, case-sensitive")
    host: str = Field("localhost", description="Advisory; not used for liveness")
    port: int = Field(0, ge=0, le=65535)


class RegisterResponse(BaseModel):
    message: str
    serviceName: str
    status: str


class HeartbeatResponse(BaseModel):
    message: str
    serviceName: str
    status: str
    timestamp: str


class HealthSummary(BaseModel):
    status: str
    totalServices: int
    healthyCount: int
    deadCount: int
    timestamp: str


class ActionResponse(BaseModel):
    serviceName: str
    action: str
    success: bool
    detail: str = ""


class ServiceInfo(BaseModel):
    serviceName: str
    host: str
    port: int
    status: str = Field(..., description="HEALTHY|DEAD")
    lastHeartbeat: str
    lastHeartbeatAt: float = Field(..., description="Epoch seconds")
    lastStatusChange: str
    lastStatusChangeAt: float = Field(..., description="Epoch seconds")
    registeredAt: str
    heartbeatCount: int
    remediationCount: int


class ServiceList(BaseModel):
    totalServices: int
    services: dict[str, ServiceInfo]
    timestamp: str
