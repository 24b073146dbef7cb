"""API response models."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

RunStatus = Literal["queued", "running", "passed", "failed", "error"]


class CreateRunResponse(BaseModel):
    run_id: str
    status: RunStatus = "queued"
    created_at: datetime
    websocket_url: str


class RunStatusResponse(BaseModel):
    """Run status; `report` is present once the run has finished."""

    run_id: str
    status: RunStatus
    artifact_root: str
    attempt: Optional[int] = None
    error: Optional[str] = None
    report: Optional[dict] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class RunReportResponse(BaseModel):
    run_id: str
    format: Literal["markdown"] = "markdown"
    passed: bool
    document: str


class HealthDependency(BaseModel):
    status: Literal["healthy", "unhealthy"]
    latency_ms: Optional[float] = None
    message: Optional[str] = None


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"]
    version: str = "1.0.0"
    uptime_seconds: float
    dependencies: dict[str, HealthDependency]
