"""Progress events published while a validation run executes."""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel


class BaseEvent(BaseModel):
    """Base event model for all run events."""

    type: str
    timestamp: Optional[datetime] = None

    def model_post_init(self, __context):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)

    def model_dump(self, **kwargs):
        """Override to always serialize datetimes as ISO strings for JSON safety."""
        kwargs.setdefault("mode", "json")
        return super().model_dump(**kwargs)


class ValidationPassStartedEvent(BaseEvent):
    """Emitted when a repair pass of an attempt begins."""

    type: Literal["validation_pass_started"] = "validation_pass_started"
    attempt: int
    max_attempts: int
    failing_artifacts: list[str]


class AgentStartedEvent(BaseEvent):
    type: Literal["agent_started"] = "agent_started"
    agent: str
    artifact: str
    message: str


class AgentCompletedEvent(BaseEvent):
    type: Literal["agent_completed"] = "agent_completed"
    agent: str
    artifact: str
    summary: str
    duration_seconds: float
    cost_usd: float


class ArtifactRepairedEvent(BaseEvent):
    """Emitted once per artifact after its repair sub-loop."""

    type: Literal["artifact_repaired"] = "artifact_repaired"
    artifact: str
    success: bool
    turns: int
    escalations: int = 0


class QualityReviewedEvent(BaseEvent):
    type: Literal["quality_reviewed"] = "quality_reviewed"
    attempt: int
    reviewed: int
    improved: int


class FinalCheckCompletedEvent(BaseEvent):
    """Emitted after the comprehensive check that closes an attempt."""

    type: Literal["final_check_completed"] = "final_check_completed"
    attempt: int
    failing_artifacts: list[str]
    next_action: Literal["retry", "exit"]


class ValidationCompleteEvent(BaseEvent):
    type: Literal["validation_complete"] = "validation_complete"
    passed: bool
    attempt: int
    failing_artifacts: int
    duration_seconds: float


class ErrorEvent(BaseEvent):
    """Emitted when an error occurs."""

    type: Literal["error"] = "error"
    message: str
    recoverable: bool = True
