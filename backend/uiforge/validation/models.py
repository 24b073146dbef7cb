"""Result models for the repair, quality and orchestration layers."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from uiforge.checks.models import FailureRecord


class RepairResult(BaseModel):
    """Outcome of one artifact's repair sub-loop."""

    model_config = ConfigDict(frozen=True)

    artifact_name: str
    success: bool
    remaining_errors: Optional[str] = None
    turns: int = 0
    escalations: int = 0
    approaches: list[str] = Field(default_factory=list)


class QualityResult(BaseModel):
    """Outcome of one artifact's quality review. Advisory only."""

    model_config = ConfigDict(frozen=True)

    artifact_name: str
    improved: bool = False
    notes: list[str] = Field(default_factory=list)
    turns: int = 0


class ValidationOutcome(BaseModel):
    """What the orchestrator hands back to its caller."""

    model_config = ConfigDict(frozen=True)

    passed: bool
    failures: dict[str, FailureRecord] = Field(default_factory=dict)
    attempt: int
    repaired: list[str] = Field(default_factory=list)
