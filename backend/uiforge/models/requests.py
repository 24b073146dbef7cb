"""API request models."""

from typing import Optional

from pydantic import BaseModel, Field


class CreateRunRequest(BaseModel):
    """Request to validate a generated artifact tree."""

    artifact_root: str = Field(
        ...,
        min_length=1,
        description="Directory holding elements/, components/, modules/ and icons/",
        examples=["/workspace/app/ui"],
    )
    project_root: Optional[str] = Field(
        default=None,
        description="Directory with tsconfig and eslint config; defaults to the artifact root's parent",
    )
    initial_scan: bool = Field(
        default=True,
        description="Run a comprehensive check before the first repair pass",
    )
    max_attempts: Optional[int] = Field(default=None, ge=1, le=10)
