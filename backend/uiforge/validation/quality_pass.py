"""Quality pass: advisory review of artifacts against the quality checklist.

The pass never blocks the run. Whatever it writes is judged by the next
comprehensive check, not here.
"""

from enum import Enum
from typing import Iterable, Optional

import structlog

from uiforge.agents.capability import RepairCapability
from uiforge.artifacts.models import Artifact
from uiforge.checks.models import FailureRecord, format_issues
from uiforge.checks.runner import CheckRunner
from uiforge.errors import ToolInvocationError
from uiforge.validation.models import QualityResult
from uiforge.validation.retry import RetryPolicy, StepOutcome, run_bounded

logger = structlog.get_logger()

REVIEW_REQUEST = "Review this artifact against the quality checklist and upgrade it where needed."


class QualityScope(str, Enum):
    """Which artifacts the quality pass reviews."""

    ALL = "all"                            # Every artifact, every attempt
    FAILING_ON_RETRY = "failing_on_retry"  # Everything on attempt 1, only failing ones after


def select_targets(
    artifacts: Iterable[Artifact],
    failures: dict[str, FailureRecord],
    attempt: int,
    scope: QualityScope = QualityScope.FAILING_ON_RETRY,
) -> list[Artifact]:
    artifacts = list(artifacts)
    if scope == QualityScope.ALL or attempt <= 1:
        return artifacts
    return [a for a in artifacts if a.name in failures]


class QualityPass:

    def __init__(self, capability: RepairCapability, check_runner: CheckRunner, max_turns: int = 3):
        self.capability = capability
        self.check_runner = check_runner
        self.policy = RetryPolicy(max_attempts=max_turns)

    async def review(self, artifact: Artifact) -> QualityResult:
        """Review one artifact. Capability errors end the review and are kept in notes."""
        writes = 0
        feedback: Optional[str] = None

        async def step(turn: int, hint: Optional[str]) -> StepOutcome:
            nonlocal writes, feedback
            request = REVIEW_REQUEST if feedback is None else (
                f"{REVIEW_REQUEST}\n\nYour last change introduced these errors:\n{feedback}"
            )

            try:
                attempt = await self.capability.attempt_fix(artifact.path, request)
            except ToolInvocationError:
                raise
            except Exception as e:
                logger.warning("quality_review_failed", artifact=artifact.name, turn=turn, error=str(e))
                return StepOutcome(done=False, note=f"review failed: {e}", proceed=False)

            if not attempt.wrote:
                return StepOutcome(done=True, note=attempt.approach)

            writes += 1
            issues = await self.check_runner.check_artifact(artifact)
            errors = [i for i in issues if i.is_error]
            if not errors:
                return StepOutcome(done=True, note=attempt.approach)

            feedback = format_issues(errors)
            return StepOutcome(done=False, error=feedback, note=attempt.approach)

        result = await run_bounded(step, self.policy)

        return QualityResult(
            artifact_name=artifact.name,
            improved=writes > 0,
            notes=[note for note in result.notes if note],
            turns=result.attempts,
        )

    async def review_all(self, artifacts: Iterable[Artifact]) -> dict[str, QualityResult]:
        results: dict[str, QualityResult] = {}
        for artifact in artifacts:
            results[artifact.name] = await self.review(artifact)

        logger.info(
            "quality_pass_complete",
            reviewed=len(results),
            improved=sum(1 for r in results.values() if r.improved),
        )
        return results
