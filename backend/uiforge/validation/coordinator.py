"""Repair coordinator: drives a repair capability over failing artifacts.

Each failing artifact gets its own bounded sub-loop. After every write the
artifact is re-checked on its own; the sub-loop ends when the re-check is
clean, the capability stops writing, or the turn budget is spent. When the
same error keeps coming back the help search is consulted and its advice is
handed to the next turn.
"""

import asyncio
from typing import Optional

import structlog

from uiforge.agents.capability import HelpSearch, RepairCapability
from uiforge.artifacts.models import Artifact
from uiforge.artifacts.registry import ArtifactRegistry
from uiforge.checks.models import FailureRecord, format_issues
from uiforge.checks.runner import CheckRunner
from uiforge.errors import ToolInvocationError
from uiforge.validation.models import RepairResult
from uiforge.validation.retry import RetryPolicy, StepOutcome, run_bounded

logger = structlog.get_logger()


class RepairCoordinator:

    def __init__(
        self,
        registry: ArtifactRegistry,
        check_runner: CheckRunner,
        capability: RepairCapability,
        help_search: Optional[HelpSearch] = None,
        max_turns: int = 15,
        stuck_threshold: int = 3,
        concurrency: int = 1,
    ):
        self.registry = registry
        self.check_runner = check_runner
        self.capability = capability
        self.help_search = help_search
        self.policy = RetryPolicy(max_attempts=max_turns, stuck_threshold=stuck_threshold)
        self.concurrency = max(1, concurrency)

    async def repair(self, record: FailureRecord) -> RepairResult:
        """Run the repair sub-loop for one artifact.

        Raises:
            ToolInvocationError: the re-check toolchain failed. Never retried.
        """
        artifact = self._artifact_for(record)
        issue_text = record.issue_text()
        path = artifact.path

        async def step(turn: int, hint: Optional[str]) -> StepOutcome:
            nonlocal issue_text, path
            prompt = issue_text if not hint else f"{issue_text}\n\nSuggested approach:\n{hint}"

            try:
                attempt = await self.capability.attempt_fix(path, prompt)
            except ToolInvocationError:
                raise
            except Exception as e:
                logger.error("repair_capability_failed", artifact=artifact.name, turn=turn, error=str(e))
                return StepOutcome(done=False, error=f"repair capability failed: {e}", proceed=False)

            if not attempt.wrote:
                logger.info("repair_no_write", artifact=artifact.name, turn=turn)
                return StepOutcome(done=False, error=issue_text, note=attempt.approach, proceed=False)

            if attempt.new_path and attempt.new_path != path:
                logger.info("repair_moved_source", artifact=artifact.name, path=attempt.new_path)
                path = attempt.new_path

            issues = await self.check_runner.check_artifact(artifact)
            errors = [i for i in issues if i.is_error]
            if not errors:
                return StepOutcome(done=True, note=attempt.approach)

            issue_text = format_issues(issues)
            return StepOutcome(done=False, error=format_issues(errors), note=attempt.approach)

        result = await run_bounded(step, self.policy, on_stuck=self._on_stuck)

        logger.info(
            "artifact_repair_complete",
            artifact=artifact.name,
            success=result.succeeded,
            turns=result.attempts,
            escalations=result.escalations,
        )
        return RepairResult(
            artifact_name=artifact.name,
            success=result.succeeded,
            remaining_errors=None if result.succeeded else result.last_error,
            turns=result.attempts,
            escalations=result.escalations,
            approaches=[note for note in result.notes if note],
        )

    async def repair_all(self, failures: dict[str, FailureRecord]) -> dict[str, RepairResult]:
        """Repair every failing artifact; one artifact's failure never stops the others.

        Raises:
            ToolInvocationError: the re-check toolchain failed. Repairs still in
                flight are cancelled before it propagates.
        """
        if not failures:
            return {}

        semaphore = asyncio.Semaphore(self.concurrency)

        async def guarded(record: FailureRecord) -> RepairResult:
            async with semaphore:
                return await self.repair(record)

        names = sorted(failures)
        tasks = [asyncio.create_task(guarded(failures[name])) for name in names]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("repair_pass_aborted", cancelled=len(pending))
            raise

        logger.info(
            "repair_pass_complete",
            artifacts=len(names),
            repaired=sum(1 for r in results if r.success),
        )
        return dict(zip(names, results))

    # ── Helpers ──

    def _artifact_for(self, record: FailureRecord) -> Artifact:
        artifact = self.registry.find_by_name(record.artifact_name)
        if artifact is not None:
            return artifact
        return Artifact(
            name=record.artifact_name,
            kind=record.artifact_kind,
            path=record.artifact_path,
        )

    async def _on_stuck(self, last_error: str, previous_attempts: list[str]) -> Optional[str]:
        if self.help_search is None:
            return None
        try:
            advice = await self.help_search.search(last_error, previous_attempts)
        except Exception as e:
            logger.warning("help_search_failed", error=str(e))
            return None
        return advice or None
