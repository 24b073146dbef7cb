"""LangGraph node functions for the validation loop.

Every node reads its collaborators from `config["configurable"]["context"]`
(a ValidationContext) and returns a partial state update.
"""

from datetime import datetime, timezone

import structlog
from langchain_core.runnables import RunnableConfig

from uiforge.checks.aggregator import aggregate
from uiforge.graph.context import ValidationContext
from uiforge.graph.state import ValidationState
from uiforge.models.events import (
    ArtifactRepairedEvent,
    FinalCheckCompletedEvent,
    QualityReviewedEvent,
    ValidationPassStartedEvent,
)
from uiforge.services.event_bus import event_bus
from uiforge.validation.quality_pass import select_targets
from uiforge.validation.retry import RetryPolicy

logger = structlog.get_logger()

# Consecutive identical failure sets reported as "recurring"
RECURRING_FAILURE_THRESHOLD = 2


def get_context(config: RunnableConfig) -> ValidationContext:
    return config["configurable"]["context"]


async def _comprehensive_check(context: ValidationContext) -> dict:
    report = await context.check_runner.run_checks(context.registry.list_artifacts())
    return aggregate(report.type_issues, report.lint_issues, context.registry)


async def check_types_node(state: ValidationState, config: RunnableConfig) -> dict:
    """Comprehensive check run on entry when the caller does not know what fails.

    It is the check of attempt 1: failures it finds are repaired on attempt 2,
    exactly as if attempt 1's final check had found them.
    """
    context = get_context(config)
    failures = await _comprehensive_check(context)
    failing = sorted(failures)

    update = {
        "failures": failures,
        "failure_history": [failing],
        "needs_initial_check": False,
        "passed": not failures,
        "status": "repairing" if failures else "reviewing",
    }
    next_action = route_after_initial_check({**state, **update})
    logger.info(
        "initial_check_complete",
        run_id=state["run_id"],
        attempt=state["attempt"],
        failing=failing,
        next_action=next_action,
    )

    if next_action == "exit":
        update["status"] = "failed"
        update["completed_at"] = datetime.now(timezone.utc).isoformat()
    return update


async def repair_failures_node(state: ValidationState, config: RunnableConfig) -> dict:
    """One coordinator invocation per currently failing artifact."""
    context = get_context(config)
    cb = event_bus.create_callback(state["run_id"])
    failures = state["failures"]

    await cb(
        ValidationPassStartedEvent(
            attempt=state["attempt"],
            max_attempts=state["max_attempts"],
            failing_artifacts=sorted(failures),
        ).model_dump()
    )

    results = await context.coordinator.repair_all(failures)

    for name, result in results.items():
        await cb(
            ArtifactRepairedEvent(
                artifact=name,
                success=result.success,
                turns=result.turns,
                escalations=result.escalations,
            ).model_dump()
        )

    logger.info(
        "repair_node_complete",
        run_id=state["run_id"],
        attempt=state["attempt"],
        attempted=len(results),
        succeeded=sum(1 for r in results.values() if r.success),
    )
    return {
        "repair_results": results,
        "repaired_artifacts": sorted(results),
        "status": "reviewing",
    }


async def quality_review_node(state: ValidationState, config: RunnableConfig) -> dict:
    """Advisory quality pass. Never changes routing."""
    context = get_context(config)
    if context.quality_pass is None:
        return {"status": "checking"}

    targets = select_targets(
        context.registry.list_artifacts(),
        state["failures"],
        state["attempt"],
        context.quality_scope,
    )
    results = await context.quality_pass.review_all(targets)

    cb = event_bus.create_callback(state["run_id"])
    await cb(
        QualityReviewedEvent(
            attempt=state["attempt"],
            reviewed=len(results),
            improved=sum(1 for r in results.values() if r.improved),
        ).model_dump()
    )
    return {
        "quality_results": results,
        "status": "checking",
    }


async def final_check_node(state: ValidationState, config: RunnableConfig) -> dict:
    """Comprehensive check over the whole registry; its failure map replaces the old one."""
    context = get_context(config)
    failures = await _comprehensive_check(context)
    failing = sorted(failures)

    history = [*state.get("failure_history", []), failing]
    recurring = RetryPolicy(
        max_attempts=state["max_attempts"],
        stuck_threshold=RECURRING_FAILURE_THRESHOLD,
    ).is_stuck([",".join(names) for names in history])
    if recurring:
        logger.warning(
            "recurring_failures",
            run_id=state["run_id"],
            attempt=state["attempt"],
            failing=failing,
        )

    update = {"failures": failures, "failure_history": [failing], "passed": not failures}
    next_action = route_after_final_check({**state, **update})

    logger.info(
        "final_check_complete",
        run_id=state["run_id"],
        attempt=state["attempt"],
        max_attempts=state["max_attempts"],
        failing=failing,
        next_action=next_action,
    )

    cb = event_bus.create_callback(state["run_id"])
    await cb(
        FinalCheckCompletedEvent(
            attempt=state["attempt"],
            failing_artifacts=failing,
            next_action=next_action,
        ).model_dump()
    )

    if next_action == "exit":
        update["status"] = "complete" if not failures else "failed"
        update["completed_at"] = datetime.now(timezone.utc).isoformat()
    return update


async def next_attempt_node(state: ValidationState) -> dict:
    """The only place the attempt counter moves."""
    logger.info("next_attempt", run_id=state["run_id"], attempt=state["attempt"] + 1)
    return {"attempt": state["attempt"] + 1, "status": "repairing"}


# ── Routers ──

def route_entry(state: ValidationState) -> str:
    """Where a run goes first.

    Returns:
        "check"   - failures unknown, run the comprehensive check of attempt 1
        "repair"  - the caller already knows what fails, repair it on attempt 1
        "quality" - nothing failing, go straight to the quality pass
    """
    if state.get("needs_initial_check"):
        return "check"
    if state["failures"]:
        return "repair"
    return "quality"


def route_after_initial_check(state: ValidationState) -> str:
    """Returns "quality" when clean, "exit" when failing with no attempt left, otherwise "retry"."""
    if not state["failures"]:
        return "quality"
    return route_after_final_check(state)


def route_after_final_check(state: ValidationState) -> str:
    """Returns "exit" when clean or out of attempts, otherwise "retry"."""
    if not state["failures"]:
        return "exit"
    if RetryPolicy(max_attempts=state["max_attempts"]).exhausted(state["attempt"]):
        return "exit"
    return "retry"
