"""LangGraph workflow definition: the bounded validation-and-repair loop.

The workflow:
1. Repair every failing artifact
2. Advisory quality pass
3. Comprehensive check over the whole registry
4. Exit when clean or out of attempts, otherwise bump the attempt and go to 1

When the failing set is unknown the run starts with a comprehensive check
that stands in for attempt 1's check, so a failure is repaired on attempt 2
whichever way the run was entered.
"""

import uuid
from datetime import datetime
from typing import Optional

import structlog
from langgraph.graph import StateGraph, START, END

from uiforge.checks.models import FailureRecord
from uiforge.errors import ToolInvocationError
from uiforge.graph.context import ValidationContext
from uiforge.graph.nodes import (
    check_types_node,
    final_check_node,
    next_attempt_node,
    quality_review_node,
    repair_failures_node,
    route_after_final_check,
    route_after_initial_check,
    route_entry,
)
from uiforge.graph.state import ValidationState, create_initial_state
from uiforge.models.events import ErrorEvent, ValidationCompleteEvent
from uiforge.services.event_bus import event_bus
from uiforge.validation.models import ValidationOutcome

logger = structlog.get_logger()


def build_graph() -> StateGraph:
    """Build the validation graph.

    Flow:
        START        → check_types | repair_failures | quality_review
        check_types  → quality_review | next_attempt | END
        repair_failures → quality_review → final_check
        final_check  → next_attempt | END
        next_attempt → repair_failures
    """
    workflow = StateGraph(ValidationState)

    workflow.add_node("check_types", check_types_node)
    workflow.add_node("repair_failures", repair_failures_node)
    workflow.add_node("quality_review", quality_review_node)
    workflow.add_node("final_check", final_check_node)
    workflow.add_node("next_attempt", next_attempt_node)

    entry_routes = {
        "check": "check_types",
        "repair": "repair_failures",
        "quality": "quality_review",
    }
    workflow.add_conditional_edges(START, route_entry, entry_routes)
    workflow.add_conditional_edges(
        "check_types",
        route_after_initial_check,
        {"quality": "quality_review", "retry": "next_attempt", "exit": END},
    )

    workflow.add_edge("repair_failures", "quality_review")
    workflow.add_edge("quality_review", "final_check")

    workflow.add_conditional_edges(
        "final_check",
        route_after_final_check,
        {
            "exit": END,
            "retry": "next_attempt",
        },
    )
    workflow.add_edge("next_attempt", "repair_failures")

    return workflow


def compile_graph():
    return build_graph().compile()


# Module-level compiled graph (reused across runs)
_compiled_graph = None


def get_compiled_graph():
    """Get or create the compiled graph singleton."""
    global _compiled_graph
    if _compiled_graph is None:
        _compiled_graph = compile_graph()
    return _compiled_graph


async def run_validation(
    initial_failures: Optional[dict[str, FailureRecord]],
    context: ValidationContext,
    run_id: Optional[str] = None,
) -> ValidationOutcome:
    """Run the loop to completion.

    Args:
        initial_failures: Failures already known to the caller, {} for none,
            or None to start with a comprehensive check
        context: Registry, checkers and capabilities for this run
        run_id: Event stream key; generated when omitted

    Returns:
        ValidationOutcome; an unrepaired run is data, not an exception

    Raises:
        ToolInvocationError: the checking toolchain could not run
    """
    run_id = run_id or str(uuid.uuid4())
    cb = event_bus.create_callback(run_id)
    state = create_initial_state(run_id, context.artifact_root, initial_failures, context.max_attempts)

    logger.info(
        "validation_started",
        run_id=run_id,
        artifact_root=context.artifact_root,
        initial_failures=None if initial_failures is None else sorted(initial_failures),
        max_attempts=context.max_attempts,
    )

    try:
        final_state = await get_compiled_graph().ainvoke(
            state,
            config={
                "configurable": {"context": context},
                # Four nodes per attempt plus the initial check, with headroom
                "recursion_limit": context.max_attempts * 5 + 5,
            },
        )
    except ToolInvocationError as e:
        logger.error("validation_tool_failed", run_id=run_id, tool=e.tool, error=str(e))
        await cb(ErrorEvent(message=f"Checking toolchain failed: {e}", recoverable=False).model_dump())
        raise
    except Exception as e:
        logger.error("validation_failed", run_id=run_id, error=str(e))
        await cb(ErrorEvent(message=f"Validation failed: {e}", recoverable=False).model_dump())
        raise

    outcome = ValidationOutcome(
        passed=not final_state["failures"],
        failures=final_state["failures"],
        attempt=final_state["attempt"],
        repaired=final_state["repaired_artifacts"],
    )

    duration = (
        datetime.fromisoformat(final_state["completed_at"])
        - datetime.fromisoformat(final_state["started_at"])
    ).total_seconds()

    await cb(
        ValidationCompleteEvent(
            passed=outcome.passed,
            attempt=outcome.attempt,
            failing_artifacts=len(outcome.failures),
            duration_seconds=round(duration, 2),
        ).model_dump()
    )

    logger.info(
        "validation_completed",
        run_id=run_id,
        passed=outcome.passed,
        attempt=outcome.attempt,
        failing=sorted(outcome.failures),
        duration_seconds=round(duration, 2),
    )
    return outcome
