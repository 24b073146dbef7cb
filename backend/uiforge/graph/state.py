"""Shared validation state schema for LangGraph.

Nodes never mutate the state they receive; they return partial updates and
the reducers below decide how each update is merged.
"""

import operator
from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, TypedDict

from uiforge.checks.models import FailureRecord


# ── Reducers ──

def replace_failures(old: dict, new: dict) -> dict:
    """Each comprehensive check is authoritative: the fresh map wins outright."""
    return dict(new)


def merge_latest(old: dict, new: dict) -> dict:
    """Key-wise merge; the latest value for a key replaces the earlier one."""
    merged = dict(old)
    merged.update(new)
    return merged


def merge_unique(old: list, new: list) -> list:
    """Append unseen items, keeping first-seen order."""
    merged = list(old)
    for item in new:
        if item not in merged:
            merged.append(item)
    return merged


class ValidationState(TypedDict):
    """Full orchestrator state passed between LangGraph nodes."""

    # ── Input ──
    run_id: str
    artifact_root: str

    # ── Check results ──
    failures: Annotated[dict, replace_failures]         # name -> FailureRecord, latest check only
    failure_history: Annotated[list, operator.add]      # failing names per final check

    # ── Repair / quality ──
    repair_results: Annotated[dict, merge_latest]       # name -> RepairResult
    repaired_artifacts: Annotated[list, merge_unique]   # names ever handed to repair
    quality_results: Annotated[dict, merge_latest]      # name -> QualityResult

    # ── Control Flow ──
    attempt: int
    max_attempts: int
    needs_initial_check: bool
    passed: bool
    status: Literal[
        "initializing",
        "checking",
        "repairing",
        "reviewing",
        "complete",
        "failed",
    ]

    # ── Metadata ──
    started_at: str
    completed_at: Optional[str]


def create_initial_state(
    run_id: str,
    artifact_root: str,
    initial_failures: Optional[dict[str, FailureRecord]],
    max_attempts: int,
) -> ValidationState:
    """Create the entry state. `initial_failures=None` means "unknown": check first."""
    return ValidationState(
        run_id=run_id,
        artifact_root=artifact_root,
        failures=dict(initial_failures or {}),
        failure_history=[],
        repair_results={},
        repaired_artifacts=[],
        quality_results={},
        attempt=1,
        max_attempts=max_attempts,
        needs_initial_check=initial_failures is None,
        passed=False,
        status="initializing",
        started_at=datetime.now(timezone.utc).isoformat(),
        completed_at=None,
    )
