"""Bounded retry with stuck detection.

One primitive backs every loop in the validation run: the per-artifact repair
sub-loop, the quality review sub-loop and the orchestrator's attempt routing.

Usage:
    policy = RetryPolicy(max_attempts=15, stuck_threshold=3)
    result = await run_bounded(step, policy, on_stuck=ask_for_help)
"""

import re
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

import structlog

logger = structlog.get_logger()

FINGERPRINT_LENGTH = 200


def fingerprint(text: Optional[str]) -> str:
    """Whitespace-insensitive prefix used to compare consecutive errors."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()[:FINGERPRINT_LENGTH]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int
    stuck_threshold: int = 3

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.stuck_threshold < 2:
            raise ValueError("stuck_threshold must be at least 2")

    def exhausted(self, attempt: int) -> bool:
        """True once `attempt` (1-based) has used the whole budget."""
        return attempt >= self.max_attempts

    def is_stuck(self, history: list[str]) -> bool:
        """The last `stuck_threshold` entries are identical and non-empty."""
        if len(history) < self.stuck_threshold:
            return False
        tail = [fingerprint(entry) for entry in history[-self.stuck_threshold:]]
        return bool(tail[0]) and all(entry == tail[0] for entry in tail)


@dataclass
class StepOutcome:
    """Result of one turn of a bounded loop.

    done:    the goal was reached, stop with success
    error:   what is still wrong, fed to the next turn and to stuck detection
    note:    free-form description of what the turn tried
    proceed: False stops the loop early without success
    """

    done: bool
    error: Optional[str] = None
    note: str = ""
    proceed: bool = True


@dataclass
class BoundedRunResult:
    succeeded: bool
    attempts: int
    last_error: Optional[str] = None
    errors: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    escalations: int = 0


Step = Callable[[int, Optional[str]], Awaitable[StepOutcome]]
OnStuck = Callable[[str, list[str]], Awaitable[Optional[str]]]


async def run_bounded(
    step: Step,
    policy: RetryPolicy,
    on_stuck: Optional[OnStuck] = None,
) -> BoundedRunResult:
    """Call `step(attempt, hint)` until it reports done or the budget runs out.

    `hint` is the advice returned by `on_stuck` after the previous turn, or
    None. After an escalation the error history restarts so the same stuck
    streak does not trigger again on the very next turn.
    """
    result = BoundedRunResult(succeeded=False, attempts=0)
    history: list[str] = []
    hint: Optional[str] = None

    for attempt in range(1, policy.max_attempts + 1):
        outcome = await step(attempt, hint)
        hint = None
        result.attempts = attempt
        if outcome.note:
            result.notes.append(outcome.note)

        if outcome.done:
            result.succeeded = True
            result.last_error = None
            return result

        result.last_error = outcome.error
        if outcome.error:
            result.errors.append(outcome.error)
            history.append(outcome.error)

        if not outcome.proceed or policy.exhausted(attempt):
            break

        if on_stuck is not None and policy.is_stuck(history):
            result.escalations += 1
            logger.info("retry_stuck_escalating", attempt=attempt, escalations=result.escalations)
            hint = await on_stuck(history[-1], list(result.notes[-policy.stuck_threshold:]))
            history.clear()

    return result
