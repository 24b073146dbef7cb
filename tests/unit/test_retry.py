"""Tests for the bounded retry primitive."""

from __future__ import annotations

import pytest

from uiforge.validation.retry import RetryPolicy, StepOutcome, fingerprint, run_bounded


class TestRetryPolicy:
    def test_exhausted_at_max(self):
        policy = RetryPolicy(max_attempts=3)
        assert not policy.exhausted(1)
        assert not policy.exhausted(2)
        assert policy.exhausted(3)
        assert policy.exhausted(4)

    def test_stuck_needs_threshold_identical_entries(self):
        policy = RetryPolicy(max_attempts=10, stuck_threshold=3)
        assert not policy.is_stuck(["a", "a"])
        assert policy.is_stuck(["b", "a", "a", "a"])
        assert not policy.is_stuck(["a", "b", "a"])

    def test_whitespace_differences_do_not_break_stuck_detection(self):
        policy = RetryPolicy(max_attempts=10, stuck_threshold=2)
        assert policy.is_stuck(["error  TS2322\n at line 3", "error TS2322 at line 3"])

    def test_empty_entries_are_never_stuck(self):
        assert not RetryPolicy(max_attempts=10, stuck_threshold=2).is_stuck(["", ""])

    def test_invalid_budget(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=3, stuck_threshold=1)

    def test_fingerprint_is_bounded(self):
        assert len(fingerprint("x" * 1000)) == 200
        assert fingerprint(None) == ""


class TestRunBounded:
    @pytest.mark.asyncio
    async def test_stops_on_success(self):
        seen = []

        async def step(attempt, hint):
            seen.append(attempt)
            return StepOutcome(done=attempt == 2, error="still broken", note=f"try {attempt}")

        result = await run_bounded(step, RetryPolicy(max_attempts=5))
        assert result.succeeded
        assert result.attempts == 2
        assert result.last_error is None
        assert seen == [1, 2]
        assert result.notes == ["try 1", "try 2"]

    @pytest.mark.asyncio
    async def test_never_exceeds_budget(self):
        calls = 0

        async def step(attempt, hint):
            nonlocal calls
            calls += 1
            return StepOutcome(done=False, error=f"error {attempt}")

        result = await run_bounded(step, RetryPolicy(max_attempts=4))
        assert not result.succeeded
        assert calls == 4
        assert result.last_error == "error 4"
        assert result.errors == ["error 1", "error 2", "error 3", "error 4"]

    @pytest.mark.asyncio
    async def test_proceed_false_stops_early(self):
        async def step(attempt, hint):
            return StepOutcome(done=False, error="no write", proceed=False)

        result = await run_bounded(step, RetryPolicy(max_attempts=10))
        assert result.attempts == 1
        assert not result.succeeded

    @pytest.mark.asyncio
    async def test_stuck_escalation_feeds_hint_to_next_turn(self):
        hints = []
        escalated_with = []

        async def step(attempt, hint):
            hints.append(hint)
            return StepOutcome(done=hint is not None, error="same error", note=f"approach {attempt}")

        async def on_stuck(error, previous):
            escalated_with.append((error, previous))
            return "try a discriminated union"

        result = await run_bounded(step, RetryPolicy(max_attempts=10, stuck_threshold=3), on_stuck)

        assert result.succeeded
        assert result.attempts == 4
        assert result.escalations == 1
        assert hints == [None, None, None, "try a discriminated union"]
        assert escalated_with == [("same error", ["approach 1", "approach 2", "approach 3"])]

    @pytest.mark.asyncio
    async def test_no_escalation_on_last_turn(self):
        calls = []

        async def step(attempt, hint):
            return StepOutcome(done=False, error="same")

        async def on_stuck(error, previous):
            calls.append(error)
            return None

        result = await run_bounded(step, RetryPolicy(max_attempts=3, stuck_threshold=3), on_stuck)
        assert result.escalations == 0
        assert calls == []
