"""Tests for the repair coordinator and the quality pass."""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeCheckRunner, FakeHelp, FakeProject, FakeRepair, FakeReviewer
from uiforge.agents.capability import FixAttempt, RepairCapability
from uiforge.artifacts.registry import ArtifactRegistry
from uiforge.checks.aggregator import aggregate
from uiforge.errors import ToolInvocationError
from uiforge.validation.coordinator import RepairCoordinator
from uiforge.validation.quality_pass import QualityPass, QualityScope, select_targets


async def failures_of(project: FakeProject, runner: FakeCheckRunner):
    report = await runner.run_checks(project.registry.list_artifacts())
    return aggregate(report.type_issues, report.lint_issues, project.registry)


class ToolFailsFor(FakeCheckRunner):
    """Single-artifact re-check that cannot run for one artifact."""

    def __init__(self, project: FakeProject, failing: str):
        super().__init__(project)
        self.failing = failing

    async def check_artifact(self, artifact):
        if artifact.name == self.failing:
            raise ToolInvocationError("typescript", "exited with code 1 and no diagnostics")
        return await super().check_artifact(artifact)


class SlowRepair(RepairCapability):
    """Fixes every artifact; the ones in `slow` take a while."""

    def __init__(self, project: FakeProject, slow=()):
        self.project = project
        self.slow = set(slow)
        self.started: list[str] = []
        self.finished: list[str] = []

    async def attempt_fix(self, artifact_path: str, issue_text: str) -> FixAttempt:
        name = self.project.registry.owner_of(artifact_path).name
        self.started.append(name)
        if name in self.slow:
            await asyncio.sleep(0.2)
        self.project.broken.discard(name)
        self.finished.append(name)
        return FixAttempt(wrote=True, new_path=artifact_path, approach=f"fixed props of {name}")


class MovingRepair(RepairCapability):
    """Writes the artifact to `moved` on its first turn without fixing it."""

    def __init__(self, moved: str):
        self.moved = moved
        self.paths: list[str] = []

    async def attempt_fix(self, artifact_path: str, issue_text: str) -> FixAttempt:
        self.paths.append(artifact_path)
        return FixAttempt(wrote=True, new_path=self.moved, approach="split Card into its own file")


class TestRepair:
    @pytest.mark.asyncio
    async def test_successful_repair_round_trip(self, registry: ArtifactRegistry):
        project = FakeProject(registry, broken={"Card"})
        runner = FakeCheckRunner(project)
        repair = FakeRepair(project, fixable={"Card"})
        coordinator = RepairCoordinator(registry, runner, repair)

        failures = await failures_of(project, runner)
        result = await coordinator.repair(failures["Card"])

        assert result.success
        assert result.turns == 1
        assert result.remaining_errors is None
        assert runner.artifact_checks == ["Card"]
        # The capability saw the formatted issue list
        assert "Property 'size' does not exist" in repair.calls[0][1]
        assert await failures_of(project, runner) == {}

    @pytest.mark.asyncio
    async def test_no_write_stops_the_sub_loop(self, registry: ArtifactRegistry):
        project = FakeProject(registry, broken={"Card"})
        runner = FakeCheckRunner(project)
        repair = FakeRepair(project, writes=False)
        coordinator = RepairCoordinator(registry, runner, repair, max_turns=15)

        result = await coordinator.repair((await failures_of(project, runner))["Card"])

        assert not result.success
        assert result.turns == 1
        assert len(repair.calls) == 1
        assert runner.artifact_checks == []
        assert "Card" in result.remaining_errors

    @pytest.mark.asyncio
    async def test_turn_budget_is_respected(self, registry: ArtifactRegistry):
        project = FakeProject(registry, broken={"Card"})
        runner = FakeCheckRunner(project)
        repair = FakeRepair(project)
        coordinator = RepairCoordinator(registry, runner, repair, max_turns=4, stuck_threshold=10)

        result = await coordinator.repair((await failures_of(project, runner))["Card"])

        assert not result.success
        assert result.turns == 4
        assert len(repair.calls) == 4

    @pytest.mark.asyncio
    async def test_stuck_repair_escalates_to_help_search(self, registry: ArtifactRegistry):
        project = FakeProject(registry, broken={"Card"})
        runner = FakeCheckRunner(project)
        repair = FakeRepair(project)
        help_search = FakeHelp("Extend React.HTMLAttributes<HTMLDivElement>.")
        coordinator = RepairCoordinator(registry, runner, repair, help_search=help_search, max_turns=15, stuck_threshold=3)

        result = await coordinator.repair((await failures_of(project, runner))["Card"])

        assert result.turns == 15
        assert result.escalations == 4
        assert len(help_search.calls) == 4
        query, previous = help_search.calls[0]
        assert "Property 'size' does not exist" in query
        assert previous == ["retyped props of Card"] * 3
        # Advice reaches the turn after each escalation
        assert "Extend React.HTMLAttributes" in repair.calls[3][1]
        assert "Extend React.HTMLAttributes" not in repair.calls[2][1]

    @pytest.mark.asyncio
    async def test_capability_error_ends_that_artifact_only(self, registry: ArtifactRegistry):
        project = FakeProject(registry, broken={"Card", "Button"})
        runner = FakeCheckRunner(project)
        repair = FakeRepair(project, error=RuntimeError("model overloaded"))
        coordinator = RepairCoordinator(registry, runner, repair)

        results = await coordinator.repair_all(await failures_of(project, runner))

        assert set(results) == {"Button", "Card"}
        assert not results["Card"].success
        assert "model overloaded" in results["Card"].remaining_errors
        assert results["Button"].turns == 1

    @pytest.mark.asyncio
    async def test_tool_failure_during_recheck_propagates(self, registry: ArtifactRegistry):
        project = FakeProject(registry, broken={"Card"})
        failures = await failures_of(project, FakeCheckRunner(project))
        runner = FakeCheckRunner(project, error=ToolInvocationError("eslint", "exited with code 2"))
        coordinator = RepairCoordinator(registry, runner, FakeRepair(project, fixable={"Card"}))

        with pytest.raises(ToolInvocationError):
            await coordinator.repair(failures["Card"])

    @pytest.mark.asyncio
    async def test_repair_all_with_concurrency(self, registry: ArtifactRegistry):
        project = FakeProject(registry, broken={"Card", "Button", "Star"})
        runner = FakeCheckRunner(project)
        coordinator = RepairCoordinator(
            registry, runner, FakeRepair(project, fixable={"Card", "Button", "Star"}), concurrency=3,
        )

        results = await coordinator.repair_all(await failures_of(project, runner))

        assert list(results) == ["Button", "Card", "Star"]
        assert all(r.success for r in results.values())

    @pytest.mark.asyncio
    async def test_repair_all_of_nothing(self, registry: ArtifactRegistry):
        project = FakeProject(registry)
        coordinator = RepairCoordinator(registry, FakeCheckRunner(project), FakeRepair(project))
        assert await coordinator.repair_all({}) == {}


class TestQualityScope:
    def test_first_attempt_reviews_everything(self, registry: ArtifactRegistry):
        targets = select_targets(registry.list_artifacts(), {}, attempt=1)
        assert len(targets) == len(registry)

    def test_retry_reviews_only_failing(self, registry: ArtifactRegistry):
        project = FakeProject(registry, broken={"Card"})
        failures = {"Card": object()}
        targets = select_targets(project.registry.list_artifacts(), failures, attempt=2)
        assert [a.name for a in targets] == ["Card"]

    def test_all_scope_reviews_everything_on_retry(self, registry: ArtifactRegistry):
        targets = select_targets(registry.list_artifacts(), {"Card": object()}, attempt=3, scope=QualityScope.ALL)
        assert len(targets) == len(registry)


class TestQualityPass:
    @pytest.mark.asyncio
    async def test_no_write_means_meets_standards(self, registry: ArtifactRegistry):
        project = FakeProject(registry)
        runner = FakeCheckRunner(project)
        quality = QualityPass(FakeReviewer(writes=False), runner, max_turns=3)

        result = await quality.review(registry.find_by_name("Card"))

        assert not result.improved
        assert result.turns == 1
        assert result.notes == ["meets all quality standards"]
        assert runner.artifact_checks == []

    @pytest.mark.asyncio
    async def test_write_is_rechecked(self, registry: ArtifactRegistry):
        project = FakeProject(registry)
        runner = FakeCheckRunner(project)
        quality = QualityPass(FakeReviewer(writes=True), runner, max_turns=3)

        result = await quality.review(registry.find_by_name("Card"))

        assert result.improved
        assert result.turns == 1
        assert runner.artifact_checks == ["Card"]

    @pytest.mark.asyncio
    async def test_errors_after_write_are_fed_back_within_cap(self, registry: ArtifactRegistry):
        project = FakeProject(registry, broken={"Card"})
        runner = FakeCheckRunner(project)
        quality = QualityPass(FakeReviewer(writes=True), runner, max_turns=3)

        result = await quality.review(registry.find_by_name("Card"))

        assert result.turns == 3
        assert result.improved

    @pytest.mark.asyncio
    async def test_capability_errors_are_advisory(self, registry: ArtifactRegistry):
        project = FakeProject(registry)
        quality = QualityPass(FakeReviewer(error=RuntimeError("rate limited")), FakeCheckRunner(project))

        results = await quality.review_all(registry.list_artifacts())

        assert len(results) == len(registry)
        assert all(not r.improved for r in results.values())
        assert "rate limited" in results["Card"].notes[0]


class TestRepairAllAbort:
    @pytest.mark.asyncio
    async def test_tool_failure_cancels_repairs_in_flight(self, registry: ArtifactRegistry):
        project = FakeProject(registry, broken={"Button", "Card"})
        failures = await failures_of(project, FakeCheckRunner(project))
        repair = SlowRepair(project, slow={"Card"})
        coordinator = RepairCoordinator(
            registry, ToolFailsFor(project, "Button"), repair, concurrency=2,
        )

        with pytest.raises(ToolInvocationError):
            await coordinator.repair_all(failures)
        await asyncio.sleep(0.3)

        assert repair.finished == ["Button"]
        assert "Card" in project.broken


class TestMovedSource:
    @pytest.mark.asyncio
    async def test_later_turns_use_the_new_path(self, registry: ArtifactRegistry, ui_root):
        project = FakeProject(registry, broken={"Card"})
        runner = FakeCheckRunner(project)
        moved = str(ui_root / "components" / "Card.next.tsx")
        repair = MovingRepair(moved)
        coordinator = RepairCoordinator(registry, runner, repair, max_turns=2, stuck_threshold=10)

        await coordinator.repair((await failures_of(project, runner))["Card"])

        assert repair.paths == [registry.find_by_name("Card").path, moved]
