"""Shared fixtures and fakes for the uiforge test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from uiforge.agents.capability import FixAttempt, HelpSearch, RepairCapability
from uiforge.artifacts.models import Artifact, ArtifactKind
from uiforge.artifacts.registry import ArtifactRegistry
from uiforge.checks.base import BaseChecker, restrict
from uiforge.checks.models import CheckReport, IssueRecord, IssuesByFile, Severity, SourceCheck
from uiforge.graph.context import ValidationContext
from uiforge.validation.coordinator import RepairCoordinator
from uiforge.validation.quality_pass import QualityPass, QualityScope


# ── Artifact trees ────────────────────────────────────────────────────────


def write(path: Path, content: str = "export default function X() { return null }\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


@pytest.fixture
def ui_root(tmp_path: Path) -> Path:
    """A generated tree mixing nested and flat layouts."""
    root = tmp_path / "ui"
    write(root / "elements" / "Button" / "Button.tsx")
    write(root / "elements" / "Button" / "Button.stories.tsx")
    write(root / "components" / "Card.tsx", "import Button from '@/ui/elements/Button'\n")
    write(root / "components" / "Card.stories.tsx")
    write(root / "components" / "CardGroup.tsx")
    write(root / "components" / "README.md", "# not a component\n")
    write(root / "modules" / "Header" / "index.tsx")
    write(root / "icons" / "Star.tsx")
    write(tmp_path / "lib" / "utils.ts")
    return root


@pytest.fixture
def registry(ui_root: Path) -> ArtifactRegistry:
    return ArtifactRegistry.from_directory(ui_root)


def make_artifact(root: Path, name: str, kind: ArtifactKind = ArtifactKind.COMPOSITE) -> Artifact:
    return Artifact(name=name, kind=kind, path=str(root / "components" / name / f"{name}.tsx"))


def error_issue(path: str, message: str = "Type 'string' is not assignable to type 'number'.",
                source: SourceCheck = SourceCheck.TYPE, rule_id: Optional[str] = "TS2322") -> IssueRecord:
    return IssueRecord(
        file_path=path, line=1, column=1, message=message,
        rule_id=rule_id, severity=Severity.ERROR, source_check=source,
    )


def warning_issue(path: str, message: str = "Unexpected console statement.",
                  rule_id: Optional[str] = "no-console") -> IssueRecord:
    return IssueRecord(
        file_path=path, line=2, column=3, message=message,
        rule_id=rule_id, severity=Severity.WARNING, source_check=SourceCheck.LINT,
    )


# ── Checkers and check runners ────────────────────────────────────────────


class ScriptedChecker(BaseChecker):
    """Returns queued results in order; the last one repeats."""

    def __init__(self, *results: IssuesByFile, source: SourceCheck = SourceCheck.TYPE, error: Exception = None):
        super().__init__("fake-checker")
        self.source_check = source
        self.results = list(results) or [{}]
        self.error = error
        self.calls: list[tuple[Path, Path]] = []

    @property
    def name(self) -> str:
        return f"scripted-{self.source_check.value}"

    async def run(self, project_root: Path, target: Path) -> IssuesByFile:
        self.calls.append((project_root, target))
        if self.error is not None:
            raise self.error
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        return restrict(result, target)


class FakeProject:
    """In-memory stand-in for a generated tree plus its compiler.

    `broken` artifacts carry one type error; `warned` artifacts carry one lint warning.
    Repair fakes fix artifacts by removing them from `broken`.
    """

    def __init__(self, registry: ArtifactRegistry, broken=(), warned=()):
        self.registry = registry
        self.broken = set(broken)
        self.warned = set(warned)

    def type_issues(self, artifact: Artifact) -> list[IssueRecord]:
        if artifact.name in self.broken:
            return [error_issue(artifact.path, f"{artifact.name}: Property 'size' does not exist.")]
        return []

    def lint_issues(self, artifact: Artifact) -> list[IssueRecord]:
        if artifact.name in self.warned:
            return [warning_issue(artifact.path)]
        return []


class FakeCheckRunner:
    def __init__(self, project: FakeProject, error: Exception = None):
        self.project = project
        self.error = error
        self.comprehensive_checks = 0
        self.artifact_checks: list[str] = []

    async def run_checks(self, artifacts) -> CheckReport:
        self.comprehensive_checks += 1
        if self.error is not None:
            raise self.error
        report = CheckReport()
        for artifact in artifacts:
            if self.project.type_issues(artifact):
                report.type_issues[artifact.path] = self.project.type_issues(artifact)
            if self.project.lint_issues(artifact):
                report.lint_issues[artifact.path] = self.project.lint_issues(artifact)
        return report

    async def check_artifact(self, artifact: Artifact) -> list[IssueRecord]:
        self.artifact_checks.append(artifact.name)
        if self.error is not None:
            raise self.error
        return self.project.type_issues(artifact) + self.project.lint_issues(artifact)


# ── Capabilities ──────────────────────────────────────────────────────────


class FakeRepair(RepairCapability):
    """Fixes the artifacts named in `fixable`; writes without effect for the rest."""

    def __init__(self, project: FakeProject, fixable=(), writes: bool = True, error: Exception = None):
        self.project = project
        self.fixable = set(fixable)
        self.writes = writes
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def attempt_fix(self, artifact_path: str, issue_text: str) -> FixAttempt:
        name = self.project.registry.owner_of(artifact_path).name
        self.calls.append((name, issue_text))
        if self.error is not None:
            raise self.error
        if not self.writes:
            return FixAttempt(wrote=False, approach="nothing to change")
        if name in self.fixable:
            self.project.broken.discard(name)
            return FixAttempt(wrote=True, approach=f"fixed props of {name}")
        return FixAttempt(wrote=True, approach=f"retyped props of {name}")


class FakeReviewer(RepairCapability):
    def __init__(self, writes: bool = False, error: Exception = None):
        self.writes = writes
        self.error = error
        self.reviewed: list[str] = []

    async def attempt_fix(self, artifact_path: str, issue_text: str) -> FixAttempt:
        self.reviewed.append(Path(artifact_path).stem)
        if self.error is not None:
            raise self.error
        return FixAttempt(wrote=self.writes, approach="upgraded accessibility" if self.writes else "meets all quality standards")


class FakeHelp(HelpSearch):
    def __init__(self, advice: str = "Use React.ComponentProps<typeof Button> instead."):
        self.advice = advice
        self.calls: list[tuple[str, list[str]]] = []

    async def search(self, query: str, previous_attempts: list[str]) -> str:
        self.calls.append((query, previous_attempts))
        return self.advice


# ── Context ───────────────────────────────────────────────────────────────


def build_fake_context(
    registry: ArtifactRegistry,
    project: FakeProject,
    repair: RepairCapability,
    reviewer: Optional[RepairCapability] = None,
    runner: Optional[FakeCheckRunner] = None,
    max_attempts: int = 3,
    max_turns: int = 2,
    scope: QualityScope = QualityScope.FAILING_ON_RETRY,
) -> ValidationContext:
    runner = runner or FakeCheckRunner(project)
    return ValidationContext(
        artifact_root="/ui",
        registry=registry,
        check_runner=runner,
        coordinator=RepairCoordinator(registry, runner, repair, help_search=FakeHelp(), max_turns=max_turns),
        quality_pass=QualityPass(reviewer, runner) if reviewer is not None else None,
        max_attempts=max_attempts,
        quality_scope=scope,
    )


# ── Redis ─────────────────────────────────────────────────────────────────


class FakeRedis:
    """The handful of redis.asyncio commands RunStore uses."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.lists: dict[str, list[str]] = {}

    async def ping(self):
        return True

    async def setex(self, key, ttl, value):
        self.values[key] = value

    async def get(self, key):
        return self.values.get(key)

    async def lpush(self, key, value):
        self.lists.setdefault(key, []).insert(0, value)

    async def ltrim(self, key, start, end):
        self.lists[key] = self.lists.get(key, [])[start:end + 1]

    async def lrange(self, key, start, end):
        return self.lists.get(key, [])[start:end + 1]


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
