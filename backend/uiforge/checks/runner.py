"""Check runner — runs the type and lint checkers and scopes their output to artifacts.

Usage:
    runner = CheckRunner.from_settings(project_root, artifact_root)
    report = await runner.run_checks(registry.list_artifacts())
    issues = await runner.check_artifact(artifact)
"""

import asyncio
import time
from pathlib import Path
from typing import Iterable, Optional

import structlog

from uiforge.artifacts.models import Artifact
from uiforge.checks.base import BaseChecker
from uiforge.checks.eslint_checker import ESLintChecker
from uiforge.checks.models import CheckReport, IssueRecord, IssuesByFile
from uiforge.checks.typescript_checker import TypeScriptChecker
from uiforge.config import get_settings

logger = structlog.get_logger()


class CheckRunner:
    """Comprehensive and single-artifact checks over a generated artifact tree.

    Both operations only read the tree. A ToolInvocationError from either
    checker propagates unchanged.
    """

    def __init__(
        self,
        project_root: str | Path,
        artifact_root: str | Path,
        type_checker: Optional[BaseChecker] = None,
        lint_checker: Optional[BaseChecker] = None,
    ):
        settings = get_settings()
        self.project_root = Path(project_root)
        self.artifact_root = Path(artifact_root)
        self.type_checker = type_checker or TypeScriptChecker(
            settings.TYPECHECK_COMMAND, timeout=settings.CHECK_TIMEOUT_SECONDS
        )
        self.lint_checker = lint_checker or ESLintChecker(
            settings.LINT_COMMAND,
            timeout=settings.CHECK_TIMEOUT_SECONDS,
            extensions=settings.LINT_EXTENSIONS,
        )

    async def run_checks(self, artifacts: Iterable[Artifact]) -> CheckReport:
        """Type and lint check the whole artifact tree.

        Only files owned by one of `artifacts` are kept; everything else in
        the tree (scaffolding, shared config) is dropped.
        """
        artifacts = list(artifacts)
        start_time = time.perf_counter()

        type_issues, lint_issues = await asyncio.gather(
            self.type_checker.run(self.project_root, self.artifact_root),
            self.lint_checker.run(self.project_root, self.artifact_root),
        )

        report = CheckReport(
            type_issues=_owned_only(type_issues, artifacts),
            lint_issues=_owned_only(lint_issues, artifacts),
        )

        logger.info(
            "comprehensive_check_complete",
            artifacts=len(artifacts),
            type_files=len(report.type_issues),
            lint_files=len(report.lint_issues),
            total_issues=report.total_issues,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return report

    async def check_artifact(self, artifact: Artifact) -> list[IssueRecord]:
        """Re-check one artifact: type issues first, then lint issues.

        Both checkers are pointed at the artifact's directory and the result
        is narrowed to the files the artifact owns.
        """
        start_time = time.perf_counter()
        target = Path(artifact.directory)

        type_issues, lint_issues = await asyncio.gather(
            self.type_checker.run(self.project_root, target),
            self.lint_checker.run(self.project_root, target),
        )

        issues = _flatten(_owned_only(type_issues, [artifact])) + _flatten(
            _owned_only(lint_issues, [artifact])
        )

        logger.info(
            "artifact_check_complete",
            artifact=artifact.name,
            errors=sum(1 for i in issues if i.is_error),
            warnings=sum(1 for i in issues if not i.is_error),
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return issues


def _owned_only(issues: IssuesByFile, artifacts: list[Artifact]) -> IssuesByFile:
    return {
        path: items
        for path, items in issues.items()
        if items and any(a.owns(path) for a in artifacts)
    }


def _flatten(issues: IssuesByFile) -> list[IssueRecord]:
    return [issue for path in sorted(issues) for issue in issues[path]]
