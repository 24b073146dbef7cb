"""Tests for the final validation report."""

from __future__ import annotations

from pathlib import Path

from conftest import error_issue, warning_issue
from uiforge.artifacts.models import ArtifactKind
from uiforge.checks.models import FailureRecord
from uiforge.validation.models import ValidationOutcome
from uiforge.validation.report import RepairStatus, ValidationReport, render_markdown


def record(root: Path, name: str, warnings: int = 0) -> FailureRecord:
    path = str(root / "components" / f"{name}.tsx")
    issues = [error_issue(path)] + [warning_issue(path) for _ in range(warnings)]
    return FailureRecord(
        artifact_name=name,
        artifact_path=path,
        artifact_kind=ArtifactKind.COMPOSITE,
        issues=tuple(issues),
    )


class TestValidationReport:
    def test_passed_report(self):
        report = ValidationReport.build(ValidationOutcome(passed=True, attempt=2), max_attempts=3)
        assert report.passed
        assert report.artifacts == []
        assert report.verdict.startswith("PASS")
        assert "2/3" in report.verdict

    def test_repair_status_distinguishes_attempted(self, tmp_path: Path):
        outcome = ValidationOutcome(
            passed=False,
            attempt=3,
            failures={"Card": record(tmp_path, "Card", warnings=2), "Badge": record(tmp_path, "Badge")},
            repaired=["Card"],
        )
        report = ValidationReport.build(outcome, max_attempts=3)

        assert [e.name for e in report.artifacts] == ["Badge", "Card"]
        statuses = {e.name: e.repair_status for e in report.artifacts}
        assert statuses == {
            "Badge": RepairStatus.NOT_ATTEMPTED,
            "Card": RepairStatus.ATTEMPTED_STILL_FAILING,
        }
        assert report.summary == {"failing_artifacts": 2, "errors": 2, "warnings": 2}
        assert "Manual repair required" in report.verdict

    def test_serializes_to_json(self, tmp_path: Path):
        outcome = ValidationOutcome(passed=False, attempt=3, failures={"Card": record(tmp_path, "Card")})
        data = ValidationReport.build(outcome, max_attempts=3).model_dump(mode="json")
        assert data["artifacts"][0]["repair_status"] == "not_attempted"
        assert data["artifacts"][0]["issues"][0]["source_check"] == "type"


class TestRenderMarkdown:
    def test_lists_failing_artifacts_and_issues(self, tmp_path: Path):
        outcome = ValidationOutcome(
            passed=False, attempt=3, failures={"Card": record(tmp_path, "Card", warnings=1)}, repaired=["Card"],
        )
        text = render_markdown(ValidationReport.build(outcome, max_attempts=3), artifact_root=str(tmp_path))

        assert "**Status**: FAILED" in text
        assert "| Card | composite | 1 | 1 | attempted_still_failing |" in text
        assert f"`{Path('components') / 'Card.tsx'}`" in text
        assert "**ERROR** (type) line 1:1 `TS2322`" in text
        assert "**WARNING** (lint)" in text

    def test_passed_report_has_no_table(self):
        text = render_markdown(ValidationReport.build(ValidationOutcome(passed=True, attempt=1), max_attempts=3))
        assert "**Status**: PASSED" in text
        assert "Failing Artifacts" not in text
