"""Final validation report, handed off when the run ends.

Built from a ValidationOutcome. Lists every artifact still failing with its
issues and whether repair was ever attempted for it.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from uiforge.artifacts.models import ArtifactKind
from uiforge.artifacts.registry import relative_to_root
from uiforge.checks.models import IssueRecord
from uiforge.validation.models import ValidationOutcome


class RepairStatus(str, Enum):
    NOT_ATTEMPTED = "not_attempted"
    ATTEMPTED_STILL_FAILING = "attempted_still_failing"


class ArtifactEntry(BaseModel):
    """One failing artifact in the report."""

    name: str
    kind: ArtifactKind
    path: str
    error_count: int
    warning_count: int
    repair_status: RepairStatus
    issues: list[IssueRecord] = Field(default_factory=list)


class ValidationReport(BaseModel):
    """Complete validation report for one run."""

    passed: bool = Field(description="True if no artifact has an error")
    attempts_used: int = Field(description="Attempt number the run ended on")
    max_attempts: int
    summary: dict = Field(
        description="Counts across failing artifacts",
        default_factory=lambda: {"failing_artifacts": 0, "errors": 0, "warnings": 0},
    )
    artifacts: list[ArtifactEntry] = Field(default_factory=list)
    verdict: str = Field(default="", description="Human-readable verdict")

    @classmethod
    def build(cls, outcome: ValidationOutcome, max_attempts: int) -> "ValidationReport":
        repaired = set(outcome.repaired)
        entries = []
        for name in sorted(outcome.failures):
            record = outcome.failures[name]
            entries.append(ArtifactEntry(
                name=record.artifact_name,
                kind=record.artifact_kind,
                path=record.artifact_path,
                error_count=len(record.errors),
                warning_count=len(record.warnings),
                repair_status=(
                    RepairStatus.ATTEMPTED_STILL_FAILING if name in repaired
                    else RepairStatus.NOT_ATTEMPTED
                ),
                issues=list(record.issues),
            ))

        summary = {
            "failing_artifacts": len(entries),
            "errors": sum(e.error_count for e in entries),
            "warnings": sum(e.warning_count for e in entries),
        }

        if outcome.passed:
            verdict = f"PASS: all artifacts compile and lint cleanly (attempt {outcome.attempt}/{max_attempts})."
        elif outcome.attempt >= max_attempts:
            verdict = (
                f"FAIL: {summary['failing_artifacts']} artifact(s) still failing after "
                f"{outcome.attempt} attempt(s). Manual repair required."
            )
        else:
            verdict = f"FAIL: {summary['failing_artifacts']} artifact(s) failing at attempt {outcome.attempt}."

        return cls(
            passed=outcome.passed,
            attempts_used=outcome.attempt,
            max_attempts=max_attempts,
            summary=summary,
            artifacts=entries,
            verdict=verdict,
        )


def render_markdown(report: ValidationReport, artifact_root: Optional[str] = None) -> str:
    """Render the report as markdown. Paths are shown relative to `artifact_root` if given."""
    lines: list[str] = []
    lines.append("# Validation Report\n")
    lines.append(
        f"**Status**: {'PASSED' if report.passed else 'FAILED'} | "
        f"**Attempts**: {report.attempts_used}/{report.max_attempts}\n"
    )
    lines.append(f"> {report.verdict}\n")

    if not report.artifacts:
        return "\n".join(lines)

    lines.append("## Failing Artifacts\n")
    lines.append("| Artifact | Kind | Errors | Warnings | Repair |")
    lines.append("|----------|------|--------|----------|--------|")
    for entry in report.artifacts:
        lines.append(
            f"| {entry.name} | {entry.kind.value} | {entry.error_count} | "
            f"{entry.warning_count} | {entry.repair_status.value} |"
        )
    lines.append("")

    for entry in report.artifacts:
        path = relative_to_root(entry.path, artifact_root) if artifact_root else entry.path
        lines.append(f"### {entry.name}\n")
        lines.append(f"`{path}`\n")
        for issue in entry.issues:
            rule = f" `{issue.rule_id}`" if issue.rule_id else ""
            lines.append(
                f"- **{issue.severity.value.upper()}** ({issue.source_check.value}) "
                f"line {issue.line}:{issue.column}{rule}: {issue.message}"
            )
        lines.append("")

    return "\n".join(lines)
