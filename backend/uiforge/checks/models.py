"""Check models: issue records, per-artifact failure records, check reports.

All records are immutable once produced by a check pass: the same
diagnostics always aggregate into the same failure records.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from uiforge.artifacts.models import ArtifactKind


class Severity(str, Enum):
    """Issue severity as reported by the checking tools."""

    ERROR = "error"      # Blocks the run
    WARNING = "warning"  # Reported, never blocking on its own


class SourceCheck(str, Enum):
    """Which pass produced an issue."""

    TYPE = "type"
    LINT = "lint"


class IssueRecord(BaseModel):
    """A single reported problem in one file."""

    model_config = ConfigDict(frozen=True)

    file_path: str
    line: int = 0
    column: int = 0
    message: str
    rule_id: Optional[str] = None
    severity: Severity = Severity.ERROR
    source_check: SourceCheck

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def format(self) -> str:
        """One-line rendering used in repair prompts and reports."""
        rule = f" ({self.rule_id})" if self.rule_id else ""
        return (
            f"{self.file_path}:{self.line}:{self.column} "
            f"[{self.source_check.value} {self.severity.value.upper()}] {self.message}{rule}"
        )


def format_issues(issues: list[IssueRecord]) -> str:
    return "\n".join(issue.format() for issue in issues)


class FailureRecord(BaseModel):
    """All issues of one artifact from the most recent comprehensive check."""

    model_config = ConfigDict(frozen=True)

    artifact_name: str
    artifact_path: str
    artifact_kind: ArtifactKind
    issues: tuple[IssueRecord, ...] = ()

    @property
    def errors(self) -> list[IssueRecord]:
        return [i for i in self.issues if i.is_error]

    @property
    def warnings(self) -> list[IssueRecord]:
        return [i for i in self.issues if not i.is_error]

    def issue_text(self) -> str:
        """Issue list as handed to a repair capability."""
        return format_issues(list(self.issues))


IssuesByFile = dict[str, list[IssueRecord]]


class CheckReport(BaseModel):
    """Per-file issues from both passes of one comprehensive check."""

    type_issues: IssuesByFile = Field(default_factory=dict)
    lint_issues: IssuesByFile = Field(default_factory=dict)

    @property
    def total_issues(self) -> int:
        return sum(len(v) for v in self.type_issues.values()) + sum(
            len(v) for v in self.lint_issues.values()
        )
