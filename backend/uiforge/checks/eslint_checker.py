"""ESLint checker: lints a target with the JSON formatter."""

import json
from pathlib import Path

import structlog

from uiforge.artifacts.models import normalize_path
from uiforge.checks.base import BaseChecker, restrict
from uiforge.checks.models import IssueRecord, IssuesByFile, Severity, SourceCheck
from uiforge.errors import ToolInvocationError

logger = structlog.get_logger()

# ESLint exit codes: 0 clean, 1 lint problems found, 2+ configuration or crash
LINT_PROBLEMS_EXIT = 1

ESLINT_SEVERITIES = {
    2: Severity.ERROR,
    1: Severity.WARNING,
}


def parse_eslint_output(text: str) -> IssuesByFile:
    """Parse `eslint --format json` output into issues grouped by file.

    Raises:
        ValueError: output is not the JSON array ESLint produces.
    """
    payload = json.loads(text)
    if not isinstance(payload, list):
        raise ValueError("expected a JSON array of file results")

    issues: IssuesByFile = {}
    for file_result in payload:
        file_path = normalize_path(file_result.get("filePath", ""))
        for message in file_result.get("messages", []):
            severity = ESLINT_SEVERITIES.get(message.get("severity"), Severity.WARNING)
            # Parser errors carry a null ruleId and are always fatal for the file
            if message.get("fatal"):
                severity = Severity.ERROR
            issues.setdefault(file_path, []).append(
                IssueRecord(
                    file_path=file_path,
                    line=message.get("line") or 0,
                    column=message.get("column") or 0,
                    message=message.get("message", "").strip(),
                    rule_id=message.get("ruleId"),
                    severity=severity,
                    source_check=SourceCheck.LINT,
                )
            )
    return issues


class ESLintChecker(BaseChecker):
    """Runs ESLint over the target with the project's configuration."""

    source_check = SourceCheck.LINT

    def __init__(self, command: str, timeout: float = 120, extensions: str = ".ts,.tsx"):
        super().__init__(command, timeout)
        self.extensions = extensions

    @property
    def name(self) -> str:
        return "eslint"

    async def run(self, project_root: Path, target: Path) -> IssuesByFile:
        args = [str(target)]
        if self.extensions:
            args += ["--ext", self.extensions]
        args += ["--format", "json"]

        result = await self._execute(args, cwd=project_root)

        if result.returncode > LINT_PROBLEMS_EXIT:
            raise ToolInvocationError(
                self.name,
                f"exited with code {result.returncode}",
                output=(result.stderr or result.stdout)[:2000],
            )

        if not result.stdout.strip():
            if result.returncode == 0:
                return {}
            raise ToolInvocationError(self.name, "reported problems but produced no output")

        try:
            parsed = parse_eslint_output(result.stdout)
        except ValueError as e:
            raise ToolInvocationError(
                self.name, f"unparseable output: {e}", output=result.stdout[:2000]
            ) from e

        restricted = restrict(parsed, target)
        logger.info(
            "eslint_check_complete",
            target=str(target),
            files_with_issues=len(restricted),
        )
        return restricted
