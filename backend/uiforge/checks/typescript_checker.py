"""TypeScript checker: `tsc --noEmit` over the whole project, parsed per file.

tsc cannot check a single file against the project's tsconfig, so both the
comprehensive check and the single-artifact re-check compile the project and
filter the diagnostics to the requested target.
"""

import re
from pathlib import Path

import structlog

from uiforge.checks.base import BaseChecker, restrict
from uiforge.checks.models import IssueRecord, IssuesByFile, Severity, SourceCheck
from uiforge.errors import ToolInvocationError

logger = structlog.get_logger()

# ui/elements/Button/Button.tsx(12,5): error TS2322: Type 'string' is not assignable ...
DIAGNOSTIC_LINE = re.compile(
    r"^(?P<file>[^\s(][^(]*?)\((?P<line>\d+),(?P<column>\d+)\):\s+"
    r"(?P<severity>error|warning)\s+(?P<code>TS\d+):\s*(?P<message>.*)$"
)


def parse_tsc_output(output: str, project_root: Path) -> IssuesByFile:
    """Parse line-oriented tsc output into issues grouped by absolute file path.

    Indented lines following a diagnostic (type elaboration) are appended to
    that diagnostic's message. Lines that belong to no file, such as the
    trailing "Found N errors" summary, are ignored.
    """
    records: dict[str, list[dict]] = {}
    current = None  # (path, index) of the diagnostic being extended

    for raw_line in output.splitlines():
        line = raw_line.rstrip()
        match = DIAGNOSTIC_LINE.match(line)
        if match:
            path = BaseChecker._resolve(project_root, match.group("file").strip())
            records.setdefault(path, []).append({
                "file_path": path,
                "line": int(match.group("line")),
                "column": int(match.group("column")),
                "message": match.group("message").strip(),
                "rule_id": match.group("code"),
                "severity": Severity.ERROR if match.group("severity") == "error" else Severity.WARNING,
            })
            current = (path, len(records[path]) - 1)
            continue

        if current and line and raw_line[:1].isspace():
            path, index = current
            records[path][index]["message"] += "\n" + line.strip()
            continue

        current = None

    return {
        path: [IssueRecord(source_check=SourceCheck.TYPE, **fields) for fields in items]
        for path, items in records.items()
    }


class TypeScriptChecker(BaseChecker):
    """Runs the TypeScript compiler in no-emit mode."""

    source_check = SourceCheck.TYPE

    @property
    def name(self) -> str:
        return "typescript"

    async def run(self, project_root: Path, target: Path) -> IssuesByFile:
        result = await self._execute([], cwd=project_root)

        if result.returncode == 0:
            logger.info("typescript_check_clean", target=str(target))
            return {}

        output = result.output
        parsed = parse_tsc_output(output, project_root)
        if not parsed:
            # Non-zero exit without a single file diagnostic: config or toolchain failure
            raise ToolInvocationError(
                self.name,
                f"exited with code {result.returncode} without parseable diagnostics",
                output=output[:2000],
            )

        restricted = restrict(parsed, target)
        logger.info(
            "typescript_check_complete",
            target=str(target),
            files_with_issues=len(restricted),
            filtered_out=len(parsed) - len(restricted),
        )
        return restricted
