"""Base checker — abstract class implementing the Strategy Pattern.

Each checker wraps one external tool and turns its output into IssueRecords.
New checkers are added without modifying the runner.
"""

from abc import ABC, abstractmethod
import os
import shlex
from pathlib import Path
from typing import Optional

from uiforge.artifacts.models import normalize_path
from uiforge.checks.models import IssueRecord, IssuesByFile, Severity, SourceCheck
from uiforge.checks.process import CommandResult, run_command


class BaseChecker(ABC):
    """Abstract base for all checkers.

    Contract:
        - run() reads the artifact tree, never writes to it
        - run() returns issues keyed by absolute file path, restricted to `target`
        - run() raises ToolInvocationError when the tool itself cannot run
    """

    source_check: SourceCheck

    def __init__(self, command: str, timeout: float = 120):
        self.command = shlex.split(command)
        self.timeout = timeout

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for logging."""
        ...

    @abstractmethod
    async def run(self, project_root: Path, target: Path) -> IssuesByFile:
        """Check everything under `target` (a directory or a single file).

        Args:
            project_root: Directory holding tsconfig / eslint config
            target: Artifact tree root, or one artifact's owned root

        Returns:
            Issues grouped by absolute file path (empty if clean)
        """
        ...

    # ── Helper Methods ──

    async def _execute(self, args: list[str], cwd: Path) -> CommandResult:
        return await run_command(self.name, self.command + args, cwd, self.timeout)

    def _issue(
        self,
        file_path: str,
        line: int,
        column: int,
        message: str,
        severity: Severity = Severity.ERROR,
        rule_id: Optional[str] = None,
    ) -> IssueRecord:
        """Convenience method to create an IssueRecord for this checker."""
        return IssueRecord(
            file_path=file_path,
            line=line,
            column=column,
            message=message,
            rule_id=rule_id,
            severity=severity,
            source_check=self.source_check,
        )

    @staticmethod
    def _resolve(project_root: Path, file_path: str) -> str:
        if os.path.isabs(file_path):
            return normalize_path(file_path)
        return normalize_path(str(project_root / file_path))


def is_within(file_path: str, target: Path) -> bool:
    """Whether an absolute file path lies at or under `target`."""
    root = normalize_path(str(target))
    candidate = normalize_path(file_path)
    return candidate == root or candidate.startswith(root + os.sep)


def restrict(issues: IssuesByFile, target: Path) -> IssuesByFile:
    return {path: items for path, items in issues.items() if is_within(path, target)}
