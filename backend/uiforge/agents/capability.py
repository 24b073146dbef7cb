"""Narrow interfaces the validation loop depends on.

The coordinator and quality pass only know these two shapes; LLM-backed
agents, scripted fakes and human-in-the-loop tools all plug in behind them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FixAttempt:
    """`new_path` is where the source lives after a write; later turns use it."""

    wrote: bool
    new_path: Optional[str] = None
    approach: str = ""


class RepairCapability(ABC):
    """Something that can rewrite an artifact given its issues."""

    @abstractmethod
    async def attempt_fix(self, artifact_path: str, issue_text: str) -> FixAttempt:
        """Try to fix the artifact at `artifact_path`.

        Args:
            artifact_path: Absolute path of the artifact's main source file
            issue_text: Formatted issues, optionally followed by advice

        Returns:
            FixAttempt telling whether a file was written
        """
        ...


class HelpSearch(ABC):
    """Suggests a different approach when repairs keep failing the same way."""

    @abstractmethod
    async def search(self, query: str, previous_attempts: list[str]) -> str:
        ...
