"""Repair Agent — rewrites a failing artifact so it type checks and lints cleanly."""

import asyncio
from pathlib import Path
from typing import Optional

import structlog

from uiforge.agents.base import BaseAgent
from uiforge.agents.capability import FixAttempt, RepairCapability
from uiforge.artifacts.registry import ArtifactRegistry
from uiforge.config import get_settings

logger = structlog.get_logger()

# Dependency sources are context only; keep the prompt bounded
MAX_DEPENDENCY_CHARS = 6000

SYSTEM_PROMPT = """You are a senior React/TypeScript engineer fixing generated UI components.

You receive one component file, the compiler and linter issues reported for it, and
the source of the registry components it imports. Fix EVERY reported error while
keeping the component's public props, default export and visual behavior intact.

Rules:
- Only change what is needed to resolve the issues; do not restyle or reorganize.
- Imports of other registry components use the '@/ui/<kind-dir>/<Name>' alias. Match
  the props those components actually declare; never invent props.
- No 'any', no '@ts-ignore', no 'eslint-disable' comments.
- Keep the file a single default-exported component with an exported props interface.

ALWAYS respond with a valid JSON object (no markdown, no explanation outside JSON):

{
  "content": "the COMPLETE corrected file content",
  "approach": "one sentence describing what you changed"
}

If you cannot improve the file, return the original content unchanged."""


def _read(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def _write(path: str, content: str) -> None:
    Path(path).write_text(content, encoding="utf-8")


class FileRewritingAgent(BaseAgent, RepairCapability):
    """An agent whose output is the complete new content of one artifact file."""

    def __init__(self, registry: ArtifactRegistry, **kwargs):
        kwargs.setdefault("json_mode", True)
        super().__init__(**kwargs)
        self.registry = registry
        self._turns: dict[str, int] = {}

    def parse_response(self, raw_response: str) -> dict:
        data = self._safe_parse_json(raw_response)
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        return {
            "content": data.get("content") or "",
            "approach": (data.get("approach") or "").strip(),
        }

    def _generate_summary(self, parsed_output: dict) -> str:
        return parsed_output.get("approach") or f"{self.role} returned no changes."

    async def attempt_fix(self, artifact_path: str, issue_text: str) -> FixAttempt:
        artifact = self.registry.owner_of(artifact_path)
        name = artifact.name if artifact else Path(artifact_path).stem
        self._turns[name] = self._turns.get(name, 0) + 1

        source = await asyncio.to_thread(_read, artifact_path)
        dependencies = await self._dependency_sources(artifact, source) if artifact else {}

        result = await self.run({
            "artifact_name": name,
            "artifact_path": artifact_path,
            "source": source,
            "issue_text": issue_text,
            "dependencies": dependencies,
            "turn": self._turns[name],
        })
        output = result["output"]
        content = output["content"]

        if not content.strip() or content.strip() == source.strip():
            logger.info("agent_left_file_unchanged", agent=self.name, artifact=name)
            return FixAttempt(wrote=False, approach=output["approach"])

        if not content.endswith("\n"):
            content += "\n"
        await asyncio.to_thread(_write, artifact_path, content)
        logger.info("artifact_rewritten", agent=self.name, artifact=name, chars=len(content))
        return FixAttempt(wrote=True, new_path=artifact_path, approach=output["approach"])

    async def _dependency_sources(self, artifact, source: str) -> dict[str, str]:
        sources: dict[str, str] = {}
        budget = MAX_DEPENDENCY_CHARS
        for dependency in self.registry.dependencies_of(artifact, source):
            if budget <= 0:
                break
            try:
                text = await asyncio.to_thread(_read, dependency.path)
            except OSError as e:
                logger.warning("dependency_read_failed", dependency=dependency.name, error=str(e))
                continue
            sources[dependency.import_path or dependency.name] = text[:budget]
            budget -= len(text)
        return sources

    @staticmethod
    def _format_dependencies(dependencies: dict[str, str]) -> str:
        if not dependencies:
            return ""
        blocks = [f"### {import_path}\n```tsx\n{text}\n```" for import_path, text in dependencies.items()]
        return "\n\n## Imported Registry Components\n\n" + "\n\n".join(blocks)


class RepairAgent(FileRewritingAgent):

    def __init__(self, registry: ArtifactRegistry, model_name: Optional[str] = None, event_callback=None):
        super().__init__(
            registry,
            name="repair",
            role="Repair Agent",
            model_name=model_name or get_settings().REPAIR_MODEL,
            temperature=0.1,
            event_callback=event_callback,
        )

    def get_system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def build_user_message(self, context: dict) -> str:
        return (
            f"## Component\n{context['artifact_name']} ({context['artifact_path']})\n\n"
            f"## Reported Issues\n{context['issue_text']}\n\n"
            f"## Current Source\n```tsx\n{context['source']}\n```"
            f"{self._format_dependencies(context.get('dependencies', {}))}\n\n"
            f"This is fix attempt {context.get('turn', 1)}. Return the JSON object now."
        )
