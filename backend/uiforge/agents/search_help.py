"""Search Help Agent: suggests alternative approaches when repair keeps failing."""

from typing import Optional

from uiforge.agents.base import BaseAgent
from uiforge.agents.capability import HelpSearch
from uiforge.config import get_settings

SYSTEM_PROMPT = """You are a senior React/TypeScript developer.
Provide practical, working solutions.
Consider Next.js 13+ app router patterns.
Ensure TypeScript types are correct.
Follow React best practices."""


class SearchHelpAgent(BaseAgent, HelpSearch):

    def __init__(self, model_name: Optional[str] = None, event_callback=None):
        super().__init__(
            name="search_help",
            role="Search Help",
            model_name=model_name or get_settings().SEARCH_HELP_MODEL,
            temperature=0.1,
            max_output_tokens=2048,
            event_callback=event_callback,
        )

    def get_system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def build_user_message(self, context: dict) -> str:
        previous = context.get("previous_attempts") or []
        attempts = ""
        if previous:
            attempts = "\nPrevious attempts that failed:\n" + "\n".join(f"- {a}" for a in previous)

        return (
            "I need help with this issue in a React/Next.js TypeScript project:\n\n"
            f"{context['query']}\n"
            f"{attempts}\n\n"
            "Please provide:\n"
            "1. Understanding of the issue\n"
            "2. Multiple solution approaches (at least 3)\n"
            "3. Code examples for each approach\n"
            "4. Which approach to try first and why\n\n"
            "Be specific and practical. Avoid repeating the approaches that already failed."
        )

    def parse_response(self, raw_response: str) -> dict:
        return {"help": raw_response.strip()}

    def _generate_summary(self, parsed_output: dict) -> str:
        return "Suggested alternative approaches."

    async def search(self, query: str, previous_attempts: list[str]) -> str:
        result = await self.run({
            "artifact_name": "",
            "query": query,
            "previous_attempts": previous_attempts,
        })
        return result["output"]["help"]
