"""LLM-backed agent base: prompt assembly, retried model calls, usage accounting.

Subclasses supply the system prompt, the user message and a parser. `run()`
wraps one exchange with progress events, a transcript entry and a log line.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional
import json
import re
import time

import structlog
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from uiforge.config import get_settings
from uiforge.models.events import AgentStartedEvent, AgentCompletedEvent
from uiforge.services.debug_log import log_exchange

logger = structlog.get_logger()

# USD per 1K tokens; unknown models fall back to DEFAULT_COST
MODEL_COSTS = {
    "gpt-4o": {"input": 0.0025, "output": 0.01},
    "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
}
DEFAULT_COST = {"input": 0.003, "output": 0.015}

LLM_MAX_CALLS = 3

_FENCE_OPEN = re.compile(r"^```[\w-]*\s*")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def _unfence(text: str) -> str:
    cleaned = _FENCE_OPEN.sub("", text.strip(), count=1)
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def _first_object(text: str) -> Optional[dict]:
    """First decodable JSON object embedded anywhere in `text`."""
    decoder = json.JSONDecoder()
    for match in re.finditer(r"\{", text):
        candidate = _TRAILING_COMMA.sub(r"\1", text[match.start():])
        try:
            value, _ = decoder.raw_decode(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value
    return None


def parse_json_reply(text: str, agent: str = "") -> dict:
    """Decode a model reply that should be a JSON object.

    Tolerates markdown fences, trailing commas and prose around the object.

    Raises:
        json.JSONDecodeError: no object could be recovered.
    """
    cleaned = _unfence(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("json_reply_not_strict", agent=agent, error=str(e))

    try:
        value = json.loads(_TRAILING_COMMA.sub(r"\1", cleaned))
        logger.info("json_reply_recovered", agent=agent, method="trailing_commas")
        return value
    except json.JSONDecodeError:
        pass

    value = _first_object(cleaned)
    if value is not None:
        logger.info("json_reply_recovered", agent=agent, method="embedded_object")
        return value

    logger.error("json_reply_unrecoverable", agent=agent, length=len(text), preview=cleaned[:500])
    return json.loads(cleaned)


class BaseAgent(ABC):
    """One role played by a chat model."""

    def __init__(
        self,
        name: str,
        role: str,
        model_name: Optional[str] = None,
        temperature: float = 0.2,
        max_output_tokens: int = 8192,
        json_mode: bool = False,
        event_callback=None,
    ):
        self.name = name
        self.role = role
        self.model_name = model_name or get_settings().REPAIR_MODEL
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.json_mode = json_mode
        self.event_callback = event_callback
        self.total_cost = 0.0
        self._llm = None

    @property
    def llm(self) -> ChatOpenAI:
        if self._llm is None:
            options = {}
            if self.json_mode:
                options["model_kwargs"] = {"response_format": {"type": "json_object"}}
            self._llm = ChatOpenAI(
                model=self.model_name,
                api_key=get_settings().OPENAI_API_KEY,
                temperature=self.temperature,
                max_tokens=self.max_output_tokens,
                **options,
            )
        return self._llm

    @abstractmethod
    def get_system_prompt(self) -> str:
        ...

    @abstractmethod
    def build_user_message(self, context: dict) -> str:
        ...

    @abstractmethod
    def parse_response(self, raw_response: str) -> dict:
        """Turn the raw reply into this agent's output dict."""
        ...

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        rates = MODEL_COSTS.get(self.model_name, DEFAULT_COST)
        return (input_tokens * rates["input"] + output_tokens * rates["output"]) / 1000

    @retry(
        stop=stop_after_attempt(LLM_MAX_CALLS),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        # Bad requests will not get better on a second try
        retry=retry_if_not_exception_type((ValueError, TypeError)),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "llm_retry",
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep,
            error=str(retry_state.outcome.exception()),
        ),
    )
    async def _call_llm(self, system_prompt: str, user_message: str) -> dict:
        """One chat completion. Returns the reply text with token usage and cost."""
        reply = await self.llm.ainvoke([
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_message),
        ])
        usage = getattr(reply, "usage_metadata", None) or {}
        input_tokens = usage.get("input_tokens", 0)
        output_tokens = usage.get("output_tokens", 0)
        return {
            "content": reply.content,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "cost": self.estimate_cost(input_tokens, output_tokens),
        }

    async def _emit(self, event) -> None:
        if self.event_callback:
            await self.event_callback(event.model_dump())

    async def run(self, context: dict) -> dict:
        """Run one exchange for `context["artifact_name"]`.

        Returns:
            Dict with the parsed output, the raw reply and usage metadata
        """
        artifact = context.get("artifact_name", "")
        started = time.monotonic()
        await self._emit(AgentStartedEvent(
            agent=self.name,
            artifact=artifact,
            message=f"{self.role} is working on {artifact or 'the run'}...",
        ))

        system_prompt = self.get_system_prompt()
        user_message = self.build_user_message(context)
        try:
            reply = await self._call_llm(system_prompt, user_message)
            parsed = self.parse_response(reply["content"])
        except Exception as e:
            logger.error(
                "agent_failed",
                agent=self.name,
                artifact=artifact,
                error=str(e),
                duration_seconds=round(time.monotonic() - started, 2),
            )
            raise

        duration = round(time.monotonic() - started, 2)
        cost = round(reply["cost"], 4)
        self.total_cost += reply["cost"]

        await log_exchange(
            self.name, artifact, system_prompt, user_message, reply["content"],
            attempt=context.get("turn", 1),
        )
        await self._emit(AgentCompletedEvent(
            agent=self.name,
            artifact=artifact,
            summary=self._generate_summary(parsed),
            duration_seconds=duration,
            cost_usd=cost,
        ))

        metadata = {
            "agent": self.name,
            "model": self.model_name,
            "duration_seconds": duration,
            "input_tokens": reply["input_tokens"],
            "output_tokens": reply["output_tokens"],
            "cost_usd": cost,
        }
        logger.info("agent_completed", artifact=artifact, **metadata)
        metadata["timestamp"] = datetime.now(timezone.utc).isoformat()

        return {"output": parsed, "raw_response": reply["content"], "metadata": metadata}

    def _generate_summary(self, parsed_output: dict) -> str:
        return f"{self.role} finished."

    def _safe_parse_json(self, text: str) -> dict:
        return parse_json_reply(text, agent=self.name)
