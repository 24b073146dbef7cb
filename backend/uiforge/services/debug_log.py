"""Transcript logging for agent exchanges.

When VALIDATION_DEBUG_LOGS is on, every prompt/response pair is written to
`<VALIDATION_LOG_DIR>/<agent>_<artifact>_attempt<N>_<timestamp>.txt`.
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path

import structlog

from uiforge.config import get_settings

logger = structlog.get_logger()

RULE = "=" * 80
SUB_RULE = "-" * 80


def format_transcript(
    agent: str,
    artifact: str,
    system_prompt: str,
    user_message: str,
    response: str,
    attempt: int,
    timestamp: datetime,
) -> str:
    return "\n".join([
        RULE,
        "VALIDATION DEBUG LOG",
        RULE,
        f"Agent: {agent}",
        f"Artifact: {artifact}",
        f"Attempt: {attempt}",
        f"Timestamp: {timestamp.isoformat()}",
        RULE,
        "",
        "SYSTEM PROMPT:",
        SUB_RULE,
        system_prompt,
        "",
        "USER PROMPT:",
        SUB_RULE,
        user_message,
        "",
        "RESPONSE:",
        SUB_RULE,
        response,
        RULE,
        "",
    ])


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


async def log_exchange(
    agent: str,
    artifact: str,
    system_prompt: str,
    user_message: str,
    response: str,
    attempt: int = 1,
) -> None:
    """Save one exchange to disk. No-op unless transcripts are enabled.

    A failed write is logged and otherwise ignored: transcripts never affect a run.
    """
    settings = get_settings()
    if not settings.VALIDATION_DEBUG_LOGS:
        return

    now = datetime.now(timezone.utc)
    stamp = now.strftime("%Y%m%dT%H%M%S%f")
    path = Path(settings.VALIDATION_LOG_DIR) / f"{agent}_{artifact or 'run'}_attempt{attempt}_{stamp}.txt"
    content = format_transcript(agent, artifact, system_prompt, user_message, response, attempt, now)

    try:
        await asyncio.to_thread(_write, path, content)
    except OSError as e:
        logger.warning("debug_log_write_failed", path=str(path), error=str(e))
        return
    logger.debug("debug_log_saved", path=str(path))
