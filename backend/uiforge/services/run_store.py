"""Run store: Redis-backed state for validation runs."""

import json
from typing import Optional

import structlog

logger = structlog.get_logger()

# Run TTL: 24 hours
RUN_TTL = 86400

RECENT_LIMIT = 100


class RunNotFoundError(KeyError):
    pass


class RunStore:
    """Stores one JSON document per run plus a capped list of recent run ids."""

    def __init__(self, redis_client, prefix: str = "uiforge:run:"):
        self.redis = redis_client
        self._prefix = prefix

    def _key(self, run_id: str) -> str:
        return f"{self._prefix}{run_id}"

    @property
    def _recent_key(self) -> str:
        return f"{self._prefix}recent"

    async def create(self, run_id: str, record: dict) -> None:
        await self.redis.setex(self._key(run_id), RUN_TTL, json.dumps(record, default=str))
        await self.redis.lpush(self._recent_key, run_id)
        await self.redis.ltrim(self._recent_key, 0, RECENT_LIMIT - 1)
        logger.info("run_created", run_id=run_id)

    async def get(self, run_id: str) -> Optional[dict]:
        data = await self.redis.get(self._key(run_id))
        if data is None:
            return None
        return json.loads(data)

    async def update(self, run_id: str, updates: dict) -> dict:
        """Merge `updates` into the stored record.

        Raises:
            RunNotFoundError: the run expired or never existed.
        """
        current = await self.get(run_id)
        if current is None:
            raise RunNotFoundError(run_id)

        current.update(updates)
        await self.redis.setex(self._key(run_id), RUN_TTL, json.dumps(current, default=str))
        return current

    async def list_recent(self, limit: int = 20) -> list[str]:
        ids = await self.redis.lrange(self._recent_key, 0, limit - 1)
        return [i.decode() if isinstance(i, bytes) else i for i in ids]
