"""Redis backend implementing IUsageStore."""

from __future__ import annotations

from typing import Optional

import redis

from proseflow.core.exceptions import UsageStoreError
from proseflow.models.history import UsageStatistic


def usage_key(year: int, month: int) -> str:
    return f"usage:{year:04d}:{month:02d}"


class RedisUsageStore:
    """Production IUsageStore keeping one hash per calendar month."""

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0) -> None:
        self._host = host
        self._port = port
        self._db = db
        self._client = redis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )

    def get(self, year: int, month: int) -> Optional[UsageStatistic]:
        key = usage_key(year, month)
        try:
            data = self._client.hgetall(key)
        except Exception as exc:
            raise UsageStoreError(f"Redis HGETALL failed for key={key!r}: {exc}") from exc
        if not data:
            return None
        return UsageStatistic(
            year=year,
            month=month,
            prompt_tokens=int(data.get("prompt_tokens", 0)),
            completion_tokens=int(data.get("completion_tokens", 0)),
        )

    def save(self, statistic: UsageStatistic) -> None:
        key = usage_key(statistic.year, statistic.month)
        try:
            self._client.hset(
                key,
                mapping={
                    "prompt_tokens": statistic.prompt_tokens,
                    "completion_tokens": statistic.completion_tokens,
                },
            )
        except Exception as exc:
            raise UsageStoreError(f"Redis HSET failed for key={key!r}: {exc}") from exc
