"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from proseflow.core.config import AppSettings
from proseflow.core.protocols import IHistoryStore, IUsageStore
from proseflow.persistence.dynamodb_backend import DynamoDBHistoryStore
from proseflow.persistence.memory_backend import MemoryHistoryStore, MemoryUsageStore
from proseflow.persistence.redis_backend import RedisUsageStore


def create_persistence(settings: AppSettings | None = None) -> tuple[IHistoryStore, IUsageStore]:
    """Create wired-up persistence backends from application settings.

    Returns:
        Tuple of (history_store, usage_store).
    """
    if settings is None:
        settings = AppSettings()

    history_store: IHistoryStore
    if settings.history_backend == "dynamodb":
        history_store = DynamoDBHistoryStore(
            table_suffix=settings.dynamodb.table_suffix,
            region=settings.dynamodb.region,
            endpoint_url=settings.dynamodb.endpoint_url,
        )
    else:
        history_store = MemoryHistoryStore()

    usage_store: IUsageStore
    if settings.usage_backend == "redis":
        usage_store = RedisUsageStore(
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
        )
    else:
        usage_store = MemoryUsageStore()

    return history_store, usage_store
