"""Tests for the in-memory stores and backend selection."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from proseflow.core.config import AppSettings
from proseflow.models.history import HistoryEntry, UsageStatistic, matches
from proseflow.persistence import create_persistence
from proseflow.persistence.memory_backend import MemoryHistoryStore, MemoryUsageStore

BASE_TIME = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _entry(minutes: int, **kwargs) -> HistoryEntry:
    fields = dict(action_name="Fix Grammar", provider_used="Local", model_used="llama",
                  input_text="in", output_text="out")
    fields.update(kwargs)
    return HistoryEntry(timestamp=BASE_TIME + timedelta(minutes=minutes), **fields)


class TestMatches:
    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            matches(_entry(0), "x", field="timestamp")

    def test_field_name_case_insensitive(self):
        assert matches(_entry(0, provider_used="Cloud"), "cloud", field="Provider")

    def test_provider_not_in_default_fields(self):
        assert not matches(_entry(0, provider_used="Cloud"), "cloud")


class TestMemoryHistoryStore:
    def test_recent_newest_first(self):
        store = MemoryHistoryStore()
        for minutes in (2, 0, 1):
            store.add(_entry(minutes, action_name=str(minutes)))

        assert [e.action_name for e in store.recent(10)] == ["2", "1", "0"]

    def test_delete_and_clear(self):
        store = MemoryHistoryStore()
        first, second = _entry(0), _entry(1)
        store.add(first)
        store.add(second)

        store.delete(first.id)
        assert store.recent() == [second]
        store.clear()
        assert store.recent() == []


class TestMemoryUsageStore:
    def test_returns_copies(self):
        store = MemoryUsageStore()
        stat = UsageStatistic(year=2026, month=3, prompt_tokens=1)
        store.save(stat)
        stat.prompt_tokens = 99

        loaded = store.get(2026, 3)
        loaded.completion_tokens = 50

        assert store.get(2026, 3) == UsageStatistic(year=2026, month=3, prompt_tokens=1)


class TestCreatePersistence:
    def test_defaults_to_memory(self):
        history, usage = create_persistence(AppSettings())

        assert isinstance(history, MemoryHistoryStore)
        assert isinstance(usage, MemoryUsageStore)

    def test_selects_production_backends(self):
        settings = AppSettings(history_backend="dynamodb", usage_backend="redis")
        with patch("proseflow.persistence.DynamoDBHistoryStore") as ddb, \
                patch("proseflow.persistence.RedisUsageStore") as rds:
            history, usage = create_persistence(settings)

        ddb.assert_called_once_with(table_suffix="", region="us-east-1", endpoint_url=None)
        rds.assert_called_once_with(host="localhost", port=6379, db=0)
        assert history is ddb.return_value
        assert usage is rds.return_value
