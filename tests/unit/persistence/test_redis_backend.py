"""Unit tests for RedisUsageStore using fakeredis."""

from __future__ import annotations

from unittest.mock import patch

import fakeredis
import pytest

from proseflow.core.exceptions import UsageStoreError
from proseflow.models.history import UsageStatistic
from proseflow.persistence.redis_backend import RedisUsageStore, usage_key


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
def store(fake_server):
    with patch("redis.Redis", return_value=fakeredis.FakeRedis(server=fake_server, decode_responses=True)):
        return RedisUsageStore(host="localhost", port=6379, db=0)


class TestKey:
    def test_zero_padded(self):
        assert usage_key(2026, 3) == "usage:2026:03"


class TestGet:
    def test_returns_none_on_miss(self, store):
        assert store.get(2026, 3) is None

    def test_reads_saved_counters(self, store):
        store.save(UsageStatistic(year=2026, month=3, prompt_tokens=120, completion_tokens=45))

        stat = store.get(2026, 3)

        assert stat == UsageStatistic(year=2026, month=3, prompt_tokens=120, completion_tokens=45)
        assert stat.total_tokens == 165


class TestSave:
    def test_overwrites_existing_month(self, store):
        store.save(UsageStatistic(year=2026, month=3, prompt_tokens=1, completion_tokens=1))
        store.save(UsageStatistic(year=2026, month=3, prompt_tokens=7, completion_tokens=2))

        assert store.get(2026, 3).prompt_tokens == 7

    def test_months_are_independent(self, store):
        store.save(UsageStatistic(year=2026, month=3, prompt_tokens=5))

        assert store.get(2026, 4) is None


class TestErrorWrapping:
    def test_get_wraps_redis_error(self):
        s = RedisUsageStore.__new__(RedisUsageStore)
        s._client = None  # AttributeError -> UsageStoreError
        with pytest.raises(UsageStoreError):
            s.get(2026, 3)

    def test_save_wraps_redis_error(self):
        s = RedisUsageStore.__new__(RedisUsageStore)
        s._client = None
        with pytest.raises(UsageStoreError):
            s.save(UsageStatistic(year=2026, month=3))
