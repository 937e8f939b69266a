"""Unit tests for DynamoDBHistoryStore using moto."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import boto3
import pytest
from moto import mock_aws

from proseflow.core.exceptions import HistoryStoreError
from proseflow.models.history import HistoryEntry
from proseflow.persistence.dynamodb_backend import HISTORY_TABLE, DynamoDBHistoryStore

TABLE_SUFFIX = "-test"
REGION = "us-east-1"
BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# ---------- helpers ----------

def _create_table(client, name: str):
    client.create_table(
        TableName=name,
        KeySchema=[
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )


def _entry(minutes: int, action: str = "Fix Grammar", **kwargs) -> HistoryEntry:
    defaults = dict(
        action_name=action,
        provider_used="Cloud",
        model_used="groq",
        input_text="this is bad grammer",
        output_text="This is bad grammar.",
        prompt_tokens=12,
        completion_tokens=5,
        latency_ms=250.5,
        tokens_per_second=20.0,
    )
    defaults.update(kwargs)
    return HistoryEntry(timestamp=BASE_TIME + timedelta(minutes=minutes), **defaults)


# ---------- fixtures ----------

@pytest.fixture
def store():
    with mock_aws():
        client = boto3.client("dynamodb", region_name=REGION)
        _create_table(client, f"{HISTORY_TABLE}{TABLE_SUFFIX}")
        yield DynamoDBHistoryStore(table_suffix=TABLE_SUFFIX, region=REGION)


# ---------- tests ----------

class TestAdd:
    def test_round_trips_all_fields(self, store):
        entry = _entry(0)
        store.add(entry)

        [loaded] = store.recent(5)

        assert loaded == entry
        assert isinstance(loaded.prompt_tokens, int)
        assert loaded.latency_ms == 250.5


class TestRecent:
    def test_newest_first_and_limited(self, store):
        for minutes in (0, 10, 5):
            store.add(_entry(minutes, action=f"A{minutes}"))

        names = [e.action_name for e in store.recent(2)]

        assert names == ["A10", "A5"]

    def test_non_positive_count(self, store):
        store.add(_entry(0))
        assert store.recent(0) == []


class TestSearch:
    def test_default_fields(self, store):
        store.add(_entry(0, action="Summarize", input_text="quarterly report"))
        store.add(_entry(1, action="Fix Grammar"))

        assert [e.action_name for e in store.search("REPORT")] == ["Summarize"]

    def test_specific_field(self, store):
        store.add(_entry(0, model_used="llama-3"))
        store.add(_entry(1, model_used="groq"))

        assert [e.model_used for e in store.search("llama", field="model")] == ["llama-3"]

    def test_empty_term_returns_everything(self, store):
        store.add(_entry(0))
        store.add(_entry(1))
        assert len(store.search(None)) == 2


class TestDeleteAndClear:
    def test_delete_by_id(self, store):
        keep, drop = _entry(0), _entry(1)
        store.add(keep)
        store.add(drop)

        store.delete(drop.id)
        store.delete("missing")

        assert [e.id for e in store.recent(10)] == [keep.id]

    def test_clear(self, store):
        for minutes in range(3):
            store.add(_entry(minutes))

        store.clear()

        assert store.recent(10) == []


class TestErrorWrapping:
    def test_missing_table_wraps_error(self):
        with mock_aws():
            store = DynamoDBHistoryStore(table_suffix="-absent", region=REGION)
            with pytest.raises(HistoryStoreError):
                store.add(_entry(0))
            with pytest.raises(HistoryStoreError):
                store.recent(1)
