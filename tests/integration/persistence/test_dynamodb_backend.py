"""Integration tests for DynamoDBHistoryStore against LocalStack."""

from __future__ import annotations

import pytest

from proseflow.models.history import HistoryEntry
from proseflow.persistence.dynamodb_backend import DynamoDBHistoryStore
from tests.integration.conftest import LOCALSTACK_URL, skip_no_localstack


@skip_no_localstack
class TestDynamoDBIntegration:
    @pytest.fixture
    def store(self, history_table):
        store = DynamoDBHistoryStore(
            table_suffix=history_table,
            region="us-east-1",
            endpoint_url=LOCALSTACK_URL,
        )
        store.clear()
        yield store
        store.clear()

    def _entry(self, action: str) -> HistoryEntry:
        return HistoryEntry(
            action_name=action,
            provider_used="Cloud",
            model_used="groq",
            input_text="this is bad grammer",
            output_text="This is bad grammar.",
            latency_ms=310.25,
        )

    def test_add_and_recent(self, store):
        entry = self._entry("Fix Grammar")
        store.add(entry)

        assert store.recent(1) == [entry]

    def test_search_and_delete(self, store):
        keep, drop = self._entry("Summarize"), self._entry("Fix Grammar")
        store.add(keep)
        store.add(drop)

        assert [e.id for e in store.search("grammar", field="action")] == [drop.id]
        store.delete(drop.id)
        assert [e.id for e in store.recent(10)] == [keep.id]
