"""DynamoDB backend implementing IHistoryStore."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

import boto3
from boto3.dynamodb.conditions import Key

from proseflow.core.exceptions import HistoryStoreError
from proseflow.models.history import HistoryEntry, matches

HISTORY_TABLE = "proseflow-history"
HISTORY_PK = "HISTORY"

_FLOAT_FIELDS = ("latency_ms", "tokens_per_second")


def _to_item(entry: HistoryEntry) -> dict[str, Any]:
    """Serialize a history entry; the SK sorts by timestamp, then id."""
    data = entry.model_dump(mode="json")
    for name in _FLOAT_FIELDS:
        data[name] = Decimal(str(data[name]))
    data["PK"] = HISTORY_PK
    data["SK"] = f"{entry.timestamp.isoformat()}#{entry.id}"
    return data


def _from_item(item: dict[str, Any]) -> HistoryEntry:
    data = {k: v for k, v in item.items() if k not in ("PK", "SK")}
    for k, v in data.items():
        if isinstance(v, Decimal):
            data[k] = int(v) if v == int(v) and k not in _FLOAT_FIELDS else float(v)
    return HistoryEntry.model_validate(data)


class DynamoDBHistoryStore:
    """Production IHistoryStore backed by a single PK/SK DynamoDB table."""

    def __init__(self, table_suffix: str = "", region: str = "us-east-1", endpoint_url: str | None = None) -> None:
        self._table_suffix = table_suffix
        self._region = region
        self._endpoint_url = endpoint_url
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)
        self._table = self._ddb.Table(f"{HISTORY_TABLE}{table_suffix}")

    def _query(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Items newest first, following pagination until ``limit`` is reached."""
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": Key("PK").eq(HISTORY_PK),
            "ScanIndexForward": False,
        }
        if limit is not None:
            kwargs["Limit"] = limit
        items: list[dict[str, Any]] = []
        while True:
            resp = self._table.query(**kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if last_key is None or (limit is not None and len(items) >= limit):
                break
            kwargs["ExclusiveStartKey"] = last_key
        return items[:limit] if limit is not None else items

    # ---- IHistoryStore methods ----

    def add(self, entry: HistoryEntry) -> None:
        try:
            self._table.put_item(Item=_to_item(entry))
        except Exception as exc:
            raise HistoryStoreError(f"DynamoDB put failed for entry {entry.id!r}: {exc}") from exc

    def recent(self, count: int = 10) -> list[HistoryEntry]:
        if count <= 0:
            return []
        try:
            return [_from_item(item) for item in self._query(limit=count)]
        except Exception as exc:
            raise HistoryStoreError(f"DynamoDB query failed: {exc}") from exc

    def search(self, term: Optional[str] = None, field: Optional[str] = None) -> list[HistoryEntry]:
        try:
            entries = [_from_item(item) for item in self._query()]
        except Exception as exc:
            raise HistoryStoreError(f"DynamoDB query failed: {exc}") from exc
        return [e for e in entries if matches(e, term, field)]

    def delete(self, entry_id: str) -> None:
        try:
            for item in self._query():
                if item.get("id") == entry_id:
                    self._table.delete_item(Key={"PK": item["PK"], "SK": item["SK"]})
                    return
        except Exception as exc:
            raise HistoryStoreError(f"DynamoDB delete failed for entry {entry_id!r}: {exc}") from exc

    def clear(self) -> None:
        try:
            items = self._query()
            with self._table.batch_writer() as batch:
                for item in items:
                    batch.delete_item(Key={"PK": item["PK"], "SK": item["SK"]})
        except Exception as exc:
            raise HistoryStoreError(f"DynamoDB clear failed: {exc}") from exc
