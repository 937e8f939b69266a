"""Create the DynamoDB history table.

Usage:
    python scripts/create_tables.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
from typing import Any

import boto3

HISTORY_TABLE = "proseflow-history"


def create_tables(ddb: Any, suffix: str = "") -> bool:
    """Create the history table. Returns ``False`` when it already exists."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])

    table_name = f"{HISTORY_TABLE}{suffix}"
    if table_name in existing:
        print(f"  Table {table_name} already exists, skipping")
        return False
    client.create_table(
        TableName=table_name,
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
    print(f"  Created table {table_name}")
    return True


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Create DynamoDB tables for ProseFlow")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    args = parser.parse_args(argv)

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix)
    print("Done!")


if __name__ == "__main__":
    main()
