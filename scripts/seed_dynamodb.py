"""Seed DynamoDB mapping tables and learned mappings for local development.

Usage:
    python scripts/seed_dynamodb.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

import boto3

TABLE_DEFINITIONS: list[dict[str, Any]] = [
    {"name": "benchrecon-mapping-tables"},
    {"name": "benchrecon-learned-mappings"},
]

SEED_PATH = Path(__file__).resolve().parent.parent / "config" / "mapping_seed.json"


def create_tables(ddb: Any, suffix: str = "") -> None:
    """Create the mapping tables. Skips tables that already exist."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])

    for defn in TABLE_DEFINITIONS:
        table_name = f"{defn['name']}{suffix}"
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue
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


def mapping_items(data: dict[str, Any]) -> list[dict[str, Any]]:
    """Turn the seed file's ``mappings`` section into table items."""
    items: list[dict[str, Any]] = []
    for dimension, entries in data.get("mappings", {}).items():
        for entry in entries:
            items.append({
                "PK": f"DIMENSION#{dimension}",
                "SK": f"MAPPING#{entry['standardizedName']}",
                "standardizedName": entry["standardizedName"],
                "sourceEntries": entry.get("sourceEntries", []),
            })
    return items


def learned_items(data: dict[str, Any]) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = []
    for dimension, learned in data.get("learned", {}).items():
        for label, canonical in learned.items():
            items.append({
                "PK": f"LEARNED#{dimension}",
                "SK": f"LABEL#{label.strip().lower()}",
                "originalLabel": label,
                "canonicalName": canonical,
            })
    return items


def seed_mapping_data(ddb: Any, suffix: str = "", seed_path: Path = SEED_PATH) -> None:
    """Load mapping_seed.json into both tables."""
    data = json.loads(seed_path.read_text())

    tbl = ddb.Table(f"benchrecon-mapping-tables{suffix}")
    entries = mapping_items(data)
    with tbl.batch_writer() as batch:
        for item in entries:
            batch.put_item(Item=item)
    print(f"  Seeded {len(entries)} mapping entries")

    tbl = ddb.Table(f"benchrecon-learned-mappings{suffix}")
    learned = learned_items(data)
    with tbl.batch_writer() as batch:
        for item in learned:
            batch.put_item(Item=item)
    print(f"  Seeded {len(learned)} learned mappings")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed DynamoDB mapping tables for BenchRecon")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    parser.add_argument("--seed-file", default=str(SEED_PATH), help="Path to the mapping seed JSON")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix)

    print("Seeding mappings...")
    seed_mapping_data(ddb, suffix=args.table_suffix, seed_path=Path(args.seed_file))

    print("Done!")


if __name__ == "__main__":
    main()
