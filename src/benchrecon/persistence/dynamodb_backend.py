"""DynamoDB backend implementing IMappingStore with optional Redis caching."""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from benchrecon.core.exceptions import MappingStoreError
from benchrecon.core.protocols import ICacheBackend
from benchrecon.models.mapping import Dimension, MappingEntry, SourceEntry

logger = structlog.get_logger(__name__)

MAPPING_TABLE = "benchrecon-mapping-tables"
LEARNED_TABLE = "benchrecon-learned-mappings"


def _decode_decimals(value: Any) -> Any:
    """Convert Decimal values in a DynamoDB item (recursively) to int/float."""
    if isinstance(value, Decimal):
        return int(value) if value == int(value) else float(value)
    if isinstance(value, dict):
        return {k: _decode_decimals(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode_decimals(v) for v in value]
    return value


def _entry_from_item(item: dict[str, Any]) -> MappingEntry:
    return MappingEntry(
        standardized_name=item["standardizedName"],
        source_entries=tuple(
            SourceEntry(
                survey_source=src.get("surveySource", ""),
                original_label=src.get("originalLabel", ""),
            )
            for src in item.get("sourceEntries", [])
        ),
    )


class DynamoDBMappingStore:
    """Read-only IMappingStore over two DynamoDB tables.

    Mapping tables: PK ``DIMENSION#<dim>``, SK ``MAPPING#<standardized>``.
    Learned mappings: PK ``LEARNED#<dim>``, SK ``LABEL#<label>``.
    """

    CACHE_TTL = 300  # 5 minutes

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None, cache: ICacheBackend | None = None,
                 cache_ttl: int | None = None) -> None:
        self._table_suffix = table_suffix
        self._cache = cache
        self._cache_ttl = cache_ttl if cache_ttl is not None else self.CACHE_TTL
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)

    def _table(self, base: str):
        return self._ddb.Table(f"{base}{self._table_suffix}")

    def _query_pk(self, table_base: str, pk: str) -> list[dict[str, Any]]:
        """Query every item under a partition key, following pagination."""
        tbl = self._table(table_base)
        query: dict[str, Any] = {
            "KeyConditionExpression": "PK = :pk",
            "ExpressionAttributeValues": {":pk": pk},
        }
        items: list[dict[str, Any]] = []
        try:
            while True:
                resp = tbl.query(**query)
                items.extend(_decode_decimals(i) for i in resp.get("Items", []))
                if "LastEvaluatedKey" not in resp:
                    return items
                query["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
        except (ClientError, BotoCoreError) as exc:
            raise MappingStoreError(f"DynamoDB query failed for {table_base}/{pk}: {exc}") from exc

    def _cached(self, cache_key: str) -> Any:
        if self._cache is None:
            return None
        cached = self._cache.get(cache_key)
        return json.loads(cached) if cached is not None else None

    def _remember(self, cache_key: str, value: Any) -> None:
        if self._cache is not None:
            self._cache.setex(cache_key, self._cache_ttl, json.dumps(value))

    # ---- IMappingStore methods ----

    def get_mapping_table(self, dimension: Dimension) -> list[MappingEntry]:
        cache_key = f"mapping_table:{dimension}"
        cached = self._cached(cache_key)
        if cached is not None:
            return [MappingEntry.model_validate(e) for e in cached]

        items = self._query_pk(MAPPING_TABLE, f"DIMENSION#{dimension}")
        entries = [_entry_from_item(i) for i in items if "standardizedName" in i]
        self._remember(cache_key, [e.model_dump(mode="json") for e in entries])
        logger.debug("mapping_table_loaded", dimension=str(dimension), entries=len(entries))
        return entries

    def get_learned_mappings(self, dimension: Dimension) -> dict[str, str]:
        cache_key = f"learned:{dimension}"
        cached = self._cached(cache_key)
        if cached is not None:
            return cached

        items = self._query_pk(LEARNED_TABLE, f"LEARNED#{dimension}")
        learned = {
            str(i["originalLabel"]).strip().lower(): str(i["canonicalName"])
            for i in items
            if "originalLabel" in i and "canonicalName" in i
        }
        self._remember(cache_key, learned)
        return learned

    def invalidate(self, dimension: Dimension | None = None) -> None:
        """Drop cached reads so the next call goes to DynamoDB."""
        if self._cache is None:
            return
        for dim in ([dimension] if dimension else list(Dimension)):
            self._cache.delete(f"mapping_table:{dim}")
            self._cache.delete(f"learned:{dim}")
