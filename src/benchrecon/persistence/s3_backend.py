"""S3 row store implementing IRowStore."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from benchrecon.core.exceptions import RowStoreError
from benchrecon.core.types import RawRow
from benchrecon.models.survey import SurveySource
from benchrecon.persistence.memory_backend import match_filters


class S3RowStore:
    """Read-only IRowStore over JSON objects in S3.

    Layout: ``<prefix>/sources.json`` holds the source manifest (a JSON list
    of SurveySource objects) and ``<prefix>/rows/<source_id>.json`` holds a
    JSON list of raw rows for each source.
    """

    def __init__(self, bucket: str, prefix: str = "surveys", region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._bucket = bucket
        self._prefix = prefix.strip("/")
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("s3", **kwargs)

    def _key(self, *parts: str) -> str:
        return "/".join(p for p in (self._prefix, *parts) if p)

    def _read_json(self, key: str) -> Any:
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=key)
            return json.loads(resp["Body"].read())
        except (ClientError, BotoCoreError) as exc:
            raise RowStoreError(f"S3 read failed for {key!r}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise RowStoreError(f"Invalid JSON in {key!r}: {exc}") from exc

    def _list_sources(self) -> list[SurveySource]:
        manifest = self._read_json(self._key("sources.json"))
        if not isinstance(manifest, list):
            raise RowStoreError("sources.json must contain a JSON list")
        return [SurveySource.model_validate(item) for item in manifest]

    def _get_rows(self, source_id: str, filters: dict[str, Any] | None,
                  limit: int | None) -> list[RawRow]:
        rows = self._read_json(self._key("rows", f"{source_id}.json"))
        if not isinstance(rows, list):
            raise RowStoreError(f"rows for {source_id!r} must be a JSON list")
        selected = [r for r in rows if isinstance(r, dict) and match_filters(r, filters)]
        return selected if limit is None else selected[:limit]

    async def list_sources(self) -> list[SurveySource]:
        return await asyncio.to_thread(self._list_sources)

    async def get_rows(
        self,
        source_id: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[RawRow]:
        return await asyncio.to_thread(self._get_rows, source_id, filters, limit)
