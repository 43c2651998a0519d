"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from benchrecon.core.config import AppSettings
from benchrecon.persistence.dynamodb_backend import DynamoDBMappingStore
from benchrecon.persistence.redis_backend import RedisCacheBackend
from benchrecon.persistence.s3_backend import S3RowStore


def create_persistence(settings: AppSettings | None = None):
    """Create wired-up persistence backends from application settings.

    The Redis cache is only created when ``settings.redis.enabled``.

    Returns:
        Tuple of (row_store, mapping_store, cache).
    """
    if settings is None:
        settings = AppSettings()

    cache = None
    if settings.redis.enabled:
        cache = RedisCacheBackend(
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
        )

    mapping_store = DynamoDBMappingStore(
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
        cache=cache,
        cache_ttl=settings.cache.mapping_ttl_seconds,
    )

    row_store = S3RowStore(
        bucket=settings.s3.bucket,
        prefix=settings.s3.prefix,
        region=settings.s3.region,
        endpoint_url=settings.s3.endpoint_url,
    )

    return row_store, mapping_store, cache
