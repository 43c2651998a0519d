"""Tests for backend wiring from settings."""

from __future__ import annotations

from moto import mock_aws

from benchrecon.core.config import AppSettings, RedisConfig
from benchrecon.core.protocols import ICacheBackend, IMappingStore, IRowStore
from benchrecon.persistence import create_persistence
from benchrecon.persistence.dynamodb_backend import DynamoDBMappingStore
from benchrecon.persistence.redis_backend import RedisCacheBackend
from benchrecon.persistence.s3_backend import S3RowStore


def test_defaults_skip_redis():
    with mock_aws():
        row_store, mapping_store, cache = create_persistence(AppSettings())
    assert isinstance(row_store, S3RowStore)
    assert isinstance(mapping_store, DynamoDBMappingStore)
    assert cache is None
    assert isinstance(row_store, IRowStore)
    assert isinstance(mapping_store, IMappingStore)


def test_redis_enabled():
    settings = AppSettings(redis=RedisConfig(enabled=True, host="cache.internal"))
    with mock_aws():
        _, _, cache = create_persistence(settings)
    assert isinstance(cache, RedisCacheBackend)
    assert isinstance(cache, ICacheBackend)
