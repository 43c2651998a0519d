"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class EngineConfig(BaseSettings):
    """Normalization and aggregation pass tuning."""

    model_config = {"env_prefix": "BENCHRECON_ENGINE_"}

    chunk_size: int = 500
    max_concurrency: int = 4
    discovery_sample_limit: int = 100
    aggregation_row_limit: int | None = None  # None = all rows per source


class CacheConfig(BaseSettings):
    """Freshness windows for cached discovery and aggregation results."""

    model_config = {"env_prefix": "BENCHRECON_CACHE_"}

    fresh_seconds: float = 1800.0  # 30 minutes
    stale_seconds: float = 300.0  # served while a background refresh runs
    mapping_ttl_seconds: int = 300  # Redis TTL for mapping store reads


class DynamoDBConfig(BaseSettings):
    """DynamoDB mapping store configuration."""

    model_config = {"env_prefix": "BENCHRECON_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class RedisConfig(BaseSettings):
    """Redis cache configuration."""

    model_config = {"env_prefix": "BENCHRECON_REDIS_"}

    enabled: bool = False
    host: str = "localhost"
    port: int = 6379
    db: int = 0


class S3Config(BaseSettings):
    """S3 row store configuration."""

    model_config = {"env_prefix": "BENCHRECON_S3_"}

    bucket: str = "benchrecon-survey-rows"
    prefix: str = "surveys"
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "BENCHRECON_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"

    engine: EngineConfig = EngineConfig()
    cache: CacheConfig = CacheConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
    s3: S3Config = S3Config()
