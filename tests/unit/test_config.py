"""Tests for configuration defaults and env overrides."""

from __future__ import annotations

from benchrecon.core.config import AppSettings, CacheConfig, EngineConfig


def test_default_settings():
    settings = AppSettings()
    assert settings.environment == "dev"
    assert settings.log_level == "INFO"
    assert settings.redis.enabled is False


def test_engine_config_defaults():
    config = EngineConfig()
    assert config.chunk_size == 500
    assert config.max_concurrency == 4
    assert config.discovery_sample_limit == 100
    assert config.aggregation_row_limit is None


def test_cache_config_defaults():
    config = CacheConfig()
    assert config.fresh_seconds == 1800.0
    assert config.stale_seconds == 300.0
    assert config.mapping_ttl_seconds == 300


def test_engine_env_override(monkeypatch):
    monkeypatch.setenv("BENCHRECON_ENGINE_CHUNK_SIZE", "50")
    monkeypatch.setenv("BENCHRECON_ENGINE_MAX_CONCURRENCY", "2")
    config = EngineConfig()
    assert config.chunk_size == 50
    assert config.max_concurrency == 2


def test_cache_env_override(monkeypatch):
    monkeypatch.setenv("BENCHRECON_CACHE_FRESH_SECONDS", "60")
    assert CacheConfig().fresh_seconds == 60.0


def test_app_env_override(monkeypatch):
    monkeypatch.setenv("BENCHRECON_ENVIRONMENT", "uat")
    assert AppSettings().environment == "uat"
