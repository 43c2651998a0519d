"""Shared fixtures for service tests."""

from __future__ import annotations

import pytest

from benchrecon.core.config import AppSettings, CacheConfig, EngineConfig
from benchrecon.models.survey import SourceCategory, SurveySource
from benchrecon.services.engine import BenchmarkEngine
from tests.fakes import MemoryMappingStore, MemoryRowStore

GALLAGHER = SurveySource(id="gallagher-2024", vendor_name="Gallagher", year=2024,
                         provider_type="PHYSICIAN")
MGMA = SurveySource(id="mgma-2024", vendor_name="MGMA", year=2024, provider_type="PHYSICIAN")
MGMA_2023 = SurveySource(id="mgma-2023", vendor_name="MGMA", year=2023, provider_type="PHYSICIAN")
MGMA_CALL = SurveySource(id="mgma-call-2024", vendor_name="MGMA", year=2024,
                         category=SourceCategory.CALL_PAY)
LEGACY_CALL = SurveySource(id="sc-call-2022", vendor_name="SullivanCotter", year=2022,
                           provider_type="CALL")


@pytest.fixture
def settings():
    return AppSettings(
        engine=EngineConfig(chunk_size=2, max_concurrency=2, discovery_sample_limit=100),
        cache=CacheConfig(fresh_seconds=1800, stale_seconds=300),
    )


@pytest.fixture
def row_store():
    return MemoryRowStore()


@pytest.fixture
def mapping_store():
    return MemoryMappingStore()


@pytest.fixture
def engine(settings, row_store, mapping_store):
    return BenchmarkEngine(settings=settings, row_store=row_store, mapping_store=mapping_store)
