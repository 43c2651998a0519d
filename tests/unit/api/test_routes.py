"""HTTP surface tests using FastAPI's TestClient over in-memory stores."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from benchrecon.api.app import create_app
from benchrecon.core.config import AppSettings
from benchrecon.models.survey import SourceCategory, SurveySource
from benchrecon.services.cache_layer import CacheKind
from benchrecon.services.engine import BenchmarkEngine
from tests.fakes import MemoryMappingStore, MemoryRowStore

MGMA = SurveySource(id="mgma-2024", vendor_name="MGMA", year=2024, provider_type="PHYSICIAN")
MGMA_CALL = SurveySource(id="mgma-call-2024", vendor_name="MGMA", year=2024,
                         category=SourceCategory.CALL_PAY)


@pytest.fixture
def row_store():
    store = MemoryRowStore()
    store.add_source(MGMA, [
        {"specialty": "Cardiology", "variable": "Total Cash Compensation", "p50": 250000,
         "n_incumbents": 20},
        {"specialty": "Cardiology", "variable": "Work RVUs", "p50": 4500, "n_incumbents": 20},
        {"specialty": "Urology", "variable": "TCC", "p50": 200000, "n_incumbents": 5},
    ])
    store.add_source(MGMA_CALL, [
        {"specialty": "Cardiology", "variable": "Daily Rate On-Call", "p50": 1500},
    ])
    return store


@pytest.fixture
def engine(row_store):
    return BenchmarkEngine(settings=AppSettings(), row_store=row_store,
                           mapping_store=MemoryMappingStore())


@pytest.fixture
def client(engine):
    with TestClient(create_app(engine=engine)) as test_client:
        yield test_client


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_ready(self, client):
        body = client.get("/ready").json()
        assert body["status"] == "ready"
        assert body["engine"]["service"] == "BenchmarkEngine"


class TestVariables:
    def test_list_variables(self, client):
        resp = client.get("/variables")
        assert resp.status_code == 200
        keys = [v["canonical_key"] for v in resp.json()]
        assert keys == ["on_call_compensation", "tcc", "work_rvus"]

    def test_category_filter(self, client):
        resp = client.get("/variables", params={"category": "Call Pay"})
        assert [v["canonical_key"] for v in resp.json()] == ["on_call_compensation"]

    def test_stats(self, client):
        body = client.get("/variables/stats").json()
        assert body["total_variables"] == 3
        assert body["total_sources"] == 2


class TestAggregated:
    def test_unfiltered(self, client):
        records = client.get("/aggregated").json()
        ids = {r["id"] for r in records}
        assert "Cardiology|MGMA Physician 2024|Physician|National" in ids
        assert len(records) == 3

    def test_filtered(self, client):
        records = client.get("/aggregated", params={"specialty": "Urology"}).json()
        assert [r["specialty"] for r in records] == ["Urology"]

    def test_corpus_unavailable_maps_to_503(self, client, row_store):
        row_store.unavailable = True
        resp = client.get("/aggregated")
        assert resp.status_code == 503
        assert "list_sources" in resp.json()["detail"]


class TestSummaryAndGrouped:
    def test_summary(self, client):
        resp = client.post("/summary", json={
            "filters": {"category": "Compensation"}, "variables": ["tcc"],
        })
        [row] = resp.json()
        assert row["record_count"] == 2
        assert row["simple"]["p50"] == 225000
        assert row["weighted"]["p50"] == 240000

    def test_grouped(self, client):
        groups = client.post("/grouped", json={"variables": ["tcc"]}).json()
        assert [g["specialty"] for g in groups] == ["Cardiology", "Urology"]


class TestInvalidate:
    def test_known_event(self, client, engine):
        client.get("/aggregated")
        resp = client.post("/invalidate/source_removed")
        assert resp.status_code == 200
        assert resp.json()["event"] == "source_removed"
        assert engine.cache.peek(CacheKind.AGGREGATION) is None

    def test_unknown_event(self, client):
        assert client.post("/invalidate/reticulate_splines").status_code == 404
