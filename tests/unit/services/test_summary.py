"""Tests for summary rows and specialty grouping."""

from __future__ import annotations

import pytest

from benchrecon.models.aggregation import AggregatedRecord
from benchrecon.models.variables import VariableMetrics
from benchrecon.services.summary import group_by_specialty, summarize


def _rec(specialty, region, tcc=None, wrvu=None) -> AggregatedRecord:
    return AggregatedRecord(
        specialty=specialty, survey_source="MGMA Physician", provider_type="Physician",
        region=region, variables={"tcc": tcc, "work_rvus": wrvu},
    )


@pytest.fixture
def records():
    return [
        _rec("Cardiology", "West",
             tcc=VariableMetrics(p25=100, p50=200, p75=300, p90=400, n_incumbents=10)),
        _rec("Cardiology", "South",
             tcc=VariableMetrics(p25=300, p50=400, p75=500, p90=None, n_incumbents=30)),
        _rec("Urology", "West", wrvu=VariableMetrics(p50=5000, n_incumbents=None)),
    ]


class TestSummarize:
    def test_simple_and_weighted_means(self, records):
        [row] = summarize(records, ["tcc"])
        assert row.record_count == 2
        assert row.total_incumbents == 40
        assert row.simple.p50 == 300
        assert row.weighted.p50 == pytest.approx((200 * 10 + 400 * 30) / 40)
        assert row.simple.p90 == 400
        assert row.weighted.p90 == 400

    def test_no_incumbents_means_no_weighted_value(self, records):
        [row] = summarize(records, ["work_rvus"])
        assert row.simple.p50 == 5000
        assert row.weighted.p50 is None

    def test_unknown_variable(self, records):
        [row] = summarize(records, ["asa_units"])
        assert row.record_count == 0
        assert row.simple.p50 is None


class TestGroupBySpecialty:
    def test_first_seen_order_and_projection(self, records):
        groups = group_by_specialty(records, ["tcc"])
        assert [g.specialty for g in groups] == ["Cardiology"]
        assert len(groups[0].records) == 2
        assert set(groups[0].records[0].variables) == {"tcc"}

    def test_no_selection_keeps_everything(self, records):
        groups = group_by_specialty(records, [])
        assert [g.specialty for g in groups] == ["Cardiology", "Urology"]
        assert set(groups[1].records[0].variables) == {"tcc", "work_rvus"}
