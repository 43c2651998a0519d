"""Tests for grouping, representative selection and record filtering."""

from __future__ import annotations

from benchrecon.models.aggregation import AggregationFilters, NormalizedRow
from benchrecon.models.survey import SourceCategory
from benchrecon.models.variables import VariableMetrics
from benchrecon.services.aggregation import AggregationEngine


# ---------- helpers ----------

def _row(specialty="Cardiology", source="MGMA Physician", ptype="Physician", region="National",
         year=2024, category=SourceCategory.COMPENSATION, **variables) -> NormalizedRow:
    return NormalizedRow(
        specialty=specialty, survey_source=source, provider_type=ptype, region=region,
        survey_year=year, category=category, variables=variables,
    )


def _m(p50, p25=None, p75=None, p90=None, n_incumbents=None) -> VariableMetrics:
    return VariableMetrics(p25=p25, p50=p50, p75=p75, p90=p90, n_incumbents=n_incumbents)


class TestAggregate:
    def test_long_rows_collapse_into_one_record(self):
        records = AggregationEngine().aggregate([
            _row(tcc=_m(250000)),
            _row(work_rvus=_m(4500)),
        ])
        assert len(records) == 1
        assert records[0].variables["tcc"].p50 == 250000
        assert records[0].variables["work_rvus"].p50 == 4500
        assert records[0].id == "Cardiology|MGMA Physician|Physician|National"

    def test_first_seen_group_order(self):
        records = AggregationEngine().aggregate([
            _row(specialty="B", tcc=_m(1)),
            _row(specialty="A", tcc=_m(1)),
            _row(specialty="B", region="West", tcc=_m(1)),
        ])
        assert [(r.specialty, r.region) for r in records] == [
            ("B", "National"), ("A", "National"), ("B", "West"),
        ]

    def test_earliest_nonzero_median_wins(self):
        records = AggregationEngine().aggregate([
            _row(tcc=_m(0, p25=5)),
            _row(tcc=_m(None, p25=7)),
            _row(tcc=_m(250000, p25=200000, p75=300000, p90=350000)),
            _row(tcc=_m(999999)),
        ])
        tcc = records[0].variables["tcc"]
        assert (tcc.p25, tcc.p50, tcc.p75, tcc.p90) == (200000, 250000, 300000, 350000)

    def test_variable_without_data_is_absent(self):
        records = AggregationEngine().aggregate([
            _row(tcc=_m(250000), asa_units=_m(0)),
        ])
        assert "asa_units" in records[0].variables
        assert records[0].variables["asa_units"] is None

    def test_percentile_order_preserved(self):
        records = AggregationEngine().aggregate([
            _row(tcc=_m(250000, p25=200000, p75=300000, p90=400000)),
        ])
        m = records[0].variables["tcc"]
        assert m.p25 <= m.p50 <= m.p75 <= m.p90

    def test_grouping_key_fields_only(self):
        records = AggregationEngine().aggregate([
            _row(year=2024, tcc=_m(1)),
            _row(year=2023, tcc=_m(2)),
        ])
        assert len(records) == 1
        assert records[0].survey_year == 2024

    def test_empty_input(self):
        assert AggregationEngine().aggregate([]) == []


class TestFilterRecords:
    def _records(self):
        return AggregationEngine().aggregate([
            _row(specialty="Obstetrics and Gynecology", tcc=_m(1)),
            _row(specialty="Cardiology", region="West", tcc=_m(1)),
            _row(specialty="Cardiology", source="MGMA Call Pay", category=SourceCategory.CALL_PAY,
                 on_call_compensation=_m(1500)),
        ])

    def test_no_filters(self):
        assert len(AggregationEngine.filter_records(self._records(), None)) == 3

    def test_all_sentinels_are_no_ops(self):
        filters = AggregationFilters(survey_source="All Sources", provider_type="All Types",
                                     year="All Years", region="All Regions")
        assert len(AggregationEngine.filter_records(self._records(), filters)) == 3

    def test_specialty_compared_folded(self):
        filters = AggregationFilters(specialty="obstetrics & gynecology")
        out = AggregationEngine.filter_records(self._records(), filters)
        assert [r.specialty for r in out] == ["Obstetrics and Gynecology"]

    def test_region_and_category(self):
        engine = AggregationEngine
        assert len(engine.filter_records(self._records(), AggregationFilters(region="west"))) == 1
        out = engine.filter_records(self._records(), AggregationFilters(category="Call Pay"))
        assert [r.survey_source for r in out] == ["MGMA Call Pay"]

    def test_year(self):
        out = AggregationEngine.filter_records(self._records(), AggregationFilters(year=2023))
        assert out == []
