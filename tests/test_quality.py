from dataclasses import replace

from insights.metrics_quality import calculation_checks, compute_data_quality, quality_report, validation_checks
from insights.models import DashboardData, Feature, StackedBarRow
from insights.sample_data import sample_dashboard
from insights.service import build_context


def _by_field(results):
    return {(r["field"], r["expected"]): r for r in results}


def test_sample_dashboard_passes_every_check(backend):
    f, ctx = build_context(backend, {"product": "HotDocs", "quarter": "FY26 Q2"})
    payload = compute_data_quality(f, ctx)
    assert payload["has_data"] is True
    assert payload["summary"] == {"pass": 16, "warning": 0, "fail": 0}


def test_validation_flags_empty_and_out_of_range():
    data = DashboardData()
    data.metric_summary.responsiveness = 140
    data.stacked_bar_data = [StackedBarRow(year="FY24")]
    results = _by_field(validation_checks(data))
    assert results[("top_features", "Non-empty value")]["status"] == "fail"
    assert results[("responsiveness", "0-100")]["status"] == "warning"
    assert results[("stacked_bar_data.years", "FY22, FY23, FY24, FY25")]["status"] == "warning"


def test_calculation_checks_detect_unsorted_features():
    data = sample_dashboard("HotDocs", "FY26 Q2")
    data.top_features = [Feature("a", 1, "Committed"), Feature("b", 5, "Delivered")]
    checks = {c["name"]: c for c in calculation_checks(data, "FY26 Q2")}
    assert checks["Top Features Vote Count"]["status"] == "fail"
    assert checks["Roadmap Alignment Progress"]["status"] == "pass"


def test_calculation_checks_warn_on_mismatched_responsiveness():
    data = sample_dashboard("HotDocs", "FY26 Q2")
    data.metric_summary = replace(data.metric_summary, responsiveness=50)
    checks = {c["name"]: c for c in calculation_checks(data, "FY26 Q2")}
    assert checks["Responsiveness Percentage"]["status"] == "warning"


def test_quality_without_dashboard(empty_backend):
    f, ctx = build_context(empty_backend, {"product": "HotDocs", "quarter": "FY26 Q2"})
    assert compute_data_quality(f, ctx)["has_data"] is False
    report = quality_report(f, ctx)
    assert report["raw_data"] is None
    assert report["product"] == "HotDocs"
