import pandas as pd
import pytest

from insights.metrics_collaboration import change_direction, collaboration_rate, compute_collaboration
from insights.metrics_commitment import commitment_status, compute_commitment
from insights.metrics_engagement import compute_engagement, is_included
from insights.metrics_features import (
    compute_features,
    fiscal_year_label,
    quarterly_comparison,
    status_distribution,
)
from insights.metrics_overview import compute_overview, roadmap_progress
from insights.metrics_responsiveness import compute_responsiveness
from insights.metrics_submissions import compute_client_submissions
from insights.service import build_context


@pytest.fixture
def hotdocs(backend):
    return build_context(backend, {"product": "HotDocs", "quarter": "FY26 Q2", "top_n": 3})


def test_overview_kpis(hotdocs):
    f, ctx = hotdocs
    payload = compute_overview(f, ctx)
    kpis = payload["kpis"]
    assert payload["has_data"] is True
    assert kpis["responsiveness"]["value"] == 95
    assert kpis["responsiveness"]["change"] == 10.0
    assert kpis["roadmap_alignment"]["committed"] == 16
    assert kpis["roadmap_alignment"]["progress_pct"] == 36
    assert kpis["roadmap_alignment"]["commitment_status"] == "On Track"
    assert kpis["cross_client_collaboration"]["change"] == 4.0
    assert len(kpis["aging_ideas"]["trend"]) == 4
    assert "aging_ideas_trend" in payload["charts"]


def test_overview_without_dashboard(empty_backend):
    f, ctx = build_context(empty_backend, {"product": "HotDocs", "quarter": "FY26 Q2"})
    payload = compute_overview(f, ctx)
    assert payload["has_data"] is False
    assert payload["kpis"]["responsiveness"]["change"] is None
    assert payload["charts"] == {}


def test_roadmap_progress_and_commitment_status():
    assert roadmap_progress(16, 45) == 36
    assert roadmap_progress(5, 0) == 0
    assert commitment_status(None) == "On Track"
    assert commitment_status(90) == "On Track"
    assert commitment_status(80) == "At Risk"
    assert commitment_status(60) == "Off Track"


def test_responsiveness_trend(hotdocs):
    f, ctx = hotdocs
    payload = compute_responsiveness(f, ctx)
    assert [r["quarter"] for r in payload["quarters"]] == ["FY25 Q3", "FY25 Q4", "FY26 Q1", "FY26 Q2"]
    assert payload["value"] == 95
    assert payload["change"] == 10
    assert payload["quarters"][0]["change"] is None
    assert payload["selected_quarter"]["ideas_list"][0] == "Email Integration"
    assert "responsiveness_trend" in payload["charts"]


def test_commitment(hotdocs):
    f, ctx = hotdocs
    payload = compute_commitment(f, ctx)
    assert [y["year"] for y in payload["years"]] == ["2020", "2021", "2022", "2023", "2024"]
    assert payload["latest_delivery_rate"] == 95
    assert payload["status"] == "On Track"
    assert payload["totals"]["committed"] == 260
    assert payload["totals"]["delivery_rate"] == 94
    assert [q["delivered"] for q in payload["quarterly_deliveries"]] == [14, 16, 15, 17]
    assert set(payload["charts"]) == {"committed_vs_delivered", "delivery_rate", "quarterly_deliveries"}


def test_is_included():
    assert is_included({"included": False, "days_between": 5}) is False
    assert is_included({"included": None, "days_between": 90}) is True
    assert is_included({"included": None, "days_between": 91}) is False
    assert is_included({"days_between": None}) is False


def test_engagement(hotdocs):
    f, ctx = hotdocs
    payload = compute_engagement(f, ctx)
    assert payload["summary"] == {"rate": 80, "numerator": 24, "denominator": 30}
    assert len(payload["included_ideas"]) == 2
    assert payload["excluded_ideas"][0]["days_between"] == 120
    assert [t["quarter"] for t in payload["trend"]] == ["FY25 Q3", "FY25 Q4", "FY26 Q1", "FY26 Q2"]


def test_client_submissions(hotdocs):
    f, ctx = hotdocs
    payload = compute_client_submissions(f, ctx)
    assert payload["current"]["clients_representing"] == 15
    assert len(payload["current"]["clients"]) == 15
    assert [i["summary"] for i in payload["selected_quarter"]["ideas"]][0] == "Collaboration Tools"
    assert "clients_representing" in payload["charts"]


def test_collaboration_helpers():
    assert change_direction(3.5) == "up"
    assert change_direction(-3.5) == "down"
    assert change_direction(3) == "stable"
    assert collaboration_rate(None, 5, 20) == 25.0
    assert collaboration_rate(40, 5, 20) == 40
    assert collaboration_rate(None, 5, 0) == 0.0


def test_collaboration(hotdocs):
    f, ctx = hotdocs
    payload = compute_collaboration(f, ctx)
    assert payload["value"] == 38
    assert payload["average_rate"] == 29.8
    assert payload["current"]["change_direction"] == "up"
    assert payload["current"]["significant_change"] is False
    assert payload["quarters"][0]["change_direction"] == "stable"
    assert payload["current"]["top_collaborative_ideas"][0]["name"] == "Advanced Analytics Platform"


def test_status_distribution_orders_known_statuses():
    dist = status_distribution(
        [{"status": "Committed"}, {"status": "Delivered"}, {"status": None}, {"status": "Committed"}]
    )
    assert [d["status"] for d in dist] == ["Delivered", "Committed", "Unknown"]
    assert dist[1]["share"] == 50.0


def test_quarterly_comparison():
    current = [{"feature_name": "A", "vote_count": 10}, {"feature_name": "B", "vote_count": 8}, {"feature_name": "C", "vote_count": 1}]
    previous = [{"feature_name": "B", "vote_count": 12}, {"feature_name": "A", "vote_count": 10}]
    rows = {r["feature_name"]: r for r in quarterly_comparison(current, previous)}
    assert rows["A"]["trend_direction"] == "stable"
    assert rows["A"]["rank_change"] == 1
    assert rows["B"]["trend_direction"] == "down"
    assert rows["B"]["percent_change"] == -33.3
    assert rows["C"]["trend_direction"] == "new"


def test_fiscal_year_label():
    assert fiscal_year_label("2025") == "FY25"
    assert fiscal_year_label("FYFY25") == "FY25"
    assert fiscal_year_label("later") == "later"


def test_features(hotdocs):
    f, ctx = hotdocs
    payload = compute_features(f, ctx)
    assert [t["feature_name"] for t in payload["top_features"]] == ["AI Integration", "Mobile App", "Reporting Tools"]
    assert payload["feature_count"] == 10
    first = payload["quarterly_comparison"][0]
    assert first["previous_votes"] == 30
    assert first["trend_direction"] == "up"
    assert [d["status"] for d in payload["status_distribution"]] == ["Delivered", "Under Review", "Committed"]
    assert payload["idea_distribution"][0]["year"] == "FY25"
    assert payload["idea_distribution"][0]["total"] == 108
    assert payload["forums"][0] == {"name": "CSC", "audience": "Client Steering Committee", "purpose": "Quarterly roadmap review"}
    assert set(payload["charts"]) == {"top_features", "status_distribution", "idea_distribution"}


def test_features_fall_back_to_dashboard_blob(backend):
    backend.tables["features"] = []
    f, ctx = build_context(backend, {"product": "HotDocs", "quarter": "FY26 Q2"})
    assert isinstance(ctx["features_current"], pd.DataFrame)
    payload = compute_features(f, ctx)
    assert payload["feature_count"] == 10
    assert payload["top_features"][0]["feature_name"] == "AI Integration"
