import pytest

from insights.csv_ingest import CSVError
from insights.transform import parse_dashboard_csv, parse_int_prefix, safe_number, split_list, transform_feature


@pytest.mark.parametrize(
    "value, expected",
    [("12", 12), ("12.5", 12.5), ("", 0), ("  ", 0), (None, 0), ("abc", 0), ("inf", 0), (7.0, 7)],
)
def test_safe_number(value, expected):
    assert safe_number(value) == expected


def test_parse_int_prefix_and_split_list():
    assert parse_int_prefix("35 votes") == 35
    assert parse_int_prefix("votes") is None
    assert split_list("Client A, ,Client B,") == ["Client A", "Client B"]
    assert split_list(None) == []


def test_transform_feature_requires_all_fields():
    row = {
        "feature_name": "Search",
        "vote_count": "9",
        "status": "Committed",
        "status_updated_at": "2025-01-01",
        "client_voters": "A, B",
    }
    feature = transform_feature(row)
    assert feature.vote_count == 9
    assert feature.client_voters == ["A", "B"]
    assert transform_feature({**row, "client_voters": ""}) is None
    assert transform_feature({**row, "vote_count": "many"}) is None


def test_parse_dashboard_csv(dashboard_csv):
    data = parse_dashboard_csv(dashboard_csv, "HotDocs")
    ms = data.metric_summary
    assert ms.responsiveness == 88
    assert ms.roadmap_alignment.committed == 14
    assert ms.roadmap_alignment.total == 50
    assert [t["count"] for t in ms.aging_ideas.trend] == [25, 23, 21, 19]

    assert [r.year for r in data.stacked_bar_data] == ["FY24", "FY25"]
    assert data.stacked_bar_data[1].candidate_ideas == 52

    assert [(p.quarter, p.clients_representing) for p in data.line_chart_data] == [("Q1", 9), ("Q2", 12)]

    assert [f.feature_name for f in data.top_features] == ["Mobile App", "AI Integration", "Reporting Tools"]
    assert data.top_features[2].client_voters == ["Client D", "Client E"]

    assert [f.name for f in data.data_socialization_forums] == ["CSC", "Sprint Reviews"]


def test_parse_dashboard_csv_wrong_product(dashboard_csv):
    with pytest.raises(CSVError) as err:
        parse_dashboard_csv(dashboard_csv, "LegalHold")
    assert err.value.message == "Invalid product data"


def test_parse_dashboard_csv_header_only():
    with pytest.raises(CSVError) as err:
        parse_dashboard_csv("product,quarter\n", "HotDocs")
    assert err.value.message == "Invalid data structure"


def test_parse_dashboard_csv_empty_required_in_first_row():
    csv_text = "product,quarter,responsiveness,feature_name,vote_count,status\nHotDocs,FY26 Q2,,Search,3,Committed\n"
    with pytest.raises(CSVError) as err:
        parse_dashboard_csv(csv_text, "HotDocs")
    assert err.value.message == "Missing required values"
    assert "- responsiveness" in err.value.details
