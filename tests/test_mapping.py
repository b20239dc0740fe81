import pandas as pd

from insights.mapping import (
    DASHBOARD_FIELDS,
    apply_mapping,
    missing_fields_message,
    suggest_field,
    suggest_mapping,
    validate_mapping,
)


def test_required_fields():
    assert [f.key for f in DASHBOARD_FIELDS if f.required] == ["feature_name", "vote_count", "status"]


def test_suggest_field_rules():
    assert suggest_field("Idea Name") == "feature_name"
    assert suggest_field("Feature") == "feature_name"
    assert suggest_field("Idea ID") == "idea_id"
    assert suggest_field("ID") == "idea_id"
    assert suggest_field("Vote Count") == "vote_count"
    assert suggest_field("Workflow Status") == "status"
    assert suggest_field("Status Updated Date") == "status_updated_at"
    assert suggest_field("Created Date") == "created_at"
    assert suggest_field("Client Firm") == "client_voters"


def test_suggest_field_exact_key_and_unknown():
    assert suggest_field("priority") == "priority"
    assert suggest_field("forum_name") == "forum_name"
    # "valid" contains "id" but not as a word
    assert suggest_field("Valid From") is None


def test_suggest_mapping_skips_unknown_headers():
    mapping = suggest_mapping(["Idea Name", "Votes", "Status", "Whatever"])
    assert mapping["Idea Name"] == "feature_name"
    assert mapping["Status"] == "status"
    assert "Whatever" not in mapping


def test_validate_mapping_and_message():
    missing = validate_mapping({"Idea Name": "feature_name", "Other": None})
    assert [f.key for f in missing] == ["vote_count", "status"]
    assert missing_fields_message(missing) == "Please map the following required fields: Vote Count, Status"
    assert validate_mapping({"a": "feature_name", "b": "vote_count", "c": "status"}) == []


def test_apply_mapping_fills_product_and_quarter():
    df = pd.DataFrame({"Idea Name": ["Search"], "Votes": ["4"], "Also Votes": ["9"], "Skip": ["x"]})
    out = apply_mapping(
        df,
        {"Idea Name": "feature_name", "Votes": "vote_count", "Also Votes": "vote_count", "Skip": None},
        "HotDocs",
        "FY26 Q2",
    )
    assert list(out.columns) == ["feature_name", "vote_count", "product", "quarter"]
    assert out.iloc[0]["vote_count"] == "4"
    assert out.iloc[0]["product"] == "HotDocs"
    assert out.iloc[0]["quarter"] == "FY26 Q2"
