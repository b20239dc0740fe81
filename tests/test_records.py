import pytest

from insights.csv_ingest import CSVError, read_csv_text
from insights.records import (
    DATASETS,
    build_records,
    coerce_bool,
    coerce_int,
    coerce_json,
    get_dataset,
    replacement_scopes,
)


def test_get_dataset_unknown():
    with pytest.raises(CSVError) as err:
        get_dataset("nope")
    assert err.value.error_type == "application"


def test_coercers():
    assert coerce_int("4.0") == 4
    assert coerce_int("") is None
    assert coerce_bool("Yes") is True
    assert coerce_bool("0") is False
    assert coerce_bool("maybe") is None
    assert coerce_json('[{"status": "Committed"}]') == [{"status": "Committed"}]
    assert coerce_json("{broken") is None


def test_build_features_records():
    df = read_csv_text(
        "feature_name,vote_count,status,client_voters,risks\n"
        "Search,12,Committed,\"A, B\",Scope creep\n"
        ",3,Committed,,\n"
        "Export,lots,Delivered,,\n"
        "Import,5,Delivered,,\n"
    )
    batch = build_records("features", df, "HotDocs", "FY26 Q2")
    assert batch.skipped_rows == 2
    first, second = batch.records
    assert first["product"] == "HotDocs"
    assert first["quarter"] == "FY26 Q2"
    assert first["vote_count"] == 12
    assert first["client_voters"] == ["A", "B"]
    assert first["risks"] == ["Scope creep"]
    assert second["client_voters"] == []


def test_build_records_skips_other_products_and_keeps_row_quarter():
    df = read_csv_text("product,quarter,percentage,total_ideas\nHotDocs,FY26 Q1,80,10\nLegalHold,FY26 Q1,70,12\n")
    batch = build_records("responsiveness_trends", df, "HotDocs", "FY26 Q2")
    assert batch.skipped_rows == 1
    assert batch.records[0]["quarter"] == "FY26 Q1"
    assert batch.records[0]["percentage"] == 80.0


def test_build_records_missing_required_column():
    with pytest.raises(CSVError) as err:
        build_records("features", read_csv_text("feature_name\nSearch\n"), "HotDocs", "FY26 Q2")
    assert err.value.message == "Invalid CSV structure"


def test_build_records_quarter_scoped_needs_quarter():
    df = read_csv_text("clients_representing\n5\n")
    batch = build_records("client_submissions", df, "HotDocs", None)
    assert batch.records == []
    assert batch.skipped_rows == 1


def test_forum_defaults_and_scopes():
    df = read_csv_text("forum_name,is_active\nCSC,\nCWG,no\n")
    spec = DATASETS["data_socialization_forums"]
    batch = build_records(spec.name, df, "HotDocs", "FY26 Q2")
    assert [r["is_active"] for r in batch.records] == [True, False]
    assert "quarter" not in batch.records[0]
    assert replacement_scopes(spec, batch.records) == [{"product": "HotDocs"}]


def test_commitment_scopes_by_year():
    df = read_csv_text("year,committed,delivered\n2023,10,9\n2024,12,11\n2024,,\n")
    spec = DATASETS["commitment_trends"]
    batch = build_records(spec.name, df, "HotDocs", None)
    assert replacement_scopes(spec, batch.records) == [
        {"product": "HotDocs", "year": "2023"},
        {"product": "HotDocs", "year": "2024"},
    ]


def test_engagement_json_and_boolean_columns():
    df = read_csv_text(
        "rate,numerator,denominator,idea_id,subsequent_changes,included,days_between\n"
        '80,8,10,E-1,"[{""date"": ""2025-02-01""}]",true,30\n'
    )
    record = build_records("continued_engagement", df, "HotDocs", "FY26 Q2").records[0]
    assert record["subsequent_changes"] == [{"date": "2025-02-01"}]
    assert record["included"] is True
    assert record["days_between"] == 30
