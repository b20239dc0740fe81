import pytest

from insights.csv_ingest import (
    CSVError,
    count_invalid_numeric,
    count_missing_values,
    preview_csv,
    read_csv_text,
    rows_for_product,
    validate_csv,
    validate_csv_headers,
    validate_csv_product,
    validation_report,
)


def test_read_csv_text_strips_bom_and_skips_blank_lines():
    df = read_csv_text("\ufeffproduct,quarter\nHotDocs,FY26 Q2\n\nLegalHold,FY26 Q1\n")
    assert list(df.columns) == ["product", "quarter"]
    assert len(df) == 2


def test_read_csv_text_keeps_columns_with_trailing_delimiter():
    df = read_csv_text("product,quarter\nHotDocs,FY26 Q2,\nLegalHold,FY26 Q1,\n")
    assert list(df.columns) == ["product", "quarter"]
    assert df.iloc[0]["product"] == "HotDocs"
    assert df.iloc[0]["quarter"] == "FY26 Q2"
    assert df.iloc[1]["product"] == "LegalHold"


def test_read_csv_text_skips_rows_with_extra_fields():
    df = read_csv_text("product,quarter\nHotDocs,FY26 Q2\nLegalHold,FY26 Q1,x,y\nHotDocs,FY26 Q1\n")
    assert df["quarter"].tolist() == ["FY26 Q2", "FY26 Q1"]
    assert len(df.attrs["skipped_lines"]) == 1

    result = validate_csv(df, ["product"], [])
    assert result.is_valid
    assert result.warnings == ["Skipped 1 malformed rows with more fields than the header"]


def test_read_csv_text_decodes_bytes():
    df = read_csv_text("a,b\n1,2\n".encode("utf-8-sig"))
    assert df.iloc[0]["a"] == "1"


def test_read_csv_text_empty_file():
    with pytest.raises(CSVError) as err:
        read_csv_text("   \n")
    assert err.value.message == "Empty CSV file"
    assert err.value.error_type == "file"


def test_validate_csv_reports_missing_columns_and_warnings():
    df = read_csv_text("product,quarter,responsiveness\nHotDocs,FY26 Q2,abc\nHotDocs,FY26 Q2,abc\n")
    result = validate_csv(df)
    assert not result.is_valid
    assert result.missing_fields == ["feature_name", "vote_count", "status"]
    assert result.errors[0].startswith("Missing required columns:")
    assert result.duplicate_rows == 1
    assert result.invalid_numeric_count == 2
    assert any("non-numeric" in w for w in result.warnings)


def test_validate_csv_warnings_do_not_invalidate():
    df = read_csv_text(
        "product,quarter,responsiveness,feature_name,vote_count,status\n"
        "HotDocs,FY26 Q2,88,Search,9,Committed\n"
        "HotDocs,FY26 Q2,88,Search,9,Committed\n"
        "HotDocs,FY26 Q2,88,Export,,Delivered\n"
        "HotDocs,FY26 Q2,high,Import,4,Committed\n"
    )
    result = validate_csv(df)
    assert result.is_valid is True
    assert result.errors == []
    assert result.warnings == [
        "Found 1 duplicate rows",
        "Found 1 missing values in required fields",
        "Found 1 non-numeric values in numeric fields",
    ]


def test_validate_csv_no_data_rows():
    df = read_csv_text("product,quarter\n")
    result = validate_csv(df, ["product"], [])
    assert not result.is_valid
    assert "CSV file contains no data rows" in result.errors


def test_count_missing_values_treats_whitespace_as_blank():
    df = read_csv_text("a,b\n ,x\n1,\n")
    assert count_missing_values(df, ["a", "b", "not_there"]) == 2


def test_count_invalid_numeric_ignores_blanks():
    df = read_csv_text("n\n1\n\n2.5\nx\n")
    assert count_invalid_numeric(df, ["n"]) == 1


def test_preview_and_report(dashboard_csv):
    preview = preview_csv(dashboard_csv, preview_rows=2)
    assert len(preview.rows) == 2
    assert preview.validation.is_valid
    report = validation_report(preview, "upload.csv", 123)
    assert report["file_name"] == "upload.csv"
    assert report["file_size"] == 123
    assert report["validation"]["row_count"] == 3
    assert len(report["sample_data"]) == 2


def test_validate_csv_headers():
    assert validate_csv_headers("a,b\n1,2\n", ["a"]) is True
    with pytest.raises(CSVError) as err:
        validate_csv_headers("a,b\n1,2\n", ["a", "c"])
    assert err.value.message == "Invalid CSV structure"
    assert "- c" in err.value.details


def test_rows_for_product_is_case_insensitive():
    df = read_csv_text("product,x\nhotdocs,1\nLegalHold,2\n")
    assert len(rows_for_product(df, "HotDocs")) == 1
    assert rows_for_product(read_csv_text("x\n1\n"), "HotDocs").empty


def test_validate_csv_product_rejects_other_products(dashboard_csv):
    validate_csv_product(dashboard_csv, "HotDocs")
    with pytest.raises(CSVError) as err:
        validate_csv_product(dashboard_csv, "LegalHold")
    assert err.value.to_dict()["error"] == "Invalid product data"
