import pandas as pd
import pytest

from insights.backend import InMemoryBackend
from insights.data import FALLBACK_WARNING, load_dashboard_data, prepare_context, round_half_up, rows_to_frame
from insights.filters import normalize_filters
from insights.quarters import format_quarter_label, parse_fiscal_quarter, previous_quarter, sort_quarters


def test_quarter_helpers():
    assert parse_fiscal_quarter("FY25 Q1") == (2025, 1)
    assert parse_fiscal_quarter("Q1 2025") == (None, None)
    assert format_quarter_label("FY26 Q2") == "Q2 2026"
    assert previous_quarter("FY26 Q1") == "FY25 Q4"
    assert previous_quarter("FY26 Q3") == "FY26 Q2"
    assert sort_quarters(["FY25 Q4", "FY26 Q2", "FY25 Q4", "FY26 Q1"]) == ["FY26 Q2", "FY26 Q1", "FY25 Q4"]


def test_normalize_filters_defaults_and_clamping():
    f = normalize_filters({"product": "hotdocs", "quarter": "fy26 q1", "top_n": "500"})
    assert f.product == "HotDocs"
    assert f.quarter == "FY26 Q1"
    assert f.previous_quarter == "FY25 Q4"
    assert f.top_n == 50
    assert f.detail_quarter == "FY26 Q1"

    f = normalize_filters({"product": "Unknown", "top_n": "x"}, available_quarters=["FY25 Q3", "FY25 Q4"])
    assert f.product == "TeamConnect"
    assert f.quarter == "FY25 Q4"
    assert f.top_n == 10


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -3
    assert round_half_up(None) is None
    assert round_half_up(float("nan")) is None


def test_rows_to_frame_adds_missing_columns():
    df = rows_to_frame("client_submissions", [{"product": "HotDocs", "quarter": " FY26 Q2 ", "clients_representing": "7"}])
    assert "client_names" in df.columns
    assert df.iloc[0]["clients_representing"] == 7
    assert df.iloc[0]["quarter"] == "FY26 Q2"


def test_load_dashboard_data_from_memory(backend):
    data_ctx = load_dashboard_data(backend, "HotDocs")
    assert data_ctx["source"] == "sample"
    assert data_ctx["warning"] is None
    assert data_ctx["quarters"] == ["FY26 Q2", "FY26 Q1", "FY25 Q4", "FY25 Q3"]
    assert set(data_ctx["dashboards"]) == set(data_ctx["quarters"])
    assert (data_ctx["features"]["product"] == "HotDocs").all()


def test_prepare_context_slices_by_quarter(backend):
    ctx = prepare_context({"product": "HotDocs", "quarter": "FY26 Q1"}, load_dashboard_data(backend, "HotDocs"))
    assert ctx["filters"].previous_quarter == "FY25 Q4"
    assert ctx["dashboard"] is not None
    assert set(ctx["features_current"]["quarter"]) == {"FY26 Q1"}
    assert set(ctx["features_previous"]["quarter"]) == {"FY25 Q4"}
    assert list(ctx["engagement_all"]["quarter"].drop_duplicates()) == ["FY25 Q3", "FY25 Q4", "FY26 Q1", "FY26 Q2"]
    assert isinstance(ctx["forums"], pd.DataFrame)


class UnreachableRemote:
    name = "supabase"

    def select(self, table, filters=None, **kwargs):
        raise ConnectionError("supabase down")


class BrokenMemory(InMemoryBackend):
    def select(self, table, filters=None, **kwargs):
        raise ConnectionError("broken")


def test_load_dashboard_data_falls_back_to_sample_data():
    data_ctx = load_dashboard_data(UnreachableRemote(), "HotDocs")
    assert data_ctx["source"] == "sample"
    assert data_ctx["warning"] == FALLBACK_WARNING
    assert data_ctx["quarters"]


def test_load_dashboard_data_memory_failures_propagate():
    with pytest.raises(ConnectionError):
        load_dashboard_data(BrokenMemory(), "HotDocs")
